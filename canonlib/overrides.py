# canonlib/overrides.py
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)

PAUSE_MARKER = "TRANSLATION_PAUSE"


@dataclass
class TemporaryOverride:
    canonical_id: str
    expires:      datetime
    reason:       str = ""

    def is_active(self, now: datetime) -> bool:
        return self.expires > now


@dataclass
class TranslationOverrides:
    """
    Pausas y exclusiones manuales que el planner consulta antes de emitir tareas.
    Una pausa global se activa con `global_pause: true` o con el archivo
    TRANSLATION_PAUSE en el directorio de trabajo.
    """
    global_pause:        bool                    = False
    skip_canonical_ids:  list[str]               = field(default_factory=list)
    skip_file_paths:     list[str]               = field(default_factory=list)
    temporary_overrides: list[TemporaryOverride] = field(default_factory=list)
    pause_marker:        Optional[Path]          = None

    @classmethod
    def load(cls, path: Path, pause_marker: Optional[Path] = None) -> "TranslationOverrides":
        """Archivo ausente → sin overrides. Archivo ilegible → aviso y sin overrides."""
        path   = Path(path)
        marker = Path(pause_marker) if pause_marker else Path(PAUSE_MARKER)

        if not path.exists():
            return cls(pause_marker=marker)

        try:
            with path.open(encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            logger.warning("No se pudo parsear %s: %s", path, e)
            return cls(pause_marker=marker)

        if not isinstance(raw, dict):
            logger.warning("Overrides con formato inesperado en %s", path)
            return cls(pause_marker=marker)

        temporary = []
        for item in raw.get("temporary_overrides") or []:
            override = _parse_temporary(item)
            if override:
                temporary.append(override)

        return cls(
            global_pause        = bool(raw.get("global_pause", False)),
            skip_canonical_ids  = [str(i) for i in raw.get("skip_canonical_ids") or []],
            skip_file_paths     = [str(p) for p in raw.get("skip_file_paths") or []],
            temporary_overrides = temporary,
            pause_marker        = marker,
        )

    def is_paused(self) -> bool:
        if self.global_pause:
            return True
        return self.pause_marker is not None and self.pause_marker.exists()

    def should_skip(
        self,
        canonical_id: str,
        location:     Optional[str] = None,
        now:          Optional[datetime] = None,
    ) -> bool:
        return self.skip_reason(canonical_id, location, now) is not None

    def skip_reason(
        self,
        canonical_id: str,
        location:     Optional[str] = None,
        now:          Optional[datetime] = None,
    ) -> Optional[str]:
        if self.is_paused():
            return "Global translation pause is active"

        if canonical_id in self.skip_canonical_ids:
            return f"Canonical ID '{canonical_id}' is in skip list"

        if location and any(
            skip in location or location.endswith(skip) for skip in self.skip_file_paths
        ):
            return f"File path '{location}' is in skip list"

        now = now or datetime.now(timezone.utc)
        for override in self.temporary_overrides:
            if override.canonical_id == canonical_id and override.is_active(now):
                reason = override.reason or "no reason given"
                return f"Temporary override until {override.expires.isoformat()}: {reason}"

        return None


def _parse_temporary(item) -> Optional[TemporaryOverride]:
    if not isinstance(item, dict) or "canonical_id" not in item or "expires" not in item:
        logger.warning("Override temporal inválido ignorado: %r", item)
        return None

    expires = item["expires"]
    try:
        if not isinstance(expires, datetime):
            # YAML puede entregar date o str
            expires = datetime.fromisoformat(str(expires))
    except ValueError:
        logger.warning("Fecha de expiración inválida en override: %r", item["expires"])
        return None

    if expires.tzinfo is None:
        expires = expires.replace(tzinfo=timezone.utc)

    return TemporaryOverride(
        canonical_id = str(item["canonical_id"]),
        expires      = expires,
        reason       = str(item.get("reason") or ""),
    )
