# storage/registry.py
import logging
from pathlib import Path
from typing import Iterator, Optional

from canonlib.storage.files import backup_file, prune_backups, read_json, write_json_atomic
from canonlib.storage.models import CanonicalEntry, utc_now

logger = logging.getLogger(__name__)

REGISTRY_VERSION  = "1.0.0"
_DEFAULT_BACKUPS  = 20


class ContentRegistry:
    """
    Única interfaz entre el resto de la aplicación y content-registry.json.

    Un solo escritor (el proceso batch). Cada save hace backup timestamped
    del estado anterior y escribe de forma atómica: se prioriza no perder
    el registry frente al rendimiento.
    """

    def __init__(self, path: Path, max_backups: int = _DEFAULT_BACKUPS):
        self._path        = Path(path)
        self._max_backups = max_backups
        self._entries:      dict[str, CanonicalEntry] = {}
        self._last_updated: str = ""
        self._loaded        = False

    @property
    def path(self) -> Path:
        return self._path

    @property
    def last_updated(self) -> str:
        return self._last_updated

    # ------------------------------------------------------------------
    # Lectura
    # ------------------------------------------------------------------

    def load(self) -> "ContentRegistry":
        """
        Carga el registry desde disco.
        Archivo inexistente o ilegible → registry vacío, nunca excepción:
        "sin entrada" significa "todo es nuevo / missing".
        """
        self._entries = {}
        self._last_updated = ""
        self._loaded = True

        raw = read_json(self._path)
        if raw is None:
            if self._path.exists():
                logger.warning("Registry ilegible en %s: se arranca vacío", self._path)
            return self

        if not isinstance(raw, dict) or not isinstance(raw.get("entries"), dict):
            logger.warning("Registry con estructura inesperada en %s: se arranca vacío", self._path)
            return self

        self._last_updated = raw.get("lastUpdated", "")
        for canonical_id, data in raw["entries"].items():
            try:
                entry = CanonicalEntry.from_dict(data)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Entrada %s descartada al cargar: %s", canonical_id, e)
                continue
            self._entries[canonical_id] = entry

        logger.debug("Registry cargado: %d entradas", len(self._entries))
        return self

    def get(self, canonical_id: str) -> Optional[CanonicalEntry]:
        self._ensure_loaded()
        return self._entries.get(canonical_id)

    def entries(self) -> list[CanonicalEntry]:
        """Entradas ordenadas por canonical_id (orden determinista)."""
        self._ensure_loaded()
        return [self._entries[key] for key in sorted(self._entries)]

    def __iter__(self) -> Iterator[CanonicalEntry]:
        return iter(self.entries())

    def __len__(self) -> int:
        self._ensure_loaded()
        return len(self._entries)

    def __contains__(self, canonical_id: str) -> bool:
        self._ensure_loaded()
        return canonical_id in self._entries

    def find_by_location(self, location: str) -> Optional[str]:
        """
        Búsqueda inversa: ubicación → canonical_id.
        Mira tanto el origen como las ubicaciones de traducción.
        """
        self._ensure_loaded()
        wanted = _normalize_location(location)
        for canonical_id in sorted(self._entries):
            entry = self._entries[canonical_id]
            if _normalize_location(entry.origin_location) == wanted:
                return canonical_id
            for record in entry.translations.values():
                if _normalize_location(record.location) == wanted:
                    return canonical_id
        return None

    # ------------------------------------------------------------------
    # Escritura
    # ------------------------------------------------------------------

    def save(self, entry: CanonicalEntry) -> None:
        """Upsert de una entrada + flush inmediato a disco."""
        self.stage(entry)
        self.flush()

    def stage(self, entry: CanonicalEntry) -> None:
        """Upsert en memoria sin escribir. Para pasadas masivas (scan)."""
        self._ensure_loaded()
        if entry.origin_language in entry.translations:
            raise ValueError(
                f"{entry.canonical_id}: traducción registrada para el idioma de origen"
            )
        self._entries[entry.canonical_id] = entry

    def remove(self, canonical_id: str) -> bool:
        """Solo lo usa la reconciliación explícita. No hace flush."""
        self._ensure_loaded()
        return self._entries.pop(canonical_id, None) is not None

    def flush(self) -> None:
        """Backup del estado previo y escritura atómica del registry completo."""
        self._ensure_loaded()
        self._last_updated = utc_now()

        backup = backup_file(self._path, timestamped=True)
        if backup:
            logger.debug("Backup del registry en %s", backup)
            prune_backups(self._path, self._max_backups)

        write_json_atomic(self._path, self.to_dict())
        logger.debug("Registry guardado: %d entradas", len(self._entries))

    def to_dict(self) -> dict:
        return {
            "version":     REGISTRY_VERSION,
            "lastUpdated": self._last_updated,
            "entries": {
                canonical_id: self._entries[canonical_id].to_dict()
                for canonical_id in sorted(self._entries)
            },
        }

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self.load()


def _normalize_location(location: str) -> str:
    normalized = str(location).replace("\\", "/")
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized
