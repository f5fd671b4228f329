# canonlib/planner.py
import logging
from pathlib import Path
from typing import Optional

from canonlib.content.hasher import compute_content_hash
from canonlib.content.scanner import derive_translation_location
from canonlib.errors import PlanningError
from canonlib.overrides import TranslationOverrides
from canonlib.storage.models import (
    CanonicalEntry, TaskPriority, TaskReason, TranslationRecord, TranslationStatus, TranslationTask,
)
from canonlib.storage.registry import ContentRegistry

logger = logging.getLogger(__name__)


class TaskPlanner:
    """
    Compara el hash actual de cada origen con el registry y emite la lista
    de tareas missing/stale por idioma destino.

    Solo lee: nunca modifica el registry. Dos llamadas seguidas sin
    cambios en disco devuelven la misma lista, en el mismo orden.
    """

    def __init__(
        self,
        registry:     ContentRegistry,
        content_root: Path,
        languages:    list[str],
        overrides:    Optional[TranslationOverrides] = None,
    ):
        self._registry     = registry
        self._content_root = Path(content_root)
        self._languages    = list(languages)
        self._overrides    = overrides

    def plan(self, target_language: Optional[str] = None) -> list[TranslationTask]:
        tasks: list[TranslationTask] = []

        for entry in self._registry.entries():
            if self._overrides:
                reason = self._overrides.skip_reason(entry.canonical_id, entry.origin_location)
                if reason:
                    logger.info("Saltando %s: %s", entry.canonical_id, reason)
                    continue

            try:
                tasks.extend(self._plan_entry(entry, target_language))
            except PlanningError as e:
                logger.warning("%s", e)
                continue

        logger.info("Plan: %d tareas", len(tasks))
        return tasks

    def _plan_entry(
        self,
        entry:           CanonicalEntry,
        target_language: Optional[str],
    ) -> list[TranslationTask]:
        current_hash = self._current_hash(entry)
        changed      = current_hash != entry.content_hash

        tasks = []
        for language in self._languages:
            if language == entry.origin_language:
                continue
            if target_language and language != target_language:
                continue

            reason = self._reason_for(entry, language, current_hash, changed)
            if reason is None:
                continue

            record = entry.translations.get(language)
            tasks.append(TranslationTask(
                canonical_id              = entry.canonical_id,
                source_location           = entry.origin_location,
                source_language           = entry.origin_language,
                target_language           = language,
                reason                    = reason,
                source_content_hash       = current_hash,
                priority                  = _priority_for(record, current_hash),
                target_location           = (
                    record.location if record else
                    derive_translation_location(entry.origin_location, entry.origin_language, language)
                ),
                existing_translation_hash = record.content_hash if record else None,
            ))
        return tasks

    def _reason_for(
        self,
        entry:        CanonicalEntry,
        language:     str,
        current_hash: str,
        changed:      bool,
    ) -> Optional[TaskReason]:
        record = entry.translations.get(language)
        if record is None:
            return TaskReason.MISSING
        if not (self._content_root / record.location).exists():
            return TaskReason.MISSING
        if (
            changed
            or record.status != TranslationStatus.CURRENT
            or record.content_hash != current_hash
        ):
            return TaskReason.STALE
        return None

    def _current_hash(self, entry: CanonicalEntry) -> str:
        path = self._content_root / entry.origin_location
        if not path.exists():
            raise PlanningError(
                f"Origen inexistente para {entry.canonical_id}: {entry.origin_location}"
            )
        try:
            return compute_content_hash(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise PlanningError(
                f"No se pudo leer el origen de {entry.canonical_id}: {e}"
            ) from e


def _priority_for(record: Optional[TranslationRecord], current_hash: str) -> TaskPriority:
    # El hash guardado en la traducción es el del origen que se tradujo:
    # sobrevive al scan, que ya avanza entry.content_hash
    if record is not None and record.content_hash != current_hash:
        return TaskPriority.HIGH
    return TaskPriority.NORMAL
