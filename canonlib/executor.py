# canonlib/executor.py
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from canonlib.content.document import ContentDocument, parse_document, serialize_document
from canonlib.content.hasher import compute_content_hash
from canonlib.content.segmenter import SegmentedContent, missing_placeholders, restore, segment
from canonlib.content.token_estimator import SimpleTokenEstimator, TokenEstimator, estimate_request_tokens
from canonlib.errors import CommitError, QuotaExceededError, ResponseParseError, WriteError
from canonlib.integrations.alerts import IssueReporter, LogIssueReporter
from canonlib.integrations.committer import Committer, NullCommitter
from canonlib.router.models import ModelResponse, TranslationPayload
from canonlib.router.prompt_builder import build_translate_prompt, build_user_message
from canonlib.router.response_parser import parse_translation_response, payload_from_dict
from canonlib.router.router import AllModelsExhaustedError, ModelsUnavailableError, Router
from canonlib.storage.cache import TranslationCache
from canonlib.storage.ledger import TokenLedger
from canonlib.storage.models import TranslationStatus, TranslationTask, utc_now
from canonlib.storage.progress import ProgressTracker
from canonlib.storage.registry import ContentRegistry
from canonlib.validator import ValidationResult, validate

logger = logging.getLogger(__name__)

CACHE_MODEL_NAME = "cache"
_HISTORY_LIMIT   = 10
_TITLE_PREFIX    = "TITLE:"

# Marcadores que solo tienen sentido en el original
_ORIGIN_ONLY_FIELDS = ("originalLanguage",)


class TaskOutcome(Enum):
    SUCCEEDED = "succeeded"
    FAILED    = "failed"
    REJECTED  = "rejected"
    SKIPPED   = "skipped"
    CAPPED    = "capped"
    DEFERRED  = "deferred"


@dataclass
class TaskResult:
    task:        TranslationTask
    outcome:     TaskOutcome
    model_used:  Optional[str]              = None
    tokens_used: int                        = 0
    from_cache:  bool                       = False
    validation:  Optional[ValidationResult] = None
    output_path: Optional[Path]             = None
    error:       Optional[str]              = None


class TranslationExecutor:
    """
    Procesa UNA tarea de principio a fin.

    Orden de efectos en una traducción aceptada:
    escribir archivo → verificar → registry → progreso → caché → commit → alerta.
    Una traducción rechazada no toca archivo ni registry.

    Solo QuotaExceededError y ModelsUnavailableError salen de execute():
    el resto de errores se convierten en un TaskResult FAILED para que el
    batch continúe.
    """

    def __init__(
        self,
        registry:          ContentRegistry,
        content_root:      Path,
        router:            Router,
        ledger:            TokenLedger,
        progress:          ProgressTracker,
        cache:             Optional[TranslationCache] = None,
        committer:         Optional[Committer]        = None,
        reporter:          Optional[IssueReporter]    = None,
        estimator:         Optional[TokenEstimator]   = None,
        quality_threshold: float                      = 70.0,
        prompt_rules:      Optional[list[str]]        = None,
    ):
        self._registry          = registry
        self._content_root      = Path(content_root)
        self._router            = router
        self._ledger            = ledger
        self._progress          = progress
        self._cache             = cache
        self._committer         = committer or NullCommitter()
        self._reporter          = reporter or LogIssueReporter()
        self._estimator         = estimator or SimpleTokenEstimator()
        self._quality_threshold = quality_threshold
        self._prompt_rules      = prompt_rules

    def execute(self, task: TranslationTask) -> TaskResult:
        # ── Paso 1: cargar y segmentar el origen ──────────────────────
        try:
            source = self._load_source(task)
        except (OSError, ValueError) as e:
            return self._failed(task, e)

        segmented = segment(source.body)

        # ── Paso 2: caché o modelo ────────────────────────────────────
        payload    = self._cached_payload(task)
        from_cache = payload is not None
        model_used = CACHE_MODEL_NAME
        tokens     = 0

        if payload is None:
            try:
                response = self._call_model(task, source, segmented)
            except (QuotaExceededError, ModelsUnavailableError):
                raise
            except AllModelsExhaustedError as e:
                logger.error("Todos los modelos agotados para %s: %s", task.canonical_id, e)
                return self._failed(task, e)
            except Exception as e:
                logger.warning("Error llamando al modelo para %s: %s", task.canonical_id, e)
                return self._failed(task, e)

            model_used = response.model_used
            tokens     = response.total_tokens
            try:
                payload = parse_translation_response(response.raw_text, model_used)
            except ResponseParseError as e:
                logger.error(
                    "Respuesta inválida para %s (%s): %s",
                    task.canonical_id, task.language_pair, e,
                )
                return self._failed(task, e, model_used=model_used, tokens=tokens)

        # ── Paso 3: reconstruir y validar ─────────────────────────────
        translated_body = _strip_title_line(payload.translated_markdown)
        missing = missing_placeholders(segmented, translated_body)
        if missing:
            logger.warning(
                "%s (%s): el modelo perdió %d placeholders: %s",
                task.canonical_id, task.language_pair, len(missing), ", ".join(missing),
            )
        restored = restore(translated_body, segmented.preserved_spans)

        validation = validate(source.body, restored)
        if validation.reject:
            logger.warning(
                "Traducción rechazada %s (%s): score %d, %s",
                task.canonical_id, task.language_pair, validation.score, validation.issues,
            )
            self._reporter.report_hallucination(task, validation, model_used)
            return TaskResult(
                task        = task,
                outcome     = TaskOutcome.REJECTED,
                model_used  = model_used,
                tokens_used = tokens,
                from_cache  = from_cache,
                validation  = validation,
                error       = "; ".join(validation.issues),
            )

        # ── Paso 4: efectos de una traducción aceptada ────────────────
        target_path = self._content_root / task.target_location
        document    = self._build_translation(task, source, payload, restored, model_used, target_path)

        try:
            self._write_verified(target_path, document)
        except WriteError as e:
            return self._failed(task, e, model_used=model_used, tokens=tokens)

        entry = self._registry.get(task.canonical_id)
        if entry.content_hash != task.source_content_hash:
            # El origen cambió sin scan previo: el resto de idiomas queda stale
            entry.update_content_hash(task.source_content_hash)
        entry.set_translation(
            language     = task.target_language,
            location     = task.target_location,
            content_hash = task.source_content_hash,
            status       = TranslationStatus.CURRENT,
        )
        self._registry.save(entry)

        self._progress.mark_done(task.key)

        if self._cache is not None and not from_cache:
            self._cache.put(task.source_content_hash, task.target_language, payload.to_dict())

        result = TaskResult(
            task        = task,
            outcome     = TaskOutcome.SUCCEEDED,
            model_used  = model_used,
            tokens_used = tokens,
            from_cache  = from_cache,
            validation  = validation,
            output_path = target_path,
        )

        try:
            self._committer.commit(
                target_path, task.canonical_id, task.target_language, task.source_content_hash,
            )
        except CommitError as e:
            # El archivo ya está verificado: el registry se queda como está
            logger.error("Commit falló para %s: %s", task.target_location, e)
            result.outcome = TaskOutcome.FAILED
            result.error   = str(e)
            return result

        if self._needs_review(payload):
            self._reporter.report_quality(task, payload, self._quality_threshold)

        return result

    # ------------------------------------------------------------------
    # Helpers privados
    # ------------------------------------------------------------------

    def _load_source(self, task: TranslationTask) -> ContentDocument:
        if self._registry.get(task.canonical_id) is None:
            raise ValueError(f"{task.canonical_id} no está en el registry")

        raw = (self._content_root / task.source_location).read_text(encoding="utf-8")
        if compute_content_hash(raw) != task.source_content_hash:
            raise ValueError(
                f"El origen {task.source_location} cambió desde la planificación; replanificar"
            )

        source = parse_document(raw)
        if not source.title:
            raise ValueError(f"El origen {task.source_location} no tiene title")
        return source

    def _cached_payload(self, task: TranslationTask) -> Optional[TranslationPayload]:
        if self._cache is None:
            return None
        data = self._cache.get(task.source_content_hash, task.target_language)
        if data is None:
            return None
        try:
            payload = payload_from_dict(data)
        except ResponseParseError as e:
            logger.warning("Entrada de caché inválida para %s, se ignora: %s", task.canonical_id, e)
            return None
        logger.info("Caché: %s (%s)", task.canonical_id, task.language_pair)
        return payload

    def _call_model(
        self,
        task:      TranslationTask,
        source:    ContentDocument,
        segmented: SegmentedContent,
    ) -> ModelResponse:
        system_prompt = build_translate_prompt(
            source_lang = task.source_language,
            target_lang = task.target_language,
            extra_rules = self._prompt_rules,
        )
        user_message = build_user_message(source.title, segmented.translatable_text)

        estimated = estimate_request_tokens(self._estimator, system_prompt, user_message)
        if self._ledger.would_exceed(estimated):
            raise QuotaExceededError(
                f"Tope diario alcanzado: estimados {estimated}, "
                f"restantes {self._ledger.remaining()}"
            )

        response = self._router.translate(user_message, system_prompt)

        # Los tokens se gastaron aunque la respuesta no sirva
        self._ledger.record(
            canonical_id    = task.canonical_id,
            source_language = task.source_language,
            target_language = task.target_language,
            input_tokens    = response.tokens_input,
            output_tokens   = response.tokens_output,
            model           = response.model_used,
        )
        return response

    def _build_translation(
        self,
        task:        TranslationTask,
        source:      ContentDocument,
        payload:     TranslationPayload,
        body:        str,
        model_used:  str,
        target_path: Path,
    ) -> ContentDocument:
        metadata = {
            key: value for key, value in source.metadata.items()
            if key not in _ORIGIN_ONLY_FIELDS
        }
        metadata["title"]          = payload.translated_title or source.title
        metadata["language"]       = task.target_language
        metadata["canonicalId"]    = task.canonical_id
        metadata["translationOf"]  = task.canonical_id
        metadata["sourceLanguage"] = task.source_language
        metadata["sourceHash"]     = task.source_content_hash

        history = [{
            "language":    task.target_language,
            "sourceHash":  task.source_content_hash,
            "generatedAt": utc_now(),
            "model":       model_used,
        }]
        history.extend(_previous_history(target_path))
        metadata["translationHistory"] = history[:_HISTORY_LIMIT]

        if payload.summary:
            metadata["ai_tldr"] = payload.summary
        metadata["ai_textscore"] = payload.to_dict()["ai_textscore"]

        return ContentDocument(metadata=metadata, body=body)

    @staticmethod
    def _write_verified(path: Path, document: ContentDocument) -> None:
        text = serialize_document(document.metadata, document.body)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
            written = path.read_text(encoding="utf-8")
        except OSError as e:
            raise WriteError(f"No se pudo escribir {path}: {e}") from e
        if written != text:
            raise WriteError(f"Verificación fallida tras escribir {path}")

    def _needs_review(self, payload: TranslationPayload) -> bool:
        if payload.review_issues:
            return True
        quality = payload.translation_quality
        return quality is not None and quality < self._quality_threshold

    @staticmethod
    def _failed(
        task:       TranslationTask,
        error:      Exception,
        model_used: Optional[str] = None,
        tokens:     int = 0,
    ) -> TaskResult:
        return TaskResult(
            task        = task,
            outcome     = TaskOutcome.FAILED,
            model_used  = model_used,
            tokens_used = tokens,
            error       = f"{type(error).__name__}: {error}",
        )


def _strip_title_line(markdown: str) -> str:
    """Quita la línea 'TITLE: ...' si el modelo la repitió al inicio."""
    stripped = markdown.lstrip()
    if not stripped.startswith(_TITLE_PREFIX):
        return markdown
    _, _, rest = stripped.partition("\n")
    return rest.lstrip("\n")


def _previous_history(path: Path) -> list[dict]:
    if not path.exists():
        return []
    try:
        metadata = parse_document(path.read_text(encoding="utf-8")).metadata
    except (OSError, ValueError) as e:
        logger.debug("Historial previo ilegible en %s: %s", path, e)
        return []
    history = metadata.get("translationHistory")
    if not isinstance(history, list):
        return []
    return [item for item in history if isinstance(item, dict)]
