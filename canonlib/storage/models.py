# storage/models.py
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import NamedTuple, Optional


class TranslationStatus(Enum):
    CURRENT = "current"
    STALE   = "stale"
    MISSING = "missing"


class TaskReason(Enum):
    MISSING = "missing"
    STALE   = "stale"


class TaskPriority(Enum):
    HIGH   = "high"
    NORMAL = "normal"


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class TranslationRecord:
    """
    Estado de una traducción dentro de su CanonicalEntry.
    content_hash es el hash del ORIGEN a partir del cual se generó:
    si difiere del hash actual del origen, la traducción está stale.
    """
    location:       str
    status:         TranslationStatus
    content_hash:   str
    last_generated: str

    def to_dict(self) -> dict:
        return {
            "path":          self.location,
            "status":        self.status.value,
            "contentHash":   self.content_hash,
            "lastGenerated": self.last_generated,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TranslationRecord":
        return cls(
            location       = data["path"],
            status         = TranslationStatus(data.get("status", "missing")),
            content_hash   = data.get("contentHash") or data.get("translationHash") or "",
            last_generated = data.get("lastGenerated") or data.get("lastTranslated") or "",
        )


@dataclass
class CanonicalEntry:
    canonical_id:    str
    origin_language: str
    origin_location: str
    content_hash:    str
    title:           str
    last_modified:   str
    translations:    dict[str, TranslationRecord] = field(default_factory=dict)

    def update_content_hash(self, new_hash: str) -> bool:
        """
        Registra un cambio del origen. Todas las traducciones pasan a STALE.
        Devuelve False si el hash no cambió (no toca nada).
        """
        if new_hash == self.content_hash:
            return False

        self.content_hash  = new_hash
        self.last_modified = utc_now()
        for record in self.translations.values():
            if record.status == TranslationStatus.CURRENT:
                record.status = TranslationStatus.STALE
        return True

    def set_translation(
        self,
        language:     str,
        location:     str,
        content_hash: str,
        status:       TranslationStatus = TranslationStatus.CURRENT,
        generated_at: Optional[str] = None,
    ) -> TranslationRecord:
        if language == self.origin_language:
            raise ValueError(
                f"{self.canonical_id}: no se admite traducción al idioma de origen ({language})"
            )
        record = TranslationRecord(
            location       = location,
            status         = status,
            content_hash   = content_hash,
            last_generated = generated_at or utc_now(),
        )
        self.translations[language] = record
        return record

    def to_dict(self) -> dict:
        return {
            "canonicalId":      self.canonical_id,
            "originalPath":     self.origin_location,
            "originalLanguage": self.origin_language,
            "title":            self.title,
            "lastModified":     self.last_modified,
            "contentHash":      self.content_hash,
            "translations": {
                lang: record.to_dict()
                for lang, record in sorted(self.translations.items())
            },
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CanonicalEntry":
        return cls(
            canonical_id    = data["canonicalId"],
            origin_language = data["originalLanguage"],
            origin_location = data["originalPath"],
            content_hash    = data.get("contentHash", ""),
            title           = data.get("title", ""),
            last_modified   = data.get("lastModified", ""),
            translations    = {
                lang: TranslationRecord.from_dict(record)
                for lang, record in (data.get("translations") or {}).items()
                if record
            },
        )


@dataclass
class TranslationTask:
    canonical_id:              str
    source_location:           str
    source_language:           str
    target_language:           str
    reason:                    TaskReason
    source_content_hash:       str
    priority:                  TaskPriority
    target_location:           str
    existing_translation_hash: Optional[str] = None

    @property
    def language_pair(self) -> str:
        return f"{self.source_language}-{self.target_language}"

    @property
    def key(self) -> "TaskKey":
        return TaskKey(self.source_location, self.target_language, self.source_content_hash)

    def to_dict(self) -> dict:
        return {
            "canonicalId":             self.canonical_id,
            "sourcePath":              self.source_location,
            "sourceLanguage":          self.source_language,
            "targetLang":              self.target_language,
            "reason":                  self.reason.value,
            "sourceContentHash":       self.source_content_hash,
            "priority":                self.priority.value,
            "outputPath":              self.target_location,
            "existingTranslationHash": self.existing_translation_hash,
            "languagePair":            self.language_pair,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TranslationTask":
        return cls(
            canonical_id              = data["canonicalId"],
            source_location           = data["sourcePath"],
            source_language           = data["sourceLanguage"],
            target_language           = data["targetLang"],
            reason                    = TaskReason(data["reason"]),
            source_content_hash       = data["sourceContentHash"],
            priority                  = TaskPriority(data.get("priority", "normal")),
            target_location           = data["outputPath"],
            existing_translation_hash = data.get("existingTranslationHash"),
        )


class TaskKey(NamedTuple):
    """Identidad de una tarea para el Progress Tracker."""
    source_location: str
    target_language: str
    source_hash:     str

    def as_string(self) -> str:
        return f"{self.source_location}-{self.target_language}-{self.source_hash}"


@dataclass
class TokenUsageEntry:
    timestamp:       str
    operation:       str
    canonical_id:    str
    source_language: str
    target_language: str
    input_tokens:    int
    output_tokens:   int
    model:           str

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    def to_dict(self) -> dict:
        return {
            "timestamp":      self.timestamp,
            "operation":      self.operation,
            "canonicalId":    self.canonical_id,
            "sourceLang":     self.source_language,
            "targetLang":     self.target_language,
            "inputTokens":    self.input_tokens,
            "outputTokens":   self.output_tokens,
            "totalTokens":    self.total_tokens,
            "model":          self.model,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TokenUsageEntry":
        return cls(
            timestamp       = data.get("timestamp", ""),
            operation       = data.get("operation", "translation"),
            canonical_id    = data.get("canonicalId") or data.get("translationKey", ""),
            source_language = data.get("sourceLang", ""),
            target_language = data.get("targetLang", ""),
            input_tokens    = int(data.get("inputTokens", 0)),
            output_tokens   = int(data.get("outputTokens", 0)),
            model           = data.get("model", ""),
        )
