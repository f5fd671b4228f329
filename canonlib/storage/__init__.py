# storage/__init__.py
from canonlib.storage.registry import ContentRegistry
from canonlib.storage.progress import ProgressTracker
from canonlib.storage.ledger import TokenLedger, DailyTokenUsage, DAILY_TOKEN_CAP
from canonlib.storage.cache import TranslationCache, FileTranslationCache, SqliteTranslationCache
from canonlib.storage.models import (
    CanonicalEntry, TranslationRecord, TranslationTask, TaskKey, TokenUsageEntry,
    TranslationStatus, TaskReason, TaskPriority,
)

__all__ = [
    "ContentRegistry",
    "ProgressTracker",
    "TokenLedger", "DailyTokenUsage", "DAILY_TOKEN_CAP",
    "TranslationCache", "FileTranslationCache", "SqliteTranslationCache",
    "CanonicalEntry", "TranslationRecord", "TranslationTask", "TaskKey", "TokenUsageEntry",
    "TranslationStatus", "TaskReason", "TaskPriority",
]
