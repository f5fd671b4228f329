# storage/cache.py
import json
import logging
import re
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from canonlib.storage.db import get_connection, init_schema
from canonlib.storage.files import read_json, write_json_atomic

logger = logging.getLogger(__name__)

_SAFE_KEY_RE = re.compile(r"[^A-Za-z0-9_.-]")


class TranslationCache(ABC):
    """
    Caché de respuestas del modelo indexada por (source_hash, language).
    El Executor solo habla con esta interfaz: el backend es intercambiable.
    """

    @abstractmethod
    def get(self, source_hash: str, language: str) -> Optional[dict]:
        ...

    @abstractmethod
    def put(self, source_hash: str, language: str, payload: dict) -> None:
        ...

    def close(self) -> None:
        pass


class FileTranslationCache(TranslationCache):
    """Un JSON suelto por clave: <directory>/<hash>-<lang>.json"""

    def __init__(self, directory: Path):
        self._directory = Path(directory)

    def get(self, source_hash: str, language: str) -> Optional[dict]:
        data = read_json(self._path_for(source_hash, language))
        return data if isinstance(data, dict) else None

    def put(self, source_hash: str, language: str, payload: dict) -> None:
        write_json_atomic(self._path_for(source_hash, language), payload)

    def _path_for(self, source_hash: str, language: str) -> Path:
        name = _SAFE_KEY_RE.sub("_", f"{source_hash}-{language}")
        return self._directory / f"{name}.json"


class SqliteTranslationCache(TranslationCache):
    """Mismo contrato sobre SQLite. Recibe db_path para testear con :memory:."""

    def __init__(self, db_path: str | None = None):
        self._conn = get_connection(db_path)
        init_schema(self._conn)

    def get(self, source_hash: str, language: str) -> Optional[dict]:
        row = self._conn.execute(
            "SELECT payload_json FROM translation_cache WHERE source_hash = ? AND language = ?",
            (source_hash, language),
        ).fetchone()
        if not row:
            return None
        try:
            return json.loads(row["payload_json"])
        except json.JSONDecodeError as e:
            logger.warning("Entrada de caché corrupta %s/%s: %s", source_hash[:8], language, e)
            return None

    def put(self, source_hash: str, language: str, payload: dict) -> None:
        created_at = datetime.now(timezone.utc).isoformat()
        with self._conn:
            self._conn.execute(
                """
                INSERT INTO translation_cache (source_hash, language, payload_json, created_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT (source_hash, language)
                DO UPDATE SET payload_json = excluded.payload_json,
                              created_at   = excluded.created_at
                """,
                (source_hash, language, json.dumps(payload, ensure_ascii=False), created_at),
            )

    def close(self) -> None:
        self._conn.close()
