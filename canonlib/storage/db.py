# storage/db.py
import os
import sqlite3
from pathlib import Path


_DEFAULT_DB_PATH = Path(".translation-cache") / "cache.db"

_SCHEMA = """
CREATE TABLE IF NOT EXISTS translation_cache (
    source_hash  TEXT    NOT NULL,
    language     TEXT    NOT NULL,
    payload_json TEXT    NOT NULL,
    created_at   TEXT    NOT NULL,
    PRIMARY KEY (source_hash, language)
);
"""


def get_connection(db_path: str | None = None) -> sqlite3.Connection:
    """
    Abre y configura la conexión a SQLite.
    Siempre devuelve rows como dicts (row_factory).
    """
    path = db_path or os.environ.get("CANONLIB_CACHE_DB") or str(_DEFAULT_DB_PATH)

    if path != ":memory:":
        Path(path).parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(path)
    conn.row_factory = sqlite3.Row
    if path != ":memory:":
        conn.execute("PRAGMA journal_mode = WAL")
    return conn


def init_schema(conn: sqlite3.Connection) -> None:
    """Crea las tablas si no existen. Idempotente."""
    with conn:
        conn.executescript(_SCHEMA)
