# content/canonical_id.py
import hashlib
import logging
import re
import unicodedata
from datetime import date
from pathlib import Path, PurePosixPath
from typing import Optional

from canonlib.content.document import read_document, write_document

logger = logging.getLogger(__name__)

# Formato fijo: slug-YYYYMMDD-hash8
CANONICAL_ID_RE = re.compile(r"^[a-z0-9-]+-\d{8}-[a-f0-9]{8}$")

_SLUG_FALLBACK = "content"
_SLUG_MAX_LEN  = 48


def allocate(location: str, content: str, today: Optional[date] = None) -> str:
    """
    Genera un ID canónico nuevo.
    Entradas deterministas: ubicación + contenido + fecha del día.
    Solo se llama cuando la unidad todavía no tiene ID.
    """
    day    = (today or date.today()).strftime("%Y%m%d")
    digest = hashlib.sha256((location + content).encode("utf-8")).hexdigest()[:8]
    slug   = _slugify(PurePosixPath(location).stem)
    return f"{slug}-{day}-{digest}"


def is_valid_canonical_id(value: str) -> bool:
    return bool(value) and bool(CANONICAL_ID_RE.match(value))


def ensure_canonical_id(
    path:     Path,
    location: str,
    today:    Optional[date] = None,
) -> tuple[str, bool]:
    """
    Garantiza que el archivo tenga canonicalId en su cabecera.
    Devuelve (id, allocated). Idempotente: si ya existe no toca el archivo.
    """
    path     = Path(path)
    raw      = path.read_text(encoding="utf-8")
    document = read_document(path)

    existing = document.metadata.get("canonicalId")
    if existing:
        existing = str(existing)
        if not is_valid_canonical_id(existing):
            logger.warning("canonicalId con formato no estándar en %s: %s", location, existing)
        return existing, False

    canonical_id = allocate(location, raw, today=today)
    document.metadata["canonicalId"] = canonical_id
    write_document(path, document)
    logger.info("ID canónico %s asignado a %s", canonical_id, location)
    return canonical_id, True


def _slugify(value: str) -> str:
    """Nombre de archivo → slug ASCII en minúsculas con guiones."""
    normalized = unicodedata.normalize("NFKD", value)
    ascii_text = normalized.encode("ascii", "ignore").decode("ascii")
    slug = ascii_text.lower().strip()
    slug = re.sub(r"[^a-z0-9\s_-]", "", slug)
    slug = re.sub(r"[\s_-]+", "-", slug).strip("-")
    return slug[:_SLUG_MAX_LEN].rstrip("-") or _SLUG_FALLBACK
