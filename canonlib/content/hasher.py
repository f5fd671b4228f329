# content/hasher.py
import hashlib

import yaml

from canonlib.content.document import parse_document

# Campos de contabilidad que cambian sin que cambie el contenido semántico.
# Tocarlos nunca debe volver "stale" una traducción.
MUTABLE_FIELDS = frozenset({
    "timestamp",
    "translationHistory",
    "ai_metadata",
    "ai_tldr",
    "ai_textscore",
    "lastModified",
    "canonicalId",
    "translationOf",
})


def compute_content_hash(raw: str) -> str:
    """
    SHA-256 del payload semántico de una unidad de contenido.

    Quita de la cabecera los campos mutables, la re-serializa con claves
    ordenadas y concatena el cuerpo. Sin cabecera se hashea como {}.
    """
    document   = parse_document(raw)
    normalized = {
        key: value
        for key, value in document.metadata.items()
        if key not in MUTABLE_FIELDS
    }
    header = yaml.safe_dump(
        normalized,
        sort_keys          = True,
        allow_unicode      = True,
        default_flow_style = False,
    )
    payload = f"{header}---\n{document.body}"
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
