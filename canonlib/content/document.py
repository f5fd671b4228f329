# content/document.py
import re
from dataclasses import dataclass, field
from pathlib import Path

import yaml

# Cabecera YAML delimitada por '---' al inicio del archivo
_FRONTMATTER_RE = re.compile(
    r"\A---[ \t]*\r?\n(?P<header>.*?)^---[ \t]*(?:\r?\n|\Z)",
    re.DOTALL | re.MULTILINE,
)


@dataclass
class ContentDocument:
    """
    Una unidad de contenido: cabecera de metadatos + cuerpo markdown/MDX.
    """
    metadata: dict = field(default_factory=dict)
    body:     str  = ""

    @property
    def title(self) -> str:
        return str(self.metadata.get("title") or "").strip()

    @property
    def language(self) -> str | None:
        value = self.metadata.get("language")
        return str(value).strip().lower() if value else None

    def to_text(self) -> str:
        return serialize_document(self.metadata, self.body)


def parse_document(raw: str) -> ContentDocument:
    """
    Separa la cabecera YAML del cuerpo.
    Sin cabecera → metadatos vacíos y el texto completo como cuerpo.
    Lanza ValueError si la cabecera existe pero no es un mapping YAML válido.
    """
    match = _FRONTMATTER_RE.match(raw)
    if not match:
        return ContentDocument(metadata={}, body=raw)

    try:
        metadata = yaml.safe_load(match.group("header")) or {}
    except yaml.YAMLError as e:
        raise ValueError(f"Front matter inválido: {e}") from e

    if not isinstance(metadata, dict):
        raise ValueError(
            f"Front matter debe ser un mapping, se obtuvo {type(metadata).__name__}"
        )

    return ContentDocument(metadata=metadata, body=raw[match.end():])


def serialize_document(metadata: dict, body: str) -> str:
    """Inverso de parse_document. Sin metadatos devuelve solo el cuerpo."""
    if not metadata:
        return body
    header = yaml.safe_dump(
        metadata,
        sort_keys          = False,
        allow_unicode      = True,
        default_flow_style = False,
    )
    return f"---\n{header}---\n{body}"


def read_document(path: Path) -> ContentDocument:
    return parse_document(Path(path).read_text(encoding="utf-8"))


def write_document(path: Path, document: ContentDocument) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(document.to_text(), encoding="utf-8")
