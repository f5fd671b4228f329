# content/segmenter.py
import re
from dataclasses import dataclass, field

_PLACEHOLDER_TEMPLATE = "__PRESERVED_{index}__"
PLACEHOLDER_RE        = re.compile(r"__PRESERVED_\d+__")

# Reglas en orden de aplicación. Los bloques de código van primero para que
# su contenido nunca se fragmente en placeholders anidados.
_RULES: list[tuple[str, re.Pattern]] = [
    ("code_block",      re.compile(r"```[\s\S]*?```")),
    ("import",          re.compile(r"^[ \t]*import\s+.*?\s+from\s+['\"][^'\"]+['\"];?[ \t]*$", re.MULTILINE)),
    ("component_open",  re.compile(r"<[A-Z][a-zA-Z0-9]*(?:\s[^>]*)?/?>")),
    ("component_close", re.compile(r"</[A-Z][a-zA-Z0-9]*\s*>")),
    ("inline_code",     re.compile(r"`[^`\n]+`")),
    ("link_target",     re.compile(r"(?<=\])\([^)\n]+\)")),
]


@dataclass(frozen=True)
class PreservedSpan:
    placeholder: str
    text:        str
    kind:        str


@dataclass
class SegmentedContent:
    translatable_text: str
    preserved_spans:   list[PreservedSpan] = field(default_factory=list)

    @property
    def placeholders(self) -> list[str]:
        """Placeholders visibles en el texto traducible (sin los anidados)."""
        return PLACEHOLDER_RE.findall(self.translatable_text)


def segment(raw_content: str) -> SegmentedContent:
    """
    Sustituye cada fragmento no traducible por un token opaco.
    El mapping se devuelve en orden de creación; restore() lo recorre
    al revés para resolver placeholders anidados.
    """
    spans:   list[PreservedSpan] = []
    working: str                 = raw_content

    for kind, pattern in _RULES:
        def _replace(match: re.Match, _kind: str = kind) -> str:
            placeholder = _PLACEHOLDER_TEMPLATE.format(index=len(spans))
            spans.append(PreservedSpan(placeholder=placeholder, text=match.group(0), kind=_kind))
            return placeholder

        working = pattern.sub(_replace, working)

    return SegmentedContent(translatable_text=working, preserved_spans=spans)


def restore(text: str, preserved_spans: list[PreservedSpan]) -> str:
    """Vuelve a insertar los fragmentos preservados byte a byte."""
    restored = text
    for span in reversed(preserved_spans):
        restored = restored.replace(span.placeholder, span.text)
    return restored


def missing_placeholders(segmented: SegmentedContent, translated_text: str) -> list[str]:
    """Placeholders que el modelo eliminó o alteró en su respuesta."""
    present = set(PLACEHOLDER_RE.findall(translated_text))
    return [p for p in segmented.placeholders if p not in present]
