# canonlib/validator.py
import re
from dataclasses import dataclass, field

_HEADING_RE    = re.compile(r"^#+\s+.+$", re.MULTILINE)
_CODE_BLOCK_RE = re.compile(r"```[\s\S]*?```")
_LINK_RE       = re.compile(r"\[([^\]]+)\]\(([^)]+)\)")

HEADING_PENALTY    = 20
CODE_BLOCK_PENALTY = 15
LINK_PENALTY       = 10
LENGTH_PENALTY     = 25

MIN_LENGTH_RATIO = 0.5
MAX_LENGTH_RATIO = 1.5

REJECT_SCORE_BELOW = 60
REJECT_ISSUES_OVER = 2


@dataclass
class ValidationResult:
    score:  int
    issues: list[str] = field(default_factory=list)
    reject: bool      = False

    @property
    def accepted(self) -> bool:
        return not self.reject


def validate(source: str, translated: str) -> ValidationResult:
    """
    Compara la forma de la traducción con la del original.

    Penalizaciones (score inicial 100, mínimo 0):
    - nº de encabezados distinto: -20
    - nº de bloques de código distinto: -15
    - nº de enlaces distinto: -10
    - ratio de longitud fuera de [0.5, 1.5]: -25

    Rechazo si score < 60 o más de 2 problemas. Determinista.
    """
    issues: list[str] = []
    score = 100

    source_headings     = len(_HEADING_RE.findall(source))
    translated_headings = len(_HEADING_RE.findall(translated))
    if source_headings != translated_headings:
        issues.append(f"Heading count mismatch: {source_headings} vs {translated_headings}")
        score -= HEADING_PENALTY

    source_blocks     = len(_CODE_BLOCK_RE.findall(source))
    translated_blocks = len(_CODE_BLOCK_RE.findall(translated))
    if source_blocks != translated_blocks:
        issues.append(f"Code block count mismatch: {source_blocks} vs {translated_blocks}")
        score -= CODE_BLOCK_PENALTY

    source_links     = len(_LINK_RE.findall(source))
    translated_links = len(_LINK_RE.findall(translated))
    if source_links != translated_links:
        issues.append(f"Link count mismatch: {source_links} vs {translated_links}")
        score -= LINK_PENALTY

    ratio = _length_ratio(source, translated)
    if ratio > MAX_LENGTH_RATIO:
        issues.append(f"Translation is suspiciously longer than original ({ratio:.2f}x)")
        score -= LENGTH_PENALTY
    elif ratio < MIN_LENGTH_RATIO:
        issues.append(f"Translation is suspiciously shorter than original ({ratio:.2f}x)")
        score -= LENGTH_PENALTY

    score = max(0, score)
    return ValidationResult(
        score  = score,
        issues = issues,
        reject = score < REJECT_SCORE_BELOW or len(issues) > REJECT_ISSUES_OVER,
    )


def _length_ratio(source: str, translated: str) -> float:
    # Original vacío: solo una traducción también vacía tiene proporción 1
    if not source:
        return 1.0 if not translated else float("inf")
    return len(translated) / len(source)
