# integrations/alerts.py
import logging
import subprocess
from abc import ABC, abstractmethod
from typing import Callable, Optional

from canonlib.router.models import TranslationPayload
from canonlib.storage.models import TranslationTask
from canonlib.validator import ValidationResult

logger = logging.getLogger(__name__)

HALLUCINATION_LABEL = "translation-hallucination"
QUALITY_LABEL       = "translation-review"


class IssueReporter(ABC):
    """
    Destino de las alertas del pipeline. Una alerta nunca debe tumbar
    el batch: las implementaciones registran el fallo y siguen.
    """

    @abstractmethod
    def report(self, title: str, body: str, labels: list[str]) -> None:
        ...

    def report_hallucination(
        self,
        task:       TranslationTask,
        validation: ValidationResult,
        model:      str,
    ) -> None:
        title = f"Rejected translation: {task.canonical_id} ({task.language_pair})"
        lines = [
            f"**Source:** `{task.source_location}`",
            f"**Target:** `{task.target_location}`",
            f"**Model:** {model}",
            f"**Score:** {validation.score}/100",
            "",
            "**Issues:**",
            *[f"- {issue}" for issue in validation.issues],
        ]
        self.report(title, "\n".join(lines), [HALLUCINATION_LABEL])

    def report_quality(
        self,
        task:      TranslationTask,
        payload:   TranslationPayload,
        threshold: float,
    ) -> None:
        title = f"Translation review needed: {task.canonical_id} ({task.language_pair})"
        lines = [
            f"**Translation:** `{task.target_location}`",
            f"**Translation quality:** {_fmt_score(payload.translation_quality)} "
            f"(threshold {threshold:g})",
            f"**Original clarity:** {_fmt_score(payload.original_clarity)}",
        ]
        if payload.score_notes:
            lines += ["", "**Notes:**", *[f"- {note}" for note in payload.score_notes]]
        if payload.review_issues:
            lines += ["", "**Review issues:**"]
            for issue in payload.review_issues:
                section    = issue.get("section", "?")
                problem    = issue.get("issue", "")
                suggestion = issue.get("suggestion", "")
                line = f"- *{section}*: {problem}"
                if suggestion:
                    line += f" → {suggestion}"
                lines.append(line)
        self.report(title, "\n".join(lines), [QUALITY_LABEL])


class GitHubIssueReporter(IssueReporter):
    """Abre un issue con `gh issue create`. Requiere gh autenticado."""

    def __init__(self, runner: Callable = subprocess.run):
        self._run = runner

    def report(self, title: str, body: str, labels: list[str]) -> None:
        cmd = ["gh", "issue", "create", "--title", title, "--body", body]
        for label in labels:
            cmd += ["--label", label]
        try:
            self._run(cmd, capture_output=True, text=True, check=True)
            logger.info("Issue creado: %s", title)
        except (subprocess.CalledProcessError, OSError) as e:
            detail = getattr(e, "stderr", None) or e
            logger.error("No se pudo crear el issue '%s': %s", title, detail)


class LogIssueReporter(IssueReporter):
    """Fallback sin red: la alerta queda en el log."""

    def report(self, title: str, body: str, labels: list[str]) -> None:
        logger.warning("[%s] %s\n%s", ", ".join(labels), title, body)


def _fmt_score(value: Optional[float]) -> str:
    return "n/a" if value is None else f"{value:g}"
