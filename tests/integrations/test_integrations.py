import subprocess
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from canonlib.errors import CommitError
from canonlib.integrations.alerts import GitHubIssueReporter, LogIssueReporter
from canonlib.integrations.committer import GitCommitter, commit_message
from canonlib.router.models import TranslationPayload
from canonlib.storage.models import TaskPriority, TaskReason, TranslationTask
from canonlib.validator import ValidationResult


def make_task() -> TranslationTask:
    return TranslationTask(
        canonical_id        = "post-20240101-0a1b2c3d",
        source_location     = "books/en/post.md",
        source_language     = "en",
        target_language     = "de",
        reason              = TaskReason.MISSING,
        source_content_hash = "abcdef1234567890",
        priority            = TaskPriority.NORMAL,
        target_location     = "books/de/post.md",
    )


class TestGitCommitter:

    def test_add_y_commit_con_mensaje_fijo(self):
        runner = MagicMock()
        committer = GitCommitter(repo_root=Path("/repo"), runner=runner)

        committer.commit(Path("books/de/post.md"), "post-20240101-0a1b2c3d", "de", "abcdef1234567890")

        commands = [c.args[0] for c in runner.call_args_list]
        assert commands == [
            ["git", "add", "books/de/post.md"],
            ["git", "commit", "-m", "AI: translate post-20240101-0a1b2c3d to de (abcdef1)"],
        ]
        assert runner.call_args_list[0].kwargs["cwd"] == Path("/repo")

    def test_fallo_de_git_es_commit_error(self):
        runner = MagicMock(side_effect=subprocess.CalledProcessError(1, "git", stderr="nothing to commit"))
        committer = GitCommitter(runner=runner)

        with pytest.raises(CommitError, match="nothing to commit"):
            committer.commit(Path("x.md"), "id", "de", "abcdef1")

    def test_git_ausente_es_commit_error(self):
        committer = GitCommitter(runner=MagicMock(side_effect=FileNotFoundError("git")))
        with pytest.raises(CommitError):
            committer.commit(Path("x.md"), "id", "de", "abcdef1")

    def test_mensaje_usa_hash_corto(self):
        assert commit_message("a", "en", "0123456789") == "AI: translate a to en (0123456)"


class TestGitHubIssueReporter:

    def test_alerta_de_alucinacion(self):
        runner   = MagicMock()
        reporter = GitHubIssueReporter(runner=runner)

        reporter.report_hallucination(
            make_task(), ValidationResult(score=40, issues=["Heading count mismatch: 2 vs 0"], reject=True), "claude",
        )

        cmd = runner.call_args.args[0]
        assert cmd[:3] == ["gh", "issue", "create"]
        assert "post-20240101-0a1b2c3d" in cmd[cmd.index("--title") + 1]
        assert "Heading count mismatch" in cmd[cmd.index("--body") + 1]
        assert cmd[cmd.index("--label") + 1] == "translation-hallucination"

    def test_alerta_de_calidad_lista_review_issues(self):
        runner   = MagicMock()
        reporter = GitHubIssueReporter(runner=runner)
        payload  = TranslationPayload(
            translated_markdown = "x",
            translation_quality = 50,
            review_issues       = [{"section": "Intro", "issue": "ambiguo", "suggestion": "aclarar"}],
        )

        reporter.report_quality(make_task(), payload, threshold=70)

        body = runner.call_args.args[0][runner.call_args.args[0].index("--body") + 1]
        assert "Intro" in body and "ambiguo" in body
        assert "threshold 70" in body

    def test_fallo_de_gh_no_propaga(self, caplog):
        runner   = MagicMock(side_effect=subprocess.CalledProcessError(1, "gh", stderr="auth"))
        reporter = GitHubIssueReporter(runner=runner)

        reporter.report("t", "b", ["l"])

        assert "No se pudo crear el issue" in caplog.text


class TestLogIssueReporter:

    def test_escribe_en_el_log(self, caplog):
        with caplog.at_level("WARNING"):
            LogIssueReporter().report("Título", "Cuerpo", ["etiqueta"])
        assert "Título" in caplog.text
        assert "etiqueta" in caplog.text
