# integrations/committer.py
import logging
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Optional

from canonlib.errors import CommitError

logger = logging.getLogger(__name__)


class Committer(ABC):
    """Colaborador externo que versiona cada traducción aceptada."""

    @abstractmethod
    def commit(self, path: Path, canonical_id: str, language: str, source_hash: str) -> None:
        ...


class GitCommitter(Committer):
    """
    git add <archivo> + git commit con mensaje fijo.
    `runner` es inyectable para tests (por defecto subprocess.run).
    """

    def __init__(self, repo_root: Optional[Path] = None, runner: Callable = subprocess.run):
        self._repo_root = Path(repo_root) if repo_root else None
        self._run       = runner

    def commit(self, path: Path, canonical_id: str, language: str, source_hash: str) -> None:
        message = commit_message(canonical_id, language, source_hash)
        self._git("add", str(path))
        self._git("commit", "-m", message)
        logger.info("Commit creado: %s", message)

    def _git(self, *args: str) -> None:
        try:
            self._run(
                ["git", *args],
                cwd=self._repo_root,
                capture_output=True,
                text=True,
                check=True,
            )
        except subprocess.CalledProcessError as e:
            detail = (e.stderr or e.stdout or "").strip()
            raise CommitError(f"git {args[0]} falló: {detail}") from e
        except OSError as e:
            raise CommitError(f"No se pudo ejecutar git: {e}") from e


class NullCommitter(Committer):
    """Para ejecuciones locales con commit desactivado."""

    def commit(self, path: Path, canonical_id: str, language: str, source_hash: str) -> None:
        logger.debug("Commit desactivado, %s queda sin versionar", path)


def commit_message(canonical_id: str, language: str, source_hash: str) -> str:
    return f"AI: translate {canonical_id} to {language} ({source_hash[:7]})"
