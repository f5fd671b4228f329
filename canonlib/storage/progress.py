# storage/progress.py
import logging
from pathlib import Path

from canonlib.storage.files import backup_file, read_json, write_json_atomic
from canonlib.storage.models import TaskKey, utc_now

logger = logging.getLogger(__name__)


class ProgressTracker:
    """
    Log durable de tareas ya completadas en el batch actual.

    Es solo consultivo: la verdad sobre "esta traducción está al día"
    vive en el registry. El tracker existe para no repetir llamadas
    de pago al reanudar un batch interrumpido.
    """

    def __init__(self, path: Path):
        self._path = Path(path)
        self._state = self._load()
        self._done: set[str] = set(self._state["processedTasks"])

    @property
    def path(self) -> Path:
        return self._path

    @property
    def completed(self) -> int:
        return self._state["completedTasks"]

    def is_done(self, key: TaskKey) -> bool:
        return key.as_string() in self._done

    def mark_done(self, key: TaskKey) -> None:
        """Append + flush. Idempotente para la misma clave."""
        task_id = key.as_string()
        if task_id in self._done:
            return

        self._done.add(task_id)
        self._state["processedTasks"].append(task_id)
        self._state["completedTasks"] += 1
        self._state["lastProcessedTime"] = utc_now()
        self._save()

    def start(self, total_tasks: int) -> None:
        """Anota el tamaño del batch. No borra lo ya completado."""
        self._state["totalTasks"] = total_tasks
        self._save()

    def clear(self) -> None:
        """El archivo es efímero: se borra cuando el batch termina completo."""
        self._state = _empty_state()
        self._done.clear()
        if self._path.exists():
            self._path.unlink()
            logger.info("Archivo de progreso eliminado: %s", self._path)
        self._path.with_name(f"{self._path.name}.bak").unlink(missing_ok=True)

    def _load(self) -> dict:
        raw = read_json(self._path)
        if not isinstance(raw, dict) or not isinstance(raw.get("processedTasks"), list):
            if raw is not None:
                logger.warning("Progreso con formato inesperado en %s: empezando de cero", self._path)
            return _empty_state()

        state = _empty_state()
        state["processedTasks"]    = [str(t) for t in raw["processedTasks"]]
        state["lastProcessedTime"] = raw.get("lastProcessedTime", "")
        state["totalTasks"]        = int(raw.get("totalTasks", 0))
        state["completedTasks"]    = int(raw.get("completedTasks", len(state["processedTasks"])))
        return state

    def _save(self) -> None:
        backup_file(self._path, timestamped=False)
        write_json_atomic(self._path, self._state)


def _empty_state() -> dict:
    return {
        "processedTasks":    [],
        "lastProcessedTime": "",
        "totalTasks":        0,
        "completedTasks":    0,
    }
