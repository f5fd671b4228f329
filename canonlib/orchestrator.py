# canonlib/orchestrator.py
import logging
import time
from dataclasses import dataclass, field
from typing import Callable

from canonlib.errors import QuotaExceededError
from canonlib.executor import TaskOutcome, TaskResult, TranslationExecutor
from canonlib.router.router import ModelsUnavailableError
from canonlib.storage.models import TranslationTask
from canonlib.storage.progress import ProgressTracker

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Resultado del batch, lo que consume el CLI
# ------------------------------------------------------------------

@dataclass
class BatchSummary:
    total:       int = 0
    succeeded:   int = 0
    failed:      int = 0
    rejected:    int = 0
    skipped:     int = 0
    capped:      int = 0
    deferred:    int = 0
    tokens_used: int = 0
    results:     list[TaskResult] = field(default_factory=list)

    @property
    def halted(self) -> bool:
        return self.capped > 0 or self.deferred > 0

    @property
    def clean(self) -> bool:
        """Ninguna tarea fallida, rechazada ni pendiente."""
        return not (self.failed or self.rejected or self.capped or self.deferred)

    def add(self, result: TaskResult) -> None:
        self.results.append(result)
        self.tokens_used += result.tokens_used
        counter = result.outcome.value
        setattr(self, counter, getattr(self, counter) + 1)


# ------------------------------------------------------------------
# Orchestrator
# ------------------------------------------------------------------

class Orchestrator:
    """
    Ejecuta la lista de tareas en orden, una a la vez.

    Responsabilidades:
    - Saltar tareas que el Progress Tracker ya registró (reanudación)
    - Aislar fallos por tarea: un error no detiene el batch
    - Detener el batch cuando se agota el tope diario (capped) o cuando
      todos los modelos siguen en cooldown (deferred)
    - Borrar el archivo de progreso cuando el batch termina limpio
    """

    def __init__(
        self,
        executor:      TranslationExecutor,
        progress:      ProgressTracker,
        pause_seconds: float = 1.0,
        sleep:         Callable[[float], None] = time.sleep,
    ):
        self._executor      = executor
        self._progress      = progress
        self._pause_seconds = pause_seconds
        self._sleep         = sleep

    def run(self, tasks: list[TranslationTask]) -> BatchSummary:
        """
        Idempotente: relanzar con la misma lista tras una interrupción
        solo procesa las tareas que no se completaron.
        """
        summary = BatchSummary(total=len(tasks))

        if not tasks:
            self._log("No hay tareas pendientes: nada que traducir")
            self._progress.clear()
            return summary

        self._progress.start(len(tasks))
        already_done = sum(1 for t in tasks if self._progress.is_done(t.key))
        self._log(f"{len(tasks)} tareas en el batch")
        if already_done:
            self._log(f"Reanudando: {already_done} tareas ya completadas")

        called_executor = False

        for i, task in enumerate(tasks):
            current = i + 1
            label   = f"{task.canonical_id} ({task.language_pair})"

            if self._progress.is_done(task.key):
                logger.debug("Ya procesada, saltando: %s", label)
                summary.add(TaskResult(task=task, outcome=TaskOutcome.SKIPPED))
                continue

            if called_executor and self._pause_seconds > 0:
                self._sleep(self._pause_seconds)

            try:
                called_executor = True
                result = self._executor.execute(task)

            except QuotaExceededError as e:
                logger.error("Tope diario de tokens: %s", e)
                self._halt(summary, tasks[i:], TaskOutcome.CAPPED, e)
                self._log(
                    f"⚠ Batch detenido en tarea {current}/{len(tasks)}. "
                    f"Reejecutar cuando haya quota disponible."
                )
                break

            except ModelsUnavailableError as e:
                logger.error("Sin modelos disponibles: %s", e)
                self._halt(summary, tasks[i:], TaskOutcome.DEFERRED, e)
                self._log(
                    f"⚠ Batch detenido en tarea {current}/{len(tasks)}: {e}"
                )
                break

            except Exception as e:
                logger.warning("Error inesperado en %s: %s", label, e)
                result = TaskResult(
                    task    = task,
                    outcome = TaskOutcome.FAILED,
                    error   = f"{type(e).__name__}: {e}",
                )

            summary.add(result)
            self._log_result(current, len(tasks), label, result)

        if summary.clean:
            self._progress.clear()

        self._log(
            f"Batch terminado: {summary.succeeded} ok, {summary.failed} fallidas, "
            f"{summary.rejected} rechazadas, {summary.skipped} saltadas, "
            f"{summary.capped} topadas, {summary.deferred} aplazadas"
        )
        return summary

    def _halt(
        self,
        summary: BatchSummary,
        pending: list[TranslationTask],
        outcome: TaskOutcome,
        error:   Exception,
    ) -> None:
        """Cierra el resto del batch. Lo ya registrado en el progreso cuenta como saltado."""
        for task in pending:
            if self._progress.is_done(task.key):
                summary.add(TaskResult(task=task, outcome=TaskOutcome.SKIPPED))
            else:
                summary.add(TaskResult(task=task, outcome=outcome, error=str(error)))

    def _log_result(self, current: int, total: int, label: str, result: TaskResult) -> None:
        percent = int(current / total * 100)
        prefix  = f"{current}/{total} ({percent}%)"

        if result.outcome == TaskOutcome.SUCCEEDED:
            source = "caché" if result.from_cache else f"modelo: {result.model_used}"
            score  = result.validation.score if result.validation else "-"
            self._log(f"Traducido {prefix} {label} ({source}, score: {score})")
        elif result.outcome == TaskOutcome.REJECTED:
            self._log(f"⚠ Rechazado {prefix} {label}: {result.error}")
        else:
            self._log(f"⚠ Falló {prefix} {label}: {result.error}. Continuando")

    @staticmethod
    def _log(message: str) -> None:
        print(f"[canonlib] {message}")
