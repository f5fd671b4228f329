# router/router.py
import logging
import time
from typing import Callable

import anthropic
import google.api_core.exceptions as google_ex

from canonlib.router.base import BaseModel
from canonlib.router.models import ModelResponse

logger = logging.getLogger(__name__)

DEFAULT_COOLDOWN_SECONDS = 300

# Errores del documento: fallarían igual en cualquier modelo
_CONTENT_ERRORS = (
    anthropic.BadRequestError,
    google_ex.InvalidArgument,
    ValueError,
)


class AllModelsExhaustedError(Exception):
    """Todos los modelos intentados en esta llamada fallaron por red o rate limit."""
    pass


class ModelsUnavailableError(AllModelsExhaustedError):
    """
    Todos los modelos siguen en cooldown: no se llegó a llamar a ninguno.
    Para el batch es una parada, no el fallo de una tarea concreta.
    """

    def __init__(self, retry_in: float):
        super().__init__(f"Todos los modelos en cooldown; reintentar en {retry_in:.0f}s")
        self.retry_in = retry_in


class Router:
    """
    Failover por prioridad entre adaptadores.

    El cooldown vive aquí y no en cada adaptador: un modelo que falla por
    red, timeout o rate limit queda fuera durante cooldown_seconds. Un
    error del contenido se propaga sin probar el siguiente modelo.
    """

    def __init__(
        self,
        models:           list[BaseModel],
        cooldown_seconds: float                 = DEFAULT_COOLDOWN_SECONDS,
        clock:            Callable[[], float]   = time.monotonic,
    ):
        # La lista ya viene ordenada por prioridad desde el config
        if not models:
            raise ValueError("El Router necesita al menos un modelo")
        self._models           = list(models)
        self._cooldown_seconds = cooldown_seconds
        self._clock            = clock
        self._ready_at: dict[str, float] = {}

    def translate(self, document: str, system_prompt: str) -> ModelResponse:
        """
        ModelsUnavailableError si no hay ningún modelo fuera de cooldown.
        AllModelsExhaustedError si se probaron todos y todos fallaron.
        """
        candidates = [m for m in self._models if self.is_ready(m.name)]
        if not candidates:
            raise ModelsUnavailableError(self.seconds_until_available())

        failures: list[str] = []
        for model in candidates:
            try:
                logger.debug("Traduciendo con %s", model.name)
                response = model.translate(document, system_prompt)
            except _CONTENT_ERRORS as e:
                logger.error("Error de contenido en %s, sin failover: %s", model.name, e)
                raise
            except Exception as e:
                self._cool_down(model.name, e)
                failures.append(f"{model.name}: {e}")
                continue

            logger.info(
                "Documento traducido con %s | tokens: %d+%d",
                model.name, response.tokens_input, response.tokens_output,
            )
            return response

        raise AllModelsExhaustedError("Fallaron todos los modelos: " + "; ".join(failures))

    def is_ready(self, name: str) -> bool:
        ready_at = self._ready_at.get(name)
        if ready_at is None:
            return True
        if self._clock() >= ready_at:
            del self._ready_at[name]
            return True
        return False

    def all_in_cooldown(self) -> bool:
        return not any(self.is_ready(m.name) for m in self._models)

    def seconds_until_available(self) -> float:
        """0 si algún modelo está listo ya."""
        now = self._clock()
        return min(max(0.0, self._ready_at.get(m.name, now) - now) for m in self._models)

    def available_models(self) -> list[str]:
        return [m.name for m in self._models if self.is_ready(m.name)]

    def _cool_down(self, name: str, error: Exception) -> None:
        self._ready_at[name] = self._clock() + self._cooldown_seconds
        logger.warning(
            "Modelo %s en cooldown %ds tras error: %s. Pasando al siguiente.",
            name, self._cooldown_seconds, error,
        )
