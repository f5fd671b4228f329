# content/token_estimator.py
from abc import ABC, abstractmethod


class TokenEstimator(ABC):
    @abstractmethod
    def estimate(self, text: str) -> int: ...


class SimpleTokenEstimator(TokenEstimator):
    """
    Estimación rápida sin dependencias externas.
    Solo sirve para consultar el tope diario antes de llamar al modelo;
    el ledger siempre registra los tokens reales que devuelve la API.
    """
    def estimate(self, text: str) -> int:
        # Palabras * 1.3 cubre bien inglés y alemán
        return int(len(text.split()) * 1.3)


def estimate_request_tokens(
    estimator:     TokenEstimator,
    system_prompt: str,
    document:      str,
    output_factor: float = 1.2,
) -> int:
    """Entrada (prompt + documento) más la salida esperada (~ tamaño del documento)."""
    input_tokens  = estimator.estimate(system_prompt) + estimator.estimate(document)
    output_tokens = int(estimator.estimate(document) * output_factor)
    return input_tokens + output_tokens
