# router/base.py
from abc import ABC, abstractmethod

from canonlib.router.models import ModelResponse


class BaseModel(ABC):
    """
    Contrato de los adaptadores. El Executor solo habla con el Router,
    y el Router solo con esta interfaz.
    """

    @abstractmethod
    def translate(self, document: str, system_prompt: str) -> ModelResponse:
        """
        Envía el documento y devuelve el texto crudo con el uso real de
        tokens. No parsea ni reintenta: los errores de red o rate limit
        suben tal cual y el Router decide el failover y el cooldown.
        """
        ...

    @property
    @abstractmethod
    def name(self) -> str:
        """Identificador del modelo. Es el que queda en el ledger."""
        ...
