# canonlib/errors.py


class CanonlibError(Exception):
    """Base de todos los errores propios del pipeline."""
    pass


class PlanningError(CanonlibError):
    """Una entrada del registry no se pudo planificar (origen ilegible, etc.)."""
    pass


class ResponseParseError(CanonlibError):
    """
    La respuesta del modelo no cumple el contrato JSON esperado.
    Fallo duro de la tarea: nunca se escribe una traducción parcial.
    """

    def __init__(self, message: str, raw_text: str = ""):
        super().__init__(message)
        self.raw_text = raw_text


class QuotaExceededError(CanonlibError):
    """
    Se alcanzó el tope diario de tokens.
    Es el único error que detiene el batch completo.
    """
    pass


class WriteError(CanonlibError):
    """No se pudo escribir (o verificar) el archivo traducido."""
    pass


class CommitError(CanonlibError):
    """El colaborador de commits (git) falló."""
    pass
