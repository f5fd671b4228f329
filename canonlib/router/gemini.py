# router/gemini.py
import google.generativeai as genai

from canonlib.router.base import BaseModel
from canonlib.router.models import ModelConfig, ModelResponse

_DEFAULT_MODEL = "gemini-2.0-flash"


class GeminiAdapter(BaseModel):
    """
    El prompt de sistema cambia con cada par de idiomas, así que el
    GenerativeModel se crea por llamada con system_instruction.
    """

    def __init__(self, config: ModelConfig):
        self._config = config
        genai.configure(api_key=config.api_key)
        self._generation_config = genai.GenerationConfig(
            temperature        = config.temperature,
            max_output_tokens  = config.max_output_tokens,
            response_mime_type = "application/json",
        )

    @property
    def name(self) -> str:
        return self._config.name

    def translate(self, document: str, system_prompt: str) -> ModelResponse:
        model = genai.GenerativeModel(
            model_name         = self._config.model or _DEFAULT_MODEL,
            system_instruction = system_prompt,
            generation_config  = self._generation_config,
        )
        response = model.generate_content(
            document,
            request_options={"timeout": self._config.timeout_seconds},
        )

        usage = response.usage_metadata
        return ModelResponse(
            raw_text      = _response_text(response),
            model_used    = self.name,
            tokens_input  = usage.prompt_token_count,
            tokens_output = usage.candidates_token_count,
        )


def _response_text(response) -> str:
    # Respuesta bloqueada por filtros: es un error del contenido, no de red
    feedback = getattr(response, "prompt_feedback", None)
    if feedback is not None and getattr(feedback, "block_reason", None):
        raise ValueError(f"Gemini bloqueó el documento: {feedback.block_reason}")
    if not response.candidates:
        raise ValueError("Gemini devolvió una respuesta sin candidatos")
    return response.text
