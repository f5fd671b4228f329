# router/claude.py
import logging

import anthropic

from canonlib.router.base import BaseModel
from canonlib.router.models import ModelConfig, ModelResponse

logger = logging.getLogger(__name__)

_DEFAULT_MODEL = "claude-haiku-4-5-20251001"


class ClaudeAdapter(BaseModel):

    def __init__(self, config: ModelConfig):
        self._config = config
        self._client = anthropic.Anthropic(
            api_key     = config.api_key,
            timeout     = config.timeout_seconds,
            max_retries = 0,   # el failover lo hace el Router
        )

    @property
    def name(self) -> str:
        return self._config.name

    def translate(self, document: str, system_prompt: str) -> ModelResponse:
        response = self._client.messages.create(
            model       = self._config.model or _DEFAULT_MODEL,
            max_tokens  = self._config.max_output_tokens,
            temperature = self._config.temperature,
            system      = system_prompt,
            messages    = [{"role": "user", "content": document}],
        )

        if response.stop_reason == "max_tokens":
            # El JSON llega cortado: el parser lo rechazará y la tarea fallará
            logger.warning(
                "Claude cortó la respuesta en max_tokens=%d", self._config.max_output_tokens,
            )

        raw_text = "".join(
            block.text for block in response.content if getattr(block, "type", "text") == "text"
        )

        return ModelResponse(
            raw_text      = raw_text,
            model_used    = self.name,
            tokens_input  = response.usage.input_tokens,
            tokens_output = response.usage.output_tokens,
        )
