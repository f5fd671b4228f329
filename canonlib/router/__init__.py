from canonlib.router.router import Router, AllModelsExhaustedError, ModelsUnavailableError
from canonlib.router.base import BaseModel
from canonlib.router.models import ModelResponse, ModelConfig, TranslationPayload
from canonlib.router.prompt_builder import build_translate_prompt, build_user_message
from canonlib.router.response_parser import parse_translation_response
from canonlib.router.config_loader import load_model_configs

__all__ = [
    "Router",
    "AllModelsExhaustedError",
    "ModelsUnavailableError",
    "BaseModel",
    "ModelResponse",
    "ModelConfig",
    "TranslationPayload",
    "build_translate_prompt",
    "build_user_message",
    "parse_translation_response",
    "load_model_configs",
]
