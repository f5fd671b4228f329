# router/response_parser.py
import json
import logging
import re
from numbers import Real
from typing import Optional

from canonlib.errors import ResponseParseError
from canonlib.router.models import TranslationPayload

logger = logging.getLogger(__name__)

# Captura JSON dentro de bloques ```json ... ``` o ``` ... ```
_MARKDOWN_JSON_RE = re.compile(
    r"```(?:json)?\s*(\{.*\})\s*```",
    re.DOTALL,
)

# Primer objeto JSON que aparezca en el texto
_BARE_JSON_RE = re.compile(r"\{.*\}", re.DOTALL)


def parse_translation_response(raw_text: str, model_name: str) -> TranslationPayload:
    """
    Localiza el objeto JSON de la respuesta y valida su esquema.

    Localización (tolerante):
    1. JSON directo (el camino feliz)
    2. JSON dentro de bloque markdown
    3. Primer objeto JSON en el texto libre

    Validación (estricta): si el objeto no cumple el esquema se lanza
    ResponseParseError. No hay recuperación de emergencia: una respuesta
    que no se entiende nunca se escribe como traducción.
    """
    text = raw_text.strip()
    if not text:
        raise ResponseParseError(f"{model_name} devolvió una respuesta vacía", raw_text)

    data = _try_parse(text)

    if data is None:
        match = _MARKDOWN_JSON_RE.search(text)
        if match:
            data = _try_parse(match.group(1))
            if data is not None:
                logger.warning(
                    "%s envolvió la respuesta en markdown: considera reforzar el prompt",
                    model_name,
                )

    if data is None:
        match = _BARE_JSON_RE.search(text)
        if match:
            data = _try_parse(match.group(0))
            if data is not None:
                logger.warning("%s devolvió JSON con texto extra alrededor", model_name)

    if data is None:
        raise ResponseParseError(
            f"{model_name} devolvió una respuesta sin objeto JSON parseable",
            raw_text,
        )

    try:
        return payload_from_dict(data)
    except ResponseParseError as e:
        e.raw_text = raw_text
        raise


def payload_from_dict(data: dict) -> TranslationPayload:
    """
    Valida el esquema {translated_markdown, translated_title?, ai_tldr?,
    ai_textscore?, review_issues?}. También se usa al leer de la caché.
    """
    errors: list[str] = []

    translated = data.get("translated_markdown")
    if not isinstance(translated, str) or not translated.strip():
        errors.append("translated_markdown ausente o no es texto")

    title = data.get("translated_title")
    if title is not None and not isinstance(title, str):
        errors.append("translated_title debe ser texto")

    summary = data.get("ai_tldr")
    if summary is not None and not isinstance(summary, str):
        errors.append("ai_tldr debe ser texto")

    textscore = data.get("ai_textscore")
    if textscore is None:
        textscore = {}
    elif not isinstance(textscore, dict):
        errors.append("ai_textscore debe ser un objeto")
        textscore = {}

    quality = _score(textscore.get("translationQuality"), "translationQuality", errors)
    clarity = _score(textscore.get("originalClarity"), "originalClarity", errors)

    notes = textscore.get("notes", [])
    if not isinstance(notes, list):
        errors.append("ai_textscore.notes debe ser una lista")
        notes = []

    review_issues = data.get("review_issues")
    if review_issues is None:
        review_issues = []
    elif not isinstance(review_issues, list) or not all(isinstance(i, dict) for i in review_issues):
        errors.append("review_issues debe ser una lista de objetos")
        review_issues = []

    if errors:
        raise ResponseParseError("Respuesta fuera de esquema: " + "; ".join(errors))

    return TranslationPayload(
        translated_markdown = translated,
        translated_title    = title.strip() if title and title.strip() else None,
        summary             = summary.strip() if summary and summary.strip() else None,
        translation_quality = quality,
        original_clarity    = clarity,
        score_notes         = [str(n) for n in notes],
        review_issues       = review_issues,
    )


def _try_parse(text: str) -> Optional[dict]:
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return None
    return data if isinstance(data, dict) else None


def _score(value, field_name: str, errors: list[str]) -> Optional[float]:
    """Puntaje 0-100 o None. Fuera de rango se clampea."""
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, Real):
        errors.append(f"ai_textscore.{field_name} debe ser numérico")
        return None
    return max(0.0, min(100.0, float(value)))
