# router/prompt_builder.py
from typing import Optional


_TRANSLATE_SYSTEM = """\
    Eres un traductor técnico preciso.
    Recibirás un documento markdown/MDX en {source_lang} y debes traducirlo a {target_lang}.

    --- REGLAS OBLIGATORIAS ---
    1. Traduce SOLO el texto legible por humanos.
    2. NUNCA traduzcas: sentencias import, etiquetas de componentes, bloques de código,
       URLs, términos técnicos ni listas de tags.
    3. Conserva EXACTAMENTE la estructura markdown: encabezados, listas, énfasis,
       párrafos y saltos de línea.
    4. Los placeholders con forma __PRESERVED_N__ son tokens opacos: cópialos
       exactamente igual, en la misma posición. No los traduzcas, no los
       modifiques, no los elimines, no inventes nuevos.
    5. La primera línea del documento es "TITLE: ...": traduce ese título aparte
       en "translated_title" y NO lo incluyas en "translated_markdown".
    6. Escribe un resumen de 3-4 frases en {target_lang} ("ai_tldr").
    7. Evalúa la calidad de tu traducción (0-100) y la claridad del original (0-100).
    8. Señala en "review_issues" los fragmentos problemáticos.

    --- FORMATO DE SALIDA (ESTRICTO) ---
    Devuelve EXACTAMENTE 1 objeto JSON válido y nada más.
    El primer carácter debe ser "{{" y el último "}}".
    No uses markdown. No uses ```json. No añadas comentarios ni texto extra.

    Estructura exacta:
    {{
      "translated_title": "Título traducido",
      "translated_markdown": "...documento completo con los placeholders intactos...",
      "ai_tldr": "...resumen de 3-4 frases...",
      "ai_textscore": {{
        "translationQuality": 0,
        "originalClarity": 0,
        "notes": []
      }},
      "review_issues": [
        {{"section": "...", "issue": "...", "suggestion": "..."}}
      ]
    }}
    {extra_rules}"""

_TITLE_PREFIX  = "TITLE: "
_NO_EXTRA      = ""


def build_translate_prompt(
    source_lang: str,
    target_lang: str,
    extra_rules: Optional[list[str]] = None,
) -> str:
    """
    Construye el system prompt con el contrato de instrucciones fijo.

    El documento NO va aquí: viaja como mensaje de usuario.
    Esto mantiene separadas las instrucciones del contenido.
    """
    return _TRANSLATE_SYSTEM.format(
        source_lang = source_lang,
        target_lang = target_lang,
        extra_rules = _format_extra_rules(extra_rules),
    )


def build_user_message(title: str, translatable_text: str) -> str:
    """Documento fuente tal como lo recibe el modelo."""
    return f"{_TITLE_PREFIX}{title}\n\n{translatable_text}"


def _format_extra_rules(rules: Optional[list[str]]) -> str:
    if not rules:
        return _NO_EXTRA
    lines = "\n".join(f"    - {rule}" for rule in rules)
    return f"\n    --- REGLAS ADICIONALES ---\n{lines}\n"
