# router/models.py
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class ModelResponse:
    """Respuesta cruda del modelo + uso real de tokens. El parseo es posterior."""
    raw_text:      str
    model_used:    str
    tokens_input:  int
    tokens_output: int

    @property
    def total_tokens(self) -> int:
        return self.tokens_input + self.tokens_output


@dataclass
class ModelConfig:
    """
    Configuración de un modelo individual.
    Se carga desde ~/.canonlib/models.yaml.
    """
    name:              str
    priority:          int
    model:             Optional[str] = None   # id del modelo en el proveedor
    api_key:           Optional[str] = None
    timeout_seconds:   int = 120
    temperature:       float = 0.2
    max_output_tokens: int = 8192


@dataclass
class TranslationPayload:
    """
    Contenido validado de la respuesta del modelo.
    Los puntajes de calidad son autoevaluaciones (0-100), no verdad.
    """
    translated_markdown: str
    translated_title:    Optional[str]  = None
    summary:             Optional[str]  = None
    translation_quality: Optional[float] = None
    original_clarity:    Optional[float] = None
    score_notes:         list[str]      = field(default_factory=list)
    review_issues:       list[dict]     = field(default_factory=list)

    def to_dict(self) -> dict:
        """Mismo esquema que devuelve el modelo: así se guarda en caché."""
        textscore: dict = {"notes": list(self.score_notes)}
        if self.translation_quality is not None:
            textscore["translationQuality"] = self.translation_quality
        if self.original_clarity is not None:
            textscore["originalClarity"] = self.original_clarity

        data: dict = {
            "translated_markdown": self.translated_markdown,
            "ai_textscore":        textscore,
            "review_issues":       [dict(issue) for issue in self.review_issues],
        }
        if self.translated_title:
            data["translated_title"] = self.translated_title
        if self.summary:
            data["ai_tldr"] = self.summary
        return data
