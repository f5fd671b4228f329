# canonlib/config.py
import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG_FILE = Path("canonlib.yaml")

_PATH_FIELDS = {
    "content_root", "registry_path", "progress_path",
    "ledger_dir", "cache_dir", "overrides_path",
}


@dataclass
class PipelineConfig:
    """
    Configuración del pipeline. Las rutas son relativas al directorio
    de trabajo (la raíz del repo de contenido), igual que en CI.
    """
    content_root:       Path            = Path("src/content")
    registry_path:      Path            = Path("data/content-registry.json")
    progress_path:      Path            = Path(".translation-progress.json")
    ledger_dir:         Path            = Path("translation-metrics")
    cache_dir:          Path            = Path(".translation-cache")
    cache_backend:      str             = "files"      # files | sqlite
    overrides_path:     Path            = Path("translation-overrides.yaml")
    languages:          list[str]       = field(default_factory=lambda: ["en", "de"])
    collections:        list[str]       = field(default_factory=lambda: ["books", "projects", "lab", "life"])
    daily_token_cap:    int             = 2_000_000
    pause_seconds:      float           = 1.0
    quality_threshold:  float           = 70.0
    max_backups:        int             = 20
    commit:             bool            = True
    alerts:             str             = "github"     # github | log
    infer_language_from_path: bool      = True
    prompt_rules:       list[str]       = field(default_factory=list)

    def __post_init__(self):
        self.languages = [lang.strip().lower() for lang in self.languages if lang.strip()]
        if len(self.languages) < 2:
            raise ValueError("Se necesitan al menos dos idiomas soportados")
        if self.cache_backend not in ("files", "sqlite"):
            raise ValueError(f"cache_backend desconocido: {self.cache_backend}")
        if self.alerts not in ("github", "log"):
            raise ValueError(f"alerts desconocido: {self.alerts}")
        for name in _PATH_FIELDS:
            setattr(self, name, Path(getattr(self, name)))


def load_pipeline_config(config_path: Optional[str] = None) -> PipelineConfig:
    """
    Orden de búsqueda: argumento → CANONLIB_CONFIG_PATH → ./canonlib.yaml.
    Sin archivo se usan los defaults. Algunas claves aceptan override por entorno.
    """
    explicit = config_path or os.environ.get("CANONLIB_CONFIG_PATH")
    path     = Path(explicit) if explicit else _DEFAULT_CONFIG_FILE

    raw: dict = {}
    if path.exists():
        with path.open(encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
        if not isinstance(raw, dict):
            raise ValueError(f"Config inválida en {path}: se esperaba un mapping")
    elif explicit:
        raise FileNotFoundError(f"Config no encontrada en {path}")
    else:
        logger.debug("Sin %s, usando configuración por defecto", path)

    known   = {f.name for f in fields(PipelineConfig)}
    unknown = sorted(set(raw) - known)
    if unknown:
        logger.warning("Claves de config desconocidas ignoradas: %s", ", ".join(unknown))

    values = {key: value for key, value in raw.items() if key in known}
    _apply_env_overrides(values)
    return PipelineConfig(**values)


def _apply_env_overrides(values: dict) -> None:
    cap = os.environ.get("CANONLIB_DAILY_TOKEN_CAP")
    if cap:
        values["daily_token_cap"] = int(cap)

    threshold = os.environ.get("TRANSLATION_QUALITY_THRESHOLD")
    if threshold:
        values["quality_threshold"] = float(threshold)
