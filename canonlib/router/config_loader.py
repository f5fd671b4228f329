# router/config_loader.py
import logging
import os
import re
from pathlib import Path
from typing import Optional

import yaml

from canonlib.router.models import ModelConfig

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG_PATH = Path.home() / ".canonlib" / "models.yaml"

_ENV_REF_RE = re.compile(r"^\$\{\s*([A-Za-z_][A-Za-z0-9_]*)\s*\}$")


def load_model_configs(config_path: Optional[str] = None) -> list[ModelConfig]:
    """
    Lee la lista `models:` del YAML y la devuelve ordenada por prioridad.

    Ruta: argumento → CANONLIB_MODELS_PATH → ~/.canonlib/models.yaml.
    Los api_key con forma ${VAR} se resuelven desde el entorno; si la
    variable no existe el modelo queda sin clave y el factory lo omite.
    """
    path = Path(config_path or os.environ.get("CANONLIB_MODELS_PATH") or _DEFAULT_CONFIG_PATH)

    if not path.exists():
        raise FileNotFoundError(
            f"Config de modelos no encontrada en {path}. "
            f"Copia models.example.yaml a ~/.canonlib/models.yaml"
        )

    with path.open(encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    entries = raw.get("models", []) if isinstance(raw, dict) else None
    if not isinstance(entries, list):
        raise ValueError(f"{path}: 'models' debe ser una lista")

    configs = [_parse_entry(entry, index, path) for index, entry in enumerate(entries)]
    names   = [c.name for c in configs]
    if len(names) != len(set(names)):
        raise ValueError(f"{path}: nombres de modelo repetidos: {names}")

    return sorted(configs, key=lambda c: c.priority)


def _parse_entry(entry, index: int, path: Path) -> ModelConfig:
    if not isinstance(entry, dict) or not entry.get("name"):
        raise ValueError(f"{path}: el modelo #{index} no tiene 'name'")

    return ModelConfig(
        name              = str(entry["name"]),
        priority          = int(entry.get("priority", 99)),
        model             = entry.get("model"),
        api_key           = _resolve_env(entry.get("api_key")),
        timeout_seconds   = int(entry.get("timeout_seconds", 120)),
        temperature       = float(entry.get("temperature", 0.2)),
        max_output_tokens = int(entry.get("max_output_tokens", 8192)),
    )


def _resolve_env(value: Optional[str]) -> Optional[str]:
    """Expande ${VAR_NAME} desde el entorno. Cualquier otro valor pasa tal cual."""
    if not value:
        return None
    match = _ENV_REF_RE.match(str(value).strip())
    if not match:
        return value
    resolved = os.environ.get(match.group(1))
    if not resolved:
        logger.debug("Variable %s no definida", match.group(1))
    return resolved or None
