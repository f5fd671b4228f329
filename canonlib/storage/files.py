# storage/files.py
import json
import logging
import os
import shutil
import tempfile
import time
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)


def read_json(path: Path) -> Optional[Any]:
    """
    Lee un documento JSON. Devuelve None si no existe o no se puede parsear.
    El caller decide con qué estado vacío arrancar.
    """
    path = Path(path)
    if not path.exists():
        return None
    try:
        with path.open(encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.warning("No se pudo leer %s, se ignora: %s", path, e)
        return None


def write_json_atomic(path: Path, data: Any) -> None:
    """
    Escribe en un temporal del mismo directorio y hace os.replace.
    Un crash a mitad de escritura nunca deja el archivo truncado.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
            f.write("\n")
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def backup_file(path: Path, timestamped: bool = True) -> Optional[Path]:
    """
    Copia el estado previo antes de sobrescribir.
    timestamped=True → <archivo>.backup.<ms>; False → <archivo>.bak único.
    """
    path = Path(path)
    if not path.exists():
        return None

    if timestamped:
        backup_path = path.with_name(f"{path.name}.backup.{int(time.time() * 1000)}")
        # Dos saves en el mismo milisegundo no deben pisarse
        suffix = 1
        while backup_path.exists():
            backup_path = path.with_name(f"{path.name}.backup.{int(time.time() * 1000)}-{suffix}")
            suffix += 1
    else:
        backup_path = path.with_name(f"{path.name}.bak")

    shutil.copy2(path, backup_path)
    return backup_path


def prune_backups(path: Path, keep: int) -> list[Path]:
    """Borra los backups timestamped más antiguos, conserva los `keep` últimos."""
    path    = Path(path)
    backups = sorted(
        path.parent.glob(f"{path.name}.backup.*"),
        key=lambda p: (p.stat().st_mtime_ns, p.name),
    )
    if keep <= 0 or len(backups) <= keep:
        return []

    removed = backups[: len(backups) - keep]
    for old in removed:
        old.unlink(missing_ok=True)
    return removed
