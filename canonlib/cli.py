# canonlib/cli.py
import json
import logging
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

import click
from dotenv import load_dotenv

from canonlib.config import PipelineConfig, load_pipeline_config
from canonlib.content.document import read_document
from canonlib.factory import Pipeline, build_pipeline
from canonlib.orchestrator import BatchSummary
from canonlib.storage.models import TranslationTask
from canonlib.validator import validate as validate_translation


# Carga .env una sola vez, antes que cualquier otra cosa
load_dotenv()

_EXIT_OK       = 0
_EXIT_FAILED   = 1
_EXIT_CAPPED   = 2
_EXIT_DEFERRED = 3


# ------------------------------------------------------------------
# Grupo raíz
# ------------------------------------------------------------------

@click.group()
@click.version_option(package_name="canonlib")
@click.option(
    "--config", "-c", "config_path",
    type    = click.Path(dir_okay=False),
    default = None,
    help    = "Archivo de configuración YAML (por defecto ./canonlib.yaml)",
)
@click.option("--verbose", "-v", is_flag=True, help="Log detallado (DEBUG)")
@click.pass_context
def main(ctx: click.Context, config_path: Optional[str], verbose: bool):
    """
    canonlib: registro canónico de contenido multilingüe.

    Asigna identidad permanente a cada unidad de contenido, detecta
    traducciones faltantes o desactualizadas por hash y las genera con IA,
    validando su estructura antes de escribirlas.
    """
    logging.basicConfig(
        level  = logging.DEBUG if verbose else logging.WARNING,
        format = "%(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


# ------------------------------------------------------------------
# canonlib scan
# ------------------------------------------------------------------

@main.command()
@click.pass_context
def scan(ctx: click.Context):
    """Asigna IDs canónicos y registra el contenido en el registry."""
    pipeline = _build(ctx)
    result   = pipeline.scanner.scan()

    click.echo(f"[canonlib] Archivos con ID nuevo : {len(result.files_updated)}")
    click.echo(f"[canonlib] Originales nuevos     : {len(result.registered)}")
    click.echo(f"[canonlib] Registry actualizado  : {'sí' if result.registry_updated else 'no'}")
    _print_problems(result.errors, fg="yellow")


# ------------------------------------------------------------------
# canonlib plan
# ------------------------------------------------------------------

@main.command()
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="Guardar las tareas en un JSON")
@click.option("--no-scan", is_flag=True, help="No escanear antes de planificar")
@click.option("--lang", metavar="LANG", help="Solo tareas hacia este idioma")
@click.pass_context
def plan(ctx: click.Context, output: Optional[str], no_scan: bool, lang: Optional[str]):
    """Lista las traducciones faltantes o desactualizadas."""
    pipeline = _build(ctx)
    _validate_lang(pipeline.config, lang)

    if not no_scan:
        pipeline.scanner.scan()

    tasks   = pipeline.planner.plan(target_language=lang)
    payload = json.dumps([t.to_dict() for t in tasks], indent=2, ensure_ascii=False)

    if output:
        Path(output).write_text(payload + "\n", encoding="utf-8")
        click.echo(f"[canonlib] {len(tasks)} tareas guardadas en {output}")
    else:
        click.echo(payload)


# ------------------------------------------------------------------
# canonlib translate
# ------------------------------------------------------------------

@main.command()
@click.option(
    "--tasks", "tasks_file",
    type = click.Path(exists=True, dir_okay=False),
    help = "JSON generado por 'canonlib plan'. Sin él se escanea y planifica.",
)
@click.option("--limit", type=click.IntRange(min=1), help="Máximo de tareas a procesar")
@click.option("--lang", metavar="LANG", help="Solo tareas hacia este idioma")
@click.option(
    "--models", "models_path",
    type = click.Path(dir_okay=False),
    help = "Config de modelos (por defecto ~/.canonlib/models.yaml)",
)
@click.pass_context
def translate(
    ctx:         click.Context,
    tasks_file:  Optional[str],
    limit:       Optional[int],
    lang:        Optional[str],
    models_path: Optional[str],
):
    """Genera las traducciones pendientes, una a una."""

    # ── Ensamblar pipeline ────────────────────────────────────────
    try:
        pipeline = _build(ctx, models_path=models_path, with_router=True)
    except FileNotFoundError as e:
        _abort(str(e))
    except RuntimeError as e:
        _abort(str(e))

    _validate_lang(pipeline.config, lang)

    # ── Obtener tareas ────────────────────────────────────────────
    if tasks_file:
        tasks = _load_tasks(tasks_file)
        if lang:
            tasks = [t for t in tasks if t.target_language == lang]
    else:
        pipeline.scanner.scan()
        tasks = pipeline.planner.plan(target_language=lang)

    if limit:
        tasks = tasks[:limit]

    # ── Ejecutar ──────────────────────────────────────────────────
    try:
        summary = pipeline.orchestrator.run(tasks)

    except KeyboardInterrupt:
        click.echo(
            "\n[canonlib] Proceso interrumpido. "
            "Ejecuta el mismo comando para reanudarlo desde donde quedó."
        )
        sys.exit(_EXIT_OK)

    except Exception as e:
        _error(f"Error inesperado: {type(e).__name__}: {e}")
        sys.exit(_EXIT_FAILED)

    finally:
        pipeline.close()

    # ── Resumen final ─────────────────────────────────────────────
    _print_summary(summary)
    sys.exit(_exit_code(summary))


# ------------------------------------------------------------------
# canonlib validate
# ------------------------------------------------------------------

@main.command()
@click.argument("source", type=click.Path(exists=True, dir_okay=False))
@click.argument("translated", type=click.Path(exists=True, dir_okay=False))
def validate(source: str, translated: str):
    """Compara la estructura de una traducción con su original."""
    try:
        source_body     = read_document(Path(source)).body
        translated_body = read_document(Path(translated)).body
    except ValueError as e:
        _abort(str(e))

    result = validate_translation(source_body, translated_body)
    color  = "red" if result.reject else "green"

    click.echo(click.style(f"[canonlib] Score: {result.score}/100", fg=color))
    for issue in result.issues:
        click.echo(f"[canonlib]   - {issue}")
    click.echo(f"[canonlib] Veredicto: {'rechazada' if result.reject else 'aceptada'}")

    if result.reject:
        sys.exit(_EXIT_FAILED)


# ------------------------------------------------------------------
# canonlib audit / reconcile / usage
# ------------------------------------------------------------------

@main.command()
@click.pass_context
def audit(ctx: click.Context):
    """Verifica la consistencia del registry contra el disco."""
    pipeline = _build(ctx)
    result   = pipeline.scanner.audit()

    for key, value in result.stats.items():
        click.echo(f"[canonlib]   {key:<13}: {value}")
    _print_problems(result.errors, fg="red")
    _print_problems(result.warnings, fg="yellow")

    if result.valid:
        click.echo(click.style("[canonlib] ✓ Registry consistente", fg="green"))
    else:
        sys.exit(_EXIT_FAILED)


@main.command()
@click.option("--dry-run", is_flag=True, help="Mostrar cambios sin aplicarlos")
@click.pass_context
def reconcile(ctx: click.Context, dry_run: bool):
    """Quita entradas sin origen y marca traducciones borradas como missing."""
    pipeline = _build(ctx)
    result   = pipeline.scanner.reconcile(dry_run=dry_run)
    prefix   = "[canonlib] (dry-run)" if dry_run else "[canonlib]"

    for canonical_id in result.removed:
        click.echo(f"{prefix} Entrada eliminada: {canonical_id}")
    for item in result.marked_missing:
        click.echo(f"{prefix} Traducción missing: {item}")
    if not result.changed:
        click.echo("[canonlib] Nada que reconciliar")


@main.command()
@click.option("--date", "day", metavar="YYYY-MM-DD", help="Día a reportar (por defecto hoy, UTC)")
@click.option(
    "--days",
    type=click.IntRange(min=1),
    default=1,
    show_default=True,
    help="Días hacia atrás desde --date; con más de uno se imprime el resumen por día",
)
@click.pass_context
def usage(ctx: click.Context, day: Optional[str], days: int):
    """Reporte markdown del consumo de tokens de un día, o resumen de varios."""
    pipeline = _build(ctx)
    ledger   = pipeline.ledger
    try:
        if days == 1:
            click.echo(ledger.create_report(ledger.load(day)))
            return
        if day:
            end = datetime.strptime(day, "%Y-%m-%d").date()
        else:
            end = datetime.now(timezone.utc).date()
        history = ledger.summary(end - timedelta(days=days - 1), end)
    except ValueError as e:
        _abort(f"Fecha inválida: {e}")

    for daily in history:
        cap = " (tope alcanzado)" if daily.cap_reached else ""
        click.echo(
            f"[canonlib] {daily.date}: {daily.total_tokens:,} tokens, "
            f"{daily.total_operations} operaciones{cap}"
        )
    click.echo(f"[canonlib] Total: {sum(d.total_tokens for d in history):,} tokens")


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _build(ctx: click.Context, **kwargs) -> Pipeline:
    try:
        config = load_pipeline_config(ctx.obj.get("config_path"))
    except (FileNotFoundError, ValueError) as e:
        _abort(str(e))
    return build_pipeline(config, **kwargs)


def _validate_lang(config: PipelineConfig, lang: Optional[str]) -> None:
    if lang and lang not in config.languages:
        _abort(
            f"Idioma no soportado: '{lang}'\n"
            f"Idiomas disponibles: {', '.join(config.languages)}"
        )


def _load_tasks(path: str) -> list[TranslationTask]:
    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
        return [TranslationTask.from_dict(item) for item in raw]
    except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
        _abort(f"Archivo de tareas inválido {path}: {e}")


def _exit_code(summary: BatchSummary) -> int:
    if summary.capped:
        return _EXIT_CAPPED
    if summary.deferred:
        return _EXIT_DEFERRED
    if summary.failed or summary.rejected:
        return _EXIT_FAILED
    return _EXIT_OK


def _print_summary(summary: BatchSummary) -> None:
    """Imprime el resumen final del batch."""
    click.echo("")
    click.echo("─" * 50)
    if summary.capped:
        click.echo("[canonlib] ⚠ Batch detenido por tope diario de tokens")
    elif summary.deferred:
        click.echo("[canonlib] ⚠ Batch detenido: modelos no disponibles")
    else:
        click.echo("[canonlib] ✓ Batch completado")
    click.echo(f"[canonlib]   Total tareas : {summary.total}")
    click.echo(f"[canonlib]   Traducidas   : {summary.succeeded}")
    click.echo(f"[canonlib]   Ya hechas    : {summary.skipped}")

    if summary.failed:
        click.echo(click.style(f"[canonlib]   Fallidas     : {summary.failed}", fg="red"))
    if summary.rejected:
        click.echo(
            click.style(
                f"[canonlib]   Rechazadas   : {summary.rejected} (requieren revisión)",
                fg="yellow",
            )
        )
    if summary.capped:
        click.echo(f"[canonlib]   Pendientes   : {summary.capped}")
    if summary.deferred:
        click.echo(f"[canonlib]   Aplazadas    : {summary.deferred}")

    click.echo(f"[canonlib]   Tokens       : {summary.tokens_used}")
    click.echo("─" * 50)


def _print_problems(problems: list[str], fg: str) -> None:
    for problem in problems:
        click.echo(click.style(f"[canonlib]   ⚠ {problem}", fg=fg))


def _abort(message: str) -> None:
    """Error de validación: culpa del usuario."""
    click.echo(click.style(f"[canonlib] Error: {message}", fg="red"), err=True)
    sys.exit(_EXIT_FAILED)


def _error(message: str) -> None:
    """Error de sistema: no es culpa del usuario."""
    click.echo(click.style(f"[canonlib] {message}", fg="red"), err=True)
