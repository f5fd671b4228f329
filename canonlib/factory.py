# canonlib/factory.py
from dataclasses import dataclass
from typing import Optional

from canonlib.config import PipelineConfig
from canonlib.content.scanner import ContentScanner
from canonlib.executor import TranslationExecutor
from canonlib.integrations.alerts import GitHubIssueReporter, IssueReporter, LogIssueReporter
from canonlib.integrations.committer import Committer, GitCommitter, NullCommitter
from canonlib.orchestrator import Orchestrator
from canonlib.overrides import TranslationOverrides
from canonlib.planner import TaskPlanner
from canonlib.router.claude import ClaudeAdapter
from canonlib.router.config_loader import load_model_configs
from canonlib.router.gemini import GeminiAdapter
from canonlib.router.router import Router
from canonlib.storage.cache import FileTranslationCache, SqliteTranslationCache, TranslationCache
from canonlib.storage.ledger import TokenLedger
from canonlib.storage.progress import ProgressTracker
from canonlib.storage.registry import ContentRegistry


@dataclass
class Pipeline:
    """Piezas ya ensambladas. El router solo existe si se va a traducir."""
    config:       PipelineConfig
    registry:     ContentRegistry
    scanner:      ContentScanner
    planner:      TaskPlanner
    ledger:       TokenLedger
    progress:     ProgressTracker
    orchestrator: Optional[Orchestrator]       = None
    cache:        Optional[TranslationCache]   = None

    def close(self) -> None:
        if self.cache is not None:
            self.cache.close()


def build_pipeline(
    config:       PipelineConfig,
    models_path:  Optional[str]    = None,
    router:       Optional[Router] = None,
    with_router:  bool             = False,
) -> Pipeline:
    """
    Ensambla el pipeline con todas sus dependencias.
    Punto de entrada único para el CLI y los tests de integración.

    with_router=False sirve para scan/plan/audit: no exige modelos configurados.
    """
    registry = ContentRegistry(config.registry_path, max_backups=config.max_backups).load()
    scanner  = ContentScanner(
        registry     = registry,
        content_root = config.content_root,
        languages    = config.languages,
        collections  = config.collections,
        infer_language_from_path = config.infer_language_from_path,
    )
    planner = TaskPlanner(
        registry     = registry,
        content_root = config.content_root,
        languages    = config.languages,
        overrides    = TranslationOverrides.load(config.overrides_path),
    )
    ledger   = TokenLedger(config.ledger_dir, daily_cap=config.daily_token_cap)
    progress = ProgressTracker(config.progress_path)

    pipeline = Pipeline(
        config   = config,
        registry = registry,
        scanner  = scanner,
        planner  = planner,
        ledger   = ledger,
        progress = progress,
    )

    if router is None and not with_router:
        return pipeline

    router = router or Router(_build_models(models_path))
    cache  = _build_cache(config)
    executor = TranslationExecutor(
        registry          = registry,
        content_root      = config.content_root,
        router            = router,
        ledger            = ledger,
        progress          = progress,
        cache             = cache,
        committer         = _build_committer(config),
        reporter          = _build_reporter(config),
        quality_threshold = config.quality_threshold,
        prompt_rules      = config.prompt_rules,
    )
    pipeline.cache        = cache
    pipeline.orchestrator = Orchestrator(
        executor      = executor,
        progress      = progress,
        pause_seconds = config.pause_seconds,
    )
    return pipeline


def _build_models(config_path: Optional[str]) -> list:
    """
    Carga el config y construye los adaptadores disponibles.
    Si un adaptador no tiene api_key configurada, lo omite.
    """
    configs  = load_model_configs(config_path)
    adapters = {
        "claude": ClaudeAdapter,
        "gemini": GeminiAdapter,
    }
    models = []

    for config in configs:
        adapter_class = adapters.get(config.name)
        if not adapter_class:
            print(f"[canonlib] ⚠ {config.name}: adaptador desconocido, omitiendo")
            continue
        if not config.api_key:
            print(f"[canonlib] ⚠ {config.name}: sin api_key, omitiendo")
            continue
        models.append(adapter_class(config))

    if not models:
        raise RuntimeError(
            "Ningún modelo configurado. "
            "Revisa ~/.canonlib/models.yaml y tus variables de entorno."
        )

    return models


def _build_cache(config: PipelineConfig) -> TranslationCache:
    if config.cache_backend == "sqlite":
        return SqliteTranslationCache(str(config.cache_dir / "cache.db"))
    return FileTranslationCache(config.cache_dir)


def _build_committer(config: PipelineConfig) -> Committer:
    return GitCommitter() if config.commit else NullCommitter()


def _build_reporter(config: PipelineConfig) -> IssueReporter:
    return GitHubIssueReporter() if config.alerts == "github" else LogIssueReporter()
