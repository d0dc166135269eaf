"""Build a ready-to-use FileRouter from configuration."""

from loguru import logger

from filerouter.config.schema import Config
from filerouter.providers.litellm_provider import LiteLLMProvider
from filerouter.router.arbiter import FileRouter
from filerouter.router.classifier import ClassifierAdapter, LLMContentClassifier
from filerouter.router.learned import LearnedPatternStore
from filerouter.router.records import RoutingRecordLog
from filerouter.router.registry import StaticProjectRegistry
from filerouter.storage.base import KeyValueStore
from filerouter.storage.memory import MemoryKeyValueStore
from filerouter.storage.sqlite_store import SQLiteKeyValueStore


def create_stores(config: Config) -> tuple[KeyValueStore, KeyValueStore]:
    """Create the (patterns, records) backends; they are independent stores."""
    backend = config.storage.backend.lower()
    if backend == "memory":
        return MemoryKeyValueStore(), MemoryKeyValueStore()
    if backend == "sqlite":
        db_file = config.storage.db_file
        return (
            SQLiteKeyValueStore(db_file, table="learned_patterns"),
            SQLiteKeyValueStore(db_file, table="routing_records"),
        )
    raise ValueError(f"Unknown storage backend: {config.storage.backend!r}")


def create_classifier(config: Config) -> ClassifierAdapter | None:
    """Build the classifier adapter, or None when the classifier is disabled."""
    settings = config.classifier
    if not settings.enabled:
        return None
    provider = LiteLLMProvider(
        api_key=settings.api_key or None,
        api_base=settings.api_base,
        default_model=settings.model,
    )
    classifier = LLMContentClassifier(
        provider,
        model=settings.model,
        secondary_model=settings.secondary_model,
        max_preview_chars=settings.max_preview_chars,
        max_preview_bytes=settings.max_preview_bytes,
    )
    return ClassifierAdapter(classifier, timeout_ms=settings.timeout_ms)


def create_router(config: Config) -> FileRouter:
    """Wire stores, signals and thresholds into a FileRouter."""
    pattern_kv, record_kv = create_stores(config)
    patterns = LearnedPatternStore(
        pattern_kv,
        base_confidence=config.learning.base_confidence,
        max_confidence=config.learning.max_confidence,
        growth=config.learning.growth,
    )
    records = RoutingRecordLog(record_kv, patterns)
    classifier = create_classifier(config)

    logger.debug(
        f"Router created (storage={config.storage.backend}, "
        f"classifier={'on' if classifier else 'off'})"
    )
    return FileRouter(
        patterns=patterns,
        records=records,
        classifier=classifier,
        registry=StaticProjectRegistry(config.projects),
        short_circuit_threshold=config.learning.short_circuit_threshold,
        sufficient_confidence=config.rules.sufficient_confidence,
        min_confidence=config.fallback.min_confidence,
        fallback_confidence=config.fallback.confidence,
    )
