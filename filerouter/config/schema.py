"""Configuration schema using Pydantic."""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel
from pydantic_settings import BaseSettings, SettingsConfigDict


class Base(BaseModel):
    """Base model that accepts both camelCase and snake_case keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LearningConfig(Base):
    """Learned pattern confidence curve."""
    short_circuit_threshold: float = Field(0.9, ge=0.0, le=1.0)  # Learned hits above this skip other signals
    base_confidence: float = Field(0.92, ge=0.0, lt=1.0)  # Pattern confirmed once
    max_confidence: float = Field(0.99, ge=0.0, lt=1.0)  # Never 1.0: a human can always override
    growth: float = Field(0.5, gt=0.0, le=1.0)  # Share of the remaining gap closed per confirmation

    @model_validator(mode="after")
    def _check_curve(self) -> "LearningConfig":
        if self.base_confidence > self.max_confidence:
            raise ValueError("baseConfidence must not exceed maxConfidence")
        # A pattern confirmed once must already short-circuit
        if self.base_confidence <= self.short_circuit_threshold:
            raise ValueError("baseConfidence must be above shortCircuitThreshold")
        return self


class RulesConfig(Base):
    """Static rule matcher configuration."""
    sufficient_confidence: float = Field(0.75, ge=0.0, le=1.0)  # Below this the classifier is consulted


class ClassifierConfig(Base):
    """Configuration for the LLM content classifier."""
    enabled: bool = False
    model: str = "anthropic/claude-sonnet-4-20250514"
    api_key: str = ""
    api_base: str | None = None
    timeout_ms: int = Field(15000, gt=0)
    # Optional secondary model to use if the primary model fails
    secondary_model: str | None = None
    max_preview_chars: int = 500
    max_preview_bytes: int = 10000  # Only smaller textual files get a content preview


class FallbackConfig(Base):
    """Minimum-confidence fallback bucket."""
    min_confidence: float = Field(0.2, ge=0.0, le=1.0)  # Candidates below this are discarded
    confidence: float = Field(0.1, ge=0.0, le=1.0)  # Confidence reported for the fallback folder

    @model_validator(mode="after")
    def _check_order(self) -> "FallbackConfig":
        if self.confidence > self.min_confidence:
            raise ValueError("fallback confidence must not exceed minConfidence")
        return self


class StorageConfig(Base):
    """Persistence backend for learned patterns and routing records."""
    backend: str = "sqlite"  # "sqlite" or "memory"
    db_path: str = "~/.filerouter/routing.db"

    @property
    def db_file(self) -> Path:
        return Path(self.db_path).expanduser()


class LoggingConfig(Base):
    """Logging sinks."""
    level: str = "INFO"  # Console sink
    log_file: str | None = None  # Defaults to ~/.filerouter/filerouter.log
    file_level: str = "DEBUG"
    rotation: str = "10 MB"
    retention: str = "1 week"
    verbose: bool = False

    @property
    def log_path(self) -> Path:
        return Path(self.log_file or "~/.filerouter/filerouter.log").expanduser()


class Config(BaseSettings):
    """Root configuration for filerouter."""
    learning: LearningConfig = Field(default_factory=LearningConfig)
    rules: RulesConfig = Field(default_factory=RulesConfig)
    classifier: ClassifierConfig = Field(default_factory=ClassifierConfig)
    fallback: FallbackConfig = Field(default_factory=FallbackConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    projects: dict[str, str] = Field(default_factory=dict)  # project id -> template id

    model_config = SettingsConfigDict(
        env_prefix="FILEROUTER_",
        env_nested_delimiter="__",
        populate_by_name=True,
    )
