"""
LECTIO - Configuration

Centralized configuration management for the import engine.
Uses environment variables with sensible defaults.
"""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Any, Optional
from enum import Enum
import logging

from dotenv import load_dotenv

from core.errors import ConfigError

# Load environment variables from .env file
load_dotenv()


class Environment(Enum):
    """Deployment environments."""
    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"


def _optional_path(name: str) -> Optional[Path]:
    value = os.getenv(name, "")
    return Path(value) if value else None


@dataclass
class DatabaseConfig:
    """Store configuration."""
    url: str = field(default_factory=lambda: os.getenv("LECTIO_DATABASE_URL", "sqlite:///./lectio.db"))
    pool_size: int = field(default_factory=lambda: int(os.getenv("LECTIO_DB_POOL_SIZE", "5")))
    max_overflow: int = field(default_factory=lambda: int(os.getenv("LECTIO_DB_MAX_OVERFLOW", "10")))
    # Upper bound for every connect/statement wait, in seconds
    timeout: int = field(default_factory=lambda: int(os.getenv("LECTIO_DB_TIMEOUT", "30")))
    echo: bool = field(default_factory=lambda: os.getenv("LECTIO_DB_ECHO", "false").lower() == "true")

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")


@dataclass
class ImportConfig:
    """Import run configuration."""
    batch_size: int = field(default_factory=lambda: int(os.getenv("LECTIO_IMPORT_BATCH_SIZE", "500")))

    # Store retry policy
    max_attempts: int = field(default_factory=lambda: int(os.getenv("LECTIO_RETRY_MAX_ATTEMPTS", "5")))
    retry_base_delay: float = field(default_factory=lambda: float(os.getenv("LECTIO_RETRY_BASE_DELAY", "0.5")))
    retry_max_delay: float = field(default_factory=lambda: float(os.getenv("LECTIO_RETRY_MAX_DELAY", "30")))
    retry_jitter: bool = field(default_factory=lambda: os.getenv("LECTIO_RETRY_JITTER", "true").lower() == "true")

    # Reconciliation thresholds
    fuzzy_threshold: float = field(default_factory=lambda: float(os.getenv("LECTIO_FUZZY_THRESHOLD", "0.82")))
    verse_count_tolerance: int = field(default_factory=lambda: int(os.getenv("LECTIO_VERSE_TOLERANCE", "0")))

    # Concurrency
    writer_lock_timeout: float = field(default_factory=lambda: float(os.getenv("LECTIO_WRITER_LOCK_TIMEOUT", "60")))
    max_parallel_versions: int = field(default_factory=lambda: int(os.getenv("LECTIO_MAX_PARALLEL_VERSIONS", "2")))

    # Curated data files
    canon_file: Optional[Path] = field(default_factory=lambda: _optional_path("LECTIO_CANON_FILE"))
    alias_file: Optional[Path] = field(default_factory=lambda: _optional_path("LECTIO_ALIAS_FILE"))
    baseline_file: Optional[Path] = field(default_factory=lambda: _optional_path("LECTIO_BASELINE_FILE"))

    def validate(self) -> None:
        """Reject values the pipeline cannot honour."""
        if self.batch_size < 1:
            raise ConfigError("batch_size must be >= 1", config_key="LECTIO_IMPORT_BATCH_SIZE",
                              expected_type=int, actual_value=self.batch_size)
        if self.max_attempts < 1:
            raise ConfigError("max_attempts must be >= 1", config_key="LECTIO_RETRY_MAX_ATTEMPTS",
                              expected_type=int, actual_value=self.max_attempts)
        if not 0.0 < self.fuzzy_threshold <= 1.0:
            raise ConfigError("fuzzy_threshold must be in (0, 1]", config_key="LECTIO_FUZZY_THRESHOLD",
                              expected_type=float, actual_value=self.fuzzy_threshold)
        if self.verse_count_tolerance < 0:
            raise ConfigError("verse_count_tolerance must be >= 0", config_key="LECTIO_VERSE_TOLERANCE",
                              expected_type=int, actual_value=self.verse_count_tolerance)
        if self.max_parallel_versions < 1:
            raise ConfigError("max_parallel_versions must be >= 1",
                              config_key="LECTIO_MAX_PARALLEL_VERSIONS",
                              expected_type=int, actual_value=self.max_parallel_versions)


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    json_format: bool = field(default_factory=lambda: os.getenv("LOG_FORMAT", "console").lower() == "json")
    log_dir: Path = field(default_factory=lambda: Path(os.getenv("LOG_DIR", "./logs")))
    log_to_file: bool = field(default_factory=lambda: os.getenv("LOG_TO_FILE", "false").lower() == "true")


@dataclass
class ObservabilityConfig:
    """OpenTelemetry configuration."""
    enabled: bool = field(
        default_factory=lambda: os.getenv("OTEL_ENABLED", "false").lower() == "true"
    )
    service_name: str = field(
        default_factory=lambda: os.getenv("OTEL_SERVICE_NAME", "lectio")
    )
    otlp_endpoint: str = field(
        default_factory=lambda: os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "")
    )
    console_export: bool = field(
        default_factory=lambda: os.getenv("OTEL_CONSOLE_EXPORT", "false").lower() == "true"
    )


@dataclass
class Config:
    """Main configuration class combining all sub-configs."""
    env: Environment = field(default_factory=lambda: Environment(os.getenv("ENVIRONMENT", "development")))
    debug: bool = field(default_factory=lambda: os.getenv("DEBUG", "false").lower() == "true")

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    imports: ImportConfig = field(default_factory=ImportConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    def __post_init__(self):
        self.imports.validate()

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.env == Environment.PRODUCTION

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary (excluding sensitive values)."""
        return {
            "env": self.env.value,
            "debug": self.debug,
            "database": {
                "dialect": self.database.url.split(":", 1)[0],
                "pool_size": self.database.pool_size,
                "timeout": self.database.timeout,
            },
            "imports": {
                "batch_size": self.imports.batch_size,
                "max_attempts": self.imports.max_attempts,
                "fuzzy_threshold": self.imports.fuzzy_threshold,
                "verse_count_tolerance": self.imports.verse_count_tolerance,
                "max_parallel_versions": self.imports.max_parallel_versions,
            },
            "logging": {
                "level": self.logging.level,
                "json": self.logging.json_format,
            },
        }


# Singleton configuration instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create configuration singleton."""
    global _config
    if _config is None:
        try:
            _config = Config()
        except ValueError as e:
            raise ConfigError(f"Invalid configuration value: {e}", cause=e) from e
    return _config


def reload_config() -> Config:
    """Reload configuration from environment."""
    global _config
    load_dotenv(override=True)
    _config = None
    return get_config()


logging.getLogger("lectio").addHandler(logging.NullHandler())
