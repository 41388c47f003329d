"""
LECTIO - Observability Package

Tracing, metrics, and structured logging for import runs.

Components:
- tracing: OpenTelemetry spans per import stage
- metrics: counters and histograms for imports, retries and stages
- logging: structlog integration with trace context propagation

Usage:
    from observability import setup_observability

    setup_observability(get_config())
"""
from typing import TYPE_CHECKING

from .tracing import (
    setup_tracing,
    get_tracer,
    create_span,
    stage_span,
    shutdown_tracing,
)
from .metrics import (
    setup_metrics,
    get_lectio_metrics,
    LectioMetrics,
    record_import_outcome,
    record_store_retries,
    record_fuzzy_resolutions,
    timed_stage,
    shutdown_metrics,
)
from .logging import (
    setup_logging,
    get_logger,
    shutdown_logging,
    LogContext,
)

if TYPE_CHECKING:
    from config import Config


def setup_observability(config: "Config") -> None:
    """Initialize logging, tracing and metrics from one Config."""
    setup_logging(config.logging, service_name=config.observability.service_name)
    setup_tracing(config.observability)
    setup_metrics(config.observability)


def shutdown_observability() -> None:
    """Flush and shut down all observability components."""
    shutdown_tracing()
    shutdown_metrics()
    shutdown_logging()


__all__ = [
    "setup_observability",
    "shutdown_observability",
    "setup_tracing",
    "get_tracer",
    "create_span",
    "stage_span",
    "shutdown_tracing",
    "setup_metrics",
    "get_lectio_metrics",
    "LectioMetrics",
    "record_import_outcome",
    "record_store_retries",
    "record_fuzzy_resolutions",
    "timed_stage",
    "shutdown_metrics",
    "setup_logging",
    "get_logger",
    "shutdown_logging",
    "LogContext",
]
