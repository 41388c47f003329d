"""
LECTIO - Tracing with OpenTelemetry

Every import stage runs in a span named ``import.<stage>`` carrying the
version code; store retries open ``retry.<operation>`` child spans.

Library code obtains tracers through the OpenTelemetry API, so spans are
no-ops until ``setup_tracing()`` installs an SDK provider.

Usage:
    from observability.tracing import setup_tracing, stage_span

    setup_tracing(ObservabilityConfig(enabled=True, console_export=True))

    with stage_span("parsing", "KJV") as span:
        span.set_attribute("verses", 31102)
"""
from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from opentelemetry import trace
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SimpleSpanProcessor,
    SpanProcessor,
)
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.trace import SpanKind, Status, StatusCode

from config import ObservabilityConfig

SERVICE_VERSION_VALUE = "1.0.0"

# Global state
_tracer_provider: Optional[TracerProvider] = None


def setup_tracing(
    config: Optional[ObservabilityConfig] = None,
    extra_processors: Optional[List[SpanProcessor]] = None,
) -> Optional[TracerProvider]:
    """
    Configure OpenTelemetry tracing.

    Returns the SDK provider, or None when tracing is disabled (the API's
    no-op provider stays in place).
    """
    global _tracer_provider

    if _tracer_provider is not None:
        return _tracer_provider

    config = config or ObservabilityConfig()

    if not config.enabled and not extra_processors:
        return None

    resource = Resource.create({
        SERVICE_NAME: config.service_name,
        SERVICE_VERSION: SERVICE_VERSION_VALUE,
        "service.namespace": "lectio",
    })
    _tracer_provider = TracerProvider(resource=resource)

    if config.enabled and config.otlp_endpoint:
        _tracer_provider.add_span_processor(
            BatchSpanProcessor(OTLPSpanExporter(endpoint=config.otlp_endpoint, insecure=True))
        )

    if config.console_export:
        _tracer_provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))

    for processor in extra_processors or []:
        _tracer_provider.add_span_processor(processor)

    trace.set_tracer_provider(_tracer_provider)
    return _tracer_provider


def get_tracer(name: str, version: str = SERVICE_VERSION_VALUE) -> trace.Tracer:
    """Get a tracer from whichever provider is globally installed."""
    return trace.get_tracer(name, version)


def shutdown_tracing() -> None:
    """Flush pending spans. Call during application shutdown."""
    global _tracer_provider
    if _tracer_provider is not None:
        _tracer_provider.shutdown()
    _tracer_provider = None


@contextmanager
def create_span(
    name: str,
    attributes: Optional[Dict[str, Any]] = None,
    tracer_name: str = "lectio.observability",
    kind: SpanKind = SpanKind.INTERNAL,
) -> Iterator[trace.Span]:
    """
    Context manager for creating spans with automatic error handling.

    Example:
        >>> with create_span("store.upsert", attributes={"batch.size": 500}) as span:
        ...     store.upsert(batch)
    """
    tracer = get_tracer(tracer_name)
    with tracer.start_as_current_span(name, kind=kind) as span:
        for key, value in (attributes or {}).items():
            _set_safe_attribute(span, key, value)
        try:
            yield span
        except Exception as e:
            span.set_status(Status(StatusCode.ERROR, str(e)))
            span.record_exception(e)
            raise


@contextmanager
def stage_span(stage: str, version_code: str, **attributes: Any) -> Iterator[trace.Span]:
    """Span for one import stage of one version."""
    with create_span(
        f"import.{stage}",
        attributes={"import.stage": stage, "version.code": version_code, **attributes},
        tracer_name="lectio.pipeline",
    ) as span:
        yield span


def _set_safe_attribute(span: trace.Span, key: str, value: Any) -> None:
    """Set span attribute, coercing unsupported types to str."""
    if value is None:
        return
    if isinstance(value, (str, bool, int, float)):
        span.set_attribute(key, value)
    else:
        span.set_attribute(key, str(value))
