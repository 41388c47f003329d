"""
LECTIO - OpenTelemetry Metrics

Counters and histograms for import runs.

Key Metrics:
- lectio_stage_duration_seconds: duration of each import stage
- lectio_verses_committed_total: verses written by committed runs
- lectio_store_retries_total: retried store calls
- lectio_imports_total: import outcomes (committed, blocked, failed, cancelled)
- lectio_fuzzy_resolutions_total: book tokens resolved by fuzzy match

Recording helpers are no-ops until ``setup_metrics()`` has run, so library
code can call them unconditionally.

Usage:
    from observability.metrics import setup_metrics, timed_stage

    setup_metrics(ObservabilityConfig(enabled=True))

    with timed_stage("parsing", "KJV") as ctx:
        ...
        ctx["status"] = "ok"
"""
from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional

from opentelemetry import metrics
from opentelemetry.metrics import Meter
from opentelemetry.sdk.metrics import MeterProvider as SDKMeterProvider
from opentelemetry.sdk.metrics.export import (
    ConsoleMetricExporter,
    MetricReader,
    PeriodicExportingMetricReader,
)
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter

from config import ObservabilityConfig

SERVICE_VERSION_VALUE = "1.0.0"
EXPORT_INTERVAL_MILLIS = 60000

# Global state
_meter_provider: Optional[SDKMeterProvider] = None
_lectio_metrics: Optional["LectioMetrics"] = None


class LectioMetrics:
    """Central metrics collector for import runs."""

    def __init__(self, meter: Meter):
        self.meter = meter

        self.stage_duration = meter.create_histogram(
            name="lectio_stage_duration_seconds",
            description="Duration of an import stage",
            unit="s",
        )

        self.verses_committed = meter.create_counter(
            name="lectio_verses_committed_total",
            description="Verses written by committed imports",
            unit="1",
        )

        self.store_retries = meter.create_counter(
            name="lectio_store_retries_total",
            description="Store calls retried after a transient failure",
            unit="1",
        )

        self.imports = meter.create_counter(
            name="lectio_imports_total",
            description="Import runs by outcome",
            unit="1",
        )

        self.fuzzy_resolutions = meter.create_counter(
            name="lectio_fuzzy_resolutions_total",
            description="Book tokens resolved by fuzzy matching",
            unit="1",
        )

    def record_stage(self, stage: str, version_code: str, duration: float, status: str) -> None:
        self.stage_duration.record(
            duration, {"stage": stage, "version": version_code, "status": status}
        )

    def record_outcome(self, version_code: str, outcome: str, verses: int = 0) -> None:
        attributes = {"version": version_code, "outcome": outcome}
        self.imports.add(1, attributes)
        if verses:
            self.verses_committed.add(verses, {"version": version_code})


def setup_metrics(
    config: Optional[ObservabilityConfig] = None,
    extra_readers: Optional[List[MetricReader]] = None,
) -> SDKMeterProvider:
    """
    Initialize the meter provider and the LECTIO instruments.

    ``extra_readers`` lets callers attach their own readers (for example an
    in-memory reader in tests) next to the configured exporters.
    """
    global _meter_provider, _lectio_metrics

    if _meter_provider is not None:
        return _meter_provider

    config = config or ObservabilityConfig()

    resource = Resource.create({
        SERVICE_NAME: config.service_name,
        SERVICE_VERSION: SERVICE_VERSION_VALUE,
    })

    readers: List[MetricReader] = list(extra_readers or [])

    if config.enabled and config.otlp_endpoint:
        readers.append(
            PeriodicExportingMetricReader(
                OTLPMetricExporter(endpoint=config.otlp_endpoint, insecure=True),
                export_interval_millis=EXPORT_INTERVAL_MILLIS,
            )
        )

    if config.console_export:
        readers.append(
            PeriodicExportingMetricReader(
                ConsoleMetricExporter(),
                export_interval_millis=EXPORT_INTERVAL_MILLIS,
            )
        )

    _meter_provider = SDKMeterProvider(resource=resource, metric_readers=readers)
    metrics.set_meter_provider(_meter_provider)

    meter = _meter_provider.get_meter(config.service_name, SERVICE_VERSION_VALUE)
    _lectio_metrics = LectioMetrics(meter)
    return _meter_provider


def get_lectio_metrics() -> Optional[LectioMetrics]:
    """Get the global LectioMetrics instance."""
    return _lectio_metrics


def shutdown_metrics() -> None:
    """Gracefully shutdown metrics collection."""
    global _meter_provider, _lectio_metrics

    if _meter_provider is not None:
        _meter_provider.shutdown()

    _meter_provider = None
    _lectio_metrics = None


# Convenience functions for direct metric recording
def record_import_outcome(version_code: str, outcome: str, verses: int = 0) -> None:
    m = get_lectio_metrics()
    if m:
        m.record_outcome(version_code, outcome, verses)


def record_store_retries(version_code: str, operation: str, retries: int) -> None:
    m = get_lectio_metrics()
    if m and retries:
        m.store_retries.add(retries, {"version": version_code, "operation": operation})


def record_fuzzy_resolutions(version_code: str, count: int) -> None:
    m = get_lectio_metrics()
    if m and count:
        m.fuzzy_resolutions.add(count, {"version": version_code})


@contextmanager
def timed_stage(stage: str, version_code: str) -> Iterator[Dict[str, str]]:
    """
    Context manager for timing one import stage.

    Example:
        >>> with timed_stage("resolving", "AFR53") as ctx:
        ...     resolved = resolver.resolve_all(raw)
        ...     ctx["status"] = "ok"
    """
    context = {"status": "unknown"}
    start = time.perf_counter()
    try:
        yield context
    except Exception:
        context["status"] = "error"
        raise
    finally:
        duration = time.perf_counter() - start
        m = get_lectio_metrics()
        if m:
            m.record_stage(stage, version_code, duration, context["status"])
