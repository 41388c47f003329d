"""
Tests for observability/metrics.py - import metrics.
"""
import pytest
from opentelemetry.sdk.metrics.export import InMemoryMetricReader

from config import ObservabilityConfig
from data.schemas import Version
from observability.metrics import (
    get_lectio_metrics,
    record_fuzzy_resolutions,
    record_import_outcome,
    record_store_retries,
    setup_metrics,
    shutdown_metrics,
    timed_stage,
)


@pytest.fixture
def reader():
    """Metrics routed to an in-memory reader for the duration of a test."""
    reader = InMemoryMetricReader()
    setup_metrics(ObservabilityConfig(enabled=False), extra_readers=[reader])
    yield reader
    shutdown_metrics()


def collected(reader):
    """{metric name: [(attributes, value), ...]}"""
    found = {}
    data = reader.get_metrics_data()
    for resource_metrics in data.resource_metrics:
        for scope_metrics in resource_metrics.scope_metrics:
            for metric in scope_metrics.metrics:
                points = found.setdefault(metric.name, [])
                for point in metric.data.data_points:
                    value = getattr(point, "value", None)
                    if value is None:
                        value = point.count
                    points.append((dict(point.attributes), value))
    return found


def test_helpers_are_noops_without_setup():
    assert get_lectio_metrics() is None
    record_import_outcome("KJV", "committed", 10)
    record_store_retries("KJV", "upsert", 2)
    with timed_stage("parsing", "KJV") as ctx:
        ctx["status"] = "ok"


def test_outcome_and_verses(reader):
    record_import_outcome("KJV", "committed", 31102)
    record_import_outcome("KJV", "blocked")

    metrics = collected(reader)

    outcomes = {attrs["outcome"]: value for attrs, value in metrics["lectio_imports_total"]}
    assert outcomes == {"committed": 1, "blocked": 1}
    assert metrics["lectio_verses_committed_total"] == [({"version": "KJV"}, 31102)]


def test_retries_and_fuzzy_skip_zero(reader):
    record_store_retries("KJV", "upsert", 0)
    record_store_retries("KJV", "upsert", 2)
    record_fuzzy_resolutions("AFR53", 0)

    metrics = collected(reader)

    assert metrics["lectio_store_retries_total"] == [({"version": "KJV", "operation": "upsert"}, 2)]
    assert not metrics.get("lectio_fuzzy_resolutions_total")


def test_timed_stage_records_status(reader):
    with timed_stage("parsing", "KJV") as ctx:
        ctx["status"] = "ok"
    with pytest.raises(RuntimeError):
        with timed_stage("writing", "KJV"):
            raise RuntimeError("boom")

    statuses = {attrs["stage"]: attrs["status"]
                for attrs, _ in collected(reader)["lectio_stage_duration_seconds"]}
    assert statuses == {"parsing": "ok", "writing": "error"}


def test_import_run_records_outcome(reader, make_transactioner, genesis_exodus_xml):
    make_transactioner().run(Version("AFR53", dialect="zefania"), genesis_exodus_xml)

    metrics = collected(reader)

    assert ({"version": "AFR53", "outcome": "committed"}, 1) in metrics["lectio_imports_total"]
    stages = {attrs["stage"] for attrs, _ in metrics["lectio_stage_duration_seconds"]}
    assert {"parsing", "resolving", "verifying"} <= stages
