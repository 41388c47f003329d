"""
Tests for structured logging and stage spans.
"""
import logging

import pytest
import structlog
from opentelemetry import trace
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import StatusCode

from config import LoggingConfig, ObservabilityConfig
from observability.logging import LogContext, setup_logging, shutdown_logging
from observability.tracing import setup_tracing, shutdown_tracing, stage_span


class TestLogging:

    @pytest.fixture
    def json_logging(self, tmp_path):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        setup_logging(LoggingConfig(level="INFO", json_format=True, log_dir=tmp_path, log_to_file=True))
        yield tmp_path / "lectio.log"
        shutdown_logging()
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_stdlib_records_are_rendered_as_json(self, json_logging):
        logging.getLogger("lectio.pipeline").info("Import committed: %s", "KJV")
        for handler in logging.getLogger().handlers:
            handler.flush()

        line = json_logging.read_text().strip().splitlines()[-1]
        assert '"event": "Import committed: KJV"' in line
        assert '"service": "lectio"' in line

    def test_log_context_binds_and_clears(self, json_logging):
        with LogContext(version="AFR53"):
            assert structlog.contextvars.get_contextvars()["version"] == "AFR53"
        assert "version" not in structlog.contextvars.get_contextvars()


class TestTracing:

    def test_disabled_tracing_installs_nothing(self):
        assert setup_tracing(ObservabilityConfig(enabled=False)) is None

    def test_stage_span_records_error(self):
        exporter = InMemorySpanExporter()
        provider = setup_tracing(ObservabilityConfig(enabled=False),
                                 extra_processors=[SimpleSpanProcessor(exporter)])
        try:
            if trace.get_tracer_provider() is not provider:
                pytest.skip("a tracer provider was installed earlier in this process")

            with stage_span("parsing", "KJV", verses=3):
                pass
            with pytest.raises(ValueError):
                with stage_span("writing", "KJV"):
                    raise ValueError("boom")

            spans = {s.name: s for s in exporter.get_finished_spans()}
            assert spans["import.parsing"].attributes["version.code"] == "KJV"
            assert spans["import.parsing"].attributes["verses"] == 3
            assert spans["import.writing"].status.status_code == StatusCode.ERROR
        finally:
            shutdown_tracing()
