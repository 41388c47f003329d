"""
Tests for the command-line interface.
"""
import pytest
from rich.console import Console
from typer.testing import CliRunner

import cli.main
import config
from cli.main import app
from tests.helpers import chapter_of, zefania_xml

runner = CliRunner()


@pytest.fixture(autouse=True)
def cli_env(tmp_path, monkeypatch):
    """A file-backed SQLite store per test and no global observability setup."""
    monkeypatch.setenv("LECTIO_DATABASE_URL", f"sqlite:///{tmp_path / 'lectio.db'}")
    monkeypatch.setenv("LECTIO_RETRY_BASE_DELAY", "0")
    monkeypatch.setenv("LECTIO_RETRY_MAX_DELAY", "0")
    monkeypatch.setattr(config, "_config", config.Config())
    monkeypatch.setattr(cli.main, "setup_observability", lambda _config: None)
    monkeypatch.setattr(cli.main, "shutdown_observability", lambda: None)
    monkeypatch.setattr(cli.main, "console", Console(width=200))


@pytest.fixture
def afrikaans_source(tmp_path, genesis_exodus_xml):
    path = tmp_path / "afr53.xml"
    path.write_bytes(genesis_exodus_xml)
    return path


class TestImport:

    def test_import_then_read(self, afrikaans_source):
        result = runner.invoke(app, ["import", f"AFR53={afrikaans_source}", "--dialect", "zefania"])
        assert result.exit_code == 0, result.output
        assert "AFR53" in result.output
        assert "committed 6 verses" in result.output

        result = runner.invoke(app, ["get", "Eksodus 1:2", "--version", "AFR53"])
        assert result.exit_code == 0, result.output
        assert "Eksodus 2" in result.output

        result = runner.invoke(app, ["chapter", "Genesis 1", "--version", "AFR53"])
        assert result.exit_code == 0, result.output
        assert "Genesis 3" in result.output

        result = runner.invoke(app, ["status"])
        assert result.exit_code == 0, result.output
        assert "committed" in result.output

    def test_version_option_for_single_path(self, afrikaans_source):
        result = runner.invoke(app, ["import", str(afrikaans_source), "--version", "AFR53",
                                     "--dialect", "zefania"])
        assert result.exit_code == 0, result.output

    def test_blocked_import_exits_2(self, tmp_path, psalm_psalms_xml):
        path = tmp_path / "kjv.xml"
        path.write_bytes(psalm_psalms_xml)

        result = runner.invoke(app, ["import", f"KJV={path}", "--dialect", "zefania"])

        assert result.exit_code == 2
        assert "blocked" in result.output

        result = runner.invoke(app, ["report", "KJV", "--json"])
        assert result.exit_code == 0, result.output
        assert "duplicate_book_assignments" in result.output

    def test_missing_source_fails(self, tmp_path):
        result = runner.invoke(app, ["import", f"KJV={tmp_path / 'nope.xml'}", "--dialect", "zefania"])
        assert result.exit_code == 1
        assert "source not found" in result.output

    def test_unknown_dialect_fails(self, afrikaans_source):
        result = runner.invoke(app, ["import", f"AFR53={afrikaans_source}", "--dialect", "usfm"])
        assert result.exit_code == 1

    def test_required_books_block(self, tmp_path):
        path = tmp_path / "gen.xml"
        path.write_bytes(zefania_xml({"Genesis": {1: chapter_of(2)}}))

        result = runner.invoke(app, ["import", f"KJV={path}", "--dialect", "zefania", "--require", "1,2"])

        assert result.exit_code == 2


class TestReadCommands:

    def test_resolve(self):
        result = runner.invoke(app, ["resolve", "Jn", "Eksodus", "--version", "AFR53"])
        assert result.exit_code == 0, result.output
        assert "John" in result.output
        assert "Exodus" in result.output

    def test_books_with_localized_names(self):
        result = runner.invoke(app, ["books", "--version", "AFR53"])
        assert result.exit_code == 0, result.output
        assert "Eksodus" in result.output

    def test_report_for_unknown_version(self):
        result = runner.invoke(app, ["report", "NONE"])
        assert result.exit_code == 1

    def test_get_not_found(self):
        result = runner.invoke(app, ["get", "Gen 1:1", "--version", "KJV"])
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_get_bad_reference(self):
        result = runner.invoke(app, ["get", "Gen", "--version", "KJV"])
        assert result.exit_code == 1
