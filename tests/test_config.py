"""
Tests for environment-driven configuration.
"""
from pathlib import Path

import pytest

import config
from config import Config, DatabaseConfig, Environment, ImportConfig, get_config
from core.errors import ConfigError


def test_defaults(monkeypatch):
    for name in ("LECTIO_DATABASE_URL", "LECTIO_IMPORT_BATCH_SIZE", "LECTIO_FUZZY_THRESHOLD",
                 "LECTIO_ALIAS_FILE", "ENVIRONMENT"):
        monkeypatch.delenv(name, raising=False)

    cfg = Config()

    assert cfg.env == Environment.DEVELOPMENT
    assert cfg.database.is_sqlite
    assert cfg.imports.batch_size == 500
    assert cfg.imports.fuzzy_threshold == 0.82
    assert cfg.imports.alias_file is None


def test_environment_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("LECTIO_IMPORT_BATCH_SIZE", "50")
    monkeypatch.setenv("LECTIO_VERSE_TOLERANCE", "2")
    monkeypatch.setenv("LECTIO_ALIAS_FILE", str(tmp_path / "aliases.json"))

    imports = ImportConfig()

    assert imports.batch_size == 50
    assert imports.verse_count_tolerance == 2
    assert imports.alias_file == Path(tmp_path / "aliases.json")


@pytest.mark.parametrize("kwargs,key", [
    ({"batch_size": 0}, "LECTIO_IMPORT_BATCH_SIZE"),
    ({"max_attempts": 0}, "LECTIO_RETRY_MAX_ATTEMPTS"),
    ({"fuzzy_threshold": 1.5}, "LECTIO_FUZZY_THRESHOLD"),
    ({"verse_count_tolerance": -1}, "LECTIO_VERSE_TOLERANCE"),
    ({"max_parallel_versions": 0}, "LECTIO_MAX_PARALLEL_VERSIONS"),
])
def test_invalid_import_config(kwargs, key):
    with pytest.raises(ConfigError) as exc_info:
        Config(imports=ImportConfig(**kwargs))
    assert exc_info.value.config_key == key


def test_to_dict_hides_database_url():
    cfg = Config(database=DatabaseConfig(url="postgresql://user:secret@db/lectio"))
    data = cfg.to_dict()
    assert data["database"]["dialect"] == "postgresql"
    assert "secret" not in str(data)


def test_get_config_wraps_bad_values(monkeypatch):
    monkeypatch.setattr(config, "_config", None)
    monkeypatch.setenv("LECTIO_IMPORT_BATCH_SIZE", "many")
    with pytest.raises(ConfigError):
        get_config()
