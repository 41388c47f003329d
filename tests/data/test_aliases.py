"""
Tests for curated alias data.
"""
import json

import pytest

from core.errors import ConfigError
from data.aliases import load_alias_file, localized_name
from data.schemas import MatchConfidence


def test_localized_name():
    assert localized_name("Exodus", "AFR53") == "Eksodus"
    assert localized_name("Exodus", "KJV") == "Exodus"
    assert localized_name("Exodus", None) == "Exodus"


def test_load_alias_file(tmp_path):
    path = tmp_path / "aliases.json"
    path.write_text(json.dumps({
        "default": {"Gn": 1},
        "versions": {"SVV": {"Psalmen": 19}},
    }))

    entries = load_alias_file(path)

    assert len(entries) == 2
    assert entries[0].source_token == "Gn"
    assert entries[0].version_code is None
    assert entries[1].version_code == "SVV"
    assert all(e.confidence == MatchConfidence.EXACT for e in entries)


def test_unreadable_alias_file(tmp_path):
    path = tmp_path / "aliases.json"
    path.write_text("{not json")
    with pytest.raises(ConfigError):
        load_alias_file(path)
