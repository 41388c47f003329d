"""
Tests for the canonical book registry.
"""
import json
from dataclasses import replace

import pytest

from core.errors import ConfigError, RegistryIntegrityError
from data.canon import protestant_canon
from data.registry import CanonicalBookRegistry
from data.schemas import CanonicalBook, Testament as BookTestament


class TestDefaultRegistry:
    """Tests for the built-in 66-book canon."""

    def test_size_and_order(self, registry):
        assert len(registry) == 66
        assert registry.ids() == list(range(1, 67))
        assert registry.all()[0].full_name == "Genesis"
        assert registry.all()[-1].full_name == "Revelation"

    def test_lookup_by_id_and_order(self, registry):
        assert registry.by_id(19).full_name == "Psalms"
        assert registry.by_order(40).full_name == "Matthew"
        assert 66 in registry
        assert 67 not in registry

    def test_unknown_id_raises_key_error(self, registry):
        with pytest.raises(KeyError):
            registry.by_id(99)

    def test_testaments(self, registry):
        assert len(registry.testament_ids(BookTestament.OLD_TESTAMENT)) == 39
        assert len(registry.testament_ids(BookTestament.NEW_TESTAMENT)) == 27

    def test_expected_chapter_counts(self, registry):
        assert registry.by_id(1).expected_chapter_count == 50
        assert registry.by_id(19).expected_chapter_count == 150


class TestRegistryIntegrity:
    """Tests for construction-time validation."""

    def test_empty_registry(self):
        with pytest.raises(RegistryIntegrityError):
            CanonicalBookRegistry([])

    def test_gap_in_ids(self):
        books = protestant_canon()
        books[1] = replace(books[1], id=70)
        with pytest.raises(RegistryIntegrityError) as exc_info:
            CanonicalBookRegistry(books)
        assert any("contiguous" in v for v in exc_info.value.violations)

    def test_duplicate_order(self):
        books = protestant_canon()
        books[1] = replace(books[1], order=1)
        with pytest.raises(RegistryIntegrityError) as exc_info:
            CanonicalBookRegistry(books)
        assert any("permutation" in v for v in exc_info.value.violations)

    def test_duplicate_full_name_is_case_insensitive(self):
        books = protestant_canon()
        books[1] = replace(books[1], full_name="GENESIS")
        with pytest.raises(RegistryIntegrityError):
            CanonicalBookRegistry(books)

    def test_reordered_canon(self):
        """Reading order may differ from id order."""
        books = [
            CanonicalBook(1, 2, "Genesis", "Gen", BookTestament.OLD_TESTAMENT),
            CanonicalBook(2, 1, "Exodus", "Exo", BookTestament.OLD_TESTAMENT),
        ]
        registry = CanonicalBookRegistry(books)
        assert [b.id for b in registry.all()] == [2, 1]
        assert registry.by_order(1).full_name == "Exodus"


class TestRegistryFile:
    """Tests for loading a curated canon file."""

    def test_from_json(self, tmp_path):
        path = tmp_path / "canon.json"
        path.write_text(json.dumps([b.to_dict() for b in protestant_canon()[:5]]))
        registry = CanonicalBookRegistry.from_json(path)
        assert len(registry) == 5
        assert registry.by_id(5).full_name == "Deuteronomy"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            CanonicalBookRegistry.from_json(tmp_path / "absent.json")

    def test_invalid_entry(self, tmp_path):
        path = tmp_path / "canon.json"
        path.write_text(json.dumps([{"id": 1}]))
        with pytest.raises(RegistryIntegrityError):
            CanonicalBookRegistry.from_json(path)
