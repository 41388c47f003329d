"""
Tests for the reference lookup.
"""
import pytest

from data.schemas import Version, VerseRecord
from pipeline.lookup import NotFound, ReferenceLookup, parse_reference


@pytest.fixture
def lookup(store, registry):
    store.upsert([
        VerseRecord(1, 1, 2, "KJV", "And the earth was without form"),
        VerseRecord(1, 1, 1, "KJV", "In the beginning"),
        VerseRecord(1, 1, 3, "KJV", "Let there be light"),
        VerseRecord(1, 1, 1, "AFR53", "In die begin"),
    ])
    store.save_version(Version("KJV"))
    store.save_version(Version("AFR53"))
    store.save_version(Version("EMPTY"))
    return ReferenceLookup(store, registry)


class TestGet:

    def test_found(self, lookup):
        assert lookup.get(1, 1, 1, "KJV") == "In the beginning"
        assert lookup.get(1, 1, 1, "AFR53") == "In die begin"

    def test_not_found_is_falsy(self, lookup):
        """A missing verse is a value, not an exception."""
        result = lookup.get(2, 1, 1, "KJV")
        assert isinstance(result, NotFound)
        assert not result
        assert result.version_code == "KJV"

    def test_unknown_version(self, lookup):
        assert not lookup.get(1, 1, 1, "NIV")


class TestRangeOf:

    def test_ascending_by_verse(self, lookup):
        assert [v for v, _ in lookup.range_of(1, 1, "KJV")] == [1, 2, 3]

    def test_restartable(self, lookup):
        chapter = lookup.range_of(1, 1, "KJV")
        assert list(chapter) == list(chapter)

    def test_lazy(self, lookup, store):
        """Rows written after the range is created are seen on iteration."""
        chapter = lookup.range_of(1, 1, "AFR53")
        store.upsert([VerseRecord(1, 1, 2, "AFR53", "En die aarde")])
        assert [v for v, _ in chapter] == [1, 2]

    def test_empty_chapter(self, lookup):
        assert list(lookup.range_of(1, 2, "KJV")) == []


class TestDescribe:

    def test_english_name(self, lookup):
        assert lookup.describe(VerseRecord(1, 1, 1, "KJV", "")) == "Genesis 1:1"

    def test_localized_name(self, lookup):
        record = VerseRecord(2, 3, 14, "AFR53", "")
        assert lookup.describe(record, locale_version="AFR53") == "Eksodus 3:14"

    def test_available_versions(self, lookup):
        assert lookup.available_versions() == ["AFR53", "KJV"]


class TestParseReference:

    def test_book_chapter_verse(self, resolver):
        assert parse_reference("Gen 1:3", resolver) == (1, 1, 3)

    def test_chapter_only(self, resolver):
        assert parse_reference("Psalm 23", resolver) == (19, 23, None)

    def test_numbered_book(self, resolver):
        assert parse_reference("1 Samuel 3:10", resolver) == (9, 3, 10)

    def test_localized_book(self, resolver):
        assert parse_reference("Eksodus 20:1", resolver, "AFR53") == (2, 20, 1)

    def test_not_a_reference(self, resolver):
        with pytest.raises(ValueError):
            parse_reference("Genesis", resolver)

    def test_unknown_book(self, resolver):
        with pytest.raises(ValueError):
            parse_reference("Nowhere 1:1", resolver)
