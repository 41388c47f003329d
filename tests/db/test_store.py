"""
Tests for the SQL verse store.
"""
import pytest
from sqlalchemy import exc as sa_exc

from config import DatabaseConfig
from core.errors import StoreError, TransientStoreError
from data.schemas import ImportReport, ImportState, StateChange, Version, VerseRecord
from db.interfaces import VerseFilter
from db.store import SqlVerseStore, build_engine, chunked


def records(version="KJV", book=1, chapter=1, count=3, prefix="v"):
    return [VerseRecord(book, chapter, n, version, f"{prefix}{n}") for n in range(1, count + 1)]


class TestHelpers:

    def test_chunked(self):
        assert list(chunked(range(5), 2)) == [[0, 1], [2, 3], [4]]
        assert list(chunked([], 2)) == []

    def test_in_memory_sqlite_uses_one_connection(self):
        engine = build_engine(DatabaseConfig(url="sqlite://"))
        try:
            assert engine.pool.__class__.__name__ == "StaticPool"
        finally:
            engine.dispose()


class TestVerses:
    """Tests for verse upsert and query."""

    def test_upsert_and_query(self, store):
        assert store.upsert(records()) == 3
        result = store.query(VerseFilter.for_version("KJV"))
        assert [r.verse for r in result] == [1, 2, 3]
        assert result[0] == VerseRecord(1, 1, 1, "KJV", "v1")

    def test_upsert_is_idempotent(self, store):
        store.upsert(records())
        store.upsert(records())
        assert store.count(VerseFilter.for_version("KJV")) == 3

    def test_upsert_replaces_text(self, store):
        store.upsert(records())
        store.upsert(records(count=1, prefix="new"))
        assert store.query(VerseFilter.for_verse("KJV", 1, 1, 1))[0].text == "new1"

    def test_upsert_large_batch(self, store):
        """More rows than one statement holds."""
        store.upsert(records(count=400))
        assert store.count(VerseFilter.for_chapter("KJV", 1, 1)) == 400

    def test_versions_do_not_collide(self, store):
        store.upsert(records("KJV"))
        store.upsert(records("AFR53", count=2))
        assert store.count(VerseFilter.for_version("KJV")) == 3
        assert store.count(VerseFilter.for_version("AFR53")) == 2
        assert store.count(VerseFilter()) == 5

    def test_verse_range_filter(self, store):
        store.upsert(records(count=10))
        result = store.query(VerseFilter("KJV", 1, 1, verse_from=3, verse_to=5))
        assert [r.verse for r in result] == [3, 4, 5]

    def test_delete_stale(self, store):
        store.upsert(records(count=5))
        store.upsert(records("AFR53", count=5))

        pruned = store.delete_stale("KJV", {(1, 1, 1), (1, 1, 2)})

        assert pruned == 3
        assert store.count(VerseFilter.for_version("KJV")) == 2
        assert store.count(VerseFilter.for_version("AFR53")) == 5

    def test_chapter_verse_counts(self, store):
        store.upsert(records(count=3) + records(chapter=2, count=2) + records(book=2, count=1))
        assert store.chapter_verse_counts("KJV") == {(1, 1): 3, (1, 2): 2, (2, 1): 1}
        assert store.versions_with_verses() == ["KJV"]


class TestVersionsAndReports:
    """Tests for version state and report persistence."""

    def test_version_round_trip(self, store):
        version = Version("AFR53", display_name="Afrikaans 1953", dialect="zefania",
                          required_books=frozenset({1, 2}))
        version.import_state = ImportState.FAILED
        version.state_history.append(StateChange(ImportState.FAILED, note="blocked"))
        version.failure_cause = "blocked"
        store.save_version(version)

        loaded = store.load_version("AFR53")

        assert loaded.display_name == "Afrikaans 1953"
        assert loaded.import_state == ImportState.FAILED
        assert loaded.required_books == frozenset({1, 2})
        assert loaded.state_history[0].note == "blocked"
        assert loaded.failure_cause == "blocked"

    def test_save_version_updates(self, store):
        version = Version("KJV")
        store.save_version(version)
        version.import_state = ImportState.PARSING
        store.save_version(version)
        assert [v.import_state for v in store.list_versions()] == [ImportState.PARSING]

    def test_unknown_version(self, store):
        assert store.load_version("NONE") is None
        assert store.load_report("NONE") is None

    def test_report_replaced(self, store):
        store.save_report(ImportReport("KJV", total_verses=1))
        store.save_report(ImportReport("KJV", total_verses=2, missing_books=[3]))
        report = store.load_report("KJV")
        assert report.total_verses == 2
        assert report.missing_books == [3]


class TestErrorTranslation:
    """Driver errors map onto the store taxonomy."""

    def test_operational_error_is_transient(self, store):
        with pytest.raises(TransientStoreError):
            with store._translate("upsert"):
                raise sa_exc.OperationalError("INSERT", {}, Exception("database is locked"))

    def test_other_errors_are_store_errors(self, store):
        with pytest.raises(StoreError) as exc_info:
            with store._translate("query"):
                raise sa_exc.IntegrityError("INSERT", {}, Exception("constraint"))
        assert not isinstance(exc_info.value, TransientStoreError)
        assert exc_info.value.operation == "query"

    def test_translated_errors_carry_context(self, store):
        with pytest.raises(TransientStoreError) as exc_info:
            with store._translate("save_version"):
                raise sa_exc.OperationalError("UPDATE", {}, Exception("database is locked"))
        context = exc_info.value.context
        assert context.component == "db.store"
        assert context.operation == "save_version"
        assert "OperationalError" in context.stack_trace

    def test_unsupported_dialect(self):
        from sqlalchemy import create_mock_engine

        engine = create_mock_engine("mysql://", executor=lambda *a, **kw: None)
        with pytest.raises(StoreError):
            SqlVerseStore(engine)
