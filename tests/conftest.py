"""
LECTIO - Test Configuration

Pytest fixtures and configuration for all tests.
"""
from typing import Optional

import pytest

from core.resilience import RetryConfig, RetryPolicy
from data.registry import CanonicalBookRegistry, default_registry
from data.schemas import Version
from db.store import SqlVerseStore
from pipeline.resolver import AliasResolver, AliasTable
from pipeline.transactioner import ImportTransactioner
from tests.helpers import chapter_of, zefania_xml


@pytest.fixture
def registry() -> CanonicalBookRegistry:
    """The 66-book canon."""
    return default_registry()


@pytest.fixture
def alias_table(registry) -> AliasTable:
    return AliasTable(registry)


@pytest.fixture
def resolver(alias_table) -> AliasResolver:
    return AliasResolver(alias_table)


@pytest.fixture
def store():
    """In-memory SQLite verse store with tables created."""
    s = SqlVerseStore.from_url("sqlite://")
    s.create_tables()
    yield s
    s.close()


@pytest.fixture
def fast_retry() -> RetryPolicy:
    """Retry policy without real sleeping."""
    return RetryPolicy(
        RetryConfig(max_attempts=3, base_delay=0.0, max_delay=0.0, jitter=False),
        sleep=lambda _: None,
    )


@pytest.fixture
def make_transactioner(store, registry, resolver, fast_retry):
    """Factory for transactioners over the shared in-memory store."""

    def factory(target_store=None, **kwargs) -> ImportTransactioner:
        kwargs.setdefault("retry_policy", fast_retry)
        kwargs.setdefault("writer_lock_timeout", 0.5)
        return ImportTransactioner(target_store or store, registry, resolver, **kwargs)

    return factory


@pytest.fixture
def genesis_exodus_xml() -> bytes:
    """Two books, chapter 1 with three verses each, Afrikaans book names."""
    return zefania_xml({
        "Genesis": {1: chapter_of(3, "Genesis")},
        "Eksodus": {1: chapter_of(3, "Eksodus")},
    })


@pytest.fixture
def psalm_psalms_xml() -> bytes:
    """The same book under two tokens."""
    return zefania_xml({
        "Psalm": {1: chapter_of(2)},
        "Psalms": {2: chapter_of(2)},
    })


@pytest.fixture
def make_version():
    def factory(code: str = "TEST", dialect: str = "zefania",
                required_books: Optional[frozenset] = None) -> Version:
        return Version(code, dialect=dialect, required_books=required_books)

    return factory
