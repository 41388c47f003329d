"""
LECTIO - Store Interface

The contract the import engine and the reference lookup consume. The core
treats the store as an opaque, fallible keyed service:

- every write is an upsert on (book, chapter, verse, version)
- timeouts and dropped connections surface as TransientStoreError
- anything else surfaces as StoreError / FatalStoreError

Usage:
    from db.interfaces import VerseStore, VerseFilter

    class Audit:
        def __init__(self, store: VerseStore):
            self._store = store

        def chapter_size(self, book_id: int, chapter: int, version: str) -> int:
            return self._store.count(VerseFilter(version, book_id, chapter))
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Set, Tuple

from data.schemas import ImportReport, Version, VerseRecord

VerseKeyTuple = Tuple[int, int, int]


@dataclass(frozen=True)
class VerseFilter:
    """
    Selection of stored verses. ``None`` fields are unconstrained; verse
    bounds are inclusive.
    """
    version_code: Optional[str] = None
    canonical_book_id: Optional[int] = None
    chapter: Optional[int] = None
    verse: Optional[int] = None
    verse_from: Optional[int] = None
    verse_to: Optional[int] = None

    @classmethod
    def for_version(cls, version_code: str) -> "VerseFilter":
        return cls(version_code=version_code)

    @classmethod
    def for_chapter(cls, version_code: str, book_id: int, chapter: int) -> "VerseFilter":
        return cls(version_code=version_code, canonical_book_id=book_id, chapter=chapter)

    @classmethod
    def for_verse(cls, version_code: str, book_id: int, chapter: int, verse: int) -> "VerseFilter":
        return cls(version_code=version_code, canonical_book_id=book_id, chapter=chapter, verse=verse)


class VerseStore(ABC):
    """Upsert-capable keyed verse store plus version/report bookkeeping."""

    # Verses

    @abstractmethod
    def upsert(self, records: Iterable[VerseRecord]) -> int:
        """Insert or replace records by key; returns how many were sent."""

    @abstractmethod
    def query(self, verse_filter: VerseFilter) -> List[VerseRecord]:
        """Matching records ordered by book, chapter, verse."""

    @abstractmethod
    def count(self, verse_filter: VerseFilter) -> int:
        ...

    @abstractmethod
    def delete_stale(self, version_code: str, keep_keys: Set[VerseKeyTuple]) -> int:
        """Remove a version's rows whose (book, chapter, verse) is not in keep_keys."""

    @abstractmethod
    def chapter_verse_counts(self, version_code: str) -> Dict[Tuple[int, int], int]:
        """Stored verse count per (book, chapter) for one version."""

    @abstractmethod
    def versions_with_verses(self) -> List[str]:
        """Codes of versions with at least one stored verse, sorted."""

    # Versions

    @abstractmethod
    def save_version(self, version: Version) -> None:
        ...

    @abstractmethod
    def load_version(self, version_code: str) -> Optional[Version]:
        ...

    @abstractmethod
    def list_versions(self) -> List[Version]:
        ...

    # Reports

    @abstractmethod
    def save_report(self, report: ImportReport) -> None:
        """Persist the latest report of a version, replacing the previous one."""

    @abstractmethod
    def load_report(self, version_code: str) -> Optional[ImportReport]:
        ...

    def close(self) -> None:
        """Release connections. Default: nothing to release."""
