"""
LECTIO - Reference Lookup

Read side of the store: canonical reference -> stored text, and stored
record -> human-readable reference. A missing verse is an ordinary outcome
and comes back as a falsy ``NotFound``, never as an exception.
"""
import logging
import re
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple, Union

from data.aliases import localized_name
from data.registry import CanonicalBookRegistry
from data.schemas import VerseRecord
from db.interfaces import VerseFilter, VerseStore
from pipeline.resolver import AliasResolver

logger = logging.getLogger("lectio.pipeline.lookup")

_REFERENCE = re.compile(r"^\s*(?P<book>.+?)\s+(?P<chapter>\d+)(?::(?P<verse>\d+))?\s*$")


@dataclass(frozen=True)
class NotFound:
    """No stored text for a reference."""
    canonical_book_id: int
    chapter: int
    verse: int
    version_code: str

    def __bool__(self) -> bool:
        return False

    def __str__(self) -> str:
        return f"{self.version_code} {self.canonical_book_id}:{self.chapter}:{self.verse} not found"


class ChapterRange:
    """
    ``(verse, text)`` pairs of one chapter, ascending by verse.

    Nothing is read until iteration starts; every new iteration queries the
    store again.
    """

    def __init__(self, store: VerseStore, version_code: str, book_id: int, chapter: int):
        self._store = store
        self.version_code = version_code
        self.canonical_book_id = book_id
        self.chapter = chapter

    def __iter__(self) -> Iterator[Tuple[int, str]]:
        records = self._store.query(
            VerseFilter.for_chapter(self.version_code, self.canonical_book_id, self.chapter)
        )
        for record in records:
            yield record.verse, record.text

    def __repr__(self) -> str:
        return f"ChapterRange({self.version_code} {self.canonical_book_id}:{self.chapter})"


class ReferenceLookup:
    """
    Usage:
        lookup = ReferenceLookup(store, registry)
        text = lookup.get(1, 1, 1, "AFR53")
        if text:
            print(text)
        for verse, text in lookup.range_of(1, 1, "AFR53"):
            ...
    """

    def __init__(self, store: VerseStore, registry: CanonicalBookRegistry):
        self.store = store
        self.registry = registry

    def get(self, book_id: int, chapter: int, verse: int, version_code: str) -> Union[str, NotFound]:
        records = self.store.query(VerseFilter.for_verse(version_code, book_id, chapter, verse))
        if not records:
            logger.debug("No text for %s %d:%d:%d", version_code, book_id, chapter, verse)
            return NotFound(book_id, chapter, verse, version_code)
        return records[0].text

    def range_of(self, book_id: int, chapter: int, version_code: str) -> ChapterRange:
        return ChapterRange(self.store, version_code, book_id, chapter)

    def describe(self, record: VerseRecord, locale_version: Optional[str] = None) -> str:
        """
        "Genesis 1:1", or with the book name of ``locale_version`` when that
        version has localized names ("Eksodus 3:14" for AFR53).
        """
        book = self.registry.by_id(record.canonical_book_id)
        name = localized_name(book.full_name, locale_version) if locale_version else book.full_name
        return f"{name} {record.chapter}:{record.verse}"

    def available_versions(self) -> List[str]:
        """Versions that have at least one committed verse."""
        return self.store.versions_with_verses()


def parse_reference(
    text: str,
    resolver: AliasResolver,
    version_code: Optional[str] = None,
) -> Tuple[int, int, Optional[int]]:
    """
    "Gen 1:3" -> (1, 1, 3); "Psalm 23" -> (19, 23, None).

    Raises ValueError when the text is not a reference or the book does not
    resolve exactly or fuzzily to a single book.
    """
    match = _REFERENCE.match(text)
    if not match:
        raise ValueError(f"Not a reference: {text!r}")
    result = resolver.resolve(match.group("book"), version_code)
    if not result:
        raise ValueError(f"Unknown book {match.group('book')!r} ({result.reason})")
    verse = match.group("verse")
    return result.canonical_book_id, int(match.group("chapter")), int(verse) if verse else None
