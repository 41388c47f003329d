"""
LECTIO - Canonical Book Registry

One process-wide, immutable set of canonical books. Built once, validated
on construction, then shared read-only by every component and thread.
"""
import json
import logging
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Tuple, Union

from core.errors import ConfigError, RegistryIntegrityError
from data.canon import protestant_canon
from data.schemas import CanonicalBook, Testament

logger = logging.getLogger("lectio.data.registry")


class CanonicalBookRegistry:
    """
    Read-only lookup of canonical books by id and by reading order.

    Construction fails with RegistryIntegrityError when:
    - the book set is empty
    - ids are not contiguous from 1
    - ``order`` values are not a permutation of 1..N
    - two books share a full name (case-insensitive)
    """

    def __init__(self, books: Iterable[CanonicalBook]):
        books = list(books)
        violations = self._validate(books)
        if violations:
            raise RegistryIntegrityError(
                f"Canonical book registry rejected ({len(violations)} violations)",
                violations=violations,
            )

        self._by_id: Dict[int, CanonicalBook] = {b.id: b for b in books}
        self._by_order: Dict[int, CanonicalBook] = {b.order: b for b in books}
        self._ordered: Tuple[CanonicalBook, ...] = tuple(sorted(books, key=lambda b: b.order))
        logger.debug("Registry loaded with %d books", len(self._ordered))

    @staticmethod
    def _validate(books: List[CanonicalBook]) -> List[str]:
        if not books:
            return ["registry has no books"]

        violations: List[str] = []
        n = len(books)

        ids = sorted(b.id for b in books)
        if ids != list(range(1, n + 1)):
            violations.append(f"ids must be contiguous 1..{n}, got {ids}")

        orders = sorted(b.order for b in books)
        if orders != list(range(1, n + 1)):
            violations.append(f"order must be a permutation of 1..{n}, got {orders}")

        seen: Dict[str, int] = {}
        for book in books:
            key = book.full_name.strip().casefold()
            if not key:
                violations.append(f"book {book.id} has an empty full name")
            elif key in seen:
                violations.append(
                    f"full name '{book.full_name}' used by books {seen[key]} and {book.id}"
                )
            else:
                seen[key] = book.id

        return violations

    def by_id(self, book_id: int) -> CanonicalBook:
        """Raises KeyError for an unknown id."""
        try:
            return self._by_id[book_id]
        except KeyError:
            raise KeyError(f"No canonical book with id {book_id}") from None

    def by_order(self, order: int) -> CanonicalBook:
        """Raises KeyError for an unknown reading position."""
        try:
            return self._by_order[order]
        except KeyError:
            raise KeyError(f"No canonical book at order {order}") from None

    def all(self) -> Tuple[CanonicalBook, ...]:
        """All books in reading order."""
        return self._ordered

    def ids(self) -> List[int]:
        return [b.id for b in self._ordered]

    def testament_ids(self, testament: Testament) -> List[int]:
        return [b.id for b in self._ordered if b.testament == testament]

    def __len__(self) -> int:
        return len(self._ordered)

    def __iter__(self) -> Iterator[CanonicalBook]:
        return iter(self._ordered)

    def __contains__(self, book_id: object) -> bool:
        return book_id in self._by_id

    def __repr__(self) -> str:
        return f"CanonicalBookRegistry({len(self)} books)"

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "CanonicalBookRegistry":
        """
        Load a curated canon file: a JSON list of book objects with
        ``id``, ``order``, ``full_name``, ``short_name``, ``testament`` and
        optional ``expected_chapter_count``.
        """
        path = Path(path)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Cannot read canon file {path}: {e}",
                              config_key="LECTIO_CANON_FILE", cause=e) from e
        try:
            books = [CanonicalBook.from_dict(item) for item in data]
        except (KeyError, TypeError, ValueError) as e:
            raise RegistryIntegrityError(f"Canon file {path} has an invalid entry: {e}",
                                         cause=e) from e
        return cls(books)


def default_registry() -> CanonicalBookRegistry:
    """The 66-book Protestant canon."""
    return CanonicalBookRegistry(protestant_canon())
