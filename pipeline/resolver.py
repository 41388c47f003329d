"""
LECTIO - Alias Resolver

Maps a source book token (a name or a number, as the source spells it) onto
a canonical book id.

Resolution order:
1. exact alias in the version's own table
2. exact alias in the default table
3. fuzzy match over every alias name visible to the version:
   prefix / whole-word containment first, then difflib similarity

An exact alias never falls through to fuzzy matching, and a fuzzy tie
between two different books is reported as ambiguous, never guessed.
``resolve`` never raises: failures come back as ``Unresolved``.
"""
import difflib
import functools
import logging
import re
import unicodedata
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union

from core.errors import RegistryIntegrityError
from data.aliases import DEFAULT_SYNONYMS, LOCALIZED_VERSIONS
from data.registry import CanonicalBookRegistry
from data.schemas import AliasEntry, MatchConfidence, RawVerse, ResolvedVerse, SourceToken

logger = logging.getLogger("lectio.pipeline.resolver")

DEFAULT_FUZZY_THRESHOLD = 0.82
MIN_CONTAINMENT_LENGTH = 3

_ROMAN_PREFIX = re.compile(r"^(iii|ii|i)\s+(?=[^\W\d])")
_DIGIT_JOIN = re.compile(r"^(\d)(?=[^\W\d])")
_SEPARATORS = re.compile(r"[._\-]+")
_WHITESPACE = re.compile(r"\s+")
_ROMAN = {"i": "1", "ii": "2", "iii": "3"}


def normalize_token(token: SourceToken) -> str:
    """
    Canonical comparison form of a book token.

    "II Samuel" -> "2 samuel", "1Sam" -> "1 sam", "Esegiël" -> "esegiel".
    """
    text = unicodedata.normalize("NFKD", str(token))
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    text = text.casefold()
    text = _SEPARATORS.sub(" ", text)
    text = _WHITESPACE.sub(" ", text).strip()
    text = _ROMAN_PREFIX.sub(lambda m: _ROMAN[m.group(1)] + " ", text)
    text = _DIGIT_JOIN.sub(r"\1 ", text)
    return text


@dataclass(frozen=True)
class Resolution:
    """A token mapped onto a canonical book."""
    source_token: SourceToken
    canonical_book_id: int
    confidence: MatchConfidence
    score: float = 1.0
    matched: str = ""

    @property
    def is_exact(self) -> bool:
        return self.confidence == MatchConfidence.EXACT

    def __bool__(self) -> bool:
        return True


@dataclass(frozen=True)
class Unresolved:
    """A token that maps onto no canonical book, or onto several equally well."""
    source_token: SourceToken
    reason: str
    candidates: Tuple[int, ...] = ()

    def __bool__(self) -> bool:
        return False


ResolveResult = Union[Resolution, Unresolved]


class AliasTable:
    """
    Immutable snapshot of alias entries.

    The default scope holds registry full names, short names, reading-order
    numbers and curated synonyms; each version scope holds that version's
    localized names and curated entries. Two entries for the same
    normalized token in one scope must agree on the book, otherwise
    construction raises RegistryIntegrityError.
    """

    def __init__(
        self,
        registry: CanonicalBookRegistry,
        entries: Iterable[AliasEntry] = (),
        include_builtin: bool = True,
    ):
        self.registry = registry
        default: Dict[str, Tuple[int, str]] = {}
        versions: Dict[str, Dict[str, Tuple[int, str]]] = {}
        conflicts: List[str] = []

        def add(entry: AliasEntry) -> None:
            if entry.canonical_book_id not in registry:
                conflicts.append(
                    f"alias {entry.source_token!r} points at unknown book {entry.canonical_book_id}"
                )
                return
            key = normalize_token(entry.source_token)
            if not key:
                conflicts.append(f"alias {entry.source_token!r} normalizes to nothing")
                return
            scope = default if entry.version_code is None else versions.setdefault(entry.version_code, {})
            existing = scope.get(key)
            if existing is not None and existing[0] != entry.canonical_book_id:
                conflicts.append(
                    f"'{key}' maps to both {existing[0]} and {entry.canonical_book_id}"
                    f" (scope {entry.version_code or 'default'})"
                )
                return
            scope.setdefault(key, (entry.canonical_book_id, str(entry.source_token)))

        all_entries = list(self._builtin_entries(registry)) if include_builtin else []
        all_entries.extend(entries)
        for entry in all_entries:
            add(entry)

        if conflicts:
            raise RegistryIntegrityError(
                f"Alias table rejected ({len(conflicts)} conflicts)", violations=conflicts
            )

        self._default: Mapping[str, Tuple[int, str]] = MappingProxyType(default)
        self._versions: Mapping[str, Mapping[str, Tuple[int, str]]] = MappingProxyType(
            {code: MappingProxyType(table) for code, table in versions.items()}
        )
        self._entries = tuple(all_entries)

    @staticmethod
    def _builtin_entries(registry: CanonicalBookRegistry) -> Iterable[AliasEntry]:
        by_name = {b.full_name: b.id for b in registry}
        for book in registry:
            yield AliasEntry(book.full_name, book.id)
            yield AliasEntry(book.short_name, book.id)
            yield AliasEntry(book.order, book.id)
        for token, full_name in DEFAULT_SYNONYMS.items():
            if full_name in by_name:
                yield AliasEntry(token, by_name[full_name])
        for version_code, names in LOCALIZED_VERSIONS.items():
            for full_name, local in names.items():
                if full_name in by_name:
                    yield AliasEntry(local, by_name[full_name], MatchConfidence.EXACT, version_code)

    def lookup(self, key: str, version_code: Optional[str] = None) -> Optional[Tuple[int, str]]:
        """Exact lookup of a normalized key; the version scope wins."""
        if version_code is not None:
            hit = self._versions.get(version_code, {}).get(key)
            if hit is not None:
                return hit
        return self._default.get(key)

    def names_for(self, version_code: Optional[str] = None) -> Dict[str, Tuple[int, str]]:
        """Every non-numeric key visible to a version, for fuzzy matching."""
        names = {k: v for k, v in self._default.items() if not k.isdigit()}
        if version_code is not None:
            names.update(
                {k: v for k, v in self._versions.get(version_code, {}).items() if not k.isdigit()}
            )
        return names

    def versions(self) -> List[str]:
        return sorted(self._versions)

    def entries(self) -> Tuple[AliasEntry, ...]:
        return self._entries

    def __len__(self) -> int:
        return len(self._default) + sum(len(t) for t in self._versions.values())


class AliasResolver:
    """
    Deterministic, memoized token resolution against one AliasTable.

    Usage:
        resolver = AliasResolver(AliasTable(default_registry()))
        result = resolver.resolve("Eksodus", "AFR53")
        if result:
            book_id = result.canonical_book_id
    """

    def __init__(self, table: AliasTable, fuzzy_threshold: float = DEFAULT_FUZZY_THRESHOLD):
        self.table = table
        self.fuzzy_threshold = fuzzy_threshold
        self._cached = functools.lru_cache(maxsize=4096)(self._resolve_key)

    def resolve(self, token: SourceToken, version_code: Optional[str] = None) -> ResolveResult:
        key = normalize_token(token)
        if not key:
            return Unresolved(token, "empty")
        result = self._cached(key, version_code)
        if isinstance(result, Resolution):
            return Resolution(token, result.canonical_book_id, result.confidence,
                              result.score, result.matched)
        return Unresolved(token, result.reason, result.candidates)

    def _resolve_key(self, key: str, version_code: Optional[str]) -> ResolveResult:
        hit = self.table.lookup(key, version_code)
        if hit is not None:
            return Resolution(key, hit[0], MatchConfidence.EXACT, 1.0, hit[1])

        if key.isdigit():
            return Unresolved(key, "unknown")

        names = self.table.names_for(version_code)

        contained = self._containment_matches(key, names)
        if contained:
            books = sorted({book_id for book_id, _ in contained.values()})
            if len(books) > 1:
                return Unresolved(key, "ambiguous", tuple(books))
            name = min(contained, key=lambda n: (abs(len(n) - len(key)), n))
            return Resolution(key, books[0], MatchConfidence.FUZZY,
                              self._ratio(key, name), contained[name][1])

        best: Dict[int, Tuple[float, str]] = {}
        for name, (book_id, original) in names.items():
            score = self._ratio(key, name)
            if score >= self.fuzzy_threshold and score > best.get(book_id, (0.0, ""))[0]:
                best[book_id] = (score, original)

        if not best:
            return Unresolved(key, "unknown")

        top = max(score for score, _ in best.values())
        leaders = sorted(b for b, (score, _) in best.items() if abs(score - top) < 1e-9)
        if len(leaders) > 1:
            return Unresolved(key, "ambiguous", tuple(leaders))
        return Resolution(key, leaders[0], MatchConfidence.FUZZY, top, best[leaders[0]][1])

    @staticmethod
    def _ratio(a: str, b: str) -> float:
        return difflib.SequenceMatcher(None, a, b).ratio()

    @staticmethod
    def _containment_matches(key: str, names: Mapping[str, Tuple[int, str]]) -> Dict[str, Tuple[int, str]]:
        """Names the key is a prefix of, or that occur in the key as whole words."""
        matches: Dict[str, Tuple[int, str]] = {}
        if len(key) < MIN_CONTAINMENT_LENGTH:
            return matches
        padded = f" {key} "
        for name, hit in names.items():
            if len(name) < MIN_CONTAINMENT_LENGTH:
                continue
            if name.startswith(key) or f" {name} " in padded:
                matches[name] = hit
        return matches

    def resolve_verses(self, verses: Iterable[RawVerse], version_code: str) -> "ResolvedSet":
        """Resolve every verse of one version, grouping failures by token."""
        resolved_set = ResolvedSet(version_code)
        for raw in verses:
            token = raw.source_token
            result = resolved_set.results.get(token)
            if result is None:
                result = self.resolve(token, version_code)
                resolved_set.results[token] = result
            if result:
                resolved_set.verses.append(ResolvedVerse(raw, result.canonical_book_id, result.confidence))
            else:
                resolved_set.unresolved_counts[token] = resolved_set.unresolved_counts.get(token, 0) + 1
        return resolved_set

    def cache_info(self):
        return self._cached.cache_info()


@dataclass
class ResolvedSet:
    """Output of the resolving stage for one version."""
    version_code: str
    verses: List[ResolvedVerse] = field(default_factory=list)
    # Every distinct source token seen, in first-appearance order
    results: Dict[SourceToken, ResolveResult] = field(default_factory=dict)
    unresolved_counts: Dict[SourceToken, int] = field(default_factory=dict)

    @property
    def resolutions(self) -> Dict[SourceToken, Resolution]:
        return {t: r for t, r in self.results.items() if isinstance(r, Resolution)}

    @property
    def unresolved(self) -> Dict[SourceToken, Unresolved]:
        return {t: r for t, r in self.results.items() if isinstance(r, Unresolved)}

    def __len__(self) -> int:
        return len(self.verses)
