"""
LECTIO - Conflict & Completeness Detector

Turns the complete resolved set of one version into an ImportReport. The
report is pure data: whether a finding blocks the commit is decided by the
transactioner's CommitPolicy, not here.
"""
import json
import logging
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Mapping, Optional, Set, Tuple, Union

from core.errors import ConfigError
from data.registry import CanonicalBookRegistry
from data.schemas import (
    ChapterGap,
    DuplicateBookAssignment,
    FuzzyResolution,
    ImportReport,
    MatchConfidence,
    UnresolvedToken,
    Version,
    VerseCountAnomaly,
    VerseGap,
    VerseKey,
)
from pipeline.resolver import ResolvedSet

if TYPE_CHECKING:
    from db.interfaces import VerseStore

logger = logging.getLogger("lectio.pipeline.detector")


@dataclass(frozen=True)
class VerseBaseline:
    """Expected verse count per (book, chapter), and where it came from."""
    counts: Mapping[Tuple[int, int], int] = field(default_factory=dict)
    source: str = ""

    def expected(self, book_id: int, chapter: int) -> Optional[int]:
        return self.counts.get((book_id, chapter))

    def __bool__(self) -> bool:
        return bool(self.counts)

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "VerseBaseline":
        """
        Load a reference count table: ``{"<book id>": {"<chapter>": count}}``.
        """
        path = Path(path)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            counts = {
                (int(book), int(chapter)): int(count)
                for book, chapters in data.items()
                for chapter, count in chapters.items()
            }
        except (OSError, ValueError, AttributeError) as e:
            raise ConfigError(f"Cannot read verse baseline {path}: {e}",
                              config_key="LECTIO_BASELINE_FILE", cause=e) from e
        return cls(counts, source=f"file:{path.name}")

    @classmethod
    def from_store(cls, store: "VerseStore", version_code: str) -> "VerseBaseline":
        """Counts of a previously committed version."""
        return cls(store.chapter_verse_counts(version_code), source=f"version:{version_code}")


class CompletenessDetector:
    """
    Usage:
        detector = CompletenessDetector(registry)
        report = detector.detect(version, resolved_set, baseline)
    """

    def __init__(self, registry: CanonicalBookRegistry, verse_count_tolerance: int = 0):
        self.registry = registry
        self.verse_count_tolerance = verse_count_tolerance

    def detect(
        self,
        version: Version,
        resolved: ResolvedSet,
        baseline: Optional[VerseBaseline] = None,
    ) -> ImportReport:
        report = ImportReport(version_code=version.code, total_verses=len(resolved.verses))

        report.duplicate_book_assignments = self._duplicate_books(resolved)

        # book -> chapter -> verse numbers (with repeats)
        layout: Dict[int, Dict[int, List[int]]] = defaultdict(lambda: defaultdict(list))
        key_counts: Counter = Counter()
        nonempty: Dict[Tuple[int, int], Set[int]] = defaultdict(set)
        # book -> chapters holding at least one verse with text
        covered: Dict[int, Set[int]] = defaultdict(set)
        for rv in resolved.verses:
            book_id, chapter, verse = rv.key
            layout[book_id][chapter].append(verse)
            key_counts[rv.key] += 1
            if rv.raw.text:
                nonempty[(book_id, chapter)].add(verse)
                covered[book_id].add(chapter)
            else:
                report.empty_verses.append(VerseKey(book_id, chapter, verse))

        report.books_present = len(covered)
        report.missing_books = [b for b in self.registry.ids() if b not in covered]
        if version.required_books is not None:
            missing = set(report.missing_books)
            report.missing_required_books = sorted(b for b in version.required_books if b in missing)

        report.duplicate_verses = [
            VerseKey(*key) for key, n in sorted(key_counts.items()) if n > 1
        ]
        report.chapter_gaps = self._chapter_gaps(covered)
        report.verse_gaps = self._verse_gaps(layout)

        if baseline:
            report.baseline_source = baseline.source
            report.verse_count_anomalies = self._anomalies(layout, nonempty, baseline)

        report.unresolved_tokens = [
            UnresolvedToken(token, result.reason, resolved.unresolved_counts.get(token, 0),
                            result.candidates)
            for token, result in resolved.unresolved.items()
        ]
        report.fuzzy_resolutions = [
            FuzzyResolution(token, result.canonical_book_id, result.score, result.matched)
            for token, result in resolved.resolutions.items()
            if result.confidence == MatchConfidence.FUZZY
        ]

        logger.info(
            "Report for %s: %d verses, %d books, %d duplicate assignments, %d missing",
            version.code, report.total_verses, report.books_present,
            len(report.duplicate_book_assignments), len(report.missing_books),
        )
        return report

    @staticmethod
    def _duplicate_books(resolved: ResolvedSet) -> List[DuplicateBookAssignment]:
        tokens_by_book: Dict[int, List] = defaultdict(list)
        for token, result in resolved.resolutions.items():
            tokens_by_book[result.canonical_book_id].append(token)
        return [
            DuplicateBookAssignment(book_id, tuple(tokens))
            for book_id, tokens in sorted(tokens_by_book.items())
            if len(tokens) > 1
        ]

    def _chapter_gaps(self, covered: Dict[int, Set[int]]) -> List[ChapterGap]:
        gaps = []
        for book_id in sorted(covered):
            observed = covered[book_id]
            upper = max(observed)
            if book_id in self.registry:
                upper = max(upper, self.registry.by_id(book_id).expected_chapter_count or 0)
            missing = tuple(c for c in range(1, upper + 1) if c not in observed)
            if missing:
                gaps.append(ChapterGap(book_id, missing))
        return gaps

    @staticmethod
    def _verse_gaps(layout: Dict[int, Dict[int, List[int]]]) -> List[VerseGap]:
        gaps = []
        for book_id in sorted(layout):
            for chapter in sorted(layout[book_id]):
                observed = set(layout[book_id][chapter])
                missing = tuple(v for v in range(1, max(observed) + 1) if v not in observed)
                if missing:
                    gaps.append(VerseGap(book_id, chapter, missing))
        return gaps

    def _anomalies(
        self,
        layout: Dict[int, Dict[int, List[int]]],
        nonempty: Dict[Tuple[int, int], Set[int]],
        baseline: VerseBaseline,
    ) -> List[VerseCountAnomaly]:
        anomalies = []
        for book_id in sorted(layout):
            for chapter in sorted(layout[book_id]):
                expected = baseline.expected(book_id, chapter)
                if expected is None:
                    continue
                observed = len(nonempty.get((book_id, chapter), ()))
                if abs(observed - expected) > self.verse_count_tolerance:
                    anomalies.append(VerseCountAnomaly(book_id, chapter, observed, expected))
        return anomalies
