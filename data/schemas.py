"""
LECTIO - Data Schemas

Normalized schemas for the import pipeline. Canonical books and alias
entries are immutable configuration; versions, verse records and reports
are per-run entities.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Tuple, Union
from enum import Enum
from datetime import datetime, timezone
import json


# =============================================================================
# ENUMS - Standard values across the system
# =============================================================================

class Testament(str, Enum):
    """Testament designation."""
    OLD_TESTAMENT = "OT"
    NEW_TESTAMENT = "NT"
    DEUTEROCANON = "DC"


class MatchConfidence(str, Enum):
    """How a source token was matched to a canonical book."""
    EXACT = "exact"
    FUZZY = "fuzzy"


class ImportState(str, Enum):
    """Per-version import state machine."""
    NOT_STARTED = "not_started"
    PARSING = "parsing"
    RESOLVING = "resolving"
    VERIFYING = "verifying"
    COMMITTED = "committed"
    FAILED = "failed"


# Legal forward moves; NOT_STARTED is reachable from anywhere (restart).
STATE_TRANSITIONS: Dict[ImportState, FrozenSet[ImportState]] = {
    ImportState.NOT_STARTED: frozenset({ImportState.PARSING}),
    ImportState.PARSING: frozenset({ImportState.RESOLVING, ImportState.FAILED}),
    ImportState.RESOLVING: frozenset({ImportState.VERIFYING, ImportState.FAILED}),
    ImportState.VERIFYING: frozenset({ImportState.COMMITTED, ImportState.FAILED}),
    ImportState.COMMITTED: frozenset(),
    ImportState.FAILED: frozenset(),
}

SourceToken = Union[str, int]


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


# =============================================================================
# CANON
# =============================================================================

@dataclass(frozen=True)
class CanonicalBook:
    """Version-independent identity of one book."""
    id: int
    order: int
    full_name: str
    short_name: str
    testament: Testament
    expected_chapter_count: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "order": self.order,
            "full_name": self.full_name,
            "short_name": self.short_name,
            "testament": self.testament.value,
            "expected_chapter_count": self.expected_chapter_count,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CanonicalBook":
        return cls(
            id=int(data["id"]),
            order=int(data.get("order", data["id"])),
            full_name=str(data["full_name"]),
            short_name=str(data.get("short_name", data["full_name"])),
            testament=Testament(data.get("testament", "OT")),
            expected_chapter_count=data.get("expected_chapter_count"),
        )


@dataclass(frozen=True)
class AliasEntry:
    """A source token known to identify one canonical book."""
    source_token: SourceToken
    canonical_book_id: int
    confidence: MatchConfidence = MatchConfidence.EXACT
    version_code: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source_token": self.source_token,
            "canonical_book_id": self.canonical_book_id,
            "confidence": self.confidence.value,
            "version_code": self.version_code,
        }


# =============================================================================
# PARSED / RESOLVED VERSES
# =============================================================================

@dataclass(frozen=True)
class RawVerse:
    """One verse as read from a source document, before reconciliation."""
    source_token: SourceToken
    chapter: int
    verse: int
    text: str
    position: str = ""

    def as_tuple(self) -> Tuple[SourceToken, int, int, str]:
        return (self.source_token, self.chapter, self.verse, self.text)


@dataclass(frozen=True)
class ResolvedVerse:
    """A raw verse mapped onto a canonical book."""
    raw: RawVerse
    canonical_book_id: int
    confidence: MatchConfidence

    @property
    def key(self) -> Tuple[int, int, int]:
        return (self.canonical_book_id, self.raw.chapter, self.raw.verse)


@dataclass(frozen=True)
class VerseRecord:
    """The unit of storage, unique on (book, chapter, verse, version)."""
    canonical_book_id: int
    chapter: int
    verse: int
    version_code: str
    text: str

    @property
    def key(self) -> Tuple[int, int, int, str]:
        return (self.canonical_book_id, self.chapter, self.verse, self.version_code)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "book_id": self.canonical_book_id,
            "chapter": self.chapter,
            "verse": self.verse,
            "version": self.version_code,
            "text": self.text,
        }


# =============================================================================
# VERSION
# =============================================================================

@dataclass
class StateChange:
    """One recorded transition of a version's import state."""
    state: ImportState
    at: str = field(default_factory=_utcnow)
    note: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"state": self.state.value, "at": self.at, "note": self.note}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StateChange":
        return cls(state=ImportState(data["state"]), at=data["at"], note=data.get("note"))


@dataclass
class Version:
    """
    One translation edition driven through one import run.

    ``required_books`` declares the coverage the edition promises; books in
    that set that end up with no verses block the commit. ``None`` means the
    edition makes no coverage promise (partial canons allowed).
    """
    code: str
    display_name: str = ""
    source_path: str = ""
    dialect: str = ""
    import_state: ImportState = ImportState.NOT_STARTED
    required_books: Optional[FrozenSet[int]] = None
    state_history: List[StateChange] = field(default_factory=list)
    last_error: Optional[Dict[str, Any]] = None
    failure_cause: Optional[str] = None

    def __post_init__(self):
        if not self.code or not self.code.strip():
            raise ValueError("version code is required")
        if not self.display_name:
            self.display_name = self.code
        if self.required_books is not None:
            self.required_books = frozenset(int(b) for b in self.required_books)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "display_name": self.display_name,
            "source_path": self.source_path,
            "dialect": self.dialect,
            "import_state": self.import_state.value,
            "required_books": sorted(self.required_books) if self.required_books is not None else None,
            "state_history": [c.to_dict() for c in self.state_history],
            "last_error": self.last_error,
            "failure_cause": self.failure_cause,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Version":
        required = data.get("required_books")
        return cls(
            code=data["code"],
            display_name=data.get("display_name", ""),
            source_path=data.get("source_path", ""),
            dialect=data.get("dialect", ""),
            import_state=ImportState(data.get("import_state", ImportState.NOT_STARTED.value)),
            required_books=frozenset(required) if required is not None else None,
            state_history=[StateChange.from_dict(c) for c in data.get("state_history", [])],
            last_error=data.get("last_error"),
            failure_cause=data.get("failure_cause"),
        )


# =============================================================================
# IMPORT REPORT
# =============================================================================

@dataclass(frozen=True)
class DuplicateBookAssignment:
    """Distinct source tokens that resolved to the same canonical book."""
    canonical_book_id: int
    source_tokens: Tuple[SourceToken, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {"canonical_book_id": self.canonical_book_id, "source_tokens": list(self.source_tokens)}


@dataclass(frozen=True)
class ChapterGap:
    canonical_book_id: int
    missing_chapters: Tuple[int, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {"canonical_book_id": self.canonical_book_id, "missing_chapters": list(self.missing_chapters)}


@dataclass(frozen=True)
class VerseGap:
    canonical_book_id: int
    chapter: int
    missing_verses: Tuple[int, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "canonical_book_id": self.canonical_book_id,
            "chapter": self.chapter,
            "missing_verses": list(self.missing_verses),
        }


@dataclass(frozen=True)
class VerseCountAnomaly:
    canonical_book_id: int
    chapter: int
    observed: int
    expected: int

    @property
    def delta(self) -> int:
        return self.observed - self.expected

    def to_dict(self) -> Dict[str, Any]:
        return {
            "canonical_book_id": self.canonical_book_id,
            "chapter": self.chapter,
            "observed": self.observed,
            "expected": self.expected,
            "delta": self.delta,
        }


@dataclass(frozen=True)
class FuzzyResolution:
    source_token: SourceToken
    canonical_book_id: int
    score: float
    matched_name: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source_token": self.source_token,
            "canonical_book_id": self.canonical_book_id,
            "score": round(self.score, 4),
            "matched_name": self.matched_name,
        }


@dataclass(frozen=True)
class UnresolvedToken:
    source_token: SourceToken
    reason: str
    verse_count: int = 0
    candidates: Tuple[int, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source_token": self.source_token,
            "reason": self.reason,
            "verse_count": self.verse_count,
            "candidates": list(self.candidates),
        }


@dataclass(frozen=True)
class VerseKey:
    """A (book, chapter, verse) location inside one version."""
    canonical_book_id: int
    chapter: int
    verse: int

    def to_dict(self) -> Dict[str, Any]:
        return {"canonical_book_id": self.canonical_book_id, "chapter": self.chapter, "verse": self.verse}


@dataclass
class ImportReport:
    """
    Completeness and conflict findings for one version.

    Pure data: whether a finding blocks the commit is decided by the
    transactioner's CommitPolicy.
    """
    version_code: str
    duplicate_book_assignments: List[DuplicateBookAssignment] = field(default_factory=list)
    missing_books: List[int] = field(default_factory=list)
    missing_required_books: List[int] = field(default_factory=list)
    chapter_gaps: List[ChapterGap] = field(default_factory=list)
    verse_count_anomalies: List[VerseCountAnomaly] = field(default_factory=list)
    unresolved_tokens: List[UnresolvedToken] = field(default_factory=list)
    fuzzy_resolutions: List[FuzzyResolution] = field(default_factory=list)
    duplicate_verses: List[VerseKey] = field(default_factory=list)
    empty_verses: List[VerseKey] = field(default_factory=list)
    verse_gaps: List[VerseGap] = field(default_factory=list)
    total_verses: int = 0
    books_present: int = 0
    baseline_source: Optional[str] = None
    created_at: str = field(default_factory=_utcnow)

    @property
    def has_conflicts(self) -> bool:
        return bool(self.duplicate_book_assignments or self.duplicate_verses)

    @property
    def has_warnings(self) -> bool:
        return bool(
            self.chapter_gaps or self.verse_count_anomalies or self.fuzzy_resolutions
            or self.empty_verses or self.verse_gaps
        )

    def summary(self) -> Dict[str, int]:
        return {
            "total_verses": self.total_verses,
            "books_present": self.books_present,
            "duplicate_book_assignments": len(self.duplicate_book_assignments),
            "missing_books": len(self.missing_books),
            "missing_required_books": len(self.missing_required_books),
            "chapter_gaps": len(self.chapter_gaps),
            "verse_count_anomalies": len(self.verse_count_anomalies),
            "unresolved_tokens": len(self.unresolved_tokens),
            "fuzzy_resolutions": len(self.fuzzy_resolutions),
            "duplicate_verses": len(self.duplicate_verses),
            "empty_verses": len(self.empty_verses),
            "verse_gaps": len(self.verse_gaps),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version_code": self.version_code,
            "duplicate_book_assignments": [d.to_dict() for d in self.duplicate_book_assignments],
            "missing_books": list(self.missing_books),
            "missing_required_books": list(self.missing_required_books),
            "chapter_gaps": [g.to_dict() for g in self.chapter_gaps],
            "verse_count_anomalies": [a.to_dict() for a in self.verse_count_anomalies],
            "unresolved_tokens": [u.to_dict() for u in self.unresolved_tokens],
            "fuzzy_resolutions": [f.to_dict() for f in self.fuzzy_resolutions],
            "duplicate_verses": [k.to_dict() for k in self.duplicate_verses],
            "empty_verses": [k.to_dict() for k in self.empty_verses],
            "verse_gaps": [g.to_dict() for g in self.verse_gaps],
            "total_verses": self.total_verses,
            "books_present": self.books_present,
            "baseline_source": self.baseline_source,
            "created_at": self.created_at,
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ImportReport":
        def keys(items):
            return [VerseKey(i["canonical_book_id"], i["chapter"], i["verse"]) for i in items]

        return cls(
            version_code=data["version_code"],
            duplicate_book_assignments=[
                DuplicateBookAssignment(d["canonical_book_id"], tuple(d["source_tokens"]))
                for d in data.get("duplicate_book_assignments", [])
            ],
            missing_books=list(data.get("missing_books", [])),
            missing_required_books=list(data.get("missing_required_books", [])),
            chapter_gaps=[
                ChapterGap(g["canonical_book_id"], tuple(g["missing_chapters"]))
                for g in data.get("chapter_gaps", [])
            ],
            verse_count_anomalies=[
                VerseCountAnomaly(a["canonical_book_id"], a["chapter"], a["observed"], a["expected"])
                for a in data.get("verse_count_anomalies", [])
            ],
            unresolved_tokens=[
                UnresolvedToken(u["source_token"], u["reason"], u.get("verse_count", 0),
                                tuple(u.get("candidates", ())))
                for u in data.get("unresolved_tokens", [])
            ],
            fuzzy_resolutions=[
                FuzzyResolution(f["source_token"], f["canonical_book_id"], f["score"], f["matched_name"])
                for f in data.get("fuzzy_resolutions", [])
            ],
            duplicate_verses=keys(data.get("duplicate_verses", [])),
            empty_verses=keys(data.get("empty_verses", [])),
            verse_gaps=[
                VerseGap(g["canonical_book_id"], g["chapter"], tuple(g["missing_verses"]))
                for g in data.get("verse_gaps", [])
            ],
            total_verses=data.get("total_verses", 0),
            books_present=data.get("books_present", 0),
            baseline_source=data.get("baseline_source"),
            created_at=data.get("created_at", _utcnow()),
        )
