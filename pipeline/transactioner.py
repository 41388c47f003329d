"""
LECTIO - Import Transactioner

Drives one version through

    NOT_STARTED -> PARSING -> RESOLVING -> VERIFYING -> COMMITTED

with FAILED reachable from the three working states and a restart from
NOT_STARTED allowed at any time. Every transition is persisted.

The commit gate runs on the complete resolved set before the first write.
Writes are batched idempotent upserts retried on TransientStoreError; after
the last batch, rows of earlier runs that are no longer in the source are
pruned and the stored count is checked against what was written.
"""
import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, replace
from itertools import islice
from typing import Any, Dict, Iterable, Iterator, List, Optional

from core.errors import (
    ErrorContext,
    ImportCancelledError,
    ImportInProgressError,
    IncompleteImportError,
    InvalidStateTransitionError,
    LectioError,
    StoreError,
    VerificationError,
)
from config import ImportConfig
from core.resilience import RetryConfig, RetryPolicy
from data.cleaning import TextCleaner
from data.registry import CanonicalBookRegistry
from data.schemas import (
    STATE_TRANSITIONS,
    ImportReport,
    ImportState,
    StateChange,
    Version,
    VerseRecord,
)
from db.interfaces import VerseFilter, VerseStore
from integrations.xml_parser import DialectParser, Source
from observability.logging import LogContext
from observability.metrics import (
    record_fuzzy_resolutions,
    record_import_outcome,
    record_store_retries,
    timed_stage,
)
from observability.tracing import stage_span
from pipeline.detector import CompletenessDetector, VerseBaseline
from pipeline.resolver import AliasResolver

logger = logging.getLogger("lectio.pipeline.transactioner")

DEFAULT_BATCH_SIZE = 500
DEFAULT_WRITER_LOCK_TIMEOUT = 60.0


# =============================================================================
# STATE MACHINE
# =============================================================================

def can_transition(current: ImportState, requested: ImportState) -> bool:
    return requested == ImportState.NOT_STARTED or requested in STATE_TRANSITIONS[current]


def advance(version: Version, requested: ImportState, note: Optional[str] = None) -> Version:
    """Apply one state change to ``version`` in memory."""
    if not can_transition(version.import_state, requested):
        raise InvalidStateTransitionError(version.code, version.import_state, requested)
    version.import_state = requested
    version.state_history.append(StateChange(requested, note=note))
    return version


# =============================================================================
# POLICY, CANCELLATION, RESULT
# =============================================================================

@dataclass
class CommitPolicy:
    """Which report findings block the commit. Everything else is a warning."""
    block_on_duplicate_books: bool = True
    block_on_duplicate_verses: bool = True
    block_on_unresolved: bool = True
    block_on_missing_required: bool = True
    block_on_any_missing: bool = False
    block_on_fuzzy: bool = False
    block_on_chapter_gaps: bool = False
    block_on_anomalies: bool = False

    def blocking_reasons(self, report: ImportReport) -> List[str]:
        reasons = []
        if self.block_on_duplicate_books and report.duplicate_book_assignments:
            reasons.append(
                "duplicate book assignments: " + "; ".join(
                    f"{d.canonical_book_id} <- {', '.join(map(str, d.source_tokens))}"
                    for d in report.duplicate_book_assignments
                )
            )
        if self.block_on_duplicate_verses and report.duplicate_verses:
            reasons.append(f"{len(report.duplicate_verses)} duplicate verse keys")
        if self.block_on_unresolved and report.unresolved_tokens:
            reasons.append(
                "unresolved book tokens: "
                + ", ".join(f"{u.source_token} ({u.reason})" for u in report.unresolved_tokens)
            )
        if self.block_on_missing_required and report.missing_required_books:
            reasons.append(f"missing required books: {report.missing_required_books}")
        if self.block_on_any_missing and report.missing_books:
            reasons.append(f"{len(report.missing_books)} missing books")
        if self.block_on_fuzzy and report.fuzzy_resolutions:
            reasons.append(f"{len(report.fuzzy_resolutions)} fuzzy book resolutions")
        if self.block_on_chapter_gaps and report.chapter_gaps:
            reasons.append(f"{len(report.chapter_gaps)} books with chapter gaps")
        if self.block_on_anomalies and report.verse_count_anomalies:
            reasons.append(f"{len(report.verse_count_anomalies)} verse count anomalies")
        return reasons


class CancellationToken:
    """Cooperative cancellation, checked between stages and between write batches."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, version_code: str, stage: str) -> None:
        if self._event.is_set():
            raise ImportCancelledError(version_code, stage)


@dataclass
class ImportResult:
    """Outcome of a committed import."""
    version: Version
    report: ImportReport
    records_written: int = 0
    batches: int = 0
    retries: int = 0
    pruned: int = 0
    duration: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version.code,
            "state": self.version.import_state.value,
            "records_written": self.records_written,
            "batches": self.batches,
            "retries": self.retries,
            "pruned": self.pruned,
            "duration_seconds": round(self.duration, 3),
            "report": self.report.summary(),
        }


# =============================================================================
# SINGLE WRITER PER VERSION
# =============================================================================

_writer_locks: Dict[str, threading.Lock] = {}
_writer_locks_guard = threading.Lock()


@contextmanager
def writer_lock(version_code: str, timeout: float) -> Iterator[None]:
    """Hold the process-wide import lock of one version."""
    with _writer_locks_guard:
        lock = _writer_locks.setdefault(version_code, threading.Lock())
    if not lock.acquire(timeout=timeout):
        raise ImportInProgressError(version_code, timeout)
    try:
        yield
    finally:
        lock.release()


def _batches(items: List[VerseRecord], size: int) -> Iterator[List[VerseRecord]]:
    it = iter(items)
    while True:
        batch = list(islice(it, size))
        if not batch:
            return
        yield batch


# =============================================================================
# TRANSACTIONER
# =============================================================================

class ImportTransactioner:
    """
    Runs the import of one version at a time per version code.

    Usage:
        transactioner = ImportTransactioner(store, registry, resolver)
        result = transactioner.run(Version("AFR53", dialect="zefania"), "afr53.xml")
    """

    def __init__(
        self,
        store: VerseStore,
        registry: CanonicalBookRegistry,
        resolver: AliasResolver,
        detector: Optional[CompletenessDetector] = None,
        cleaner: Optional[TextCleaner] = None,
        policy: Optional[CommitPolicy] = None,
        retry_policy: Optional[RetryPolicy] = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
        writer_lock_timeout: float = DEFAULT_WRITER_LOCK_TIMEOUT,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self.store = store
        self.registry = registry
        self.resolver = resolver
        self.detector = detector or CompletenessDetector(registry)
        self.cleaner = cleaner or TextCleaner()
        self.policy = policy or CommitPolicy()
        self.retry = retry_policy or RetryPolicy(RetryConfig())
        self.batch_size = batch_size
        self.writer_lock_timeout = writer_lock_timeout

    @classmethod
    def from_config(
        cls,
        store: VerseStore,
        registry: CanonicalBookRegistry,
        resolver: AliasResolver,
        config: ImportConfig,
        policy: Optional[CommitPolicy] = None,
    ) -> "ImportTransactioner":
        retry = RetryPolicy(RetryConfig(
            max_attempts=config.max_attempts,
            base_delay=config.retry_base_delay,
            max_delay=max(config.retry_max_delay, config.retry_base_delay),
            jitter=config.retry_jitter,
        ))
        return cls(
            store,
            registry,
            resolver,
            detector=CompletenessDetector(registry, config.verse_count_tolerance),
            policy=policy,
            retry_policy=retry,
            batch_size=config.batch_size,
            writer_lock_timeout=config.writer_lock_timeout,
        )

    def run(
        self,
        version: Version,
        source: Source,
        baseline: Optional[VerseBaseline] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> ImportResult:
        """
        Import ``source`` as ``version``.

        Raises IncompleteImportError when the commit policy blocks,
        ImportCancelledError when cancelled, FatalStoreError when the retry
        ceiling is exceeded; in each case the version is left FAILED with
        the cause recorded. Parse and configuration errors also fail the
        version and propagate unchanged. If even the first state save fails
        the version stays NOT_STARTED, still carrying failure_cause and
        last_error.
        """
        cancel = cancel or CancellationToken()

        with writer_lock(version.code, self.writer_lock_timeout), LogContext(version=version.code):
            started = time.perf_counter()
            version.last_error = None
            version.failure_cause = None

            try:
                self._transition(version, ImportState.NOT_STARTED, "run started")
                result = self._run_stages(version, source, baseline, cancel)
            except ImportCancelledError as e:
                self._fail(version, e, "cancelled")
                raise
            except IncompleteImportError as e:
                self._fail(version, e, "blocked")
                raise
            except LectioError as e:
                self._fail(version, e, e.error_code.lower())
                raise
            except Exception as e:
                self._fail(version, e, "unexpected")
                raise

            result.duration = time.perf_counter() - started
            logger.info(
                "Committed %s: %d verses in %d batches (%d retries, %d pruned) in %.2fs",
                version.code, result.records_written, result.batches,
                result.retries, result.pruned, result.duration,
            )
            record_import_outcome(version.code, "committed", result.records_written)
            return result

    def _run_stages(
        self,
        version: Version,
        source: Source,
        baseline: Optional[VerseBaseline],
        cancel: CancellationToken,
    ) -> ImportResult:
        code = version.code

        self._transition(version, ImportState.PARSING)
        cancel.raise_if_cancelled(code, "parsing")
        with stage_span("parsing", code, dialect=version.dialect) as span, \
                timed_stage("parsing", code) as ctx:
            document = DialectParser(version.dialect).parse(source)
            raw = [replace(r, text=self.cleaner.clean(r.text, code)) for r in document]
            span.set_attribute("verses.parsed", len(raw))
            ctx["status"] = "ok"
        logger.info("Parsed %d verses for %s from %s", len(raw), code, document.name)

        self._transition(version, ImportState.RESOLVING)
        cancel.raise_if_cancelled(code, "resolving")
        with stage_span("resolving", code) as span, timed_stage("resolving", code) as ctx:
            resolved = self.resolver.resolve_verses(raw, code)
            span.set_attribute("tokens.distinct", len(resolved.results))
            span.set_attribute("tokens.unresolved", len(resolved.unresolved))
            ctx["status"] = "ok"

        self._transition(version, ImportState.VERIFYING)
        cancel.raise_if_cancelled(code, "verifying")
        with stage_span("verifying", code) as span, timed_stage("verifying", code) as ctx:
            report = self.detector.detect(version, resolved, baseline)
            self._store_call(self.store.save_report, report, operation="save_report", version_code=code)
            record_fuzzy_resolutions(code, len(report.fuzzy_resolutions))

            reasons = self.policy.blocking_reasons(report)
            span.set_attribute("gate.blocked", bool(reasons))
            if reasons:
                ctx["status"] = "blocked"
                raise IncompleteImportError(
                    f"Import of {code} blocked: {'; '.join(reasons)}",
                    report=report,
                    reasons=reasons,
                )
            for warning in self._warnings(report):
                logger.warning("%s: %s", code, warning)
            ctx["status"] = "ok"

        records = self._records(version, resolved.verses)
        result = ImportResult(version=version, report=report)

        with stage_span("writing", code, records=len(records)), timed_stage("writing", code) as ctx:
            for batch in _batches(records, self.batch_size):
                cancel.raise_if_cancelled(code, "writing")
                self._store_call(self.store.upsert, batch, operation="upsert",
                                 version_code=code, result=result)
                result.batches += 1
                result.records_written += len(batch)

            keep = {(r.canonical_book_id, r.chapter, r.verse) for r in records}
            result.pruned = self._store_call(self.store.delete_stale, code, keep,
                                             operation="delete_stale", version_code=code,
                                             result=result)
            stored = self._store_call(self.store.count, VerseFilter.for_version(code),
                                      operation="count", version_code=code, result=result)
            if stored != len(records):
                raise VerificationError(code, len(records), stored)
            ctx["status"] = "ok"

        self._transition(version, ImportState.COMMITTED,
                         f"{result.records_written} verses committed")
        return result

    @staticmethod
    def _records(version: Version, verses) -> List[VerseRecord]:
        """Committable records: empty text is never stored, last duplicate wins."""
        by_key: Dict[tuple, VerseRecord] = {}
        for rv in verses:
            if not rv.raw.text:
                continue
            record = VerseRecord(rv.canonical_book_id, rv.raw.chapter, rv.raw.verse,
                                 version.code, rv.raw.text)
            by_key[record.key] = record
        return list(by_key.values())

    @staticmethod
    def _warnings(report: ImportReport) -> Iterable[str]:
        if report.chapter_gaps:
            yield f"{len(report.chapter_gaps)} books with chapter gaps"
        if report.verse_gaps:
            yield f"{len(report.verse_gaps)} chapters with verse gaps"
        if report.verse_count_anomalies:
            yield f"{len(report.verse_count_anomalies)} verse count anomalies ({report.baseline_source})"
        if report.empty_verses:
            yield f"{len(report.empty_verses)} empty verses skipped"
        for fuzzy in report.fuzzy_resolutions:
            yield (f"book token {fuzzy.source_token!r} fuzzily resolved to "
                   f"{fuzzy.canonical_book_id} via {fuzzy.matched_name!r} ({fuzzy.score:.2f})")

    def _store_call(self, func, *args, operation: str, version_code: str,
                    result: Optional[ImportResult] = None):
        outcome = self.retry.call(func, *args, operation=operation, version_code=version_code)
        if outcome.retries:
            record_store_retries(version_code, operation, outcome.retries)
            if result is not None:
                result.retries += outcome.retries
        return outcome.value

    def _transition(self, version: Version, requested: ImportState, note: Optional[str] = None) -> None:
        advance(version, requested, note)
        self._store_call(self.store.save_version, version,
                         operation="save_version", version_code=version.code)
        logger.debug("%s -> %s", version.code, requested.value)

    def _fail(self, version: Version, error: BaseException, cause: str) -> None:
        version.failure_cause = cause
        if isinstance(error, LectioError):
            if error.context is None:
                error.context = ErrorContext.from_current_span("import", "pipeline.transactioner")
            error.context.version_code = error.context.version_code or version.code
            version.last_error = error.with_context(failure_cause=cause).to_dict()
        else:
            version.last_error = {"error_code": type(error).__name__, "message": str(error)}

        logger.error("Import of %s failed (%s): %s", version.code, cause, error)
        record_import_outcome(version.code, cause)

        if not can_transition(version.import_state, ImportState.FAILED):
            return
        try:
            self._transition(version, ImportState.FAILED, cause)
        except StoreError:
            # The original error is what the caller needs; the state stays FAILED in memory
            logger.exception("Could not persist FAILED state of %s", version.code)
