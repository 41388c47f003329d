"""
LECTIO - SQL Verse Store

SQLAlchemy 2.0 implementation of VerseStore for PostgreSQL (production)
and SQLite (local runs and tests).

Writes use the dialect's INSERT .. ON CONFLICT DO UPDATE on the verse key,
so re-sending a batch after a partial failure converges to the same rows.
Driver errors are translated into the store error taxonomy: connection
and timeout failures become TransientStoreError, everything else StoreError.
"""
from contextlib import contextmanager, nullcontext
from itertools import islice
from typing import Any, Dict, Generator, Iterable, List, Optional, Set, Tuple
import logging
import threading

from sqlalchemy import Engine, create_engine, delete, func, select
from sqlalchemy import exc as sa_exc
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from config import DatabaseConfig
from core.errors import ErrorContext, StoreError, TransientStoreError
from data.schemas import ImportReport, Version, VerseRecord
from db.interfaces import VerseFilter, VerseKeyTuple, VerseStore
from db.models import Base, ReportRow, VerseRow, VersionRow

logger = logging.getLogger("lectio.db.store")

# Rows per statement; keeps SQLite under its bound-parameter limit
STATEMENT_CHUNK = 150

_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}

_TRANSIENT = (
    sa_exc.OperationalError,
    sa_exc.DisconnectionError,
    sa_exc.TimeoutError,
)


def chunked(iterable: Iterable, size: int):
    """Yield successive chunks from iterable."""
    it = iter(iterable)
    while True:
        chunk = list(islice(it, size))
        if not chunk:
            break
        yield chunk


def build_engine(config: DatabaseConfig) -> Engine:
    """
    Create an engine with bounded waits.

    SQLite in-memory databases share one connection across threads so every
    session sees the same data.
    """
    if config.is_sqlite:
        kwargs: Dict[str, Any] = {
            "connect_args": {"timeout": config.timeout, "check_same_thread": False},
            "echo": config.echo,
        }
        if ":memory:" in config.url or config.url.rstrip("/") == "sqlite:":
            kwargs["poolclass"] = StaticPool
        return create_engine(config.url, **kwargs)

    return create_engine(
        config.url,
        pool_size=config.pool_size,
        max_overflow=config.max_overflow,
        pool_timeout=config.timeout,
        pool_pre_ping=True,
        pool_recycle=1800,
        echo=config.echo,
        connect_args={
            "connect_timeout": config.timeout,
            "options": f"-c statement_timeout={config.timeout * 1000}",
        },
    )


class SqlVerseStore(VerseStore):
    """
    VerseStore on a SQLAlchemy engine.

    Usage:
        store = SqlVerseStore.from_config(get_config().database)
        store.create_tables()
        store.upsert(records)
    """

    def __init__(self, engine: Engine):
        dialect = engine.dialect.name
        if dialect not in _INSERTS:
            raise StoreError(f"Unsupported database dialect '{dialect}'", operation="init")
        self._engine = engine
        self._insert = _INSERTS[dialect]
        self._session_factory = sessionmaker(engine, expire_on_commit=False)
        # One shared connection: sessions must not interleave across threads
        self._serial = threading.RLock() if isinstance(engine.pool, StaticPool) else None
        logger.info("Verse store ready (%s)", dialect)

    @classmethod
    def from_config(cls, config: Optional[DatabaseConfig] = None) -> "SqlVerseStore":
        return cls(build_engine(config or DatabaseConfig()))

    @classmethod
    def from_url(cls, url: str) -> "SqlVerseStore":
        return cls.from_config(DatabaseConfig(url=url))

    @property
    def engine(self) -> Engine:
        return self._engine

    def create_tables(self) -> None:
        """Create all tables that do not exist yet."""
        with self._translate("create_tables"):
            Base.metadata.create_all(self._engine)
        logger.info("Database tables created")

    def close(self) -> None:
        self._engine.dispose()
        logger.info("Database connections closed")

    @contextmanager
    def _translate(self, operation: str) -> Generator[None, None, None]:
        try:
            yield
        except _TRANSIENT as e:
            raise TransientStoreError(f"{operation} failed: {e.__class__.__name__}",
                                      operation=operation, cause=e,
                                      context=ErrorContext.from_current_span(operation, "db.store")) from e
        except sa_exc.SQLAlchemyError as e:
            raise StoreError(f"{operation} failed: {e}", operation=operation, cause=e,
                             context=ErrorContext.from_current_span(operation, "db.store")) from e

    @contextmanager
    def session(self, operation: str = "session") -> Generator[Session, None, None]:
        """Transactional session; driver errors are translated on the way out."""
        with self._serial or nullcontext(), self._translate(operation):
            with self._session_factory() as session:
                try:
                    yield session
                    session.commit()
                except Exception:
                    session.rollback()
                    raise

    # -------------------------------------------------------------------------
    # Verses
    # -------------------------------------------------------------------------

    def upsert(self, records: Iterable[VerseRecord]) -> int:
        rows = [
            {
                "book_id": r.canonical_book_id,
                "chapter": r.chapter,
                "verse": r.verse,
                "version": r.version_code,
                "text": r.text,
            }
            for r in records
        ]
        if not rows:
            return 0

        with self.session("upsert") as session:
            for chunk in chunked(rows, STATEMENT_CHUNK):
                stmt = self._insert(VerseRow).values(chunk)
                stmt = stmt.on_conflict_do_update(
                    index_elements=["book_id", "chapter", "verse", "version"],
                    set_={
                        "text": stmt.excluded.text,
                        "updated_at": func.now(),
                    },
                )
                session.execute(stmt)
        return len(rows)

    @staticmethod
    def _where(stmt, f: VerseFilter):
        if f.version_code is not None:
            stmt = stmt.where(VerseRow.version == f.version_code)
        if f.canonical_book_id is not None:
            stmt = stmt.where(VerseRow.book_id == f.canonical_book_id)
        if f.chapter is not None:
            stmt = stmt.where(VerseRow.chapter == f.chapter)
        if f.verse is not None:
            stmt = stmt.where(VerseRow.verse == f.verse)
        if f.verse_from is not None:
            stmt = stmt.where(VerseRow.verse >= f.verse_from)
        if f.verse_to is not None:
            stmt = stmt.where(VerseRow.verse <= f.verse_to)
        return stmt

    def query(self, verse_filter: VerseFilter) -> List[VerseRecord]:
        stmt = self._where(select(VerseRow), verse_filter).order_by(
            VerseRow.book_id, VerseRow.chapter, VerseRow.verse, VerseRow.version
        )
        with self.session("query") as session:
            return [
                VerseRecord(row.book_id, row.chapter, row.verse, row.version, row.text)
                for row in session.scalars(stmt)
            ]

    def count(self, verse_filter: VerseFilter) -> int:
        stmt = self._where(select(func.count()).select_from(VerseRow), verse_filter)
        with self.session("count") as session:
            return int(session.scalar(stmt) or 0)

    def delete_stale(self, version_code: str, keep_keys: Set[VerseKeyTuple]) -> int:
        with self.session("delete_stale") as session:
            existing = session.execute(
                select(VerseRow.id, VerseRow.book_id, VerseRow.chapter, VerseRow.verse)
                .where(VerseRow.version == version_code)
            ).all()
            stale = [row.id for row in existing if (row.book_id, row.chapter, row.verse) not in keep_keys]
            for chunk in chunked(stale, STATEMENT_CHUNK):
                session.execute(delete(VerseRow).where(VerseRow.id.in_(chunk)))
        if stale:
            logger.info("Pruned %d stale verses of %s", len(stale), version_code)
        return len(stale)

    def chapter_verse_counts(self, version_code: str) -> Dict[Tuple[int, int], int]:
        stmt = (
            select(VerseRow.book_id, VerseRow.chapter, func.count())
            .where(VerseRow.version == version_code)
            .group_by(VerseRow.book_id, VerseRow.chapter)
        )
        with self.session("chapter_verse_counts") as session:
            return {(book, chapter): int(n) for book, chapter, n in session.execute(stmt)}

    def versions_with_verses(self) -> List[str]:
        stmt = select(VerseRow.version).distinct().order_by(VerseRow.version)
        with self.session("versions_with_verses") as session:
            return list(session.scalars(stmt))

    # -------------------------------------------------------------------------
    # Versions and reports
    # -------------------------------------------------------------------------

    def save_version(self, version: Version) -> None:
        payload = version.to_dict()
        with self.session("save_version") as session:
            row = session.get(VersionRow, version.code)
            if row is None:
                row = VersionRow(code=version.code)
                session.add(row)
            row.display_name = version.display_name
            row.source_path = version.source_path
            row.dialect = version.dialect
            row.import_state = version.import_state.value
            row.payload = payload

    def load_version(self, version_code: str) -> Optional[Version]:
        with self.session("load_version") as session:
            row = session.get(VersionRow, version_code)
            return Version.from_dict(row.payload) if row is not None else None

    def list_versions(self) -> List[Version]:
        with self.session("list_versions") as session:
            rows = session.scalars(select(VersionRow).order_by(VersionRow.code))
            return [Version.from_dict(row.payload) for row in rows]

    def save_report(self, report: ImportReport) -> None:
        with self.session("save_report") as session:
            row = session.get(ReportRow, report.version_code)
            if row is None:
                row = ReportRow(version=report.version_code)
                session.add(row)
            row.payload = report.to_dict()

    def load_report(self, version_code: str) -> Optional[ImportReport]:
        with self.session("load_report") as session:
            row = session.get(ReportRow, version_code)
            return ImportReport.from_dict(row.payload) if row is not None else None
