"""
LECTIO - SQLAlchemy ORM Models

Tables for committed verses, per-version import state and import reports.
Verse rows are unique on (book_id, chapter, verse, version).
"""
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    JSON, DateTime, Index, Integer, String, Text, UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class VerseRow(Base):
    """One committed verse of one version."""
    __tablename__ = "verses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    book_id: Mapped[int] = mapped_column(Integer)
    chapter: Mapped[int] = mapped_column(Integer)
    verse: Mapped[int] = mapped_column(Integer)
    version: Mapped[str] = mapped_column(String(32))
    text: Mapped[str] = mapped_column(Text)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        UniqueConstraint("book_id", "chapter", "verse", "version", name="uq_verses_key"),
        Index("ix_verses_version_book_chapter", "version", "book_id", "chapter"),
    )

    def __repr__(self) -> str:
        return f"<VerseRow {self.version} {self.book_id}:{self.chapter}:{self.verse}>"


class VersionRow(Base):
    """Import state of one version."""
    __tablename__ = "versions"

    code: Mapped[str] = mapped_column(String(32), primary_key=True)
    display_name: Mapped[str] = mapped_column(String(200))
    source_path: Mapped[str] = mapped_column(Text, default="")
    dialect: Mapped[str] = mapped_column(String(32), default="")
    import_state: Mapped[str] = mapped_column(String(32), index=True)
    # Full serialized Version (history, required books, last error)
    payload: Mapped[dict] = mapped_column(JSON)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<VersionRow {self.code}: {self.import_state}>"


class ReportRow(Base):
    """Latest ImportReport of one version."""
    __tablename__ = "import_reports"

    version: Mapped[str] = mapped_column(String(32), primary_key=True)
    payload: Mapped[dict] = mapped_column(JSON)
    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime, server_default=func.now())
