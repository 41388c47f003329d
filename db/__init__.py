"""
LECTIO - Database Module

Persistence for committed verses, version import state and reports.

Components:
- interfaces: the VerseStore contract the core consumes
- models: SQLAlchemy ORM tables
- store: SqlVerseStore for PostgreSQL and SQLite
"""
from db.interfaces import VerseFilter, VerseStore
from db.models import Base, ReportRow, VerseRow, VersionRow
from db.store import SqlVerseStore, build_engine

__all__ = [
    "VerseFilter",
    "VerseStore",
    "Base",
    "ReportRow",
    "VerseRow",
    "VersionRow",
    "SqlVerseStore",
    "build_engine",
]
