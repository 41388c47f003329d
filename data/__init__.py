"""
LECTIO - Data Module

Schemas and curated reference data shared by every stage.

Architecture:
- schemas.py: dataclass entities (books, aliases, versions, verses, reports)
- canon.py: the default 66-book canon
- aliases.py: curated synonyms and localized book names
- registry.py: the immutable Canonical Book Registry
- cleaning.py: per-edition verse text repair
"""
from data.schemas import (
    Testament,
    MatchConfidence,
    ImportState,
    STATE_TRANSITIONS,
    CanonicalBook,
    AliasEntry,
    RawVerse,
    ResolvedVerse,
    VerseRecord,
    StateChange,
    Version,
    DuplicateBookAssignment,
    ChapterGap,
    VerseGap,
    VerseCountAnomaly,
    FuzzyResolution,
    UnresolvedToken,
    VerseKey,
    ImportReport,
)
from data.registry import CanonicalBookRegistry, default_registry
from data.cleaning import CleaningRule, TextCleaner
from data.aliases import localized_name

__all__ = [
    "Testament",
    "MatchConfidence",
    "ImportState",
    "STATE_TRANSITIONS",
    "CanonicalBook",
    "AliasEntry",
    "RawVerse",
    "ResolvedVerse",
    "VerseRecord",
    "StateChange",
    "Version",
    "DuplicateBookAssignment",
    "ChapterGap",
    "VerseGap",
    "VerseCountAnomaly",
    "FuzzyResolution",
    "UnresolvedToken",
    "VerseKey",
    "ImportReport",
    "CanonicalBookRegistry",
    "default_registry",
    "CleaningRule",
    "TextCleaner",
    "localized_name",
]
