"""
LECTIO - Curated Alias Data

Synonyms and localized book names that source documents use instead of the
canonical English full names. Entries here are raw tokens keyed by canonical
full name; ``pipeline.resolver.AliasTable`` normalizes and indexes them.
"""
import json
from pathlib import Path
from typing import Dict, List, Optional, Union

from core.errors import ConfigError
from data.schemas import AliasEntry, MatchConfidence


# Version-agnostic spellings seen in source documents: token -> full name
DEFAULT_SYNONYMS: Dict[str, str] = {
    "Psalm": "Psalms",
    "Ps": "Psalms",
    "Psalter": "Psalms",
    "Song of Songs": "Song of Solomon",
    "Canticles": "Song of Solomon",
    "Canticle of Canticles": "Song of Solomon",
    "Qoheleth": "Ecclesiastes",
    "Revelation of John": "Revelation",
    "Revelations": "Revelation",
    "Apocalypse": "Revelation",
    "Judg": "Judges",
    "Jxg": "Judges",
    "Prov": "Proverbs",
    "Matt": "Matthew",
    "Phil": "Philippians",
    "Philem": "Philemon",
    "Acts of the Apostles": "Acts",
    "First Samuel": "1 Samuel",
    "Second Samuel": "2 Samuel",
    "First Kings": "1 Kings",
    "Second Kings": "2 Kings",
}

AFRIKAANS_BOOK_NAMES: Dict[str, str] = {
    "Genesis": "Genesis",
    "Exodus": "Eksodus",
    "Leviticus": "Levitikus",
    "Numbers": "Numeri",
    "Deuteronomy": "Deuteronomium",
    "Joshua": "Josua",
    "Judges": "Rigters",
    "Ruth": "Rut",
    "1 Samuel": "1 Samuel",
    "2 Samuel": "2 Samuel",
    "1 Kings": "1 Konings",
    "2 Kings": "2 Konings",
    "1 Chronicles": "1 Kronieke",
    "2 Chronicles": "2 Kronieke",
    "Ezra": "Esra",
    "Nehemiah": "Nehemia",
    "Esther": "Ester",
    "Job": "Job",
    "Psalms": "Psalms",
    "Proverbs": "Spreuke",
    "Ecclesiastes": "Prediker",
    "Song of Solomon": "Hooglied",
    "Isaiah": "Jesaja",
    "Jeremiah": "Jeremia",
    "Lamentations": "Klaagliedere",
    "Ezekiel": "Esegiël",
    "Daniel": "Daniël",
    "Hosea": "Hosea",
    "Joel": "Joël",
    "Amos": "Amos",
    "Obadiah": "Obadja",
    "Jonah": "Jona",
    "Micah": "Miga",
    "Nahum": "Nahum",
    "Habakkuk": "Habakuk",
    "Zephaniah": "Sefanja",
    "Haggai": "Haggai",
    "Zechariah": "Sagaria",
    "Malachi": "Maleagi",
    "Matthew": "Matteus",
    "Mark": "Markus",
    "Luke": "Lukas",
    "John": "Johannes",
    "Acts": "Handelinge",
    "Romans": "Romeine",
    "1 Corinthians": "1 Korintiërs",
    "2 Corinthians": "2 Korintiërs",
    "Galatians": "Galasiërs",
    "Ephesians": "Efesiërs",
    "Philippians": "Filippense",
    "Colossians": "Kolossense",
    "1 Thessalonians": "1 Tessalonisense",
    "2 Thessalonians": "2 Tessalonisense",
    "1 Timothy": "1 Timoteus",
    "2 Timothy": "2 Timoteus",
    "Titus": "Titus",
    "Philemon": "Filemon",
    "Hebrews": "Hebreërs",
    "James": "Jakobus",
    "1 Peter": "1 Petrus",
    "2 Peter": "2 Petrus",
    "1 John": "1 Johannes",
    "2 John": "2 Johannes",
    "3 John": "3 Johannes",
    "Jude": "Judas",
    "Revelation": "Openbaring",
}

# Versions whose sources and display names use a localized book-name table
LOCALIZED_VERSIONS: Dict[str, Dict[str, str]] = {
    "AFR53": AFRIKAANS_BOOK_NAMES,
    "AFR83": AFRIKAANS_BOOK_NAMES,
}


def localized_name(full_name: str, version_code: Optional[str]) -> str:
    """Display name of a book in a version's language, falling back to English."""
    names = LOCALIZED_VERSIONS.get(version_code or "")
    if not names:
        return full_name
    return names.get(full_name, full_name)


def load_alias_file(path: Union[str, Path]) -> List[AliasEntry]:
    """
    Read curated aliases from JSON.

    Format::

        {"default": {"Psalm": 19},
         "versions": {"AFR53": {"Psalms": 19}}}

    Every entry is EXACT; fuzzy matches are never curated.
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Cannot read alias file {path}: {e}", config_key="LECTIO_ALIAS_FILE",
                          cause=e) from e

    entries: List[AliasEntry] = []
    for token, book_id in data.get("default", {}).items():
        entries.append(AliasEntry(token, int(book_id), MatchConfidence.EXACT, None))
    for version_code, table in data.get("versions", {}).items():
        for token, book_id in table.items():
            entries.append(AliasEntry(token, int(book_id), MatchConfidence.EXACT, version_code))
    return entries
