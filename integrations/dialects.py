"""
LECTIO - XML Dialects

The closed set of source XML conventions the parser understands. A dialect
names the book/chapter/verse elements and the attributes that carry the
book token and the chapter/verse numbers; everything else in a document is
container or metadata and is skipped.

Dialects are chosen explicitly by name. Documents are never sniffed.
"""
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Tuple

from core.errors import UnknownDialectError


@dataclass(frozen=True)
class DialectSpec:
    """Element and attribute names for one XML dialect."""
    name: str
    book_tag: str
    chapter_tag: str
    verse_tag: str
    # First attribute present wins
    book_token_attrs: Tuple[str, ...]
    chapter_number_attrs: Tuple[str, ...]
    verse_number_attrs: Tuple[str, ...]
    # Inline children whose text is not verse text (footnotes, cross refs)
    excluded_inline_tags: FrozenSet[str] = frozenset()
    description: str = ""


ZEFANIA = DialectSpec(
    name="zefania",
    book_tag="BIBLEBOOK",
    chapter_tag="CHAPTER",
    verse_tag="VERS",
    book_token_attrs=("bname", "bnumber"),
    chapter_number_attrs=("cnumber",),
    verse_number_attrs=("vnumber",),
    excluded_inline_tags=frozenset({"NOTE", "XREF"}),
    description="XMLBIBLE / BIBLEBOOK[bname|bnumber] / CHAPTER[cnumber] / VERS[vnumber]",
)

BEBLIA = DialectSpec(
    name="beblia",
    book_tag="book",
    chapter_tag="chapter",
    verse_tag="verse",
    book_token_attrs=("number", "name"),
    chapter_number_attrs=("number",),
    verse_number_attrs=("number",),
    description="bible / testament / book[number] / chapter[number] / verse[number]",
)

OSIS_LITE = DialectSpec(
    name="osis-lite",
    book_tag="book",
    chapter_tag="chapter",
    verse_tag="verse",
    book_token_attrs=("name", "code"),
    chapter_number_attrs=("n",),
    verse_number_attrs=("n",),
    excluded_inline_tags=frozenset({"note"}),
    description="book[name|code] / chapter[n] / verse[n]",
)

DIALECTS: Dict[str, DialectSpec] = {d.name: d for d in (ZEFANIA, BEBLIA, OSIS_LITE)}


def supported_dialects() -> List[str]:
    return sorted(DIALECTS)


def get_dialect(name: str) -> DialectSpec:
    """Look up a dialect by name (case-insensitive)."""
    try:
        return DIALECTS[name.strip().lower()]
    except KeyError:
        raise UnknownDialectError(name, supported_dialects()) from None
