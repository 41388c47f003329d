"""
LECTIO - Dialect Parser

Streams (book token, chapter, verse, text) tuples out of a source XML
document in document order. The parser knows nothing about canonical books;
book tokens are passed through exactly as the source spells them (numeric
tokens become ints).

Parsing is lazy and restartable: every iteration over a ParsedDocument
re-reads the source, so the same bytes always yield the same sequence.
"""
import io
import logging
import os
import xml.etree.ElementTree as ET
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, FrozenSet, Iterator, Optional, Sequence, Union

from core.errors import MalformedDocumentError, MalformedReferenceError
from data.schemas import RawVerse, SourceToken
from integrations.dialects import DialectSpec, get_dialect

logger = logging.getLogger("lectio.integrations.xml_parser")

Source = Union[str, os.PathLike, bytes, BinaryIO]


def _local(tag: str) -> str:
    """Strip an XML namespace: '{uri}verse' -> 'verse'."""
    return tag.rsplit("}", 1)[-1] if "}" in tag else tag


def _flatten_text(elem: ET.Element, excluded: FrozenSet[str]) -> str:
    parts = [elem.text or ""]
    for child in elem:
        if _local(child.tag) not in excluded:
            parts.append(_flatten_text(child, excluded))
        parts.append(child.tail or "")
    return "".join(parts)


class ParsedDocument:
    """Restartable iterable of RawVerse for one source."""

    def __init__(self, parser: "DialectParser", source: Source):
        self._parser = parser
        self._source = source
        self._stream_start: Optional[int] = None

        if isinstance(source, (str, os.PathLike)):
            self.name = str(source)
        elif isinstance(source, (bytes, bytearray)):
            self.name = "<bytes>"
        elif hasattr(source, "read"):
            if not (hasattr(source, "seekable") and source.seekable()):
                raise TypeError("stream sources must be seekable to be re-read")
            self._stream_start = source.tell()
            self.name = getattr(source, "name", "<stream>")
        else:
            raise TypeError(f"Unsupported source type: {type(source).__name__}")

    @property
    def dialect(self) -> DialectSpec:
        return self._parser.dialect

    @contextmanager
    def _open(self) -> Iterator[BinaryIO]:
        if isinstance(self._source, (str, os.PathLike)):
            with open(Path(self._source), "rb") as fh:
                yield fh
        elif isinstance(self._source, (bytes, bytearray)):
            yield io.BytesIO(self._source)
        else:
            self._source.seek(self._stream_start)
            yield self._source

    def __iter__(self) -> Iterator[RawVerse]:
        with self._open() as stream:
            yield from self._parser.iter_verses(stream, self.name)

    def __repr__(self) -> str:
        return f"ParsedDocument({self.name!r}, dialect={self.dialect.name!r})"


class DialectParser:
    """
    Parser for one dialect.

    Usage:
        parser = DialectParser("zefania")
        for raw in parser.parse("AfrikaansBible.xml"):
            ...

    Errors (parsing stops at the first one):
    - MalformedDocumentError: XML is not well-formed, or a chapter/verse
      element appears outside its book/chapter
    - MalformedReferenceError: a chapter/verse number is missing,
      non-numeric or not positive, or a book element carries no token
    """

    def __init__(self, dialect: Union[str, DialectSpec]):
        self.dialect = get_dialect(dialect) if isinstance(dialect, str) else dialect

    def parse(self, source: Source) -> ParsedDocument:
        return ParsedDocument(self, source)

    def iter_verses(self, stream: BinaryIO, name: str = "<stream>") -> Iterator[RawVerse]:
        d = self.dialect
        book_token: Optional[SourceToken] = None
        book_pos = ""
        chapter: Optional[int] = None
        chapter_pos = ""
        book_ordinal = chapter_ordinal = verse_ordinal = 0
        count = 0

        try:
            for event, elem in ET.iterparse(stream, events=("start", "end")):
                tag = _local(elem.tag)

                if event == "start":
                    if tag == d.book_tag:
                        book_ordinal += 1
                        if book_token is not None:
                            raise MalformedDocumentError(
                                f"{tag} nested inside another {tag}",
                                position=f"{book_pos}/{tag}#{book_ordinal}", source=name,
                            )
                        book_token = self._book_token(elem, f"{tag}#{book_ordinal}")
                        book_pos = f"{tag}[{book_token}]"
                        chapter_ordinal = 0
                    elif tag == d.chapter_tag:
                        chapter_ordinal += 1
                        if book_token is None:
                            raise MalformedDocumentError(
                                f"{tag} outside of any {d.book_tag}",
                                position=f"{tag}#{chapter_ordinal}", source=name,
                            )
                        if chapter is not None:
                            raise MalformedDocumentError(
                                f"{tag} nested inside another {tag}",
                                position=f"{chapter_pos}/{tag}#{chapter_ordinal}", source=name,
                            )
                        chapter = self._number(
                            elem, d.chapter_number_attrs, "chapter",
                            f"{book_pos}/{tag}#{chapter_ordinal}",
                        )
                        chapter_pos = f"{book_pos}/{tag}[{chapter}]"
                        verse_ordinal = 0
                    elif tag == d.verse_tag and chapter is None:
                        raise MalformedDocumentError(
                            f"{tag} outside of any {d.chapter_tag}",
                            position=f"{book_pos or tag}#{verse_ordinal + 1}", source=name,
                        )
                    continue

                if tag == d.verse_tag:
                    verse_ordinal += 1
                    number = self._number(
                        elem, d.verse_number_attrs, "verse",
                        f"{chapter_pos}/{tag}#{verse_ordinal}",
                    )
                    text = _flatten_text(elem, d.excluded_inline_tags).strip()
                    count += 1
                    yield RawVerse(book_token, chapter, number, text, f"{chapter_pos}/{tag}[{number}]")
                    elem.clear()
                elif tag == d.chapter_tag:
                    chapter = None
                    elem.clear()
                elif tag == d.book_tag:
                    book_token = None
                    elem.clear()
        except ET.ParseError as e:
            line, column = getattr(e, "position", (0, 0))
            raise MalformedDocumentError(
                f"Invalid XML in {name}: {e}",
                position=f"line {line}, column {column}",
                source=name,
                cause=e,
            ) from e

        logger.debug("Parsed %d verses from %s (%s)", count, name, d.name)

    @staticmethod
    def _first_attr(elem: ET.Element, names: Sequence[str]) -> Optional[str]:
        attrs = {_local(k): v for k, v in elem.attrib.items()}
        for attr in names:
            value = attrs.get(attr)
            if value is not None and value.strip():
                return value.strip()
        return None

    def _book_token(self, elem: ET.Element, position: str) -> SourceToken:
        value = self._first_attr(elem, self.dialect.book_token_attrs)
        if value is None:
            raise MalformedReferenceError(
                f"Book element has none of {', '.join(self.dialect.book_token_attrs)}",
                raw_value=None,
                position=position,
            )
        return int(value) if value.isdigit() else value

    def _number(self, elem: ET.Element, names: Sequence[str], kind: str, position: str) -> int:
        value = self._first_attr(elem, names)
        try:
            number = int(value) if value is not None else None
        except ValueError:
            number = None
        if number is None or number < 1:
            raise MalformedReferenceError(
                f"Invalid {kind} number {value!r}",
                raw_value=value,
                position=position,
            )
        return number
