"""
Builders for small source documents used across the test suite.
"""
from typing import Dict, List, Tuple

# book token -> {chapter: [(verse, text), ...]}
BookLayout = Dict[str, Dict[int, List[Tuple[int, str]]]]


def zefania_xml(books: BookLayout, attr: str = "bname") -> bytes:
    """Build a small Zefania document."""
    parts = ['<?xml version="1.0" encoding="utf-8"?>', '<XMLBIBLE biblename="test">']
    for token, chapters in books.items():
        parts.append(f'<BIBLEBOOK {attr}="{token}">')
        for chapter, verses in chapters.items():
            parts.append(f'<CHAPTER cnumber="{chapter}">')
            for verse, text in verses:
                parts.append(f'<VERS vnumber="{verse}">{text}</VERS>')
            parts.append("</CHAPTER>")
        parts.append("</BIBLEBOOK>")
    parts.append("</XMLBIBLE>")
    return "\n".join(parts).encode("utf-8")


def chapter_of(count: int, prefix: str = "Verse") -> List[Tuple[int, str]]:
    return [(n, f"{prefix} {n}") for n in range(1, count + 1)]
