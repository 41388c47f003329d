"""
Custom Hypothesis Strategies for Scripture Sources

Domain-specific strategies for generating book layouts, book tokens and
verse texts.
"""
from hypothesis import strategies as st

from data.canon import PROTESTANT_CANON

BOOK_NAMES = [name for name, _, _, _ in PROTESTANT_CANON]
SHORT_NAMES = [short for _, short, _, _ in PROTESTANT_CANON]

TOKEN_ALPHABET = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJ 0123._-"


def verse_text_strategy():
    """Verse text that survives XML escaping."""
    return st.text(
        alphabet=st.characters(
            whitelist_categories=("Lu", "Ll", "Nd", "Zs"),
            whitelist_characters=".,;:!?'-",
        ),
        min_size=1,
        max_size=40,
    ).filter(lambda s: s.strip())


@st.composite
def chapter_strategy(draw, max_verses=12):
    """Ascending, distinct verse numbers with text."""
    numbers = draw(st.sets(st.integers(min_value=1, max_value=max_verses), min_size=1, max_size=max_verses))
    return [(n, draw(verse_text_strategy())) for n in sorted(numbers)]


@st.composite
def book_layout_strategy(draw, max_books=3, max_chapters=4):
    """
    {book name: {chapter: [(verse, text), ...]}} with distinct canonical
    book names, so the layout never has duplicate assignments.
    """
    names = draw(st.lists(st.sampled_from(BOOK_NAMES), min_size=1, max_size=max_books, unique=True))
    layout = {}
    for name in names:
        chapters = draw(st.sets(st.integers(min_value=1, max_value=max_chapters), min_size=1,
                                max_size=max_chapters))
        layout[name] = {c: draw(chapter_strategy()) for c in sorted(chapters)}
    return layout


def book_token_strategy():
    """Arbitrary book tokens, mostly ASCII with separators and digits."""
    return st.one_of(
        st.sampled_from(BOOK_NAMES),
        st.sampled_from(SHORT_NAMES),
        st.text(alphabet=TOKEN_ALPHABET, max_size=20),
        st.integers(min_value=0, max_value=80),
    )
