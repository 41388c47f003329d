"""
LECTIO - Default Canon

The 66-book Protestant canon in reading order, with the short codes and
chapter counts used for completeness checks.
"""
from typing import List, Tuple

from data.schemas import CanonicalBook, Testament


# (full name, short name, testament, chapters)
PROTESTANT_CANON: List[Tuple[str, str, Testament, int]] = [
    ("Genesis", "Gen", Testament.OLD_TESTAMENT, 50),
    ("Exodus", "Exo", Testament.OLD_TESTAMENT, 40),
    ("Leviticus", "Lev", Testament.OLD_TESTAMENT, 27),
    ("Numbers", "Num", Testament.OLD_TESTAMENT, 36),
    ("Deuteronomy", "Deu", Testament.OLD_TESTAMENT, 34),
    ("Joshua", "Jos", Testament.OLD_TESTAMENT, 24),
    ("Judges", "Jdg", Testament.OLD_TESTAMENT, 21),
    ("Ruth", "Rut", Testament.OLD_TESTAMENT, 4),
    ("1 Samuel", "1Sa", Testament.OLD_TESTAMENT, 31),
    ("2 Samuel", "2Sa", Testament.OLD_TESTAMENT, 24),
    ("1 Kings", "1Ki", Testament.OLD_TESTAMENT, 22),
    ("2 Kings", "2Ki", Testament.OLD_TESTAMENT, 25),
    ("1 Chronicles", "1Ch", Testament.OLD_TESTAMENT, 29),
    ("2 Chronicles", "2Ch", Testament.OLD_TESTAMENT, 36),
    ("Ezra", "Ezr", Testament.OLD_TESTAMENT, 10),
    ("Nehemiah", "Neh", Testament.OLD_TESTAMENT, 13),
    ("Esther", "Est", Testament.OLD_TESTAMENT, 10),
    ("Job", "Job", Testament.OLD_TESTAMENT, 42),
    ("Psalms", "Psa", Testament.OLD_TESTAMENT, 150),
    ("Proverbs", "Pro", Testament.OLD_TESTAMENT, 31),
    ("Ecclesiastes", "Ecc", Testament.OLD_TESTAMENT, 12),
    ("Song of Solomon", "Sng", Testament.OLD_TESTAMENT, 8),
    ("Isaiah", "Isa", Testament.OLD_TESTAMENT, 66),
    ("Jeremiah", "Jer", Testament.OLD_TESTAMENT, 52),
    ("Lamentations", "Lam", Testament.OLD_TESTAMENT, 5),
    ("Ezekiel", "Ezk", Testament.OLD_TESTAMENT, 48),
    ("Daniel", "Dan", Testament.OLD_TESTAMENT, 12),
    ("Hosea", "Hos", Testament.OLD_TESTAMENT, 14),
    ("Joel", "Jol", Testament.OLD_TESTAMENT, 3),
    ("Amos", "Amo", Testament.OLD_TESTAMENT, 9),
    ("Obadiah", "Oba", Testament.OLD_TESTAMENT, 1),
    ("Jonah", "Jon", Testament.OLD_TESTAMENT, 4),
    ("Micah", "Mic", Testament.OLD_TESTAMENT, 7),
    ("Nahum", "Nam", Testament.OLD_TESTAMENT, 3),
    ("Habakkuk", "Hab", Testament.OLD_TESTAMENT, 3),
    ("Zephaniah", "Zep", Testament.OLD_TESTAMENT, 3),
    ("Haggai", "Hag", Testament.OLD_TESTAMENT, 2),
    ("Zechariah", "Zec", Testament.OLD_TESTAMENT, 14),
    ("Malachi", "Mal", Testament.OLD_TESTAMENT, 4),
    ("Matthew", "Mat", Testament.NEW_TESTAMENT, 28),
    ("Mark", "Mrk", Testament.NEW_TESTAMENT, 16),
    ("Luke", "Luk", Testament.NEW_TESTAMENT, 24),
    ("John", "Jhn", Testament.NEW_TESTAMENT, 21),
    ("Acts", "Act", Testament.NEW_TESTAMENT, 28),
    ("Romans", "Rom", Testament.NEW_TESTAMENT, 16),
    ("1 Corinthians", "1Co", Testament.NEW_TESTAMENT, 16),
    ("2 Corinthians", "2Co", Testament.NEW_TESTAMENT, 13),
    ("Galatians", "Gal", Testament.NEW_TESTAMENT, 6),
    ("Ephesians", "Eph", Testament.NEW_TESTAMENT, 6),
    ("Philippians", "Php", Testament.NEW_TESTAMENT, 4),
    ("Colossians", "Col", Testament.NEW_TESTAMENT, 4),
    ("1 Thessalonians", "1Th", Testament.NEW_TESTAMENT, 5),
    ("2 Thessalonians", "2Th", Testament.NEW_TESTAMENT, 3),
    ("1 Timothy", "1Ti", Testament.NEW_TESTAMENT, 6),
    ("2 Timothy", "2Ti", Testament.NEW_TESTAMENT, 4),
    ("Titus", "Tit", Testament.NEW_TESTAMENT, 3),
    ("Philemon", "Phm", Testament.NEW_TESTAMENT, 1),
    ("Hebrews", "Heb", Testament.NEW_TESTAMENT, 13),
    ("James", "Jas", Testament.NEW_TESTAMENT, 5),
    ("1 Peter", "1Pe", Testament.NEW_TESTAMENT, 5),
    ("2 Peter", "2Pe", Testament.NEW_TESTAMENT, 3),
    ("1 John", "1Jn", Testament.NEW_TESTAMENT, 5),
    ("2 John", "2Jn", Testament.NEW_TESTAMENT, 1),
    ("3 John", "3Jn", Testament.NEW_TESTAMENT, 1),
    ("Jude", "Jud", Testament.NEW_TESTAMENT, 1),
    ("Revelation", "Rev", Testament.NEW_TESTAMENT, 22),
]


def protestant_canon() -> List[CanonicalBook]:
    """Build the default book list; ids and reading order coincide."""
    return [
        CanonicalBook(
            id=i,
            order=i,
            full_name=name,
            short_name=short,
            testament=testament,
            expected_chapter_count=chapters,
        )
        for i, (name, short, testament, chapters) in enumerate(PROTESTANT_CANON, start=1)
    ]
