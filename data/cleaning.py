"""
LECTIO - Verse Text Cleaning

Repairs known encoding artifacts of specific source editions, normalizes
Unicode and whitespace, and turns placeholder markers into empty text so the
detector reports them as empty verses instead of committing them.
"""
import re
import unicodedata
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Mapping, Optional, Pattern, Sequence

_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class CleaningRule:
    """One literal or regex replacement applied to verse text."""
    pattern: str
    replacement: str
    regex: bool = False
    _compiled: Pattern = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        source = self.pattern if self.regex else re.escape(self.pattern)
        object.__setattr__(self, "_compiled", re.compile(source))

    def apply(self, text: str) -> str:
        return self._compiled.sub(self.replacement, text)


# Mojibake in the 1953 Afrikaans XML distribution
AFR53_RULES: List[CleaningRule] = [
    CleaningRule("Â k", "Ek"),
    CleaningRule("H wila", "Havila"),
    CleaningRule("Hidd,kel", "Hiddekel"),
    CleaningRule("g,rubs", "gerubs"),
    CleaningRule("Na,ma", "Naäma"),
    CleaningRule("S¡near", "Sinear"),
    CleaningRule("Refa‹ete", "Refaïete"),
    CleaningRule("geseënen", "geseën en"),
    CleaningRule("m“re", "môre"),
    CleaningRule("n“", "nó"),
    CleaningRule("v rtoe", "vertoe"),
]

DEFAULT_RULES: Dict[str, List[CleaningRule]] = {
    "AFR53": AFR53_RULES,
}

DEFAULT_PLACEHOLDERS: FrozenSet[str] = frozenset({"***"})


class TextCleaner:
    """
    Per-version text normalization.

    Order: edition repair rules, NFC, whitespace collapse, placeholder check.
    The result is ``""`` for placeholders and whitespace-only input.
    """

    def __init__(
        self,
        rules: Optional[Mapping[str, Sequence[CleaningRule]]] = None,
        placeholders: Optional[FrozenSet[str]] = None,
    ):
        source = DEFAULT_RULES if rules is None else rules
        self._rules: Dict[str, tuple] = {code: tuple(r) for code, r in source.items()}
        self._placeholders = DEFAULT_PLACEHOLDERS if placeholders is None else placeholders

    def rules_for(self, version_code: str) -> tuple:
        return self._rules.get(version_code, ())

    def is_placeholder(self, text: str) -> bool:
        return text in self._placeholders

    def clean(self, text: str, version_code: str = "") -> str:
        for rule in self.rules_for(version_code):
            text = rule.apply(text)
        text = unicodedata.normalize("NFC", text)
        text = _WHITESPACE.sub(" ", text).strip()
        if self.is_placeholder(text):
            return ""
        return text
