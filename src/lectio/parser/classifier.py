"""Structural classification of single lines of source text."""

import re
from dataclasses import dataclass

from ..core.model import StructuralLevel


@dataclass(frozen=True)
class StructuralRule:
    pattern: re.Pattern[str]
    level: StructuralLevel


@dataclass(frozen=True)
class Classified:
    level: StructuralLevel
    content: str


_NUMBER_WORD = r"(?:ONE|TWO|THREE|FOUR|[IVX]+)"

# Order is precedence: the first rule that matches wins.
STRUCTURAL_RULES: tuple[StructuralRule, ...] = (
    StructuralRule(re.compile(r"^IN BRIEF$", re.IGNORECASE), "brief"),
    StructuralRule(
        re.compile(rf"^(PART\s+{_NUMBER_WORD})(?:\s*[-:.]?\s*(.+))?$", re.IGNORECASE),
        "part",
    ),
    StructuralRule(
        re.compile(rf"^(BOOK\s+{_NUMBER_WORD})(?:\s*[-:.]?\s*(.+))?$", re.IGNORECASE),
        "book",
    ),
    StructuralRule(re.compile(r"^ARTICLE\s+\d+", re.IGNORECASE), "article"),
    StructuralRule(re.compile(r"^SECTION\s+(?:ONE|TWO|THREE|FOUR|\d+)", re.IGNORECASE), "section"),
    StructuralRule(re.compile(r"^Chapter\s+[IVX]+\.?[-—]?", re.IGNORECASE), "chapter"),
    StructuralRule(re.compile(r"^CHAPTER\s+(?:\d+|[IVX]+)", re.IGNORECASE), "chapter"),
    # Roman numeral sections (I., II., ...) are case-sensitive so that
    # ordinary words like "vi." never qualify.
    StructuralRule(re.compile(r"^([IVX]+)\.\s*(.+)$"), "roman"),
    StructuralRule(
        re.compile(r"^(PREFACE|GREETING|INTRODUCTION|PROLOGUE|EPILOGUE)$", re.IGNORECASE),
        "preface",
    ),
    # Generic all-caps title, at least four characters
    StructuralRule(re.compile(r"^[A-Z][A-Z\s]{2,}[A-Z]$"), "section"),
)


def classify(line: str) -> Classified | None:
    """
    Classify a line as a structural heading.

    Returns None for blank lines and for lines no rule matches.
    """
    trimmed = line.strip()
    if not trimmed:
        return None

    for rule in STRUCTURAL_RULES:
        if rule.pattern.search(trimmed):
            return Classified(level=rule.level, content=trimmed)

    return None
