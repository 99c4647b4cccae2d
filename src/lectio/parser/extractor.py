"""Leading paragraph-number extraction, per source type."""

import re
from dataclasses import dataclass

CATECHISM_RANGE = (1, 2865)

_CATECHISM_RE = re.compile(r"^(\d{1,4})\.?\s+(.+)$", re.DOTALL)
_NUMBERED_PROSE_RE = re.compile(r"^(\d{1,3})\.?\s+(.+)$", re.DOTALL)
_NUMBERED_PROSE_TYPES = frozenset({"patristic", "treatise", "generic"})


@dataclass(frozen=True)
class ParagraphNumber:
    number: int
    token: str  # the digits as written, used as display number
    remainder: str


def extract_number(text: str, source_type: str) -> ParagraphNumber | None:
    """
    Split a leading citation number from the body text.

    - catechism: 1-4 digits, value must lie in CATECHISM_RANGE
    - patristic / treatise / generic: 1-3 digits
    - scripture: never numbered here (chapter:verse is addressed elsewhere)

    Examples:
        >>> extract_number("27. The desire for God", "catechism").number
        27
        >>> extract_number("9999. Text", "catechism") is None
        True
    """
    trimmed = text.strip()

    if source_type == "catechism":
        m = _CATECHISM_RE.match(trimmed)
        if m:
            num = int(m.group(1))
            low, high = CATECHISM_RANGE
            if low <= num <= high:
                return ParagraphNumber(num, m.group(1), m.group(2))
        return None

    if source_type in _NUMBERED_PROSE_TYPES:
        m = _NUMBERED_PROSE_RE.match(trimmed)
        if m:
            return ParagraphNumber(int(m.group(1)), m.group(1), m.group(2))

    return None
