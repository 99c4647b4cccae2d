"""Line-by-line segmentation of raw text into structural and citable nodes."""

import re

from ..core.model import (
    ParsedCitable,
    ParsedNode,
    ParsedStructural,
    ParseResult,
    ParseStats,
    alignment_for,
)
from .classifier import classify
from .extractor import extract_number

_LINE_SPLIT_RE = re.compile(r"\r?\n")

# Headers that upstream text extraction (PDF especially) glues onto the
# neighbouring text. Applied in order; each hit's remainder feeds the next.
INLINE_SEPARATORS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\s+(IN BRIEF)\s*", re.IGNORECASE),
    re.compile(r"\s+([IVX]+\.)\s+"),
    re.compile(r"\s+(ARTICLE\s+\d+)", re.IGNORECASE),
)

# Source types whose unnumbered prose becomes implicitly numbered paragraphs
_IMPLICIT_NUMBERING = frozenset({"patristic", "generic"})


def split_compound_line(line: str) -> list[str]:
    """
    Split a line holding more than one logical unit.

    Examples:
        >>> split_compound_line("The end of part one IN BRIEF 27. Summary")
        ['The end of part one', 'IN BRIEF', '27. Summary']
    """
    parts: list[str] = []
    remaining = line.strip()

    for separator in INLINE_SEPARATORS:
        m = separator.search(remaining)
        if m is None:
            continue
        before = remaining[: m.start()].strip()
        token = m.group(1).strip()
        after = remaining[m.end() :].strip()
        if before:
            parts.append(before)
        if token:
            parts.append(token)
        remaining = after

    if remaining:
        parts.append(remaining)

    return parts if parts else [line]


class _ParagraphBuffer:
    """The paragraph currently being accumulated, if any."""

    def __init__(self) -> None:
        self.number: int | None = None
        self.display: str = ""
        self.text: str = ""

    @property
    def active(self) -> bool:
        return self.number is not None

    def start(self, number: int, display: str, text: str) -> None:
        self.number = number
        self.display = display
        self.text = text

    def append(self, text: str) -> None:
        self.text += " " + text

    def take(self) -> ParsedCitable | None:
        if self.number is None or not self.text:
            return None
        node = ParsedCitable(
            number=self.number,
            display_number=self.display,
            content=self.text.strip(),
        )
        self.number = None
        self.display = ""
        self.text = ""
        return node


def parse_document(raw_text: str, source_type: str) -> ParseResult:
    """
    Parse raw text into an ordered sequence of parsed nodes.

    Structural detection runs first on every part; only non-structural parts
    are considered for paragraph numbering. Lines that continue a numbered
    paragraph are joined to it with a single space.
    """
    nodes: list[ParsedNode] = []
    buffer = _ParagraphBuffer()
    citable_count = 0

    def flush() -> None:
        nonlocal citable_count
        node = buffer.take()
        if node is not None:
            citable_count += 1
            nodes.append(node)

    lines = [ln.strip() for ln in _LINE_SPLIT_RE.split(raw_text)]

    for line in lines:
        if not line:
            continue

        for part in split_compound_line(line):
            structural = classify(part)
            if structural:
                flush()
                nodes.append(
                    ParsedStructural(
                        level=structural.level,
                        alignment=alignment_for(structural.level),
                        content=structural.content,
                    )
                )
                continue

            numbered = extract_number(part, source_type)
            if numbered:
                flush()
                buffer.start(numbered.number, numbered.token, numbered.remainder)
            elif buffer.active:
                buffer.append(part)
            elif source_type in _IMPLICIT_NUMBERING:
                # The implicit number is the position this paragraph will
                # take once flushed.
                implicit = citable_count + 1
                buffer.start(implicit, str(implicit), part)

    flush()

    structural_total = sum(1 for n in nodes if n.node_type == "structural")
    return ParseResult(
        nodes=nodes,
        stats=ParseStats(
            total=len(nodes),
            structural=structural_total,
            citable=len(nodes) - structural_total,
        ),
    )


def format_citation_range(
    title: str,
    source_type: str,
    start: int,
    end: int | None = None,
) -> str:
    """
    Human-readable citation for a run of paragraphs.

    Examples:
        >>> format_citation_range("Catechism", "catechism", 1, 5)
        'CCC 1-5'
        >>> format_citation_range("Confessions", "patristic", 3)
        'Confessions 3'
    """
    prefix = "CCC" if source_type == "catechism" else title
    if end is None or end == start:
        return f"{prefix} {start}"
    return f"{prefix} {start}-{end}"
