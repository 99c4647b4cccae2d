"""Plain-text parsing into structural and citable nodes."""

from .classifier import STRUCTURAL_RULES, classify
from .extractor import CATECHISM_RANGE, extract_number
from .segmenter import format_citation_range, parse_document, split_compound_line

__all__ = [
    "CATECHISM_RANGE",
    "STRUCTURAL_RULES",
    "classify",
    "extract_number",
    "format_citation_range",
    "parse_document",
    "split_compound_line",
]
