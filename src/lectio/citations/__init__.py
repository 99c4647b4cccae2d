from .autolink import (
    AutoLinkResult,
    auto_link,
    create_citation_link,
    create_scripture_link,
    extract_citation_from_link,
    iter_citation_links,
    unlink,
)
from .presets import CITATION_PRESETS, CitationPreset
from .refs import DocumentReference, ScriptureReference, parse_reference
from .registry import AliasRegistry, ImportCounts
from .resolver import AliasCache, CitationMatch, CitationResolver, ResolvedCitation

__all__ = [
    "AliasCache",
    "AliasRegistry",
    "AutoLinkResult",
    "CITATION_PRESETS",
    "CitationMatch",
    "CitationPreset",
    "CitationResolver",
    "DocumentReference",
    "ImportCounts",
    "ResolvedCitation",
    "ScriptureReference",
    "auto_link",
    "create_citation_link",
    "create_scripture_link",
    "extract_citation_from_link",
    "iter_citation_links",
    "parse_reference",
    "unlink",
]
