"""
Pattern-based citation detection and resolution.

Aliases are tried in registry order (descending priority, then insertion);
the first alias to claim a span of text keeps it.
"""

import re
import sys
from collections import OrderedDict
from dataclasses import dataclass

from ..core.model import CitationAlias, paragraph_number
from ..core.ports import AliasStore, DocumentStore
from .refs import is_scripture_ref

UNKNOWN_DOCUMENT_TITLE = "Unknown Document"


@dataclass(frozen=True)
class CitationMatch:
    match: str
    start_index: int
    end_index: int
    alias: CitationAlias
    reference: str
    range_start: str | None = None
    range_end: str | None = None


@dataclass(frozen=True)
class ResolvedCitation:
    original_text: str
    document_id: str
    document_title: str
    reference: str
    display_text: str
    is_resolved: bool
    node_id: str | None = None


class AliasCache:
    """
    Priority-ordered alias list plus memoized per-text matches. Shared by the
    registry (which invalidates it) and the resolver (which reads it).

    At most max_texts match lists are kept; the least recently used goes first.
    """

    def __init__(self, store: AliasStore, max_texts: int = 1024):
        self.store = store
        self.max_texts = max_texts
        self._aliases: list[CitationAlias] | None = None
        self._matches: OrderedDict[str, list[CitationMatch]] = OrderedDict()

    def aliases(self) -> list[CitationAlias]:
        if self._aliases is None:
            self._aliases = sorted(self.store.list_aliases(), key=lambda a: -a.priority)
        return self._aliases

    def cached_matches(self, text: str) -> list[CitationMatch] | None:
        matches = self._matches.get(text)
        if matches is not None:
            self._matches.move_to_end(text)
        return matches

    def remember(self, text: str, matches: list[CitationMatch]) -> None:
        self._matches[text] = matches
        self._matches.move_to_end(text)
        while len(self._matches) > self.max_texts:
            self._matches.popitem(last=False)

    @property
    def cached_text_count(self) -> int:
        return len(self._matches)

    def invalidate(self) -> None:
        self._aliases = None
        self._matches.clear()


def _group(m: re.Match[str], index: int) -> str:
    if index < 0 or index > (m.re.groups or 0):
        return ""
    return m.group(index) or ""


def extract_reference(m: re.Match[str], alias: CitationAlias) -> str:
    """Pull the citation reference out of a match per the alias's extractor."""
    extractor = alias.number_extractor
    if extractor == "paragraph":
        return _group(m, 2) or _group(m, 1)
    if extractor == "section":
        parts = [_group(m, i) for i in range(2, (m.re.groups or 0) + 1)]
        return ".".join(p for p in parts if p)
    if extractor == "chapter:verse":
        return f"{_group(m, 2)}.{_group(m, 3)}"
    if extractor == "custom":
        return _group(m, alias.custom_group_index or 1)
    return _group(m, 1) or m.group(0)


def extract_range_end(m: re.Match[str], alias: CitationAlias) -> str | None:
    if alias.number_extractor == "paragraph":
        return _group(m, 3) or None
    return None


def format_display(alias: CitationAlias, reference: str) -> str:
    return alias.display_format.replace("{prefix}", alias.prefix).replace("{number}", reference)


class CitationResolver:
    def __init__(self, documents: DocumentStore, cache: AliasCache):
        self.documents = documents
        self.cache = cache

    def find_matches(self, text: str) -> list[CitationMatch]:
        cached = self.cache.cached_matches(text)
        if cached is not None:
            return list(cached)

        matches: list[CitationMatch] = []
        for alias in self.cache.aliases():
            try:
                regex = re.compile(alias.pattern, re.IGNORECASE)
            except re.error as e:
                print(f"Warning: Invalid pattern for alias {alias.prefix}: {e}", file=sys.stderr)
                continue

            for m in regex.finditer(text):
                start, end = m.start(), m.end()
                if start == end:
                    continue
                if any(start < other.end_index and end > other.start_index for other in matches):
                    continue

                reference = extract_reference(m, alias)
                range_end = extract_range_end(m, alias)
                matches.append(
                    CitationMatch(
                        match=m.group(0),
                        start_index=start,
                        end_index=end,
                        alias=alias,
                        reference=reference,
                        range_start=reference if range_end else None,
                        range_end=range_end,
                    )
                )

        matches.sort(key=lambda c: c.start_index)
        self.cache.remember(text, matches)
        return list(matches)

    def resolve(self, match: CitationMatch) -> ResolvedCitation:
        alias = match.alias
        document = self.documents.get_document(alias.document_id)
        if document is None:
            return ResolvedCitation(
                original_text=match.match,
                document_id=alias.document_id,
                document_title=UNKNOWN_DOCUMENT_TITLE,
                reference=match.reference,
                display_text=match.match,
                is_resolved=False,
            )

        if alias.number_extractor == "paragraph":
            number = paragraph_number(match.reference)
            node = (
                self.documents.find_citable(alias.document_id, number=number)
                if number is not None
                else None
            )
        else:
            node = self.documents.find_citable(alias.document_id, display_number=match.reference)

        return ResolvedCitation(
            original_text=match.match,
            document_id=alias.document_id,
            document_title=document.title,
            node_id=node.id if node else None,
            reference=match.reference,
            display_text=format_display(alias, match.reference),
            is_resolved=node is not None,
        )

    def resolve_text(self, text: str) -> list[tuple[CitationMatch, ResolvedCitation]]:
        return [(m, self.resolve(m)) for m in self.find_matches(text)]

    def is_citation_pattern(self, text: str) -> bool:
        """True when text is a scripture token or exactly one whole alias match."""
        if is_scripture_ref(text):
            return True
        matches = self.find_matches(text)
        return bool(matches) and matches[0].match == text.strip()
