"""
Turn citation patterns inside note HTML into citation links, and back.

Link markup:

    <a class="citation-link" data-citation="doc:<document_id>:<node_id>">CCC 17</a>
    <a class="citation-link" data-citation="bible:<tr>:<book>:<ch>:<v>">John 3:16</a>
"""

from dataclasses import dataclass
from typing import Iterator

from bs4 import BeautifulSoup, NavigableString, Tag

from .refs import (
    Reference,
    ScriptureReference,
    format_document_ref,
    format_scripture_ref,
    parse_reference,
)
from .resolver import CitationResolver

CITATION_LINK_CLASS = "citation-link"
CITATION_DATA_ATTR = "data-citation"
LINK_STYLE = "color: hsl(var(--primary)); text-decoration: underline; cursor: pointer;"
UNRESOLVED_STYLE = LINK_STYLE + " opacity: 0.6;"
UNRESOLVED_TITLE = "Referenced paragraph not found"


@dataclass(frozen=True)
class AutoLinkResult:
    html: str
    linked_count: int


def _soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


def _new_link(soup: BeautifulSoup, text: str, token: str, resolved: bool = True) -> Tag:
    attrs = {
        "class": CITATION_LINK_CLASS,
        CITATION_DATA_ATTR: token,
        "style": LINK_STYLE if resolved else UNRESOLVED_STYLE,
    }
    if not resolved:
        attrs["title"] = UNRESOLVED_TITLE
    link = soup.new_tag("a", attrs=attrs)
    link.string = text
    return link


def is_citation_link(tag: object) -> bool:
    return (
        isinstance(tag, Tag)
        and tag.name == "a"
        and CITATION_LINK_CLASS in (tag.get("class") or [])
    )


def _linkable_strings(soup: BeautifulSoup) -> list[NavigableString]:
    """Plain text nodes that are not already inside a link."""
    out = []
    for s in soup.find_all(string=True):
        # Comments, CDATA and doctypes are NavigableString subclasses
        if type(s) is not NavigableString:
            continue
        if s.find_parent("a") is not None:
            continue
        if not s.strip():
            continue
        out.append(s)
    return out


def auto_link(html: str, resolver: CitationResolver) -> AutoLinkResult:
    """
    Wrap every alias match found in plain text with a citation link.

    Text already inside an <a> is left alone, so running the linker over
    its own output links nothing new.
    """
    soup = _soup(html)
    linked = 0

    for text_node in _linkable_strings(soup):
        text = str(text_node)
        matches = resolver.find_matches(text)
        if not matches:
            continue

        pieces: list[NavigableString | Tag] = []
        last = 0
        for match in matches:
            if match.start_index > last:
                pieces.append(NavigableString(text[last : match.start_index]))

            resolved = resolver.resolve(match)
            token = format_document_ref(resolved.document_id, resolved.node_id)
            pieces.append(_new_link(soup, match.match, token, resolved.is_resolved))
            linked += 1
            last = match.end_index

        if last < len(text):
            pieces.append(NavigableString(text[last:]))

        text_node.replace_with(*pieces)

    return AutoLinkResult(html=str(soup), linked_count=linked)


def create_citation_link(text: str, document_id: str, node_id: str | None = None) -> str:
    soup = _soup("")
    return str(_new_link(soup, text, format_document_ref(document_id, node_id)))


def create_scripture_link(text: str, citation: ScriptureReference) -> str:
    soup = _soup("")
    return str(_new_link(soup, text, format_scripture_ref(citation)))


def unlink(html: str, citation_id: str | None = None) -> tuple[str, int]:
    """Replace citation links with their text; optionally only those for one token."""
    soup = _soup(html)
    count = 0
    for link in soup.find_all("a"):
        if not is_citation_link(link):
            continue
        if citation_id is not None and link.get(CITATION_DATA_ATTR) != citation_id:
            continue
        link.replace_with(link.get_text())
        count += 1
    return str(soup), count


def extract_citation_from_link(link: Tag | str) -> Reference | None:
    if isinstance(link, str):
        found = _soup(link).find("a")
        if found is None:
            return None
        link = found
    token = link.get(CITATION_DATA_ATTR)
    if not isinstance(token, str):
        return None
    return parse_reference(token)


def iter_citation_links(html: str) -> Iterator[tuple[str, Reference]]:
    for link in _soup(html).find_all("a"):
        if not is_citation_link(link):
            continue
        ref = extract_citation_from_link(link)
        if ref is not None:
            yield link.get_text(), ref
