"""
Reference tokens stored in citation links.

    doc:<document_id>[:<node_id>]
    bible:<translation>:<book>:<chapter>:<verse>
"""

from dataclasses import dataclass
from typing import Union

DOC_PREFIX = "doc:"
BIBLE_PREFIX = "bible:"


@dataclass(frozen=True)
class DocumentReference:
    document_id: str
    node_id: str | None = None

    @property
    def token(self) -> str:
        return format_document_ref(self.document_id, self.node_id)


@dataclass(frozen=True)
class ScriptureReference:
    translation: str
    book: str
    chapter: int
    verse: int

    @property
    def token(self) -> str:
        return format_scripture_ref(self)


Reference = Union[DocumentReference, ScriptureReference]


def format_document_ref(document_id: str, node_id: str | None = None) -> str:
    return f"{DOC_PREFIX}{document_id}:{node_id}" if node_id else f"{DOC_PREFIX}{document_id}"


def parse_document_ref(token: str) -> DocumentReference | None:
    """
    Examples:
        >>> parse_document_ref("doc:abc:n1")
        DocumentReference(document_id='abc', node_id='n1')
        >>> parse_document_ref("doc:a:b:c") is None
        True
    """
    if not is_document_ref(token):
        return None
    parts = token[len(DOC_PREFIX) :].split(":")
    if not parts[0]:
        return None
    if len(parts) == 1:
        return DocumentReference(parts[0])
    if len(parts) == 2:
        return DocumentReference(parts[0], parts[1] or None)
    return None


def is_document_ref(token: str) -> bool:
    return token.startswith(DOC_PREFIX)


def format_scripture_ref(ref: ScriptureReference) -> str:
    return f"{BIBLE_PREFIX}{ref.translation}:{ref.book}:{ref.chapter}:{ref.verse}"


def parse_scripture_ref(token: str) -> ScriptureReference | None:
    parts = token.split(":")
    if len(parts) != 5 or parts[0] != "bible":
        return None
    _, translation, book, chapter, verse = parts
    try:
        return ScriptureReference(translation, book, int(chapter), int(verse))
    except ValueError:
        return None


def is_scripture_ref(token: str) -> bool:
    return token.startswith(BIBLE_PREFIX)


def parse_reference(token: str) -> Reference | None:
    if is_scripture_ref(token):
        return parse_scripture_ref(token)
    if is_document_ref(token):
        return parse_document_ref(token)
    return None
