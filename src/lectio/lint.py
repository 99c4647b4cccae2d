from dataclasses import dataclass
from typing import Protocol

from .citations.autolink import iter_citation_links
from .citations.refs import DocumentReference
from .core.model import Note
from .core.ports import DocumentStore


@dataclass
class Finding:
    severity: str  # "info" | "warn" | "error"
    message: str
    link_text: str | None = None


class LintRule(Protocol):
    id: str

    def check(self, note: Note, documents: DocumentStore) -> list[Finding]:
        pass


class UnresolvedCitationsRule:
    id = "unresolved-citations"

    def check(self, note: Note, documents: DocumentStore) -> list[Finding]:
        out: list[Finding] = []
        for text, ref in iter_citation_links(note.content):
            if not isinstance(ref, DocumentReference):
                continue
            if documents.get_document(ref.document_id) is None:
                out.append(Finding("error", f"Unknown document {ref.document_id}", text))
            elif ref.node_id is None:
                out.append(Finding("warn", f"Citation not pinned to a paragraph in {ref.document_id}", text))
            elif not documents.has_node(ref.document_id, ref.node_id):
                out.append(Finding("error", f"Unknown paragraph {ref.node_id} in {ref.document_id}", text))
        return out
