"""Explicit bidirectional links between a citable node and a note."""

import time
from typing import Callable

from .core.model import CitationAnchor
from .core.ordering import next_order
from .core.ports import AnchorStore, IdGenerator


class AnchorService:
    def __init__(self, store: AnchorStore, idgen: IdGenerator, clock: Callable[[], float] = time.time):
        self.store = store
        self.idgen = idgen
        self.clock = clock

    def create_anchor(self, document_id: str, node_id: str, note_id: str, label: str) -> str | None:
        """
        Anchor a node to a note. A (document, node, note) triple exists at
        most once; a repeat returns None and writes nothing.
        """
        if self.store.find_anchor(document_id, node_id, note_id) is not None:
            return None

        existing = self.store.anchors_for_note(note_id)
        anchor = CitationAnchor(
            id=self.idgen.new_id(),
            document_id=document_id,
            node_id=node_id,
            note_id=note_id,
            display_label=label,
            order=next_order(a.order for a in existing),
            created_at=self.clock(),
        )
        self.store.add_anchor(anchor)
        return anchor.id

    def remove_anchor(self, anchor_id: str) -> None:
        self.store.delete_anchor(anchor_id)

    def remove_anchors_for_note(self, note_id: str) -> None:
        self.store.delete_anchors_for_note(note_id)

    def anchors_for_note(self, note_id: str) -> list[CitationAnchor]:
        return self.store.anchors_for_note(note_id)

    def anchors_for_document(self, document_id: str) -> list[CitationAnchor]:
        return self.store.anchors_for_document(document_id)

    def anchors_for_node(self, document_id: str, node_id: str) -> list[CitationAnchor]:
        return [a for a in self.store.anchors_for_document(document_id) if a.node_id == node_id]

    def anchored_node_ids(self, document_id: str) -> set[str]:
        """Node ids that carry at least one anchor, for reader highlighting."""
        return {a.node_id for a in self.store.anchors_for_document(document_id)}
