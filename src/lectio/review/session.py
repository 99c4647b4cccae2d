"""
Review phase between the raw parse and the committed document.

A session holds the editable node list for one import. Every operation is a
synchronous transition over that list; calls naming an unknown temp id, or
violating an operation's preconditions, leave the state untouched and
return False.
"""

import itertools
import secrets
import time
from dataclasses import replace
from typing import Callable, Sequence

from ..core.model import (
    CitableClassification,
    CitableNode,
    Classification,
    Document,
    DocumentNode,
    IgnoredClassification,
    ParsedNode,
    ReviewNode,
    ReviewState,
    ReviewStats,
    StructuralClassification,
    StructuralLevel,
    StructuralNode,
    alignment_for,
    paragraph_number,
)
from ..core.ports import DocumentStore, IdGenerator

MERGE_SEPARATOR = "\n\n"


def renumber(nodes: Sequence[ReviewNode]) -> list[ReviewNode]:
    """Give citable nodes display numbers "1".."n" in position order."""
    counter = 0
    out: list[ReviewNode] = []
    for node in nodes:
        if node.node_type == "citable":
            counter += 1
            node = replace(node, display_number=str(counter))
        out.append(node)
    return out


def to_review_nodes(parsed: Sequence[ParsedNode], session_tag: str) -> list[ReviewNode]:
    """Convert parser output into fresh review nodes."""
    out: list[ReviewNode] = []
    citable_counter = 0
    for index, node in enumerate(parsed):
        temp_id = f"review-{index}-{session_tag}"
        if node.node_type == "structural":
            out.append(
                ReviewNode(
                    temp_id=temp_id,
                    node_type="structural",
                    content=node.content,
                    original_index=index,
                    level=node.level,
                    alignment=node.alignment,
                )
            )
        else:
            citable_counter += 1
            out.append(
                ReviewNode(
                    temp_id=temp_id,
                    node_type="citable",
                    content=node.content,
                    original_index=index,
                    display_number=node.display_number or str(citable_counter),
                )
            )
    return out


class ReviewSession:
    def __init__(self, parsed_nodes: Sequence[ParsedNode], session_tag: str | None = None):
        self._parsed = list(parsed_nodes)
        self._tag = session_tag or secrets.token_hex(3)
        self._split_ids = itertools.count(1)
        self.state = ReviewState(nodes=to_review_nodes(self._parsed, self._tag))

    # -- reading -----------------------------------------------------------

    @property
    def nodes(self) -> list[ReviewNode]:
        return self.state.nodes

    @property
    def is_dirty(self) -> bool:
        return self.state.is_dirty

    @property
    def selected_node_id(self) -> str | None:
        return self.state.selected_node_id

    @property
    def selected_node(self) -> ReviewNode | None:
        if self.state.selected_node_id is None:
            return None
        idx = self._index(self.state.selected_node_id)
        return self.state.nodes[idx] if idx >= 0 else None

    @property
    def stats(self) -> ReviewStats:
        nodes = self.state.nodes
        return ReviewStats(
            total=len(nodes),
            structural=sum(1 for n in nodes if n.node_type == "structural"),
            citable=sum(1 for n in nodes if n.node_type == "citable"),
            ignored=sum(1 for n in nodes if n.node_type == "ignored"),
        )

    def get(self, temp_id: str) -> ReviewNode | None:
        idx = self._index(temp_id)
        return self.state.nodes[idx] if idx >= 0 else None

    def _index(self, temp_id: str) -> int:
        for i, node in enumerate(self.state.nodes):
            if node.temp_id == temp_id:
                return i
        return -1

    def _commit_nodes(self, nodes: list[ReviewNode], renumbered: bool = True) -> bool:
        self.state.nodes = renumber(nodes) if renumbered else nodes
        self.state.is_dirty = True
        return True

    # -- selection ---------------------------------------------------------

    def select(self, temp_id: str | None) -> None:
        """Selection is UI state; it never touches node data or dirtiness."""
        self.state.selected_node_id = temp_id

    # -- classification ----------------------------------------------------

    def reclassify(self, temp_id: str, classification: Classification) -> bool:
        idx = self._index(temp_id)
        if idx < 0:
            return False

        node = self.state.nodes[idx]
        if isinstance(classification, StructuralClassification):
            updated = replace(
                node,
                node_type="structural",
                level=classification.level,
                alignment=classification.alignment,
                display_number=None,
                modified=True,
            )
        elif isinstance(classification, CitableClassification):
            updated = replace(
                node,
                node_type="citable",
                display_number=classification.display_number,
                level=None,
                alignment=None,
                modified=True,
            )
        elif isinstance(classification, IgnoredClassification):
            updated = replace(
                node,
                node_type="ignored",
                display_number=None,
                level=None,
                alignment=None,
                modified=True,
            )
        else:
            return False

        nodes = list(self.state.nodes)
        nodes[idx] = updated
        return self._commit_nodes(nodes)

    def make_citable(self, temp_id: str) -> bool:
        idx = self._index(temp_id)
        if idx < 0:
            return False
        before = sum(1 for n in self.state.nodes[:idx] if n.node_type == "citable")
        return self.reclassify(temp_id, CitableClassification(display_number=str(before + 1)))

    def make_centered_title(self, temp_id: str, level: StructuralLevel = "chapter") -> bool:
        return self.reclassify(temp_id, StructuralClassification(level=level, alignment="center"))

    def make_left_subtitle(self, temp_id: str, level: StructuralLevel = "subsection") -> bool:
        return self.reclassify(temp_id, StructuralClassification(level=level, alignment="left"))

    def ignore(self, temp_id: str) -> bool:
        return self.reclassify(temp_id, IgnoredClassification())

    def restore(self, temp_id: str) -> bool:
        """Bring an ignored node back into the citable sequence."""
        return self.make_citable(temp_id)

    # -- merge / split -----------------------------------------------------

    def merge_with_previous(self, temp_id: str) -> bool:
        idx = self._index(temp_id)
        if idx <= 0:
            return False
        return self._merge_pair(idx - 1)

    def merge_with_next(self, temp_id: str) -> bool:
        idx = self._index(temp_id)
        if idx < 0 or idx >= len(self.state.nodes) - 1:
            return False
        return self._merge_pair(idx)

    def _merge_pair(self, first: int) -> bool:
        """Fold nodes[first + 1] into nodes[first]; the first keeps its id."""
        nodes = self.state.nodes
        head, tail = nodes[first], nodes[first + 1]
        if head.node_type != "citable" or tail.node_type != "citable":
            return False

        merged = replace(
            head,
            content=head.content + MERGE_SEPARATOR + tail.content,
            modified=True,
        )
        return self._commit_nodes(nodes[:first] + [merged] + nodes[first + 2 :])

    def split(self, temp_id: str, position: int) -> bool:
        idx = self._index(temp_id)
        if idx < 0:
            return False

        node = self.state.nodes[idx]
        if node.node_type != "citable":
            return False

        content = node.content
        if position <= 0 or position >= len(content):
            return False

        first_part = content[:position].strip()
        second_part = content[position:].strip()
        if not first_part or not second_part:
            return False

        first = replace(node, content=first_part, modified=True)
        second = ReviewNode(
            temp_id=f"review-split-{next(self._split_ids)}-{self._tag}",
            node_type="citable",
            content=second_part,
            original_index=node.original_index,
            display_number="",
            modified=True,
        )
        nodes = self.state.nodes
        return self._commit_nodes(nodes[:idx] + [first, second] + nodes[idx + 1 :])

    # -- direct edits ------------------------------------------------------

    def edit_content(self, temp_id: str, text: str) -> bool:
        idx = self._index(temp_id)
        if idx < 0:
            return False
        nodes = list(self.state.nodes)
        nodes[idx] = replace(nodes[idx], content=text, modified=True)
        return self._commit_nodes(nodes, renumbered=False)

    def edit_display_number(self, temp_id: str, text: str) -> bool:
        """Manual override of one display number; resequence_numbers undoes it."""
        idx = self._index(temp_id)
        if idx < 0 or self.state.nodes[idx].node_type != "citable":
            return False
        nodes = list(self.state.nodes)
        nodes[idx] = replace(nodes[idx], display_number=text, modified=True)
        return self._commit_nodes(nodes, renumbered=False)

    def resequence_numbers(self) -> bool:
        return self._commit_nodes(list(self.state.nodes))

    def reset(self) -> None:
        """Drop every edit and start over from the original parse."""
        self.state = ReviewState(nodes=to_review_nodes(self._parsed, self._tag))

    # -- canonicalization --------------------------------------------------

    def canonicalize(self, idgen: IdGenerator) -> list[DocumentNode]:
        """
        Turn the reviewed nodes into immutable document nodes with permanent
        ids. Ignored nodes are dropped.
        """
        out: list[DocumentNode] = []
        position = 0
        for node in self.state.nodes:
            if node.node_type == "structural":
                level = node.level or "heading"
                out.append(
                    StructuralNode(
                        id=idgen.new_id(),
                        level=level,
                        content=node.content,
                        alignment=node.alignment or alignment_for(level),
                    )
                )
            elif node.node_type == "citable":
                position += 1
                display = node.display_number or str(position)
                number = paragraph_number(display)
                out.append(
                    CitableNode(
                        id=idgen.new_id(),
                        number=position if number is None else number,
                        display_number=display,
                        content=node.content,
                    )
                )
        return out

    def commit(
        self,
        store: DocumentStore,
        idgen: IdGenerator,
        title: str,
        source_type: str,
        author: str | None = None,
        category: str = "custom",
        owner_id: str | None = None,
        clock: Callable[[], float] = time.time,
    ) -> str:
        """
        Canonicalize and persist as a new document. The store writes document
        and nodes atomically; a StoreError leaves this session as it was.
        """
        nodes = self.canonicalize(idgen)
        timestamp = clock()
        document = Document(
            id=idgen.new_id(),
            title=title,
            author=author,
            source_type=source_type,  # type: ignore[arg-type]
            category=category,  # type: ignore[arg-type]
            owner_id=owner_id,
            created_at=timestamp,
            updated_at=timestamp,
            total_citable_nodes=sum(1 for n in nodes if isinstance(n, CitableNode)),
        )
        store.save_document(document, nodes)

        self._parsed = []
        self.state = ReviewState()
        return document.id
