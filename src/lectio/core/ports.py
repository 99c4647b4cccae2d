from typing import Iterable, Protocol, Sequence

from .model import (
    CitableNode,
    CitationAlias,
    CitationAnchor,
    Document,
    DocumentNode,
    DocumentPlacement,
    Folder,
    Note,
)


class DocumentStore(Protocol):
    """
    Documents plus their ordered node sequence. Saving a document writes the
    metadata and every node in one transaction, or nothing.
    """

    def save_document(self, document: Document, nodes: Sequence[DocumentNode]) -> None:
        pass

    def get_document(self, document_id: str) -> Document | None:
        pass

    def list_documents(self, owner_id: str | None = None) -> list[Document]:
        pass

    def get_nodes(self, document_id: str) -> list[DocumentNode]:
        pass

    def find_citable(
        self, document_id: str, number: int | None = None, display_number: str | None = None
    ) -> CitableNode | None:
        pass

    def has_node(self, document_id: str, node_id: str) -> bool:
        pass

    def delete_document(self, document_id: str) -> None:
        pass


class AliasStore(Protocol):
    """
    Citation aliases, listed by descending priority then insertion order.
    """

    def add_alias(self, alias: CitationAlias) -> None:
        pass

    def put_alias(self, alias: CitationAlias) -> None:
        pass

    def get_alias(self, alias_id: str) -> CitationAlias | None:
        pass

    def list_aliases(self) -> list[CitationAlias]:
        pass

    def delete_alias(self, alias_id: str) -> bool:
        pass


class AnchorStore(Protocol):
    def add_anchor(self, anchor: CitationAnchor) -> None:
        pass

    def find_anchor(self, document_id: str, node_id: str, note_id: str) -> CitationAnchor | None:
        pass

    def delete_anchor(self, anchor_id: str) -> None:
        pass

    def delete_anchors_for_note(self, note_id: str) -> None:
        pass

    def anchors_for_document(self, document_id: str) -> list[CitationAnchor]:
        pass

    def anchors_for_note(self, note_id: str) -> list[CitationAnchor]:
        pass


class FolderStore(Protocol):
    """
    Flat parent-pointer folders; siblings come back sorted by order.
    """

    def add_folder(self, folder: Folder) -> None:
        pass

    def update_folder(self, folder: Folder) -> None:
        pass

    def list_folders(self, kind: str) -> list[Folder]:
        pass

    def delete_folders(self, folder_ids: Iterable[str]) -> None:
        pass

    def list_placements(self) -> list[DocumentPlacement]:
        pass

    def put_placement(self, placement: DocumentPlacement) -> None:
        pass


class NoteStore(Protocol):
    def add_note(self, note: Note) -> None:
        pass

    def update_note(self, note: Note) -> None:
        pass

    def get_note(self, note_id: str) -> Note | None:
        pass

    def list_notes(self) -> list[Note]:
        pass

    def delete_notes(self, note_ids: Iterable[str]) -> None:
        pass


class IdGenerator(Protocol):
    def new_id(self) -> str:
        pass


class MatchSource(Protocol):
    """Anything that can hand back aliases in resolution order."""

    def list_all(self) -> list[CitationAlias]:
        pass



class LibraryStore(DocumentStore, FolderStore, NoteStore, AnchorStore, Protocol):
    """Everything the library needs from one backing store."""
