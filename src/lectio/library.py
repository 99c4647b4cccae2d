"""Folders, notes and document placement for one signed-in user."""

import time
from dataclasses import replace
from typing import Callable, Union

from .core.model import Document, DocumentPlacement, Folder, FolderKind, Note
from .core.ordering import next_order
from .core.ports import IdGenerator, LibraryStore
from .core.tree import OrderedTree, TreeEntry

NoteTreeItem = Union[Folder, Note]
DocumentTreeItem = Union[Folder, Document]


class Library:
    """
    Note folders and notes share one ordered tree; document folders and
    placed documents share another. Reads rebuild the tree from the store,
    so a tree is a snapshot valid until the next mutation.
    """

    def __init__(
        self,
        store: LibraryStore,
        idgen: IdGenerator,
        user_id: str | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.idgen = idgen
        self.user_id = user_id
        self.clock = clock

    # -- documents ---------------------------------------------------------

    def list_documents(self) -> list[Document]:
        """Documents visible to the current user; none without a sign-in."""
        if not self.user_id:
            return []
        return self.store.list_documents(owner_id=self.user_id)

    def document_tree(self) -> OrderedTree[DocumentTreeItem]:
        entries: list[TreeEntry[DocumentTreeItem]] = [
            TreeEntry(f.id, f.parent_id, f.order, f.created_at, f, is_container=True)
            for f in self.store.list_folders("document")
        ]
        placements = {p.document_id: p for p in self.store.list_placements()}
        for doc in self.list_documents():
            placement = placements.get(doc.id)
            if placement is None:
                entries.append(TreeEntry(doc.id, None, doc.created_at, doc.created_at, doc))
            else:
                entries.append(TreeEntry(doc.id, placement.folder_id, placement.order, placement.created_at, doc))
        return OrderedTree(entries)

    def place_document(self, document_id: str, folder_id: str | None, index: int | None = None) -> bool:
        """Put a document into a folder (None for the root) at a drop index."""
        if self.store.get_document(document_id) is None:
            return False
        tree = self.document_tree()
        if folder_id is not None and not self._is_folder(tree, folder_id):
            return False

        if index is None:
            order = next_order(c.order for c in tree.children(folder_id) if c.id != document_id)
        else:
            order = tree.drop_order(folder_id, index, moving_id=document_id)

        self.store.put_placement(
            DocumentPlacement(document_id=document_id, folder_id=folder_id, order=order, created_at=self.clock())
        )
        return True

    # -- folders -----------------------------------------------------------

    def _tree(self, kind: FolderKind) -> OrderedTree:
        return self.note_tree() if kind == "note" else self.document_tree()

    @staticmethod
    def _is_folder(tree: OrderedTree, item_id: str) -> bool:
        entry = tree.get(item_id)
        return entry is not None and entry.is_container

    def create_folder(self, kind: FolderKind, name: str, parent_id: str | None = None) -> str | None:
        name = name.strip()
        if not name:
            return None
        tree = self._tree(kind)
        if parent_id is not None and not self._is_folder(tree, parent_id):
            return None

        now = self.clock()
        folder = Folder(
            id=self.idgen.new_id(),
            kind=kind,
            name=name,
            parent_id=parent_id,
            order=next_order(c.order for c in tree.children(parent_id)),
            created_at=now,
            updated_at=now,
        )
        self.store.add_folder(folder)
        return folder.id

    def _find_folder(self, folder_id: str) -> Folder | None:
        for kind in ("note", "document"):
            for folder in self.store.list_folders(kind):
                if folder.id == folder_id:
                    return folder
        return None

    def rename_folder(self, folder_id: str, name: str) -> bool:
        folder = self._find_folder(folder_id)
        name = name.strip()
        if folder is None or not name:
            return False
        self.store.update_folder(replace(folder, name=name, updated_at=self.clock()))
        return True

    def move_folder(self, folder_id: str, parent_id: str | None, index: int) -> bool:
        folder = self._find_folder(folder_id)
        if folder is None:
            return False
        tree = self._tree(folder.kind)
        if parent_id is not None:
            # No cycles: a folder cannot move under itself or its descendants
            if parent_id == folder_id or parent_id in tree.descendants(folder_id):
                return False
            if not self._is_folder(tree, parent_id):
                return False

        order = tree.drop_order(parent_id, index, moving_id=folder_id)
        self.store.update_folder(replace(folder, parent_id=parent_id, order=order, updated_at=self.clock()))
        return True

    def delete_folder(self, folder_id: str) -> bool:
        """
        Delete a folder and every folder below it. Notes inside note folders
        are deleted with their anchors; documents inside document folders
        move to the root.
        """
        folder = self._find_folder(folder_id)
        if folder is None:
            return False

        tree = self._tree(folder.kind)
        below = tree.descendants(folder_id)
        folder_ids = [folder_id] + [i for i in below if self._is_folder(tree, i)]

        if folder.kind == "note":
            note_ids = [i for i in below if not self._is_folder(tree, i)]
            for note_id in note_ids:
                self.store.delete_anchors_for_note(note_id)
            self.store.delete_notes(note_ids)
        else:
            root_orders = [c.order for c in tree.children(None) if c.id != folder_id]
            order = next_order(root_orders)
            for placement in self.store.list_placements():
                if placement.folder_id in folder_ids:
                    self.store.put_placement(replace(placement, folder_id=None, order=order))
                    order += 1

        self.store.delete_folders(folder_ids)
        return True

    # -- notes -------------------------------------------------------------

    def note_tree(self) -> OrderedTree[NoteTreeItem]:
        entries: list[TreeEntry[NoteTreeItem]] = [
            TreeEntry(f.id, f.parent_id, f.order, f.created_at, f, is_container=True)
            for f in self.store.list_folders("note")
        ]
        entries.extend(TreeEntry(n.id, n.parent_id, n.order, n.created_at, n) for n in self.store.list_notes())
        return OrderedTree(entries)

    def get_note(self, note_id: str) -> Note | None:
        return self.store.get_note(note_id)

    def create_note(self, title: str, content: str = "", parent_id: str | None = None) -> str | None:
        tree = self.note_tree()
        if parent_id is not None and not self._is_folder(tree, parent_id):
            return None

        now = self.clock()
        note = Note(
            id=self.idgen.new_id(),
            title=title,
            content=content,
            parent_id=parent_id,
            # Notes and folders share the sibling sequence
            order=next_order(c.order for c in tree.children(parent_id)),
            created_at=now,
            updated_at=now,
        )
        self.store.add_note(note)
        return note.id

    def update_note(self, note_id: str, title: str | None = None, content: str | None = None) -> bool:
        note = self.store.get_note(note_id)
        if note is None:
            return False
        changes: dict[str, object] = {"updated_at": self.clock()}
        if title is not None:
            changes["title"] = title
        if content is not None:
            changes["content"] = content
        self.store.update_note(replace(note, **changes))
        return True

    def move_note(self, note_id: str, parent_id: str | None, index: int) -> bool:
        note = self.store.get_note(note_id)
        if note is None:
            return False
        tree = self.note_tree()
        if parent_id is not None and not self._is_folder(tree, parent_id):
            return False
        order = tree.drop_order(parent_id, index, moving_id=note_id)
        self.store.update_note(replace(note, parent_id=parent_id, order=order, updated_at=self.clock()))
        return True

    def delete_note(self, note_id: str) -> bool:
        if self.store.get_note(note_id) is None:
            return False
        self.store.delete_anchors_for_note(note_id)
        self.store.delete_notes([note_id])
        return True
