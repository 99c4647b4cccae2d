"""Arena of ordered-sibling items (folders, notes, documents-in-folders)."""

from dataclasses import dataclass
from typing import Generic, Iterable, Iterator, TypeVar

from .ordering import order_between, sort_siblings

T = TypeVar("T")


@dataclass(frozen=True)
class TreeEntry(Generic[T]):
    id: str
    parent_id: str | None
    order: float
    created_at: float
    item: T
    is_container: bool = False


class OrderedTree(Generic[T]):
    """
    Items are held flat, indexed by id. Children lists are derived once when
    the arena is (re)loaded and served from that cache until the next load.
    """

    def __init__(self, entries: Iterable[TreeEntry[T]] = ()):
        self._entries: dict[str, TreeEntry[T]] = {}
        self._children: dict[str | None, list[TreeEntry[T]]] = {}
        self.load(entries)

    def load(self, entries: Iterable[TreeEntry[T]]) -> None:
        self._entries = {e.id: e for e in entries}
        buckets: dict[str | None, list[TreeEntry[T]]] = {}
        for entry in self._entries.values():
            parent = entry.parent_id if entry.parent_id in self._entries else None
            buckets.setdefault(parent, []).append(entry)
        self._children = {k: sort_siblings(v) for k, v in buckets.items()}

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, item_id: str) -> TreeEntry[T] | None:
        return self._entries.get(item_id)

    def children(self, parent_id: str | None) -> list[TreeEntry[T]]:
        return list(self._children.get(parent_id, []))

    def descendants(self, item_id: str) -> list[str]:
        """Ids of every item below item_id, breadth-first."""
        out: list[str] = []
        queue = [item_id]
        while queue:
            current = queue.pop(0)
            for child in self._children.get(current, []):
                out.append(child.id)
                queue.append(child.id)
        return out

    def walk(self, parent_id: str | None = None, depth: int = 0) -> Iterator[tuple[int, TreeEntry[T]]]:
        """Depth-first (depth, entry) pairs in display order."""
        for child in self._children.get(parent_id, []):
            yield depth, child
            yield from self.walk(child.id, depth + 1)

    def drop_order(self, parent_id: str | None, index: int, moving_id: str | None = None) -> float:
        """
        Order key for dropping an item at position `index` among the children
        of parent_id. The moving item itself is not counted as a neighbour.
        """
        siblings = [c for c in self._children.get(parent_id, []) if c.id != moving_id]
        index = max(0, min(index, len(siblings)))
        before = siblings[index - 1].order if index > 0 else None
        after = siblings[index].order if index < len(siblings) else None
        return order_between(before, after)

    def neighbours(self, item_id: str) -> tuple[TreeEntry[T] | None, TreeEntry[T] | None]:
        """Previous and next sibling of item_id, if any."""
        entry = self._entries.get(item_id)
        if entry is None:
            return None, None
        parent = entry.parent_id if entry.parent_id in self._entries else None
        siblings = self._children.get(parent, [])
        idx = next(i for i, s in enumerate(siblings) if s.id == item_id)
        before = siblings[idx - 1] if idx > 0 else None
        after = siblings[idx + 1] if idx + 1 < len(siblings) else None
        return before, after
