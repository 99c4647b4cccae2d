"""Tests for fractional ordering keys and the ordered-sibling tree."""

from dataclasses import dataclass

from lectio.core.ordering import next_order, order_between, sort_siblings
from lectio.core.tree import OrderedTree, TreeEntry


@dataclass
class Item:
    name: str
    order: float
    created_at: float


def test_order_between_values():
    """Edge and midpoint cases."""
    assert order_between(None, None) == 1
    assert order_between(None, 4) == 2
    assert order_between(4, None) == 5
    assert order_between(2, 4) == 3
    assert order_between(1, 2) == 1.5


def test_order_between_sorts_between_neighbours():
    """Repeated inserts at the front stay ordered."""
    first = 1.0
    keys = [first]
    for _ in range(10):
        keys.insert(0, order_between(None, keys[0]))
    assert keys == sorted(keys)
    assert len(set(keys)) == len(keys)


def test_next_order():
    """Appending goes one past the maximum."""
    assert next_order([]) == 1
    assert next_order([1, 5, 3]) == 6


def test_sort_siblings_ties_by_creation():
    """Equal order keys keep creation order."""
    items = [Item("b", 1, 20), Item("c", 0.5, 30), Item("a", 1, 10)]
    assert [i.name for i in sort_siblings(items)] == ["c", "a", "b"]


def _tree():
    entries = [
        TreeEntry("f1", None, 1, 1, "folder 1", is_container=True),
        TreeEntry("n1", "f1", 2, 2, "note in f1"),
        TreeEntry("n2", "f1", 1, 3, "first note in f1"),
        TreeEntry("f2", "f1", 3, 4, "sub folder", is_container=True),
        TreeEntry("n3", "f2", 1, 5, "deep note"),
        TreeEntry("n4", None, 2, 6, "root note"),
        TreeEntry("orphan", "missing", 0.5, 7, "orphaned"),
    ]
    return OrderedTree(entries)


def test_children_sorted():
    """Children come back in order; orphans land at the root."""
    tree = _tree()
    assert [e.id for e in tree.children("f1")] == ["n2", "n1", "f2"]
    assert [e.id for e in tree.children(None)] == ["orphan", "f1", "n4"]
    assert len(tree) == 7
    assert "n3" in tree


def test_descendants_and_walk():
    """Descendants are breadth-first; walk is depth-first with depth."""
    tree = _tree()
    assert tree.descendants("f1") == ["n2", "n1", "f2", "n3"]
    walked = [(depth, e.id) for depth, e in tree.walk()]
    assert walked == [(0, "orphan"), (0, "f1"), (1, "n2"), (1, "n1"), (1, "f2"), (2, "n3"), (0, "n4")]


def test_neighbours():
    """Previous and next siblings of an item."""
    tree = _tree()
    before, after = tree.neighbours("n1")
    assert (before.id, after.id) == ("n2", "f2")
    assert tree.neighbours("n2")[0] is None
    assert tree.neighbours("nope") == (None, None)


def test_drop_order():
    """Drop keys fall between the neighbours at the drop index."""
    tree = _tree()
    assert tree.drop_order("f1", 0) == 0.5
    assert tree.drop_order("f1", 1) == 1.5
    assert tree.drop_order("f1", 3) == 4
    assert tree.drop_order("empty", 0) == 1
    # The moving item does not count as its own neighbour
    assert tree.drop_order("f1", 1, moving_id="n2") == 2.5
