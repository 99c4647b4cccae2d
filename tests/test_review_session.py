"""Tests for the review session between parsing and commit."""

import tempfile
from pathlib import Path

import pytest

from lectio.adapters.idgen import SequentialId
from lectio.adapters.sqlite_store import SQLiteStore
from lectio.core.errors import StoreError
from lectio.core.model import (
    CitableClassification,
    CitableNode,
    ParsedCitable,
    ParsedStructural,
    StructuralClassification,
    StructuralNode,
)
from lectio.review import MERGE_SEPARATOR, ReviewSession


@pytest.fixture
def session():
    """Heading, three paragraphs and a trailing heading."""
    parsed = [
        ParsedStructural(level="chapter", alignment="center", content="CHAPTER 1"),
        ParsedCitable(number=1, display_number="1", content="Alpha text."),
        ParsedCitable(number=2, display_number="2", content="Beta text."),
        ParsedCitable(number=3, display_number="3", content="Gamma text."),
        ParsedStructural(level="roman", alignment="left", content="I. Appendix"),
    ]
    return ReviewSession(parsed, session_tag="t")


def _ids(session):
    return [n.temp_id for n in session.nodes]


def _numbers(session):
    return [n.display_number for n in session.nodes if n.node_type == "citable"]


class _FailingStore:
    def save_document(self, document, nodes):
        raise StoreError("disk full")


def test_initial_state(session):
    """Nodes mirror the parse and the session starts clean."""
    assert _ids(session) == ["review-0-t", "review-1-t", "review-2-t", "review-3-t", "review-4-t"]
    assert _numbers(session) == ["1", "2", "3"]
    assert not session.is_dirty
    stats = session.stats
    assert (stats.total, stats.structural, stats.citable, stats.ignored) == (5, 2, 3, 0)


def test_ignore_renumbers(session):
    """Ignoring a paragraph closes the gap in numbering."""
    assert session.ignore("review-2-t")
    assert _numbers(session) == ["1", "2"]
    assert session.get("review-3-t").display_number == "2"
    assert session.get("review-2-t").display_number is None
    assert session.is_dirty
    assert session.stats.ignored == 1


def test_restore_brings_node_back(session):
    """Restoring an ignored node puts it back in the sequence."""
    session.ignore("review-2-t")
    assert session.restore("review-2-t")
    assert session.get("review-2-t").node_type == "citable"
    assert _numbers(session) == ["1", "2", "3"]


def test_reclassify_structural_clears_number(session):
    """A paragraph turned into a heading loses its number."""
    assert session.reclassify("review-1-t", StructuralClassification(level="section", alignment="center"))
    node = session.get("review-1-t")
    assert node.node_type == "structural"
    assert node.display_number is None
    assert node.level == "section"
    assert node.modified
    assert _numbers(session) == ["1", "2"]


def test_reclassify_citable_is_renumbered(session):
    """Whatever number is requested, positional numbering wins."""
    session.reclassify("review-0-t", CitableClassification(display_number="99"))
    node = session.get("review-0-t")
    assert node.level is None and node.alignment is None
    assert _numbers(session) == ["1", "2", "3", "4"]


def test_make_citable_and_title_shortcuts(session):
    """Shortcut reclassifications set the expected level and alignment."""
    assert session.make_citable("review-4-t")
    assert _numbers(session) == ["1", "2", "3", "4"]

    assert session.make_centered_title("review-1-t")
    node = session.get("review-1-t")
    assert (node.level, node.alignment) == ("chapter", "center")

    assert session.make_left_subtitle("review-2-t")
    node = session.get("review-2-t")
    assert (node.level, node.alignment) == ("subsection", "left")


def test_merge_with_next(session):
    """The earlier node survives with both contents joined."""
    assert session.merge_with_next("review-1-t")
    assert "review-2-t" not in _ids(session)
    merged = session.get("review-1-t")
    assert merged.content == "Alpha text." + MERGE_SEPARATOR + "Beta text."
    assert _numbers(session) == ["1", "2"]


def test_merge_with_previous(session):
    """Merging backwards keeps the previous node's id."""
    assert session.merge_with_previous("review-3-t")
    assert _ids(session) == ["review-0-t", "review-1-t", "review-2-t", "review-4-t"]
    assert session.get("review-2-t").content.endswith("Gamma text.")


def test_merge_preconditions(session):
    """Merging across a heading or past the ends is rejected without dirtying."""
    assert not session.merge_with_previous("review-1-t")  # previous is a heading
    assert not session.merge_with_next("review-3-t")  # next is a heading
    assert not session.merge_with_previous("review-0-t")  # first node
    assert not session.merge_with_next("review-4-t")  # last node
    assert not session.merge_with_next("missing")
    assert not session.is_dirty
    assert len(session.nodes) == 5


def test_split(session):
    """Splitting inserts a new paragraph right after the original."""
    assert session.split("review-1-t", 5)
    ids = _ids(session)
    assert len(ids) == 6
    new_id = ids[2]
    assert new_id not in ("review-1-t", "review-2-t")
    assert session.get("review-1-t").content == "Alpha"
    assert session.get(new_id).content == "text."
    assert _numbers(session) == ["1", "2", "3", "4"]


def test_split_preconditions(session):
    """Bad positions, headings and whitespace-only halves are rejected."""
    assert not session.split("review-1-t", 0)
    assert not session.split("review-1-t", len("Alpha text."))
    assert not session.split("review-0-t", 3)
    session_ws = ReviewSession([ParsedCitable(number=1, display_number="1", content="   abc")])
    assert not session_ws.split(session_ws.nodes[0].temp_id, 2)
    assert not session.is_dirty


def test_edit_content_and_number(session):
    """Direct edits mark the node modified; resequencing restores numbering."""
    assert session.edit_content("review-1-t", "Changed.")
    assert session.get("review-1-t").content == "Changed."
    assert session.get("review-1-t").modified

    assert session.edit_display_number("review-2-t", "2a")
    assert _numbers(session) == ["1", "2a", "3"]
    assert not session.edit_display_number("review-0-t", "5")

    assert session.resequence_numbers()
    assert _numbers(session) == ["1", "2", "3"]


def test_unknown_id_is_noop(session):
    """Operations on unknown ids change nothing."""
    assert not session.ignore("nope")
    assert not session.edit_content("nope", "x")
    assert not session.split("nope", 1)
    assert not session.is_dirty


def test_selection_never_dirties(session):
    """Selecting is UI state only."""
    session.select("review-2-t")
    assert session.selected_node.content == "Beta text."
    session.select(None)
    assert session.selected_node is None
    assert not session.is_dirty


def test_reset(session):
    """Reset discards every edit."""
    session.ignore("review-1-t")
    session.merge_with_next("review-2-t")
    session.reset()
    assert _ids(session) == ["review-0-t", "review-1-t", "review-2-t", "review-3-t", "review-4-t"]
    assert not session.is_dirty


def test_canonicalize(session):
    """Ignored nodes vanish and numeric display numbers become numbers."""
    session.ignore("review-2-t")
    session.edit_display_number("review-3-t", "2b")
    nodes = session.canonicalize(SequentialId("n"))

    assert [type(n) for n in nodes] == [StructuralNode, CitableNode, CitableNode, StructuralNode]
    assert [n.id for n in nodes] == ["n1", "n2", "n3", "n4"]
    assert nodes[1].number == 1
    assert nodes[2].display_number == "2b"
    assert nodes[2].number == 2  # non-numeric falls back to position
    assert nodes[3].alignment == "left"


def test_canonicalize_odd_display_numbers(session):
    """Superscripts and numbers too large to store fall back to position."""
    session.edit_display_number("review-1-t", "1\u00b2")
    session.edit_display_number("review-2-t", "99999999999999999999")
    session.edit_display_number("review-3-t", "40")
    nodes = [n for n in session.canonicalize(SequentialId("n")) if isinstance(n, CitableNode)]

    assert [n.display_number for n in nodes] == ["1\u00b2", "99999999999999999999", "40"]
    assert [n.number for n in nodes] == [1, 2, 40]


def test_commit_writes_document():
    """Commit persists the document and its nodes and empties the session."""
    with tempfile.TemporaryDirectory() as tmpdir:
        store = SQLiteStore(db_path=Path(tmpdir) / "test.db")
        session = ReviewSession(
            [
                ParsedStructural(level="part", alignment="center", content="PART ONE"),
                ParsedCitable(number=27, display_number="27", content="The desire for God."),
            ]
        )
        doc_id = session.commit(store, SequentialId(), title="Catechism", source_type="catechism", owner_id="u1")

        document = store.get_document(doc_id)
        assert document.title == "Catechism"
        assert document.total_citable_nodes == 1
        assert [n.node_type for n in store.get_nodes(doc_id)] == ["structural", "citable"]
        assert session.nodes == []
        assert not session.is_dirty


def test_commit_failure_keeps_edits(session):
    """A store failure propagates and leaves the session untouched."""
    session.ignore("review-1-t")
    with pytest.raises(StoreError):
        session.commit(_FailingStore(), SequentialId(), title="T", source_type="generic")
    assert session.is_dirty
    assert len(session.nodes) == 5
