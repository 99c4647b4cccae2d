"""Tests for the SQLite store."""

import sqlite3
import tempfile
from pathlib import Path

import pytest

from lectio.adapters.sqlite_store import SCHEMA_VERSION, SQLiteStore
from lectio.core.errors import StoreError
from lectio.core.model import (
    CitableNode,
    CitationAlias,
    CitationAnchor,
    Document,
    Folder,
    Footnote,
    Note,
    StructuralNode,
)


@pytest.fixture
def store():
    """A fresh store in a temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield SQLiteStore(db_path=Path(tmpdir) / "sub" / "test.db")


def _doc(doc_id="d1", owner="u1", created=1.0):
    return Document(
        id=doc_id,
        title="Catechism",
        source_type="catechism",
        category="catechism",
        owner_id=owner,
        created_at=created,
        updated_at=created,
        total_citable_nodes=2,
    )


def _nodes():
    return [
        StructuralNode(id="s1", level="part", content="PART ONE", alignment="center"),
        CitableNode(
            id="c1",
            number=27,
            display_number="27",
            content="The desire for God.",
            footnotes=(Footnote(id="f1", marker="1", content="Cf. GS 19."),),
        ),
        CitableNode(id="c2", number=28, display_number="28", content="In many ways."),
    ]


def test_schema_created(store):
    """Opening a new file creates the schema at the current version."""
    assert store.db_path.exists()
    assert store.schema_version() == SCHEMA_VERSION


def test_document_roundtrip_keeps_order(store):
    """Nodes come back in saved order with their fields intact."""
    store.save_document(_doc(), _nodes())

    assert store.get_document("d1").title == "Catechism"
    nodes = store.get_nodes("d1")
    assert [n.id for n in nodes] == ["s1", "c1", "c2"]
    assert nodes[0] == _nodes()[0]
    assert nodes[1].footnotes[0].content == "Cf. GS 19."
    assert store.get_document("missing") is None


def test_save_document_is_atomic(store):
    """A failing node insert leaves no document behind."""
    store.save_document(_doc("d1"), _nodes())
    with pytest.raises(StoreError):
        # Same document id violates the primary key
        store.save_document(_doc("d1"), [])
    assert len(store.get_nodes("d1")) == 3

    class Broken:
        id = "x"
        node_type = "citable"
        number = 1
        display_number = "1"
        footnotes = ()
        content = None  # NOT NULL violation

    with pytest.raises(StoreError):
        store.save_document(_doc("d2"), [_nodes()[1], Broken()])
    assert store.get_document("d2") is None
    assert store.get_nodes("d2") == []


def test_find_citable(store):
    """Lookup by number or by display number."""
    store.save_document(_doc(), _nodes())
    assert store.find_citable("d1", number=28).id == "c2"
    assert store.find_citable("d1", display_number="27").id == "c1"
    assert store.find_citable("d1", number=99) is None
    assert store.find_citable("d1") is None
    assert store.has_node("d1", "s1")
    assert not store.has_node("d1", "zz")


def test_list_documents_by_owner(store):
    """Owner filter restricts the listing."""
    store.save_document(_doc("d1", owner="u1", created=1), [])
    store.save_document(_doc("d2", owner="u2", created=2), [])
    assert [d.id for d in store.list_documents()] == ["d1", "d2"]
    assert [d.id for d in store.list_documents(owner_id="u2")] == ["d2"]


def test_delete_document_removes_dependents(store):
    """Deleting a document drops its nodes and anchors."""
    store.save_document(_doc(), _nodes())
    store.add_anchor(CitationAnchor("a1", "d1", "c1", "n1", "CCC §27", 1, 1))
    store.delete_document("d1")
    assert store.get_document("d1") is None
    assert store.get_nodes("d1") == []
    assert store.anchors_for_note("n1") == []


def test_alias_ordering_and_upsert(store):
    """Aliases list by priority then insertion; overwrites keep their slot."""
    store.add_alias(CitationAlias("a1", "d1", "A", "A(\\d+)", "paragraph", "{prefix} {number}", 0))
    store.add_alias(CitationAlias("a2", "d1", "B", "B(\\d+)", "paragraph", "{prefix} {number}", 100))
    store.add_alias(CitationAlias("a3", "d1", "C", "C(\\d+)", "paragraph", "{prefix} {number}", 0))
    assert [a.id for a in store.list_aliases()] == ["a2", "a1", "a3"]

    store.put_alias(CitationAlias("a1", "d1", "AA", "A(\\d+)", "paragraph", "{prefix}", 0, updated_at=5))
    assert [a.id for a in store.list_aliases()] == ["a2", "a1", "a3"]
    assert store.get_alias("a1").prefix == "AA"

    assert store.delete_alias("a1")
    assert not store.delete_alias("a1")


def test_anchor_uniqueness(store):
    """The (document, node, note) triple is unique at the storage level."""
    store.add_anchor(CitationAnchor("a1", "d1", "c1", "n1", "CCC §27", 1, 1))
    with pytest.raises(StoreError):
        store.add_anchor(CitationAnchor("a2", "d1", "c1", "n1", "again", 2, 2))
    assert store.find_anchor("d1", "c1", "n1").id == "a1"


def test_folders_notes_and_placements(store):
    """Sibling listings are sorted by order then creation."""
    store.add_folder(Folder("f1", "note", "B", None, 2, 1, 1))
    store.add_folder(Folder("f2", "note", "A", None, 1, 2, 2))
    store.add_folder(Folder("f3", "document", "Docs", None, 1, 3, 3))
    assert [f.id for f in store.list_folders("note")] == ["f2", "f1"]

    store.add_note(Note("n1", "First", "<p>x</p>", "f1", 1, 1, 1))
    note = store.get_note("n1")
    note.title = "Renamed"
    store.update_note(note)
    assert store.get_note("n1").title == "Renamed"

    store.delete_notes(["n1"])
    store.delete_folders(["f1", "f2"])
    assert store.list_notes() == []
    assert [f.id for f in store.list_folders("note")] == []


def test_corrupt_db_is_backed_up():
    """A garbage file is moved aside and a fresh DB created."""
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "bad.db"
        db_path.write_bytes(b"this is not sqlite" * 100)
        store = SQLiteStore(db_path=db_path)
        assert store.schema_version() == SCHEMA_VERSION
        assert list(Path(tmpdir).glob("bad.bad-*.sqlite"))


def test_migrates_v1_documents_table():
    """A v1 database gains the owner column."""
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "old.db"
        conn = sqlite3.connect(db_path)
        conn.executescript(
            """
            CREATE TABLE meta (key TEXT PRIMARY KEY, value TEXT NOT NULL);
            INSERT INTO meta VALUES ('schema_version', '1');
            CREATE TABLE documents (
                id TEXT PRIMARY KEY, title TEXT NOT NULL, author TEXT,
                source_type TEXT NOT NULL, category TEXT NOT NULL DEFAULT 'custom',
                created_at REAL NOT NULL, updated_at REAL NOT NULL,
                total_citable_nodes INTEGER NOT NULL DEFAULT 0
            );
            """
        )
        conn.commit()
        conn.close()

        store = SQLiteStore(db_path=db_path)
        assert store.schema_version() == 2
        store.save_document(_doc(), [])
        assert store.get_document("d1").owner_id == "u1"
