"""Tests for citation link linting in notes."""

import tempfile
from pathlib import Path

import pytest

from lectio.adapters.sqlite_store import SQLiteStore
from lectio.citations.autolink import create_citation_link, create_scripture_link
from lectio.citations.refs import ScriptureReference
from lectio.core.model import CitableNode, Document, Note
from lectio.lint import UnresolvedCitationsRule


@pytest.fixture
def store():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = SQLiteStore(db_path=Path(tmpdir) / "test.db")
        store.save_document(
            Document(id="ccc", title="Catechism", source_type="catechism"),
            [CitableNode(id="c27", number=27, display_number="27", content="The desire for God")],
        )
        yield store


def _note(content: str) -> Note:
    return Note(id="n1", title="N", content=content)


def test_clean_note_has_no_findings(store):
    note = _note(f"<p>{create_citation_link('CCC §27', 'ccc', 'c27')}</p>")
    assert UnresolvedCitationsRule().check(note, store) == []


def test_broken_links_are_reported(store):
    """Unknown documents and paragraphs are errors; unpinned links warn."""
    content = "".join(
        [
            create_citation_link("Gone", "missing", "x1"),
            create_citation_link("CCC §999", "ccc"),
            create_citation_link("CCC §5", "ccc", "c5"),
        ]
    )
    findings = UnresolvedCitationsRule().check(_note(content), store)

    assert [(f.severity, f.link_text) for f in findings] == [
        ("error", "Gone"),
        ("warn", "CCC §999"),
        ("error", "CCC §5"),
    ]


def test_scripture_links_are_ignored(store):
    link = create_scripture_link("John 3:16", ScriptureReference("rsv", "John", 3, 16))
    assert UnresolvedCitationsRule().check(_note(link), store) == []
