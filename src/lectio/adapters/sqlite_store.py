"""SQLite-backed store for documents, aliases, anchors, folders and notes."""

import json
import sqlite3
import sys
import time
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, Sequence

from ..core.errors import StoreError
from ..core.model import (
    CitableNode,
    CitationAlias,
    CitationAnchor,
    Document,
    DocumentNode,
    DocumentPlacement,
    Folder,
    Footnote,
    Note,
    StructuralNode,
)

SCHEMA_VERSION = 2

_SCHEMA = """
CREATE TABLE IF NOT EXISTS meta (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS documents (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    author TEXT,
    source_type TEXT NOT NULL,
    category TEXT NOT NULL DEFAULT 'custom',
    owner_id TEXT,
    created_at REAL NOT NULL,
    updated_at REAL NOT NULL,
    total_citable_nodes INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS nodes (
    document_id TEXT NOT NULL,
    position INTEGER NOT NULL,
    id TEXT NOT NULL,
    node_type TEXT NOT NULL,
    level TEXT,
    alignment TEXT,
    number INTEGER,
    display_number TEXT,
    content TEXT NOT NULL,
    footnotes TEXT,
    PRIMARY KEY (document_id, position),
    FOREIGN KEY (document_id) REFERENCES documents(id) ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS nodes_number_idx ON nodes(document_id, number);

CREATE TABLE IF NOT EXISTS aliases (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    id TEXT NOT NULL UNIQUE,
    document_id TEXT NOT NULL,
    prefix TEXT NOT NULL,
    pattern TEXT NOT NULL,
    number_extractor TEXT NOT NULL,
    display_format TEXT NOT NULL,
    priority INTEGER NOT NULL DEFAULT 0,
    custom_group_index INTEGER,
    created_at REAL NOT NULL,
    updated_at REAL NOT NULL
);

CREATE TABLE IF NOT EXISTS anchors (
    id TEXT PRIMARY KEY,
    document_id TEXT NOT NULL,
    node_id TEXT NOT NULL,
    note_id TEXT NOT NULL,
    display_label TEXT NOT NULL,
    sort_order REAL NOT NULL,
    created_at REAL NOT NULL,
    UNIQUE (document_id, node_id, note_id)
);
CREATE INDEX IF NOT EXISTS anchors_note_idx ON anchors(note_id);

CREATE TABLE IF NOT EXISTS folders (
    id TEXT PRIMARY KEY,
    kind TEXT NOT NULL,
    name TEXT NOT NULL,
    parent_id TEXT,
    sort_order REAL NOT NULL,
    created_at REAL NOT NULL,
    updated_at REAL NOT NULL
);

CREATE TABLE IF NOT EXISTS notes (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    content TEXT NOT NULL DEFAULT '',
    parent_id TEXT,
    sort_order REAL NOT NULL,
    created_at REAL NOT NULL,
    updated_at REAL NOT NULL
);

CREATE TABLE IF NOT EXISTS placements (
    document_id TEXT PRIMARY KEY,
    folder_id TEXT,
    sort_order REAL NOT NULL,
    created_at REAL NOT NULL
);
"""


def _encode_footnotes(footnotes: Sequence[Footnote]) -> str | None:
    if not footnotes:
        return None
    return json.dumps([{"id": f.id, "marker": f.marker, "content": f.content} for f in footnotes])


def _decode_footnotes(raw: str | None) -> tuple[Footnote, ...]:
    if not raw:
        return ()
    return tuple(Footnote(**item) for item in json.loads(raw))


def _row_to_node(row: sqlite3.Row) -> DocumentNode:
    if row["node_type"] == "structural":
        return StructuralNode(
            id=row["id"],
            level=row["level"],
            content=row["content"],
            alignment=row["alignment"],
        )
    return CitableNode(
        id=row["id"],
        number=row["number"],
        display_number=row["display_number"],
        content=row["content"],
        footnotes=_decode_footnotes(row["footnotes"]),
    )


def _row_to_document(row: sqlite3.Row) -> Document:
    return Document(
        id=row["id"],
        title=row["title"],
        author=row["author"],
        source_type=row["source_type"],
        category=row["category"],
        owner_id=row["owner_id"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        total_citable_nodes=row["total_citable_nodes"],
    )


def _row_to_alias(row: sqlite3.Row) -> CitationAlias:
    return CitationAlias(
        id=row["id"],
        document_id=row["document_id"],
        prefix=row["prefix"],
        pattern=row["pattern"],
        number_extractor=row["number_extractor"],
        display_format=row["display_format"],
        priority=row["priority"],
        custom_group_index=row["custom_group_index"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_anchor(row: sqlite3.Row) -> CitationAnchor:
    return CitationAnchor(
        id=row["id"],
        document_id=row["document_id"],
        node_id=row["node_id"],
        note_id=row["note_id"],
        display_label=row["display_label"],
        order=row["sort_order"],
        created_at=row["created_at"],
    )


@dataclass
class SQLiteStore:
    """
    One SQLite file holding every persistent entity.

    Implements DocumentStore, AliasStore, AnchorStore, FolderStore and
    NoteStore. Any sqlite3.Error surfaces as StoreError.
    """

    db_path: Path

    def __post_init__(self) -> None:
        self.db_path = Path(self.db_path)
        self._ensure_schema()

    def _conn(self) -> sqlite3.Connection:
        """Get a connection to the SQLite database."""
        conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA synchronous=NORMAL")
        conn.execute("PRAGMA foreign_keys=ON")
        return conn

    @contextmanager
    def _tx(self) -> Iterator[sqlite3.Connection]:
        """A connection whose work is committed as one unit, or not at all."""
        try:
            conn = self._conn()
        except sqlite3.Error as e:
            raise StoreError(f"Cannot open {self.db_path}: {e}") from e
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise StoreError(str(e)) from e
        finally:
            conn.close()

    def _init_schema(self) -> None:
        with self._tx() as conn:
            conn.executescript(_SCHEMA)
            conn.execute(
                """
                INSERT INTO meta(key, value) VALUES('schema_version', ?)
                ON CONFLICT(key) DO NOTHING
                """,
                (str(SCHEMA_VERSION),),
            )

    def _migrate_schema(self, conn: sqlite3.Connection) -> None:
        """Migrate schema from older versions."""
        try:
            row = conn.execute("SELECT value FROM meta WHERE key = 'schema_version'").fetchone()
            current_version = int(row[0]) if row else 0
        except sqlite3.Error:
            current_version = 0

        # v1 documents had no owner
        if 0 < current_version < 2:
            try:
                conn.execute("ALTER TABLE documents ADD COLUMN owner_id TEXT")
                conn.execute("UPDATE meta SET value = '2' WHERE key = 'schema_version'")
                conn.commit()
            except sqlite3.Error as e:
                print(f"Warning: Schema migration failed: {e}", file=sys.stderr)

    def _ensure_schema(self) -> None:
        """Ensure DB exists and schema is initialized."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        if self.db_path.exists():
            try:
                conn = self._conn()
                try:
                    conn.execute("SELECT 1").fetchone()
                    self._migrate_schema(conn)
                finally:
                    conn.close()
            except sqlite3.DatabaseError:
                # Corrupt file: keep it aside and start fresh
                timestamp = int(time.time())
                backup_path = self.db_path.with_suffix(f".bad-{timestamp}.sqlite")
                self.db_path.rename(backup_path)
                print(f"Warning: Corrupt DB backed up to {backup_path}", file=sys.stderr)

        self._init_schema()

    def schema_version(self) -> int:
        with self._tx() as conn:
            row = conn.execute("SELECT value FROM meta WHERE key = 'schema_version'").fetchone()
        return int(row[0]) if row else 0

    # -- documents ---------------------------------------------------------

    def save_document(self, document: Document, nodes: Sequence[DocumentNode]) -> None:
        """Write the document row and all of its nodes in a single transaction."""
        with self._tx() as conn:
            conn.execute(
                """
                INSERT INTO documents (id, title, author, source_type, category, owner_id,
                                       created_at, updated_at, total_citable_nodes)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    document.id,
                    document.title,
                    document.author,
                    document.source_type,
                    document.category,
                    document.owner_id,
                    document.created_at,
                    document.updated_at,
                    document.total_citable_nodes,
                ),
            )
            for position, node in enumerate(nodes):
                if isinstance(node, StructuralNode):
                    values = (node.level, node.alignment, None, None, None)
                else:
                    values = (None, None, node.number, node.display_number, _encode_footnotes(node.footnotes))
                conn.execute(
                    """
                    INSERT INTO nodes (document_id, position, id, node_type, level, alignment,
                                       number, display_number, footnotes, content)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (document.id, position, node.id, node.node_type, *values, node.content),
                )

    def get_document(self, document_id: str) -> Document | None:
        with self._tx() as conn:
            row = conn.execute("SELECT * FROM documents WHERE id = ?", (document_id,)).fetchone()
        return _row_to_document(row) if row else None

    def list_documents(self, owner_id: str | None = None) -> list[Document]:
        with self._tx() as conn:
            if owner_id is None:
                rows = conn.execute("SELECT * FROM documents ORDER BY created_at, rowid").fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM documents WHERE owner_id = ? ORDER BY created_at, rowid",
                    (owner_id,),
                ).fetchall()
        return [_row_to_document(r) for r in rows]

    def get_nodes(self, document_id: str) -> list[DocumentNode]:
        with self._tx() as conn:
            rows = conn.execute(
                "SELECT * FROM nodes WHERE document_id = ? ORDER BY position",
                (document_id,),
            ).fetchall()
        return [_row_to_node(r) for r in rows]

    def find_citable(self, document_id: str, number: int | None = None, display_number: str | None = None) -> CitableNode | None:
        """First citable node of a document matching a number or display number."""
        if number is None and display_number is None:
            return None
        with self._tx() as conn:
            if number is not None:
                row = conn.execute(
                    """
                    SELECT * FROM nodes
                    WHERE document_id = ? AND node_type = 'citable' AND number = ?
                    ORDER BY position LIMIT 1
                    """,
                    (document_id, number),
                ).fetchone()
            else:
                row = conn.execute(
                    """
                    SELECT * FROM nodes
                    WHERE document_id = ? AND node_type = 'citable' AND display_number = ?
                    ORDER BY position LIMIT 1
                    """,
                    (document_id, display_number),
                ).fetchone()
        node = _row_to_node(row) if row else None
        return node if isinstance(node, CitableNode) else None

    def has_node(self, document_id: str, node_id: str) -> bool:
        with self._tx() as conn:
            row = conn.execute(
                "SELECT 1 FROM nodes WHERE document_id = ? AND id = ?",
                (document_id, node_id),
            ).fetchone()
        return row is not None

    def delete_document(self, document_id: str) -> None:
        with self._tx() as conn:
            conn.execute("DELETE FROM nodes WHERE document_id = ?", (document_id,))
            conn.execute("DELETE FROM anchors WHERE document_id = ?", (document_id,))
            conn.execute("DELETE FROM placements WHERE document_id = ?", (document_id,))
            conn.execute("DELETE FROM documents WHERE id = ?", (document_id,))

    # -- aliases -----------------------------------------------------------

    def add_alias(self, alias: CitationAlias) -> None:
        self.put_alias(alias)

    def put_alias(self, alias: CitationAlias) -> None:
        """Insert or overwrite by id. Overwrites keep the original insertion slot."""
        with self._tx() as conn:
            conn.execute(
                """
                INSERT INTO aliases (id, document_id, prefix, pattern, number_extractor,
                                     display_format, priority, custom_group_index,
                                     created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    document_id = excluded.document_id,
                    prefix = excluded.prefix,
                    pattern = excluded.pattern,
                    number_extractor = excluded.number_extractor,
                    display_format = excluded.display_format,
                    priority = excluded.priority,
                    custom_group_index = excluded.custom_group_index,
                    updated_at = excluded.updated_at
                """,
                (
                    alias.id,
                    alias.document_id,
                    alias.prefix,
                    alias.pattern,
                    alias.number_extractor,
                    alias.display_format,
                    alias.priority,
                    alias.custom_group_index,
                    alias.created_at,
                    alias.updated_at,
                ),
            )

    def get_alias(self, alias_id: str) -> CitationAlias | None:
        with self._tx() as conn:
            row = conn.execute("SELECT * FROM aliases WHERE id = ?", (alias_id,)).fetchone()
        return _row_to_alias(row) if row else None

    def list_aliases(self) -> list[CitationAlias]:
        with self._tx() as conn:
            rows = conn.execute("SELECT * FROM aliases ORDER BY priority DESC, seq").fetchall()
        return [_row_to_alias(r) for r in rows]

    def delete_alias(self, alias_id: str) -> bool:
        with self._tx() as conn:
            cur = conn.execute("DELETE FROM aliases WHERE id = ?", (alias_id,))
        return cur.rowcount > 0

    # -- anchors -----------------------------------------------------------

    def add_anchor(self, anchor: CitationAnchor) -> None:
        with self._tx() as conn:
            conn.execute(
                """
                INSERT INTO anchors (id, document_id, node_id, note_id, display_label,
                                     sort_order, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    anchor.id,
                    anchor.document_id,
                    anchor.node_id,
                    anchor.note_id,
                    anchor.display_label,
                    anchor.order,
                    anchor.created_at,
                ),
            )

    def find_anchor(self, document_id: str, node_id: str, note_id: str) -> CitationAnchor | None:
        with self._tx() as conn:
            row = conn.execute(
                "SELECT * FROM anchors WHERE document_id = ? AND node_id = ? AND note_id = ?",
                (document_id, node_id, note_id),
            ).fetchone()
        return _row_to_anchor(row) if row else None

    def delete_anchor(self, anchor_id: str) -> None:
        with self._tx() as conn:
            conn.execute("DELETE FROM anchors WHERE id = ?", (anchor_id,))

    def delete_anchors_for_note(self, note_id: str) -> None:
        with self._tx() as conn:
            conn.execute("DELETE FROM anchors WHERE note_id = ?", (note_id,))

    def anchors_for_document(self, document_id: str) -> list[CitationAnchor]:
        with self._tx() as conn:
            rows = conn.execute(
                "SELECT * FROM anchors WHERE document_id = ? ORDER BY created_at, rowid",
                (document_id,),
            ).fetchall()
        return [_row_to_anchor(r) for r in rows]

    def anchors_for_note(self, note_id: str) -> list[CitationAnchor]:
        with self._tx() as conn:
            rows = conn.execute(
                "SELECT * FROM anchors WHERE note_id = ? ORDER BY sort_order, created_at, rowid",
                (note_id,),
            ).fetchall()
        return [_row_to_anchor(r) for r in rows]

    # -- folders and placements --------------------------------------------

    def add_folder(self, folder: Folder) -> None:
        with self._tx() as conn:
            conn.execute(
                """
                INSERT INTO folders (id, kind, name, parent_id, sort_order, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    folder.id,
                    folder.kind,
                    folder.name,
                    folder.parent_id,
                    folder.order,
                    folder.created_at,
                    folder.updated_at,
                ),
            )

    def update_folder(self, folder: Folder) -> None:
        with self._tx() as conn:
            conn.execute(
                """
                UPDATE folders SET name = ?, parent_id = ?, sort_order = ?, updated_at = ?
                WHERE id = ?
                """,
                (folder.name, folder.parent_id, folder.order, folder.updated_at, folder.id),
            )

    def list_folders(self, kind: str) -> list[Folder]:
        with self._tx() as conn:
            rows = conn.execute(
                "SELECT * FROM folders WHERE kind = ? ORDER BY sort_order, created_at, rowid",
                (kind,),
            ).fetchall()
        return [
            Folder(
                id=r["id"],
                kind=r["kind"],
                name=r["name"],
                parent_id=r["parent_id"],
                order=r["sort_order"],
                created_at=r["created_at"],
                updated_at=r["updated_at"],
            )
            for r in rows
        ]

    def delete_folders(self, folder_ids: Iterable[str]) -> None:
        with self._tx() as conn:
            conn.executemany("DELETE FROM folders WHERE id = ?", [(i,) for i in folder_ids])

    def list_placements(self) -> list[DocumentPlacement]:
        with self._tx() as conn:
            rows = conn.execute(
                "SELECT * FROM placements ORDER BY sort_order, created_at, rowid"
            ).fetchall()
        return [
            DocumentPlacement(
                document_id=r["document_id"],
                folder_id=r["folder_id"],
                order=r["sort_order"],
                created_at=r["created_at"],
            )
            for r in rows
        ]

    def put_placement(self, placement: DocumentPlacement) -> None:
        with self._tx() as conn:
            conn.execute(
                """
                INSERT INTO placements (document_id, folder_id, sort_order, created_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(document_id) DO UPDATE SET
                    folder_id = excluded.folder_id,
                    sort_order = excluded.sort_order
                """,
                (placement.document_id, placement.folder_id, placement.order, placement.created_at),
            )

    # -- notes -------------------------------------------------------------

    def add_note(self, note: Note) -> None:
        with self._tx() as conn:
            conn.execute(
                """
                INSERT INTO notes (id, title, content, parent_id, sort_order, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    note.id,
                    note.title,
                    note.content,
                    note.parent_id,
                    note.order,
                    note.created_at,
                    note.updated_at,
                ),
            )

    def update_note(self, note: Note) -> None:
        with self._tx() as conn:
            conn.execute(
                """
                UPDATE notes SET title = ?, content = ?, parent_id = ?, sort_order = ?, updated_at = ?
                WHERE id = ?
                """,
                (note.title, note.content, note.parent_id, note.order, note.updated_at, note.id),
            )

    def get_note(self, note_id: str) -> Note | None:
        with self._tx() as conn:
            row = conn.execute("SELECT * FROM notes WHERE id = ?", (note_id,)).fetchone()
        return self._row_to_note(row) if row else None

    def list_notes(self) -> list[Note]:
        with self._tx() as conn:
            rows = conn.execute("SELECT * FROM notes ORDER BY sort_order, created_at, rowid").fetchall()
        return [self._row_to_note(r) for r in rows]

    def delete_notes(self, note_ids: Iterable[str]) -> None:
        with self._tx() as conn:
            conn.executemany("DELETE FROM notes WHERE id = ?", [(i,) for i in note_ids])

    @staticmethod
    def _row_to_note(row: sqlite3.Row) -> Note:
        return Note(
            id=row["id"],
            title=row["title"],
            content=row["content"],
            parent_id=row["parent_id"],
            order=row["sort_order"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
