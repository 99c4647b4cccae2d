"""CLI for lectio - citable documents from plain text."""

import argparse
import json
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any

from . import __version__
from .adapters.yaml_codec import YamlFrontmatter, dump_yaml, load_yaml
from .citations.autolink import auto_link, unlink
from .core.model import CATEGORIES, SOURCE_TYPES, CitableNode, Folder
from .lint import Finding, UnresolvedCitationsRule
from .parser import parse_document
from .review import ReviewSession
from .runtime import build_runtime


def _read(path: str) -> str:
    return Path(path).read_text(encoding="utf-8")


def _emit_json(data: Any) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


def _preview(text: str, width: int = 60) -> str:
    text = " ".join(text.split())
    return text if len(text) <= width else text[: width - 3] + "..."


# -- documents ---------------------------------------------------------------


def cmd_parse(args: argparse.Namespace, rt: Any) -> int:
    """Segment a text file and show what import would produce."""
    meta, body = YamlFrontmatter().decode(_read(args.file))
    source_type = args.source_type or meta.get("source_type") or rt.config.import_.source_type
    result = parse_document(body, source_type)

    if args.json:
        _emit_json({"nodes": [asdict(n) for n in result.nodes], "stats": asdict(result.stats)})
        return 0

    for index, node in enumerate(result.nodes):
        if node.node_type == "structural":
            print(f"{index:4d}  [{node.level}] {_preview(node.content)}")
        else:
            print(f"{index:4d}  {node.display_number:>5}  {_preview(node.content)}")
    if not args.quiet:
        stats = result.stats
        print(f"Total: {stats.total}  structural: {stats.structural}  citable: {stats.citable}")
    return 0


def cmd_import(args: argparse.Namespace, rt: Any) -> int:
    """Parse, review and commit a text file as a new document."""
    meta, body = YamlFrontmatter().decode(_read(args.file))

    source_type = args.source_type or meta.get("source_type") or rt.config.import_.source_type
    category = args.category or meta.get("category") or rt.config.import_.category
    title = args.title or meta.get("title") or Path(args.file).stem
    author = args.author or meta.get("author")

    if source_type not in SOURCE_TYPES:
        print(f"Error: Unknown source type '{source_type}'", file=sys.stderr)
        return 1
    if category not in CATEGORIES:
        print(f"Error: Unknown category '{category}'", file=sys.stderr)
        return 1

    result = parse_document(body, source_type)
    session = ReviewSession(result.nodes)

    nodes = list(session.nodes)
    for position in args.ignore:
        if not 0 <= position < len(nodes):
            print(f"Error: No node at position {position}", file=sys.stderr)
            return 1
        session.ignore(nodes[position].temp_id)

    stats = session.stats
    document_id = session.commit(
        rt.store,
        rt.idgen,
        title=title,
        source_type=source_type,
        author=author,
        category=category,
        owner_id=rt.library.user_id,
    )

    if args.preset:
        if rt.aliases.create_from_preset(document_id, args.preset, args.prefix) is None:
            print(f"Warning: Could not create '{args.preset}' alias (prefix taken?)", file=sys.stderr)

    if args.json:
        _emit_json({"id": document_id, "stats": asdict(stats)})
    elif args.quiet:
        print(document_id)
    else:
        print(f"Imported {title} as {document_id}")
        print(f"Structural: {stats.structural}  citable: {stats.citable}  ignored: {stats.ignored}")
    return 0


def cmd_docs_ls(args: argparse.Namespace, rt: Any) -> int:
    """List documents of the signed-in user."""
    documents = rt.library.list_documents()
    if args.json:
        _emit_json([asdict(d) for d in documents])
        return 0
    if not rt.library.user_id and not args.quiet:
        print("Not signed in; set [auth] user or pass --user", file=sys.stderr)
    for doc in documents:
        print(f"{doc.id}  {doc.source_type:<10} {doc.total_citable_nodes:>5}  {doc.title}")
    return 0


def cmd_docs_show(args: argparse.Namespace, rt: Any) -> int:
    """Print a document's nodes in order."""
    document = rt.store.get_document(args.id)
    if document is None:
        print(f"Error: Document {args.id} not found", file=sys.stderr)
        return 1

    nodes = rt.store.get_nodes(args.id)
    if args.json:
        _emit_json({"document": asdict(document), "nodes": [asdict(n) for n in nodes]})
        return 0

    anchored = rt.anchors.anchored_node_ids(args.id)
    print(f"# {document.title}" + (f" ({document.author})" if document.author else ""))
    for node in nodes:
        if isinstance(node, CitableNode):
            mark = "*" if node.id in anchored else " "
            print(f"{mark}{node.display_number:>5}  [{node.id}] {node.content}")
        else:
            indent = "      " if node.alignment == "left" else ""
            print(f"\n{indent}{node.content}\n")
    return 0


def cmd_docs_rm(args: argparse.Namespace, rt: Any) -> int:
    """Delete a document with its nodes, anchors and aliases."""
    document = rt.store.get_document(args.id)
    if document is None:
        print(f"Error: Document {args.id} not found", file=sys.stderr)
        return 1

    if not args.yes:
        response = input(f"Delete document '{document.title}'? [y/N] ")
        if response.lower() not in ("y", "yes"):
            print("Cancelled")
            return 1

    removed_aliases = rt.aliases.delete_for_document(args.id)
    rt.store.delete_document(args.id)
    if not args.quiet:
        print(f"Deleted {args.id} ({removed_aliases} alias(es) removed)")
    return 0


# -- aliases -----------------------------------------------------------------


def cmd_alias_ls(args: argparse.Namespace, rt: Any) -> int:
    """List aliases in resolution order."""
    aliases = rt.aliases.list_for_document(args.document) if args.document else rt.aliases.list_all()
    if args.json:
        _emit_json([asdict(a) for a in aliases])
        return 0
    for alias in aliases:
        print(f"{alias.id}  {alias.priority:>4}  {alias.prefix:<8} {alias.document_id}  {alias.pattern}")
    return 0


def cmd_alias_add(args: argparse.Namespace, rt: Any) -> int:
    """Register a custom alias pattern for a document."""
    alias_id = rt.aliases.create(
        document_id=args.document,
        prefix=args.prefix,
        pattern=args.pattern,
        number_extractor=args.extractor,
        display_format=args.format,
        priority=args.priority,
        custom_group_index=args.group,
    )
    if alias_id is None:
        print("Error: Prefix is blank or already in use, or pattern is not a valid regex", file=sys.stderr)
        return 1
    print(alias_id)
    return 0


def cmd_alias_preset(args: argparse.Namespace, rt: Any) -> int:
    """Register an alias from a built-in preset."""
    alias_id = rt.aliases.create_from_preset(args.document, args.preset, args.prefix)
    if alias_id is None:
        print(f"Error: Cannot create alias from preset '{args.preset}'", file=sys.stderr)
        return 1
    print(alias_id)
    return 0


def cmd_alias_rm(args: argparse.Namespace, rt: Any) -> int:
    if not rt.aliases.delete(args.id):
        print(f"Error: Alias {args.id} not found", file=sys.stderr)
        return 1
    return 0


def cmd_alias_export(args: argparse.Namespace, rt: Any) -> int:
    """Write every alias as YAML."""
    text = dump_yaml(rt.aliases.export_aliases())
    if args.out:
        Path(args.out).write_text(text, encoding="utf-8")
        if not args.quiet:
            print(f"Exported aliases to {args.out}")
    else:
        print(text, end="")
    return 0


def cmd_alias_import(args: argparse.Namespace, rt: Any) -> int:
    """Merge a YAML alias export; newer copies win."""
    data = load_yaml(_read(args.file))
    if not isinstance(data, dict):
        print("Error: Alias export must be a YAML mapping", file=sys.stderr)
        return 1
    counts = rt.aliases.import_aliases(data)
    if args.json:
        _emit_json(asdict(counts))
    elif not args.quiet:
        print(f"Added: {counts.added}")
        print(f"Updated: {counts.updated}")
        if counts.skipped:
            print(f"Skipped (prefix taken): {counts.skipped}")
    return 0


# -- citation links ----------------------------------------------------------


def cmd_link(args: argparse.Namespace, rt: Any) -> int:
    """Auto-link citations in an HTML file or a note."""
    if args.note:
        note = rt.library.get_note(args.note)
        if note is None:
            print(f"Error: Note {args.note} not found", file=sys.stderr)
            return 1
        result = auto_link(note.content, rt.resolver)
        if result.linked_count:
            rt.library.update_note(note.id, content=result.html)
    else:
        if not args.file:
            print("Error: Pass an HTML file or --note", file=sys.stderr)
            return 1
        result = auto_link(_read(args.file), rt.resolver)
        if args.in_place:
            Path(args.file).write_text(result.html, encoding="utf-8")
        else:
            print(result.html)

    if not args.quiet:
        print(f"Linked: {result.linked_count}", file=sys.stderr)
    return 0


def cmd_unlink(args: argparse.Namespace, rt: Any) -> int:
    """Strip citation links from an HTML file, keeping their text."""
    html, count = unlink(_read(args.file), args.citation)
    if args.in_place:
        Path(args.file).write_text(html, encoding="utf-8")
    else:
        print(html)
    if not args.quiet:
        print(f"Unlinked: {count}", file=sys.stderr)
    return 0


# -- anchors -----------------------------------------------------------------


def cmd_anchor_add(args: argparse.Namespace, rt: Any) -> int:
    if not rt.store.has_node(args.document, args.node):
        print(f"Error: Node {args.node} not found in document {args.document}", file=sys.stderr)
        return 1
    if rt.library.get_note(args.note) is None:
        print(f"Error: Note {args.note} not found", file=sys.stderr)
        return 1

    anchor_id = rt.anchors.create_anchor(args.document, args.node, args.note, args.label)
    if anchor_id is None:
        if not args.quiet:
            print("Anchor already exists")
        return 0
    print(anchor_id)
    return 0


def cmd_anchor_rm(args: argparse.Namespace, rt: Any) -> int:
    rt.anchors.remove_anchor(args.id)
    return 0


def cmd_anchor_ls(args: argparse.Namespace, rt: Any) -> int:
    if args.note:
        anchors = rt.anchors.anchors_for_note(args.note)
    elif args.document:
        anchors = rt.anchors.anchors_for_document(args.document)
    else:
        print("Error: Pass --note or --document", file=sys.stderr)
        return 1

    if args.json:
        _emit_json([asdict(a) for a in anchors])
        return 0
    for anchor in anchors:
        print(f"{anchor.id}  {anchor.display_label:<16} doc:{anchor.document_id}:{anchor.node_id} -> {anchor.note_id}")
    return 0


# -- notes -------------------------------------------------------------------


def _parent_arg(value: str | None) -> str | None:
    return None if value in (None, "", "root") else value


def cmd_notes_new(args: argparse.Namespace, rt: Any) -> int:
    content = _read(args.content_file) if args.content_file else ""
    note_id = rt.library.create_note(args.title, content, _parent_arg(args.parent))
    if note_id is None:
        print(f"Error: Folder {args.parent} not found", file=sys.stderr)
        return 1
    print(note_id)
    return 0


def cmd_notes_mkdir(args: argparse.Namespace, rt: Any) -> int:
    folder_id = rt.library.create_folder(args.kind, args.name, _parent_arg(args.parent))
    if folder_id is None:
        print("Error: Blank name or unknown parent folder", file=sys.stderr)
        return 1
    print(folder_id)
    return 0


def cmd_notes_mv(args: argparse.Namespace, rt: Any) -> int:
    """Move a note or folder to a position under a new parent."""
    parent_id = _parent_arg(args.parent)
    entry = rt.library.note_tree().get(args.id)
    if entry is not None and not entry.is_container:
        ok = rt.library.move_note(args.id, parent_id, args.index)
    else:
        ok = rt.library.move_folder(args.id, parent_id, args.index)
    if not ok:
        print(f"Error: Cannot move {args.id}", file=sys.stderr)
        return 1
    return 0


def cmd_notes_rm(args: argparse.Namespace, rt: Any) -> int:
    entry = rt.library.note_tree().get(args.id)
    if entry is not None and not entry.is_container:
        ok = rt.library.delete_note(args.id)
    else:
        ok = rt.library.delete_folder(args.id)
    if not ok:
        print(f"Error: {args.id} not found", file=sys.stderr)
        return 1
    return 0


def cmd_notes_tree(args: argparse.Namespace, rt: Any) -> int:
    tree = rt.library.note_tree()
    if args.json:
        _emit_json(
            [
                {"depth": depth, "id": e.id, "folder": e.is_container, "parent_id": e.parent_id}
                for depth, e in tree.walk()
            ]
        )
        return 0
    for depth, entry in tree.walk():
        item = entry.item
        label = f"{item.name}/" if isinstance(item, Folder) else item.title
        print(f"{'  ' * depth}{label}  ({entry.id})")
    return 0


# -- checks and server -------------------------------------------------------


def cmd_lint(args: argparse.Namespace, rt: Any) -> int:
    """Report citation links in notes that no longer resolve."""
    rule = UnresolvedCitationsRule()

    all_findings: list[tuple[str, Finding]] = []
    for note in rt.store.list_notes():
        for f in rule.check(note, rt.store):
            all_findings.append((note.id, f))

    if args.json:
        _emit_json(
            [
                {"note_id": nid, "severity": f.severity, "message": f.message, "text": f.link_text}
                for nid, f in all_findings
            ]
        )
    else:
        for nid, f in all_findings:
            if not args.quiet:
                print(f"{nid}: [{f.severity}] {f.message} ({f.link_text})")

    return 1 if any(f.severity == "error" for _, f in all_findings) else 0


def cmd_serve(args: argparse.Namespace, rt: Any) -> int:
    """Start local JSON API server."""
    import uvicorn

    from .api.app import create_app, generate_token

    token_arg = args.token
    if token_arg == "auto":
        token = generate_token()
        print(f"Generated bearer token: {token}")
        print(f"Use in requests: Authorization: Bearer {token}")
    elif token_arg == "none":
        print("Warning: Running without authentication. Only use in trusted environments.")
        token = None
    else:
        token = token_arg

    app = create_app(rt, token=token, enable_cors=args.cors)

    host = args.host or rt.config.api.host
    port = args.port or rt.config.api.port
    print(f"Starting server on http://{host}:{port}")

    uvicorn.run(app, host=host, port=port, log_level="info")
    return 0


def main() -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(prog="lectio", description="Lectio CLI")
    parser.add_argument("--version", action="version", version=f"lectio {__version__}")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to config file (default: search cwd/lectio.toml, data-dir/lectio.toml)",
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=None,
        help="Data directory (config fallback and default DB location)",
    )
    parser.add_argument("--db", type=Path, default=None, help="Path to SQLite DB (overrides config)")
    parser.add_argument("--user", default=None, help="Signed-in user (overrides config)")
    parser.add_argument("-q", "--quiet", action="store_true", help="Minimize output")
    parser.add_argument("--json", action="store_true", help="Machine-readable output")

    subparsers = parser.add_subparsers(dest="cmd", required=True)

    # parse / import
    parser_parse = subparsers.add_parser("parse", help="Segment a text file without importing")
    parser_parse.add_argument("file", help="Plain-text source file")
    parser_parse.add_argument("--source-type", choices=SOURCE_TYPES, help="Source type")

    parser_import = subparsers.add_parser("import", help="Import a text file as a document")
    parser_import.add_argument("file", help="Plain-text source file (optional YAML front matter)")
    parser_import.add_argument("--title", help="Document title")
    parser_import.add_argument("--author", help="Author")
    parser_import.add_argument("--source-type", choices=SOURCE_TYPES, help="Source type")
    parser_import.add_argument("--category", choices=CATEGORIES, help="Library category")
    parser_import.add_argument(
        "--ignore",
        type=int,
        action="append",
        default=[],
        metavar="N",
        help="Skip the node at parse position N (repeatable)",
    )
    parser_import.add_argument("--preset", help="Also register an alias from this preset")
    parser_import.add_argument("--prefix", help="Custom prefix for --preset")

    # docs
    parser_docs = subparsers.add_parser("docs", help="Manage documents")
    docs_sub = parser_docs.add_subparsers(dest="docs_cmd", required=True)
    docs_sub.add_parser("ls", help="List documents")
    parser_docs_show = docs_sub.add_parser("show", help="Print a document")
    parser_docs_show.add_argument("id", help="Document ID")
    parser_docs_rm = docs_sub.add_parser("rm", help="Delete a document")
    parser_docs_rm.add_argument("id", help="Document ID")
    parser_docs_rm.add_argument("--yes", action="store_true", help="Skip confirmation")

    # alias
    parser_alias = subparsers.add_parser("alias", help="Manage citation aliases")
    alias_sub = parser_alias.add_subparsers(dest="alias_cmd", required=True)
    parser_alias_ls = alias_sub.add_parser("ls", help="List aliases")
    parser_alias_ls.add_argument("--document", help="Only aliases for this document")
    parser_alias_add = alias_sub.add_parser("add", help="Add a custom alias")
    parser_alias_add.add_argument("document", help="Document ID")
    parser_alias_add.add_argument("prefix", help="Citation prefix, e.g. CCC")
    parser_alias_add.add_argument("pattern", help="Regex matched case-insensitively")
    parser_alias_add.add_argument(
        "--extractor",
        choices=["paragraph", "section", "chapter:verse", "custom"],
        default="paragraph",
        help="How the reference is read from the match",
    )
    parser_alias_add.add_argument("--format", default="{prefix} {number}", help="Display format")
    parser_alias_add.add_argument("--priority", type=int, default=0, help="Higher is tried first")
    parser_alias_add.add_argument("--group", type=int, default=None, help="Group index for custom extractor")
    parser_alias_preset = alias_sub.add_parser("preset", help="Add an alias from a preset")
    parser_alias_preset.add_argument("document", help="Document ID")
    parser_alias_preset.add_argument("preset", help="catechism, summa, confessions or generic")
    parser_alias_preset.add_argument("--prefix", help="Replace the preset's prefix")
    parser_alias_rm = alias_sub.add_parser("rm", help="Delete an alias")
    parser_alias_rm.add_argument("id", help="Alias ID")
    parser_alias_export = alias_sub.add_parser("export", help="Export aliases as YAML")
    parser_alias_export.add_argument("--out", help="Output file (default: stdout)")
    parser_alias_import = alias_sub.add_parser("import", help="Import aliases from YAML")
    parser_alias_import.add_argument("file", help="YAML export file")

    # link / unlink
    parser_link = subparsers.add_parser("link", help="Auto-link citations in HTML")
    parser_link.add_argument("file", nargs="?", help="HTML fragment file")
    parser_link.add_argument("--note", help="Link a stored note instead of a file")
    parser_link.add_argument("--in-place", action="store_true", help="Rewrite the file")
    parser_unlink = subparsers.add_parser("unlink", help="Remove citation links from HTML")
    parser_unlink.add_argument("file", help="HTML fragment file")
    parser_unlink.add_argument("--citation", help="Only links with this data-citation token")
    parser_unlink.add_argument("--in-place", action="store_true", help="Rewrite the file")

    # anchor
    parser_anchor = subparsers.add_parser("anchor", help="Manage citation anchors")
    anchor_sub = parser_anchor.add_subparsers(dest="anchor_cmd", required=True)
    parser_anchor_add = anchor_sub.add_parser("add", help="Anchor a paragraph to a note")
    parser_anchor_add.add_argument("document", help="Document ID")
    parser_anchor_add.add_argument("node", help="Node ID")
    parser_anchor_add.add_argument("note", help="Note ID")
    parser_anchor_add.add_argument("label", help="Display label, e.g. 'CCC §27'")
    parser_anchor_rm = anchor_sub.add_parser("rm", help="Remove an anchor")
    parser_anchor_rm.add_argument("id", help="Anchor ID")
    parser_anchor_ls = anchor_sub.add_parser("ls", help="List anchors")
    parser_anchor_ls.add_argument("--note", help="Anchors of a note")
    parser_anchor_ls.add_argument("--document", help="Anchors into a document")

    # notes
    parser_notes = subparsers.add_parser("notes", help="Manage notes and folders")
    notes_sub = parser_notes.add_subparsers(dest="notes_cmd", required=True)
    parser_notes_new = notes_sub.add_parser("new", help="Create a note")
    parser_notes_new.add_argument("title", help="Note title")
    parser_notes_new.add_argument("--parent", help="Folder ID")
    parser_notes_new.add_argument("--content-file", help="HTML file with the note body")
    parser_notes_mkdir = notes_sub.add_parser("mkdir", help="Create a folder")
    parser_notes_mkdir.add_argument("name", help="Folder name")
    parser_notes_mkdir.add_argument("--parent", help="Parent folder ID")
    parser_notes_mkdir.add_argument("--kind", choices=["note", "document"], default="note", help="Folder kind")
    parser_notes_mv = notes_sub.add_parser("mv", help="Move a note or folder")
    parser_notes_mv.add_argument("id", help="Note or folder ID")
    parser_notes_mv.add_argument("parent", help="Target folder ID, or 'root'")
    parser_notes_mv.add_argument("--index", type=int, default=0, help="Drop position among siblings")
    parser_notes_rm = notes_sub.add_parser("rm", help="Delete a note or folder")
    parser_notes_rm.add_argument("id", help="Note or folder ID")
    notes_sub.add_parser("tree", help="Print the note tree")

    # lint / serve
    subparsers.add_parser("lint", help="Find citation links that no longer resolve")

    parser_serve = subparsers.add_parser("serve", help="Start local JSON API server")
    parser_serve.add_argument("--host", default=None, help="Bind host (default from config)")
    parser_serve.add_argument("--port", type=int, default=None, help="Bind port (default from config)")
    parser_serve.add_argument(
        "--token",
        default="auto",
        help="Bearer token: 'auto' to generate, 'none' to disable, or a literal token",
    )
    parser_serve.add_argument("--cors", action="store_true", help="Enable CORS")

    args = parser.parse_args()

    handlers = {
        "parse": cmd_parse,
        "import": cmd_import,
        "link": cmd_link,
        "unlink": cmd_unlink,
        "lint": cmd_lint,
        "serve": cmd_serve,
    }
    group_handlers = {
        "docs": ("docs_cmd", {"ls": cmd_docs_ls, "show": cmd_docs_show, "rm": cmd_docs_rm}),
        "alias": (
            "alias_cmd",
            {
                "ls": cmd_alias_ls,
                "add": cmd_alias_add,
                "preset": cmd_alias_preset,
                "rm": cmd_alias_rm,
                "export": cmd_alias_export,
                "import": cmd_alias_import,
            },
        ),
        "anchor": ("anchor_cmd", {"add": cmd_anchor_add, "rm": cmd_anchor_rm, "ls": cmd_anchor_ls}),
        "notes": (
            "notes_cmd",
            {
                "new": cmd_notes_new,
                "mkdir": cmd_notes_mkdir,
                "mv": cmd_notes_mv,
                "rm": cmd_notes_rm,
                "tree": cmd_notes_tree,
            },
        ),
    }

    if args.cmd in group_handlers:
        dest, table = group_handlers[args.cmd]
        handler = table.get(getattr(args, dest))
    else:
        handler = handlers.get(args.cmd)

    if handler is None:
        print(f"Unknown command: {args.cmd}", file=sys.stderr)
        sys.exit(1)

    try:
        rt = build_runtime(
            data_dir=args.data_dir,
            db_path=args.db,
            config_path=args.config,
            user=args.user,
        )
        exit_code = handler(args, rt)
        sys.exit(exit_code)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
