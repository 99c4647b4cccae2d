"""FastAPI application for the lectio local JSON API."""

import secrets
from dataclasses import asdict
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Query, Security
from fastapi.middleware.cors import CORSMiddleware
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from ..citations.autolink import auto_link
from ..core.model import SOURCE_TYPES, Folder, NumberExtractor
from ..parser import parse_document


class ParseRequest(BaseModel):
    text: str
    source_type: str = "generic"


class AliasRequest(BaseModel):
    document_id: str
    prefix: str
    pattern: str
    number_extractor: NumberExtractor = "paragraph"
    display_format: str = "{prefix} {number}"
    priority: int = 0
    custom_group_index: int | None = None


class PresetRequest(BaseModel):
    document_id: str
    preset: str
    prefix: str | None = None


class TextRequest(BaseModel):
    text: str


class HtmlRequest(BaseModel):
    html: str


class AnchorRequest(BaseModel):
    document_id: str
    node_id: str
    note_id: str
    label: str


def _node_tree(tree: Any, parent_id: str | None = None) -> list[dict[str, Any]]:
    out = []
    for entry in tree.children(parent_id):
        item = entry.item
        if isinstance(item, Folder):
            out.append(
                {
                    "type": "folder",
                    "id": item.id,
                    "name": item.name,
                    "children": _node_tree(tree, item.id),
                }
            )
        else:
            out.append({"type": "note", "id": item.id, "title": item.title})
    return out


def create_app(runtime: Any, token: str | None = None, enable_cors: bool = False) -> FastAPI:
    """
    Create FastAPI application with runtime injected.

    Args:
        runtime: Runtime instance with store, registry and resolver
        token: Bearer token for authentication (None to disable auth)
        enable_cors: Enable CORS middleware

    Returns:
        FastAPI application instance
    """
    app = FastAPI(
        title="Lectio API",
        description="Local JSON API for lectio documents, citations and notes",
        version="0.1.0",
        docs_url="/docs" if token is None else None,
        redoc_url="/redoc" if token is None else None,
    )

    if enable_cors:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    if token:
        security_scheme = HTTPBearer(auto_error=False)

        async def verify_token(
            credentials: HTTPAuthorizationCredentials | None = Security(security_scheme),  # noqa: B008
        ) -> None:
            """Verify bearer token."""
            if credentials is None or credentials.credentials != token:
                raise HTTPException(status_code=401, detail="Invalid or missing token")
    else:

        async def verify_token() -> None:
            """No-op when auth is disabled."""
            return None

    @app.get("/health")  # type: ignore[misc]
    async def health(auth: None = Depends(verify_token)) -> dict[str, Any]:
        """Health check endpoint."""
        return {"status": "ok", "schema_version": str(runtime.store.schema_version())}

    # -- documents ---------------------------------------------------------

    @app.get("/documents")  # type: ignore[misc]
    async def list_documents(auth: None = Depends(verify_token)) -> list[dict[str, Any]]:
        return [asdict(d) for d in runtime.library.list_documents()]

    @app.get("/documents/{document_id}")  # type: ignore[misc]
    async def get_document(document_id: str, auth: None = Depends(verify_token)) -> dict[str, Any]:
        """Document metadata plus its ordered nodes."""
        document = runtime.store.get_document(document_id)
        if document is None:
            raise HTTPException(status_code=404, detail=f"Document {document_id} not found")
        return {
            "document": asdict(document),
            "nodes": [asdict(n) for n in runtime.store.get_nodes(document_id)],
            "anchored_node_ids": sorted(runtime.anchors.anchored_node_ids(document_id)),
        }

    @app.post("/parse")  # type: ignore[misc]
    async def parse(body: ParseRequest, auth: None = Depends(verify_token)) -> dict[str, Any]:
        """Segment raw text without committing anything."""
        if body.source_type not in SOURCE_TYPES:
            raise HTTPException(status_code=422, detail=f"Unknown source type {body.source_type}")
        result = parse_document(body.text, body.source_type)
        return {
            "nodes": [asdict(n) for n in result.nodes],
            "stats": asdict(result.stats),
        }

    # -- aliases -----------------------------------------------------------

    @app.get("/aliases")  # type: ignore[misc]
    async def list_aliases(
        document_id: str | None = Query(None, description="Only aliases for this document"),
        auth: None = Depends(verify_token),
    ) -> list[dict[str, Any]]:
        if document_id:
            aliases = runtime.aliases.list_for_document(document_id)
        else:
            aliases = runtime.aliases.list_all()
        return [asdict(a) for a in aliases]

    @app.post("/aliases", status_code=201)  # type: ignore[misc]
    async def create_alias(body: AliasRequest, auth: None = Depends(verify_token)) -> dict[str, Any]:
        alias_id = runtime.aliases.create(**body.model_dump())
        if alias_id is None:
            raise HTTPException(status_code=409, detail="Prefix in use, blank, or pattern invalid")
        return {"id": alias_id}

    @app.post("/aliases/preset", status_code=201)  # type: ignore[misc]
    async def create_alias_from_preset(body: PresetRequest, auth: None = Depends(verify_token)) -> dict[str, Any]:
        alias_id = runtime.aliases.create_from_preset(body.document_id, body.preset, body.prefix)
        if alias_id is None:
            raise HTTPException(status_code=409, detail=f"Cannot create alias from preset {body.preset}")
        return {"id": alias_id}

    @app.delete("/aliases/{alias_id}")  # type: ignore[misc]
    async def delete_alias(alias_id: str, auth: None = Depends(verify_token)) -> dict[str, Any]:
        if not runtime.aliases.delete(alias_id):
            raise HTTPException(status_code=404, detail=f"Alias {alias_id} not found")
        return {"deleted": alias_id}

    # -- citations ---------------------------------------------------------

    @app.post("/resolve")  # type: ignore[misc]
    async def resolve(body: TextRequest, auth: None = Depends(verify_token)) -> list[dict[str, Any]]:
        """Find and resolve every alias citation in a piece of text."""
        out = []
        for match, resolved in runtime.resolver.resolve_text(body.text):
            out.append(
                {
                    "match": match.match,
                    "start": match.start_index,
                    "end": match.end_index,
                    "prefix": match.alias.prefix,
                    "range_start": match.range_start,
                    "range_end": match.range_end,
                    **asdict(resolved),
                }
            )
        return out

    @app.post("/autolink")  # type: ignore[misc]
    async def autolink(body: HtmlRequest, auth: None = Depends(verify_token)) -> dict[str, Any]:
        result = auto_link(body.html, runtime.resolver)
        return {"html": result.html, "linked_count": result.linked_count}

    # -- anchors -----------------------------------------------------------

    @app.get("/anchors")  # type: ignore[misc]
    async def list_anchors(
        note_id: str | None = Query(None, description="Anchors of a note"),
        document_id: str | None = Query(None, description="Anchors into a document"),
        auth: None = Depends(verify_token),
    ) -> list[dict[str, Any]]:
        if note_id:
            anchors = runtime.anchors.anchors_for_note(note_id)
        elif document_id:
            anchors = runtime.anchors.anchors_for_document(document_id)
        else:
            raise HTTPException(status_code=422, detail="Pass note_id or document_id")
        return [asdict(a) for a in anchors]

    @app.post("/anchors", status_code=201)  # type: ignore[misc]
    async def create_anchor(body: AnchorRequest, auth: None = Depends(verify_token)) -> dict[str, Any]:
        anchor_id = runtime.anchors.create_anchor(body.document_id, body.node_id, body.note_id, body.label)
        if anchor_id is None:
            raise HTTPException(status_code=409, detail="Anchor already exists")
        return {"id": anchor_id}

    @app.delete("/anchors/{anchor_id}")  # type: ignore[misc]
    async def delete_anchor(anchor_id: str, auth: None = Depends(verify_token)) -> dict[str, Any]:
        runtime.anchors.remove_anchor(anchor_id)
        return {"deleted": anchor_id}

    # -- notes -------------------------------------------------------------

    @app.get("/notes/tree")  # type: ignore[misc]
    async def notes_tree(auth: None = Depends(verify_token)) -> list[dict[str, Any]]:
        return _node_tree(runtime.library.note_tree())

    return app


def generate_token() -> str:
    """Generate a random bearer token."""
    return secrets.token_urlsafe(32)
