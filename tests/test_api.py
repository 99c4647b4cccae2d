"""Tests for API functionality."""

import tempfile
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from lectio.api.app import create_app, generate_token
from lectio.core.model import CitableNode, Document, StructuralNode
from lectio.runtime import build_runtime


@pytest.fixture
def runtime():
    """Create a runtime with one catechism document owned by u1."""
    with tempfile.TemporaryDirectory() as tmpdir:
        rt = build_runtime(data_dir=Path(tmpdir), db_path=Path(tmpdir) / "test.db", user="u1")
        rt.store.save_document(
            Document(id="ccc", title="Catechism", source_type="catechism", owner_id="u1", total_citable_nodes=2),
            [
                StructuralNode(id="s1", level="part", content="PART ONE", alignment="center"),
                CitableNode(id="c27", number=27, display_number="27", content="The desire for God."),
                CitableNode(id="c28", number=28, display_number="28", content="In many ways."),
            ],
        )
        yield rt


@pytest.fixture
def client(runtime):
    return TestClient(create_app(runtime, token=None))


def test_health_endpoint(client):
    """Test /health endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["schema_version"] == "2"


def test_auth_required(runtime):
    """Test that endpoints require authentication when token is set."""
    token = generate_token()
    app = create_app(runtime, token=token)
    client = TestClient(app)

    # Without token should get 401
    response = client.get("/health")
    assert response.status_code == 401

    response = client.get("/health", headers={"Authorization": "Bearer wrong"})
    assert response.status_code == 401

    # With token should work
    response = client.get("/health", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 200


def test_documents(client):
    """List and fetch documents; unknown ids are 404."""
    response = client.get("/documents")
    assert response.status_code == 200
    assert [d["id"] for d in response.json()] == ["ccc"]

    response = client.get("/documents/ccc")
    assert response.status_code == 200
    data = response.json()
    assert data["document"]["title"] == "Catechism"
    assert [n["node_type"] for n in data["nodes"]] == ["structural", "citable", "citable"]
    assert data["anchored_node_ids"] == []

    assert client.get("/documents/nope").status_code == 404


def test_parse_endpoint(client):
    """Parsing returns nodes and stats without storing anything."""
    response = client.post("/parse", json={"text": "PART ONE\n27. The desire for God.", "source_type": "catechism"})
    assert response.status_code == 200
    data = response.json()
    assert data["stats"]["citable"] == 1
    assert data["nodes"][-1]["display_number"] == "27"

    response = client.post("/parse", json={"text": "x", "source_type": "poetry"})
    assert response.status_code == 422


def test_alias_lifecycle(client):
    """Create from preset, reject a duplicate prefix, then delete."""
    response = client.post("/aliases/preset", json={"document_id": "ccc", "preset": "catechism"})
    assert response.status_code == 201
    alias_id = response.json()["id"]

    response = client.post(
        "/aliases",
        json={"document_id": "ccc", "prefix": "ccc", "pattern": r"(CCC)\s*(\d+)"},
    )
    assert response.status_code == 409

    response = client.get("/aliases", params={"document_id": "ccc"})
    assert [a["prefix"] for a in response.json()] == ["CCC"]

    assert client.delete(f"/aliases/{alias_id}").status_code == 200
    assert client.delete(f"/aliases/{alias_id}").status_code == 404


def test_alias_rejects_unknown_extractor(client):
    """Only the four number extractors are accepted."""
    body = {"document_id": "ccc", "prefix": "X", "pattern": r"(X)(\d+)", "number_extractor": "roman"}
    assert client.post("/aliases", json=body).status_code == 422
    body["number_extractor"] = "chapter:verse"
    assert client.post("/aliases", json=body).status_code == 201


def test_resolve_and_autolink(client):
    client.post("/aliases/preset", json={"document_id": "ccc", "preset": "catechism"})

    response = client.post("/resolve", json={"text": "Compare CCC 27 with CCC 999."})
    assert response.status_code == 200
    data = response.json()
    assert [(d["match"], d["is_resolved"]) for d in data] == [("CCC 27", True), ("CCC 999", False)]
    assert data[0]["node_id"] == "c27"
    assert data[0]["display_text"] == "CCC §27"

    response = client.post("/autolink", json={"html": "<p>CCC 28</p>"})
    assert response.status_code == 200
    assert response.json()["linked_count"] == 1
    assert 'data-citation="doc:ccc:c28"' in response.json()["html"]


def test_anchors(runtime, client):
    """Anchors are created once per node and note."""
    note_id = runtime.library.create_note("Reading notes")
    body = {"document_id": "ccc", "node_id": "c27", "note_id": note_id, "label": "CCC §27"}

    response = client.post("/anchors", json=body)
    assert response.status_code == 201
    anchor_id = response.json()["id"]
    assert client.post("/anchors", json=body).status_code == 409

    response = client.get("/anchors", params={"note_id": note_id})
    assert [a["id"] for a in response.json()] == [anchor_id]
    assert client.get("/documents/ccc").json()["anchored_node_ids"] == ["c27"]
    assert client.get("/anchors").status_code == 422

    assert client.delete(f"/anchors/{anchor_id}").status_code == 200
    assert client.get("/anchors", params={"document_id": "ccc"}).json() == []


def test_notes_tree(runtime, client):
    folder = runtime.library.create_folder("note", "Theology")
    note = runtime.library.create_note("Inside", parent_id=folder)
    runtime.library.create_note("Loose")

    response = client.get("/notes/tree")
    assert response.status_code == 200
    tree = response.json()
    assert [e["type"] for e in tree] == ["folder", "note"]
    assert tree[0]["children"] == [{"type": "note", "id": note, "title": "Inside"}]
    assert tree[1]["title"] == "Loose"
