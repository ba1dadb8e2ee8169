"""Tests for the FastAPI server."""

from unittest.mock import patch

import pytest
from httpx import ASGITransport, AsyncClient

import agent_workspace.server as srv
from agent_workspace.errors import StorageError
from agent_workspace.projects import ProjectManager
from agent_workspace.server import app


@pytest.fixture(autouse=True)
def reset_manager_cache():
    """Reset the project manager cache before each test."""
    srv._manager = None
    yield
    srv._manager = None


@pytest.fixture
def served(tmp_projects_dir):
    srv._manager = ProjectManager(tmp_projects_dir)
    return srv._manager


@pytest.mark.asyncio
async def test_get_projects(served):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        resp = await client.get("/api/projects")
        assert resp.status_code == 200
        data = resp.json()
        assert [p["name"] for p in data] == ["my-app", "old-notes"]
        assert data[0]["conversations_count"] == 2
        assert data[0]["created"] == "2025-01-20T09:00:00.000Z"


@pytest.mark.asyncio
async def test_manager_defaults_to_storage_path(tmp_path):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        resp = await client.get("/api/projects")
        assert resp.status_code == 200
        assert resp.json() == []
    assert srv._manager.base_path == tmp_path / "storage" / "projects"


@pytest.mark.asyncio
async def test_create_project(served):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        resp = await client.post("/api/projects", json={"name": "new app", "default_model": "openai/gpt-4o"})
        assert resp.status_code == 201
        assert resp.json()["name"] == "new_app"

        resp = await client.post("/api/projects", json={"name": "my-app"})
        assert resp.status_code == 409

        resp = await client.post("/api/projects", json={"name": "x"})
        assert resp.status_code == 422


@pytest.mark.asyncio
async def test_get_project(served):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        resp = await client.get("/api/projects/my-app")
        assert resp.status_code == 200
        assert resp.json()["default_model"] == "anthropic/claude-sonnet-4"

        resp = await client.get("/api/projects/ghost")
        assert resp.status_code == 404


@pytest.mark.asyncio
async def test_get_conversations(served):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        resp = await client.get("/api/projects/my-app/conversations")
        assert resp.status_code == 200
        data = resp.json()
        assert [c["id"] for c in data] == ["conv-002", "conv-001"]
        assert data[0]["display_name"] == "New conversation (conv-002)"
        assert data[1]["message_count"] == 5

        resp = await client.get("/api/projects/ghost/conversations")
        assert resp.status_code == 404


@pytest.mark.asyncio
async def test_create_conversation(served):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        resp = await client.post("/api/projects/my-app/conversations", json={"name": "Dark mode"})
        assert resp.status_code == 201
        assert resp.json()["id"] == "conv-003"
        assert resp.json()["name"] == "Dark mode"

        resp = await client.post("/api/projects/ghost/conversations", json={})
        assert resp.status_code == 404


@pytest.mark.asyncio
async def test_get_conversation(served):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        resp = await client.get("/api/projects/my-app/conversations/conv-001")
        assert resp.status_code == 200
        data = resp.json()
        assert data["conversation"]["name"] == "Build landing page"
        assert len(data["messages"]) == 5
        assert data["messages"][3]["tool_call_id"] == "call_001"
        assert data["todos"][0] == {
            "task": "Write index.html",
            "completed": True,
            "createdAt": "2025-01-20T10:00:10.000Z",
        }


@pytest.mark.asyncio
async def test_get_conversation_errors(served):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        resp = await client.get("/api/projects/my-app/conversations/conv-404")
        assert resp.status_code == 404

        resp = await client.get("/api/projects/my-app/conversations/not-an-id")
        assert resp.status_code == 422


@pytest.mark.asyncio
async def test_rename_conversation(served):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        resp = await client.patch("/api/projects/my-app/conversations/conv-002", json={"title": "  Refactor  "})
        assert resp.status_code == 200
        assert resp.json()["name"] == "Refactor"

        resp = await client.patch("/api/projects/my-app/conversations/conv-002", json={"title": "   "})
        assert resp.status_code == 422

        resp = await client.patch("/api/projects/my-app/conversations/conv-404", json={"title": "x"})
        assert resp.status_code == 404


@pytest.mark.asyncio
async def test_get_files(served, png_bytes):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        resp = await client.get("/api/projects/my-app/files")
        assert resp.status_code == 200
        data = resp.json()
        assert data["total"] == 3
        assert data["files"][0] == {"path": "assets/logo.png", "binary": True, "size": len(png_bytes)}
        assert data["files"][1]["path"] == "css/style.css"

        resp = await client.get("/api/projects/old-notes/files")
        assert resp.json() == {"project": "old-notes", "total": 0, "files": []}


@pytest.mark.asyncio
async def test_storage_failure_is_500(served):
    with patch.object(served, "create_conversation", side_effect=StorageError("disk full")):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            resp = await client.post("/api/projects/my-app/conversations", json={})
            assert resp.status_code == 500
            assert resp.json()["detail"] == "Internal storage error"


@pytest.mark.asyncio
async def test_get_files_with_corrupt_binary_entry(served):
    served.save_project_vfs("old-notes", {"logo.png": "__BINARY__:%%%"})
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        resp = await client.get("/api/projects/old-notes/files")
        assert resp.status_code == 500
        assert resp.json()["detail"].startswith("Corrupt stored data")
