"""Shared test fixtures for agent-workspace."""

import base64
import json
import logging
from pathlib import Path

import pytest
from dotenv import load_dotenv

from agent_workspace.projects import ProjectManager

ROOT = Path(__file__).resolve().parents[1]

# Load .env.test, falling back to .env
if not load_dotenv(ROOT / ".env.test"):
    load_dotenv(ROOT / ".env")

PNG_BYTES = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNk+M9QDwADhgGAWjR9awAAAABJRU5ErkJggg=="
)


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Point every configurable path at the test's temporary directory and
    detach any log handlers the test attached."""
    monkeypatch.setenv("AGENT_STORAGE_PATH", str(tmp_path / "storage"))
    monkeypatch.setenv("AGENT_WORKSPACE_PATH", str(tmp_path / "workspace"))
    monkeypatch.setenv("AGENT_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.delenv("DEBUG", raising=False)
    yield
    logger = logging.getLogger("agent_workspace")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


def _write(path: Path, data) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")


@pytest.fixture
def tmp_projects_dir(tmp_path):
    """Create a synthetic projects directory as the agent leaves it on disk.

    Includes:
    - "my-app": two conversations, a VFS with text and binary files
    - "old-notes": an older project with no conversations and no VFS
    - a directory without .project.json (ignored)
    - "broken": a project whose metadata is not valid JSON (skipped)
    """
    projects = tmp_path / "storage" / "projects"

    app = projects / "my-app"
    _write(app / ".project.json", {
        "name": "my-app",
        "createdAt": "2025-01-20T09:00:00.000Z",
        "defaultModel": "anthropic/claude-sonnet-4",
    })
    _write(app / "vfs.json", {
        "vfs": {
            "index.html": "<html>\n<body>Hello</body>\n</html>",
            "css/style.css": "body { color: red; }",
            "assets/logo.png": "__BINARY__:" + base64.b64encode(PNG_BYTES).decode("ascii"),
        },
        "lastModified": "2025-01-20T11:00:00.000Z",
    })
    _write(app / "conversations" / "conv-001.json", {
        "metadata": {
            "id": "conv-001",
            "name": "Build landing page",
            "createdAt": "2025-01-20T10:00:00.000Z",
            "lastModified": "2025-01-20T10:30:00.000Z",
        },
        "messages": [
            {"role": "system", "content": "You are a coding agent."},
            {"role": "user", "content": "Create a landing page", "timestamp": "2025-01-20T10:00:05.000Z"},
            {
                "role": "assistant",
                "content": None,
                "tool_calls": [{
                    "id": "call_001",
                    "type": "function",
                    "function": {"name": "write_file", "arguments": "{\"path\": \"index.html\"}"},
                }],
            },
            {"role": "tool", "content": "File written: index.html", "tool_call_id": "call_001"},
            {"role": "assistant", "content": "The landing page is ready."},
        ],
        "todos": [
            {"task": "Write index.html", "completed": True, "createdAt": "2025-01-20T10:00:10.000Z"},
            {"task": "Add styles", "completed": False, "createdAt": "2025-01-20T10:00:10.000Z"},
        ],
    })
    _write(app / "conversations" / "conv-002.json", {
        "metadata": {
            "id": "conv-002",
            "createdAt": "2025-01-21T08:00:00.000Z",
            "lastModified": "2025-01-21T08:00:00.000Z",
        },
        "messages": [],
        "todos": [],
    })

    notes = projects / "old-notes"
    _write(notes / ".project.json", {"name": "old-notes", "createdAt": "2024-12-01T12:00:00.000Z"})
    (notes / "conversations").mkdir(parents=True)

    (projects / "not-a-project").mkdir(parents=True)

    broken = projects / "broken"
    broken.mkdir(parents=True)
    (broken / ".project.json").write_text("{not json", encoding="utf-8")

    return projects


@pytest.fixture
def manager(tmp_projects_dir):
    return ProjectManager(tmp_projects_dir)


@pytest.fixture
def empty_manager(tmp_path):
    return ProjectManager(tmp_path / "fresh" / "projects")


@pytest.fixture
def png_bytes():
    return PNG_BYTES
