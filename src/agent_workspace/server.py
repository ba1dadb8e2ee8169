"""FastAPI web server for agent-workspace."""

import logging
from typing import Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import Response
from pydantic import BaseModel

from .codec import format_timestamp, message_to_dict, todo_to_dict
from .core import Conversation, Message, Project
from .errors import (
    AppError,
    ConversationNotFoundError,
    ParsingError,
    ProjectExistsError,
    ProjectNotFoundError,
    ValidationError,
    log_error,
)
from .export import conversation_to_json, conversation_to_markdown
from .projects import ProjectManager
from .vfs import BINARY_SNAPSHOT_PREFIX, decode_binary_snapshot

logger = logging.getLogger(__name__)

app = FastAPI(title="agent-workspace", version="0.1.0")

# Project manager cache (populated on first request)
_manager: ProjectManager | None = None


def _get_manager() -> ProjectManager:
    """Lazily initialize and cache the project manager."""
    global _manager
    if _manager is None:
        _manager = ProjectManager()
        logger.info("Serving projects from %s", _manager.base_path)
    return _manager


def _http_error(error: AppError) -> HTTPException:
    """Translate an application error into the matching HTTP error."""
    if isinstance(error, (ProjectNotFoundError, ConversationNotFoundError)):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, ProjectExistsError):
        return HTTPException(status_code=409, detail=str(error))
    if isinstance(error, ValidationError):
        return HTTPException(status_code=422, detail=str(error))
    log_error(error)
    if isinstance(error, ParsingError):
        return HTTPException(status_code=500, detail=f"Corrupt stored data: {error}")
    return HTTPException(status_code=500, detail="Internal storage error")


def _project_to_dict(project: Project) -> dict:
    return {
        "name": project.name,
        "path": project.path,
        "created": format_timestamp(project.created_at),
        "default_model": project.default_model,
        "conversations_count": project.conversations_count,
    }


def _conversation_to_dict(conv: Conversation) -> dict:
    return {
        "id": conv.id,
        "name": conv.name,
        "display_name": conv.display_name,
        "created": format_timestamp(conv.created_at),
        "updated": format_timestamp(conv.last_modified),
        "message_count": conv.message_count,
        "file_count": conv.file_count,
    }


def _find_conversation(project: str, conv_id: str) -> Conversation:
    conv = next((c for c in _get_manager().list_conversations(project) if c.id == conv_id), None)
    if conv is None:
        raise HTTPException(status_code=404, detail=f"Conversation not found: {conv_id}")
    return conv


def _require_project(name: str) -> Project:
    project = _get_manager().get_project(name)
    if project is None:
        raise HTTPException(status_code=404, detail=f"Project not found: {name}")
    return project


class ProjectCreate(BaseModel):
    name: str
    default_model: Optional[str] = None


class ConversationCreate(BaseModel):
    name: Optional[str] = None


class ConversationRename(BaseModel):
    title: str


# ── Routes ───────────────────────────────────────────────────────


@app.get("/api/projects")
async def get_projects():
    """Return all projects, newest first."""
    return [_project_to_dict(p) for p in _get_manager().list_projects()]


@app.post("/api/projects", status_code=201)
async def create_project(body: ProjectCreate):
    try:
        project = _get_manager().create_project(body.name, body.default_model)
    except AppError as e:
        raise _http_error(e) from e
    return _project_to_dict(project)


@app.get("/api/projects/{name}")
async def get_project(name: str):
    return _project_to_dict(_require_project(name))


@app.get("/api/projects/{name}/conversations")
async def get_conversations(name: str):
    """Return a project's conversations, most recently modified first."""
    _require_project(name)
    return [_conversation_to_dict(c) for c in _get_manager().list_conversations(name)]


@app.post("/api/projects/{name}/conversations", status_code=201)
async def create_conversation(name: str, body: ConversationCreate):
    try:
        conv = _get_manager().create_conversation(name, body.name)
    except AppError as e:
        raise _http_error(e) from e
    return _conversation_to_dict(conv)


@app.get("/api/projects/{name}/conversations/{conv_id}")
async def get_conversation(name: str, conv_id: str):
    """Return a conversation's metadata, messages and todos."""
    _require_project(name)
    try:
        data = _get_manager().load_conversation(name, conv_id)
    except AppError as e:
        raise _http_error(e) from e

    conv = _find_conversation(name, conv_id)
    return {
        "conversation": _conversation_to_dict(conv),
        "messages": [message_to_dict(m) if isinstance(m, Message) else m for m in data.messages],
        "todos": [todo_to_dict(t) for t in data.todos],
    }


@app.patch("/api/projects/{name}/conversations/{conv_id}")
async def rename_conversation(name: str, conv_id: str, body: ConversationRename):
    title = body.title.strip()
    if not title:
        raise HTTPException(status_code=422, detail="Title cannot be empty")
    try:
        _get_manager().update_conversation_title(name, conv_id, title)
    except AppError as e:
        raise _http_error(e) from e
    return _conversation_to_dict(_find_conversation(name, conv_id))


@app.get("/api/projects/{name}/files")
async def get_files(name: str):
    """Return the paths and sizes of the files in a project's VFS."""
    _require_project(name)
    snapshot = _get_manager().load_project_vfs(name)
    files = []
    for path in sorted(snapshot):
        content = snapshot[path]
        binary = content.startswith(BINARY_SNAPSHOT_PREFIX)
        try:
            size = len(decode_binary_snapshot(content)) if binary else len(content.encode("utf-8"))
        except AppError as e:
            raise _http_error(e) from e
        files.append({"path": path, "binary": binary, "size": size})
    return {"project": name, "total": len(files), "files": files}


@app.get("/api/export/{name}/{conv_id}")
async def export_conversation(
    name: str,
    conv_id: str,
    format: str = Query("md", description="Export format: md or json"),
):
    """Export a conversation as Markdown or JSON."""
    _require_project(name)
    try:
        data = _get_manager().load_conversation(name, conv_id)
    except AppError as e:
        raise _http_error(e) from e
    conv = _find_conversation(name, conv_id)

    safe_title = "".join(c if c.isalnum() or c in "-_ " else "" for c in conv.display_name)[:50]

    if format == "json":
        content = conversation_to_json(conv, data)
        return Response(
            content=content,
            media_type="application/json",
            headers={"Content-Disposition": f'attachment; filename="{safe_title}.json"'},
        )
    else:
        content = conversation_to_markdown(conv, data)
        return Response(
            content=content,
            media_type="text/markdown",
            headers={"Content-Disposition": f'attachment; filename="{safe_title}.md"'},
        )
