"""Conversion between in-memory records and their persisted JSON form.

This is the only place timestamps are turned into text and back. On disk
they look like ``2025-01-20T10:00:00.000Z`` and keys are camelCase::

    .project.json  {"name", "createdAt", "defaultModel"?}
    conv-001.json  {"metadata": {"id", "name"?, "createdAt", "lastModified"},
                    "messages": [...], "todos": [{"task", "completed", "createdAt"}]}
    vfs.json       {"vfs": {path: content}, "lastModified"}
"""

from datetime import datetime, timezone
from typing import Any, Callable

from .core import (
    ConversationData,
    ConversationMetadata,
    Message,
    ProjectData,
    ProjectMetadata,
    TodoItem,
)
from .errors import ParsingError, ValidationError

_MESSAGE_KEYS = ("role", "content", "timestamp", "tool_call_id")


def format_timestamp(value: datetime) -> str:
    """Encode a datetime as UTC ISO 8601 with milliseconds and a Z suffix."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S") + f".{value.microsecond // 1000:03d}Z"


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO 8601 timestamp with a ``Z`` suffix or explicit offset."""
    if not isinstance(value, str) or not value:
        raise ParsingError(f"Invalid timestamp: {value!r}")
    text = value
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as e:
        raise ParsingError(f"Invalid timestamp: {value!r}", original=e) from e
    if parsed.tzinfo is None:
        raise ParsingError(f"Timestamp has no UTC offset: {value!r}")
    return parsed


def _require(data: Any, key: str, record: str) -> Any:
    if not isinstance(data, dict):
        raise ParsingError(f"{record} must be a JSON object, got {type(data).__name__}")
    if key not in data:
        raise ParsingError(f"{record} is missing '{key}'")
    return data[key]


def _as_record(build: Callable[[], Any], record: str) -> Any:
    """Build a record, reporting shape violations as parsing errors."""
    try:
        return build()
    except ValidationError as e:
        raise ParsingError(f"Invalid {record}: {e}", original=e) from e


# ── Project metadata ─────────────────────────────────────────────


def project_metadata_to_dict(metadata: ProjectMetadata) -> dict:
    data = {
        "name": metadata.name,
        "createdAt": format_timestamp(metadata.created_at),
    }
    if metadata.default_model:
        data["defaultModel"] = metadata.default_model
    return data


def project_metadata_from_dict(data: Any) -> ProjectMetadata:
    return ProjectMetadata(
        name=_require(data, "name", "project metadata"),
        created_at=parse_timestamp(_require(data, "createdAt", "project metadata")),
        default_model=data.get("defaultModel"),
    )


# ── Conversations ────────────────────────────────────────────────


def conversation_metadata_to_dict(metadata: ConversationMetadata) -> dict:
    data = {"id": metadata.id}
    if metadata.name:
        data["name"] = metadata.name
    data["createdAt"] = format_timestamp(metadata.created_at)
    data["lastModified"] = format_timestamp(metadata.last_modified)
    return data


def conversation_metadata_from_dict(data: Any) -> ConversationMetadata:
    return _as_record(lambda: ConversationMetadata(
        id=_require(data, "id", "conversation metadata"),
        name=data.get("name") or None,
        created_at=parse_timestamp(_require(data, "createdAt", "conversation metadata")),
        last_modified=parse_timestamp(_require(data, "lastModified", "conversation metadata")),
    ), "conversation metadata")


def todo_to_dict(todo: TodoItem) -> dict:
    return {
        "task": todo.task,
        "completed": todo.completed,
        "createdAt": format_timestamp(todo.created_at),
    }


def todo_from_dict(data: Any) -> TodoItem:
    return TodoItem(
        task=str(_require(data, "task", "todo")),
        completed=bool(data.get("completed", False)),
        created_at=parse_timestamp(_require(data, "createdAt", "todo")),
    )


def conversation_data_to_dict(
    data: ConversationData,
    encode_message: Callable[[Any], Any] | None = None,
) -> dict:
    """Encode a conversation. ``Message`` records are encoded automatically."""
    def encode(msg: Any) -> Any:
        if encode_message is not None:
            return encode_message(msg)
        if isinstance(msg, Message):
            return message_to_dict(msg)
        return msg

    return {
        "metadata": conversation_metadata_to_dict(data.metadata),
        "messages": [encode(m) for m in data.messages],
        "todos": [todo_to_dict(t) for t in data.todos],
    }


def conversation_data_from_dict(
    data: Any,
    decode_message: Callable[[Any], Any] | None = None,
) -> ConversationData:
    """Decode a conversation; messages are passed through unless a decoder is given."""
    metadata = conversation_metadata_from_dict(_require(data, "metadata", "conversation"))
    messages = data.get("messages", [])
    todos = data.get("todos", [])
    if not isinstance(messages, list) or not isinstance(todos, list):
        raise ParsingError(f"Conversation {metadata.id} has malformed messages or todos")

    if decode_message is not None:
        messages = [decode_message(m) for m in messages]

    return ConversationData(
        metadata=metadata,
        messages=list(messages),
        todos=[todo_from_dict(t) for t in todos],
    )


# ── Project VFS ──────────────────────────────────────────────────


def project_data_to_dict(data: ProjectData) -> dict:
    return {
        "vfs": dict(data.vfs),
        "lastModified": format_timestamp(data.last_modified),
    }


def project_data_from_dict(data: Any) -> ProjectData:
    vfs = _require(data, "vfs", "project data")
    if not isinstance(vfs, dict):
        raise ParsingError("project data 'vfs' must be a JSON object")
    return _as_record(lambda: ProjectData(
        vfs=vfs,
        last_modified=parse_timestamp(_require(data, "lastModified", "project data")),
    ), "project data")


# ── Messages ─────────────────────────────────────────────────────


def message_to_dict(msg: Message) -> dict:
    data = {"role": msg.role, "content": msg.content}
    if msg.tool_call_id:
        data["tool_call_id"] = msg.tool_call_id
    if msg.timestamp:
        data["timestamp"] = format_timestamp(msg.timestamp)
    data.update(msg.extra)
    return data


def message_from_dict(data: Any) -> Message:
    role = _require(data, "role", "message")
    timestamp = data.get("timestamp")
    return Message(
        role=role,
        content=data.get("content"),
        timestamp=parse_timestamp(timestamp) if timestamp else None,
        tool_call_id=data.get("tool_call_id"),
        extra={k: v for k, v in data.items() if k not in _MESSAGE_KEYS},
    )
