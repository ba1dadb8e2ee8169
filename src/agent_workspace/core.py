"""Core data models for agent-workspace.

Every timestamp held by these records is a timezone-aware ``datetime``.
Text timestamps only exist in the persisted JSON and are handled by
``agent_workspace.codec``.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Generic, Optional, TypeVar

from .errors import ValidationError

CONVERSATION_ID_PATTERN = re.compile(r"^conv-\d{3,}$")

MessageT = TypeVar("MessageT")


def utcnow() -> datetime:
    """Current UTC time at the millisecond precision timestamps are stored with."""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def _require_text(value: Any, field_name: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} must be non-empty text, got {value!r}")


def _require_datetime(value: Any, field_name: str) -> None:
    if not isinstance(value, datetime):
        raise ValidationError(f"{field_name} must be a datetime, got {value!r}")


def _require_count(value: Any, field_name: str) -> None:
    # bool is an int subclass but never a valid count
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(f"{field_name} must be a non-negative integer, got {value!r}")


def _require_conversation_id(value: Any) -> None:
    if not isinstance(value, str) or not CONVERSATION_ID_PATTERN.match(value):
        raise ValidationError(f"Invalid conversation id: {value!r}")


def is_relative_vfs_path(path: Any) -> bool:
    """Return True for a non-empty relative path without ``..`` segments."""
    if not isinstance(path, str) or not path:
        return False
    if path.startswith(("/", "\\")) or re.match(r"^[A-Za-z]:", path):
        return False
    return ".." not in re.split(r"[\\/]", path)


@dataclass
class ProjectMetadata:
    """The persisted summary of a project (``.project.json``)."""

    name: str
    created_at: datetime
    default_model: Optional[str] = None


@dataclass
class Project:
    """A named workspace containing conversations."""

    name: str
    path: str  # e.g. ".agent-storage/projects/my-app"
    created_at: datetime
    default_model: Optional[str] = None
    conversations_count: int = 0  # recomputed from conversations/ on every read

    def __post_init__(self):
        _require_text(self.name, "Project.name")
        _require_text(self.path, "Project.path")
        _require_datetime(self.created_at, "Project.created_at")
        _require_count(self.conversations_count, "Project.conversations_count")


@dataclass
class Conversation:
    """A single chat session within a project, as shown in listings."""

    id: str  # "conv-001", "conv-002", ...
    created_at: datetime
    last_modified: datetime
    name: Optional[str] = None
    message_count: int = 0
    file_count: int = 0  # files in the project VFS, shared by all conversations

    def __post_init__(self):
        _require_conversation_id(self.id)
        _require_datetime(self.created_at, "Conversation.created_at")
        _require_datetime(self.last_modified, "Conversation.last_modified")
        _require_count(self.message_count, "Conversation.message_count")
        _require_count(self.file_count, "Conversation.file_count")

    @property
    def display_name(self) -> str:
        return self.name or f"New conversation ({self.id})"


@dataclass
class ConversationMetadata:
    id: str
    created_at: datetime
    last_modified: datetime
    name: Optional[str] = None

    def __post_init__(self):
        _require_conversation_id(self.id)
        _require_datetime(self.created_at, "ConversationMetadata.created_at")
        _require_datetime(self.last_modified, "ConversationMetadata.last_modified")


@dataclass
class TodoItem:
    """One entry of a conversation's todo list."""

    task: str
    completed: bool = False
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class ConversationData(Generic[MessageT]):
    """Full persisted content of a conversation.

    The message type is left to the caller: plain chat-completion dicts by
    default, or ``Message`` records.
    """

    metadata: ConversationMetadata
    messages: list[MessageT] = field(default_factory=list)
    todos: list[TodoItem] = field(default_factory=list)


@dataclass
class ProjectData:
    """Persisted virtual file system of a project (``vfs.json``)."""

    vfs: dict[str, str]  # {"index.html": "<html>...", "logo.png": "__BINARY__:iVBO..."}
    last_modified: datetime

    def __post_init__(self):
        for path, content in self.vfs.items():
            if not is_relative_vfs_path(path):
                raise ValidationError(f"VFS path must be relative: {path!r}")
            if not isinstance(content, str):
                raise ValidationError(f"VFS content for {path!r} must be a string")
        _require_datetime(self.last_modified, "ProjectData.last_modified")


@dataclass
class Message:
    """A chat-completion style message."""

    role: str  # "system" | "user" | "assistant" | "tool"
    content: Any  # usually a string; structured content is kept as-is
    timestamp: Optional[datetime] = None
    tool_call_id: Optional[str] = None
    extra: dict = field(default_factory=dict)  # tool_calls, name, ...
