"""Abstract base class for session storage drivers."""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional

from .errors import ValidationError

SESSION_ID_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")
REASONING_EFFORTS = ("low", "medium", "high")


@dataclass
class ModelConfig:
    model_id: str
    reasoning_enabled: bool = False
    reasoning_effort: str = "medium"  # "low" | "medium" | "high"

    def __post_init__(self):
        if self.reasoning_effort not in REASONING_EFFORTS:
            raise ValidationError(f"Invalid reasoning effort: {self.reasoning_effort!r}")

    def describe(self) -> str:
        if self.reasoning_enabled:
            return f"{self.model_id} ({self.reasoning_effort})"
        return self.model_id


@dataclass
class SessionMetadata:
    last_saved: str  # ISO 8601 text, stamped by StorageManager
    version: str


@dataclass
class SessionData:
    """Everything needed to restore an agent session."""

    project_name: str
    files: dict[str, str] = field(default_factory=dict)  # path -> serialized content
    messages: list[dict] = field(default_factory=list)
    todos: list[dict] = field(default_factory=list)
    model_config: Optional[ModelConfig] = None
    metadata: Optional[SessionMetadata] = None

    def to_dict(self) -> dict:
        data: dict[str, Any] = {
            "projectName": self.project_name,
            "files": self.files,
            "messages": self.messages,
            "todos": self.todos,
        }
        if self.model_config:
            data["modelConfig"] = {
                "modelId": self.model_config.model_id,
                "reasoningEnabled": self.model_config.reasoning_enabled,
                "reasoningEffort": self.model_config.reasoning_effort,
            }
        if self.metadata:
            data["metadata"] = {
                "lastSaved": self.metadata.last_saved,
                "version": self.metadata.version,
            }
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "SessionData":
        model = data.get("modelConfig")
        meta = data.get("metadata")
        return cls(
            project_name=data.get("projectName", ""),
            files=dict(data.get("files") or {}),
            messages=list(data.get("messages") or []),
            todos=list(data.get("todos") or []),
            model_config=ModelConfig(
                model_id=model["modelId"],
                reasoning_enabled=bool(model.get("reasoningEnabled", False)),
                reasoning_effort=model.get("reasoningEffort", "medium"),
            ) if model is not None else None,
            metadata=SessionMetadata(
                last_saved=meta.get("lastSaved", ""),
                version=meta.get("version", ""),
            ) if meta is not None else None,
        )


def validate_session_id(session_id: str) -> str:
    if not isinstance(session_id, str) or not SESSION_ID_PATTERN.match(session_id):
        raise ValidationError(f"Invalid session id: {session_id!r}")
    return session_id


class StorageDriver(ABC):
    """Base class for session storage backends.

    Each backend (filesystem, memory) keeps sessions under a ``sessions``
    namespace, keyed by session id.
    """

    name: str  # "fs", "memory"

    @abstractmethod
    def save_session(self, session_id: str, data: SessionData) -> None:
        """Store a session, replacing any previous version."""
        ...

    @abstractmethod
    def load_session(self, session_id: str) -> SessionData | None:
        """Return a stored session, or None if it does not exist."""
        ...

    @abstractmethod
    def list_sessions(self) -> list[str]:
        """Return the ids of all stored sessions."""
        ...

    @abstractmethod
    def delete_session(self, session_id: str) -> None:
        ...

    @abstractmethod
    def has_session(self, session_id: str) -> bool:
        ...

    @abstractmethod
    def clear(self) -> None:
        """Remove every stored session."""
        ...
