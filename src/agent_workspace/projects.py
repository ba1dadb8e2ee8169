"""Project and conversation management on disk.

Layout under the projects directory::

    <name>/.project.json              project metadata
    <name>/vfs.json                   project virtual file system
    <name>/conversations/conv-001.json

Counts shown in listings (conversations, messages, files) are recomputed
from these files every time; nothing caches them.
"""

import logging
import re
import shutil
from pathlib import Path
from typing import Any

from . import codec
from .config import get_projects_path, get_workspace_path
from .core import (
    CONVERSATION_ID_PATTERN,
    Conversation,
    ConversationData,
    ConversationMetadata,
    Project,
    ProjectData,
    ProjectMetadata,
    TodoItem,
    utcnow,
)
from .errors import (
    AppError,
    ConversationNotFoundError,
    ErrorContext,
    ProjectExistsError,
    ProjectNotFoundError,
    StorageError,
    ValidationError,
)
from .jsonio import atomic_write_json, load_json
from .vfs import BINARY_SNAPSHOT_PREFIX, decode_binary_snapshot, normalize_path

logger = logging.getLogger(__name__)

METADATA_FILE = ".project.json"
VFS_FILE = "vfs.json"
CONVERSATIONS_DIR = "conversations"
MIN_PROJECT_NAME_LENGTH = 3


def sanitize_project_name(name: str) -> str:
    """Replace every character outside ``[A-Za-z0-9_-]`` with an underscore."""
    return re.sub(r"[^a-zA-Z0-9_-]", "_", name)


def format_conversation_id(number: int) -> str:
    return f"conv-{number:03d}"


class ProjectManager:
    """Create, list and persist projects and their conversations."""

    def __init__(self, base_path: str | Path | None = None):
        self.base_path = Path(base_path) if base_path else get_projects_path()
        self.base_path.mkdir(parents=True, exist_ok=True)

    # ── Projects ─────────────────────────────────────────────────

    def list_projects(self) -> list[Project]:
        """Return all projects, newest first."""
        if not self.base_path.is_dir():
            return []

        projects = []
        for project_dir in self.base_path.iterdir():
            if not project_dir.is_dir() or not (project_dir / METADATA_FILE).exists():
                continue
            try:
                projects.append(self._read_project(project_dir))
            except AppError as e:
                logger.warning("Skipping project %s: %s", project_dir.name, e)

        projects.sort(key=lambda p: p.created_at, reverse=True)
        return projects

    def create_project(self, name: str, default_model: str | None = None) -> Project:
        name = name.strip()
        context = ErrorContext(location="projects.create_project", project_name=name)
        if len(name) < MIN_PROJECT_NAME_LENGTH:
            raise ValidationError(
                f"Project name must be at least {MIN_PROJECT_NAME_LENGTH} characters",
                context=context,
            )

        sanitized = sanitize_project_name(name)
        project_dir = self.base_path / sanitized
        if project_dir.exists():
            raise ProjectExistsError(f'Project "{sanitized}" already exists', context=context)

        (project_dir / CONVERSATIONS_DIR).mkdir(parents=True)
        metadata = ProjectMetadata(name=sanitized, created_at=utcnow(), default_model=default_model)
        atomic_write_json(project_dir / METADATA_FILE, codec.project_metadata_to_dict(metadata))
        logger.info("Created project %s", sanitized)

        return Project(
            name=sanitized,
            path=str(project_dir),
            created_at=metadata.created_at,
            default_model=default_model,
            conversations_count=0,
        )

    def get_project(self, name: str) -> Project | None:
        return next((p for p in self.list_projects() if p.name == name), None)

    # ── Conversations ────────────────────────────────────────────

    def list_conversations(self, project_name: str) -> list[Conversation]:
        """Return a project's conversations, most recently modified first."""
        conversations_dir = self._conversations_dir(project_name)
        if not conversations_dir.is_dir():
            return []

        file_count = len(self.load_project_vfs(project_name))
        conversations = []
        for conv_path in conversations_dir.glob("*.json"):
            try:
                data = codec.conversation_data_from_dict(load_json(conv_path))
            except AppError as e:
                logger.warning("Skipping conversation %s: %s", conv_path, e)
                continue

            meta = data.metadata
            conversations.append(Conversation(
                id=meta.id,
                name=meta.name,
                created_at=meta.created_at,
                last_modified=meta.last_modified,
                message_count=len(data.messages),
                file_count=file_count,
            ))

        conversations.sort(key=lambda c: c.last_modified, reverse=True)
        return conversations

    def create_conversation(self, project_name: str, name: str | None = None) -> Conversation:
        self._require_project(project_name, "projects.create_conversation")
        conversations_dir = self._conversations_dir(project_name)
        conversations_dir.mkdir(parents=True, exist_ok=True)

        conv_id = format_conversation_id(self._next_conversation_number(conversations_dir))
        now = utcnow()
        data = ConversationData(
            metadata=ConversationMetadata(
                id=conv_id,
                name=(name or "").strip() or None,
                created_at=now,
                last_modified=now,
            ),
        )
        atomic_write_json(conversations_dir / f"{conv_id}.json", codec.conversation_data_to_dict(data))
        logger.info("Created conversation %s in %s", conv_id, project_name)

        return Conversation(
            id=conv_id,
            name=data.metadata.name,
            created_at=now,
            last_modified=now,
            message_count=0,
            file_count=len(self.load_project_vfs(project_name)),
        )

    def load_conversation(self, project_name: str, conv_id: str) -> ConversationData:
        """Load a conversation; messages are returned as plain dicts."""
        conv_path = self._conversation_path(project_name, conv_id)
        raw = load_json(conv_path)
        if raw is None:
            raise ConversationNotFoundError(
                f'Conversation "{conv_id}" not found in project "{project_name}"',
                context=ErrorContext(
                    location="projects.load_conversation",
                    project_name=project_name,
                    conversation_id=conv_id,
                ),
            )
        return codec.conversation_data_from_dict(raw)

    def save_conversation(
        self,
        project_name: str,
        conv_id: str,
        messages: list[Any],
        todos: list[TodoItem],
        name: str | None = None,
    ) -> ConversationData:
        """Persist messages and todos, keeping the existing metadata."""
        conv_path = self._conversation_path(project_name, conv_id)
        raw = load_json(conv_path)
        now = utcnow()
        if raw is not None:
            metadata = codec.conversation_data_from_dict(raw).metadata
        else:
            metadata = ConversationMetadata(id=conv_id, created_at=now, last_modified=now)

        metadata.last_modified = now
        if name:
            metadata.name = name

        data = ConversationData(metadata=metadata, messages=list(messages), todos=list(todos))
        atomic_write_json(conv_path, codec.conversation_data_to_dict(data))
        logger.debug("Saved conversation %s/%s (%d messages)", project_name, conv_id, len(messages))
        return data

    def update_conversation_title(self, project_name: str, conv_id: str, title: str) -> None:
        data = self.load_conversation(project_name, conv_id)
        data.metadata.name = title
        data.metadata.last_modified = utcnow()
        atomic_write_json(
            self._conversation_path(project_name, conv_id),
            codec.conversation_data_to_dict(data),
        )

    # ── Project VFS ──────────────────────────────────────────────

    def save_project_vfs(self, project_name: str, snapshot: dict[str, str]) -> None:
        """Save the VFS snapshot shared by all conversations of a project."""
        vfs_path = self._project_dir(project_name) / VFS_FILE
        data = ProjectData(vfs=dict(snapshot), last_modified=utcnow())
        try:
            atomic_write_json(vfs_path, codec.project_data_to_dict(data))
        except OSError as e:
            raise StorageError(
                f"Failed to save VFS for project {project_name}: {e}",
                context=ErrorContext(
                    location="projects.save_project_vfs",
                    operation="write vfs.json",
                    project_name=project_name,
                ),
                original=e,
            ) from e

    def load_project_vfs(self, project_name: str) -> dict[str, str]:
        """Return the project's VFS snapshot, or ``{}`` if none is readable."""
        vfs_path = self._project_dir(project_name) / VFS_FILE
        try:
            raw = load_json(vfs_path)
            if raw is None:
                return {}
            return codec.project_data_from_dict(raw).vfs
        except (AppError, OSError) as e:
            logger.warning("Failed to read %s: %s", vfs_path, e)
            return {}

    # ── Workspace export ─────────────────────────────────────────

    def export_to_workspace(
        self,
        project_name: str,
        snapshot: dict[str, str],
        target: str | Path | None = None,
    ) -> Path:
        """Mirror a VFS snapshot to ``<workspace>/<project>/``, replacing it."""
        # rejects "..", "." and other names that are not already sanitised
        self._project_dir(project_name)
        workspace = Path(target) if target else get_workspace_path() / project_name

        files: dict[str, str | bytes] = {}
        for file_path, content in snapshot.items():
            relative = normalize_path(file_path)
            if not relative:
                raise ValidationError(
                    f"Invalid path in snapshot: {file_path!r}",
                    context=ErrorContext(location="projects.export_to_workspace", project_name=project_name),
                )
            if content.startswith(BINARY_SNAPSHOT_PREFIX):
                files[relative] = decode_binary_snapshot(content)
            else:
                files[relative] = content

        if workspace.exists():
            shutil.rmtree(workspace)
        workspace.mkdir(parents=True)

        for relative, content in files.items():
            full_path = workspace / relative
            full_path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, bytes):
                full_path.write_bytes(content)
            else:
                full_path.write_text(content, encoding="utf-8")

        logger.info("Exported %d files of %s to %s", len(files), project_name, workspace)
        return workspace

    # ── Private helpers ──────────────────────────────────────────

    def _read_project(self, project_dir: Path) -> Project:
        metadata = codec.project_metadata_from_dict(load_json(project_dir / METADATA_FILE))
        conversations_dir = project_dir / CONVERSATIONS_DIR
        count = len(list(conversations_dir.glob("*.json"))) if conversations_dir.is_dir() else 0
        return Project(
            name=metadata.name,
            path=str(project_dir),
            created_at=metadata.created_at,
            default_model=metadata.default_model,
            conversations_count=count,
        )

    def _project_dir(self, project_name: str) -> Path:
        # stored names are already sanitized, anything else cannot exist
        if not project_name or sanitize_project_name(project_name) != project_name:
            raise ValidationError(
                f"Invalid project name: {project_name!r}",
                context=ErrorContext(project_name=project_name),
            )
        return self.base_path / project_name

    def _require_project(self, project_name: str, location: str) -> None:
        if not (self._project_dir(project_name) / METADATA_FILE).exists():
            raise ProjectNotFoundError(
                f'Project "{project_name}" not found',
                context=ErrorContext(location=location, project_name=project_name),
            )

    def _conversations_dir(self, project_name: str) -> Path:
        return self._project_dir(project_name) / CONVERSATIONS_DIR

    def _conversation_path(self, project_name: str, conv_id: str) -> Path:
        if not CONVERSATION_ID_PATTERN.match(conv_id):
            raise ValidationError(
                f"Invalid conversation id: {conv_id!r}",
                context=ErrorContext(project_name=project_name, conversation_id=conv_id),
            )
        return self._conversations_dir(project_name) / f"{conv_id}.json"

    def _next_conversation_number(self, conversations_dir: Path) -> int:
        numbers = [
            int(p.stem.split("-", 1)[1])
            for p in conversations_dir.glob("conv-*.json")
            if CONVERSATION_ID_PATTERN.match(p.stem)
        ]
        return max(numbers, default=0) + 1
