"""Filesystem session storage.

Sessions are stored as ``<base>/sessions/<session-id>.json``.
"""

import logging
from pathlib import Path

from ..config import get_storage_path
from ..driver import SessionData, StorageDriver, validate_session_id
from ..errors import AppError, ErrorContext, ParsingError, StorageError, ValidationError
from ..jsonio import atomic_write_json, load_json

logger = logging.getLogger(__name__)


class FileSystemDriver(StorageDriver):
    name = "fs"

    def __init__(self, base: str | Path | None = None):
        self.base = Path(base) if base else get_storage_path()

    @property
    def sessions_dir(self) -> Path:
        return self.base / "sessions"

    def save_session(self, session_id: str, data: SessionData) -> None:
        path = self._path(session_id)
        try:
            atomic_write_json(path, data.to_dict())
        except OSError as e:
            raise StorageError(
                f"Failed to write session {session_id}: {e}",
                context=ErrorContext(location="drivers.filesystem.save_session", details={"path": str(path)}),
                original=e,
            ) from e

    def load_session(self, session_id: str) -> SessionData | None:
        path = self._path(session_id)
        raw = load_json(path)
        if raw is None:
            return None
        if not isinstance(raw, dict):
            raise ParsingError(f"Session file {path} is not a JSON object")
        try:
            return SessionData.from_dict(raw)
        except (KeyError, TypeError, AttributeError, ValidationError) as e:
            raise ParsingError(f"Malformed session file {path}: {e}", original=e) from e

    def list_sessions(self) -> list[str]:
        if not self.sessions_dir.is_dir():
            return []
        return sorted(p.stem for p in self.sessions_dir.glob("*.json"))

    def delete_session(self, session_id: str) -> None:
        self._path(session_id).unlink(missing_ok=True)

    def has_session(self, session_id: str) -> bool:
        return self._path(session_id).exists()

    def clear(self) -> None:
        for session_id in self.list_sessions():
            try:
                self.delete_session(session_id)
            except (AppError, OSError) as e:
                logger.warning("Failed to delete session %s: %s", session_id, e)

    def _path(self, session_id: str) -> Path:
        return self.sessions_dir / f"{validate_session_id(session_id)}.json"
