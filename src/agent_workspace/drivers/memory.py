"""In-process session storage, lost when the process exits."""

import copy

from ..driver import SessionData, StorageDriver, validate_session_id


class MemoryDriver(StorageDriver):
    name = "memory"

    def __init__(self):
        self._sessions: dict[str, dict] = {}

    def save_session(self, session_id: str, data: SessionData) -> None:
        # store the serialized form so later mutation of ``data`` is not visible
        self._sessions[validate_session_id(session_id)] = copy.deepcopy(data.to_dict())

    def load_session(self, session_id: str) -> SessionData | None:
        raw = self._sessions.get(validate_session_id(session_id))
        if raw is None:
            return None
        return SessionData.from_dict(copy.deepcopy(raw))

    def list_sessions(self) -> list[str]:
        return sorted(self._sessions)

    def delete_session(self, session_id: str) -> None:
        self._sessions.pop(validate_session_id(session_id), None)

    def has_session(self, session_id: str) -> bool:
        return validate_session_id(session_id) in self._sessions

    def clear(self) -> None:
        self._sessions.clear()
