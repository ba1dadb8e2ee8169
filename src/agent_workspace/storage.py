"""Session manager: saves and restores agent sessions through a driver."""

import logging

from .codec import format_timestamp
from .core import utcnow
from .driver import ModelConfig, SessionData, SessionMetadata, StorageDriver
from .errors import AppError, log_error

logger = logging.getLogger(__name__)

SESSION_FORMAT_VERSION = "1.0.0"
MODEL_CONFIG_SESSION = "model-config"


def generate_session_id() -> str:
    """Return an id like ``session-2025-01-20T10-00-00``."""
    return "session-" + utcnow().strftime("%Y-%m-%dT%H-%M-%S")


class StorageManager:
    def __init__(self, driver: StorageDriver, auto_save: bool = True):
        self.driver = driver
        self.session_id = generate_session_id()
        self.auto_save = auto_save
        self._model_config: ModelConfig | None = None

    def save_session(self, data: SessionData) -> bool:
        """Save the current session. Failures are logged and reported as False."""
        data.metadata = SessionMetadata(
            last_saved=format_timestamp(utcnow()),
            version=SESSION_FORMAT_VERSION,
        )
        try:
            self.driver.save_session(self.session_id, data)
        except (AppError, OSError) as e:
            log_error(e)
            return False

        logger.debug("Session saved: %s (%s)", self.session_id, self.driver.name)
        return True

    def load_session(self, session_id: str | None = None) -> SessionData | None:
        """Load a session and make it current. Returns None if it can't be read."""
        target = session_id or self.session_id
        try:
            data = self.driver.load_session(target)
        except (AppError, OSError) as e:
            log_error(e)
            return None

        if data is not None:
            self.session_id = target
            logger.debug("Session loaded: %s", target)
        return data

    def list_sessions(self) -> list[str]:
        return [s for s in self.driver.list_sessions() if s != MODEL_CONFIG_SESSION]

    def delete_session(self, session_id: str) -> None:
        self.driver.delete_session(session_id)
        logger.info("Session deleted: %s", session_id)

    def has_session(self, session_id: str) -> bool:
        return self.driver.has_session(session_id)

    def clear_all(self) -> None:
        self.driver.clear()
        logger.info("All sessions cleared")

    # ── Model configuration ──────────────────────────────────────

    def set_model_config(
        self,
        model_id: str,
        reasoning_enabled: bool = False,
        reasoning_effort: str = "medium",
    ) -> ModelConfig:
        """Remember the model choice and persist it immediately."""
        self._model_config = ModelConfig(
            model_id=model_id,
            reasoning_enabled=reasoning_enabled,
            reasoning_effort=reasoning_effort,
        )
        record = SessionData(
            project_name="default",
            model_config=self._model_config,
            metadata=SessionMetadata(last_saved=format_timestamp(utcnow()), version=SESSION_FORMAT_VERSION),
        )
        try:
            self.driver.save_session(MODEL_CONFIG_SESSION, record)
        except (AppError, OSError) as e:
            log_error(e)
        return self._model_config

    def get_model_config(self) -> ModelConfig | None:
        return self._model_config

    def load_model_config(self) -> ModelConfig | None:
        """Restore the saved model choice, if there is one."""
        try:
            stored = self.driver.load_session(MODEL_CONFIG_SESSION)
        except (AppError, OSError) as e:
            logger.warning("Failed to load model config: %s", e)
            return self._model_config

        if stored and stored.model_config:
            self._model_config = stored.model_config
        return self._model_config
