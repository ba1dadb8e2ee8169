"""Environment-driven path and setting resolution."""

import os
from pathlib import Path


def get_storage_path() -> Path:
    """Return the root of the agent's persistent storage."""
    env = os.environ.get("AGENT_STORAGE_PATH")
    if env:
        return Path(env)

    return Path.cwd() / ".agent-storage"


def get_projects_path() -> Path:
    """Return the directory holding one sub-directory per project."""
    return get_storage_path() / "projects"


def get_workspace_path() -> Path:
    """Return the directory project files are mirrored into on export."""
    env = os.environ.get("AGENT_WORKSPACE_PATH")
    if env:
        return Path(env)

    return Path.cwd() / "workspace"


def get_log_dir() -> Path:
    """Return the directory log files are written to."""
    env = os.environ.get("AGENT_LOG_DIR")
    if env:
        return Path(env)

    return Path.cwd() / "logs"


def get_log_level() -> str:
    return os.environ.get("LOG_LEVEL", "INFO").upper()


def is_verbose() -> bool:
    """True when DEBUG=verbose asks for log output on the console too."""
    return os.environ.get("DEBUG", "").lower() == "verbose"
