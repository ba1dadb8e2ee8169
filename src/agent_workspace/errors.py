"""Application error types and helpers for logging and displaying them."""

import logging
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Optional

import click

logger = logging.getLogger(__name__)


class ErrorType(str, Enum):
    """Broad category of an application error."""

    VALIDATION = "VALIDATION_ERROR"
    FILESYSTEM = "FILESYSTEM_ERROR"
    PARSING = "PARSING_ERROR"
    STORAGE = "STORAGE_ERROR"
    UNKNOWN = "UNKNOWN_ERROR"


@dataclass
class ErrorContext:
    """Where an error happened and what was being done."""

    location: str = ""  # e.g. "projects.create_project"
    operation: str = ""  # e.g. "write metadata"
    project_name: Optional[str] = None
    conversation_id: Optional[str] = None
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {k: v for k, v in asdict(self).items() if v not in ("", None, {})}


class AppError(Exception):
    """Base class for every error raised by agent_workspace."""

    error_type = ErrorType.UNKNOWN

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        original: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.context = context or ErrorContext()
        self.original = original


class ValidationError(AppError):
    error_type = ErrorType.VALIDATION


class FileSystemError(AppError):
    error_type = ErrorType.FILESYSTEM


class ParsingError(AppError):
    error_type = ErrorType.PARSING


class StorageError(AppError):
    error_type = ErrorType.STORAGE


class ProjectExistsError(ValidationError):
    pass


class ProjectNotFoundError(FileSystemError):
    pass


class ConversationNotFoundError(FileSystemError):
    pass


class VFSFileNotFoundError(FileSystemError):
    pass


class FileTooLargeError(ValidationError):
    pass


class FilesystemFullError(ValidationError):
    pass


def log_error(error: BaseException, context: ErrorContext | None = None) -> None:
    """Record an error with its category, context and chained cause."""
    data: dict[str, Any] = {
        "type": getattr(error, "error_type", ErrorType.UNKNOWN).value,
        "name": type(error).__name__,
        "message": str(error),
    }
    ctx = context or getattr(error, "context", None)
    if ctx is not None:
        data["context"] = ctx.to_dict()
    original = getattr(error, "original", None)
    if original is not None:
        data["original"] = {"name": type(original).__name__, "message": str(original)}

    logger.error("Error occurred: %s", data, exc_info=error)


def format_for_cli(error: BaseException) -> str:
    """Format an error for the terminal: the message, then dim context lines."""
    lines = [str(error)]
    if isinstance(error, AppError):
        if error.context.location:
            lines.append(click.style(f"Location: {error.context.location}", dim=True))
        if error.context.operation:
            lines.append(click.style(f"Operation: {error.context.operation}", dim=True))
    return "\n".join(lines)
