"""In-memory virtual file system shared by a project's conversations.

Files live under a virtual ``/workspace`` root and never touch the real
disk. A project's VFS is persisted as a ``{path: content}`` snapshot in
which binary files are encoded as ``BINARY_SNAPSHOT_PREFIX + base64``.
"""

import base64
import binascii
import json
import logging
import posixpath
from dataclasses import dataclass
from typing import Optional

from .errors import (
    FilesystemFullError,
    FileTooLargeError,
    ParsingError,
    ValidationError,
    VFSFileNotFoundError,
)

logger = logging.getLogger(__name__)

BINARY_SNAPSHOT_PREFIX = "__BINARY__:"
WORKSPACE_ROOT = "/workspace"

DEFAULT_MAX_TOTAL_SIZE = 40 * 1024 * 1024
DEFAULT_MAX_FILE_SIZE = 8 * 1024 * 1024

BINARY_EXTENSIONS = frozenset({
    ".png", ".jpg", ".jpeg", ".gif", ".bmp", ".webp", ".ico", ".avif",
})
SUPPORTED_EXTENSIONS = (".js", ".ts", ".json", ".txt", ".md", ".html", ".css")

_MIME_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".bmp": "image/bmp",
    ".webp": "image/webp",
    ".ico": "image/x-icon",
    ".avif": "image/avif",
}


@dataclass
class FileInfo:
    name: str
    path: str
    size: int
    is_directory: bool
    extension: Optional[str] = None
    is_binary: bool = False


@dataclass
class VFSStats:
    file_count: int
    total_size: int
    max_size: int


def normalize_path(filename: str) -> str:
    """Normalize a path to a workspace-relative POSIX path.

    Leading slashes and leading ``../`` segments are dropped so a path can
    never point outside the workspace.
    """
    path = posixpath.normpath(filename.replace("\\", "/"))
    path = path.lstrip("/")
    while path == ".." or path.startswith("../"):
        path = path[3:]
    return "" if path == "." else path


def get_extension(filename: str) -> str:
    return posixpath.splitext(filename)[1]


def decode_binary_snapshot(serialized: str) -> bytes:
    """Decode a ``BINARY_SNAPSHOT_PREFIX + base64`` snapshot entry."""
    encoded = serialized[len(BINARY_SNAPSHOT_PREFIX):]
    try:
        return base64.b64decode(encoded, validate=True)
    except binascii.Error as e:
        raise ParsingError(f"Invalid base64 in binary snapshot entry: {e}", original=e) from e


class VirtualFileSystem:
    """A size-limited in-memory file tree."""

    def __init__(
        self,
        max_total_size: int = DEFAULT_MAX_TOTAL_SIZE,
        max_file_size: int = DEFAULT_MAX_FILE_SIZE,
    ):
        self.max_total_size = max_total_size
        self.max_file_size = max_file_size
        self._files: dict[str, bytes] = {}
        self._binary: set[str] = set()

    # ── File operations ──────────────────────────────────────────

    def write_file(self, filename: str, content: str | bytes) -> None:
        """Create or replace a file. ``bytes`` content marks the file as binary."""
        path = self._require_path(filename)
        is_binary = isinstance(content, (bytes, bytearray))
        data = bytes(content) if is_binary else content.encode("utf-8")

        if len(data) > self.max_file_size:
            raise FileTooLargeError(
                f"File too large: {len(data)} bytes (max {self.max_file_size} bytes)."
            )

        current = self.get_total_size() - len(self._files.get(path, b""))
        if current + len(data) > self.max_total_size:
            raise FilesystemFullError(
                f"Filesystem full: would exceed {self.max_total_size} bytes."
            )

        self._files[path] = data
        if is_binary:
            self._binary.add(path)
        else:
            self._binary.discard(path)

    def read_file(self, filename: str) -> str:
        """Return text content, or a ``data:`` URI for binary files."""
        path = normalize_path(filename)
        data = self._get(path, filename)
        if path in self._binary:
            mime = _MIME_TYPES.get(get_extension(path).lower(), "image/png")
            return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"
        return data.decode("utf-8")

    def read_bytes(self, filename: str) -> bytes:
        return self._get(normalize_path(filename), filename)

    def delete_file(self, filename: str) -> None:
        path = normalize_path(filename)
        if path not in self._files:
            raise VFSFileNotFoundError(f"Can't delete what doesn't exist: {filename}")
        del self._files[path]
        self._binary.discard(path)

    def exists(self, filename: str) -> bool:
        """Return True if the path names a file or a directory."""
        path = normalize_path(filename)
        if not path:
            return True
        return path in self._files or any(p.startswith(path + "/") for p in self._files)

    def reset(self) -> None:
        self._files.clear()
        self._binary.clear()

    def list_files(self, directory: str = "") -> list[FileInfo]:
        """List files and directories below ``directory``, depth first, by name."""
        prefix = normalize_path(directory)
        if prefix and not self.exists(prefix):
            return []

        tree: dict = {}
        for path in self._files:
            if prefix and not path.startswith(prefix + "/"):
                continue
            relative = path[len(prefix) + 1:] if prefix else path
            node = tree
            parts = relative.split("/")
            for part in parts[:-1]:
                node = node.setdefault(part, {})
            node[parts[-1]] = None

        files: list[FileInfo] = []
        self._walk(tree, prefix, files)
        return files

    def get_total_size(self) -> int:
        return sum(len(data) for data in self._files.values())

    def get_stats(self) -> VFSStats:
        return VFSStats(
            file_count=len(self._files),
            total_size=self.get_total_size(),
            max_size=self.max_total_size,
        )

    # ── Snapshots ────────────────────────────────────────────────

    def serialize_file_content(self, filename: str) -> str:
        path = normalize_path(filename)
        if path in self._binary:
            encoded = base64.b64encode(self._get(path, filename)).decode("ascii")
            return f"{BINARY_SNAPSHOT_PREFIX}{encoded}"
        return self.read_file(path)

    def write_serialized(self, filename: str, serialized: str) -> None:
        if serialized.startswith(BINARY_SNAPSHOT_PREFIX):
            self.write_file(filename, decode_binary_snapshot(serialized))
        else:
            self.write_file(filename, serialized)

    def snapshot(self) -> dict[str, str]:
        """Return every file as ``{path: serialized content}``."""
        return {path: self.serialize_file_content(path) for path in sorted(self._files)}

    def load_snapshot(self, snapshot: dict[str, str]) -> None:
        """Write every string entry of a snapshot into the file system."""
        for filename, content in snapshot.items():
            if isinstance(content, str):
                self.write_serialized(filename, content)
            else:
                logger.warning("Skipping non-text snapshot entry: %s", filename)

    def export_json(self) -> str:
        return json.dumps(self.snapshot(), indent=2, ensure_ascii=False)

    def import_json(self, text: str) -> None:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ParsingError(f"Failed to import filesystem: {e}", original=e) from e
        if not isinstance(data, dict):
            raise ParsingError("Failed to import filesystem: expected a JSON object")
        self.load_snapshot(data)

    # ── File classification ──────────────────────────────────────

    def is_binary_file(self, filename: str) -> bool:
        return normalize_path(filename) in self._binary

    @staticmethod
    def is_binary_extension(filename: str) -> bool:
        return get_extension(filename).lower() in BINARY_EXTENSIONS

    @staticmethod
    def is_supported_extension(filename: str) -> bool:
        return filename.lower().endswith(SUPPORTED_EXTENSIONS)

    # ── Private helpers ──────────────────────────────────────────

    def _require_path(self, filename: str) -> str:
        path = normalize_path(filename)
        if not path:
            raise ValidationError(f"Invalid file path: {filename!r}")
        if any(p.startswith(path + "/") for p in self._files):
            raise ValidationError(f"Path is a directory: {filename}")
        parts = path.split("/")
        for i in range(1, len(parts)):
            if "/".join(parts[:i]) in self._files:
                raise ValidationError(f"Parent of {filename} is a file")
        return path

    def _get(self, path: str, filename: str) -> bytes:
        try:
            return self._files[path]
        except KeyError:
            raise VFSFileNotFoundError(f"File not found: {filename}") from None

    def _walk(self, node: dict, parent: str, out: list[FileInfo]) -> None:
        for name in sorted(node):
            path = f"{parent}/{name}" if parent else name
            child = node[name]
            if child is None:
                out.append(FileInfo(
                    name=name,
                    path=path,
                    size=len(self._files[path]),
                    is_directory=False,
                    extension=get_extension(name),
                    is_binary=path in self._binary,
                ))
            else:
                out.append(FileInfo(name=name, path=path, size=0, is_directory=True))
                self._walk(child, path, out)
