"""Storage driver registry."""

from pathlib import Path

from ..driver import StorageDriver
from ..errors import ValidationError
from .filesystem import FileSystemDriver
from .memory import MemoryDriver

DRIVERS = {
    "fs": FileSystemDriver,
    "memory": MemoryDriver,
}


def get_driver(kind: str = "memory", base: str | Path | None = None) -> StorageDriver:
    """Build a storage driver by name. ``base`` only applies to ``fs``."""
    if kind not in DRIVERS:
        raise ValidationError(f"Unknown storage driver: {kind!r} (expected one of {sorted(DRIVERS)})")
    if kind == "fs":
        return FileSystemDriver(base)
    return MemoryDriver()
