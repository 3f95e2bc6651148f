"""Item store backends.

Example:
    >>> from feedrelay.storage import create_storage
    >>> storage = create_storage(":memory:")
    >>> type(storage).__name__
    'SQLiteStorage'
    >>> type(create_storage(None)).__name__
    'MemoryStorage'
"""

from __future__ import annotations

from pathlib import Path

from feedrelay.storage.memory import MemoryStorage
from feedrelay.storage.sqlite import SQLiteStorage


def create_storage(path: str | Path | None) -> SQLiteStorage | MemoryStorage:
    """Create a store: SQLite for a path, in-memory for ``None``."""
    if path is None:
        return MemoryStorage()
    return SQLiteStorage(path)


__all__ = [
    "MemoryStorage",
    "SQLiteStorage",
    "create_storage",
]
