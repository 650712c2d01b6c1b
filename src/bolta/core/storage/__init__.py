"""
Storage backends for bolta.

A small async key-value interface used to persist the daily step record
and its history.  Local filesystem by default, in-memory for tests and
embedding.
"""

from .base import (
    KeyValueStore,
    StorageError,
    StorageKeyError,
    StoragePermissionError,
)
from .local import LocalJsonStore
from .memory import MemoryStore

__all__ = [
    "KeyValueStore",
    "LocalJsonStore",
    "MemoryStore",
    "StorageError",
    "StorageKeyError",
    "StoragePermissionError",
]
