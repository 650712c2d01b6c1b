"""
Abstract base class for key-value storage backends.

Values are opaque bytes; callers own serialization.  A missing key is
reported as ``None`` from :meth:`KeyValueStore.load` rather than raised,
because "nothing saved yet" is the normal first-run case.
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

from ..exceptions import PersistenceError


class KeyValueStore(ABC):
    """Abstract base class for storage backends."""

    def __init__(self, **config):
        self.config = config

    @abstractmethod
    async def save(self, key: str, data: bytes) -> None:
        """Store *data* under *key*, replacing any previous value."""

    @abstractmethod
    async def load(self, key: str) -> bytes | None:
        """Return the stored bytes, or None if the key is absent."""

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Check if a key exists in storage."""

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete a key. Returns True if deleted, False if it didn't exist."""

    @abstractmethod
    def list_keys(self, prefix: str = "", limit: int | None = None) -> AsyncIterator[str]:
        """List keys with optional prefix filter."""

    async def load_required(self, key: str) -> bytes:
        """Like :meth:`load` but raise StorageKeyError when absent."""
        data = await self.load(key)
        if data is None:
            raise StorageKeyError(f"Key not found: {key}")
        return data


class StorageError(PersistenceError):
    """Base exception for storage errors."""


class StorageKeyError(StorageError, KeyError):
    """Raised when a storage key doesn't exist."""


class StoragePermissionError(StorageError):
    """Raised when a storage operation is not permitted."""
