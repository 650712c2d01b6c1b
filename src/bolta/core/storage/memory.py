"""In-memory storage backend."""

from collections.abc import AsyncIterator

from .base import KeyValueStore


class MemoryStore(KeyValueStore):
    """Dict-backed store. Nothing survives the process."""

    def __init__(self, **config):
        super().__init__(**config)
        self._data: dict[str, bytes] = {}
        self.save_count = 0

    async def save(self, key: str, data: bytes) -> None:
        self._data[key] = bytes(data)
        self.save_count += 1

    async def load(self, key: str) -> bytes | None:
        return self._data.get(key)

    async def exists(self, key: str) -> bool:
        return key in self._data

    async def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    async def list_keys(self, prefix: str = "", limit: int | None = None) -> AsyncIterator[str]:
        count = 0
        for key in sorted(self._data):
            if prefix and not key.startswith(prefix):
                continue
            yield key
            count += 1
            if limit and count >= limit:
                return
