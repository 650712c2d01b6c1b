"""
JSON-file storage backend.

A key maps to ``<base_path>/<key>.json``.  Each save writes a hidden temp
file beside the target and renames it over the target, so readers see
either the old record or the new one, never half of one.
"""

import os
import uuid
from collections.abc import AsyncIterator
from pathlib import Path

import aiofiles
import aiofiles.os
from loguru import logger

from .base import KeyValueStore, StorageError, StoragePermissionError

_SUFFIX = ".json"


def _check_key(key: str) -> str:
    """Return the stripped key, or raise StoragePermissionError if it could escape the store."""
    cleaned = key.strip()
    if not cleaned:
        raise StoragePermissionError("Storage key cannot be empty.")
    for bad, label in (("\x00", "null bytes"), ("\\", "backslashes")):
        if bad in cleaned:
            raise StoragePermissionError(f"Storage key cannot contain {label}: {key!r}")
    if cleaned.startswith(("/", "~")):
        raise StoragePermissionError(f"Unsafe storage key '{key}': absolute paths are not allowed.")
    return cleaned


class LocalJsonStore(KeyValueStore):
    """Stores each key as one JSON file under *base_path*."""

    def __init__(self, base_path: str = "~/.bolta-data/storage", **config):
        super().__init__(**config)
        self.base_path = Path(base_path).expanduser().resolve()
        self.base_path.mkdir(parents=True, exist_ok=True)

    def path_for(self, key: str) -> Path:
        target = (self.base_path / (_check_key(key) + _SUFFIX)).resolve()
        if not target.is_relative_to(self.base_path):
            raise StoragePermissionError(f"Unsafe storage key '{key}': path traversal is not allowed.")
        return target

    async def save(self, key: str, data: bytes) -> None:
        target = self.path_for(key)
        staging = target.with_name(f".{target.name}.{uuid.uuid4().hex[:8]}.tmp")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(staging, "wb") as f:
                await f.write(data)
            await aiofiles.os.replace(staging, target)
        except PermissionError as e:
            raise StoragePermissionError(f"Cannot write to {target}: {e}") from e
        except OSError as e:
            raise StorageError(f"Failed to write {target}: {e}") from e
        finally:
            if staging.exists():
                try:
                    staging.unlink()
                except OSError:
                    logger.debug(f"Leftover temp file {staging}")

    async def load(self, key: str) -> bytes | None:
        target = self.path_for(key)
        try:
            async with aiofiles.open(target, "rb") as f:
                return await f.read()
        except FileNotFoundError:
            return None
        except PermissionError as e:
            raise StoragePermissionError(f"Cannot read {target}: {e}") from e
        except OSError as e:
            raise StorageError(f"Failed to read {target}: {e}") from e

    async def exists(self, key: str) -> bool:
        return self.path_for(key).is_file()

    async def delete(self, key: str) -> bool:
        try:
            await aiofiles.os.remove(self.path_for(key))
        except FileNotFoundError:
            return False
        return True

    async def list_keys(self, prefix: str = "", limit: int | None = None) -> AsyncIterator[str]:
        found = 0
        for root, _dirs, files in os.walk(self.base_path):
            for name in sorted(files):
                if name.startswith(".") or not name.endswith(_SUFFIX):
                    continue
                key = (Path(root) / name).relative_to(self.base_path).with_suffix("").as_posix()
                if not key.startswith(prefix):
                    continue
                yield key
                found += 1
                if limit and found >= limit:
                    return
