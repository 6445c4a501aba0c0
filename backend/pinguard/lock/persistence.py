"""
Async key-value storage for lock settings.

Every backend offers the same three-method contract the guard relies on:
get_item, set_item and remove_item, all string-valued. LayeredStorage is
the production adapter: a primary store, an optional fallback store, and an
in-memory last resort for environments where both fail.
"""

import asyncio
import json
import os
from pathlib import Path
from typing import Optional, Protocol

from ..logging import get_logger
from .exceptions import StorageError

logger = get_logger("storage")


class STORAGE_KEYS:
    """Keys owned by pinguard."""
    PIN = "pin"
    INACTIVITY_TIMEOUT = "inactivityTimeout"
    LAST_VERIFICATION = "last-pin-verification"
    FAILED_ATTEMPTS = "pin-failed-attempts"
    LOCKOUT_END = "pin-lockout-end"


class KeyValueStorage(Protocol):
    async def get_item(self, key: str) -> Optional[str]: ...

    async def set_item(self, key: str, value: str) -> None: ...

    async def remove_item(self, key: str) -> None: ...

    async def clear(self) -> None: ...


class MemoryStorage:
    """Dict-backed storage. Lives for the lifetime of the process."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._items: dict[str, str] = dict(initial or {})

    async def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    async def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    async def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    async def clear(self) -> None:
        self._items.clear()

    def snapshot(self) -> dict[str, str]:
        """Copy of the current contents."""
        return dict(self._items)


class JsonFileStorage:
    """
    Storage persisted as a single JSON object on disk.

    Writes go to a temporary file that replaces the original, so a crash
    mid-write never leaves a truncated file behind. File I/O runs in a
    worker thread to keep the event loop responsive.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._lock = asyncio.Lock()

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except OSError as e:
            raise StorageError(f"Could not read {self.path}: {e}") from e
        except json.JSONDecodeError as e:
            raise StorageError(f"Corrupt storage file {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise StorageError(f"Corrupt storage file {self.path}: expected an object")
        return {str(k): str(v) for k, v in data.items()}

    def _write(self, data: dict[str, str]) -> None:
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(data, indent=2, sort_keys=True), encoding="utf-8")
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise StorageError(f"Could not write {self.path}: {e}") from e

    async def get_item(self, key: str) -> Optional[str]:
        data = await asyncio.to_thread(self._read)
        return data.get(key)

    async def set_item(self, key: str, value: str) -> None:
        async with self._lock:
            data = await asyncio.to_thread(self._read)
            data[key] = value
            await asyncio.to_thread(self._write, data)

    async def remove_item(self, key: str) -> None:
        async with self._lock:
            data = await asyncio.to_thread(self._read)
            if key not in data:
                return
            del data[key]
            await asyncio.to_thread(self._write, data)

    async def clear(self) -> None:
        async with self._lock:
            await asyncio.to_thread(self._write, {})


class LayeredStorage:
    """
    Primary store mirrored into an optional fallback store.

    Reads prefer the primary, then the fallback, then the in-memory layer.
    When every backend fails a write, the value is kept in memory and a
    warning is logged, unless strict=True, in which case StorageError is
    raised so the caller knows nothing was persisted.
    """

    def __init__(
        self,
        primary: KeyValueStorage,
        fallback: Optional[KeyValueStorage] = None,
        strict: bool = False,
    ):
        self.primary = primary
        self.fallback = fallback
        self.strict = strict
        self._memory = MemoryStorage()

    def _backends(self) -> list[KeyValueStorage]:
        backends = [self.primary]
        if self.fallback is not None:
            backends.append(self.fallback)
        return backends

    async def get_item(self, key: str) -> Optional[str]:
        for backend in self._backends():
            try:
                value = await backend.get_item(key)
            except StorageError as e:
                logger.warning(f"Error getting storage item '{key}': {e}")
                continue
            if value is not None:
                return value
        return await self._memory.get_item(key)

    async def _apply(self, key: str, action: str, value: Optional[str] = None) -> None:
        succeeded = 0
        last_error: Optional[StorageError] = None
        for backend in self._backends():
            try:
                if action == "set":
                    await backend.set_item(key, value)
                else:
                    await backend.remove_item(key)
                succeeded += 1
            except StorageError as e:
                logger.warning(f"Storage {action} failed for '{key}': {e}")
                last_error = e

        if action == "set":
            if succeeded:
                await self._memory.remove_item(key)
                return
            if self.strict:
                raise StorageError(f"No storage backend accepted '{key}'", key=key) from last_error
            logger.warning(f"All storage backends failed, keeping '{key}' in memory only")
            await self._memory.set_item(key, value)
        else:
            await self._memory.remove_item(key)
            if not succeeded and self.strict:
                raise StorageError(f"No storage backend removed '{key}'", key=key) from last_error

    async def set_item(self, key: str, value: str) -> None:
        await self._apply(key, "set", value)

    async def remove_item(self, key: str) -> None:
        await self._apply(key, "remove")

    async def clear(self) -> None:
        for backend in self._backends():
            try:
                await backend.clear()
            except StorageError as e:
                logger.warning(f"Error clearing storage: {e}")
        await self._memory.clear()
