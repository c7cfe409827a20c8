"""
Key-value storage for client state that outlives a process.

Two keys are used: ``token`` (the bearer token) and ``darkMode``.
``JsonFileStore`` keeps one JSON object on disk and replaces the file
atomically on every write.
"""

import asyncio
import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Union

import structlog

logger = structlog.get_logger(__name__)

TOKEN_KEY = "token"
DARK_MODE_KEY = "darkMode"


class KeyValueStore(Protocol):
    """Async string-keyed store of JSON-compatible values."""

    async def get(self, key: str) -> Optional[Any]:
        ...

    async def set(self, key: str, value: Any) -> None:
        ...

    async def remove(self, key: str) -> None:
        ...


class MemoryStore:
    """Process-local store."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = dict(initial or {})

    async def get(self, key: str) -> Optional[Any]:
        return self._data.get(key)

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStore:
    """
    Store backed by a single JSON file.

    Reads go to the file every time so two stores on the same path see each
    other's writes. A missing or unreadable file reads as empty.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock = asyncio.Lock()

    def _read(self) -> Dict[str, Any]:
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.warning("store_read_failed", path=str(self.path), error=str(e))
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".store-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    async def get(self, key: str) -> Optional[Any]:
        data = await asyncio.to_thread(self._read)
        return data.get(key)

    async def set(self, key: str, value: Any) -> None:
        async with self._lock:
            data = await asyncio.to_thread(self._read)
            data[key] = value
            await asyncio.to_thread(self._write, data)

    async def remove(self, key: str) -> None:
        async with self._lock:
            data = await asyncio.to_thread(self._read)
            if key not in data:
                return
            del data[key]
            await asyncio.to_thread(self._write, data)


def open_store(path: Optional[str] = None) -> KeyValueStore:
    """File-backed store when ``path`` is set, otherwise in-memory."""
    if path:
        return JsonFileStore(path)
    return MemoryStore()
