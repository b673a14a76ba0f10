"""
Persistent key-value storage.

A small async store backed by one JSON file. App data (the lock PIN,
the fallback session credential) lives here.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional, Union

from hr_mobile.config import get_settings

logger = logging.getLogger(__name__)


class KeyValueStore:
    """String key-value store persisted as a JSON object."""

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path = Path(path) if path else get_settings().storage_path
        self._lock = asyncio.Lock()

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except json.JSONDecodeError as e:
            logger.warning(f"Storage file {self.path} is corrupt, starting empty: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict[str, str]):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
        tmp.replace(self.path)

    async def get(self, key: str) -> Optional[str]:
        async with self._lock:
            data = await asyncio.to_thread(self._read)
        return data.get(key)

    async def multi_get(self, keys: list[str]) -> list[tuple[str, Optional[str]]]:
        async with self._lock:
            data = await asyncio.to_thread(self._read)
        return [(key, data.get(key)) for key in keys]

    async def set(self, key: str, value: str):
        async with self._lock:
            data = await asyncio.to_thread(self._read)
            data[key] = value
            await asyncio.to_thread(self._write, data)

    async def remove(self, key: str):
        async with self._lock:
            data = await asyncio.to_thread(self._read)
            if data.pop(key, None) is not None:
                await asyncio.to_thread(self._write, data)
