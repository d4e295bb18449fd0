import asyncio
import hashlib
import time
from logging import getLogger
from pathlib import Path
from uuid import uuid4

import orjson

from fastapi_isr.exceptions import CacheKeyNotFoundError
from fastapi_isr.exceptions import StoreError
from fastapi_isr.types import CacheEntry
from fastapi_isr.types import CacheOptions
from fastapi_isr.types import Content

from .base import BaseCacheBackend
from .base import entry_from_json
from .base import entry_to_json

logger = getLogger(__name__)


class FileSystemBackend(BaseCacheBackend):
    """Cache backend storing one json document per page in a directory.

    File names are the sha256 of the cache key; the key itself is kept
    inside the document so that keys can be listed back.
    """

    def __init__(self, cache_folder: str | Path) -> None:
        self.cache_folder = Path(cache_folder)
        self.cache_folder.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return self.cache_folder / f"{digest}.json"

    def _write(self, key: str, entry: CacheEntry) -> None:
        path = self._path(key)
        # One temp file per writer
        tmp_path = path.with_name(f"{path.stem}.{uuid4().hex}.tmp")
        try:
            tmp_path.write_bytes(entry_to_json(entry, key=key))
            tmp_path.replace(path)
        finally:
            tmp_path.unlink(missing_ok=True)

    def _read(self, key: str) -> CacheEntry:
        try:
            data = self._path(key).read_bytes()
        except FileNotFoundError as e:
            raise CacheKeyNotFoundError(key) from e
        return entry_from_json(data)

    def _list_keys(self) -> list[str]:
        keys = []
        for path in self.cache_folder.glob("*.json"):
            try:
                keys.append(orjson.loads(path.read_bytes())["key"])
            except (OSError, orjson.JSONDecodeError, KeyError, TypeError):
                logger.warning("Skipping unreadable cache file: %s", path)
        return keys

    def _clear(self) -> None:
        for path in self.cache_folder.glob("*.json"):
            path.unlink(missing_ok=True)

    async def add(
        self, key: str, content: Content, options: CacheOptions | None = None
    ) -> None:
        entry = CacheEntry(
            content=content, options=options or CacheOptions(), created_at=time.time()
        )
        try:
            await asyncio.to_thread(self._write, key, entry)
        except OSError as e:
            msg = f"Failed to write cache file for {key}: {e}"
            raise StoreError(msg) from e

    async def get(self, key: str) -> CacheEntry:
        return await asyncio.to_thread(self._read, key)

    async def has(self, key: str) -> bool:
        return await asyncio.to_thread(self._path(key).exists)

    async def delete(self, key: str) -> bool:
        path = self._path(key)
        if not await asyncio.to_thread(path.exists):
            return False
        await asyncio.to_thread(path.unlink, True)
        return True

    async def get_all_keys(self) -> list[str]:
        return await asyncio.to_thread(self._list_keys)

    async def clear(self) -> bool:
        await asyncio.to_thread(self._clear)
        return True
