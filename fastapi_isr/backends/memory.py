import asyncio
import copy
import time

from fastapi_isr.exceptions import CacheKeyNotFoundError
from fastapi_isr.types import CacheEntry
from fastapi_isr.types import CacheOptions
from fastapi_isr.types import Content

from .base import BaseCacheBackend


class MemoryBackend(BaseCacheBackend):
    """In-memory cache backend implementation."""

    def __init__(self) -> None:
        self.cache: dict[str, CacheEntry] = {}
        self.lock = asyncio.Lock()

    async def add(
        self, key: str, content: Content, options: CacheOptions | None = None
    ) -> None:
        async with self.lock:
            self.cache[key] = CacheEntry(
                content=content,
                options=options or CacheOptions(),
                created_at=time.time(),
            )

    async def get(self, key: str) -> CacheEntry:
        async with self.lock:
            entry = self.cache.get(key)
            if entry is None:
                raise CacheKeyNotFoundError(key)
            return copy.deepcopy(entry)

    async def has(self, key: str) -> bool:
        async with self.lock:
            return key in self.cache

    async def delete(self, key: str) -> bool:
        async with self.lock:
            return self.cache.pop(key, None) is not None

    async def get_all_keys(self) -> list[str]:
        async with self.lock:
            return list(self.cache.keys())

    async def clear(self) -> bool:
        async with self.lock:
            self.cache.clear()
        return True
