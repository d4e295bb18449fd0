import time
from logging import getLogger
from typing import TYPE_CHECKING
from typing import Any

from fastapi_isr.exceptions import BackendNotInstalledError
from fastapi_isr.exceptions import CacheKeyNotFoundError
from fastapi_isr.types import CacheEntry
from fastapi_isr.types import CacheOptions
from fastapi_isr.types import Content

from .base import BaseCacheBackend
from .base import entry_from_json
from .base import entry_to_json

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = getLogger(__name__)

SCAN_BATCH_SIZE = 100


class AsyncRedisCacheBackend(BaseCacheBackend):
    """Async Redis cache backend implementation."""

    client: "Redis"

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = 6379,
        password: str | None = None,
        db: int = 0,
        key_prefix: str = "fastapi_isr:",
        **kwargs: Any,
    ) -> None:
        """Initialize async Redis cache backend.

        Args:
            host: Redis host
            port: Redis port
            password: Redis password
            db: Redis database number
            key_prefix: Prefix for every key, so pages can be listed and cleared
                without touching other data
            **kwargs: Extra arguments for the redis client (socket_timeout, ...)

        Raises:
            BackendNotInstalledError: If the redis package is missing
        """
        try:
            from redis.asyncio import Redis as AsyncRedis
        except ImportError as e:
            msg = "redis[hiredis] is not installed. Please install it with `pip install fastapi-isr[redis]`"
            raise BackendNotInstalledError(msg) from e

        self.client = AsyncRedis(
            host=host,
            port=port,
            password=password,
            db=db,
            decode_responses=False,
            **kwargs,
        )
        self.key_prefix = key_prefix

    def _make_key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    def _strip_key(self, key: bytes | str) -> str:
        if isinstance(key, bytes):
            key = key.decode("utf-8")
        return key.removeprefix(self.key_prefix)

    async def _scan_keys(self) -> list[bytes | str]:
        return [
            key
            async for key in self.client.scan_iter(
                match=f"{self.key_prefix}*", count=SCAN_BATCH_SIZE
            )
        ]

    async def add(
        self, key: str, content: Content, options: CacheOptions | None = None
    ) -> None:
        entry = CacheEntry(
            content=content, options=options or CacheOptions(), created_at=time.time()
        )
        await self.client.set(self._make_key(key), entry_to_json(entry, key=key))

    async def get(self, key: str) -> CacheEntry:
        data = await self.client.get(self._make_key(key))
        if data is None:
            raise CacheKeyNotFoundError(key)
        return entry_from_json(data)

    async def has(self, key: str) -> bool:
        return bool(await self.client.exists(self._make_key(key)))

    async def delete(self, key: str) -> bool:
        return bool(await self.client.delete(self._make_key(key)))

    async def get_all_keys(self) -> list[str]:
        return [self._strip_key(key) for key in await self._scan_keys()]

    async def clear(self) -> bool:
        keys = await self._scan_keys()
        if keys:
            await self.client.delete(*keys)
        logger.debug("Cleared %d keys with prefix %s", len(keys), self.key_prefix)
        return True

    async def close(self) -> None:
        await self.client.aclose()
