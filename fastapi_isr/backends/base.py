from abc import ABC
from abc import abstractmethod
from base64 import b64decode
from base64 import b64encode
from typing import Any

import orjson

from fastapi_isr.exceptions import StoreError
from fastapi_isr.types import CacheEntry
from fastapi_isr.types import CacheOptions
from fastapi_isr.types import Content


class BaseCacheBackend(ABC):
    """Base class for all cache backends."""

    @abstractmethod
    async def add(
        self, key: str, content: Content, options: CacheOptions | None = None
    ) -> None:
        """Store a rendered page, stamping it with the current time."""

    @abstractmethod
    async def get(self, key: str) -> CacheEntry:
        """Retrieve a cached page.

        Raises:
            CacheKeyNotFoundError: If nothing is cached under key
        """

    @abstractmethod
    async def has(self, key: str) -> bool:
        """Check whether a page is cached under key."""

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Remove a cached page. Returns False when nothing was cached."""

    @abstractmethod
    async def get_all_keys(self) -> list[str]:
        """List every cached key."""

    async def clear(self) -> bool:
        """Remove every cached page. Returns False when unsupported."""
        return False


def entry_to_json(entry: CacheEntry, key: str | None = None) -> bytes:
    """Serialize a cache entry, base64-encoding binary (compressed) content."""
    is_bytes = isinstance(entry.content, bytes)
    return orjson.dumps(
        {
            "key": key,
            "content": b64encode(entry.content).decode("ascii")
            if is_bytes
            else entry.content,
            "encoding": "base64" if is_bytes else "text",
            "options": {
                "revalidate": entry.options.revalidate,
                "build_id": entry.options.build_id,
                "errors": entry.options.errors,
            },
            "created_at": entry.created_at,
        }
    )


def entry_from_json(data: bytes | str) -> CacheEntry:
    """Deserialize a cache entry written by entry_to_json.

    Raises:
        StoreError: If the data is not a valid cache entry
    """
    try:
        raw: dict[str, Any] = orjson.loads(data)
        content: Content = raw["content"]
        if raw.get("encoding") == "base64":
            content = b64decode(content)
        options = raw.get("options") or {}
        return CacheEntry(
            content=content,
            options=CacheOptions(
                revalidate=options.get("revalidate"),
                build_id=options.get("build_id"),
                errors=options.get("errors"),
            ),
            created_at=float(raw["created_at"]),
        )
    except (orjson.JSONDecodeError, KeyError, TypeError, ValueError) as e:
        msg = f"Invalid cache entry: {e}"
        raise StoreError(msg) from e
