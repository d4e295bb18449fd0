"""Cache backend implementations for FastAPI-ISR."""

from .base import BaseCacheBackend
from .filesystem import FileSystemBackend
from .memory import MemoryBackend
from .redis import AsyncRedisCacheBackend

__all__ = [
    "AsyncRedisCacheBackend",
    "BaseCacheBackend",
    "FileSystemBackend",
    "MemoryBackend",
]
