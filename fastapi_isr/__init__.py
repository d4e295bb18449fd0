"""FastAPI-ISR: Incremental static regeneration for FastAPI."""

from .backends import BaseCacheBackend as BaseCacheBackend
from .backends import MemoryBackend as MemoryBackend
from .config import ISRConfig as ISRConfig
from .handler import ISRHandler as ISRHandler
from .renderer import BaseRenderer as BaseRenderer
from .renderer import CallableRenderer as CallableRenderer
from .renderer import HTTPRenderer as HTTPRenderer
from .routes import add_routes as add_routes
from .types import RenderVariant as RenderVariant

__all__ = [
    "BaseCacheBackend",
    "BaseRenderer",
    "CallableRenderer",
    "HTTPRenderer",
    "ISRConfig",
    "ISRHandler",
    "MemoryBackend",
    "RenderVariant",
    "add_routes",
]
