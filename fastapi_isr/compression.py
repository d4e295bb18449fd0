"""Html compression for stored pages."""

import asyncio
import gzip
import zlib
from typing import Literal

from fastapi import Response

from .types import Content

CompressionMethod = Literal["gzip", "deflate"]


def content_to_bytes(content: Content) -> bytes:
    """Restore stored content to raw bytes."""
    if isinstance(content, bytes):
        return content
    return content.encode("utf-8")


def _compress(data: bytes, method: CompressionMethod) -> bytes:
    if method == "gzip":
        return gzip.compress(data)
    if method == "deflate":
        return zlib.compress(data)
    msg = f"Unsupported compression method: {method}"
    raise ValueError(msg)


async def compress_html(html: Content, method: CompressionMethod = "gzip") -> bytes:
    """Compress html off the event loop."""
    return await asyncio.to_thread(_compress, content_to_bytes(html), method)


def set_compress_header(response: Response, method: CompressionMethod) -> None:
    response.headers["Content-Encoding"] = method
