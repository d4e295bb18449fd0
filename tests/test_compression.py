import gzip
import zlib

import pytest
from fastapi import Response

from fastapi_isr.compression import compress_html
from fastapi_isr.compression import content_to_bytes
from fastapi_isr.compression import set_compress_header


@pytest.mark.asyncio
async def test_gzip_compression_is_readable_by_gzip():
    compressed = await compress_html("<html>hi</html>", "gzip")
    assert isinstance(compressed, bytes)
    assert gzip.decompress(compressed) == b"<html>hi</html>"


@pytest.mark.asyncio
async def test_deflate_compression():
    compressed = await compress_html(b"<html>hi</html>", "deflate")
    assert zlib.decompress(compressed) == b"<html>hi</html>"


@pytest.mark.asyncio
async def test_unknown_method_is_rejected():
    with pytest.raises(ValueError, match="Unsupported compression method"):
        await compress_html("<html></html>", "br")  # type: ignore[arg-type]


def test_content_to_bytes():
    assert content_to_bytes("é") == "é".encode()
    assert content_to_bytes(b"raw") == b"raw"


def test_set_compress_header():
    response = Response(content=b"")
    set_compress_header(response, "gzip")
    assert response.headers["content-encoding"] == "gzip"
