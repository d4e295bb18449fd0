import asyncio
from collections.abc import Callable

import pytest
from fastapi import Request

from fastapi_isr.backends import MemoryBackend
from fastapi_isr.renderer import BaseRenderer
from fastapi_isr.renderer import RenderOptions


class FakeRenderer(BaseRenderer):
    """Renderer returning canned html, recording every call."""

    def __init__(
        self,
        html: str | Callable[[str], str] = "<html><body>page</body></html>",
        delay: float = 0.0,
        error: Exception | None = None,
    ) -> None:
        self.html = html
        self.delay = delay
        self.error = error
        self.calls: list[str] = []
        self.requests: list[Request] = []

    async def render(self, url: str, request: Request, options: RenderOptions) -> str:
        self.calls.append(url)
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.html(url) if callable(self.html) else self.html


class SpyBackend(MemoryBackend):
    """Memory backend counting every storage operation."""

    def __init__(self) -> None:
        super().__init__()
        self.operations: list[tuple[str, str]] = []

    async def add(self, key, content, options=None):
        self.operations.append(("add", key))
        await super().add(key, content, options)

    async def get(self, key):
        self.operations.append(("get", key))
        return await super().get(key)

    async def has(self, key):
        self.operations.append(("has", key))
        return await super().has(key)

    async def delete(self, key):
        self.operations.append(("delete", key))
        return await super().delete(key)


def build_request(url: str = "/", headers: dict[str, str] | None = None) -> Request:
    path, _, query = url.partition("?")
    scope = {
        "type": "http",
        "method": "GET",
        "scheme": "http",
        "server": ("testserver", 80),
        "path": path,
        "raw_path": path.encode(),
        "root_path": "",
        "query_string": query.encode(),
        "headers": [
            (name.lower().encode("latin-1"), value.encode("latin-1"))
            for name, value in (headers or {}).items()
        ],
    }
    return Request(scope)


def build_isr_page(
    body: str = "page", revalidate: int | None = None, errors: list[str] | None = None
) -> str:
    state = []
    if revalidate is not None:
        state.append(f'"revalidate": {revalidate}')
    if errors is not None:
        quoted = ", ".join(f'"{error}"' for error in errors)
        state.append(f'"errors": [{quoted}]')
    script = (
        '<script id="isr-state" type="application/json">{'
        + ", ".join(state)
        + "}</script>"
    )
    return f"<html><body>{body}{script}</body></html>"


@pytest.fixture
def make_request() -> Callable[..., Request]:
    return build_request


@pytest.fixture
def isr_page() -> Callable[..., str]:
    return build_isr_page


@pytest.fixture
def fake_renderer_cls() -> type[FakeRenderer]:
    return FakeRenderer


@pytest.fixture
def memory_backend() -> MemoryBackend:
    return MemoryBackend()


@pytest.fixture
def spy_backend() -> SpyBackend:
    return SpyBackend()
