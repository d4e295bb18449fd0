"""Renderers turn a url and the incoming request into html."""

from abc import ABC
from abc import abstractmethod
from collections.abc import Awaitable
from collections.abc import Callable
from dataclasses import dataclass
from logging import getLogger
from typing import Any

import httpx
from fastapi import Request

from .exceptions import RenderError
from .timeout import execute_with_timeout

logger = getLogger(__name__)

# Headers that describe the inbound connection, not the page being asked for
SKIPPED_HEADERS = frozenset(
    {"host", "connection", "content-length", "accept-encoding", "keep-alive"}
)


@dataclass
class RenderOptions:
    """Options forwarded to the renderer on every call."""

    bootstrap: Any = None
    base_path: str = "/"
    inline_critical_css: bool = True


class BaseRenderer(ABC):
    """Base class for all renderers."""

    @abstractmethod
    async def render(self, url: str, request: Request, options: RenderOptions) -> str:
        """Render a page to html."""


class CallableRenderer(BaseRenderer):
    """Adapt an async function ``(url, request, options) -> html`` to a renderer."""

    def __init__(
        self, func: Callable[[str, Request, RenderOptions], Awaitable[str]]
    ) -> None:
        self.func = func

    async def render(self, url: str, request: Request, options: RenderOptions) -> str:
        return await self.func(url, request, options)


class HTTPRenderer(BaseRenderer):
    """Fetch server-rendered html from an upstream SSR origin."""

    def __init__(
        self,
        base_url: str,
        client: httpx.AsyncClient | None = None,
        forward_headers: bool = True,
    ) -> None:
        """Initialize the renderer.

        Args:
            base_url: Origin that renders the pages, e.g. ``http://127.0.0.1:4000``
            client: Client to reuse (its base_url is ignored). The default client
                has no timeout of its own, rendering_timeout_ms bounds the render
            forward_headers: Whether the inbound request headers are sent upstream
        """
        self.base_url = base_url.rstrip("/")
        self.client = client or httpx.AsyncClient(timeout=None)
        self.forward_headers = forward_headers

    async def render(self, url: str, request: Request, options: RenderOptions) -> str:
        headers = {}
        if self.forward_headers:
            headers = {
                name: value
                for name, value in request.headers.items()
                if name.lower() not in SKIPPED_HEADERS
            }

        try:
            response = await self.client.get(f"{self.base_url}{url}", headers=headers)
        except httpx.HTTPError as e:
            msg = f"Failed to fetch {url} from {self.base_url}: {e}"
            raise RenderError(msg) from e

        if response.is_error:
            msg = f"Upstream responded {response.status_code} for {url}"
            raise RenderError(msg)
        return response.text

    async def aclose(self) -> None:
        await self.client.aclose()


async def render_url(
    renderer: BaseRenderer,
    url: str,
    request: Request,
    options: RenderOptions,
    timeout_ms: float,
) -> str:
    """Render a url, bounded by timeout_ms.

    Raises:
        ISRTimeoutError: If the renderer does not finish in time
        Exception: Any error raised by the renderer is propagated
    """
    logger.debug("Rendering url: %s", url)
    try:
        html = await execute_with_timeout(
            renderer.render(url, request, options),
            timeout_ms,
            f"Rendering timeout after {timeout_ms} ms",
        )
    except Exception:
        logger.error("Error rendering url: %s", url)
        raise

    logger.debug("Done rendering url: %s...", html[:200])
    return html
