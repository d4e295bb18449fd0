"""Single-flight page regeneration: render, post-process and store."""

import asyncio
import threading
from collections.abc import Coroutine
from logging import getLogger
from typing import Any

from fastapi import Request

from .backends import BaseCacheBackend
from .cache_key import default_cache_key_generator
from .cache_key import get_request_url
from .compression import compress_html
from .config import ISRConfig
from .html import default_modify_generated_html
from .html import get_route_isr_data_from_html
from .renderer import BaseRenderer
from .renderer import RenderOptions
from .renderer import render_url
from .timeout import execute_with_timeout
from .types import CacheOptions
from .types import Content
from .types import GeneratedResult
from .types import GenerationMode
from .types import RenderVariant
from .variants import get_variant

logger = getLogger(__name__)


class RegenerationRegistry:
    """Cache keys with a regeneration in progress.

    Membership test and insert happen under one lock, so a key can only be
    acquired once even when handlers run on several threads.
    """

    def __init__(self) -> None:
        self._keys: set[str] = set()
        self._lock = threading.Lock()

    def try_acquire(self, cache_key: str) -> bool:
        """Mark a key as in flight. Returns False if it already was."""
        with self._lock:
            if cache_key in self._keys:
                return False
            self._keys.add(cache_key)
            return True

    def release(self, cache_key: str) -> None:
        with self._lock:
            self._keys.discard(cache_key)

    def __contains__(self, cache_key: object) -> bool:
        with self._lock:
            return cache_key in self._keys

    def __len__(self) -> int:
        with self._lock:
            return len(self._keys)


class CacheGeneration:
    """Render pages and write them to the cache backend."""

    def __init__(
        self,
        isr_config: ISRConfig,
        cache: BaseCacheBackend,
        renderer: BaseRenderer,
        registry: RegenerationRegistry | None = None,
    ) -> None:
        self.isr_config = isr_config
        self.cache = cache
        self.renderer = renderer
        self.registry = registry or RegenerationRegistry()
        self._background_tasks: set[asyncio.Task[Any]] = set()

    def get_cache_key(
        self,
        url: str,
        allowed_query_params: list[str] | None,
        variant: RenderVariant | None,
    ) -> str:
        generator = self.isr_config.cache_key_generator or default_cache_key_generator
        return generator(url, allowed_query_params, variant)

    def get_request_cache_key(self, request: Request) -> str:
        variant = get_variant(request, self.isr_config.variants)
        return self.get_cache_key(
            get_request_url(request), self.isr_config.allowed_query_params, variant
        )

    def spawn(self, coro: Coroutine[Any, Any, Any], description: str) -> asyncio.Task[Any]:
        """Run a coroutine in the background, logging its failure.

        A reference to the task is kept until it finishes so it isn't
        garbage collected mid-flight.
        """
        task = asyncio.ensure_future(coro)
        self._background_tasks.add(task)

        def _done(finished: asyncio.Task[Any]) -> None:
            self._background_tasks.discard(finished)
            if finished.cancelled():
                logger.warning("Background task cancelled: %s", description)
                return
            exc = finished.exception()
            if exc is not None:
                logger.error(
                    "Background task failed: %s",
                    description,
                    exc_info=(type(exc), exc, exc.__traceback__),
                )

        task.add_done_callback(_done)
        return task

    async def drain(self) -> None:
        """Wait for every background render and cache write to finish."""
        while self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)

    async def generate(
        self, request: Request, mode: GenerationMode = "regenerate"
    ) -> GeneratedResult | None:
        cache_key = self.get_request_cache_key(request)
        return await self.generate_with_cache_key(request, cache_key, mode)

    async def generate_with_cache_key(
        self,
        request: Request,
        cache_key: str,
        mode: GenerationMode = "regenerate",
    ) -> GeneratedResult | None:
        """Render the page for request and store it under cache_key.

        In ``regenerate`` mode at most one render runs per cache key; a call
        made while another is in flight returns None right away. ``generate``
        mode always renders.

        Returns:
            The final html and any render-reported errors, or None if skipped

        Raises:
            Exception: Any rendering failure, after the key has been released
        """
        if mode == "regenerate":
            if not self.registry.try_acquire(cache_key):
                logger.info("Another generation is on-going for this url: %s", cache_key)
                return None
            logger.info("The url: %s is being %sd.", cache_key, mode)

        try:
            return await self._generate(request, cache_key, mode)
        except Exception:
            logger.exception("Error %s url: %s", mode, cache_key)
            raise
        finally:
            if mode == "regenerate":
                self.registry.release(cache_key)

    async def _generate(
        self, request: Request, cache_key: str, mode: GenerationMode
    ) -> GeneratedResult:
        config = self.isr_config
        html = await render_url(
            self.renderer,
            get_request_url(request),
            request,
            RenderOptions(
                bootstrap=config.bootstrap,
                base_path=config.base_path,
                inline_critical_css=config.inline_critical_css,
            ),
            config.rendering_timeout_ms,
        )
        route_data = get_route_isr_data_from_html(html)
        logger.debug(
            "Revalidate time for cacheKey: %s: %s", cache_key, route_data.revalidate
        )

        modify = config.modify_generated_html or default_modify_generated_html
        final_html: Content = modify(request, html, route_data.revalidate)
        if config.compress_html:
            logger.debug("Compressing HTML...")
            final_html = await compress_html(final_html, config.html_compression_method)

        if route_data.errors and config.skip_caching_on_http_error:
            logger.error(
                "Url: %s was not %sd, errors: %s", cache_key, mode, route_data.errors
            )
            return GeneratedResult(html=final_html, errors=route_data.errors)

        # 0 means cache forever, so only fall back when nothing was reported
        revalidate = route_data.revalidate
        if revalidate is None:
            revalidate = config.default_revalidate
        if revalidate is None or revalidate < 0:
            logger.debug("Revalidate is %s, not caching...", revalidate)
            return GeneratedResult(html=final_html, errors=route_data.errors)

        options = CacheOptions(revalidate=revalidate, build_id=config.build_id)
        if config.non_blocking_render:
            logger.debug("Adding to cache without waiting...")
            self.spawn(
                self._add_to_cache(cache_key, final_html, options),
                f"add to cache {cache_key}",
            )
        else:
            logger.debug("Adding to cache...")
            await self._add_to_cache(cache_key, final_html, options)

        logger.info("Url: %s was %sd!", cache_key, mode)
        return GeneratedResult(html=final_html, errors=route_data.errors)

    async def _add_to_cache(
        self, cache_key: str, html: Content, options: CacheOptions
    ) -> None:
        try:
            await execute_with_timeout(
                self.cache.add(cache_key, html, options),
                self.isr_config.cache_timeout_ms,
                f"Timeout while adding to cache for cacheKey: {cache_key}",
            )
        except Exception:
            logger.warning("Failed to add to cache for cacheKey: %s", cache_key, exc_info=True)
