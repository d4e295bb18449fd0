"""Serving, on-demand rendering and invalidation of cached pages."""

import hmac
import logging
import time
from logging import getLogger

from fastapi import Request
from fastapi import Response

from .backends import BaseCacheBackend
from .backends import MemoryBackend
from .compression import content_to_bytes
from .compression import set_compress_header
from .config import ISRConfig
from .exceptions import AuthorizationError
from .exceptions import CacheKeyNotFoundError
from .exceptions import InvalidationPayloadError
from .generation import CacheGeneration
from .generation import RegenerationRegistry
from .models import InvalidatePayload
from .models import InvalidationReport
from .renderer import BaseRenderer
from .timeout import execute_with_timeout
from .types import CacheEntry
from .types import Content
from .types import ModifyCachedHtmlFn
from .variants import get_variant_urls_to_invalidate
from .variants import with_url

logger = getLogger(__name__)

HTML_MEDIA_TYPE = "text/html"


class ISRHandler:
    """Incremental static regeneration for FastAPI.

    Usage::

        isr = ISRHandler(ISRConfig(default_revalidate=60), HTTPRenderer(SSR_ORIGIN))

        @app.get("/{path:path}")
        async def page(request: Request) -> Response:
            response = await isr.serve_from_cache(request) or await isr.render(request)
            return response or Response(status_code=502)
    """

    def __init__(
        self,
        isr_config: ISRConfig,
        renderer: BaseRenderer,
        cache: BaseCacheBackend | None = None,
        registry: RegenerationRegistry | None = None,
    ) -> None:
        self.isr_config = isr_config
        if isr_config.log_level:
            logging.getLogger("fastapi_isr").setLevel(isr_config.log_level.upper())

        if cache is not None:
            logger.info("Using custom cache backend: <%s>", cache.__class__.__name__)
            self.cache = cache
        else:
            logger.info("Using in memory cache backend!")
            self.cache = MemoryBackend()

        self.cache_generation = CacheGeneration(
            isr_config, self.cache, renderer, registry=registry
        )

    async def serve_from_cache(
        self,
        request: Request,
        modify_cached_html: ModifyCachedHtmlFn | None = None,
    ) -> Response | None:
        """Serve the cached page for request.

        Stale pages are regenerated, in the background or before responding
        depending on ``background_revalidation``.

        Args:
            request: The incoming request
            modify_cached_html: Transform applied to uncompressed cached html

        Returns:
            The response, or None when the request must be rendered live
        """
        try:
            return await self._serve_from_cache(request, modify_cached_html)
        except Exception:
            logger.exception("Unexpected error serving from cache, falling back to SSR")
            return None

    async def _get_entry(self, cache_key: str) -> CacheEntry | None:
        try:
            return await execute_with_timeout(
                self.cache.get(cache_key),
                self.isr_config.cache_timeout_ms,
                f"Failed to get cache data for cacheKey: {cache_key}",
            )
        except CacheKeyNotFoundError:
            logger.debug("Cache miss for cacheKey: %s", cache_key)
        except Exception:
            logger.warning(
                "Failed to get cache data for cacheKey: %s", cache_key, exc_info=True
            )
        return None

    async def _serve_from_cache(
        self,
        request: Request,
        modify_cached_html: ModifyCachedHtmlFn | None,
    ) -> Response | None:
        config = self.isr_config
        cache_key = self.cache_generation.get_request_cache_key(request)
        logger.debug("cacheKey: %s", cache_key)

        entry = await self._get_entry(cache_key)
        if entry is None:
            return None
        logger.debug(
            "cacheData: CreatedAt: %s, Options: %s", entry.created_at, entry.options
        )

        build_id = entry.options.build_id
        if build_id is not None and build_id != config.build_id:
            logger.debug(
                "Cache is from a different build: %s, running build: %s",
                build_id,
                config.build_id,
            )
            return None

        logger.info("Page was retrieved from cache: %s", cache_key)
        final_html: Content = entry.content
        if config.compress_html:
            final_html = content_to_bytes(final_html)

        if entry.is_stale():
            logger.debug("Cache is expired. Regenerating the page for: %s", cache_key)
            regeneration = self.cache_generation.generate_with_cache_key(
                request, cache_key, "regenerate"
            )
            if config.background_revalidation:
                self.cache_generation.spawn(regeneration, f"regenerate {cache_key}")
            else:
                try:
                    result = await regeneration
                except Exception:
                    return None
                if result is not None and result.html:
                    final_html = result.html

        if config.compress_html:
            response = Response(content=final_html, media_type=HTML_MEDIA_TYPE)
            set_compress_header(response, config.html_compression_method)
            return response

        if modify_cached_html is not None:
            time_start = time.perf_counter()
            html = final_html.decode("utf-8") if isinstance(final_html, bytes) else final_html
            final_html = modify_cached_html(request, html)
            total_ms = (time.perf_counter() - time_start) * 1000
            final_html += (
                "<!--\nISR: This cachedHtml has been modified with modify_cached_html()\n"
                f"This resulted into more {total_ms:.2f}ms of processing time.\n-->"
            )
        return Response(content=final_html, media_type=HTML_MEDIA_TYPE)

    async def render(self, request: Request) -> Response | None:
        """Render a page that isn't cached yet, storing it for later requests.

        Returns:
            The response, or None when rendering failed
        """
        try:
            result = await self.cache_generation.generate(request, "generate")
        except Exception:
            return None

        if result is None or not result.html:
            logger.error("Error while generating the page!")
            return None

        response = Response(content=result.html, media_type=HTML_MEDIA_TYPE)
        if self.isr_config.compress_html:
            set_compress_header(response, self.isr_config.html_compression_method)
        return response

    def authorize(self, token: str | None) -> None:
        """Check an invalidation token against the configured secret.

        Raises:
            AuthorizationError: If the token is missing, wrong, or no secret is configured
        """
        secret = self.isr_config.invalidate_secret_token
        if (
            secret is None
            or token is None
            or not hmac.compare_digest(token.encode("utf-8"), secret.encode("utf-8"))
        ):
            msg = "Your secret token is wrong!!!"
            raise AuthorizationError(msg)

    async def invalidate(
        self, request: Request, payload: InvalidatePayload
    ) -> InvalidationReport:
        """Regenerate every cached variant of the given urls.

        Urls that aren't cached are reported, not rendered. Rebuilds don't
        wait for, nor get skipped by, an in-flight regeneration.

        Raises:
            AuthorizationError: If the token does not match the secret
            InvalidationPayloadError: If no url was given
        """
        self.authorize(payload.token)
        if not payload.urls_to_invalidate:
            msg = "Please add `urlsToInvalidate` in the payload!"
            raise InvalidationPayloadError(msg)

        generation = self.cache_generation
        items = get_variant_urls_to_invalidate(
            payload.urls_to_invalidate,
            self.isr_config.variants,
            lambda url, variant: generation.get_cache_key(
                url, self.isr_config.allowed_query_params, variant
            ),
        )

        processed: list[str] = []
        not_in_cache: list[str] = []
        url_with_errors: dict[str, list[str]] = {}

        for item in items:
            cache_key = item.cache_key
            if cache_key in processed:
                continue
            processed.append(cache_key)

            try:
                exists = await execute_with_timeout(
                    self.cache.has(cache_key),
                    self.isr_config.cache_timeout_ms,
                    f"Timeout while checking cache for cacheKey: {cache_key}",
                )
            except Exception:
                logger.exception("Error while checking cache for cacheKey: %s", cache_key)
                exists = False

            if not exists:
                not_in_cache.append(cache_key)
                continue

            variant_request = item.req_simulator(with_url(request, item.url))
            try:
                result = await generation.generate_with_cache_key(
                    variant_request, cache_key, "generate"
                )
            except Exception as e:
                url_with_errors[cache_key] = [str(e) or e.__class__.__name__]
                continue
            if result is not None and result.errors:
                url_with_errors[cache_key] = result.errors

        invalidated_urls = [
            cache_key
            for cache_key in processed
            if cache_key not in not_in_cache and cache_key not in url_with_errors
        ]

        if not_in_cache:
            logger.warning("Urls: %s does not exist in cache.", ", ".join(not_in_cache))
        if url_with_errors:
            logger.warning(
                "Urls: %s had errors while regenerating!", ", ".join(url_with_errors)
            )
        if invalidated_urls:
            logger.warning("Urls: %s were regenerated!", ", ".join(invalidated_urls))

        return InvalidationReport(
            not_in_cache=not_in_cache,
            url_with_errors=url_with_errors,
            invalidated_urls=invalidated_urls,
        )
