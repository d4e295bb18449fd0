"""Request variant detection and variant-aware rebuild planning."""

from collections.abc import Callable
from collections.abc import Mapping
from logging import getLogger
from urllib.parse import urlsplit

from fastapi import Request

from .types import RenderVariant
from .types import VariantRebuildItem

logger = getLogger(__name__)


def get_variant(
    request: Request, variants: list[RenderVariant] | None
) -> RenderVariant | None:
    """Return the first variant whose detector accepts the request."""
    for variant in variants or []:
        if variant.detect_variant(request):
            logger.debug("Request matched variant: %s", variant.identifier)
            return variant
    return None


def default_request_simulator(request: Request) -> Request:
    return request


def get_variant_urls_to_invalidate(
    urls_to_invalidate: list[str],
    variants: list[RenderVariant] | None,
    get_cache_key: Callable[[str, RenderVariant | None], str],
) -> list[VariantRebuildItem]:
    """Expand urls into one rebuild item per cached variant.

    Each url yields its default (no variant) item first, followed by one
    item per configured variant in declaration order.

    Args:
        urls_to_invalidate: Urls as received in the invalidation payload
        variants: Configured variants
        get_cache_key: Cache key generator bound to the handler's settings

    Returns:
        The rebuild items, ``len(urls) * (1 + len(variants))`` of them
    """
    result: list[VariantRebuildItem] = []
    for url in urls_to_invalidate:
        result.append(
            VariantRebuildItem(
                url=url,
                cache_key=get_cache_key(url, None),
                req_simulator=default_request_simulator,
            )
        )
        for variant in variants or []:
            result.append(
                VariantRebuildItem(
                    url=url,
                    cache_key=get_cache_key(url, variant),
                    req_simulator=variant.simulate_variant
                    or default_request_simulator,
                )
            )
    return result


def with_url(request: Request, url: str) -> Request:
    """Copy a request, pointing it at another path and query string."""
    parts = urlsplit(url)
    path = parts.path or "/"
    scope = dict(request.scope)
    scope["path"] = path
    scope["raw_path"] = path.encode()
    scope["query_string"] = parts.query.encode()
    return Request(scope, request.receive)


def with_headers(request: Request, headers: Mapping[str, str]) -> Request:
    """Copy a request, setting (or replacing) the given headers.

    Meant to be used from ``RenderVariant.simulate_variant``::

        RenderVariant(
            identifier="mobile",
            detect_variant=lambda req: "Mobile" in req.headers.get("user-agent", ""),
            simulate_variant=lambda req: with_headers(req, {"user-agent": "Mobile"}),
        )
    """
    names = {name.lower().encode("latin-1") for name in headers}
    raw_headers = [
        (name, value)
        for name, value in request.scope.get("headers", [])
        if name.lower() not in names
    ]
    raw_headers.extend(
        (name.lower().encode("latin-1"), value.encode("latin-1"))
        for name, value in headers.items()
    )
    scope = dict(request.scope)
    scope["headers"] = raw_headers
    return Request(scope, request.receive)
