"""Cache key generation for rendered pages."""

from urllib.parse import parse_qsl
from urllib.parse import urlencode
from urllib.parse import urlsplit

from fastapi import Request

from .types import VARIANT_KEY_TEMPLATE
from .types import RenderVariant


def get_request_url(request: Request) -> str:
    """Return the path and query string of a request, e.g. ``/posts?page=2``."""
    query = request.url.query
    return f"{request.url.path}?{query}" if query else request.url.path


def default_cache_key_generator(
    url: str,
    allowed_query_params: list[str] | None,
    variant: RenderVariant | None,
) -> str:
    """Build a canonical cache key for a url.

    Query parameters are sorted, so their order in the url does not matter.
    When ``allowed_query_params`` is given, any parameter not listed is dropped.
    The variant identifier, if any, is appended to the key.

    Args:
        url: Path with optional query string (a full url is accepted too)
        allowed_query_params: Parameters that partition the cache, None keeps all
        variant: The variant the page is rendered for

    Returns:
        The cache key
    """
    parts = urlsplit(url)
    params = parse_qsl(parts.query, keep_blank_values=True)
    if allowed_query_params is not None:
        allowed = set(allowed_query_params)
        params = [(name, value) for name, value in params if name in allowed]

    query = urlencode(sorted(params))
    cache_key = f"{parts.path or '/'}?{query}" if query else parts.path or "/"

    if variant is not None:
        cache_key += VARIANT_KEY_TEMPLATE.format(identifier=variant.identifier)
    return cache_key
