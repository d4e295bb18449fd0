"""Tests for variant detection and rebuild planning."""

from fastapi_isr.cache_key import default_cache_key_generator
from fastapi_isr.types import RenderVariant
from fastapi_isr.variants import default_request_simulator
from fastapi_isr.variants import get_variant
from fastapi_isr.variants import get_variant_urls_to_invalidate
from fastapi_isr.variants import with_headers
from fastapi_isr.variants import with_url


def _is_mobile(request):
    return "Mobile" in request.headers.get("user-agent", "")


def _simulate_mobile(request):
    return with_headers(request, {"user-agent": "Mobile"})


mobile = RenderVariant(
    identifier="mobile", detect_variant=_is_mobile, simulate_variant=_simulate_mobile
)
dark = RenderVariant(
    identifier="dark",
    detect_variant=lambda req: req.cookies.get("theme") == "dark",
)


def _cache_key(url, variant):
    return default_cache_key_generator(url, None, variant)


def test_get_variant_returns_first_match(make_request):
    request = make_request("/", {"user-agent": "Mobile", "cookie": "theme=dark"})
    assert get_variant(request, [dark, mobile]) is dark
    assert get_variant(request, [mobile, dark]) is mobile


def test_get_variant_without_match(make_request):
    assert get_variant(make_request("/"), [mobile, dark]) is None
    assert get_variant(make_request("/"), None) is None


def test_expand_yields_default_then_variants():
    items = get_variant_urls_to_invalidate(["/a", "/b"], [mobile, dark], _cache_key)

    assert len(items) == 6
    assert [item.cache_key for item in items] == [
        "/a",
        "/a<variantId:mobile>",
        "/a<variantId:dark>",
        "/b",
        "/b<variantId:mobile>",
        "/b<variantId:dark>",
    ]
    assert [item.url for item in items] == ["/a"] * 3 + ["/b"] * 3


def test_expand_assigns_simulators():
    items = get_variant_urls_to_invalidate(["/a"], [mobile, dark], _cache_key)

    assert items[0].req_simulator is default_request_simulator
    assert items[1].req_simulator is _simulate_mobile
    # No simulate_variant configured
    assert items[2].req_simulator is default_request_simulator


def test_expand_without_variants():
    items = get_variant_urls_to_invalidate(["/a"], None, _cache_key)
    assert [item.cache_key for item in items] == ["/a"]


def test_with_url_changes_path_and_query(make_request):
    request = make_request("/old?x=1", {"user-agent": "Bot"})
    moved = with_url(request, "/new?page=2")

    assert moved.url.path == "/new"
    assert moved.url.query == "page=2"
    assert moved.headers["user-agent"] == "Bot"
    assert request.url.path == "/old"


def test_with_headers_replaces_existing_header(make_request):
    request = make_request("/", {"User-Agent": "Desktop", "accept": "text/html"})
    simulated = with_headers(request, {"User-Agent": "Mobile"})

    assert simulated.headers.getlist("user-agent") == ["Mobile"]
    assert simulated.headers["accept"] == "text/html"
    assert _is_mobile(simulated)
    assert not _is_mobile(request)
