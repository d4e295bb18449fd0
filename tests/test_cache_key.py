"""Tests for cache key generation."""

from fastapi_isr.cache_key import default_cache_key_generator
from fastapi_isr.cache_key import get_request_url
from fastapi_isr.types import RenderVariant

mobile = RenderVariant(identifier="mobile", detect_variant=lambda req: True)
desktop = RenderVariant(identifier="desktop", detect_variant=lambda req: True)


class TestDefaultCacheKeyGenerator:
    def test_same_inputs_give_same_key(self):
        key1 = default_cache_key_generator("/posts?page=1", ["page"], mobile)
        key2 = default_cache_key_generator("/posts?page=1", ["page"], mobile)
        assert key1 == key2

    def test_query_param_order_does_not_matter(self):
        key1 = default_cache_key_generator("/search?q=a&page=2", None, None)
        key2 = default_cache_key_generator("/search?page=2&q=a", None, None)
        assert key1 == key2 == "/search?page=2&q=a"

    def test_params_not_allowed_are_dropped(self):
        key = default_cache_key_generator(
            "/posts?page=2&utm_source=mail&sort=asc", ["page", "sort"], None
        )
        assert key == "/posts?page=2&sort=asc"

    def test_empty_allow_list_drops_every_param(self):
        assert default_cache_key_generator("/posts?page=2", [], None) == "/posts"

    def test_none_allow_list_keeps_every_param(self):
        key = default_cache_key_generator("/posts?utm_source=mail", None, None)
        assert key == "/posts?utm_source=mail"

    def test_variants_give_distinct_keys(self):
        default_key = default_cache_key_generator("/home", None, None)
        mobile_key = default_cache_key_generator("/home", None, mobile)
        desktop_key = default_cache_key_generator("/home", None, desktop)

        assert len({default_key, mobile_key, desktop_key}) == 3
        assert mobile_key == "/home<variantId:mobile>"

    def test_full_url_uses_path_and_query_only(self):
        key = default_cache_key_generator("http://example.com/a?x=1", None, None)
        assert key == "/a?x=1"

    def test_empty_path_is_root(self):
        assert default_cache_key_generator("?page=1", ["page"], None) == "/?page=1"


def test_get_request_url(make_request):
    assert get_request_url(make_request("/posts?page=2")) == "/posts?page=2"
    assert get_request_url(make_request("/posts")) == "/posts"
