import pytest
from pydantic import ValidationError

from fastapi_isr.config import ISRConfig
from fastapi_isr.types import RenderVariant


def test_defaults():
    config = ISRConfig()
    assert config.skip_caching_on_http_error is True
    assert config.background_revalidation is False
    assert config.non_blocking_render is False
    assert config.cache_timeout_ms == 5000
    assert config.rendering_timeout_ms == 10000
    assert config.build_id is None
    assert config.invalidate_secret_token is None
    assert config.compress_html is False
    assert config.variants == []


def test_variants_and_callables_are_accepted():
    variant = RenderVariant(identifier="mobile", detect_variant=lambda req: False)

    def key_generator(url, params, variant):
        return url

    config = ISRConfig(variants=[variant], cache_key_generator=key_generator)
    assert config.variants[0].identifier == "mobile"
    assert config.cache_key_generator is key_generator


@pytest.mark.parametrize("field", ["cache_timeout_ms", "rendering_timeout_ms"])
def test_timeouts_must_be_positive(field):
    with pytest.raises(ValidationError):
        ISRConfig(**{field: 0})


def test_unknown_compression_method_is_rejected():
    with pytest.raises(ValidationError):
        ISRConfig(compress_html=True, html_compression_method="br")
