"""ISR handler configuration settings."""

from typing import Any
from typing import Literal

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field

from .types import CacheKeyGeneratorFn
from .types import ModifyHtmlFn
from .types import RenderVariant

DEFAULT_CACHE_TIMEOUT_MS = 5000
DEFAULT_RENDERING_TIMEOUT_MS = 10000


class ISRConfig(BaseModel):
    """ISR handler configuration settings."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    # Cache keys
    allowed_query_params: list[str] | None = Field(
        default=None,
        description="Query parameters that partition the cache (None = keep all)",
    )
    variants: list[RenderVariant] = Field(
        default_factory=list,
        description="Request variants cached separately, matched in declaration order",
    )
    cache_key_generator: CacheKeyGeneratorFn | None = Field(
        default=None,
        description="Custom cache key generator (None = default generator)",
    )

    # Revalidation
    default_revalidate: int | None = Field(
        default=None,
        description="Revalidate seconds used when a page reports none (None = don't cache)",
    )
    skip_caching_on_http_error: bool = Field(
        default=True,
        description="Whether pages that report errors are kept out of the cache",
    )
    background_revalidation: bool = Field(
        default=False,
        description="Whether stale pages are served while regenerating in the background",
    )
    non_blocking_render: bool = Field(
        default=False,
        description="Whether cache writes happen without delaying the response",
    )
    build_id: str | None = Field(
        default=None,
        description="Id of the running build; entries from other builds are never served",
    )

    # Timeouts
    cache_timeout_ms: int = Field(
        default=DEFAULT_CACHE_TIMEOUT_MS,
        gt=0,
        description="Deadline for every cache backend call, in milliseconds",
    )
    rendering_timeout_ms: int = Field(
        default=DEFAULT_RENDERING_TIMEOUT_MS,
        gt=0,
        description="Deadline for a single render, in milliseconds",
    )

    # Invalidation
    invalidate_secret_token: str | None = Field(
        default=None,
        description="Secret required by invalidation requests (None = invalidation disabled)",
    )

    # Html post-processing
    modify_generated_html: ModifyHtmlFn | None = Field(
        default=None,
        description="Transform applied to freshly rendered html (None = add ISR comment)",
    )
    compress_html: bool = Field(
        default=False,
        description="Whether pages are stored and served compressed",
    )
    html_compression_method: Literal["gzip", "deflate"] = Field(
        default="gzip",
        description="Compression algorithm, also sent as Content-Encoding",
    )

    # Renderer options
    inline_critical_css: bool = Field(
        default=True,
        description="Forwarded to the renderer",
    )
    base_path: str = Field(default="/", description="Forwarded to the renderer")
    bootstrap: Any = Field(
        default=None,
        description="Application entry point forwarded to the renderer",
    )

    # Logging
    log_level: str | None = Field(
        default=None,
        description="Level applied to the fastapi_isr logger (None = leave as is)",
    )
