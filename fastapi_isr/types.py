"""Type definitions and type aliases for FastAPI-ISR."""

import time
from collections.abc import Callable
from dataclasses import dataclass
from dataclasses import field
from enum import Enum
from typing import Literal

from fastapi import Request

# Appended to the canonical url of a page rendered for a variant
VARIANT_KEY_TEMPLATE = "<variantId:{identifier}>"

Content = str | bytes
GenerationMode = Literal["regenerate", "generate"]

ModifyHtmlFn = Callable[[Request, str, int | None], str]
ModifyCachedHtmlFn = Callable[[Request, str], str]
RequestSimulatorFn = Callable[[Request], Request]


class RevalidatePolicy(str, Enum):
    """How long a rendered page may be served from cache."""

    NEVER = "never"
    FOREVER = "forever"
    EXPIRE_AFTER = "expire_after"

    @classmethod
    def from_revalidate(cls, revalidate: int | None) -> "RevalidatePolicy":
        """Map a revalidate value (None / -1, 0, n > 0) onto a policy."""
        if revalidate is None or revalidate < 0:
            return cls.NEVER
        if revalidate == 0:
            return cls.FOREVER
        return cls.EXPIRE_AFTER


@dataclass
class CacheOptions:
    """Metadata stored next to the cached html.

    Args:
        revalidate: Seconds before the page is regenerated (0 = never, None / -1 = not cached)
        build_id: Identifier of the build that produced the page
        errors: Errors reported by the renderer
    """

    revalidate: int | None = None
    build_id: str | None = None
    errors: list[str] | None = None

    @property
    def policy(self) -> RevalidatePolicy:
        return RevalidatePolicy.from_revalidate(self.revalidate)


@dataclass
class CacheEntry:
    """A cached page.

    Args:
        content: The rendered (and possibly compressed) html
        options: Revalidate policy and build metadata
        created_at: Epoch timestamp of the write
    """

    content: Content
    options: CacheOptions = field(default_factory=CacheOptions)
    created_at: float = field(default_factory=time.time)

    def age(self, now: float | None = None) -> float:
        """Seconds elapsed since the entry was written."""
        return (time.time() if now is None else now) - self.created_at

    def is_stale(self, now: float | None = None) -> bool:
        """Whether an expiring entry has outlived its revalidate window."""
        if self.options.policy is not RevalidatePolicy.EXPIRE_AFTER:
            return False
        return self.age(now) > self.options.revalidate


@dataclass
class RenderVariant:
    """A request dimension that gets its own cache entry (locale, device, ...).

    Args:
        identifier: Unique name, embedded in the cache key
        detect_variant: Returns True when a request belongs to this variant
        simulate_variant: Turns any request into one of this variant, used for rebuilds
    """

    identifier: str
    detect_variant: Callable[[Request], bool]
    simulate_variant: RequestSimulatorFn | None = None


@dataclass
class VariantRebuildItem:
    """One cache entry to rebuild during invalidation."""

    url: str
    cache_key: str
    req_simulator: RequestSimulatorFn


@dataclass
class GeneratedResult:
    """Outcome of a render.

    Args:
        html: The final (post-processed, possibly compressed) html
        errors: Errors reported by the renderer inside the page
    """

    html: Content | None = None
    errors: list[str] | None = None


@dataclass
class RouteISRData:
    """ISR state embedded in rendered markup."""

    revalidate: int | None = None
    errors: list[str] | None = None


CacheKeyGeneratorFn = Callable[[str, list[str] | None, RenderVariant | None], str]
