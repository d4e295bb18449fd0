"""Wire models of the invalidation endpoint."""

from typing import Literal

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field


class InvalidatePayload(BaseModel):
    """Body of an invalidation request."""

    model_config = ConfigDict(populate_by_name=True)

    token: str | None = Field(default=None, description="Invalidation secret token")
    urls_to_invalidate: list[str] = Field(
        default_factory=list,
        alias="urlsToInvalidate",
        description="Urls to regenerate, every variant included",
    )


class InvalidationReport(BaseModel):
    """Outcome of an invalidation request, keyed by cache key."""

    model_config = ConfigDict(populate_by_name=True)

    status: Literal["success"] = "success"
    not_in_cache: list[str] = Field(default_factory=list, alias="notInCache")
    url_with_errors: dict[str, list[str]] = Field(
        default_factory=dict, alias="urlWithErrors"
    )
    invalidated_urls: list[str] = Field(default_factory=list, alias="invalidatedUrls")


class InvalidationErrorResponse(BaseModel):
    status: Literal["error"] = "error"
    message: str
