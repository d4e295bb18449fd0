"""Invalidation and monitoring routes."""

from fastapi import APIRouter
from fastapi import FastAPI
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.status import HTTP_400_BAD_REQUEST
from starlette.status import HTTP_401_UNAUTHORIZED

from .exceptions import AuthorizationError
from .exceptions import InvalidationError
from .handler import ISRHandler
from .models import InvalidatePayload
from .models import InvalidationErrorResponse


def _error_response(error: InvalidationError) -> JSONResponse:
    status_code = (
        HTTP_401_UNAUTHORIZED
        if isinstance(error, AuthorizationError)
        else HTTP_400_BAD_REQUEST
    )
    return JSONResponse(
        InvalidationErrorResponse(message=str(error)).model_dump(),
        status_code=status_code,
    )


def add_routes(app: FastAPI, handler: ISRHandler, prefix: str = "/api") -> None:
    """Mount the ISR routes on an application.

    - ``POST {prefix}/invalidate``: regenerate urls, body ``{token, urlsToInvalidate}``
    - ``GET {prefix}/cached-keys?token=...``: list every cached key
    """
    router = APIRouter(prefix=prefix, tags=["isr"])

    @router.post("/invalidate")
    async def invalidate(request: Request, payload: InvalidatePayload) -> JSONResponse:
        try:
            report = await handler.invalidate(request, payload)
        except InvalidationError as e:
            return _error_response(e)
        return JSONResponse(report.model_dump(by_alias=True))

    @router.get("/cached-keys")
    async def cached_keys(token: str | None = None) -> JSONResponse:
        try:
            handler.authorize(token)
        except InvalidationError as e:
            return _error_response(e)
        keys = sorted(await handler.cache.get_all_keys())
        return JSONResponse({"cached_keys": keys, "total": len(keys)})

    app.include_router(router)
