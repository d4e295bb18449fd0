class ISRError(Exception):
    """Base class for all exceptions in FastAPI-ISR."""


class ISRTimeoutError(ISRError, TimeoutError):
    """Exception raised when a renderer or store call exceeds its deadline."""


class RenderError(ISRError):
    """Exception raised when the renderer fails to produce markup."""

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or [message]


class StoreError(ISRError):
    """Exception raised for cache backend read/write failures."""


class CacheKeyNotFoundError(StoreError, KeyError):
    """Exception raised when a cache key is not present in the backend."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class BackendNotInstalledError(ISRError):
    """Exception raised when an optional backend dependency is missing."""


class InvalidationError(ISRError):
    """Base class for errors that terminate an invalidation request."""


class AuthorizationError(InvalidationError):
    """Exception raised when the invalidation secret token does not match."""


class InvalidationPayloadError(InvalidationError):
    """Exception raised when the invalidation payload is empty or malformed."""
