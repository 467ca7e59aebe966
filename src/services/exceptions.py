"""Shared exceptions for public API service operations."""


class PublicApiError(Exception):
    """
    Base exception for errors reported to public API callers.

    Each subclass carries a stable `kind` that is returned in error bodies so
    clients can branch without parsing messages.
    """

    kind = "error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class UnauthorizedError(PublicApiError):
    """Raised when the bearer token is missing, unknown, or expired."""

    kind = "unauthorized"

    def __init__(self, message: str = "Invalid or expired token") -> None:
        super().__init__(message)


class NotFoundError(PublicApiError):
    """Raised when a table or item does not exist."""

    kind = "not_found"

    def __init__(self, resource: str, resource_id: str) -> None:
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(f"{resource.title()} '{resource_id}' not found")


class ForbiddenError(PublicApiError):
    """Raised when a table exists but the token may not read it, or its type is not exposed."""

    kind = "forbidden"


class InvalidArgumentError(PublicApiError):
    """Raised when a required parameter is missing or out of range."""

    kind = "invalid_argument"


class UpstreamFailureError(PublicApiError):
    """Raised when a collaborating service (e.g. the write service) fails."""

    kind = "upstream_failure"
