"""Error taxonomy shared by services and the HTTP layer.

Services raise these; ``blogify.main`` turns them into the standard
response envelope with the matching status code.
"""

from typing import Any


class BlogifyError(Exception):
    """Base class for errors that map onto an HTTP status code."""

    status_code: int = 500
    message: str = "Internal Server Error"

    def __init__(self, message: str | None = None, errors: Any = None) -> None:
        self.message = message or self.message
        self.errors = errors
        super().__init__(self.message)


class ValidationError(BlogifyError):
    """Malformed input or a missing required field."""

    status_code = 400
    message = "Validation Error"


class AuthError(BlogifyError):
    """Missing, expired or invalid credentials."""

    status_code = 401
    message = "Unauthorized"


class OwnershipError(BlogifyError):
    """Acting on another user's resource."""

    status_code = 403
    message = "You do not have permission to modify this resource"


class NotFoundError(BlogifyError):
    status_code = 404
    message = "Resource not found"


class ConflictError(BlogifyError):
    """Duplicate unique field or a stale write."""

    status_code = 409
    message = "Conflict"


class UnexpectedError(BlogifyError):
    status_code = 500
    message = "Internal Server Error"
