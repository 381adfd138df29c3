"""Standard response envelope.

Every endpoint answers ``{success, message, statusCode, data?, errors?}``.
"""

from typing import Any, Generic, TypeVar

from blogify.models.base import CamelModel
from blogify.models.post import BlogPost, Pagination

T = TypeVar("T")


class Envelope(CamelModel, Generic[T]):
    success: bool = True
    message: str = "Operation successful"
    status_code: int = 200
    data: T | None = None


class PostListEnvelope(Envelope[list[BlogPost]]):
    pagination: Pagination


class ErrorEnvelope(CamelModel):
    success: bool = False
    message: str = "An error occurred"
    status_code: int = 500
    errors: Any = None
    meta: dict[str, Any] | None = None
