"""Blog post data models."""

from datetime import datetime
from enum import Enum

from pydantic import Field, computed_field, field_validator

from blogify.errors import ConflictError
from blogify.models.base import CamelModel
from blogify.services.content import (
    dedupe_tags,
    estimate_read_time,
    slugify,
    strip_html,
    truncate_text,
)

EXCERPT_LENGTH = 160

_COMPUTED_FIELDS = {"slug", "excerpt", "read_time_minutes"}


class PostStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"


def _pick(value, fallback):
    """Return *value* unless it is missing or empty."""
    return value if value else fallback


class BlogPost(CamelModel):
    """A blog post, either a draft or published."""

    id: str
    title: str = ""
    content: str = ""
    tags: list[str] = []
    status: PostStatus
    author_id: str
    author_name: str = "Anonymous"
    created_at: datetime
    updated_at: datetime
    views: int = Field(default=0, ge=0)
    version: int = Field(default=1, ge=1)

    @field_validator("tags")
    @classmethod
    def _dedupe_tags(cls, tags: list[str]) -> list[str]:
        return dedupe_tags(tags)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def slug(self) -> str:
        return slugify(self.title)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def excerpt(self) -> str:
        return truncate_text(strip_html(self.content), EXCERPT_LENGTH)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def read_time_minutes(self) -> int:
        return estimate_read_time(self.content)

    def check_version(self, expected: int | None) -> None:
        """Reject a write that was based on an older version of this post."""
        if expected is not None and expected != self.version:
            raise ConflictError(
                f"Post {self.id} has changed since it was loaded "
                f"(expected version {expected}, found {self.version})",
                errors={"version": self.version},
            )

    def apply_patch(
        self, patch: "PostPatch", status: PostStatus, now: datetime
    ) -> "BlogPost":
        """Merge *patch* into a copy of this post.

        Empty or missing patch fields fall back to the current values, so an
        autosave carrying a blank title never wipes the stored one. Tags fall
        back only when missing; an empty list clears them. The author id and
        creation time never change.
        """
        return self.model_copy(
            update={
                "title": _pick(patch.title, self.title),
                "content": _pick(patch.content, self.content),
                "tags": (
                    dedupe_tags(patch.tags) if patch.tags is not None else self.tags
                ),
                "author_name": _pick(patch.author_name, self.author_name),
                "status": status,
                "updated_at": now,
                "version": self.version + 1,
            }
        )

    def to_document(self) -> dict:
        """Serialise for the persistence gateway (camelCase keys)."""
        return self.model_dump(by_alias=True, exclude=_COMPUTED_FIELDS)


class PostPatch(CamelModel):
    """Partial post fields sent by the editor; every field is optional."""

    id: str | None = None
    title: str | None = None
    content: str | None = None
    tags: list[str] | None = None
    author_id: str | None = None
    author_name: str | None = None
    expected_version: int | None = None


class PostCreate(CamelModel):
    """Body of ``POST /blogs``."""

    title: str = Field(default="", max_length=300)
    content: str = ""
    tags: list[str] = []
    status: PostStatus = PostStatus.DRAFT


class PostUpdate(CamelModel):
    """Body of ``PUT /blogs/{id}``."""

    title: str | None = Field(default=None, max_length=300)
    content: str | None = None
    tags: list[str] | None = None
    status: PostStatus | None = None
    expected_version: int | None = None


class BulkDeleteRequest(CamelModel):
    ids: list[str] = Field(..., min_length=1, max_length=200)


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        total_pages = (total + limit - 1) // limit if limit else 0
        return cls(
            page=page,
            limit=limit,
            total=total,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_prev=page > 1,
        )


class PostPage(CamelModel):
    posts: list[BlogPost]
    pagination: Pagination


class PostDetail(CamelModel):
    post: BlogPost
    related_posts: list[BlogPost] = []
