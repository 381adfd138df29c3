"""Server-side post operations behind the ``/blogs`` endpoints.

Works on the ``posts`` collection the draft/publish store writes to, and
reuses the same merge rule for partial updates.
"""

import logging
import re
from datetime import datetime, timezone

from blogify.errors import NotFoundError, OwnershipError, ValidationError
from blogify.models.post import (
    BlogPost,
    Pagination,
    PostCreate,
    PostDetail,
    PostPage,
    PostPatch,
    PostStatus,
    PostUpdate,
)
from blogify.models.user import TokenClaims
from blogify.services.content import is_blank_html
from blogify.services.gateway import POSTS, get_gateway
from blogify.services.store import DEFAULT_AUTHOR_NAME, DEFAULT_DRAFT_TITLE, new_post_id
from blogify.services.users import get_user

logger = logging.getLogger(__name__)

SORT_FIELDS = ("createdAt", "updatedAt", "views", "title")
RELATED_LIMIT = 3


def _ensure_publishable(title: str, content: str) -> None:
    errors = {}
    if not title or not title.strip():
        errors["title"] = "Title is required to publish"
    if is_blank_html(content):
        errors["content"] = "Content is required to publish"
    if errors:
        raise ValidationError("Post cannot be published", errors=errors)


def _ci_exact(value: str) -> dict:
    return {"$regex": f"^{re.escape(value)}$", "$options": "i"}


def _ci_contains(value: str) -> dict:
    return {"$regex": re.escape(value), "$options": "i"}


async def list_published(
    page: int = 1,
    limit: int = 10,
    tag: str | None = None,
    search: str | None = None,
    sort_by: str = "createdAt",
    sort_order: str = "desc",
) -> PostPage:
    """Published posts, filtered and paginated."""
    if sort_by not in SORT_FIELDS:
        raise ValidationError(
            f"Cannot sort by {sort_by!r}", errors={"sortBy": f"one of {', '.join(SORT_FIELDS)}"}
        )

    query: dict = {"status": PostStatus.PUBLISHED.value}
    if tag and tag.strip():
        query["tags"] = _ci_exact(tag.strip())
    if search and search.strip():
        term = _ci_contains(search.strip())
        query["$or"] = [{"title": term}, {"content": term}, {"tags": term}]

    gateway = get_gateway()
    total = await gateway.count_documents(POSTS, query)
    docs = await gateway.find(
        POSTS,
        query,
        sort=[(sort_by, -1 if sort_order == "desc" else 1)],
        skip=(page - 1) * limit,
        limit=limit,
    )
    return PostPage(
        posts=[BlogPost.model_validate(d) for d in docs],
        pagination=Pagination.build(page, limit, total),
    )


async def _related_posts(post: BlogPost) -> list[BlogPost]:
    if not post.tags:
        return []
    docs = await get_gateway().find(
        POSTS,
        {
            "status": PostStatus.PUBLISHED.value,
            "id": {"$ne": post.id},
            "tags": {"$in": post.tags},
        },
        sort=[("views", -1)],
        limit=RELATED_LIMIT,
    )
    return [BlogPost.model_validate(d) for d in docs]


async def get_post(post_id: str, viewer: TokenClaims | None = None) -> PostDetail:
    """One post plus related posts. Each public read counts as a view.

    Drafts are only visible to their author and do not count views.
    """
    gateway = get_gateway()
    doc = await gateway.find_one(POSTS, {"id": post_id})
    if doc is None:
        raise NotFoundError("Blog post not found")

    post = BlogPost.model_validate(doc)
    if post.status == PostStatus.DRAFT:
        if viewer is None or viewer.user_id != post.author_id:
            raise NotFoundError("Blog post not found")
        return PostDetail(post=post)

    updated = await gateway.update_one(POSTS, {"id": post_id}, {"$inc": {"views": 1}})
    if updated is None:
        # Deleted between the read and the increment
        raise NotFoundError("Blog post not found")
    post = BlogPost.model_validate(updated)
    return PostDetail(post=post, related_posts=await _related_posts(post))


async def _load_owned(viewer: TokenClaims, post_id: str) -> BlogPost:
    doc = await get_gateway().find_one(POSTS, {"id": post_id})
    if doc is None:
        raise NotFoundError("Blog post not found")
    post = BlogPost.model_validate(doc)
    if post.author_id != viewer.user_id:
        raise OwnershipError()
    return post


async def create_post(viewer: TokenClaims, body: PostCreate) -> BlogPost:
    if body.status == PostStatus.PUBLISHED:
        _ensure_publishable(body.title, body.content)

    user = await get_user(viewer.user_id)
    now = datetime.now(timezone.utc)
    post = BlogPost(
        id=new_post_id("blog" if body.status == PostStatus.PUBLISHED else "draft"),
        title=body.title.strip() or DEFAULT_DRAFT_TITLE,
        content=body.content,
        tags=body.tags,
        status=body.status,
        author_id=viewer.user_id,
        author_name=user.name if user else DEFAULT_AUTHOR_NAME,
        created_at=now,
        updated_at=now,
    )
    await get_gateway().create(POSTS, post.to_document())
    logger.info("User %s created %s post %s", viewer.user_id, post.status.value, post.id)
    return post


async def update_post(viewer: TokenClaims, post_id: str, body: PostUpdate) -> BlogPost:
    """Owner-only partial update; may promote a draft to published."""
    post = await _load_owned(viewer, post_id)
    post.check_version(body.expected_version)
    if post.status == PostStatus.PUBLISHED and body.status == PostStatus.DRAFT:
        raise ValidationError(
            "Published posts cannot be moved back to draft",
            errors={"status": "cannot unpublish"},
        )

    patch = PostPatch(title=body.title, content=body.content, tags=body.tags)
    updated = post.apply_patch(
        patch, body.status or post.status, datetime.now(timezone.utc)
    )
    if updated.status == PostStatus.PUBLISHED:
        _ensure_publishable(updated.title, updated.content)

    doc = await get_gateway().update_one(
        POSTS, {"id": post_id}, {"$set": updated.to_document()}
    )
    if doc is None:
        raise NotFoundError("Blog post not found")
    if post.status != updated.status:
        logger.info("Post %s moved %s -> %s", post_id, post.status.value, updated.status.value)
    return BlogPost.model_validate(doc)


async def delete_post(viewer: TokenClaims, post_id: str) -> str:
    await _load_owned(viewer, post_id)
    await get_gateway().delete_one(POSTS, {"id": post_id})
    logger.info("User %s deleted post %s", viewer.user_id, post_id)
    return post_id


async def bulk_delete(viewer: TokenClaims, post_ids: list[str]) -> int:
    """Delete the caller's posts among *post_ids*; other ids are ignored."""
    deleted = await get_gateway().delete_many(
        POSTS, {"id": {"$in": list(dict.fromkeys(post_ids))}, "authorId": viewer.user_id}
    )
    logger.info("User %s bulk-deleted %d post(s)", viewer.user_id, deleted)
    return deleted


async def list_user_posts(
    user_id: str, status: PostStatus | None = None
) -> list[BlogPost]:
    """The user's own posts, most recently updated first."""
    query: dict = {"authorId": user_id}
    if status is not None:
        query["status"] = status.value
    docs = await get_gateway().find(POSTS, query, sort=[("updatedAt", -1)])
    return [BlogPost.model_validate(d) for d in docs]
