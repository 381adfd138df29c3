"""Blog post endpoints."""

from fastapi import APIRouter, Depends, Path, Query

from blogify.models.envelope import Envelope, PostListEnvelope
from blogify.models.post import (
    BlogPost,
    BulkDeleteRequest,
    PostCreate,
    PostDetail,
    PostStatus,
    PostUpdate,
)
from blogify.models.user import TokenClaims
from blogify.services import posts
from blogify.services.auth import optional_user, require_user

router = APIRouter(prefix="/blogs", tags=["blogs"])


@router.get("", response_model=PostListEnvelope)
async def list_posts(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    tag: str | None = Query(default=None, max_length=50),
    search: str | None = Query(default=None, max_length=200),
    sort_by: str = Query(default="createdAt", alias="sortBy"),
    sort_order: str = Query(default="desc", alias="sortOrder", pattern="^(asc|desc)$"),
):
    """Published posts with pagination, tag filter and search."""
    result = await posts.list_published(
        page=page,
        limit=limit,
        tag=tag,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return PostListEnvelope(
        message="Blogs retrieved successfully",
        data=result.posts,
        pagination=result.pagination,
    )


# Fixed paths are declared before /{post_id} so they are not captured by it.
@router.get("/mine", response_model=Envelope[list[BlogPost]])
async def list_my_posts(
    status: PostStatus | None = Query(default=None),
    claims: TokenClaims = Depends(require_user),
):
    """The caller's drafts and published posts."""
    result = await posts.list_user_posts(claims.user_id, status)
    return Envelope(message="Blogs retrieved successfully", data=result)


@router.post("/bulk-delete", response_model=Envelope[dict])
async def bulk_delete_posts(
    body: BulkDeleteRequest, claims: TokenClaims = Depends(require_user)
):
    deleted = await posts.bulk_delete(claims, body.ids)
    return Envelope(message="Blogs deleted successfully", data={"deleted": deleted})


@router.get("/{post_id}", response_model=Envelope[PostDetail])
async def get_post(
    post_id: str = Path(..., pattern=r"^[a-zA-Z0-9_-]+$", max_length=200),
    claims: TokenClaims | None = Depends(optional_user),
):
    """One post plus related posts. Counts a view for published posts."""
    detail = await posts.get_post(post_id, claims)
    return Envelope(message="Blog retrieved successfully", data=detail)


@router.post("", response_model=Envelope[BlogPost], status_code=201)
async def create_post(body: PostCreate, claims: TokenClaims = Depends(require_user)):
    post = await posts.create_post(claims, body)
    return Envelope(message="Blog created successfully", status_code=201, data=post)


@router.put("/{post_id}", response_model=Envelope[BlogPost])
async def update_post(
    body: PostUpdate,
    post_id: str = Path(..., pattern=r"^[a-zA-Z0-9_-]+$", max_length=200),
    claims: TokenClaims = Depends(require_user),
):
    post = await posts.update_post(claims, post_id, body)
    return Envelope(message="Blog updated successfully", data=post)


@router.delete("/{post_id}", response_model=Envelope[dict])
async def delete_post(
    post_id: str = Path(..., pattern=r"^[a-zA-Z0-9_-]+$", max_length=200),
    claims: TokenClaims = Depends(require_user),
):
    deleted_id = await posts.delete_post(claims, post_id)
    return Envelope(message="Blog deleted successfully", data={"id": deleted_id})
