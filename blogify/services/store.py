"""Draft/publish store.

Holds the author's posts in two collections, published posts and drafts,
and writes every change through to the persistence gateway.
A post id lives in at most one of the two: publishing a draft reuses its
id and removes the draft entry.

Reads are served from memory; call ``load()`` once to hydrate from the
gateway. Mutations are serialised with an asyncio lock so each
read-merge-write happens as one step.
"""

import asyncio
import logging
import time
import uuid
from collections.abc import Iterable
from datetime import datetime, timezone

from blogify.errors import ValidationError
from blogify.models.post import BlogPost, PostPatch, PostStatus
from blogify.services.gateway import POSTS, PersistenceGateway

logger = logging.getLogger(__name__)

DEFAULT_DRAFT_TITLE = "Untitled Draft"
DEFAULT_POST_TITLE = "Untitled Post"
DEFAULT_AUTHOR_NAME = "Anonymous"


def new_post_id(prefix: str) -> str:
    return f"{prefix}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:6]}"


class BlogStore:
    """Write-through cache of one process's drafts and published posts."""

    def __init__(
        self,
        gateway: PersistenceGateway,
        *,
        write_delay: float = 0.0,
        collection: str = POSTS,
    ) -> None:
        self._gateway = gateway
        self._write_delay = write_delay
        self._collection = collection
        # id -> post, insertion ordered
        self._published: dict[str, BlogPost] = {}
        self._drafts: dict[str, BlogPost] = {}
        self._lock = asyncio.Lock()

    async def load(self) -> None:
        """Replace the in-memory collections with what the gateway holds."""
        docs = await self._gateway.find(self._collection, sort=[("createdAt", 1)])
        published: dict[str, BlogPost] = {}
        drafts: dict[str, BlogPost] = {}
        for doc in docs:
            post = BlogPost.model_validate(doc)
            target = published if post.status == PostStatus.PUBLISHED else drafts
            target[post.id] = post
        self._published, self._drafts = published, drafts
        logger.info("Loaded %d published posts and %d drafts", len(published), len(drafts))

    async def _simulate_latency(self) -> None:
        if self._write_delay > 0:
            await asyncio.sleep(self._write_delay)

    async def _persist(self, post: BlogPost) -> None:
        doc = post.to_document()
        updated = await self._gateway.update_one(
            self._collection, {"id": post.id}, {"$set": doc}
        )
        if updated is None:
            await self._gateway.create(self._collection, doc)

    def _new_post(
        self, patch: PostPatch, status: PostStatus, post_id: str, title: str, now: datetime
    ) -> BlogPost:
        if not patch.author_id:
            raise ValidationError(
                "authorId is required for a new post", errors={"authorId": "required"}
            )
        return BlogPost(
            id=post_id,
            title=patch.title or title,
            content=patch.content or "",
            tags=patch.tags or [],
            status=status,
            author_id=patch.author_id,
            author_name=patch.author_name or DEFAULT_AUTHOR_NAME,
            created_at=now,
            updated_at=now,
            views=0,
            version=1,
        )

    async def save_draft(self, patch: PostPatch) -> BlogPost:
        """Create or update a draft. Missing/empty fields keep their old value."""
        async with self._lock:
            await self._simulate_latency()
            now = datetime.now(timezone.utc)
            existing = self._drafts.get(patch.id) if patch.id else None

            if existing is not None:
                existing.check_version(patch.expected_version)
                draft = existing.apply_patch(patch, PostStatus.DRAFT, now)
            else:
                if patch.id and patch.id in self._published:
                    raise ValidationError(
                        f"Post {patch.id} is already published",
                        errors={"id": "already published"},
                    )
                draft = self._new_post(
                    patch,
                    PostStatus.DRAFT,
                    patch.id or new_post_id("draft"),
                    DEFAULT_DRAFT_TITLE,
                    now,
                )

            await self._persist(draft)
            self._drafts[draft.id] = draft
            logger.debug("Saved draft %s (version %d)", draft.id, draft.version)
            return draft

    async def publish_blog(self, patch: PostPatch) -> BlogPost:
        """Publish a post, merging into the published entry or the draft.

        Every draft entry with the resulting id is removed afterwards.
        """
        async with self._lock:
            await self._simulate_latency()
            now = datetime.now(timezone.utc)
            base = None
            if patch.id:
                base = self._published.get(patch.id) or self._drafts.get(patch.id)

            if base is not None:
                base.check_version(patch.expected_version)
                post = base.apply_patch(patch, PostStatus.PUBLISHED, now)
            else:
                post = self._new_post(
                    patch,
                    PostStatus.PUBLISHED,
                    patch.id or new_post_id("blog"),
                    DEFAULT_POST_TITLE,
                    now,
                )

            await self._persist(post)
            self._published[post.id] = post
            await self._delete_drafts(post.id)
            logger.info("Published post %s by %s", post.id, post.author_id)
            return post

    async def _delete_drafts(self, post_id: str) -> None:
        self._drafts.pop(post_id, None)
        await self._gateway.delete_many(
            self._collection, {"id": post_id, "status": PostStatus.DRAFT.value}
        )

    async def delete_drafts_for_blog(self, post_id: str) -> None:
        async with self._lock:
            await self._simulate_latency()
            await self._delete_drafts(post_id)

    async def delete_blog(self, post_id: str) -> None:
        """Remove a post from both collections. Unknown ids are ignored."""
        await self.bulk_delete_blogs([post_id])

    async def bulk_delete_blogs(self, post_ids: Iterable[str]) -> None:
        ids = list(dict.fromkeys(post_ids))
        if not ids:
            return
        async with self._lock:
            await self._simulate_latency()
            await self._gateway.delete_many(self._collection, {"id": {"$in": ids}})
            for post_id in ids:
                self._published.pop(post_id, None)
                self._drafts.pop(post_id, None)
            logger.info("Deleted %d post id(s)", len(ids))

    def get_blog(self, post_id: str) -> BlogPost | None:
        """Published post first, then draft; None when unknown."""
        return self._published.get(post_id) or self._drafts.get(post_id)

    def get_all_blogs(self, status: PostStatus | str | None = None) -> list[BlogPost]:
        if status is None:
            return [*self._published.values(), *self._drafts.values()]
        if PostStatus(status) == PostStatus.PUBLISHED:
            return list(self._published.values())
        return list(self._drafts.values())

    def get_user_blogs(
        self, user_id: str, status: PostStatus | str | None = None
    ) -> list[BlogPost]:
        return [p for p in self.get_all_blogs(status) if p.author_id == user_id]
