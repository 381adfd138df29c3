"""Seed sample published posts into the configured storage backend.

Usage:
    STORAGE_BACKEND=blob python -m scripts.seed_posts

Posts that already exist (matched by id) are left alone.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone

from blogify.models.post import BlogPost, PostStatus
from blogify.services.gateway import POSTS, get_gateway

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def _days_ago(days: int) -> datetime:
    return datetime.now(timezone.utc) - timedelta(days=days)


SEED_POSTS = [
    {
        "id": "blog-1",
        "title": "Getting Started with React Hooks",
        "content": (
            "<h1>React Hooks: A New Way to Write Components</h1>"
            "<p>React Hooks were introduced in React 16.8 as a way to use state and "
            "other React features without writing a class. In this post, we'll explore "
            "the basics of useState and useEffect hooks.</p>"
            "<h2>The useState Hook</h2>"
            "<p>The useState hook lets you add state to functional components.</p>"
            "<p>This is just the beginning of what you can do with React Hooks!</p>"
        ),
        "tags": ["react", "javascript", "webdev"],
        "author_id": "user-1",
        "author_name": "Sarah Wilson",
        "created_days_ago": 5,
        "updated_days_ago": 5,
        "views": 125,
    },
    {
        "id": "blog-2",
        "title": "Building Modern UIs with Tailwind CSS",
        "content": (
            "<h1>Why I Love Tailwind CSS</h1>"
            "<p>After years of writing custom CSS and using various frameworks, I've "
            "found that Tailwind CSS provides the perfect balance between flexibility "
            "and convenience.</p>"
            "<h2>Utility-First Approach</h2>"
            "<p>Instead of pre-defined components, Tailwind gives you utility classes "
            "that you can combine to create your own designs.</p>"
        ),
        "tags": ["css", "tailwind", "frontend"],
        "author_id": "user-2",
        "author_name": "Alex Johnson",
        "created_days_ago": 10,
        "updated_days_ago": 9,
        "views": 87,
    },
    {
        "id": "blog-3",
        "title": "Mastering TypeScript for Better Code Quality",
        "content": (
            "<h1>Why TypeScript is Worth Learning</h1>"
            "<p>TypeScript has transformed how I write JavaScript applications. The "
            "static typing system helps catch errors early and provides better tooling "
            "and documentation.</p>"
            "<h2>Key Benefits</h2>"
            "<ul><li>Catch errors during development instead of runtime</li>"
            "<li>Better IDE support with intellisense</li>"
            "<li>Safer refactoring</li></ul>"
        ),
        "tags": ["typescript", "javascript", "programming"],
        "author_id": "user-3",
        "author_name": "Maya Parker",
        "created_days_ago": 3,
        "updated_days_ago": 3,
        "views": 142,
    },
]


def build_post(seed: dict) -> BlogPost:
    return BlogPost(
        id=seed["id"],
        title=seed["title"],
        content=seed["content"],
        tags=seed["tags"],
        status=PostStatus.PUBLISHED,
        author_id=seed["author_id"],
        author_name=seed["author_name"],
        created_at=_days_ago(seed["created_days_ago"]),
        updated_at=_days_ago(seed["updated_days_ago"]),
        views=seed["views"],
    )


async def seed() -> int:
    gateway = get_gateway()
    created = 0
    for entry in SEED_POSTS:
        post = build_post(entry)
        if await gateway.find_one(POSTS, {"id": post.id}):
            logger.info("Skipping %s (already exists)", post.id)
            continue
        await gateway.create(POSTS, post.to_document())
        logger.info("Seeded %s: %s", post.id, post.title)
        created += 1
    return created


def main() -> None:
    created = asyncio.run(seed())
    logger.info("Done! %d post(s) seeded", created)


if __name__ == "__main__":
    main()
