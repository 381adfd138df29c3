"""Editor controller. Turns keystrokes into draft saves and publishes.

One controller backs one open editor. Title edits are saved after a short
debounce, body and tag edits after a longer one, and a fixed-interval
autosave picks up anything the debouncers missed. Saves are serialised:
at most one store write is in flight per controller.

Outcomes that a UI would toast are delivered as ``Notification`` objects
through the optional ``notify`` callback and kept on ``notifications``.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from blogify.config import get_settings
from blogify.models.post import BlogPost, PostPatch, PostStatus
from blogify.services.content import is_blank_html, normalize_tag, normalize_tags
from blogify.services.debounce import Debouncer, PeriodicTimer
from blogify.services.store import BlogStore

logger = logging.getLogger(__name__)


class EditorState(str, Enum):
    IDLE = "idle"
    DIRTY = "dirty"
    SAVING = "saving"
    SAVED = "saved"
    PUBLISHING = "publishing"
    PUBLISH_ERROR = "publish_error"


@dataclass
class Notification:
    title: str
    description: str
    variant: str = "default"


class EditorController:
    def __init__(
        self,
        store: BlogStore,
        *,
        author_id: str,
        author_name: str = "Anonymous",
        post_id: str | None = None,
        title: str = "",
        content: str = "",
        tags: list[str] | None = None,
        version: int | None = None,
        published: bool = False,
        title_debounce: float | None = None,
        content_debounce: float | None = None,
        autosave_interval: float | None = None,
        notify: Callable[[Notification], None] | None = None,
    ) -> None:
        settings = get_settings()
        self._store = store
        self.author_id = author_id
        self.author_name = author_name
        self.post_id = post_id
        self.version = version
        # Published posts are only written back through publish()
        self.published = published
        self.title = title
        self.content = content
        self.tags = normalize_tags(tags or [])
        self.last_saved: datetime | None = None
        self.state = EditorState.IDLE
        self.notifications: list[Notification] = []
        self._notify_callback = notify

        # Edit counters: an edit bumps _edit_seq; a save records the
        # sequence it captured so later edits keep the editor dirty.
        self._edit_seq = 0
        self._saved_seq = 0
        self._save_lock = asyncio.Lock()
        self._publishing = False

        self._title_debouncer = Debouncer(
            settings.editor_title_debounce if title_debounce is None else title_debounce,
            self._autosave,
        )
        self._content_debouncer = Debouncer(
            settings.editor_content_debounce if content_debounce is None else content_debounce,
            self._autosave,
        )
        self._interval = PeriodicTimer(
            settings.editor_autosave_interval if autosave_interval is None else autosave_interval,
            self._interval_autosave,
        )

    @classmethod
    def for_post(cls, store: BlogStore, post: BlogPost, **kwargs) -> "EditorController":
        """Open an existing post for editing.

        A published post is never saved as a draft: autosaves skip it and a
        manual save only reports that publishing applies the changes.
        """
        return cls(
            store,
            author_id=post.author_id,
            author_name=post.author_name,
            post_id=post.id,
            title=post.title,
            content=post.content,
            tags=post.tags,
            version=post.version,
            published=post.status == PostStatus.PUBLISHED,
            **kwargs,
        )

    # ── Lifecycle ────────────────────────────────────────────────

    def start(self) -> None:
        """Begin the fixed-interval autosave. Needs a running event loop."""
        self._interval.start()

    async def close(self) -> None:
        """Cancel every pending timer. A save already running is awaited."""
        self._title_debouncer.cancel()
        self._content_debouncer.cancel()
        self._interval.stop()
        await self._title_debouncer.drain()
        await self._content_debouncer.drain()

    # ── Edits ────────────────────────────────────────────────────

    @property
    def is_dirty(self) -> bool:
        return self._edit_seq != self._saved_seq

    @property
    def has_content(self) -> bool:
        return bool(self.title.strip()) or not is_blank_html(self.content)

    def _mark_dirty(self) -> None:
        self._edit_seq += 1
        if self.state in (EditorState.IDLE, EditorState.SAVED, EditorState.PUBLISH_ERROR):
            self.state = EditorState.DIRTY

    def set_title(self, title: str) -> None:
        self.title = title
        self._mark_dirty()
        self._title_debouncer.trigger()

    def set_content(self, content: str) -> None:
        self.content = content
        self._mark_dirty()
        self._content_debouncer.trigger()

    def set_tags(self, tags: list[str]) -> None:
        self.tags = normalize_tags(tags)
        self._mark_dirty()
        self._content_debouncer.trigger()

    def add_tag(self, tag: str) -> bool:
        """Add a tag; returns False when it is blank or already present."""
        tag = normalize_tag(tag)
        if not tag or tag in self.tags:
            return False
        self.tags = [*self.tags, tag]
        self._mark_dirty()
        self._content_debouncer.trigger()
        return True

    def remove_tag(self, tag: str) -> bool:
        tag = normalize_tag(tag)
        if tag not in self.tags:
            return False
        self.tags = [t for t in self.tags if t != tag]
        self._mark_dirty()
        self._content_debouncer.trigger()
        return True

    # ── Saving ───────────────────────────────────────────────────

    def _notify(self, title: str, description: str, variant: str = "default") -> None:
        notification = Notification(title, description, variant)
        self.notifications.append(notification)
        if self._notify_callback is not None:
            self._notify_callback(notification)

    def _patch(self) -> PostPatch:
        return PostPatch(
            id=self.post_id,
            title=self.title,
            content=self.content,
            tags=list(self.tags),
            author_id=self.author_id,
            author_name=self.author_name,
            expected_version=self.version,
        )

    async def _autosave(self) -> None:
        if self.has_content and not self.published:
            await self._save(manual=False)

    async def _interval_autosave(self) -> None:
        if self.published or self._publishing:
            return
        if self.is_dirty and self.has_content:
            await self._save(manual=False)

    async def save_draft(self) -> BlogPost | None:
        """Save now, cancelling pending debounced saves."""
        self._title_debouncer.cancel()
        self._content_debouncer.cancel()
        if not self.has_content:
            self._notify(
                "Content required",
                "Please write some content for your blog post",
                "destructive",
            )
            return None
        if self.published:
            self._notify(
                "Already published",
                "Published posts are updated by publishing your changes",
            )
            return None
        return await self._save(manual=True)

    async def _save(self, *, manual: bool) -> BlogPost | None:
        async with self._save_lock:
            if self._publishing:
                return None
            seq = self._edit_seq
            if not manual and seq == self._saved_seq:
                return None

            self.state = EditorState.SAVING
            try:
                post = await self._store.save_draft(self._patch())
            except Exception as e:
                logger.warning("Draft save failed for %s: %s", self.post_id or "new post", e)
                self.state = EditorState.DIRTY
                self._notify(
                    "Failed to save",
                    "There was an error saving your draft",
                    "destructive",
                )
                return None

            self.post_id = post.id
            self.version = post.version
            self.last_saved = post.updated_at
            self._saved_seq = seq
            self.state = EditorState.SAVED if self._edit_seq == seq else EditorState.DIRTY

            if manual:
                self._notify("Draft saved", "Your blog post has been saved as a draft")
            else:
                self._notify("Draft saved", "Your changes have been automatically saved")
            return post

    # ── Publishing ───────────────────────────────────────────────

    def _validate_for_publish(self) -> tuple[str, str] | None:
        if not self.title.strip():
            return ("Title required", "Please enter a title for your blog post")
        if is_blank_html(self.content):
            return ("Content required", "Please write some content for your blog post")
        return None

    async def publish(self) -> BlogPost | None:
        """Validate, publish and reset the form. Returns None on failure."""
        problem = self._validate_for_publish()
        if problem is not None:
            self.state = EditorState.PUBLISH_ERROR
            self._notify(*problem, "destructive")
            return None

        self._title_debouncer.cancel()
        self._content_debouncer.cancel()
        async with self._save_lock:
            self._publishing = True
            self.state = EditorState.PUBLISHING
            try:
                post = await self._store.publish_blog(self._patch())
            except Exception as e:
                logger.warning("Publish failed for %s: %s", self.post_id or "new post", e)
                self.state = EditorState.PUBLISH_ERROR
                self._notify(
                    "Failed to publish",
                    "There was an error publishing your post",
                    "destructive",
                )
                return None
            finally:
                self._publishing = False

            self._reset()
            self._notify("Post published", "Your blog post has been published successfully")
            return post

    def _reset(self) -> None:
        self.title = ""
        self.content = ""
        self.tags = []
        self.post_id = None
        self.version = None
        self.last_saved = None
        self.published = False
        self._saved_seq = self._edit_seq
        self.state = EditorState.IDLE
