"""Tests for post content helpers — pure logic, no mocks needed."""

from datetime import datetime, timezone

import pytest

from blogify.errors import ConflictError
from blogify.models.post import BlogPost, Pagination, PostPatch, PostStatus
from blogify.services.content import (
    dedupe_tags,
    estimate_read_time,
    is_blank_html,
    normalize_tags,
    slugify,
    strip_html,
    truncate_text,
)


@pytest.mark.parametrize(
    "content",
    ["", "   ", "<p></p>", "<p><br></p>", "<p> </p><p>&nbsp;</p>", "<P><BR/></P>"],
)
def test_blank_bodies(content):
    assert is_blank_html(content)


@pytest.mark.parametrize("content", ["<p>Hi</p>", "plain text", "<img src='x.png'>"])
def test_non_blank_bodies(content):
    assert not is_blank_html(content)


def test_strip_html_and_truncate():
    text = strip_html("<h1>Title</h1><p>Tom &amp; Jerry</p>")
    assert text == "Title Tom & Jerry"
    assert truncate_text("abcdef", 3) == "abc..."
    assert truncate_text("abc", 3) == "abc"


def test_tag_helpers():
    assert dedupe_tags([" a", "b", "a", "", "B"]) == ["a", "b", "B"]
    assert normalize_tags([" a", "b", "A", "", "B"]) == ["a", "b"]


def test_slugify():
    assert slugify("Getting Started with React Hooks!") == "getting-started-with-react-hooks"
    assert slugify("  --  ") == ""


def test_read_time():
    assert estimate_read_time("") == 1
    assert estimate_read_time("<p>" + "word " * 401 + "</p>") == 3


def _post(**kwargs) -> BlogPost:
    now = datetime(2026, 2, 20, tzinfo=timezone.utc)
    defaults = dict(
        id="p1",
        title="Original",
        content="<p>Body</p>",
        tags=["a"],
        status=PostStatus.DRAFT,
        author_id="user-1",
        created_at=now,
        updated_at=now,
    )
    defaults.update(kwargs)
    return BlogPost(**defaults)


class TestBlogPost:
    def test_serialises_camel_case_with_derived_fields(self):
        data = _post(title="Hello World").model_dump(mode="json", by_alias=True)
        assert data["authorId"] == "user-1"
        assert data["slug"] == "hello-world"
        assert data["excerpt"] == "Body"
        assert data["readTimeMinutes"] == 1

    def test_document_excludes_derived_fields(self):
        doc = _post().to_document()
        assert "slug" not in doc
        assert doc["createdAt"].year == 2026

    def test_apply_patch_fallbacks(self):
        post = _post()
        later = datetime(2026, 2, 21, tzinfo=timezone.utc)
        merged = post.apply_patch(
            PostPatch(title="", content=None, tags=None, author_id="intruder"),
            PostStatus.PUBLISHED,
            later,
        )
        assert merged.title == "Original"
        assert merged.content == "<p>Body</p>"
        assert merged.tags == ["a"]
        assert merged.author_id == "user-1"
        assert merged.status == PostStatus.PUBLISHED
        assert merged.updated_at == later
        assert merged.created_at == post.created_at
        assert merged.version == 2

    def test_apply_patch_empty_tag_list_clears_tags(self):
        merged = _post().apply_patch(
            PostPatch(tags=[]), PostStatus.DRAFT, datetime(2026, 2, 21, tzinfo=timezone.utc)
        )
        assert merged.tags == []
        assert merged.title == "Original"

    def test_check_version(self):
        post = _post(version=3)
        post.check_version(None)
        post.check_version(3)
        with pytest.raises(ConflictError):
            post.check_version(2)

    def test_tags_deduped_on_construction(self):
        assert _post(tags=["x", "x", " y "]).tags == ["x", "y"]


def test_pagination():
    p = Pagination.build(page=2, limit=10, total=25)
    assert p.total_pages == 3
    assert p.has_next and p.has_prev
    assert not Pagination.build(page=1, limit=10, total=0).has_next
