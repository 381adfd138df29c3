"""Post content helpers: HTML text extraction, tags, slugs."""

import html
import math
import re

_TAG_RE = re.compile(r"<[^>]*>")
_WHITESPACE_RE = re.compile(r"\s{2,}")
_SLUG_STRIP_RE = re.compile(r"[^a-z0-9]+")

# An editor body that is nothing but empty paragraphs / line breaks,
# e.g. "<p></p>" or "<p><br></p><p> </p>".
_EMPTY_BODY_RE = re.compile(
    r"^(?:\s|&nbsp;|<p>(?:\s|&nbsp;|<br\s*/?>)*</p>|<br\s*/?>)*$",
    re.IGNORECASE,
)

WORDS_PER_MINUTE = 200


def strip_html(content: str) -> str:
    """Return the plain text of an HTML fragment."""
    text = _TAG_RE.sub(" ", content)
    text = html.unescape(text)
    return _WHITESPACE_RE.sub(" ", text).strip()


def truncate_text(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."


def is_blank_html(content: str | None) -> bool:
    """True when an editor body carries no real content."""
    if not content or not content.strip():
        return True
    return bool(_EMPTY_BODY_RE.match(content.strip()))


def normalize_tag(tag: str) -> str:
    return tag.strip().lower()


def dedupe_tags(tags: list[str]) -> list[str]:
    """Drop blank and repeated tags, keeping first-seen order."""
    seen: set[str] = set()
    result: list[str] = []
    for tag in tags:
        tag = tag.strip()
        if tag and tag not in seen:
            seen.add(tag)
            result.append(tag)
    return result


def normalize_tags(tags: list[str]) -> list[str]:
    """Lower-case and de-duplicate tags the way the authoring UI does."""
    return dedupe_tags([normalize_tag(t) for t in tags])


def slugify(title: str) -> str:
    """URL slug for a title: lower-case alphanumerics joined by hyphens."""
    return _SLUG_STRIP_RE.sub("-", title.lower()).strip("-")


def estimate_read_time(content: str) -> int:
    """Estimated reading time, at least one minute."""
    words = len(strip_html(content).split())
    return max(1, math.ceil(words / WORDS_PER_MINUTE))
