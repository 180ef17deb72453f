"""
blog/validation.py -- Payload checks for posts and comments.

Same contract as auth/validation.py: collect every violation, raise one
ValidationError carrying them all, never touch the store.
"""

from __future__ import annotations

from collections.abc import Mapping

from blog.models import Blog
from core.errors import ValidationError

MIN_TITLE = 5
MIN_CONTENT = 100
MAX_DES = 200
MAX_TAGS = 10
MAX_COMMENT = 500


def parse_blog(data: Mapping, author_id: int) -> Blog:
    """Validate a create-blog payload and build an unsaved Blog."""
    errors: list[str] = []
    title = data.get("title")
    content = data.get("content")
    des = data.get("des") or ""
    tags = data.get("tags") or []

    if not isinstance(title, str) or len(title.strip()) < MIN_TITLE:
        errors.append("Title must be at least 5 characters long")
    if not isinstance(content, str) or len(content.strip()) < MIN_CONTENT:
        errors.append("Content must be at least 100 characters long")
    if not isinstance(des, str) or len(des) > MAX_DES:
        errors.append("Description cannot be longer than 200 characters")
    if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
        errors.append("Tags must be an array")
    elif len(tags) > MAX_TAGS:
        errors.append("A blog can have at most 10 tags")

    if errors:
        raise ValidationError("Validation failed", errors)

    return Blog(
        title=title.strip(),
        content=content,
        author_id=author_id,
        des=des,
        banner=data.get("banner") or "",
        tags=[t.strip().lower() for t in tags if t.strip()],
        draft=bool(data.get("draft", False)),
    )


def parse_comment(data: Mapping) -> str:
    """Return the trimmed comment text or raise ValidationError."""
    content = data.get("content")
    if not isinstance(content, str) or not content.strip():
        raise ValidationError("Comment content is required")
    if len(content) > MAX_COMMENT:
        raise ValidationError("Comment must not exceed 500 characters")
    return content.strip()
