"""
blog/models.py -- Domain dataclasses for posts, comments and notifications.

Pure data containers. Counters and ownership rules live in blog/store.py and
the API routes respectively.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class Blog:
    """A post written by a community member.

    draft posts are only visible to their author and never listed.
    id is None before the record is written to the database.
    """

    title: str
    content: str
    author_id: int
    des: str = ""
    banner: str = ""
    tags: list[str] = field(default_factory=list)
    draft: bool = False
    total_likes: int = 0
    total_comments: int = 0
    total_reads: int = 0
    created_at: str = ""  # ISO 8601, set by store on insert
    id: Optional[int] = None


@dataclass
class Comment:
    blog_id: int
    author_id: int
    content: str
    edited: bool = False
    created_at: str = ""
    id: Optional[int] = None


@dataclass
class Notification:
    """An event on a recipient's blog: someone liked it or commented on it.

    comment_id is set only for "comment" notifications.
    """

    type: str  # "like" | "comment"
    recipient_id: int
    sender_id: int
    blog_id: int
    comment_id: Optional[int] = None
    read: bool = False
    created_at: str = ""
    id: Optional[int] = None
