"""
blog/store.py -- SQLAlchemy Core persistence layer for posts, likes, comments
and notifications.

Pattern: Repository + Data Mapper (same as auth/store.py). BlogStore is the
repository; _row_to_blog / _row_to_comment / _row_to_notification are the
mappers.

Counters (total_likes, total_comments, total_reads) are denormalised onto the
blogs row and updated in the same transaction as the like/comment row they
count, so a listing never has to aggregate. The notification for a like or
comment is written in that same transaction, and removed again with it.
Acting on your own blog never notifies you.

UNIQUE(blog_id, user_id) on blog_likes makes a double like impossible even if
two toggles race.

Security: all queries use bound parameters. No f-strings in SQL. User text
used in LIKE patterns is escaped (autoescape=True).
"""

import json
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Column,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    func,
    or_,
    select,
)
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError

from blog.models import Blog, Comment, Notification

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_blogs = Table(
    "blogs",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String(255), nullable=False),
    Column("des", String(255), nullable=False, server_default=""),
    Column("banner", Text, nullable=False, server_default=""),
    Column("content", Text, nullable=False),
    Column("tags", Text),  # JSON array serialized as text
    Column("author_id", Integer, nullable=False, index=True),
    Column("draft", Integer, nullable=False, server_default="0"),
    Column("total_likes", Integer, nullable=False, server_default="0"),
    Column("total_comments", Integer, nullable=False, server_default="0"),
    Column("total_reads", Integer, nullable=False, server_default="0"),
    Column("created_at", String(32), nullable=False),
)

_blog_likes = Table(
    "blog_likes",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("blog_id", Integer, nullable=False),
    Column("user_id", Integer, nullable=False),
    Column("created_at", String(32), nullable=False),
    UniqueConstraint("blog_id", "user_id", name="uq_blog_likes_blog_user"),
)

_comments = Table(
    "comments",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("blog_id", Integer, nullable=False, index=True),
    Column("author_id", Integer, nullable=False),
    Column("content", Text, nullable=False),
    Column("edited", Integer, nullable=False, server_default="0"),
    Column("created_at", String(32), nullable=False),
)

_notifications = Table(
    "notifications",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("type", String(16), nullable=False),
    Column("recipient_id", Integer, nullable=False, index=True),
    Column("sender_id", Integer, nullable=False),
    Column("blog_id", Integer, nullable=False),
    Column("comment_id", Integer),
    Column("read", Integer, nullable=False, server_default="0"),
    Column("created_at", String(32), nullable=False),
)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class BlogStore:
    """Repository for Blog, Comment and Notification entities.

    Usage:
        store = BlogStore(engine)
        blog_id = store.create_blog(blog)
        blogs, total = store.list_latest(page=1, limit=10, tag="python")
        likes, liked = store.toggle_like(blog_id, user_id)
        unread = store.count_unread(user_id)
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Blogs
    # ------------------------------------------------------------------

    def create_blog(self, blog: Blog) -> int:
        """Insert a new blog and return its assigned ID. Counters start at zero."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _blogs.insert().values(
                    title=blog.title,
                    des=blog.des,
                    banner=blog.banner,
                    content=blog.content,
                    tags=json.dumps(blog.tags),
                    author_id=blog.author_id,
                    draft=1 if blog.draft else 0,
                    created_at=_now_iso(),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_blog(self, blog_id: int) -> Optional[Blog]:
        with self.engine.connect() as conn:
            row = conn.execute(_blogs.select().where(_blogs.c.id == blog_id)).fetchone()
        return _row_to_blog(row) if row is not None else None

    def record_read(self, blog_id: int) -> None:
        """Increment total_reads atomically (single UPDATE, no read-modify-write)."""
        with self.engine.connect() as conn:
            conn.execute(
                _blogs.update().where(_blogs.c.id == blog_id).values(total_reads=_blogs.c.total_reads + 1)
            )
            conn.commit()

    def list_latest(
        self,
        page: int = 1,
        limit: int = 10,
        tag: Optional[str] = None,
        search: Optional[str] = None,
        author_id: Optional[int] = None,
    ) -> tuple[list[Blog], int]:
        """Return one page of published blogs (newest first) and the total match count.

        tag matches an exact entry in the JSON tags array; search is a
        case-insensitive substring match on title and description. author_id
        restricts the page to one writer.
        """
        conditions = [_blogs.c.draft == 0]
        if tag:
            conditions.append(_blogs.c.tags.contains(json.dumps(tag.lower()), autoescape=True))
        if search:
            conditions.append(
                or_(
                    _blogs.c.title.icontains(search, autoescape=True),
                    _blogs.c.des.icontains(search, autoescape=True),
                )
            )
        if author_id is not None:
            conditions.append(_blogs.c.author_id == author_id)

        with self.engine.connect() as conn:
            total = conn.execute(select(func.count()).select_from(_blogs).where(*conditions)).scalar() or 0
            rows = conn.execute(
                _blogs.select()
                .where(*conditions)
                .order_by(_blogs.c.created_at.desc(), _blogs.c.id.desc())
                .offset((page - 1) * limit)
                .limit(limit)
            ).fetchall()
        return [_row_to_blog(r) for r in rows], total

    def get_titles(self, blog_ids: set[int]) -> dict[int, str]:
        """Return {blog_id: title} for the ids that exist."""
        if not blog_ids:
            return {}
        with self.engine.connect() as conn:
            rows = conn.execute(select(_blogs.c.id, _blogs.c.title).where(_blogs.c.id.in_(blog_ids))).fetchall()
        return {r.id: r.title for r in rows}

    # ------------------------------------------------------------------
    # Likes
    # ------------------------------------------------------------------

    def toggle_like(self, blog_id: int, user_id: int) -> tuple[int, bool]:
        """Like the blog if user_id has not, otherwise unlike it.

        Returns (total_likes, is_liked_now). Callers check the blog exists first.
        A like notifies the blog's author; an unlike withdraws that notification.
        """
        with self.engine.connect() as conn:
            existing = conn.execute(
                _blog_likes.select().where((_blog_likes.c.blog_id == blog_id) & (_blog_likes.c.user_id == user_id))
            ).fetchone()
            if existing is not None:
                conn.execute(_blog_likes.delete().where(_blog_likes.c.id == existing.id))
                conn.execute(
                    _blogs.update().where(_blogs.c.id == blog_id).values(total_likes=_blogs.c.total_likes - 1)
                )
                conn.execute(
                    _notifications.delete().where(
                        (_notifications.c.type == "like")
                        & (_notifications.c.blog_id == blog_id)
                        & (_notifications.c.sender_id == user_id)
                    )
                )
                liked = False
            else:
                try:
                    conn.execute(_blog_likes.insert().values(blog_id=blog_id, user_id=user_id, created_at=_now_iso()))
                except IntegrityError:
                    # A concurrent toggle already inserted the like; keep its state.
                    conn.rollback()
                    return self._like_count(blog_id), True
                conn.execute(
                    _blogs.update().where(_blogs.c.id == blog_id).values(total_likes=_blogs.c.total_likes + 1)
                )
                _notify(conn, "like", blog_id, sender_id=user_id)
                liked = True
            conn.commit()
        return self._like_count(blog_id), liked

    def _like_count(self, blog_id: int) -> int:
        with self.engine.connect() as conn:
            return conn.execute(select(_blogs.c.total_likes).where(_blogs.c.id == blog_id)).scalar() or 0

    def has_liked(self, blog_id: int, user_id: int) -> bool:
        with self.engine.connect() as conn:
            row = conn.execute(
                select(_blog_likes.c.id).where((_blog_likes.c.blog_id == blog_id) & (_blog_likes.c.user_id == user_id))
            ).fetchone()
        return row is not None

    # ------------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------------

    def create_comment(self, comment: Comment) -> int:
        """Insert a comment and bump the parent blog's total_comments."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _comments.insert().values(
                    blog_id=comment.blog_id,
                    author_id=comment.author_id,
                    content=comment.content,
                    edited=0,
                    created_at=_now_iso(),
                )
            )
            comment_id = result.inserted_primary_key[0]
            conn.execute(
                _blogs.update()
                .where(_blogs.c.id == comment.blog_id)
                .values(total_comments=_blogs.c.total_comments + 1)
            )
            _notify(conn, "comment", comment.blog_id, sender_id=comment.author_id, comment_id=comment_id)
            conn.commit()
            return comment_id

    def get_comment(self, comment_id: int) -> Optional[Comment]:
        with self.engine.connect() as conn:
            row = conn.execute(_comments.select().where(_comments.c.id == comment_id)).fetchone()
        return _row_to_comment(row) if row is not None else None

    def list_comments(self, blog_id: int) -> list[Comment]:
        """Return all comments on a blog, newest first."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _comments.select()
                .where(_comments.c.blog_id == blog_id)
                .order_by(_comments.c.created_at.desc(), _comments.c.id.desc())
            ).fetchall()
        return [_row_to_comment(r) for r in rows]

    def update_comment(self, comment_id: int, content: str) -> bool:
        """Replace comment text and mark it edited. Returns False if not found."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _comments.update().where(_comments.c.id == comment_id).values(content=content, edited=1)
            )
            conn.commit()
        return result.rowcount > 0

    def delete_comment(self, comment_id: int) -> bool:
        """Delete a comment and decrement its blog's total_comments. Returns False if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(select(_comments.c.blog_id).where(_comments.c.id == comment_id)).fetchone()
            if row is None:
                return False
            conn.execute(_comments.delete().where(_comments.c.id == comment_id))
            conn.execute(
                _blogs.update()
                .where(_blogs.c.id == row.blog_id)
                .values(total_comments=_blogs.c.total_comments - 1)
            )
            conn.execute(_notifications.delete().where(_notifications.c.comment_id == comment_id))
            conn.commit()
        return True

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def count_unread(self, recipient_id: int) -> int:
        with self.engine.connect() as conn:
            return (
                conn.execute(
                    select(func.count())
                    .select_from(_notifications)
                    .where((_notifications.c.recipient_id == recipient_id) & (_notifications.c.read == 0))
                ).scalar()
                or 0
            )

    def list_notifications(self, recipient_id: int, mark_read: bool = True) -> list[Notification]:
        """Return every notification for recipient_id, newest first.

        With mark_read (the default) the returned rows are flagged read in the
        same transaction; the returned objects still show their prior state.
        """
        with self.engine.connect() as conn:
            rows = conn.execute(
                _notifications.select()
                .where(_notifications.c.recipient_id == recipient_id)
                .order_by(_notifications.c.created_at.desc(), _notifications.c.id.desc())
            ).fetchall()
            unread = [r.id for r in rows if not r.read]
            if mark_read and unread:
                conn.execute(_notifications.update().where(_notifications.c.id.in_(unread)).values(read=1))
                conn.commit()
        return [_row_to_notification(r) for r in rows]


def _notify(conn: Connection, kind: str, blog_id: int, sender_id: int, comment_id: Optional[int] = None) -> None:
    """Insert a notification for the blog's author unless the author is the sender."""
    recipient_id = conn.execute(select(_blogs.c.author_id).where(_blogs.c.id == blog_id)).scalar()
    if recipient_id is None or recipient_id == sender_id:
        return
    conn.execute(
        _notifications.insert().values(
            type=kind,
            recipient_id=recipient_id,
            sender_id=sender_id,
            blog_id=blog_id,
            comment_id=comment_id,
            read=0,
            created_at=_now_iso(),
        )
    )


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_blog(row) -> Blog:
    return Blog(
        id=row.id,
        title=row.title,
        des=row.des or "",
        banner=row.banner or "",
        content=row.content,
        tags=json.loads(row.tags) if row.tags else [],
        author_id=row.author_id,
        draft=bool(row.draft),
        total_likes=row.total_likes,
        total_comments=row.total_comments,
        total_reads=row.total_reads,
        created_at=row.created_at,
    )


def _row_to_comment(row) -> Comment:
    return Comment(
        id=row.id,
        blog_id=row.blog_id,
        author_id=row.author_id,
        content=row.content,
        edited=bool(row.edited),
        created_at=row.created_at,
    )


def _row_to_notification(row) -> Notification:
    return Notification(
        id=row.id,
        type=row.type,
        recipient_id=row.recipient_id,
        sender_id=row.sender_id,
        blog_id=row.blog_id,
        comment_id=row.comment_id,
        read=bool(row.read),
        created_at=row.created_at,
    )
