"""
API request and response models for the REST endpoints.

These Pydantic v2 models define the HTTP transport contract. They are
intentionally separate from the dataclasses in auth/models.py and
blog/models.py, which own the internal domain representation. Route handlers
map between the two.

Request models are deliberately loose (mostly Optional[str]): field rules live
in auth/validation.py and blog/validation.py so that every violation is
reported together, in a fixed order, as one 400 response.
"""

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from auth.models import User
from blog.models import Blog, Comment, Notification

# Coarse character cap. The 72-byte bcrypt bound is enforced by the password policy.
_MAX_PASSWORD = 72

# ---------------------------------------------------------------------------
# Account request models
# ---------------------------------------------------------------------------


class SignupRequest(BaseModel):
    """Request body for POST /signup."""

    fullname: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = Field(default=None, max_length=_MAX_PASSWORD)
    role: Optional[str] = None
    department: Optional[str] = None
    phone: Optional[str] = None
    ktu_id: Optional[str] = None
    passout_year: Optional[Union[int, str]] = None
    username: Optional[str] = None


class SigninRequest(BaseModel):
    """Request body for POST /signin."""

    email: Optional[str] = None
    password: Optional[str] = Field(default=None, max_length=_MAX_PASSWORD)


class ProfileUpdate(BaseModel):
    """Request body for PUT /profile. Unknown keys (e.g. role, email) are ignored."""

    fullname: Optional[str] = None
    department: Optional[str] = None
    phone: Optional[str] = None
    bio: Optional[str] = None
    ktu_id: Optional[str] = None
    passout_year: Optional[Union[int, str]] = None
    social_links: Optional[dict[str, str]] = None


class ChangePasswordRequest(BaseModel):
    """Request body for POST /change-password (camelCase on the wire)."""

    model_config = ConfigDict(populate_by_name=True)

    current_password: Optional[str] = Field(default=None, alias="currentPassword", max_length=_MAX_PASSWORD)
    new_password: Optional[str] = Field(default=None, alias="newPassword", max_length=_MAX_PASSWORD)


# ---------------------------------------------------------------------------
# Account response models
# ---------------------------------------------------------------------------


class AuthResponse(BaseModel):
    """Response body for POST /signup and POST /signin."""

    model_config = ConfigDict(frozen=True)

    access_token: str
    profile_img: str
    username: str
    fullname: str
    role: str

    @classmethod
    def from_user(cls, user: User, token: str) -> "AuthResponse":
        return cls(
            access_token=token,
            profile_img=user.profile_img,
            username=user.username,
            fullname=user.fullname,
            role=user.role.value,
        )


class ProfileResponse(BaseModel):
    """Public projection of a user. Never carries the password hash."""

    model_config = ConfigDict(frozen=True)

    id: int
    fullname: str
    email: str
    username: str
    role: str
    department: str
    ktu_id: Optional[str]
    passout_year: Optional[int]
    phone: str
    bio: str
    profile_img: str
    social_links: dict[str, str]
    created_at: str

    @classmethod
    def from_user(cls, user: User) -> "ProfileResponse":
        return cls(**user.public_projection())


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


class ProfileImageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    profileImageUrl: str
    message: str = "Profile image updated successfully"


# ---------------------------------------------------------------------------
# Blog models
# ---------------------------------------------------------------------------


class BlogCreate(BaseModel):
    """Request body for POST /create-blog."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: Optional[str] = None
    des: Optional[str] = None
    banner: Optional[str] = Field(default=None, max_length=2048)
    content: Optional[str] = None
    tags: Optional[list[str]] = None
    draft: bool = False


class CommentBody(BaseModel):
    """Request body for creating or editing a comment."""

    content: Optional[str] = None


class AuthorCard(BaseModel):
    model_config = ConfigDict(frozen=True)

    fullname: str
    username: str
    profile_img: str


class BlogActivity(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_likes: int
    total_comments: int
    total_reads: int


class BlogResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    des: str
    banner: str
    content: Optional[str] = None  # omitted in list views
    tags: list[str]
    draft: bool
    activity: BlogActivity
    author: Optional[AuthorCard]
    created_at: str
    isLiked: bool = False  # whether the bearer viewer likes it; always false anonymously

    @classmethod
    def from_blog(
        cls, blog: Blog, author: Optional[dict], with_content: bool = True, is_liked: bool = False
    ) -> "BlogResponse":
        return cls(
            id=blog.id,
            title=blog.title,
            des=blog.des,
            banner=blog.banner,
            content=blog.content if with_content else None,
            tags=blog.tags,
            draft=blog.draft,
            activity=BlogActivity(
                total_likes=blog.total_likes,
                total_comments=blog.total_comments,
                total_reads=blog.total_reads,
            ),
            author=AuthorCard(**author) if author else None,
            created_at=blog.created_at,
            isLiked=is_liked,
        )


class BlogListResponse(BaseModel):
    """Response body for GET /latest-blogs (camelCase keys kept for the web client)."""

    model_config = ConfigDict(frozen=True)

    blogs: list[BlogResponse]
    currentPage: int
    totalPages: int
    totalBlogs: int


class LikeResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    likes: int
    isLiked: bool


class CommentResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    blog_id: int
    content: str
    edited: bool
    author: Optional[AuthorCard]
    created_at: str

    @classmethod
    def from_comment(cls, comment: Comment, author: Optional[dict]) -> "CommentResponse":
        return cls(
            id=comment.id,
            blog_id=comment.blog_id,
            content=comment.content,
            edited=comment.edited,
            author=AuthorCard(**author) if author else None,
            created_at=comment.created_at,
        )


# ---------------------------------------------------------------------------
# Notification models
# ---------------------------------------------------------------------------


class NewNotificationsResponse(BaseModel):
    """Response body for GET /new-notifications."""

    model_config = ConfigDict(frozen=True)

    hasNewNotifications: bool
    count: int


class NotificationBlog(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    title: str


class NotificationResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    type: str
    read: bool
    sender: Optional[AuthorCard]
    blog: Optional[NotificationBlog]
    comment_id: Optional[int]
    created_at: str

    @classmethod
    def from_notification(
        cls, notification: Notification, sender: Optional[dict], blog_title: Optional[str]
    ) -> "NotificationResponse":
        return cls(
            id=notification.id,
            type=notification.type,
            read=notification.read,
            sender=AuthorCard(**sender) if sender else None,
            blog=NotificationBlog(id=notification.blog_id, title=blog_title) if blog_title is not None else None,
            comment_id=notification.comment_id,
            created_at=notification.created_at,
        )


# ---------------------------------------------------------------------------
# Envelopes
# ---------------------------------------------------------------------------


class ErrorResponse(BaseModel):
    """Error envelope returned on every 4xx/5xx response."""

    model_config = ConfigDict(frozen=True)

    error: str
    details: Optional[list[str]] = None
    reason: Optional[str] = None
    field: Optional[str] = None


class HealthResponse(BaseModel):
    """Response for GET /health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]
