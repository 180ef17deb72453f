"""
api/routes/comments.py -- Comments on blogs.

Routes:
  POST   /blogs/{blog_id}/comments   -- add a comment (bearer, "comments" limit group)
  GET    /blogs/{blog_id}/comments   -- list comments, newest first
  PUT    /comments/{comment_id}      -- edit own comment (bearer)
  DELETE /comments/{comment_id}      -- delete own comment (bearer)

Editing or deleting someone else's comment is a 403, not a 404: the comment
exists, the caller is just not its author.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request

from api.limiter import comment_limit, general_limit
from api.models import CommentBody, CommentResponse, MessageResponse
from api.routes.blogs import visible_blog
from auth.dependencies import Identity, get_current_identity, try_get_identity
from auth.store import UserStore
from blog.models import Comment
from blog.store import BlogStore
from blog.validation import parse_comment
from core.errors import ForbiddenError, NotFoundError

# Auth policy:
# - POST   /blogs/{id}/comments: requires auth
# - GET    /blogs/{id}/comments: public (drafts: author only)
# - PUT    /comments/{id}:       requires auth + authorship
# - DELETE /comments/{id}:       requires auth + authorship
router = APIRouter()


def _owned_comment(blogs: BlogStore, comment_id: int, identity: Identity, action: str) -> Comment:
    comment = blogs.get_comment(comment_id)
    if comment is None:
        raise NotFoundError("Comment not found")
    if comment.author_id != identity.user_id:
        raise ForbiddenError(f"Not authorized to {action} this comment")
    return comment


@router.post("/blogs/{blog_id}/comments", response_model=CommentResponse, status_code=201)
@comment_limit
def add_comment(
    request: Request,
    blog_id: int,
    body: CommentBody,
    identity: Identity = Depends(get_current_identity),
) -> CommentResponse:
    blogs: BlogStore = request.app.state.blog_store
    users: UserStore = request.app.state.user_store

    content = parse_comment(body.model_dump())
    visible_blog(blogs, blog_id, identity)
    comment_id = blogs.create_comment(Comment(blog_id=blog_id, author_id=identity.user_id, content=content))
    authors = users.get_authors({identity.user_id})
    return CommentResponse.from_comment(blogs.get_comment(comment_id), authors.get(identity.user_id))


@router.get("/blogs/{blog_id}/comments", response_model=list[CommentResponse])
@general_limit
def list_comments(
    request: Request,
    blog_id: int,
    viewer: Optional[Identity] = Depends(try_get_identity),
) -> list[CommentResponse]:
    blogs: BlogStore = request.app.state.blog_store
    users: UserStore = request.app.state.user_store

    visible_blog(blogs, blog_id, viewer)
    comments = blogs.list_comments(blog_id)
    authors = users.get_authors({c.author_id for c in comments})
    return [CommentResponse.from_comment(c, authors.get(c.author_id)) for c in comments]


@router.put("/comments/{comment_id}", response_model=CommentResponse)
@general_limit
def edit_comment(
    request: Request,
    comment_id: int,
    body: CommentBody,
    identity: Identity = Depends(get_current_identity),
) -> CommentResponse:
    blogs: BlogStore = request.app.state.blog_store
    users: UserStore = request.app.state.user_store

    _owned_comment(blogs, comment_id, identity, "update")
    content = parse_comment(body.model_dump())
    blogs.update_comment(comment_id, content)
    authors = users.get_authors({identity.user_id})
    return CommentResponse.from_comment(blogs.get_comment(comment_id), authors.get(identity.user_id))


@router.delete("/comments/{comment_id}", response_model=MessageResponse)
@general_limit
def delete_comment(
    request: Request,
    comment_id: int,
    identity: Identity = Depends(get_current_identity),
) -> MessageResponse:
    blogs: BlogStore = request.app.state.blog_store
    _owned_comment(blogs, comment_id, identity, "delete")
    blogs.delete_comment(comment_id)
    return MessageResponse(message="Comment deleted successfully")
