"""
api/routes/blogs.py -- Blog authoring, listing and likes.

Routes:
  POST /create-blog       -- publish or save a draft (bearer, "content" limit group)
  GET  /latest-blogs      -- published blogs, newest first, paginated; filter by
                             tag, search text or author username
  GET  /blog/{blog_id}    -- one blog with its author and the viewer's like; counts a read
  POST /like/{blog_id}    -- toggle the caller's like (bearer)

Drafts are only visible to their author; to everyone else they 404. Every
route except /create-blog counts against the "general" limit group.
"""

import math
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from api.limiter import content_limit, general_limit
from api.models import BlogCreate, BlogListResponse, BlogResponse, LikeResponse
from auth.dependencies import Identity, get_current_identity, try_get_identity
from auth.store import UserStore
from blog.models import Blog
from blog.store import BlogStore
from blog.validation import parse_blog
from core.errors import NotFoundError

# Auth policy:
# - POST /create-blog:    requires auth
# - GET  /latest-blogs:   public
# - GET  /blog/{id}:      public (drafts: author only)
# - POST /like/{id}:      requires auth
router = APIRouter()


def visible_blog(blogs: BlogStore, blog_id: int, viewer: Optional[Identity]) -> Blog:
    """Return the blog if viewer may see it, else raise NotFoundError."""
    blog = blogs.get_blog(blog_id)
    if blog is None or (blog.draft and (viewer is None or viewer.user_id != blog.author_id)):
        raise NotFoundError("Blog not found")
    return blog


@router.post("/create-blog", response_model=BlogResponse, status_code=201)
@content_limit
def create_blog(
    request: Request,
    body: BlogCreate,
    identity: Identity = Depends(get_current_identity),
) -> BlogResponse:
    blogs: BlogStore = request.app.state.blog_store
    users: UserStore = request.app.state.user_store

    blog = parse_blog(body.model_dump(), author_id=identity.user_id)
    created = blogs.get_blog(blogs.create_blog(blog))
    authors = users.get_authors({identity.user_id})
    return BlogResponse.from_blog(created, authors.get(identity.user_id))


@router.get("/latest-blogs", response_model=BlogListResponse)
@general_limit
def latest_blogs(
    request: Request,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=50),
    tag: Optional[str] = Query(default=None, max_length=50),
    search: Optional[str] = Query(default=None, max_length=100),
    author: Optional[str] = Query(default=None, max_length=30),
) -> BlogListResponse:
    """Published blogs, newest first. Content bodies are omitted in the listing.

    An unknown author username yields an empty page, not a 404.
    """
    blogs: BlogStore = request.app.state.blog_store
    users: UserStore = request.app.state.user_store

    author_id = None
    if author:
        writer = users.get_by_username(author)
        if writer is None:
            return BlogListResponse(blogs=[], currentPage=page, totalPages=0, totalBlogs=0)
        author_id = writer.id

    rows, total = blogs.list_latest(page=page, limit=limit, tag=tag, search=search, author_id=author_id)
    authors = users.get_authors({b.author_id for b in rows})
    return BlogListResponse(
        blogs=[BlogResponse.from_blog(b, authors.get(b.author_id), with_content=False) for b in rows],
        currentPage=page,
        totalPages=math.ceil(total / limit),
        totalBlogs=total,
    )


@router.get("/blog/{blog_id}", response_model=BlogResponse)
@general_limit
def get_blog(
    request: Request,
    blog_id: int,
    viewer: Optional[Identity] = Depends(try_get_identity),
) -> BlogResponse:
    blogs: BlogStore = request.app.state.blog_store
    users: UserStore = request.app.state.user_store

    visible_blog(blogs, blog_id, viewer)
    blogs.record_read(blog_id)
    blog = blogs.get_blog(blog_id)
    authors = users.get_authors({blog.author_id})
    liked = viewer is not None and blogs.has_liked(blog_id, viewer.user_id)
    return BlogResponse.from_blog(blog, authors.get(blog.author_id), is_liked=liked)


@router.post("/like/{blog_id}", response_model=LikeResponse)
@general_limit
def like_blog(
    request: Request,
    blog_id: int,
    identity: Identity = Depends(get_current_identity),
) -> LikeResponse:
    """Like the blog, or remove the caller's like if already present."""
    blogs: BlogStore = request.app.state.blog_store
    visible_blog(blogs, blog_id, identity)
    likes, liked = blogs.toggle_like(blog_id, identity.user_id)
    return LikeResponse(likes=likes, isLiked=liked)
