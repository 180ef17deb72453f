"""
api/routes/notifications.py -- Like and comment notifications for blog authors.

Routes:
  GET /new-notifications   -- unread count for the caller (bearer)
  GET /notifications       -- the caller's notifications, newest first (bearer)

Listing marks the listed notifications read, so a following
/new-notifications only counts what arrived since.
"""

from fastapi import APIRouter, Depends, Request

from api.limiter import general_limit
from api.models import NewNotificationsResponse, NotificationResponse
from auth.dependencies import Identity, get_current_identity
from auth.store import UserStore
from blog.store import BlogStore

# Auth policy:
# - GET /new-notifications: requires auth
# - GET /notifications:     requires auth
router = APIRouter()


@router.get("/new-notifications", response_model=NewNotificationsResponse)
@general_limit
def new_notifications(
    request: Request,
    identity: Identity = Depends(get_current_identity),
) -> NewNotificationsResponse:
    blogs: BlogStore = request.app.state.blog_store
    count = blogs.count_unread(identity.user_id)
    return NewNotificationsResponse(hasNewNotifications=count > 0, count=count)


@router.get("/notifications", response_model=list[NotificationResponse])
@general_limit
def list_notifications(
    request: Request,
    identity: Identity = Depends(get_current_identity),
) -> list[NotificationResponse]:
    """Each entry carries the sender's card and the blog's id and title."""
    blogs: BlogStore = request.app.state.blog_store
    users: UserStore = request.app.state.user_store

    notifications = blogs.list_notifications(identity.user_id)
    senders = users.get_authors({n.sender_id for n in notifications})
    titles = blogs.get_titles({n.blog_id for n in notifications})
    return [
        NotificationResponse.from_notification(n, senders.get(n.sender_id), titles.get(n.blog_id))
        for n in notifications
    ]
