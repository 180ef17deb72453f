"""
api/limiter.py -- Shared slowapi rate limiter and per-group limit decorators.

One Limiter instance, one in-memory counter store. Counters are keyed by
client address and reset at each fixed-window boundary. Under multi-instance
deployment every process counts independently.

Route groups (every route carries exactly one, except /health which is exempt):
  general   -- profile, listing, reading, likes, comment edits, notifications
  auth      -- signup / signin share one counter per client
  content   -- blog creation
  comments  -- comment creation

Each group is a shared_limit with its own scope, so an auth request counts
against the auth ceiling only, never against general traffic. No
default_limits: slowapi's middleware cannot resolve endpoints behind
include_router, so every route declares its group explicitly.

Decorator order matters: the router decorator must sit ABOVE the limit
decorator so FastAPI registers the rate-limited wrapper as the endpoint, and
the endpoint must take a `request: Request` parameter.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import get_settings

_settings = get_settings()

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")

general_limit = limiter.shared_limit(
    _settings.general_rate_limit,
    scope="general",
    error_message="Too many requests",
)

auth_limit = limiter.shared_limit(
    _settings.auth_rate_limit,
    scope="auth",
    error_message="Too many authentication attempts",
)

content_limit = limiter.shared_limit(
    _settings.content_rate_limit,
    scope="content",
    error_message="Too many blog posts",
)

comment_limit = limiter.shared_limit(
    _settings.comment_rate_limit,
    scope="comments",
    error_message="Too many comments",
)
