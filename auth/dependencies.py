"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Protected routes accept exactly one credential: an
`Authorization: Bearer <token>` header. Failures raise AuthError with a
reason code that the API exception handler turns into a 401:

  missing            -- no Authorization header at all
  malformed          -- header is not "Bearer <token>", or the token is not a JWT
  expired            -- token was valid but is past its exp claim
  invalid_signature  -- token was not signed with our secret

The dependency only decodes identity; it never reads or writes the store.
Handlers that need the full record load it through AccountService.

Layer rule: no imports from api/ or blog/. This module may import from
fastapi because it is part of the dependency injection system.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from auth.tokens import verify_access_token
from core.errors import AuthError, TokenFailure


@dataclass(frozen=True)
class Identity:
    """The authenticated caller, attached to request.state.identity."""

    user_id: int


def _bearer_token(request: Request) -> str:
    header = request.headers.get("Authorization")
    if header is None:
        raise AuthError(TokenFailure.MISSING)
    scheme, _, token = header.partition(" ")
    if scheme != "Bearer" or not token.strip() or " " in token.strip():
        raise AuthError(TokenFailure.MALFORMED, "Authorization header must be 'Bearer <token>'")
    return token.strip()


def get_current_identity(request: Request) -> Identity:
    """Require a valid bearer token. Raises AuthError (-> 401) otherwise.

    Use as a FastAPI dependency:
        @router.get("/profile")
        async def route(identity: Identity = Depends(get_current_identity)): ...
    """
    identity = Identity(user_id=verify_access_token(_bearer_token(request)))
    request.state.identity = identity
    return identity


def try_get_identity(request: Request) -> Optional[Identity]:
    """Soft variant: return the Identity if a valid token is present, else None."""
    try:
        return get_current_identity(request)
    except AuthError:
        return None
