"""
auth/tokens.py -- Bearer token issue and verification.

Security design decisions:
  JWT: python-jose with HS256, signed with Settings.secret_key. The subject
       claim is the numeric user id (as a string, per RFC 7519); exp is
       issued-at + Settings.token_expire_seconds (24h by default).

  Lifecycle: issued -> valid -> expired. There is no revocation list, so a
       token stays valid until exp even after a password change.

  Verification never returns a sentinel. Every failure raises AuthError with
       a TokenFailure reason so the client can tell "log in again" (expired)
       from "this token is garbage" (malformed / invalid_signature).

  Expiry is checked here against an injectable clock instead of inside
       jose, which keeps the 24h boundary testable to the second.

Layer rule: no imports from api/ or blog/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from jose import JWTError, jwt

from core.config import get_settings
from core.errors import AuthError, TokenFailure

logger = logging.getLogger("campusblog.auth")

_settings = get_settings()

_ALGORITHM = "HS256"


def _timestamp(now: datetime | None) -> int:
    return int((now or datetime.now(timezone.utc)).timestamp())


def create_access_token(user_id: int, now: datetime | None = None, expire_seconds: int = 0) -> str:
    """Encode a signed JWT for user_id.

    Args:
        user_id:        Primary key of the authenticated user.
        now:            Issue time; defaults to the current UTC time.
        expire_seconds: Token lifetime. 0 (default) uses
                        Settings.token_expire_seconds.
    """
    duration = expire_seconds if expire_seconds > 0 else _settings.token_expire_seconds
    issued_at = _timestamp(now)
    payload = {
        "sub": str(user_id),
        "iat": issued_at,
        "exp": issued_at + duration,
    }
    return jwt.encode(payload, _settings.secret_key, algorithm=_ALGORITHM)


def verify_access_token(token: str, now: datetime | None = None) -> int:
    """Verify token and return the user id it was issued for.

    Raises:
        AuthError(MALFORMED)          -- not a decodable JWT or missing claims
        AuthError(INVALID_SIGNATURE)  -- signature does not match secret_key
        AuthError(EXPIRED)            -- signature fine but now is past exp
    """
    try:
        jwt.get_unverified_header(token)
        jwt.get_unverified_claims(token)
    except JWTError as exc:
        raise AuthError(TokenFailure.MALFORMED) from exc

    try:
        payload = jwt.decode(
            token,
            _settings.secret_key,
            algorithms=[_ALGORITHM],
            options={"verify_exp": False},
        )
    except JWTError as exc:
        logger.info("Rejected token: %s", exc)
        raise AuthError(TokenFailure.INVALID_SIGNATURE) from exc

    subject = payload.get("sub")
    expires = payload.get("exp")
    if not isinstance(subject, str) or not subject.isdigit() or not isinstance(expires, int):
        raise AuthError(TokenFailure.MALFORMED)

    if _timestamp(now) > expires:
        raise AuthError(TokenFailure.EXPIRED)
    return int(subject)
