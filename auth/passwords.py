"""
auth/passwords.py -- bcrypt password hashing.

bcrypt is used directly rather than through passlib: passlib's wrap-bug
detection builds a password longer than 72 bytes, which current bcrypt
releases reject.

bcrypt.gensalt() produces a fresh random salt per call, so hashing the same
plaintext twice yields two different digests. The work factor comes from
Settings.bcrypt_rounds (default 12, roughly 200-300 ms on a server core).
"""

from __future__ import annotations

import bcrypt

from core.config import get_settings


def hash_password(plain: str, rounds: int | None = None) -> str:
    """Return a salted bcrypt hash of the given plaintext password.

    bcrypt raises ValueError for input longer than 72 bytes; the password
    policy in auth/validation.py rejects such passwords before they get here.
    """
    cost = rounds if rounds is not None else get_settings().bcrypt_rounds
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=cost)).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed stored hash (e.g. empty string) -- treat as a mismatch.
        return False


# Timing equalization dummy hash. Sign-in verifies against this when the email
# is unknown so the response time does not reveal which accounts exist.
_DUMMY_HASH: str = hash_password("campusblog_timing_dummy")


def burn_dummy_check(plain: str) -> None:
    """Spend one bcrypt verification without a real account behind it."""
    verify_password(plain, _DUMMY_HASH)
