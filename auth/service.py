"""
auth/service.py -- Account operations exposed to the API layer.

AccountService glues the validator, UserStore, bcrypt and JWT issue together.
Its methods are coroutines: every blocking call (store round-trip, bcrypt,
signing) runs in a worker thread under asyncio.wait_for, so one slow
dependency cannot hold the event loop or a request forever.

Failure mapping:
  validation problems   -> ValidationError (raised before any store call)
  uniqueness collisions -> ConflictError (from UserStore)
  bad credentials       -> ForbiddenError
  timeout / DB failure  -> UpstreamError (client may retry the whole request;
                           the only mutation is the final single-row write)

Layer rule: no imports from api/ or blog/.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping

from sqlalchemy.exc import SQLAlchemyError

from auth.models import User
from auth.passwords import burn_dummy_check, verify_password
from auth.store import UserStore
from auth.tokens import create_access_token
from auth.validation import check_password_strength, parse_profile_patch, parse_signup
from core.config import Settings
from core.errors import ForbiddenError, NotFoundError, UpstreamError, ValidationError

logger = logging.getLogger("campusblog.auth.service")


class AccountService:
    def __init__(self, store: UserStore, settings: Settings) -> None:
        self.store = store
        self.settings = settings

    async def _run(self, func, *args):
        """Run a blocking dependency call off the loop with the configured timeout."""
        try:
            return await asyncio.wait_for(asyncio.to_thread(func, *args), timeout=self.settings.op_timeout_seconds)
        except asyncio.TimeoutError as exc:
            logger.error("Timed out after %.1fs in %s", self.settings.op_timeout_seconds, func.__name__)
            raise UpstreamError("Service temporarily unavailable") from exc
        except SQLAlchemyError as exc:
            logger.exception("Store failure in %s", func.__name__)
            raise UpstreamError("Service temporarily unavailable") from exc

    # ------------------------------------------------------------------
    # Sign up / sign in
    # ------------------------------------------------------------------

    async def sign_up(self, data: Mapping) -> tuple[User, str]:
        """Validate, register and issue a token. Returns (user, access_token)."""
        candidate = parse_signup(data, self.settings.email_domain)
        user = await self._run(self.store.register, candidate)
        token = await self._run(create_access_token, user.id)
        return user, token

    async def sign_in(self, email: str | None, password: str | None) -> tuple[User, str]:
        """Check credentials and issue a token. Returns (user, access_token).

        An unknown email still costs one bcrypt verification against a dummy
        hash so both failure paths take the same time.
        """
        if not email or not password:
            raise ValidationError("Email and password are required")

        user = await self._run(self.store.get_by_email, email)
        if user is None:
            await self._run(burn_dummy_check, password)
            logger.warning("Sign-in failed: unknown email")
            raise ForbiddenError("Email not found")

        if not await self._run(verify_password, password, user.hashed_password):
            logger.warning("Sign-in failed: wrong password for user id=%s", user.id)
            raise ForbiddenError("Incorrect password")

        token = await self._run(create_access_token, user.id)
        return user, token

    # ------------------------------------------------------------------
    # Profiles
    # ------------------------------------------------------------------

    async def get_profile(self, user_id: int) -> User:
        user = await self._run(self.store.get_by_id, user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def get_public_profile(self, username: str) -> User:
        """Resolve a profile by username, falling back to a numeric id."""
        user = await self._run(self.store.get_by_username, username)
        if user is None and username.isdigit():
            user = await self._run(self.store.get_by_id, int(username))
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def update_profile(self, user_id: int, data: Mapping) -> User:
        current = await self.get_profile(user_id)
        patch = parse_profile_patch(data, current.role)
        return await self._run(self.store.update_profile, user_id, patch)

    async def change_password(self, user_id: int, current_password: str | None, new_password: str | None) -> None:
        if not current_password or not new_password:
            raise ValidationError("Current password and new password are required")
        errors = check_password_strength(new_password)
        if errors:
            raise ValidationError("Validation failed", errors)
        await self._run(self.store.change_password, user_id, current_password, new_password)
        logger.info("Password changed for user id=%s", user_id)

    async def set_profile_image(self, user_id: int, url: str) -> bool:
        return await self._run(self.store.set_profile_image, user_id, url)
