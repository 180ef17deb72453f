"""
auth/store.py -- SQLAlchemy Core persistence layer for user accounts.

Pattern: Repository + Data Mapper. UserStore is the repository; _row_to_user
is the mapper. Route and service code never touches SQL directly.

Uniqueness:
  email, username, phone and ktu_id each carry a named UNIQUE constraint. The
  register/update paths pre-check for a friendly error, but two requests can
  race past the pre-check; the constraint is the final arbiter. Both paths
  raise the same ConflictError(field), so clients see one contract no matter
  which layer caught the collision.

  ktu_id is NULL for Faculty. SQL UNIQUE treats NULLs as distinct, which is
  exactly the "unique when present" rule we want.

Security:
  All queries use bound parameters. No f-strings in SQL. hashed_password is
  never part of User.public_projection().

Layer rule: no imports from api/ or blog/.
"""

from __future__ import annotations

import json
import logging
import random
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, UniqueConstraint, or_, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.models import (
    Department,
    ProfilePatch,
    Role,
    SignupCandidate,
    User,
    build_role_profile,
    profile_ktu_id,
    profile_passout_year,
)
from auth.passwords import hash_password, verify_password
from auth.validation import MAX_USERNAME
from core.errors import ConflictError, ForbiddenError, NotFoundError

logger = logging.getLogger("campusblog.auth.store")

# Checked in this order; the first collision names the ConflictError.
_UNIQUE_FIELDS: tuple[str, ...] = ("email", "username", "phone", "ktu_id")

_AVATAR_SEEDS = (
    "Garfield", "Tinkerbell", "Annie", "Loki", "Cleo", "Angel", "Bob", "Mia", "Coco", "Gracie",
    "Bear", "Bella", "Abby", "Harley", "Cali", "Leo", "Luna", "Jack", "Felix", "Kiki",
)  # fmt: skip
_AVATAR_COLLECTIONS = ("notionists-neutral", "adventurer-neutral", "fun-emoji")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("fullname", String(255), nullable=False),
    Column("email", String(255), nullable=False),
    Column("username", String(255), nullable=False),
    Column("hashed_password", Text, nullable=False),
    Column("role", String(20), nullable=False),
    Column("department", String(100), nullable=False),
    Column("ktu_id", String(50)),  # NULL for Faculty
    Column("passout_year", Integer),  # Alumni only
    Column("phone", String(20), nullable=False),
    Column("bio", Text, nullable=False, server_default=""),
    Column("profile_img", Text, nullable=False, server_default=""),
    Column("social_links", Text),  # JSON object platform -> URL
    Column("created_at", String(32), nullable=False),
    UniqueConstraint("email", name="uq_users_email"),
    UniqueConstraint("username", name="uq_users_username"),
    UniqueConstraint("phone", name="uq_users_phone"),
    UniqueConstraint("ktu_id", name="uq_users_ktu_id"),
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def default_avatar_url() -> str:
    """Pick a generated avatar for accounts that have not uploaded a picture."""
    collection = random.choice(_AVATAR_COLLECTIONS)  # noqa: S311 # nosec B311 -- cosmetic choice
    seed = random.choice(_AVATAR_SEEDS)  # noqa: S311 # nosec B311
    return f"https://api.dicebear.com/6.x/{collection}/svg?seed={seed}"


def _conflict_from_integrity(exc: IntegrityError) -> ConflictError | None:
    """Map a unique-constraint violation to ConflictError naming the column.

    SQLite reports "UNIQUE constraint failed: users.phone"; PostgreSQL reports
    the constraint name ("uq_users_phone"). Both are recognised.
    """
    message = str(exc.orig)
    for field in _UNIQUE_FIELDS:
        if f"users.{field}" in message or f"uq_users_{field}" in message:
            return ConflictError(field)
    return None


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User entities.

    The Engine is owned by the caller (api/main.py lifespan) and shared with
    the blog store; UserStore only creates its table on it.

    Usage:
        store = UserStore(create_db_engine("sqlite:///campusblog.db"))
        user = store.register(candidate)
        same = store.get_by_username(user.username)
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Lookups -- return None rather than raising when absent
    # ------------------------------------------------------------------

    def get_by_id(self, user_id: int) -> User | None:
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by exact email (case-sensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_username(self, username: str) -> User | None:
        """Look up a user by exact username (case-sensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.username == username)).fetchone()
        return _row_to_user(row) if row is not None else None

    def _find_owner(self, values: dict[str, str | None], exclude_id: int | None = None) -> str | None:
        """Return the first field in values already owned by another record, else None."""
        clauses = [_users.c[f] == v for f, v in values.items() if v is not None]
        if not clauses:
            return None
        query = select(*(_users.c[f] for f in values), _users.c.id).where(or_(*clauses))
        if exclude_id is not None:
            query = query.where(_users.c.id != exclude_id)
        with self.engine.connect() as conn:
            rows = conn.execute(query).fetchall()
        for field in _UNIQUE_FIELDS:
            wanted = values.get(field)
            if wanted is not None and any(getattr(r, field) == wanted for r in rows):
                return field
        return None

    def _free_username(self, base: str) -> str:
        """Return base, or base with the lowest numeric suffix (2, 3, ...) not yet taken."""
        name, n = base, 1
        while self.get_by_username(name) is not None:
            n += 1
            suffix = str(n)
            name = base[: MAX_USERNAME - len(suffix)] + suffix
        return name

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def register(self, candidate: SignupCandidate) -> User:
        """Create an account from a validated candidate and return the stored User.

        Raises ConflictError naming the first colliding field (email, username,
        phone, ktu_id) whether the pre-check or the UNIQUE constraint caught it.
        A generated username never conflicts: a numbered variant is used instead.
        """
        ktu_id = profile_ktu_id(candidate.profile)
        username = candidate.username
        if candidate.username_generated:
            username = self._free_username(username)
        taken = self._find_owner(
            {"email": candidate.email, "username": username, "phone": candidate.phone, "ktu_id": ktu_id}
        )
        if taken is not None:
            raise ConflictError(taken)

        hashed = hash_password(candidate.password)
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    _users.insert().values(
                        fullname=candidate.fullname,
                        email=candidate.email,
                        username=username,
                        hashed_password=hashed,
                        role=candidate.profile.role.value,
                        department=candidate.department.value,
                        ktu_id=ktu_id,
                        passout_year=profile_passout_year(candidate.profile),
                        phone=candidate.phone,
                        bio="",
                        profile_img=default_avatar_url(),
                        social_links=json.dumps({}),
                        created_at=_now_iso(),
                    )
                )
                conn.commit()
                user_id = result.inserted_primary_key[0]
        except IntegrityError as exc:
            conflict = _conflict_from_integrity(exc)
            if conflict is None:
                raise
            raise conflict from exc

        logger.info("Registered user id=%s username=%s role=%s", user_id, username, candidate.profile.role)
        return self.get_by_id(user_id)

    def update_profile(self, user_id: int, patch: ProfilePatch) -> User:
        """Apply an already-validated patch and return the updated User.

        phone and ktu_id are re-checked against *other* records before the
        write; the UNIQUE constraint backs the check up. social_links are
        merged into the existing mapping rather than replacing it.
        """
        current = self.get_by_id(user_id)
        if current is None:
            raise NotFoundError("User not found")

        taken = self._find_owner({"phone": patch.phone, "ktu_id": patch.ktu_id}, exclude_id=user_id)
        if taken is not None:
            raise ConflictError(taken)

        values: dict = {}
        if patch.fullname is not None:
            values["fullname"] = patch.fullname
        if patch.department is not None:
            values["department"] = patch.department.value
        if patch.phone is not None:
            values["phone"] = patch.phone
        if patch.bio is not None:
            values["bio"] = patch.bio
        if patch.ktu_id is not None:
            values["ktu_id"] = patch.ktu_id
        if patch.passout_year is not None:
            values["passout_year"] = patch.passout_year
        if patch.social_links is not None:
            values["social_links"] = json.dumps({**current.social_links, **patch.social_links})

        try:
            with self.engine.connect() as conn:
                conn.execute(_users.update().where(_users.c.id == user_id).values(**values))
                conn.commit()
        except IntegrityError as exc:
            conflict = _conflict_from_integrity(exc)
            if conflict is None:
                raise
            raise conflict from exc
        return self.get_by_id(user_id)

    def change_password(self, user_id: int, current_password: str, new_password: str) -> None:
        """Replace the stored hash after verifying current_password.

        Raises NotFoundError if the user is gone and ForbiddenError if
        current_password does not match; the stored hash is untouched in both.
        """
        user = self.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        if not verify_password(current_password, user.hashed_password):
            raise ForbiddenError("Current password is incorrect")

        hashed = hash_password(new_password)
        with self.engine.connect() as conn:
            conn.execute(_users.update().where(_users.c.id == user_id).values(hashed_password=hashed))
            conn.commit()

    def set_profile_image(self, user_id: int, url: str) -> bool:
        """Point profile_img at url. Returns False if user_id was not found."""
        with self.engine.connect() as conn:
            result = conn.execute(_users.update().where(_users.c.id == user_id).values(profile_img=url))
            conn.commit()
        return result.rowcount > 0

    def get_authors(self, user_ids: set[int]) -> dict[int, dict]:
        """Return a short public card (fullname, username, profile_img) per user id."""
        if not user_ids:
            return {}
        with self.engine.connect() as conn:
            rows = conn.execute(
                select(_users.c.id, _users.c.fullname, _users.c.username, _users.c.profile_img).where(
                    _users.c.id.in_(user_ids)
                )
            ).fetchall()
        return {r.id: {"fullname": r.fullname, "username": r.username, "profile_img": r.profile_img} for r in rows}


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        fullname=row.fullname,
        email=row.email,
        username=row.username,
        hashed_password=row.hashed_password,
        department=Department(row.department),
        phone=row.phone,
        profile=build_role_profile(Role(row.role), row.ktu_id, row.passout_year),
        bio=row.bio or "",
        profile_img=row.profile_img or "",
        social_links=json.loads(row.social_links) if row.social_links else {},
        created_at=row.created_at,
    )
