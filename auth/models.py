"""
auth/models.py -- Domain dataclasses for account entities.

Pattern: Data class (pure data container, zero logic). Stores and services do
the work; these own the domain shape.

Role-dependent fields are modelled as a tagged union: every User carries
exactly one RoleProfile variant, and each variant holds only the fields its
role requires. Code that needs ktu_id / passout_year branches on the variant
type instead of re-checking role strings.

Layer rule: no imports from api/ or blog/.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union


class Role(str, Enum):
    STUDENT = "Student"
    ALUMNI = "Alumni"
    FACULTY = "Faculty"


class Department(str, Enum):
    CSE = "Computer Science and Engineering"
    ECE = "Electronics and Communication"
    EEE = "Electrical and Electronics"
    CIVIL = "Civil Engineering"
    MECH = "Mechanical Engineering"


SOCIAL_PLATFORMS: tuple[str, ...] = ("youtube", "instagram", "facebook", "twitter", "github", "website")


# ---------------------------------------------------------------------------
# Role variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StudentProfile:
    ktu_id: str
    role: Role = field(default=Role.STUDENT, init=False)


@dataclass(frozen=True)
class AlumniProfile:
    ktu_id: str
    passout_year: int
    role: Role = field(default=Role.ALUMNI, init=False)


@dataclass(frozen=True)
class FacultyProfile:
    role: Role = field(default=Role.FACULTY, init=False)


RoleProfile = Union[StudentProfile, AlumniProfile, FacultyProfile]


def profile_ktu_id(profile: RoleProfile) -> str | None:
    if isinstance(profile, (StudentProfile, AlumniProfile)):
        return profile.ktu_id
    return None


def profile_passout_year(profile: RoleProfile) -> int | None:
    if isinstance(profile, AlumniProfile):
        return profile.passout_year
    return None


def build_role_profile(role: Role, ktu_id: str | None, passout_year: int | None) -> RoleProfile:
    """Assemble the variant for role from already-validated column values."""
    if role is Role.STUDENT:
        return StudentProfile(ktu_id=ktu_id or "")
    if role is Role.ALUMNI:
        return AlumniProfile(ktu_id=ktu_id or "", passout_year=passout_year or 0)
    if role is Role.FACULTY:
        return FacultyProfile()
    raise ValueError(f"Unknown role: {role!r}")


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------


@dataclass
class User:
    """A registered member of the college community.

    hashed_password is always a bcrypt digest. It never leaves the auth layer:
    public_projection() is the only shape handed to the API.

    id is None before the record is written to the database.
    """

    fullname: str
    email: str
    username: str
    department: Department
    phone: str
    profile: RoleProfile
    hashed_password: str = ""
    bio: str = ""
    profile_img: str = ""
    social_links: dict[str, str] = field(default_factory=dict)
    created_at: str = ""  # ISO 8601, set by store on insert
    id: int | None = None

    @property
    def role(self) -> Role:
        return self.profile.role

    def public_projection(self) -> dict:
        return {
            "id": self.id,
            "fullname": self.fullname,
            "email": self.email,
            "username": self.username,
            "role": self.role.value,
            "department": self.department.value,
            "ktu_id": profile_ktu_id(self.profile),
            "passout_year": profile_passout_year(self.profile),
            "phone": self.phone,
            "bio": self.bio,
            "profile_img": self.profile_img,
            "social_links": {p: self.social_links.get(p, "") for p in SOCIAL_PLATFORMS},
            "created_at": self.created_at,
        }


@dataclass
class SignupCandidate:
    """A registration request that has passed validation but is not yet stored.

    password is still plaintext here; UserStore.register() hashes it.
    """

    fullname: str
    email: str
    password: str
    username: str
    department: Department
    phone: str
    profile: RoleProfile
    # True when username was derived from the email rather than chosen; the
    # store then picks a free variant instead of reporting a conflict.
    username_generated: bool = False


@dataclass
class ProfilePatch:
    """Validated subset of editable profile fields. None means "leave as is"."""

    fullname: str | None = None
    department: Department | None = None
    phone: str | None = None
    bio: str | None = None
    ktu_id: str | None = None
    passout_year: int | None = None
    social_links: dict[str, str] | None = None

    def is_empty(self) -> bool:
        return all(
            v is None
            for v in (
                self.fullname,
                self.department,
                self.phone,
                self.bio,
                self.ktu_id,
                self.passout_year,
                self.social_links,
            )
        )
