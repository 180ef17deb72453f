"""
auth/validation.py -- Request validation for registration and profile edits.

Contract: every check runs and every violation is collected in rule order, so
the client can show all problems at once. Nothing here touches the store; a
payload that fails validation never reaches a mutation.

Signup rules, in evaluation order:
  1. fullname present, >= 3 characters
  2. email present, on the institutional domain
  3. password present, >= 6 characters, has a digit, a lowercase and an uppercase
     letter, at most 72 bytes once UTF-8 encoded
  4. role in the closed Role set
  5. department in the closed Department set
  6. Student/Alumni: ktu_id present and matching KTU_ID_PATTERN
  7. Alumni: passout_year present and within [2010, current year]
  8. phone present and matching PHONE_PATTERN
  9. username (optional) matches USERNAME_PATTERN when supplied

parse_signup() and parse_profile_patch() raise core.errors.ValidationError
carrying the full violation list; check_* functions return the list.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from datetime import date

from auth.models import (
    SOCIAL_PLATFORMS,
    Department,
    ProfilePatch,
    Role,
    SignupCandidate,
    build_role_profile,
)
from core.errors import ValidationError

PHONE_PATTERN = re.compile(r"^\+91[0-9]{10}$")
KTU_ID_PATTERN = re.compile(r"^(IDK|LIDK)[0-9A-Z]+$")
MAX_USERNAME = 30
USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9._-]{3,30}$")
_USERNAME_STRIP = re.compile(r"[^A-Za-z0-9._-]")
_URL_PATTERN = re.compile(r"^https?://\S+$")

MIN_PASSOUT_YEAR = 2010
MIN_FULLNAME = 3
MIN_PASSWORD = 6
# bcrypt rejects input longer than this many bytes.
MAX_PASSWORD_BYTES = 72
MAX_BIO = 1000

_ROLES = ", ".join(r.value for r in Role)

MSG_FULLNAME = "Fullname must be at least 3 characters long"
MSG_PASSWORD_LENGTH = "Password must be at least 6 characters long"
MSG_PASSWORD_CLASSES = "Password must contain at least one number, one lowercase and one uppercase letter"
MSG_PASSWORD_BYTES = "Password cannot be longer than 72 bytes"
MSG_ROLE = f"Role must be one of {_ROLES}"
MSG_DEPARTMENT = "Please select a valid department"
MSG_KTU_REQUIRED = "KTU ID is required for students and alumni"
MSG_KTU_FORMAT = "KTU ID must start with IDK or LIDK followed by numbers and uppercase letters"
MSG_PASSOUT_REQUIRED = "Passout year is required for alumni"
MSG_PASSOUT_RANGE = "Passout year must be between 2010 and current year"
MSG_PHONE = "Phone number must start with +91 followed by 10 digits"
MSG_USERNAME = "Username must be 3-30 characters: letters, digits, '.', '_' or '-'"
MSG_BIO = "Bio cannot be longer than 1000 characters"


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------


def _text(value) -> str:
    """Return value stripped if it is a string, else "" (treated as missing)."""
    return value.strip() if isinstance(value, str) else ""


def _year(value) -> int | None:
    """Accept an int or a digit string; anything else is None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _email_pattern(domain: str) -> re.Pattern:
    return re.compile(rf"^[^\s@]+@{re.escape(domain)}$")


def _role(value) -> Role | None:
    try:
        return Role(value)
    except ValueError:
        return None


def _department(value) -> Department | None:
    try:
        return Department(value)
    except ValueError:
        return None


def check_password_strength(password) -> list[str]:
    """Return the password-policy violations for password (empty list if it passes)."""
    errors: list[str] = []
    pw = password if isinstance(password, str) else ""
    if len(pw) < MIN_PASSWORD:
        errors.append(MSG_PASSWORD_LENGTH)
    if not (re.search(r"\d", pw) and re.search(r"[a-z]", pw) and re.search(r"[A-Z]", pw)):
        errors.append(MSG_PASSWORD_CLASSES)
    if len(pw.encode("utf-8")) > MAX_PASSWORD_BYTES:
        errors.append(MSG_PASSWORD_BYTES)
    return errors


def _check_passout_year(year: int | None, today: date) -> list[str]:
    if year is None:
        return [MSG_PASSOUT_REQUIRED]
    if not MIN_PASSOUT_YEAR <= year <= today.year:
        return [MSG_PASSOUT_RANGE]
    return []


def _check_ktu_id(ktu_id: str) -> list[str]:
    if not ktu_id:
        return [MSG_KTU_REQUIRED]
    if not KTU_ID_PATTERN.match(ktu_id):
        return [MSG_KTU_FORMAT]
    return []


def _check_social_links(links) -> list[str]:
    if not isinstance(links, Mapping):
        return ["Social links must be an object of platform -> URL"]
    errors: list[str] = []
    for platform, url in links.items():
        if platform not in SOCIAL_PLATFORMS:
            errors.append(f"Unknown social platform: {platform}")
        elif not isinstance(url, str) or (url and not _URL_PATTERN.match(url)):
            errors.append(f"{platform} link must be a http(s) URL")
    return errors


# ---------------------------------------------------------------------------
# Signup
# ---------------------------------------------------------------------------


def check_signup(data: Mapping, email_domain: str, today: date | None = None) -> list[str]:
    """Run every signup rule against data and return violations in rule order."""
    today = today or date.today()
    errors: list[str] = []

    if len(_text(data.get("fullname"))) < MIN_FULLNAME:
        errors.append(MSG_FULLNAME)

    if not _email_pattern(email_domain).match(_text(data.get("email"))):
        errors.append(f"Must use a valid @{email_domain} email address")

    errors.extend(check_password_strength(data.get("password")))

    role = _role(data.get("role"))
    if role is None:
        errors.append(MSG_ROLE)

    if _department(data.get("department")) is None:
        errors.append(MSG_DEPARTMENT)

    if role in (Role.STUDENT, Role.ALUMNI):
        errors.extend(_check_ktu_id(_text(data.get("ktu_id"))))

    if role is Role.ALUMNI:
        errors.extend(_check_passout_year(_year(data.get("passout_year")), today))

    if not PHONE_PATTERN.match(_text(data.get("phone"))):
        errors.append(MSG_PHONE)

    username = data.get("username")
    if username not in (None, "") and not USERNAME_PATTERN.match(_text(username)):
        errors.append(MSG_USERNAME)

    return errors


def derive_username(email: str) -> str:
    """Build a USERNAME_PATTERN-valid username from the local part of email."""
    base = _USERNAME_STRIP.sub("", email.split("@", 1)[0])[:MAX_USERNAME]
    if len(base) < 3:
        base = f"user{base}"
    return base


def parse_signup(data: Mapping, email_domain: str, today: date | None = None) -> SignupCandidate:
    """Validate data and build a SignupCandidate, or raise ValidationError with all violations."""
    errors = check_signup(data, email_domain, today)
    if errors:
        raise ValidationError("Validation failed", errors)

    email = _text(data.get("email"))
    username = _text(data.get("username"))
    return SignupCandidate(
        fullname=_text(data.get("fullname")),
        email=email,
        password=data["password"],
        username=username or derive_username(email),
        department=Department(data["department"]),
        phone=_text(data.get("phone")),
        profile=build_role_profile(Role(data["role"]), _text(data.get("ktu_id")), _year(data.get("passout_year"))),
        username_generated=not username,
    )


# ---------------------------------------------------------------------------
# Profile edits
# ---------------------------------------------------------------------------


def parse_profile_patch(data: Mapping, role: Role, today: date | None = None) -> ProfilePatch:
    """Validate an edit payload for a user with the given role.

    Only keys present (and not None) are checked and applied. ktu_id is only
    editable on Student/Alumni accounts and passout_year only on Alumni
    accounts, mirroring which variant fields exist for each role.
    """
    today = today or date.today()
    errors: list[str] = []
    patch = ProfilePatch()

    if data.get("fullname") is not None:
        patch.fullname = _text(data["fullname"])
        if len(patch.fullname) < MIN_FULLNAME:
            errors.append(MSG_FULLNAME)

    if data.get("department") is not None:
        patch.department = _department(data["department"])
        if patch.department is None:
            errors.append(MSG_DEPARTMENT)

    if data.get("phone") is not None:
        patch.phone = _text(data["phone"])
        if not PHONE_PATTERN.match(patch.phone):
            errors.append(MSG_PHONE)

    if data.get("bio") is not None:
        patch.bio = data["bio"] if isinstance(data["bio"], str) else ""
        if len(patch.bio) > MAX_BIO:
            errors.append(MSG_BIO)

    if data.get("ktu_id") is not None:
        if role is Role.FACULTY:
            errors.append("KTU ID does not apply to Faculty accounts")
        else:
            patch.ktu_id = _text(data["ktu_id"])
            errors.extend(_check_ktu_id(patch.ktu_id))

    if data.get("passout_year") is not None:
        if role is not Role.ALUMNI:
            errors.append("Passout year only applies to Alumni accounts")
        else:
            patch.passout_year = _year(data["passout_year"])
            errors.extend(_check_passout_year(patch.passout_year, today))

    if data.get("social_links") is not None:
        link_errors = _check_social_links(data["social_links"])
        errors.extend(link_errors)
        if not link_errors:
            patch.social_links = dict(data["social_links"])

    if errors:
        raise ValidationError("Validation failed", errors)
    if patch.is_empty():
        raise ValidationError("No fields to update")
    return patch
