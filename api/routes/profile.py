"""
api/routes/profile.py -- Profile read/edit, password change and avatar upload.

Routes:
  GET  /profile                 -- the caller's own profile (bearer)
  GET  /profile/{username}      -- anyone's public profile
  PUT  /profile                 -- edit allowed fields (bearer)
  POST /change-password         -- verify current, set new (bearer)
  POST /upload-profile-image    -- multipart avatar upload (bearer)

Ownership is implicit: every mutating route acts on identity.user_id taken
from the verified token, never on an id from the request body. All routes are
in the "general" limit group. File writes run in a worker thread.
"""

import asyncio
import logging
import uuid
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, File, Request, UploadFile

from api.limiter import general_limit
from api.models import (
    ChangePasswordRequest,
    MessageResponse,
    ProfileImageResponse,
    ProfileResponse,
    ProfileUpdate,
)
from auth.dependencies import Identity, get_current_identity
from auth.service import AccountService
from core.config import Settings
from core.errors import NotFoundError, ValidationError

logger = logging.getLogger("campusblog.api.profile")

# Auth policy:
# - GET  /profile:              requires auth (get_current_identity)
# - GET  /profile/{username}:   public
# - PUT  /profile:              requires auth
# - POST /change-password:      requires auth
# - POST /upload-profile-image: requires auth
router = APIRouter()

_IMAGE_TYPES: dict[str, str] = {"image/jpeg": ".jpg", "image/jpg": ".jpg", "image/png": ".png"}
_IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png"}
PROFILE_IMAGE_SUBDIR = "profile-images"


def _write_image(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)


@router.get("/profile", response_model=ProfileResponse)
@general_limit
async def my_profile(request: Request, identity: Identity = Depends(get_current_identity)) -> ProfileResponse:
    accounts: AccountService = request.app.state.accounts
    return ProfileResponse.from_user(await accounts.get_profile(identity.user_id))


@router.get("/profile/{username}", response_model=ProfileResponse)
@general_limit
async def public_profile(request: Request, username: str) -> ProfileResponse:
    """Look up a profile by username (or numeric id)."""
    accounts: AccountService = request.app.state.accounts
    return ProfileResponse.from_user(await accounts.get_public_profile(username))


@router.put("/profile", response_model=ProfileResponse)
@general_limit
async def update_profile(
    request: Request,
    body: ProfileUpdate,
    identity: Identity = Depends(get_current_identity),
) -> ProfileResponse:
    """Edit fullname, department, phone, bio, social links, KTU ID or passout year.

    A phone or KTU ID already owned by another account yields 409 and leaves
    the record unchanged.
    """
    accounts: AccountService = request.app.state.accounts
    user = await accounts.update_profile(identity.user_id, body.model_dump(exclude_none=True))
    return ProfileResponse.from_user(user)


@router.post("/change-password", response_model=MessageResponse)
@general_limit
async def change_password(
    request: Request,
    body: ChangePasswordRequest,
    identity: Identity = Depends(get_current_identity),
) -> MessageResponse:
    """Replace the password. A wrong current password yields 403 and changes nothing."""
    accounts: AccountService = request.app.state.accounts
    await accounts.change_password(identity.user_id, body.current_password, body.new_password)
    return MessageResponse(message="Password updated successfully")


@router.post("/upload-profile-image", response_model=ProfileImageResponse)
@general_limit
async def upload_profile_image(
    request: Request,
    profile_image: Optional[UploadFile] = File(default=None, alias="profileImage"),
    identity: Identity = Depends(get_current_identity),
) -> ProfileImageResponse:
    """Store a JPEG/PNG avatar (<= max_upload_bytes) and point profile_img at it."""
    settings: Settings = request.app.state.settings
    if profile_image is None:
        raise ValidationError("No image file provided")
    if profile_image.content_type not in _IMAGE_TYPES:
        raise ValidationError("Invalid file type. Only JPEG, JPG and PNG files are allowed.")

    raw = await profile_image.read(settings.max_upload_bytes + 1)
    if len(raw) > settings.max_upload_bytes:
        limit_mb = settings.max_upload_bytes // (1024 * 1024)
        raise ValidationError(f"File size is too large. Maximum size is {limit_mb}MB")
    if not raw:
        raise ValidationError("No image file provided")

    ext = Path(profile_image.filename or "").suffix.lower()
    if ext not in _IMAGE_EXTENSIONS:
        ext = _IMAGE_TYPES[profile_image.content_type]

    filename = f"profile-{uuid.uuid4().hex}{ext}"
    path = Path(settings.upload_dir) / PROFILE_IMAGE_SUBDIR / filename
    await asyncio.to_thread(_write_image, path, raw)

    url = f"/uploads/{PROFILE_IMAGE_SUBDIR}/{filename}"
    accounts: AccountService = request.app.state.accounts
    try:
        updated = await accounts.set_profile_image(identity.user_id, url)
    except Exception:
        await asyncio.to_thread(path.unlink, missing_ok=True)
        raise
    if not updated:
        await asyncio.to_thread(path.unlink, missing_ok=True)
        raise NotFoundError("User not found")

    logger.info("Profile image updated for user id=%s (%d bytes)", identity.user_id, len(raw))
    return ProfileImageResponse(profileImageUrl=url)
