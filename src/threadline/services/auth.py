"""Account registration and sign-in helpers."""
from __future__ import annotations

import logging
import re

from sqlalchemy.orm import Session

from threadline.core import security
from threadline.core.settings import settings
from threadline.models.profile import Profile
from threadline.repositories.profile_repo import ProfileRepository
from threadline.schemas.user import LoginResponse, RegisterRequest, User
from threadline.services.errors import AuthenticationRequired, ValidationFailure

__all__ = [
    "authenticate",
    "derive_username",
    "issue_login",
    "register",
    "validate_registration",
]

logger = logging.getLogger(__name__)

_USERNAME_UNSAFE = re.compile(r"[^a-z0-9_]")
_USERNAME_MAX = 30


def validate_registration(request: RegisterRequest) -> None:
    """Local sign-up checks run before anything touches the database."""
    fields = (request.display_name, request.email, request.password, request.confirm_password)
    if any(not value.strip() for value in fields):
        raise ValidationFailure("Please fill in all fields")
    if "@" not in request.email:
        raise ValidationFailure("Please enter a valid email address")
    if request.password != request.confirm_password:
        raise ValidationFailure("Passwords do not match")
    if len(request.password) < settings.min_password_length:
        raise ValidationFailure(
            f"Password must be at least {settings.min_password_length} characters"
        )


def derive_username(email: str) -> str:
    """Username candidate from the local part of an email address."""
    local = email.strip().lower().split("@", 1)[0]
    return _USERNAME_UNSAFE.sub("", local)[:_USERNAME_MAX] or "user"


def _unique_username(repo: ProfileRepository, base: str) -> str:
    candidate = base
    suffix = 1
    while repo.username_taken(candidate):
        suffix += 1
        candidate = f"{base[: _USERNAME_MAX - len(str(suffix))]}{suffix}"
    return candidate


def register(db: Session, request: RegisterRequest) -> Profile:
    """Create an account; the username is derived from the email and never changes."""
    validate_registration(request)
    repo = ProfileRepository(db)
    if repo.get_by_email(request.email) is not None:
        raise ValidationFailure("An account with this email already exists")

    username = _unique_username(repo, derive_username(request.email))
    profile = repo.create(
        email=request.email,
        password_hash=security.hash_password(request.password),
        username=username,
        display_name=request.display_name.strip(),
    )
    logger.info("Registered profile %s as @%s", profile.id, username)
    return profile


def authenticate(db: Session, email: str, password: str) -> Profile:
    """Return the profile for valid credentials."""
    profile = ProfileRepository(db).get_by_email(email)
    if profile is None or not security.verify_password(password, profile.password_hash):
        raise AuthenticationRequired("Invalid email or password")
    return profile


def issue_login(profile: Profile) -> LoginResponse:
    """Token plus public profile for a signed-in account."""
    return LoginResponse(
        access_token=security.create_access_token(profile.id),
        user=User.model_validate(profile),
    )
