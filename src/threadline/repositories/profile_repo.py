"""Data access helpers for working with profiles."""
from __future__ import annotations

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from threadline.db.time import utcnow
from threadline.models.profile import Profile

__all__ = ["ProfileRepository"]

EDITABLE_FIELDS = (
    "display_name",
    "bio",
    "location",
    "website",
    "profile_picture_url",
    "cover_photo_url",
)


class ProfileRepository:
    """Thin wrapper around database access for profile entities."""

    def __init__(self, session: Session) -> None:
        """Initialize the repository with a SQLAlchemy session."""
        self.session = session

    def get(self, profile_id: str) -> Profile | None:
        """Return a profile by identifier."""
        return self.session.get(Profile, profile_id)

    def get_by_email(self, email: str) -> Profile | None:
        """Return the profile registered with ``email`` (case-insensitive)."""
        stmt = select(Profile).where(Profile.email == email.strip().lower())
        return self.session.scalars(stmt).first()

    def username_taken(self, username: str) -> bool:
        stmt = select(Profile.id).where(Profile.username == username)
        return self.session.scalars(stmt).first() is not None

    def create(
        self,
        *,
        email: str,
        password_hash: str,
        username: str,
        display_name: str,
    ) -> Profile:
        """Insert a new profile and return the persisted ORM instance."""
        profile = Profile(
            email=email.strip().lower(),
            password_hash=password_hash,
            username=username,
            display_name=display_name,
        )
        self.session.add(profile)
        self.session.commit()
        self.session.refresh(profile)
        return profile

    def update(self, profile: Profile, changes: dict[str, object]) -> Profile:
        """Apply editable field changes; other keys are ignored."""
        for field_name in EDITABLE_FIELDS:
            if field_name in changes:
                setattr(profile, field_name, changes[field_name])
        profile.updated_at = utcnow()
        self.session.commit()
        self.session.refresh(profile)
        return profile

    def search(self, query: str, limit: int = 20) -> list[Profile]:
        """Profiles whose username or display name contains ``query``."""
        pattern = f"%{query.strip()}%"
        stmt = (
            select(Profile)
            .where(or_(Profile.username.ilike(pattern), Profile.display_name.ilike(pattern)))
            .order_by(Profile.username.asc())
            .limit(limit)
        )
        return list(self.session.scalars(stmt))
