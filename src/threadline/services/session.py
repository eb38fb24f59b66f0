"""Viewer session lifecycle.

A :class:`ViewerSession` is built once per request (or per client start) by
:class:`SessionManager` and passed explicitly to whatever needs the current
viewer. There is no module-level "current user".
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from threadline.core.security import decode_access_token
from threadline.repositories.profile_repo import ProfileRepository
from threadline.schemas.user import User
from threadline.services.errors import AuthenticationRequired

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ViewerSession:
    """Who is looking at the feed. Anonymous sessions have no viewer id."""

    viewer_id: str | None = None
    access_token: str | None = None
    profile: User | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.viewer_id is not None

    def require_viewer(self) -> str:
        """Return the viewer id or raise for anonymous sessions."""
        if self.viewer_id is None:
            raise AuthenticationRequired("Sign in to continue")
        return self.viewer_id


ANONYMOUS = ViewerSession()


class SessionManager:
    """Creates and tears down viewer sessions from bearer tokens."""

    def __init__(self, db: Session) -> None:
        self.profiles = ProfileRepository(db)

    def start(self, access_token: str | None) -> ViewerSession:
        """Resolve ``access_token`` into a session.

        Missing, invalid or expired tokens, and tokens for deleted profiles,
        yield the anonymous session.
        """
        if not access_token:
            return ANONYMOUS
        subject = decode_access_token(access_token)
        if subject is None:
            logger.info("Ignoring invalid or expired access token")
            return ANONYMOUS
        profile = self.profiles.get(subject)
        if profile is None:
            logger.info("Access token refers to unknown profile %s", subject)
            return ANONYMOUS
        return ViewerSession(
            viewer_id=profile.id,
            access_token=access_token,
            profile=User.model_validate(profile),
        )

    def end(self, session: ViewerSession) -> ViewerSession:
        """Sign out: drop the viewer and return the anonymous session."""
        if session.is_authenticated:
            logger.info("Viewer %s signed out", session.viewer_id)
        return ANONYMOUS
