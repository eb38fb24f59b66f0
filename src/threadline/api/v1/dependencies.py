"""Shared API dependencies for sessions, the store and the feed controller."""

from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from threadline.db.session import get_db
from threadline.repositories.sql_store import SqlRemoteStore
from threadline.services.feed import FeedController
from threadline.services.session import SessionManager, ViewerSession

# Bearer tokens are optional: anonymous viewers may read the feed.
bearer_scheme = HTTPBearer(auto_error=False)

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_store(db: SessionDep) -> SqlRemoteStore:
    """Return the remote store bound to the request's database session."""
    return SqlRemoteStore(db)


def get_viewer_session(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    db: SessionDep,
) -> ViewerSession:
    """Resolve the bearer token (if any) into a viewer session.

    Invalid or expired tokens yield the anonymous session; operations that need
    a viewer raise ``AuthenticationRequired`` themselves.
    """
    token = credentials.credentials if credentials is not None else None
    return SessionManager(db).start(token)


StoreDep = Annotated[SqlRemoteStore, Depends(get_store)]
ViewerSessionDep = Annotated[ViewerSession, Depends(get_viewer_session)]


def get_feed_controller(store: StoreDep, session: ViewerSessionDep) -> FeedController:
    """Controller for one request; the forest is loaded by the endpoint."""
    return FeedController(store, session)


FeedControllerDep = Annotated[FeedController, Depends(get_feed_controller)]
