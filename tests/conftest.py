# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator
from datetime import UTC, datetime, timedelta
from itertools import count
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("SECRET_KEY", "threadline-test-secret")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from threadline.core.security import create_access_token, hash_password  # noqa: E402
from threadline.db.session import Base  # noqa: E402
from threadline.db.session import get_db as app_get_session  # noqa: E402
from threadline.main import app as fastapi_app  # noqa: E402
from threadline.models import Poll, PollOption, Post, Profile  # noqa: E402
from threadline.repositories.sql_store import SqlRemoteStore  # noqa: E402
from threadline.schemas.post import Post as PostView  # noqa: E402
from threadline.schemas.user import User  # noqa: E402

TEST_DB_URL = "sqlite://"
TEST_PASSWORD = "correct-horse-1"
BASE_TIME = datetime(2026, 1, 5, 12, 0, tzinfo=UTC)

_POST_CLOCK = count(1)
_PROFILE_COUNTER = count(1)
# One PBKDF2 hash shared by every fixture profile.
_PASSWORD_HASH = hash_password(TEST_PASSWORD)


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    connection = engine.connect()
    transaction = connection.begin()
    SessionLocal = sessionmaker(
        bind=connection,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    session = SessionLocal()
    session.begin_nested()

    @event.listens_for(session, "after_transaction_end")
    def restart_savepoint(sess: Session, trans) -> None:  # pragma: no cover - SQLAlchemy internals
        if trans.nested and not getattr(trans._parent, "nested", False):
            session.begin_nested()

    try:
        yield session
    finally:
        event.remove(session, "after_transaction_end", restart_savepoint)
        session.close()

        if transaction.is_active:
            transaction.rollback()
        connection.close()

        # Ensure each test sees a clean database even if commits occurred.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def store(db_session: Session) -> SqlRemoteStore:
    """Remote store bound to the per-test session."""
    return SqlRemoteStore(db_session)


# Persisted rows


@pytest.fixture()
def make_profile(db_session: Session) -> Callable[..., Profile]:
    """Return a factory that persists profiles."""

    def _make(display_name: str = "Test User", **overrides: Any) -> Profile:
        n = next(_PROFILE_COUNTER)
        profile = Profile(
            email=overrides.pop("email", f"user{n}@example.com"),
            password_hash=_PASSWORD_HASH,
            username=overrides.pop("username", f"user{n}"),
            display_name=display_name,
            **overrides,
        )
        db_session.add(profile)
        db_session.flush()
        db_session.refresh(profile)
        return profile

    return _make


@pytest.fixture()
def author(make_profile: Callable[..., Profile]) -> Profile:
    """Primary signed-in test profile."""
    return make_profile("Ada Author", email="ada@example.com", username="ada")


@pytest.fixture()
def other_author(make_profile: Callable[..., Profile]) -> Profile:
    """Second profile, used for permission checks."""
    return make_profile("Bob Other", email="bob@example.com", username="bob")


@pytest.fixture()
def auth_headers(author: Profile) -> dict[str, str]:
    """Authorization headers for ``author``."""
    return {"Authorization": f"Bearer {create_access_token(author.id)}"}


@pytest.fixture()
def other_auth_headers(other_author: Profile) -> dict[str, str]:
    """Authorization headers for ``other_author``."""
    return {"Authorization": f"Bearer {create_access_token(other_author.id)}"}


@pytest.fixture()
def make_post(db_session: Session) -> Callable[..., Post]:
    """Return a factory that persists posts with strictly increasing timestamps."""

    def _make(author: Profile | None, content: str = "hello", **overrides: Any) -> Post:
        created_at = overrides.pop(
            "created_at",
            BASE_TIME + timedelta(minutes=next(_POST_CLOCK)),
        )
        parent_post_id = overrides.get("parent_post_id")
        post = Post(
            author_id=author.id if author is not None else None,
            content=content,
            is_reply=overrides.pop("is_reply", parent_post_id is not None),
            created_at=created_at,
            **overrides,
        )
        db_session.add(post)
        db_session.flush()
        db_session.refresh(post)
        return post

    return _make


@pytest.fixture()
def make_poll(db_session: Session) -> Callable[..., Poll]:
    """Return a factory that attaches a poll to a persisted post."""

    def _make(
        post: Post,
        labels: tuple[str, ...] = ("Yes", "No"),
        *,
        multiple: bool = False,
        expires_at: datetime | None = None,
    ) -> Poll:
        poll = Poll(
            question="Which one?",
            allows_multiple_choices=multiple,
            expires_at=expires_at or datetime.now(UTC) + timedelta(days=1),
            options=[PollOption(label=label, position=i) for i, label in enumerate(labels)],
        )
        post.poll = poll
        db_session.flush()
        db_session.refresh(poll)
        return poll

    return _make


# In-memory view models


def view_user(user_id: str = "u1", **overrides: Any) -> User:
    data: dict[str, Any] = {
        "id": user_id,
        "username": f"name-{user_id}",
        "display_name": f"Name {user_id}",
        "created_at": BASE_TIME,
    }
    data.update(overrides)
    return User(**data)


@pytest.fixture()
def view_post() -> Callable[..., PostView]:
    """Return a builder for canonical posts that never touch the database."""

    def _build(post_id: str, parent_post_id: str | None = None, **overrides: Any) -> PostView:
        data: dict[str, Any] = {
            "id": post_id,
            "user": view_user(overrides.pop("author_id", "u1")),
            "content": f"post {post_id}",
            "created_at": BASE_TIME,
            "parent_post_id": parent_post_id,
            "is_reply": parent_post_id is not None,
        }
        data.update(overrides)
        return PostView(**data)

    return _build
