"""Engine and request-scoped sessions for the post store."""

from __future__ import annotations

from collections.abc import Generator
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from threadline.core.settings import settings


class Base(DeclarativeBase):
    """Declarative base for profiles, posts, reactions and polls."""


# Registers every table on Base.metadata for alembic autogenerate.
import threadline.models  # noqa: E402,F401


def _connect_args(url: str) -> dict[str, Any]:
    # SQLite connections are handed across the threadpool FastAPI runs sync deps in.
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(
    settings.effective_database_url,
    pool_pre_ping=True,
    echo=settings.sql_debug,
    connect_args=_connect_args(settings.effective_database_url),
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Yield one session per request and close it afterwards."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
