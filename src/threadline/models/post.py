# src/threadline/models/post.py
"""SQLAlchemy models for posts and related attributes."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from threadline.db.session import Base
from threadline.db.time import utcnow

if TYPE_CHECKING:
    from threadline.models.poll import Poll
    from threadline.models.profile import Profile


class Post(Base):
    """Primary content entity produced by users.

    Replies hang off ``parent_post_id``; linear threads share ``thread_id``
    (the anchor post's id) and are numbered by ``sequence_number``.
    """

    __tablename__ = "posts"
    __table_args__ = (
        Index("ix_posts_parent_post_id", "parent_post_id"),
        Index("ix_posts_thread_id", "thread_id"),
        Index("ix_posts_author_id", "author_id"),
    )

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    author_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("profiles.id"),
        nullable=True,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    media: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON, nullable=True)

    # Parent chain for replies; top-level posts have parent_post_id = NULL.
    parent_post_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("posts.id"),
        nullable=True,
    )
    is_reply: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Thread membership is independent of the reply chain.
    thread_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    sequence_number: Mapped[int | None] = mapped_column(Integer, nullable=True)

    quoted_post_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("posts.id"),
        nullable=True,
    )

    # Denormalized counters owned by the store.
    reply_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    repost_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    quote_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    # Soft delete marker; rows are never physically removed.
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    author: Mapped[Profile | None] = relationship("Profile", lazy="joined")
    quoted_post: Mapped[Post | None] = relationship(
        "Post",
        remote_side=[id],
        foreign_keys=[quoted_post_id],
    )
    poll: Mapped[Poll | None] = relationship(
        "Poll",
        back_populates="post",
        uselist=False,
    )
