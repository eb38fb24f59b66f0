# src/threadline/models/poll.py
"""Models for polls embedded in posts."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from threadline.db.session import Base
from threadline.db.time import utcnow

if TYPE_CHECKING:
    from threadline.models.post import Post


def _uuid() -> str:
    return str(uuid.uuid4())


class Poll(Base):
    """A question with fixed options, attached to exactly one post."""

    __tablename__ = "post_polls"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    post_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("posts.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    question: Mapped[str] = mapped_column(Text, nullable=False)
    allows_multiple_choices: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    media: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    post: Mapped[Post] = relationship("Post", back_populates="poll")
    options: Mapped[list[PollOption]] = relationship(
        "PollOption",
        order_by="PollOption.position",
        cascade="all, delete-orphan",
    )
    votes: Mapped[list[PollVote]] = relationship("PollVote", cascade="all, delete-orphan")


class PollOption(Base):
    """One selectable answer of a poll."""

    __tablename__ = "post_poll_options"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    poll_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("post_polls.id", ondelete="CASCADE"),
        nullable=False,
    )
    label: Mapped[str] = mapped_column(Text, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class PollVote(Base):
    """A single voter's choice of one option."""

    __tablename__ = "post_poll_votes"
    __table_args__ = (Index("ix_post_poll_votes_poll_user", "poll_id", "user_id"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    poll_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("post_polls.id", ondelete="CASCADE"),
        nullable=False,
    )
    option_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("post_poll_options.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
