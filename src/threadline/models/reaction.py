# src/threadline/models/reaction.py
"""Models capturing reactions on posts."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from threadline.db.session import Base
from threadline.db.time import utcnow

REACTION_TYPES = ("like", "dislike")


class PostReaction(Base):
    """Per-user reaction on a post.

    At most one row per (post, user) is expected; writers remove the existing
    row before inserting a new one.
    """

    __tablename__ = "post_reactions"
    __table_args__ = (
        CheckConstraint("type IN ('like', 'dislike')", name="ck_post_reaction_type"),
        Index("ix_post_reactions_post_user", "post_id", "user_id"),
    )

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    post_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("posts.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
    )
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
