# src/threadline/schemas/records.py
"""Raw record shapes returned by the remote store.

Each class mirrors one query shape (a post joined with its author, counts and
poll; a poll joined with its votes; a reaction row). Records are validated
here, at the fetch boundary, and converted into the canonical view models by
:mod:`threadline.services.mapping`.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from threadline.db.time import as_utc


class _Record(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra="ignore")


class RawProfile(_Record):
    """Profile row as joined onto a post."""

    id: str
    username: str | None = None
    display_name: str | None = None
    bio: str | None = None
    location: str | None = None
    website: str | None = None
    profile_picture_url: str | None = None
    cover_photo_url: str | None = None
    followers_count: int | None = None
    following_count: int | None = None
    created_at: datetime | None = None


class RawMedia(_Record):
    """Media attachment entry stored on a post."""

    type: Literal["image", "video"] = "image"
    url: str


class RawPollMedia(_Record):
    """Media attachment entry stored on a poll."""

    type: Literal["image", "link"]
    url: str


class RawPollOption(_Record):
    """Option row; ``votes`` is present only when the store pre-aggregated it."""

    id: str
    label: str
    position: int | None = None
    votes: int | None = None


class RawPollVote(_Record):
    """One vote row (voter and chosen option)."""

    user_id: str
    option_id: str


class RawPollWithVotes(_Record):
    """Poll row with its options and either vote rows or precomputed counts."""

    id: str
    post_id: str | None = None
    question: str
    allows_multiple_choices: bool = False
    media: RawPollMedia | None = None
    expires_at: datetime
    created_at: datetime | None = None
    options: list[RawPollOption] = Field(default_factory=list)
    votes: list[RawPollVote] | None = None
    total_votes: int | None = None
    viewer_selected_options: list[str] | None = None

    @field_validator("expires_at", "created_at")
    @classmethod
    def _attach_utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value) if value is not None else None


class RawPostWithCounts(_Record):
    """Post row joined with author profile, reaction counts and poll."""

    id: str
    author_id: str | None = None
    user: RawProfile | None = None
    content: str | None = None
    media: list[RawMedia] | None = None
    parent_post_id: str | None = None
    is_reply: bool | None = None
    thread_id: str | None = None
    sequence_number: int | None = None
    like_count: int | None = None
    dislike_count: int | None = None
    repost_count: int | None = None
    quote_count: int | None = None
    reply_count: int | None = None
    poll: RawPollWithVotes | None = None
    quoted_post: RawPostWithCounts | None = None
    created_at: datetime
    updated_at: datetime | None = None
    deleted_at: datetime | None = None

    @field_validator("created_at", "updated_at", "deleted_at")
    @classmethod
    def _attach_utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value) if value is not None else None


class RawReaction(_Record):
    """Viewer reaction row."""

    post_id: str
    type: Literal["like", "dislike"]
