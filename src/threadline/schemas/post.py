# src/threadline/schemas/post.py
"""Post-related Pydantic schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from threadline.schemas.poll import Poll, PollDraft
from threadline.schemas.user import User

ReactionType = Literal["like", "dislike"]


class Media(BaseModel):
    """Image or video attached to a post."""

    type: Literal["image", "video"] = "image"
    url: str

    model_config = ConfigDict(frozen=True)


class Post(BaseModel):
    """Canonical post view model.

    Instances are immutable; tree operations return modified copies. Only the
    tree builder fills ``child_posts``.
    """

    id: str
    user: User
    content: str = ""
    created_at: datetime
    is_deleted: bool = False
    is_edited: bool = False

    parent_post_id: str | None = None
    is_reply: bool = False

    thread_id: str | None = None
    sequence_number: int | None = None
    thread_total: int | None = None

    like_count: int = 0
    dislike_count: int = 0
    repost_count: int = 0
    quote_count: int = 0
    reply_count: int = 0
    my_reaction: ReactionType | None = None

    poll: Poll | None = None
    media: list[Media] = Field(default_factory=list)
    quoted_post: Post | None = None
    child_posts: list[Post] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class PostDetail(BaseModel):
    """Everything the detail screen shows around a single post."""

    main_post: Post
    parent_post: Post | None = None
    replies: list[Post] = Field(default_factory=list)
    thread_stack: list[Post] = Field(default_factory=list)


class ComposeRequest(BaseModel):
    """One composition action: a single post, a new thread, a reply, or a continuation."""

    drafts: list[str] = Field(..., min_length=1, description="Post bodies in submission order")
    media: list[Media] = Field(default_factory=list, description="Attached to the first post")
    reply_to: str | None = Field(None, description="Parent post id for a reply")
    thread_id: str | None = Field(None, description="Existing thread to continue")
    start_sequence: int | None = Field(None, ge=1, description="Sequence of the first new post")
    quoted_post_id: str | None = None
    poll: PollDraft | None = None


class PostUpdate(BaseModel):
    """Schema for editing a post's text."""

    content: str
