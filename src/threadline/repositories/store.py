"""Remote store interface consumed by the feed and post services.

Implementations return raw records (see :mod:`threadline.schemas.records`) and
raise :class:`~threadline.services.errors.RemoteFailure` when the backend
cannot complete a call. Lookups of unknown ids return None; mutations on
unknown ids raise :class:`~threadline.services.errors.NotFoundError`.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Literal, Protocol

from threadline.schemas.post import Media, ReactionType
from threadline.schemas.poll import PollDraft
from threadline.schemas.records import RawPollWithVotes, RawPostWithCounts, RawReaction

__all__ = ["PostFilter", "PostOrder", "RemoteStore"]

PostOrder = Literal["newest", "oldest", "sequence"]


@dataclass(frozen=True)
class PostFilter:
    """Selection for :meth:`RemoteStore.list_posts`. An empty filter is the global feed."""

    author_id: str | None = None
    thread_id: str | None = None
    parent_post_id: str | None = None
    top_level_only: bool = False
    exclude_replies: bool = False
    include_deleted: bool = False
    limit: int | None = None


class RemoteStore(Protocol):
    """Asynchronous operations the client core needs from the backend."""

    async def list_posts(
        self, post_filter: PostFilter, order: PostOrder = "newest"
    ) -> list[RawPostWithCounts]: ...

    async def get_post(self, post_id: str) -> RawPostWithCounts | None: ...

    async def insert_post(
        self,
        author_id: str,
        content: str,
        *,
        parent_post_id: str | None = None,
        is_reply: bool = False,
        thread_id: str | None = None,
        sequence_number: int | None = None,
        quoted_post_id: str | None = None,
        media: Sequence[Media] = (),
    ) -> RawPostWithCounts: ...

    async def update_post_thread_id(
        self, post_id: str, thread_id: str, sequence_number: int | None = None
    ) -> None: ...

    async def soft_delete_post(self, post_id: str) -> None: ...

    async def update_post(self, post_id: str, content: str) -> None: ...

    async def list_reactions_for_viewer(
        self, post_ids: Sequence[str], viewer_id: str
    ) -> list[RawReaction]: ...

    async def upsert_reaction(self, post_id: str, viewer_id: str, reaction: ReactionType) -> None: ...

    async def delete_reaction(
        self, post_id: str, viewer_id: str, reaction: ReactionType | None = None
    ) -> None: ...

    async def get_poll_with_viewer_status(
        self, poll_id: str, viewer_id: str | None
    ) -> RawPollWithVotes | None: ...

    async def cast_poll_vote(
        self, poll_id: str, viewer_id: str, option_ids: Sequence[str]
    ) -> RawPollWithVotes: ...

    async def count_thread_posts(self, thread_id: str) -> int: ...

    async def insert_poll(
        self, post_id: str, draft: PollDraft, expires_at: datetime
    ) -> RawPollWithVotes: ...
