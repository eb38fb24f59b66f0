"""SQLAlchemy-backed implementation of :class:`~threadline.repositories.store.RemoteStore`."""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import datetime
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from threadline.db.time import as_utc, utcnow
from threadline.models import Poll, PollOption, PollVote, Post, PostReaction, Profile
from threadline.repositories.store import PostFilter, PostOrder
from threadline.schemas.poll import PollDraft
from threadline.schemas.post import Media, ReactionType
from threadline.schemas.records import RawPollWithVotes, RawPostWithCounts, RawReaction
from threadline.services.errors import NotFoundError, RemoteFailure, ValidationFailure
from threadline.services.mapping import coerce_records

__all__ = ["SqlRemoteStore"]

logger = logging.getLogger(__name__)


class SqlRemoteStore:
    """Remote store over a synchronous SQLAlchemy session.

    Every mutation commits on its own, so a two-step write such as
    :meth:`upsert_reaction` is two separate transactions.
    """

    def __init__(self, session: Session) -> None:
        """Initialize the store with a SQLAlchemy session."""
        self.session = session

    @contextmanager
    def _guard(self, operation: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.error("Store operation %s failed", operation, exc_info=True)
            raise RemoteFailure(f"Could not {operation}") from exc

    # Posts

    async def list_posts(
        self, post_filter: PostFilter, order: PostOrder = "newest"
    ) -> list[RawPostWithCounts]:
        """Return post records matching ``post_filter`` in the requested order."""
        with self._guard("list posts"):
            stmt = select(Post).options(*_post_load_options())
            if post_filter.author_id is not None:
                stmt = stmt.where(Post.author_id == post_filter.author_id)
            if post_filter.thread_id is not None:
                stmt = stmt.where(Post.thread_id == post_filter.thread_id)
            if post_filter.parent_post_id is not None:
                stmt = stmt.where(Post.parent_post_id == post_filter.parent_post_id)
            if post_filter.top_level_only:
                stmt = stmt.where(Post.parent_post_id.is_(None))
            if post_filter.exclude_replies:
                stmt = stmt.where(Post.is_reply.is_(False))
            if not post_filter.include_deleted:
                stmt = stmt.where(Post.deleted_at.is_(None))

            if order == "oldest":
                stmt = stmt.order_by(Post.created_at.asc(), Post.id.asc())
            elif order == "sequence":
                stmt = stmt.order_by(Post.sequence_number.asc(), Post.created_at.asc())
            else:
                stmt = stmt.order_by(Post.created_at.desc(), Post.id.desc())

            if post_filter.limit is not None:
                stmt = stmt.limit(post_filter.limit)

            posts = list(self.session.scalars(stmt).unique())
            return self._records(posts)

    async def get_post(self, post_id: str) -> RawPostWithCounts | None:
        """Return one post record (deleted ones included), or None."""
        with self._guard("fetch post"):
            post = self.session.get(Post, post_id)
            if post is None:
                return None
            records = self._records([post])
            return records[0] if records else None

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
    ) -> RawPostWithCounts:
        """Insert a post and bump the parent's reply and quoted post's quote counters."""
        with self._guard("create post"):
            parent = self._require_post(parent_post_id) if parent_post_id else None
            quoted = self._require_post(quoted_post_id) if quoted_post_id else None

            post = Post(
                author_id=author_id,
                content=content,
                media=[item.model_dump() for item in media] or None,
                parent_post_id=parent_post_id,
                is_reply=is_reply,
                thread_id=thread_id,
                sequence_number=sequence_number,
                quoted_post_id=quoted_post_id,
            )
            self.session.add(post)
            if parent is not None:
                parent.reply_count += 1
            if quoted is not None:
                quoted.quote_count += 1
            self.session.commit()
            self.session.refresh(post)
            return self._records([post])[0]

    async def update_post_thread_id(
        self, post_id: str, thread_id: str, sequence_number: int | None = None
    ) -> None:
        """Attach a post to a thread, optionally fixing its sequence number."""
        with self._guard("update thread"):
            post = self._require_post(post_id)
            post.thread_id = thread_id
            if sequence_number is not None:
                post.sequence_number = sequence_number
            self.session.commit()

    async def soft_delete_post(self, post_id: str) -> None:
        """Mark a post deleted; the row stays for tombstone rendering."""
        with self._guard("delete post"):
            post = self._require_post(post_id)
            if post.deleted_at is None:
                post.deleted_at = utcnow()
                self.session.commit()

    async def update_post(self, post_id: str, content: str) -> None:
        """Replace a post's text and stamp it as edited."""
        with self._guard("update post"):
            post = self._require_post(post_id)
            post.content = content
            post.updated_at = utcnow()
            self.session.commit()

    async def count_thread_posts(self, thread_id: str) -> int:
        """Number of non-reply posts in a thread, tombstones included."""
        with self._guard("count thread posts"):
            stmt = (
                select(func.count())
                .select_from(Post)
                .where(Post.thread_id == thread_id, Post.is_reply.is_(False))
            )
            return int(self.session.scalar(stmt) or 0)

    # Reactions

    async def list_reactions_for_viewer(
        self, post_ids: Sequence[str], viewer_id: str
    ) -> list[RawReaction]:
        """Return the viewer's reactions on the given posts."""
        if not post_ids:
            return []
        with self._guard("list reactions"):
            stmt = select(PostReaction).where(
                PostReaction.post_id.in_(list(post_ids)),
                PostReaction.user_id == viewer_id,
            )
            return [RawReaction.model_validate(row) for row in self.session.scalars(stmt)]

    async def upsert_reaction(self, post_id: str, viewer_id: str, reaction: ReactionType) -> None:
        """Replace the viewer's reaction: delete any existing row, then insert."""
        with self._guard("save reaction"):
            self._require_post(post_id)
        await self.delete_reaction(post_id, viewer_id)
        with self._guard("save reaction"):
            self.session.add(PostReaction(post_id=post_id, user_id=viewer_id, type=reaction))
            self.session.commit()

    async def delete_reaction(
        self, post_id: str, viewer_id: str, reaction: ReactionType | None = None
    ) -> None:
        """Remove the viewer's reaction rows on a post, optionally of one type only."""
        with self._guard("remove reaction"):
            stmt = delete(PostReaction).where(
                PostReaction.post_id == post_id,
                PostReaction.user_id == viewer_id,
            )
            if reaction is not None:
                stmt = stmt.where(PostReaction.type == reaction)
            self.session.execute(stmt)
            self.session.commit()

    # Polls

    async def get_poll_with_viewer_status(
        self, poll_id: str, viewer_id: str | None
    ) -> RawPollWithVotes | None:
        """Return the poll with per-option counts and the viewer's selection."""
        with self._guard("fetch poll"):
            poll = self.session.get(Poll, poll_id)
            if poll is None:
                return None
            return RawPollWithVotes.model_validate(_poll_status_row(poll, viewer_id))

    async def cast_poll_vote(
        self, poll_id: str, viewer_id: str, option_ids: Sequence[str]
    ) -> RawPollWithVotes:
        """Record the viewer's vote and return the updated poll.

        Raises:
            NotFoundError: If the poll does not exist.
            ValidationFailure: If the poll expired, the viewer already voted,
                an option is unknown, or a single-choice poll got several options.
        """
        with self._guard("cast vote"):
            poll = self.session.get(Poll, poll_id)
            if poll is None:
                raise NotFoundError(f"Poll {poll_id} not found")
            if as_utc(poll.expires_at) < utcnow():
                raise ValidationFailure("Poll has ended")
            if any(vote.user_id == viewer_id for vote in poll.votes):
                raise ValidationFailure("You have already voted in this poll")

            chosen = list(dict.fromkeys(option_ids))
            known = {option.id for option in poll.options}
            if not chosen or any(option_id not in known for option_id in chosen):
                raise ValidationFailure("Unknown poll option")
            if not poll.allows_multiple_choices and len(chosen) > 1:
                raise ValidationFailure("This poll allows a single choice")

            for option_id in chosen:
                poll.votes.append(PollVote(option_id=option_id, user_id=viewer_id))
            self.session.commit()
            return RawPollWithVotes.model_validate(_poll_status_row(poll, viewer_id))

    async def insert_poll(
        self, post_id: str, draft: PollDraft, expires_at: datetime
    ) -> RawPollWithVotes:
        """Attach a poll to an existing post."""
        with self._guard("create poll"):
            post = self._require_post(post_id)
            if post.poll is not None:
                raise ValidationFailure(f"Post {post_id} already has a poll")

            poll = Poll(
                question=draft.question.strip(),
                allows_multiple_choices=draft.allows_multiple_choices,
                media=draft.media.model_dump() if draft.media else None,
                expires_at=expires_at,
                options=[
                    PollOption(label=label.strip(), position=position)
                    for position, label in enumerate(draft.options)
                ],
            )
            post.poll = poll
            self.session.commit()
            return RawPollWithVotes.model_validate(_poll_status_row(poll, None))

    # Helpers

    def _require_post(self, post_id: str) -> Post:
        post = self.session.get(Post, post_id)
        if post is None:
            raise NotFoundError(f"Post {post_id} not found")
        return post

    def _reaction_counts(self, post_ids: Sequence[str]) -> dict[str, dict[str, int]]:
        counts: dict[str, dict[str, int]] = defaultdict(dict)
        if not post_ids:
            return counts
        stmt = (
            select(PostReaction.post_id, PostReaction.type, func.count())
            .where(PostReaction.post_id.in_(list(post_ids)))
            .group_by(PostReaction.post_id, PostReaction.type)
        )
        for post_id, reaction, total in self.session.execute(stmt):
            counts[post_id][reaction] = int(total)
        return counts

    def _records(self, posts: Sequence[Post]) -> list[RawPostWithCounts]:
        ids = [post.id for post in posts]
        ids.extend(post.quoted_post_id for post in posts if post.quoted_post_id)
        counts = self._reaction_counts(ids)
        return coerce_records(_post_row(post, counts) for post in posts)


def _post_load_options() -> tuple[Any, ...]:
    return (
        selectinload(Post.poll).selectinload(Poll.options),
        selectinload(Post.poll).selectinload(Poll.votes),
        selectinload(Post.quoted_post),
    )


def _profile_row(profile: Profile) -> dict[str, Any]:
    return {
        "id": profile.id,
        "username": profile.username,
        "display_name": profile.display_name,
        "bio": profile.bio,
        "location": profile.location,
        "website": profile.website,
        "profile_picture_url": profile.profile_picture_url,
        "cover_photo_url": profile.cover_photo_url,
        "followers_count": profile.followers_count,
        "following_count": profile.following_count,
        "created_at": profile.created_at,
    }


def _poll_row(poll: Poll) -> dict[str, Any]:
    """Poll with raw vote rows; the mapper tallies them and finds the viewer's picks."""
    return {
        "id": poll.id,
        "post_id": poll.post_id,
        "question": poll.question,
        "allows_multiple_choices": poll.allows_multiple_choices,
        "media": poll.media,
        "expires_at": poll.expires_at,
        "created_at": poll.created_at,
        "options": [
            {"id": option.id, "label": option.label, "position": option.position}
            for option in poll.options
        ],
        "votes": [{"user_id": vote.user_id, "option_id": vote.option_id} for vote in poll.votes],
        "total_votes": len(poll.votes),
    }


def _poll_status_row(poll: Poll, viewer_id: str | None) -> dict[str, Any]:
    """Poll with pre-aggregated counts and the viewer's selection."""
    tally: dict[str, int] = defaultdict(int)
    selected: list[str] = []
    for vote in poll.votes:
        tally[vote.option_id] += 1
        if viewer_id is not None and vote.user_id == viewer_id:
            selected.append(vote.option_id)

    row = _poll_row(poll)
    row["options"] = [
        {**option, "votes": tally.get(option["id"], 0)} for option in row["options"]
    ]
    row["votes"] = None
    row["viewer_selected_options"] = selected
    return row


def _post_row(
    post: Post,
    counts: dict[str, dict[str, int]],
    *,
    include_quote: bool = True,
) -> dict[str, Any]:
    reactions = counts.get(post.id, {})
    quoted = None
    if include_quote and post.quoted_post is not None:
        quoted = _post_row(post.quoted_post, counts, include_quote=False)
    return {
        "id": post.id,
        "author_id": post.author_id,
        "user": _profile_row(post.author) if post.author is not None else None,
        "content": post.content,
        "media": post.media,
        "parent_post_id": post.parent_post_id,
        "is_reply": post.is_reply,
        "thread_id": post.thread_id,
        "sequence_number": post.sequence_number,
        "like_count": reactions.get("like", 0),
        "dislike_count": reactions.get("dislike", 0),
        "repost_count": post.repost_count,
        "quote_count": post.quote_count,
        "reply_count": post.reply_count,
        "poll": _poll_row(post.poll) if post.poll is not None else None,
        "quoted_post": quoted,
        "created_at": post.created_at,
        "updated_at": post.updated_at,
        "deleted_at": post.deleted_at,
    }
