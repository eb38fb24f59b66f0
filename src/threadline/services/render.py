"""Card rendering for posts.

:func:`render_post_card` turns a post (with its nested replies) into a
:class:`PostCard` display model. The same function renders quoted posts and
child replies one level deeper; recursion stops at ``max_depth`` in the detail
view and right away in the feed view, where replies collapse into a count.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from threadline.core.settings import settings
from threadline.db.time import utcnow
from threadline.schemas.post import Media, Post
from threadline.schemas.poll import Poll
from threadline.services.polls import option_percentages, show_results, time_left_label
from threadline.utils.time import format_absolute_time, format_relative_time

CardVariant = Literal["reply", "thread", "regular"]

TOMBSTONE_TEXT = "This post was deleted"


class PollOptionCard(BaseModel):
    id: str
    text: str
    selected: bool = False
    votes: int | None = None
    percentage: float | None = None


class PollCard(BaseModel):
    """Poll as displayed; vote counts stay hidden until results may be shown."""

    id: str
    question: str
    options: list[PollOptionCard]
    allows_multiple_choices: bool
    show_results: bool
    can_vote: bool
    time_left: str
    total_votes_label: str = ""


class ActionCounts(BaseModel):
    replies: str = ""
    likes: str = ""
    dislikes: str = ""
    reposts: str = ""


class PostCard(BaseModel):
    """Display model for one post and, recursively, its quote and replies."""

    id: str
    depth: int = 0
    variant: CardVariant
    is_tombstone: bool = False
    content: str = ""
    author_id: str
    author_name: str
    author_username: str
    author_avatar_url: str | None = None
    relative_time: str
    absolute_time: str
    is_edited: bool = False
    is_owner: bool = False
    liked: bool = False
    disliked: bool = False
    counts: ActionCounts = Field(default_factory=ActionCounts)
    sequence_badge: str | None = None
    is_thread_end: bool = False
    media: list[Media] = Field(default_factory=list)
    poll: PollCard | None = None
    quoted: PostCard | None = None
    children: list[PostCard] = Field(default_factory=list)
    collapsed_label: str | None = None
    collapsed_nesting: bool = False


def count_label(count: int) -> str:
    """Action count text: empty for zero, capped at ``"99+"``."""
    if count <= 0:
        return ""
    return "99+" if count > 99 else str(count)


def _replies_noun(count: int) -> str:
    return "reply" if count == 1 else "replies"


def replies_label(count: int) -> str:
    return f"{count} {_replies_noun(count)}"


def card_variant(post: Post) -> CardVariant:
    if post.is_reply:
        return "reply"
    if post.thread_id is not None:
        return "thread"
    return "regular"


def sequence_badge(post: Post) -> str | None:
    """``"n/N"`` for non-reply thread posts in threads of more than one post."""
    if post.is_reply or post.thread_id is None or not post.sequence_number:
        return None
    if not post.thread_total or post.thread_total <= 1:
        return None
    return f"{post.sequence_number}/{post.thread_total}"


def render_poll_card(poll: Poll, now: datetime) -> PollCard:
    visible = show_results(poll, now)
    percentages = option_percentages(poll, now) or {}
    selected = set(poll.viewer_selected_options)
    return PollCard(
        id=poll.id,
        question=poll.question,
        options=[
            PollOptionCard(
                id=option.id,
                text=option.text,
                selected=option.id in selected,
                votes=option.votes if visible else None,
                percentage=percentages.get(option.id),
            )
            for option in poll.options
        ],
        allows_multiple_choices=poll.allows_multiple_choices,
        show_results=visible,
        can_vote=not visible,
        time_left=time_left_label(poll, now),
        total_votes_label=f"{poll.total_votes:,} votes" if visible else "",
    )


def render_post_card(
    post: Post,
    viewer_id: str | None = None,
    *,
    depth: int = 0,
    max_depth: int | None = None,
    detail_view: bool = False,
    now: datetime | None = None,
    embedded: bool = False,
) -> PostCard:
    """Render ``post`` at ``depth``.

    Args:
        post: Post to render, with ``child_posts`` already nested.
        viewer_id: Signed-in viewer, used for ownership and reaction state.
        depth: Nesting level of this card; quotes and replies render at ``depth + 1``.
        max_depth: Detail-view nesting limit (``MAX_RENDER_DEPTH`` by default).
        detail_view: Nest replies instead of collapsing them into a count.
        now: Reference time for relative timestamps and poll state.
        embedded: Render as a quoted post, without its own quote or replies.
    """
    limit = settings.max_render_depth if max_depth is None else max_depth
    now = now or utcnow()
    deleted = post.is_deleted

    card = PostCard(
        id=post.id,
        depth=depth,
        variant=card_variant(post),
        is_tombstone=deleted,
        content=TOMBSTONE_TEXT if deleted else post.content,
        author_id=post.user.id,
        author_name=post.user.display_name,
        author_username=post.user.username,
        author_avatar_url=post.user.profile_picture_url,
        relative_time=format_relative_time(post.created_at, now),
        absolute_time=format_absolute_time(post.created_at),
        is_edited=post.is_edited and not deleted,
        is_owner=viewer_id is not None and viewer_id == post.user.id,
        liked=post.my_reaction == "like",
        disliked=post.my_reaction == "dislike",
        counts=ActionCounts(
            replies=count_label(post.reply_count),
            likes=count_label(post.like_count),
            dislikes=count_label(post.dislike_count),
            reposts=count_label(post.repost_count),
        ),
        sequence_badge=sequence_badge(post),
        is_thread_end=(
            post.sequence_number is not None and post.sequence_number == post.thread_total
        ),
        collapsed_nesting=depth >= limit,
    )
    if deleted:
        return _with_children(card, post, viewer_id, depth, limit, detail_view, now, embedded)

    card.media = list(post.media)
    if post.poll is not None:
        card.poll = render_poll_card(post.poll, now)
    if post.quoted_post is not None and not embedded:
        card.quoted = render_post_card(
            post.quoted_post,
            viewer_id,
            depth=depth + 1,
            max_depth=limit,
            now=now,
            embedded=True,
        )
    return _with_children(card, post, viewer_id, depth, limit, detail_view, now, embedded)


def _with_children(
    card: PostCard,
    post: Post,
    viewer_id: str | None,
    depth: int,
    limit: int,
    detail_view: bool,
    now: datetime,
    embedded: bool,
) -> PostCard:
    children = post.child_posts
    if embedded or not children:
        return card
    if not detail_view:
        card.collapsed_label = replies_label(len(children))
        return card
    if depth >= limit:
        card.collapsed_label = f"Show {len(children)} more {_replies_noun(len(children))}"
        return card
    card.children = [
        render_post_card(
            child,
            viewer_id,
            depth=depth + 1,
            max_depth=limit,
            detail_view=True,
            now=now,
        )
        for child in children
    ]
    return card


def render_forest(
    forest: list[Post],
    viewer_id: str | None = None,
    *,
    detail_view: bool = False,
    now: datetime | None = None,
) -> list[PostCard]:
    """Render every root of a forest."""
    now = now or utcnow()
    return [
        render_post_card(post, viewer_id, detail_view=detail_view, now=now) for post in forest
    ]
