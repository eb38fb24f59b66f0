"""Thread sequencing: planning compositions and numbering thread posts.

A thread is a linear run of non-reply posts sharing a ``thread_id`` (the id of
the anchor post). Reply nesting through ``parent_post_id`` is independent of
thread membership.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass

from threadline.schemas.post import Post
from threadline.services.errors import ValidationFailure


@dataclass(frozen=True)
class PlannedPost:
    """Insert arguments for one draft of a composition."""

    content: str
    parent_post_id: str | None = None
    is_reply: bool = False
    thread_id: str | None = None
    sequence_number: int | None = None


@dataclass(frozen=True)
class CompositionPlan:
    """Ordered inserts for one composition action.

    When ``anchors_new_thread`` is set the first post carries no ``thread_id``
    at insert time; the caller sets it to the first post's own id afterwards and
    inserts the remaining posts with that id.
    """

    posts: tuple[PlannedPost, ...]
    anchors_new_thread: bool = False


@dataclass(frozen=True)
class ThreadTarget:
    """Where a continuation lands in an existing thread."""

    thread_id: str
    next_sequence: int
    anchors_existing: bool = False


def plan_composition(
    drafts: Sequence[str],
    *,
    reply_to: str | None = None,
    thread_id: str | None = None,
    start_sequence: int | None = None,
) -> CompositionPlan:
    """Lay out the inserts for a single post, a reply, a new thread or a continuation.

    Args:
        drafts: Post bodies in submission order.
        reply_to: Parent post id when the composition is a reply.
        thread_id: Existing thread to append to.
        start_sequence: Sequence number of the first appended post.

    Raises:
        ValidationFailure: For an empty composition, a multi-post reply, a
            reply that also targets a thread, or a continuation without a
            starting sequence.
    """
    if not drafts:
        raise ValidationFailure("A composition needs at least one post")

    if reply_to is not None:
        if thread_id is not None:
            raise ValidationFailure("A reply cannot continue a thread")
        if len(drafts) != 1:
            raise ValidationFailure("A reply must contain exactly one post")
        return CompositionPlan(
            posts=(PlannedPost(content=drafts[0], parent_post_id=reply_to, is_reply=True),)
        )

    if thread_id is not None:
        if start_sequence is None or start_sequence < 1:
            raise ValidationFailure("Continuing a thread requires a starting sequence number")
        return CompositionPlan(
            posts=tuple(
                PlannedPost(content=body, thread_id=thread_id, sequence_number=start_sequence + i)
                for i, body in enumerate(drafts)
            )
        )

    if len(drafts) == 1:
        return CompositionPlan(posts=(PlannedPost(content=drafts[0]),))

    return CompositionPlan(
        posts=tuple(
            PlannedPost(content=body, sequence_number=i + 1) for i, body in enumerate(drafts)
        ),
        anchors_new_thread=True,
    )


def continuation_target(post: Post, thread_total: int | None = None) -> ThreadTarget:
    """Return the thread and next sequence number for continuing from ``post``.

    A post that is not yet part of a thread becomes the anchor of a new one at
    position 1, so the continuation starts at 2. Otherwise the continuation
    follows ``thread_total`` when it is known and ``post`` itself when not.
    """
    if post.thread_id is None:
        return ThreadTarget(thread_id=post.id, next_sequence=2, anchors_existing=True)
    last = thread_total if thread_total is not None else post.sequence_number or 0
    return ThreadTarget(thread_id=post.thread_id, next_sequence=last + 1)


def distinct_thread_ids(posts: Iterable[Post]) -> list[str]:
    """Thread ids present in ``posts`` in first-seen order."""
    seen: dict[str, None] = {}
    for post in posts:
        if post.thread_id is not None:
            seen.setdefault(post.thread_id, None)
    return list(seen)


def attach_thread_totals(posts: Iterable[Post], totals: Mapping[str, int]) -> list[Post]:
    """Return copies of ``posts`` with ``thread_total`` filled from ``totals``.

    Replies never carry a total; posts outside any thread keep ``None``.
    """
    result: list[Post] = []
    for post in posts:
        total = None
        if post.thread_id is not None and not post.is_reply:
            total = totals.get(post.thread_id)
        if total != post.thread_total:
            post = post.model_copy(update={"thread_total": total})
        result.append(post)
    return result


def thread_stack(posts: Iterable[Post], thread_id: str) -> list[Post]:
    """Non-reply members of ``thread_id`` ordered by sequence number."""
    members = [p for p in posts if p.thread_id == thread_id and not p.is_reply]
    return sorted(members, key=lambda p: p.sequence_number or 0)
