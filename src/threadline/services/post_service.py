"""Service-level helpers for composing and editing posts."""
from __future__ import annotations

import logging
from datetime import datetime

from threadline.core.settings import settings
from threadline.db.time import utcnow
from threadline.repositories.store import RemoteStore
from threadline.schemas.post import ComposeRequest, Post
from threadline.schemas.records import RawPostWithCounts
from threadline.services.errors import NotFoundError, PermissionDenied, ValidationFailure
from threadline.services.feed import FeedAssembler
from threadline.services.mapping import to_post
from threadline.services.polls import validate_poll_draft
from threadline.services.session import ViewerSession
from threadline.services.threads import continuation_target, plan_composition

__all__ = ["compose", "edit_post", "validate_content"]

logger = logging.getLogger(__name__)


def validate_content(content: str) -> str:
    """Return ``content`` stripped, or raise if it is empty or too long."""
    body = content.strip()
    if not body:
        raise ValidationFailure("Post cannot be empty")
    if len(body) > settings.max_post_characters:
        raise ValidationFailure(
            f"Post exceeds {settings.max_post_characters} characters"
        )
    return body


async def compose(
    store: RemoteStore,
    session: ViewerSession,
    request: ComposeRequest,
    now: datetime | None = None,
) -> list[Post]:
    """Publish a single post, a reply, a new thread or a thread continuation.

    All drafts and the optional poll are validated before the first insert.
    Media, the quoted post and the poll attach to the first post.

    Returns:
        The created posts in submission order.

    Raises:
        AuthenticationRequired: For anonymous sessions.
        ValidationFailure: For invalid drafts, poll or composition shape.
        NotFoundError: If the parent, quoted post or thread anchor is missing.
        PermissionDenied: When continuing another author's thread.
    """
    viewer_id = session.require_viewer()
    bodies = [validate_content(draft) for draft in request.drafts]
    expires_at = None
    if request.poll is not None:
        expires_at = validate_poll_draft(request.poll, now or utcnow())

    if request.reply_to is not None and await store.get_post(request.reply_to) is None:
        raise NotFoundError(f"Post {request.reply_to} not found")

    start_sequence = request.start_sequence
    if request.thread_id is not None and request.reply_to is None:
        start_sequence = await _prepare_continuation(
            store, viewer_id, request.thread_id, start_sequence
        )

    plan = plan_composition(
        bodies,
        reply_to=request.reply_to,
        thread_id=request.thread_id,
        start_sequence=start_sequence,
    )

    created: list[RawPostWithCounts] = []
    anchor_id = request.thread_id
    for index, planned in enumerate(plan.posts):
        first = index == 0
        record = await store.insert_post(
            viewer_id,
            planned.content,
            parent_post_id=planned.parent_post_id,
            is_reply=planned.is_reply,
            thread_id=planned.thread_id or anchor_id,
            sequence_number=planned.sequence_number,
            quoted_post_id=request.quoted_post_id if first else None,
            media=request.media if first else (),
        )
        if first and plan.anchors_new_thread:
            await store.update_post_thread_id(record.id, record.id)
            anchor_id = record.id
        created.append(record)

    if request.poll is not None and expires_at is not None:
        await store.insert_poll(created[0].id, request.poll, expires_at)

    logger.info("Viewer %s published %d post(s)", viewer_id, len(created))
    refreshed = [await store.get_post(record.id) for record in created]
    return await FeedAssembler(store, session).to_posts([r for r in refreshed if r is not None])


async def _prepare_continuation(
    store: RemoteStore,
    viewer_id: str,
    thread_id: str,
    start_sequence: int | None,
) -> int:
    """Make sure ``thread_id`` names a thread anchor and pick the next sequence.

    An anchor that was never part of a thread becomes position 1 of a new one.
    """
    anchor = await store.get_post(thread_id)
    if anchor is None:
        raise NotFoundError(f"Post {thread_id} not found")
    if anchor.author_id != viewer_id:
        raise PermissionDenied("You can only continue your own threads")
    if anchor.thread_id not in (None, thread_id):
        raise ValidationFailure(f"Post {thread_id} is not a thread anchor")

    total = None
    if anchor.thread_id is not None and start_sequence is None:
        total = await store.count_thread_posts(thread_id)
    target = continuation_target(to_post(anchor), total)
    if target.anchors_existing:
        await store.update_post_thread_id(anchor.id, anchor.id, 1)
    return start_sequence or target.next_sequence


async def edit_post(
    store: RemoteStore,
    session: ViewerSession,
    post_id: str,
    content: str,
) -> Post:
    """Replace the text of one of the viewer's posts; it then renders as edited."""
    viewer_id = session.require_viewer()
    body = validate_content(content)

    record = await store.get_post(post_id)
    if record is None:
        raise NotFoundError(f"Post {post_id} not found")
    if record.author_id != viewer_id:
        raise PermissionDenied("You can only edit your own posts")
    if record.deleted_at is not None:
        raise ValidationFailure("Deleted posts cannot be edited")

    await store.update_post(post_id, body)
    updated = await store.get_post(post_id)
    if updated is None:
        raise NotFoundError(f"Post {post_id} not found")
    return (await FeedAssembler(store, session).to_posts([updated]))[0]
