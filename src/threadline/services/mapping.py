"""Conversion of raw store records into canonical view models.

Records are validated here so the tree and feed logic only ever see typed
:class:`~threadline.schemas.post.Post` values. A record that cannot be
validated is skipped and a record missing its author is patched with a
placeholder user, so one bad row never takes the whole feed down.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from threadline.core.settings import settings
from threadline.schemas.post import Media, Post, ReactionType
from threadline.schemas.records import RawPostWithCounts, RawProfile
from threadline.schemas.user import User
from threadline.services.polls import map_poll

logger = logging.getLogger(__name__)

UNKNOWN_AUTHOR_ID = "unknown"


def placeholder_user(user_id: str | None, created_at: datetime) -> User:
    """Stand-in author for posts whose profile row is missing."""
    return User(
        id=user_id or UNKNOWN_AUTHOR_ID,
        username=settings.placeholder_username,
        display_name=settings.placeholder_display_name,
        created_at=created_at,
    )


def to_user(profile: RawProfile, fallback_created_at: datetime) -> User:
    """Map a profile record, filling absent names and counts with defaults."""
    username = profile.username or settings.placeholder_username
    return User(
        id=profile.id,
        username=username,
        display_name=profile.display_name or username,
        bio=profile.bio,
        location=profile.location,
        website=profile.website,
        profile_picture_url=profile.profile_picture_url,
        cover_photo_url=profile.cover_photo_url,
        followers_count=max(profile.followers_count or 0, 0),
        following_count=max(profile.following_count or 0, 0),
        created_at=profile.created_at or fallback_created_at,
    )


def _count(value: int | None) -> int:
    return max(value or 0, 0)


def tombstone(post: Post) -> Post:
    """Mark ``post`` deleted and drop everything the author wrote in it."""
    return post.model_copy(
        update={"is_deleted": True, "content": "", "media": [], "poll": None, "quoted_post": None}
    )


def to_post(
    raw: RawPostWithCounts,
    viewer_id: str | None = None,
    reactions: Mapping[str, ReactionType] | None = None,
    thread_totals: Mapping[str, int] | None = None,
    *,
    include_quote: bool = True,
) -> Post:
    """Build the canonical post for ``raw`` as seen by ``viewer_id``.

    Args:
        raw: Validated post record.
        viewer_id: Signed-in viewer, or None when anonymous.
        reactions: The viewer's reaction per post id.
        thread_totals: Non-reply member count per thread id.
        include_quote: Embed ``raw.quoted_post``. Quoted posts are embedded
            one level deep only, so the nested call passes False.
    """
    if raw.user is not None:
        user = to_user(raw.user, raw.created_at)
    else:
        logger.warning("Post %s has no author profile; using placeholder", raw.id)
        user = placeholder_user(raw.author_id, raw.created_at)

    is_reply = raw.is_reply if raw.is_reply is not None else raw.parent_post_id is not None
    thread_total = None
    if raw.thread_id is not None and not is_reply and thread_totals is not None:
        thread_total = thread_totals.get(raw.thread_id)

    quoted = None
    if include_quote and raw.quoted_post is not None:
        quoted = to_post(
            raw.quoted_post,
            viewer_id,
            reactions,
            thread_totals,
            include_quote=False,
        )

    post = Post(
        id=raw.id,
        user=user,
        content=raw.content or "",
        created_at=raw.created_at,
        is_deleted=raw.deleted_at is not None,
        is_edited=raw.updated_at is not None,
        parent_post_id=raw.parent_post_id,
        is_reply=is_reply,
        thread_id=raw.thread_id,
        sequence_number=None if is_reply else raw.sequence_number,
        thread_total=thread_total,
        like_count=_count(raw.like_count),
        dislike_count=_count(raw.dislike_count),
        repost_count=_count(raw.repost_count),
        quote_count=_count(raw.quote_count),
        reply_count=_count(raw.reply_count),
        my_reaction=(reactions or {}).get(raw.id),
        poll=map_poll(raw.poll, viewer_id),
        media=[Media(type=item.type, url=item.url) for item in raw.media or []],
        quoted_post=quoted,
    )
    return tombstone(post) if post.is_deleted else post


def coerce_records(rows: Iterable[Any]) -> list[RawPostWithCounts]:
    """Validate raw rows, skipping (and logging) the ones that do not fit."""
    records: list[RawPostWithCounts] = []
    for row in rows:
        if isinstance(row, RawPostWithCounts):
            records.append(row)
            continue
        try:
            records.append(RawPostWithCounts.model_validate(row))
        except ValidationError as exc:
            row_id = row.get("id") if isinstance(row, Mapping) else getattr(row, "id", None)
            logger.warning(
                "Skipping malformed post record %s: %d validation error(s)",
                row_id,
                exc.error_count(),
            )
    return records
