"""Poll mapping, result gating and poll input validation."""

from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime, timedelta

from threadline.core.settings import settings
from threadline.schemas.poll import Poll, PollDraft, PollMedia, PollOption
from threadline.schemas.records import RawPollWithVotes
from threadline.services.errors import ValidationFailure

logger = logging.getLogger(__name__)

FINAL_RESULTS_LABEL = "Final results"


def map_poll(raw: RawPollWithVotes | None, viewer_id: str | None) -> Poll | None:
    """Convert a raw poll record into the viewer-relative :class:`Poll`.

    Options are ordered by ``position`` (missing positions sort as 0, ties keep
    their original order). When the record carries vote rows instead of
    pre-aggregated counts the votes are tallied per option. Percentages are
    deliberately not computed here; see :func:`option_percentages`.
    """
    if raw is None:
        return None

    tally: Counter[str] = Counter()
    if raw.votes is not None:
        tally.update(vote.option_id for vote in raw.votes)

    ordered = sorted(raw.options, key=lambda opt: opt.position or 0)
    options = [
        PollOption(
            id=opt.id,
            text=opt.label,
            votes=max(opt.votes if opt.votes is not None else tally[opt.id], 0),
        )
        for opt in ordered
    ]

    selected = _viewer_selection(raw, viewer_id, {opt.id for opt in options})
    if not raw.allows_multiple_choices and len(selected) > 1:
        logger.warning(
            "Poll %s is single-choice but viewer %s has %d selections; keeping the first",
            raw.id,
            viewer_id,
            len(selected),
        )
        selected = selected[:1]

    total = raw.total_votes if raw.total_votes is not None else sum(o.votes for o in options)

    return Poll(
        id=raw.id,
        question=raw.question,
        options=options,
        media=PollMedia(type=raw.media.type, url=raw.media.url) if raw.media else None,
        allows_multiple_choices=raw.allows_multiple_choices,
        viewer_selected_options=selected,
        total_votes=max(total, 0),
        expires_at=raw.expires_at,
        created_at=raw.created_at,
    )


def _viewer_selection(
    raw: RawPollWithVotes,
    viewer_id: str | None,
    known_options: set[str],
) -> list[str]:
    if viewer_id is None:
        return []
    if raw.votes is not None:
        chosen = [vote.option_id for vote in raw.votes if vote.user_id == viewer_id]
    else:
        chosen = list(raw.viewer_selected_options or [])
    return [option_id for option_id in dict.fromkeys(chosen) if option_id in known_options]


def is_expired(poll: Poll, now: datetime) -> bool:
    """True once ``expires_at`` lies strictly in the past."""
    return poll.expires_at < now


def show_results(poll: Poll, now: datetime) -> bool:
    """Results are visible after the viewer voted or once the poll expired."""
    return bool(poll.viewer_selected_options) or is_expired(poll, now)


def option_percentages(poll: Poll, now: datetime) -> dict[str, float] | None:
    """Per-option share of ``total_votes`` in percent, or None while results are hidden."""
    if not show_results(poll, now):
        return None
    if poll.total_votes <= 0:
        return {option.id: 0.0 for option in poll.options}
    return {
        option.id: round(option.votes / poll.total_votes * 100, 1) for option in poll.options
    }


def time_left_label(poll: Poll, now: datetime) -> str:
    """Human label for the remaining voting time, e.g. ``"2d left"``."""
    remaining = poll.expires_at - now
    if remaining.total_seconds() <= 0:
        return FINAL_RESULTS_LABEL
    if remaining.days > 0:
        return f"{remaining.days}d left"
    hours, rest = divmod(remaining.seconds, 3600)
    if hours > 0:
        return f"{hours}h left"
    return f"{rest // 60}m left"


def validate_poll_draft(draft: PollDraft, now: datetime) -> datetime:
    """Check a poll about to be attached to a new post.

    Returns:
        The poll's expiration time.

    Raises:
        ValidationFailure: For an empty question, blank options, an option
            count outside the configured range, or a zero duration.
    """
    if not draft.question.strip():
        raise ValidationFailure("Poll question cannot be empty")

    options = [option.strip() for option in draft.options]
    if len(options) < settings.min_poll_options:
        raise ValidationFailure(f"A poll needs at least {settings.min_poll_options} options")
    if len(options) > settings.max_poll_options:
        raise ValidationFailure(f"A poll allows at most {settings.max_poll_options} options")
    if any(not option for option in options):
        raise ValidationFailure("Poll options cannot be empty")

    duration = timedelta(
        days=draft.duration_days,
        hours=draft.duration_hours,
        minutes=draft.duration_minutes,
    )
    if duration <= timedelta(0):
        raise ValidationFailure("Poll duration must be positive")
    return now + duration


def validate_vote(poll: Poll, option_ids: list[str], now: datetime) -> list[str]:
    """Pre-network vote checks; returns the de-duplicated option ids.

    Raises:
        ValidationFailure: If the poll expired, the viewer already voted, no
            option or an unknown option was chosen, or several options were
            chosen on a single-choice poll.
    """
    if is_expired(poll, now):
        raise ValidationFailure("Poll has ended")
    if poll.viewer_selected_options:
        raise ValidationFailure("You have already voted in this poll")

    chosen = list(dict.fromkeys(option_ids))
    if not chosen:
        raise ValidationFailure("Select at least one option")
    known = {option.id for option in poll.options}
    unknown = [option_id for option_id in chosen if option_id not in known]
    if unknown:
        raise ValidationFailure(f"Unknown poll option: {unknown[0]}")
    if not poll.allows_multiple_choices and len(chosen) > 1:
        raise ValidationFailure("This poll allows a single choice")
    return chosen
