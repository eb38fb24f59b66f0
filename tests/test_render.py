# tests/test_render.py
"""Tests for post card rendering."""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import pytest

from threadline.schemas.poll import Poll, PollOption
from threadline.schemas.post import Media, Post
from threadline.services.render import (
    TOMBSTONE_TEXT,
    count_label,
    render_forest,
    render_poll_card,
    render_post_card,
    sequence_badge,
)
from threadline.services.tree import build_thread_tree

PostBuilder = Callable[..., Post]
NOW = datetime(2026, 1, 5, 14, 0, tzinfo=UTC)


def _poll(**overrides) -> Poll:
    data = {
        "id": "poll",
        "question": "Pick",
        "options": [PollOption(id="a", text="A", votes=1200), PollOption(id="b", text="B", votes=34)],
        "total_votes": 1234,
        "expires_at": NOW + timedelta(days=2),
    }
    data.update(overrides)
    return Poll(**data)


@pytest.mark.parametrize(("count", "label"), [(0, ""), (1, "1"), (99, "99"), (100, "99+")])
def test_count_label(count: int, label: str) -> None:
    assert count_label(count) == label


def test_sequence_badge_rules(view_post: PostBuilder) -> None:
    assert sequence_badge(view_post("a", thread_id="T", sequence_number=2, thread_total=5)) == "2/5"
    assert sequence_badge(view_post("b", thread_id="T", sequence_number=1, thread_total=1)) is None
    assert sequence_badge(view_post("c", thread_id="T", sequence_number=1)) is None
    assert sequence_badge(view_post("d")) is None
    assert (
        sequence_badge(view_post("e", "a", thread_id="T", sequence_number=3, thread_total=5))
        is None
    )


def test_regular_card_fields(view_post: PostBuilder) -> None:
    post = view_post(
        "p",
        author_id="u1",
        content="hi there",
        like_count=150,
        reply_count=2,
        my_reaction="like",
        is_edited=True,
        media=[Media(url="https://img.example/a.png")],
    )

    card = render_post_card(post, "u1", now=NOW)

    assert card.variant == "regular"
    assert card.content == "hi there"
    assert card.relative_time == "2h"
    assert card.absolute_time == "12:00 PM · Jan 5, 2026"
    assert card.is_owner
    assert card.liked and not card.disliked
    assert card.counts.likes == "99+"
    assert card.counts.replies == "2"
    assert card.counts.dislikes == ""
    assert card.is_edited
    assert len(card.media) == 1


def test_thread_card_marks_last_post(view_post: PostBuilder) -> None:
    card = render_post_card(
        view_post("p", thread_id="T", sequence_number=3, thread_total=3), now=NOW
    )

    assert card.variant == "thread"
    assert card.sequence_badge == "3/3"
    assert card.is_thread_end


def test_tombstone_hides_content(view_post: PostBuilder) -> None:
    post = view_post(
        "p",
        content="secret",
        is_deleted=True,
        is_edited=True,
        poll=_poll(),
        media=[Media(url="https://img.example/a.png")],
        quoted_post=view_post("q"),
    )

    card = render_post_card(post, now=NOW)

    assert card.is_tombstone
    assert card.content == TOMBSTONE_TEXT
    assert card.poll is None
    assert card.quoted is None
    assert card.media == []
    assert not card.is_edited


def test_quote_renders_one_level_deeper(view_post: PostBuilder) -> None:
    inner = view_post("q", content="quoted", quoted_post=view_post("qq"))

    card = render_post_card(view_post("p", quoted_post=inner), now=NOW)

    assert card.quoted is not None
    assert card.quoted.depth == 1
    assert card.quoted.content == "quoted"
    assert card.quoted.quoted is None


def test_feed_view_collapses_replies(view_post: PostBuilder) -> None:
    forest = build_thread_tree([view_post("r"), view_post("a", "r"), view_post("b", "r")])

    (card,) = render_forest(forest, now=NOW)

    assert card.children == []
    assert card.collapsed_label == "2 replies"


def test_detail_view_nests_until_depth_limit(view_post: PostBuilder) -> None:
    posts = [view_post("n0")]
    posts += [view_post(f"n{i}", f"n{i - 1}") for i in range(1, 5)]
    (root,) = build_thread_tree(posts)

    card = render_post_card(root, detail_view=True, max_depth=2, now=NOW)

    level1 = card.children[0]
    level2 = level1.children[0]
    assert [card.depth, level1.depth, level2.depth] == [0, 1, 2]
    assert level2.children == []
    assert level2.collapsed_label == "Show 1 more reply"
    assert level2.collapsed_nesting
    assert not level1.collapsed_nesting


def test_poll_card_hides_counts_before_voting() -> None:
    card = render_poll_card(_poll(), NOW)

    assert not card.show_results
    assert card.can_vote
    assert card.time_left == "2d left"
    assert all(option.votes is None and option.percentage is None for option in card.options)
    assert card.total_votes_label == ""


def test_poll_card_shows_results_after_voting() -> None:
    card = render_poll_card(_poll(viewer_selected_options=["a"]), NOW)

    assert card.show_results
    assert not card.can_vote
    assert card.total_votes_label == "1,234 votes"
    assert [o.selected for o in card.options] == [True, False]
    assert card.options[0].percentage == 97.2


def test_anonymous_viewer_owns_nothing(view_post: PostBuilder) -> None:
    card = render_post_card(view_post("p", author_id="u1"), None, now=NOW)

    assert not card.is_owner
