# tests/test_reactions.py
"""Tests for like/dislike transitions."""

from collections.abc import Callable

import pytest

from threadline.schemas.post import Post
from threadline.services.reactions import ReactionSnapshot, next_reaction, toggle_reaction

PostBuilder = Callable[..., Post]


@pytest.mark.parametrize(
    ("current", "pressed", "expected"),
    [
        (None, "like", "like"),
        (None, "dislike", "dislike"),
        ("like", "like", None),
        ("dislike", "dislike", None),
        ("like", "dislike", "dislike"),
        ("dislike", "like", "like"),
    ],
)
def test_next_reaction(current, pressed, expected) -> None:
    assert next_reaction(current, pressed) == expected


def test_like_from_neutral(view_post: PostBuilder) -> None:
    post = toggle_reaction(view_post("p", like_count=4), "like")

    assert (post.my_reaction, post.like_count, post.dislike_count) == ("like", 5, 0)


def test_like_again_clears(view_post: PostBuilder) -> None:
    post = toggle_reaction(view_post("p", like_count=5, my_reaction="like"), "like")

    assert (post.my_reaction, post.like_count) == (None, 4)


def test_switch_moves_one_count(view_post: PostBuilder) -> None:
    post = toggle_reaction(
        view_post("p", like_count=5, dislike_count=2, my_reaction="like"), "dislike"
    )

    assert (post.my_reaction, post.like_count, post.dislike_count) == ("dislike", 4, 3)


def test_counts_never_go_negative(view_post: PostBuilder) -> None:
    post = toggle_reaction(view_post("p", like_count=0, my_reaction="like"), "dislike")

    assert (post.like_count, post.dislike_count) == (0, 1)


def test_double_toggle_restores_state(view_post: PostBuilder) -> None:
    original = view_post("p", like_count=3, dislike_count=1, my_reaction="dislike")

    twice = toggle_reaction(toggle_reaction(original, "like"), "like")

    assert (twice.my_reaction, twice.like_count, twice.dislike_count) == (None, 3, 0)


def test_toggle_leaves_other_fields_alone(view_post: PostBuilder) -> None:
    original = view_post("p", content="keep me", reply_count=7)

    toggled = toggle_reaction(original, "like")

    assert toggled.content == "keep me"
    assert toggled.reply_count == 7
    assert original.my_reaction is None


def test_snapshot_restores_reaction_fields_only(view_post: PostBuilder) -> None:
    original = view_post("p", like_count=2, my_reaction="like")
    snapshot = ReactionSnapshot.of(original)
    changed = toggle_reaction(original, "dislike").model_copy(update={"content": "edited"})

    restored = snapshot.restore(changed)

    assert (restored.my_reaction, restored.like_count, restored.dislike_count) == ("like", 2, 0)
    assert restored.content == "edited"
