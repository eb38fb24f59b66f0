# tests/test_threads.py
"""Tests for composition planning and thread numbering."""

from collections.abc import Callable

import pytest

from threadline.schemas.post import Post
from threadline.services.errors import ValidationFailure
from threadline.services.threads import (
    attach_thread_totals,
    continuation_target,
    distinct_thread_ids,
    plan_composition,
    thread_stack,
)

PostBuilder = Callable[..., Post]


def test_single_post_is_not_threaded() -> None:
    plan = plan_composition(["just one"])

    assert not plan.anchors_new_thread
    (post,) = plan.posts
    assert post.thread_id is None
    assert post.sequence_number is None
    assert not post.is_reply


def test_multi_post_composition_starts_a_thread() -> None:
    plan = plan_composition(["one", "two", "three"])

    assert plan.anchors_new_thread
    assert [p.sequence_number for p in plan.posts] == [1, 2, 3]
    assert all(p.thread_id is None for p in plan.posts)
    assert [p.content for p in plan.posts] == ["one", "two", "three"]


def test_continuation_numbers_from_start_sequence() -> None:
    plan = plan_composition(["four", "five"], thread_id="T", start_sequence=4)

    assert not plan.anchors_new_thread
    assert [(p.thread_id, p.sequence_number) for p in plan.posts] == [("T", 4), ("T", 5)]


def test_reply_carries_parent_and_no_sequence() -> None:
    plan = plan_composition(["nice"], reply_to="P")

    (reply,) = plan.posts
    assert reply.parent_post_id == "P"
    assert reply.is_reply
    assert reply.thread_id is None
    assert reply.sequence_number is None


@pytest.mark.parametrize(
    ("drafts", "kwargs"),
    [
        ([], {}),
        (["a", "b"], {"reply_to": "P"}),
        (["a"], {"reply_to": "P", "thread_id": "T"}),
        (["a"], {"thread_id": "T"}),
        (["a"], {"thread_id": "T", "start_sequence": 0}),
    ],
)
def test_invalid_compositions_are_rejected(drafts: list[str], kwargs: dict) -> None:
    with pytest.raises(ValidationFailure):
        plan_composition(drafts, **kwargs)


def test_continuation_target_for_threaded_post(view_post: PostBuilder) -> None:
    post = view_post("p3", thread_id="T", sequence_number=3)

    target = continuation_target(post)

    assert (target.thread_id, target.next_sequence) == ("T", 4)
    assert not target.anchors_existing


def test_continuation_target_follows_thread_total(view_post: PostBuilder) -> None:
    anchor = view_post("T", thread_id="T", sequence_number=1)

    target = continuation_target(anchor, thread_total=5)

    assert (target.thread_id, target.next_sequence) == ("T", 6)


def test_continuation_target_self_anchors_unthreaded_post(view_post: PostBuilder) -> None:
    target = continuation_target(view_post("solo"))

    assert (target.thread_id, target.next_sequence) == ("solo", 2)
    assert target.anchors_existing


def test_attach_thread_totals_skips_replies_and_unthreaded(view_post: PostBuilder) -> None:
    posts = [
        view_post("t1", thread_id="T", sequence_number=1),
        view_post("r", "t1", thread_id="T"),
        view_post("solo"),
    ]

    t1, reply, solo = attach_thread_totals(posts, {"T": 2})

    assert t1.thread_total == 2
    assert reply.thread_total is None
    assert solo.thread_total is None
    assert solo is posts[2]


def test_distinct_thread_ids_in_first_seen_order(view_post: PostBuilder) -> None:
    posts = [
        view_post("a", thread_id="T2"),
        view_post("b"),
        view_post("c", thread_id="T1"),
        view_post("d", thread_id="T2"),
    ]

    assert distinct_thread_ids(posts) == ["T2", "T1"]


def test_thread_stack_orders_members_by_sequence(view_post: PostBuilder) -> None:
    posts = [
        view_post("third", thread_id="T", sequence_number=3),
        view_post("first", thread_id="T", sequence_number=1),
        view_post("reply", "first", thread_id="T"),
        view_post("second", thread_id="T", sequence_number=2),
        view_post("elsewhere", thread_id="U", sequence_number=1),
    ]

    assert [p.id for p in thread_stack(posts, "T")] == ["first", "second", "third"]
