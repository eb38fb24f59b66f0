# tests/test_post_service.py
"""Tests for composing and editing posts against the SQL store."""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import pytest

from threadline.models import Post, Profile
from threadline.repositories.sql_store import SqlRemoteStore
from threadline.repositories.store import PostFilter
from threadline.schemas.poll import PollDraft
from threadline.schemas.post import ComposeRequest, Media
from threadline.services.errors import (
    AuthenticationRequired,
    NotFoundError,
    PermissionDenied,
    ValidationFailure,
)
from threadline.services.post_service import compose, edit_post, validate_content
from threadline.services.session import ANONYMOUS, ViewerSession


@pytest.fixture()
def viewer(author: Profile) -> ViewerSession:
    return ViewerSession(viewer_id=author.id)


def test_validate_content_strips_and_limits() -> None:
    assert validate_content("  hi  ") == "hi"
    assert validate_content("x" * 280) == "x" * 280
    with pytest.raises(ValidationFailure, match="cannot be empty"):
        validate_content("   ")
    with pytest.raises(ValidationFailure, match="exceeds 280"):
        validate_content("x" * 281)


@pytest.mark.asyncio
async def test_single_post(store: SqlRemoteStore, viewer: ViewerSession) -> None:
    (post,) = await compose(
        store,
        viewer,
        ComposeRequest(drafts=["  hello world "], media=[Media(url="https://img.example/1.png")]),
    )

    assert post.content == "hello world"
    assert post.user.id == viewer.viewer_id
    assert post.thread_id is None
    assert post.sequence_number is None
    assert [m.url for m in post.media] == ["https://img.example/1.png"]


@pytest.mark.asyncio
async def test_new_thread_is_anchored_on_first_post(
    store: SqlRemoteStore, viewer: ViewerSession
) -> None:
    posts = await compose(store, viewer, ComposeRequest(drafts=["one", "two", "three"]))

    anchor_id = posts[0].id
    assert [p.thread_id for p in posts] == [anchor_id] * 3
    assert [p.sequence_number for p in posts] == [1, 2, 3]
    assert [p.thread_total for p in posts] == [3, 3, 3]


@pytest.mark.asyncio
async def test_continuing_a_thread_appends_in_order(
    store: SqlRemoteStore, viewer: ViewerSession
) -> None:
    first = await compose(store, viewer, ComposeRequest(drafts=["one", "two"]))
    anchor_id = first[0].id

    more = await compose(
        store, viewer, ComposeRequest(drafts=["three", "four"], thread_id=anchor_id)
    )

    assert [(p.thread_id, p.sequence_number) for p in more] == [(anchor_id, 3), (anchor_id, 4)]
    assert more[-1].thread_total == 4


@pytest.mark.asyncio
async def test_continuing_a_single_post_turns_it_into_a_thread(
    store: SqlRemoteStore,
    viewer: ViewerSession,
    author: Profile,
    make_post: Callable[..., Post],
) -> None:
    solo = make_post(author, "standalone")

    added = await compose(store, viewer, ComposeRequest(drafts=["follow-up"], thread_id=solo.id))
    anchor = await store.get_post(solo.id)

    assert (anchor.thread_id, anchor.sequence_number) == (solo.id, 1)
    assert [(p.thread_id, p.sequence_number) for p in added] == [(solo.id, 2)]


@pytest.mark.asyncio
async def test_continuation_checks(
    store: SqlRemoteStore,
    viewer: ViewerSession,
    author: Profile,
    other_author: Profile,
    make_post: Callable[..., Post],
) -> None:
    foreign = make_post(other_author, "not yours")
    anchor = make_post(author, "anchor")
    member = make_post(author, "member", thread_id=anchor.id, sequence_number=2)

    with pytest.raises(NotFoundError):
        await compose(store, viewer, ComposeRequest(drafts=["x"], thread_id="missing"))
    with pytest.raises(PermissionDenied):
        await compose(store, viewer, ComposeRequest(drafts=["x"], thread_id=foreign.id))
    with pytest.raises(ValidationFailure, match="not a thread anchor"):
        await compose(store, viewer, ComposeRequest(drafts=["x"], thread_id=member.id))


@pytest.mark.asyncio
async def test_reply_bumps_parent_reply_count(
    store: SqlRemoteStore,
    viewer: ViewerSession,
    other_author: Profile,
    make_post: Callable[..., Post],
) -> None:
    parent = make_post(other_author, "parent", thread_id="T", sequence_number=1)

    (reply,) = await compose(store, viewer, ComposeRequest(drafts=["agreed"], reply_to=parent.id))

    assert reply.parent_post_id == parent.id
    assert reply.is_reply
    assert reply.thread_id is None
    assert reply.sequence_number is None
    assert (await store.get_post(parent.id)).reply_count == 1


@pytest.mark.asyncio
async def test_reply_to_unknown_post_is_rejected(store: SqlRemoteStore, viewer: ViewerSession) -> None:
    with pytest.raises(NotFoundError):
        await compose(store, viewer, ComposeRequest(drafts=["x"], reply_to="missing"))


@pytest.mark.asyncio
async def test_multi_post_reply_is_rejected(
    store: SqlRemoteStore,
    viewer: ViewerSession,
    author: Profile,
    make_post: Callable[..., Post],
) -> None:
    parent = make_post(author)

    with pytest.raises(ValidationFailure):
        await compose(store, viewer, ComposeRequest(drafts=["a", "b"], reply_to=parent.id))


@pytest.mark.asyncio
async def test_quote_and_poll_attach_to_first_post(
    store: SqlRemoteStore,
    viewer: ViewerSession,
    other_author: Profile,
    make_post: Callable[..., Post],
) -> None:
    quoted = make_post(other_author, "quote me")
    now = datetime.now(UTC)
    request = ComposeRequest(
        drafts=["first", "second"],
        quoted_post_id=quoted.id,
        poll=PollDraft(question="Agree?", options=["Yes", "No"], duration_days=0, duration_hours=6),
    )

    first, second = await compose(store, viewer, request, now=now)

    assert first.quoted_post is not None
    assert first.quoted_post.id == quoted.id
    assert first.poll is not None
    assert [o.text for o in first.poll.options] == ["Yes", "No"]
    assert first.poll.expires_at == now + timedelta(hours=6)
    assert second.quoted_post is None
    assert second.poll is None


@pytest.mark.asyncio
async def test_nothing_is_written_when_a_draft_is_invalid(
    store: SqlRemoteStore,
    viewer: ViewerSession,
    author: Profile,
) -> None:
    with pytest.raises(ValidationFailure):
        await compose(store, viewer, ComposeRequest(drafts=["fine", "  "]))
    with pytest.raises(ValidationFailure):
        await compose(
            store,
            viewer,
            ComposeRequest(drafts=["fine"], poll=PollDraft(question="?", options=["only"])),
        )

    assert await store.list_posts(PostFilter(author_id=author.id, include_deleted=True)) == []


@pytest.mark.asyncio
async def test_anonymous_viewer_cannot_compose(store: SqlRemoteStore) -> None:
    with pytest.raises(AuthenticationRequired):
        await compose(store, ANONYMOUS, ComposeRequest(drafts=["hi"]))


@pytest.mark.asyncio
async def test_edit_own_post_marks_it_edited(
    store: SqlRemoteStore,
    viewer: ViewerSession,
    author: Profile,
    make_post: Callable[..., Post],
) -> None:
    post = make_post(author, "typo")

    edited = await edit_post(store, viewer, post.id, " fixed ")

    assert edited.content == "fixed"
    assert edited.is_edited


@pytest.mark.asyncio
async def test_edit_rules(
    store: SqlRemoteStore,
    viewer: ViewerSession,
    author: Profile,
    other_author: Profile,
    make_post: Callable[..., Post],
) -> None:
    foreign = make_post(other_author)
    deleted = make_post(author, deleted_at=datetime.now(UTC))

    with pytest.raises(PermissionDenied):
        await edit_post(store, viewer, foreign.id, "mine now")
    with pytest.raises(ValidationFailure, match="Deleted posts"):
        await edit_post(store, viewer, deleted.id, "revive")
    with pytest.raises(NotFoundError):
        await edit_post(store, viewer, "missing", "text")
