# src/threadline/api/v1/endpoints/feed.py
"""Feed endpoints: the assembled forest and its mutation entry points."""

from typing import Annotated

from fastapi import APIRouter, Query

from threadline.api.v1.dependencies import FeedControllerDep, ViewerSessionDep
from threadline.core.settings import settings
from threadline.repositories.store import PostFilter
from threadline.schemas.poll import VoteRequest
from threadline.schemas.post import Post
from threadline.services.feed import FeedController
from threadline.services.render import PostCard, render_forest

router = APIRouter(prefix="/feed", tags=["feed"])

LimitQuery = Annotated[int | None, Query(ge=1, le=500)]


def _feed_filter(limit: int | None) -> PostFilter:
    return PostFilter(
        include_deleted=settings.feed_include_tombstones,
        limit=limit or settings.feed_page_size,
    )


async def _load_with(controller: FeedController, post_id: str) -> None:
    await controller.refresh()
    await controller.load_post(post_id)


@router.get("", response_model=list[Post])
async def get_feed(controller: FeedControllerDep, limit: LimitQuery = None) -> list[Post]:
    """Return the global feed as a forest of root posts with nested replies."""
    return await controller.refresh(_feed_filter(limit))


@router.get("/cards", response_model=list[PostCard])
async def get_feed_cards(
    controller: FeedControllerDep,
    session: ViewerSessionDep,
    limit: LimitQuery = None,
) -> list[PostCard]:
    """Return the feed rendered as post cards (replies collapsed)."""
    forest = await controller.refresh(_feed_filter(limit))
    return render_forest(forest, session.viewer_id)


@router.post("/posts/{post_id}/like", response_model=list[Post])
async def like_post(post_id: str, controller: FeedControllerDep) -> list[Post]:
    """Toggle the viewer's like and return the updated forest."""
    await _load_with(controller, post_id)
    return await controller.toggle_like(post_id)


@router.post("/posts/{post_id}/dislike", response_model=list[Post])
async def dislike_post(post_id: str, controller: FeedControllerDep) -> list[Post]:
    """Toggle the viewer's dislike and return the updated forest."""
    await _load_with(controller, post_id)
    return await controller.toggle_dislike(post_id)


@router.delete("/posts/{post_id}", response_model=list[Post])
async def delete_post(post_id: str, controller: FeedControllerDep) -> list[Post]:
    """Soft-delete one of the viewer's posts and return the forest with its tombstone."""
    await controller.refresh()
    return await controller.delete_post(post_id)


@router.post("/polls/{poll_id}/votes", response_model=list[Post])
async def vote_in_poll(
    poll_id: str,
    vote: VoteRequest,
    controller: FeedControllerDep,
) -> list[Post]:
    """Cast the viewer's vote and return the forest with the confirmed poll."""
    await controller.refresh()
    return await controller.cast_vote(poll_id, vote.option_ids)
