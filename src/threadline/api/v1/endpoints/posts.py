# src/threadline/api/v1/endpoints/posts.py
"""Post-related endpoints: detail, composition and editing."""

from fastapi import APIRouter, status

from threadline.api.v1.dependencies import StoreDep, ViewerSessionDep
from threadline.core.settings import settings
from threadline.schemas.post import ComposeRequest, Post, PostDetail, PostUpdate
from threadline.services import post_service
from threadline.services.errors import NotFoundError
from threadline.services.feed import FeedAssembler
from threadline.services.render import PostCard, render_post_card

router = APIRouter(prefix="/posts", tags=["posts"])


@router.get("/{post_id}", response_model=PostDetail)
async def get_post_detail(
    post_id: str,
    store: StoreDep,
    session: ViewerSessionDep,
) -> PostDetail:
    """Return a post with its parent, first replies and thread."""
    detail = await FeedAssembler(store, session).assemble_detail(post_id)
    if detail is None:
        raise NotFoundError(f"Post {post_id} not found")
    return detail


@router.get("/{post_id}/cards", response_model=PostCard)
async def get_post_cards(
    post_id: str,
    store: StoreDep,
    session: ViewerSessionDep,
) -> PostCard:
    """Render a post with its replies nested up to ``MAX_RENDER_DEPTH`` levels."""
    post = await FeedAssembler(store, session).assemble_subtree(
        post_id, settings.max_render_depth
    )
    if post is None:
        raise NotFoundError(f"Post {post_id} not found")
    return render_post_card(post, session.viewer_id, detail_view=True)


@router.post("", response_model=list[Post], status_code=status.HTTP_201_CREATED)
async def create_posts(
    request: ComposeRequest,
    store: StoreDep,
    session: ViewerSessionDep,
) -> list[Post]:
    """Publish a post, a reply, a new thread or a thread continuation."""
    return await post_service.compose(store, session, request)


@router.patch("/{post_id}", response_model=Post)
async def update_post(
    post_id: str,
    update: PostUpdate,
    store: StoreDep,
    session: ViewerSessionDep,
) -> Post:
    """Edit the text of one of the viewer's posts."""
    return await post_service.edit_post(store, session, post_id, update.content)
