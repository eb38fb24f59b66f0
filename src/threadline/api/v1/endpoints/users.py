# src/threadline/api/v1/endpoints/users.py
"""Profile endpoints: lookup, search, editing and post listings."""

from typing import Annotated

from fastapi import APIRouter, Query

from threadline.api.v1.dependencies import SessionDep, StoreDep, ViewerSessionDep
from threadline.core.settings import settings
from threadline.repositories.profile_repo import ProfileRepository
from threadline.repositories.store import PostFilter
from threadline.schemas.post import Post
from threadline.schemas.user import ProfileUpdateRequest, User
from threadline.services.errors import NotFoundError
from threadline.services.feed import FeedAssembler

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/search", response_model=list[User])
async def search_users(
    db: SessionDep,
    q: Annotated[str, Query(min_length=1, max_length=100)],
    limit: Annotated[int, Query(ge=1, le=50)] = 20,
) -> list[User]:
    """Find profiles by username or display name."""
    return [User.model_validate(profile) for profile in ProfileRepository(db).search(q, limit)]


@router.patch("/me", response_model=User)
async def update_my_profile(
    update: ProfileUpdateRequest,
    db: SessionDep,
    session: ViewerSessionDep,
) -> User:
    """Edit the signed-in viewer's profile. The username cannot change."""
    viewer_id = session.require_viewer()
    repo = ProfileRepository(db)
    profile = repo.get(viewer_id)
    if profile is None:
        raise NotFoundError(f"Profile {viewer_id} not found")
    updated = repo.update(profile, update.model_dump(exclude_unset=True))
    return User.model_validate(updated)


@router.get("/{user_id}", response_model=User)
async def get_user(user_id: str, db: SessionDep) -> User:
    """Return a public profile."""
    profile = ProfileRepository(db).get(user_id)
    if profile is None:
        raise NotFoundError(f"Profile {user_id} not found")
    return User.model_validate(profile)


@router.get("/{user_id}/posts", response_model=list[Post])
async def get_user_posts(
    user_id: str,
    db: SessionDep,
    store: StoreDep,
    session: ViewerSessionDep,
) -> list[Post]:
    """Top-level posts by one author, newest first."""
    if ProfileRepository(db).get(user_id) is None:
        raise NotFoundError(f"Profile {user_id} not found")
    post_filter = PostFilter(
        author_id=user_id,
        top_level_only=True,
        limit=settings.feed_page_size,
    )
    return await FeedAssembler(store, session).assemble(post_filter)
