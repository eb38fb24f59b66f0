"""Feed assembly and the optimistic mutation controller.

:class:`FeedAssembler` turns store records into a forest of posts (viewer
reactions attached, thread totals counted, replies nested).
:class:`FeedController` owns one forest snapshot and exposes the mutation entry
points; every mutation replaces the snapshot wholesale.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from datetime import datetime

from threadline.core.settings import settings
from threadline.db.time import utcnow
from threadline.repositories.store import PostFilter, PostOrder, RemoteStore
from threadline.schemas.post import Post, PostDetail, ReactionType
from threadline.schemas.records import RawPostWithCounts
from threadline.services.errors import NotFoundError, PermissionDenied, RemoteFailure
from threadline.services.mapping import tombstone, to_post
from threadline.services.polls import map_poll, validate_vote
from threadline.services.reactions import ReactionSnapshot, toggle_reaction
from threadline.services.session import ViewerSession
from threadline.services.threads import (
    attach_thread_totals,
    distinct_thread_ids,
    thread_stack,
)
from threadline.services.tree import (
    build_thread_tree,
    find_by_id,
    find_cycle_members,
    iter_posts,
    update_post,
    update_tree,
)

logger = logging.getLogger(__name__)


def default_feed_filter() -> PostFilter:
    """Global feed selection driven by settings."""
    return PostFilter(
        include_deleted=settings.feed_include_tombstones,
        limit=settings.feed_page_size,
    )


class FeedAssembler:
    """Fetches records for one viewer and converts them into posts."""

    def __init__(self, store: RemoteStore, session: ViewerSession) -> None:
        self.store = store
        self.session = session

    async def assemble(
        self,
        post_filter: PostFilter | None = None,
        order: PostOrder = "newest",
    ) -> list[Post]:
        """Return the forest for ``post_filter`` (the global feed by default).

        Duplicate ids keep their first occurrence and posts caught in a parent
        cycle are dropped, so a single bad chain never aborts the feed.
        """
        records = await self.store.list_posts(post_filter or default_feed_filter(), order)
        posts = await self.to_posts(_unique(records))

        cyclic = find_cycle_members(posts)
        if cyclic:
            logger.warning(
                "Dropping %d post(s) caught in a parent cycle: %s",
                len(cyclic),
                sorted(cyclic),
            )
            posts = [post for post in posts if post.id not in cyclic]

        forest = build_thread_tree(posts)
        logger.debug(
            "Assembled feed: %d posts, %d replies, %d roots",
            len(posts),
            sum(1 for post in posts if post.is_reply),
            len(forest),
        )
        return forest

    async def assemble_detail(self, post_id: str) -> PostDetail | None:
        """Collect the main post, its parent, first replies and thread stack.

        Returns None when the post does not exist.
        """
        main = await self.store.get_post(post_id)
        if main is None:
            return None

        parent = None
        if main.parent_post_id is not None:
            parent = await self.store.get_post(main.parent_post_id)

        replies = await self.store.list_posts(
            PostFilter(
                parent_post_id=post_id,
                include_deleted=settings.feed_include_tombstones,
                limit=settings.detail_reply_limit,
            ),
            "oldest",
        )

        stack: list[RawPostWithCounts] = []
        if main.thread_id is not None:
            stack = await self.store.list_posts(
                PostFilter(thread_id=main.thread_id, exclude_replies=True, include_deleted=True),
                "sequence",
            )

        related = [main, *([parent] if parent is not None else []), *replies, *stack]
        posts = {post.id: post for post in await self.to_posts(_unique(related))}

        main_post = posts[main.id]
        return PostDetail(
            main_post=main_post,
            parent_post=posts.get(parent.id) if parent is not None else None,
            replies=[posts[record.id] for record in _unique(replies)],
            thread_stack=(
                thread_stack((posts[record.id] for record in _unique(stack)), main.thread_id)
                if main.thread_id is not None
                else []
            ),
        )

    async def assemble_subtree(self, post_id: str, depth: int) -> Post | None:
        """Return ``post_id`` with replies nested ``depth + 1`` levels deep.

        The extra level lets the deepest rendered card count the replies it
        hides. Each post contributes at most ``DETAIL_REPLY_LIMIT`` replies,
        oldest first. Returns None when the post does not exist.
        """
        main = await self.store.get_post(post_id)
        if main is None:
            return None

        records = [main]
        frontier = [main.id]
        for _ in range(depth + 1):
            level: list[RawPostWithCounts] = []
            for parent_id in frontier:
                level.extend(
                    await self.store.list_posts(
                        PostFilter(
                            parent_post_id=parent_id,
                            include_deleted=settings.feed_include_tombstones,
                            limit=settings.detail_reply_limit,
                        ),
                        "oldest",
                    )
                )
            if not level:
                break
            records.extend(level)
            frontier = [record.id for record in level]

        posts = await self.to_posts(_unique(records))
        cyclic = find_cycle_members(posts)
        if main.id in cyclic:
            logger.warning("Post %s is caught in a parent cycle", main.id)
            return None
        posts = [post for post in posts if post.id not in cyclic]
        roots = build_thread_tree(posts, main.parent_post_id)
        return next(root for root in roots if root.id == main.id)

    async def to_posts(self, records: Sequence[RawPostWithCounts]) -> list[Post]:
        """Convert records, attaching the viewer's reactions and thread totals."""
        viewer_id = self.session.viewer_id
        reactions: dict[str, ReactionType] = {}
        if viewer_id is not None and records:
            ids = [record.id for record in records]
            ids.extend(record.quoted_post.id for record in records if record.quoted_post)
            for reaction in await self.store.list_reactions_for_viewer(ids, viewer_id):
                reactions[reaction.post_id] = reaction.type

        posts = [to_post(record, viewer_id, reactions) for record in records]
        totals = {
            thread_id: await self.store.count_thread_posts(thread_id)
            for thread_id in distinct_thread_ids(post for post in posts if not post.is_reply)
        }
        return attach_thread_totals(posts, totals)


def _unique(records: Iterable[RawPostWithCounts]) -> list[RawPostWithCounts]:
    seen: set[str] = set()
    unique: list[RawPostWithCounts] = []
    for record in records:
        if record.id in seen:
            logger.debug("Skipping duplicate post record %s", record.id)
            continue
        seen.add(record.id)
        unique.append(record)
    return unique


class FeedController:
    """Single owner of a forest snapshot and its mutations.

    Reactions are optimistic: the local change is applied before the store is
    called and reverted if the store rejects it. Deletes and votes wait for the
    store before touching local state.
    """

    def __init__(
        self,
        store: RemoteStore,
        session: ViewerSession,
        forest: Sequence[Post] = (),
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.session = session
        self.assembler = FeedAssembler(store, session)
        self.clock = clock
        self._forest: list[Post] = list(forest)

    @property
    def forest(self) -> list[Post]:
        return self._forest

    async def refresh(self, post_filter: PostFilter | None = None) -> list[Post]:
        """Re-fetch and replace the forest, superseding unconfirmed local state."""
        self._forest = await self.assembler.assemble(post_filter)
        return self._forest

    async def load_post(self, post_id: str) -> Post:
        """Return ``post_id`` from the forest, fetching it as an extra root if absent.

        Raises:
            NotFoundError: If the store has no such post.
        """
        current = find_by_id(self._forest, post_id)
        if current is not None:
            return current
        record = await self.store.get_post(post_id)
        if record is None:
            raise NotFoundError(f"Post {post_id} not found")
        (post,) = await self.assembler.to_posts([record])
        self._forest = [*self._forest, post]
        return post

    async def toggle_like(self, post_id: str) -> list[Post]:
        return await self._toggle(post_id, "like")

    async def toggle_dislike(self, post_id: str) -> list[Post]:
        return await self._toggle(post_id, "dislike")

    async def _toggle(self, post_id: str, pressed: ReactionType) -> list[Post]:
        viewer_id = self.session.viewer_id
        current = find_by_id(self._forest, post_id)
        if viewer_id is None or current is None or current.is_deleted:
            return self._forest

        snapshot = ReactionSnapshot.of(current)
        target = toggle_reaction(current, pressed).my_reaction
        self._forest = update_post(self._forest, post_id, lambda p: toggle_reaction(p, pressed))

        try:
            if target is None:
                await self.store.delete_reaction(post_id, viewer_id)
            else:
                await self.store.upsert_reaction(post_id, viewer_id, target)
        except (RemoteFailure, NotFoundError) as exc:
            logger.warning("Reverting %s on post %s: %s", pressed, post_id, exc)
            self._forest = update_post(
                self._forest,
                post_id,
                lambda p: p if p.is_deleted else snapshot.restore(p),
            )
        return self._forest

    async def delete_post(self, post_id: str) -> list[Post]:
        """Soft-delete one of the viewer's posts and tombstone it locally.

        Raises:
            AuthenticationRequired: For anonymous sessions.
            NotFoundError: If the post does not exist.
            PermissionDenied: If the viewer is not the author.
        """
        viewer_id = self.session.require_viewer()
        author_id = await self._author_of(post_id)
        if author_id != viewer_id:
            raise PermissionDenied("You can only delete your own posts")

        await self.store.soft_delete_post(post_id)
        self._forest = update_post(self._forest, post_id, tombstone)
        return self._forest

    async def _author_of(self, post_id: str) -> str | None:
        current = find_by_id(self._forest, post_id)
        if current is not None:
            return current.user.id
        record = await self.store.get_post(post_id)
        if record is None:
            raise NotFoundError(f"Post {post_id} not found")
        return record.author_id

    async def cast_vote(self, poll_id: str, option_ids: list[str]) -> list[Post]:
        """Vote in a poll and swap the confirmed poll into every post carrying it.

        Nothing changes locally until the store confirms the vote; a store
        failure propagates to the caller.
        """
        viewer_id = self.session.require_viewer()
        known = next(
            (
                post.poll
                for post in iter_posts(self._forest)
                if post.poll is not None and post.poll.id == poll_id
            ),
            None,
        )
        if known is not None:
            option_ids = validate_vote(known, option_ids, self.clock())

        raw = await self.store.cast_poll_vote(poll_id, viewer_id, option_ids)
        poll = map_poll(raw, viewer_id)

        def _swap(post: Post) -> Post:
            if post.poll is not None and post.poll.id == poll_id:
                return post.model_copy(update={"poll": poll})
            return post

        self._forest = update_tree(self._forest, _swap)
        return self._forest
