"""Reply-tree construction and reconciliation over immutable posts.

The forest is a list of root posts whose replies are nested in
``child_posts``. Every function here is pure: inputs are never modified and a
new forest is returned, so holders of an old snapshot keep seeing it intact.

All walks are iterative so very deep reply chains cannot exhaust the
interpreter's recursion limit.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable, Iterable, Iterator, Sequence
from dataclasses import dataclass, field

from threadline.schemas.post import Post
from threadline.services.errors import MalformedDataError

__all__ = [
    "build_thread_tree",
    "find_by_id",
    "find_cycle_members",
    "index_by_parent",
    "iter_posts",
    "update_post",
    "update_tree",
]

UpdateFn = Callable[[Post], Post]


@dataclass
class _Frame:
    post: Post
    pending: Iterator[Post]
    built: list[Post] = field(default_factory=list)


def index_by_parent(posts: Iterable[Post]) -> dict[str | None, list[Post]]:
    """Group posts by ``parent_post_id``, keeping input order inside each group."""
    index: dict[str | None, list[Post]] = defaultdict(list)
    for post in posts:
        index[post.parent_post_id].append(post)
    return index


def build_thread_tree(posts: Sequence[Post], parent_id: str | None = None) -> list[Post]:
    """Nest ``posts`` under their parents and return the children of ``parent_id``.

    ``build_thread_tree(posts)`` returns every top-level post with its replies
    nested recursively. Children keep the relative order of ``posts``; sort the
    flat input first if a particular order is wanted. Posts whose parent is not
    in ``posts`` are not reachable from ``parent_id`` and are left out.

    Raises:
        MalformedDataError: If a parent cycle is reachable from ``parent_id``.
    """
    index = index_by_parent(posts)
    on_path: set[str] = set()
    if parent_id is not None:
        on_path.add(parent_id)

    forest: list[Post] = []
    for root in index.get(parent_id, ()):
        forest.append(_build_subtree(root, index, on_path))
    return forest


def _build_subtree(
    root: Post,
    index: dict[str | None, list[Post]],
    on_path: set[str],
) -> Post:
    _enter(root, on_path)
    stack = [_Frame(root, iter(index.get(root.id, ())))]
    while True:
        frame = stack[-1]
        child = next(frame.pending, None)
        if child is not None:
            _enter(child, on_path)
            stack.append(_Frame(child, iter(index.get(child.id, ()))))
            continue

        stack.pop()
        on_path.discard(frame.post.id)
        node = frame.post.model_copy(update={"child_posts": frame.built})
        if not stack:
            return node
        stack[-1].built.append(node)


def _enter(post: Post, on_path: set[str]) -> None:
    if post.id in on_path:
        raise MalformedDataError(f"Parent cycle detected at post {post.id}")
    on_path.add(post.id)


def find_cycle_members(posts: Iterable[Post]) -> set[str]:
    """Return ids of posts whose parent chain never reaches a root or an orphan."""
    parent_of: dict[str, str | None] = {}
    for post in posts:
        parent_of.setdefault(post.id, post.parent_post_id)

    cyclic: dict[str, bool] = {}
    for start in parent_of:
        path: list[str] = []
        seen: set[str] = set()
        current: str | None = start
        verdict = False
        while current is not None and current in parent_of:
            if current in cyclic:
                verdict = cyclic[current]
                break
            if current in seen:
                verdict = True
                break
            seen.add(current)
            path.append(current)
            current = parent_of[current]
        for post_id in path:
            cyclic[post_id] = verdict
    return {post_id for post_id, is_cyclic in cyclic.items() if is_cyclic}


def update_tree(forest: Sequence[Post], update_fn: UpdateFn) -> list[Post]:
    """Apply ``update_fn`` to every node, parent before children.

    ``update_fn`` must return a post for every input (usually the same object
    when the post is not the one being changed). When the returned node has
    children, they are visited next and the node's ``child_posts`` is replaced
    with the updated list.
    """
    return [_update_subtree(root, update_fn) for root in forest]


def _update_subtree(root: Post, update_fn: UpdateFn) -> Post:
    top = update_fn(root)
    stack = [_Frame(top, iter(top.child_posts))]
    while True:
        frame = stack[-1]
        child = next(frame.pending, None)
        if child is not None:
            updated = update_fn(child)
            stack.append(_Frame(updated, iter(updated.child_posts)))
            continue

        stack.pop()
        node = frame.post
        if node.child_posts:
            node = node.model_copy(update={"child_posts": frame.built})
        if not stack:
            return node
        stack[-1].built.append(node)


def update_post(forest: Sequence[Post], post_id: str, change: UpdateFn) -> list[Post]:
    """Rewrite the node(s) with ``post_id`` using ``change``; leave all others as-is."""

    def _apply(post: Post) -> Post:
        return change(post) if post.id == post_id else post

    return update_tree(forest, _apply)


def iter_posts(forest: Iterable[Post]) -> Iterator[Post]:
    """Yield every node of the forest depth-first, parent before children."""
    stack = list(reversed(list(forest)))
    while stack:
        post = stack.pop()
        yield post
        stack.extend(reversed(post.child_posts))


def find_by_id(forest: Iterable[Post], post_id: str) -> Post | None:
    """Return the first node with ``post_id`` in depth-first order, or None."""
    for post in iter_posts(forest):
        if post.id == post_id:
            return post
    return None
