"""Viewer reaction transitions.

Per post and viewer the reaction state is one of no reaction, liked or
disliked. Toggling the current reaction clears it; toggling the other one
switches over in a single step, moving one count from one side to the other.
"""

from __future__ import annotations

from dataclasses import dataclass

from threadline.schemas.post import Post, ReactionType


@dataclass(frozen=True)
class ReactionSnapshot:
    """The reaction fields of a post, kept to restore them after a failed mutation."""

    my_reaction: ReactionType | None
    like_count: int
    dislike_count: int

    @classmethod
    def of(cls, post: Post) -> ReactionSnapshot:
        return cls(post.my_reaction, post.like_count, post.dislike_count)

    def restore(self, post: Post) -> Post:
        return post.model_copy(
            update={
                "my_reaction": self.my_reaction,
                "like_count": self.like_count,
                "dislike_count": self.dislike_count,
            }
        )


def next_reaction(current: ReactionType | None, pressed: ReactionType) -> ReactionType | None:
    """State reached from ``current`` when the viewer presses ``pressed``."""
    return None if current == pressed else pressed


def toggle_reaction(post: Post, pressed: ReactionType) -> Post:
    """Return a copy of ``post`` after the viewer presses like or dislike.

    Counts never drop below zero, even when the incoming counts were already
    inconsistent with ``my_reaction``.
    """
    counts = {"like": post.like_count, "dislike": post.dislike_count}
    target = next_reaction(post.my_reaction, pressed)

    if post.my_reaction is not None:
        counts[post.my_reaction] = max(counts[post.my_reaction] - 1, 0)
    if target is not None:
        counts[target] += 1

    return post.model_copy(
        update={
            "my_reaction": target,
            "like_count": counts["like"],
            "dislike_count": counts["dislike"],
        }
    )
