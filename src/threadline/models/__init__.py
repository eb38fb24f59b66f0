# src/threadline/models/__init__.py
"""SQLAlchemy models for the Threadline backend."""

from .poll import Poll, PollOption, PollVote
from .post import Post
from .profile import Profile
from .reaction import REACTION_TYPES, PostReaction

__all__ = [
    "Poll", "PollOption", "PollVote",
    "Post",
    "Profile",
    "PostReaction", "REACTION_TYPES",
]
