# src/threadline/schemas/__init__.py
"""
Pydantic schemas for view models, raw store records and API payloads.
"""

from .poll import Poll, PollDraft, PollMedia, PollOption, VoteRequest
from .post import ComposeRequest, Media, Post, PostDetail, PostUpdate, ReactionType
from .records import (
    RawMedia,
    RawPollOption,
    RawPollVote,
    RawPollWithVotes,
    RawPostWithCounts,
    RawProfile,
    RawReaction,
)
from .user import LoginRequest, LoginResponse, ProfileUpdateRequest, RegisterRequest, User

__all__ = [
    "Poll", "PollDraft", "PollMedia", "PollOption", "VoteRequest",
    "ComposeRequest", "Media", "Post", "PostDetail", "PostUpdate", "ReactionType",
    "RawMedia", "RawPollOption", "RawPollVote", "RawPollWithVotes",
    "RawPostWithCounts", "RawProfile", "RawReaction",
    "LoginRequest", "LoginResponse", "ProfileUpdateRequest", "RegisterRequest", "User",
]
