"""Poll-related Pydantic schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class PollMedia(BaseModel):
    """Image or link shown above the poll options."""

    type: Literal["image", "link"]
    url: str

    model_config = ConfigDict(frozen=True)


class PollOption(BaseModel):
    """Option with its current vote count."""

    id: str
    text: str
    votes: int = 0

    model_config = ConfigDict(frozen=True)


class Poll(BaseModel):
    """Per-post poll view model.

    ``viewer_selected_options`` holds the ids the viewer voted for; it is empty
    for anonymous viewers and for viewers who have not voted yet.
    """

    id: str
    question: str
    options: list[PollOption] = Field(default_factory=list)
    media: PollMedia | None = None
    allows_multiple_choices: bool = False
    viewer_selected_options: list[str] = Field(default_factory=list)
    total_votes: int = 0
    expires_at: datetime
    created_at: datetime | None = None

    model_config = ConfigDict(frozen=True)


class PollDraft(BaseModel):
    """Poll attached to a new post. Limits are checked by the poll service."""

    question: str
    options: list[str]
    allows_multiple_choices: bool = False
    media: PollMedia | None = None
    duration_days: int = Field(1, ge=0, le=7)
    duration_hours: int = Field(0, ge=0, le=23)
    duration_minutes: int = Field(0, ge=0, le=59)


class VoteRequest(BaseModel):
    """Options chosen by the viewer."""

    option_ids: list[str] = Field(..., min_length=1)
