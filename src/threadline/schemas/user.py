"""User and account Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class User(BaseModel):
    """Public profile as shown next to posts and on profile screens."""

    id: str
    username: str
    display_name: str
    bio: str | None = None
    location: str | None = None
    website: str | None = None
    profile_picture_url: str | None = None
    cover_photo_url: str | None = None
    followers_count: int = 0
    following_count: int = 0
    created_at: datetime

    model_config = ConfigDict(from_attributes=True, frozen=True)


class RegisterRequest(BaseModel):
    """Sign-up form. Field checks happen in the auth service."""

    display_name: str = ""
    email: str = ""
    password: str = ""
    confirm_password: str = ""


class LoginRequest(BaseModel):
    """Email and password sign-in."""

    email: str
    password: str


class LoginResponse(BaseModel):
    """Response returned after successful login."""

    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field("bearer", description="Token type")
    user: User


class ProfileUpdateRequest(BaseModel):
    """Editable profile fields; the username is fixed at registration."""

    display_name: str | None = Field(None, min_length=1, max_length=100)
    bio: str | None = Field(None, max_length=500)
    location: str | None = Field(None, max_length=100)
    website: str | None = Field(None, max_length=200)
    profile_picture_url: str | None = None
    cover_photo_url: str | None = None

    model_config = ConfigDict(extra="forbid")
