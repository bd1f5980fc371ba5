"""Pydantic models for authentication."""
from datetime import datetime
from typing import Generic, TypeVar

from pydantic import BaseModel, EmailStr, Field

T = TypeVar("T")


class DataResponse(BaseModel, Generic[T]):
    """Success envelope: `{"data": ...}`."""

    data: T


class UserRegister(BaseModel):
    """User registration request."""

    email: EmailStr
    password: str = Field(..., min_length=6, max_length=72)
    full_name: str | None = Field(None, max_length=100)


class UserLogin(BaseModel):
    """User login request."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=72)


class MagicLinkRequest(BaseModel):
    """Request a sign-in link by email."""

    email: EmailStr


class MagicLinkVerify(BaseModel):
    """Exchange a magic-link token for an access token."""

    token: str = Field(..., min_length=1)


class TokenResponse(BaseModel):
    """JWT token response."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int


class MagicLinkResponse(BaseModel):
    """Magic link issued; the link itself is only echoed outside production."""

    message: str
    magic_link: str | None = None


class MessageResponse(BaseModel):
    """Simple message response."""

    message: str


class ProfileResponse(BaseModel):
    """User profile response."""

    id: int
    email: str
    full_name: str | None
    avatar_url: str | None
    is_admin: bool
    is_active: bool
    created_at: datetime
    last_sign_in_at: datetime | None = None

    class Config:
        from_attributes = True


class SessionInfo(BaseModel):
    """Current auth session."""

    user: ProfileResponse
    expires_at: datetime


class ProfileUpdateRequest(BaseModel):
    """Profile update request."""

    full_name: str | None = Field(None, max_length=100)
    avatar_url: str | None = Field(None, max_length=500)


class PromoteRequest(BaseModel):
    """Grant admin rights to a user."""

    userId: int
