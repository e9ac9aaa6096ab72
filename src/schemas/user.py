"""User account schemas."""

from datetime import datetime

from pydantic import EmailStr, Field

from src.schemas.envelope import CamelModel
from src.services.auth import MAX_PASSWORD_BYTES


class UserLogin(CamelModel):
    """Login with either username or email."""

    username: str | None = Field(None, max_length=100)
    email: str | None = Field(None, max_length=255)
    password: str | None = Field(None, max_length=MAX_PASSWORD_BYTES)


class RefreshTokenRequest(CamelModel):
    """Refresh token for clients that do not keep cookies."""

    refresh_token: str | None = None


class ChangePasswordRequest(CamelModel):
    old_password: str | None = Field(None, max_length=MAX_PASSWORD_BYTES)
    new_password: str | None = Field(None, max_length=MAX_PASSWORD_BYTES)


class AccountUpdate(CamelModel):
    """Update the profile fields that are not images."""

    full_name: str | None = Field(None, max_length=255)
    email: EmailStr | None = Field(None, max_length=255)


class UserResponse(CamelModel):
    """Sanitized user: never carries the password hash or refresh token."""

    id: int
    username: str
    email: str
    full_name: str
    avatar: str
    cover_image: str = ""
    created_at: datetime
    updated_at: datetime


class TokenPairResponse(CamelModel):
    access_token: str
    refresh_token: str


class LoginResponse(TokenPairResponse):
    """Sanitized user plus both tokens, for clients that do not use cookies."""

    user: UserResponse
