"""Pydantic schemas for API requests and responses."""

from src.schemas.channel import ChannelProfile, VideoOwner, WatchHistoryVideo
from src.schemas.envelope import ApiResponse, CamelModel, ErrorResponse
from src.schemas.user import (
    AccountUpdate,
    ChangePasswordRequest,
    LoginResponse,
    RefreshTokenRequest,
    TokenPairResponse,
    UserLogin,
    UserResponse,
)

__all__ = [
    "ApiResponse",
    "CamelModel",
    "ErrorResponse",
    "UserLogin",
    "RefreshTokenRequest",
    "ChangePasswordRequest",
    "AccountUpdate",
    "UserResponse",
    "TokenPairResponse",
    "LoginResponse",
    "ChannelProfile",
    "VideoOwner",
    "WatchHistoryVideo",
]
