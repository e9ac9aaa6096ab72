"""User account API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Cookie, Depends, File, Form, Response, UploadFile, status

from src.api.dependencies import (
    ACCESS_COOKIE,
    REFRESH_COOKIE,
    get_current_user,
    get_optional_user,
    get_profile_service,
    get_session_service,
)
from src.config import get_settings
from src.models.user import User
from src.schemas.channel import ChannelProfile, WatchHistoryVideo
from src.schemas.envelope import ApiResponse
from src.schemas.user import (
    AccountUpdate,
    ChangePasswordRequest,
    LoginResponse,
    RefreshTokenRequest,
    TokenPairResponse,
    UserLogin,
    UserResponse,
)
from src.services.auth import TokenPair
from src.services.media import discard_local_file, stage_upload
from src.services.profile_service import ProfileService
from src.services.session_service import SessionService

router = APIRouter(prefix="/api/v1/users", tags=["users"])


def set_auth_cookies(response: Response, tokens: TokenPair) -> None:
    secure = get_settings().cookie_secure
    response.set_cookie(ACCESS_COOKIE, tokens.access_token, httponly=True, secure=secure)
    response.set_cookie(REFRESH_COOKIE, tokens.refresh_token, httponly=True, secure=secure)


def clear_auth_cookies(response: Response) -> None:
    secure = get_settings().cookie_secure
    response.delete_cookie(ACCESS_COOKIE, httponly=True, secure=secure)
    response.delete_cookie(REFRESH_COOKIE, httponly=True, secure=secure)


@router.post(
    "/register",
    response_model=ApiResponse[UserResponse],
    status_code=status.HTTP_201_CREATED,
)
async def register(
    service: Annotated[SessionService, Depends(get_session_service)],
    full_name: Annotated[str | None, Form(alias="fullName", max_length=255)] = None,
    email: Annotated[str | None, Form(max_length=255)] = None,
    username: Annotated[str | None, Form(max_length=100)] = None,
    password: Annotated[str | None, Form()] = None,
    avatar: Annotated[UploadFile | None, File()] = None,
    cover_image: Annotated[UploadFile | None, File(alias="coverImage")] = None,
):
    """Register a new user (multipart form with avatar and optional cover image)."""
    avatar_path = await stage_upload(avatar)
    cover_image_path = await stage_upload(cover_image)
    try:
        user = await service.register(
            full_name=full_name,
            email=email,
            username=username,
            password=password,
            avatar_path=avatar_path,
            cover_image_path=cover_image_path,
        )
    finally:
        discard_local_file(avatar_path)
        discard_local_file(cover_image_path)

    return ApiResponse[UserResponse](
        status_code=status.HTTP_201_CREATED,
        data=UserResponse.model_validate(user),
        message="User registered successfully",
    )


@router.post("/login", response_model=ApiResponse[LoginResponse])
async def login(
    credentials: UserLogin,
    response: Response,
    service: Annotated[SessionService, Depends(get_session_service)],
):
    """Login with username or email; tokens are returned in cookies and the body."""
    user, tokens = service.login(
        username=credentials.username,
        email=credentials.email,
        password=credentials.password,
    )
    set_auth_cookies(response, tokens)

    return ApiResponse[LoginResponse](
        data=LoginResponse(
            user=UserResponse.model_validate(user),
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
        ),
        message="User logged in successfully",
    )


@router.post("/logout", response_model=ApiResponse[dict])
async def logout(
    response: Response,
    current_user: Annotated[User, Depends(get_current_user)],
    service: Annotated[SessionService, Depends(get_session_service)],
):
    """Logout: forget the stored refresh token and clear both cookies."""
    service.logout(current_user)
    clear_auth_cookies(response)
    return ApiResponse[dict](data={}, message="User logged out")


@router.post("/refresh-token", response_model=ApiResponse[TokenPairResponse])
async def refresh_access_token(
    response: Response,
    service: Annotated[SessionService, Depends(get_session_service)],
    payload: RefreshTokenRequest | None = None,
    refresh_cookie: Annotated[str | None, Cookie(alias=REFRESH_COOKIE)] = None,
):
    """Exchange the current refresh token for a new token pair."""
    incoming = refresh_cookie or (payload.refresh_token if payload else None)
    tokens = service.refresh(incoming)
    set_auth_cookies(response, tokens)

    return ApiResponse[TokenPairResponse](
        data=TokenPairResponse(
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
        ),
        message="Access token refreshed",
    )


@router.post("/change-password", response_model=ApiResponse[dict])
async def change_password(
    payload: ChangePasswordRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    service: Annotated[SessionService, Depends(get_session_service)],
):
    service.change_password(current_user, payload.old_password, payload.new_password)
    return ApiResponse[dict](data={}, message="Password changed successfully")


@router.get("/current-user", response_model=ApiResponse[UserResponse])
async def get_me(
    current_user: Annotated[User, Depends(get_current_user)],
):
    """Get current user information."""
    return ApiResponse[UserResponse](
        data=UserResponse.model_validate(current_user),
        message="Current user fetched successfully",
    )


@router.patch("/update-account", response_model=ApiResponse[UserResponse])
async def update_account_details(
    payload: AccountUpdate,
    current_user: Annotated[User, Depends(get_current_user)],
    service: Annotated[ProfileService, Depends(get_profile_service)],
):
    user = service.update_account_details(current_user, payload.full_name, payload.email)
    return ApiResponse[UserResponse](
        data=UserResponse.model_validate(user),
        message="Account details updated successfully",
    )


@router.patch("/avatar", response_model=ApiResponse[UserResponse])
async def update_avatar(
    current_user: Annotated[User, Depends(get_current_user)],
    service: Annotated[ProfileService, Depends(get_profile_service)],
    avatar: Annotated[UploadFile | None, File()] = None,
):
    local_path = await stage_upload(avatar)
    try:
        user = await service.update_avatar(current_user, local_path)
    finally:
        discard_local_file(local_path)

    return ApiResponse[UserResponse](
        data=UserResponse.model_validate(user),
        message="Avatar image updated successfully",
    )


@router.patch("/cover-image", response_model=ApiResponse[UserResponse])
async def update_cover_image(
    current_user: Annotated[User, Depends(get_current_user)],
    service: Annotated[ProfileService, Depends(get_profile_service)],
    cover_image: Annotated[UploadFile | None, File(alias="coverImage")] = None,
):
    local_path = await stage_upload(cover_image)
    try:
        user = await service.update_cover_image(current_user, local_path)
    finally:
        discard_local_file(local_path)

    return ApiResponse[UserResponse](
        data=UserResponse.model_validate(user),
        message="Cover image updated successfully",
    )


@router.get("/c/{username}", response_model=ApiResponse[ChannelProfile])
async def get_channel_profile(
    username: str,
    service: Annotated[ProfileService, Depends(get_profile_service)],
    viewer: Annotated[User | None, Depends(get_optional_user)],
):
    """Public channel profile; ``isSubscribed`` reflects the caller if signed in."""
    channel = service.get_channel_profile(username, viewer)
    return ApiResponse[ChannelProfile](data=channel, message="User channel fetched successfully")


@router.get("/history", response_model=ApiResponse[list[WatchHistoryVideo]])
async def get_watch_history(
    current_user: Annotated[User, Depends(get_current_user)],
    service: Annotated[ProfileService, Depends(get_profile_service)],
):
    """Videos the caller watched, in stored order, with owners inlined."""
    history = service.get_watch_history(current_user)
    return ApiResponse[list[WatchHistoryVideo]](
        data=history, message="Watch history fetched successfully"
    )
