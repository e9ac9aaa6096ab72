"""FastAPI dependencies for authentication and services."""

from typing import Annotated

from fastapi import Cookie, Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from src.database import get_db
from src.exceptions import AuthError, InvalidTokenError
from src.models.user import User
from src.services.auth import decode_access_token, subject_id
from src.services.media import MediaService, get_media_service
from src.services.profile_service import ProfileService
from src.services.session_service import SessionService, get_user_by_id

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"

# auto_error=False so a missing header can fall back to the cookie
security = HTTPBearer(auto_error=False)


def extract_access_token(
    credentials: HTTPAuthorizationCredentials | None, cookie_token: str | None
) -> str | None:
    """Bearer header wins over the ``accessToken`` cookie."""
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    return cookie_token or None


def resolve_user(db: Session, token: str) -> User:
    """Verify an access token and load the user it names."""
    try:
        user_id = subject_id(decode_access_token(token))
    except InvalidTokenError as e:
        raise AuthError("Invalid access token") from e

    user = get_user_by_id(db, user_id)
    if user is None:
        raise AuthError("Invalid access token: user not found")
    return user


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[Session, Depends(get_db)],
    access_token: Annotated[str | None, Cookie(alias=ACCESS_COOKIE)] = None,
) -> User:
    """Get the current authenticated user from the bearer header or cookie."""
    token = extract_access_token(credentials, access_token)
    if not token:
        raise AuthError("Unauthorized request")
    return resolve_user(db, token)


def get_optional_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[Session, Depends(get_db)],
    access_token: Annotated[str | None, Cookie(alias=ACCESS_COOKIE)] = None,
) -> User | None:
    """Like get_current_user, but anonymous callers (or bad tokens) yield None."""
    token = extract_access_token(credentials, access_token)
    if not token:
        return None
    try:
        return resolve_user(db, token)
    except AuthError:
        return None


def get_session_service(
    db: Annotated[Session, Depends(get_db)],
    media: Annotated[MediaService, Depends(get_media_service)],
) -> SessionService:
    """Get session service with dependencies."""
    return SessionService(db, media)


def get_profile_service(
    db: Annotated[Session, Depends(get_db)],
    media: Annotated[MediaService, Depends(get_media_service)],
) -> ProfileService:
    """Get profile service with dependencies."""
    return ProfileService(db, media)
