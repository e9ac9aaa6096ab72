"""Registration, login, logout, token rotation and password change."""

import logging
from pathlib import Path

from jose import JWTError
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from src.exceptions import (
    AuthError,
    ConflictError,
    InternalError,
    InvalidTokenError,
    NotFoundError,
    ValidationError,
)
from src.models.user import User
from src.services.auth import (
    MAX_PASSWORD_BYTES,
    TokenPair,
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
    password_too_long,
    subject_id,
    verify_password,
)
from src.services.media import MediaService

logger = logging.getLogger(__name__)


def get_user_by_id(db: Session, user_id: int) -> User | None:
    """Get a user by id."""
    return db.query(User).filter(User.id == user_id).first()


def find_user_by_username_or_email(
    db: Session, username: str | None = None, email: str | None = None
) -> User | None:
    """Get the user matching ``username`` OR ``email`` (either may be omitted)."""
    conditions = []
    if username and username.strip():
        conditions.append(User.username == username.strip().lower())
    if email and email.strip():
        conditions.append(User.email == email.strip().lower())
    if not conditions:
        return None
    return db.query(User).filter(or_(*conditions)).first()


def blank(value: str | None) -> bool:
    return value is None or not value.strip()


PASSWORD_TOO_LONG = f"Password must be at most {MAX_PASSWORD_BYTES} bytes"


class SessionService:
    """Owns the refresh-token lifecycle stored on ``User.refresh_token``.

    A user has an active session while that column is non-empty. Login and
    refresh overwrite it (last write wins), logout clears it, and a refresh
    token is only honoured if it equals the stored value.
    """

    def __init__(self, db: Session, media: MediaService) -> None:
        self.db = db
        self.media = media

    async def register(
        self,
        *,
        full_name: str | None,
        email: str | None,
        username: str | None,
        password: str | None,
        avatar_path: str | Path | None,
        cover_image_path: str | Path | None = None,
    ) -> User:
        """Create an account; the avatar is required, the cover image is best-effort."""
        fields = {"fullName": full_name, "email": email, "username": username, "password": password}
        missing = [name for name, value in fields.items() if blank(value)]
        if missing:
            raise ValidationError(
                "All fields are required",
                errors=[{"field": name, "message": "must not be empty"} for name in missing],
            )

        if password_too_long(password):
            raise ValidationError(
                PASSWORD_TOO_LONG, errors=[{"field": "password", "message": PASSWORD_TOO_LONG}]
            )

        username = username.strip().lower()
        email = email.strip().lower()

        if find_user_by_username_or_email(self.db, username=username, email=email):
            raise ConflictError("User with email or username already exists")

        if not avatar_path:
            raise ValidationError("Avatar file is required")

        avatar = await self.media.upload(avatar_path)
        if not avatar or not avatar.get("url"):
            raise ValidationError("Error while uploading avatar")

        cover_image_url = ""
        if cover_image_path:
            cover_image = await self.media.upload(cover_image_path)
            if cover_image and cover_image.get("url"):
                cover_image_url = cover_image["url"]
            else:
                logger.warning(f"Cover image upload failed for '{username}', continuing without it")

        user = User(
            full_name=full_name.strip(),
            email=email,
            username=username,
            password=password,
            avatar=avatar["url"],
            cover_image=cover_image_url,
        )
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ConflictError("User with email or username already exists") from e

        created = get_user_by_id(self.db, user.id)
        if created is None:
            raise InternalError("Something went wrong while registering the user")

        logger.info(f"Registered user {created.id} ('{created.username}')")
        return created

    def login(
        self, *, username: str | None, email: str | None, password: str | None
    ) -> tuple[User, TokenPair]:
        """Check credentials and start a new session, replacing any previous one."""
        if blank(username) and blank(email):
            raise ValidationError("username or email is required")
        if not password:
            raise ValidationError("password is required")

        user = find_user_by_username_or_email(self.db, username=username, email=email)
        if user is None:
            raise NotFoundError("User doesn't exist")

        if not user.password_hash or not verify_password(password, user.password_hash):
            raise AuthError("Invalid user credentials")

        tokens = self.issue_tokens(user)
        logger.info(f"User {user.id} logged in")
        return user, tokens

    def logout(self, user: User) -> None:
        """End the session by clearing the stored refresh token."""
        user.refresh_token = None
        self.db.commit()
        logger.info(f"User {user.id} logged out")

    def refresh(self, incoming_token: str | None) -> TokenPair:
        """Rotate the token pair; only the most recently issued refresh token is accepted."""
        if not incoming_token:
            raise AuthError("unauthorized request")

        try:
            claims = decode_refresh_token(incoming_token)
            user = get_user_by_id(self.db, subject_id(claims))
        except InvalidTokenError as e:
            logger.warning(f"Rejected refresh token: {e.message}")
            raise AuthError("Invalid refresh token") from e

        if user is None:
            raise AuthError("Invalid refresh token")

        if not user.has_active_session or incoming_token != user.refresh_token:
            logger.warning(f"Stale refresh token presented for user {user.id}")
            raise AuthError("Refresh token is expired or used")

        tokens = self.issue_tokens(user)
        logger.info(f"Rotated tokens for user {user.id}")
        return tokens

    def change_password(
        self, user: User, old_password: str | None, new_password: str | None
    ) -> None:
        """Replace the password after checking the old one."""
        if not old_password or blank(new_password):
            raise ValidationError("Both old and new passwords are required")

        if password_too_long(new_password):
            raise ValidationError(
                PASSWORD_TOO_LONG, errors=[{"field": "newPassword", "message": PASSWORD_TOO_LONG}]
            )

        if not user.password_hash:
            raise InternalError("User password is missing in the database")

        if not verify_password(old_password, user.password_hash):
            raise AuthError("Invalid old password")

        user.password = new_password
        self.db.commit()
        logger.info(f"User {user.id} changed password")

    def issue_tokens(self, user: User) -> TokenPair:
        """Issue a new pair and persist the refresh token on the user."""
        try:
            tokens = TokenPair(
                access_token=create_access_token(user),
                refresh_token=create_refresh_token(user),
            )
            user.refresh_token = tokens.refresh_token
            self.db.commit()
        except (JWTError, SQLAlchemyError) as e:
            self.db.rollback()
            logger.error(f"Token issuance failed for user {user.id}: {e}")
            raise InternalError(
                "Something went wrong while generating refresh and access token"
            ) from e
        return tokens
