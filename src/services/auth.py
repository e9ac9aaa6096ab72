"""Password hashing and JWT access/refresh token handling."""

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from src.config import get_settings
from src.exceptions import InvalidTokenError

if TYPE_CHECKING:
    from src.models.user import User

ACCESS_TOKEN_TYPE = "access"  # noqa: S105
REFRESH_TOKEN_TYPE = "refresh"  # noqa: S105

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# bcrypt only hashes the first 72 bytes of its input
MAX_PASSWORD_BYTES = 72


@dataclass(frozen=True)
class TokenPair:
    """Freshly issued access and refresh tokens."""

    access_token: str
    refresh_token: str


def password_too_long(password: str) -> bool:
    return len(password.encode("utf-8")) > MAX_PASSWORD_BYTES


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash.

    Stored passwords never exceed ``MAX_PASSWORD_BYTES``, so a longer candidate
    cannot match even when its first 72 bytes do.
    """
    if password_too_long(plain_password):
        return False
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password (callers reject passwords over ``MAX_PASSWORD_BYTES`` first)."""
    if password_too_long(password):
        raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    return pwd_context.hash(password)


def sign_token(claims: dict[str, Any], secret: str, ttl: timedelta) -> str:
    """Sign ``claims`` with ``secret``; the token expires after ``ttl``."""
    settings = get_settings()
    now = datetime.now(UTC)
    to_encode = {
        **claims,
        "iat": now,
        "exp": now + ttl,
        # Two tokens issued for the same user in the same second must still differ
        "jti": uuid.uuid4().hex,
    }
    return jwt.encode(to_encode, secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str, secret: str, expected_type: str | None = None) -> dict[str, Any]:
    """Decode ``token`` and return its claims.

    Raises:
        InvalidTokenError: if the signature is bad, the token expired, or its
            ``type`` claim does not match ``expected_type``.
    """
    settings = get_settings()
    try:
        claims = jwt.decode(token, secret, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError as e:
        raise InvalidTokenError("Token has expired") from e
    except JWTError as e:
        raise InvalidTokenError("Invalid token") from e

    if expected_type is not None and claims.get("type") != expected_type:
        raise InvalidTokenError("Invalid token type")
    if claims.get("sub") is None:
        raise InvalidTokenError("Token has no subject")
    return claims


def subject_id(claims: dict[str, Any]) -> int:
    """User id from a verified token's ``sub`` claim."""
    try:
        return int(claims["sub"])
    except (KeyError, TypeError, ValueError) as e:
        raise InvalidTokenError("Token subject is not a user id") from e


def create_access_token(user: "User") -> str:
    """Short-lived token carrying the user id plus denormalized profile claims."""
    settings = get_settings()
    claims = {
        "sub": str(user.id),
        "type": ACCESS_TOKEN_TYPE,
        "email": user.email,
        "username": user.username,
        "full_name": user.full_name,
    }
    return sign_token(
        claims,
        settings.access_token_secret,
        timedelta(minutes=settings.access_token_expire_minutes),
    )


def create_refresh_token(user: "User") -> str:
    """Long-lived token carrying only the user id.

    Issuing does not persist the token; the caller stores it on the user.
    """
    settings = get_settings()
    claims = {"sub": str(user.id), "type": REFRESH_TOKEN_TYPE}
    return sign_token(
        claims,
        settings.refresh_token_secret,
        timedelta(days=settings.refresh_token_expire_days),
    )


def decode_access_token(token: str) -> dict[str, Any]:
    """Verify an access token against the access-token secret."""
    return verify_token(token, get_settings().access_token_secret, ACCESS_TOKEN_TYPE)


def decode_refresh_token(token: str) -> dict[str, Any]:
    """Verify a refresh token against the refresh-token secret."""
    return verify_token(token, get_settings().refresh_token_secret, REFRESH_TOKEN_TYPE)
