"""User model."""

from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import relationship

from src.database import Base
from src.models.mixins import TimestampMixin
from src.services.auth import get_password_hash


class User(Base, TimestampMixin):
    """Channel owner and viewer account.

    ``refresh_token`` holds the single live refresh token; a session is active
    while it is non-empty.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(100), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(255), nullable=False, index=True)
    avatar = Column(String(1024), nullable=False)
    cover_image = Column(String(1024), nullable=False, default="")
    password_hash = Column(String(255), nullable=False)
    refresh_token = Column(String(1024), nullable=True)

    # Ordered by insertion, which is watch order
    watch_history = relationship(
        "WatchHistoryEntry",
        back_populates="user",
        order_by="WatchHistoryEntry.id",
        cascade="all, delete-orphan",
    )
    videos = relationship("Video", back_populates="owner")

    @property
    def password(self) -> str:
        raise AttributeError("password is write-only")

    @password.setter
    def password(self, plain_password: str) -> None:
        self.password_hash = get_password_hash(plain_password)

    @property
    def has_active_session(self) -> bool:
        return bool(self.refresh_token)
