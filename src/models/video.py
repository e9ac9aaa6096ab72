"""Video and watch history models."""

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String, func
from sqlalchemy.orm import relationship

from src.database import Base
from src.models.mixins import TimestampMixin


class Video(Base, TimestampMixin):
    """Uploaded video; only read here for watch history."""

    __tablename__ = "videos"

    id = Column(Integer, primary_key=True, index=True)
    video_file = Column(String(1024), nullable=False)
    thumbnail = Column(String(1024), nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(String, nullable=False, default="")
    duration = Column(Float, nullable=False, default=0)  # seconds
    views = Column(Integer, nullable=False, default=0)
    is_published = Column(Boolean, nullable=False, default=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)

    # Relationships
    owner = relationship("User", back_populates="videos")


class WatchHistoryEntry(Base):
    """One position in a user's watch history; ``id`` order is sequence order."""

    __tablename__ = "watch_history"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    video_id = Column(Integer, ForeignKey("videos.id"), nullable=False, index=True)
    watched_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    user = relationship("User", back_populates="watch_history")
    video = relationship("Video")
