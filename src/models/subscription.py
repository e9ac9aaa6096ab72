"""Subscription model."""

from sqlalchemy import Column, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import relationship

from src.database import Base
from src.models.mixins import TimestampMixin


class Subscription(Base, TimestampMixin):
    """Directed edge: ``subscriber`` follows ``channel``."""

    __tablename__ = "subscriptions"
    __table_args__ = (
        UniqueConstraint("subscriber_id", "channel_id", name="uq_subscriptions_subscriber_channel"),
    )

    id = Column(Integer, primary_key=True, index=True)
    subscriber_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    channel_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # Relationships
    subscriber = relationship("User", foreign_keys=[subscriber_id], backref="subscriptions")
    channel = relationship("User", foreign_keys=[channel_id], backref="subscriber_edges")
