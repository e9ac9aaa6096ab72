"""Query builders for the channel profile and watch history read-models.

Each builder returns a fixed-shape query; the matching ``fetch_*`` function
runs it and maps rows onto the response schema. Nothing here writes.
"""

from sqlalchemy import and_, exists, false, func, select
from sqlalchemy.orm import Query, Session, aliased

from src.models.subscription import Subscription
from src.models.user import User
from src.models.video import Video, WatchHistoryEntry
from src.schemas.channel import ChannelProfile, VideoOwner, WatchHistoryVideo


def build_channel_profile_query(db: Session, username: str, viewer_id: int | None) -> Query:
    """Channel row plus subscriber/subscription counts and the viewer's membership."""
    subscribers_count = (
        select(func.count(Subscription.id))
        .where(Subscription.channel_id == User.id)
        .correlate(User)
        .scalar_subquery()
    )
    subscribed_to_count = (
        select(func.count(Subscription.id))
        .where(Subscription.subscriber_id == User.id)
        .correlate(User)
        .scalar_subquery()
    )
    if viewer_id is None:
        is_subscribed = false()
    else:
        is_subscribed = (
            exists()
            .where(and_(Subscription.channel_id == User.id, Subscription.subscriber_id == viewer_id))
            .correlate(User)
        )

    return db.query(
        User,
        subscribers_count.label("subscribers_count"),
        subscribed_to_count.label("channels_subscribed_to_count"),
        is_subscribed.label("is_subscribed"),
    ).filter(User.username == username.strip().lower())


def fetch_channel_profile(db: Session, username: str, viewer_id: int | None = None) -> ChannelProfile | None:
    """Run the channel profile query; None if no user has ``username``."""
    row = build_channel_profile_query(db, username, viewer_id).first()
    if row is None:
        return None

    user, subscribers_count, subscribed_to_count, is_subscribed = row
    return ChannelProfile(
        id=user.id,
        full_name=user.full_name,
        username=user.username,
        email=user.email,
        avatar=user.avatar,
        cover_image=user.cover_image or "",
        subscribers_count=subscribers_count or 0,
        channels_subscribed_to_count=subscribed_to_count or 0,
        is_subscribed=bool(is_subscribed),
    )


def build_watch_history_query(db: Session, user_id: int) -> Query:
    """Watched videos in sequence order, each left-joined to its owner."""
    owner = aliased(User)
    return (
        db.query(Video, owner)
        .join(WatchHistoryEntry, WatchHistoryEntry.video_id == Video.id)
        .outerjoin(owner, owner.id == Video.owner_id)
        .filter(WatchHistoryEntry.user_id == user_id)
        .order_by(WatchHistoryEntry.id)
    )


def fetch_watch_history(db: Session, user_id: int) -> list[WatchHistoryVideo]:
    """Run the watch history query, collapsing each owner to one object."""
    return [
        WatchHistoryVideo(
            id=video.id,
            video_file=video.video_file,
            thumbnail=video.thumbnail,
            title=video.title,
            description=video.description or "",
            duration=video.duration or 0,
            views=video.views or 0,
            is_published=bool(video.is_published),
            owner=VideoOwner.model_validate(owner) if owner is not None else None,
            created_at=video.created_at,
        )
        for video, owner in build_watch_history_query(db, user_id).all()
    ]


def record_watch(db: Session, user: User, video: Video) -> WatchHistoryEntry:
    """Append ``video`` to the user's history, moving it to the end if already there."""
    db.query(WatchHistoryEntry).filter(
        WatchHistoryEntry.user_id == user.id,
        WatchHistoryEntry.video_id == video.id,
    ).delete(synchronize_session=False)

    entry = WatchHistoryEntry(user_id=user.id, video_id=video.id)
    db.add(entry)
    db.commit()
    db.refresh(entry)
    return entry
