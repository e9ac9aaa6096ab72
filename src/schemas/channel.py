"""Read-model schemas: channel profile and watch history."""

from datetime import datetime

from src.schemas.envelope import CamelModel


class ChannelProfile(CamelModel):
    """Public channel view with subscription counts."""

    id: int
    full_name: str
    username: str
    email: str
    avatar: str
    cover_image: str = ""
    subscribers_count: int
    channels_subscribed_to_count: int
    is_subscribed: bool


class VideoOwner(CamelModel):
    id: int
    full_name: str
    username: str
    avatar: str


class WatchHistoryVideo(CamelModel):
    """A watched video with its owner collapsed to a single object."""

    id: int
    video_file: str
    thumbnail: str
    title: str
    description: str
    duration: float
    views: int
    is_published: bool
    owner: VideoOwner | None = None
    created_at: datetime
