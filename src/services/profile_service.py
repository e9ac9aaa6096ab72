"""Profile updates and the channel/history read-models."""

import logging
from pathlib import Path

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from src.config import get_settings
from src.exceptions import ConflictError, NotFoundError, ValidationError
from src.models.user import User
from src.schemas.channel import ChannelProfile, WatchHistoryVideo
from src.services.media import MediaService
from src.services.read_models import fetch_channel_profile, fetch_watch_history

logger = logging.getLogger(__name__)


def schedule_media_cleanup(url: str | None) -> None:
    """Queue deletion of a replaced image on the media host."""
    if not url or not get_settings().media_cleanup_enabled:
        return

    from src.tasks.media_cleanup import delete_replaced_media

    try:
        delete_replaced_media.delay(url)
    except Exception as e:  # noqa: BLE001 - broker outages must not fail the update
        logger.error(f"Failed to queue cleanup of {url}: {e}")


class ProfileService:
    """Service for account details, images and read-models."""

    def __init__(self, db: Session, media: MediaService) -> None:
        self.db = db
        self.media = media

    def update_account_details(self, user: User, full_name: str | None, email: str | None) -> User:
        if not full_name or not full_name.strip() or not email or not email.strip():
            raise ValidationError("All fields are required")

        email = email.strip().lower()
        taken = self.db.query(User).filter(User.email == email, User.id != user.id).first()
        if taken:
            raise ConflictError("Email is already in use")

        user.full_name = full_name.strip()
        user.email = email
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ConflictError("Email is already in use") from e
        self.db.refresh(user)
        return user

    async def update_avatar(self, user: User, local_path: str | Path | None) -> User:
        return await self._replace_image(user, "avatar", local_path, "Avatar")

    async def update_cover_image(self, user: User, local_path: str | Path | None) -> User:
        return await self._replace_image(user, "cover_image", local_path, "Cover image")

    async def _replace_image(
        self, user: User, attribute: str, local_path: str | Path | None, label: str
    ) -> User:
        """Upload a new image, point ``attribute`` at it and queue removal of the old one."""
        if not local_path:
            raise ValidationError(f"{label} file is missing")

        uploaded = await self.media.upload(local_path)
        if not uploaded or not uploaded.get("url"):
            raise ValidationError(f"Error while uploading {label.lower()}")

        previous_url = getattr(user, attribute)
        setattr(user, attribute, uploaded["url"])
        self.db.commit()
        self.db.refresh(user)
        logger.info(f"User {user.id} updated {attribute}")

        if previous_url and previous_url != uploaded["url"]:
            schedule_media_cleanup(previous_url)
        return user

    def get_channel_profile(self, username: str | None, viewer: User | None = None) -> ChannelProfile:
        if not username or not username.strip():
            raise ValidationError("username is missing")

        channel = fetch_channel_profile(self.db, username, viewer.id if viewer else None)
        if channel is None:
            raise NotFoundError("channel does not exist")
        return channel

    def get_watch_history(self, user: User) -> list[WatchHistoryVideo]:
        return fetch_watch_history(self.db, user.id)
