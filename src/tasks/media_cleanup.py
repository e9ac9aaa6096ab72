"""Celery task that removes replaced images from the media host."""

import asyncio
import logging

import httpx

from src.celery_app import app as celery_app
from src.services.media import MediaService

logger = logging.getLogger(__name__)


@celery_app.task(name="tasks.delete_replaced_media")
def delete_replaced_media(url: str) -> dict:
    """Delete an avatar or cover image that is no longer referenced.

    Args:
        url: Delivery URL of the replaced asset

    Returns:
        Dict with the URL and whether the host deleted it
    """
    service = MediaService()
    try:
        deleted = asyncio.run(service.destroy(url))
    except httpx.HTTPError as e:
        logger.error(f"Failed to delete replaced media {url}: {e}")
        return {"url": url, "deleted": False, "error": str(e)}

    if not deleted:
        logger.warning(f"Media host did not delete {url}")
    return {"url": url, "deleted": deleted}
