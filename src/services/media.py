"""Media host integration (Cloudinary REST API) and local upload staging."""

import hashlib
import logging
import time
import uuid
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import httpx
from fastapi import UploadFile

from src.config import get_settings

logger = logging.getLogger(__name__)


def sign_params(params: dict[str, Any], api_secret: str) -> str:
    """Cloudinary request signature: sha1 of sorted ``k=v`` pairs plus the secret."""
    to_sign = "&".join(f"{key}={params[key]}" for key in sorted(params) if params[key] != "")
    return hashlib.sha1(f"{to_sign}{api_secret}".encode()).hexdigest()  # noqa: S324


def public_id_from_url(url: str) -> str | None:
    """Extract the public id from a delivery URL.

    ``https://res.cloudinary.com/demo/image/upload/v1712/folder/abc.jpg`` -> ``folder/abc``

    Transformation segments (``c_fill,w_100``) are skipped when the URL carries a
    version; unversioned URLs are taken to be untransformed, which holds for the
    URLs the upload API returns.
    """
    path = urlparse(url).path
    marker = "/upload/"
    if marker not in path:
        return None
    tail = path.split(marker, 1)[1]
    parts = tail.split("/")
    for index, part in enumerate(parts[:-1]):
        if part.startswith("v") and part[1:].isdigit():
            parts = parts[index + 1 :]
            break
    if not parts or not parts[-1]:
        return None
    parts[-1] = parts[-1].rsplit(".", 1)[0]
    return "/".join(parts)


def discard_local_file(local_path: str | Path | None) -> None:
    """Remove a staged upload if it is still on disk."""
    if local_path:
        Path(local_path).unlink(missing_ok=True)


async def stage_upload(file: UploadFile | None, upload_dir: str | None = None) -> Path | None:
    """Write an incoming multipart file to the staging directory.

    Returns None when no file (or an empty file name) was sent.
    """
    if file is None or not file.filename:
        return None

    directory = Path(upload_dir or get_settings().upload_dir)
    directory.mkdir(parents=True, exist_ok=True)
    suffix = Path(file.filename).suffix
    local_path = directory / f"{uuid.uuid4().hex}{suffix}"
    local_path.write_bytes(await file.read())
    return local_path


class MediaService:
    """Uploads local files to Cloudinary and deletes replaced assets."""

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.settings = get_settings()
        self.base_url = f"{self.settings.cloudinary_upload_url}/{self.settings.cloudinary_cloud_name}"
        self.transport = transport
        self.timeout = 60.0

    @property
    def is_configured(self) -> bool:
        return self.settings.media_configured

    def _signed(self, params: dict[str, Any]) -> dict[str, Any]:
        params = {**params, "timestamp": str(int(time.time()))}
        params["signature"] = sign_params(params, self.settings.cloudinary_api_secret or "")
        params["api_key"] = self.settings.cloudinary_api_key
        return params

    async def upload(self, local_path: str | Path | None) -> dict[str, Any] | None:
        """Upload a staged file and return the host's response (``url`` etc).

        Returns None if there is nothing to upload or the upload fails. The
        local file is removed either way.
        """
        if not local_path:
            return None

        path = Path(local_path)
        try:
            if not self.is_configured:
                logger.error("Cloudinary credentials are not configured")
                return None

            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    f"{self.base_url}/auto/upload",
                    data=self._signed({}),
                    files={"file": (path.name, path.read_bytes())},
                )
                response.raise_for_status()
                result = response.json()
            logger.info(f"Uploaded {path.name} to {result.get('url')}")
            return result
        except (httpx.HTTPError, OSError, ValueError) as e:
            logger.error(f"Media upload failed for {path.name}: {e}")
            return None
        finally:
            discard_local_file(path)

    async def destroy(self, url: str) -> bool:
        """Delete an asset by its delivery URL. Returns True if the host removed it."""
        public_id = public_id_from_url(url)
        if not public_id or not self.is_configured:
            return False

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.post(
                f"{self.base_url}/image/destroy",
                data=self._signed({"public_id": public_id}),
            )
            response.raise_for_status()
            return response.json().get("result") == "ok"


def get_media_service() -> MediaService:
    """Get a media service instance."""
    return MediaService()
