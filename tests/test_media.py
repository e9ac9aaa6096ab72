"""Tests for the media host client, upload staging and replaced-image cleanup."""

import hashlib
import io
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from starlette.datastructures import UploadFile

from src.config import get_settings
from src.services.media import MediaService, public_id_from_url, sign_params, stage_upload
from src.services.profile_service import schedule_media_cleanup
from src.tasks.media_cleanup import delete_replaced_media


def test_sign_params_sorts_and_appends_secret():
    expected = hashlib.sha1(b"public_id=abc&timestamp=1700000000shh").hexdigest()  # noqa: S324

    assert sign_params({"timestamp": 1700000000, "public_id": "abc"}, "shh") == expected


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("http://res.cloudinary.com/demo/image/upload/v1712/abc.jpg", "abc"),
        ("https://res.cloudinary.com/demo/image/upload/v1712/folder/abc.png", "folder/abc"),
        ("https://res.cloudinary.com/demo/image/upload/abc.png", "abc"),
        ("https://res.cloudinary.com/demo/image/upload/c_fill,w_100/v1712/x.jpg", "x"),
        ("https://res.cloudinary.com/demo/image/upload/c_fill/e_grayscale/v1/f/x.jpg", "f/x"),
        # A file literally named like a version stays the public id
        ("https://res.cloudinary.com/demo/image/upload/v12.jpg", "v12"),
        ("https://example.com/not-a-cloudinary-url.png", None),
        ("", None),
    ],
)
def test_public_id_from_url(url, expected):
    assert public_id_from_url(url) == expected


@pytest.mark.asyncio
async def test_stage_upload_writes_file(tmp_path):
    upload = UploadFile(file=io.BytesIO(b"image-bytes"), filename="me.png")

    path = await stage_upload(upload, str(tmp_path))

    assert path.parent == tmp_path
    assert path.suffix == ".png"
    assert path.read_bytes() == b"image-bytes"


@pytest.mark.asyncio
async def test_stage_upload_without_file(tmp_path):
    assert await stage_upload(None, str(tmp_path)) is None
    assert await stage_upload(UploadFile(file=io.BytesIO(b""), filename=""), str(tmp_path)) is None


class TestMediaService:
    @pytest.mark.asyncio
    async def test_upload_success_removes_local_file(self, tmp_path):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = request.read()
            return httpx.Response(
                200,
                json={
                    "public_id": "abc",
                    "url": "http://res.cloudinary.com/test-cloud/image/upload/v1/abc.png",
                },
            )

        local = tmp_path / "avatar.png"
        local.write_bytes(b"png")
        service = MediaService(transport=httpx.MockTransport(handler))

        result = await service.upload(local)

        assert result["url"].endswith("abc.png")
        assert seen["url"].endswith("/test-cloud/auto/upload")
        assert b"signature" in seen["body"]
        assert b"api_key" in seen["body"]
        assert not local.exists()

    @pytest.mark.asyncio
    async def test_upload_failure_returns_none(self, tmp_path):
        local = tmp_path / "avatar.png"
        local.write_bytes(b"png")
        service = MediaService(
            transport=httpx.MockTransport(lambda request: httpx.Response(500, json={}))
        )

        assert await service.upload(local) is None
        assert not local.exists()

    @pytest.mark.asyncio
    async def test_upload_nothing(self):
        service = MediaService(transport=httpx.MockTransport(lambda request: httpx.Response(200)))

        assert await service.upload(None) is None

    @pytest.mark.asyncio
    async def test_destroy(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = request.read()
            return httpx.Response(200, json={"result": "ok"})

        service = MediaService(transport=httpx.MockTransport(handler))

        deleted = await service.destroy("http://res.cloudinary.com/test-cloud/image/upload/v1/abc.png")

        assert deleted is True
        assert seen["url"].endswith("/test-cloud/image/destroy")
        assert b"public_id=abc" in seen["body"]

    @pytest.mark.asyncio
    async def test_destroy_unrecognized_url(self):
        service = MediaService(transport=httpx.MockTransport(lambda request: httpx.Response(500)))

        assert await service.destroy("https://example.com/x.png") is False


class TestMediaCleanup:
    def test_schedule_is_disabled_by_setting(self):
        with patch("src.tasks.media_cleanup.delete_replaced_media.delay") as mock_task:
            schedule_media_cleanup("http://res.cloudinary.com/test-cloud/image/upload/v1/old.png")

        mock_task.assert_not_called()

    def test_schedule_queues_task(self, monkeypatch):
        monkeypatch.setattr(get_settings(), "media_cleanup_enabled", True)
        url = "http://res.cloudinary.com/test-cloud/image/upload/v1/old.png"

        with patch("src.tasks.media_cleanup.delete_replaced_media.delay") as mock_task:
            schedule_media_cleanup(url)

        mock_task.assert_called_once_with(url)

    def test_broker_failure_does_not_raise(self, monkeypatch):
        monkeypatch.setattr(get_settings(), "media_cleanup_enabled", True)

        with patch(
            "src.tasks.media_cleanup.delete_replaced_media.delay",
            side_effect=ConnectionError("broker down"),
        ):
            schedule_media_cleanup("http://res.cloudinary.com/test-cloud/image/upload/v1/old.png")

    def test_avatar_update_queues_cleanup_of_previous_image(self, client, make_user, monkeypatch):
        headers = make_user()
        old_avatar = client.get("/api/v1/users/current-user", headers=headers).json()["data"][
            "avatar"
        ]
        monkeypatch.setattr(get_settings(), "media_cleanup_enabled", True)

        with patch("src.tasks.media_cleanup.delete_replaced_media.delay") as mock_task:
            response = client.patch(
                "/api/v1/users/avatar",
                headers=headers,
                files={"avatar": ("new.png", b"new-avatar", "image/png")},
            )

        assert response.status_code == 200
        mock_task.assert_called_once_with(old_avatar)

    def test_task_deletes_media(self):
        with patch.object(MediaService, "destroy", new=AsyncMock(return_value=True)) as destroy:
            result = delete_replaced_media.run("http://res.cloudinary.com/x/image/upload/v1/a.png")

        destroy.assert_awaited_once()
        assert result == {
            "url": "http://res.cloudinary.com/x/image/upload/v1/a.png",
            "deleted": True,
        }

    def test_task_reports_host_errors(self):
        with patch.object(
            MediaService, "destroy", new=AsyncMock(side_effect=httpx.ConnectError("down"))
        ):
            result = delete_replaced_media.run("http://res.cloudinary.com/x/image/upload/v1/a.png")

        assert result["deleted"] is False
        assert "down" in result["error"]
