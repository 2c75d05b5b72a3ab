"""Tests for cache-first uploads."""

import base64
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import pytest
from cfimages.cache import CACHE_KEY, ImageCache, MemoryStore
from cfimages.errors import ConfigError, LocalIOError, UploadError
from cfimages.models.config import AppConfig, ImagesConfig
from cfimages.uploader import ImageUploader, UploadSession, decode_data_uri

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)
URL = "https://imagedelivery.net/abc/xyz/public"


@pytest.fixture
def api():
    api = AsyncMock()
    api.upload.return_value = URL
    return api


@pytest.fixture
def cache():
    return ImageCache(MemoryStore(), clock=lambda: NOW)


@pytest.fixture
def uploader(api, cache):
    return ImageUploader(api=api, cache=cache)


class TestUploadBytes:
    """Tests for ImageUploader.upload_bytes."""

    @pytest.mark.asyncio
    async def test_first_upload(self, uploader, api, cache):
        """Test new content is uploaded and cached."""
        result = await uploader.upload_bytes(b"image", "a.png")

        assert result.url == URL
        assert result.duplicate is False
        api.upload.assert_awaited_once_with(b"image", "a.png")
        assert cache.get(result.digest)["file_name"] == "a.png"

    @pytest.mark.asyncio
    async def test_same_content_reuses_url(self, uploader, api):
        """Test the second upload of identical bytes never reaches the API."""
        first = await uploader.upload_bytes(b"image", "a.png")
        second = await uploader.upload_bytes(b"image", "renamed.png")

        assert second.url == first.url
        assert second.duplicate is True
        assert api.upload.await_count == 1

    @pytest.mark.asyncio
    async def test_different_content_uploads_again(self, uploader, api):
        """Test distinct bytes are uploaded separately."""
        api.upload.side_effect = [URL, "https://imagedelivery.net/abc/other/public"]
        first = await uploader.upload_bytes(b"image-1", "a.png")
        second = await uploader.upload_bytes(b"image-2", "a.png")

        assert first.url != second.url
        assert api.upload.await_count == 2

    @pytest.mark.asyncio
    async def test_failed_upload_not_cached(self, uploader, api, cache):
        """Test failures leave the cache untouched."""
        api.upload.side_effect = UploadError("rejected", status=400, body="rejected")

        with pytest.raises(UploadError):
            await uploader.upload_bytes(b"image", "a.png")
        assert len(cache) == 0


class TestUploadFile:
    """Tests for file and data URI uploads."""

    @pytest.mark.asyncio
    async def test_upload_file(self, uploader, api, tmp_path):
        """Test file content and name are sent."""
        path = tmp_path / "diagram.png"
        path.write_bytes(b"png-bytes")

        result = await uploader.upload_file(path)

        assert result.file_name == "diagram.png"
        api.upload.assert_awaited_once_with(b"png-bytes", "diagram.png")

    @pytest.mark.asyncio
    async def test_unreadable_file(self, uploader, api, tmp_path):
        """Test missing files raise LocalIOError without a request."""
        with pytest.raises(LocalIOError):
            await uploader.upload_file(tmp_path / "missing.png")
        api.upload.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_data_uri(self, uploader, api):
        """Test pasted base64 images are decoded."""
        text = "data:image/png;base64," + base64.b64encode(b"pasted").decode()
        result = await uploader.upload_data_uri(text)

        assert result.file_name == "image.png"
        api.upload.assert_awaited_once_with(b"pasted", "image.png")

    def test_decode_rejects_non_image(self):
        """Test non-image data URIs are refused."""
        with pytest.raises(LocalIOError):
            decode_data_uri("data:text/plain;base64,aGk=")

    def test_decode_rejects_bad_base64(self):
        """Test corrupt payloads are refused."""
        with pytest.raises(LocalIOError):
            decode_data_uri("data:image/png;base64,abc")


class TestUploadMany:
    """Tests for batch uploads."""

    @pytest.mark.asyncio
    async def test_failure_isolated(self, uploader, api, tmp_path):
        """Test one unreadable file does not stop the others."""
        first = tmp_path / "a.png"
        first.write_bytes(b"a")
        third = tmp_path / "c.png"
        third.write_bytes(b"c")

        batch = await uploader.upload_many([first, tmp_path / "missing.png", third])

        assert [result.file_name for result in batch.results] == ["a.png", "c.png"]
        assert [failure.file_name for failure in batch.failures] == ["missing.png"]
        assert api.upload.await_count == 2

    @pytest.mark.asyncio
    async def test_api_failure_isolated(self, uploader, api, tmp_path):
        """Test a rejected upload is recorded and the batch continues."""
        api.upload.side_effect = [UploadError("too big", status=413, body="too big"), URL]
        paths = []
        for name in ("big.png", "ok.png"):
            path = tmp_path / name
            path.write_bytes(name.encode())
            paths.append(path)

        batch = await uploader.upload_many(paths)

        assert batch.urls == [URL]
        assert batch.failures[0].error == "too big"

    @pytest.mark.asyncio
    async def test_duplicates_counted(self, uploader, tmp_path):
        """Test duplicates within a batch are counted and reported."""
        for name in ("a.png", "b.png"):
            (tmp_path / name).write_bytes(b"same")

        batch = await uploader.upload_many([tmp_path / "a.png", tmp_path / "b.png"])

        assert batch.duplicates == 1
        assert batch.uploaded == 1
        assert batch.duplicate_message() == "1 duplicate image detected - reused existing URL"


class TestUploadSession:
    """Tests for session setup."""

    @pytest.mark.asyncio
    async def test_missing_credentials_no_network(self):
        """Test config gating happens before any client is created."""
        config = AppConfig(images=ImagesConfig(account_id="acc", api_token="tok"))
        with patch("cfimages.http.client.aiohttp.ClientSession") as session_cls:
            with pytest.raises(ConfigError):
                async with UploadSession(config, store=MemoryStore()):
                    pass
            session_cls.assert_not_called()

    @pytest.mark.asyncio
    async def test_session_prunes_before_lookup(self):
        """Test expired entries are pruned when the session starts."""
        old = NOW - timedelta(days=31)
        store = MemoryStore(
            {
                CACHE_KEY: {
                    "d": {
                        "digest": "d",
                        "remote_url": "https://old",
                        "file_name": "a.png",
                        "created_at": old.isoformat(),
                    }
                }
            }
        )
        config = AppConfig(images=ImagesConfig(account_id="acc", api_token="tok", account_hash="abc"))

        with patch("cfimages.http.client.aiohttp.ClientSession") as session_cls:
            session_cls.return_value = AsyncMock()
            async with UploadSession(config, store=store, clock=lambda: NOW) as uploader:
                assert len(uploader.cache) == 0

        assert store.get(CACHE_KEY) == {}
        session_cls.return_value.close.assert_awaited_once()
