"""Tests for the command-line interface."""

import io
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import pytest
from cfimages.cache import CACHE_KEY, JsonFileStore
from cfimages.cli import EXIT_CANCELLED, EXIT_ERROR, EXIT_OK, create_parser, delete_recent_main, main
from cfimages.errors import RemoteAPIError
from cfimages.models.assets import RemoteAsset

URL = "https://imagedelivery.net/abc/xyz/public"


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("CF_ACCOUNT_ID", "CF_API_TOKEN", "CF_ACCOUNT_HASH", "CF_DEFAULT_VARIANT"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def credentials(monkeypatch):
    monkeypatch.setenv("CF_ACCOUNT_ID", "acc")
    monkeypatch.setenv("CF_API_TOKEN", "tok")
    monkeypatch.setenv("CF_ACCOUNT_HASH", "abc")


class TestParser:
    """Tests for argument parsing."""

    def test_upload_args(self):
        """Test upload paths and language."""
        args = create_parser().parse_args(["upload", "a.png", "b.png", "--language", "html"])
        assert [str(path) for path in args.paths] == ["a.png", "b.png"]
        assert args.language == "html"

    def test_delete_days(self):
        """Test deletion window flag."""
        args = create_parser().parse_args(["delete-recent", "--days", "3"])
        assert args.days == 3

    def test_no_command(self):
        """Test running without a command prints help."""
        assert main([]) == EXIT_ERROR


class TestSetupCommand:
    """Tests for informational commands."""

    def test_setup(self, capsys):
        """Test setup help mentions every variable."""
        assert main(["setup"]) == EXIT_OK
        out = capsys.readouterr().out
        for name in ("CF_ACCOUNT_ID", "CF_API_TOKEN", "CF_ACCOUNT_HASH"):
            assert name in out

    def test_languages(self, capsys):
        """Test supported languages are listed."""
        assert main(["languages"]) == EXIT_OK
        assert "markdown" in capsys.readouterr().out


class TestUploadCommand:
    """Tests for the upload command."""

    def test_missing_credentials(self, tmp_path, capsys):
        """Test missing configuration fails before any request."""
        image = tmp_path / "a.png"
        image.write_bytes(b"png")
        with patch("cfimages.http.client.aiohttp.ClientSession") as session_cls:
            code = main(["--cache-file", str(tmp_path / "state.json"), "upload", str(image)])
        assert code == EXIT_ERROR
        session_cls.assert_not_called()
        assert "Configuration error" in capsys.readouterr().out

    def test_no_inputs(self, credentials, capsys):
        """Test upload requires files or a data URI."""
        assert main(["upload"]) == EXIT_ERROR

    def test_upload_prints_reference_and_caches(self, credentials, tmp_path, capsys):
        """Test a successful upload prints a Markdown reference and fills the cache."""
        image = tmp_path / "a.png"
        image.write_bytes(b"png")
        state = tmp_path / "state.json"

        with patch("cfimages.http.client.aiohttp.ClientSession", return_value=AsyncMock()):
            with patch("cfimages.http.client.ImagesApiClient.upload", new=AsyncMock(return_value=URL)) as upload:
                assert main(["--cache-file", str(state), "upload", str(image)]) == EXIT_OK
                assert main(["--cache-file", str(state), "upload", str(image)]) == EXIT_OK

        assert upload.await_count == 1
        out = capsys.readouterr().out
        assert f"![a.png]({URL})" in out
        assert "1 duplicate image detected" in out
        assert len(JsonFileStore(state).get(CACHE_KEY)) == 1

    def test_unreadable_file(self, credentials, tmp_path):
        """Test failures in a batch give a non-zero exit code."""
        with patch("cfimages.http.client.aiohttp.ClientSession", return_value=AsyncMock()):
            code = main(["--cache-file", str(tmp_path / "state.json"), "upload", str(tmp_path / "missing.png")])
        assert code == EXIT_ERROR


class TestDeleteCommand:
    """Tests for the delete-recent command."""

    def test_missing_credentials(self, capsys):
        """Test missing credentials exit 1 without network access."""
        with patch("cfimages.http.client.aiohttp.ClientSession") as session_cls:
            assert main(["delete-recent"]) == EXIT_ERROR
        session_cls.assert_not_called()

    def test_standalone_missing_credentials(self):
        """Test the standalone tool shares the same gate."""
        assert delete_recent_main([]) == EXIT_ERROR

    def test_account_hash_not_required(self, monkeypatch, capsys):
        """Test deleting needs only the account id and API token."""
        monkeypatch.setenv("CF_ACCOUNT_ID", "acc")
        monkeypatch.setenv("CF_API_TOKEN", "tok")
        with patch("cfimages.http.client.aiohttp.ClientSession", return_value=AsyncMock()):
            with patch("cfimages.http.client.ImagesApiClient.list_images", new=AsyncMock(return_value=[])) as list_images:
                assert main(["delete-recent"]) == EXIT_OK
        list_images.assert_awaited_once()
        assert "No images found" in capsys.readouterr().out

    def test_nothing_to_delete(self, credentials, capsys):
        """Test an empty selection exits 0."""
        with patch("cfimages.cli.ImagesApiClient") as client_cls:
            client = client_cls.return_value
            client.list_images = AsyncMock(return_value=[])
            assert main(["delete-recent"]) == EXIT_OK
        assert "No images found" in capsys.readouterr().out

    def test_listing_failure(self, credentials):
        """Test listing errors exit 1."""
        with patch("cfimages.cli.ImagesApiClient") as client_cls:
            client = client_cls.return_value
            client.list_images = AsyncMock(side_effect=RemoteAPIError("Failed to list images: denied"))
            client.delete_image = AsyncMock()
            assert main(["delete-recent"]) == EXIT_ERROR
            client.delete_image.assert_not_awaited()

    def test_end_of_input_cancels(self, credentials, monkeypatch):
        """Test closed stdin at the prompt deletes nothing."""
        recent = RemoteAsset(id="a", uploaded_at=datetime.now(timezone.utc) - timedelta(days=1))
        monkeypatch.setattr("sys.stdin", io.StringIO(""))
        with patch("cfimages.cli.ImagesApiClient") as client_cls:
            client = client_cls.return_value
            client.list_images = AsyncMock(return_value=[recent])
            client.delete_image = AsyncMock()
            assert delete_recent_main(["--days", "7"]) == EXIT_CANCELLED
            client.delete_image.assert_not_awaited()

    def test_enter_confirms(self, credentials, monkeypatch):
        """Test an empty line at the prompt proceeds."""
        recent = RemoteAsset(id="a", uploaded_at=datetime.now(timezone.utc) - timedelta(days=1))
        monkeypatch.setattr("sys.stdin", io.StringIO("\n"))
        with patch("cfimages.cli.ImagesApiClient") as client_cls:
            client = client_cls.return_value
            client.list_images = AsyncMock(return_value=[recent])
            client.delete_image = AsyncMock()
            assert main(["delete-recent"]) == EXIT_OK
            client.delete_image.assert_awaited_once_with("a")


class TestCacheCommand:
    """Tests for cache maintenance."""

    def test_stats_empty(self, tmp_path, capsys):
        """Test stats work without credentials."""
        assert main(["--cache-file", str(tmp_path / "state.json"), "cache", "stats"]) == EXIT_OK
        assert "Entries: 0" in capsys.readouterr().out

    def test_prune(self, tmp_path, capsys):
        """Test prune removes expired entries from the state file."""
        state = tmp_path / "state.json"
        old = (datetime.now(timezone.utc) - timedelta(days=40)).isoformat()
        JsonFileStore(state).update(
            CACHE_KEY,
            {"d": {"digest": "d", "remote_url": URL, "file_name": "a.png", "created_at": old}},
        )

        assert main(["--cache-file", str(state), "cache", "prune"]) == EXIT_OK
        assert JsonFileStore(state).get(CACHE_KEY) == {}
        assert "Pruned 1 expired entry" in capsys.readouterr().out

    def test_config_file(self, tmp_path, capsys):
        """Test settings are read from a YAML file."""
        state = tmp_path / "from-config.json"
        config = tmp_path / "cfimages.yaml"
        config.write_text(f"cache:\n  path: {state}\n", encoding="utf-8")

        assert main(["--config", str(config), "cache", "clear"]) == EXIT_OK
        assert state.exists()

    def test_invalid_config_file(self, tmp_path, capsys):
        """Test unknown settings are reported."""
        config = tmp_path / "cfimages.yaml"
        config.write_text("unknown: 1\n", encoding="utf-8")
        assert main(["--config", str(config), "cache", "stats"]) == EXIT_ERROR
        assert "Configuration error" in capsys.readouterr().out
