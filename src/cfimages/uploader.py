"""Cache-first image uploads."""

from __future__ import annotations

import base64
import binascii
import logging
import re
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path
from types import TracebackType
from typing import Callable

from .cache import ImageCache, JsonFileStore, KeyValueStore
from .errors import CfImagesError, LocalIOError
from .http import ImagesApi, ImagesApiClient
from .models.assets import UploadBatch, UploadFailure, UploadResult
from .models.config import AppConfig

logger = logging.getLogger(__name__)

DATA_URI_PATTERN = re.compile(r"^data:image/[\w.+-]+;base64,(?P<payload>.*)$", re.DOTALL)


def decode_data_uri(text: str) -> bytes:
    """
    Decode a pasted 'data:image/<type>;base64,<payload>' string.

    Raises:
        LocalIOError: If text is not a base64 image data URI
    """
    match = DATA_URI_PATTERN.match(text.strip())
    if not match:
        raise LocalIOError("Not a base64 image data URI")
    try:
        return base64.b64decode(match.group("payload"))
    except (binascii.Error, ValueError) as e:
        raise LocalIOError(f"Invalid base64 image data: {e}") from e


class ImageUploader:
    """
    Upload images, reusing the URL of any content uploaded before.

    The cache is consulted before every upload and written after every
    successful one; a cache hit never reaches the API.

    Example:
        uploader = ImageUploader(api=client, cache=cache)
        result = await uploader.upload_file(Path("diagram.png"))
        if result.duplicate:
            print("reused", result.url)
    """

    def __init__(self, api: ImagesApi, cache: ImageCache):
        """
        Initialize the uploader.

        Args:
            api: Images API client
            cache: Digest cache, already pruned for this session
        """
        self._api = api
        self._cache = cache

    @property
    def cache(self) -> ImageCache:
        return self._cache

    async def upload_bytes(self, data: bytes, file_name: str) -> UploadResult:
        """
        Upload image content unless identical content was uploaded before.

        Args:
            data: Image content (passed to the API unmodified, even if empty)
            file_name: Original file name

        Returns:
            UploadResult with duplicate=True on a cache hit

        Raises:
            UploadError: If the API rejects the upload
            NetworkError: If the request could not be sent
        """
        digest = self._cache.compute_digest(data)
        cached = self._cache.get(digest)
        if cached is not None:
            logger.info(f"Duplicate image {file_name}: reusing {cached['remote_url']}")
            return UploadResult(url=cached["remote_url"], digest=digest, file_name=file_name, duplicate=True)

        url = await self._api.upload(data, file_name)
        self._cache.put(digest, url, file_name)
        return UploadResult(url=url, digest=digest, file_name=file_name)

    async def upload_file(self, path: Path) -> UploadResult:
        """
        Upload a local image file.

        Raises:
            LocalIOError: If the file cannot be read
            UploadError: If the API rejects the upload
            NetworkError: If the request could not be sent
        """
        path = Path(path)
        try:
            data = path.read_bytes()
        except OSError as e:
            raise LocalIOError(f"Could not read {path}: {e}") from e
        return await self.upload_bytes(data, path.name)

    async def upload_data_uri(self, text: str, file_name: str = "image.png") -> UploadResult:
        """
        Upload an image pasted as a base64 data URI.

        Raises:
            LocalIOError: If the text cannot be decoded
            UploadError: If the API rejects the upload
        """
        return await self.upload_bytes(decode_data_uri(text), file_name)

    async def upload_many(self, paths: Iterable[Path]) -> UploadBatch:
        """
        Upload files one after another.

        A failure is recorded for that file only; the remaining files are
        still processed.

        Args:
            paths: Files to upload, in order

        Returns:
            UploadBatch with results and failures in input order
        """
        batch = UploadBatch()
        for path in paths:
            path = Path(path)
            try:
                batch.results.append(await self.upload_file(path))
            except CfImagesError as e:
                logger.error(f"Failed to upload {path.name}: {e}")
                batch.failures.append(UploadFailure(file_name=path.name, error=str(e), path=path))

        message = batch.duplicate_message()
        if message:
            logger.info(message)
        return batch


class UploadSession:
    """
    Async context that prepares everything an upload needs.

    On entry it checks credentials before any network activity, loads the
    cache, prunes expired entries once and opens the API client.

    Example:
        async with UploadSession(AppConfig(images=ImagesConfig.from_env())) as uploader:
            batch = await uploader.upload_many(paths)
    """

    def __init__(
        self,
        config: AppConfig,
        store: KeyValueStore | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """
        Args:
            config: Application configuration
            store: Key-value store for the cache (defaults to the configured JSON file)
            clock: Clock passed to the cache, for tests
        """
        self._config = config
        self._store = store
        self._clock = clock
        self._client: ImagesApiClient | None = None

    async def __aenter__(self) -> ImageUploader:
        self._config.images.require_credentials()

        store = self._store or JsonFileStore(self._config.cache.resolved_path)
        cache = ImageCache(store, clock=self._clock)
        cache.start_session(self._config.cache.ttl_days)

        self._client = ImagesApiClient(self._config.images, per_page=self._config.delete.per_page)
        await self._client.__aenter__()
        return ImageUploader(api=self._client, cache=cache)

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self._client is not None:
            await self._client.__aexit__(exc_type, exc_val, exc_tb)
            self._client = None
