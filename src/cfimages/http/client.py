"""Async client for the Cloudflare Images v1 API."""

from __future__ import annotations

import asyncio
import json
import logging
from types import TracebackType
from typing import Any
from urllib.parse import quote

import aiohttp

from .. import __version__
from ..errors import NetworkError, RemoteAPIError, UploadError
from ..models.assets import RemoteAsset
from ..models.config import ImagesConfig
from .protocols import HttpResponse

logger = logging.getLogger(__name__)

API_BASE = "https://api.cloudflare.com/client/v4"
DELIVERY_HOST = "https://imagedelivery.net"


def build_delivery_url(account_hash: str, image_id: str, variant: str) -> str:
    """
    Compose the public delivery URL of an image.

    Args:
        account_hash: Account hash from the Images dashboard
        image_id: Identifier returned when the image was created
        variant: Variant path such as '/public' (leading slash optional)

    Returns:
        URL of the form https://imagedelivery.net/<hash>/<id>/<variant>
    """
    return f"{DELIVERY_HOST}/{account_hash}/{image_id}/{variant.strip('/')}"


class ImagesApiClient:
    """
    Async client for listing, creating and deleting images.

    Each call is a single request: there is no retry and no rate limiting.
    No timeout is applied unless one is configured, so a stalled request
    stalls the caller.

    Example:
        client = ImagesApiClient(ImagesConfig.from_env())

        async with client:
            url = await client.upload(data, "diagram.png")
    """

    def __init__(
        self,
        config: ImagesConfig,
        *,
        per_page: int = 100,
        timeout: float | None = None,
        user_agent: str | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            config: Credentials and delivery settings
            per_page: Page size used when listing images
            timeout: Total request timeout in seconds (None = no timeout)
            user_agent: Custom User-Agent string

        Raises:
            ConfigError: If account id or API token is missing
        """
        config.require_api_credentials()
        self._config = config
        self._per_page = per_page
        self._timeout = timeout
        self._user_agent = user_agent or f"cfimages/{__version__}"
        self._session: aiohttp.ClientSession | None = None

    @property
    def images_url(self) -> str:
        return f"{API_BASE}/accounts/{self._config.account_id}/images/v1"

    async def __aenter__(self) -> ImagesApiClient:
        """Enter async context and create session."""
        self._session = aiohttp.ClientSession(
            headers={
                "Authorization": f"Bearer {self._config.api_token}",
                "User-Agent": self._user_agent,
            },
            timeout=aiohttp.ClientTimeout(total=self._timeout),
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit async context and close session."""
        if self._session:
            await self._session.close()
            self._session = None

    async def _request(
        self,
        method: str,
        url: str,
        *,
        data: Any = None,
        params: dict[str, Any] | None = None,
    ) -> HttpResponse:
        """
        Send one request and read the whole body.

        Raises:
            NetworkError: On connection errors or timeouts
        """
        if self._session is None:
            raise RuntimeError("Client not initialized. Use 'async with' context manager.")

        try:
            async with self._session.request(method, url, data=data, params=params) as response:
                content = await response.read()
                return HttpResponse(
                    status_code=response.status,
                    content=content,
                )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise NetworkError(f"{method} {url} failed: {e}") from e

    @staticmethod
    def _parse_json(response: HttpResponse, what: str, error_cls: type[RemoteAPIError]) -> dict[str, Any]:
        """Decode the API envelope, raising error_cls if it reports failure."""
        try:
            payload = json.loads(response.content or b"{}")
        except ValueError as e:
            raise error_cls(
                f"Failed to {what}: invalid JSON response",
                status=response.status_code,
                body=response.text,
            ) from e

        if not isinstance(payload, dict) or payload.get("success") is False:
            raise error_cls(f"Failed to {what}: {response.text}", status=response.status_code, body=response.text)
        return payload

    async def upload(self, data: bytes, file_name: str) -> str:
        """
        Create an image from raw bytes.

        The content is sent as-is; size and type checks are left to the API.

        Args:
            data: Image content
            file_name: Name reported to the API

        Returns:
            Delivery URL of the created image

        Raises:
            ConfigError: If the account hash needed for delivery URLs is missing
            UploadError: If the API rejects the upload
            NetworkError: If the request could not be sent
        """
        self._config.require_credentials()

        form = aiohttp.FormData()
        form.add_field("file", data, filename=file_name or "image", content_type="application/octet-stream")
        form.add_field("requireSignedURLs", "false")

        logger.debug(f"Uploading {file_name} ({len(data)} bytes)")
        response = await self._request("POST", self.images_url, data=form)
        if not response.ok:
            raise UploadError(
                f"Failed to upload image: {response.text}",
                status=response.status_code,
                body=response.text,
            )

        payload = self._parse_json(response, "upload image", UploadError)
        result = payload.get("result") or {}
        image_id = result.get("id") if isinstance(result, dict) else None
        if not image_id:
            raise UploadError(
                "Failed to upload image: response has no image id",
                status=response.status_code,
                body=response.text,
            )

        url = build_delivery_url(self._config.account_hash or "", str(image_id), self._config.default_variant)
        logger.info(f"Uploaded {file_name} -> {url}")
        return url

    @staticmethod
    def _total_count(payload: dict[str, Any]) -> int | None:
        """Total number of images reported in result_info, if the API sent one."""
        info = payload.get("result_info")
        if isinstance(info, dict) and isinstance(info.get("total_count"), int):
            return info["total_count"]
        return None

    async def list_images(self) -> list[RemoteAsset]:
        """
        List every image in the account.

        Pages are requested until one of them is short or empty, result_info
        reports that every image has been seen, or a full page holds no id
        that earlier pages did not already return. Records without an id or
        upload time are skipped and repeated ids are listed once.

        Returns:
            Images in listing order

        Raises:
            RemoteAPIError: If any listing request fails
            NetworkError: If a request could not be sent
        """
        assets: list[RemoteAsset] = []
        seen_ids: set[str] = set()
        page = 1

        while True:
            response = await self._request(
                "GET",
                self.images_url,
                params={"page": page, "per_page": self._per_page},
            )
            if not response.ok:
                raise RemoteAPIError(
                    f"Failed to list images: {response.text}",
                    status=response.status_code,
                    body=response.text,
                )

            payload = self._parse_json(response, "list images", RemoteAPIError)
            result = payload.get("result") or {}
            records = (result.get("images") or []) if isinstance(result, dict) else []

            page_ids = {str(record["id"]) for record in records if isinstance(record, dict) and record.get("id")}
            new_ids = page_ids - seen_ids
            added = len(new_ids)
            seen_ids.update(page_ids)

            for record in records:
                try:
                    asset = RemoteAsset.from_api(record)
                except (AttributeError, TypeError, ValueError) as e:
                    logger.warning(f"Skipping image record: {e}")
                    continue
                if asset.id in new_ids:
                    new_ids.discard(asset.id)
                    assets.append(asset)

            logger.debug(f"Listed page {page}: {len(records)} images")
            if len(records) < self._per_page:
                break
            total_count = self._total_count(payload)
            if total_count is not None and len(seen_ids) >= total_count:
                break
            if added == 0:
                logger.warning(f"Page {page} returned no new images, stopping listing")
                break
            page += 1

        return assets

    async def delete_image(self, image_id: str) -> None:
        """
        Delete one image.

        Raises:
            RemoteAPIError: If the API refuses the delete
            NetworkError: If the request could not be sent
        """
        url = f"{self.images_url}/{quote(image_id, safe='')}"
        response = await self._request("DELETE", url)
        if not response.ok:
            raise RemoteAPIError(
                f"Failed to delete image {image_id}: {response.text}",
                status=response.status_code,
                body=response.text,
            )
        logger.debug(f"Deleted image {image_id}")
