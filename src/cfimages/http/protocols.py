"""Protocol definitions for the Images API abstraction."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from ..models.assets import RemoteAsset


@dataclass(frozen=True)
class HttpResponse:
    """
    Immutable HTTP response returned by the API client.

    Attributes:
        status_code: HTTP status code (200, 404, etc.)
        content: Raw response content as bytes
    """

    status_code: int
    content: bytes

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")


class ImagesApi(Protocol):
    """
    Protocol for Images API clients.

    This abstraction allows for:
    - Mock implementations in tests
    - Keeping the uploader and deleter free of HTTP details
    """

    async def upload(self, data: bytes, file_name: str) -> str:
        """
        Create an image and return its delivery URL.

        Raises:
            UploadError: If the API rejects the upload
            NetworkError: If the request could not be sent
        """
        ...

    async def list_images(self) -> list[RemoteAsset]:
        """
        List every image in the account.

        Raises:
            RemoteAPIError: If the listing call fails
        """
        ...

    async def delete_image(self, image_id: str) -> None:
        """
        Delete one image.

        Raises:
            RemoteAPIError: If the API refuses the delete
        """
        ...
