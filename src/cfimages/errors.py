"""Exception hierarchy for cfimages."""

from __future__ import annotations


class CfImagesError(Exception):
    """Base class for all cfimages errors."""


class ConfigError(CfImagesError):
    """Required credentials are missing or configuration is invalid."""

    def __init__(self, message: str, missing: list[str] | None = None) -> None:
        super().__init__(message)
        self.missing = missing or []


class NetworkError(CfImagesError):
    """A request to the Images API could not be completed."""


class RemoteAPIError(NetworkError):
    """The Images API answered with a non-success status.

    Attributes:
        status: HTTP status code returned by the API
        body: Raw response body as reported by the API
    """

    def __init__(self, message: str, status: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.body = body


class UploadError(RemoteAPIError):
    """Image creation was rejected by the Images API."""


class LocalIOError(CfImagesError):
    """A local file could not be read or decoded."""
