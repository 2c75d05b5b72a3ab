"""Remote asset and result types."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any


def parse_uploaded(value: str) -> datetime:
    """Parse an API timestamp such as '2024-05-01T12:00:00.000Z' into aware UTC."""
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class RemoteAsset:
    """
    Image held by the Images service.

    Attributes:
        id: Opaque image identifier
        uploaded_at: Upload time (UTC)
        filename: File name recorded by the service, if any
        original_name: Client-supplied name from meta.fileName, if any
    """

    id: str
    uploaded_at: datetime
    filename: str | None = None
    original_name: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> RemoteAsset:
        """Build from one entry of the listing response.

        Raises:
            ValueError: If id or uploaded is missing or malformed
        """
        image_id = data.get("id")
        uploaded = data.get("uploaded")
        if not image_id or not isinstance(uploaded, str):
            raise ValueError(f"Malformed image record: {data!r}")
        meta = data.get("meta") or {}
        return cls(
            id=str(image_id),
            uploaded_at=parse_uploaded(uploaded),
            filename=data.get("filename") or None,
            original_name=meta.get("fileName") if isinstance(meta, dict) else None,
        )


@dataclass(frozen=True)
class UploadResult:
    """Outcome of uploading one image.

    duplicate is True when the URL came from the cache and no request was sent.
    """

    url: str
    digest: str
    file_name: str
    duplicate: bool = False


@dataclass
class UploadFailure:
    """An image that could not be uploaded."""

    file_name: str
    error: str
    path: Path | None = None


@dataclass
class UploadBatch:
    """Results of uploading several images one after another."""

    results: list[UploadResult] = field(default_factory=list)
    failures: list[UploadFailure] = field(default_factory=list)

    @property
    def urls(self) -> list[str]:
        return [result.url for result in self.results]

    @property
    def duplicates(self) -> int:
        return sum(1 for result in self.results if result.duplicate)

    @property
    def uploaded(self) -> int:
        return sum(1 for result in self.results if not result.duplicate)

    def duplicate_message(self) -> str | None:
        """User-facing note about reused URLs, or None if there were none."""
        count = self.duplicates
        if count == 0:
            return None
        plural = count > 1
        return (
            f"{count} duplicate image{'s' if plural else ''} detected - "
            f"reused existing URL{'s' if plural else ''}"
        )


@dataclass
class DeleteSummary:
    """
    Counts for a bulk deletion run.

    Attributes:
        listed: Images in the account
        matched: Images newer than the cutoff
        deleted: Images deleted successfully
        failed: Images whose delete call failed
        cancelled: True if the operator cancelled at the confirmation prompt
    """

    listed: int = 0
    matched: int = 0
    deleted: int = 0
    failed: int = 0
    cancelled: bool = False

    @property
    def processed(self) -> int:
        return self.deleted + self.failed

    def to_dict(self) -> dict:
        """Convert summary to dictionary for serialization."""
        return {
            "listed": self.listed,
            "matched": self.matched,
            "deleted": self.deleted,
            "failed": self.failed,
            "processed": self.processed,
            "cancelled": self.cancelled,
        }
