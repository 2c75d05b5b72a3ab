"""Bulk deletion of recently uploaded images."""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterable
from datetime import datetime, timedelta, timezone
from typing import Callable, TextIO

from rich.console import Console
from rich.markup import escape

from .errors import CfImagesError
from .http import ImagesApi
from .models.assets import DeleteSummary, RemoteAsset

logger = logging.getLogger(__name__)

DEFAULT_DAYS = 7


def read_confirmation(stream: TextIO | None = None) -> bool:
    """
    Block until one line of input arrives.

    The content of the line is ignored; an empty line proceeds. Only end of
    input (e.g. a closed stdin) counts as a refusal.

    Returns:
        True if a line was read
    """
    line = (stream or sys.stdin).readline()
    return line != ""


def compute_cutoff(now: datetime, days: int = DEFAULT_DAYS) -> datetime:
    return now - timedelta(days=days)


def select_recent(assets: Iterable[RemoteAsset], cutoff: datetime) -> list[RemoteAsset]:
    """Keep assets uploaded strictly after cutoff, preserving listing order."""
    return [asset for asset in assets if asset.uploaded_at > cutoff]


class BulkDeleter:
    """
    Delete every image uploaded within the last N days.

    Runs once: list, filter, confirm, delete each, report. A failed delete is
    counted and the run continues with the next image; nothing is retried or
    rolled back. A second run lists again from scratch.

    Example:
        async with ImagesApiClient(config) as client:
            summary = await BulkDeleter(client, days=7).run()
        print(summary.to_dict())
    """

    def __init__(
        self,
        api: ImagesApi,
        *,
        days: int = DEFAULT_DAYS,
        confirm: Callable[[], bool] | None = None,
        console: Console | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """
        Args:
            api: Images API client
            days: Age window; images uploaded after now - days are deleted
            confirm: Blocking confirmation gate (defaults to reading one stdin line)
            console: Console for operator output
            clock: Returns the current time (timezone-aware), for tests
        """
        self._api = api
        self._days = days
        self._confirm = confirm or read_confirmation
        self._console = console or Console()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def _show_assets(self, assets: list[RemoteAsset]) -> None:
        for index, asset in enumerate(assets, start=1):
            self._console.print(f"{index}. ID: {escape(asset.id)}")
            self._console.print(f"   Uploaded: {asset.uploaded_at.isoformat()}")
            self._console.print(f"   Filename: {escape(asset.filename or 'N/A')}")
            if asset.original_name:
                self._console.print(f"   Original: {escape(asset.original_name)}")
            self._console.print()

    def _report(self, summary: DeleteSummary) -> None:
        self._console.print()
        self._console.print("[bold]Summary:[/bold]")
        self._console.print(f"  Images listed: {summary.listed}")
        self._console.print(f"  Matched cutoff: {summary.matched}")
        self._console.print(f"  [green]Deleted:[/green] {summary.deleted}")
        self._console.print(f"  [red]Failed:[/red] {summary.failed}")

    async def run(self) -> DeleteSummary:
        """
        Execute the deletion.

        Returns:
            Summary of the run (cancelled=True if confirmation was refused)

        Raises:
            RemoteAPIError: If listing fails; nothing has been deleted then
            NetworkError: If the listing request could not be sent
        """
        summary = DeleteSummary()
        cutoff = compute_cutoff(self._clock(), self._days)
        self._console.print(f"Cutoff date: {cutoff.isoformat()}")
        self._console.print("  (deleting images uploaded after this date)\n")

        self._console.print("Fetching all images...")
        assets = await self._api.list_images()
        summary.listed = len(assets)
        self._console.print(f"Total images in account: {summary.listed}\n")

        recent = select_recent(assets, cutoff)
        summary.matched = len(recent)
        if not recent:
            self._console.print(f"[green]No images found from the last {self._days} days[/green]")
            return summary

        self._console.print(f"Found {summary.matched} image(s) to delete:\n")
        self._show_assets(recent)

        self._console.print("[bold yellow]WARNING: This action cannot be undone![/bold yellow]")
        self._console.print("Press Ctrl+C to cancel, or press Enter to continue...")
        if not self._confirm():
            summary.cancelled = True
            logger.info("Deletion cancelled at confirmation prompt")
            self._console.print("[yellow]Cancelled, nothing was deleted[/yellow]")
            return summary

        self._console.print("\nDeleting images...\n")
        for asset in recent:
            label = escape(f"{asset.id} ({asset.filename or 'N/A'})")
            try:
                await self._api.delete_image(asset.id)
            except CfImagesError as e:
                summary.failed += 1
                logger.error(f"Failed to delete {asset.id}: {e}")
                self._console.print(f"[red]Failed:[/red] {escape(asset.id)} - {escape(str(e))}")
                continue
            summary.deleted += 1
            self._console.print(f"[green]Deleted:[/green] {label}")

        self._report(summary)
        return summary
