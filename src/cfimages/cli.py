"""Command-line interface for cfimages."""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .cache import ImageCache, JsonFileStore
from .deleter import BulkDeleter
from .errors import CfImagesError, ConfigError
from .formatting import SUPPORTED_LANGUAGES, format_image_reference
from .http import ImagesApiClient
from .logging_config import setup_logging
from .models.assets import UploadBatch
from .models.config import AppConfig
from .uploader import UploadSession

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_CANCELLED = 130

SETUP_HELP = """\
To configure cfimages, set these environment variables:

  CF_ACCOUNT_ID       Cloudflare account ID
  CF_API_TOKEN        API token with Images:Edit permission
  CF_ACCOUNT_HASH     Account hash (from the Images dashboard delivery URL), needed for uploads
  CF_DEFAULT_VARIANT  Delivery variant, e.g. /public (optional)

or pass --config with a YAML file:

  images:
    account_id: <account id>
    api_token: $CF_API_TOKEN
    account_hash: <account hash>
    default_variant: /public
"""


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI."""
    parser = argparse.ArgumentParser(
        prog="cfimages",
        description="Upload images to Cloudflare Images and reuse URLs of duplicates",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Upload and print Markdown references
  cfimages upload screenshot.png diagram.jpg

  # Print references for an HTML document
  cfimages upload logo.svg --language html

  # Delete everything uploaded in the last 7 days
  cfimages delete-recent

  # Inspect the deduplication cache
  cfimages cache stats
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=None,
        metavar="FILE",
        help="YAML configuration file (credentials fall back to CF_* variables)",
    )
    parser.add_argument(
        "--cache-file",
        type=Path,
        default=None,
        metavar="FILE",
        help="State file holding the deduplication cache (default: ~/.cfimages/state.json)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Verbose output",
    )
    parser.add_argument(
        "--quiet",
        "-q",
        action="store_true",
        help="Only print errors",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    upload = subparsers.add_parser("upload", help="Upload images and print references")
    upload.add_argument("paths", nargs="*", type=Path, metavar="PATH", help="Image files to upload")
    upload.add_argument(
        "--data-uri",
        metavar="URI",
        help="Upload a pasted data:image/...;base64 string instead of files",
    )
    upload.add_argument(
        "--language",
        "-l",
        default="markdown",
        metavar="ID",
        help="Document language the references are formatted for (default: markdown)",
    )

    delete = subparsers.add_parser("delete-recent", help="Delete images uploaded in the last N days")
    delete.add_argument(
        "--days",
        type=int,
        default=None,
        help="Age window in days (default: 7)",
    )

    cache = subparsers.add_parser("cache", help="Inspect or maintain the deduplication cache")
    cache.add_argument("action", choices=["stats", "list", "prune", "clear"])

    subparsers.add_parser("setup", help="Show how to configure credentials")
    subparsers.add_parser("languages", help="List supported document languages")

    return parser


def load_config(args: argparse.Namespace) -> AppConfig:
    """Build configuration from --config, CF_* variables and flags."""
    config = AppConfig.from_yaml_file(args.config) if args.config else AppConfig()
    config = config.with_env_defaults()

    updates: dict = {}
    if args.cache_file:
        updates["cache"] = config.cache.model_copy(update={"path": args.cache_file})
    if getattr(args, "days", None) is not None:
        if args.days < 1:
            raise ValueError("--days must be at least 1")
        updates["delete"] = config.delete.model_copy(update={"days": args.days})
    if args.verbose:
        updates["log_level"] = "DEBUG"
    elif args.quiet:
        updates["log_level"] = "ERROR"
    return config.model_copy(update=updates) if updates else config


def print_batch(console: Console, batch: UploadBatch, language: str, quiet: bool) -> None:
    for result in batch.results:
        console.print(
            format_image_reference(result.url, result.file_name, language),
            markup=False,
            highlight=False,
            soft_wrap=True,
        )
    for failure in batch.failures:
        console.print(f"[red]Failed to upload {escape(failure.file_name)}:[/red] {escape(failure.error)}")

    message = batch.duplicate_message()
    if message and not quiet:
        console.print(f"[cyan]{message}[/cyan]")


def run_upload(args: argparse.Namespace, config: AppConfig, console: Console) -> int:
    """Upload files (or a data URI) and print formatted references."""
    if not args.paths and not args.data_uri:
        console.print("[red]Error:[/red] Please provide image files or --data-uri")
        return EXIT_ERROR

    async def run() -> UploadBatch:
        async with UploadSession(config) as uploader:
            if args.data_uri:
                batch = UploadBatch()
                batch.results.append(await uploader.upload_data_uri(args.data_uri))
                return batch
            return await uploader.upload_many(args.paths)

    try:
        batch = asyncio.run(run())
    except ConfigError as e:
        console.print(f"[red]Configuration error:[/red] {escape(str(e))}")
        console.print("Run 'cfimages setup' for help.")
        return EXIT_ERROR
    except CfImagesError as e:
        console.print(f"[red]Upload failed:[/red] {escape(str(e))}")
        return EXIT_ERROR

    print_batch(console, batch, args.language, args.quiet)
    return EXIT_OK if not batch.failures else EXIT_ERROR


def run_delete(config: AppConfig, console: Console) -> int:
    """Run the bulk deletion; see module constants for exit codes."""
    try:
        client = ImagesApiClient(config.images, per_page=config.delete.per_page)
    except ConfigError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        return EXIT_ERROR

    async def run() -> int:
        async with client:
            summary = await BulkDeleter(client, days=config.delete.days, console=console).run()
        return EXIT_CANCELLED if summary.cancelled else EXIT_OK

    try:
        return asyncio.run(run())
    except KeyboardInterrupt:
        console.print("\n[yellow]Cancelled[/yellow]")
        return EXIT_CANCELLED
    except CfImagesError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        return EXIT_ERROR


def run_cache(action: str, config: AppConfig, console: Console) -> int:
    """Cache maintenance commands; these never touch the network."""
    cache = ImageCache(JsonFileStore(config.cache.resolved_path))

    if action == "prune":
        removed = cache.start_session(config.cache.ttl_days)
        console.print(f"Pruned {removed} expired entr{'y' if removed == 1 else 'ies'}")
    elif action == "clear":
        removed = cache.clear()
        console.print(f"Removed {removed} entr{'y' if removed == 1 else 'ies'}")
    elif action == "list":
        table = Table(title="Image cache")
        table.add_column("Created")
        table.add_column("File")
        table.add_column("URL")
        for entry in cache.entries():
            table.add_row(entry["created_at"], escape(entry["file_name"]), escape(entry["remote_url"]))
        console.print(table)
    else:
        stats = cache.stats()
        console.print(f"Cache file: {config.cache.resolved_path}")
        console.print(f"  Entries: {stats['entries']}")
        console.print(f"  Oldest: {stats['oldest'] or '-'}")
        console.print(f"  Newest: {stats['newest'] or '-'}")
    return EXIT_OK


def run_command(args: argparse.Namespace) -> int:
    """Dispatch a parsed command."""
    console = Console()

    if args.command == "setup":
        console.print(SETUP_HELP, markup=False, highlight=False)
        return EXIT_OK
    if args.command == "languages":
        console.print(", ".join(SUPPORTED_LANGUAGES))
        return EXIT_OK

    try:
        config = load_config(args)
    except Exception as e:
        console.print(f"[red]Configuration error:[/red] {escape(str(e))}")
        return EXIT_ERROR

    setup_logging(config.log_level, str(config.log_file) if config.log_file else None, force=True)

    if args.command == "upload":
        return run_upload(args, config, console)
    if args.command == "delete-recent":
        return run_delete(config, console)
    return run_cache(args.action, config, console)


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return EXIT_ERROR
    return run_command(args)


def delete_recent_main(argv: Optional[list[str]] = None) -> int:
    """Entry point of the standalone cfimages-delete-recent tool."""
    parser = argparse.ArgumentParser(
        prog="cfimages-delete-recent",
        description="Delete Cloudflare Images uploaded in the last N days (asks for confirmation)",
    )
    parser.add_argument("--config", "-c", type=Path, default=None, metavar="FILE", help="YAML configuration file")
    parser.add_argument("--days", type=int, default=None, help="Age window in days (default: 7)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    parser.add_argument("--quiet", "-q", action="store_true", help="Only print errors")
    args = parser.parse_args(argv)
    args.command = "delete-recent"
    args.cache_file = None
    return run_command(args)


if __name__ == "__main__":
    sys.exit(main())
