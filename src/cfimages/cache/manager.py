"""Content-addressed cache mapping image digests to delivery URLs."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional, TypedDict, Union

from ..hashing import compute_digest
from .store import KeyValueStore

logger = logging.getLogger(__name__)

# Default TTL for cache entries (30 days)
DEFAULT_TTL_DAYS = 30

# Key the whole mapping is stored under in the host's key-value store
CACHE_KEY = "cfimages.imageCache"


class CacheEntry(TypedDict):
    """Type for image cache entries."""

    digest: str
    remote_url: str
    file_name: str
    created_at: str


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class ImageCache:
    """Map image content digests to previously issued delivery URLs.

    Features:
    - Write-through: every mutation is persisted to the key-value store
    - TTL support: entries older than a threshold are pruned per session
    - Fail-soft persistence: a failed write is logged and the in-memory
      mapping stays authoritative for the rest of the session

    Example:
        cache = ImageCache(JsonFileStore(path))
        cache.start_session()
        entry = cache.get(digest)
        if entry is None:
            url = await client.upload(data, name)
            cache.put(digest, url, name)
    """

    def __init__(
        self,
        store: KeyValueStore,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize the cache and load the persisted mapping.

        Args:
            store: Key-value store the mapping is persisted in
            clock: Returns the current time (timezone-aware); defaults to UTC now
        """
        self._store = store
        self._clock = clock or _utcnow
        self._entries: dict[str, CacheEntry] = self._load()

    def _load(self) -> dict[str, CacheEntry]:
        """Load the mapping from the store, dropping malformed entries."""
        try:
            data = self._store.get(CACHE_KEY, {})
        except Exception as e:
            logger.warning(f"Could not load image cache: {e}")
            return {}

        if not isinstance(data, dict):
            logger.warning("Ignoring image cache: stored value is not a mapping")
            return {}

        entries: dict[str, CacheEntry] = {}
        for digest, entry in data.items():
            if isinstance(entry, dict) and "remote_url" in entry:
                entries[digest] = {
                    "digest": digest,
                    "remote_url": str(entry["remote_url"]),
                    "file_name": str(entry.get("file_name", "")),
                    "created_at": str(entry.get("created_at", "")),
                }
            else:
                logger.debug(f"Skipping malformed cache entry {digest}")
        return entries

    def _save(self) -> bool:
        """Persist the full mapping. Returns False if the write failed."""
        try:
            self._store.update(CACHE_KEY, dict(self._entries))
            return True
        except Exception as e:
            logger.error(f"Could not save image cache: {e}")
            return False

    @staticmethod
    def compute_digest(content: Union[str, bytes]) -> str:
        """Digest used as the cache key for content."""
        return compute_digest(content)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, digest: object) -> bool:
        return digest in self._entries

    def get(self, digest: str) -> Optional[CacheEntry]:
        """Look up the entry for a digest.

        Args:
            digest: Content digest

        Returns:
            The cache entry, or None if the content was never uploaded
        """
        return self._entries.get(digest)

    def put(self, digest: str, remote_url: str, file_name: str) -> CacheEntry:
        """Record an upload and persist the mapping.

        Args:
            digest: Content digest of the uploaded image
            remote_url: Delivery URL issued for it
            file_name: Original file name of the upload

        Returns:
            The stored entry
        """
        entry: CacheEntry = {
            "digest": digest,
            "remote_url": remote_url,
            "file_name": file_name,
            "created_at": self._clock().isoformat(),
        }
        self._entries[digest] = entry
        self._save()
        return entry

    def prune(self, max_age_seconds: float) -> int:
        """Remove entries created more than max_age_seconds ago.

        Entries whose timestamp cannot be parsed are removed as well.
        The mapping is only persisted if something was removed.

        Args:
            max_age_seconds: Maximum entry age

        Returns:
            Number of entries removed
        """
        cutoff = self._clock() - timedelta(seconds=max_age_seconds)
        to_remove = []

        for digest, entry in self._entries.items():
            created_at = _parse_timestamp(entry.get("created_at"))
            if created_at is None or created_at < cutoff:
                to_remove.append(digest)

        for digest in to_remove:
            del self._entries[digest]

        if to_remove:
            self._save()
            logger.info(f"Pruned {len(to_remove)} expired cache entries")

        return len(to_remove)

    def start_session(self, ttl_days: Optional[int] = DEFAULT_TTL_DAYS) -> int:
        """Prune expired entries before the first lookup of a session.

        Args:
            ttl_days: Days before entries expire (None = no expiry)

        Returns:
            Number of entries removed
        """
        if ttl_days is None:
            return 0
        return self.prune(timedelta(days=ttl_days).total_seconds())

    def clear(self) -> int:
        """Remove every entry. Returns the number removed."""
        count = len(self._entries)
        self._entries = {}
        self._save()
        logger.info("Cleared image cache")
        return count

    def entries(self) -> list[CacheEntry]:
        """Get all entries, oldest first (copies to prevent mutation)."""
        return sorted(
            (CacheEntry(**entry) for entry in self._entries.values()),
            key=lambda entry: entry["created_at"],
        )

    def stats(self) -> dict[str, Union[str, int, None]]:
        """Get cache statistics.

        Returns:
            Dict with entry count and oldest/newest timestamps
        """
        timestamps = sorted(entry["created_at"] for entry in self._entries.values())
        return {
            "entries": len(self._entries),
            "oldest": timestamps[0] if timestamps else None,
            "newest": timestamps[-1] if timestamps else None,
        }
