"""Deduplication cache for uploaded images."""

from .manager import CACHE_KEY, DEFAULT_TTL_DAYS, CacheEntry, ImageCache
from .store import JsonFileStore, KeyValueStore, MemoryStore

__all__ = [
    "CACHE_KEY",
    "DEFAULT_TTL_DAYS",
    "CacheEntry",
    "ImageCache",
    "JsonFileStore",
    "KeyValueStore",
    "MemoryStore",
]
