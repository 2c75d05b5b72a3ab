"""
cfimages - Upload images to Cloudflare Images without re-uploading duplicates.

Usage:
    from cfimages import AppConfig, ImagesConfig, UploadSession

    config = AppConfig(images=ImagesConfig.from_env())

    async with UploadSession(config) as uploader:
        result = await uploader.upload_file(Path("diagram.png"))
        print(result.url)
"""

__version__ = "1.0.0"

from .cache import CacheEntry, ImageCache, JsonFileStore, KeyValueStore, MemoryStore
from .deleter import BulkDeleter, select_recent
from .errors import (
    CfImagesError,
    ConfigError,
    LocalIOError,
    NetworkError,
    RemoteAPIError,
    UploadError,
)
from .formatting import ReferenceKind, format_image_reference
from .hashing import compute_digest
from .http import ImagesApiClient, build_delivery_url
from .models.assets import DeleteSummary, RemoteAsset, UploadBatch, UploadResult
from .models.config import AppConfig, CacheConfig, DeleteConfig, ImagesConfig
from .uploader import ImageUploader, UploadSession

__all__ = [
    "__version__",
    # Core
    "ImageUploader",
    "UploadSession",
    "BulkDeleter",
    "ImagesApiClient",
    "build_delivery_url",
    "compute_digest",
    "select_recent",
    "format_image_reference",
    "ReferenceKind",
    # Cache
    "CacheEntry",
    "ImageCache",
    "JsonFileStore",
    "KeyValueStore",
    "MemoryStore",
    # Config
    "AppConfig",
    "CacheConfig",
    "DeleteConfig",
    "ImagesConfig",
    # Results
    "DeleteSummary",
    "RemoteAsset",
    "UploadBatch",
    "UploadResult",
    # Errors
    "CfImagesError",
    "ConfigError",
    "LocalIOError",
    "NetworkError",
    "RemoteAPIError",
    "UploadError",
]
