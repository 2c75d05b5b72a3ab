"""cfimages configuration and result models."""

from .assets import (
    DeleteSummary,
    RemoteAsset,
    UploadBatch,
    UploadFailure,
    UploadResult,
    parse_uploaded,
)
from .config import AppConfig, CacheConfig, DeleteConfig, ImagesConfig

__all__ = [
    # Config
    "AppConfig",
    "CacheConfig",
    "DeleteConfig",
    "ImagesConfig",
    # Results
    "DeleteSummary",
    "RemoteAsset",
    "UploadBatch",
    "UploadFailure",
    "UploadResult",
    "parse_uploaded",
]
