"""HTTP client for the Cloudflare Images API."""

from .client import API_BASE, DELIVERY_HOST, ImagesApiClient, build_delivery_url
from .protocols import HttpResponse, ImagesApi

__all__ = [
    "API_BASE",
    "DELIVERY_HOST",
    "HttpResponse",
    "ImagesApi",
    "ImagesApiClient",
    "build_delivery_url",
]
