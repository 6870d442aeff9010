"""Utilities for fetching the numbering registry."""

from .download import (
    DiscoveryError,
    Downloader,
    DownloadEvent,
    DownloadHandlers,
    DownloadResult,
    plan_ranges,
)
from .retry import call_with_retry

__all__ = [
    "DiscoveryError",
    "Downloader",
    "DownloadEvent",
    "DownloadHandlers",
    "DownloadResult",
    "plan_ranges",
    "call_with_retry",
]
