"""Download utilities for the numbering registry feeds."""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, TypedDict

import httpx

from ..config import HTTP_TIMEOUT, RANGE_PIECES, SOURCE_PAGE, SOURCES, SourceName

logger = logging.getLogger(__name__)


class DiscoveryError(Exception):
    """Raised when the listing page cannot be fetched."""

    pass


class DownloadEvent(str, Enum):
    """Events emitted while downloading feeds."""

    REQUEST = "on_request"
    NO_UPDATES = "on_no_updates"
    HTTP_ERROR = "on_http_error"
    REQUEST_ERROR = "on_request_error"
    HTTP_RANGE = "on_http_range"
    SUCCESS = "on_success"


Handler = Callable[..., Any]


@dataclass
class DownloadHandlers:
    """One optional handler slot per download event."""

    on_request: Handler | None = None
    on_no_updates: Handler | None = None
    on_http_error: Handler | None = None
    on_request_error: Handler | None = None
    on_http_range: Handler | None = None
    on_success: Handler | None = None


class DownloadResult(TypedDict):
    """Payload of a successfully downloaded feed."""

    uri: str
    data: str


# =============================================================================
# Public API
# =============================================================================


def plan_ranges(length: int, pieces: int = RANGE_PIECES) -> list[tuple[int, int]]:
    """
    Split a resource of ``length`` bytes into inclusive byte ranges.

    The end of the last range is ``length`` rather than ``length - 1``;
    servers clamp it to the last byte of the resource.

    Args:
        length: Declared content length in bytes
        pieces: Number of pieces to aim for

    Returns:
        List of (start, end) pairs in index order, empty for an empty resource
    """
    if length <= 0:
        return []

    piece_length = max(length // pieces, 1)
    count = math.ceil(length / piece_length)

    ranges = []
    for i in range(count):
        start = i * piece_length
        end = start + piece_length - 1
        if i == count - 1 or end > length:
            end = length
        ranges.append((start, end))
    return ranges


class Downloader:
    """
    Retrieve the current registry feeds.

    Discovery scans the listing page for the current URL of every known
    feed. Download then skips feeds whose URL matches the one recorded in
    ``previous_sources`` and fetches the rest with ranged GET requests.
    Per-feed failures are reported through the registered handlers and do
    not stop the batch.
    """

    def __init__(
        self,
        previous_sources: dict[SourceName, str] | None = None,
        timeout: float = HTTP_TIMEOUT,
    ):
        self.handlers = DownloadHandlers()
        self.sources: dict[SourceName, str] = {}
        self.previous_sources = dict(previous_sources or {})
        self.timeout = timeout

    def register(self, event: DownloadEvent | str, handler: Handler) -> None:
        """
        Register a handler for a download event.

        Raises:
            ValueError: If ``event`` is not a known event name
        """
        event = DownloadEvent(event)
        setattr(self.handlers, event.value, handler)

    def discover_sources(self) -> dict[SourceName, str]:
        """
        Find the current download URL of every known feed.

        Feeds without a match on the listing page are omitted.

        Returns:
            Dict mapping feed names to their current URLs

        Raises:
            DiscoveryError: If the listing page is unreachable or returns a non-2xx status
        """
        with httpx.Client(timeout=self.timeout, follow_redirects=True) as client:
            try:
                response = client.get(SOURCE_PAGE)
            except httpx.RequestError as e:
                raise DiscoveryError(f"Error fetching {SOURCE_PAGE}: {e}") from e

        if not response.is_success:
            raise DiscoveryError(f"HTTP error ({response.status_code}) for {SOURCE_PAGE}")

        body = response.text
        sources: dict[SourceName, str] = {}
        for name, pattern in SOURCES.items():
            match = pattern.search(body)
            if match is None:
                logger.warning("No download link found for %s", name)
                continue
            sources[name] = match.group(0)

        self.sources = sources
        return sources

    def download(self) -> dict[SourceName, DownloadResult]:
        """
        Download every discovered feed that changed since the previous run.

        Returns:
            Dict mapping feed names to their URL and decoded payload. Feeds
            that were unchanged or failed are absent.
        """
        results: dict[SourceName, DownloadResult] = {}

        with httpx.Client(timeout=self.timeout, follow_redirects=True) as client:
            for name, uri in self.sources.items():
                self._emit(DownloadEvent.REQUEST, name)

                if self.previous_sources.get(name) == uri:
                    self._emit(DownloadEvent.NO_UPDATES, name)
                    continue

                payload = self._download_source(client, name, uri)
                if payload is None:
                    continue

                try:
                    data = payload.decode("utf-8")
                except UnicodeDecodeError as e:
                    logger.warning(
                        "%s is not valid UTF-8 (first bad byte at offset %d), "
                        "replacing undecodable bytes",
                        name,
                        e.start,
                    )
                    data = payload.decode("utf-8", errors="replace")

                results[name] = {"uri": uri, "data": data}
                self._emit(DownloadEvent.SUCCESS, name, uri=uri, data=data)

        return results

    # =========================================================================
    # Internal Implementation
    # =========================================================================

    def _emit(self, event: DownloadEvent, name: SourceName, **kwargs: Any) -> None:
        handler = getattr(self.handlers, event.value)
        if handler is not None:
            handler(name, **kwargs)

    def _request(
        self,
        client: httpx.Client,
        method: str,
        name: SourceName,
        uri: str,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response | None:
        """Issue one request, reporting transport and status errors to handlers."""
        try:
            response = client.request(method, uri, headers=headers)
        except httpx.RequestError as e:
            logger.error("Error requesting %s: %s", name, e)
            self._emit(DownloadEvent.REQUEST_ERROR, name, error=e)
            return None

        if not response.is_success:
            logger.error("HTTP %d for %s", response.status_code, name)
            self._emit(DownloadEvent.HTTP_ERROR, name, code=response.status_code)
            return None

        return response

    def _download_source(
        self, client: httpx.Client, name: SourceName, uri: str
    ) -> bytes | None:
        head = self._request(client, "HEAD", name, uri)
        if head is None:
            return None

        try:
            length = int(head.headers.get("content-length", 0))
        except ValueError:
            length = 0

        ranges = plan_ranges(length)
        if not ranges:
            # No usable length, fetch the resource in one request
            logger.warning("No content length for %s, downloading without ranges", name)
            response = self._request(client, "GET", name, uri)
            if response is None:
                return None
            self._emit(DownloadEvent.HTTP_RANGE, name, data=response.content)
            return response.content

        logger.info("Downloading %s (%d bytes, %d pieces)", name, length, len(ranges))
        pieces: list[bytes] = []
        for start, end in ranges:
            response = self._request(
                client, "GET", name, uri, headers={"Range": f"bytes={start}-{end}"}
            )
            if response is None:
                return None
            self._emit(DownloadEvent.HTTP_RANGE, name, data=response.content)
            pieces.append(response.content)

        return b"".join(pieces)

