"""Shared pytest fixtures and configuration."""

import re
from unittest.mock import Mock, patch

import httpx
import pytest

from rosnumbase.database import RegistryDatabase
from rosnumbase.utilities.retry import call_with_retry as original_call_with_retry

SOURCE_PAGE = "http://opendata.digital.gov.ru/registry/numeric/downloads/"

FEED_URLS = {
    "ABC3XX": "http://opendata.digital.gov.ru/downloads/ABC-3xx.csv?1700000001",
    "ABC4XX": "http://opendata.digital.gov.ru/downloads/ABC-4xx.csv?1700000002",
    "ABC8XX": "http://opendata.digital.gov.ru/downloads/ABC-8xx.csv?1700000003",
    "DEF9XX": "http://opendata.digital.gov.ru/downloads/DEF-9xx.csv?1700000004",
}

RANGE_PATTERN = re.compile(r"bytes=(\d+)-(\d+)")


def listing_page(urls):
    """Build a listing page linking to the given feed URLs."""
    links = "\n".join(f'<li><a href="{url}">Download</a></li>' for url in urls)
    return f"<html><body><ul>\n{links}\n</ul></body></html>".encode("utf-8")


class FakeFeedServer:
    """In-process stand-in for the registry web server.

    Serves the listing page on GET, Content-Length on HEAD and byte ranges on
    ranged GET. Failures can be injected per URL.
    """

    def __init__(self):
        self.listing_status = 200
        self.listing_error = None
        self.listing = listing_page(FEED_URLS.values())
        self.resources = {}
        self.head_status = {}
        self.head_errors = {}
        self.piece_status = {}
        self.piece_errors = {}
        self.omit_length = set()
        self.calls = []

    def get(self, url, headers=None):
        if url != SOURCE_PAGE:
            return self.request("GET", url, headers=headers)
        self.calls.append(("GET", url, None))
        if self.listing_error is not None:
            raise self.listing_error
        return httpx.Response(self.listing_status, content=self.listing)

    def request(self, method, url, headers=None):
        byte_range = (headers or {}).get("Range")
        self.calls.append((method, url, byte_range))
        content = self.resources.get(url, b"")

        if method == "HEAD":
            if url in self.head_errors:
                raise self.head_errors[url]
            if url in self.head_status:
                return httpx.Response(self.head_status[url])
            if url in self.omit_length:
                return httpx.Response(200)
            return httpx.Response(200, headers={"Content-Length": str(len(content))})

        if byte_range is None:
            return httpx.Response(200, content=content)

        piece = len([c for c in self.calls if c[1] == url and c[2] is not None]) - 1
        if self.piece_errors.get(url, (None,))[0] == piece:
            raise self.piece_errors[url][1]
        if self.piece_status.get(url, (None,))[0] == piece:
            return httpx.Response(self.piece_status[url][1])

        start, end = (int(n) for n in RANGE_PATTERN.match(byte_range).groups())
        return httpx.Response(206, content=content[start : end + 1])

    def requested_urls(self):
        return [url for _, url, _ in self.calls]


@pytest.fixture
def feed_server():
    """Patch httpx.Client so every client talks to a FakeFeedServer."""
    server = FakeFeedServer()
    client = Mock(spec=httpx.Client)
    client.get.side_effect = server.get
    client.request.side_effect = server.request

    with patch("httpx.Client") as mock_client:
        mock_client.return_value.__enter__.return_value = client
        yield server


@pytest.fixture
def db():
    """In-memory registry database with the schema created."""
    with RegistryDatabase(":memory:") as database:
        database.init_schema()
        yield database


@pytest.fixture(autouse=True)
def fast_retries():
    """Disable retry wait times in all tests for speed."""

    def fast_call(operation, retry_on, max_attempts=3, min_wait=1, max_wait=10):
        return original_call_with_retry(
            operation, retry_on, max_attempts=max_attempts, min_wait=0, max_wait=0
        )

    with patch("rosnumbase.ingest.call_with_retry", fast_call):
        yield
