"""
Page fetcher for pagewatch.

Fetches a URL and parses the body into an lxml document:
1. Fetch (HTTP(S) through httpx, file:// from disk)
2. Status and size checks
3. HTML parsing
"""

import asyncio
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from urllib.parse import unquote, urlparse

import httpx
from lxml import etree, html

from pagewatch.exceptions import (
    ContentTooLargeError,
    DocumentParseError,
    FetchError,
    FetchTimeoutError,
    TooManyRedirectsError,
)
from pagewatch.models import Document
from pagewatch.utils.logging import WatcherLogger
from pagewatch.utils.url_utils import get_domain, get_scheme
from pagewatch.utils import metrics


@dataclass
class FetcherConfig:
    """Configuration for the fetcher."""

    user_agent: str = "pagewatch/0.1"
    timeout_seconds: float = 30.0
    max_redirects: int = 10
    max_content_size: int = 10 * 1024 * 1024  # 10MB
    verify_ssl: bool = True


def parse_document(url: str, content: bytes, status_code: int | None = None) -> Document:
    """
    Parse an HTML body into a Document.

    Raises:
        DocumentParseError: If the body is empty or not parsable.
    """
    if not content.strip():
        raise DocumentParseError(url, "document is empty")
    try:
        root = html.document_fromstring(content, base_url=url)
    except (etree.LxmlError, ValueError) as e:
        raise DocumentParseError(url, str(e)) from e
    return Document(url=url, root=root, status_code=status_code)


class Fetcher:
    """
    Fetches and parses pages.

    Implements:
    - HTTP(S) fetching with timeout, redirect and size limits
    - Local file fetching for file:// URLs
    - HTML parsing into lxml trees
    """

    def __init__(
        self,
        config: FetcherConfig | None = None,
        logger: WatcherLogger | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the fetcher.

        Args:
            config: Fetcher configuration.
            logger: Logger instance.
            transport: Optional httpx transport (used in tests).
        """
        self.config = config or FetcherConfig()
        self.logger = logger or WatcherLogger("fetcher")
        self._transport = transport

        # HTTP client
        self._client: httpx.AsyncClient | None = None

    async def start(self) -> None:
        """Initialize the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.config.timeout_seconds),
                follow_redirects=True,
                max_redirects=self.config.max_redirects,
                verify=self.config.verify_ssl,
                headers={"User-Agent": self.config.user_agent},
                transport=self._transport,
            )

    async def stop(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def fetch(self, url: str) -> Document:
        """
        Fetch and parse a URL.

        Args:
            url: URL to fetch.

        Returns:
            Parsed document.

        Raises:
            FetchError: On network, timeout, status, size or parse failure.
        """
        domain = get_domain(url)
        start_time = time.monotonic()

        self.logger.fetch_start(url=url, domain=domain)

        try:
            if get_scheme(url) == "file":
                final_url, content, status_code = await self._read_file(url)
            else:
                final_url, content, status_code = await self._do_fetch(url)
            document = parse_document(final_url, content, status_code)
        except FetchError as e:
            duration_ms = (time.monotonic() - start_time) * 1000
            self.logger.fetch_error(
                url=url,
                error=str(e),
                error_type=type(e).__name__,
                duration_ms=duration_ms,
            )
            metrics.record_fetch(domain, type(e).__name__, duration_ms / 1000)
            raise

        duration_ms = (time.monotonic() - start_time) * 1000
        metrics.record_fetch(
            domain=domain,
            status="success",
            duration_seconds=duration_ms / 1000,
            content_size=len(content),
        )
        self.logger.fetch_success(
            url=url,
            status_code=status_code or 0,
            duration_ms=duration_ms,
            content_length=len(content),
        )
        return document

    async def _do_fetch(self, url: str) -> tuple[str, bytes, int]:
        """Perform the actual HTTP fetch."""
        if self._client is None:
            await self.start()

        assert self._client is not None

        try:
            response = await self._client.get(url)
        except httpx.TimeoutException:
            raise FetchTimeoutError(url, self.config.timeout_seconds)
        except httpx.TooManyRedirects:
            raise TooManyRedirectsError(url, self.config.max_redirects)
        except httpx.HTTPError as e:
            raise FetchError(url, str(e) or type(e).__name__)

        if not response.is_success:
            raise FetchError(
                url,
                f"HTTP {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )

        # Check content length
        content_length = response.headers.get("content-length")
        if content_length and content_length.isdigit():
            if int(content_length) > self.config.max_content_size:
                raise ContentTooLargeError(
                    url, int(content_length), self.config.max_content_size
                )

        content = response.content
        if len(content) > self.config.max_content_size:
            raise ContentTooLargeError(
                url, len(content), self.config.max_content_size
            )

        return str(response.url), content, response.status_code

    async def _read_file(self, url: str) -> tuple[str, bytes, None]:
        """Read a file:// URL from disk."""
        path = Path(unquote(urlparse(url).path))
        try:
            size = await asyncio.to_thread(lambda: path.stat().st_size)
            if size > self.config.max_content_size:
                raise ContentTooLargeError(url, size, self.config.max_content_size)
            content = await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            raise FetchError(url, e.strerror or str(e)) from e
        return url, content, None

    async def __aenter__(self) -> "Fetcher":
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Async context manager exit."""
        await self.stop()
