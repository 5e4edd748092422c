"""
Page fetcher for zelluloid.de.

Resolves a URL to raw bytes (through the optional page cache) or to a
parsed BeautifulSoup document decoded with the site's ISO-8859-1
encoding. Retries and backoff live in the rate-limited session.
"""

import logging
from typing import Optional

import requests
from bs4 import BeautifulSoup

from cache import FileCache, PageCacheEntry
from constants import PAGE_ENCODING, REQUEST_TIMEOUT
from errors import FetchError
from http_client import RateLimitedSession, SessionAwareComponent

logger = logging.getLogger(__name__)


def parse_page(body: bytes, encoding: str = PAGE_ENCODING) -> BeautifulSoup:
    """Decode raw page bytes and parse them into a document."""
    return BeautifulSoup(body.decode(encoding, errors="replace"), "html.parser")


class PageFetcher(SessionAwareComponent):
    """
    Fetch pages with caching.

    Usage:
        fetcher = PageFetcher(cache=FileCache("./cache"))
        soup = fetcher.fetch_document("http://www.zelluloid.de/filme/index.php3?id=886")
    """

    def __init__(
        self,
        session: RateLimitedSession = None,
        cache: Optional[FileCache] = None,
        encoding: str = PAGE_ENCODING,
    ):
        """
        Initialize page fetcher.

        Args:
            session: Optional shared session for connection pooling.
            cache: Optional page cache; pages are always fetched live without one.
            encoding: Text encoding used to decode pages
        """
        self.init_session(session, timeout=REQUEST_TIMEOUT)
        self.cache = cache
        self.encoding = encoding

    def fetch(self, url: str) -> bytes:
        """
        Return the raw body of a page.

        Args:
            url: Page URL

        Returns:
            Response body bytes

        Raises:
            FetchError: On transport errors or non-2xx responses
        """
        if self.cache is not None:
            cached = self.cache.read(url)
            if cached:
                logger.debug(f"Page cache hit: {url}")
                return cached.body

        try:
            response = self.session.get(url)
            response.raise_for_status()
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise FetchError(url, str(e), status_code=status) from e
        except requests.RequestException as e:
            raise FetchError(url, str(e)) from e

        body = response.content
        logger.debug(f"Fetched {url} ({len(body)} bytes)")

        if self.cache is not None:
            self.cache.write(url, PageCacheEntry.from_bytes(url, body, response.status_code))

        return body

    def fetch_document(self, url: str) -> BeautifulSoup:
        """
        Fetch a page and parse it.

        Raises:
            FetchError: If the page could not be retrieved
        """
        return parse_page(self.fetch(url), self.encoding)
