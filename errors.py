"""
Exceptions raised by the zelluloid.de scraper.

Only fatal conditions are raised to callers: a lookup without any usable
identifier, and a failed fetch of a mandatory page. Everything else is
logged and results in a partially populated record.
"""

from typing import Optional


class ScraperError(Exception):
    """Base class for scraper errors."""


class MissingIdentifierError(ScraperError, ValueError):
    """Raised when neither a zelluloid id nor a usable result URL was given."""


class FetchError(ScraperError):
    """Raised when a page could not be retrieved."""

    def __init__(self, url: str, reason: str, status_code: Optional[int] = None):
        self.url = url
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"Failed to fetch {url}: {reason}")
