"""
HTTP session for zelluloid.de and the fallback search engines.

Every page fetch goes through one ``RateLimitedSession``:
- urllib3 retries for 429/5xx answers, exponential backoff, GET only
- a token bucket per host (zelluloid.de and each search engine)
- default timeout and German browser headers
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Dict, Optional
from urllib.parse import urlparse

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from constants import (
    MAX_RETRIES,
    RETRY_BACKOFF_BASE,
    REQUEST_TIMEOUT,
    RATE_LIMIT_ZELLULOID,
    RATE_LIMIT_WEB_SEARCH,
)

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:128.0) "
    "Gecko/20100101 Firefox/128.0"
)

DEFAULT_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,*/*;q=0.8",
    "Accept-Language": "de-DE,de;q=0.9,en;q=0.5",
}

RETRY_STATUS_CODES = (429, 500, 502, 503, 504)


@dataclass(frozen=True)
class RateLimitConfig:
    """Requests per second and burst for one host."""
    requests_per_second: float
    burst_size: int = 1


HOST_RATE_LIMITS: Dict[str, RateLimitConfig] = {
    "zelluloid.de": RateLimitConfig(RATE_LIMIT_ZELLULOID, burst_size=3),
    "duckduckgo.com": RateLimitConfig(RATE_LIMIT_WEB_SEARCH, burst_size=2),
    "startpage.com": RateLimitConfig(RATE_LIMIT_WEB_SEARCH),
}


class TokenBucketRateLimiter:
    """
    Thread-safe token bucket.

    Holds up to ``burst_size`` tokens and refills at ``requests_per_second``.
    """

    def __init__(self, requests_per_second: float, burst_size: int = 1):
        self.rate = requests_per_second
        self.burst_size = burst_size
        self.tokens = float(burst_size)
        self.last_update = time.monotonic()
        self._lock = threading.Lock()

    def _refill(self, now: float) -> None:
        self.tokens = min(self.burst_size, self.tokens + (now - self.last_update) * self.rate)
        self.last_update = now

    def acquire(self, timeout: float = 30.0) -> bool:
        """
        Take one token, waiting for it at most ``timeout`` seconds.

        Returns:
            False if no token became available in time
        """
        deadline = time.monotonic() + timeout
        while True:
            with self._lock:
                now = time.monotonic()
                self._refill(now)
                if self.tokens >= 1.0:
                    self.tokens -= 1.0
                    return True
                wait = (1.0 - self.tokens) / self.rate

            if now + wait > deadline:
                return False
            time.sleep(min(wait, 0.1))


class HostRateLimits:
    """Lazily created token buckets keyed by host name."""

    def __init__(self, limits: Dict[str, RateLimitConfig] = None):
        self.limits = HOST_RATE_LIMITS if limits is None else limits
        self._buckets: Dict[str, TokenBucketRateLimiter] = {}
        self._lock = threading.Lock()

    def for_url(self, url: str) -> Optional[TokenBucketRateLimiter]:
        host = urlparse(url).netloc.lower()
        config = next((cfg for domain, cfg in self.limits.items() if domain in host), None)
        if config is None:
            return None
        with self._lock:
            if host not in self._buckets:
                self._buckets[host] = TokenBucketRateLimiter(config.requests_per_second, config.burst_size)
            return self._buckets[host]


# Shared by all sessions so parallel lookups draw from the same budget
_shared_limits = HostRateLimits()


def build_retry(max_retries: int = MAX_RETRIES, backoff_factor: float = RETRY_BACKOFF_BASE) -> Retry:
    """Retry policy for idempotent page fetches."""
    return Retry(
        total=max_retries,
        backoff_factor=backoff_factor,
        status_forcelist=RETRY_STATUS_CODES,
        allowed_methods=["GET"],
        raise_on_status=False,
    )


class RateLimitedSession(requests.Session):
    """
    ``requests.Session`` that waits for the host's token bucket and applies
    a default timeout to every request.

    Usage:
        with RateLimitedSession() as session:
            response = session.get("http://www.zelluloid.de/filme/index.php3?id=886")
    """

    def __init__(
        self,
        timeout: float = REQUEST_TIMEOUT,
        max_retries: int = MAX_RETRIES,
        backoff_factor: float = RETRY_BACKOFF_BASE,
        user_agent: str = None,
        rate_limits: HostRateLimits = None,
    ):
        super().__init__()
        self.timeout = timeout
        self.rate_limits = rate_limits or _shared_limits

        adapter = HTTPAdapter(
            max_retries=build_retry(max_retries, backoff_factor),
            pool_connections=4,
            pool_maxsize=10,
        )
        self.mount("http://", adapter)
        self.mount("https://", adapter)

        self.headers.update(DEFAULT_HEADERS)
        self.headers["User-Agent"] = user_agent or DEFAULT_USER_AGENT

    def request(self, method, url, *args, **kwargs) -> requests.Response:
        bucket = self.rate_limits.for_url(url)
        if bucket is not None and not bucket.acquire(timeout=60.0):
            logger.warning(f"Rate limit wait exceeded for {urlparse(url).netloc}")
            raise requests.exceptions.Timeout(f"Rate limit timeout for {urlparse(url).netloc}")
        kwargs.setdefault("timeout", self.timeout)
        return super().request(method, url, *args, **kwargs)


def create_session(
    timeout: float = REQUEST_TIMEOUT,
    user_agent: str = None,
) -> RateLimitedSession:
    """Create a configured rate-limited session."""
    return RateLimitedSession(timeout=timeout, user_agent=user_agent)


class SessionAwareComponent:
    """
    Mixin for components that take an optional shared session.

    A session passed in belongs to the caller and is left open by close();
    a session created here is closed with the component.
    """

    session: RateLimitedSession
    _owns_session: bool

    def init_session(self, session: RateLimitedSession = None, timeout: float = REQUEST_TIMEOUT) -> None:
        self._owns_session = session is None
        self.session = session if session is not None else create_session(timeout=timeout)

    def close(self) -> None:
        if self._owns_session:
            self.session.close()
