"""
Shared constants, provider configuration and settings for the zelluloid.de scraper.

This module centralizes all magic strings/numbers (URL templates, page markers,
rate limits, cache settings) and the immutable provider description.
"""

import os
from dataclasses import dataclass, asdict
from typing import Final, Dict


def _get_bool_env(key: str, default: bool = False) -> bool:
    """Get boolean from environment variable."""
    value = os.environ.get(key, "").lower()
    if value in ("true", "1", "yes", "on"):
        return True
    if value in ("false", "0", "no", "off"):
        return False
    return default


def _get_int_env(key: str, default: int) -> int:
    """Get integer from environment variable."""
    try:
        return int(os.environ.get(key, default))
    except ValueError:
        return default


# =============================================================================
# Provider Configuration
# =============================================================================

@dataclass(frozen=True)
class ProviderInfo:
    """
    Immutable description of this metadata provider.

    Constructed once and handed to the components that report it
    (scraper results, provider service root).
    """
    id: str
    name: str
    description: str
    icon: str
    version: str
    languages: tuple = ("de",)

    def to_dict(self) -> Dict[str, object]:
        """Convert to dictionary for serialization."""
        data = asdict(self)
        data["languages"] = list(self.languages)
        return data


PROVIDER_VERSION: Final = "1.2.0"

PROVIDER_INFO: Final = ProviderInfo(
    id="zelluloid",
    name="zelluloid.de",
    description=(
        "Scraper for the German site zelluloid.de which is able to scrape "
        "movie metadata. Available languages: German"
    ),
    icon="zelluloid_de.png",
    version=PROVIDER_VERSION,
)


# =============================================================================
# Site URLs
# =============================================================================

BASE_URL: Final = "http://www.zelluloid.de"
SEARCH_URL: Final = BASE_URL + "/suche/index.php3?qstring={query}"
DETAIL_URL: Final = BASE_URL + "/filme/index.php3?id={id}"
DETAILS_URL: Final = BASE_URL + "/filme/details.php3?id={id}"
LINKS_URL: Final = BASE_URL + "/filme/links.php3?id={id}"

# Pages are served in a legacy single-byte encoding, not UTF-8
PAGE_ENCODING: Final = "iso-8859-1"

# Site hint handed to the web search fallback
SITE_SEARCH_HINT: Final = "zelluloid.de/filme"

# Markers the site puts on broken search result pages
INTERNAL_ERROR_MARKERS: Final = (
    "Internal Server Error",
    "interner Fehler",
)

# Title of a real search result page starts with this
SEARCH_RESULTS_TITLE_MARKER: Final = "Suche nach"

# Cross-reference hosts found on the links page
IMDB_HOSTS: Final = ("german.imdb.com", "www.imdb.com", "imdb.com", "m.imdb.com")


# =============================================================================
# Extraction Settings
# =============================================================================

TAGLINE_LENGTH: Final = 150
RATING_MAX_VALUE: Final = 100
RATING_SOURCE: Final = "zelluloid"
ARTWORK_LANGUAGE: Final = "de"
RELEASE_DATE_FORMAT: Final = "%d.%m.%Y"


# =============================================================================
# Cache Settings
# =============================================================================

DEFAULT_PAGE_CACHE_TTL: Final = _get_int_env("ZELLULOID_CACHE_TTL", 7 * 24 * 60 * 60)
MAX_CACHE_SIZE_MB: Final = 200  # Maximum cache size in MB
MAX_CACHE_ENTRIES: Final = 5000  # Maximum number of cached pages


# =============================================================================
# Rate Limits (requests per second)
# =============================================================================

RATE_LIMIT_ZELLULOID: Final = 2.0  # Be nice to zelluloid.de
RATE_LIMIT_WEB_SEARCH: Final = 0.5  # Be nice to search engines


# =============================================================================
# Retry Settings
# =============================================================================

MAX_RETRIES: Final = 3
RETRY_BACKOFF_BASE: Final = 2.0  # Exponential backoff base (seconds)
REQUEST_TIMEOUT: Final = 15.0


# =============================================================================
# Feature Flags (configurable via environment)
# =============================================================================

# Fall back to a web search engine when the site search is broken (default: true)
ZELLULOID_USE_WEB_FALLBACK: bool = _get_bool_env("ZELLULOID_USE_WEB_FALLBACK", True)
