"""
zelluloid.de Scraper

Searches the German movie site zelluloid.de and assembles full movie
metadata from its pages.

Search (ZelluloidSearcher):
    1. Site search /suche/index.php3?qstring={query}
    2. If the site search is broken: web search fallback, keeping only
       links to movie detail pages
    3. Result rows are scored by title similarity (minus a small year
       penalty) and sorted, best first
    4. A search with a single match is redirected by the site straight to
       the detail page; that page becomes the only candidate

Metadata (ZelluloidMetadataScraper):
    1. Detail page   /filme/index.php3?id={id}    mandatory
    2. Cast/crew     /filme/details.php3?id={id}  optional
    3. Links page    /filme/links.php3?id={id}    optional (IMDB id)
"""

import logging
import re
from typing import Optional, List
from urllib.parse import quote_plus

from bs4 import BeautifulSoup

from constants import (
    PROVIDER_INFO,
    ProviderInfo,
    SEARCH_URL,
    DETAIL_URL,
    DETAILS_URL,
    LINKS_URL,
    SITE_SEARCH_HINT,
    INTERNAL_ERROR_MARKERS,
    ZELLULOID_USE_WEB_FALLBACK,
)
from errors import FetchError, MissingIdentifierError
from extractors import (
    parse_search_results,
    is_search_results_page,
    extract_redirect_candidate,
    extract_detail_page,
    scan_credits,
    credit_rows,
    extract_imdb_id,
)
from fetcher import PageFetcher
from models import Candidate, MetadataRecord
from text_utils import (
    clean_text,
    remove_non_search_characters,
    title_similarity,
    validate_zelluloid_id,
    extract_id_from_url,
)
from web_search import WebSearcher

logger = logging.getLogger(__name__)

# Detail page links as found by the web search fallback
DETAIL_URL_PATTERN = re.compile(r'zelluloid\.de/filme/index\.php3\?(?:[^"\s]*&)?id=(\d+)')

# Search engines append the site name to page titles
SITE_TITLE_SUFFIX = re.compile(r'\s*[|\-–]\s*zelluloid(?:\.de)?.*$', re.IGNORECASE)


# =============================================================================
# Scoring
# =============================================================================

def score_candidate(
    search_term: str,
    candidate: Candidate,
    year: Optional[int] = None,
    imdb_id: Optional[str] = None,
) -> float:
    """
    Score a candidate against the search term.

    An exact IMDB match scores 1. Otherwise the title similarity in [0, 1]
    is used, minus abs(year difference) / 100 when both years are known
    and differ.

    Args:
        search_term: Normalized query
        candidate: Parsed search result
        year: Requested release year
        imdb_id: IMDB id being searched for

    Returns:
        Score, at most 1.0
    """
    if imdb_id and candidate.imdb_id == imdb_id:
        return 1.0

    score = title_similarity(search_term, candidate.title)
    if year and candidate.year and candidate.year != year:
        score -= abs(candidate.year - year) / 100
    return score


# =============================================================================
# Search
# =============================================================================

class ZelluloidSearcher:
    """
    Search zelluloid.de for movies.

    Single pass without retries; retrying is the session's job.
    """

    def __init__(
        self,
        fetcher: PageFetcher = None,
        web_searcher: WebSearcher = None,
        use_web_fallback: bool = ZELLULOID_USE_WEB_FALLBACK,
    ):
        """
        Initialize searcher.

        Args:
            fetcher: Page fetcher (a fresh one is created if omitted)
            web_searcher: Fallback search collaborator
            use_web_fallback: Whether to fall back to web search at all
        """
        self.fetcher = fetcher or PageFetcher()
        self._owns_fetcher = fetcher is None
        self.web_searcher = web_searcher
        self.use_web_fallback = use_web_fallback

    def close(self) -> None:
        if self._owns_fetcher:
            self.fetcher.close()

    def search(
        self,
        query: str,
        year: Optional[int] = None,
        imdb_id: Optional[str] = None,
    ) -> List[Candidate]:
        """
        Search for movies by title.

        Args:
            query: Title to search for
            year: Optional release year, used to penalize other years
            imdb_id: Optional IMDB id for an exact match

        Returns:
            Candidates sorted by descending score ([] for a blank query)
        """
        if not query or not query.strip():
            logger.debug("empty search string")
            return []

        search_url = SEARCH_URL.format(query=quote_plus(query.strip()))
        search_term = remove_non_search_characters(query)
        logger.debug(f"search for: {query} ({search_url})")

        try:
            soup = self.fetcher.fetch_document(search_url)
        except FetchError as e:
            logger.error(f"failed to search for {query}: {e}")
            return self._fallback_search(query, year)

        if self._is_internal_error(soup):
            logger.warning(f"zelluloid.de search returned an internal error for '{query}'")
            if self.fetcher.cache is not None:
                self.fetcher.cache.delete(search_url)
            return self._fallback_search(query, year)

        candidates = parse_search_results(soup)
        for candidate in candidates:
            candidate.score = score_candidate(search_term, candidate, year, imdb_id)
        logger.debug(f"found {len(candidates)} search results")

        if not candidates:
            if is_search_results_page(soup):
                return []
            # Single match: the site redirected to the detail page
            candidate = extract_redirect_candidate(soup)
            candidate.score = score_candidate(search_term, candidate, year, imdb_id)
            logger.info(f"search '{query}' redirected to {candidate.title} [{candidate.id}]")
            return [candidate]

        # list.sort is stable, equal scores keep page order
        candidates.sort(key=lambda c: c.score, reverse=True)
        logger.info(f"search '{query}' ({year}) -> {len(candidates)} candidates")
        return candidates

    @staticmethod
    def _is_internal_error(soup: BeautifulSoup) -> bool:
        text = soup.get_text()
        return any(marker in text for marker in INTERNAL_ERROR_MARKERS)

    def _fallback_search(self, query: str, year: Optional[int]) -> List[Candidate]:
        """
        Find detail pages through a web search engine.

        Results keep engine order and are not scored.
        """
        if not self.use_web_fallback:
            return []

        if self.web_searcher is None:
            self.web_searcher = WebSearcher(session=self.fetcher.session)

        logger.info(f"Trying web search fallback for '{query}'...")
        candidates = []
        for hit in self.web_searcher.search_site(SITE_SEARCH_HINT, query, year):
            match = DETAIL_URL_PATTERN.search(hit.url)
            if not match:
                continue
            movie_id = match.group(1)
            title = clean_text(SITE_TITLE_SUFFIX.sub("", hit.title))
            candidates.append(Candidate(
                id=movie_id,
                title=title,
                original_title=title,
                url=DETAIL_URL.format(id=movie_id),
            ))

        logger.info(f"Web search fallback: {len(candidates)} candidates for '{query}'")
        return candidates


# =============================================================================
# Metadata
# =============================================================================

def resolve_movie_id(zelluloid_id: Optional[str] = None, result_url: Optional[str] = None) -> str:
    """
    Determine the movie id from an explicit id or a search result URL.

    Raises:
        MissingIdentifierError: If neither yields a usable id
    """
    explicit = (zelluloid_id or "").strip()
    if explicit and validate_zelluloid_id(explicit):
        return explicit

    movie_id = extract_id_from_url(result_url)
    if movie_id:
        if explicit:
            logger.warning(f"invalid zelluloid id '{zelluloid_id}', using {movie_id} from {result_url}")
        return movie_id

    if explicit:
        raise MissingIdentifierError(f"invalid zelluloid id '{zelluloid_id}'")
    raise MissingIdentifierError("cannot scrape without zelluloid id")


class ZelluloidMetadataScraper:
    """
    Assemble one MetadataRecord from the detail, cast/crew and links pages.

    Only the detail page is mandatory; failures on the other two pages leave
    their fields empty.
    """

    def __init__(self, fetcher: PageFetcher = None, provider: ProviderInfo = PROVIDER_INFO):
        """
        Initialize metadata scraper.

        Args:
            fetcher: Page fetcher (a fresh one is created if omitted)
            provider: Provider description, its id names the id namespace
        """
        self.fetcher = fetcher or PageFetcher()
        self._owns_fetcher = fetcher is None
        self.provider = provider

    def close(self) -> None:
        if self._owns_fetcher:
            self.fetcher.close()

    def get_metadata(
        self,
        zelluloid_id: Optional[str] = None,
        result_url: Optional[str] = None,
    ) -> MetadataRecord:
        """
        Scrape full metadata for one movie.

        Args:
            zelluloid_id: Site id, e.g. "886"
            result_url: Candidate URL, used when no id is given

        Returns:
            Assembled MetadataRecord

        Raises:
            MissingIdentifierError: If no id can be resolved
            FetchError: If the detail page cannot be fetched
        """
        movie_id = resolve_movie_id(zelluloid_id, result_url)
        logger.debug(f"getMetadata() id={movie_id}")

        md = self._scrape_detail_page(movie_id)
        md.ids[self.provider.id] = movie_id

        self._scrape_credits(movie_id, md)
        self._scrape_links(movie_id, md)

        logger.info(
            f"Scraped {md.title} ({md.year}) [{movie_id}]: "
            f"{len(md.cast_members)} credits, {len(md.genres)} genres"
        )
        return md

    def _scrape_detail_page(self, movie_id: str) -> MetadataRecord:
        url = DETAIL_URL.format(id=movie_id)
        try:
            soup = self.fetcher.fetch_document(url)
        except FetchError as e:
            logger.error(f"Error fetching detail page {url}: {e}")
            raise
        return extract_detail_page(soup)

    def _scrape_credits(self, movie_id: str, md: MetadataRecord) -> None:
        try:
            soup = self.fetcher.fetch_document(DETAILS_URL.format(id=movie_id))
        except FetchError as e:
            logger.warning(f"failed to get details: {e}")
            return

        scan = scan_credits(credit_rows(soup))
        md.cast_members.extend(scan.cast_members)
        md.production_companies.extend(scan.production_companies)

    def _scrape_links(self, movie_id: str, md: MetadataRecord) -> None:
        try:
            soup = self.fetcher.fetch_document(LINKS_URL.format(id=movie_id))
        except FetchError as e:
            logger.warning(f"failed to get links page: {e}")
            return

        imdb_id = extract_imdb_id(soup)
        if imdb_id:
            md.ids["imdb"] = imdb_id


__all__ = [
    'ZelluloidSearcher',
    'ZelluloidMetadataScraper',
    'score_candidate',
    'resolve_movie_id',
]
