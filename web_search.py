"""
Web search fallback.

Used only when the zelluloid.de search endpoint fails: runs a
``site:`` query on DuckDuckGo (HTML endpoint), then Startpage, and
returns the hits pointing into the given site.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional, List
from urllib.parse import quote_plus, parse_qs, urlparse, unquote

from bs4 import BeautifulSoup

from http_client import RateLimitedSession, SessionAwareComponent

logger = logging.getLogger(__name__)


@dataclass
class WebSearchHit:
    """One search engine result."""
    url: str
    title: str = ""


class WebSearcher(SessionAwareComponent):
    """
    Search a site via web search engines, DuckDuckGo first, Startpage second.
    """

    MAX_RESULTS = 10

    # CAPTCHA/bot detection indicators (specific elements, not just words)
    CAPTCHA_INDICATORS = [
        'id="captcha"',
        'class="captcha"',
        'name="captcha"',
        'g-recaptcha',
        'h-captcha',
        'cf-turnstile',
        'please verify you are human',
        'confirm you are not a robot',
        'unusual traffic from your computer',
        '/captcha/',
        'data-sitekey=',
    ]

    def __init__(self, session: RateLimitedSession = None):
        """
        Initialize web searcher.

        Args:
            session: Optional shared session for connection pooling.
        """
        self.init_session(session, timeout=15)

    def _is_captcha_page(self, html: str) -> bool:
        """Detect CAPTCHA/bot protection pages."""
        html_lower = html.lower()
        return any(indicator in html_lower for indicator in self.CAPTCHA_INDICATORS)

    @staticmethod
    def _build_query(site: str, query: str, year: Optional[int]) -> str:
        search = f'site:{site} "{query}"'
        if year:
            search += f' {year}'
        return search

    @staticmethod
    def _on_site(url: str, site: str) -> bool:
        host = site.split("/", 1)[0]
        return host in urlparse(url).netloc.lower() and site in url

    @staticmethod
    def _dedupe(hits: List[WebSearchHit]) -> List[WebSearchHit]:
        seen = set()
        unique = []
        for hit in hits:
            if hit.url not in seen:
                seen.add(hit.url)
                unique.append(hit)
        return unique

    def search_duckduckgo(self, site: str, query: str, year: Optional[int] = None) -> List[WebSearchHit]:
        """
        Search using DuckDuckGo HTML.

        Returns:
            Hits on the given site, in engine order
        """
        search = self._build_query(site, query, year)
        search_url = f"https://html.duckduckgo.com/html/?q={quote_plus(search)}"
        logger.debug(f"DuckDuckGo query: {search}")

        hits = []
        try:
            response = self.session.get(search_url)
            response.raise_for_status()

            if self._is_captcha_page(response.text):
                logger.warning("DuckDuckGo showing CAPTCHA - skipping")
                return []

            soup = BeautifulSoup(response.text, 'html.parser')

            for link in soup.find_all('a', href=True):
                href = link['href']

                # DuckDuckGo wraps URLs in redirects
                if 'uddg=' in href:
                    params = parse_qs(urlparse(href).query)
                    if 'uddg' not in params:
                        continue
                    href = unquote(params['uddg'][0])

                if self._on_site(href, site):
                    hits.append(WebSearchHit(url=href, title=link.get_text(strip=True)))

        except Exception as e:
            logger.warning(f"DuckDuckGo search failed: {e}")

        hits = self._dedupe(hits)
        logger.info(f"DuckDuckGo: found {len(hits)} URLs for '{query}'")
        return hits[:self.MAX_RESULTS]

    def search_startpage(self, site: str, query: str, year: Optional[int] = None) -> List[WebSearchHit]:
        """
        Search using Startpage.

        Returns:
            Hits on the given site (URLs only), in engine order
        """
        search = self._build_query(site, query, year)
        search_url = (
            f"https://www.startpage.com/sp/search?"
            f"query={quote_plus(search)}&cat=web&language=deutsch"
        )
        logger.debug(f"Startpage query: {search}")

        hits = []
        try:
            response = self.session.get(search_url)
            response.raise_for_status()

            if self._is_captcha_page(response.text):
                logger.warning("Startpage showing CAPTCHA - skipping")
                return []

            pattern = r'https?://(?:www\.)?' + re.escape(site) + r'[^"\'\s<>]*'
            for url in re.findall(pattern, response.text):
                url = url.replace('&amp;', '&').rstrip('.')
                hits.append(WebSearchHit(url=url))

        except Exception as e:
            logger.warning(f"Startpage search failed: {e}")

        hits = self._dedupe(hits)
        logger.info(f"Startpage: found {len(hits)} URLs for '{query}'")
        return hits[:self.MAX_RESULTS]

    def search_site(self, site: str, query: str, year: Optional[int] = None) -> List[WebSearchHit]:
        """
        Search using multiple engines with fallback.

        Args:
            site: Site hint, e.g. "zelluloid.de/filme"
            query: Search term
            year: Optional release year

        Returns:
            Hits on the site from the first engine that produced any
        """
        hits = self.search_duckduckgo(site, query, year)
        if hits:
            return hits

        return self.search_startpage(site, query, year)
