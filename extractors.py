"""
Field extraction for zelluloid.de pages.

One group of functions per page role:

    search results  -> parse_search_results, extract_candidate_row,
                       is_search_results_page, extract_redirect_candidate
    detail page     -> extract_detail_page
    cast/crew page  -> scan_credits
    external links  -> extract_imdb_id

Two strategies are used per field. Structural lookups select elements by
attribute equality, prefix or substring; when the number of matches differs
from what the page normally has, the field is left unset instead of guessing.
Textual lookups run a capture-group regex over the rendered page for values
that sit in free prose ("Originaltitel: X<", "ca. N min", "FSK: ab N,").
Parse failures are logged and leave only the affected field unset.
"""

import html
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, List, Callable
from urllib.parse import urlparse

from bs4 import BeautifulSoup, Tag

from constants import (
    BASE_URL,
    DETAIL_URL,
    IMDB_HOSTS,
    SEARCH_RESULTS_TITLE_MARKER,
    RATING_MAX_VALUE,
    RATING_SOURCE,
    ARTWORK_LANGUAGE,
    RELEASE_DATE_FORMAT,
)
from models import Candidate, CastMember, MetadataRecord, Artwork, Rating, ArtworkKind
from taxonomy import CastType, map_genre, map_certification, crew_role_type
from text_utils import substr, clean_text, extract_year_from_text

logger = logging.getLogger(__name__)


# Patterns applied to the rendered page. A non-breaking space may come back
# either as the entity or as a literal U+00A0.
ORIGINAL_TITLE_PATTERN = r'Originaltitel:(?:\s|&nbsp;)*(.*?)<'
RUNTIME_PATTERN = r'ca\.(?:&nbsp;|\xa0)(.*?)(?:&nbsp;|\xa0)min'
CERTIFICATION_PATTERN = r'FSK:(?:\s|&nbsp;)*(.*?)[,<]'

MOVIE_ID_PATTERN = r'-movie-(.*?)-'
ID_PARAM_PATTERN = r'id=(\d+)'
IMDB_ID_PATTERN = r'(tt\d{7,8})'
LEGACY_IMDB_PATTERN = r'\?(\d+)'

HIT_LINK_PREFIX = "hit.php3?hit="
YEAR_LINK_MARKER = "az.php3?j="
GENRE_LINK_MARKER = "az.php3?g="
RELEASE_LINK_MARKER = "?v=w"
POSTER_SRC_PREFIX = "/images/poster"
DETAIL_LINK_PREFIX = "index.php3?id="
NON_MOVIE_MARKER = "TV-Serie"


# =============================================================================
# Selector Helpers
# =============================================================================

def _attr_starts(root: Tag, attr: str, prefix: str) -> List[Tag]:
    """Elements whose attribute value starts with prefix."""
    return root.find_all(attrs={attr: lambda v: bool(v) and v.startswith(prefix)})


def _attr_contains(root: Tag, attr: str, needle: str) -> List[Tag]:
    """Elements whose attribute value contains needle."""
    return root.find_all(attrs={attr: lambda v: bool(v) and needle in v})


def _class_equals(root: Tag, class_name: str) -> List[Tag]:
    """Elements whose class attribute is exactly class_name (no extra classes)."""
    return root.find_all(lambda tag: tag.get("class") == [class_name])


def _own_text(tag: Tag) -> str:
    """Text of the element's direct text nodes, ignoring descendants."""
    return clean_text("".join(tag.find_all(string=True, recursive=False)))


def _render(soup: BeautifulSoup) -> str:
    return str(soup)


def _unescape(text: str) -> str:
    return clean_text(html.unescape(text))


def _parse_int(value: str, field_name: str) -> Optional[int]:
    """Convert an extracted substring, logging instead of raising."""
    try:
        return int(clean_text(value))
    except ValueError:
        logger.warning(f"cannot convert {field_name}: '{value}'")
        return None


# =============================================================================
# Search Results Page
# =============================================================================

def extract_candidate_row(row: Tag) -> Optional[Candidate]:
    """
    Build a candidate from one result table row.

    Rows with nested rows, rows without a hit link and non-movie rows yield
    None. Malformed qualifying rows raise ValueError.

    Example row:
        <tr><td><img src="/gfx/icoMovie.gif"></td>
            <td><b><a href="hit.php3?hit=...-movie-886-23126993-2">Twelve Monkeys
            <nobr>(1995)</nobr></a></b><div class="smallBlur">R: Terry Gilliam</div></td></tr>
    """
    if row.find("tr") is not None:
        return None

    links = _attr_starts(row, "href", HIT_LINK_PREFIX)
    if not links:
        return None

    if NON_MOVIE_MARKER in row.get_text():
        return None

    link = links[0]
    movie_id = substr(link["href"], MOVIE_ID_PATTERN)
    if not movie_id:
        raise ValueError(f"no movie id in '{link['href']}'")

    # Keep the year/original title tags out of the title text
    if link.find("nobr") is not None or link.find("span") is not None:
        title = _own_text(link)
    else:
        title = clean_text(link.get_text())
    if not title:
        raise ValueError(f"no title for movie {movie_id}")

    original_title = clean_text(" ".join(s.get_text() for s in link.find_all("span")))
    year = extract_year_from_text(" ".join(n.get_text() for n in row.find_all("nobr")))

    return Candidate(
        id=movie_id,
        title=title,
        original_title=original_title,
        year=year,
        url=DETAIL_URL.format(id=movie_id),
    )


def parse_search_results(soup: BeautifulSoup) -> List[Candidate]:
    """
    Extract candidates from every qualifying table row, in page order.

    A malformed row is logged and skipped; it never aborts the scan.
    Duplicate ids are kept.
    """
    candidates = []
    for row in soup.find_all("tr"):
        try:
            candidate = extract_candidate_row(row)
        except (ValueError, KeyError, AttributeError) as e:
            logger.warning(f"error parsing movie result: {e}")
            continue
        if candidate:
            logger.debug(f"found movie {candidate.title} [{candidate.id}]")
            candidates.append(candidate)
    return candidates


def is_search_results_page(soup: BeautifulSoup) -> bool:
    """True if the page is a result list rather than a movie detail page."""
    title_el = soup.find("title")
    title_text = title_el.get_text() if title_el else ""
    return SEARCH_RESULTS_TITLE_MARKER in title_text


def extract_redirect_candidate(soup: BeautifulSoup) -> Candidate:
    """
    Synthesize a candidate from a detail page the search redirected to.

    The site skips the result list when a query has exactly one match.
    """
    movie_id = ""
    links = _attr_starts(soup, "href", DETAIL_LINK_PREFIX)
    if links:
        movie_id = substr(links[0]["href"], ID_PARAM_PATTERN)

    title_el = soup.find("title")
    page_title = title_el.get_text() if title_el else ""
    title = clean_text(substr(page_title, r'(.*?)\|')) or clean_text(page_title)

    year = None
    year_links = _attr_contains(soup, "href", YEAR_LINK_MARKER)
    if len(year_links) == 1:
        year = _parse_int(year_links[0].get_text(), "year")

    return Candidate(
        id=movie_id,
        title=title,
        original_title=title,
        year=year,
        url=DETAIL_URL.format(id=movie_id) if movie_id else "",
    )


# =============================================================================
# Detail Page
# =============================================================================

def _extract_title(soup: BeautifulSoup) -> str:
    meta = soup.find(attrs={"property": "og:title"})
    if meta is None:
        return ""
    return clean_text(meta.get("content", ""))


def _extract_plot(soup: BeautifulSoup) -> str:
    return clean_text(" ".join(el.get_text() for el in _class_equals(soup, "bigtext")))


def _extract_poster(soup: BeautifulSoup) -> Optional[Artwork]:
    posters = _attr_starts(soup, "src", POSTER_SRC_PREFIX)
    if len(posters) != 1:
        return None
    return Artwork(url=BASE_URL + posters[0]["src"], language=ARTWORK_LANGUAGE, kind=ArtworkKind.POSTER)


def _extract_year(soup: BeautifulSoup) -> Optional[int]:
    links = _attr_contains(soup, "href", YEAR_LINK_MARKER)
    if len(links) != 1:
        return None
    return _parse_int(links[0].get_text(), "year")


def _extract_release_date(soup: BeautifulSoup):
    links = _attr_contains(soup, "href", RELEASE_LINK_MARKER)
    if not links:
        return None
    text = clean_text(links[0].get_text())
    try:
        return datetime.strptime(text, RELEASE_DATE_FORMAT).date()
    except ValueError:
        logger.warning(f"cannot parse cinema release date: '{text}'")
        return None


def _extract_runtime(page: str) -> Optional[int]:
    runtime = substr(page, RUNTIME_PATTERN)
    if not runtime:
        return None
    return _parse_int(runtime, "runtime")


def _extract_genre_codes(soup: BeautifulSoup) -> List[str]:
    codes = []
    for link in _attr_contains(soup, "href", GENRE_LINK_MARKER):
        href = link["href"]
        codes.append(href[href.rfind("=") + 1:])
    return codes


def _extract_rating(soup: BeautifulSoup) -> Optional[Rating]:
    tables = _class_equals(soup, "ratingBarTable")
    if len(tables) != 2:
        return None
    # Second bar is the user rating: <div>87%</div>
    text = clean_text(" ".join(div.get_text() for div in tables[1].find_all("div")))
    text = text.replace("%", "").strip()
    try:
        value = float(text)
    except ValueError:
        logger.warning(f"cannot convert rating: '{text}'")
        return None
    return Rating(source=RATING_SOURCE, value=value, max_value=RATING_MAX_VALUE)


def extract_detail_page(soup: BeautifulSoup) -> MetadataRecord:
    """
    Extract every field of the primary detail page into a new record.

    Args:
        soup: Parsed filme/index.php3 page

    Returns:
        MetadataRecord with title, plot, tagline, poster, year, release date,
        original title, runtime, genres, certification and user rating
    """
    page = _render(soup)
    md = MetadataRecord()

    md.title = _extract_title(soup)
    md.set_plot(_extract_plot(soup))

    poster = _extract_poster(soup)
    if poster:
        md.artwork.append(poster)

    md.year = _extract_year(soup)
    md.release_date = _extract_release_date(soup)

    md.original_title = _unescape(substr(page, ORIGINAL_TITLE_PATTERN)) or md.title
    md.runtime = _extract_runtime(page)

    for code in _extract_genre_codes(soup):
        md.add_genre(map_genre(code))

    # FSK: ab 12, $230 Mio. Budget
    fsk = substr(page, CERTIFICATION_PATTERN)
    if fsk:
        md.add_certification(map_certification(_unescape(fsk)))

    rating = _extract_rating(soup)
    if rating:
        md.ratings.append(rating)

    return md


# =============================================================================
# Cast / Crew Page
# =============================================================================

class CreditSection(str, Enum):
    """Sections of the cast/crew table, announced by header rows."""
    NONE = "none"
    CAST = "Besetzung"
    CREW = "Crew"
    PRODUCTION = "Produktion"
    DISTRIBUTION = "Verleih"
    ALTERNATE_TITLES = "Alternativtitel"


HEADER_GRAPHIC_MARKER = "dyngfx"

# Checked in this order
SECTION_KEYWORDS = (
    CreditSection.CAST,
    CreditSection.CREW,
    CreditSection.PRODUCTION,
    CreditSection.DISTRIBUTION,
    CreditSection.ALTERNATE_TITLES,
)


@dataclass
class CreditsScan:
    """Result of scanning the cast/crew table."""
    cast_members: List[CastMember] = field(default_factory=list)
    production_companies: List[str] = field(default_factory=list)


def header_section(row: Tag) -> Optional[CreditSection]:
    """
    Classify a header row.

    Returns:
        The announced section, NONE for a header graphic without a known
        keyword, or None if the row is a data row
    """
    markup = str(row)
    if HEADER_GRAPHIC_MARKER not in markup:
        return None
    for section in SECTION_KEYWORDS:
        if section.value in markup:
            return section
    return CreditSection.NONE


def _person_link(cell: Tag):
    links = cell.find_all("a")
    name = clean_text(" ".join(a.get_text() for a in links))
    person_id = substr(links[0].get("href", ""), ID_PARAM_PATTERN) if links else ""
    return name, person_id


def scan_credits(
    rows: List[Tag],
    role_type: Callable[[str], CastType] = crew_role_type,
) -> CreditsScan:
    """
    Fold over the cast/crew table rows in order.

    Running state is the current section and the last explicit crew label;
    a crew row with an empty label cell repeats the previous label until a
    new label appears.

    Args:
        rows: <tr> elements of the #ccdetails table, in page order
        role_type: Maps a crew label to a credit type

    Returns:
        CreditsScan with actors, crew and production companies
    """
    result = CreditsScan()
    section = CreditSection.NONE
    last_label = ""

    for row in rows:
        announced = header_section(row)
        if announced is not None:
            if announced is not CreditSection.NONE:
                section = announced
            continue

        cells = row.find_all("td")

        if section is CreditSection.CAST:
            if len(cells) != 2:
                continue
            character = clean_text(cells[0].get_text())
            if not character:
                continue
            name, person_id = _person_link(cells[1])
            if not name:
                continue
            result.cast_members.append(CastMember(
                name=name,
                id=person_id,
                type=CastType.ACTOR,
                character=character,
            ))

        elif section is CreditSection.CREW:
            if len(cells) != 2:
                continue
            label = clean_text(cells[0].get_text())
            if label:
                last_label = label
            part = label or last_label
            name, person_id = _person_link(cells[1])
            if not name:
                continue
            result.cast_members.append(CastMember(
                name=name,
                id=person_id,
                type=role_type(part),
                part=part,
            ))

        elif section is CreditSection.PRODUCTION:
            if not cells:
                continue
            company = clean_text(cells[0].get_text())
            if company:
                result.production_companies.append(company)

        # Distribution and alternate titles are recognized but not extracted

    return result


def credit_rows(soup: BeautifulSoup) -> List[Tag]:
    """Rows of the #ccdetails table, or [] if the page has none."""
    table = soup.find(id="ccdetails")
    if table is None:
        logger.warning("cast/crew table not found")
        return []
    return table.find_all("tr")


# =============================================================================
# External Links Page
# =============================================================================

def extract_imdb_id(soup: BeautifulSoup) -> Optional[str]:
    """
    Find the IMDB id on the links page.

    The first IMDB link with a usable id wins. Current links carry the id
    directly (title/tt0114746/); legacy ones use a bare query number
    (Title?0114746), which is prefixed with "tt".
    """
    for link in soup.find_all("a", href=True):
        href = link["href"]
        if urlparse(href).netloc.lower() not in IMDB_HOSTS:
            continue
        imdb_id = substr(href, IMDB_ID_PATTERN)
        if imdb_id:
            return imdb_id
        legacy = substr(href, LEGACY_IMDB_PATTERN)
        if legacy:
            return "tt" + legacy
        logger.warning(f"cannot extract imdb id from '{href}'")
    return None


__all__ = [
    'extract_candidate_row',
    'parse_search_results',
    'is_search_results_page',
    'extract_redirect_candidate',
    'extract_detail_page',
    'CreditSection',
    'CreditsScan',
    'header_section',
    'scan_credits',
    'credit_rows',
    'extract_imdb_id',
]
