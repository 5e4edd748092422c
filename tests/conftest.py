"""
Pytest configuration and shared fixtures.

Pages are served by a fake session keyed by URL, so the real PageFetcher,
decoding and parsing code runs without touching the network.
"""

import sys
from pathlib import Path
from urllib.parse import quote_plus

import pytest
import requests

sys.path.insert(0, str(Path(__file__).parent.parent))

from constants import SEARCH_URL, DETAIL_URL, DETAILS_URL, LINKS_URL, PAGE_ENCODING
from fetcher import PageFetcher


# =============================================================================
# Fake HTTP session
# =============================================================================

def make_response(url: str, body: bytes, status_code: int = 200) -> requests.Response:
    response = requests.Response()
    response.url = url
    response.status_code = status_code
    response.reason = "OK" if status_code < 400 else "Error"
    response._content = body
    return response


class FakeSession:
    """
    Stand-in for RateLimitedSession.

    pages maps URL -> str/bytes body, an int status code, or an exception
    instance to raise. Unknown URLs answer 404.
    """

    def __init__(self, pages=None):
        self.pages = dict(pages or {})
        self.requested = []
        self.closed = False

    def get(self, url, **kwargs):
        self.requested.append(url)
        page = self.pages.get(url, 404)
        if isinstance(page, Exception):
            raise page
        if isinstance(page, int):
            return make_response(url, b"", status_code=page)
        if isinstance(page, str):
            page = page.encode(PAGE_ENCODING)
        return make_response(url, page)

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


def search_url(query: str) -> str:
    return SEARCH_URL.format(query=quote_plus(query))


# =============================================================================
# HTML builders
# =============================================================================

def result_row(movie_id, title, year=None, original_title=None, kind="icoMovie", extra=""):
    """One row of the search result table."""
    inner = title
    if original_title:
        inner += f" <span>{original_title}</span>"
    if year:
        inner += f" <nobr>({year})</nobr>"
    return (
        f'<tr><td><img src="/gfx/{kind}.gif"></td>'
        f'<td><b><a href="hit.php3?hit=a1b2-movie-{movie_id}-23126993-2">{inner}</a></b>'
        f'{extra}</td></tr>'
    )


def search_page(query: str, rows) -> str:
    """Search result page; the result table sits inside a layout table."""
    return (
        f'<html><head><title>Suche nach "{query}" | zelluloid.de</title></head><body>'
        f'<table><tr><td>'
        f'<table>{"".join(rows)}</table>'
        f'</td></tr></table>'
        f'</body></html>'
    )


PLOT = (
    "Im Jahr 2035 lebt die Menschheit nach einer Virusepidemie unter der Erde. "
    "Der Sträfling James Cole wird in die Vergangenheit geschickt, um den Ursprung "
    "des Virus zu finden, landet aber im falschen Jahr und in der Psychiatrie."
)


def detail_page(
    movie_id="886",
    title="Twelve Monkeys",
    original_title="Twelve Monkeys",
    year="1995",
    runtime="130",
    fsk="ab 16",
    genre_codes=("4", "6", "11"),
    rating="87%",
    plot=PLOT,
    release="22.02.1996",
    posters=1,
) -> str:
    """Movie detail page (filme/index.php3)."""
    parts = [
        f'<html><head><title>{title} | zelluloid.de</title>',
        f'<meta property="og:title" content="{title}"></head><body>',
    ]
    parts += [f'<img src="/images/poster/{movie_id}_{n}.jpg">' for n in range(posters)]
    parts.append(f'<a href="index.php3?id={movie_id}&amp;action=kommentare">Kommentare</a>')
    parts.append('<div class="infobox">')
    if original_title:
        parts.append(f'Originaltitel: {original_title}<br>')
    if year:
        parts.append(f'USA <a href="../azindex/az.php3?j={year}">{year}</a>, ')
    if runtime:
        parts.append(f'ca.&nbsp;{runtime}&nbsp;min<br>')
    if fsk:
        parts.append(f'FSK: {fsk}, $29 Mio. Budget<br>')
    for code in genre_codes:
        parts.append(f'<a href="../azindex/az.php3?g={code}">Genre {code}</a> ')
    if release:
        parts.append(f'Kinostart: <a href="../kino/woche.php3?v=w&amp;d=1">{release}</a>')
    parts.append('</div>')
    if plot:
        parts.append(f'<div class="bigtext">{plot}</div>')
    if rating:
        parts.append('<table class="ratingBarTable"><tr><td><div>70%</div></td></tr></table>')
        parts.append(f'<table class="ratingBarTable"><tr><td><div>{rating}</div></td></tr></table>')
    parts.append('</body></html>')
    return "".join(parts)


def header_row(label: str) -> str:
    return f'<tr><td colspan="2"><img src="/dyngfx/h.php3?t={label}" alt="{label}"></td></tr>'


def person_row(label: str, name: str, person_id: int) -> str:
    link = f'<a href="../personen/index.php3?id={person_id}">{name}</a>' if name else ""
    return f'<tr><td>{label}</td><td>{link}</td></tr>'


ACTORS = [("Bruce Willis", "James Cole"), ("Madeleine Stowe", "Kathryn Railly"),
          ("Brad Pitt", "Jeffrey Goines")] + [(f"Darsteller {n}", f"Rolle {n}") for n in range(4, 23)]


def credits_page(actors=ACTORS) -> str:
    """Cast/crew page (filme/details.php3)."""
    rows = [header_row("Besetzung")]
    rows += [person_row(character, name, 100 + n) for n, (name, character) in enumerate(actors)]
    rows.append(person_row("Nebenrolle", "", 999))  # no person link
    rows += [
        header_row("Crew"),
        person_row("Regie", "Terry Gilliam", 7),
        person_row("Drehbuch", "David Peoples", 8),
        person_row("", "Janet Peoples", 9),
        person_row("Kamera", "Roger Pratt", 10),
        person_row("", "Kamerafrau", 11),
        header_row("Produktion"),
        '<tr><td>Universal</td></tr>',
        header_row("Verleih"),
        '<tr><td>UIP</td></tr>',
        header_row("Alternativtitel"),
        '<tr><td>12 Monkeys</td></tr>',
    ]
    return f'<html><body><table id="ccdetails">{"".join(rows)}</table></body></html>'


def links_page(href="http://german.imdb.com/Title?0114746") -> str:
    """External links page (filme/links.php3)."""
    return (
        '<html><body>'
        '<a href="http://www.twelvemonkeys.de/">Offizielle Seite</a>'
        f'<a href="{href}">IMDb</a>'
        '</body></html>'
    )


def movie_pages(movie_id="886", **detail_kwargs):
    """All three pages of one movie, keyed by URL."""
    return {
        DETAIL_URL.format(id=movie_id): detail_page(movie_id=movie_id, **detail_kwargs),
        DETAILS_URL.format(id=movie_id): credits_page(),
        LINKS_URL.format(id=movie_id): links_page(),
    }


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def fetcher(fake_session):
    return PageFetcher(session=fake_session)


@pytest.fixture
def twelve_monkeys_pages():
    return movie_pages("886")
