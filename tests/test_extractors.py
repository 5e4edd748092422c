"""
Tests for extractors.py against hand-built zelluloid.de pages.
"""

from datetime import date

import pytest
from bs4 import BeautifulSoup

from extractors import (
    extract_candidate_row,
    parse_search_results,
    is_search_results_page,
    extract_redirect_candidate,
    extract_detail_page,
    header_section,
    scan_credits,
    credit_rows,
    extract_imdb_id,
    CreditSection,
)
from fetcher import parse_page
from taxonomy import MediaGenre, Certification, CastType
from tests.conftest import (
    PLOT,
    result_row,
    search_page,
    detail_page,
    credits_page,
    links_page,
    header_row,
    person_row,
)


def soup_of(markup: str) -> BeautifulSoup:
    return BeautifulSoup(markup, "html.parser")


def row_of(markup: str):
    return soup_of(f"<table>{markup}</table>").find("tr")


# =============================================================================
# Search results
# =============================================================================

class TestCandidateRow:
    """Single result rows"""

    def test_movie_row(self):
        candidate = extract_candidate_row(row_of(result_row("886", "Twelve Monkeys", 1995)))
        assert candidate.id == "886"
        assert candidate.title == "Twelve Monkeys"
        assert candidate.year == 1995
        assert candidate.url == "http://www.zelluloid.de/filme/index.php3?id=886"

    def test_original_title_span_excluded_from_title(self):
        row = row_of(result_row("1957", "Die Bourne Identität", 2002, original_title="The Bourne Identity"))
        candidate = extract_candidate_row(row)
        assert candidate.title == "Die Bourne Identität"
        assert candidate.original_title == "The Bourne Identity"
        assert candidate.year == 2002

    def test_row_without_year(self):
        candidate = extract_candidate_row(row_of(result_row("42", "Unbekannt")))
        assert candidate.year is None

    def test_row_without_hit_link(self):
        assert extract_candidate_row(row_of('<tr><td><a href="/news/">News</a></td></tr>')) is None

    def test_tv_series_row_skipped(self):
        row = row_of(result_row("77", "Twelve Monkeys", 2015, extra='<div class="smallBlur">TV-Serie</div>'))
        assert extract_candidate_row(row) is None

    def test_row_with_nested_rows_skipped(self):
        markup = f'<tr><td><table>{result_row("886", "Twelve Monkeys", 1995)}</table></td></tr>'
        assert extract_candidate_row(row_of(markup)) is None

    def test_malformed_row_raises(self):
        row = row_of('<tr><td><a href="hit.php3?hit=broken">Kaputt</a></td></tr>')
        with pytest.raises(ValueError):
            extract_candidate_row(row)


class TestParseSearchResults:
    """Whole result pages"""

    def test_page_order_and_skips(self):
        page = search_page("Monkeys", [
            result_row("886", "Twelve Monkeys", 1995),
            '<tr><td><a href="hit.php3?hit=broken">Kaputt</a></td></tr>',
            result_row("77", "12 Monkeys", 2015, extra="TV-Serie"),
            result_row("3001", "Monkeybone", 2001),
        ])
        candidates = parse_search_results(soup_of(page))
        assert [c.id for c in candidates] == ["886", "3001"]

    def test_duplicate_ids_are_kept(self):
        page = search_page("Monkeys", [
            result_row("886", "Twelve Monkeys", 1995),
            result_row("886", "Twelve Monkeys", 1995),
        ])
        assert [c.id for c in parse_search_results(soup_of(page))] == ["886", "886"]

    def test_empty_result_page(self):
        soup = soup_of(search_page("xyz", []))
        assert parse_search_results(soup) == []
        assert is_search_results_page(soup)

    def test_detail_page_is_not_result_page(self):
        assert not is_search_results_page(soup_of(detail_page()))


class TestRedirectCandidate:

    def test_from_detail_page(self):
        soup = soup_of(detail_page(movie_id="5656", title="V wie Vendetta",
                                   original_title="V for Vendetta", year="2005"))
        candidate = extract_redirect_candidate(soup)
        assert candidate.id == "5656"
        assert candidate.title == "V wie Vendetta"
        assert candidate.year == 2005
        assert candidate.url.endswith("index.php3?id=5656")

    def test_page_without_links(self):
        candidate = extract_redirect_candidate(soup_of("<html><head><title>Fehler</title></head></html>"))
        assert candidate.id == ""
        assert candidate.title == "Fehler"
        assert candidate.url == ""


# =============================================================================
# Detail page
# =============================================================================

class TestDetailPage:
    """Primary detail page fields"""

    @pytest.fixture
    def record(self):
        return extract_detail_page(parse_page(detail_page().encode("iso-8859-1")))

    def test_title_and_original_title(self, record):
        assert record.title == "Twelve Monkeys"
        assert record.original_title == "Twelve Monkeys"

    def test_plot_and_tagline(self, record):
        assert record.plot == PLOT
        assert len(record.tagline) == 150
        assert record.plot.startswith(record.tagline)

    def test_year_runtime_release(self, record):
        assert record.year == 1995
        assert record.runtime == 130
        assert record.release_date == date(1996, 2, 22)

    def test_genres_skip_tags(self, record):
        assert record.genres == [MediaGenre.THRILLER, MediaGenre.SCIENCE_FICTION]

    def test_certification(self, record):
        assert record.certifications == [Certification.DE_FSK16]

    def test_rating_from_second_bar(self, record):
        assert len(record.ratings) == 1
        rating = record.ratings[0]
        assert rating.value == 87.0
        assert rating.max_value == 100
        assert rating.source == "zelluloid"

    def test_poster(self, record):
        assert len(record.artwork) == 1
        assert record.artwork[0].url == "http://www.zelluloid.de/images/poster/886_0.jpg"
        assert record.artwork[0].language == "de"

    def test_original_title_falls_back_to_title(self):
        record = extract_detail_page(soup_of(detail_page(original_title="")))
        assert record.original_title == "Twelve Monkeys"

    def test_distinct_original_title(self):
        record = extract_detail_page(soup_of(detail_page(title="V wie Vendetta", original_title="V for Vendetta")))
        assert record.title == "V wie Vendetta"
        assert record.original_title == "V for Vendetta"

    def test_short_plot_is_whole_tagline(self):
        record = extract_detail_page(soup_of(detail_page(plot="Kurz.")))
        assert record.tagline == "Kurz."

    @pytest.mark.parametrize("posters", [0, 2])
    def test_ambiguous_poster_left_unset(self, posters):
        record = extract_detail_page(soup_of(detail_page(posters=posters)))
        assert record.artwork == []

    def test_runtime_needs_nonbreaking_spaces(self):
        page = detail_page(runtime=None).replace("</div>", "ca. 130 min</div>", 1)
        record = extract_detail_page(soup_of(page))
        assert record.runtime is None

    def test_unparseable_values_leave_fields_unset(self):
        record = extract_detail_page(soup_of(detail_page(
            year="neunzehn", runtime="zwei", rating="viel", release="bald", fsk="unbekannt",
        )))
        assert record.year is None
        assert record.runtime is None
        assert record.ratings == []
        assert record.release_date is None
        assert record.certifications == []
        assert record.title == "Twelve Monkeys"

    def test_missing_fields(self):
        record = extract_detail_page(soup_of(detail_page(
            year=None, runtime=None, fsk=None, genre_codes=(), rating=None, release=None, plot=None,
        )))
        assert record.year is None
        assert record.runtime is None
        assert record.genres == []
        assert record.ratings == []
        assert record.plot == ""
        assert record.tagline == ""


# =============================================================================
# Cast / crew page
# =============================================================================

class TestHeaderSection:

    @pytest.mark.parametrize("label,expected", [
        ("Besetzung", CreditSection.CAST),
        ("Crew", CreditSection.CREW),
        ("Produktion", CreditSection.PRODUCTION),
        ("Verleih", CreditSection.DISTRIBUTION),
        ("Alternativtitel", CreditSection.ALTERNATE_TITLES),
        ("Trivia", CreditSection.NONE),
    ])
    def test_header_rows(self, label, expected):
        assert header_section(row_of(header_row(label))) == expected

    def test_data_row(self):
        assert header_section(row_of(person_row("Regie", "Terry Gilliam", 7))) is None


class TestScanCredits:
    """Cast/crew table fold"""

    @pytest.fixture
    def scan(self):
        return scan_credits(credit_rows(soup_of(credits_page())))

    def test_actors(self, scan):
        actors = [m for m in scan.cast_members if m.type == CastType.ACTOR]
        assert len(actors) == 22
        assert actors[0].name == "Bruce Willis"
        assert actors[0].character == "James Cole"
        assert actors[0].id == "100"

    def test_director(self, scan):
        directors = [m for m in scan.cast_members if m.type == CastType.DIRECTOR]
        assert [d.name for d in directors] == ["Terry Gilliam"]
        assert directors[0].part == "Regie"

    def test_empty_label_repeats_previous_label(self, scan):
        crew = {m.name: m for m in scan.cast_members if m.type != CastType.ACTOR}
        assert crew["Janet Peoples"].part == "Drehbuch"
        assert crew["Janet Peoples"].type == CastType.WRITER
        assert crew["Kamerafrau"].part == "Kamera"
        assert crew["Kamerafrau"].type == CastType.OTHER

    def test_carried_director_label(self):
        rows = [
            row_of(header_row("Crew")),
            row_of(person_row("Regie", "Lana Wachowski", 20)),
            row_of(person_row("&nbsp;", "Lilly Wachowski", 21)),
        ]
        scan = scan_credits(rows)
        assert [(m.name, m.type, m.part) for m in scan.cast_members] == [
            ("Lana Wachowski", CastType.DIRECTOR, "Regie"),
            ("Lilly Wachowski", CastType.DIRECTOR, "Regie"),
        ]

    def test_production_companies(self, scan):
        assert scan.production_companies == ["Universal"]

    def test_distribution_and_alternate_titles_ignored(self, scan):
        names = [m.name for m in scan.cast_members]
        assert "UIP" not in names
        assert "12 Monkeys" not in scan.production_companies

    def test_rows_before_any_header_ignored(self):
        rows = [row_of(person_row("Regie", "Terry Gilliam", 7))]
        scan = scan_credits(rows)
        assert scan.cast_members == []

    def test_unknown_header_keeps_section(self):
        rows = [
            row_of(header_row("Crew")),
            row_of(header_row("Trivia")),
            row_of(person_row("Regie", "Terry Gilliam", 7)),
        ]
        scan = scan_credits(rows)
        assert [m.type for m in scan.cast_members] == [CastType.DIRECTOR]

    def test_custom_role_table(self):
        rows = [row_of(header_row("Crew")), row_of(person_row("Kamera", "Roger Pratt", 10))]
        scan = scan_credits(rows, role_type=lambda label: CastType.PRODUCER)
        assert scan.cast_members[0].type == CastType.PRODUCER

    def test_missing_table(self):
        assert credit_rows(soup_of("<html><body>Kein Inhalt</body></html>")) == []


# =============================================================================
# Links page
# =============================================================================

class TestImdbId:

    @pytest.mark.parametrize("href,expected", [
        ("http://german.imdb.com/Title?0114746", "tt0114746"),
        ("https://www.imdb.com/title/tt0114746/", "tt0114746"),
        ("http://imdb.com/title/tt12345678/", "tt12345678"),
    ])
    def test_link_forms(self, href, expected):
        assert extract_imdb_id(soup_of(links_page(href))) == expected

    def test_legacy_link_without_digits(self):
        assert extract_imdb_id(soup_of(links_page("http://german.imdb.com/Title?abc"))) is None

    def test_host_must_match(self):
        page = (
            '<a href="http://www.twelvemonkeys.de/?ref=imdb.com">Fanseite</a>'
            '<a href="http://www.imdb.com/title/tt0114746/">IMDb</a>'
        )
        assert extract_imdb_id(soup_of(page)) == "tt0114746"

    def test_unusable_imdb_link_skipped(self):
        page = (
            '<a href="http://www.imdb.com/chart/top">Top 250</a>'
            '<a href="http://german.imdb.com/Title?0114746">IMDb</a>'
        )
        assert extract_imdb_id(soup_of(page)) == "tt0114746"

    def test_no_imdb_link(self):
        assert extract_imdb_id(soup_of('<a href="http://www.ofdb.de/film/1">OFDb</a>')) is None
