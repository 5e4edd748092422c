"""
Tests for taxonomy.py: site genre codes, FSK text and crew role labels.
"""

import pytest

from taxonomy import (
    MediaGenre,
    Certification,
    CastType,
    ZELLULOID_GENRES,
    map_genre,
    map_certification,
    crew_role_type,
)


class TestMapGenre:
    """Genre code mapping"""

    @pytest.mark.parametrize("code,expected", [
        ("2", MediaGenre.COMEDY),
        ("4", MediaGenre.THRILLER),
        ("6", MediaGenre.SCIENCE_FICTION),
        ("14", MediaGenre.DRAMA),
        ("26", MediaGenre.THRILLER),
        ("36", MediaGenre.CRIME),
        ("68", MediaGenre.HORROR),
    ])
    def test_known_codes(self, code, expected):
        assert map_genre(code) == expected

    @pytest.mark.parametrize("code", ["11", "65"])
    def test_tag_codes_have_no_genre(self, code):
        """Remake and 3D are tags, not genres"""
        assert map_genre(code) is None

    @pytest.mark.parametrize("code", ["1", "999", "-4"])
    def test_unknown_numbers(self, code):
        assert map_genre(code) is None

    def test_falls_back_to_genre_name(self):
        assert map_genre("Thriller") == MediaGenre.THRILLER
        assert map_genre("science fiction") == MediaGenre.SCIENCE_FICTION

    def test_german_alternate_names(self):
        assert map_genre("Komödie") == MediaGenre.COMEDY
        assert map_genre("Krimi") == MediaGenre.CRIME

    @pytest.mark.parametrize("code", ["", "Unbekannt", "4a", "   "])
    def test_never_raises(self, code):
        assert map_genre(code) is None

    def test_table_values_are_genres_or_none(self):
        for genre in ZELLULOID_GENRES.values():
            assert genre is None or isinstance(genre, MediaGenre)


class TestMapCertification:
    """FSK free text"""

    @pytest.mark.parametrize("text,expected", [
        ("ab 0", Certification.DE_FSK0),
        ("ab 6", Certification.DE_FSK6),
        ("ab 12", Certification.DE_FSK12),
        ("ab 16", Certification.DE_FSK16),
        ("ab 18", Certification.DE_FSK18),
        ("AB 16", Certification.DE_FSK16),
        ("ab\xa016", Certification.DE_FSK16),
        ("  ab   12 ", Certification.DE_FSK12),
        ("16", Certification.DE_FSK16),
        ("keine Jugendfreigabe", Certification.DE_FSK18),
    ])
    def test_notations(self, text, expected):
        assert map_certification(text) == expected

    @pytest.mark.parametrize("text", ["", "unbekannt", "ab 14", "PG-13"])
    def test_unrecognized(self, text):
        assert map_certification(text) is None

    def test_values_are_display_names(self):
        assert Certification.DE_FSK16.value == "FSK 16"


class TestCrewRoleType:
    """Crew label classification"""

    @pytest.mark.parametrize("label,expected", [
        ("Regie", CastType.DIRECTOR),
        ("Drehbuch", CastType.WRITER),
        ("Buch", CastType.WRITER),
        ("Produzent", CastType.PRODUCER),
        ("Produktion", CastType.PRODUCER),
    ])
    def test_known_labels(self, label, expected):
        assert crew_role_type(label) == expected

    @pytest.mark.parametrize("label", ["Kamera", "Musik", "Schnitt", "", "regie"])
    def test_unknown_labels_are_other(self, label):
        assert crew_role_type(label) == CastType.OTHER

    def test_custom_label_table(self):
        labels = {"Kamera": CastType.OTHER, "Director": CastType.DIRECTOR}
        assert crew_role_type("Director", labels) == CastType.DIRECTOR
        assert crew_role_type("Regie", labels) == CastType.OTHER
