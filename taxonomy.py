"""
Canonical vocabularies and site-specific lookup tables.

Holds the genre, certification and credit type enums shared by all
scrapers, plus the zelluloid.de tables that map site genre codes, FSK
free text and German crew labels onto them. The tables are plain dicts
so locale variants can be swapped without touching the scanning code.
"""

import logging
from enum import Enum
from typing import Optional, Dict, Tuple

logger = logging.getLogger(__name__)


# =============================================================================
# Enums
# =============================================================================

class MediaGenre(str, Enum):
    """
    Canonical genre vocabulary.

    Inherits from str for JSON serialization compatibility.
    """
    ACTION = "Action"
    ADVENTURE = "Adventure"
    ANIMATION = "Animation"
    BIOGRAPHY = "Biography"
    COMEDY = "Comedy"
    CRIME = "Crime"
    DISASTER = "Disaster"
    DOCUMENTARY = "Documentary"
    DRAMA = "Drama"
    EROTIC = "Erotic"
    FAMILY = "Family"
    FANTASY = "Fantasy"
    FOREIGN = "Foreign"
    GAME_SHOW = "Game Show"
    HISTORY = "History"
    HORROR = "Horror"
    INDIE = "Indie"
    MUSIC = "Music"
    MUSICAL = "Musical"
    MYSTERY = "Mystery"
    REALITY_TV = "Reality TV"
    ROAD_MOVIE = "Road Movie"
    ROMANCE = "Romance"
    SCIENCE_FICTION = "Science Fiction"
    SERIES = "Series"
    SHORT = "Short"
    SILENT_MOVIE = "Silent Movie"
    SPORT = "Sport"
    THRILLER = "Thriller"
    WAR = "War"
    WESTERN = "Western"

    @classmethod
    def get_genre(cls, name: str) -> Optional["MediaGenre"]:
        """
        Look up a genre by free-text name.

        Matches case-insensitively against the enum name, the display
        value and the German alternate names.

        Args:
            name: Genre name, e.g. "sci-fi", "Komödie" or "THRILLER"

        Returns:
            MediaGenre or None if the name is unknown
        """
        if not name:
            return None
        key = name.strip().lower()
        for genre in cls:
            if key in (genre.name.lower(), genre.value.lower()):
                return genre
            if key in _ALTERNATE_GENRE_NAMES.get(genre, ()):
                return genre
        return None


_ALTERNATE_GENRE_NAMES: Dict[MediaGenre, Tuple[str, ...]] = {
    MediaGenre.ACTION: ("actionfilm",),
    MediaGenre.ADVENTURE: ("abenteuer",),
    MediaGenre.ANIMATION: ("zeichentrick", "trickfilm", "anime"),
    MediaGenre.BIOGRAPHY: ("biografie", "biographie"),
    MediaGenre.COMEDY: ("komödie", "komoedie"),
    MediaGenre.CRIME: ("krimi", "kriminalfilm"),
    MediaGenre.DISASTER: ("katastrophe", "katastrophenfilm"),
    MediaGenre.DOCUMENTARY: ("dokumentation", "dokumentarfilm"),
    MediaGenre.EROTIC: ("erotik",),
    MediaGenre.FAMILY: ("familie", "familienfilm"),
    MediaGenre.HISTORY: ("historie", "historienfilm"),
    MediaGenre.MUSIC: ("musik",),
    MediaGenre.ROMANCE: ("lovestory", "liebesfilm", "romantik"),
    MediaGenre.SCIENCE_FICTION: ("sci-fi", "science-fiction", "scifi"),
    MediaGenre.SHORT: ("kurzfilm",),
    MediaGenre.SILENT_MOVIE: ("stummfilm",),
    MediaGenre.WAR: ("krieg", "kriegsfilm"),
}


class Certification(str, Enum):
    """German FSK age ratings."""
    DE_FSK0 = "FSK 0"
    DE_FSK6 = "FSK 6"
    DE_FSK12 = "FSK 12"
    DE_FSK16 = "FSK 16"
    DE_FSK18 = "FSK 18"


class CastType(str, Enum):
    """Kind of credit a person received."""
    ACTOR = "actor"
    DIRECTOR = "director"
    WRITER = "writer"
    PRODUCER = "producer"
    OTHER = "other"


# =============================================================================
# Site Genre Codes (az.php3?g=<code>)
# =============================================================================

# None entries are tags rather than genres
ZELLULOID_GENRES: Dict[int, Optional[MediaGenre]] = {
    2: MediaGenre.COMEDY,            # Komödie
    3: MediaGenre.ACTION,            # Action
    4: MediaGenre.THRILLER,          # Thriller
    5: MediaGenre.WAR,               # Krieg
    6: MediaGenre.SCIENCE_FICTION,   # Science-Fiction
    7: MediaGenre.FANTASY,           # Fantasy
    9: MediaGenre.ANIMATION,         # Zeichentrick
    10: MediaGenre.ANIMATION,        # Computeranimation
    11: None,                        # Remake
    13: MediaGenre.ANIMATION,        # Anime
    14: MediaGenre.DRAMA,            # Drama
    15: MediaGenre.DOCUMENTARY,      # Dokumentation
    16: MediaGenre.ADVENTURE,        # Abenteuer
    17: MediaGenre.ROMANCE,          # Lovestory
    18: MediaGenre.ANIMATION,        # Comicverfilmung
    19: MediaGenre.ROAD_MOVIE,       # Roadmovie
    22: MediaGenre.HORROR,           # Horror
    23: MediaGenre.EROTIC,           # Erotik
    25: MediaGenre.DISASTER,         # Katastrophe
    26: MediaGenre.THRILLER,         # Spionage
    27: MediaGenre.SPORT,            # Kampfsport
    28: MediaGenre.BIOGRAPHY,        # Biografie
    29: MediaGenre.HISTORY,          # Ritter
    30: MediaGenre.SCIENCE_FICTION,  # Endzeit
    31: MediaGenre.SCIENCE_FICTION,  # Cyberspace
    32: MediaGenre.SCIENCE_FICTION,  # Computer
    33: MediaGenre.WESTERN,          # Western
    34: MediaGenre.CRIME,            # Gericht
    35: MediaGenre.WAR,              # U-Boot
    36: MediaGenre.CRIME,            # Krimi
    37: MediaGenre.HORROR,           # Splatter
    38: MediaGenre.MUSICAL,          # Musical
    39: MediaGenre.MUSIC,            # Musik
    40: MediaGenre.FAMILY,           # Familie
    42: MediaGenre.MYSTERY,          # Mystery
    43: MediaGenre.SPORT,            # Sport
    44: MediaGenre.REALITY_TV,       # Schule
    45: MediaGenre.WAR,              # Militär
    46: MediaGenre.ANIMATION,        # Trick
    47: MediaGenre.INDIE,            # Experimentalfilm
    48: MediaGenre.HORROR,           # Vampire
    49: MediaGenre.SCIENCE_FICTION,  # Zeitreise
    50: MediaGenre.FANTASY,          # Märchen
    51: MediaGenre.CRIME,            # Serienkiller
    52: MediaGenre.SILENT_MOVIE,     # Stummfilm
    53: MediaGenre.SHORT,            # Kurzfilm
    54: MediaGenre.INDIE,            # Blaxploitation
    55: MediaGenre.FAMILY,           # Heimat
    56: MediaGenre.SCIENCE_FICTION,  # Spielverfilmung
    59: MediaGenre.FAMILY,           # Weihnachten
    61: MediaGenre.SERIES,           # Soap
    62: MediaGenre.HISTORY,          # Piraten
    63: MediaGenre.FOREIGN,          # Bollywood
    64: MediaGenre.GAME_SHOW,        # Show
    65: None,                        # 3D
    68: MediaGenre.HORROR,           # Zombies
}


def map_genre(site_code: str) -> Optional[MediaGenre]:
    """
    Map a zelluloid.de genre code onto the canonical genre vocabulary.

    Never raises: numeric codes go through the fixed table (unknown numbers
    yield None), anything else is tried as a genre name.

    Args:
        site_code: Value of the ``g`` query parameter, e.g. "6"

    Returns:
        MediaGenre, or None for tags, unknown codes and unknown names
    """
    if not site_code:
        return None
    try:
        code = int(site_code)
    except ValueError:
        return MediaGenre.get_genre(site_code)
    return ZELLULOID_GENRES.get(code)


# =============================================================================
# Certifications
# =============================================================================

CERTIFICATION_NOTATIONS: Dict[Certification, Tuple[str, ...]] = {
    Certification.DE_FSK0: ("fsk 0", "fsk-0", "fsk0", "0", "ab 0", "o.al.", "ohne altersbeschränkung"),
    Certification.DE_FSK6: ("fsk 6", "fsk-6", "fsk6", "6", "ab 6"),
    Certification.DE_FSK12: ("fsk 12", "fsk-12", "fsk12", "12", "ab 12"),
    Certification.DE_FSK16: ("fsk 16", "fsk-16", "fsk16", "16", "ab 16"),
    Certification.DE_FSK18: ("fsk 18", "fsk-18", "fsk18", "18", "ab 18", "keine jugendfreigabe"),
}


def map_certification(free_text: str) -> Optional[Certification]:
    """
    Match FSK free text such as "ab 12" against the German table.

    Args:
        free_text: Text captured after "FSK:" on the detail page

    Returns:
        Certification, or None if the text is not recognized
    """
    if not free_text:
        return None
    key = " ".join(free_text.replace("\xa0", " ").split()).lower()
    for certification, notations in CERTIFICATION_NOTATIONS.items():
        if key in notations:
            return certification
    logger.debug(f"Unknown certification: '{free_text}'")
    return None


# =============================================================================
# Crew Roles
# =============================================================================

CREW_ROLE_LABELS: Dict[str, CastType] = {
    "Regie": CastType.DIRECTOR,
    "Drehbuch": CastType.WRITER,
    "Buch": CastType.WRITER,
    "Produzent": CastType.PRODUCER,
    "Produktion": CastType.PRODUCER,
}


def crew_role_type(label: str, labels: Dict[str, CastType] = None) -> CastType:
    """Classify a crew role label by exact match; unknown labels are OTHER."""
    table = CREW_ROLE_LABELS if labels is None else labels
    return table.get(label, CastType.OTHER)
