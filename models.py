"""
Shared data models for zelluloid.de metadata lookup.

This module contains data classes used across the scraper, the lookup
entry points and the provider service, kept separate to avoid circular
imports between modules.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Optional, List, Dict, Any

from constants import TAGLINE_LENGTH
from taxonomy import MediaGenre, Certification, CastType


class ArtworkKind(str, Enum):
    """Artwork kinds delivered by the site (posters only)."""
    POSTER = "poster"


@dataclass
class Candidate:
    """One ranked search result before detail enrichment."""
    id: str
    title: str
    original_title: str = ""
    year: Optional[int] = None
    url: str = ""
    score: float = 0.0
    imdb_id: Optional[str] = None  # Search rows never carry one

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            'id': self.id,
            'title': self.title,
            'original_title': self.original_title,
            'year': self.year,
            'url': self.url,
            'score': round(self.score, 4),
            'imdb_id': self.imdb_id,
        }


@dataclass
class CastMember:
    """Actor or crew member from the cast/crew page."""
    name: str
    type: CastType
    id: str = ""
    character: str = ""  # Actors only
    part: str = ""  # Crew only, e.g. "Regie", "Kamera"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'id': self.id,
            'type': self.type.value,
            'character': self.character,
            'part': self.part,
        }


@dataclass
class Artwork:
    url: str
    language: str
    kind: ArtworkKind = ArtworkKind.POSTER

    def to_dict(self) -> Dict[str, Any]:
        return {'url': self.url, 'language': self.language, 'kind': self.kind.value}


@dataclass
class Rating:
    source: str
    value: float
    max_value: int

    def to_dict(self) -> Dict[str, Any]:
        return {'source': self.source, 'value': self.value, 'max_value': self.max_value}


@dataclass
class MetadataRecord:
    """
    Fully assembled movie metadata.

    Scalars stay None when the page did not yield a parseable value; a missing
    runtime is None, never zero.
    """
    title: str = ""
    original_title: str = ""
    plot: str = ""
    tagline: str = ""
    year: Optional[int] = None
    runtime: Optional[int] = None  # Minutes
    release_date: Optional[date] = None
    genres: List[MediaGenre] = field(default_factory=list)
    certifications: List[Certification] = field(default_factory=list)
    cast_members: List[CastMember] = field(default_factory=list)
    production_companies: List[str] = field(default_factory=list)
    ids: Dict[str, str] = field(default_factory=dict)  # namespace -> id
    artwork: List[Artwork] = field(default_factory=list)
    ratings: List[Rating] = field(default_factory=list)

    def set_plot(self, plot: str) -> None:
        """Store plot and derive the tagline (hard cut, not on word boundary)."""
        self.plot = plot
        self.tagline = plot[:TAGLINE_LENGTH]

    def add_genre(self, genre: Optional[MediaGenre]) -> None:
        if genre is not None:
            self.genres.append(genre)

    def add_certification(self, certification: Optional[Certification]) -> None:
        if certification is not None and certification not in self.certifications:
            self.certifications.append(certification)

    def get_cast_members(self, cast_type: CastType) -> List[CastMember]:
        """Return cast members of one type in page order."""
        return [m for m in self.cast_members if m.type == cast_type]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            'title': self.title,
            'original_title': self.original_title,
            'plot': self.plot,
            'tagline': self.tagline,
            'year': self.year,
            'runtime': self.runtime,
            'release_date': self.release_date.isoformat() if self.release_date else None,
            'genres': [g.value for g in self.genres],
            'certifications': [c.value for c in self.certifications],
            'cast_members': [m.to_dict() for m in self.cast_members],
            'production_companies': list(self.production_companies),
            'ids': dict(self.ids),
            'artwork': [a.to_dict() for a in self.artwork],
            'ratings': [r.to_dict() for r in self.ratings],
        }
