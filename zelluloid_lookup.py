#!/usr/bin/env python3
"""
zelluloid.de Lookup

Entry points for searching zelluloid.de and fetching German movie metadata.

Lookup Strategy:
    1. search_movies: site search, ranked by title similarity and year
       (web search fallback when the site search is down)
    2. get_movie_metadata: detail page + cast/crew page + links page
    3. lookup_movie: both, for the best ranked candidate

Usage:
    from zelluloid_lookup import search_movies, get_movie_metadata

    candidates = search_movies("Twelve Monkeys", year=1995)
    if candidates:
        movie = get_movie_metadata(result_url=candidates[0].url)
        print(movie.plot)
"""

import json
import logging
from typing import Optional, List

from cache import FileCache
from constants import PROVIDER_INFO, PROVIDER_VERSION, ZELLULOID_USE_WEB_FALLBACK
from fetcher import PageFetcher
from http_client import RateLimitedSession, create_session
from models import Candidate, MetadataRecord
from taxonomy import CastType
from web_search import WebSearcher
from zelluloid_scraper import ZelluloidSearcher, ZelluloidMetadataScraper

logger = logging.getLogger(__name__)


# =============================================================================
# Entry points
# =============================================================================

def search_movies(
    query: str,
    year: Optional[int] = None,
    imdb_id: Optional[str] = None,
    session: RateLimitedSession = None,
    cache: Optional[FileCache] = None,
    use_web_fallback: bool = ZELLULOID_USE_WEB_FALLBACK,
) -> List[Candidate]:
    """
    Search zelluloid.de for a movie.

    Args:
        query: Title to search for
        year: Release year (improves ranking)
        imdb_id: IMDB ID for an exact match
        session: Optional shared session (a private one is closed afterwards)
        cache: Optional page cache
        use_web_fallback: Fall back to web search if the site search fails

    Returns:
        Candidates, best first
    """
    owns_session = session is None
    session = session or create_session()

    try:
        searcher = ZelluloidSearcher(
            fetcher=PageFetcher(session=session, cache=cache),
            web_searcher=WebSearcher(session=session),
            use_web_fallback=use_web_fallback,
        )
        return searcher.search(query, year=year, imdb_id=imdb_id)
    finally:
        if owns_session:
            session.close()


def get_movie_metadata(
    zelluloid_id: Optional[str] = None,
    result_url: Optional[str] = None,
    session: RateLimitedSession = None,
    cache: Optional[FileCache] = None,
) -> MetadataRecord:
    """
    Fetch full metadata for one movie.

    Args:
        zelluloid_id: zelluloid.de movie id
        result_url: Candidate URL, used when no id is given
        session: Optional shared session
        cache: Optional page cache

    Returns:
        Assembled MetadataRecord

    Raises:
        MissingIdentifierError: If neither id nor a usable URL is given
        FetchError: If the detail page cannot be fetched
    """
    owns_session = session is None
    session = session or create_session()

    try:
        scraper = ZelluloidMetadataScraper(
            fetcher=PageFetcher(session=session, cache=cache),
            provider=PROVIDER_INFO,
        )
        return scraper.get_metadata(zelluloid_id=zelluloid_id, result_url=result_url)
    finally:
        if owns_session:
            session.close()


def lookup_movie(
    title: str,
    year: Optional[int] = None,
    imdb_id: Optional[str] = None,
    cache: Optional[FileCache] = None,
) -> Optional[MetadataRecord]:
    """
    Search for a movie and return metadata for the best candidate.

    Returns:
        MetadataRecord, or None if the search found nothing
    """
    logger.info(f"Looking up '{title}' ({year})")

    with create_session() as session:
        candidates = search_movies(title, year, imdb_id, session=session, cache=cache)
        if not candidates:
            logger.info(f"No zelluloid.de entry found for '{title}' ({year})")
            return None

        best = candidates[0]
        logger.info(f"Best match: {best.title} ({best.year}) [{best.id}] score={best.score:.2f}")
        return get_movie_metadata(best.id, best.url, session=session, cache=cache)


# =============================================================================
# CLI
# =============================================================================

def _print_candidates(candidates: List[Candidate]) -> None:
    if not candidates:
        print("\nNo results")
        return

    print(f"\n{len(candidates)} results:")
    for candidate in candidates:
        year = candidate.year or '????'
        print(f"  {candidate.score:5.2f}  [{candidate.id:>6}]  {candidate.title} ({year})")


def _print_record(md: MetadataRecord) -> None:
    directors = [m.name for m in md.get_cast_members(CastType.DIRECTOR)]
    actors = md.get_cast_members(CastType.ACTOR)

    print(f"\n{md.title}")
    print(f"  Original Title: {md.original_title or 'Unknown'}")
    print(f"  Year: {md.year or 'Unknown'}")
    print(f"  Runtime: {md.runtime} min" if md.runtime else "  Runtime: N/A")
    print(f"  Release: {md.release_date.strftime('%d.%m.%Y')}" if md.release_date else "  Release: N/A")
    print(f"  Genres: {', '.join(g.value for g in md.genres) if md.genres else 'Unknown'}")
    print(f"  Age Rating: {', '.join(c.value for c in md.certifications) or 'N/A'}")
    if md.ratings:
        rating = md.ratings[0]
        print(f"  Rating: {rating.value:g}/{rating.max_value}")
    else:
        print("  Rating: N/A")
    print(f"  Director: {', '.join(directors) or 'Unknown'}")
    print(f"  Cast ({len(actors)}): {', '.join(a.name for a in actors[:5])}"
          + (" ..." if len(actors) > 5 else ""))
    print(f"  Production: {', '.join(md.production_companies) or 'Unknown'}")
    print(f"  IDs: {', '.join(f'{k}={v}' for k, v in md.ids.items())}")
    if md.artwork:
        print(f"  Poster: {md.artwork[0].url}")
    print(f"\n  Plot ({len(md.plot)} chars):")
    print(f"  {md.plot[:500]}..." if len(md.plot) > 500 else f"  {md.plot}")


def main(argv: List[str] = None) -> int:
    """Command-line interface for testing."""
    import argparse
    from errors import ScraperError
    from logging_config import configure_logging

    parser = argparse.ArgumentParser(
        description="Search zelluloid.de for German movie metadata",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s "Twelve Monkeys" --year 1995
  %(prog)s "Die Bourne Identität"
  %(prog)s --id 886 --json
        """
    )
    parser.add_argument("title", nargs='?', help="Title to search")
    parser.add_argument("--year", "-y", type=int, help="Release year")
    parser.add_argument("--imdb", "-i", help="IMDB ID (e.g., tt0114746)")
    parser.add_argument("--id", dest="zelluloid_id", help="zelluloid.de movie id, skips the search")
    parser.add_argument("--json", action="store_true", help="Print JSON instead of text")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    parser.add_argument("--no-cache", action="store_true", help="Bypass the page cache")
    parser.add_argument("--version", action="version", version=f"%(prog)s {PROVIDER_VERSION}")

    args = parser.parse_args(argv)

    configure_logging(level="DEBUG" if args.verbose else "WARNING")

    if not args.title and not args.zelluloid_id:
        parser.print_help()
        return 1

    cache = None if args.no_cache else FileCache()

    try:
        if args.zelluloid_id:
            md = get_movie_metadata(zelluloid_id=args.zelluloid_id, cache=cache)
            if args.json:
                print(json.dumps(md.to_dict(), ensure_ascii=False, indent=2))
            else:
                _print_record(md)
            return 0

        candidates = search_movies(args.title, year=args.year, imdb_id=args.imdb, cache=cache)
    except ScraperError as e:
        print(f"Error: {e}")
        return 2

    if args.json:
        print(json.dumps([c.to_dict() for c in candidates], ensure_ascii=False, indent=2))
    else:
        print(f"Searching zelluloid.de for: {args.title}" + (f" ({args.year})" if args.year else ""))
        print("-" * 60)
        _print_candidates(candidates)

    return 0 if candidates else 1


if __name__ == "__main__":
    exit(main())
