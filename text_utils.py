"""
Text utilities for normalization, title matching and id handling.

Handles Unicode normalization, fuzzy title scoring, regex capture
helpers and validation of ids coming in from callers.
"""

import re
import difflib
import unicodedata
from typing import Optional


# =============================================================================
# Unicode Normalization
# =============================================================================

def normalize_unicode(text: str) -> str:
    """
    Normalize Unicode text for comparison.

    - NFKC normalization (compatibility decomposition + canonical composition)
    - Normalizes different dash types to simple hyphen
    - Normalizes typographic quotes

    Args:
        text: Input text to normalize

    Returns:
        Normalized text
    """
    if not text:
        return ""

    # NFKC also folds non-breaking spaces into plain spaces
    text = unicodedata.normalize('NFKC', text)

    dashes = '‐‑‒–—―−﹘﹣－'
    for dash in dashes:
        text = text.replace(dash, '-')

    text = text.replace('“', '"').replace('”', '"').replace('„', '"')
    text = text.replace('‘', "'").replace('’', "'")
    text = text.replace('«', '"').replace('»', '"')

    return text


def normalize_for_comparison(text: str) -> str:
    """
    Normalize text for fuzzy comparison.

    - Lowercase
    - German umlauts folded (ä -> ae, ß -> ss), other accents removed
    - Punctuation removed
    - Whitespace collapsed

    Args:
        text: Input text to normalize

    Returns:
        Normalized text suitable for comparison
    """
    if not text:
        return ""

    text = normalize_unicode(text).lower()

    for umlaut, folded in (('ä', 'ae'), ('ö', 'oe'), ('ü', 'ue'), ('ß', 'ss')):
        text = text.replace(umlaut, folded)

    # NFD decomposes, then we strip combining marks
    text = unicodedata.normalize('NFD', text)
    text = ''.join(c for c in text if unicodedata.category(c) != 'Mn')

    text = re.sub(r'[^\w\s]', ' ', text)
    text = ' '.join(text.split())

    return text


def remove_non_search_characters(text: str) -> str:
    """
    Strip characters that only add noise to a search term.

    Keeps letters (including umlauts), digits and single spaces.

    Args:
        text: Raw user query

    Returns:
        Cleaned query
    """
    if not text:
        return ""
    text = normalize_unicode(text)
    text = re.sub(r'[^\w\s\-]', ' ', text)
    return ' '.join(text.split())


def clean_text(text: str) -> str:
    """Replace non-breaking spaces and collapse whitespace."""
    if not text:
        return ""
    return ' '.join(text.replace('\xa0', ' ').split())


# =============================================================================
# Title Matching
# =============================================================================

def title_similarity(title1: str, title2: str) -> float:
    """
    Calculate similarity between normalized titles.

    Uses difflib's ratio on the normalized strings so partial title
    overlaps ("12 Monkeys" vs "Twelve Monkeys") still rank.

    Args:
        title1: First title
        title2: Second title

    Returns:
        Similarity score between 0.0 and 1.0
    """
    norm1 = normalize_for_comparison(title1)
    norm2 = normalize_for_comparison(title2)

    if not norm1 or not norm2:
        return 0.0
    if norm1 == norm2:
        return 1.0

    return difflib.SequenceMatcher(None, norm1, norm2).ratio()


# =============================================================================
# Regex Helpers
# =============================================================================

def substr(text: str, pattern: str, flags: int = 0) -> str:
    """
    Return the first capture group of pattern in text.

    Args:
        text: Text to search
        pattern: Regex with one capture group
        flags: Optional re flags

    Returns:
        Captured text, or "" if there is no match
    """
    if not text:
        return ""
    match = re.search(pattern, text, flags)
    if not match:
        return ""
    return match.group(1) or ""


def extract_year_from_text(text: str) -> Optional[int]:
    """
    Extract the first 4-digit run from text, e.g. "(1995)".

    Args:
        text: Text that may contain a year

    Returns:
        Extracted year or None
    """
    if not text:
        return None

    match = re.search(r'(\d{4})', text)
    if match:
        return int(match.group(1))

    return None


# =============================================================================
# Validation
# =============================================================================

ZELLULOID_ID_PATTERN = re.compile(r'^\d{1,9}$')
RESULT_URL_ID_PATTERN = re.compile(r'[?&]id=(\d+)')


def validate_zelluloid_id(zelluloid_id: str) -> bool:
    """
    Validate zelluloid.de movie id format (digits only).

    Args:
        zelluloid_id: Id to validate (e.g., "886")

    Returns:
        True if valid id format
    """
    if not zelluloid_id:
        return False
    return bool(ZELLULOID_ID_PATTERN.match(zelluloid_id.strip()))


def extract_id_from_url(url: str) -> Optional[str]:
    """
    Extract the movie id from a detail page URL.

    Args:
        url: URL like http://www.zelluloid.de/filme/index.php3?id=886

    Returns:
        Id string or None
    """
    if not url:
        return None
    match = RESULT_URL_ID_PATTERN.search(url)
    return match.group(1) if match else None


def validate_imdb_id(imdb_id: str) -> bool:
    """
    Validate IMDB ID format.

    Args:
        imdb_id: IMDB ID to validate (e.g., "tt0114746")

    Returns:
        True if valid IMDB ID format
    """
    if not imdb_id:
        return False

    return bool(re.match(r'^tt\d{7,8}$', imdb_id.lower()))
