#!/usr/bin/env python3
"""
zelluloid.de Metadata Provider

HTTP service exposing the zelluloid.de scraper to a media host: the host
registers the provider via its info document, then searches and fetches
metadata by zelluloid.de id.

Endpoints:
    GET  /                      provider info (id, name, description, icon, version)
    GET  /search?query=&year=   ranked candidates
    GET  /metadata/<id>         full metadata record
    GET  /metadata?url=         full metadata record for a candidate URL
    GET  /cache                 page cache statistics
    POST /cache/clear           drop all cached pages
    GET  /health                liveness
    GET  /health/ready          readiness (cache writable)

Environment Variables:
    PORT: Server port (default: 5200)
    LOG_LEVEL: Logging level (default: INFO)
    STRUCTURED_LOGGING: JSON log lines if "true"
    CACHE_DIR: Page cache directory (default: ./cache)
    ZELLULOID_CACHE_TTL: Page cache TTL in seconds (default: 7 days)
    ZELLULOID_USE_WEB_FALLBACK: Web search when the site search fails (default: true)
"""

import logging
import os
from pathlib import Path

from flask import Flask, request, jsonify

from cache import FileCache
from constants import (
    PROVIDER_INFO,
    PROVIDER_VERSION,
    DEFAULT_PAGE_CACHE_TTL,
    ZELLULOID_USE_WEB_FALLBACK,
)
from errors import FetchError, MissingIdentifierError
from logging_config import configure_logging, setup_flask_request_id
from text_utils import validate_imdb_id
from zelluloid_lookup import search_movies, get_movie_metadata

# =============================================================================
# Configuration
# =============================================================================

PORT = int(os.environ.get("PORT", 5200))
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
CACHE_DIR = os.environ.get("CACHE_DIR", "./cache")
STRUCTURED_LOGGING = os.environ.get("STRUCTURED_LOGGING", "").lower() == "true"

configure_logging(level=LOG_LEVEL, structured=STRUCTURED_LOGGING)
logger = logging.getLogger(__name__)

cache = FileCache(CACHE_DIR, ttl_seconds=DEFAULT_PAGE_CACHE_TTL)

app = Flask(__name__)
setup_flask_request_id(app)


# =============================================================================
# Provider Endpoints
# =============================================================================

@app.route('/', methods=['GET'])
def provider_root():
    """Provider registration document."""
    return jsonify(PROVIDER_INFO.to_dict())


@app.route('/search', methods=['GET'])
def search():
    """
    Search zelluloid.de.

    Usage:
        /search?query=Twelve+Monkeys
        /search?query=Twelve+Monkeys&year=1995
        /search?query=Twelve+Monkeys&imdb=tt0114746
    """
    query = request.args.get('query', '').strip()
    year = request.args.get('year', type=int)
    imdb_id = request.args.get('imdb') or None

    if not query:
        return jsonify({
            "error": "Missing 'query' parameter",
            "usage": "/search?query=Name&year=1995",
        }), 400

    if imdb_id and not validate_imdb_id(imdb_id):
        return jsonify({"error": f"Invalid IMDB id '{imdb_id}'"}), 400

    logger.info(f"Search: query='{query}', year={year}", extra={'query': query, 'year': year})

    # Site failures end in the web search fallback, never in an exception
    candidates = search_movies(
        query,
        year=year,
        imdb_id=imdb_id,
        cache=cache,
        use_web_fallback=ZELLULOID_USE_WEB_FALLBACK,
    )

    return jsonify({
        "provider": PROVIDER_INFO.id,
        "query": {"query": query, "year": year, "imdb": imdb_id},
        "results": [c.to_dict() for c in candidates],
    })


def _metadata_response(zelluloid_id: str = None, result_url: str = None):
    try:
        md = get_movie_metadata(zelluloid_id=zelluloid_id, result_url=result_url, cache=cache)
    except MissingIdentifierError as e:
        return jsonify({"error": str(e)}), 400
    except FetchError as e:
        logger.error(f"Metadata fetch failed: {e}", extra={'url': e.url, 'status_code': e.status_code})
        return jsonify({"error": str(e), "url": e.url}), 502

    return jsonify({
        "provider": PROVIDER_INFO.id,
        "metadata": md.to_dict(),
    })


@app.route('/metadata/<zelluloid_id>', methods=['GET'])
def metadata_by_id(zelluloid_id: str):
    """Full metadata for a zelluloid.de id, e.g. /metadata/886."""
    logger.info(f"Metadata: id={zelluloid_id}", extra={'zelluloid_id': zelluloid_id})
    return _metadata_response(zelluloid_id=zelluloid_id)


@app.route('/metadata', methods=['GET'])
def metadata_by_url():
    """Full metadata for a candidate URL, e.g. /metadata?url=...index.php3?id=886."""
    url = request.args.get('url', '')
    logger.info(f"Metadata: url={url}", extra={'url': url})
    return _metadata_response(result_url=url)


# =============================================================================
# Cache Endpoints
# =============================================================================

@app.route('/cache', methods=['GET'])
def cache_status():
    """
    View cache statistics.

    Usage:
        /cache           - statistics
        /cache?url=xxx   - whether a page is cached
    """
    url = request.args.get('url', '')

    if url:
        cached = cache.read(url)
        if cached:
            return jsonify({
                "url": url,
                "cached": True,
                "fetched_at": cached.fetched_at,
                "size": len(cached.body),
            })
        return jsonify({"url": url, "cached": False}), 404

    return jsonify({"stats": cache.stats(), "cache_dir": str(cache.cache_dir)})


@app.route('/cache/clear', methods=['POST'])
def cache_clear():
    """Clear all cached pages."""
    count = cache.clear()
    logger.info(f"Cleared {count} cache entries")
    return jsonify({"cleared": count})


# =============================================================================
# Health Check Endpoints
# =============================================================================

@app.route('/health', methods=['GET'])
def health_check():
    """Shallow health check - confirms app is running."""
    return jsonify({
        "status": "healthy",
        "version": PROVIDER_VERSION,
        "identifier": PROVIDER_INFO.id,
    })


@app.route('/health/ready', methods=['GET'])
def readiness_check():
    """Deep health check: cache directory writable."""
    checks = {}
    healthy = True

    try:
        test_file = Path(cache.cache_dir) / ".health_check"
        test_file.write_text("ok")
        test_file.unlink()
        checks["cache_writable"] = {"status": "ok"}
    except OSError as e:
        checks["cache_writable"] = {"status": "error", "message": str(e)}
        healthy = False

    checks["web_fallback"] = {"enabled": ZELLULOID_USE_WEB_FALLBACK}

    return jsonify({
        "status": "healthy" if healthy else "unhealthy",
        "version": PROVIDER_VERSION,
        "checks": checks,
        "cache_stats": cache.stats(),
    }), 200 if healthy else 503


# =============================================================================
# Main
# =============================================================================

if __name__ == "__main__":
    logger.info(f"Starting {PROVIDER_INFO.name} provider v{PROVIDER_VERSION} on port {PORT}")
    logger.info(f"Cache directory: {CACHE_DIR}")
    logger.info(f"Web search fallback: {'enabled' if ZELLULOID_USE_WEB_FALLBACK else 'disabled'}")
    logger.info(f"Search endpoint: http://localhost:{PORT}/search?query=TITLE&year=YEAR")
    app.run(host="0.0.0.0", port=PORT, debug=False)
