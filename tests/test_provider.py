"""
Tests for the Flask provider service (zelluloid_provider.py)
"""

import os
import tempfile
from unittest.mock import patch

import pytest

os.environ.setdefault("CACHE_DIR", tempfile.mkdtemp(prefix="zelluloid-cache-"))

import zelluloid_provider
from cache import FileCache, PageCacheEntry
from errors import FetchError
from models import Candidate
from tests.conftest import FakeSession, search_url, search_page, result_row


@pytest.fixture
def site(twelve_monkeys_pages):
    pages = dict(twelve_monkeys_pages)
    pages[search_url("Twelve Monkeys")] = search_page("Twelve Monkeys", [
        result_row("3001", "Monkeybone", 2001),
        result_row("886", "Twelve Monkeys", 1995),
    ])
    return FakeSession(pages)


@pytest.fixture
def client(tmp_path, monkeypatch, site):
    monkeypatch.setattr(zelluloid_provider, "cache", FileCache(str(tmp_path)))
    zelluloid_provider.app.config["TESTING"] = True
    with patch("zelluloid_lookup.create_session", return_value=site):
        with zelluloid_provider.app.test_client() as client:
            yield client


class TestProviderInfo:

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        data = response.get_json()
        assert data["id"] == "zelluloid"
        assert data["name"] == "zelluloid.de"
        assert data["icon"] == "zelluloid_de.png"
        assert data["languages"] == ["de"]
        assert data["version"]

    def test_health(self, client):
        data = client.get("/health").get_json()
        assert data["status"] == "healthy"
        assert data["identifier"] == "zelluloid"

    def test_readiness(self, client):
        response = client.get("/health/ready")
        assert response.status_code == 200
        assert response.get_json()["checks"]["cache_writable"]["status"] == "ok"


class TestRequestId:

    def test_header_is_echoed(self, client):
        response = client.get("/health", headers={"X-Request-ID": "abc123"})
        assert response.headers["X-Request-ID"] == "abc123"

    def test_generated_when_missing(self, client):
        response = client.get("/health")
        assert len(response.headers["X-Request-ID"]) == 8


class TestSearchEndpoint:

    def test_search(self, client):
        response = client.get("/search?query=Twelve+Monkeys&year=1995")
        assert response.status_code == 200
        data = response.get_json()
        assert data["provider"] == "zelluloid"
        assert [r["id"] for r in data["results"]] == ["886", "3001"]
        assert data["results"][0]["year"] == 1995

    def test_missing_query(self, client):
        assert client.get("/search").status_code == 400
        assert client.get("/search?query=%20").status_code == 400

    def test_invalid_imdb_id(self, client):
        assert client.get("/search?query=Solaris&imdb=12345").status_code == 400

    def test_site_failure_is_empty_result(self, client):
        with patch.object(zelluloid_provider, "ZELLULOID_USE_WEB_FALLBACK", False):
            response = client.get("/search?query=Solaris")
        assert response.status_code == 200
        assert response.get_json()["results"] == []

    def test_arguments_passed_through(self, client):
        with patch.object(zelluloid_provider, "search_movies", return_value=[
            Candidate(id="886", title="Twelve Monkeys", year=1995, score=1.0),
        ]) as search:
            response = client.get("/search?query=Twelve+Monkeys&year=1995&imdb=tt0114746")
        assert response.status_code == 200
        args, kwargs = search.call_args
        assert args == ("Twelve Monkeys",)
        assert kwargs["year"] == 1995
        assert kwargs["imdb_id"] == "tt0114746"


class TestMetadataEndpoint:

    def test_by_id(self, client):
        response = client.get("/metadata/886")
        assert response.status_code == 200
        md = response.get_json()["metadata"]
        assert md["title"] == "Twelve Monkeys"
        assert md["ids"]["zelluloid"] == "886"
        assert md["ids"]["imdb"] == "tt0114746"
        assert len([m for m in md["cast_members"] if m["type"] == "actor"]) == 22

    def test_by_url(self, client):
        response = client.get("/metadata", query_string={"url": "http://www.zelluloid.de/filme/index.php3?id=886"})
        assert response.status_code == 200
        assert response.get_json()["metadata"]["year"] == 1995

    def test_missing_identifier(self, client):
        assert client.get("/metadata").status_code == 400
        assert client.get("/metadata?url=http://www.zelluloid.de/").status_code == 400
        assert client.get("/metadata/abc").status_code == 400

    def test_fetch_failure(self, client):
        response = client.get("/metadata/12345")
        assert response.status_code == 502
        assert response.get_json()["url"].endswith("index.php3?id=12345")

    def test_fetch_error_from_lookup(self, client):
        error = FetchError("http://www.zelluloid.de/filme/index.php3?id=1", "timed out")
        with patch.object(zelluloid_provider, "get_movie_metadata", side_effect=error):
            response = client.get("/metadata/1")
        assert response.status_code == 502
        assert "timed out" in response.get_json()["error"]


class TestCacheEndpoints:

    def test_pages_are_cached(self, client, site):
        client.get("/metadata/886")
        client.get("/metadata/886")
        assert site.requested.count("http://www.zelluloid.de/filme/index.php3?id=886") == 1

    def test_cache_stats_and_clear(self, client):
        url = "http://www.zelluloid.de/filme/index.php3?id=886"
        zelluloid_provider.cache.write(url, PageCacheEntry.from_bytes(url, b"<html></html>"))

        data = client.get("/cache").get_json()
        assert data["stats"]["total_entries"] == 1

        entry = client.get("/cache", query_string={"url": url})
        assert entry.status_code == 200
        assert entry.get_json()["size"] == len(b"<html></html>")

        assert client.post("/cache/clear").get_json() == {"cleared": 1}
        assert client.get("/cache", query_string={"url": url}).status_code == 404
