"""
On-disk page cache.

Raw zelluloid.de responses are stored per URL, so repeated lookups of the
same movie (search, then the three movie pages) are served locally until
the TTL runs out.

Layout: <cache_dir>/<sha256[:2]>/<sha256[:32]>.json, one JSON document per
page. Writes go through a temp file and rename; readers take a shared
fcntl lock where available. The least recently read tenth is evicted when
the entry count or total size exceeds its limit.
"""

import base64
import binascii
import hashlib
import json
import logging
import os
import threading
from contextlib import contextmanager
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Dict, Any, Iterator, List

from constants import (
    DEFAULT_PAGE_CACHE_TTL,
    MAX_CACHE_SIZE_MB,
    MAX_CACHE_ENTRIES,
)

logger = logging.getLogger(__name__)

try:
    import fcntl
except ImportError:  # Windows
    fcntl = None


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class PageCacheEntry:
    """
    Cached copy of one fetched page.

    The body is kept base64-encoded so ISO-8859-1 bytes survive JSON.
    """
    url: str
    content: str
    status_code: int = 200
    fetched_at: str = ""

    @classmethod
    def from_bytes(cls, url: str, body: bytes, status_code: int = 200) -> "PageCacheEntry":
        return cls(url=url, content=base64.b64encode(body).decode("ascii"), status_code=status_code)

    @property
    def body(self) -> bytes:
        return base64.b64decode(self.content, validate=True)

    def age_seconds(self) -> Optional[float]:
        """Seconds since the page was fetched, None if unknown."""
        try:
            fetched = datetime.fromisoformat(self.fetched_at.replace("Z", "+00:00"))
        except (ValueError, AttributeError):
            return None
        if fetched.tzinfo is None:
            fetched = fetched.replace(tzinfo=timezone.utc)
        return (datetime.now(timezone.utc) - fetched).total_seconds()

    def is_expired(self, ttl_seconds: int = DEFAULT_PAGE_CACHE_TTL) -> bool:
        age = self.age_seconds()
        return age is None or age > ttl_seconds

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PageCacheEntry":
        return cls(
            url=data["url"],
            content=data["content"],
            status_code=data.get("status_code", 200),
            fetched_at=data.get("fetched_at", ""),
        )


@contextmanager
def _file_lock(handle, exclusive: bool = False):
    """Best-effort advisory lock; proceeds unlocked if the lock is busy."""
    locked = False
    if fcntl is not None:
        try:
            fcntl.flock(handle.fileno(), (fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH) | fcntl.LOCK_NB)
            locked = True
        except OSError:
            pass
    try:
        yield handle
    finally:
        if locked:
            fcntl.flock(handle.fileno(), fcntl.LOCK_UN)


class FileCache:
    """
    Page cache keyed by URL.

    Usage:
        cache = FileCache("./cache")
        entry = cache.read(url)
        if entry is None:
            cache.write(url, PageCacheEntry.from_bytes(url, body))
    """

    def __init__(self, cache_dir: str = None, ttl_seconds: int = DEFAULT_PAGE_CACHE_TTL):
        """
        Args:
            cache_dir: Directory for cache files. Defaults to CACHE_DIR env var or ./cache
            ttl_seconds: Maximum age of a cached page
        """
        self._cache_dir = Path(cache_dir or os.environ.get("CACHE_DIR", "./cache"))
        self._cache_dir.mkdir(parents=True, exist_ok=True)
        self.ttl_seconds = ttl_seconds
        self._lock = threading.Lock()

    @property
    def cache_dir(self) -> Path:
        return self._cache_dir

    def _path_for(self, url: str) -> Path:
        digest = hashlib.sha256(url.encode("utf-8")).hexdigest()
        return self._cache_dir / digest[:2] / f"{digest[:32]}.json"

    def _entry_files(self) -> Iterator[Path]:
        for shard in self._cache_dir.iterdir():
            if shard.is_dir() and len(shard.name) == 2:
                yield from shard.glob("*.json")

    @staticmethod
    def _remove(path: Path) -> None:
        try:
            path.unlink()
        except FileNotFoundError:
            pass

    def read(self, url: str) -> Optional[PageCacheEntry]:
        """
        Return the cached page, or None if missing, expired or unreadable.

        Expired and corrupt files are removed.
        """
        path = self._path_for(url)
        try:
            with open(path, "r", encoding="utf-8") as f, _file_lock(f):
                data = json.load(f)
        except FileNotFoundError:
            return None
        except json.JSONDecodeError as e:
            logger.warning(f"Corrupt cache file for {url}: {e}")
            self._remove(path)
            return None
        except OSError as e:
            logger.warning(f"Cache read error for {url}: {e}")
            return None

        try:
            entry = PageCacheEntry.from_dict(data)
            entry.body
        except (KeyError, TypeError, binascii.Error) as e:
            logger.warning(f"Invalid cache entry for {url}: {e}")
            self._remove(path)
            return None

        if entry.is_expired(self.ttl_seconds):
            logger.debug(f"Cache entry expired: {url}")
            self._remove(path)
            return None

        # mtime doubles as the last-read time for eviction
        try:
            path.touch()
        except OSError:
            pass
        return entry

    def write(self, url: str, entry: PageCacheEntry) -> bool:
        """
        Store a page atomically.

        Returns:
            True if the page was written
        """
        self._evict_if_full()

        path = self._path_for(url)
        temp_path = path.with_suffix(".tmp")
        if not entry.fetched_at:
            entry.fetched_at = _utcnow()

        try:
            path.parent.mkdir(exist_ok=True)
            with open(temp_path, "w", encoding="utf-8") as f, _file_lock(f, exclusive=True):
                json.dump(entry.to_dict(), f)
            temp_path.replace(path)
            return True
        except OSError as e:
            logger.warning(f"Cache write error for {url}: {e}")
            self._remove(temp_path)
            return False

    def _evict_if_full(self) -> None:
        with self._lock:
            try:
                files = [(p, p.stat()) for p in self._entry_files()]
            except OSError as e:
                logger.warning(f"Cache scan failed: {e}")
                return

            total_size = sum(st.st_size for _, st in files)
            if len(files) < MAX_CACHE_ENTRIES and total_size < MAX_CACHE_SIZE_MB * 1024 * 1024:
                return

            files.sort(key=lambda item: item[1].st_mtime)
            victims = files[:max(1, len(files) // 10)]
            for path, _ in victims:
                self._remove(path)

        logger.info(f"Evicted {len(victims)} cached pages")

    def delete(self, url: str) -> bool:
        """Remove one page. Returns True if it was cached."""
        path = self._path_for(url)
        if not path.exists():
            return False
        self._remove(path)
        return True

    def clear(self) -> int:
        """Remove every cached page. Returns the number of files removed."""
        removed = 0
        for path in list(self._entry_files()):
            self._remove(path)
            removed += 1
        return removed

    def _load_entries(self) -> List[PageCacheEntry]:
        entries = []
        for path in self._entry_files():
            try:
                entries.append(PageCacheEntry.from_dict(json.loads(path.read_text(encoding="utf-8"))))
            except (OSError, ValueError, KeyError):
                continue
        return entries

    def stats(self) -> Dict[str, Any]:
        """Entry count, expired count and size of the cache."""
        files = list(self._entry_files())
        total_size = sum(p.stat().st_size for p in files if p.exists())
        expired = sum(1 for e in self._load_entries() if e.is_expired(self.ttl_seconds))
        return {
            "total_entries": len(files),
            "expired_entries": expired,
            "total_size_mb": round(total_size / 1024 / 1024, 2),
            "ttl_seconds": self.ttl_seconds,
            "max_entries": MAX_CACHE_ENTRIES,
            "max_size_mb": MAX_CACHE_SIZE_MB,
        }
