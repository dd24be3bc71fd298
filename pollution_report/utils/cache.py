"""Caching utilities with per-entry TTL support.

Every piece of shared state (auth session, rate window, fetched pages,
Wikipedia descriptors and the final report) lives in one of these stores.
"""

import hashlib
import os
import pickle
import tempfile
import time
from pathlib import Path
from typing import Any, Callable, Optional
from cachetools import TLRUCache

from pollution_report.config import settings
from pollution_report.utils.logger import setup_logger

logger = setup_logger(__name__)


class BaseCache:
    """Key-value store with TTL, shared by every component of a cycle."""

    default_ttl: Optional[float] = None

    def get(self, key: str) -> Optional[Any]:
        raise NotImplementedError

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def fetch(self, key: str, compute: Callable[[], Any], ttl: Optional[float] = None) -> Any:
        """
        Return the cached value for key, computing and storing it on a miss.

        A computed value of None is returned but not stored, so the next
        call tries again.
        """
        value = self.get(key)
        if value is not None:
            logger.debug(f"Cache hit for {key}")
            return value

        value = compute()
        if value is not None:
            self.set(key, value, ttl=ttl)
        return value


class FileCache(BaseCache):
    """File-based cache with TTL, shareable between processes on one host."""

    def __init__(self, cache_dir: str = None, ttl_seconds: int = None):
        """Initialize file cache."""
        self.cache_dir = Path(cache_dir or settings.cache_dir)
        self.default_ttl = ttl_seconds or settings.raw_cache_ttl_seconds

    def _get_cache_path(self, key: str) -> Path:
        """Get cache file path for a key."""
        # Keys carry free-text city names; hash them to a fixed-length file name
        digest = hashlib.md5(key.encode("utf-8")).hexdigest()
        return self.cache_dir / f"{digest}.cache"

    def get(self, key: str) -> Optional[Any]:
        """Get value from cache if not expired."""
        cache_path = self._get_cache_path(key)

        try:
            if not cache_path.exists():
                return None

            with open(cache_path, "rb") as f:
                expires_at, value = pickle.load(f)

            if time.time() >= expires_at:
                cache_path.unlink(missing_ok=True)
                return None

            return value
        except Exception as e:
            logger.warning(f"Error reading cache for {key}: {e}")
            return None

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Store value in cache with its expiry time."""
        cache_path = self._get_cache_path(key)
        expires_at = time.time() + (ttl or self.default_ttl)
        tmp_path = None

        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.cache_dir, suffix=".tmp")
            with os.fdopen(fd, "wb") as f:
                pickle.dump((expires_at, value), f)
            # Readers in other processes never see a half-written entry
            os.replace(tmp_path, cache_path)
        except Exception as e:
            logger.warning(f"Error writing cache for {key}: {e}")
            if tmp_path is not None:
                Path(tmp_path).unlink(missing_ok=True)

    def delete(self, key: str) -> None:
        """Remove value from cache."""
        try:
            self._get_cache_path(key).unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Error deleting cache for {key}: {e}")


class MemoryCache(BaseCache):
    """In-memory cache with per-entry TTL."""

    def __init__(
        self,
        maxsize: int = 1000,
        ttl_seconds: int = None,
        timer: Callable[[], float] = time.monotonic,
    ):
        """Initialize memory cache."""
        self.default_ttl = ttl_seconds or settings.raw_cache_ttl_seconds
        self.cache = TLRUCache(maxsize=maxsize, ttu=self._time_to_use, timer=timer)

    @staticmethod
    def _time_to_use(key: str, entry: tuple, now: float) -> float:
        ttl, _ = entry
        return now + ttl

    def get(self, key: str) -> Optional[Any]:
        """Get value from cache."""
        entry = self.cache.get(key)
        if entry is None:
            return None
        return entry[1]

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Store value in cache."""
        self.cache[key] = (ttl or self.default_ttl, value)

    def delete(self, key: str) -> None:
        """Remove value from cache."""
        self.cache.pop(key, None)


def create_cache(backend: str = None) -> BaseCache:
    """Build the store selected by the cache_backend setting."""
    backend = backend or settings.cache_backend
    if backend == "memory":
        return MemoryCache()
    if backend == "file":
        return FileCache()
    raise ValueError(f"Unknown cache backend: {backend}")
