"""
Result Cache

File-backed cache with per-entry TTL for orchestrator results. Keys are
md5 digests of the operation name and its JSON-serialised arguments, so
identical requests over identical snapshots share an entry.
"""

import hashlib
import json
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

import structlog
from diskcache import Cache

logger = structlog.get_logger(__name__)

_MISSING = object()


class ResultCache:
    """
    diskcache-backed result cache.

    Failures inside the cache are logged and treated as misses; a broken
    cache never fails the operation it was caching.
    """

    def __init__(self, cache_dir: Optional[str] = None, default_ttl: int = 900):
        """
        Initialize result cache.

        Args:
            cache_dir: Directory for cache storage (a temporary directory if None)
            default_ttl: Entry time to live in seconds
        """
        self._owns_directory = cache_dir is None
        if cache_dir is None:
            cache_dir = tempfile.mkdtemp(prefix="legato-cache-")
        self.cache_dir = Path(cache_dir)
        self.cache_dir.mkdir(parents=True, exist_ok=True)

        self.default_ttl = default_ttl
        self.cache = Cache(str(self.cache_dir))
        self.hits = 0
        self.misses = 0

        logger.info(
            "Result cache initialized",
            cache_dir=str(self.cache_dir),
            default_ttl=default_ttl
        )

    @staticmethod
    def generate_key(operation: str, *args, **kwargs) -> str:
        """Generate a cache key from an operation name and its arguments."""
        key_data = {
            "operation": operation,
            "args": args,
            "kwargs": sorted(kwargs.items())
        }
        key_str = json.dumps(key_data, sort_keys=True, default=str)
        return hashlib.md5(key_str.encode()).hexdigest()

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a value from the cache.

        Args:
            key: Cache key
            default: Returned when the key is absent or expired

        Returns:
            Cached value or default
        """
        try:
            value = self.cache.get(key, _MISSING)
        except Exception as e:
            logger.error("Cache get failed", key=key[:16] + "...", error=str(e))
            return default

        if value is _MISSING:
            self.misses += 1
            logger.debug("Cache miss", key=key[:16] + "...")
            return default

        self.hits += 1
        logger.debug("Cache hit", key=key[:16] + "...")
        return value

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """
        Set a value in the cache.

        Args:
            key: Cache key
            value: Value to cache (must be picklable)
            ttl: Time to live in seconds (default_ttl if None)

        Returns:
            True if successful
        """
        if ttl is None:
            ttl = self.default_ttl

        try:
            self.cache.set(key, value, expire=ttl)
        except Exception as e:
            logger.error("Cache set failed", key=key[:16] + "...", error=str(e))
            return False

        logger.debug("Cache set", key=key[:16] + "...", ttl=ttl)
        return True

    def clear(self) -> int:
        """Remove every entry and return how many were removed."""
        removed = self.cache.clear()
        logger.info("Result cache cleared", removed=removed)
        return removed

    def size(self) -> int:
        return len(self.cache)

    def stats(self) -> Dict[str, Any]:
        """Size, volume and hit counters."""
        return {
            "size": len(self.cache),
            "volume": self.cache.volume(),
            "directory": str(self.cache.directory),
            "hits": self.hits,
            "misses": self.misses,
        }

    def close(self) -> None:
        """Close the underlying cache; a temporary directory is emptied first."""
        if self._owns_directory:
            self.cache.clear()
        self.cache.close()
        logger.info("Result cache closed", cache_dir=str(self.cache_dir))
