"""
In-memory caching layer for analysis results.
"""

import hashlib
import json
import logging
import time
from typing import Any, Callable, Dict, Iterable, Optional

logger = logging.getLogger(__name__)


class AnalysisCache:
    """
    In-memory cache with a TTL per category.

    Instances are independent; pass one to the pipeline (or build one per
    test) instead of sharing module state. Thread-safety is NOT guaranteed.
    """

    def __init__(self, ttls: Dict[str, float] = None, default_ttl: float = 300,
                 clock: Callable[[], float] = time.monotonic):
        """
        Initialize cache.

        Args:
            ttls: Time-to-live in seconds per category
            default_ttl: TTL for categories not listed in ttls
            clock: Time source, in seconds
        """
        self._cache: Dict[str, Dict[str, tuple]] = {}
        self.ttls = dict(ttls or {})
        self.default_ttl = default_ttl
        self._clock = clock

    def ttl_for(self, category: str) -> float:
        return self.ttls.get(category, self.default_ttl)

    def get(self, category: str, key: str) -> Optional[Any]:
        """
        Get value from cache.

        Returns:
            Cached value if present and not expired, None otherwise
        """
        entries = self._cache.get(category)
        if not entries or key not in entries:
            return None

        value, expiry = entries[key]

        if self._clock() >= expiry:
            del entries[key]
            return None

        return value

    def set(self, category: str, key: str, value: Any, ttl: Optional[float] = None):
        """Store a value; ttl overrides the category TTL. Expired entries of the category are dropped."""
        ttl = ttl if ttl is not None else self.ttl_for(category)
        self.sweep(category)
        self._cache.setdefault(category, {})[key] = (value, self._clock() + ttl)

    def sweep(self, category: Optional[str] = None) -> int:
        """
        Drop expired entries from one category, or from all of them.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        categories = [category] if category is not None else list(self._cache)
        removed = 0
        for name in categories:
            entries = self._cache.get(name, {})
            expired = [key for key, (_, expiry) in entries.items() if now >= expiry]
            for key in expired:
                del entries[key]
            removed += len(expired)
        if removed:
            logger.debug("Swept %d expired cache entries", removed)
        return removed

    def evict(self, category: Optional[str] = None, key: Optional[str] = None) -> int:
        """
        Remove entries: one key, a whole category, or everything.

        Returns:
            Number of entries removed
        """
        if category is None:
            removed = self.size()
            self._cache.clear()
            return removed

        entries = self._cache.get(category, {})
        if key is None:
            self._cache.pop(category, None)
            return len(entries)

        if key in entries:
            del entries[key]
            return 1
        return 0

    def size(self, category: Optional[str] = None) -> int:
        """Number of stored entries, expired ones included."""
        if category is not None:
            return len(self._cache.get(category, {}))
        return sum(len(entries) for entries in self._cache.values())


def fingerprint(rows: Iterable[Any], **params: Any) -> str:
    """
    Hash a row set and its parameters into a cache key.

    Rows may be pydantic models or plain dicts.
    """
    digest = hashlib.sha256()

    for row in rows:
        data = row.model_dump(mode='json') if hasattr(row, 'model_dump') else row
        digest.update(json.dumps(data, sort_keys=True, default=str).encode('utf-8'))
        digest.update(b'\n')

    digest.update(json.dumps(params, sort_keys=True, default=str).encode('utf-8'))
    return digest.hexdigest()
