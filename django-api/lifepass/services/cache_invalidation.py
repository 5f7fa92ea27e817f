"""Tag-based invalidation on top of the Django cache framework.

Django's cache has no notion of tags, so every cached key is recorded in a
per-tag index entry. Invalidating a tag deletes the indexed keys and the
index itself, which makes repeated invalidation a no-op.
"""

import logging
from collections.abc import Iterable

from django.core.cache import BaseCache, cache as default_cache

logger = logging.getLogger(__name__)

TAG_INDEX_PREFIX = "lifepass:tag:"


class CacheInvalidator:
    def __init__(self, cache: BaseCache | None = None) -> None:
        self._cache = cache if cache is not None else default_cache

    @property
    def cache(self) -> BaseCache:
        return self._cache

    def set(self, key: str, value: object, timeout: int, tags: Iterable[str]) -> None:
        """Store ``value`` under ``key`` and register it with every tag."""
        self._cache.set(key, value, timeout)
        for tag in tags:
            index_key = TAG_INDEX_PREFIX + tag
            keys = set(self._cache.get(index_key) or ())
            keys.add(key)
            # the index outlives its entries; stale keys are harmless to delete
            self._cache.set(index_key, keys, None)

    def invalidate(self, tags: Iterable[str]) -> None:
        tags = list(tags)
        for tag in tags:
            index_key = TAG_INDEX_PREFIX + tag
            keys = self._cache.get(index_key) or set()
            if keys:
                self._cache.delete_many(list(keys))
            self._cache.delete(index_key)
        logger.info("Invalidated cache tags %s", tags)
