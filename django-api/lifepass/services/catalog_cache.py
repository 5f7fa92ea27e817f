"""Resort-scoped read-through cache of static catalog data.

An empty list from this cache means "unavailable or stale", not "the resort
sells nothing": store failures degrade to ``[]`` and are not cached.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import TypeVar

from django.db import DatabaseError

from lifepass.domain import ConsumerCategory, Product, SalesChannel, ValidityCategory
from lifepass.services.cache_invalidation import CacheInvalidator
from lifepass.stores.interfaces import CatalogStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CatalogEntity(Enum):
    PRODUCTS = "products"
    CONSUMER_CATEGORIES = "consumer_categories"
    VALIDITY_CATEGORIES = "validity_categories"
    SALES_CHANNELS = "sales_channels"


@dataclass(frozen=True)
class CatalogCacheConfig:
    ttl_seconds: int = 3600
    tags: tuple[str, ...] = ("catalog",)

    @classmethod
    def from_settings(cls, config: dict) -> "CatalogCacheConfig":
        return cls(
            ttl_seconds=config.get("TTL_SECONDS", cls.ttl_seconds),
            tags=tuple(config.get("TAGS", cls.tags)),
        )


class CatalogCache:
    """Read-through cache keyed by ``(entity, resort_id)``."""

    def __init__(
        self,
        store: CatalogStore,
        invalidator: CacheInvalidator,
        config: CatalogCacheConfig = CatalogCacheConfig(),
    ) -> None:
        self._store = store
        self._invalidator = invalidator
        self._config = config

    @property
    def config(self) -> CatalogCacheConfig:
        return self._config

    def get_products(self, resort_id: int) -> list[Product]:
        return self._read_through(CatalogEntity.PRODUCTS, resort_id, self._store.list_products)

    def get_consumer_categories(self, resort_id: int) -> list[ConsumerCategory]:
        return self._read_through(
            CatalogEntity.CONSUMER_CATEGORIES, resort_id, self._store.list_consumer_categories
        )

    def get_validity_categories(self, resort_id: int) -> list[ValidityCategory]:
        return self._read_through(
            CatalogEntity.VALIDITY_CATEGORIES, resort_id, self._store.list_validity_categories
        )

    def get_sales_channels(self, resort_id: int) -> list[SalesChannel]:
        return self._read_through(
            CatalogEntity.SALES_CHANNELS, resort_id, self._store.list_sales_channels
        )

    def reload_consumer_categories(self, resort_id: int) -> list[ConsumerCategory]:
        """Read categories straight from the store and refresh the cached copy.

        Raises:
            DatabaseError: If the store is unavailable.
        """
        return self._load(
            CatalogEntity.CONSUMER_CATEGORIES, resort_id, self._store.list_consumer_categories
        )

    def invalidate(self, entity: CatalogEntity | None = None, resort_id: int | None = None) -> None:
        """Drop cached entries for one entity of one resort, or wider.

        With no arguments every catalog entry is dropped.
        """
        if entity is None and resort_id is None:
            tags = list(self._config.tags)
        elif entity is None:
            tags = [f"catalog:{resort_id}"]
        elif resort_id is None:
            tags = [entity.value]
        else:
            tags = [f"{entity.value}:{resort_id}"]
        self._invalidator.invalidate(tags)

    @staticmethod
    def cache_key(entity: CatalogEntity, resort_id: int) -> str:
        return f"lifepass:catalog:{entity.value}:{resort_id}"

    def tags_for(self, entity: CatalogEntity, resort_id: int) -> list[str]:
        return [
            *self._config.tags,
            f"catalog:{resort_id}",
            entity.value,
            f"{entity.value}:{resort_id}",
        ]

    def _read_through(
        self, entity: CatalogEntity, resort_id: int, loader: Callable[[int], list[T]]
    ) -> list[T]:
        key = self.cache_key(entity, resort_id)
        cached = self._invalidator.cache.get(key)
        if cached is not None:
            return list(cached)

        try:
            return self._load(entity, resort_id, loader)
        except DatabaseError:
            logger.warning(
                "Catalog store unavailable for %s of resort %s, serving empty catalog",
                entity.value,
                resort_id,
                exc_info=True,
            )
            return []

    def _load(
        self, entity: CatalogEntity, resort_id: int, loader: Callable[[int], list[T]]
    ) -> list[T]:
        items = loader(resort_id)
        logger.debug("Caching %d %s for resort %s", len(items), entity.value, resort_id)
        self._invalidator.set(
            self.cache_key(entity, resort_id),
            items,
            self._config.ttl_seconds,
            self.tags_for(entity, resort_id),
        )
        return list(items)
