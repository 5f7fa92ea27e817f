"""Process-wide construction of services from ``settings.LIFEPASS``.

Each builder runs once per process; handlers and signal receivers ask for
the shared instances instead of reaching for module-level globals.
"""

from functools import lru_cache

from django.conf import settings

from lifepass.clients.device_status import HttpDeviceStatusClient
from lifepass.clients.pricing import HttpPricingClient
from lifepass.clients.retry import RetryPolicy
from lifepass.services.cache_invalidation import CacheInvalidator
from lifepass.services.catalog_cache import CatalogCache, CatalogCacheConfig
from lifepass.services.device_allocator import DeviceAllocator
from lifepass.services.order_aggregator import OrderAggregator
from lifepass.services.order_service import OrderService
from lifepass.stores.django_store import (
    DjangoCatalogStore,
    DjangoDeviceStore,
    DjangoOrderStore,
    DjangoResortStore,
)


def _config() -> dict:
    return settings.LIFEPASS


@lru_cache(maxsize=1)
def get_invalidator() -> CacheInvalidator:
    return CacheInvalidator()


@lru_cache(maxsize=1)
def get_catalog_cache() -> CatalogCache:
    return CatalogCache(
        store=DjangoCatalogStore(),
        invalidator=get_invalidator(),
        config=CatalogCacheConfig.from_settings(_config().get("CATALOG_CACHE", {})),
    )


@lru_cache(maxsize=1)
def get_device_allocator() -> DeviceAllocator:
    config = _config()
    return DeviceAllocator(
        store=DjangoDeviceStore(),
        status_client=HttpDeviceStatusClient(
            base_url=config["DEVICE_API_URL"],
            api_key=config["API_KEY"],
            timeout=config.get("REQUEST_TIMEOUT", 30.0),
        ),
        minimum_battery=config.get("MINIMUM_BATTERY", 20),
    )


@lru_cache(maxsize=1)
def get_order_service() -> OrderService:
    config = _config()
    aggregator = OrderAggregator(
        client=HttpPricingClient(
            base_url=config["PRICING_API_URL"],
            api_key=config["API_KEY"],
            timeout=config.get("REQUEST_TIMEOUT", 30.0),
        ),
        retry_policy=RetryPolicy.from_settings(config.get("RETRY", {})),
        max_concurrency=config.get("MAX_CONCURRENCY", 4),
    )
    return OrderService(
        orders=DjangoOrderStore(),
        resorts=DjangoResortStore(),
        catalog=get_catalog_cache(),
        aggregator=aggregator,
        allocator=get_device_allocator(),
        invalidator=get_invalidator(),
    )
