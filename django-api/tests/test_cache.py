"""Tests for cache behavior.

Run with: pytest tests/test_cache.py -v
"""

import pytest
from django.core.cache import cache
from django.db import DatabaseError

from lifepass import models
from lifepass.dependencies import get_catalog_cache
from lifepass.services.cache_invalidation import CacheInvalidator
from lifepass.services.catalog_cache import CatalogCache, CatalogCacheConfig, CatalogEntity
from lifepass.stores.django_store import DjangoCatalogStore


class FlakyCatalogStore(DjangoCatalogStore):
    def __init__(self, failures=1):
        self.failures = failures
        self.calls = 0

    def list_products(self, resort_id):
        self.calls += 1
        if self.calls <= self.failures:
            raise DatabaseError("connection reset")
        return super().list_products(resort_id)


class TestCacheInvalidator:
    def test_invalidate_drops_tagged_keys_only(self):
        invalidator = CacheInvalidator()
        invalidator.set("a", 1, 60, ["orders"])
        invalidator.set("b", 2, 60, ["catalog"])

        invalidator.invalidate(["orders"])

        assert cache.get("a") is None
        assert cache.get("b") == 2

    def test_invalidating_twice_equals_once(self):
        invalidator = CacheInvalidator()
        invalidator.set("orders:list", [1, 2], 60, ["orders"])
        invalidator.set("catalog:list", [3], 60, ["catalog"])

        invalidator.invalidate(["orders"])
        after_once = (cache.get("orders:list"), cache.get("catalog:list"))
        invalidator.invalidate(["orders"])
        after_twice = (cache.get("orders:list"), cache.get("catalog:list"))

        assert after_once == after_twice == (None, [3])

    def test_unknown_tag_is_a_no_op(self):
        CacheInvalidator().invalidate(["never-used"])


@pytest.mark.django_db
class TestCatalogCache:
    """Tests for the resort-scoped catalog cache."""

    def test_stale_until_invalidated(self, resort, catalog_rows, catalog_cache):
        assert {p.id for p in catalog_cache.get_products(resort.pk) if p.active} == {
            "day-pass",
            "half-day",
        }
        # queryset.update bypasses the save signals
        models.Product.objects.filter(pk="half-day").update(active=False)

        stale = catalog_cache.get_products(resort.pk)
        assert all(p.active for p in stale)

        catalog_cache.invalidate(CatalogEntity.PRODUCTS, resort.pk)

        fresh = {p.id: p.active for p in catalog_cache.get_products(resort.pk)}
        assert fresh == {"day-pass": True, "half-day": False}

    def test_save_signal_invalidates(self, resort, catalog_rows):
        catalog = get_catalog_cache()
        assert len(catalog.get_products(resort.pk)) == 2

        product = models.Product.objects.get(pk="half-day")
        product.active = False
        product.save()

        assert {p.id: p.active for p in catalog.get_products(resort.pk)}["half-day"] is False

    def test_delete_signal_invalidates(self, resort, catalog_rows):
        catalog = get_catalog_cache()
        assert len(catalog.get_consumer_categories(resort.pk)) == 2

        models.ConsumerCategory.objects.get(pk="child").delete()

        assert [c.id for c in catalog.get_consumer_categories(resort.pk)] == ["adult"]

    def test_other_resorts_stay_cached(self, resort, other_resort, catalog_rows, catalog_cache):
        catalog_cache.get_products(resort.pk)
        catalog_cache.get_products(other_resort.pk)

        catalog_cache.invalidate(CatalogEntity.PRODUCTS, other_resort.pk)

        assert cache.get(CatalogCache.cache_key(CatalogEntity.PRODUCTS, resort.pk)) is not None
        assert cache.get(CatalogCache.cache_key(CatalogEntity.PRODUCTS, other_resort.pk)) is None

    def test_invalidate_everything(self, resort, catalog_rows, catalog_cache):
        catalog_cache.get_products(resort.pk)
        catalog_cache.get_validity_categories(resort.pk)

        catalog_cache.invalidate()

        assert cache.get(CatalogCache.cache_key(CatalogEntity.PRODUCTS, resort.pk)) is None
        assert cache.get(CatalogCache.cache_key(CatalogEntity.VALIDITY_CATEGORIES, resort.pk)) is None

    def test_store_failure_serves_empty_and_is_not_cached(self, resort, catalog_rows, invalidator):
        store = FlakyCatalogStore(failures=1)
        catalog = CatalogCache(store=store, invalidator=invalidator)

        assert catalog.get_products(resort.pk) == []
        assert len(catalog.get_products(resort.pk)) == 2
        assert store.calls == 2

    def test_config_from_settings(self):
        config = CatalogCacheConfig.from_settings({"TTL_SECONDS": 60, "TAGS": ["catalog", "static"]})
        assert config == CatalogCacheConfig(ttl_seconds=60, tags=("catalog", "static"))

    def test_sales_channels_parsed(self, resort, catalog_cache):
        models.SalesChannel.objects.create(
            resort=resort,
            name="Web shop",
            type="web",
            active_product_ids=["day-pass"],
            lifepass_price={"amountNet": "5", "amountGross": "5", "currencyCode": "CHF"},
            insurance_price={"amountNet": "3", "amountGross": "3", "currencyCode": "CHF"},
        )

        (channel,) = catalog_cache.get_sales_channels(resort.pk)

        assert channel.active_product_ids == ("day-pass",)
        assert channel.lifepass_price.currency_code == "CHF"
