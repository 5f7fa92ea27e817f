"""Pytest configuration and shared fixtures."""

import pytest
from rest_framework.test import APIClient

from lifepass import models
from lifepass.clients.retry import RetryPolicy
from lifepass.services.cache_invalidation import CacheInvalidator
from lifepass.services.catalog_cache import CatalogCache
from lifepass.services.device_allocator import DeviceAllocator
from lifepass.services.order_aggregator import OrderAggregator
from lifepass.services.order_service import OrderService
from lifepass.stores.django_store import (
    DjangoCatalogStore,
    DjangoDeviceStore,
    DjangoOrderStore,
    DjangoResortStore,
)
from tests.fakes import FakeDeviceStatusClient, FakePricingClient, no_sleep, price_json


@pytest.fixture
def api_client() -> APIClient:
    return APIClient()


@pytest.fixture(autouse=True)
def clear_cache():
    from django.core.cache import cache
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def resort(db) -> models.Resort:
    return models.Resort.objects.create(name="Zermatt", currency_code="CHF")


@pytest.fixture
def other_resort(db) -> models.Resort:
    return models.Resort.objects.create(name="Verbier", currency_code="CHF")


@pytest.fixture
def catalog_rows(resort):
    """Products and categories of one resort. The adult category rents lifepasses."""
    models.ConsumerCategory.objects.create(
        id="adult",
        resort=resort,
        title_translations={"en": "Adult", "de": "Erwachsene"},
        age_min=20,
        age_max=64,
        lifepass_rental_price_per_day=price_json("5"),
        insurance_price_per_day=price_json("3", "0.24"),
    )
    models.ConsumerCategory.objects.create(
        id="child",
        resort=resort,
        title_translations={"en": "Child"},
        age_min=6,
        age_max=15,
    )
    models.ValidityCategory.objects.create(
        id="1d",
        resort=resort,
        unit_translations={"en": "day"},
        validity_category_data={"id": "1d", "validityValue": 1, "validityUnit": "DAY"},
    )
    for product_id in ("day-pass", "half-day"):
        models.Product.objects.create(
            id=product_id,
            resort=resort,
            active=True,
            title_translations={"en": product_id},
            product_data={
                "id": product_id,
                "consumerCategoryIds": ["adult", "child"],
                "validityCategoryId": "1d",
            },
        )


@pytest.fixture
def pricing_client() -> FakePricingClient:
    return FakePricingClient()


@pytest.fixture
def device_status_client() -> FakeDeviceStatusClient:
    return FakeDeviceStatusClient()


@pytest.fixture
def invalidator() -> CacheInvalidator:
    return CacheInvalidator()


@pytest.fixture
def catalog_cache(invalidator) -> CatalogCache:
    return CatalogCache(store=DjangoCatalogStore(), invalidator=invalidator)


@pytest.fixture
def allocator(device_status_client) -> DeviceAllocator:
    return DeviceAllocator(store=DjangoDeviceStore(), status_client=device_status_client)


@pytest.fixture
def aggregator(pricing_client) -> OrderAggregator:
    return OrderAggregator(
        client=pricing_client,
        retry_policy=RetryPolicy(max_attempts=3, backoff_base=0.0),
        max_concurrency=4,
        sleep=no_sleep,
    )


@pytest.fixture
def order_service(aggregator, allocator, catalog_cache, invalidator) -> OrderService:
    return OrderService(
        orders=DjangoOrderStore(),
        resorts=DjangoResortStore(),
        catalog=catalog_cache,
        aggregator=aggregator,
        allocator=allocator,
        invalidator=invalidator,
    )


@pytest.fixture
def parked_device(resort):
    """Factory for a device sitting in the resort, optionally in a kiosk slot."""

    def create(serial, kiosk=None, slot_number=None, status=models.DeviceSlot.Status.EMPTY):
        device = models.Device.objects.create(
            serial=serial, chip_id=f"chip-{serial}", luhn="7", hex=serial.encode().hex()
        )
        models.DeviceSlot.objects.create(
            resort=resort, kiosk=kiosk, slot_number=slot_number, device=device, status=status
        )
        return device

    return create


@pytest.fixture
def kiosk(resort) -> models.Kiosk:
    return models.Kiosk.objects.create(
        id="K1", resort=resort, name="Valley station", type="dispenser", location={"lat": 46.0}
    )
