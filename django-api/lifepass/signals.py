"""Django signals for cache invalidation.

Writes to catalog rows drop the resort's cached catalog entity; writes to
orders, kiosks and resorts publish their tags.
"""

from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from lifepass.dependencies import get_catalog_cache, get_invalidator
from lifepass.models import (
    ConsumerCategory,
    Kiosk,
    Order,
    Product,
    Resort,
    SalesChannel,
    ValidityCategory,
)
from lifepass.services.catalog_cache import CatalogEntity
from lifepass.services.order_service import order_tags

CATALOG_ENTITIES = {
    Product: CatalogEntity.PRODUCTS,
    ConsumerCategory: CatalogEntity.CONSUMER_CATEGORIES,
    ValidityCategory: CatalogEntity.VALIDITY_CATEGORIES,
    SalesChannel: CatalogEntity.SALES_CHANNELS,
}


@receiver([post_save, post_delete], sender=Product)
@receiver([post_save, post_delete], sender=ConsumerCategory)
@receiver([post_save, post_delete], sender=ValidityCategory)
@receiver([post_save, post_delete], sender=SalesChannel)
def invalidate_catalog_cache(sender, instance, **kwargs):
    """Invalidate the resort's cached entity when a catalog row changes."""
    get_catalog_cache().invalidate(CATALOG_ENTITIES[sender], instance.resort_id)


@receiver([post_save, post_delete], sender=Order)
def invalidate_order_cache(sender, instance, **kwargs):
    get_invalidator().invalidate(order_tags(instance.resort_id))


@receiver([post_save, post_delete], sender=Kiosk)
def invalidate_kiosk_cache(sender, instance, **kwargs):
    get_invalidator().invalidate(["kiosks", f"kiosks:{instance.resort_id}"])


@receiver([post_save, post_delete], sender=Resort)
def invalidate_resort_cache(sender, instance, **kwargs):
    get_invalidator().invalidate(["resorts", f"catalog:{instance.pk}"])
