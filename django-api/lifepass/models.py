"""Django ORM models (persistence layer).

These models handle database concerns. Domain logic lives in domain/models.py.
"""

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import F, Q


class Resort(models.Model):
    """Persistence model for resorts (tenants)."""

    name = models.CharField(max_length=255, unique=True)
    currency_code = models.CharField(max_length=3, default="CHF")
    config = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class Product(models.Model):
    """Persistence model for products. ``product_data`` is the authority payload."""

    id = models.CharField(primary_key=True, max_length=64)
    resort = models.ForeignKey(Resort, on_delete=models.CASCADE, related_name="products")
    active = models.BooleanField(default=False)
    title_translations = models.JSONField(default=dict, blank=True)
    description_translations = models.JSONField(default=dict, blank=True)
    product_data = models.JSONField()
    additional_info = models.JSONField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=["resort", "active"]),
        ]

    def __str__(self) -> str:
        return self.title_translations.get("en") or self.id


class ConsumerCategory(models.Model):
    """Persistence model for consumer categories and their per-day prices."""

    id = models.CharField(primary_key=True, max_length=64)
    resort = models.ForeignKey(
        Resort, on_delete=models.CASCADE, related_name="consumer_categories"
    )
    title_translations = models.JSONField(default=dict, blank=True)
    description_translations = models.JSONField(default=dict, blank=True)
    age_min = models.PositiveIntegerField(null=True, blank=True)
    age_max = models.PositiveIntegerField(null=True, blank=True)
    consumer_category_data = models.JSONField(default=dict)
    lifepass_rental_price_per_day = models.JSONField(null=True, blank=True)
    insurance_price_per_day = models.JSONField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = "consumer categories"
        indexes = [
            models.Index(fields=["resort"]),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(age_min__lte=F("age_max"))
                | Q(age_min__isnull=True)
                | Q(age_max__isnull=True),
                name="consumer_category_age_range_ordered",
            ),
        ]

    def __str__(self) -> str:
        return self.title_translations.get("en") or self.id

    def clean(self) -> None:
        if self.age_min is not None and self.age_max is not None and self.age_min > self.age_max:
            raise ValidationError({"age_max": "Maximum age cannot be below minimum age."})


class ValidityCategory(models.Model):
    """Persistence model for validity categories."""

    id = models.CharField(primary_key=True, max_length=64)
    resort = models.ForeignKey(
        Resort, on_delete=models.CASCADE, related_name="validity_categories"
    )
    unit_translations = models.JSONField(default=dict, blank=True)
    validity_category_data = models.JSONField()
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = "validity categories"

    def __str__(self) -> str:
        return self.id


class SalesChannel(models.Model):
    """Persistence model for sales channels (web shop or kiosk)."""

    class ChannelType(models.TextChoices):
        WEB = "web"
        KIOSK = "kiosk"

    resort = models.ForeignKey(Resort, on_delete=models.CASCADE, related_name="sales_channels")
    name = models.CharField(max_length=255)
    type = models.CharField(max_length=10, choices=ChannelType.choices)
    active_product_ids = models.JSONField(default=list, blank=True)
    active_consumer_category_ids = models.JSONField(default=list, blank=True)
    lifepass_price = models.JSONField()
    insurance_price = models.JSONField()
    depot_tickets = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"{self.name} ({self.type})"


class Device(models.Model):
    """Persistence model for lifepass devices."""

    serial = models.CharField(max_length=64, unique=True)
    chip_id = models.CharField(max_length=64, db_index=True)
    luhn = models.CharField(max_length=16)
    hex = models.CharField(max_length=64)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return self.serial


class Kiosk(models.Model):
    """Persistence model for kiosks. Slot occupancy is not stored here."""

    id = models.CharField(primary_key=True, max_length=64)
    resort = models.ForeignKey(Resort, on_delete=models.CASCADE, related_name="kiosks")
    name = models.CharField(max_length=255)
    type = models.CharField(max_length=50)
    kiosk_content_ids = models.JSONField(default=list, blank=True)
    location = models.JSONField(default=dict)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return self.name


class Order(models.Model):
    """Persistence model for orders. Orders are never deleted."""

    class Status(models.TextChoices):
        DRAFT = "draft"
        PRICED = "priced"
        FULFILLED = "fulfilled"
        PARTIALLY_FAILED = "partially_failed"

    resort = models.ForeignKey(Resort, on_delete=models.PROTECT, related_name="orders")
    status = models.CharField(max_length=30, choices=Status.choices, default=Status.DRAFT)
    start_date = models.DateField()
    end_date = models.DateField(null=True, blank=True)
    lines = models.JSONField(default=list)
    order_price = models.JSONField(null=True, blank=True)
    fulfilment = models.JSONField(default=list, blank=True)
    test_order = models.BooleanField(default=False)
    notes = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["resort", "-created_at"]),
        ]

    def __str__(self) -> str:
        return f"Order {self.pk} ({self.status})"


class DeviceSlot(models.Model):
    """Allocation state of a device, optionally parked in a kiosk slot.

    Allocation is an atomic conditional update on ``status``.
    """

    class Status(models.TextChoices):
        EMPTY = "empty"
        OCCUPIED = "occupied"
        FAULT = "fault"

    resort = models.ForeignKey(Resort, on_delete=models.CASCADE, related_name="device_slots")
    kiosk = models.ForeignKey(
        Kiosk, on_delete=models.SET_NULL, null=True, blank=True, related_name="slots"
    )
    slot_number = models.PositiveIntegerField(null=True, blank=True)
    device = models.OneToOneField(Device, on_delete=models.CASCADE, related_name="slot")
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.EMPTY)
    order = models.ForeignKey(
        Order, on_delete=models.SET_NULL, null=True, blank=True, related_name="device_slots"
    )
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["kiosk", "slot_number"]
        constraints = [
            models.UniqueConstraint(
                fields=["kiosk", "slot_number"], name="unique_kiosk_slot_number"
            ),
        ]

    def __str__(self) -> str:
        return f"{self.device} - {self.status}"


class DeviceHistory(models.Model):
    """Audit trail of allocation events for a device.

    Rows are written in the same transaction as the slot change they record.
    """

    class EventType(models.TextChoices):
        ORDER_DEVICE_ASSIGNED = "order_device_assigned"
        ORDER_DEVICE_REMOVED = "order_device_removed"
        DEVICE_STATUS_CHANGED = "device_status_changed"

    device = models.ForeignKey(Device, on_delete=models.CASCADE, related_name="history")
    resort = models.ForeignKey(Resort, on_delete=models.CASCADE, related_name="device_history")
    order = models.ForeignKey(
        Order, on_delete=models.SET_NULL, null=True, blank=True, related_name="device_history"
    )
    event_type = models.CharField(max_length=50, choices=EventType.choices)
    status_before = models.CharField(max_length=10, blank=True)
    status_after = models.CharField(max_length=10, blank=True)
    kiosk_id = models.CharField(max_length=64, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name_plural = "device history"
        ordering = ["-created_at", "-pk"]
        indexes = [
            models.Index(fields=["device", "-created_at"]),
            models.Index(fields=["resort", "event_type"]),
        ]

    def __str__(self) -> str:
        return f"{self.device} {self.event_type}"
