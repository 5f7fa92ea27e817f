from django.contrib import admin

from lifepass.models import (
    ConsumerCategory,
    Device,
    DeviceHistory,
    DeviceSlot,
    Kiosk,
    Order,
    Product,
    Resort,
    SalesChannel,
    ValidityCategory,
)


class DeviceSlotInline(admin.TabularInline):
    model = DeviceSlot
    extra = 0
    fields = ["device", "slot_number", "status", "order"]
    raw_id_fields = ["device", "order"]


class SalesChannelInline(admin.TabularInline):
    model = SalesChannel
    extra = 0
    fields = ["name", "type", "depot_tickets"]


@admin.register(Resort)
class ResortAdmin(admin.ModelAdmin):
    list_display = ["name", "currency_code", "created_at"]
    search_fields = ["name"]
    inlines = [SalesChannelInline]


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ["id", "resort", "active", "updated_at"]
    list_filter = ["resort", "active"]
    search_fields = ["id"]


@admin.register(ConsumerCategory)
class ConsumerCategoryAdmin(admin.ModelAdmin):
    list_display = ["id", "resort", "age_min", "age_max"]
    list_filter = ["resort"]


@admin.register(ValidityCategory)
class ValidityCategoryAdmin(admin.ModelAdmin):
    list_display = ["id", "resort"]
    list_filter = ["resort"]


@admin.register(SalesChannel)
class SalesChannelAdmin(admin.ModelAdmin):
    list_display = ["name", "resort", "type", "depot_tickets"]
    list_filter = ["resort", "type"]


@admin.register(Kiosk)
class KioskAdmin(admin.ModelAdmin):
    list_display = ["name", "resort", "type"]
    list_filter = ["resort"]
    inlines = [DeviceSlotInline]


@admin.register(Device)
class DeviceAdmin(admin.ModelAdmin):
    list_display = ["serial", "chip_id", "luhn", "created_at"]
    search_fields = ["serial", "chip_id"]


@admin.register(DeviceHistory)
class DeviceHistoryAdmin(admin.ModelAdmin):
    """Read-only: history rows are written by allocation only."""

    list_display = [
        "device",
        "event_type",
        "resort",
        "order",
        "status_before",
        "status_after",
        "created_at",
    ]
    list_filter = ["resort", "event_type"]
    search_fields = ["device__serial"]

    def has_add_permission(self, request) -> bool:
        return False

    def has_change_permission(self, request, obj=None) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ["id", "resort", "status", "start_date", "test_order", "created_at"]
    list_filter = ["resort", "status", "test_order"]
    readonly_fields = ["order_price", "fulfilment", "created_at", "updated_at"]
    actions = ["mark_as_test_order", "unmark_test_order"]

    def has_delete_permission(self, request, obj=None) -> bool:
        return False

    @admin.action(description="Mark selected orders as test orders")
    def mark_as_test_order(self, request, queryset):
        for order in queryset:
            order.test_order = True
            order.save(update_fields=["test_order", "updated_at"])

    @admin.action(description="Unmark selected test orders")
    def unmark_test_order(self, request, queryset):
        for order in queryset:
            order.test_order = False
            order.save(update_fields=["test_order", "updated_at"])
