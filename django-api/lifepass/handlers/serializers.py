"""Serializers for request validation and domain-to-response mapping."""

from rest_framework import serializers

from lifepass.domain import OrderLine
from lifepass.stores import payloads


class OrderLineSerializer(serializers.Serializer):
    productId = serializers.CharField(source="product_id", max_length=64)
    consumerCategoryId = serializers.CharField(source="consumer_category_id", max_length=64)
    insurance = serializers.BooleanField(default=False)
    deviceCode = serializers.CharField(
        source="device_code", required=False, allow_null=True, default=None
    )
    kioskId = serializers.CharField(source="kiosk_id", required=False, allow_null=True, default=None)
    age = serializers.IntegerField(required=False, allow_null=True, min_value=0, default=None)


class CheckoutSerializer(serializers.Serializer):
    """Input of ``POST /api/resorts/<resort_id>/orders``."""

    startDate = serializers.DateField(source="start_date")
    endDate = serializers.DateField(source="end_date", required=False, allow_null=True, default=None)
    lines = OrderLineSerializer(many=True, allow_empty=False)
    testOrder = serializers.BooleanField(source="test_order", default=False)
    allowReallocation = serializers.BooleanField(source="allow_reallocation", default=False)

    def validate(self, attrs):
        end_date = attrs.get("end_date")
        if end_date is not None and end_date < attrs["start_date"]:
            raise serializers.ValidationError({"endDate": "End date cannot be before start date"})
        attrs["lines"] = [OrderLine(**line) for line in attrs["lines"]]
        return attrs


class TestOrderToggleSerializer(serializers.Serializer):
    testOrder = serializers.BooleanField(source="test_order")


class NoteSerializer(serializers.Serializer):
    text = serializers.CharField(max_length=2000, trim_whitespace=True)


class OrderSerializer(serializers.Serializer):
    """Serializer for the Order domain model."""

    id = serializers.IntegerField()
    resortId = serializers.IntegerField(source="resort_id")
    status = serializers.CharField(source="status.value")
    startDate = serializers.DateField(source="date_range.start")
    endDate = serializers.DateField(source="date_range.end", allow_null=True)
    testOrder = serializers.BooleanField(source="test_order")
    lines = serializers.SerializerMethodField()
    orderPrice = serializers.SerializerMethodField()
    fulfilment = serializers.SerializerMethodField()
    notes = serializers.ListField(child=serializers.CharField())
    createdAt = serializers.DateTimeField(source="created_at")
    updatedAt = serializers.DateTimeField(source="updated_at")

    def get_lines(self, order) -> list[dict]:
        return [payloads.line_to_payload(line) for line in order.lines]

    def get_orderPrice(self, order) -> dict | None:
        if order.order_price is None:
            return None
        data = payloads.order_price_to_payload(order.order_price)
        # transport details of failed lines stay internal
        for item in data["orderItemPrices"]:
            if "error" in item:
                item["error"].pop("reason", None)
        return data

    def get_fulfilment(self, order) -> list[dict]:
        return [payloads.fulfilment_to_payload(f) for f in order.fulfilments]


class LocalizedTextField(serializers.Field):
    def to_representation(self, value):
        return value.to_mapping()


class ProductSerializer(serializers.Serializer):
    id = serializers.CharField()
    active = serializers.BooleanField()
    title = LocalizedTextField()
    description = LocalizedTextField()
    consumerCategoryIds = serializers.ListField(source="consumer_category_ids", child=serializers.CharField())
    validityCategoryId = serializers.CharField(source="validity_category_id", allow_null=True)


class ConsumerCategorySerializer(serializers.Serializer):
    id = serializers.CharField()
    title = LocalizedTextField()
    description = LocalizedTextField()
    ageMin = serializers.IntegerField(source="age_range.minimum", allow_null=True)
    ageMax = serializers.IntegerField(source="age_range.maximum", allow_null=True)
    insurancePricePerDay = serializers.SerializerMethodField()
    lifepassRentalPricePerDay = serializers.SerializerMethodField()

    def get_insurancePricePerDay(self, category) -> dict | None:
        return payloads.price_to_payload(category.insurance_price_per_day)

    def get_lifepassRentalPricePerDay(self, category) -> dict | None:
        return payloads.price_to_payload(category.lifepass_rental_price_per_day)


class ValidityCategorySerializer(serializers.Serializer):
    id = serializers.CharField()
    unit = LocalizedTextField()
    value = serializers.IntegerField()
    unitCode = serializers.CharField(source="unit_code")
    variable = serializers.BooleanField()


class DeviceSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    serial = serializers.CharField()
    chipId = serializers.CharField(source="chip_id")
    luhn = serializers.CharField()
    hex = serializers.CharField()


class KioskSlotSerializer(serializers.Serializer):
    kioskId = serializers.CharField(source="kiosk_id")
    kioskName = serializers.CharField(source="kiosk_name")
    slotNumber = serializers.IntegerField(source="slot_number")
    location = serializers.CharField()
    status = serializers.CharField(source="status.value")
    lastUpdated = serializers.DateTimeField(source="last_updated")


class DeviceHistorySerializer(serializers.Serializer):
    deviceSerial = serializers.CharField(source="device_serial")
    eventType = serializers.CharField(source="event_type.value")
    orderId = serializers.IntegerField(source="order_id", allow_null=True)
    statusBefore = serializers.CharField(source="status_before.value", allow_null=True)
    statusAfter = serializers.CharField(source="status_after.value", allow_null=True)
    kioskId = serializers.CharField(source="kiosk_id", allow_null=True)
    createdAt = serializers.DateTimeField(source="created_at")
