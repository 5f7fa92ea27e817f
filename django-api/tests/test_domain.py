"""Unit tests for domain value objects and models.

Run with: pytest tests/test_domain.py -v
"""

from datetime import date
from decimal import Decimal

import pytest

from lifepass.domain import (
    AgeRange,
    DateRange,
    DeviceStatus,
    Err,
    LinePrices,
    LocalizedText,
    Ok,
    OrderItemPrice,
    OrderLine,
    SlotStatus,
)
from lifepass.domain.errors import (
    DeviceUnavailableError,
    ErrorCode,
    LineIneligibleError,
    NotFoundError,
    OrderNotFoundError,
    PricingUnavailableError,
)
from tests.fakes import make_price


class TestDateRange:
    """Tests for DateRange value object."""

    def test_single_day_without_end(self):
        assert DateRange(start=date(2026, 1, 10)).days == 1

    def test_days_are_inclusive(self):
        assert DateRange(start=date(2026, 1, 10), end=date(2026, 1, 12)).days == 3

    def test_end_before_start_rejected(self):
        with pytest.raises(ValueError, match="before start"):
            DateRange(start=date(2026, 1, 10), end=date(2026, 1, 9))


class TestAgeRange:
    def test_bounds_are_inclusive(self):
        band = AgeRange(minimum=6, maximum=15)
        assert band.contains(6)
        assert band.contains(15)
        assert not band.contains(5)
        assert not band.contains(16)

    def test_open_bounds_accept_everything(self):
        assert AgeRange().contains(0)
        assert AgeRange(minimum=65).contains(99)

    def test_inverted_range_rejected(self):
        with pytest.raises(ValueError):
            AgeRange(minimum=20, maximum=10)


class TestLocalizedText:
    def test_every_language_code_is_kept(self):
        text = LocalizedText.from_mapping({"en": "Adult", "de": "Erwachsene", "rm": "Creschi"})
        assert text.to_mapping() == {"en": "Adult", "de": "Erwachsene", "rm": "Creschi"}

    def test_non_text_values_are_dropped(self):
        text = LocalizedText.from_mapping({"en": "Adult", "de": None, "fr": 3})
        assert text.to_mapping() == {"en": "Adult"}

    def test_mapping_is_copied(self):
        source = {"en": "Adult"}
        text = LocalizedText.from_mapping(source)
        source["en"] = "changed"
        text.to_mapping()["de"] = "Erwachsene"
        assert text.to_mapping() == {"en": "Adult"}

    def test_missing_mapping_is_empty(self):
        assert LocalizedText.from_mapping(None).to_mapping() == {}


class TestCalculatedPrice:
    """Tests for price arithmetic."""

    def test_gross_equals_net_plus_taxes(self):
        price = make_price("100", "10")
        assert price.tax_total == Decimal("10")
        assert price.is_balanced()

    def test_unbalanced_price_detected(self):
        price = make_price("100", "10")
        skewed = type(price)(
            amount_net=price.amount_net,
            amount_gross=Decimal("111"),
            currency_code="CHF",
            tax_details=price.tax_details,
        )
        assert not skewed.is_balanced()

    def test_scaled_multiplies_amounts_and_taxes(self):
        price = make_price("3", "0.24").scaled(3)
        assert price.amount_net == Decimal("9")
        assert price.amount_gross == Decimal("9.72")
        assert price.tax_details[0].amount == Decimal("0.72")
        assert price.is_balanced()


class TestLinePrices:
    def test_sums_only_present_prices(self):
        prices = LinePrices(product_price=make_price("50", "4"), insurance_price=make_price("3"))
        assert len(prices.prices()) == 2
        assert prices.amount_net == Decimal("53")
        assert prices.amount_gross == Decimal("57")


class TestOrderItemPrice:
    def test_ok_result_exposes_prices(self):
        line_prices = LinePrices(product_price=make_price("50"))
        item = OrderItemPrice("day-pass", "adult", Ok(line_prices))
        assert item.success
        assert item.line_prices is line_prices
        assert item.error is None

    def test_err_result_exposes_error(self):
        error = LineIneligibleError("Sold out")
        item = OrderItemPrice("day-pass", "adult", Err(error))
        assert not item.success
        assert item.line_prices is None
        assert item.error is error


class TestOrderLine:
    def test_needs_device_with_code_or_kiosk(self):
        assert OrderLine("p", "c", device_code="DTA-001").needs_device
        assert OrderLine("p", "c", kiosk_id="K1").needs_device
        assert not OrderLine("p", "c").needs_device


class TestDeviceStatus:
    def test_allocated_device_is_occupied(self):
        status = DeviceStatus(device_id="D", connected=True, battery=100, allocated=True)
        assert status.slot_status(minimum_battery=20) is SlotStatus.OCCUPIED

    def test_low_battery_is_fault(self):
        status = DeviceStatus(device_id="D", connected=True, battery=5, allocated=False)
        assert status.slot_status(minimum_battery=20) is SlotStatus.FAULT

    def test_free_charged_device_is_empty(self):
        status = DeviceStatus(device_id="D", connected=True, battery=20, allocated=False)
        assert status.slot_status(minimum_battery=20) is SlotStatus.EMPTY


class TestDomainErrors:
    def test_str_includes_code_and_message(self):
        assert str(OrderNotFoundError(7)) == "ORDER_NOT_FOUND: Order not found"

    def test_not_found_errors_share_a_base(self):
        assert isinstance(OrderNotFoundError(7), NotFoundError)

    def test_pricing_unavailable_keeps_reason_out_of_message(self):
        error = PricingUnavailableError("connect timeout to 10.0.0.3")
        assert error.code is ErrorCode.PRICING_UNAVAILABLE
        assert "10.0.0.3" not in error.message
        assert error.reason == "connect timeout to 10.0.0.3"

    def test_device_unavailable_carries_status(self):
        error = DeviceUnavailableError("DTA-001", "occupied")
        assert error.status == "occupied"
        assert "occupied" in error.message
