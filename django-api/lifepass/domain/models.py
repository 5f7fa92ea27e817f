"""Domain models representing persisted and priced state.

These are pure domain objects with no API input rules.
Django ORM models are in lifepass/models.py (persistence layer).
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal

from lifepass.domain.errors import PricingError
from lifepass.domain.results import Result
from lifepass.domain.value_objects import (
    AgeRange,
    DateRange,
    DeviceEvent,
    LocalizedText,
    OrderStatus,
    SalesChannelType,
    SlotStatus,
)

ZERO = Decimal("0")


@dataclass(frozen=True)
class TaxDetail:
    """One tax line of a price. ``rate`` is the percentage (e.g. 8.1)."""

    name: str
    rate: Decimal
    amount: Decimal
    short_name: str
    sort_order: int


@dataclass(frozen=True)
class PriceComponent:
    name: str
    amount_gross: Decimal


@dataclass(frozen=True)
class CalculatedPrice:
    """Net/gross amounts with their tax breakdown."""

    amount_net: Decimal
    amount_gross: Decimal
    currency_code: str
    tax_details: tuple[TaxDetail, ...] = ()
    components: tuple[PriceComponent, ...] = ()
    success: bool = True

    @property
    def tax_total(self) -> Decimal:
        return sum((tax.amount for tax in self.tax_details), ZERO)

    def is_balanced(self, tolerance: Decimal = Decimal("0.01")) -> bool:
        return abs(self.amount_gross - (self.amount_net + self.tax_total)) <= tolerance

    def scaled(self, factor: int) -> "CalculatedPrice":
        """Price for ``factor`` units of this price (e.g. per-day x days)."""
        return CalculatedPrice(
            amount_net=self.amount_net * factor,
            amount_gross=self.amount_gross * factor,
            currency_code=self.currency_code,
            tax_details=tuple(
                TaxDetail(
                    name=tax.name,
                    rate=tax.rate,
                    amount=tax.amount * factor,
                    short_name=tax.short_name,
                    sort_order=tax.sort_order,
                )
                for tax in self.tax_details
            ),
            components=tuple(
                PriceComponent(name=c.name, amount_gross=c.amount_gross * factor)
                for c in self.components
            ),
            success=self.success,
        )


@dataclass(frozen=True)
class LinePrices:
    """Priced components of one successfully priced line."""

    product_price: CalculatedPrice
    insurance_price: CalculatedPrice | None = None
    lifepass_rental_price: CalculatedPrice | None = None

    def prices(self) -> tuple[CalculatedPrice, ...]:
        return tuple(
            price
            for price in (self.product_price, self.insurance_price, self.lifepass_rental_price)
            if price is not None
        )

    @property
    def amount_net(self) -> Decimal:
        return sum((price.amount_net for price in self.prices()), ZERO)

    @property
    def amount_gross(self) -> Decimal:
        return sum((price.amount_gross for price in self.prices()), ZERO)


@dataclass(frozen=True)
class OrderLine:
    """One requested line of a cart."""

    product_id: str
    consumer_category_id: str
    insurance: bool = False
    device_code: str | None = None
    kiosk_id: str | None = None
    age: int | None = None

    @property
    def needs_device(self) -> bool:
        return self.device_code is not None or self.kiosk_id is not None


@dataclass(frozen=True)
class OrderItemPrice:
    product_id: str
    consumer_category_id: str
    result: Result[LinePrices, PricingError]

    @property
    def success(self) -> bool:
        return self.result.is_ok

    @property
    def line_prices(self) -> LinePrices | None:
        return getattr(self.result, "value", None)

    @property
    def error(self) -> PricingError | None:
        return getattr(self.result, "error", None)


@dataclass(frozen=True)
class OrderPrice:
    start_date: date
    days_validity: int
    cumulated_price: CalculatedPrice
    order_item_prices: tuple[OrderItemPrice, ...]

    @property
    def all_succeeded(self) -> bool:
        return all(item.success for item in self.order_item_prices)


@dataclass(frozen=True)
class Resort:
    id: int
    name: str
    currency_code: str


@dataclass(frozen=True)
class Product:
    id: str
    resort_id: int
    active: bool
    title: LocalizedText
    description: LocalizedText
    consumer_category_ids: tuple[str, ...] = ()
    validity_category_id: str | None = None
    depot_possible: bool = False


@dataclass(frozen=True)
class ConsumerCategory:
    id: str
    resort_id: int
    title: LocalizedText
    description: LocalizedText
    age_range: AgeRange = AgeRange()
    lifepass_rental_price_per_day: CalculatedPrice | None = None
    insurance_price_per_day: CalculatedPrice | None = None


@dataclass(frozen=True)
class ValidityCategory:
    id: str
    resort_id: int
    unit: LocalizedText
    value: int
    unit_code: str
    variable: bool = False


@dataclass(frozen=True)
class SalesChannel:
    id: int
    resort_id: int
    name: str
    type: SalesChannelType
    active_product_ids: tuple[str, ...]
    active_consumer_category_ids: tuple[str, ...]
    lifepass_price: CalculatedPrice
    insurance_price: CalculatedPrice
    depot_tickets: bool


@dataclass(frozen=True)
class Device:
    id: int
    serial: str
    chip_id: str
    luhn: str
    hex: str


@dataclass(frozen=True)
class Kiosk:
    id: str
    resort_id: int
    name: str
    type: str
    content_ids: tuple[int, ...] = ()
    location: dict = field(default_factory=dict)


@dataclass(frozen=True)
class KioskSlot:
    """Live position of a device at a kiosk. Never persisted."""

    kiosk_id: str
    kiosk_name: str
    slot_number: int
    location: str
    status: SlotStatus
    last_updated: datetime
    device_serial: str | None = None


@dataclass(frozen=True)
class DeviceStatus:
    device_id: str
    connected: bool
    battery: int
    allocated: bool
    last_connected: datetime | None = None

    def slot_status(self, minimum_battery: int) -> SlotStatus:
        if self.allocated:
            return SlotStatus.OCCUPIED
        if self.battery < minimum_battery:
            return SlotStatus.FAULT
        return SlotStatus.EMPTY


@dataclass(frozen=True)
class Allocation:
    device_serial: str
    order_id: int
    kiosk_id: str | None = None
    slot_number: int | None = None


@dataclass(frozen=True)
class DeviceHistoryEntry:
    """One recorded change of a device's allocation state."""

    device_serial: str
    resort_id: int
    event_type: DeviceEvent
    created_at: datetime
    order_id: int | None = None
    status_before: SlotStatus | None = None
    status_after: SlotStatus | None = None
    kiosk_id: str | None = None


@dataclass(frozen=True)
class LineFulfilment:
    """Outcome of fulfilling one order line, by position in the order."""

    line_index: int
    allocation: Allocation | None = None
    error_code: str | None = None
    error_message: str | None = None

    @property
    def success(self) -> bool:
        return self.error_code is None


@dataclass(frozen=True)
class Order:
    id: int
    resort_id: int
    status: OrderStatus
    date_range: DateRange
    lines: tuple[OrderLine, ...]
    test_order: bool
    created_at: datetime
    updated_at: datetime
    order_price: OrderPrice | None = None
    fulfilments: tuple[LineFulfilment, ...] = ()
    notes: tuple[str, ...] = ()
