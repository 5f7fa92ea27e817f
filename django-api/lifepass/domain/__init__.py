from lifepass.domain.models import (
    Allocation,
    CalculatedPrice,
    ConsumerCategory,
    Device,
    DeviceHistoryEntry,
    DeviceStatus,
    Kiosk,
    KioskSlot,
    LineFulfilment,
    LinePrices,
    Order,
    OrderItemPrice,
    OrderLine,
    OrderPrice,
    PriceComponent,
    Product,
    Resort,
    SalesChannel,
    TaxDetail,
    ValidityCategory,
)
from lifepass.domain.results import Err, Ok, Result
from lifepass.domain.value_objects import (
    AgeRange,
    DateRange,
    DeviceEvent,
    LocalizedText,
    OrderStatus,
    SalesChannelType,
    SlotStatus,
)

__all__ = [
    "Allocation",
    "CalculatedPrice",
    "ConsumerCategory",
    "Device",
    "DeviceHistoryEntry",
    "DeviceStatus",
    "Kiosk",
    "KioskSlot",
    "LineFulfilment",
    "LinePrices",
    "Order",
    "OrderItemPrice",
    "OrderLine",
    "OrderPrice",
    "PriceComponent",
    "Product",
    "Resort",
    "SalesChannel",
    "TaxDetail",
    "ValidityCategory",
    "Ok",
    "Err",
    "Result",
    "AgeRange",
    "DateRange",
    "DeviceEvent",
    "LocalizedText",
    "OrderStatus",
    "SalesChannelType",
    "SlotStatus",
]
