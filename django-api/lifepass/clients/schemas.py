"""Validated shapes of payloads exchanged with the external authorities.

Everything arriving from the pricing or device-status authority, and the
authority payloads stored on catalog rows, is parsed through these models
and converted to domain dataclasses. Nothing untyped travels further.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Literal

import pydantic

from lifepass.domain import (
    CalculatedPrice,
    DeviceStatus,
    KioskSlot,
    PriceComponent,
    SlotStatus,
    TaxDetail,
)

BALANCE_TOLERANCE = Decimal("0.01")


class AuthorityModel(pydantic.BaseModel):
    model_config = pydantic.ConfigDict(populate_by_name=True, extra="ignore")


class TaxDetailsPayload(AuthorityModel):
    name: str
    tax_value: Decimal = pydantic.Field(alias="taxValue")
    tax_amount: Decimal = pydantic.Field(alias="taxAmount")
    tax_short_name: str = pydantic.Field(alias="taxShortName")
    sort_order: int = pydantic.Field(alias="sortOrder", default=0)

    def to_domain(self) -> TaxDetail:
        return TaxDetail(
            name=self.name,
            rate=self.tax_value,
            amount=self.tax_amount,
            short_name=self.tax_short_name,
            sort_order=self.sort_order,
        )


class PriceComponentPayload(AuthorityModel):
    name: str
    amount_gross: Decimal = pydantic.Field(alias="amountGross")


class PriceDetailsPayload(AuthorityModel):
    amount_net: Decimal = pydantic.Field(alias="amountNet", ge=0)
    amount_gross: Decimal = pydantic.Field(alias="amountGross", ge=0)
    currency_code: str = pydantic.Field(alias="currencyCode", min_length=3, max_length=3)
    tax_details: list[TaxDetailsPayload] = pydantic.Field(alias="taxDetails", default_factory=list)
    components: list[PriceComponentPayload] = pydantic.Field(default_factory=list)

    @pydantic.field_validator("tax_details", mode="before")
    @classmethod
    def _single_tax_as_list(cls, value):
        # the authority sends a bare object when there is exactly one tax line
        if isinstance(value, dict):
            return [value]
        return value

    @pydantic.model_validator(mode="after")
    def _gross_matches_net_plus_tax(self) -> PriceDetailsPayload:
        tax_total = sum((tax.tax_amount for tax in self.tax_details), Decimal("0"))
        if abs(self.amount_gross - (self.amount_net + tax_total)) > BALANCE_TOLERANCE:
            raise ValueError("amountGross does not equal amountNet plus taxes")
        return self

    def to_domain(self, success: bool = True) -> CalculatedPrice:
        return CalculatedPrice(
            amount_net=self.amount_net,
            amount_gross=self.amount_gross,
            currency_code=self.currency_code.upper(),
            tax_details=tuple(tax.to_domain() for tax in self.tax_details),
            components=tuple(
                PriceComponent(name=c.name, amount_gross=c.amount_gross)
                for c in self.components
            ),
            success=success,
        )


class CalculatedPricePayload(AuthorityModel):
    """Answer of the pricing authority for one (product, category, date)."""

    success: bool
    base_price: PriceDetailsPayload | None = pydantic.Field(alias="basePrice", default=None)
    best_price: PriceDetailsPayload | None = pydantic.Field(alias="bestPrice", default=None)
    message: str | None = None

    @pydantic.model_validator(mode="after")
    def _price_present_on_success(self) -> CalculatedPricePayload:
        if self.success and self.best_price is None and self.base_price is None:
            raise ValueError("successful price response carries no price")
        return self

    def to_domain(self) -> CalculatedPrice:
        price = self.best_price or self.base_price
        return price.to_domain()


def parse_stored_price(data: dict | None) -> CalculatedPrice | None:
    """Parse a price stored on a catalog row (consumer category, sales channel)."""
    if not data:
        return None
    if "amountNet" in data:
        return PriceDetailsPayload.model_validate(data).to_domain()
    payload = CalculatedPricePayload.model_validate(data)
    if not payload.success:
        return None
    return payload.to_domain()


class AuthorityProductPayload(AuthorityModel):
    id: str
    active: bool = True
    consumer_category_ids: list[str] = pydantic.Field(alias="consumerCategoryIds", default_factory=list)
    validity_category_id: str | None = pydantic.Field(alias="validityCategoryId", default=None)
    depot_possible: bool = pydantic.Field(alias="depotPossible", default=False)


class AuthorityValidityCategoryPayload(AuthorityModel):
    id: str
    validity_value: int = pydantic.Field(alias="validityValue", ge=0)
    validity_unit: str = pydantic.Field(alias="validityUnit")
    variable: bool = False


class DeviceStatusPayload(AuthorityModel):
    id: str
    connected: bool
    last_connected: datetime | None = pydantic.Field(alias="lastConnected", default=None)
    device_code: str | None = pydantic.Field(alias="deviceCode", default=None)
    dta_code: str | None = pydantic.Field(alias="dtaCode", default=None)
    device_allocated: bool = pydantic.Field(alias="deviceAllocated")
    battery: int = pydantic.Field(ge=0, le=100)

    def to_domain(self) -> DeviceStatus:
        return DeviceStatus(
            device_id=self.id,
            connected=self.connected,
            battery=self.battery,
            allocated=self.device_allocated,
            last_connected=self.last_connected,
        )


class DeviceResultPayload(AuthorityModel):
    device_id: str = pydantic.Field(alias="deviceId")
    success: bool
    device_status: DeviceStatusPayload | None = pydantic.Field(alias="deviceStatus", default=None)
    error: str | None = None


class DeviceStatusDataPayload(AuthorityModel):
    devices: list[DeviceResultPayload] = pydantic.Field(default_factory=list)


class DeviceStatusResponsePayload(AuthorityModel):
    success: bool
    error: str | None = None
    data: DeviceStatusDataPayload | None = None


class KioskSlotPayload(AuthorityModel):
    kiosk_id: str = pydantic.Field(alias="kioskId")
    kiosk_name: str = pydantic.Field(alias="kioskName", default="")
    slot_number: int = pydantic.Field(alias="slotNumber", ge=0)
    location: str = ""
    status: Literal["occupied", "empty", "fault"]
    last_updated: datetime = pydantic.Field(alias="lastUpdated")
    device_id: str | None = pydantic.Field(alias="deviceId", default=None)

    def to_domain(self) -> KioskSlot:
        return KioskSlot(
            kiosk_id=self.kiosk_id,
            kiosk_name=self.kiosk_name,
            slot_number=self.slot_number,
            location=self.location,
            status=SlotStatus(self.status),
            last_updated=self.last_updated,
            device_serial=self.device_id,
        )


class KioskSlotsResponsePayload(AuthorityModel):
    success: bool
    slots: list[KioskSlotPayload] = pydantic.Field(default_factory=list)
    message: str | None = None


class LifepassSearchResponsePayload(AuthorityModel):
    success: bool
    found: bool = False
    location: KioskSlotPayload | None = None
    message: str | None = None
