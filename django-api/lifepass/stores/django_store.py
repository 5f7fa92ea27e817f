"""Django ORM implementations of the stores.

Rows are converted to domain models on the way out; JSON columns holding
authority payloads are validated through ``lifepass.clients.schemas``.
"""

import logging
from collections.abc import Callable, Iterable
from typing import TypeVar

from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from lifepass import models
from lifepass.clients.schemas import (
    AuthorityProductPayload,
    AuthorityValidityCategoryPayload,
    parse_stored_price,
)
from lifepass.domain import (
    AgeRange,
    ConsumerCategory,
    DateRange,
    Device,
    DeviceEvent,
    DeviceHistoryEntry,
    Kiosk,
    LineFulfilment,
    LocalizedText,
    Order,
    OrderLine,
    OrderPrice,
    OrderStatus,
    Product,
    Resort,
    SalesChannel,
    SalesChannelType,
    SlotStatus,
    ValidityCategory,
)
from lifepass.domain.errors import InvalidStateTransitionError, OrderNotFoundError
from lifepass.stores import payloads
from lifepass.stores.interfaces import CatalogStore, DeviceStore, OrderStore, ResortStore

logger = logging.getLogger(__name__)

R = TypeVar("R")
T = TypeVar("T")


class DjangoResortStore(ResortStore):
    def get_resort(self, resort_id: int) -> Resort | None:
        row = models.Resort.objects.filter(pk=resort_id).first()
        if row is None:
            return None
        return Resort(id=row.pk, name=row.name, currency_code=row.currency_code)


class DjangoCatalogStore(CatalogStore):
    """PostgreSQL-backed catalog store using Django ORM.

    A row that cannot be converted is logged and left out, so one bad
    category never hides the rest of the resort's catalog.
    """

    def list_products(self, resort_id: int) -> list[Product]:
        rows = models.Product.objects.filter(resort_id=resort_id).order_by("id")
        return _convert_rows(rows, _product_to_domain)

    def list_consumer_categories(self, resort_id: int) -> list[ConsumerCategory]:
        rows = models.ConsumerCategory.objects.filter(resort_id=resort_id).order_by("id")
        return _convert_rows(rows, _consumer_category_to_domain)

    def list_validity_categories(self, resort_id: int) -> list[ValidityCategory]:
        rows = models.ValidityCategory.objects.filter(resort_id=resort_id).order_by("id")
        return _convert_rows(rows, _validity_category_to_domain)

    def list_sales_channels(self, resort_id: int) -> list[SalesChannel]:
        rows = models.SalesChannel.objects.filter(resort_id=resort_id).order_by("id")
        return _convert_rows(rows, _sales_channel_to_domain)


class DjangoOrderStore(OrderStore):
    def create_order(
        self,
        resort_id: int,
        date_range: DateRange,
        lines: tuple[OrderLine, ...],
        test_order: bool,
    ) -> Order:
        row = models.Order.objects.create(
            resort_id=resort_id,
            status=models.Order.Status.DRAFT,
            start_date=date_range.start,
            end_date=date_range.end,
            lines=[payloads.line_to_payload(line) for line in lines],
            test_order=test_order,
        )
        return _order_to_domain(row)

    def get_order(self, order_id: int) -> Order | None:
        row = models.Order.objects.filter(pk=order_id).first()
        return _order_to_domain(row) if row is not None else None

    def list_orders(self, resort_id: int, include_test_orders: bool = True) -> list[Order]:
        rows = models.Order.objects.filter(resort_id=resort_id)
        if not include_test_orders:
            rows = rows.filter(test_order=False)
        return [_order_to_domain(row) for row in rows.order_by("-created_at", "-pk")]

    def save_pricing(self, order_id: int, order_price: OrderPrice, status: OrderStatus) -> Order:
        return self._transition(
            order_id,
            models.Order.Status.DRAFT,
            status,
            order_price=payloads.order_price_to_payload(order_price),
        )

    def save_fulfilment(
        self, order_id: int, fulfilments: tuple[LineFulfilment, ...], status: OrderStatus
    ) -> Order:
        return self._transition(
            order_id,
            models.Order.Status.PRICED,
            status,
            fulfilment=[payloads.fulfilment_to_payload(f) for f in fulfilments],
        )

    def set_test_order(self, order_id: int, test_order: bool) -> Order | None:
        row = models.Order.objects.filter(pk=order_id).first()
        if row is None:
            return None
        row.test_order = test_order
        row.save(update_fields=["test_order", "updated_at"])
        return _order_to_domain(row)

    def add_note(self, order_id: int, note: str) -> Order | None:
        row = models.Order.objects.filter(pk=order_id).first()
        if row is None:
            return None
        row.notes = [*row.notes, note]
        row.save(update_fields=["notes", "updated_at"])
        return _order_to_domain(row)

    def find_orders_by_device(self, resort_id: int, device_serial: str, limit: int = 10) -> list[Order]:
        assigned_to = models.DeviceHistory.objects.filter(
            resort_id=resort_id,
            device__serial=device_serial,
            event_type=models.DeviceHistory.EventType.ORDER_DEVICE_ASSIGNED,
        ).values_list("order_id", flat=True)
        rows = models.Order.objects.filter(pk__in=assigned_to).order_by("-created_at", "-pk")
        orders = [
            order
            for order in map(_order_to_domain, rows)
            if any(
                f.allocation is not None and f.allocation.device_serial == device_serial
                for f in order.fulfilments
            )
        ]
        return orders[:limit]

    def _transition(
        self, order_id: int, expected: str, status: OrderStatus, **fields
    ) -> Order:
        # the status filter makes the write lose against a concurrent one
        updated = models.Order.objects.filter(pk=order_id, status=expected).update(
            status=status.value, updated_at=timezone.now(), **fields
        )
        if updated == 0:
            current = models.Order.objects.filter(pk=order_id).values_list("status", flat=True).first()
            if current is None:
                raise OrderNotFoundError(order_id)
            raise InvalidStateTransitionError(current, status.value)
        return self.get_order(order_id)


class DjangoDeviceStore(DeviceStore):
    def get_device(self, resort_id: int, code: str) -> Device | None:
        row = models.Device.objects.filter(
            Q(serial=code) | Q(chip_id=code), slot__resort_id=resort_id
        ).first()
        if row is None:
            return None
        return Device(id=row.pk, serial=row.serial, chip_id=row.chip_id, luhn=row.luhn, hex=row.hex)

    def get_kiosk(self, resort_id: int, kiosk_id: str) -> Kiosk | None:
        row = models.Kiosk.objects.filter(pk=kiosk_id, resort_id=resort_id).first()
        if row is None:
            return None
        return Kiosk(
            id=row.pk,
            resort_id=row.resort_id,
            name=row.name,
            type=row.type,
            content_ids=tuple(row.kiosk_content_ids),
            location=dict(row.location),
        )

    def get_slot_status(self, resort_id: int, device_serial: str) -> SlotStatus | None:
        status = (
            models.DeviceSlot.objects.filter(resort_id=resort_id, device__serial=device_serial)
            .values_list("status", flat=True)
            .first()
        )
        return SlotStatus(status) if status is not None else None

    def change_slot_status(
        self, resort_id: int, device_serial: str, before: SlotStatus, after: SlotStatus
    ) -> bool:
        with transaction.atomic():
            slot = models.DeviceSlot.objects.filter(
                resort_id=resort_id, device__serial=device_serial
            ).first()
            if slot is None:
                return False
            updated = models.DeviceSlot.objects.filter(pk=slot.pk, status=before.value).update(
                status=after.value, updated_at=timezone.now()
            )
            if updated:
                _record_event(slot, DeviceEvent.DEVICE_STATUS_CHANGED, before, after)
        return updated == 1

    def claim_device(self, resort_id: int, device_serial: str, order_id: int) -> bool:
        with transaction.atomic():
            slot = models.DeviceSlot.objects.filter(
                resort_id=resort_id, device__serial=device_serial
            ).first()
            return slot is not None and _claim_slot(slot, order_id)

    def claim_kiosk_slot(
        self, resort_id: int, kiosk_id: str, slot_number: int, order_id: int
    ) -> str | None:
        with transaction.atomic():
            slot = (
                models.DeviceSlot.objects.filter(
                    resort_id=resort_id, kiosk_id=kiosk_id, slot_number=slot_number
                )
                .select_related("device")
                .first()
            )
            if slot is None or not _claim_slot(slot, order_id):
                return None
        return slot.device.serial

    def release_device(self, device_serial: str, order_id: int) -> bool:
        with transaction.atomic():
            slot = models.DeviceSlot.objects.filter(
                device__serial=device_serial,
                order_id=order_id,
                status=models.DeviceSlot.Status.OCCUPIED,
            ).first()
            if slot is None:
                return False
            updated = models.DeviceSlot.objects.filter(
                pk=slot.pk, order_id=order_id, status=models.DeviceSlot.Status.OCCUPIED
            ).update(status=models.DeviceSlot.Status.EMPTY, order=None, updated_at=timezone.now())
            if updated:
                _record_event(
                    slot,
                    DeviceEvent.ORDER_DEVICE_REMOVED,
                    SlotStatus.OCCUPIED,
                    SlotStatus.EMPTY,
                    order_id=order_id,
                )
        return updated == 1

    def get_device_history(self, resort_id: int, device_serial: str) -> list[DeviceHistoryEntry]:
        rows = models.DeviceHistory.objects.filter(
            resort_id=resort_id, device__serial=device_serial
        ).select_related("device")
        return [_history_to_domain(row) for row in rows]


def _claim_slot(slot: models.DeviceSlot, order_id: int) -> bool:
    updated = models.DeviceSlot.objects.filter(
        pk=slot.pk, status=models.DeviceSlot.Status.EMPTY
    ).update(status=models.DeviceSlot.Status.OCCUPIED, order_id=order_id, updated_at=timezone.now())
    if updated:
        _record_event(
            slot,
            DeviceEvent.ORDER_DEVICE_ASSIGNED,
            SlotStatus.EMPTY,
            SlotStatus.OCCUPIED,
            order_id=order_id,
        )
    return updated == 1


def _record_event(
    slot: models.DeviceSlot,
    event: DeviceEvent,
    before: SlotStatus,
    after: SlotStatus,
    order_id: int | None = None,
) -> None:
    models.DeviceHistory.objects.create(
        device_id=slot.device_id,
        resort_id=slot.resort_id,
        order_id=order_id,
        event_type=event.value,
        status_before=before.value,
        status_after=after.value,
        kiosk_id=slot.kiosk_id or "",
    )


def _convert_rows(rows: Iterable[R], convert: Callable[[R], T]) -> list[T]:
    items = []
    for row in rows:
        try:
            items.append(convert(row))
        # pydantic's ValidationError is a ValueError too
        except ValueError:
            logger.warning(
                "Skipping malformed %s %s of resort %s",
                row._meta.model_name,
                row.pk,
                row.resort_id,
                exc_info=True,
            )
    return items


def _history_to_domain(row: models.DeviceHistory) -> DeviceHistoryEntry:
    return DeviceHistoryEntry(
        device_serial=row.device.serial,
        resort_id=row.resort_id,
        event_type=DeviceEvent(row.event_type),
        created_at=row.created_at,
        order_id=row.order_id,
        status_before=SlotStatus(row.status_before) if row.status_before else None,
        status_after=SlotStatus(row.status_after) if row.status_after else None,
        kiosk_id=row.kiosk_id or None,
    )


def _product_to_domain(row: models.Product) -> Product:
    data = AuthorityProductPayload.model_validate(row.product_data)
    return Product(
        id=row.pk,
        resort_id=row.resort_id,
        active=row.active,
        title=LocalizedText.from_mapping(row.title_translations),
        description=LocalizedText.from_mapping(row.description_translations),
        consumer_category_ids=tuple(data.consumer_category_ids),
        validity_category_id=data.validity_category_id,
        depot_possible=data.depot_possible,
    )


def _consumer_category_to_domain(row: models.ConsumerCategory) -> ConsumerCategory:
    return ConsumerCategory(
        id=row.pk,
        resort_id=row.resort_id,
        title=LocalizedText.from_mapping(row.title_translations),
        description=LocalizedText.from_mapping(row.description_translations),
        age_range=AgeRange(minimum=row.age_min, maximum=row.age_max),
        lifepass_rental_price_per_day=parse_stored_price(row.lifepass_rental_price_per_day),
        insurance_price_per_day=parse_stored_price(row.insurance_price_per_day),
    )


def _validity_category_to_domain(row: models.ValidityCategory) -> ValidityCategory:
    data = AuthorityValidityCategoryPayload.model_validate(row.validity_category_data)
    return ValidityCategory(
        id=row.pk,
        resort_id=row.resort_id,
        unit=LocalizedText.from_mapping(row.unit_translations),
        value=data.validity_value,
        unit_code=data.validity_unit,
        variable=data.variable,
    )


def _sales_channel_to_domain(row: models.SalesChannel) -> SalesChannel:
    return SalesChannel(
        id=row.pk,
        resort_id=row.resort_id,
        name=row.name,
        type=SalesChannelType(row.type),
        active_product_ids=tuple(row.active_product_ids),
        active_consumer_category_ids=tuple(row.active_consumer_category_ids),
        lifepass_price=parse_stored_price(row.lifepass_price),
        insurance_price=parse_stored_price(row.insurance_price),
        depot_tickets=row.depot_tickets,
    )


def _order_to_domain(row: models.Order) -> Order:
    return Order(
        id=row.pk,
        resort_id=row.resort_id,
        status=OrderStatus(row.status),
        date_range=DateRange(start=row.start_date, end=row.end_date),
        lines=tuple(payloads.line_from_payload(line) for line in row.lines),
        test_order=row.test_order,
        created_at=row.created_at,
        updated_at=row.updated_at,
        order_price=payloads.order_price_from_payload(row.order_price),
        fulfilments=tuple(payloads.fulfilment_from_payload(f) for f in row.fulfilment),
        notes=tuple(row.notes),
    )
