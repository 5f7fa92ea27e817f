"""Order service - owns the order lifecycle.

draft -> priced -> fulfilled | partially_failed. The test-order flag is
orthogonal to the state and never touches pricing. Every persisted change
publishes the resort's order tags to the cache invalidator.
"""

import logging
from datetime import date

from asgiref.sync import async_to_sync
from django.db import DatabaseError

from lifepass.domain import (
    Allocation,
    ConsumerCategory,
    DateRange,
    LineFulfilment,
    Order,
    OrderLine,
    OrderStatus,
    Resort,
)
from lifepass.domain.errors import (
    DeviceUnavailableError,
    InvalidStateTransitionError,
    OrderNotFoundError,
    ResortNotFoundError,
    ValidationError,
)
from lifepass.services.cache_invalidation import CacheInvalidator
from lifepass.services.catalog_cache import CatalogCache
from lifepass.services.device_allocator import DeviceAllocator
from lifepass.services.order_aggregator import OrderAggregator
from lifepass.stores.interfaces import OrderStore, ResortStore

logger = logging.getLogger(__name__)

ORDERS_TAG = "orders"
ORDER_LIST_TTL_SECONDS = 300


def order_tags(resort_id: int) -> list[str]:
    return [ORDERS_TAG, f"{ORDERS_TAG}:{resort_id}"]


class OrderService:
    """Service for creating, pricing and fulfilling orders."""

    def __init__(
        self,
        orders: OrderStore,
        resorts: ResortStore,
        catalog: CatalogCache,
        aggregator: OrderAggregator,
        allocator: DeviceAllocator,
        invalidator: CacheInvalidator,
    ) -> None:
        self._orders = orders
        self._resorts = resorts
        self._catalog = catalog
        self._aggregator = aggregator
        self._allocator = allocator
        self._invalidator = invalidator

    def create_order(
        self,
        resort_id: int,
        start_date: date,
        lines: list[OrderLine] | tuple[OrderLine, ...],
        end_date: date | None = None,
        test_order: bool = False,
    ) -> Order:
        """Validate a cart and persist it as a ``draft`` order.

        Raises:
            ValidationError: If the input is malformed.
            ResortNotFoundError: If the resort does not exist.
            DeviceNotFoundError: If a line names a device unknown to the resort.
            KioskNotFoundError: If a line names a kiosk unknown to the resort.
        """
        date_range = _validate(resort_id, start_date, end_date, lines)
        self._get_resort(resort_id)
        for line in lines:
            self._allocator.require_known(resort_id, line.device_code, line.kiosk_id)
        order = self._orders.create_order(resort_id, date_range, tuple(lines), test_order)
        logger.info("Created order %s for resort %s with %d lines", order.id, resort_id, len(lines))
        self._publish(resort_id)
        return order

    def price_order(self, order_id: int) -> Order:
        """Price a draft order. Reaches ``priced`` even if every line failed.

        Raises:
            OrderNotFoundError: If the order does not exist.
            InvalidStateTransitionError: If the order is not a draft.
        """
        order = self.get_order(order_id)
        _require_status(order, OrderStatus.DRAFT, OrderStatus.PRICED)
        resort = self._get_resort(order.resort_id)

        categories = self._consumer_categories(order)
        order_price = async_to_sync(self._aggregator.price_order)(
            order.resort_id, order.date_range, order.lines, categories, resort.currency_code
        )
        priced = self._orders.save_pricing(order.id, order_price, OrderStatus.PRICED)
        logger.info(
            "Priced order %s: gross %s %s",
            order.id,
            order_price.cumulated_price.amount_gross,
            order_price.cumulated_price.currency_code,
        )
        self._publish(order.resort_id)
        return priced

    def fulfil_order(self, order_id: int, allow_reallocation: bool = False) -> Order:
        """Allocate devices for successfully priced lines and settle the state.

        If anything goes wrong before the outcome is persisted, every device
        claimed so far is released again.

        Raises:
            OrderNotFoundError: If the order does not exist.
            InvalidStateTransitionError: If the order has not been priced, or
                another fulfilment settled it first.
            DeviceNotFoundError: If a device vanished from the resort since creation.
            KioskNotFoundError: If a kiosk vanished from the resort since creation.
        """
        order = self.get_order(order_id)
        if order.status is not OrderStatus.PRICED or order.order_price is None:
            raise InvalidStateTransitionError(order.status.value, OrderStatus.FULFILLED.value)

        allocations: list[Allocation] = []
        try:
            fulfilments = []
            for index, (line, item) in enumerate(
                zip(order.lines, order.order_price.order_item_prices, strict=True)
            ):
                if not item.success:
                    fulfilments.append(
                        LineFulfilment(
                            line_index=index,
                            error_code=item.error.code.value,
                            error_message=item.error.message,
                        )
                    )
                    continue
                if not line.needs_device:
                    fulfilments.append(LineFulfilment(line_index=index))
                    continue
                try:
                    allocation = self._allocator.allocate(
                        order.resort_id,
                        order.id,
                        device_code=line.device_code,
                        kiosk_id=line.kiosk_id,
                        allow_reallocation=allow_reallocation,
                    )
                except DeviceUnavailableError as exc:
                    logger.warning("Allocation failed for order %s line %d: %s", order.id, index, exc)
                    fulfilments.append(
                        LineFulfilment(
                            line_index=index, error_code=exc.code.value, error_message=exc.message
                        )
                    )
                    continue
                allocations.append(allocation)
                fulfilments.append(LineFulfilment(line_index=index, allocation=allocation))

            status = (
                OrderStatus.FULFILLED
                if all(f.success for f in fulfilments)
                else OrderStatus.PARTIALLY_FAILED
            )
            fulfilled = self._orders.save_fulfilment(order.id, tuple(fulfilments), status)
        except BaseException:
            logger.error(
                "Fulfilment of order %s interrupted, releasing %d devices",
                order.id,
                len(allocations),
            )
            for allocation in allocations:
                self._allocator.release(allocation)
            raise

        logger.info("Order %s is %s", order.id, status.value)
        self._publish(order.resort_id)
        return fulfilled

    def checkout(
        self,
        resort_id: int,
        start_date: date,
        lines: list[OrderLine] | tuple[OrderLine, ...],
        end_date: date | None = None,
        test_order: bool = False,
        allow_reallocation: bool = False,
    ) -> Order:
        """Create, price and fulfil an order in one go."""
        order = self.create_order(resort_id, start_date, lines, end_date, test_order)
        self.price_order(order.id)
        return self.fulfil_order(order.id, allow_reallocation=allow_reallocation)

    def toggle_test_order(self, order_id: int, test_order: bool) -> Order:
        """Flag or unflag an order as a test order, in any state.

        Raises:
            OrderNotFoundError: If the order does not exist.
        """
        order = self._orders.set_test_order(order_id, test_order)
        if order is None:
            raise OrderNotFoundError(order_id)
        logger.info("Order %s test flag set to %s", order_id, test_order)
        self._publish(order.resort_id)
        return order

    def add_note(self, order_id: int, note: str) -> Order:
        if not note.strip():
            raise ValidationError("Note cannot be empty")
        order = self._orders.add_note(order_id, note.strip())
        if order is None:
            raise OrderNotFoundError(order_id)
        self._publish(order.resort_id)
        return order

    def get_order(self, order_id: int) -> Order:
        """Return an order by ID.

        Raises:
            OrderNotFoundError: If the order does not exist.
        """
        order = self._orders.get_order(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    def list_orders(self, resort_id: int, include_test_orders: bool = True) -> list[Order]:
        self._get_resort(resort_id)
        key = f"lifepass:orders:{resort_id}:{'all' if include_test_orders else 'live'}"
        cached = self._invalidator.cache.get(key)
        if cached is not None:
            return list(cached)
        orders = self._orders.list_orders(resort_id, include_test_orders)
        self._invalidator.set(key, orders, ORDER_LIST_TTL_SECONDS, order_tags(resort_id))
        return orders

    def find_orders_by_device(self, resort_id: int, device_code: str) -> list[Order]:
        """Return the orders of a resort that hold a device, newest first.

        Raises:
            ResortNotFoundError: If the resort does not exist.
            DeviceNotFoundError: If the resort has no device with this code.
        """
        self._get_resort(resort_id)
        device = self._allocator.get_device(resort_id, device_code)
        return self._orders.find_orders_by_device(resort_id, device.serial)

    def _consumer_categories(self, order: Order) -> dict[str, ConsumerCategory] | None:
        """Categories to price ``order`` with, or None if the catalog cannot be read.

        An empty or incomplete cached catalog may be stale, so the store is
        asked directly before any line is judged by it.
        """
        cached = {
            category.id: category
            for category in self._catalog.get_consumer_categories(order.resort_id)
        }
        if cached and all(line.consumer_category_id in cached for line in order.lines):
            return cached
        try:
            fresh = self._catalog.reload_consumer_categories(order.resort_id)
        except DatabaseError:
            logger.error(
                "Consumer categories of resort %s unavailable, order %s cannot be priced",
                order.resort_id,
                order.id,
                exc_info=True,
            )
            return None
        return {category.id: category for category in fresh}

    def _get_resort(self, resort_id: int) -> Resort:
        resort = self._resorts.get_resort(resort_id)
        if resort is None:
            raise ResortNotFoundError(resort_id)
        return resort

    def _publish(self, resort_id: int) -> None:
        self._invalidator.invalidate(order_tags(resort_id))


def _require_status(order: Order, expected: OrderStatus, target: OrderStatus) -> None:
    if order.status is not expected:
        raise InvalidStateTransitionError(order.status.value, target.value)


def _validate(
    resort_id: int,
    start_date: date | None,
    end_date: date | None,
    lines: list[OrderLine] | tuple[OrderLine, ...],
) -> DateRange:
    if not isinstance(resort_id, int) or isinstance(resort_id, bool) or resort_id <= 0:
        raise ValidationError("A valid resort id is required")
    if start_date is None:
        raise ValidationError("A start date is required")
    try:
        date_range = DateRange(start=start_date, end=end_date)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc
    if not lines:
        raise ValidationError("An order needs at least one line")

    device_codes = [line.device_code for line in lines if line.device_code is not None]
    if len(device_codes) != len(set(device_codes)):
        raise ValidationError("A device can only be used once per order")
    for line in lines:
        if not line.product_id or not line.consumer_category_id:
            raise ValidationError("Every line needs a product and a consumer category")
        if line.age is not None and line.age < 0:
            raise ValidationError("Age cannot be negative")
    return date_range
