"""Store interfaces (repository pattern).

Stores must be swappable and return domain models. Every catalog query is
scoped by resort id.
"""

from abc import ABC, abstractmethod

from lifepass.domain import (
    ConsumerCategory,
    DateRange,
    Device,
    DeviceHistoryEntry,
    Kiosk,
    LineFulfilment,
    Order,
    OrderLine,
    OrderPrice,
    OrderStatus,
    Product,
    Resort,
    SalesChannel,
    SlotStatus,
    ValidityCategory,
)


class ResortStore(ABC):
    @abstractmethod
    def get_resort(self, resort_id: int) -> Resort | None:
        """Return a resort by ID, or None if not found."""
        ...


class CatalogStore(ABC):
    """Interface for resort-scoped catalog reads."""

    @abstractmethod
    def list_products(self, resort_id: int) -> list[Product]:
        ...

    @abstractmethod
    def list_consumer_categories(self, resort_id: int) -> list[ConsumerCategory]:
        ...

    @abstractmethod
    def list_validity_categories(self, resort_id: int) -> list[ValidityCategory]:
        ...

    @abstractmethod
    def list_sales_channels(self, resort_id: int) -> list[SalesChannel]:
        ...


class OrderStore(ABC):
    """Interface for order persistence operations."""

    @abstractmethod
    def create_order(
        self,
        resort_id: int,
        date_range: DateRange,
        lines: tuple[OrderLine, ...],
        test_order: bool,
    ) -> Order:
        """Persist a new order in ``draft`` state."""
        ...

    @abstractmethod
    def get_order(self, order_id: int) -> Order | None:
        """Return an order by ID, or None if not found."""
        ...

    @abstractmethod
    def list_orders(self, resort_id: int, include_test_orders: bool = True) -> list[Order]:
        """Return orders of a resort ordered by created_at descending."""
        ...

    @abstractmethod
    def save_pricing(self, order_id: int, order_price: OrderPrice, status: OrderStatus) -> Order:
        """Store the pricing outcome of a ``draft`` order.

        Raises:
            InvalidStateTransitionError: If the order is no longer a draft.
        """
        ...

    @abstractmethod
    def save_fulfilment(
        self, order_id: int, fulfilments: tuple[LineFulfilment, ...], status: OrderStatus
    ) -> Order:
        """Store the fulfilment outcome of a ``priced`` order.

        Raises:
            InvalidStateTransitionError: If the order is no longer priced.
        """
        ...

    @abstractmethod
    def set_test_order(self, order_id: int, test_order: bool) -> Order | None:
        """Update the test flag, returning None if the order does not exist."""
        ...

    @abstractmethod
    def add_note(self, order_id: int, note: str) -> Order | None:
        ...

    @abstractmethod
    def find_orders_by_device(self, resort_id: int, device_serial: str, limit: int = 10) -> list[Order]:
        """Return orders whose fulfilment holds the device, newest first."""
        ...


class DeviceStore(ABC):
    """Interface for devices, kiosks and the persisted allocation state.

    Every change of a slot is recorded in the device history in the same
    transaction.
    """

    @abstractmethod
    def get_device(self, resort_id: int, code: str) -> Device | None:
        """Return a device of the resort by serial or chip id."""
        ...

    @abstractmethod
    def get_kiosk(self, resort_id: int, kiosk_id: str) -> Kiosk | None:
        ...

    @abstractmethod
    def get_slot_status(self, resort_id: int, device_serial: str) -> SlotStatus | None:
        """Return the persisted status of a device within a resort, None if it has no slot there."""
        ...

    @abstractmethod
    def change_slot_status(
        self, resort_id: int, device_serial: str, before: SlotStatus, after: SlotStatus
    ) -> bool:
        """Move a slot from ``before`` to ``after``. Returns False if it was not ``before``."""
        ...

    @abstractmethod
    def claim_device(self, resort_id: int, device_serial: str, order_id: int) -> bool:
        """Atomically move a device from ``empty`` to ``occupied``.

        Returns False when the device was not ``empty``.
        """
        ...

    @abstractmethod
    def claim_kiosk_slot(
        self, resort_id: int, kiosk_id: str, slot_number: int, order_id: int
    ) -> str | None:
        """Atomically claim an ``empty`` kiosk slot, returning the device serial."""
        ...

    @abstractmethod
    def release_device(self, device_serial: str, order_id: int) -> bool:
        """Return a device held by ``order_id`` to ``empty``."""
        ...

    @abstractmethod
    def get_device_history(self, resort_id: int, device_serial: str) -> list[DeviceHistoryEntry]:
        """Return the recorded events of a device in a resort, newest first."""
        ...
