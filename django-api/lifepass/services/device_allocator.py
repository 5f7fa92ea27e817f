"""Device allocation against kiosk slots and known device codes.

Services:
- Depend only on interfaces (stores, clients)
- Validate domain invariants
- Perform orchestration and error mapping
- Return domain models or domain errors
"""

import logging

from lifepass.clients.device_status import DeviceStatusClient
from lifepass.domain import Allocation, Device, DeviceHistoryEntry, KioskSlot, SlotStatus
from lifepass.domain.errors import (
    DeviceNotFoundError,
    DeviceUnavailableError,
    KioskNotFoundError,
    ValidationError,
)
from lifepass.stores.interfaces import DeviceStore

logger = logging.getLogger(__name__)


class DeviceAllocator:
    """Claims devices for orders and releases them again.

    Exclusivity comes from the store's conditional update, so two
    processes racing for the same device cannot both win.
    """

    def __init__(
        self,
        store: DeviceStore,
        status_client: DeviceStatusClient,
        minimum_battery: int = 20,
    ) -> None:
        self._store = store
        self._status_client = status_client
        self._minimum_battery = minimum_battery

    def get_device(self, resort_id: int, code: str) -> Device:
        """Return a device of the resort by serial or chip id.

        Raises:
            DeviceNotFoundError: If the resort has no device with this code.
        """
        device = self._store.get_device(resort_id, code)
        if device is None:
            raise DeviceNotFoundError(code)
        return device

    def require_known(
        self, resort_id: int, device_code: str | None = None, kiosk_id: str | None = None
    ) -> None:
        """Check that a requested device and kiosk exist in the resort.

        Only the persisted state is read; no authority is called.

        Raises:
            DeviceNotFoundError: If the device is not known in the resort.
            KioskNotFoundError: If the kiosk is not known in the resort.
        """
        if device_code is not None:
            self.get_device(resort_id, device_code)
        if kiosk_id is not None and self._store.get_kiosk(resort_id, kiosk_id) is None:
            raise KioskNotFoundError(kiosk_id)

    def get_history(self, resort_id: int, device_code: str) -> list[DeviceHistoryEntry]:
        device = self.get_device(resort_id, device_code)
        return self._store.get_device_history(resort_id, device.serial)

    def find_device_location(self, resort_id: int, device_code: str) -> KioskSlot | None:
        device = self.get_device(resort_id, device_code)
        return self._status_client.find_device_location(resort_id, device.serial)

    def allocate(
        self,
        resort_id: int,
        order_id: int,
        device_code: str | None = None,
        kiosk_id: str | None = None,
        allow_reallocation: bool = False,
    ) -> Allocation:
        """Claim a device for ``order_id``.

        A requested device that is busy is never silently swapped for another
        one; substitution from ``kiosk_id`` only happens with
        ``allow_reallocation``.

        Raises:
            ValidationError: If neither a device code nor a kiosk is given.
            DeviceNotFoundError: If the requested device does not exist in the resort.
            KioskNotFoundError: If the kiosk does not exist in the resort.
            DeviceUnavailableError: If nothing could be claimed.
        """
        if device_code is None and kiosk_id is None:
            raise ValidationError("A device code or a kiosk id is required")

        if device_code is not None:
            try:
                return self._allocate_device(resort_id, order_id, device_code)
            except DeviceUnavailableError:
                if not (allow_reallocation and kiosk_id is not None):
                    raise
                logger.info(
                    "Device %s unavailable, reallocating from kiosk %s", device_code, kiosk_id
                )
        return self._allocate_from_kiosk(resort_id, order_id, kiosk_id)

    def release(self, allocation: Allocation) -> bool:
        """Return an allocated device to ``empty``. Safe to call twice."""
        released = self._store.release_device(allocation.device_serial, allocation.order_id)
        if released:
            logger.info(
                "Released device %s from order %s", allocation.device_serial, allocation.order_id
            )
        return released

    def _allocate_device(self, resort_id: int, order_id: int, device_code: str) -> Allocation:
        device = self.get_device(resort_id, device_code)
        persisted = self._store.get_slot_status(resort_id, device.serial)

        live = self._status_client.get_device_status(device.serial)
        live_status = live.slot_status(self._minimum_battery)
        self._sync_health(resort_id, device.serial, persisted, live_status)
        if live_status is not SlotStatus.EMPTY:
            raise DeviceUnavailableError(device.serial, live_status.value)

        if not self._store.claim_device(resort_id, device.serial, order_id):
            current = self._store.get_slot_status(resort_id, device.serial)
            raise DeviceUnavailableError(
                device.serial, current.value if current else SlotStatus.OCCUPIED.value
            )

        logger.info("Allocated device %s to order %s", device.serial, order_id)
        return Allocation(device_serial=device.serial, order_id=order_id)

    def _allocate_from_kiosk(self, resort_id: int, order_id: int, kiosk_id: str) -> Allocation:
        if self._store.get_kiosk(resort_id, kiosk_id) is None:
            raise KioskNotFoundError(kiosk_id)

        slots = self._status_client.list_kiosk_slots(resort_id, kiosk_id)
        empty = sorted(
            (slot for slot in slots if slot.status is SlotStatus.EMPTY),
            key=lambda slot: slot.slot_number,
        )
        for slot in empty:
            serial = self._store.claim_kiosk_slot(resort_id, kiosk_id, slot.slot_number, order_id)
            if serial is not None:
                logger.info(
                    "Allocated device %s from kiosk %s slot %d to order %s",
                    serial,
                    kiosk_id,
                    slot.slot_number,
                    order_id,
                )
                return Allocation(
                    device_serial=serial,
                    order_id=order_id,
                    kiosk_id=kiosk_id,
                    slot_number=slot.slot_number,
                )
        raise DeviceUnavailableError(kiosk_id, "no empty slot")

    def _sync_health(
        self,
        resort_id: int,
        device_serial: str,
        persisted: SlotStatus | None,
        live: SlotStatus,
    ) -> None:
        # occupancy belongs to orders; only empty <-> fault follows the authority
        if persisted is SlotStatus.EMPTY and live is SlotStatus.FAULT:
            changed = self._store.change_slot_status(
                resort_id, device_serial, SlotStatus.EMPTY, SlotStatus.FAULT
            )
        elif persisted is SlotStatus.FAULT and live is SlotStatus.EMPTY:
            changed = self._store.change_slot_status(
                resort_id, device_serial, SlotStatus.FAULT, SlotStatus.EMPTY
            )
        else:
            return
        if changed:
            logger.info("Device %s is now %s", device_serial, live.value)
