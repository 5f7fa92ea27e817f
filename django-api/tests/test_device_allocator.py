"""Tests for DeviceAllocator against the Django device store."""

import threading
from datetime import date

import pytest
from django.db import connection

from lifepass import models
from lifepass.domain import Allocation, DeviceEvent, SlotStatus
from lifepass.domain.errors import (
    DeviceNotFoundError,
    DeviceUnavailableError,
    KioskNotFoundError,
    ValidationError,
)
from tests.fakes import kiosk_slot, live_status


@pytest.fixture
def order(resort):
    return models.Order.objects.create(resort=resort, start_date=date(2026, 1, 10))


def slot_of(serial) -> models.DeviceSlot:
    return models.DeviceSlot.objects.get(device__serial=serial)


@pytest.mark.django_db
class TestAllocateDevice:
    def test_occupied_device_is_unavailable_and_nothing_changes(
        self, resort, order, allocator, device_status_client, parked_device
    ):
        parked_device("DTA-001")
        device_status_client.statuses["DTA-001"] = live_status("DTA-001", allocated=True)

        with pytest.raises(DeviceUnavailableError) as excinfo:
            allocator.allocate(resort.pk, order.pk, device_code="DTA-001")

        assert excinfo.value.status == "occupied"
        slot = slot_of("DTA-001")
        assert slot.status == models.DeviceSlot.Status.EMPTY
        assert slot.order_id is None

    def test_low_battery_device_is_faulty(
        self, resort, order, allocator, device_status_client, parked_device
    ):
        parked_device("DTA-002")
        device_status_client.statuses["DTA-002"] = live_status("DTA-002", battery=3)

        with pytest.raises(DeviceUnavailableError) as excinfo:
            allocator.allocate(resort.pk, order.pk, device_code="DTA-002")
        assert excinfo.value.status == "fault"

    def test_free_device_is_claimed(self, resort, order, allocator, device_status_client, parked_device):
        parked_device("DTA-003")
        device_status_client.statuses["DTA-003"] = live_status("DTA-003")

        allocation = allocator.allocate(resort.pk, order.pk, device_code="DTA-003")

        assert allocation == Allocation(device_serial="DTA-003", order_id=order.pk)
        slot = slot_of("DTA-003")
        assert slot.status == models.DeviceSlot.Status.OCCUPIED
        assert slot.order_id == order.pk

    def test_device_found_by_chip_id(self, resort, order, allocator, device_status_client, parked_device):
        parked_device("DTA-004")
        device_status_client.statuses["DTA-004"] = live_status("DTA-004")

        allocation = allocator.allocate(resort.pk, order.pk, device_code="chip-DTA-004")

        assert allocation.device_serial == "DTA-004"

    def test_second_claim_on_same_device_loses(
        self, resort, order, allocator, device_status_client, parked_device
    ):
        """The live status still says empty; the conditional update decides."""
        parked_device("DTA-005")
        device_status_client.statuses["DTA-005"] = live_status("DTA-005")
        other = models.Order.objects.create(resort=resort, start_date=order.start_date)

        allocator.allocate(resort.pk, order.pk, device_code="DTA-005")
        with pytest.raises(DeviceUnavailableError) as excinfo:
            allocator.allocate(resort.pk, other.pk, device_code="DTA-005")

        assert excinfo.value.status == "occupied"
        assert slot_of("DTA-005").order_id == order.pk

    def test_unknown_device(self, resort, order, allocator):
        with pytest.raises(DeviceNotFoundError):
            allocator.allocate(resort.pk, order.pk, device_code="nope")

    def test_device_of_other_resort_is_not_found(
        self, other_resort, order, allocator, device_status_client, parked_device
    ):
        parked_device("DTA-006")
        device_status_client.statuses["DTA-006"] = live_status("DTA-006")

        with pytest.raises(DeviceNotFoundError):
            allocator.allocate(other_resort.pk, order.pk, device_code="DTA-006")

    def test_code_or_kiosk_required(self, resort, order, allocator):
        with pytest.raises(ValidationError):
            allocator.allocate(resort.pk, order.pk)


@pytest.mark.django_db
class TestAllocateFromKiosk:
    def test_lowest_empty_slot_first(
        self, resort, order, kiosk, allocator, device_status_client, parked_device
    ):
        for number in (1, 2, 3):
            parked_device(f"K1-{number}", kiosk=kiosk, slot_number=number)
        device_status_client.slots["K1"] = [
            kiosk_slot("K1", 3),
            kiosk_slot("K1", 1, status=SlotStatus.FAULT),
            kiosk_slot("K1", 2),
        ]

        first = allocator.allocate(resort.pk, order.pk, kiosk_id="K1")
        second = allocator.allocate(resort.pk, order.pk, kiosk_id="K1")

        assert (first.slot_number, first.device_serial) == (2, "K1-2")
        assert (second.slot_number, second.device_serial) == (3, "K1-3")
        with pytest.raises(DeviceUnavailableError):
            allocator.allocate(resort.pk, order.pk, kiosk_id="K1")

    def test_unknown_kiosk(self, resort, order, allocator):
        with pytest.raises(KioskNotFoundError):
            allocator.allocate(resort.pk, order.pk, kiosk_id="K9")

    def test_busy_device_not_swapped_without_reallocation(
        self, resort, order, kiosk, allocator, device_status_client, parked_device
    ):
        parked_device("DTA-007")
        parked_device("K1-1", kiosk=kiosk, slot_number=1)
        device_status_client.statuses["DTA-007"] = live_status("DTA-007", allocated=True)
        device_status_client.slots["K1"] = [kiosk_slot("K1", 1)]

        with pytest.raises(DeviceUnavailableError):
            allocator.allocate(resort.pk, order.pk, device_code="DTA-007", kiosk_id="K1")
        assert slot_of("K1-1").status == models.DeviceSlot.Status.EMPTY

    def test_busy_device_reallocated_from_kiosk(
        self, resort, order, kiosk, allocator, device_status_client, parked_device
    ):
        parked_device("DTA-008")
        parked_device("K1-1", kiosk=kiosk, slot_number=1)
        device_status_client.statuses["DTA-008"] = live_status("DTA-008", allocated=True)
        device_status_client.slots["K1"] = [kiosk_slot("K1", 1)]

        allocation = allocator.allocate(
            resort.pk, order.pk, device_code="DTA-008", kiosk_id="K1", allow_reallocation=True
        )

        assert allocation.device_serial == "K1-1"
        assert allocation.kiosk_id == "K1"


@pytest.mark.django_db
class TestRelease:
    def test_release_is_idempotent(self, resort, order, allocator, device_status_client, parked_device):
        parked_device("DTA-009")
        device_status_client.statuses["DTA-009"] = live_status("DTA-009")
        allocation = allocator.allocate(resort.pk, order.pk, device_code="DTA-009")

        assert allocator.release(allocation) is True
        assert allocator.release(allocation) is False
        slot = slot_of("DTA-009")
        assert slot.status == models.DeviceSlot.Status.EMPTY
        assert slot.order_id is None

    def test_release_ignores_other_orders_claim(
        self, resort, order, allocator, device_status_client, parked_device
    ):
        parked_device("DTA-010")
        device_status_client.statuses["DTA-010"] = live_status("DTA-010")
        allocator.allocate(resort.pk, order.pk, device_code="DTA-010")

        assert allocator.release(Allocation(device_serial="DTA-010", order_id=order.pk + 1)) is False
        assert slot_of("DTA-010").status == models.DeviceSlot.Status.OCCUPIED


@pytest.mark.django_db
class TestLookups:
    def test_get_device_scoped_to_resort(self, resort, other_resort, allocator, parked_device):
        parked_device("DTA-012")

        assert allocator.get_device(resort.pk, "chip-DTA-012").serial == "DTA-012"
        with pytest.raises(DeviceNotFoundError):
            allocator.get_device(other_resort.pk, "DTA-012")

    def test_require_known(self, resort, kiosk, allocator, parked_device):
        parked_device("DTA-013")

        allocator.require_known(resort.pk, device_code="DTA-013", kiosk_id="K1")
        allocator.require_known(resort.pk)
        with pytest.raises(DeviceNotFoundError):
            allocator.require_known(resort.pk, device_code="NOPE")
        with pytest.raises(KioskNotFoundError):
            allocator.require_known(resort.pk, kiosk_id="K9")

    def test_require_known_never_asks_the_authority(self, resort, allocator, parked_device):
        """The fake authority knows no device and would raise if asked."""
        parked_device("DTA-014")

        allocator.require_known(resort.pk, device_code="DTA-014")


@pytest.mark.django_db
class TestDeviceHistory:
    """Every slot change leaves one history row, written with the change."""

    def test_allocate_and_release_are_recorded(
        self, resort, order, allocator, device_status_client, parked_device
    ):
        parked_device("DTA-015")
        device_status_client.statuses["DTA-015"] = live_status("DTA-015")

        allocation = allocator.allocate(resort.pk, order.pk, device_code="DTA-015")
        allocator.release(allocation)
        allocator.release(allocation)

        history = allocator.get_history(resort.pk, "DTA-015")
        assert [(e.event_type, e.status_before, e.status_after, e.order_id) for e in history] == [
            (DeviceEvent.ORDER_DEVICE_REMOVED, SlotStatus.OCCUPIED, SlotStatus.EMPTY, order.pk),
            (DeviceEvent.ORDER_DEVICE_ASSIGNED, SlotStatus.EMPTY, SlotStatus.OCCUPIED, order.pk),
        ]

    def test_lost_claim_is_not_recorded(
        self, resort, order, allocator, device_status_client, parked_device
    ):
        parked_device("DTA-016")
        device_status_client.statuses["DTA-016"] = live_status("DTA-016")
        other = models.Order.objects.create(resort=resort, start_date=order.start_date)
        allocator.allocate(resort.pk, order.pk, device_code="DTA-016")

        with pytest.raises(DeviceUnavailableError):
            allocator.allocate(resort.pk, other.pk, device_code="DTA-016")

        assert [e.order_id for e in allocator.get_history(resort.pk, "DTA-016")] == [order.pk]

    def test_kiosk_claim_records_the_kiosk(
        self, resort, order, kiosk, allocator, device_status_client, parked_device
    ):
        parked_device("K1-1", kiosk=kiosk, slot_number=1)
        device_status_client.slots["K1"] = [kiosk_slot("K1", 1)]

        allocator.allocate(resort.pk, order.pk, kiosk_id="K1")

        (entry,) = allocator.get_history(resort.pk, "K1-1")
        assert (entry.event_type, entry.kiosk_id) == (DeviceEvent.ORDER_DEVICE_ASSIGNED, "K1")

    def test_battery_fault_and_recovery_follow_the_authority(
        self, resort, order, allocator, device_status_client, parked_device
    ):
        parked_device("DTA-017")
        device_status_client.statuses["DTA-017"] = live_status("DTA-017", battery=3)
        with pytest.raises(DeviceUnavailableError):
            allocator.allocate(resort.pk, order.pk, device_code="DTA-017")
        assert slot_of("DTA-017").status == models.DeviceSlot.Status.FAULT

        device_status_client.statuses["DTA-017"] = live_status("DTA-017", battery=80)
        allocator.allocate(resort.pk, order.pk, device_code="DTA-017")

        history = allocator.get_history(resort.pk, "DTA-017")
        assert [(e.event_type, e.status_before, e.status_after) for e in history] == [
            (DeviceEvent.ORDER_DEVICE_ASSIGNED, SlotStatus.EMPTY, SlotStatus.OCCUPIED),
            (DeviceEvent.DEVICE_STATUS_CHANGED, SlotStatus.FAULT, SlotStatus.EMPTY),
            (DeviceEvent.DEVICE_STATUS_CHANGED, SlotStatus.EMPTY, SlotStatus.FAULT),
        ]

    def test_occupied_device_status_is_left_to_orders(
        self, resort, order, allocator, device_status_client, parked_device
    ):
        parked_device("DTA-018", status=models.DeviceSlot.Status.OCCUPIED)
        device_status_client.statuses["DTA-018"] = live_status("DTA-018", battery=3)

        with pytest.raises(DeviceUnavailableError):
            allocator.allocate(resort.pk, order.pk, device_code="DTA-018")

        assert slot_of("DTA-018").status == models.DeviceSlot.Status.OCCUPIED
        assert allocator.get_history(resort.pk, "DTA-018") == []

    def test_history_of_other_resort_is_not_found(self, other_resort, allocator, parked_device):
        parked_device("DTA-019")

        with pytest.raises(DeviceNotFoundError):
            allocator.get_history(other_resort.pk, "DTA-019")


@pytest.mark.django_db(transaction=True)
class TestConcurrentClaims:
    """Two workers with their own database connections race for one device."""

    def test_only_one_thread_claims_the_device(
        self, resort, allocator, device_status_client, parked_device
    ):
        parked_device("DTA-030")
        device_status_client.statuses["DTA-030"] = live_status("DTA-030")
        orders = [
            models.Order.objects.create(resort=resort, start_date=date(2026, 1, 10))
            for _ in range(2)
        ]
        barrier = threading.Barrier(len(orders))
        outcomes: dict[int, object] = {}

        def claim(order_id):
            try:
                barrier.wait(timeout=5)
                outcomes[order_id] = allocator.allocate(resort.pk, order_id, device_code="DTA-030")
            except Exception as exc:
                outcomes[order_id] = exc
            finally:
                connection.close()

        threads = [threading.Thread(target=claim, args=(o.pk,)) for o in orders]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        winners = [o for o in outcomes.values() if isinstance(o, Allocation)]
        losers = [o for o in outcomes.values() if isinstance(o, DeviceUnavailableError)]
        assert len(outcomes) == 2
        assert (len(winners), len(losers)) == (1, 1)
        assert slot_of("DTA-030").order_id == winners[0].order_id
        assert (
            models.DeviceHistory.objects.filter(
                device__serial="DTA-030",
                event_type=models.DeviceHistory.EventType.ORDER_DEVICE_ASSIGNED,
            ).count()
            == 1
        )
