"""Tests for the admin dashboards."""

from datetime import date

import pytest

from lifepass import models


@pytest.mark.django_db
class TestAdmin:
    @pytest.mark.parametrize(
        "model_name",
        ["resort", "product", "consumercategory", "validitycategory", "saleschannel", "kiosk", "device", "order", "devicehistory"],
    )
    def test_changelists_render(self, admin_client, resort, model_name):
        response = admin_client.get(f"/admin/lifepass/{model_name}/")

        assert response.status_code == 200

    def test_kiosk_change_page_shows_slots(self, admin_client, kiosk, parked_device):
        parked_device("K1-1", kiosk=kiosk, slot_number=1)

        response = admin_client.get(f"/admin/lifepass/kiosk/{kiosk.pk}/change/")

        assert response.status_code == 200
        assert b"K1-1" in response.content

    def test_orders_cannot_be_deleted(self, admin_client, resort):
        order = models.Order.objects.create(resort=resort, start_date=date(2026, 1, 10))

        response = admin_client.get(f"/admin/lifepass/order/{order.pk}/delete/")

        assert response.status_code == 403
        assert models.Order.objects.filter(pk=order.pk).exists()

    def test_mark_as_test_order_action(self, admin_client, resort):
        order = models.Order.objects.create(resort=resort, start_date=date(2026, 1, 10))

        admin_client.post(
            "/admin/lifepass/order/",
            {"action": "mark_as_test_order", "_selected_action": [order.pk]},
        )

        order.refresh_from_db()
        assert order.test_order is True

    def test_device_history_is_read_only(self, admin_client, resort, parked_device):
        device = parked_device("DTA-001")
        entry = models.DeviceHistory.objects.create(
            device=device,
            resort=resort,
            event_type=models.DeviceHistory.EventType.DEVICE_STATUS_CHANGED,
            status_before="empty",
            status_after="fault",
        )

        assert admin_client.get(f"/admin/lifepass/devicehistory/{entry.pk}/change/").status_code == 200
        response = admin_client.post(f"/admin/lifepass/devicehistory/{entry.pk}/delete/", {"post": "yes"})

        assert response.status_code == 403
        assert models.DeviceHistory.objects.filter(pk=entry.pk).exists()
