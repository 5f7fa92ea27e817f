from django.urls import path

from lifepass.handlers import (
    CatalogView,
    DeviceDetailView,
    DeviceHistoryView,
    DeviceLocationView,
    DeviceOrdersView,
    OrderDetailView,
    OrderListView,
    OrderNoteView,
    OrderTestFlagView,
)

urlpatterns = [
    path("resorts/<int:resort_id>/orders", OrderListView.as_view(), name="order-list"),
    path(
        "resorts/<int:resort_id>/orders/<int:order_id>",
        OrderDetailView.as_view(),
        name="order-detail",
    ),
    path(
        "resorts/<int:resort_id>/orders/<int:order_id>/test-order",
        OrderTestFlagView.as_view(),
        name="order-test-flag",
    ),
    path(
        "resorts/<int:resort_id>/orders/<int:order_id>/notes",
        OrderNoteView.as_view(),
        name="order-notes",
    ),
    path("resorts/<int:resort_id>/catalog", CatalogView.as_view(), name="catalog"),
    path(
        "resorts/<int:resort_id>/devices/<str:code>",
        DeviceDetailView.as_view(),
        name="device-detail",
    ),
    path(
        "resorts/<int:resort_id>/devices/<str:code>/location",
        DeviceLocationView.as_view(),
        name="device-location",
    ),
    path(
        "resorts/<int:resort_id>/devices/<str:code>/history",
        DeviceHistoryView.as_view(),
        name="device-history",
    ),
    path(
        "resorts/<int:resort_id>/devices/<str:code>/orders",
        DeviceOrdersView.as_view(),
        name="device-orders",
    ),
]
