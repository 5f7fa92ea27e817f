from lifepass.handlers.views import (
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

__all__ = [
    "CatalogView",
    "DeviceDetailView",
    "DeviceHistoryView",
    "DeviceLocationView",
    "DeviceOrdersView",
    "OrderDetailView",
    "OrderListView",
    "OrderNoteView",
    "OrderTestFlagView",
]
