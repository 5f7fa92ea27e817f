"""HTTP handlers (views) - handle HTTP concerns only.

Handlers:
- Parse requests and validate input format
- Call services for business logic
- Leave domain error mapping to ``handlers.errors``
- Never contain business logic
- Never expose internal error details
"""

from rest_framework import status
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from lifepass.dependencies import get_catalog_cache, get_device_allocator, get_order_service
from lifepass.domain import Order
from lifepass.domain.errors import OrderNotFoundError
from lifepass.handlers.serializers import (
    CheckoutSerializer,
    ConsumerCategorySerializer,
    DeviceHistorySerializer,
    DeviceSerializer,
    KioskSlotSerializer,
    NoteSerializer,
    OrderSerializer,
    ProductSerializer,
    TestOrderToggleSerializer,
    ValidityCategorySerializer,
)


def _order_in_resort(order: Order, resort_id: int) -> Order:
    if order.resort_id != resort_id:
        raise OrderNotFoundError(order.id)
    return order


class OrderListView(APIView):
    """Handler for GET/POST /api/resorts/{resort_id}/orders"""

    def get(self, request: Request, resort_id: int) -> Response:
        include_test_orders = request.query_params.get("includeTestOrders", "true").lower() != "false"
        orders = get_order_service().list_orders(resort_id, include_test_orders=include_test_orders)
        return Response({"results": OrderSerializer(orders, many=True).data})

    def post(self, request: Request, resort_id: int) -> Response:
        serializer = CheckoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = get_order_service().checkout(resort_id, **serializer.validated_data)
        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)


class OrderDetailView(APIView):
    """Handler for GET /api/resorts/{resort_id}/orders/{order_id}"""

    def get(self, request: Request, resort_id: int, order_id: int) -> Response:
        order = _order_in_resort(get_order_service().get_order(order_id), resort_id)
        return Response(OrderSerializer(order).data)


class OrderTestFlagView(APIView):
    """Handler for POST /api/resorts/{resort_id}/orders/{order_id}/test-order"""

    def post(self, request: Request, resort_id: int, order_id: int) -> Response:
        serializer = TestOrderToggleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        service = get_order_service()
        _order_in_resort(service.get_order(order_id), resort_id)
        order = service.toggle_test_order(order_id, serializer.validated_data["test_order"])
        return Response(OrderSerializer(order).data)


class OrderNoteView(APIView):
    """Handler for POST /api/resorts/{resort_id}/orders/{order_id}/notes"""

    def post(self, request: Request, resort_id: int, order_id: int) -> Response:
        serializer = NoteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        service = get_order_service()
        _order_in_resort(service.get_order(order_id), resort_id)
        order = service.add_note(order_id, serializer.validated_data["text"])
        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)


class CatalogView(APIView):
    """Handler for GET /api/resorts/{resort_id}/catalog"""

    def get(self, request: Request, resort_id: int) -> Response:
        catalog = get_catalog_cache()
        return Response(
            {
                "products": ProductSerializer(catalog.get_products(resort_id), many=True).data,
                "consumerCategories": ConsumerCategorySerializer(
                    catalog.get_consumer_categories(resort_id), many=True
                ).data,
                "validityCategories": ValidityCategorySerializer(
                    catalog.get_validity_categories(resort_id), many=True
                ).data,
            }
        )


class DeviceDetailView(APIView):
    """Handler for GET /api/resorts/{resort_id}/devices/{code}"""

    def get(self, request: Request, resort_id: int, code: str) -> Response:
        device = get_device_allocator().get_device(resort_id, code)
        return Response(DeviceSerializer(device).data)


class DeviceLocationView(APIView):
    """Handler for GET /api/resorts/{resort_id}/devices/{code}/location"""

    def get(self, request: Request, resort_id: int, code: str) -> Response:
        location = get_device_allocator().find_device_location(resort_id, code)
        if location is None:
            return Response({"found": False, "location": None})
        return Response({"found": True, "location": KioskSlotSerializer(location).data})


class DeviceHistoryView(APIView):
    """Handler for GET /api/resorts/{resort_id}/devices/{code}/history"""

    def get(self, request: Request, resort_id: int, code: str) -> Response:
        history = get_device_allocator().get_history(resort_id, code)
        return Response({"results": DeviceHistorySerializer(history, many=True).data})


class DeviceOrdersView(APIView):
    """Handler for GET /api/resorts/{resort_id}/devices/{code}/orders"""

    def get(self, request: Request, resort_id: int, code: str) -> Response:
        orders = get_order_service().find_orders_by_device(resort_id, code)
        return Response({"results": OrderSerializer(orders, many=True).data})
