"""HTTP views for the orders app.

This module contains DRF API views used by the orders service. Views are
kept intentionally small: they validate requests (via Pydantic), map to
domain DTOs, delegate to the domain services, and return an HTTP response.

Services are obtained through ``providers`` at call time so tests and local
development can swap the catalog port (HTTP client or in-process stub)
without changing view logic.

Caller identity is set on the request by ``CustomerContextMiddleware``.
Anonymous callers get the unscoped admin panel; customers only see
their own orders and cannot change order status.

Error responses share one shape: ``{"detail": CODE, "message": text}``;
request validation failures add an ``errors`` list of ``{field, message}``.
"""

import logging

import httpx
from pydantic import ValidationError
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView

from . import providers
from .domain import CheckoutRequest, RequestedItem
from .errors import OrderError, OrderNotFound, ProductUnavailable
from .http_adapters import CircuitOpenError
from .pricing import PricingBreakdown
from .queries import OrderFilters
from .repository import CartRepository, OrderRepository
from .schemas import (
    BulkStatusDTO,
    CartItemIn,
    CartItemRead,
    CreateOrderDTO,
    OrderListQuery,
    OrderReadDTO,
    OrderStatsRead,
    StatusCountRead,
    StatusUpdateDTO,
)

logger = logging.getLogger("orders")


def error_response(detail: str, message: str | None = None, status_code: int = 400, **extra) -> Response:
    body = {"detail": detail, "message": message or detail}
    body.update(extra)
    return Response(body, status=status_code)


def validation_errors(exc: ValidationError) -> list[dict]:
    """Flatten a pydantic error into ``[{field, message}]``."""
    return [
        {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
        for err in exc.errors()
    ]


def serialize_order(order) -> dict:
    return OrderReadDTO.model_validate(order).model_dump(mode="json")


def _int_param(request, name: str, default: int, low: int = 1, high: int = 100) -> int:
    try:
        value = int(request.query_params.get(name, default))
    except (TypeError, ValueError):
        value = default
    return min(max(value, low), high)


class OrdersAPIView(APIView):
    """Base view that maps domain and upstream errors to JSON responses."""

    throttle_classes = [ScopedRateThrottle]

    def handle_exception(self, exc):
        if isinstance(exc, OrderError):
            return error_response(exc.code, exc.message, exc.http_status)
        if isinstance(exc, ValidationError):
            return error_response(
                "VALIDATION_ERROR", "Validation failed", status.HTTP_400_BAD_REQUEST,
                errors=validation_errors(exc),
            )
        if isinstance(exc, (CircuitOpenError, httpx.HTTPError)):
            logger.warning("catalog unavailable", extra={"error": repr(exc)})
            return error_response(
                "UPSTREAM_UNAVAILABLE", "Catalog service unavailable", status.HTTP_503_SERVICE_UNAVAILABLE
            )
        if isinstance(exc, APIException):
            return super().handle_exception(exc)
        logger.exception("unhandled error in %s", type(self).__name__)
        return error_response("SERVER_ERROR", "Server error", status.HTTP_500_INTERNAL_SERVER_ERROR)

    def caller(self, request) -> str | None:
        return getattr(request, "customer_id", None)

    def is_admin(self, request) -> bool:
        return bool(getattr(request, "is_admin", False))

    def scope_for(self, request) -> str | None:
        """Customer id reads are restricted to, or None for unscoped access."""
        if self.is_admin(request):
            return None
        return self.caller(request)

    def forbid_customers(self, request):
        """403 for identified non-admin callers; anonymous admin panel passes."""
        if self.caller(request) and not self.is_admin(request):
            return error_response("FORBIDDEN", "Admin access required", status.HTTP_403_FORBIDDEN)
        return None


def _require_caller(request):
    if not getattr(request, "customer_id", None):
        return error_response(
            "AUTHENTICATION_REQUIRED", "Customer identity required", status.HTTP_401_UNAUTHORIZED
        )
    return None


class OrdersPingView(APIView):
    """Simple health-check endpoint for the orders module.

    This view returns a minimal JSON payload used by liveness/health
    checks and by automated smoke-tests.
    """

    def get(self, request):
        """Handle GET requests for the health endpoint.

        Args:
            request (Request): The incoming DRF request.

        Returns:
            Response: A DRF Response with JSON {"ok": True} and HTTP 200.
        """
        return Response({"ok": True})


class OrdersCollectionView(OrdersAPIView):
    """List orders (GET) and place a new order (POST)."""

    def get_throttles(self):
        # DRF evaluates throttles in initial(), before get/post
        self.throttle_scope = "orders_list" if self.request.method == "GET" else "orders_create"
        return [throttle() for throttle in self.throttle_classes]

    def get(self, request):
        """List orders with filtering, sorting and pagination.

        Returns:
            Response: 200 with ``{count, results, total, page, limit,
            total_pages, stats}``; 400 with ``VALIDATION_ERROR`` for bad
            query parameters.
        """
        query = OrderListQuery.model_validate(request.query_params.dict())
        filters = OrderFilters(**query.model_dump())
        scope = self.scope_for(request)
        queries = providers.get_query_service()
        try:
            page = queries.list_orders(filters, scope_customer_id=scope)
        except ValueError as e:
            return error_response(
                "VALIDATION_ERROR", "Validation failed", errors=[{"field": "sort_by", "message": str(e)}]
            )

        stats = [StatusCountRead(**row).model_dump(mode="json") for row in queries.status_breakdown(scope)]
        return Response(
            {
                "count": len(page.orders),
                "results": [serialize_order(o) for o in page.orders],
                "total": page.total,
                "page": page.page,
                "limit": page.limit,
                "total_pages": page.total_pages,
                "stats": stats,
            },
            status=status.HTTP_200_OK,
        )

    def post(self, request):
        """Place an order for the calling customer.

        Args:
            request (Request): DRF request with JSON body; the caller is
                taken from the ``X-Customer-ID`` header.

        Returns:
            Response: One of the following responses.
            - 201 with the created order.
            - 400 with ``VALIDATION_ERROR`` for DTO validation errors.
            - 400 with ``EMPTY_ORDER``, ``PRODUCT_UNAVAILABLE``,
              ``OUT_OF_STOCK``, ``INSUFFICIENT_INVENTORY`` or
              ``PRICING_MISMATCH`` for business rule failures.
            - 401 with ``AUTHENTICATION_REQUIRED`` without a caller.
            - 404 with ``CUSTOMER_NOT_FOUND`` for an unknown caller.
            - 503 with ``UPSTREAM_UNAVAILABLE`` when the catalog is down.
        """
        denied = _require_caller(request)
        if denied:
            return denied

        dto = CreateOrderDTO.model_validate(request.data)
        client_pricing = None
        if dto.pricing is not None:
            client_pricing = PricingBreakdown(**dto.pricing.model_dump())

        req = CheckoutRequest(
            customer_id=self.caller(request),
            shipping_address=dto.shipping_address.model_dump(exclude_none=True),
            payment_method=dto.payment_info.method.value,
            transaction_id=dto.payment_info.transaction_id,
            last_four=dto.payment_info.last_four,
            items=[RequestedItem(i.product_id, i.quantity, i.variant) for i in dto.items],
            notes=dto.notes,
            promo_code=dto.promo_code,
            client_pricing=client_pricing,
        )
        order = providers.get_order_service().place_order(req)
        return Response(serialize_order(order), status=status.HTTP_201_CREATED)


class RetrieveOrderView(OrdersAPIView):
    """Read (GET) or cancel (DELETE) a single order."""

    def get_throttles(self):
        self.throttle_scope = "orders_detail" if self.request.method == "GET" else "orders_update"
        return [throttle() for throttle in self.throttle_classes]

    def get(self, request, oid):
        order = OrderRepository().get(oid, customer_id=self.scope_for(request))
        if order is None:
            raise OrderNotFound("Order not found")
        return Response(serialize_order(order), status=status.HTTP_200_OK)

    def delete(self, request, oid):
        """Cancel an order and return its units to the catalog.

        Returns:
            Response: 200 with the cancelled order; 400 with
            ``INVALID_TRANSITION`` once shipped or delivered; 404 when the
            order is absent or belongs to another customer.
        """
        scope = self.scope_for(request)
        if scope and OrderRepository().get(oid, customer_id=scope) is None:
            raise OrderNotFound("Order not found")
        order = providers.get_lifecycle().cancel(oid, actor=self.caller(request))
        return Response(serialize_order(order), status=status.HTTP_200_OK)


class OrderStatusView(OrdersAPIView):
    """Change an order's status and optionally attach tracking."""

    throttle_scope = "orders_update"

    def put(self, request, oid):
        """Move an order to a new status, attach tracking, or both.

        Sending the current status together with a tracking number only
        updates tracking.

        Returns:
            Response: 200 with the order; 400 with ``INVALID_TRANSITION``
            or ``VALIDATION_ERROR``; 403 for customer callers; 404 for an
            unknown order.
        """
        denied = self.forbid_customers(request)
        if denied:
            return denied
        dto = StatusUpdateDTO.model_validate(request.data)
        order = OrderRepository().get(oid)
        if order is None:
            raise OrderNotFound("Order not found")

        lifecycle = providers.get_lifecycle()
        if dto.status != order.status or not dto.tracking_number:
            order = lifecycle.transition(oid, dto.status, actor=self.caller(request), note=dto.notes)
        if dto.tracking_number:
            order = lifecycle.attach_tracking(
                oid,
                carrier=dto.carrier,
                tracking_number=dto.tracking_number,
                estimated_delivery=dto.estimated_delivery,
            )
        return Response(serialize_order(order), status=status.HTTP_200_OK)


class BulkStatusView(OrdersAPIView):
    """Apply one status to many orders; each order succeeds or fails alone."""

    throttle_scope = "orders_update"

    def put(self, request):
        denied = self.forbid_customers(request)
        if denied:
            return denied
        dto = BulkStatusDTO.model_validate(request.data)
        result = providers.get_lifecycle().bulk_transition(
            dto.order_ids, dto.status, actor=self.caller(request), note=dto.notes
        )
        return Response(
            {
                "updated": result.updated,
                "failed": result.failed,
                "updated_count": len(result.updated),
                "failed_count": len(result.failed),
            },
            status=status.HTTP_200_OK,
        )


class CustomerOrdersView(OrdersAPIView):
    throttle_scope = "orders_list"

    def get(self, request, customer_id: str):
        denied = _require_caller(request)
        if denied:
            return denied
        if not self.is_admin(request) and self.caller(request) != customer_id:
            return error_response("FORBIDDEN", "Access denied", status.HTTP_403_FORBIDDEN)

        page = providers.get_query_service().customer_orders(
            customer_id,
            page=_int_param(request, "page", 1, high=10_000),
            limit=_int_param(request, "limit", 10),
        )
        return Response(
            {
                "count": len(page.orders),
                "results": [serialize_order(o) for o in page.orders],
                "total": page.total,
                "page": page.page,
                "limit": page.limit,
                "total_pages": page.total_pages,
            },
            status=status.HTTP_200_OK,
        )


class OrderStatsView(OrdersAPIView):
    throttle_scope = "orders_list"

    def get(self, request):
        period = _int_param(request, "period", 30, high=3650)
        stats = providers.get_query_service().stats(period_days=period)
        return Response(OrderStatsRead(**stats).model_dump(mode="json"), status=status.HTTP_200_OK)


class RecentOrdersView(OrdersAPIView):
    throttle_scope = "orders_list"

    def get(self, request):
        orders = providers.get_query_service().recent_orders(limit=_int_param(request, "limit", 10))
        return Response({"results": [serialize_order(o) for o in orders]}, status=status.HTTP_200_OK)


class CartView(OrdersAPIView):
    """The caller's stored cart, used when an order is placed without items."""

    throttle_scope = "cart"

    def _render(self, items):
        return Response(
            {"items": [CartItemRead.model_validate(i).model_dump(mode="json") for i in items]},
            status=status.HTTP_200_OK,
        )

    def get(self, request):
        denied = _require_caller(request)
        if denied:
            return denied
        return self._render(CartRepository().items(self.caller(request)))

    def post(self, request):
        """Add units of a product to the cart.

        Returns:
            Response: 200 with the updated cart; 400 with
            ``PRODUCT_UNAVAILABLE`` for unknown or inactive products; 404
            with ``CUSTOMER_NOT_FOUND`` for an unknown caller.
        """
        denied = _require_caller(request)
        if denied:
            return denied
        dto = CartItemIn.model_validate(request.data)
        if providers.get_customers().get(self.caller(request)) is None:
            return error_response("CUSTOMER_NOT_FOUND", "Customer not found", status.HTTP_404_NOT_FOUND)
        if providers.get_catalog().get_product(dto.product_id) is None:
            raise ProductUnavailable(f"Product {dto.product_id} is no longer available")
        items = CartRepository().add(self.caller(request), dto.product_id, dto.quantity, dto.variant)
        return self._render(items)

    def delete(self, request):
        denied = _require_caller(request)
        if denied:
            return denied
        CartRepository().clear(self.caller(request))
        return self._render([])
