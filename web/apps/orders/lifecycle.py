"""Order status lifecycle.

Status changes go through an explicit transition table; edges that are not
in the table are rejected. The store re-checks the edge under a row lock
when it records the change, and a cancelled order returns its units to the
catalog only after the cancellation is committed.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Iterable, List

from .domain import (
    CatalogPort,
    Order,
    OrderStatus,
    OrderStorePort,
    RequestedItem,
    StatusEvent,
    Tracking,
)
from .errors import InvalidTransition, OrderError, OrderNotFound

logger = logging.getLogger("orders")

TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in TRANSITIONS[OrderStatus(current)]


def ensure_transition(current: OrderStatus, target: OrderStatus) -> None:
    """Raise ``InvalidTransition`` unless ``current -> target`` is allowed."""
    current, target = OrderStatus(current), OrderStatus(target)
    if can_transition(current, target):
        return
    if target == OrderStatus.CANCELLED and current in (OrderStatus.SHIPPED, OrderStatus.DELIVERED):
        raise InvalidTransition("Cannot cancel order that has been shipped or delivered")
    raise InvalidTransition(f"Cannot change order status from {current.value} to {target.value}")


@dataclass
class BulkResult:
    """Outcome of a bulk status update; each order succeeds or fails alone."""

    updated: List[str] = field(default_factory=list)
    failed: List[dict] = field(default_factory=list)


class OrderLifecycle:
    """Owns status transitions and their side effects."""

    def __init__(self, orders: OrderStorePort, catalog: CatalogPort):
        self.orders = orders
        self.catalog = catalog

    def _load(self, order_id) -> Order:
        order = self.orders.get(order_id)
        if order is None:
            raise OrderNotFound("Order not found")
        return order

    def transition(self, order_id, target: OrderStatus, actor: str | None = None, note: str | None = None) -> Order:
        """Move an order to ``target`` and append a status history entry.

        Cancellation releases the order's units only once the store has
        recorded the new status, so a failed write leaves inventory alone
        and a concurrent second cancel is rejected by the store.

        Raises:
            OrderNotFound: Unknown order id.
            InvalidTransition: The edge is not in ``TRANSITIONS``.
        """
        target = OrderStatus(target)
        order = self._load(order_id)
        current = OrderStatus(order.status)
        ensure_transition(current, target)

        event = StatusEvent(status=target, changed_at=datetime.now(timezone.utc), actor=actor, note=note)
        updated = self.orders.record_status(order.id, event)
        logger.info("order status changed", extra={
            "order_number": order.order_number, "from": current.value, "to": target.value,
        })

        if target == OrderStatus.CANCELLED:
            try:
                self.catalog.release([RequestedItem(li.product_id, li.quantity) for li in updated.items])
            except Exception:
                logger.exception("inventory release failed", extra={"order_number": order.order_number})
                raise
        return updated

    def cancel(self, order_id, actor: str | None = None, note: str = "Order cancelled") -> Order:
        return self.transition(order_id, OrderStatus.CANCELLED, actor=actor, note=note)

    def attach_tracking(
        self,
        order_id,
        carrier: str,
        tracking_number: str,
        estimated_delivery: date | None = None,
    ) -> Order:
        """Attach shipment tracking. Allowed in any status."""
        order = self._load(order_id)
        tracking = Tracking(carrier=carrier, tracking_number=tracking_number, estimated_delivery=estimated_delivery)
        return self.orders.attach_tracking(order.id, tracking)

    def bulk_transition(
        self,
        order_ids: Iterable,
        target: OrderStatus,
        actor: str | None = None,
        note: str | None = None,
    ) -> BulkResult:
        """Apply ``transition`` to each order independently.

        There is no rollback: failures are collected per id and the
        remaining orders are still processed.
        """
        result = BulkResult()
        for oid in order_ids:
            try:
                self.transition(oid, target, actor=actor, note=note)
            except OrderError as e:
                result.failed.append({"id": str(oid), "detail": str(e), "message": e.message})
            else:
                result.updated.append(str(oid))
        return result
