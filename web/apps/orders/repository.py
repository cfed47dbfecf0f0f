"""Repository layer for orders, customers and carts.

Thin Django ORM implementations of the domain ports. They translate
between ORM rows and the domain dataclasses so the domain layer is not
coupled to Django.
"""

import uuid
from typing import List, Optional

from django.db import transaction

from .domain import (
    CART_LINE_MAX,
    Customer,
    CustomerInfo,
    LineItem,
    Order,
    OrderStatus,
    PaymentInfo,
    PricingBreakdown,
    RequestedItem,
    StatusEvent,
    Tracking,
    generate_order_number,
)
from .errors import CartLimitExceeded, OrderNotFound
from .lifecycle import ensure_transition
from .models import (
    CartItemModel,
    CustomerModel,
    OrderLineModel,
    OrderModel,
    OrderStatusEventModel,
)

ORDER_NUMBER_ATTEMPTS = 5


def _parse_uuid(value) -> Optional[uuid.UUID]:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def to_domain(obj: OrderModel) -> Order:
    """Map an ``OrderModel`` (with lines and history) to a domain ``Order``."""
    tracking = None
    if obj.tracking_number:
        tracking = Tracking(
            carrier=obj.carrier,
            tracking_number=obj.tracking_number,
            estimated_delivery=obj.estimated_delivery,
        )
    return Order(
        id=obj.id,
        order_number=obj.order_number,
        customer_id=obj.customer_id,
        customer_info=CustomerInfo(
            name=obj.customer_name,
            email=obj.customer_email,
            phone=obj.customer_phone or None,
        ),
        items=[
            LineItem(
                product_id=line.product_id,
                name=line.name,
                unit_price=line.unit_price,
                quantity=line.quantity,
                variant=line.variant or {},
            )
            for line in obj.lines.all()
        ],
        pricing=PricingBreakdown(
            subtotal=obj.subtotal,
            tax=obj.tax,
            shipping=obj.shipping,
            discount=obj.discount,
            total=obj.total,
        ),
        shipping_address=obj.shipping_address or {},
        payment_info=PaymentInfo(
            method=obj.payment_method,
            status=obj.payment_status,
            transaction_id=obj.transaction_id or None,
            last_four=obj.card_last_four or None,
        ),
        notes=obj.notes or None,
        promo_code=obj.promo_code or None,
        status=OrderStatus(obj.status),
        status_history=[
            StatusEvent(
                status=OrderStatus(ev.status),
                changed_at=ev.changed_at,
                actor=ev.actor or None,
                note=ev.note or None,
            )
            for ev in obj.history.all()
        ],
        tracking=tracking,
        created_at=obj.created_at,
        updated_at=obj.updated_at,
    )


def with_relations(qs):
    return qs.prefetch_related("lines", "history")


class OrderRepository:
    """Repository that persists Order domain objects using Django ORM."""

    def _unused_order_number(self) -> str:
        for _ in range(ORDER_NUMBER_ATTEMPTS):
            number = generate_order_number()
            if not OrderModel.objects.filter(order_number=number).exists():
                return number
        raise RuntimeError("ORDER_NUMBER_EXHAUSTED")

    @transaction.atomic
    def create(self, order: Order) -> Order:
        """Persist a new order with its lines and history in one transaction.

        Args:
            order: Domain ``Order`` with ``id`` None.

        Returns:
            The stored order re-read from the database.
        """
        obj = OrderModel.objects.create(
            order_number=self._unused_order_number(),
            customer_id=order.customer_id,
            customer_name=order.customer_info.name,
            customer_email=order.customer_info.email,
            customer_phone=order.customer_info.phone or "",
            status=OrderStatus(order.status).value,
            subtotal=order.pricing.subtotal,
            tax=order.pricing.tax,
            shipping=order.pricing.shipping,
            discount=order.pricing.discount,
            total=order.pricing.total,
            shipping_address=order.shipping_address,
            payment_method=order.payment_info.method,
            payment_status=order.payment_info.status,
            transaction_id=order.payment_info.transaction_id or "",
            card_last_four=order.payment_info.last_four or "",
            notes=order.notes or "",
            promo_code=order.promo_code or "",
        )
        OrderLineModel.objects.bulk_create([
            OrderLineModel(
                order=obj,
                position=pos,
                product_id=li.product_id,
                name=li.name,
                unit_price=li.unit_price,
                quantity=li.quantity,
                line_total=li.line_total,
                variant=li.variant,
            )
            for pos, li in enumerate(order.items)
        ])
        OrderStatusEventModel.objects.bulk_create([
            OrderStatusEventModel(
                order=obj,
                status=OrderStatus(ev.status).value,
                changed_at=ev.changed_at,
                actor=ev.actor or "",
                note=ev.note or "",
            )
            for ev in order.status_history
        ])
        return self.get(obj.id)

    def get(self, order_id, customer_id: str | None = None) -> Optional[Order]:
        """Load an order, optionally requiring it to belong to ``customer_id``."""
        oid = _parse_uuid(order_id)
        if oid is None:
            return None
        qs = with_relations(OrderModel.objects.filter(id=oid))
        if customer_id is not None:
            qs = qs.filter(customer_id=customer_id)
        obj = qs.first()
        return to_domain(obj) if obj else None

    @transaction.atomic
    def record_status(self, order_id, event: StatusEvent) -> Order:
        """Apply a status change to the locked row and append the event.

        Raises:
            OrderNotFound: Unknown order id.
            InvalidTransition: The stored status no longer allows the change.
        """
        obj = OrderModel.objects.select_for_update().filter(id=order_id).first()
        if obj is None:
            raise OrderNotFound("Order not found")
        ensure_transition(OrderStatus(obj.status), event.status)
        obj.status = OrderStatus(event.status).value
        obj.save(update_fields=["status", "updated_at"])
        OrderStatusEventModel.objects.create(
            order=obj,
            status=obj.status,
            changed_at=event.changed_at,
            actor=event.actor or "",
            note=event.note or "",
        )
        return self.get(obj.id)

    def attach_tracking(self, order_id, tracking: Tracking) -> Order:
        updated = OrderModel.objects.filter(id=order_id).update(
            carrier=tracking.carrier,
            tracking_number=tracking.tracking_number,
            estimated_delivery=tracking.estimated_delivery,
        )
        if not updated:
            raise OrderNotFound("Order not found")
        # queryset.update() bypasses auto_now
        obj = OrderModel.objects.get(id=order_id)
        obj.save(update_fields=["updated_at"])
        return self.get(order_id)


class CustomerRepository:
    def get(self, customer_id: str) -> Optional[Customer]:
        obj = CustomerModel.objects.filter(id=customer_id).first()
        if obj is None:
            return None
        return Customer(id=obj.id, name=obj.name, email=obj.email, phone=obj.phone or None)


class CartRepository:
    """Stored shopping carts, one row per product/variant line."""

    def items(self, customer_id: str) -> List[RequestedItem]:
        return [
            RequestedItem(product_id=row.product_id, quantity=row.quantity, variant=row.variant or {})
            for row in CartItemModel.objects.filter(customer_id=customer_id)
        ]

    def add(self, customer_id: str, product_id: str, quantity: int, variant: dict | None = None) -> List[RequestedItem]:
        """Add units of a product, merging with an existing identical line.

        Raises:
            CartLimitExceeded: The line would exceed ``CART_LINE_MAX`` units.
        """
        variant = variant or {}
        with transaction.atomic():
            rows = CartItemModel.objects.select_for_update().filter(customer_id=customer_id, product_id=product_id)
            row = next((r for r in rows if (r.variant or {}) == variant), None)
            merged = (row.quantity if row else 0) + quantity
            if merged > CART_LINE_MAX:
                raise CartLimitExceeded(f"A cart line holds at most {CART_LINE_MAX} units")
            if row:
                row.quantity = merged
                row.save(update_fields=["quantity"])
            else:
                CartItemModel.objects.create(
                    customer_id=customer_id, product_id=product_id, quantity=quantity, variant=variant
                )
        return self.items(customer_id)

    def clear(self, customer_id: str) -> None:
        CartItemModel.objects.filter(customer_id=customer_id).delete()
