"""Domain models, ports and services for placing orders.

This module contains the dataclasses used as DTOs for orders, protocol
definitions (ports) for the collaborators the workflow depends on
(catalog, customers, carts, order storage), the inventory validator, and
the domain service that orchestrates checkout. It does not perform any
persistence or network I/O itself.
"""

import logging
import random
import time
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Protocol

from .errors import (
    CustomerNotFound,
    EmptyOrder,
    InsufficientInventory,
    OutOfStock,
    ProductUnavailable,
)
from .pricing import CENT, PricingBreakdown, money, resolve_pricing

logger = logging.getLogger("orders")

# units per cart line
CART_LINE_MAX = 999


# ---- Enums ----
class OrderStatus(str, Enum):
    """Enumeration of the possible order statuses.

    ``delivered`` and ``cancelled`` are terminal.
    """

    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    PAYPAL = "paypal"
    APPLE_PAY = "apple_pay"
    GOOGLE_PAY = "google_pay"


# ---- Entities / DTOs ----
@dataclass(frozen=True)
class ProductSnapshot:
    """Catalog view of a product as seen at lookup time."""

    id: str
    name: str
    price: Decimal
    inventory_count: int
    is_active: bool = True
    in_stock: bool = True


@dataclass(frozen=True)
class RequestedItem:
    """A product/quantity pair as requested by the client or read from a cart."""

    product_id: str
    quantity: int
    variant: dict = field(default_factory=dict)


@dataclass(frozen=True)
class LineItem:
    """A single line item in an order.

    Attributes:
        product_id: Catalog product identifier.
        name: Product name captured at order time.
        unit_price: Product price captured at order time.
        quantity: Number of units ordered (positive).
        variant: Free-form descriptor such as size or color.

    The dataclass is frozen because items are immutable once they belong
    to an order.
    """

    product_id: str
    name: str
    unit_price: Decimal
    quantity: int
    variant: dict = field(default_factory=dict)

    @property
    def line_total(self) -> Decimal:
        return money(self.unit_price * self.quantity)


@dataclass(frozen=True)
class Customer:
    id: str
    name: str
    email: str
    phone: str | None = None


@dataclass(frozen=True)
class CustomerInfo:
    """Customer details frozen onto the order at creation time."""

    name: str
    email: str
    phone: str | None = None


@dataclass(frozen=True)
class PaymentInfo:
    method: str
    status: str = "completed"
    transaction_id: str | None = None
    last_four: str | None = None


@dataclass(frozen=True)
class StatusEvent:
    status: OrderStatus
    changed_at: datetime
    actor: str | None = None
    note: str | None = None


@dataclass(frozen=True)
class Tracking:
    carrier: str
    tracking_number: str
    estimated_delivery: date | None = None


@dataclass
class Order:
    """Container for order data.

    Attributes:
        id: Persistent UUID, or None if not yet saved.
        order_number: Human readable display number, assigned on save.
        customer_info: Snapshot of the customer at creation time.
        items: Line items with price snapshots.
        pricing: Server-computed pricing breakdown.
        status: Current OrderStatus.
        status_history: Append-only list of status changes.
        tracking: Shipment tracking, attached after creation.
    """

    id: object | None
    customer_id: str
    customer_info: CustomerInfo
    items: List[LineItem]
    pricing: PricingBreakdown
    shipping_address: dict
    payment_info: PaymentInfo
    order_number: str | None = None
    notes: str | None = None
    promo_code: str | None = None
    status: OrderStatus = OrderStatus.PENDING
    status_history: List[StatusEvent] = field(default_factory=list)
    tracking: Tracking | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class CheckoutRequest:
    """Everything the caller supplies to place an order.

    ``items`` may be empty, in which case the customer's stored cart is
    used. ``client_pricing`` is only used to cross-check the server total.
    """

    customer_id: str
    shipping_address: dict
    payment_method: str
    transaction_id: str | None = None
    last_four: str | None = None
    items: List[RequestedItem] = field(default_factory=list)
    notes: str | None = None
    promo_code: str | None = None
    client_pricing: PricingBreakdown | None = None


def generate_order_number(now_ms: int | None = None) -> str:
    """Return a display order number ``ORD-<unix-ms>-<0..9999>``.

    Not unique by construction; the order store checks for collisions.
    """
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"ORD-{now_ms}-{random.randint(0, 9999)}"


# ---- Ports (DIP) ----
class CatalogPort(Protocol):
    """Port describing catalog operations used by the domain."""

    def get_product(self, product_id: str) -> Optional[ProductSnapshot]:
        """Return the product, or None if it does not exist or is inactive."""
        raise NotImplementedError()

    def reserve(self, items: List[RequestedItem]) -> bool:
        """Atomically decrement inventory for all items.

        Returns:
            True if every item was reserved, False if none were.
        """
        raise NotImplementedError()

    def release(self, items: List[RequestedItem]) -> None:
        """Return units to inventory."""
        raise NotImplementedError()


class CustomerPort(Protocol):
    def get(self, customer_id: str) -> Optional[Customer]:
        raise NotImplementedError()


class CartPort(Protocol):
    def items(self, customer_id: str) -> List[RequestedItem]:
        raise NotImplementedError()

    def clear(self, customer_id: str) -> None:
        raise NotImplementedError()


class OrderStorePort(Protocol):
    """Port for order persistence."""

    def create(self, order: Order) -> Order:
        """Persist a new order, assigning id, order number and timestamps."""
        raise NotImplementedError()

    def get(self, order_id) -> Optional[Order]:
        raise NotImplementedError()

    def record_status(self, order_id, event: StatusEvent) -> Order:
        """Set the current status and append ``event`` to the history."""
        raise NotImplementedError()

    def attach_tracking(self, order_id, tracking: Tracking) -> Order:
        raise NotImplementedError()


# ---- Domain services ----
class InventoryValidator:
    """Checks requested items against the catalog, fail-fast.

    Validation does not reserve anything; the reservation is a separate
    atomic step performed by the catalog.
    """

    def __init__(self, catalog: CatalogPort):
        self.catalog = catalog

    def validate(self, requested: List[RequestedItem], drop_missing: bool = False) -> List[LineItem]:
        """Resolve requested items into priced line items.

        Args:
            requested: Items in request order.
            drop_missing: Skip items whose product no longer exists instead
                of failing (used for stored carts).

        Returns:
            Line items carrying name and price snapshots.

        Raises:
            ProductUnavailable: Product missing or inactive.
            OutOfStock: Product flagged out of stock.
            InsufficientInventory: Fewer units on hand than requested.
        """
        lines: List[LineItem] = []
        for item in requested:
            product = self.catalog.get_product(item.product_id)
            if product is None and drop_missing:
                continue
            if product is None or not product.is_active:
                raise ProductUnavailable(f"Product {item.product_id} is no longer available")
            if not product.in_stock:
                raise OutOfStock(f"Product {product.name} is out of stock")
            if product.inventory_count < item.quantity:
                raise InsufficientInventory(
                    f"Only {product.inventory_count} units of {product.name} available"
                )
            lines.append(
                LineItem(
                    product_id=product.id,
                    name=product.name,
                    unit_price=money(product.price),
                    quantity=item.quantity,
                    variant=dict(item.variant or {}),
                )
            )
        return lines


class OrderService:
    """Domain service responsible for placing orders.

    Orchestrates validation, pricing, inventory reservation, persistence
    and cart clearing through the provided ports.
    """

    def __init__(
        self,
        catalog: CatalogPort,
        customers: CustomerPort,
        carts: CartPort,
        orders: OrderStorePort,
        pricing_tolerance: Decimal = CENT,
    ):
        self.catalog = catalog
        self.customers = customers
        self.carts = carts
        self.orders = orders
        self.validator = InventoryValidator(catalog)
        self.pricing_tolerance = pricing_tolerance

    def place_order(self, req: CheckoutRequest) -> Order:
        """Place an order: validate, price, reserve stock, persist, clear cart.

        Nothing is persisted and no inventory is held when any step before
        persistence fails. If persistence itself fails, the reservation is
        released before the error propagates.

        Args:
            req: Checkout request.

        Returns:
            The persisted Order in ``pending`` status.

        Raises:
            CustomerNotFound: Unknown customer id.
            EmptyOrder: No explicit items and an empty cart.
            ProductUnavailable, OutOfStock, InsufficientInventory: See
                ``InventoryValidator``; InsufficientInventory is also raised
                when the atomic reservation loses a race.
            PricingMismatch: Client totals disagree with the server.
        """
        customer = self.customers.get(req.customer_id)
        if customer is None:
            raise CustomerNotFound(f"Customer {req.customer_id} not found")

        if req.items:
            lines = self.validator.validate(req.items)
        else:
            cart_items = self.carts.items(req.customer_id)
            lines = self.validator.validate(cart_items, drop_missing=True)
        if not lines:
            raise EmptyOrder("Your cart is empty. Please add some items before checkout.")

        pricing = resolve_pricing(lines, req.promo_code, req.client_pricing, self.pricing_tolerance)

        # 1) Reserve stock
        reserved = [RequestedItem(li.product_id, li.quantity) for li in lines]
        if not self.catalog.reserve(reserved):
            raise InsufficientInventory("Inventory changed for one or more products, please retry")

        # 2) Persist
        draft = Order(
            id=None,
            customer_id=customer.id,
            customer_info=CustomerInfo(
                name=customer.name,
                email=customer.email,
                phone=customer.phone or req.shipping_address.get("phone"),
            ),
            items=lines,
            pricing=pricing,
            shipping_address=dict(req.shipping_address),
            payment_info=PaymentInfo(
                method=req.payment_method,
                status="completed",
                transaction_id=req.transaction_id,
                last_four=req.last_four,
            ),
            notes=req.notes,
            promo_code=req.promo_code,
            status_history=[
                StatusEvent(OrderStatus.PENDING, datetime.now(timezone.utc), customer.id, "Order placed")
            ],
        )
        try:
            order = self.orders.create(draft)
        except Exception:
            logger.warning("order persistence failed, releasing reservation",
                           extra={"customer_id": customer.id})
            self.catalog.release(reserved)
            raise

        # 3) Clear cart
        self.carts.clear(customer.id)
        logger.info("order placed", extra={"order_number": order.order_number, "total": str(pricing.total)})
        return order
