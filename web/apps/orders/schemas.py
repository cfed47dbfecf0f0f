"""Pydantic schemas for orders.

This module exposes the request/validation schemas used by the orders API
and the read DTOs used to render responses. Request schemas accept both
snake_case keys and the camelCase keys sent by the storefront client.
"""

import re
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Annotated, List, Literal, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from .domain import CART_LINE_MAX, OrderStatus, PaymentMethod


ZIP_RE = re.compile(r"^\d{5}(-\d{4})?$")
LAST_FOUR_RE = re.compile(r"^\d{4}$")

Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class RequestModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)


class ShippingAddressIn(RequestModel):
    """Shipping address for an order.

    Attributes:
        zip_code: US ZIP or ZIP+4 (``12345`` or ``12345-6789``).
        phone: Used as the order contact phone when the customer record
            has none.
    """

    name: str = Field(min_length=2, max_length=100)
    address: str = Field(min_length=5, max_length=200)
    city: str = Field(min_length=2, max_length=100)
    state: str = Field(min_length=2, max_length=50)
    zip_code: str
    country: Optional[str] = Field(default=None, min_length=2, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=32)

    @field_validator("zip_code")
    @classmethod
    def validate_zip(cls, v: str) -> str:
        if not ZIP_RE.match(v):
            raise ValueError("Please provide a valid ZIP code")
        return v


class PaymentInfoIn(RequestModel):
    """Payment details captured by the payment gateway before checkout."""

    method: PaymentMethod
    transaction_id: Optional[str] = Field(default=None, max_length=100)
    last_four: Optional[str] = None

    @field_validator("last_four")
    @classmethod
    def validate_last_four(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not LAST_FOUR_RE.match(v):
            raise ValueError("Last four digits must be exactly 4 numbers")
        return v


class OrderItemIn(RequestModel):
    """Input schema for a single order line item.

    Attributes:
        product_id: Catalog product identifier.
        quantity: Positive integer indicating units requested.
        variant: Optional descriptor such as ``{"size": "M"}``.
    """

    product_id: str = Field(min_length=1, max_length=64)
    quantity: int = Field(gt=0)
    variant: dict[str, str] = Field(default_factory=dict)


class PricingIn(RequestModel):
    subtotal: Decimal = Field(ge=0)
    tax: Decimal = Field(ge=0)
    shipping: Decimal = Field(ge=0)
    discount: Decimal = Field(default=Decimal("0"), ge=0)
    total: Decimal = Field(ge=0)


class CreateOrderDTO(RequestModel):
    """Schema for creating an order.

    Attributes:
        items: Explicit line items. When empty the stored cart is used.
        pricing: Optional client-side totals, verified against the server
            computation.
    """

    shipping_address: ShippingAddressIn
    payment_info: PaymentInfoIn
    items: List[OrderItemIn] = Field(default_factory=list)
    pricing: Optional[PricingIn] = None
    notes: Optional[str] = Field(default=None, max_length=1000)
    promo_code: Optional[str] = Field(default=None, max_length=50)


class StatusUpdateDTO(RequestModel):
    status: OrderStatus
    notes: Optional[str] = Field(default=None, max_length=500)
    tracking_number: Optional[str] = Field(default=None, max_length=100)
    carrier: Optional[str] = Field(default=None, max_length=100)
    estimated_delivery: Optional[date] = None

    @model_validator(mode="after")
    def tracking_needs_carrier(self) -> "StatusUpdateDTO":
        if self.tracking_number and not self.carrier:
            raise ValueError("Carrier is required with a tracking number")
        return self


class BulkStatusDTO(RequestModel):
    order_ids: List[uuid.UUID] = Field(min_length=1)
    status: OrderStatus
    notes: Optional[str] = Field(default=None, max_length=500)


class OrderListQuery(RequestModel):
    """Query string for the orders collection."""

    status: Optional[Literal["all", "pending", "processing", "shipped", "delivered", "cancelled"]] = None
    customer_id: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    search: Optional[str] = Field(default=None, max_length=100)
    sort_by: str = "created_at"
    sort_order: Literal["asc", "desc"] = "desc"
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def expand_plain_dates(cls, v):
        # "2024-05-01" -> midnight
        if isinstance(v, str) and len(v) == 10:
            return f"{v}T00:00:00"
        return v

    @field_validator("start_date", "end_date")
    @classmethod
    def assume_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class CartItemIn(RequestModel):
    product_id: str = Field(min_length=1, max_length=64)
    quantity: int = Field(gt=0, le=CART_LINE_MAX)
    variant: dict[str, str] = Field(default_factory=dict)


# ---- Read DTOs ----
class ReadModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class LineItemRead(ReadModel):
    product_id: str
    name: str
    unit_price: Money
    quantity: int
    line_total: Money
    variant: dict


class PricingRead(ReadModel):
    subtotal: Money
    tax: Money
    shipping: Money
    discount: Money
    total: Money


class CustomerInfoRead(ReadModel):
    name: str
    email: str
    phone: Optional[str] = None


class PaymentInfoRead(ReadModel):
    method: str
    status: str
    transaction_id: Optional[str] = None
    last_four: Optional[str] = None


class StatusEventRead(ReadModel):
    status: OrderStatus
    changed_at: datetime
    actor: Optional[str] = None
    note: Optional[str] = None


class TrackingRead(ReadModel):
    carrier: str
    tracking_number: str
    estimated_delivery: Optional[date] = None


class OrderReadDTO(ReadModel):
    id: uuid.UUID
    order_number: str
    customer_id: str
    customer_info: CustomerInfoRead
    items: List[LineItemRead]
    pricing: PricingRead
    shipping_address: dict
    payment_info: PaymentInfoRead
    notes: Optional[str] = None
    promo_code: Optional[str] = None
    status: OrderStatus
    status_history: List[StatusEventRead]
    tracking: Optional[TrackingRead] = None
    created_at: datetime
    updated_at: datetime


class CartItemRead(ReadModel):
    product_id: str
    quantity: int
    variant: dict


class StatusCountRead(BaseModel):
    status: str
    count: int
    total_value: Money


class DailyStatRead(BaseModel):
    day: date
    count: int
    revenue: Money


class OverviewRead(BaseModel):
    total_orders: int
    recent_orders: int
    total_revenue: Money
    average_order_value: Money
    order_count: int


class OrderStatsRead(BaseModel):
    overview: OverviewRead
    status_breakdown: List[StatusCountRead]
    daily_stats: List[DailyStatRead]
