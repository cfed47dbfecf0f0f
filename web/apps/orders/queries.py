"""Read-only projections over persisted orders.

Filtering, sorting, pagination and dashboard statistics. Nothing here
mutates state.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Optional

from django.db.models import Avg, Count, Q, Sum
from django.db.models.functions import TruncDate
from django.utils import timezone

from .domain import Order, OrderStatus
from .models import OrderModel
from .pricing import money
from .repository import to_domain, with_relations

# public sort key -> model field
SORT_FIELDS = {
    "created_at": "created_at",
    "updated_at": "updated_at",
    "order_number": "order_number",
    "status": "status",
    "total": "total",
    "customer_name": "customer_name",
}

DAILY_WINDOW_DAYS = 7


@dataclass
class OrderFilters:
    status: Optional[str] = None
    customer_id: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    search: Optional[str] = None
    sort_by: str = "created_at"
    sort_order: str = "desc"
    page: int = 1
    limit: int = 20


@dataclass
class OrderPage:
    orders: List[Order]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


def _amount(value) -> Decimal:
    return money(value if value is not None else 0)


class OrderQueryService:
    """Order listings and statistics backed by the Django ORM."""

    def _paginate(self, qs, page: int, limit: int) -> OrderPage:
        total = qs.count()
        offset = (page - 1) * limit
        rows = with_relations(qs)[offset:offset + limit]
        return OrderPage(orders=[to_domain(o) for o in rows], total=total, page=page, limit=limit)

    def list_orders(self, filters: OrderFilters, scope_customer_id: str | None = None) -> OrderPage:
        """Filter, sort and paginate orders.

        Args:
            filters: Query parameters.
            scope_customer_id: When set, only this customer's orders are
                visible and ``filters.customer_id`` is ignored.

        Raises:
            ValueError: If ``filters.sort_by`` is not a sortable field.
        """
        if filters.sort_by not in SORT_FIELDS:
            raise ValueError(f"Unsupported sort field: {filters.sort_by}")

        qs = OrderModel.objects.all()
        customer_id = scope_customer_id or filters.customer_id
        if customer_id:
            qs = qs.filter(customer_id=customer_id)
        if filters.status and filters.status != "all":
            qs = qs.filter(status=filters.status)
        if filters.start_date:
            qs = qs.filter(created_at__gte=filters.start_date)
        if filters.end_date:
            qs = qs.filter(created_at__lte=filters.end_date)
        if filters.search:
            term = filters.search.strip()
            qs = qs.filter(
                Q(order_number__icontains=term)
                | Q(customer_name__icontains=term)
                | Q(customer_email__icontains=term)
            )

        field = SORT_FIELDS[filters.sort_by]
        prefix = "-" if filters.sort_order == "desc" else ""
        qs = qs.order_by(f"{prefix}{field}", f"{prefix}id")
        return self._paginate(qs, filters.page, filters.limit)

    def customer_orders(self, customer_id: str, page: int = 1, limit: int = 10) -> OrderPage:
        qs = OrderModel.objects.filter(customer_id=customer_id).order_by("-created_at", "-id")
        return self._paginate(qs, page, limit)

    def recent_orders(self, limit: int = 10) -> List[Order]:
        rows = with_relations(OrderModel.objects.order_by("-created_at", "-id"))[:limit]
        return [to_domain(o) for o in rows]

    def status_breakdown(self, customer_id: str | None = None) -> List[dict]:
        """Order count and summed total per status, optionally for one customer."""
        qs = OrderModel.objects.all()
        if customer_id:
            qs = qs.filter(customer_id=customer_id)
        return [
            {"status": row["status"], "count": row["count"], "total_value": _amount(row["total_value"])}
            for row in qs.values("status")
            .annotate(count=Count("id"), total_value=Sum("total"))
            .order_by("status")
        ]

    def stats(self, period_days: int = 30, now: datetime | None = None) -> dict:
        """Aggregate dashboard statistics.

        Args:
            period_days: Window for ``recent_orders`` and revenue figures.
            now: Reference time, defaults to the current time.

        Returns:
            dict with ``overview``, ``status_breakdown`` and ``daily_stats``.
            Revenue excludes cancelled orders. ``daily_stats`` covers the
            trailing seven days and omits days without orders.
        """
        now = now or timezone.now()
        since = now - timedelta(days=period_days)
        qs = OrderModel.objects.all()

        total_orders = qs.count()
        recent_orders = qs.filter(created_at__gte=since).count()

        status_breakdown = self.status_breakdown()

        revenue = (
            qs.exclude(status=OrderStatus.CANCELLED.value)
            .filter(created_at__gte=since)
            .aggregate(total_revenue=Sum("total"), average_order_value=Avg("total"), order_count=Count("id"))
        )

        daily_stats = [
            {"day": row["day"], "count": row["count"], "revenue": _amount(row["revenue"])}
            for row in qs.filter(created_at__gte=now - timedelta(days=DAILY_WINDOW_DAYS))
            .annotate(day=TruncDate("created_at"))
            .values("day")
            .annotate(count=Count("id"), revenue=Sum("total"))
            .order_by("day")
        ]

        return {
            "overview": {
                "total_orders": total_orders,
                "recent_orders": recent_orders,
                "total_revenue": _amount(revenue["total_revenue"]),
                "average_order_value": _amount(revenue["average_order_value"]),
                "order_count": revenue["order_count"],
            },
            "status_breakdown": status_breakdown,
            "daily_stats": daily_stats,
        }
