"""In-memory port implementations for domain tests, exposed as fixtures."""

import uuid
from dataclasses import replace
from datetime import datetime, timezone

import pytest

from apps.orders.domain import Customer, generate_order_number
from apps.orders.errors import OrderNotFound
from apps.orders.lifecycle import ensure_transition


class FakeCustomers:
    def __init__(self, *customers):
        self._by_id = {c.id: c for c in customers}

    def get(self, customer_id):
        return self._by_id.get(customer_id)


class FakeCarts:
    def __init__(self, items=None):
        self._items = {}
        self.cleared = []
        for customer_id, lines in (items or {}).items():
            self._items[customer_id] = list(lines)

    def items(self, customer_id):
        return list(self._items.get(customer_id, []))

    def clear(self, customer_id):
        self.cleared.append(customer_id)
        self._items.pop(customer_id, None)


class FakeOrders:
    def __init__(self, fail_on_create=False):
        self.fail_on_create = fail_on_create
        self._orders = {}

    def create(self, order):
        if self.fail_on_create:
            raise RuntimeError("db down")
        now = datetime.now(timezone.utc)
        stored = replace(order, id=uuid.uuid4(), order_number=generate_order_number(), created_at=now, updated_at=now)
        self._orders[stored.id] = stored
        return stored

    def get(self, order_id):
        return self._orders.get(order_id)

    def record_status(self, order_id, event):
        order = self._orders.get(order_id)
        if order is None:
            raise OrderNotFound("Order not found")
        ensure_transition(order.status, event.status)
        updated = replace(order, status=event.status, status_history=[*order.status_history, event])
        self._orders[order_id] = updated
        return updated

    def attach_tracking(self, order_id, tracking):
        updated = replace(self._orders[order_id], tracking=tracking)
        self._orders[order_id] = updated
        return updated

    def __len__(self):
        return len(self._orders)


ADA = Customer(id="c1", name="Ada", email="ada@example.com", phone=None)


@pytest.fixture
def fake_carts():
    return FakeCarts


@pytest.fixture
def fake_orders():
    return FakeOrders


@pytest.fixture
def fake_customers():
    return FakeCustomers(ADA)
