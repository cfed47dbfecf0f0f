"""API tests for reading orders: detail, list filters, customer lists,
recent orders and dashboard statistics."""

from datetime import timedelta
from uuid import uuid4

import pytest
from django.utils import timezone

from apps.orders.models import OrderModel

DETAIL_URL = "/api/orders/{oid}/"
LIST_URL = "/api/orders/"


@pytest.mark.django_db
def test_get_order_by_id_returns_200_and_payload(client, place_order, as_customer):
    created = place_order()
    r = client.get(DETAIL_URL.format(oid=created["id"]), **as_customer("cust-1"))
    assert r.status_code == 200
    assert r.json() == created


@pytest.mark.django_db
def test_get_order_not_found_returns_404(client):
    r = client.get(DETAIL_URL.format(oid=str(uuid4())))
    assert r.status_code == 404
    assert r.json()["detail"] == "NOT_FOUND"


@pytest.mark.django_db
def test_other_customers_order_is_hidden(client, place_order, other_customer, as_customer):
    created = place_order()
    url = DETAIL_URL.format(oid=created["id"])
    assert client.get(url, **as_customer(other_customer.id)).status_code == 404
    assert client.get(url, **as_customer(other_customer.id, admin=True)).status_code == 200


@pytest.mark.django_db
def test_list_orders_shape_and_scoping(client, place_order, other_customer, as_customer):
    place_order()
    place_order()
    place_order(customer_id=other_customer.id)

    r = client.get(LIST_URL, **as_customer("cust-1"))
    assert r.status_code == 200
    body = r.json()
    assert set(body) == {"count", "results", "total", "page", "limit", "total_pages", "stats"}
    assert body["total"] == 2
    assert {o["customer_id"] for o in body["results"]} == {"cust-1"}
    assert body["stats"] == [{"status": "pending", "count": 2, "total_value": 127.98}]

    r = client.get(LIST_URL, **as_customer("admin-1", admin=True))
    assert r.json()["total"] == 3


@pytest.mark.django_db
def test_list_orders_pagination_and_sort(client, place_order):
    for qty in (1, 2, 3):
        place_order(items=[{"productId": "p-shirt", "quantity": qty}])

    r = client.get(LIST_URL, {"sortBy": "total", "sortOrder": "asc", "page": 2, "limit": 2})
    body = r.json()
    assert body["total"] == 3
    assert body["total_pages"] == 2
    assert body["page"] == 2
    assert body["count"] == 1
    assert body["results"][0]["pricing"]["subtotal"] == 75.0


@pytest.mark.django_db
def test_list_orders_filters(client, place_order):
    first = place_order()
    place_order()
    OrderModel.objects.filter(id=first["id"]).update(status="processing")

    r = client.get(LIST_URL, {"status": "processing"})
    assert [o["id"] for o in r.json()["results"]] == [first["id"]]

    r = client.get(LIST_URL, {"status": "all"})
    assert r.json()["total"] == 2

    r = client.get(LIST_URL, {"search": first["order_number"].lower()})
    assert [o["id"] for o in r.json()["results"]] == [first["id"]]

    r = client.get(LIST_URL, {"search": "LOVELACE"})
    assert r.json()["total"] == 2

    tomorrow = (timezone.now() + timedelta(days=1)).date().isoformat()
    r = client.get(LIST_URL, {"startDate": tomorrow})
    assert r.json()["total"] == 0


@pytest.mark.django_db
@pytest.mark.parametrize("params", [{"sortBy": "password"}, {"limit": 500}, {"page": 0}, {"status": "lost"}])
def test_list_orders_rejects_bad_query(client, params):
    r = client.get(LIST_URL, params)
    assert r.status_code == 400
    assert r.json()["detail"] == "VALIDATION_ERROR"


@pytest.mark.django_db
def test_customer_orders_requires_owner_or_admin(client, place_order, other_customer, as_customer):
    place_order()
    url = "/api/orders/customer/cust-1/"

    assert client.get(url).status_code == 401
    r = client.get(url, **as_customer(other_customer.id))
    assert r.status_code == 403
    assert r.json()["detail"] == "FORBIDDEN"

    r = client.get(url, **as_customer("cust-1"))
    assert r.status_code == 200
    assert r.json()["total"] == 1
    assert client.get(url, **as_customer(other_customer.id, admin=True)).json()["total"] == 1


@pytest.mark.django_db
def test_recent_orders_newest_first(client, place_order):
    ids = [place_order()["id"] for _ in range(3)]
    r = client.get("/api/orders/recent/", {"limit": 2})
    assert r.status_code == 200
    assert [o["id"] for o in r.json()["results"]] == ids[::-1][:2]


@pytest.mark.django_db
def test_stats_excludes_cancelled_revenue(client, place_order, as_customer):
    place_order()
    cancelled = place_order(items=[{"productId": "p-shoes", "quantity": 1}])
    r = client.delete(DETAIL_URL.format(oid=cancelled["id"]), **as_customer("cust-1"))
    assert r.status_code == 200

    r = client.get("/api/orders/stats/", {"period": 30})
    assert r.status_code == 200
    body = r.json()
    assert body["overview"]["total_orders"] == 2
    assert body["overview"]["recent_orders"] == 2
    assert body["overview"]["total_revenue"] == 63.99
    assert body["overview"]["average_order_value"] == 63.99
    assert {s["status"]: s["count"] for s in body["status_breakdown"]} == {"cancelled": 1, "pending": 1}
    assert len(body["daily_stats"]) == 1
    assert body["daily_stats"][0]["count"] == 2
