"""API tests for the create-order endpoint.

These tests exercise ``POST /api/orders/`` for the main scenarios:
successful creation from explicit items and from the stored cart, business
rule failures, pricing verification, missing caller, upstream outages and
payload validation. The in-process ``CatalogStub`` from the ``catalog``
fixture keeps inventory deterministic.
"""

from uuid import UUID

import httpx
import pytest
from django.db import connection

from apps.orders import providers
from apps.orders.models import CartItemModel, OrderModel

CREATE_URL = "/api/orders/"


def post(client, payload, **headers):
    return client.post(CREATE_URL, data=payload, content_type="application/json", **headers)


@pytest.mark.django_db
def test_create_order_returns_201_and_persists(client, catalog, customer, checkout_payload, as_customer):
    r = post(client, checkout_payload, **as_customer(customer.id))
    assert r.status_code == 201
    body = r.json()
    UUID(body["id"])
    assert body["status"] == "pending"
    assert body["order_number"].startswith("ORD-")
    assert body["customer_info"] == {"name": "Ada Lovelace", "email": "ada@example.com", "phone": "555-0100"}
    assert body["pricing"] == {"subtotal": 50.0, "tax": 4.0, "shipping": 9.99, "discount": 0.0, "total": 63.99}
    assert body["payment_info"]["status"] == "completed"
    assert body["payment_info"]["last_four"] == "4242"
    assert body["items"][0]["line_total"] == 50.0
    assert [h["status"] for h in body["status_history"]] == ["pending"]
    assert catalog.inventory("p-shirt") == 8

    with connection.cursor() as cur:
        cur.execute("select status, total, customer_id from orders where id = %s", [UUID(body["id"]).hex])
        row = cur.fetchone()
    assert row is not None
    assert row[0] == "pending"
    assert row[2] == "cust-1"


@pytest.mark.django_db
def test_create_order_with_promo_code(client, catalog, customer, checkout_payload, as_customer):
    payload = {**checkout_payload, "items": [{"productId": "p-shoes", "quantity": 1}], "promoCode": "SAVE10"}
    r = post(client, payload, **as_customer(customer.id))
    assert r.status_code == 201
    assert r.json()["pricing"] == {"subtotal": 120.0, "tax": 9.6, "shipping": 0.0, "discount": 12.0, "total": 117.6}
    assert r.json()["promo_code"] == "SAVE10"


@pytest.mark.django_db
def test_create_order_from_cart_clears_cart(client, catalog, customer, checkout_payload, as_customer):
    CartItemModel.objects.create(customer=customer, product_id="p-shoes", quantity=1, variant={"size": "42"})
    CartItemModel.objects.create(customer=customer, product_id="p-deleted", quantity=1)
    payload = {**checkout_payload, "items": []}

    r = post(client, payload, **as_customer(customer.id))

    assert r.status_code == 201
    items = r.json()["items"]
    assert [(i["product_id"], i["variant"]) for i in items] == [("p-shoes", {"size": "42"})]
    assert not CartItemModel.objects.filter(customer=customer).exists()


@pytest.mark.django_db
def test_empty_cart_returns_400(client, catalog, customer, checkout_payload, as_customer):
    r = post(client, {**checkout_payload, "items": []}, **as_customer(customer.id))
    assert r.status_code == 400
    assert r.json()["detail"] == "EMPTY_ORDER"


@pytest.mark.django_db
def test_insufficient_inventory_leaves_state_untouched(client, catalog, customer, checkout_payload, as_customer):
    CartItemModel.objects.create(customer=customer, product_id="p-shirt", quantity=1)
    payload = {**checkout_payload, "items": [
        {"productId": "p-shirt", "quantity": 1},
        {"productId": "p-shoes", "quantity": 4},
    ]}
    r = post(client, payload, **as_customer(customer.id))
    assert r.status_code == 400
    assert r.json() == {"detail": "INSUFFICIENT_INVENTORY", "message": "Only 3 units of Trail Runner available"}
    assert OrderModel.objects.count() == 0
    assert catalog.inventory("p-shirt") == 10
    assert catalog.inventory("p-shoes") == 3
    assert CartItemModel.objects.filter(customer=customer).count() == 1


@pytest.mark.django_db
def test_unavailable_and_out_of_stock_products(client, catalog, customer, checkout_payload, as_customer):
    catalog.add_product("p-retired", "Retired", "5.00", is_active=False)
    catalog.add_product("p-empty", "Sold Out", "5.00", inventory_count=4, in_stock=False)

    r = post(client, {**checkout_payload, "items": [{"productId": "p-retired", "quantity": 1}]},
             **as_customer(customer.id))
    assert r.status_code == 400 and r.json()["detail"] == "PRODUCT_UNAVAILABLE"

    r = post(client, {**checkout_payload, "items": [{"productId": "p-empty", "quantity": 1}]},
             **as_customer(customer.id))
    assert r.status_code == 400 and r.json()["detail"] == "OUT_OF_STOCK"


@pytest.mark.django_db
def test_client_pricing_is_verified(client, catalog, customer, checkout_payload, as_customer):
    good = {"subtotal": 50, "tax": 4, "shipping": 9.99, "discount": 0, "total": 63.99}
    r = post(client, {**checkout_payload, "pricing": good}, **as_customer(customer.id))
    assert r.status_code == 201

    tampered = {**good, "total": 1.00}
    r = post(client, {**checkout_payload, "pricing": tampered}, **as_customer(customer.id))
    assert r.status_code == 400
    assert r.json()["detail"] == "PRICING_MISMATCH"
    assert OrderModel.objects.count() == 1


@pytest.mark.django_db
def test_missing_caller_returns_401(client, catalog, checkout_payload):
    r = post(client, checkout_payload)
    assert r.status_code == 401
    assert r.json()["detail"] == "AUTHENTICATION_REQUIRED"


@pytest.mark.django_db
def test_unknown_customer_returns_404(client, catalog, checkout_payload, as_customer):
    r = post(client, checkout_payload, **as_customer("ghost"))
    assert r.status_code == 404
    assert r.json()["detail"] == "CUSTOMER_NOT_FOUND"


@pytest.mark.django_db
def test_create_order_validation_error(client, catalog, customer, as_customer):
    """Returns 400 with per-field errors when the payload fails DTO validation."""
    payload = {
        "shippingAddress": {"name": "A", "address": "1 St", "city": "X", "state": "Y", "zipCode": "ABCDE"},
        "paymentInfo": {"method": "cash", "lastFour": "12"},
        "items": [{"productId": "p-shirt", "quantity": 0}],
    }
    r = post(client, payload, **as_customer(customer.id))
    assert r.status_code == 400
    body = r.json()
    assert body["detail"] == "VALIDATION_ERROR"
    fields = {e["field"] for e in body["errors"]}
    assert {"shippingAddress.zipCode", "paymentInfo.method", "paymentInfo.lastFour", "items.0.quantity"} <= fields


@pytest.mark.django_db
def test_catalog_outage_returns_503(client, catalog, customer, checkout_payload, as_customer, monkeypatch):
    def boom(product_id):
        raise httpx.ConnectError("catalog down")

    monkeypatch.setattr(catalog, "get_product", boom)
    r = post(client, checkout_payload, **as_customer(customer.id))
    assert r.status_code == 503
    assert r.json()["detail"] == "UPSTREAM_UNAVAILABLE"


@pytest.mark.django_db
def test_unexpected_error_returns_500(client, catalog, customer, checkout_payload, as_customer, monkeypatch):
    class Broken:
        def place_order(self, req):
            raise KeyError("boom")

    monkeypatch.setattr(providers, "get_order_service", lambda: Broken())
    r = post(client, checkout_payload, **as_customer(customer.id))
    assert r.status_code == 500
    assert r.json()["detail"] == "SERVER_ERROR"
