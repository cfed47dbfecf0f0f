"""Shared fixtures for the web project tests.

Every test runs against the in-process ``CatalogStub``; a fresh stub is
patched into ``apps.orders.providers`` so inventory counts never leak
between tests.
"""

import pytest


@pytest.fixture(autouse=True)
def use_stubs_for_tests(settings):
    settings.USE_HTTP_ADAPTERS = False


@pytest.fixture(autouse=True)
def reset_circuit_breaker():
    from apps.orders.http_adapters import catalog_cb

    catalog_cb.on_success()
    yield
    catalog_cb.on_success()


@pytest.fixture
def catalog(monkeypatch):
    from apps.orders import providers
    from apps.orders.adapters import CatalogStub

    stub = CatalogStub()
    stub.add_product("p-shirt", "Basic Tee", "25.00", inventory_count=10)
    stub.add_product("p-shoes", "Trail Runner", "120.00", inventory_count=3)
    monkeypatch.setattr(providers, "_local_catalog", stub)
    return stub


@pytest.fixture
def customer(db):
    from apps.orders.models import CustomerModel

    return CustomerModel.objects.create(id="cust-1", name="Ada Lovelace", email="ada@example.com", phone="555-0100")


@pytest.fixture
def other_customer(db):
    from apps.orders.models import CustomerModel

    return CustomerModel.objects.create(id="cust-2", name="Alan Turing", email="alan@example.com")


@pytest.fixture
def checkout_payload():
    """Valid checkout body using the camelCase keys of the storefront client."""
    return {
        "shippingAddress": {
            "name": "Ada Lovelace",
            "address": "12 Analytical Way",
            "city": "London",
            "state": "LN",
            "zipCode": "12345",
        },
        "paymentInfo": {"method": "credit_card", "transactionId": "tx-123", "lastFour": "4242"},
        "items": [{"productId": "p-shirt", "quantity": 2}],
    }


@pytest.fixture
def as_customer():
    """Header kwargs for the Django test client."""
    def headers(customer_id, admin=False):
        h = {"HTTP_X_CUSTOMER_ID": customer_id}
        if admin:
            h["HTTP_X_CUSTOMER_ROLE"] = "admin"
        return h
    return headers


@pytest.fixture
def place_order(client, catalog, customer, checkout_payload, as_customer):
    """Place an order through the API and return the response body."""
    def _place(customer_id=None, **overrides):
        payload = {**checkout_payload, **overrides}
        r = client.post("/api/orders/", data=payload, content_type="application/json",
                        **as_customer(customer_id or customer.id))
        assert r.status_code == 201, r.json()
        return r.json()
    return _place
