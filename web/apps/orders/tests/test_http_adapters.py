"""Unit tests for the catalog HTTP adapter.

These tests verify that the client maps catalog responses to domain values
(404 -> None, 422 -> False), forwards the request id and propagates
network errors, by monkeypatching ``httpx.Client.request``.
"""

from decimal import Decimal

import httpx
import pytest

from apps.orders.domain import RequestedItem
from apps.orders.http_adapters import CircuitBreaker, HttpCatalogClient
from gateway.middleware import REQUEST_ID_CTX

PRODUCT = {
    "id": "7d3a3f4e-2b61-4a5e-9a43-0f1c7b1e9d10",
    "name": "Trail Runner",
    "price": 120.0,
    "inventory_count": 3,
    "is_active": True,
    "in_stock": True,
}


def responder(status_code, body=None, seen=None):
    def fake_request(self, method, url, json=None, headers=None, **kw):
        if seen is not None:
            seen.append({"method": method, "url": url, "json": json, "headers": headers})
        return httpx.Response(status_code, json=body or {}, request=httpx.Request(method, url))
    return fake_request


@pytest.fixture
def client():
    return HttpCatalogClient(base_url="http://catalog:8001/", timeout=1.0,
                             breaker=CircuitBreaker("test", fail_threshold=5, reset_timeout=30))


def test_get_product_ok(monkeypatch, client):
    seen = []
    monkeypatch.setattr(httpx.Client, "request", responder(200, PRODUCT, seen))
    p = client.get_product(PRODUCT["id"])
    assert p.name == "Trail Runner"
    assert p.price == Decimal("120.0")
    assert p.inventory_count == 3
    assert seen[0]["method"] == "GET"
    assert seen[0]["url"] == f"http://catalog:8001/products/{PRODUCT['id']}"


@pytest.mark.parametrize("status_code", [404, 422])
def test_get_product_missing_is_none(monkeypatch, client, status_code):
    monkeypatch.setattr(httpx.Client, "request", responder(status_code, {"detail": "PRODUCT_NOT_FOUND"}))
    assert client.get_product("whatever") is None
    assert client.breaker.state == "CLOSED"


def test_reserve_ok_sends_items(monkeypatch, client):
    seen = []
    monkeypatch.setattr(httpx.Client, "request", responder(200, {"reserved": True}, seen))
    assert client.reserve([RequestedItem("p1", 2)]) is True
    assert seen[0]["json"] == {"items": [{"product_id": "p1", "quantity": 2}]}


def test_reserve_insufficient_stock_is_false(monkeypatch, client):
    body = {"detail": {"reserved": False, "detail": "INSUFFICIENT_STOCK"}}
    monkeypatch.setattr(httpx.Client, "request", responder(422, body))
    assert client.reserve([RequestedItem("p1", 99)]) is False


def test_request_id_is_forwarded(monkeypatch, client):
    seen = []
    monkeypatch.setattr(httpx.Client, "request", responder(200, {"released": 1}, seen))
    token = REQUEST_ID_CTX.set("rid-123")
    try:
        client.release([RequestedItem("p1", 1)])
    finally:
        REQUEST_ID_CTX.reset(token)
    assert seen[0]["headers"]["X-Request-ID"] == "rid-123"
    assert seen[0]["headers"]["X-Circuit-State"] == "CLOSED"


def test_network_error_propagates(monkeypatch, settings, client):
    settings.HTTP_RETRY_MAX = 0

    def fake_request(self, method, url, **kw):
        raise httpx.ConnectError("boom")

    monkeypatch.setattr(httpx.Client, "request", fake_request)
    with pytest.raises(httpx.ConnectError):
        client.get_product("p1")


def test_other_4xx_raises_without_retry(monkeypatch, settings, client):
    settings.HTTP_RETRY_MAX = 3
    seen = []
    monkeypatch.setattr(httpx.Client, "request", responder(400, {"detail": "bad"}, seen))
    with pytest.raises(httpx.HTTPStatusError):
        client.release([RequestedItem("p1", 1)])
    assert len(seen) == 1
    assert client.breaker.state == "CLOSED"
