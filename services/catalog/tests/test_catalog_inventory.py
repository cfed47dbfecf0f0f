"""Tests for the atomic reserve/release inventory operations."""

import uuid

import repo


def _count(product_id):
    return repo.CatalogRepo().get(product_id, include_inactive=True).inventory_count


def test_reserve_decrements_all_items(api, make_product):
    a = make_product(inventory_count=5)
    b = make_product(inventory_count=2)
    r = api.post("/inventory/reserve", json={"items": [
        {"product_id": str(a.id), "quantity": 3},
        {"product_id": str(b.id), "quantity": 2},
    ]})
    assert r.status_code == 200
    assert r.json()["reserved"] is True
    assert _count(a.id) == 2
    assert _count(b.id) == 0
    assert repo.CatalogRepo().get(b.id).in_stock is False


def test_reserve_is_all_or_nothing(api, make_product):
    """A shortfall on the second item leaves the first untouched."""
    a = make_product(inventory_count=5)
    b = make_product(inventory_count=1)
    r = api.post("/inventory/reserve", json={"items": [
        {"product_id": str(a.id), "quantity": 3},
        {"product_id": str(b.id), "quantity": 2},
    ]})
    assert r.status_code == 422
    assert r.json()["detail"]["detail"] == "INSUFFICIENT_STOCK"
    assert _count(a.id) == 5
    assert _count(b.id) == 1


def test_reserve_rejects_inactive_and_unknown_products(make_product):
    inactive = make_product(is_active=False)
    catalog = repo.CatalogRepo()
    assert catalog.reserve([(str(inactive.id), 1)]) is False
    assert catalog.reserve([(str(uuid.uuid4()), 1)]) is False
    assert _count(inactive.id) == 10


def test_release_restores_inventory(api, make_product):
    p = make_product(inventory_count=0)
    r = api.post("/inventory/release", json={"items": [{"product_id": str(p.id), "quantity": 4}]})
    assert r.status_code == 200
    assert r.json()["released"] == 1
    assert _count(p.id) == 4
    assert repo.CatalogRepo().get(p.id).in_stock is True
