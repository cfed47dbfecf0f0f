"""In-process stub adapter for the catalog port.

``CatalogStub`` implements ``CatalogPort`` without any network calls. It is
intended for unit tests and local development where deterministic behavior
is useful and the catalog service is not running.
"""

import threading
from dataclasses import replace
from decimal import Decimal
from typing import Dict, List, Optional

from .domain import CatalogPort, ProductSnapshot, RequestedItem


class CatalogStub(CatalogPort):
    """In-memory catalog keyed by product id.

    Reservations follow the catalog service rules: all-or-nothing, only for
    active, in-stock products with enough units.
    """

    def __init__(self, products: Optional[List[ProductSnapshot]] = None):
        self._lock = threading.Lock()
        self._products: Dict[str, ProductSnapshot] = {}
        for p in products or []:
            self.put(p)

    def put(self, product: ProductSnapshot) -> None:
        with self._lock:
            self._products[product.id] = product

    def add_product(self, product_id: str, name: str, price, inventory_count: int = 10, **flags) -> ProductSnapshot:
        """Convenience helper to register a product and return it."""
        p = ProductSnapshot(
            id=product_id,
            name=name,
            price=Decimal(str(price)),
            inventory_count=inventory_count,
            **flags,
        )
        self.put(p)
        return p

    def inventory(self, product_id: str) -> int:
        return self._products[product_id].inventory_count

    def get_product(self, product_id: str) -> Optional[ProductSnapshot]:
        p = self._products.get(product_id)
        if p is None or not p.is_active:
            return None
        return p

    def reserve(self, items: List[RequestedItem]) -> bool:
        """Decrement all items or none.

        Returns:
            bool: True if every product is active, in stock and has at least
            the requested quantity; otherwise False with no changes.
        """
        with self._lock:
            for it in items:
                p = self._products.get(it.product_id)
                if p is None or not p.is_active or not p.in_stock or p.inventory_count < it.quantity:
                    return False
            for it in items:
                p = self._products[it.product_id]
                left = p.inventory_count - it.quantity
                self._products[it.product_id] = replace(p, inventory_count=left, in_stock=left > 0)
            return True

    def release(self, items: List[RequestedItem]) -> None:
        with self._lock:
            for it in items:
                p = self._products.get(it.product_id)
                if p is None:
                    continue
                count = p.inventory_count + it.quantity
                self._products[it.product_id] = replace(p, inventory_count=count, in_stock=count > 0)
