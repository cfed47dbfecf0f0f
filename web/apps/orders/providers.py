"""Service provider helpers for wiring the orders services with ports.

This module exposes small factory functions that return configured
services. The catalog port is the HTTP client when
``settings.USE_HTTP_ADAPTERS`` is truthy; otherwise a process-wide
in-memory ``CatalogStub`` is used, which suits tests and local
development without the catalog service.
"""

from decimal import Decimal

from django.conf import settings

from .adapters import CatalogStub
from .domain import CatalogPort, OrderService
from .http_adapters import HttpCatalogClient
from .lifecycle import OrderLifecycle
from .queries import OrderQueryService
from .repository import CartRepository, CustomerRepository, OrderRepository

_local_catalog = CatalogStub()


def get_catalog() -> CatalogPort:
    """Return the catalog port selected by settings."""
    if getattr(settings, "USE_HTTP_ADAPTERS", True):
        return HttpCatalogClient()
    return _local_catalog


def get_order_service() -> OrderService:
    """Return an OrderService wired with the configured catalog and ORM repositories."""
    return OrderService(
        catalog=get_catalog(),
        customers=CustomerRepository(),
        carts=CartRepository(),
        orders=OrderRepository(),
        pricing_tolerance=Decimal(str(getattr(settings, "ORDERS_PRICING_TOLERANCE", "0.01"))),
    )


def get_lifecycle() -> OrderLifecycle:
    return OrderLifecycle(orders=OrderRepository(), catalog=get_catalog())


def get_query_service() -> OrderQueryService:
    return OrderQueryService()


def get_customers() -> CustomerRepository:
    return CustomerRepository()
