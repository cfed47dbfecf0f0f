# Point the catalog at a throwaway SQLite file before ``repo`` creates its engine
import os
import tempfile
from decimal import Decimal

import pytest

_DB_DIR = tempfile.mkdtemp(prefix="catalog-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'catalog.db')}"

from fastapi.testclient import TestClient  # noqa: E402

import repo  # noqa: E402
from main import app  # noqa: E402


@pytest.fixture(autouse=True)
def fresh_schema():
    repo.Base.metadata.drop_all(repo.engine)
    repo.Base.metadata.create_all(repo.engine)
    yield


@pytest.fixture
def api():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_product():
    """Factory that persists a product directly through the repository."""
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        fields = {
            "name": f"Product {counter['n']}",
            "price": "25.00",
            "category": "audio",
            "brand": "Acme",
            "sku": f"SKU-{counter['n']:04d}",
            "inventory_count": 10,
        }
        fields.update(overrides)
        fields["price"] = Decimal(str(fields["price"]))
        return repo.CatalogRepo().create(**fields)

    return _make
