"""Catalog service API built with FastAPI.

This module exposes the product catalog: listing with filters, CRUD with
soft delete, stock flag and inventory adjustments, and the reserve/release
endpoints used by the orders service. Validation is performed with Pydantic
models, while persistence is delegated to the SQLAlchemy-backed repository
in ``repo.CatalogRepo``.
"""

import uuid
import logging
import time
from datetime import datetime
from decimal import Decimal
from typing import Annotated, List, Literal, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, constr
from pythonjsonlogger import jsonlogger
from sqlalchemy import text

from repo import CatalogRepo, DuplicateSkuError, engine, init_db

app = FastAPI(title="Catalog Service")

Sku = constr(pattern=r"^[A-Z0-9_-]{3,32}$")
Money = Annotated[Decimal, Field(ge=0, max_digits=10, decimal_places=2), PlainSerializer(float, when_used="json")]

# logger JSON
logger = logging.getLogger("catalog")
if not logger.handlers:
    h = logging.StreamHandler()
    h.setFormatter(jsonlogger.JsonFormatter("%(asctime)s %(levelname)s %(name)s %(message)s %(request_id)s"))
    logger.addHandler(h)
    logger.setLevel(logging.INFO)


@app.on_event("startup")
def _startup_db():
    # wait briefly until the database accepts connections
    deadline = time.time() + 30
    while True:
        try:
            with engine.connect() as conn:
                conn.execute(text("select 1"))
            break
        except Exception:
            if time.time() > deadline:
                raise
            time.sleep(1)
    init_db()


class ProductOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    description: str
    price: Money
    category: str
    brand: str
    sku: str
    inventory_count: int
    is_active: bool
    in_stock: bool
    is_featured: bool
    rating: float
    created_at: datetime
    updated_at: datetime


class ProductCreate(BaseModel):
    """Request body for creating a product.

    Attributes:
        sku: Upper-case SKU matching the allowed pattern.
        price: Non-negative unit price with at most two decimals.
        inventory_count: Initial units on hand.
        in_stock: Optional override; defaults to ``inventory_count > 0``.
    """
    name: str = Field(min_length=1, max_length=200)
    description: str = Field(default="", max_length=2000)
    price: Money
    category: str = Field(min_length=1, max_length=100)
    brand: str = Field(default="", max_length=100)
    sku: Sku
    inventory_count: int = Field(default=0, ge=0)
    in_stock: Optional[bool] = None
    is_featured: bool = False
    rating: float = Field(default=0.0, ge=0, le=5)


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    price: Optional[Money] = None
    category: Optional[str] = Field(default=None, min_length=1, max_length=100)
    brand: Optional[str] = Field(default=None, max_length=100)
    sku: Optional[Sku] = None
    is_featured: Optional[bool] = None
    rating: Optional[float] = Field(default=None, ge=0, le=5)


class StockFlagRequest(BaseModel):
    in_stock: bool


class InventoryAdjustRequest(BaseModel):
    """Request body for the inventory adjustment endpoint.

    Attributes:
        quantity: Non-negative amount.
        operation: ``set`` replaces the count, ``add`` increments it and
            ``subtract`` decrements it, clamping at zero.
    """
    quantity: int = Field(ge=0)
    operation: Literal["set", "add", "subtract"] = "set"


class Item(BaseModel):
    """A product and quantity to reserve or release.

    Attributes:
        product_id: Catalog product identifier.
        quantity: Positive integer quantity.
    """
    product_id: uuid.UUID
    quantity: int = Field(gt=0)


class InventoryRequest(BaseModel):
    items: List[Item] = Field(min_length=1)


class ReserveResponse(BaseModel):
    """Response body for the reserve endpoint.

    Attributes:
        reserved: Whether the reservation succeeded for all items.
        detail: Optional error code when reservation fails.
    """
    reserved: bool
    detail: str | None = None


class ReleaseResponse(BaseModel):
    released: int


class ProductPage(BaseModel):
    count: int
    results: List[ProductOut]
    total: int
    page: int
    limit: int
    total_pages: int


def _not_found():
    return HTTPException(status_code=404, detail="PRODUCT_NOT_FOUND")


@app.get("/health")
def health():
    """Liveness/health probe endpoint.

    Returns:
        dict: A small JSON payload indicating service health.
    """
    return {"ok": True}


@app.get("/products", response_model=ProductPage)
def list_products(
    category: Optional[str] = None,
    brand: Optional[str] = None,
    min_price: Optional[Decimal] = Query(default=None, ge=0),
    max_price: Optional[Decimal] = Query(default=None, ge=0),
    in_stock: Optional[bool] = None,
    featured: bool = False,
    search: Optional[str] = None,
    sort_by: str = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
):
    """List active products with filters, sorting and pagination.

    Raises:
        HTTPException: With status 422 for an unsupported ``sort_by``.
    """
    try:
        rows, total = CatalogRepo().list_products(
            category=category, brand=brand, min_price=min_price, max_price=max_price,
            in_stock=in_stock, featured=featured, search=search,
            sort_by=sort_by, sort_order=sort_order, page=page, limit=limit,
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return ProductPage(
        count=len(rows),
        results=[ProductOut.model_validate(r) for r in rows],
        total=total,
        page=page,
        limit=limit,
        total_pages=(total + limit - 1) // limit,
    )


@app.get("/products/categories", response_model=List[str])
def categories():
    return CatalogRepo().distinct_values("category")


@app.get("/products/brands", response_model=List[str])
def brands():
    return CatalogRepo().distinct_values("brand")


@app.get("/products/featured", response_model=List[ProductOut])
def featured(limit: int = Query(default=10, ge=1, le=100)):
    return [ProductOut.model_validate(p) for p in CatalogRepo().featured(limit)]


@app.get("/products/{product_id}", response_model=ProductOut)
def get_product(product_id: str):
    obj = CatalogRepo().get(product_id)
    if obj is None:
        raise _not_found()
    return ProductOut.model_validate(obj)


@app.post("/products", response_model=ProductOut, status_code=201)
def create_product(req: ProductCreate):
    """Create a product.

    Raises:
        HTTPException: With status 409 when the SKU already exists.
    """
    fields = req.model_dump(exclude_none=True)
    try:
        obj = CatalogRepo().create(**fields)
    except DuplicateSkuError:
        raise HTTPException(status_code=409, detail="DUPLICATE_SKU")
    logger.info("product created", extra={"product_id": str(obj.id), "sku": obj.sku})
    return ProductOut.model_validate(obj)


@app.put("/products/{product_id}", response_model=ProductOut)
def update_product(product_id: str, req: ProductUpdate):
    try:
        obj = CatalogRepo().update(product_id, **req.model_dump(exclude_unset=True))
    except DuplicateSkuError:
        raise HTTPException(status_code=409, detail="DUPLICATE_SKU")
    if obj is None:
        raise _not_found()
    return ProductOut.model_validate(obj)


@app.delete("/products/{product_id}")
def delete_product(product_id: str):
    if not CatalogRepo().soft_delete(product_id):
        raise _not_found()
    return {"deleted": True}


@app.patch("/products/{product_id}/stock", response_model=ProductOut)
def toggle_stock(product_id: str, req: StockFlagRequest):
    obj = CatalogRepo().set_stock_flag(product_id, req.in_stock)
    if obj is None:
        raise _not_found()
    return ProductOut.model_validate(obj)


@app.patch("/products/{product_id}/inventory", response_model=ProductOut)
def adjust_inventory(product_id: str, req: InventoryAdjustRequest):
    obj = CatalogRepo().adjust_inventory(product_id, req.quantity, req.operation)
    if obj is None:
        raise _not_found()
    return ProductOut.model_validate(obj)


@app.post("/inventory/reserve", response_model=ReserveResponse)
def reserve(req: InventoryRequest):
    """Reserve stock for a batch of items.

    Delegates to ``CatalogRepo.reserve`` which applies one conditional
    decrement per item inside a single transaction to prevent overselling.

    Args:
        req: The reservation request containing items to reserve.

    Returns:
        ReserveResponse: Response with the `reserved` flag set to True on success.

    Raises:
        HTTPException: With status 422 when any item has insufficient stock.
    """
    items = [(str(it.product_id), it.quantity) for it in req.items]

    ok = CatalogRepo().reserve(items)
    if not ok:
        raise HTTPException(status_code=422, detail={"reserved": False, "detail": "INSUFFICIENT_STOCK"})

    return ReserveResponse(reserved=True)


@app.post("/inventory/release", response_model=ReleaseResponse)
def release(req: InventoryRequest):
    """Return previously reserved units to stock (order cancellation)."""
    items = [(str(it.product_id), it.quantity) for it in req.items]
    return ReleaseResponse(released=CatalogRepo().release(items))


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = rid
    try:
        response = await call_next(request)
    finally:
        logger.info("request handled", extra={"request_id": rid, "path": request.url.path, "method": request.method})
    response.headers["X-Request-ID"] = rid
    return response
