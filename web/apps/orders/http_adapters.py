"""httpx client for the catalog service.

``HttpCatalogClient`` implements ``CatalogPort`` over HTTP. Every call:

- carries the current ``X-Request-ID`` (read from the gateway ContextVar)
  so catalog log lines can be joined with ours;
- goes through a per-service ``CircuitBreaker`` that stops calling an
  unhealthy catalog and probes it again after a cool-down;
- is retried with capped exponential backoff on transport errors and 5xx.

A 404 on product lookup and a 422 on reserve are business answers, not
outages: they are returned as ``None`` / ``False`` and keep the circuit
closed.
"""

import threading
import time
from decimal import Decimal
from typing import Iterable, List, Optional

import httpx
from django.conf import settings
from django.utils.module_loading import import_string

from .domain import CatalogPort, ProductSnapshot, RequestedItem

REQUEST_ID_CTX = import_string("gateway.middleware.REQUEST_ID_CTX")

CLOSED = "CLOSED"
OPEN = "OPEN"
HALF_OPEN = "HALF_OPEN"


class CircuitOpenError(RuntimeError):
    """The breaker refused the call (OPEN, or HALF_OPEN with a probe running)."""


class CircuitBreaker:
    """Thread-safe CLOSED / OPEN / HALF_OPEN circuit breaker.

    ``fail_threshold`` consecutive failures open the circuit. After
    ``reset_timeout`` seconds the next read of ``state`` moves it to
    HALF_OPEN, where exactly one probe call is let through: success closes
    the circuit, failure opens it again.
    """

    def __init__(self, name: str, fail_threshold: int, reset_timeout: float):
        self.name = name
        self.fail_threshold = fail_threshold
        self.reset_timeout = reset_timeout
        self._lock = threading.RLock()
        self._state = CLOSED
        self._failures = 0
        self._opened_at = 0.0
        self._probing = False

    def _trip(self):
        self._state = OPEN
        self._opened_at = time.monotonic()
        self._probing = False

    @property
    def state(self) -> str:
        with self._lock:
            cooled_down = time.monotonic() - self._opened_at >= self.reset_timeout
            if self._state == OPEN and cooled_down:
                self._state = HALF_OPEN
                self._probing = False
            return self._state

    def before_call(self) -> str:
        """Admit a call or raise.

        Returns:
            str: The state the call was admitted in.

        Raises:
            CircuitOpenError: If the circuit is OPEN or a probe is in flight.
        """
        with self._lock:
            current = self.state
            if current == OPEN:
                raise CircuitOpenError("CIRCUIT_OPEN")
            if current == HALF_OPEN:
                if self._probing:
                    raise CircuitOpenError("CIRCUIT_HALF_OPEN_BUSY")
                self._probing = True
            return current

    def on_success(self):
        with self._lock:
            self._state = CLOSED
            self._failures = 0
            self._probing = False

    def on_failure(self):
        with self._lock:
            self._failures += 1
            if self._state == HALF_OPEN:
                self._trip()
            elif self._state == CLOSED and self._failures >= self.fail_threshold:
                self._trip()

    def on_finish(self):
        """Clear the probe flag if the call ended without a verdict."""
        with self._lock:
            if self._state == HALF_OPEN:
                self._probing = False


catalog_cb = CircuitBreaker(
    "catalog",
    getattr(settings, "HTTP_CIRCUIT_FAIL_THRESHOLD", 5),
    getattr(settings, "HTTP_CIRCUIT_RESET_TIMEOUT", 30.0),
)


def _request_headers(extra: Optional[dict] = None) -> dict:
    headers: dict[str, str] = {}
    rid = REQUEST_ID_CTX.get()
    if rid and rid != "-":
        headers["X-Request-ID"] = rid
    headers.update(extra or {})
    return headers


def _backoff_seconds(attempt: int) -> float:
    """Delay before retry number ``attempt`` (1-based), capped."""
    base = getattr(settings, "HTTP_RETRY_BACKOFF_BASE", 0.15)
    cap = getattr(settings, "HTTP_RETRY_MAX_SLEEP", 0.5)
    return min(base * (2 ** (attempt - 1)), cap)


def _is_transient(resp: Optional[httpx.Response]) -> bool:
    # transport error (no response) or 5xx
    return resp is None or resp.status_code >= 500


def _items_payload(items: Iterable[RequestedItem]) -> dict:
    return {"items": [{"product_id": str(i.product_id), "quantity": i.quantity} for i in items]}


class HttpCatalogClient(CatalogPort):
    """Catalog port backed by the catalog service's REST API."""

    def __init__(self, base_url: str | None = None, timeout: float | None = None, breaker: CircuitBreaker | None = None):
        self.base_url = (base_url or settings.CATALOG_BASE_URL).rstrip("/")
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECS
        self.breaker = breaker or catalog_cb

    def _call(self, method: str, path: str, business_statuses=(), json: dict | None = None) -> httpx.Response:
        """Send one logical request.

        2xx responses and any status in ``business_statuses`` are returned
        and mark the catalog healthy. Other 4xx are raised immediately
        (the catalog answered, so the circuit stays closed). Transport
        errors and 5xx are retried up to ``HTTP_RETRY_MAX`` times; once
        exhausted they count as one circuit failure and are raised.

        Raises:
            CircuitOpenError: If the breaker refuses the call.
            httpx.RequestError: Transport failure after retries.
            httpx.HTTPStatusError: Non-retriable 4xx, or 5xx after retries.
        """
        max_retries = getattr(settings, "HTTP_RETRY_MAX", 3)
        headers = _request_headers({"X-Circuit-State": self.breaker.before_call(), "X-Retry-Count": "0"})
        url = f"{self.base_url}{path}"
        attempt = 0

        try:
            with httpx.Client(timeout=self.timeout) as client:
                while True:
                    resp, error = None, None
                    try:
                        resp = client.request(method, url, json=json, headers=headers)
                    except httpx.RequestError as e:
                        error = e

                    if resp is not None and (resp.status_code < 300 or resp.status_code in business_statuses):
                        self.breaker.on_success()
                        return resp
                    if not _is_transient(resp):
                        self.breaker.on_success()
                        resp.raise_for_status()

                    attempt += 1
                    if attempt > max_retries:
                        self.breaker.on_failure()
                        if error is not None:
                            raise error
                        resp.raise_for_status()

                    headers["X-Retry-Count"] = str(attempt)
                    time.sleep(_backoff_seconds(attempt))
        finally:
            self.breaker.on_finish()

    def get_product(self, product_id: str) -> Optional[ProductSnapshot]:
        """Fetch a product; missing, soft deleted or malformed ids give None."""
        resp = self._call("GET", f"/products/{product_id}", business_statuses=(404, 422))
        if resp.status_code != 200:
            return None
        data = resp.json()
        return ProductSnapshot(
            id=str(data["id"]),
            name=data["name"],
            price=Decimal(str(data["price"])),
            inventory_count=int(data["inventory_count"]),
            is_active=bool(data.get("is_active", True)),
            in_stock=bool(data.get("in_stock", True)),
        )

    def reserve(self, items: List[RequestedItem]) -> bool:
        """Reserve all items atomically; 422 (not enough stock) gives False."""
        resp = self._call("POST", "/inventory/reserve", business_statuses=(422,), json=_items_payload(items))
        if resp.status_code == 422:
            return False
        return bool(resp.json().get("reserved", False))

    def release(self, items: List[RequestedItem]) -> None:
        self._call("POST", "/inventory/release", json=_items_payload(items))
