"""Business errors raised by the orders domain.

Every error is a ``ValueError`` whose ``str()`` is a stable upper-case code
(e.g. ``"OUT_OF_STOCK"``) so callers can branch on it, while ``message``
carries the human readable text returned to API clients. ``http_status``
is the status the views map the error to.
"""


class OrderError(ValueError):
    """Base class for order workflow errors."""

    code = "ORDER_ERROR"
    http_status = 400

    def __init__(self, message: str | None = None):
        self.message = message or self.code
        super().__init__(self.code)


class EmptyOrder(OrderError):
    code = "EMPTY_ORDER"


class ProductUnavailable(OrderError):
    """The product does not exist or has been soft deleted."""

    code = "PRODUCT_UNAVAILABLE"


class OutOfStock(OrderError):
    code = "OUT_OF_STOCK"


class InsufficientInventory(OrderError):
    code = "INSUFFICIENT_INVENTORY"


class PricingMismatch(OrderError):
    """Client supplied totals disagree with the server computation."""

    code = "PRICING_MISMATCH"


class InvalidTransition(OrderError):
    code = "INVALID_TRANSITION"


class OrderNotFound(OrderError):
    code = "NOT_FOUND"
    http_status = 404


class CustomerNotFound(OrderError):
    code = "CUSTOMER_NOT_FOUND"
    http_status = 404


class CartLimitExceeded(OrderError):
    """A cart line would hold more units than one line allows."""

    code = "CART_LIMIT_EXCEEDED"
