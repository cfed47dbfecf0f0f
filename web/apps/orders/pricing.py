"""Order pricing: subtotal, tax, shipping, promo discount and total.

Pure functions with no I/O. All amounts are ``Decimal`` and rounded half-up
to cents at the point of output; the total is the sum of the rounded
components so ``total == subtotal + tax + shipping - discount`` holds
exactly on the stored values.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional, Protocol

from .errors import PricingMismatch

CENT = Decimal("0.01")
TAX_RATE = Decimal("0.08")
FREE_SHIPPING_THRESHOLD = Decimal("100")
FLAT_SHIPPING = Decimal("9.99")

# promo code -> fraction of subtotal
PROMO_CODES = {
    "WELCOME20": Decimal("0.20"),
    "SAVE10": Decimal("0.10"),
}


@dataclass(frozen=True)
class PricingBreakdown:
    """Monetary summary of an order, all values rounded to cents."""

    subtotal: Decimal
    tax: Decimal
    shipping: Decimal
    discount: Decimal
    total: Decimal


class Priced(Protocol):
    unit_price: Decimal
    quantity: int


def money(value) -> Decimal:
    """Round a numeric value half-up to two decimal places."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def promo_rate(promo_code: Optional[str]) -> Decimal:
    """Return the discount fraction for a promo code; unknown codes give 0."""
    if not promo_code:
        return Decimal("0")
    return PROMO_CODES.get(promo_code.strip(), Decimal("0"))


def calculate_pricing(items: Iterable[Priced], promo_code: Optional[str] = None) -> PricingBreakdown:
    """Compute the pricing breakdown for a set of line items.

    Args:
        items: Objects exposing ``unit_price`` and ``quantity``.
        promo_code: Optional promo code. Unrecognized codes are ignored.

    Returns:
        PricingBreakdown: Rounded subtotal, tax, shipping, discount and total.
    """
    subtotal = sum((Decimal(it.unit_price) * it.quantity for it in items), Decimal("0"))
    tax = subtotal * TAX_RATE
    shipping = Decimal("0") if subtotal > FREE_SHIPPING_THRESHOLD else FLAT_SHIPPING
    discount = subtotal * promo_rate(promo_code)

    subtotal, tax, shipping, discount = money(subtotal), money(tax), money(shipping), money(discount)
    return PricingBreakdown(
        subtotal=subtotal,
        tax=tax,
        shipping=shipping,
        discount=discount,
        total=subtotal + tax + shipping - discount,
    )


def resolve_pricing(
    items: Iterable[Priced],
    promo_code: Optional[str] = None,
    client_pricing: Optional[PricingBreakdown] = None,
    tolerance: Decimal = CENT,
) -> PricingBreakdown:
    """Return the server-side pricing, checking any client-supplied totals.

    The server computation is always authoritative. When the client sends
    its own breakdown, each component must agree within ``tolerance``.

    Raises:
        PricingMismatch: If a client component differs by more than
            ``tolerance``.
    """
    computed = calculate_pricing(items, promo_code)
    if client_pricing is None:
        return computed

    for field in ("subtotal", "tax", "shipping", "discount", "total"):
        expected = getattr(computed, field)
        got = money(getattr(client_pricing, field))
        if abs(expected - got) > tolerance:
            raise PricingMismatch(
                f"Submitted {field} {got} does not match calculated {field} {expected}"
            )
    return computed
