from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

from scanorder.schemas.cart import CartItem
from scanorder.schemas.orders import Totals


def money(x) -> Decimal:
    # use string to avoid float binary artifacts
    return Decimal(str(x)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def to_cents(x) -> int:
    return int(money(x) * 100)


def compute_totals(items: Iterable[CartItem], *, tip=0, tax_rate=0.08, service_fee_rate=0.05) -> Totals:
    subtotal = money(sum((i.line_total for i in items), Decimal("0")))
    tax = money(subtotal * Decimal(str(tax_rate)))
    service_fee = money(subtotal * Decimal(str(service_fee_rate)))
    tip = money(tip or 0)
    return Totals(
        subtotal=subtotal,
        tax=tax,
        service_fee=service_fee,
        tip=tip,
        total=subtotal + tax + service_fee + tip,
    )
