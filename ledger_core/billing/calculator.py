# ledger_core/billing/calculator.py
from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable

ZERO = Decimal("0.00")
CENT = Decimal("0.01")
HUNDRED = Decimal("100.00")


def to_money(value, *, field_name: str = "amount") -> Decimal:
    """
    Accepts Decimal / str / int / float and returns a cent-quantized Decimal.
    Raises ValueError for values that are not numbers.
    """
    if isinstance(value, Decimal):
        d = value
    else:
        try:
            # str() handles int/float/str uniformly
            d = Decimal(str(value))
        except (InvalidOperation, ValueError, TypeError):
            raise ValueError(f"{field_name}: invalid decimal value {value!r}")
    if not d.is_finite():
        raise ValueError(f"{field_name}: invalid decimal value {value!r}")
    return d.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class Totals:
    subtotal: Decimal
    tax_amount: Decimal
    total_amount: Decimal


def _get(item: Any, name: str, default=None):
    if isinstance(item, dict):
        return item.get(name, default)
    return getattr(item, name, default)


def compute_item_total(quantity, unit_price, discount_amount=None) -> Decimal:
    """
    quantity * unit_price - discount, never below zero.
    """
    gross = Decimal(int(quantity)) * to_money(unit_price, field_name="unit_price")
    discount = to_money(discount_amount if discount_amount is not None else ZERO, field_name="discount_amount")
    return max(to_money(gross - discount), ZERO)


def compute_totals(items: Iterable[Any], tax_rate, discount_amount) -> Totals:
    """
    subtotal = sum of item totals
    tax      = subtotal * tax_rate / 100
    total    = subtotal + tax - invoice discount, never below zero

    Items may be mappings or objects exposing quantity / unit_price / discount_amount.
    """
    subtotal = sum(
        (
            compute_item_total(
                _get(item, "quantity", 1),
                _get(item, "unit_price", ZERO),
                _get(item, "discount_amount"),
            )
            for item in items
        ),
        ZERO,
    )
    subtotal = to_money(subtotal)

    rate = to_money(tax_rate, field_name="tax_rate")
    tax_amount = to_money(subtotal * rate / HUNDRED)

    discount = to_money(discount_amount if discount_amount is not None else ZERO, field_name="discount_amount")
    total_amount = max(to_money(subtotal + tax_amount - discount), ZERO)

    return Totals(subtotal=subtotal, tax_amount=tax_amount, total_amount=total_amount)
