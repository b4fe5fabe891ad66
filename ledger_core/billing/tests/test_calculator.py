# ledger_core/billing/tests/test_calculator.py
from decimal import Decimal
from types import SimpleNamespace

import pytest

from ledger_core.billing.calculator import compute_item_total, compute_totals, to_money


def test_item_total_is_quantity_times_price_minus_discount():
    assert compute_item_total(2, Decimal("100.00")) == Decimal("200.00")
    assert compute_item_total(3, "19.99", "5.00") == Decimal("54.97")


def test_item_total_never_negative():
    assert compute_item_total(1, "10.00", "15.00") == Decimal("0.00")


def test_reference_invoice_totals():
    items = [{"quantity": 2, "unit_price": Decimal("100.00")}]
    totals = compute_totals(items, Decimal("10"), Decimal("0"))

    assert totals.subtotal == Decimal("200.00")
    assert totals.tax_amount == Decimal("20.00")
    assert totals.total_amount == Decimal("220.00")


def test_totals_accept_model_like_objects():
    items = [
        SimpleNamespace(quantity=1, unit_price=Decimal("50.00"), discount_amount=Decimal("10.00")),
        SimpleNamespace(quantity=2, unit_price=Decimal("25.00"), discount_amount=None),
    ]
    totals = compute_totals(items, "0", None)

    assert totals.subtotal == Decimal("90.00")
    assert totals.tax_amount == Decimal("0.00")
    assert totals.total_amount == Decimal("90.00")


def test_tax_is_rounded_half_up_to_cents():
    totals = compute_totals([{"quantity": 1, "unit_price": "33.33"}], "7.5", "0")
    # 33.33 * 7.5% = 2.49975
    assert totals.tax_amount == Decimal("2.50")
    assert totals.total_amount == Decimal("35.83")


def test_invoice_discount_applies_after_tax_and_clamps_at_zero():
    items = [{"quantity": 2, "unit_price": "100.00"}]

    assert compute_totals(items, "10", "20.00").total_amount == Decimal("200.00")
    assert compute_totals(items, "10", "500.00").total_amount == Decimal("0.00")


def test_empty_item_list_totals_to_zero():
    totals = compute_totals([], "10", "0")
    assert totals.subtotal == totals.tax_amount == totals.total_amount == Decimal("0.00")


def test_to_money_rejects_non_numbers():
    with pytest.raises(ValueError):
        to_money("abc", field_name="amount")
    with pytest.raises(ValueError):
        to_money("NaN")


def test_to_money_quantizes_floats_via_str():
    assert to_money(0.1 + 0.2) == Decimal("0.30")
