from decimal import Decimal

import pytest

from retail_ledger.utils.tax import compute_tax, round_money, tax_rate_to_fraction


@pytest.mark.parametrize("stored,expected", [
    (None, Decimal("0")),
    (0, Decimal("0")),
    (Decimal("-5"), Decimal("0")),
    (Decimal("0.16"), Decimal("0.16")),
    (16, Decimal("0.16")),
    ("7.5", Decimal("0.075")),
    (1, Decimal("1")),
])
def test_tax_rate_to_fraction(stored, expected):
    assert tax_rate_to_fraction(stored) == expected


def test_round_money_half_up():
    assert round_money(Decimal("2.345")) == Decimal("2.35")
    assert round_money(Decimal("2.344")) == Decimal("2.34")


def test_compute_tax_accepts_percentage_or_fraction():
    assert compute_tax(Decimal("80"), Decimal("16")) == Decimal("12.80")
    assert compute_tax(Decimal("80"), Decimal("0.16")) == Decimal("12.80")
    assert compute_tax(Decimal("80"), Decimal("0")) == Decimal("0.00")
