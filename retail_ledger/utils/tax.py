"""
Tax rate normalization and money rounding.

Organization settings may store the default tax rate either as a fraction
(0.16) or as a percentage (16). Calculations use the fraction, so 16 -> 0.16
and 0.16 -> 0.16.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Union

CENT = Decimal("0.01")


def tax_rate_to_fraction(value: Union[None, int, float, str, Decimal]) -> Decimal:
    """
    Normalize a tax rate to a fraction.

    - 0 or None -> 0
    - 0.16 -> 0.16
    - 16 -> 0.16
    Values in (0, 1] are already fractions; anything above 1 is a percentage.
    """
    if value is None:
        return Decimal("0")
    v = Decimal(str(value))
    if v <= 0:
        return Decimal("0")
    if v <= 1:
        return v
    return v / Decimal("100")


def round_money(value: Decimal) -> Decimal:
    """Round to cents, half away from zero."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def compute_tax(taxable_amount: Decimal, rate: Decimal) -> Decimal:
    """Tax on the post-discount amount, rounded to cents."""
    return round_money(Decimal(taxable_amount) * tax_rate_to_fraction(rate))
