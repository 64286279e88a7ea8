"""Money arithmetic shared by price resolution and order lines.

Amounts are Decimal, quantized to cents with ROUND_HALF_UP.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Tuple

CENT = Decimal("0.01")


def quantize_money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def discounted_total(
    unit_price: Decimal,
    quantity: int,
    discount_percentage: Optional[Decimal] = None,
) -> Tuple[Decimal, Decimal]:
    """
    Price a line of `quantity` units.

    Returns (discount_amount, total) where
    discount_amount = unit_price * quantity * pct / 100 and
    total = unit_price * quantity - discount_amount.

    Examples:
        >>> discounted_total(Decimal("10.00"), 7, Decimal("33.33"))
        (Decimal('23.33'), Decimal('46.67'))
    """
    gross = quantize_money(unit_price) * quantity
    discount_amount = Decimal("0.00")
    if discount_percentage:
        discount_amount = quantize_money(gross * Decimal(discount_percentage) / Decimal("100"))
    return discount_amount, quantize_money(gross - discount_amount)
