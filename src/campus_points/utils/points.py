"""Point arithmetic for purchases and promotions."""

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

POINTS_PER_DOLLAR = 4
CENTS_PER_DOLLAR = 100

Number = Union[Decimal, int, float, str]


def to_money(value: Number) -> Decimal:
    """Coerce a spend amount to a two-place decimal."""

    if isinstance(value, float):
        value = repr(value)
    return Decimal(value).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def round_points(value: Decimal) -> int:
    """Round half away from zero to whole points."""

    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def base_points(spent: Number) -> int:
    """Points earned on a purchase before promotions: four per dollar."""

    return round_points(to_money(spent) * POINTS_PER_DOLLAR)


def promotion_bonus(spent: Number, rate: Optional[Number] = None, points: Optional[int] = None) -> int:
    """Bonus granted by one promotion.

    ``rate`` is a fraction applied on top of the one-point-per-cent scale
    (``0.25`` on $10.00 adds 250 points); ``points`` is a flat bonus. Both may
    be set, in which case they add up.
    """

    bonus = 0
    if rate is not None:
        bonus += round_points(to_money(spent) * CENTS_PER_DOLLAR * Decimal(str(rate)))
    if points is not None:
        bonus += int(points)
    return bonus
