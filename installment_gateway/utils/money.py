"""Decimal money helpers: 2-place half-up rounding and integer-cent storage"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Union

TWO_PLACES = Decimal("0.01")

Number = Union[Decimal, int, str]


def round2(value: Number) -> Decimal:
    return Decimal(value).quantize(TWO_PLACES, ROUND_HALF_UP)


def has_sub_cent_precision(value: Decimal) -> bool:
    return value != value.quantize(TWO_PLACES)


def to_cents(amount: Number) -> int:
    """Dollars to integer cents (amounts are rounded to the cent first)"""
    return int(round2(amount) * 100)


def from_cents(cents: int) -> Decimal:
    return (Decimal(cents) / 100).quantize(TWO_PLACES)


def has_sub_basis_point_precision(rate: Decimal) -> bool:
    return rate * 10_000 != (rate * 10_000).to_integral_value()


def to_basis_points(rate: Decimal) -> int:
    """0.19 -> 1900, rounded half-up to a whole basis point"""
    return int((Decimal(rate) * 10_000).quantize(Decimal("1"), ROUND_HALF_UP))


def format_rate(rate: Decimal) -> str:
    """0.19 -> '19%', 0.195 -> '19.5%'"""
    percent = (rate * 100).normalize()
    return f"{format(percent, 'f')}%"


def format_money(amount: Decimal) -> str:
    return f"${amount:,.2f}"
