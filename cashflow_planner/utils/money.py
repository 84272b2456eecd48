"""Integer minor-unit arithmetic with a single rounding rule"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Union

Number = Union[int, str, Decimal]


def round_half_away(value: Decimal) -> int:
    """Round to the nearest integer, ties away from zero (2.5 -> 3, -2.5 -> -3)"""
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def divide(amount_cents: int, divisor: Number) -> int:
    return round_half_away(Decimal(amount_cents) / Decimal(divisor))


def apply_ratio(amount_cents: int, ratio: Number) -> int:
    """amount * ratio rounded; ratio given as Decimal or string to avoid float drift"""
    return round_half_away(Decimal(amount_cents) * Decimal(ratio))


def format_cents(amount_cents: int) -> str:
    """Render minor units in the 10.000,00 € style used on reports"""
    sign = "-" if amount_cents < 0 else ""
    units, cents = divmod(abs(amount_cents), 100)
    grouped = f"{units:,}".replace(",", ".")
    return f"{sign}{grouped},{cents:02d} €"
