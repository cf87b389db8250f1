"""Conversion between human token amounts and base units."""

from __future__ import annotations

from decimal import Decimal


def to_base_units(amount: int | Decimal, decimals: int) -> int:
    """100 TEA with 6 decimals -> 100_000_000."""
    scaled = Decimal(amount) * (Decimal(10) ** decimals)
    if scaled != scaled.to_integral_value():
        msg = f"{amount} has more precision than {decimals} decimals"
        raise ValueError(msg)
    return int(scaled)


def format_units(value: int, decimals: int) -> str:
    """Render base units as an exact decimal string (uint256 values exceed Decimal's default precision)."""
    if decimals == 0:
        return str(value)
    sign = "-" if value < 0 else ""
    digits = str(abs(value)).rjust(decimals + 1, "0")
    whole, frac = digits[:-decimals], digits[-decimals:].rstrip("0")
    return f"{sign}{whole}.{frac}" if frac else f"{sign}{whole}"
