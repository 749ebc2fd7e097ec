"""
money.py — Conversion between display decimals and integer minor units.

The engine works in integer minor units (paise/cents) only. Decimal values
exist at the HTTP boundary: schemas load them, these helpers convert them on
the way in and back again on the way out. Float never appears in money code.
"""

from __future__ import annotations

from decimal import Decimal

from splittrip.app.errors import AppError, ErrorCode

# Number of decimal places in the currency's minor unit (paise, cents).
MINOR_UNIT_EXPONENT = 2

_MINOR_UNITS_PER_MAJOR = 10 ** MINOR_UNIT_EXPONENT
_QUANTUM = Decimal(1).scaleb(-MINOR_UNIT_EXPONENT)  # Decimal("0.01")


def to_minor_units(value: Decimal, field: str | None = "amount") -> int:
    """
    Converts a Decimal amount to an exact integer number of minor units.

    Decimal("12.5") -> 1250, Decimal("-0.01") -> -1.

    Values with more than MINOR_UNIT_EXPONENT decimal places are rejected,
    never rounded.
    """
    if not isinstance(value, Decimal) or not value.is_finite():
        raise AppError(
            ErrorCode.INVALID_FIELD,
            f"{value!r} is not a finite decimal amount.",
            400,
            field=field,
        )
    if value.as_tuple().exponent < -MINOR_UNIT_EXPONENT:
        raise AppError(
            ErrorCode.INVALID_AMOUNT_PRECISION,
            f"Amount {value} has more than {MINOR_UNIT_EXPONENT} decimal places.",
            400,
            field=field,
        )
    return int(value * _MINOR_UNITS_PER_MAJOR)


def from_minor_units(amount: int) -> Decimal:
    """Converts integer minor units to a 2-place Decimal: 1250 -> Decimal("12.50")."""
    return (Decimal(amount) / _MINOR_UNITS_PER_MAJOR).quantize(_QUANTUM)


def format_amount(amount: int) -> str:
    """Minor units as a plain decimal string, e.g. 13500 -> "135.00"."""
    return str(from_minor_units(amount))
