"""Fixed-point amounts: decimal strings on the wire, 10^-8 integers inside."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

from safe_wallet.errors.definitions import InvalidAmount

PRECISION = 8
UNIT = 10**PRECISION


def parse_amount(value: str | int | Decimal) -> int:
    """Convert a decimal amount to an integer count of 10^-8 units.

    Args:
        value: Decimal string such as ``"0.00012345"``, an ``int`` of whole
            units or a ``Decimal``.

    Returns:
        The amount in 10^-8 units.

    Raises:
        InvalidAmount: If the value is negative, not finite, not numeric or
            carries more than 8 decimals.
    """
    if isinstance(value, bool):
        raise InvalidAmount(value)
    try:
        dec = Decimal(value) if not isinstance(value, Decimal) else value
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise InvalidAmount(value) from exc
    if not dec.is_finite() or dec < 0:
        raise InvalidAmount(value)
    scaled = dec * UNIT
    if scaled != scaled.to_integral_value():
        raise InvalidAmount(value)
    return int(scaled)


def format_amount(units: int) -> str:
    """Render 10^-8 units as a canonical decimal string (no trailing zeros)."""
    whole, frac = divmod(units, UNIT)
    if frac == 0:
        return str(whole)
    return f"{whole}.{frac:0{PRECISION}d}".rstrip("0")
