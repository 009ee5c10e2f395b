"""
Integer amounts and the decimal-string display boundary.

Anything that reaches the ledger is an ``Amount`` (a non-negative ``int`` in
the asset's smallest unit). Decimal strings exist only at the edges: user
input is parsed with ``parse_units`` and displayed with ``format_units``.
Both conversions are exact integer arithmetic; nothing here goes through
``float``.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Optional, Union

from ..errors import InvalidAmount


# Type aliases
Amount = int  # Non-negative integer (arbitrary precision), smallest unit
Address = str  # 0x-prefixed, checksummed EVM address

DEFAULT_DECIMALS = 18
MAX_DECIMALS = 77
# Largest amount a uint256 ledger slot can hold (78 decimal digits).
MAX_AMOUNT = 2**256 - 1
_MAX_AMOUNT_DIGITS = len(str(MAX_AMOUNT))

DecimalInput = Union[str, int, Decimal, float]


def _require_decimals(decimals: int) -> None:
    if not isinstance(decimals, int) or isinstance(decimals, bool):
        raise TypeError("decimals must be an int")
    if not (0 <= decimals <= MAX_DECIMALS):
        raise ValueError(f"decimals must be in [0, {MAX_DECIMALS}]: {decimals}")


def require_amount(name: str, value: Amount) -> None:
    """Reject anything that is not a non-negative int (bools included)."""
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if value < 0:
        raise InvalidAmount(f"{name} must be non-negative: {value}")


def require_same_decimals(left: int, right: int) -> None:
    """Two amounts of the same asset can only be combined at the same scale."""
    if left != right:
        raise ValueError(f"decimals mismatch: {left} != {right}")


def _to_decimal(value: DecimalInput) -> Decimal:
    if isinstance(value, bool):
        raise InvalidAmount(f"not a numeric amount: {value!r}")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        # repr() gives the shortest string that round-trips, i.e. what the user typed.
        return _to_decimal(repr(value))
    if isinstance(value, str):
        s = value.strip().replace("_", "")
        if not s:
            raise InvalidAmount("amount is empty")
        try:
            return Decimal(s)
        except InvalidOperation as exc:
            raise InvalidAmount(f"not a numeric amount: {value!r}") from exc
    raise InvalidAmount(f"unsupported amount type: {type(value).__name__}")


def parse_units(value: DecimalInput, decimals: int = DEFAULT_DECIMALS) -> Amount:
    """
    Convert a human decimal amount to an integer amount in the smallest unit.

    ``parse_units("1.5", 18) == 1_500_000_000_000_000_000``

    Raises:
        InvalidAmount: non-numeric, non-finite, negative, more fractional
            digits than ``decimals`` can represent, or larger than
            ``MAX_AMOUNT``.
    """
    _require_decimals(decimals)
    d = _to_decimal(value)
    if not d.is_finite():
        raise InvalidAmount(f"amount must be finite: {value!r}")
    sign, digits, exponent = d.as_tuple()
    if not any(digits):
        return 0
    if sign:
        raise InvalidAmount(f"amount must be non-negative: {value!r}")

    # Bound the exponent before scaling: the shift below is only ever as
    # large as the number of digits the caller actually typed.
    magnitude = d.adjusted() + decimals
    if magnitude < 0:
        raise InvalidAmount(f"too many decimal places for {decimals} decimals: {value!r}")
    if magnitude >= _MAX_AMOUNT_DIGITS:
        raise InvalidAmount(f"amount too large: {value!r}")

    coefficient = int("".join(str(x) for x in digits))
    shift = int(exponent) + decimals
    if shift >= 0:
        result = coefficient * 10**shift
    else:
        result, remainder = divmod(coefficient, 10**-shift)
        if remainder:
            raise InvalidAmount(f"too many decimal places for {decimals} decimals: {value!r}")
    if result > MAX_AMOUNT:
        raise InvalidAmount(f"amount too large: {value!r}")
    return result


def format_units(amount: Amount, decimals: int = DEFAULT_DECIMALS, *, max_places: Optional[int] = None) -> str:
    """
    Convert an integer amount to a decimal string for display.

    The result always has at least one fractional digit (``"1.0"``) unless
    ``decimals`` is 0. ``max_places`` truncates (never rounds up) the
    fractional part.
    """
    _require_decimals(decimals)
    if not isinstance(amount, int) or isinstance(amount, bool):
        raise TypeError("amount must be an int")
    if amount < 0:
        raise ValueError(f"amount must be non-negative: {amount}")
    if decimals == 0:
        return str(amount)

    whole, frac = divmod(amount, 10**decimals)
    frac_str = str(frac).rjust(decimals, "0")
    if max_places is not None:
        if max_places < 0:
            raise ValueError(f"max_places must be non-negative: {max_places}")
        frac_str = frac_str[:max_places]
    frac_str = frac_str.rstrip("0") or "0"
    return f"{whole}.{frac_str}"
