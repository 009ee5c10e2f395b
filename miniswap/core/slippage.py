"""
Slippage tolerance values.

A tolerance is a percentage in ``[0, 100)`` held as a ``Decimal`` so the
bound computation in ``amount_math.apply_slippage`` stays exact.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Tuple, Union

from ..errors import InvalidAmount


ToleranceInput = Union["SlippageTolerance", Decimal, int, float, str]


def _as_decimal(value: Union[Decimal, int, float, str]) -> Decimal:
    if isinstance(value, bool):
        raise InvalidAmount(f"slippage must be numeric: {value!r}")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        value = repr(value)
    try:
        return Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise InvalidAmount(f"slippage must be numeric: {value!r}") from exc


@dataclass(frozen=True)
class SlippageTolerance:
    percent: Decimal

    def __post_init__(self) -> None:
        if not isinstance(self.percent, Decimal):
            raise TypeError("percent must be a Decimal (use SlippageTolerance.of)")
        if not self.percent.is_finite():
            raise InvalidAmount(f"slippage must be finite: {self.percent}")
        if not (Decimal(0) <= self.percent < Decimal(100)):
            raise InvalidAmount(f"slippage must be in [0, 100): {self.percent}")

    @classmethod
    def of(cls, value: ToleranceInput) -> "SlippageTolerance":
        if isinstance(value, SlippageTolerance):
            return value
        return cls(_as_decimal(value))

    def __str__(self) -> str:
        return f"{self.percent}%"


PRESET_TOLERANCES: Tuple[SlippageTolerance, ...] = tuple(
    SlippageTolerance(Decimal(p)) for p in ("0.1", "0.5", "1.0", "2.0")
)
DEFAULT_TOLERANCE = SlippageTolerance(Decimal("0.5"))
