"""
Immutable readings of remote pool and account state.

Snapshots are produced by the pool reader and superseded (never mutated) by
the next read. ``captured_at`` is a monotonic-clock reading in seconds and
``sequence`` a per-reader logical counter, so two snapshots can be ordered
even when they were captured within the same clock tick.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from .amounts import Address, Amount


def _require_non_negative_int(name: str, value: object) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if value < 0:
        raise ValueError(f"{name} must be non-negative: {value}")


@dataclass(frozen=True)
class ReserveSnapshot:
    """Pool reserves (and optionally share supply) at one point in time."""

    reserve_a: Amount
    reserve_b: Amount
    captured_at: float
    sequence: int = 0
    total_supply: Optional[Amount] = None

    def __post_init__(self) -> None:
        _require_non_negative_int("reserve_a", self.reserve_a)
        _require_non_negative_int("reserve_b", self.reserve_b)
        _require_non_negative_int("sequence", self.sequence)
        if self.total_supply is not None:
            _require_non_negative_int("total_supply", self.total_supply)

    @property
    def is_empty(self) -> bool:
        return self.reserve_a == 0 or self.reserve_b == 0

    def reserves_for(self, *, a_to_b: bool) -> Tuple[Amount, Amount]:
        """Return ``(reserve_in, reserve_out)`` for a swap direction."""
        if a_to_b:
            return self.reserve_a, self.reserve_b
        return self.reserve_b, self.reserve_a

    def age(self, now: float) -> float:
        return max(0.0, now - self.captured_at)

    def is_fresh(self, now: float, max_age: float) -> bool:
        return self.age(now) <= max_age


@dataclass(frozen=True)
class AccountBalances:
    """One account's holdings of both pool assets and of pool shares."""

    account: Address
    asset_a: Amount
    asset_b: Amount
    shares: Amount
    captured_at: float

    def __post_init__(self) -> None:
        _require_non_negative_int("asset_a", self.asset_a)
        _require_non_negative_int("asset_b", self.asset_b)
        _require_non_negative_int("shares", self.shares)

    def for_asset(self, *, is_asset_a: bool) -> Amount:
        return self.asset_a if is_asset_a else self.asset_b
