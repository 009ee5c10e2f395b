"""
Constant-product pricing for the client-side estimate path.

This module implements the pool arithmetic the client needs to quote a trade
or a liquidity change before asking the ledger to execute it. The ledger is
authoritative; these functions must use the same integer rounding so that an
estimate built here is accepted there.

Algorithm Design:
- Type: Fixed-Point Integer Arithmetic / Truncating Division
- Time Complexity: O(1) per quote
- Space Complexity: O(1) auxiliary
- Invariant: quoted swap output < reserve_out (the curve never drains a reserve)
"""

from __future__ import annotations

from fractions import Fraction
from typing import Tuple

from ..errors import InvalidAmount, InvalidReserves
from ..state.amounts import Amount, require_amount
from .slippage import SlippageTolerance, ToleranceInput


BPS_DENOM = 10_000

# Uniswap-v2 style 0.3% fee. Keep in lockstep with the deployed pool contract;
# ``ClientConfig.fee_bps`` overrides it.
DEFAULT_FEE_BPS = 30


def _require_fee_bps(fee_bps: int) -> None:
    if not isinstance(fee_bps, int) or isinstance(fee_bps, bool):
        raise TypeError("fee_bps must be an int")
    if not (0 <= fee_bps < BPS_DENOM):
        raise ValueError(f"fee_bps must be in [0, {BPS_DENOM}): {fee_bps}")


def quote_swap_output(
    amount_in: Amount,
    reserve_in: Amount,
    reserve_out: Amount,
    *,
    fee_bps: int = DEFAULT_FEE_BPS,
) -> Amount:
    """
    Estimate the output of an exact-in swap.

    The fee is deducted from the input before pricing:
        in_with_fee = amount_in * (10_000 - fee_bps)
        amount_out = floor(in_with_fee * reserve_out / (reserve_in * 10_000 + in_with_fee))

    Args:
        amount_in: Exact input amount (must be positive)
        reserve_in: Current reserve of the input asset
        reserve_out: Current reserve of the output asset
        fee_bps: Pool fee in basis points

    Returns:
        Estimated output amount. A positive input too small to move the
        output quotes 0.

    Raises:
        InvalidReserves: If either reserve is zero (pool empty)
        InvalidAmount: If amount_in is not positive
    """
    require_amount("reserve_in", reserve_in)
    require_amount("reserve_out", reserve_out)
    require_amount("amount_in", amount_in)
    _require_fee_bps(fee_bps)

    if reserve_in == 0 or reserve_out == 0:
        raise InvalidReserves(f"pool has no liquidity: ({reserve_in}, {reserve_out})")
    if amount_in == 0:
        raise InvalidAmount("amount_in must be positive")

    in_with_fee = amount_in * (BPS_DENOM - fee_bps)
    numerator = in_with_fee * reserve_out
    denominator = reserve_in * BPS_DENOM + in_with_fee
    return numerator // denominator


def quote_proportional_deposit(amount_a: Amount, reserve_a: Amount, reserve_b: Amount) -> Amount:
    """
    Compute the asset-B amount that preserves the pool ratio for a deposit of ``amount_a``.

    Formula (truncating toward zero, as the ledger does):
        amount_b = floor(amount_a * reserve_b / reserve_a)

    Raises:
        InvalidReserves: If reserve_a is zero. This is the first deposit; the
            ratio is unconstrained and the caller sets both amounts.
    """
    require_amount("amount_a", amount_a)
    require_amount("reserve_a", reserve_a)
    require_amount("reserve_b", reserve_b)
    if reserve_a == 0:
        raise InvalidReserves("reserve_a is zero: first deposit sets the ratio")
    return (amount_a * reserve_b) // reserve_a


def quote_withdrawal(
    share_amount: Amount,
    reserve_a: Amount,
    reserve_b: Amount,
    total_supply: Amount,
) -> Tuple[Amount, Amount]:
    """
    Estimate the asset amounts returned for burning ``share_amount`` pool shares.

    Formula:
        amount_a = floor(share_amount * reserve_a / total_supply)
        amount_b = floor(share_amount * reserve_b / total_supply)

    ``total_supply`` and the reserves come from separate reads, so this is an
    estimate of what the ledger will pay, not a guarantee.

    Raises:
        InvalidReserves: If total_supply is zero
        InvalidAmount: If share_amount is not positive or exceeds total_supply
    """
    require_amount("share_amount", share_amount)
    require_amount("reserve_a", reserve_a)
    require_amount("reserve_b", reserve_b)
    require_amount("total_supply", total_supply)
    if total_supply == 0:
        raise InvalidReserves("pool share supply is zero")
    if share_amount == 0:
        raise InvalidAmount("share_amount must be positive")
    if share_amount > total_supply:
        raise InvalidAmount(f"cannot burn more shares than supply: {share_amount} > {total_supply}")

    amount_a = (share_amount * reserve_a) // total_supply
    amount_b = (share_amount * reserve_b) // total_supply
    return amount_a, amount_b


def apply_slippage(amount: Amount, tolerance: ToleranceInput) -> Amount:
    """
    Shrink an expected amount into the minimum acceptable amount.

        result = floor(amount * (100 - tolerance) / 100)

    Evaluated with ``Fraction`` so a tolerance such as 0.1 is exact.
    The result never exceeds ``amount`` and is strictly smaller whenever both
    ``amount`` and ``tolerance`` are positive.
    """
    require_amount("amount", amount)
    percent = Fraction(SlippageTolerance.of(tolerance).percent)
    return (amount * (100 - percent)) // 100
