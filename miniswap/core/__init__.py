"""
Pure pricing and action-state logic (no I/O)
"""

from .amount_math import (
    BPS_DENOM,
    DEFAULT_FEE_BPS,
    apply_slippage,
    quote_proportional_deposit,
    quote_swap_output,
    quote_withdrawal,
)
from .pending import ActionKind, ActionState, PendingAction
from .slippage import DEFAULT_TOLERANCE, PRESET_TOLERANCES, SlippageTolerance

__all__ = [
    "BPS_DENOM",
    "DEFAULT_FEE_BPS",
    "apply_slippage",
    "quote_proportional_deposit",
    "quote_swap_output",
    "quote_withdrawal",
    "ActionKind",
    "ActionState",
    "PendingAction",
    "DEFAULT_TOLERANCE",
    "PRESET_TOLERANCES",
    "SlippageTolerance",
]
