"""
Client-side value types: amounts and state snapshots
"""

from .amounts import (
    DEFAULT_DECIMALS,
    MAX_AMOUNT,
    Address,
    Amount,
    format_units,
    parse_units,
    require_amount,
    require_same_decimals,
)
from .snapshots import AccountBalances, ReserveSnapshot

__all__ = [
    "DEFAULT_DECIMALS",
    "MAX_AMOUNT",
    "Address",
    "Amount",
    "format_units",
    "parse_units",
    "require_amount",
    "require_same_decimals",
    "AccountBalances",
    "ReserveSnapshot",
]
