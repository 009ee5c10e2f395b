"""
miniswap: client-side pricing and transaction orchestration for a two-asset
constant-product pool
"""

from .errors import (
    ActionAbandoned,
    ActionInProgress,
    ApprovalFailed,
    ConfirmationTimeout,
    InsufficientBalance,
    InvalidAmount,
    InvalidReserves,
    InvalidTransition,
    MiniswapError,
    NetworkMismatch,
    NoWalletConnected,
    ReadFailed,
    SlippageExceeded,
    SubmissionFailed,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "ActionAbandoned",
    "ActionInProgress",
    "ApprovalFailed",
    "ConfirmationTimeout",
    "InsufficientBalance",
    "InvalidAmount",
    "InvalidReserves",
    "InvalidTransition",
    "MiniswapError",
    "NetworkMismatch",
    "NoWalletConnected",
    "ReadFailed",
    "SlippageExceeded",
    "SubmissionFailed",
]
