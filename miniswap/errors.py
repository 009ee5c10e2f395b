"""Error taxonomy for the swap client.

Every error carries a stable ``kind`` (the class name) and a ``category`` so a
caller can tell "fix your input" from "price moved, try again" from "check
your connection" without string matching.

Local validation errors are raised before any network interaction; the rest
are raised by the integration layer when a remote step fails.
"""

from __future__ import annotations

from typing import Optional


CATEGORY_INPUT = "input"
CATEGORY_MARKET = "market"
CATEGORY_CONNECTION = "connection"
CATEGORY_STATE = "state"


class MiniswapError(Exception):
    """Base class for all client-side swap/liquidity errors."""

    category: str = CATEGORY_STATE

    @property
    def kind(self) -> str:
        return type(self).__name__


class InvalidAmount(MiniswapError):
    """Non-positive, non-numeric or unrepresentable amount (local, pre-network)."""

    category = CATEGORY_INPUT


class InsufficientBalance(MiniswapError):
    """Requested amount exceeds the last known balance (local, pre-network)."""

    category = CATEGORY_INPUT

    def __init__(self, message: str, *, asset: Optional[str] = None, required: int = 0, available: Optional[int] = None) -> None:
        self.asset = asset
        self.required = required
        self.available = available
        super().__init__(message)


class InvalidReserves(MiniswapError):
    """The pool has no liquidity on the side needed for the computation."""

    category = CATEGORY_MARKET


class ApprovalFailed(MiniswapError):
    """The allowance-raising call was rejected, reverted or timed out."""

    category = CATEGORY_CONNECTION


class SlippageExceeded(MiniswapError):
    """The ledger rejected the primary action because its minimums could not be met."""

    category = CATEGORY_MARKET


class ReadFailed(MiniswapError):
    """A state read did not complete; the value is unknown, not zero."""

    category = CATEGORY_CONNECTION


class NoWalletConnected(MiniswapError):
    """No connected account is available to attribute a remote write to."""

    category = CATEGORY_CONNECTION


class NetworkMismatch(MiniswapError):
    """The wallet is connected to a different chain than the deployment."""

    category = CATEGORY_CONNECTION

    def __init__(self, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"wallet is on chain {actual}, deployment expects chain {expected}")


class SubmissionFailed(MiniswapError):
    """The primary write could not be delivered to the ledger."""

    category = CATEGORY_CONNECTION


class ConfirmationTimeout(MiniswapError):
    """The primary write was sent but no receipt arrived in time."""

    category = CATEGORY_CONNECTION

    def __init__(self, message: str, *, tx_hash: Optional[str] = None) -> None:
        self.tx_hash = tx_hash
        super().__init__(message)


class ActionInProgress(MiniswapError):
    """The form already has an in-flight action."""

    category = CATEGORY_STATE


class ActionAbandoned(MiniswapError):
    """The user abandoned the action before it reached submission."""

    category = CATEGORY_STATE


class InvalidTransition(RuntimeError):
    """Raised when a pending action is driven through an illegal state change."""
