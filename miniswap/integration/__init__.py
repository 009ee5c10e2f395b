"""
Remote ledger integration: reads, approvals, orchestration and quotes
"""

from .allowance import AllowanceGate
from .ledger import (
    LedgerError,
    LedgerRejected,
    LedgerUnavailable,
    PoolLedger,
    TxHandle,
    TxReceipt,
    TxStatus,
    Web3PoolLedger,
)
from .orchestrator import (
    ActionContext,
    ActionOrchestrator,
    ActionOutcome,
    ContextLoader,
    AddLiquidityRequest,
    RemoveLiquidityRequest,
    SwapRequest,
)
from .pool_reader import PoolStateReader
from .quotes import (
    DepositEstimator,
    Quote,
    QuoteRefresher,
    SwapEstimator,
    WithdrawalEstimator,
    deposit_estimator,
    swap_estimator,
    withdrawal_estimator,
)
from .wallet import LocalAccountWallet, NodeWallet, WalletProvider

__all__ = [
    "AllowanceGate",
    "LedgerError",
    "LedgerRejected",
    "LedgerUnavailable",
    "PoolLedger",
    "TxHandle",
    "TxReceipt",
    "TxStatus",
    "Web3PoolLedger",
    "ActionContext",
    "ActionOrchestrator",
    "ActionOutcome",
    "ContextLoader",
    "AddLiquidityRequest",
    "RemoveLiquidityRequest",
    "SwapRequest",
    "PoolStateReader",
    "DepositEstimator",
    "Quote",
    "QuoteRefresher",
    "SwapEstimator",
    "WithdrawalEstimator",
    "deposit_estimator",
    "swap_estimator",
    "withdrawal_estimator",
    "LocalAccountWallet",
    "NodeWallet",
    "WalletProvider",
]
