"""
Allowance gate: make sure a spender may pull ``required`` units before a write.

One read, then at most one approval for exactly the required amount. No
unlimited approvals and no retries.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..errors import ApprovalFailed, ReadFailed
from ..state.amounts import Address, Amount, require_amount
from .ledger import LedgerError, LedgerRejected, PoolLedger, TxReceipt, TxStatus


logger = logging.getLogger(__name__)


class AllowanceGate:
    def __init__(self, ledger: PoolLedger, *, confirmation_timeout: float) -> None:
        self._ledger = ledger
        self._timeout = confirmation_timeout

    async def current_allowance(self, asset: Address, owner: Address, spender: Address) -> Amount:
        try:
            value = await self._ledger.allowance(asset, owner, spender)
        except LedgerError as exc:
            raise ReadFailed(f"allowance({asset}): {exc}") from exc
        if not isinstance(value, int) or isinstance(value, bool) or value < 0:
            raise ReadFailed(f"malformed allowance from ledger: {value!r}")
        return value

    async def ensure_allowance(
        self,
        asset: Address,
        owner: Address,
        spender: Address,
        required: Amount,
    ) -> Optional[TxReceipt]:
        """
        Ensure ``spender`` may transfer ``required`` of ``asset`` from ``owner``.

        Returns ``None`` when the existing allowance already covers the amount
        (no write is issued), otherwise the confirmed approval receipt.

        Raises:
            ReadFailed: The allowance could not be read
            ApprovalFailed: The approval was rejected, reverted or timed out
        """
        require_amount("required", required)
        current = await self.current_allowance(asset, owner, spender)
        if current >= required:
            logger.debug("allowance %d >= %d for %s, no approval needed", current, required, asset)
            return None

        logger.info("approving %d of %s for %s (current %d)", required, asset, spender, current)
        try:
            handle = await self._ledger.approve(asset, spender, required, sender=owner)
        except LedgerRejected as exc:
            raise ApprovalFailed(f"approval rejected: {exc.reason}") from exc
        except LedgerError as exc:
            raise ApprovalFailed(f"approval not sent: {exc}") from exc

        try:
            receipt = await handle.wait(self._timeout)
        except LedgerError as exc:
            raise ApprovalFailed(f"approval {handle.tx_hash} unconfirmed: {exc}") from exc

        if receipt.status is TxStatus.REVERTED:
            raise ApprovalFailed(f"approval {receipt.tx_hash} reverted: {receipt.reason}")
        if receipt.status is TxStatus.TIMED_OUT:
            raise ApprovalFailed(f"approval {receipt.tx_hash} timed out after {self._timeout}s")
        logger.info("approval confirmed: %s", receipt.tx_hash)
        return receipt
