"""
On-demand reads of pool reserves, share supply and account balances.

Reads are idempotent and carry no ordering requirement, so independent reads
are issued concurrently. The latest reserve snapshot is cached; a newer read
replaces it wholesale, so concurrent readers never observe a half-updated
snapshot. A failed or malformed read raises ``ReadFailed``: the value is
unknown, never zero.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Optional

from ..config import Deployment
from ..errors import ReadFailed
from ..state.amounts import Address, Amount
from ..state.snapshots import AccountBalances, ReserveSnapshot
from .ledger import LedgerError, PoolLedger


logger = logging.getLogger(__name__)

Clock = Callable[[], float]


def _as_amount(value: Any, *, label: str) -> Amount:
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise ReadFailed(f"malformed {label} from ledger: {value!r}")
    return value


class PoolStateReader:
    def __init__(self, ledger: PoolLedger, deployment: Deployment, *, clock: Clock = time.monotonic) -> None:
        self._ledger = ledger
        self._deployment = deployment
        self._clock = clock
        self._sequence = itertools.count(1)
        self._latest: Optional[ReserveSnapshot] = None
        self._latest_balances: Dict[str, AccountBalances] = {}

    @property
    def latest(self) -> Optional[ReserveSnapshot]:
        """The most recent reserve snapshot, without touching the network."""
        return self._latest

    def latest_balances(self, account: Address) -> Optional[AccountBalances]:
        return self._latest_balances.get(account.lower())

    async def _guarded(self, label: str, aw: Awaitable[Any]) -> Any:
        try:
            return await aw
        except LedgerError as exc:
            logger.warning("read %s failed: %s", label, exc)
            raise ReadFailed(f"{label}: {exc}") from exc

    async def read_reserves(self) -> ReserveSnapshot:
        """Fetch reserves and share supply and publish them as the new snapshot."""
        reserves, total_supply = await asyncio.gather(
            self._guarded("getReserves", self._ledger.get_reserves()),
            self._guarded("totalSupply", self._ledger.total_supply()),
        )
        if not isinstance(reserves, (tuple, list)) or len(reserves) < 2:
            raise ReadFailed(f"malformed reserves from ledger: {reserves!r}")
        snapshot = ReserveSnapshot(
            reserve_a=_as_amount(reserves[0], label="reserve_a"),
            reserve_b=_as_amount(reserves[1], label="reserve_b"),
            total_supply=_as_amount(total_supply, label="total_supply"),
            captured_at=self._clock(),
            sequence=next(self._sequence),
        )
        current = self._latest
        if current is None or snapshot.sequence > current.sequence:
            self._latest = snapshot
        logger.debug(
            "reserves #%d: a=%d b=%d supply=%s",
            snapshot.sequence,
            snapshot.reserve_a,
            snapshot.reserve_b,
            snapshot.total_supply,
        )
        return snapshot

    async def snapshot(self, max_age: float) -> ReserveSnapshot:
        """Return the cached snapshot if younger than ``max_age`` seconds, else read a fresh one."""
        current = self._latest
        if current is not None and current.is_fresh(self._clock(), max_age):
            return current
        return await self.read_reserves()

    async def read_total_supply(self) -> Amount:
        value = await self._guarded("totalSupply", self._ledger.total_supply())
        return _as_amount(value, label="total_supply")

    async def read_balance(self, asset: Address, account: Address) -> Amount:
        value = await self._guarded("balanceOf", self._ledger.balance_of(asset, account))
        return _as_amount(value, label="balance")

    async def read_balances(self, account: Address) -> AccountBalances:
        a, b, shares = await asyncio.gather(
            self._guarded("balanceOf(a)", self._ledger.balance_of(self._deployment.asset_a.address, account)),
            self._guarded("balanceOf(b)", self._ledger.balance_of(self._deployment.asset_b.address, account)),
            self._guarded("balanceOf(shares)", self._ledger.share_balance_of(account)),
        )
        balances = AccountBalances(
            account=account,
            asset_a=_as_amount(a, label="balance_a"),
            asset_b=_as_amount(b, label="balance_b"),
            shares=_as_amount(shares, label="shares"),
            captured_at=self._clock(),
        )
        self._latest_balances[account.lower()] = balances
        return balances
