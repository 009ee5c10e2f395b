"""In-memory ledger and wallet used by the integration tests."""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional, Set, Tuple

from miniswap.config import AssetHandle, Deployment
from miniswap.core.amount_math import quote_swap_output
from miniswap.integration.ledger import (
    LedgerRejected,
    LedgerUnavailable,
    PoolLedger,
    TxHandle,
    TxReceipt,
    TxStatus,
)
from miniswap.integration.wallet import WalletProvider


ASSET_A = "0x" + "1a" * 20
ASSET_B = "0x" + "2b" * 20
POOL = "0x" + "3c" * 20
ACCOUNT = "0x" + "4d" * 20
OTHER_ACCOUNT = "0x" + "5e" * 20

WRITE_METHODS = frozenset({"approve", "swap", "add_liquidity", "remove_liquidity"})


def make_deployment(*, chain_id: Optional[int] = None) -> Deployment:
    return Deployment(
        asset_a=AssetHandle(address=ASSET_A, symbol="TKA"),
        asset_b=AssetHandle(address=ASSET_B, symbol="TKB"),
        pool=POOL,
        network="testnet",
        chain_id=chain_id,
    )


class FakeTxHandle(TxHandle):
    def __init__(self, ledger: "FakeLedger", method: str, args: Tuple[Any, ...], status: TxStatus, lost: bool) -> None:
        self._ledger = ledger
        self._method = method
        self._args = args
        self._status = status
        self._lost = lost
        self.tx_hash = f"0x{len(ledger.calls):064x}"
        self.waited = 0

    async def wait(self, timeout: float) -> TxReceipt:
        self.waited += 1
        await asyncio.sleep(0)
        if self._lost:
            raise LedgerUnavailable("connection reset")
        if self._status is TxStatus.CONFIRMED:
            self._ledger._apply(self._method, self._args)
            return TxReceipt(tx_hash=self.tx_hash, status=TxStatus.CONFIRMED, block_number=len(self._ledger.calls))
        if self._status is TxStatus.REVERTED:
            return TxReceipt(tx_hash=self.tx_hash, status=TxStatus.REVERTED, reason="execution reverted")
        return TxReceipt(tx_hash=self.tx_hash, status=TxStatus.TIMED_OUT, reason="no receipt")


class FakeLedger(PoolLedger):
    """
    Records every call in ``calls`` as ``(method, args)``.

    Failure knobs:
    - ``reads_fail``: every read raises ``LedgerUnavailable``
    - ``reject[method] = reason``: the write is refused at submission
    - ``unreachable``: writes in this set raise ``LedgerUnavailable`` at submission
    - ``status[method]``: receipt status for a submitted write
    - ``lost``: writes in this set raise ``LedgerUnavailable`` while waiting
    """

    def __init__(self, *, reserves: Tuple[int, int] = (1000, 2000), total_supply: int = 100, fee_bps: int = 30) -> None:
        self.reserves = reserves
        self.supply = total_supply
        self.fee_bps = fee_bps
        self.balances: Dict[Tuple[str, str], int] = {}
        self.shares: Dict[str, int] = {}
        self.allowances: Dict[Tuple[str, str, str], int] = {}
        self.calls: List[Tuple[str, Tuple[Any, ...]]] = []
        self.handles: List[FakeTxHandle] = []
        self.reads_fail = False
        self.reject: Dict[str, str] = {}
        self.unreachable: Set[str] = set()
        self.status: Dict[str, TxStatus] = {}
        self.lost: Set[str] = set()
        self.read_gate: Optional[asyncio.Event] = None

    # -- test helpers --------------------------------------------------

    @property
    def writes(self) -> List[Tuple[str, Tuple[Any, ...]]]:
        return [c for c in self.calls if c[0] in WRITE_METHODS]

    def calls_to(self, method: str) -> List[Tuple[Any, ...]]:
        return [args for name, args in self.calls if name == method]

    def fund(self, account: str, *, a: int = 0, b: int = 0, shares: int = 0) -> None:
        self.balances[(ASSET_A.lower(), account.lower())] = a
        self.balances[(ASSET_B.lower(), account.lower())] = b
        self.shares[account.lower()] = shares

    def set_allowance(self, asset: str, owner: str, amount: int) -> None:
        self.allowances[(asset.lower(), owner.lower(), POOL.lower())] = amount

    def _apply(self, method: str, args: Tuple[Any, ...]) -> None:
        if method == "approve":
            asset, spender, amount, sender = args
            self.allowances[(asset.lower(), sender.lower(), spender.lower())] = amount

    async def _read(self, method: str, *args: Any) -> None:
        self.calls.append((method, args))
        if self.read_gate is not None:
            await self.read_gate.wait()
        else:
            await asyncio.sleep(0)
        if self.reads_fail:
            raise LedgerUnavailable(f"{method}: connection refused")

    async def _write(self, method: str, *args: Any) -> TxHandle:
        self.calls.append((method, args))
        await asyncio.sleep(0)
        if method in self.reject:
            raise LedgerRejected(self.reject[method])
        if method in self.unreachable:
            raise LedgerUnavailable(f"{method}: connection refused")
        handle = FakeTxHandle(self, method, args, self.status.get(method, TxStatus.CONFIRMED), method in self.lost)
        self.handles.append(handle)
        return handle

    # -- PoolLedger ----------------------------------------------------

    @property
    def pool_address(self) -> str:
        return POOL

    async def get_reserves(self) -> Tuple[int, int]:
        await self._read("get_reserves")
        return self.reserves

    async def total_supply(self) -> int:
        await self._read("total_supply")
        return self.supply

    async def balance_of(self, asset: str, account: str) -> int:
        await self._read("balance_of", asset, account)
        return self.balances.get((asset.lower(), account.lower()), 0)

    async def share_balance_of(self, account: str) -> int:
        await self._read("share_balance_of", account)
        return self.shares.get(account.lower(), 0)

    async def allowance(self, asset: str, owner: str, spender: str) -> int:
        await self._read("allowance", asset, owner, spender)
        return self.allowances.get((asset.lower(), owner.lower(), spender.lower()), 0)

    async def approve(self, asset: str, spender: str, amount: int, *, sender: str) -> TxHandle:
        return await self._write("approve", asset, spender, amount, sender)

    async def swap(self, asset_in: str, amount_in: int, min_amount_out: int, *, sender: str) -> TxHandle:
        return await self._write("swap", asset_in, amount_in, min_amount_out, sender)

    async def add_liquidity(
        self, amount_a: int, amount_b: int, min_amount_a: int, min_amount_b: int, *, sender: str
    ) -> TxHandle:
        return await self._write("add_liquidity", amount_a, amount_b, min_amount_a, min_amount_b, sender)

    async def remove_liquidity(self, share_amount: int, min_amount_a: int, min_amount_b: int, *, sender: str) -> TxHandle:
        return await self._write("remove_liquidity", share_amount, min_amount_a, min_amount_b, sender)

    async def quote_amount_out(self, amount_in: int, reserve_in: int, reserve_out: int) -> int:
        await self._read("quote_amount_out", amount_in, reserve_in, reserve_out)
        return quote_swap_output(amount_in, reserve_in, reserve_out, fee_bps=self.fee_bps)


class FakeWallet(WalletProvider):
    def __init__(self, accounts: Optional[List[str]] = None, *, chain_id: int = 31337) -> None:
        self.accounts = [ACCOUNT] if accounts is None else list(accounts)
        self.chain_id = chain_id
        self.calls: List[str] = []

    async def request_accounts(self) -> List[str]:
        self.calls.append("request_accounts")
        return list(self.accounts)

    async def get_network_id(self) -> int:
        self.calls.append("get_network_id")
        return self.chain_id

    async def send_transaction(self, tx: Dict[str, Any]) -> bytes:
        self.calls.append("send_transaction")
        return b"\x00" * 32
