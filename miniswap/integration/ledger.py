"""
Remote ledger contract: what the client needs from the pool and its assets.

``PoolLedger`` is the seam between the orchestration core and the chain. The
core only ever talks to this interface; ``Web3PoolLedger`` implements it with
``web3.AsyncWeb3`` against the deployed pool and ERC-20 contracts, and tests
substitute an in-memory ledger.

Writes return a ``TxHandle``. Sending a write and confirming it are separate
suspension points: ``await ledger.swap(...)`` returns once the transaction is
accepted for inclusion, ``await handle.wait(timeout)`` once it is mined (or
the timeout elapses). ``wait`` never raises for a revert or a timeout; it
resolves to a ``TxReceipt`` whose ``status`` says what happened.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum, unique
from typing import TYPE_CHECKING, Any, Optional, Tuple

from web3 import AsyncWeb3, Web3
from web3.exceptions import ContractLogicError, TimeExhausted, Web3Exception

from ..state.amounts import Address, Amount
from .abi import ERC20_ABI, POOL_ABI

if TYPE_CHECKING:
    from .wallet import WalletProvider


logger = logging.getLogger(__name__)


class LedgerError(RuntimeError):
    pass


class LedgerRejected(LedgerError):
    """The contract refused the call (revert / failed gas estimation)."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class LedgerUnavailable(LedgerError):
    """The call did not reach the ledger or the response never came back."""


@unique
class TxStatus(Enum):
    CONFIRMED = "confirmed"
    REVERTED = "reverted"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class TxReceipt:
    tx_hash: str
    status: TxStatus
    block_number: Optional[int] = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is TxStatus.CONFIRMED


class TxHandle(ABC):
    """A submitted write whose confirmation can be awaited explicitly."""

    tx_hash: str

    @abstractmethod
    async def wait(self, timeout: float) -> TxReceipt:
        ...


class PoolLedger(ABC):
    """Remote operations on one two-asset pool and its assets."""

    @property
    @abstractmethod
    def pool_address(self) -> Address:
        ...

    @abstractmethod
    async def get_reserves(self) -> Tuple[Amount, Amount]:
        ...

    @abstractmethod
    async def total_supply(self) -> Amount:
        ...

    @abstractmethod
    async def balance_of(self, asset: Address, account: Address) -> Amount:
        ...

    @abstractmethod
    async def share_balance_of(self, account: Address) -> Amount:
        ...

    @abstractmethod
    async def allowance(self, asset: Address, owner: Address, spender: Address) -> Amount:
        ...

    @abstractmethod
    async def approve(self, asset: Address, spender: Address, amount: Amount, *, sender: Address) -> TxHandle:
        ...

    @abstractmethod
    async def swap(self, asset_in: Address, amount_in: Amount, min_amount_out: Amount, *, sender: Address) -> TxHandle:
        ...

    @abstractmethod
    async def add_liquidity(
        self,
        amount_a: Amount,
        amount_b: Amount,
        min_amount_a: Amount,
        min_amount_b: Amount,
        *,
        sender: Address,
    ) -> TxHandle:
        ...

    @abstractmethod
    async def remove_liquidity(
        self,
        share_amount: Amount,
        min_amount_a: Amount,
        min_amount_b: Amount,
        *,
        sender: Address,
    ) -> TxHandle:
        ...

    @abstractmethod
    async def quote_amount_out(self, amount_in: Amount, reserve_in: Amount, reserve_out: Amount) -> Amount:
        """The ledger's own pricing function, used to check the local fee setting."""
        ...


_TRANSPORT_ERRORS = (Web3Exception, OSError, asyncio.TimeoutError)


class Web3TxHandle(TxHandle):
    def __init__(self, w3: AsyncWeb3, tx_hash: bytes, *, poll_latency: float = 0.5) -> None:
        self._w3 = w3
        self._raw_hash = tx_hash
        self._poll_latency = poll_latency
        self.tx_hash = Web3.to_hex(tx_hash)

    async def wait(self, timeout: float) -> TxReceipt:
        try:
            receipt = await self._w3.eth.wait_for_transaction_receipt(
                self._raw_hash, timeout=timeout, poll_latency=self._poll_latency
            )
        except TimeExhausted:
            logger.warning("no receipt for %s after %.1fs", self.tx_hash, timeout)
            return TxReceipt(tx_hash=self.tx_hash, status=TxStatus.TIMED_OUT, reason=f"no receipt after {timeout}s")
        except _TRANSPORT_ERRORS as exc:
            raise LedgerUnavailable(f"waiting for {self.tx_hash}: {exc}") from exc

        block_number = receipt.get("blockNumber")
        if receipt.get("status") == 1:
            return TxReceipt(tx_hash=self.tx_hash, status=TxStatus.CONFIRMED, block_number=block_number)
        return TxReceipt(
            tx_hash=self.tx_hash,
            status=TxStatus.REVERTED,
            block_number=block_number,
            reason="execution reverted",
        )


class Web3PoolLedger(PoolLedger):
    """``PoolLedger`` over JSON-RPC, signing through a wallet provider."""

    def __init__(self, w3: AsyncWeb3, wallet: "WalletProvider", *, pool: Address, asset_a: Address, asset_b: Address) -> None:
        self._w3 = w3
        self._wallet = wallet
        self._pool_address = Web3.to_checksum_address(pool)
        self._pool = w3.eth.contract(address=self._pool_address, abi=POOL_ABI)
        self._tokens = {
            Web3.to_checksum_address(a): w3.eth.contract(address=Web3.to_checksum_address(a), abi=ERC20_ABI)
            for a in (asset_a, asset_b)
        }

    @property
    def pool_address(self) -> Address:
        return self._pool_address

    def _token(self, asset: Address) -> Any:
        try:
            return self._tokens[Web3.to_checksum_address(asset)]
        except KeyError as exc:
            raise ValueError(f"not a pool asset: {asset}") from exc

    async def _read(self, call: Any, label: str) -> Any:
        try:
            return await call.call()
        except ContractLogicError as exc:
            raise LedgerRejected(f"{label}: {exc}") from exc
        except _TRANSPORT_ERRORS as exc:
            raise LedgerUnavailable(f"{label}: {exc}") from exc

    async def _write(self, fn: Any, sender: Address, label: str) -> TxHandle:
        try:
            tx = await fn.build_transaction({"from": Web3.to_checksum_address(sender)})
            tx_hash = await self._wallet.send_transaction(tx)
        except ContractLogicError as exc:
            logger.warning("%s rejected by ledger: %s", label, exc)
            raise LedgerRejected(str(exc)) from exc
        except _TRANSPORT_ERRORS as exc:
            raise LedgerUnavailable(f"{label}: {exc}") from exc
        handle = Web3TxHandle(self._w3, tx_hash)
        logger.info("%s sent: %s", label, handle.tx_hash)
        return handle

    async def get_reserves(self) -> Tuple[Amount, Amount]:
        r = await self._read(self._pool.functions.getReserves(), "getReserves")
        return r[0], r[1]

    async def total_supply(self) -> Amount:
        return await self._read(self._pool.functions.totalSupply(), "totalSupply")

    async def balance_of(self, asset: Address, account: Address) -> Amount:
        fn = self._token(asset).functions.balanceOf(Web3.to_checksum_address(account))
        return await self._read(fn, "balanceOf")

    async def share_balance_of(self, account: Address) -> Amount:
        fn = self._pool.functions.balanceOf(Web3.to_checksum_address(account))
        return await self._read(fn, "balanceOf(shares)")

    async def allowance(self, asset: Address, owner: Address, spender: Address) -> Amount:
        fn = self._token(asset).functions.allowance(
            Web3.to_checksum_address(owner), Web3.to_checksum_address(spender)
        )
        return await self._read(fn, "allowance")

    async def approve(self, asset: Address, spender: Address, amount: Amount, *, sender: Address) -> TxHandle:
        fn = self._token(asset).functions.approve(Web3.to_checksum_address(spender), amount)
        return await self._write(fn, sender, "approve")

    async def swap(self, asset_in: Address, amount_in: Amount, min_amount_out: Amount, *, sender: Address) -> TxHandle:
        fn = self._pool.functions.swap(Web3.to_checksum_address(asset_in), amount_in, min_amount_out)
        return await self._write(fn, sender, "swap")

    async def add_liquidity(
        self,
        amount_a: Amount,
        amount_b: Amount,
        min_amount_a: Amount,
        min_amount_b: Amount,
        *,
        sender: Address,
    ) -> TxHandle:
        fn = self._pool.functions.addLiquidity(amount_a, amount_b, min_amount_a, min_amount_b)
        return await self._write(fn, sender, "addLiquidity")

    async def remove_liquidity(
        self,
        share_amount: Amount,
        min_amount_a: Amount,
        min_amount_b: Amount,
        *,
        sender: Address,
    ) -> TxHandle:
        fn = self._pool.functions.removeLiquidity(share_amount, min_amount_a, min_amount_b)
        return await self._write(fn, sender, "removeLiquidity")

    async def quote_amount_out(self, amount_in: Amount, reserve_in: Amount, reserve_out: Amount) -> Amount:
        fn = self._pool.functions.getAmountOut(amount_in, reserve_in, reserve_out)
        return await self._read(fn, "getAmountOut")
