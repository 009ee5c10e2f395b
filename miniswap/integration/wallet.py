"""
Wallet providers: connected accounts, network id and transaction signing.

Every remote write is attributed to one connected account. Two providers:

- ``NodeWallet``: accounts managed by the RPC endpoint itself (a dev chain,
  or a signer bridged into the node). Transactions go out via
  ``eth_sendTransaction``.
- ``LocalAccountWallet``: a key the user already holds, loaded with
  ``eth_account``. Transactions are signed locally and sent raw.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import AsyncWeb3, Web3
from web3.exceptions import Web3Exception

from ..errors import NoWalletConnected
from ..state.amounts import Address


logger = logging.getLogger(__name__)


class WalletProvider(ABC):
    @abstractmethod
    async def request_accounts(self) -> List[Address]:
        ...

    @abstractmethod
    async def get_network_id(self) -> int:
        ...

    @abstractmethod
    async def send_transaction(self, tx: Dict[str, Any]) -> bytes:
        """Sign (if needed) and broadcast ``tx``; return the transaction hash."""
        ...

    async def current_account(self) -> Address:
        """The first connected account, or ``NoWalletConnected``."""
        accounts = await self.request_accounts()
        if not accounts:
            raise NoWalletConnected("wallet exposes no accounts")
        return Web3.to_checksum_address(accounts[0])


async def _chain_id(w3: AsyncWeb3) -> int:
    try:
        return int(await w3.eth.chain_id)
    except (Web3Exception, OSError) as exc:
        raise NoWalletConnected(f"cannot read network id: {exc}") from exc


class NodeWallet(WalletProvider):
    def __init__(self, w3: AsyncWeb3) -> None:
        self._w3 = w3

    async def request_accounts(self) -> List[Address]:
        try:
            accounts = await self._w3.eth.accounts
        except (Web3Exception, OSError) as exc:
            raise NoWalletConnected(f"node did not return accounts: {exc}") from exc
        return [Web3.to_checksum_address(a) for a in accounts]

    async def get_network_id(self) -> int:
        return await _chain_id(self._w3)

    async def send_transaction(self, tx: Dict[str, Any]) -> bytes:
        return await self._w3.eth.send_transaction(tx)


class LocalAccountWallet(WalletProvider):
    def __init__(self, w3: AsyncWeb3, account: LocalAccount) -> None:
        self._w3 = w3
        self._account = account

    @classmethod
    def from_key(cls, w3: AsyncWeb3, private_key: str) -> "LocalAccountWallet":
        if not isinstance(private_key, str) or not private_key.strip():
            raise NoWalletConnected("private key is empty")
        return cls(w3, Account.from_key(private_key.strip()))

    @property
    def address(self) -> Address:
        return self._account.address

    async def request_accounts(self) -> List[Address]:
        return [self._account.address]

    async def get_network_id(self) -> int:
        return await _chain_id(self._w3)

    async def send_transaction(self, tx: Dict[str, Any]) -> bytes:
        sender = tx.get("from")
        if sender is not None and Web3.to_checksum_address(sender) != self._account.address:
            raise NoWalletConnected(f"{sender} is not the loaded account {self._account.address}")
        params = dict(tx)
        params.pop("from", None)
        if "nonce" not in params:
            params["nonce"] = await self._w3.eth.get_transaction_count(self._account.address, "pending")
        if "chainId" not in params:
            params["chainId"] = await self.get_network_id()
        signed = self._account.sign_transaction(params)
        logger.debug("signed tx nonce=%s for %s", params["nonce"], self._account.address)
        return await self._w3.eth.send_raw_transaction(signed.raw_transaction)
