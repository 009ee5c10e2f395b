"""
Client facade: wires reader, gate and orchestrator around one ledger.

``SwapClient.connect()`` builds the production stack (``AsyncWeb3`` over
HTTP, node-managed or local-key wallet); tests construct ``SwapClient``
directly with an in-memory ledger and wallet.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Tuple

from web3 import AsyncWeb3

from .config import ClientConfig, Deployment
from .core.amount_math import quote_swap_output
from .core.slippage import ToleranceInput
from .errors import NoWalletConnected, ReadFailed
from .integration.allowance import AllowanceGate
from .integration.ledger import LedgerError, PoolLedger, Web3PoolLedger
from .integration.orchestrator import (
    ActionContext,
    ActionOrchestrator,
    ActionOutcome,
    AddLiquidityRequest,
    RemoveLiquidityRequest,
    SwapRequest,
)
from .integration.pool_reader import PoolStateReader
from .integration.quotes import Estimator, QuoteCallback, QuoteRefresher
from .integration.wallet import LocalAccountWallet, NodeWallet, WalletProvider
from .state.amounts import Address, Amount
from .state.snapshots import AccountBalances, ReserveSnapshot


logger = logging.getLogger(__name__)

# Probe point for comparing the local fee against the ledger's pricing function.
_FEE_PROBE = (10**6, 10**9, 2 * 10**9)


class SwapClient:
    def __init__(
        self,
        ledger: PoolLedger,
        wallet: WalletProvider,
        deployment: Deployment,
        config: ClientConfig = ClientConfig(),
    ) -> None:
        self.ledger = ledger
        self.wallet = wallet
        self.deployment = deployment
        self.config = config
        self.reader = PoolStateReader(ledger, deployment)
        self.gate = AllowanceGate(ledger, confirmation_timeout=config.confirmation_timeout_s)
        self.orchestrator = ActionOrchestrator(ledger, wallet, self.reader, self.gate, deployment, config)

    @classmethod
    def connect(
        cls,
        deployment: Deployment,
        config: ClientConfig = ClientConfig(),
        *,
        private_key: Optional[str] = None,
    ) -> "SwapClient":
        """Build a client against ``config.rpc_url``; signs locally when a key is given."""
        w3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(config.rpc_url))
        wallet: WalletProvider
        if private_key:
            wallet = LocalAccountWallet.from_key(w3, private_key)
        else:
            wallet = NodeWallet(w3)
        ledger = Web3PoolLedger(
            w3,
            wallet,
            pool=deployment.pool,
            asset_a=deployment.asset_a.address,
            asset_b=deployment.asset_b.address,
        )
        logger.info("client for pool %s via %s", deployment.pool, config.rpc_url)
        return cls(ledger, wallet, deployment, config)

    async def check_fee(self) -> bool:
        """
        Compare the configured ``fee_bps`` with the ledger's own pricing.

        Returns False (and logs a warning) when they disagree; local
        estimates are then not what the ledger will pay.
        """
        amount_in, reserve_in, reserve_out = _FEE_PROBE
        try:
            remote = await self.ledger.quote_amount_out(amount_in, reserve_in, reserve_out)
        except LedgerError as exc:
            raise ReadFailed(f"getAmountOut: {exc}") from exc
        local = quote_swap_output(amount_in, reserve_in, reserve_out, fee_bps=self.config.fee_bps)
        if remote != local:
            logger.warning("fee_bps=%d quotes %d, ledger quotes %d", self.config.fee_bps, local, remote)
            return False
        return True

    async def account(self) -> Optional[Address]:
        try:
            return await self.wallet.current_account()
        except NoWalletConnected as exc:
            logger.warning("no wallet account: %s", exc)
            return None

    async def context(self, form_id: str) -> ActionContext:
        """Current account plus a fresh balance reading, as a form would hold them."""
        account = await self.account()
        if account is None:
            return ActionContext(form_id=form_id)
        balances = await self.reader.read_balances(account)
        return ActionContext(form_id=form_id, account=account, balances=balances)

    async def refresh(self, account: Address) -> Tuple[ReserveSnapshot, AccountBalances]:
        snapshot, balances = await asyncio.gather(self.reader.read_reserves(), self.reader.read_balances(account))
        return snapshot, balances

    async def _load_context(self, ctx: ActionContext) -> ActionContext:
        return await self.context(ctx.form_id)

    async def _after(self, outcome: ActionOutcome) -> ActionOutcome:
        if outcome.refresh_required and outcome.account:
            try:
                await self.refresh(outcome.account)
            except ReadFailed as exc:
                logger.warning("post-action refresh failed: %s", exc)
        return outcome

    async def swap(
        self,
        asset_in: Address,
        amount_in: Amount,
        *,
        slippage: Optional[ToleranceInput] = None,
        expected_out: Optional[Amount] = None,
        form_id: str = "swap",
    ) -> ActionOutcome:
        request = SwapRequest(asset_in=asset_in, amount_in=amount_in, slippage=slippage, expected_out=expected_out)
        outcome = await self.orchestrator.swap(request, ActionContext(form_id), load_context=self._load_context)
        return await self._after(outcome)

    async def add_liquidity(
        self,
        amount_a: Amount,
        amount_b: Optional[Amount] = None,
        *,
        slippage: Optional[ToleranceInput] = None,
        form_id: str = "add_liquidity",
    ) -> ActionOutcome:
        request = AddLiquidityRequest(amount_a=amount_a, amount_b=amount_b, slippage=slippage)
        outcome = await self.orchestrator.add_liquidity(
            request, ActionContext(form_id), load_context=self._load_context
        )
        return await self._after(outcome)

    async def remove_liquidity(
        self,
        share_amount: Amount,
        *,
        slippage: Optional[ToleranceInput] = None,
        form_id: str = "remove_liquidity",
    ) -> ActionOutcome:
        request = RemoveLiquidityRequest(share_amount=share_amount, slippage=slippage)
        outcome = await self.orchestrator.remove_liquidity(
            request, ActionContext(form_id), load_context=self._load_context
        )
        return await self._after(outcome)

    def quote_refresher(self, estimator: Estimator, on_quote: QuoteCallback) -> QuoteRefresher:
        estimator.require_scale(self.deployment)
        return QuoteRefresher(self.reader, estimator, on_quote=on_quote, config=self.config)
