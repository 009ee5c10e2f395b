"""
Action orchestrator: one async operation per user intent.

Each call to ``swap``, ``add_liquidity`` or ``remove_liquidity`` drives a
fresh ``PendingAction`` through

    VALIDATING -> [AWAITING_APPROVAL] -> SUBMITTING -> CONFIRMING -> SUCCEEDED | FAILED

and returns a typed ``ActionOutcome``. Input checks run before any remote
call, including the optional ``load_context`` that reads the account and its
balances; balance checks follow against that reading. Approval confirmation
strictly precedes the primary write. Nothing is retried: a failed action is
final and a retry is a new call with freshly derived amounts.

Remote failures are mapped onto the error taxonomy:

- approval rejected / reverted / timed out  -> ``ApprovalFailed``
- primary write refused or reverted          -> ``SlippageExceeded``
- primary write not delivered                -> ``SubmissionFailed``
- no receipt within the timeout              -> ``ConfirmationTimeout``
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional, Tuple, Union

from ..config import ClientConfig, Deployment
from ..core.amount_math import apply_slippage, quote_proportional_deposit, quote_swap_output, quote_withdrawal
from ..core.pending import ActionKind, ActionState, PendingAction
from ..core.slippage import SlippageTolerance, ToleranceInput
from ..errors import (
    ActionAbandoned,
    ActionInProgress,
    ConfirmationTimeout,
    InsufficientBalance,
    InvalidAmount,
    MiniswapError,
    NetworkMismatch,
    NoWalletConnected,
    SlippageExceeded,
    SubmissionFailed,
)
from ..state.amounts import Address, Amount
from ..state.snapshots import AccountBalances
from .allowance import AllowanceGate
from .ledger import LedgerError, LedgerRejected, PoolLedger, TxHandle, TxReceipt, TxStatus
from .pool_reader import PoolStateReader
from .wallet import WalletProvider


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SwapRequest:
    asset_in: Address
    amount_in: Amount
    slippage: Optional[ToleranceInput] = None
    # Estimate shown to the user; when absent it is recomputed from a fresh snapshot.
    expected_out: Optional[Amount] = None


@dataclass(frozen=True)
class AddLiquidityRequest:
    amount_a: Amount
    # None derives the proportional amount from current reserves.
    amount_b: Optional[Amount] = None
    slippage: Optional[ToleranceInput] = None


@dataclass(frozen=True)
class RemoveLiquidityRequest:
    share_amount: Amount
    slippage: Optional[ToleranceInput] = None


@dataclass(frozen=True)
class ActionContext:
    """What the submitting form knows: its id, the connected account and its latest balances."""

    form_id: str
    account: Optional[Address] = None
    balances: Optional[AccountBalances] = None


@dataclass(frozen=True)
class ActionOutcome:
    """Terminal result of one orchestrated intent."""

    kind: ActionKind
    action_id: int
    state: ActionState
    error: Optional[MiniswapError] = None
    account: Optional[Address] = None
    receipt: Optional[TxReceipt] = None
    approvals: Tuple[TxReceipt, ...] = ()
    submitted: Tuple[Amount, ...] = ()
    expected: Tuple[Amount, ...] = ()
    minimums: Tuple[Amount, ...] = ()
    refresh_required: bool = False
    history: Tuple[ActionState, ...] = ()

    @property
    def ok(self) -> bool:
        return self.state is ActionState.SUCCEEDED

    def raise_for_error(self) -> "ActionOutcome":
        """Return ``self`` on success, re-raise the typed error otherwise."""
        if self.error is not None:
            raise self.error
        return self


# Fills in the account and balances of a context once the input checks pass.
ContextLoader = Callable[[ActionContext], Awaitable[ActionContext]]


@dataclass
class _Plan:
    submit: Callable[[Address], Awaitable[TxHandle]]
    submitted: Tuple[Amount, ...]
    expected: Tuple[Amount, ...]
    minimums: Tuple[Amount, ...]
    approvals: List[Tuple[Address, Amount]] = field(default_factory=list)


def _require_positive(name: str, value: object) -> Amount:
    if not isinstance(value, int) or isinstance(value, bool):
        raise InvalidAmount(f"{name} must be an integer amount: {value!r}")
    if value <= 0:
        raise InvalidAmount(f"{name} must be positive: {value}")
    return value


def _require_covered(label: str, required: Amount, available: Optional[Amount], asset: Optional[str] = None) -> None:
    if available is None:
        raise InsufficientBalance(
            f"no known {label} balance to cover {required}", asset=asset, required=required, available=None
        )
    if available < required:
        raise InsufficientBalance(
            f"{label} balance {available} < {required}", asset=asset, required=required, available=available
        )


class ActionOrchestrator:
    def __init__(
        self,
        ledger: PoolLedger,
        wallet: WalletProvider,
        reader: PoolStateReader,
        gate: AllowanceGate,
        deployment: Deployment,
        config: ClientConfig,
    ) -> None:
        self._ledger = ledger
        self._wallet = wallet
        self._reader = reader
        self._gate = gate
        self._deployment = deployment
        self._config = config
        self._in_flight: Dict[str, PendingAction] = {}

    # ------------------------------------------------------------------
    # Form lock

    def pending(self, form_id: str) -> Optional[PendingAction]:
        return self._in_flight.get(form_id)

    def abandon(self, target: Union[str, PendingAction]) -> bool:
        """
        Ask an in-flight action to stop at its next checkpoint.

        Returns False when there is nothing to abandon or the action already
        entered ``SUBMITTING``.
        """
        action = target if isinstance(target, PendingAction) else self._in_flight.get(target)
        if action is None:
            return False
        accepted = action.request_abandon()
        logger.info(
            "abandon %s#%d in %s: %s",
            action.kind.value,
            action.action_id,
            action.state.value,
            "accepted" if accepted else "too late",
        )
        return accepted

    def _acquire(self, kind: ActionKind, form_id: str) -> PendingAction:
        current = self._in_flight.get(form_id)
        if current is not None and not current.is_terminal:
            raise ActionInProgress(
                f"form {form_id!r} already has {current.kind.value}#{current.action_id} in {current.state.value}"
            )
        action = PendingAction(kind=kind, form_id=form_id)
        self._in_flight[form_id] = action
        return action

    def _release(self, action: PendingAction) -> None:
        if self._in_flight.get(action.form_id) is action:
            del self._in_flight[action.form_id]

    # ------------------------------------------------------------------
    # Intents

    async def swap(
        self,
        request: SwapRequest,
        ctx: ActionContext,
        *,
        load_context: Optional[ContextLoader] = None,
    ) -> ActionOutcome:
        def check_input() -> None:
            _require_positive("amount_in", request.amount_in)
            try:
                self._deployment.is_asset_a(request.asset_in)
            except ValueError as exc:
                raise InvalidAmount(str(exc)) from exc
            if request.expected_out is not None:
                if not isinstance(request.expected_out, int) or isinstance(request.expected_out, bool):
                    raise InvalidAmount(f"expected_out must be an integer amount: {request.expected_out!r}")
            self._tolerance(request.slippage)

        def check_context(ctx: ActionContext) -> None:
            is_a = self._deployment.is_asset_a(request.asset_in)
            symbol = self._deployment.handle(request.asset_in).symbol
            self._require_account(ctx)
            self._require_balance(
                ctx, symbol, request.amount_in, lambda b: b.for_asset(is_asset_a=is_a), request.asset_in
            )

        async def plan(ctx: ActionContext) -> _Plan:
            is_a = self._deployment.is_asset_a(request.asset_in)
            expected = request.expected_out
            if expected is None:
                snap = await self._reader.snapshot(self._config.snapshot_max_age_s)
                reserve_in, reserve_out = snap.reserves_for(a_to_b=is_a)
                expected = quote_swap_output(request.amount_in, reserve_in, reserve_out, fee_bps=self._config.fee_bps)
            if expected <= 0:
                raise InvalidAmount(f"amount_in {request.amount_in} is too small to produce any output")
            min_out = apply_slippage(expected, self._tolerance(request.slippage))
            asset_in = self._deployment.handle(request.asset_in).address

            async def submit(account: Address) -> TxHandle:
                return await self._ledger.swap(asset_in, request.amount_in, min_out, sender=account)

            return _Plan(
                submit=submit,
                submitted=(request.amount_in,),
                expected=(expected,),
                minimums=(min_out,),
                approvals=[(asset_in, request.amount_in)],
            )

        return await self._run(ActionKind.SWAP, ctx, check_input, check_context, plan, load_context)

    async def add_liquidity(
        self,
        request: AddLiquidityRequest,
        ctx: ActionContext,
        *,
        load_context: Optional[ContextLoader] = None,
    ) -> ActionOutcome:
        dep = self._deployment

        def check_input() -> None:
            _require_positive("amount_a", request.amount_a)
            if request.amount_b is not None:
                _require_positive("amount_b", request.amount_b)
            self._tolerance(request.slippage)

        def check_context(ctx: ActionContext) -> None:
            self._require_account(ctx)
            self._require_balance(
                ctx, dep.asset_a.symbol, request.amount_a, lambda b: b.asset_a, dep.asset_a.address
            )
            if request.amount_b is not None:
                self._require_balance(
                    ctx, dep.asset_b.symbol, request.amount_b, lambda b: b.asset_b, dep.asset_b.address
                )

        async def plan(ctx: ActionContext) -> _Plan:
            amount_a = request.amount_a
            amount_b = request.amount_b
            if amount_b is None:
                snap = await self._reader.snapshot(self._config.snapshot_max_age_s)
                amount_b = quote_proportional_deposit(amount_a, snap.reserve_a, snap.reserve_b)
                if amount_b <= 0:
                    raise InvalidAmount(f"amount_a {amount_a} is too small to match any asset B")
                self._require_balance(ctx, dep.asset_b.symbol, amount_b, lambda b: b.asset_b, dep.asset_b.address)
            tolerance = self._tolerance(request.slippage)
            min_a = apply_slippage(amount_a, tolerance)
            min_b = apply_slippage(amount_b, tolerance)

            async def submit(account: Address) -> TxHandle:
                return await self._ledger.add_liquidity(amount_a, amount_b, min_a, min_b, sender=account)

            return _Plan(
                submit=submit,
                submitted=(amount_a, amount_b),
                expected=(amount_a, amount_b),
                minimums=(min_a, min_b),
                approvals=[(dep.asset_a.address, amount_a), (dep.asset_b.address, amount_b)],
            )

        return await self._run(ActionKind.ADD_LIQUIDITY, ctx, check_input, check_context, plan, load_context)

    async def remove_liquidity(
        self,
        request: RemoveLiquidityRequest,
        ctx: ActionContext,
        *,
        load_context: Optional[ContextLoader] = None,
    ) -> ActionOutcome:
        def check_input() -> None:
            _require_positive("share_amount", request.share_amount)
            self._tolerance(request.slippage)

        def check_context(ctx: ActionContext) -> None:
            self._require_account(ctx)
            self._require_balance(
                ctx, "pool share", request.share_amount, lambda b: b.shares, self._deployment.pool
            )

        async def plan(ctx: ActionContext) -> _Plan:
            # Supply and reserves come from separate reads; the minimums are estimates.
            total_supply = await self._reader.read_total_supply()
            snap = await self._reader.snapshot(self._config.snapshot_max_age_s)
            expected_a, expected_b = quote_withdrawal(
                request.share_amount, snap.reserve_a, snap.reserve_b, total_supply
            )
            tolerance = self._tolerance(request.slippage)
            min_a = apply_slippage(expected_a, tolerance)
            min_b = apply_slippage(expected_b, tolerance)

            async def submit(account: Address) -> TxHandle:
                return await self._ledger.remove_liquidity(request.share_amount, min_a, min_b, sender=account)

            return _Plan(
                submit=submit,
                submitted=(request.share_amount,),
                expected=(expected_a, expected_b),
                minimums=(min_a, min_b),
            )

        return await self._run(ActionKind.REMOVE_LIQUIDITY, ctx, check_input, check_context, plan, load_context)

    # ------------------------------------------------------------------
    # Shared path

    def _tolerance(self, value: Optional[ToleranceInput]) -> SlippageTolerance:
        if value is None:
            return self._config.default_slippage
        return SlippageTolerance.of(value)

    @staticmethod
    def _require_account(ctx: ActionContext) -> Address:
        if not ctx.account:
            raise NoWalletConnected("no connected account")
        return ctx.account

    @staticmethod
    def _require_balance(
        ctx: ActionContext,
        label: str,
        required: Amount,
        pick: Callable[[AccountBalances], Amount],
        asset: Optional[str],
    ) -> None:
        balances = ctx.balances
        if balances is not None and ctx.account and balances.account.lower() != ctx.account.lower():
            balances = None
        _require_covered(label, required, pick(balances) if balances is not None else None, asset)

    async def _connected_account(self, account: Address) -> Address:
        accounts = await self._wallet.request_accounts()
        match = next((a for a in accounts if a.lower() == account.lower()), None)
        if match is None:
            raise NoWalletConnected(f"{account} is not connected to the wallet")
        expected = self._deployment.chain_id
        if expected is not None:
            actual = await self._wallet.get_network_id()
            if actual != expected:
                raise NetworkMismatch(expected, actual)
        return match

    @staticmethod
    def _checkpoint(action: PendingAction) -> None:
        if action.abandon_requested:
            raise ActionAbandoned(f"{action.kind.value}#{action.action_id} abandoned in {action.state.value}")

    async def _submit(self, plan: _Plan, account: Address) -> TxHandle:
        try:
            return await plan.submit(account)
        except LedgerRejected as exc:
            raise SlippageExceeded(f"ledger refused the action: {exc.reason}") from exc
        except LedgerError as exc:
            raise SubmissionFailed(f"action not delivered: {exc}") from exc
        except (TypeError, ValueError) as exc:
            # Raised while building or signing, before anything left the client.
            raise SubmissionFailed(f"action not signed: {exc}") from exc

    async def _confirm(self, handle: TxHandle) -> TxReceipt:
        timeout = self._config.confirmation_timeout_s
        try:
            return await handle.wait(timeout)
        except LedgerError as exc:
            raise ConfirmationTimeout(f"lost track of {handle.tx_hash}: {exc}", tx_hash=handle.tx_hash) from exc

    async def _run(
        self,
        kind: ActionKind,
        ctx: ActionContext,
        check_input: Callable[[], None],
        check_context: Callable[[ActionContext], None],
        make_plan: Callable[[ActionContext], Awaitable[_Plan]],
        load_context: Optional[ContextLoader],
    ) -> ActionOutcome:
        action = self._acquire(kind, ctx.form_id)
        plan: Optional[_Plan] = None
        approvals: List[TxReceipt] = []
        receipt: Optional[TxReceipt] = None
        try:
            action.advance(ActionState.VALIDATING)
            try:
                check_input()
                if load_context is not None:
                    ctx = await load_context(ctx)
                    self._checkpoint(action)
                check_context(ctx)
                account = await self._connected_account(self._require_account(ctx))
                self._checkpoint(action)
                plan = await make_plan(ctx)
                self._checkpoint(action)

                if plan.approvals:
                    action.advance(ActionState.AWAITING_APPROVAL)
                    for asset, amount in plan.approvals:
                        approval = await self._gate.ensure_allowance(asset, account, self._ledger.pool_address, amount)
                        if approval is not None:
                            approvals.append(approval)
                        self._checkpoint(action)

                action.advance(ActionState.SUBMITTING)
                handle = await self._submit(plan, account)
                action.advance(ActionState.CONFIRMING)
                receipt = await self._confirm(handle)
                if receipt.status is TxStatus.REVERTED:
                    raise SlippageExceeded(f"{receipt.tx_hash} reverted: {receipt.reason}")
                if receipt.status is TxStatus.TIMED_OUT:
                    raise ConfirmationTimeout(
                        f"no receipt for {receipt.tx_hash} within {self._config.confirmation_timeout_s}s",
                        tx_hash=receipt.tx_hash,
                    )
            except MiniswapError as exc:
                logger.warning(
                    "%s#%d failed in %s: %s: %s", kind.value, action.action_id, action.state.value, exc.kind, exc
                )
                action.fail(exc)
            else:
                action.advance(ActionState.SUCCEEDED)
            return self._outcome(action, ctx, plan, approvals, receipt)
        finally:
            self._release(action)

    @staticmethod
    def _outcome(
        action: PendingAction,
        ctx: ActionContext,
        plan: Optional[_Plan],
        approvals: List[TxReceipt],
        receipt: Optional[TxReceipt],
    ) -> ActionOutcome:
        return ActionOutcome(
            kind=action.kind,
            action_id=action.action_id,
            state=action.state,
            error=action.error,
            account=ctx.account,
            receipt=receipt,
            approvals=tuple(approvals),
            submitted=plan.submitted if plan is not None else (),
            expected=plan.expected if plan is not None else (),
            minimums=plan.minimums if plan is not None else (),
            refresh_required=action.state is ActionState.SUCCEEDED,
            history=tuple(action.history),
        )
