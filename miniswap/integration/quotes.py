"""
Debounced estimate refresh.

``QuoteRefresher`` keeps one displayed estimate in step with the user's raw
input and the pool reserves without a remote read per keystroke. Each input
change restarts a quiet-period timer; only the last change within the period
is computed. Invalid input publishes an empty quote without any read. An
empty pool or a failed read publishes a flagged empty quote; neither raises.

Estimators turn an input ``Amount`` and a ``ReserveSnapshot`` into one or
more output amounts:

- ``SwapEstimator``: exact-in swap output for one direction
- ``DepositEstimator``: asset B required to match a deposit of asset A
- ``WithdrawalEstimator``: both assets returned for burning pool shares
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Callable, Optional, Tuple

from ..config import ClientConfig, Deployment
from ..core.amount_math import DEFAULT_FEE_BPS, quote_proportional_deposit, quote_swap_output, quote_withdrawal
from ..errors import InvalidAmount, InvalidReserves, ReadFailed
from ..state.amounts import DEFAULT_DECIMALS, Address, Amount, format_units, parse_units, require_same_decimals
from ..state.snapshots import ReserveSnapshot
from .pool_reader import PoolStateReader


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Quote:
    raw_input: str
    amount_in: Optional[Amount] = None
    outputs: Tuple[Amount, ...] = ()
    display: Tuple[str, ...] = ()
    pool_empty: bool = False
    unavailable: bool = False
    snapshot_sequence: Optional[int] = None

    @property
    def is_empty(self) -> bool:
        return not self.outputs


class Estimator(ABC):
    @property
    @abstractmethod
    def input_decimals(self) -> int:
        ...

    @property
    @abstractmethod
    def output_decimals(self) -> Tuple[int, ...]:
        ...

    @abstractmethod
    def estimate(self, amount: Amount, snapshot: ReserveSnapshot) -> Tuple[Amount, ...]:
        ...

    @abstractmethod
    def deployment_decimals(self, deployment: Deployment) -> Tuple[int, Tuple[int, ...]]:
        """Input and output decimals of the deployment assets this estimator prices."""
        ...

    def require_scale(self, deployment: Deployment) -> None:
        """ValueError unless input and outputs are scaled like the deployment's assets."""
        expected_in, expected_out = self.deployment_decimals(deployment)
        require_same_decimals(self.input_decimals, expected_in)
        for have, want in zip(self.output_decimals, expected_out):
            require_same_decimals(have, want)


@dataclass(frozen=True)
class SwapEstimator(Estimator):
    a_to_b: bool = True
    fee_bps: int = DEFAULT_FEE_BPS
    decimals_a: int = DEFAULT_DECIMALS
    decimals_b: int = DEFAULT_DECIMALS

    @property
    def input_decimals(self) -> int:
        return self.decimals_a if self.a_to_b else self.decimals_b

    @property
    def output_decimals(self) -> Tuple[int, ...]:
        return (self.decimals_b if self.a_to_b else self.decimals_a,)

    def estimate(self, amount: Amount, snapshot: ReserveSnapshot) -> Tuple[Amount, ...]:
        reserve_in, reserve_out = snapshot.reserves_for(a_to_b=self.a_to_b)
        return (quote_swap_output(amount, reserve_in, reserve_out, fee_bps=self.fee_bps),)

    def deployment_decimals(self, deployment: Deployment) -> Tuple[int, Tuple[int, ...]]:
        a, b = deployment.asset_a.decimals, deployment.asset_b.decimals
        return (a, (b,)) if self.a_to_b else (b, (a,))

    def reversed(self) -> "SwapEstimator":
        return replace(self, a_to_b=not self.a_to_b)


@dataclass(frozen=True)
class DepositEstimator(Estimator):
    decimals_a: int = DEFAULT_DECIMALS
    decimals_b: int = DEFAULT_DECIMALS

    @property
    def input_decimals(self) -> int:
        return self.decimals_a

    @property
    def output_decimals(self) -> Tuple[int, ...]:
        return (self.decimals_b,)

    def estimate(self, amount: Amount, snapshot: ReserveSnapshot) -> Tuple[Amount, ...]:
        return (quote_proportional_deposit(amount, snapshot.reserve_a, snapshot.reserve_b),)

    def deployment_decimals(self, deployment: Deployment) -> Tuple[int, Tuple[int, ...]]:
        return deployment.asset_a.decimals, (deployment.asset_b.decimals,)


@dataclass(frozen=True)
class WithdrawalEstimator(Estimator):
    share_decimals: int = DEFAULT_DECIMALS
    decimals_a: int = DEFAULT_DECIMALS
    decimals_b: int = DEFAULT_DECIMALS

    @property
    def input_decimals(self) -> int:
        return self.share_decimals

    @property
    def output_decimals(self) -> Tuple[int, ...]:
        return (self.decimals_a, self.decimals_b)

    def estimate(self, amount: Amount, snapshot: ReserveSnapshot) -> Tuple[Amount, ...]:
        if snapshot.total_supply is None:
            raise InvalidReserves("snapshot carries no share supply")
        return quote_withdrawal(amount, snapshot.reserve_a, snapshot.reserve_b, snapshot.total_supply)

    def deployment_decimals(self, deployment: Deployment) -> Tuple[int, Tuple[int, ...]]:
        return deployment.share_decimals, (deployment.asset_a.decimals, deployment.asset_b.decimals)


def swap_estimator(deployment: Deployment, config: ClientConfig, asset_in: Address) -> SwapEstimator:
    return SwapEstimator(
        a_to_b=deployment.is_asset_a(asset_in),
        fee_bps=config.fee_bps,
        decimals_a=deployment.asset_a.decimals,
        decimals_b=deployment.asset_b.decimals,
    )


def deposit_estimator(deployment: Deployment) -> DepositEstimator:
    return DepositEstimator(decimals_a=deployment.asset_a.decimals, decimals_b=deployment.asset_b.decimals)


def withdrawal_estimator(deployment: Deployment) -> WithdrawalEstimator:
    return WithdrawalEstimator(
        share_decimals=deployment.share_decimals,
        decimals_a=deployment.asset_a.decimals,
        decimals_b=deployment.asset_b.decimals,
    )


QuoteCallback = Callable[[Quote], None]


class QuoteRefresher:
    """
    Debounced recomputation of one estimate.

    Must be driven from inside a running event loop. ``close()`` cancels the
    pending timer; after it nothing is published.
    """

    def __init__(
        self,
        reader: PoolStateReader,
        estimator: Estimator,
        *,
        on_quote: QuoteCallback,
        config: ClientConfig = ClientConfig(),
    ) -> None:
        self._reader = reader
        self._estimator = estimator
        self._on_quote = on_quote
        self._debounce = config.quote_debounce_s
        self._max_age = config.snapshot_max_age_s
        self._raw = ""
        self._generation = 0
        self._task: Optional[asyncio.Task] = None
        self._closed = False
        self._last: Optional[Quote] = None

    @property
    def estimator(self) -> Estimator:
        return self._estimator

    @property
    def last_quote(self) -> Optional[Quote]:
        return self._last

    @property
    def closed(self) -> bool:
        return self._closed

    def update_input(self, raw: str) -> None:
        if self._closed:
            return
        self._raw = raw
        self._schedule()

    def set_direction(self) -> None:
        """Flip a swap estimate to the opposite direction and recompute."""
        if not isinstance(self._estimator, SwapEstimator):
            raise TypeError("only a swap estimate has a direction")
        if self._closed:
            return
        self._estimator = self._estimator.reversed()
        self._schedule()

    def close(self) -> None:
        self._closed = True
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def wait_idle(self) -> None:
        """Wait until no recomputation is outstanding."""
        while self._task is not None and not self._task.done():
            await asyncio.wait({self._task})

    def _schedule(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._generation += 1
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._fire(self._generation, self._raw, self._estimator))

    async def _fire(self, generation: int, raw: str, estimator: Estimator) -> None:
        await asyncio.sleep(self._debounce)
        quote = await self.compute(raw, estimator)
        if self._closed or generation != self._generation:
            return
        self._last = quote
        self._on_quote(quote)

    async def compute(self, raw: str, estimator: Optional[Estimator] = None) -> Quote:
        """Compute a quote immediately, bypassing the quiet period."""
        estimator = estimator or self._estimator
        try:
            amount = parse_units(raw, estimator.input_decimals)
        except InvalidAmount:
            return Quote(raw_input=raw)
        if amount == 0:
            return Quote(raw_input=raw)

        try:
            snapshot = await self._reader.snapshot(self._max_age)
        except ReadFailed as exc:
            logger.warning("quote unavailable for %r: %s", raw, exc)
            return Quote(raw_input=raw, amount_in=amount, unavailable=True)

        try:
            outputs = estimator.estimate(amount, snapshot)
        except InvalidReserves as exc:
            logger.warning("no quote for %r: %s", raw, exc)
            return Quote(raw_input=raw, amount_in=amount, pool_empty=True, snapshot_sequence=snapshot.sequence)
        except InvalidAmount:
            return Quote(raw_input=raw, amount_in=amount, snapshot_sequence=snapshot.sequence)

        display = tuple(format_units(o, d) for o, d in zip(outputs, estimator.output_decimals))
        logger.debug("quote %r -> %s (snapshot #%d)", raw, display, snapshot.sequence)
        return Quote(
            raw_input=raw,
            amount_in=amount,
            outputs=tuple(outputs),
            display=display,
            snapshot_sequence=snapshot.sequence,
        )
