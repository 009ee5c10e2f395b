# [TESTER] v1

from __future__ import annotations

import asyncio
import logging
from typing import List

import pytest

from miniswap.config import ClientConfig
from miniswap.integration.pool_reader import PoolStateReader
from miniswap.integration.quotes import (
    DepositEstimator,
    Quote,
    QuoteRefresher,
    SwapEstimator,
    WithdrawalEstimator,
    swap_estimator,
)

from fakes import ASSET_B, FakeLedger, make_deployment


# Whole-unit assets keep the expected numbers readable.
SWAP = SwapEstimator(decimals_a=0, decimals_b=0)
DEPOSIT = DepositEstimator(decimals_a=0, decimals_b=0)
WITHDRAW = WithdrawalEstimator(share_decimals=0, decimals_a=0, decimals_b=0)


def _refresher(ledger: FakeLedger, config: ClientConfig, estimator, published: List[Quote]) -> QuoteRefresher:
    reader = PoolStateReader(ledger, make_deployment())
    return QuoteRefresher(reader, estimator, on_quote=published.append, config=config)


def test_rapid_input_changes_coalesce_into_one_read(ledger, config):
    published: List[Quote] = []

    async def scenario():
        r = _refresher(ledger, config, SWAP, published)
        r.update_input("1")
        r.update_input("10")
        r.update_input("100")
        await r.wait_idle()
        r.close()

    asyncio.run(scenario())
    assert [q.raw_input for q in published] == ["100"]
    assert published[0].outputs == (181,)
    assert published[0].display == ("181",)
    assert len(ledger.calls_to("get_reserves")) == 1


@pytest.mark.parametrize("raw", ["", "abc", "0", "-5", "0.5", "1e-99999999", "1e99999999"])
def test_invalid_input_publishes_empty_quote_without_reads(ledger, config, raw):
    published: List[Quote] = []

    async def scenario():
        r = _refresher(ledger, config, SWAP, published)
        r.update_input(raw)
        await r.wait_idle()

    asyncio.run(scenario())
    assert len(published) == 1
    assert published[0].is_empty
    assert not published[0].unavailable and not published[0].pool_empty
    assert ledger.calls == []


def test_failed_read_is_flagged_not_raised(ledger, config, caplog):
    ledger.reads_fail = True
    published: List[Quote] = []

    async def scenario():
        r = _refresher(ledger, config, SWAP, published)
        r.update_input("100")
        await r.wait_idle()

    with caplog.at_level(logging.WARNING, logger="miniswap.integration.quotes"):
        asyncio.run(scenario())
    assert published[0].unavailable
    assert published[0].is_empty
    assert "quote unavailable" in caplog.text


def test_empty_pool_is_flagged(ledger, config):
    ledger.reserves = (0, 0)
    published: List[Quote] = []

    async def scenario():
        r = _refresher(ledger, config, SWAP, published)
        r.update_input("100")
        await r.wait_idle()

    asyncio.run(scenario())
    assert published[0].pool_empty
    assert published[0].is_empty


def test_close_cancels_pending_recomputation(ledger, config):
    published: List[Quote] = []

    async def scenario():
        r = _refresher(ledger, config, SWAP, published)
        r.update_input("100")
        r.close()
        await asyncio.sleep(config.quote_debounce_s * 5)
        r.update_input("200")
        await r.wait_idle()
        return r

    r = asyncio.run(scenario())
    assert published == []
    assert r.closed
    assert r.last_quote is None
    assert ledger.calls == []


def test_set_direction_recomputes_reverse_swap(ledger, config):
    published: List[Quote] = []

    async def scenario():
        r = _refresher(ledger, config, SWAP, published)
        r.update_input("100")
        await r.wait_idle()
        r.set_direction()
        await r.wait_idle()
        return r

    r = asyncio.run(scenario())
    # A -> B: 181; B -> A: 100 * 9970 * 1000 / (2000 * 10000 + 100 * 9970) = 47.4...
    assert [q.outputs for q in published] == [(181,), (47,)]
    assert r.last_quote is published[-1]
    assert isinstance(r.estimator, SwapEstimator) and not r.estimator.a_to_b


def test_fresh_snapshot_is_reused(ledger, config):
    published: List[Quote] = []

    async def scenario():
        r = _refresher(ledger, config, SWAP, published)
        r.update_input("100")
        await r.wait_idle()
        r.update_input("200")
        await r.wait_idle()

    asyncio.run(scenario())
    assert len(published) == 2
    assert len(ledger.calls_to("get_reserves")) == 1


def test_deposit_and_withdrawal_estimates(ledger, config):
    async def scenario():
        deposit = _refresher(ledger, config, DEPOSIT, [])
        withdraw = _refresher(ledger, config, WITHDRAW, [])
        return await deposit.compute("50"), await withdraw.compute("10")

    deposit_quote, withdraw_quote = asyncio.run(scenario())
    assert deposit_quote.outputs == (100,)
    assert withdraw_quote.outputs == (100, 200)
    assert withdraw_quote.display == ("100", "200")


def test_withdrawal_beyond_supply_is_empty(ledger, config):
    quote = asyncio.run(_refresher(ledger, config, WITHDRAW, []).compute("101"))
    assert quote.is_empty and not quote.pool_empty


def test_direction_only_for_swaps(ledger, config):
    r = _refresher(ledger, config, DEPOSIT, [])
    with pytest.raises(TypeError):
        r.set_direction()


def test_swap_estimator_factory_uses_deployment_decimals(config):
    est = swap_estimator(make_deployment(), config, ASSET_B)
    assert not est.a_to_b
    assert est.fee_bps == config.fee_bps
    assert est.input_decimals == 18
