# [TESTER] v1

from __future__ import annotations

import asyncio

import pytest

from miniswap.errors import ApprovalFailed, ReadFailed
from miniswap.integration.allowance import AllowanceGate
from miniswap.integration.ledger import TxStatus

from fakes import ACCOUNT, ASSET_A, POOL, FakeLedger


def _gate(ledger: FakeLedger) -> AllowanceGate:
    return AllowanceGate(ledger, confirmation_timeout=5.0)


def test_sufficient_allowance_issues_no_write(ledger: FakeLedger) -> None:
    ledger.set_allowance(ASSET_A, ACCOUNT, 500)
    receipt = asyncio.run(_gate(ledger).ensure_allowance(ASSET_A, ACCOUNT, POOL, 500))
    assert receipt is None
    assert ledger.writes == []
    assert len(ledger.calls_to("allowance")) == 1


def test_insufficient_allowance_approves_exact_amount_once(ledger: FakeLedger) -> None:
    ledger.set_allowance(ASSET_A, ACCOUNT, 10)
    receipt = asyncio.run(_gate(ledger).ensure_allowance(ASSET_A, ACCOUNT, POOL, 250))
    assert receipt is not None and receipt.ok
    assert ledger.writes == [("approve", (ASSET_A, POOL, 250, ACCOUNT))]
    assert ledger.handles[0].waited == 1


def test_repeated_calls_are_idempotent(ledger: FakeLedger) -> None:
    gate = _gate(ledger)

    async def scenario() -> None:
        await gate.ensure_allowance(ASSET_A, ACCOUNT, POOL, 250)
        await gate.ensure_allowance(ASSET_A, ACCOUNT, POOL, 250)
        await gate.ensure_allowance(ASSET_A, ACCOUNT, POOL, 100)

    asyncio.run(scenario())
    assert len(ledger.calls_to("approve")) == 1


def test_rejected_approval_is_approval_failed(ledger: FakeLedger) -> None:
    ledger.reject["approve"] = "user denied"
    with pytest.raises(ApprovalFailed, match="user denied"):
        asyncio.run(_gate(ledger).ensure_allowance(ASSET_A, ACCOUNT, POOL, 250))


@pytest.mark.parametrize("status", [TxStatus.REVERTED, TxStatus.TIMED_OUT])
def test_unconfirmed_approval_is_approval_failed(ledger: FakeLedger, status: TxStatus) -> None:
    ledger.status["approve"] = status
    with pytest.raises(ApprovalFailed):
        asyncio.run(_gate(ledger).ensure_allowance(ASSET_A, ACCOUNT, POOL, 250))
    assert len(ledger.calls_to("approve")) == 1


def test_undeliverable_approval_is_approval_failed(ledger: FakeLedger) -> None:
    ledger.unreachable.add("approve")
    with pytest.raises(ApprovalFailed):
        asyncio.run(_gate(ledger).ensure_allowance(ASSET_A, ACCOUNT, POOL, 250))


def test_failed_allowance_read_is_read_failed(ledger: FakeLedger) -> None:
    ledger.reads_fail = True
    with pytest.raises(ReadFailed):
        asyncio.run(_gate(ledger).ensure_allowance(ASSET_A, ACCOUNT, POOL, 250))
    assert ledger.writes == []
