from __future__ import annotations

import pytest

from miniswap.config import ClientConfig

from fakes import ACCOUNT, FakeLedger, FakeWallet, make_deployment


@pytest.fixture
def ledger() -> FakeLedger:
    fake = FakeLedger()
    fake.fund(ACCOUNT, a=10_000, b=10_000, shares=50)
    return fake


@pytest.fixture
def wallet() -> FakeWallet:
    return FakeWallet()


@pytest.fixture
def deployment():
    return make_deployment()


@pytest.fixture
def config() -> ClientConfig:
    return ClientConfig(quote_debounce_s=0.01, snapshot_max_age_s=2.0, confirmation_timeout_s=5.0)
