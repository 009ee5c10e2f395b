# [TESTER] v1

from __future__ import annotations

from decimal import Decimal

import pytest

import hypothesis.strategies as st
from hypothesis import given

from miniswap.errors import InvalidAmount
from miniswap.state.amounts import MAX_AMOUNT, format_units, parse_units, require_amount, require_same_decimals
from miniswap.state.snapshots import AccountBalances, ReserveSnapshot


@pytest.mark.parametrize(
    "raw,decimals,expected",
    [
        ("1", 18, 10**18),
        ("1.5", 18, 1_500_000_000_000_000_000),
        ("0.000000000000000001", 18, 1),
        (" 2.50 ", 2, 250),
        ("1_000", 0, 1000),
        ("1e3", 0, 1000),
        (Decimal("0.25"), 6, 250_000),
        (3, 6, 3_000_000),
        (0.1, 18, 10**17),
        ("0", 18, 0),
    ],
)
def test_parse_units_is_exact(raw: object, decimals: int, expected: int) -> None:
    assert parse_units(raw, decimals) == expected  # type: ignore[arg-type]


@pytest.mark.parametrize("raw", ["", "   ", "abc", "1.2.3", "-1", "inf", "NaN", None, True])
def test_parse_units_rejects_non_amounts(raw: object) -> None:
    with pytest.raises(InvalidAmount):
        parse_units(raw)  # type: ignore[arg-type]


def test_parse_units_rejects_excess_precision() -> None:
    with pytest.raises(InvalidAmount):
        parse_units("0.0000000000000000001", 18)
    with pytest.raises(InvalidAmount):
        parse_units("1.234", 2)


@pytest.mark.parametrize("raw", ["1e-99999999", "1e99999999", "5e-19", "1E+1000000000"])
def test_parse_units_rejects_extreme_exponents_without_scaling(raw: str) -> None:
    with pytest.raises(InvalidAmount):
        parse_units(raw, 18)


def test_parse_units_uint256_bound() -> None:
    assert parse_units(str(MAX_AMOUNT), 0) == MAX_AMOUNT
    assert parse_units("0e-99999999", 18) == 0
    with pytest.raises(InvalidAmount):
        parse_units(str(MAX_AMOUNT + 1), 0)
    with pytest.raises(InvalidAmount):
        parse_units("1e60", 18)


def test_parse_units_rejects_bad_decimals() -> None:
    with pytest.raises(ValueError):
        parse_units("1", 78)


@pytest.mark.parametrize(
    "amount,decimals,expected",
    [
        (10**18, 18, "1.0"),
        (1_500_000_000_000_000_000, 18, "1.5"),
        (1, 18, "0.000000000000000001"),
        (0, 18, "0.0"),
        (1234, 0, "1234"),
        (181, 2, "1.81"),
    ],
)
def test_format_units(amount: int, decimals: int, expected: str) -> None:
    assert format_units(amount, decimals) == expected


def test_format_units_truncates_to_max_places() -> None:
    assert format_units(1_999_999_999_999_999_999, 18, max_places=4) == "1.9999"
    assert format_units(10**18 + 1, 18, max_places=6) == "1.0"


def test_format_units_rejects_negative() -> None:
    with pytest.raises(ValueError):
        format_units(-1)


@given(amount=st.integers(min_value=0, max_value=10**40), decimals=st.integers(min_value=0, max_value=30))
def test_format_then_parse_is_lossless(amount: int, decimals: int) -> None:
    assert parse_units(format_units(amount, decimals), decimals) == amount


def test_require_amount() -> None:
    require_amount("x", 0)
    with pytest.raises(InvalidAmount):
        require_amount("x", -1)
    with pytest.raises(TypeError):
        require_amount("x", 1.0)  # type: ignore[arg-type]
    with pytest.raises(TypeError):
        require_amount("x", False)  # type: ignore[arg-type]


def test_require_same_decimals() -> None:
    require_same_decimals(18, 18)
    with pytest.raises(ValueError):
        require_same_decimals(18, 6)


class TestSnapshots:
    def test_reserve_snapshot_directions(self):
        snap = ReserveSnapshot(reserve_a=1000, reserve_b=2000, captured_at=10.0, sequence=1)
        assert snap.reserves_for(a_to_b=True) == (1000, 2000)
        assert snap.reserves_for(a_to_b=False) == (2000, 1000)
        assert not snap.is_empty

    def test_reserve_snapshot_freshness(self):
        snap = ReserveSnapshot(reserve_a=1, reserve_b=1, captured_at=10.0)
        assert snap.is_fresh(11.5, 2.0)
        assert not snap.is_fresh(12.5, 2.0)
        assert snap.age(5.0) == 0.0

    def test_empty_pool(self):
        assert ReserveSnapshot(reserve_a=0, reserve_b=5, captured_at=0.0).is_empty

    def test_snapshots_are_frozen(self):
        snap = ReserveSnapshot(reserve_a=1, reserve_b=1, captured_at=0.0)
        with pytest.raises(AttributeError):
            snap.reserve_a = 2  # type: ignore[misc]

    @pytest.mark.parametrize("bad", [-1, 1.5, True])
    def test_reserve_snapshot_rejects_bad_reserves(self, bad):
        with pytest.raises((TypeError, ValueError)):
            ReserveSnapshot(reserve_a=bad, reserve_b=1, captured_at=0.0)

    def test_account_balances_for_asset(self):
        bal = AccountBalances(account="0xabc", asset_a=5, asset_b=7, shares=1, captured_at=0.0)
        assert bal.for_asset(is_asset_a=True) == 5
        assert bal.for_asset(is_asset_a=False) == 7
