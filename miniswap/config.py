"""
Client configuration and deployment metadata.

``ClientConfig`` holds the tunables of the estimate/orchestration path;
``Deployment`` is the static address map of the two assets and the pool,
loaded once at startup from the JSON/YAML file written by the deploy script.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any, Mapping, Optional, Tuple, Union

import yaml
from web3 import Web3

from .core.amount_math import BPS_DENOM, DEFAULT_FEE_BPS
from .core.slippage import DEFAULT_TOLERANCE, PRESET_TOLERANCES, SlippageTolerance
from .state.amounts import DEFAULT_DECIMALS, MAX_DECIMALS, Address


ENV_PREFIX = "MINISWAP_"


@dataclass(frozen=True)
class ClientConfig:
    rpc_url: str = "http://127.0.0.1:8545"
    fee_bps: int = DEFAULT_FEE_BPS
    quote_debounce_s: float = 0.5
    snapshot_max_age_s: float = 2.0
    confirmation_timeout_s: float = 120.0
    default_slippage: SlippageTolerance = DEFAULT_TOLERANCE
    slippage_presets: Tuple[SlippageTolerance, ...] = field(default=PRESET_TOLERANCES)

    def __post_init__(self) -> None:
        if not isinstance(self.fee_bps, int) or isinstance(self.fee_bps, bool):
            raise TypeError("fee_bps must be an int")
        if not (0 <= self.fee_bps < BPS_DENOM):
            raise ValueError(f"fee_bps must be in [0, {BPS_DENOM}): {self.fee_bps}")
        for name, v in (
            ("quote_debounce_s", self.quote_debounce_s),
            ("snapshot_max_age_s", self.snapshot_max_age_s),
        ):
            if not isinstance(v, (int, float)) or v < 0:
                raise ValueError(f"{name} must be non-negative: {v}")
        if not isinstance(self.confirmation_timeout_s, (int, float)) or self.confirmation_timeout_s <= 0:
            raise ValueError(f"confirmation_timeout_s must be positive: {self.confirmation_timeout_s}")
        if not isinstance(self.default_slippage, SlippageTolerance):
            raise TypeError("default_slippage must be a SlippageTolerance")


def _env_int(name: str, default: int, *, lo: int, hi: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return int(default)
    try:
        v = int(raw.strip())
    except ValueError:
        return int(default)
    return min(max(v, lo), hi)


def _env_float(name: str, default: float, *, lo: float, hi: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return float(default)
    try:
        v = float(raw.strip())
    except ValueError:
        return float(default)
    return min(max(v, lo), hi)


def _env_str(name: str, default: str) -> str:
    raw = os.environ.get(name)
    if raw is None:
        return default
    v = raw.strip()
    return v if v else default


def config_from_env(base: ClientConfig = ClientConfig()) -> ClientConfig:
    """Overlay ``MINISWAP_*`` environment variables on ``base``."""
    slippage_raw = os.environ.get(ENV_PREFIX + "DEFAULT_SLIPPAGE")
    slippage = base.default_slippage
    if slippage_raw is not None and slippage_raw.strip():
        slippage = SlippageTolerance.of(slippage_raw)

    return ClientConfig(
        rpc_url=_env_str(ENV_PREFIX + "RPC_URL", base.rpc_url),
        fee_bps=_env_int(ENV_PREFIX + "FEE_BPS", base.fee_bps, lo=0, hi=BPS_DENOM - 1),
        quote_debounce_s=_env_float(ENV_PREFIX + "QUOTE_DEBOUNCE_S", base.quote_debounce_s, lo=0.0, hi=10.0),
        snapshot_max_age_s=_env_float(
            ENV_PREFIX + "SNAPSHOT_MAX_AGE_S", base.snapshot_max_age_s, lo=0.0, hi=300.0
        ),
        confirmation_timeout_s=_env_float(
            ENV_PREFIX + "CONFIRMATION_TIMEOUT_S", base.confirmation_timeout_s, lo=1.0, hi=3600.0
        ),
        default_slippage=slippage,
        slippage_presets=base.slippage_presets,
    )


@dataclass(frozen=True)
class AssetHandle:
    address: Address
    symbol: str
    decimals: int = DEFAULT_DECIMALS

    def __post_init__(self) -> None:
        if not (0 <= self.decimals <= MAX_DECIMALS):
            raise ValueError(f"decimals must be in [0, {MAX_DECIMALS}]: {self.decimals}")


@dataclass(frozen=True)
class Deployment:
    """Immutable address map: the two pool assets and the pool contract."""

    asset_a: AssetHandle
    asset_b: AssetHandle
    pool: Address
    network: str = ""
    chain_id: Optional[int] = None
    share_decimals: int = DEFAULT_DECIMALS

    def __post_init__(self) -> None:
        if self.asset_a.address == self.asset_b.address:
            raise ValueError("asset_a and asset_b must differ")

    def is_asset_a(self, address: Address) -> bool:
        """True for asset A, False for asset B; ValueError for anything else."""
        key = address.lower()
        if key == self.asset_a.address.lower():
            return True
        if key == self.asset_b.address.lower():
            return False
        raise ValueError(f"not a pool asset: {address}")

    def handle(self, address: Address) -> AssetHandle:
        return self.asset_a if self.is_asset_a(address) else self.asset_b

    def other(self, address: Address) -> AssetHandle:
        return self.asset_b if self.is_asset_a(address) else self.asset_a


def _checksum(value: Any, *, label: str) -> Address:
    if not isinstance(value, str) or not Web3.is_address(value):
        raise ValueError(f"{label} is not a valid address: {value!r}")
    return Web3.to_checksum_address(value)


def _first(obj: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in obj and obj[key] is not None:
            return obj[key]
    return None


def _asset_from(obj: Mapping[str, Any], *, keys: Tuple[str, ...], default_symbol: str) -> AssetHandle:
    raw = _first(obj, *keys)
    if isinstance(raw, Mapping):
        address = _checksum(raw.get("address"), label=keys[0])
        symbol = str(raw.get("symbol") or default_symbol)
        decimals = int(raw.get("decimals", DEFAULT_DECIMALS))
    else:
        address = _checksum(raw, label=keys[0])
        symbol = default_symbol
        decimals = DEFAULT_DECIMALS
    return AssetHandle(address=address, symbol=symbol, decimals=decimals)


def deployment_from_dict(obj: Mapping[str, Any]) -> Deployment:
    """
    Build a ``Deployment`` from parsed metadata.

    Accepts the keys written by the deploy script (``tokenA``, ``tokenB``,
    ``dex``, ``network``, ``chainId``) as well as ``asset_a``, ``asset_b``,
    ``pool``, ``chain_id``. Asset entries may be plain addresses or mappings
    with ``address``, ``symbol`` and ``decimals``.
    """
    if not isinstance(obj, Mapping):
        raise TypeError("deployment metadata must be a mapping")
    asset_a = _asset_from(obj, keys=("asset_a", "assetA", "tokenA"), default_symbol="TKA")
    asset_b = _asset_from(obj, keys=("asset_b", "assetB", "tokenB"), default_symbol="TKB")
    pool = _checksum(_first(obj, "pool", "dex"), label="pool")
    chain_id_raw = _first(obj, "chain_id", "chainId")
    return Deployment(
        asset_a=asset_a,
        asset_b=asset_b,
        pool=pool,
        network=str(obj.get("network") or ""),
        chain_id=int(chain_id_raw) if chain_id_raw is not None else None,
        share_decimals=int(_first(obj, "share_decimals", "lpDecimals") or DEFAULT_DECIMALS),
    )


def load_deployment(path: Union[str, Path]) -> Deployment:
    """Load deployment metadata from a JSON or YAML file (YAML is a superset of JSON)."""
    p = Path(path)
    obj = yaml.safe_load(p.read_text(encoding="utf-8"))
    return deployment_from_dict(obj)
