"""
Command-line front end.

    miniswap pool
    miniswap balances [--account ADDR]
    miniswap quote swap --from A 1.5
    miniswap swap --from A 1.5 --slippage 0.5
    miniswap add 10 [20]
    miniswap remove 3.2

Deployment metadata comes from ``--deployment`` (or ``MINISWAP_DEPLOYMENT``);
``MINISWAP_PRIVATE_KEY`` selects local signing, otherwise the node's own
accounts are used.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from dataclasses import replace
from typing import List, Optional, Sequence

import yaml

from .client import SwapClient
from .config import AssetHandle, ENV_PREFIX, Deployment, config_from_env, load_deployment
from .core.amount_math import apply_slippage
from .core.slippage import SlippageTolerance
from .errors import MiniswapError
from .integration.orchestrator import ActionOutcome
from .integration.quotes import Quote, deposit_estimator, swap_estimator, withdrawal_estimator
from .state.amounts import format_units, parse_units


logger = logging.getLogger(__name__)


def _resolve_asset(deployment: Deployment, token: str) -> AssetHandle:
    t = token.strip()
    for key, handle in (("a", deployment.asset_a), ("b", deployment.asset_b)):
        if t.lower() == key or t.lower() == handle.symbol.lower() or t.lower() == handle.address.lower():
            return handle
    raise ValueError(f"unknown asset {token!r}; use A, B, a symbol or an address")


def _slippage_arg(value: str) -> SlippageTolerance:
    try:
        return SlippageTolerance.of(value)
    except MiniswapError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def _print_outcome(outcome: ActionOutcome) -> int:
    print(f"{outcome.kind.value}: {outcome.state.value}")
    if outcome.minimums:
        print(f"  minimums: {', '.join(str(m) for m in outcome.minimums)}")
    for approval in outcome.approvals:
        print(f"  approval: {approval.tx_hash}")
    if outcome.receipt is not None:
        print(f"  tx: {outcome.receipt.tx_hash} ({outcome.receipt.status.value})")
    if outcome.error is not None:
        print(f"  error [{outcome.error.category}] {outcome.error.kind}: {outcome.error}")
        return 1
    return 0


def _print_quote(quote: Quote, output_decimals: Sequence[int] = (), presets: Sequence[SlippageTolerance] = ()) -> int:
    if quote.unavailable:
        print("quote unavailable (pool read failed)")
        return 1
    if quote.pool_empty:
        print("pool is empty")
        return 1
    if quote.is_empty:
        print("no quote")
        return 1
    print(" ".join(quote.display))
    for tolerance in presets:
        floors = (format_units(apply_slippage(o, tolerance), d) for o, d in zip(quote.outputs, output_decimals))
        print(f"  min at {tolerance}: {' '.join(floors)}")
    return 0


async def _cmd_pool(client: SwapClient, args: argparse.Namespace) -> int:
    dep = client.deployment
    snap = await client.reader.read_reserves()
    print(f"pool {dep.pool} ({dep.network or 'unknown network'})")
    print(f"  {dep.asset_a.symbol}: {format_units(snap.reserve_a, dep.asset_a.decimals)}")
    print(f"  {dep.asset_b.symbol}: {format_units(snap.reserve_b, dep.asset_b.decimals)}")
    if snap.total_supply is not None:
        print(f"  shares: {format_units(snap.total_supply, dep.share_decimals)}")
    if args.check_fee:
        ok = await client.check_fee()
        print(f"  fee_bps={client.config.fee_bps}: {'matches ledger' if ok else 'DOES NOT match ledger'}")
    return 0


async def _cmd_balances(client: SwapClient, args: argparse.Namespace) -> int:
    dep = client.deployment
    account = args.account or await client.account()
    if account is None:
        print("no wallet account; pass --account")
        return 1
    bal = await client.reader.read_balances(account)
    print(f"account {account}")
    print(f"  {dep.asset_a.symbol}: {format_units(bal.asset_a, dep.asset_a.decimals)}")
    print(f"  {dep.asset_b.symbol}: {format_units(bal.asset_b, dep.asset_b.decimals)}")
    print(f"  shares: {format_units(bal.shares, dep.share_decimals)}")
    return 0


async def _cmd_quote(client: SwapClient, args: argparse.Namespace) -> int:
    dep = client.deployment
    if args.kind == "swap":
        estimator = swap_estimator(dep, client.config, _resolve_asset(dep, args.from_asset).address)
    elif args.kind == "add":
        estimator = deposit_estimator(dep)
    else:
        estimator = withdrawal_estimator(dep)
    refresher = client.quote_refresher(estimator, on_quote=lambda q: None)
    try:
        quote = await refresher.compute(args.amount)
        return _print_quote(quote, estimator.output_decimals, client.config.slippage_presets)
    finally:
        refresher.close()


async def _cmd_swap(client: SwapClient, args: argparse.Namespace) -> int:
    dep = client.deployment
    asset = _resolve_asset(dep, args.from_asset)
    outcome = await client.swap(asset.address, parse_units(args.amount, asset.decimals), slippage=args.slippage)
    return _print_outcome(outcome)


async def _cmd_add(client: SwapClient, args: argparse.Namespace) -> int:
    dep = client.deployment
    amount_a = parse_units(args.amount_a, dep.asset_a.decimals)
    amount_b = parse_units(args.amount_b, dep.asset_b.decimals) if args.amount_b is not None else None
    outcome = await client.add_liquidity(amount_a, amount_b, slippage=args.slippage)
    return _print_outcome(outcome)


async def _cmd_remove(client: SwapClient, args: argparse.Namespace) -> int:
    dep = client.deployment
    outcome = await client.remove_liquidity(parse_units(args.shares, dep.share_decimals), slippage=args.slippage)
    return _print_outcome(outcome)


_COMMANDS = {
    "pool": _cmd_pool,
    "balances": _cmd_balances,
    "quote": _cmd_quote,
    "swap": _cmd_swap,
    "add": _cmd_add,
    "remove": _cmd_remove,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="miniswap", description="Swap and provide liquidity on a two-asset pool.")
    parser.add_argument(
        "--deployment",
        default=os.environ.get(ENV_PREFIX + "DEPLOYMENT", "deployments.json"),
        help="Deployment metadata (JSON or YAML)",
    )
    parser.add_argument("--rpc-url", default=None, help="JSON-RPC endpoint (overrides MINISWAP_RPC_URL)")
    parser.add_argument(
        "--log-level",
        default=os.environ.get(ENV_PREFIX + "LOG_LEVEL", "WARNING"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_pool = sub.add_parser("pool", help="Show reserves and share supply")
    p_pool.add_argument("--check-fee", action="store_true", help="Compare fee_bps with the ledger's pricing")

    p_bal = sub.add_parser("balances", help="Show asset and share balances")
    p_bal.add_argument("--account", default=None)

    p_quote = sub.add_parser("quote", help="Estimate without submitting")
    p_quote.add_argument("kind", choices=["swap", "add", "remove"])
    p_quote.add_argument("amount")
    p_quote.add_argument("--from", dest="from_asset", default="A", help="Input asset for swap quotes")

    p_swap = sub.add_parser("swap", help="Exact-in swap")
    p_swap.add_argument("amount")
    p_swap.add_argument("--from", dest="from_asset", default="A")
    p_swap.add_argument("--slippage", type=_slippage_arg, default=None, help="Percent, e.g. 0.5")

    p_add = sub.add_parser("add", help="Add liquidity")
    p_add.add_argument("amount_a")
    p_add.add_argument("amount_b", nargs="?", default=None, help="Defaults to the proportional amount")
    p_add.add_argument("--slippage", type=_slippage_arg, default=None)

    p_remove = sub.add_parser("remove", help="Remove liquidity")
    p_remove.add_argument("shares")
    p_remove.add_argument("--slippage", type=_slippage_arg, default=None)
    return parser


async def _run(args: argparse.Namespace) -> int:
    config = config_from_env()
    if args.rpc_url:
        config = replace(config, rpc_url=args.rpc_url)
    deployment = load_deployment(args.deployment)
    logger.debug("deployment %s (%s) from %s", deployment.pool, deployment.network, args.deployment)
    client = SwapClient.connect(deployment, config, private_key=os.environ.get(ENV_PREFIX + "PRIVATE_KEY"))
    return await _COMMANDS[args.command](client, args)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    try:
        return asyncio.run(_run(args))
    except MiniswapError as exc:
        print(f"error [{exc.category}] {exc.kind}: {exc}", file=sys.stderr)
        return 1
    except (OSError, ValueError, TypeError, yaml.YAMLError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
