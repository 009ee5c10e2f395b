"""
Minimal ABIs for the pool contract and its ERC-20 assets.

Only the entries the client calls are listed. The pool is itself the ERC-20
for its shares (``balanceOf``/``totalSupply``).
"""

from __future__ import annotations

from typing import Any, Dict, List


def _fn(name: str, inputs: List[tuple], outputs: List[str], mutability: str) -> Dict[str, Any]:
    return {
        "type": "function",
        "name": name,
        "stateMutability": mutability,
        "inputs": [{"name": n, "type": t} for n, t in inputs],
        "outputs": [{"name": "", "type": t} for t in outputs],
    }


ERC20_ABI: List[Dict[str, Any]] = [
    _fn("balanceOf", [("account", "address")], ["uint256"], "view"),
    _fn("allowance", [("owner", "address"), ("spender", "address")], ["uint256"], "view"),
    _fn("approve", [("spender", "address"), ("amount", "uint256")], ["bool"], "nonpayable"),
    _fn("decimals", [], ["uint8"], "view"),
    _fn("symbol", [], ["string"], "view"),
]

POOL_ABI: List[Dict[str, Any]] = [
    _fn("getReserves", [], ["uint256", "uint256"], "view"),
    _fn("totalSupply", [], ["uint256"], "view"),
    _fn("balanceOf", [("account", "address")], ["uint256"], "view"),
    _fn(
        "getAmountOut",
        [("amountIn", "uint256"), ("reserveIn", "uint256"), ("reserveOut", "uint256")],
        ["uint256"],
        "pure",
    ),
    _fn(
        "swap",
        [("tokenIn", "address"), ("amountIn", "uint256"), ("amountOutMin", "uint256")],
        ["uint256"],
        "nonpayable",
    ),
    _fn(
        "addLiquidity",
        [
            ("amount0", "uint256"),
            ("amount1", "uint256"),
            ("amount0Min", "uint256"),
            ("amount1Min", "uint256"),
        ],
        ["uint256"],
        "nonpayable",
    ),
    _fn(
        "removeLiquidity",
        [("liquidity", "uint256"), ("amount0Min", "uint256"), ("amount1Min", "uint256")],
        ["uint256", "uint256"],
        "nonpayable",
    ),
]
