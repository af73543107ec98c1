"""Contract ABIs: Hardhat artifacts when available, minimal built-ins otherwise."""

import json
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def _relay_fn(name: str) -> dict:
    return {
        "name": name,
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "v", "type": "uint8"},
            {"name": "r", "type": "bytes32"},
            {"name": "s", "type": "bytes32"},
            {"name": "payload", "type": "bytes"},
        ],
        "outputs": [{"name": "", "type": "uint256"}],
    }


U3R_ABI = [
    _relay_fn("relayedSwap"),
    _relay_fn("signedSwap"),
    {
        "name": "nonces",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "name": "gasTank",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "address"}],
    },
    {
        "name": "getQuote",
        "type": "function",
        "stateMutability": "view",
        "inputs": [
            {"name": "tokenIn", "type": "address"},
            {"name": "tokenOut", "type": "address"},
            {"name": "fee", "type": "uint24"},
            {"name": "amountIn", "type": "uint256"},
            {"name": "amountOut", "type": "uint256"},
        ],
        "outputs": [{"name": "", "type": "uint256"}],
    },
]

GAS_TANK_ABI = [
    {
        "name": "deposit",
        "type": "function",
        "stateMutability": "payable",
        "inputs": [],
        "outputs": [],
    },
]

POOL_SLOT0_ABI = [
    {
        "name": "slot0",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [
            {"name": "sqrtPriceX96", "type": "uint160"},
            {"name": "tick", "type": "int24"},
            {"name": "observationIndex", "type": "uint16"},
            {"name": "observationCardinality", "type": "uint16"},
            {"name": "observationCardinalityNext", "type": "uint16"},
            {"name": "feeProtocol", "type": "uint8"},
            {"name": "unlocked", "type": "bool"},
        ],
    },
]

ERC20_APPROVE_ABI = [
    {
        "name": "approve",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "spender", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "outputs": [{"name": "", "type": "bool"}],
    },
]

BUILTIN_ABIS = {
    "uniV3Relayed": U3R_ABI,
    "U3RGasTank": GAS_TANK_ABI,
}


def load_abi(contract_name: str, artifacts_dir: str | Path = "artifacts") -> list:
    """Load an ABI from Hardhat output, falling back to the built-in one."""
    artifact_path = Path(artifacts_dir) / "contracts" / f"{contract_name}.sol" / f"{contract_name}.json"
    if artifact_path.exists():
        with open(artifact_path) as f:
            return json.load(f)["abi"]
    logger.debug(f"No artifact for {contract_name} at {artifact_path}, using built-in ABI")
    return BUILTIN_ABIS[contract_name]
