"""Configuration for the U3R relayer agent."""

import os
from dataclasses import dataclass, field

# Uniswap V3 mainnet deployment
DEFAULT_FACTORY = "0x1F98431c8aD98523631AE4a59f267346ea31F984"
DEFAULT_POOL_INIT_CODE_HASH = "0xe34f199b19b2b4f47f68442619d555527d244f78a3297ea89325f843f87b8b54"


@dataclass
class Config:
    """Agent configuration."""

    # RPC
    rpc_url: str = field(default_factory=lambda: os.getenv("RPC_URL", "http://127.0.0.1:8545"))

    # Contract addresses
    u3r_address: str = field(default_factory=lambda: os.getenv("U3R_ADDRESS", ""))
    factory_address: str = field(
        default_factory=lambda: os.getenv("UNISWAP_V3_FACTORY", DEFAULT_FACTORY)
    )
    pool_init_code_hash: str = field(
        default_factory=lambda: os.getenv("POOL_INIT_CODE_HASH", DEFAULT_POOL_INIT_CODE_HASH)
    )

    # Relayer private key (pays gas for relayed swaps)
    relayer_private_key: str = field(default_factory=lambda: os.getenv("PRIVATE_KEY", ""))

    # Hardhat artifacts (ABIs); built-in minimal ABIs are used when missing
    artifacts_dir: str = field(default_factory=lambda: os.getenv("ARTIFACTS_DIR", "artifacts"))

    # Swap parameters
    slippage_bps: int = 500  # 5%
    deadline_seconds: int = 60
    quote_max_age_seconds: int = 30

    # Relay loop
    relay_check_interval: int = 5
    relay_gas_limit: int = 1_000_000

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # Chain (1 = mainnet, 31337 = Hardhat fork)
    chain_id: int = field(default_factory=lambda: int(os.getenv("CHAIN_ID", "1")))
