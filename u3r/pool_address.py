"""Offline Uniswap V3 pool address derivation (CREATE2)."""

from eth_abi import encode
from eth_abi.packed import encode_packed
from web3 import Web3

from .codec import check_uint, to_address_bytes, to_word_bytes
from .config import Config
from .types import TokenPairKey

CREATE2_PREFIX = b"\xff"


def compute_pool_salt(key: TokenPairKey) -> bytes:
    """Hash the pool key, matching keccak256(abi.encode(token0, token1, fee)).

    Tokens are hashed in the order given. The factory stores pools under
    sorted keys, so callers pass (token0, token1) for an existing pool.
    """
    encoded = encode(
        ["address", "address", "uint24"],
        [to_address_bytes(key.token_a), to_address_bytes(key.token_b), check_uint(key.fee, 24, "fee")],
    )
    return Web3.keccak(encoded)


def derive_address(
    token_a: str | bytes,
    token_b: str | bytes,
    fee: int,
    factory: str | bytes,
    init_code_hash: str | bytes,
) -> str:
    """Compute the pool address the factory deploys for (token_a, token_b, fee)."""
    salt = compute_pool_salt(TokenPairKey(token_a=token_a, token_b=token_b, fee=fee))
    digest = Web3.keccak(
        encode_packed(
            ["bytes1", "address", "bytes32", "bytes32"],
            [
                CREATE2_PREFIX,
                to_address_bytes(factory),
                salt,
                to_word_bytes(init_code_hash, "init code hash"),
            ],
        )
    )
    # rightmost 20 bytes of the 32-byte digest
    return Web3.to_checksum_address(digest[12:])


def derive_pool_address(key: TokenPairKey, config: Config) -> str:
    """Derive a pool address using the factory and init code hash from config."""
    return derive_address(
        key.token_a, key.token_b, key.fee, config.factory_address, config.pool_init_code_hash
    )


def sort_tokens(token_a: str, token_b: str) -> tuple[str, str]:
    """Order two tokens as (token0, token1) by their 160-bit value."""
    a = int.from_bytes(to_address_bytes(token_a), "big")
    b = int.from_bytes(to_address_bytes(token_b), "big")
    if a == b:
        raise ValueError("Pool tokens must differ")
    return (token_a, token_b) if a < b else (token_b, token_a)
