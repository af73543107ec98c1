"""Swap intent, signature and payload types for the U3R contract."""

from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple

from pydantic import BaseModel

from .errors import SignatureFormatError


class ProtocolVariant(str, Enum):
    """Payload layout accepted by the U3R contract.

    STRUCT_CALLBACK nests (swapParams, callbackData) and is relayed through
    ``relayedSwap``. FLAT encodes every field in one tuple and is relayed
    through ``signedSwap``.
    """

    STRUCT_CALLBACK = "struct_callback"
    FLAT = "flat"

    @property
    def binds_nonce(self) -> bool:
        """Whether the signing hash is prefixed with the nonce by default."""
        return self is ProtocolVariant.FLAT

    @property
    def contract_function(self) -> str:
        if self is ProtocolVariant.STRUCT_CALLBACK:
            return "relayedSwap"
        return "signedSwap"


@dataclass(frozen=True)
class TokenPairKey:
    """Uniswap V3 pool key. Token order is kept exactly as given."""

    token_a: str  # address
    token_b: str  # address
    fee: int  # hundredths of a bip


@dataclass(frozen=True, kw_only=True)
class SwapIntent:
    """A user's swap authorization, matching the U3R payload fields."""

    amount_specified: int  # amount in if exact_in, else amount out
    limit_amount: int  # min out if exact_in, else max in
    deadline: int
    nonce: int
    pool: str  # address
    token_in: str  # address
    token_out: str  # address
    recipient: str  # address
    sqrt_price_limit_x96: int = 0
    fee: int
    exact_in: bool


@dataclass(frozen=True)
class Signature:
    """Recoverable secp256k1 signature."""

    v: int
    r: int
    s: int

    def to_bytes(self) -> bytes:
        """Pack as r + s + v (65 bytes, matching abi.encodePacked(r, s, v))."""
        return self.r.to_bytes(32, "big") + self.s.to_bytes(32, "big") + self.v.to_bytes(1, "big")

    @classmethod
    def from_bytes(cls, raw: bytes) -> "Signature":
        if len(raw) != 65:
            raise SignatureFormatError(f"Signature must be 65 bytes, got {len(raw)}")
        return cls(
            v=raw[64],
            r=int.from_bytes(raw[0:32], "big"),
            s=int.from_bytes(raw[32:64], "big"),
        )


@dataclass(frozen=True)
class SignedPayload:
    """Encoded intent plus the signature over its signing hash."""

    payload: bytes
    signature: Signature
    variant: ProtocolVariant
    signer: str  # address


class Slot0(NamedTuple):
    """Subset of UniswapV3Pool.slot0() used for quoting."""

    sqrt_price_x96: int
    tick: int


class AbiField(NamedTuple):
    """One field of a static ABI tuple schema."""

    name: str  # SwapIntent attribute
    abi_type: str


SWAP_PARAMS_SCHEMA = (
    AbiField("amount_specified", "uint256"),
    AbiField("limit_amount", "uint256"),
    AbiField("deadline", "uint256"),
    AbiField("nonce", "uint256"),
    AbiField("pool", "address"),
    AbiField("sqrt_price_limit_x96", "uint160"),
    AbiField("exact_in", "bool"),
)

CALLBACK_DATA_SCHEMA = (
    AbiField("token_in", "address"),
    AbiField("token_out", "address"),
    AbiField("recipient", "address"),
    AbiField("fee", "uint24"),
)

FLAT_INTENT_SCHEMA = (
    AbiField("amount_specified", "uint256"),
    AbiField("limit_amount", "uint256"),
    AbiField("deadline", "uint256"),
    AbiField("nonce", "uint256"),
    AbiField("pool", "address"),
    AbiField("token_in", "address"),
    AbiField("token_out", "address"),
    AbiField("recipient", "address"),
    AbiField("sqrt_price_limit_x96", "uint160"),
    AbiField("fee", "uint24"),
    AbiField("exact_in", "bool"),
)


def tuple_type(schema: tuple[AbiField, ...]) -> str:
    """Render a schema as an eth_abi tuple type string."""
    return "(" + ",".join(f.abi_type for f in schema) + ")"


class SignedSwapRequest(BaseModel):
    """API request model for submitting a signed swap."""

    signer: str
    payload: str  # hex-encoded
    v: int
    r: str  # hex-encoded 32 bytes
    s: str  # hex-encoded 32 bytes
    variant: ProtocolVariant = ProtocolVariant.STRUCT_CALLBACK

    def to_signed_payload(self) -> SignedPayload:
        return SignedPayload(
            payload=bytes.fromhex(self.payload.removeprefix("0x")),
            signature=Signature(
                v=self.v,
                r=int(self.r, 16),
                s=int(self.s, 16),
            ),
            variant=self.variant,
            signer=self.signer,
        )


class RelayStatus(BaseModel):
    """Current relay status."""

    pending_swaps: int
    last_relay_tx: str | None = None
    relayed: int = 0
    failed: int = 0
