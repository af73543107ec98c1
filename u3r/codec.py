"""Payload encoding, signing hash and signatures for relayed swaps.

The signer and the U3R contract must agree on these bytes exactly: the
contract re-encodes nothing, it hashes the submitted payload and recovers
the signer from (v, r, s).
"""

from eth_abi import decode, encode
from eth_abi.packed import encode_packed
from eth_account import Account
from eth_account.messages import encode_defunct
from eth_utils import is_hex
from web3 import Web3

from .errors import InvalidAddressWidth, InvalidIntegerWidth, SignatureFormatError
from .types import (
    CALLBACK_DATA_SCHEMA,
    FLAT_INTENT_SCHEMA,
    SWAP_PARAMS_SCHEMA,
    AbiField,
    ProtocolVariant,
    Signature,
    SignedPayload,
    SwapIntent,
    tuple_type,
)

# secp256k1 group order
SECP256K1_N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141


def to_address_bytes(value: str | bytes) -> bytes:
    """Return the raw 20 bytes of an address given as hex string or bytes."""
    if isinstance(value, str):
        if not is_hex(value):
            raise InvalidAddressWidth(f"Address is not hex: {value!r}")
        raw = Web3.to_bytes(hexstr=value)
    else:
        raw = bytes(value)
    if len(raw) != 20:
        raise InvalidAddressWidth(f"Address must be 20 bytes, got {len(raw)}")
    return raw


def to_word_bytes(value: str | bytes, name: str = "value") -> bytes:
    """Return the raw 32 bytes of a bytes32 value."""
    if isinstance(value, str):
        if not is_hex(value):
            raise InvalidIntegerWidth(f"{name} is not hex: {value!r}")
        raw = Web3.to_bytes(hexstr=value)
    else:
        raw = bytes(value)
    if len(raw) != 32:
        raise InvalidIntegerWidth(f"{name} must be 32 bytes, got {len(raw)}")
    return raw


def check_uint(value: int, bits: int, name: str = "value") -> int:
    """Check that value fits an unsigned integer of the given width."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidIntegerWidth(f"{name} must be an integer, got {type(value).__name__}")
    if value < 0 or value >= 1 << bits:
        raise InvalidIntegerWidth(f"{name}={value} does not fit uint{bits}")
    return value


def _field_values(intent: SwapIntent, schema: tuple[AbiField, ...]) -> tuple:
    values = []
    for f in schema:
        value = getattr(intent, f.name)
        if f.abi_type == "address":
            values.append(to_address_bytes(value))
        elif f.abi_type == "bool":
            if not isinstance(value, bool):
                raise TypeError(f"{f.name} must be a bool, got {type(value).__name__}")
            values.append(value)
        else:
            values.append(check_uint(value, int(f.abi_type.removeprefix("uint")), f.name))
    return tuple(values)


def _from_values(schema: tuple[AbiField, ...], values: tuple) -> dict:
    fields = {}
    for f, value in zip(schema, values):
        if f.abi_type == "address":
            value = Web3.to_checksum_address(value)
        fields[f.name] = value
    return fields


def encode_intent(intent: SwapIntent, variant: ProtocolVariant) -> bytes:
    """Encode an intent in the fixed field order of the given variant."""
    if variant is ProtocolVariant.STRUCT_CALLBACK:
        swap_params = encode(
            [tuple_type(SWAP_PARAMS_SCHEMA)], [_field_values(intent, SWAP_PARAMS_SCHEMA)]
        )
        callback_data = encode(
            [tuple_type(CALLBACK_DATA_SCHEMA)], [_field_values(intent, CALLBACK_DATA_SCHEMA)]
        )
        return encode(["bytes", "bytes"], [swap_params, callback_data])

    return encode([tuple_type(FLAT_INTENT_SCHEMA)], [_field_values(intent, FLAT_INTENT_SCHEMA)])


def decode_intent(payload: bytes, variant: ProtocolVariant) -> SwapIntent:
    """Decode a payload produced by encode_intent back into an intent."""
    if variant is ProtocolVariant.STRUCT_CALLBACK:
        swap_params, callback_data = decode(["bytes", "bytes"], payload)
        (params,) = decode([tuple_type(SWAP_PARAMS_SCHEMA)], swap_params)
        (callback,) = decode([tuple_type(CALLBACK_DATA_SCHEMA)], callback_data)
        fields = _from_values(SWAP_PARAMS_SCHEMA, params)
        fields.update(_from_values(CALLBACK_DATA_SCHEMA, callback))
        return SwapIntent(**fields)

    (values,) = decode([tuple_type(FLAT_INTENT_SCHEMA)], payload)
    return SwapIntent(**_from_values(FLAT_INTENT_SCHEMA, values))


def hash_for_signing(payload: bytes, bind_nonce: bool = False, nonce: int | None = None) -> bytes:
    """Compute the hash the user signs.

    Unbound: keccak256(payload). Bound: keccak256(abi.encodePacked(nonce, payload)),
    for contract versions that check the nonce outside the payload.
    """
    if not bind_nonce:
        return Web3.keccak(payload)
    if nonce is None:
        raise ValueError("nonce is required when bind_nonce is set")
    check_uint(nonce, 256, "nonce")
    return Web3.keccak(encode_packed(["uint256", "bytes"], [nonce, payload]))


def sign_hash(message_hash: bytes, private_key: str) -> Signature:
    """Sign a 32-byte hash as an EIP-191 personal message.

    Matches ethers' ``signMessage(arrayify(hash))``.
    """
    to_word_bytes(message_hash, "message hash")
    signable = encode_defunct(primitive=bytes(message_hash))
    signed = Account.sign_message(signable, private_key=private_key)
    return Signature(v=signed.v, r=signed.r, s=signed.s)


def validate_signature(signature: Signature) -> Signature:
    """Check v/r/s ranges and normalise v to 27/28."""
    v = signature.v
    if v in (0, 1):
        v += 27
    if v not in (27, 28):
        raise SignatureFormatError(f"Invalid recovery id v={signature.v}")
    if not 0 < signature.r < SECP256K1_N:
        raise SignatureFormatError("Signature r out of range")
    if not 0 < signature.s < SECP256K1_N:
        raise SignatureFormatError("Signature s out of range")
    return Signature(v=v, r=signature.r, s=signature.s)


def recover_signer(message_hash: bytes, signature: Signature) -> str:
    """Recover the address that signed message_hash as a personal message."""
    sig = validate_signature(signature)
    signable = encode_defunct(primitive=to_word_bytes(message_hash, "message hash"))
    return Account.recover_message(signable, vrs=(sig.v, sig.r, sig.s))


def signing_hash_for(signed: SignedPayload, bind_nonce: bool | None = None) -> bytes:
    """Recompute the signing hash of a signed payload from its bytes."""
    if bind_nonce is None:
        bind_nonce = signed.variant.binds_nonce
    nonce = decode_intent(signed.payload, signed.variant).nonce if bind_nonce else None
    return hash_for_signing(signed.payload, bind_nonce, nonce)


def sign_intent(
    intent: SwapIntent,
    private_key: str,
    variant: ProtocolVariant = ProtocolVariant.STRUCT_CALLBACK,
    bind_nonce: bool | None = None,
) -> SignedPayload:
    """Encode, hash and sign an intent."""
    if bind_nonce is None:
        bind_nonce = variant.binds_nonce
    payload = encode_intent(intent, variant)
    message_hash = hash_for_signing(payload, bind_nonce, intent.nonce)
    signature = sign_hash(message_hash, private_key)
    signer = Account.from_key(private_key).address
    return SignedPayload(payload=payload, signature=signature, variant=variant, signer=signer)


def verify_signed_payload(signed: SignedPayload, bind_nonce: bool | None = None) -> str:
    """Recover the signer of a signed payload."""
    return recover_signer(signing_hash_for(signed, bind_nonce), signed.signature)
