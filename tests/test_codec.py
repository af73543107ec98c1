"""Tests for swap payload encoding and signing hashes."""

import time

import pytest
from eth_abi import decode
from web3 import Web3

from u3r.codec import decode_intent, encode_intent, hash_for_signing
from u3r.errors import InvalidAddressWidth, InvalidIntegerWidth
from u3r.types import ProtocolVariant, SwapIntent


DAI = "0x6B175474E89094C44Da98b954EedeAC495271d0F"
WETH9 = "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"
POOL = "0x0000000000000000000000000000000000003000"
USER = "0x0000000000000000000000000000000000009999"


def _make_intent(**overrides) -> SwapIntent:
    fields = dict(
        amount_specified=4000 * 10**18,
        limit_amount=2 * 10**18,
        deadline=1_700_000_060,
        nonce=0,
        pool=POOL,
        token_in=WETH9,
        token_out=DAI,
        recipient=USER,
        fee=3000,
        exact_in=False,
    )
    fields.update(overrides)
    return SwapIntent(**fields)


def test_flat_roundtrip_keeps_every_field():
    """Flat payload decodes back to the same intent, including exact_in and zero price limit."""
    intent = _make_intent()
    payload = encode_intent(intent, ProtocolVariant.FLAT)
    decoded = decode_intent(payload, ProtocolVariant.FLAT)
    assert decoded == intent
    assert decoded.exact_in is False
    assert decoded.sqrt_price_limit_x96 == 0


def test_struct_callback_roundtrip():
    intent = _make_intent(exact_in=True, sqrt_price_limit_x96=4295128740)
    payload = encode_intent(intent, ProtocolVariant.STRUCT_CALLBACK)
    assert decode_intent(payload, ProtocolVariant.STRUCT_CALLBACK) == intent


def test_flat_layout_is_eleven_words_in_order():
    """Flat payload is one static tuple: 11 padded words in declared order."""
    intent = _make_intent(nonce=7, exact_in=True)
    payload = encode_intent(intent, ProtocolVariant.FLAT)
    assert len(payload) == 11 * 32

    words = [payload[i:i + 32] for i in range(0, len(payload), 32)]
    assert int.from_bytes(words[0], "big") == intent.amount_specified
    assert int.from_bytes(words[3], "big") == 7
    assert words[4] == bytes(12) + Web3.to_bytes(hexstr=POOL)
    assert words[5] == bytes(12) + Web3.to_bytes(hexstr=WETH9)
    assert words[7] == bytes(12) + Web3.to_bytes(hexstr=USER)
    assert int.from_bytes(words[9], "big") == 3000
    assert int.from_bytes(words[10], "big") == 1


def test_struct_callback_layout():
    """Variant A nests two abi-encoded tuples inside (bytes, bytes)."""
    intent = _make_intent()
    payload = encode_intent(intent, ProtocolVariant.STRUCT_CALLBACK)

    swap_params, callback_data = decode(["bytes", "bytes"], payload)
    assert len(swap_params) == 7 * 32
    assert len(callback_data) == 4 * 32

    (params,) = decode(["(uint256,uint256,uint256,uint256,address,uint160,bool)"], swap_params)
    assert params[0] == intent.amount_specified
    assert params[1] == intent.limit_amount
    assert Web3.to_checksum_address(params[4]) == POOL
    assert params[6] is False

    (callback,) = decode(["(address,address,address,uint24)"], callback_data)
    assert Web3.to_checksum_address(callback[0]) == WETH9
    assert Web3.to_checksum_address(callback[1]) == DAI
    assert Web3.to_checksum_address(callback[2]) == USER
    assert callback[3] == 3000


def test_variants_produce_different_payloads():
    intent = _make_intent()
    assert encode_intent(intent, ProtocolVariant.FLAT) != encode_intent(
        intent, ProtocolVariant.STRUCT_CALLBACK
    )


def test_reencoding_matches_signed_hash():
    """An intent rebuilt from the same values hashes to the same signing hash."""
    deadline = int(time.time()) + 60
    intent = _make_intent(deadline=deadline)
    signed_hash = hash_for_signing(encode_intent(intent, ProtocolVariant.STRUCT_CALLBACK))

    rebuilt = _make_intent(deadline=deadline)
    assert hash_for_signing(encode_intent(rebuilt, ProtocolVariant.STRUCT_CALLBACK)) == signed_hash


def test_hash_unbound_is_keccak_of_payload():
    payload = encode_intent(_make_intent(), ProtocolVariant.STRUCT_CALLBACK)
    assert hash_for_signing(payload) == Web3.keccak(payload)


def test_hash_bound_prefixes_nonce():
    payload = encode_intent(_make_intent(nonce=5), ProtocolVariant.FLAT)
    expected = Web3.keccak((5).to_bytes(32, "big") + payload)
    assert hash_for_signing(payload, bind_nonce=True, nonce=5) == expected
    assert hash_for_signing(payload, bind_nonce=True, nonce=5) != hash_for_signing(payload)


def test_hash_bound_requires_nonce():
    with pytest.raises(ValueError):
        hash_for_signing(b"\x00" * 32, bind_nonce=True)


def test_rejects_price_limit_over_uint160():
    with pytest.raises(InvalidIntegerWidth):
        encode_intent(_make_intent(sqrt_price_limit_x96=1 << 160), ProtocolVariant.FLAT)


def test_rejects_negative_amount():
    with pytest.raises(InvalidIntegerWidth):
        encode_intent(_make_intent(amount_specified=-1), ProtocolVariant.STRUCT_CALLBACK)


def test_rejects_fee_over_uint24():
    with pytest.raises(InvalidIntegerWidth):
        encode_intent(_make_intent(fee=1 << 24), ProtocolVariant.STRUCT_CALLBACK)


def test_rejects_bad_address_width():
    with pytest.raises(InvalidAddressWidth):
        encode_intent(_make_intent(recipient="0x1234"), ProtocolVariant.FLAT)


def test_rejects_non_bool_direction():
    with pytest.raises(TypeError):
        encode_intent(_make_intent(exact_in=1), ProtocolVariant.FLAT)


def test_intent_requires_keywords():
    """Positional construction is refused so fields cannot be misassigned."""
    with pytest.raises(TypeError):
        SwapIntent(1, 2, 3, 0, POOL, WETH9, DAI, USER, 0, 3000, False)
