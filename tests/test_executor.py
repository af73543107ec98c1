"""Tests for relay submission (uses mocks since we need a chain)."""

from unittest.mock import MagicMock

import pytest
from eth_account import Account

from u3r.codec import sign_intent
from u3r.errors import RelayError
from u3r.executor import RelaySubmitter
from u3r.types import ProtocolVariant, SwapIntent


DAI = "0x6B175474E89094C44Da98b954EedeAC495271d0F"
WETH9 = "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"
POOL = "0x0000000000000000000000000000000000003000"


def _make_signed(variant: ProtocolVariant):
    acct = Account.create()
    intent = SwapIntent(
        amount_specified=4000 * 10**18,
        limit_amount=2 * 10**18,
        deadline=99999999999,
        nonce=0,
        pool=POOL,
        token_in=WETH9,
        token_out=DAI,
        recipient=acct.address,
        fee=3000,
        exact_in=False,
    )
    return sign_intent(intent, acct.key.hex(), variant)


def _make_submitter(status: int = 1):
    relayer = Account.create()
    session = MagicMock()
    session.w3.eth.account.from_key.return_value = relayer
    session.w3.eth.get_transaction_count.return_value = 4
    session.w3.eth.gas_price = 10**9
    session.w3.eth.send_raw_transaction.return_value = bytes.fromhex("ab" * 32)
    session.w3.eth.wait_for_transaction_receipt.return_value = {"status": status}
    return RelaySubmitter(session, relayer.key.hex(), gas_limit=500_000), session, relayer


@pytest.mark.parametrize(
    "variant,function",
    [(ProtocolVariant.STRUCT_CALLBACK, "relayedSwap"), (ProtocolVariant.FLAT, "signedSwap")],
)
def test_build_relay_tx_calls_variant_function(variant, function):
    submitter, session, relayer = _make_submitter()
    signed = _make_signed(variant)

    submitter.build_relay_tx(signed)

    fn = getattr(session.u3r.functions, function)
    fn.assert_called_once_with(
        signed.signature.v,
        signed.signature.r.to_bytes(32, "big"),
        signed.signature.s.to_bytes(32, "big"),
        signed.payload,
    )
    tx_params = fn.return_value.build_transaction.call_args[0][0]
    assert tx_params["from"] == relayer.address
    assert tx_params["nonce"] == 4
    assert tx_params["gas"] == 500_000


def test_simulate_returns_call_result():
    submitter, session, relayer = _make_submitter()
    session.u3r.functions.relayedSwap.return_value.call.return_value = 1234

    assert submitter.simulate(_make_signed(ProtocolVariant.STRUCT_CALLBACK)) == 1234
    session.u3r.functions.relayedSwap.return_value.call.assert_called_once_with(
        {"from": relayer.address}
    )


def test_submit_returns_tx_hash():
    submitter, session, _ = _make_submitter()
    tx_hash = submitter.submit(_make_signed(ProtocolVariant.FLAT))
    assert tx_hash == "ab" * 32
    session.w3.eth.account.sign_transaction.assert_called_once()


def test_submit_failed_receipt_raises():
    submitter, _, _ = _make_submitter(status=0)
    with pytest.raises(RelayError) as exc:
        submitter.submit(_make_signed(ProtocolVariant.STRUCT_CALLBACK))
    assert exc.value.tx_hash == "ab" * 32
