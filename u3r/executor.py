"""Relayed swap submission via web3 transactions."""

import logging

from .session import RelaySession
from .errors import RelayError
from .types import SignedPayload

logger = logging.getLogger(__name__)


class RelaySubmitter:
    """Submits signed swaps to the U3R contract, paying gas as the relayer."""

    def __init__(self, session: RelaySession, private_key: str, gas_limit: int = 1_000_000):
        self.session = session
        self.private_key = private_key
        self.gas_limit = gas_limit
        self.account = session.w3.eth.account.from_key(private_key)

    def _relay_call(self, signed: SignedPayload):
        sig = signed.signature
        fn = getattr(self.session.u3r.functions, signed.variant.contract_function)
        return fn(
            sig.v,
            sig.r.to_bytes(32, "big"),
            sig.s.to_bytes(32, "big"),
            signed.payload,
        )

    def build_relay_tx(self, signed: SignedPayload) -> dict:
        """Build the relayedSwap / signedSwap transaction."""
        w3 = self.session.w3
        return self._relay_call(signed).build_transaction({
            "from": self.account.address,
            "nonce": w3.eth.get_transaction_count(self.account.address),
            "gas": self.gas_limit,
            "gasPrice": w3.eth.gas_price,
        })

    def simulate(self, signed: SignedPayload) -> int:
        """Dry-run the relay with eth_call. Returns the amount the swap would realize."""
        return self._relay_call(signed).call({"from": self.account.address})

    def submit(self, signed: SignedPayload) -> str:
        """Build, sign, and submit a relay transaction. Returns tx hash."""
        w3 = self.session.w3
        tx = self.build_relay_tx(signed)
        signed_tx = w3.eth.account.sign_transaction(tx, self.private_key)
        tx_hash = w3.eth.send_raw_transaction(signed_tx.raw_transaction)
        receipt = w3.eth.wait_for_transaction_receipt(tx_hash)

        if receipt["status"] != 1:
            raise RelayError(f"Relay transaction failed: {tx_hash.hex()}", tx_hash.hex())

        logger.info(f"Relayed {signed.variant.value} swap for {signed.signer}: tx={tx_hash.hex()}")
        return tx_hash.hex()
