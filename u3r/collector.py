"""Signed swap collection API (FastAPI)."""

import threading
import time
from dataclasses import replace

from eth_abi.exceptions import DecodingError
from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from .codec import decode_intent, validate_signature, verify_signed_payload
from .errors import CodecError
from .pool_address import derive_address
from .types import RelayStatus, SignedPayload, SignedSwapRequest, SwapIntent


class SignedSwapCollector:
    """Collects and validates signed swaps waiting for relay."""

    def __init__(self):
        # guards pending_swaps, counters and history across API and relay threads
        self._lock = threading.Lock()
        self.pending_swaps: list[tuple[SignedPayload, SwapIntent]] = []
        self.relayed = 0
        self.failed = 0
        self.last_relay_tx: str | None = None
        self.relay_history: list[dict] = []

    def submit_swap(self, request: SignedSwapRequest) -> dict:
        """Validate and store a signed swap."""
        try:
            signed = request.to_signed_payload()
            intent = decode_intent(signed.payload, signed.variant)
        except (ValueError, DecodingError) as e:
            raise HTTPException(status_code=400, detail=f"Invalid payload: {e}")

        # Validate deadline
        if intent.deadline < int(time.time()):
            raise HTTPException(status_code=400, detail="Swap deadline has passed")

        # Verify signature
        try:
            recovered = verify_signed_payload(signed)
        except CodecError as e:
            raise HTTPException(status_code=400, detail=f"Invalid signature: {e}")
        if recovered.lower() != signed.signer.lower():
            raise HTTPException(
                status_code=400,
                detail=f"Signature mismatch: recovered {recovered}, expected {signed.signer}",
            )

        # ecrecover on-chain only accepts v in {27, 28}
        signed = replace(signed, signature=validate_signature(signed.signature))

        with self._lock:
            # Check for duplicate nonce
            for existing, existing_intent in self.pending_swaps:
                if (
                    existing.signer.lower() == signed.signer.lower()
                    and existing_intent.nonce == intent.nonce
                ):
                    raise HTTPException(status_code=400, detail="Duplicate nonce")

            self.pending_swaps.append((signed, intent))
            return {"status": "accepted", "pending_count": len(self.pending_swaps)}

    def get_pending(self) -> list[dict]:
        """Return pending swaps."""
        result = []
        with self._lock:
            pending = list(self.pending_swaps)
        for signed, intent in pending:
            result.append(
                {
                    "signer": signed.signer,
                    "variant": signed.variant.value,
                    "pool": intent.pool,
                    "token_in": intent.token_in,
                    "token_out": intent.token_out,
                    "amount_specified": str(intent.amount_specified),
                    "limit_amount": str(intent.limit_amount),
                    "exact_in": intent.exact_in,
                    "nonce": intent.nonce,
                    "deadline": intent.deadline,
                }
            )
        return result

    def get_status(self) -> RelayStatus:
        """Return current relay status."""
        with self._lock:
            return RelayStatus(
                pending_swaps=len(self.pending_swaps),
                last_relay_tx=self.last_relay_tx,
                relayed=self.relayed,
                failed=self.failed,
            )

    def get_history(self) -> list[dict]:
        with self._lock:
            return list(self.relay_history)

    def drain_pending(self) -> list[tuple[SignedPayload, SwapIntent]]:
        """Remove and return all pending swaps for relaying."""
        with self._lock:
            swaps, self.pending_swaps = self.pending_swaps, []
        return swaps

    def requeue(self, swaps: list[tuple[SignedPayload, SwapIntent]]):
        with self._lock:
            self.pending_swaps.extend(swaps)

    def record_relay(
        self,
        signed: SignedPayload,
        tx_hash: str | None,
        amount: int | None = None,
        error: str | None = None,
    ):
        """Record a relay attempt."""
        entry = {
            "signer": signed.signer,
            "variant": signed.variant.value,
            "tx_hash": tx_hash,
            "amount": str(amount) if amount is not None else None,
            "error": error,
            "timestamp": int(time.time()),
        }
        with self._lock:
            if error is None:
                self.relayed += 1
                self.last_relay_tx = tx_hash
            else:
                self.failed += 1
            self.relay_history.append(entry)


def create_app(collector: SignedSwapCollector, config=None) -> FastAPI:
    """Create the FastAPI application."""
    app = FastAPI(title="U3R Relayer Agent", version="0.1.0")

    # CORS for the wallet frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.post("/swaps")
    def submit_swap(request: SignedSwapRequest):
        return collector.submit_swap(request)

    @app.get("/swaps/pending")
    def get_pending():
        return collector.get_pending()

    @app.get("/relay/status")
    def get_status():
        return collector.get_status()

    @app.get("/relay/history")
    def get_relay_history():
        return collector.get_history()

    @app.get("/config")
    def get_config():
        if config is None:
            return {"error": "Config not available"}
        return {
            "chain_id": config.chain_id,
            "u3r_address": config.u3r_address,
            "factory_address": config.factory_address,
            "pool_init_code_hash": config.pool_init_code_hash,
            "slippage_bps": config.slippage_bps,
            "deadline_seconds": config.deadline_seconds,
        }

    @app.get("/pools/address")
    def get_pool_address(
        token_a: str = Query(description="First pool token, in factory order"),
        token_b: str = Query(description="Second pool token, in factory order"),
        fee: int = Query(default=3000, description="Fee tier in hundredths of a bip"),
    ):
        if config is None:
            raise HTTPException(status_code=503, detail="Config not available")
        try:
            pool = derive_address(
                token_a, token_b, fee, config.factory_address, config.pool_init_code_hash
            )
        except CodecError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return {"token_a": token_a, "token_b": token_b, "fee": fee, "pool": pool}

    return app
