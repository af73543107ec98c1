"""Main orchestrator: collect -> verify -> simulate -> relay."""

import logging
import threading
import time

import uvicorn
from web3.exceptions import ContractLogicError

from .collector import SignedSwapCollector, create_app
from .config import Config
from .errors import RelayError
from .executor import RelaySubmitter
from .session import RelaySession

logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")
logger = logging.getLogger(__name__)


class RelayerAgent:
    """Main agent orchestrator."""

    def __init__(self, config: Config):
        self.config = config
        self.collector = SignedSwapCollector()
        self.app = create_app(self.collector, config=config)
        self.running = False

        # Chain session (lazy)
        self._session = None
        self._submitter = None

    @property
    def session(self) -> RelaySession:
        if self._session is None:
            self._session = RelaySession(self.config).connect()
        return self._session

    @property
    def submitter(self) -> RelaySubmitter:
        if self._submitter is None:
            self._submitter = RelaySubmitter(
                self.session,
                self.config.relayer_private_key,
                self.config.relay_gas_limit,
            )
        return self._submitter

    def process_queue(self) -> list[str]:
        """Relay every pending swap. Returns the hashes of successful relays."""
        pending = self.collector.drain_pending()
        if not pending:
            return []

        logger.info(f"Relaying {len(pending)} signed swaps")

        tx_hashes = []
        retry = []
        for signed, intent in pending:
            if intent.deadline < int(time.time()):
                logger.warning(f"Dropping expired swap from {signed.signer} (nonce {intent.nonce})")
                self.collector.record_relay(signed, None, error="deadline passed")
                continue

            try:
                amount = self.submitter.simulate(signed)
                tx_hash = self.submitter.submit(signed)
            except (ContractLogicError, RelayError) as e:
                logger.error(f"Swap from {signed.signer} reverted: {e}")
                self.collector.record_relay(signed, getattr(e, "tx_hash", None), error=str(e))
                continue
            except Exception as e:
                logger.error(f"Relay failed for {signed.signer}, will retry: {e}")
                retry.append((signed, intent))
                continue

            self.collector.record_relay(signed, tx_hash, amount)
            tx_hashes.append(tx_hash)

        # Put back swaps that failed for non-contract reasons
        self.collector.requeue(retry)
        return tx_hashes

    def _relay_loop(self):
        """Background loop that relays pending swaps."""
        while self.running:
            try:
                self.process_queue()
            except Exception as e:
                logger.error(f"Relay loop error: {e}")
            time.sleep(self.config.relay_check_interval)

    def start(self):
        """Start the agent (API server + relay loop)."""
        self.running = True

        relay_thread = threading.Thread(target=self._relay_loop, daemon=True)
        relay_thread.start()

        logger.info(f"U3R Relayer Agent starting on {self.config.api_host}:{self.config.api_port}")

        # Start API server (blocks)
        uvicorn.run(
            self.app,
            host=self.config.api_host,
            port=self.config.api_port,
            log_level="info",
        )

    def stop(self):
        """Stop the agent."""
        self.running = False
        if self._session is not None:
            self._session.disconnect()


def main():
    """Entry point."""
    import argparse

    from dotenv import load_dotenv

    load_dotenv()

    parser = argparse.ArgumentParser(description="U3R Relayer Agent")
    parser.add_argument("--test", action="store_true", help="Run offline self-checks")
    parser.add_argument("--rpc", default=None, help="RPC URL (overrides .env)")
    parser.add_argument("--port", type=int, default=None, help="API port")
    args = parser.parse_args()

    config = Config()
    if args.rpc:
        config.rpc_url = args.rpc
    if args.port:
        config.api_port = args.port

    logger.info("Config loaded:")
    logger.info(f"  RPC:      {config.rpc_url[:40]}...")
    logger.info(f"  U3R:      {config.u3r_address}")
    logger.info(f"  Factory:  {config.factory_address}")
    logger.info(f"  Chain ID: {config.chain_id}")

    if args.test:
        logger.info("Running in test mode")
        _run_test_mode(config)
    else:
        agent = RelayerAgent(config)
        agent.start()


def _run_test_mode(config: Config):
    """Run resolver, codec, quote and collector checks without a chain."""
    from eth_account import Account

    from .codec import decode_intent, sign_intent, verify_signed_payload
    from .pool_address import derive_address
    from .quote import QuoteEstimator
    from .types import ProtocolVariant, SignedSwapRequest, SwapIntent

    logger.info("=== U3R Relayer Agent Test Mode ===")

    dai = "0x6B175474E89094C44Da98b954EedeAC495271d0F"
    weth = "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"

    # Test resolver
    pool = derive_address(dai, weth, 3000, config.factory_address, config.pool_init_code_hash)
    logger.info(f"Resolver test: PASSED (DAI/WETH 0.3% = {pool})")

    # Test quote estimator
    estimator = QuoteEstimator(config.slippage_bps, config.quote_max_age_seconds)
    quote = estimator.quote(4000 * 10**18, -80000, weth, dai, exact_in=False)
    assert quote.limit > quote.amount
    logger.info(f"Quote test: PASSED (4000 DAI <= {quote.amount} wei, max {quote.limit})")

    # Test codec, both variants
    acct = Account.create()
    intent = SwapIntent(
        amount_specified=4000 * 10**18,
        limit_amount=quote.limit,
        deadline=int(time.time()) + config.deadline_seconds,
        nonce=0,
        pool=pool,
        token_in=weth,
        token_out=dai,
        recipient=acct.address,
        fee=3000,
        exact_in=False,
    )
    for variant in ProtocolVariant:
        signed = sign_intent(intent, acct.key.hex(), variant)
        assert decode_intent(signed.payload, variant) == intent
        assert verify_signed_payload(signed).lower() == acct.address.lower()
        logger.info(f"Codec test ({variant.value}): PASSED ({len(signed.payload)} bytes)")

    # Test collector
    collector = SignedSwapCollector()
    signed = sign_intent(intent, acct.key.hex(), ProtocolVariant.STRUCT_CALLBACK)
    request = SignedSwapRequest(
        signer=acct.address,
        payload="0x" + signed.payload.hex(),
        v=signed.signature.v,
        r=hex(signed.signature.r),
        s=hex(signed.signature.s),
        variant=signed.variant,
    )
    result = collector.submit_swap(request)
    assert result["status"] == "accepted"
    logger.info(f"Collector test: PASSED (pending={result['pending_count']})")

    logger.info("=== All test mode checks PASSED ===")


if __name__ == "__main__":
    main()
