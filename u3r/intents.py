"""User-side preparation of a signed swap: nonce, pool, quote, intent, signature."""

import logging
import time

from eth_account import Account

from .codec import sign_intent
from .config import Config
from .pool_address import derive_pool_address, sort_tokens
from .quote import QuoteEstimate, QuoteEstimator
from .session import RelaySession
from .types import ProtocolVariant, SignedPayload, SwapIntent, TokenPairKey

logger = logging.getLogger(__name__)


def build_intent(
    quote: QuoteEstimate,
    amount: int,
    nonce: int,
    pool: str,
    token_in: str,
    token_out: str,
    recipient: str,
    fee: int,
    exact_in: bool,
    deadline: int,
    sqrt_price_limit_x96: int = 0,
) -> SwapIntent:
    return SwapIntent(
        amount_specified=amount,
        limit_amount=quote.limit,
        deadline=deadline,
        nonce=nonce,
        pool=pool,
        token_in=token_in,
        token_out=token_out,
        recipient=recipient,
        fee=fee,
        exact_in=exact_in,
        sqrt_price_limit_x96=sqrt_price_limit_x96,
    )


def prepare_swap(
    session: RelaySession,
    config: Config,
    private_key: str,
    token_in: str,
    token_out: str,
    fee: int,
    amount: int,
    exact_in: bool,
    recipient: str | None = None,
    variant: ProtocolVariant = ProtocolVariant.STRUCT_CALLBACK,
    estimator: QuoteEstimator | None = None,
    now: int | None = None,
) -> tuple[SignedPayload, QuoteEstimate]:
    """Build and sign a swap intent for relaying.

    Args:
        amount: Amount in for exact input, amount out for exact output
        recipient: Defaults to the signer

    Returns:
        (signed payload, quote used for its limit amount)
    """
    signer = Account.from_key(private_key).address
    recipient = recipient or signer
    estimator = estimator or QuoteEstimator(config.slippage_bps, config.quote_max_age_seconds)
    now = int(time.time()) if now is None else now

    # The contract's counter is authoritative; a concurrent relay can make this stale
    nonce = session.nonce_of(signer)

    token0, token1 = sort_tokens(token_in, token_out)
    pool = derive_pool_address(TokenPairKey(token_a=token0, token_b=token1, fee=fee), config)

    slot0 = session.read_slot0(pool)
    observed_at = time.time()
    quote = estimator.quote(
        amount, slot0.tick, token_in, token_out, exact_in, observed_at=observed_at
    )
    logger.info(
        f"Quote via {pool}: {amount} -> {quote.amount} (limit {quote.limit}, tick {slot0.tick})"
    )

    intent = build_intent(
        quote,
        amount=amount,
        nonce=nonce,
        pool=pool,
        token_in=token_in,
        token_out=token_out,
        recipient=recipient,
        fee=fee,
        exact_in=exact_in,
        deadline=now + config.deadline_seconds,
    )
    return sign_intent(intent, private_key, variant), quote
