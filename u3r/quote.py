"""Off-chain quote estimation from a pool's current tick.

Estimates are advisory: they only set the signed intent's limit amount. The
U3R contract computes the executed amount.
"""

import time
import warnings
from dataclasses import dataclass
from decimal import ROUND_DOWN, Decimal, localcontext

from .codec import to_address_bytes
from .errors import StaleQuoteEstimate

# Uniswap V3 tick bounds
MIN_TICK = -887272
MAX_TICK = 887272

TICK_BASE = Decimal("1.0001")
PRICE_PRECISION = 80  # significant digits; covers a full uint256 amount
BPS = 10_000


def tick_to_price(tick: int) -> Decimal:
    """Price of token0 in token1 at the given tick (1.0001 ** tick)."""
    if tick < MIN_TICK or tick > MAX_TICK:
        raise ValueError(f"Tick {tick} out of bounds [{MIN_TICK}, {MAX_TICK}]")
    with localcontext() as ctx:
        ctx.prec = PRICE_PRECISION
        return TICK_BASE**tick


def _to_amount(value: Decimal) -> int:
    """Truncate a non-negative decimal to the integer amount domain."""
    return int(value.to_integral_value(rounding=ROUND_DOWN))


def is_token0(token: str, other: str) -> bool:
    """Whether token sorts before other, i.e. is token0 of their pool."""
    return int.from_bytes(to_address_bytes(token), "big") < int.from_bytes(
        to_address_bytes(other), "big"
    )


@dataclass(frozen=True)
class QuoteEstimate:
    """Estimated counter amount and the slippage-adjusted bound."""

    amount: int  # estimated amount out (exact in) or amount in (exact out)
    limit: int  # min out (exact in) or max in (exact out)
    tick: int


class QuoteEstimator:
    """Estimates counter amounts from 1.0001 ** tick and bounds them by slippage."""

    def __init__(self, slippage_bps: int = 500, max_age_seconds: int = 30):
        if not 0 <= slippage_bps < BPS:
            raise ValueError(f"slippage_bps must be in [0, {BPS}), got {slippage_bps}")
        self.slippage_bps = slippage_bps
        self.max_age_seconds = max_age_seconds

    def estimate(self, amount: int, tick: int, token_in: str, token_out: str, exact_in: bool) -> int:
        """Estimate the counter amount for `amount` at the pool's current tick.

        The price is token1 per token0. Selling token0 multiplies by the price,
        selling token1 divides by it; exact output inverts the relation.
        """
        if amount < 0:
            raise ValueError("amount must be non-negative")
        price = tick_to_price(tick)
        zero_for_one = is_token0(token_in, token_out)
        with localcontext() as ctx:
            ctx.prec = PRICE_PRECISION
            if exact_in == zero_for_one:
                result = Decimal(amount) * price
            else:
                result = Decimal(amount) / price
            return _to_amount(result)

    def apply_slippage(self, quote: int, exact_in: bool) -> int:
        """Minimum out for exact input, maximum in for exact output."""
        margin = quote * self.slippage_bps // BPS
        if exact_in:
            return quote - margin
        return quote + margin

    def quote(
        self,
        amount: int,
        tick: int,
        token_in: str,
        token_out: str,
        exact_in: bool,
        observed_at: float | None = None,
    ) -> QuoteEstimate:
        """Estimate and bound; warns with StaleQuoteEstimate on old pool state."""
        if observed_at is not None:
            age = time.time() - observed_at
            if age > self.max_age_seconds:
                warnings.warn(
                    f"Quote built from pool state {age:.0f}s old (max {self.max_age_seconds}s)",
                    StaleQuoteEstimate,
                    stacklevel=2,
                )
        estimated = self.estimate(amount, tick, token_in, token_out, exact_in)
        return QuoteEstimate(
            amount=estimated,
            limit=self.apply_slippage(estimated, exact_in),
            tick=tick,
        )
