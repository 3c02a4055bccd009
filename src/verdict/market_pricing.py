from __future__ import annotations

import logging

import numpy as np

from verdict.banding import band
from verdict.data_models import MarketData, MarketPricingAnalysis
from verdict.location import extract_state

logger = logging.getLogger(__name__)

AT_MARKET_PCT = 2.0
REGIONAL_VARIANCE_PCT = 30.0
_SPARSITY_BANDS = ((15, "adequate"), (5, "moderate"))
_CONFIDENCE = {"high": 85, "medium": 65, "low": 40}

_DISCLAIMER = (
    "Pricing reflects observed listings and market data, not authoritative valuations. Actual transaction "
    "prices may differ based on negotiation, condition, timing, and other factors not captured here."
)


def _price_sample(market: MarketData) -> tuple[np.ndarray, int]:
    """Observed prices plus the comparable count behind them.

    Raw listings are used as-is. Without them a five-point distribution is
    approximated from the aggregate range and average, or from sales stats.
    """
    listing_prices = [l.price for l in market.raw_listings if l.price and l.price > 0]
    if listing_prices:
        return np.sort(np.asarray(listing_prices, dtype=float)), len(market.raw_listings)

    prices: list[float] = []
    count = 0
    if market.listing_average and market.listing_price_min and market.listing_price_max:
        low, high = market.listing_price_min, market.listing_price_max
        spread = high - low
        prices = [low, low + spread * 0.25, market.listing_average, low + spread * 0.75, high]
        count = 10

    stats = market.sales_stats
    if stats is not None:
        if stats.median_price and not prices:
            median = stats.median_price
            prices = [
                stats.price_min or median * 0.8,
                median * 0.9,
                median,
                median * 1.1,
                stats.price_max or median * 1.2,
            ]
        count = max(count, stats.sales_count)

    return np.sort(np.asarray(prices, dtype=float)), count


def _leverage(position: str, diff_pct: float) -> str:
    gap = abs(diff_pct)
    if position == "below":
        return "limited" if gap >= 10 else "moderate" if gap >= 5 else "limited"
    if position == "at":
        return "moderate"
    return "strong" if gap >= 15 else "moderate" if gap >= 5 else "limited"


def _limitations(sparsity: str, regional_variance: bool, count: int, state: str | None) -> tuple[str, ...]:
    notes = []
    if sparsity == "sparse":
        notes.append(
            f"Limited comparable listings ({count} found) may reduce pricing precision. Market analysis should "
            "be considered approximate."
        )
    if regional_variance:
        notes.append(
            "Significant price variation observed across listings, which may reflect regional differences, "
            "condition variations, or feature differences not captured in this analysis."
        )
    if count < 10:
        notes.append(
            "Small sample size limits statistical confidence. Consider this analysis as directional guidance "
            "rather than definitive valuation."
        )
    if state is None:
        notes.append(
            "Analysis reflects national market trends. Local market conditions may vary significantly."
        )
    notes.append(_DISCLAIMER)
    return tuple(notes)


def analyze_market_pricing(
    market: MarketData | None,
    asking_price: float,
    location: str | None = None,
) -> MarketPricingAnalysis | None:
    """Place the asking price within the observed comparable price distribution."""
    if market is None:
        return None
    prices, count = _price_sample(market)
    if prices.size == 0 or count == 0:
        logger.warning("Insufficient market data for pricing analysis (prices=%s, count=%s)", prices.size, count)
        return None

    median = float(np.median(prices))
    p25, p75 = (float(v) for v in np.percentile(prices, [25, 75]))
    rank = int(round(float(np.mean(prices < asking_price)) * 100))
    diff_pct = (asking_price - median) / median * 100 if median else 0.0

    if abs(diff_pct) < AT_MARKET_PCT:
        position = "at"
    elif diff_pct < 0:
        position = "below"
    else:
        position = "above"

    sparsity = band(count, _SPARSITY_BANDS, "sparse")
    regional_variance = bool(median) and float(prices[-1] - prices[0]) / median * 100 > REGIONAL_VARIANCE_PCT

    if count >= 20 and sparsity == "adequate":
        level = "high"
    elif count < 5 or sparsity == "sparse":
        level = "low"
    else:
        level = "medium"

    state = extract_state(location)
    return MarketPricingAnalysis(
        asking_price=asking_price,
        market_median=round(median, 2),
        price_min=float(prices[0]),
        price_max=float(prices[-1]),
        percentile_25=round(p25, 2),
        percentile_75=round(p75, 2),
        percentile_rank=rank,
        position=position,
        median_difference_percent=round(diff_pct, 1),
        negotiation_leverage=_leverage(position, diff_pct),
        sample_size=count,
        sparsity=sparsity,
        regional_variance=regional_variance,
        confidence=_CONFIDENCE[level],
        limitations=_limitations(sparsity, regional_variance, count, state),
        state=state,
    )
