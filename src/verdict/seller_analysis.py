from __future__ import annotations

from datetime import date, timedelta
from typing import Sequence

import numpy as np
import pandas as pd

from verdict.data_models import PricePoint, PriceVolatility, SellerAnalysis, SellerSignals

VOLATILITY_WINDOW_DAYS = 90
DROP_WINDOW_DAYS = 45
SIGNIFICANT_DROP_PCT = 5.0


def calculate_price_volatility(history: Sequence[PricePoint], as_of: date) -> PriceVolatility:
    """Count price changes, sharp drops and direction reversals over the last 90 days."""
    quiet = PriceVolatility(
        detected=False,
        level="low",
        price_changes=0,
        significant_drops=0,
        oscillations=0,
        time_window_days=VOLATILITY_WINDOW_DAYS,
    )
    if len(history) < 2:
        return quiet

    df = pd.DataFrame({"price": [p.price for p in history], "observed_on": pd.to_datetime([p.observed_on for p in history])})
    df = df.sort_values("observed_on", kind="stable").reset_index(drop=True)
    df = df[df["observed_on"] >= pd.Timestamp(as_of - timedelta(days=VOLATILITY_WINDOW_DAYS))].reset_index(drop=True)
    if len(df) < 2:
        return quiet

    price_changes = len(df) - 1
    prev_price = df["price"].shift(1)
    drop_pct = (prev_price - df["price"]) / prev_price * 100
    drop_cutoff = pd.Timestamp(as_of - timedelta(days=DROP_WINDOW_DAYS))
    in_drop_window = (df["observed_on"] >= drop_cutoff) & (df["observed_on"].shift(1) >= drop_cutoff)
    significant_drops = int(((drop_pct >= SIGNIFICANT_DROP_PCT) & in_drop_window).sum())

    steps = np.sign(df["price"].diff().dropna().to_numpy())
    moves = steps[steps != 0]
    oscillations = int(np.count_nonzero(moves[1:] != moves[:-1])) if len(moves) > 1 else 0
    increases = int(np.count_nonzero(moves > 0))

    if significant_drops >= 2 or oscillations >= 2 or price_changes >= 4:
        level = "high"
    elif significant_drops >= 1 or oscillations >= 1 or price_changes >= 2:
        level = "medium"
    else:
        level = "low"

    return PriceVolatility(
        detected=price_changes >= 1,
        level=level,
        price_changes=price_changes,
        significant_drops=significant_drops,
        oscillations=oscillations,
        time_window_days=VOLATILITY_WINDOW_DAYS,
        price_increases=increases,
    )


def calculate_seller_credibility(signals: SellerSignals) -> SellerAnalysis:
    score = 70
    insights: list[str] = []

    relisting = signals.listing.relisting
    if relisting is not None and relisting.detected:
        times = relisting.times_seen
        score -= times * 5
        insights.append(
            f"Vehicle has been relisted {times} time{'' if times == 1 else 's'} - "
            "may indicate issues discovered during previous inspections"
        )

    longevity = signals.listing.longevity
    if longevity is not None and longevity.is_stale:
        score -= 10
        insights.append("Listing has been active for an extended period without selling")
        if longevity.selling_without_correction:
            score -= 5
            insights.append("Seller has not adjusted price despite extended listing time")

    volatility = signals.pricing.volatility
    if volatility is not None and volatility.price_increases > 0:
        increases = volatility.price_increases
        score -= increases * 3
        insights.append(
            f"Price has been increased {increases} time{'' if increases == 1 else 's'} - unusual for private sales"
        )

    legacy = signals.pricing.low_price_long_listing
    if legacy is not None and legacy.is_suspicious:
        score -= 15
        insights.append("Price is suspiciously low and vehicle remains unsold - investigate thoroughly")

    if signals.profile.dealer_revealed:
        score -= 12
        insights.append("Seller appears to be a dealer posing as private party - no buyer protections")

    if signals.profile.negotiated_similar_listings:
        score += 5
        insights.append("Seller has successfully sold similar vehicles before")

    return SellerAnalysis(credibility_score=max(0, min(100, score)), insights=tuple(insights))
