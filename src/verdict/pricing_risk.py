from __future__ import annotations

import logging

from verdict.banding import band
from verdict.config import PricingRiskThresholds
from verdict.data_models import TooGoodForTooLong, UnusuallyLowPrice, VehicleClass

logger = logging.getLogger(__name__)

_DAYS_OVER_CONFIDENCE = ((30, 85), (14, 70))
_DEFAULT_DAYS_OVER_CONFIDENCE = 60


def analyze_unusually_low_price(
    asking_price: float,
    estimated_value: float,
    market_median: float | None = None,
    thresholds: PricingRiskThresholds | None = None,
) -> UnusuallyLowPrice | None:
    """Flag an asking price meaningfully below the market anchor.

    The anchor is the market median when one exists, else the estimated value.
    Returns None when the price is not unusually low.
    """
    cfg = thresholds or PricingRiskThresholds()
    anchor = market_median if market_median is not None else estimated_value
    if not anchor or anchor <= 0:
        return None

    below = (asking_price - anchor) / anchor * 100
    if below >= cfg.low_price_threshold:
        return None

    confidence = cfg.high_confidence if below <= cfg.high_confidence_threshold else cfg.base_confidence
    if market_median is not None:
        confidence = min(cfg.max_confidence, confidence + cfg.median_bonus)

    logger.debug("Unusually low price: asking=%s anchor=%s below=%.1f%%", asking_price, anchor, below)
    return UnusuallyLowPrice(
        below_market_percent=round(below, 1),
        market_median=anchor,
        asking_price=asking_price,
        confidence=confidence,
        threshold_used=cfg.low_price_threshold,
        used_market_median=market_median is not None,
    )


def analyze_too_good_for_too_long(
    days_listed: int,
    low_price_detected: bool,
    vehicle_class: VehicleClass = "common",
    thresholds: PricingRiskThresholds | None = None,
) -> TooGoodForTooLong | None:
    if not low_price_detected:
        return None

    cfg = thresholds or PricingRiskThresholds()
    threshold_days = cfg.days_by_class.get(vehicle_class, cfg.days_by_class["common"])
    if days_listed <= threshold_days:
        return None

    days_over = days_listed - threshold_days
    return TooGoodForTooLong(
        days_listed=days_listed,
        threshold_days=threshold_days,
        confidence=band(days_over, _DAYS_OVER_CONFIDENCE, _DEFAULT_DAYS_OVER_CONFIDENCE),
    )
