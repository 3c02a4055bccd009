import pytest

from verdict.config import PricingRiskThresholds
from verdict.pricing_risk import analyze_too_good_for_too_long, analyze_unusually_low_price


# ── Unusually Low Price ─────────────────────────────────────────────


def test_price_at_market_is_not_flagged():
    assert analyze_unusually_low_price(20000, 20000) is None


def test_small_discount_is_not_flagged():
    assert analyze_unusually_low_price(18000, 20000) is None


def test_threshold_is_exclusive():
    # exactly 15% below the anchor does not trigger
    assert analyze_unusually_low_price(17000, 20000) is None


def test_deep_discount_against_estimate():
    result = analyze_unusually_low_price(15000, 20000)
    assert result is not None
    assert result.below_market_percent == -25.0
    assert result.confidence == 85
    assert result.used_market_median is False
    assert result.market_median == 20000


def test_moderate_discount_has_base_confidence():
    result = analyze_unusually_low_price(16400, 20000)
    assert result is not None
    assert result.confidence == 50


def test_market_median_is_preferred_anchor_and_adds_confidence():
    result = analyze_unusually_low_price(16000, 30000, market_median=20000)
    assert result is not None
    assert result.market_median == 20000
    assert result.below_market_percent == -20.0
    assert result.used_market_median is True
    assert result.confidence == 60


def test_confidence_never_exceeds_cap():
    thresholds = PricingRiskThresholds(high_confidence=90, median_bonus=20)
    result = analyze_unusually_low_price(10000, 20000, market_median=20000, thresholds=thresholds)
    assert result is not None
    assert result.confidence == 95


@pytest.mark.parametrize("anchor", [0, -100])
def test_non_positive_anchor_is_ignored(anchor):
    assert analyze_unusually_low_price(5000, anchor) is None


# ── Too Good For Too Long ───────────────────────────────────────────


def test_requires_low_price():
    assert analyze_too_good_for_too_long(120, low_price_detected=False) is None


def test_within_class_threshold():
    assert analyze_too_good_for_too_long(21, True, "common") is None


def test_just_over_threshold():
    result = analyze_too_good_for_too_long(22, True, "common")
    assert result is not None
    assert result.threshold_days == 21
    assert result.confidence == 60


@pytest.mark.parametrize(
    "days, expected_confidence",
    [(36, 70), (51, 85), (100, 85)],
)
def test_confidence_grows_with_days_over(days, expected_confidence):
    result = analyze_too_good_for_too_long(days, True, "common")
    assert result.confidence == expected_confidence


def test_class_specific_thresholds():
    assert analyze_too_good_for_too_long(30, True, "luxury") is None
    assert analyze_too_good_for_too_long(31, True, "luxury").threshold_days == 30
    assert analyze_too_good_for_too_long(45, True, "exotic") is None
    assert analyze_too_good_for_too_long(46, True, "exotic").threshold_days == 45
