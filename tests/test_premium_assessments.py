from datetime import date, timedelta

import pytest

from verdict.data_models import (
    ListingBehavior,
    ListingLongevity,
    LowPriceLongListing,
    MarketData,
    PricePoint,
    PricingBehavior,
    RawListing,
    RelistingDetection,
    SalesStats,
    SellerProfile,
    SellerSignals,
)
from verdict.maintenance_risk import assess_maintenance_risk, estimate_maintenance_class
from verdict.market_pricing import analyze_market_pricing
from verdict.seller_analysis import calculate_price_volatility, calculate_seller_credibility

AS_OF = date(2026, 6, 1)


# ── Maintenance Risk ────────────────────────────────────────────────


@pytest.mark.parametrize(
    "make, model, expected",
    [
        ("BMW", "3 Series", "luxury"),
        ("Mercedes-Benz", "C-Class", "luxury"),
        ("Ford", "Mustang GT", "sports"),
        ("Honda", "Civic Type R", "sports"),
        ("Ford", "F-150", "truck"),
        ("Dodge", "Ram 1500", "truck"),
        ("Kia", "Rio", "economy"),
        ("Honda", "Civic", "mid-range"),
        (None, None, "unknown"),
    ],
)
def test_estimate_maintenance_class(make, model, expected):
    assert estimate_maintenance_class(make, model) == expected


def test_old_high_mileage_luxury_vehicle_is_elevated():
    result = assess_maintenance_risk(2008, 180_000, 4, "luxury", AS_OF)
    assert result is not None
    assert result.overall_risk == "elevated"
    assert result.vehicle_age == 18
    assert result.annual_mileage == 10_000
    categories = {f.category for f in result.risk_factors}
    assert categories == {"age", "mileage", "ownership", "vehicle-class"}
    assert result.inspection_focus[0].priority == "high"
    assert len(result.checklist) == len(set(result.checklist))


def test_young_low_mileage_vehicle_is_low_risk():
    result = assess_maintenance_risk(2024, 15_000, None, "economy", AS_OF)
    assert result.overall_risk == "low"
    assert [f.category for f in result.risk_factors] == ["usage"]
    assert all(item.area != "Cooling System" for item in result.inspection_focus)


def test_hundred_thousand_miles_is_at_least_medium():
    result = assess_maintenance_risk(2019, 105_000, 1, "truck", AS_OF)
    assert result.overall_risk == "medium"
    areas = [item.area for item in result.inspection_focus]
    assert "Timing Belt/Chain" in areas
    assert "4WD/Transfer Case" in areas


def test_inspection_focus_sorted_by_priority():
    result = assess_maintenance_risk(2010, 160_000, 2, "sports", AS_OF)
    order = {"high": 0, "medium": 1, "low": 2}
    priorities = [order[item.priority] for item in result.inspection_focus]
    assert priorities == sorted(priorities)


@pytest.mark.parametrize("year", [None, 1975, 2030])
def test_invalid_year_degrades_to_none(year):
    assert assess_maintenance_risk(year, 50_000, None, "mid-range", AS_OF) is None


# ── Market Pricing ──────────────────────────────────────────────────


def _listings(*prices):
    return MarketData(raw_listings=tuple(RawListing(price=p) for p in prices))


def test_asking_at_market_median():
    result = analyze_market_pricing(_listings(18000, 19000, 20000, 21000, 22000), 20000)
    assert result.market_median == 20000
    assert result.position == "at"
    assert result.percentile_rank == 40
    assert result.negotiation_leverage == "moderate"
    assert result.sparsity == "moderate"
    assert result.confidence == 65
    assert result.regional_variance is False
    assert result.state is None
    assert any("national market" in note for note in result.limitations)


def test_asking_well_above_market():
    result = analyze_market_pricing(_listings(18000, 19000, 20000, 21000, 22000), 25000, "Austin, TX")
    assert result.position == "above"
    assert result.median_difference_percent == 25.0
    assert result.percentile_rank == 100
    assert result.negotiation_leverage == "strong"
    assert result.state == "TX"
    assert not any("national market" in note for note in result.limitations)


def test_aggregate_range_is_approximated():
    market = MarketData(listing_average=20000.0, listing_price_min=16000.0, listing_price_max=24000.0)
    result = analyze_market_pricing(market, 19000)
    assert result.sample_size == 10
    assert result.price_min == 16000
    assert result.price_max == 24000
    assert result.percentile_25 == 18000
    assert result.regional_variance is True
    assert result.position == "below"


def test_sales_stats_only():
    market = MarketData(sales_stats=SalesStats(sales_count=40, median_price=30000.0))
    result = analyze_market_pricing(market, 30000)
    assert result.market_median == 30000
    assert result.sample_size == 40
    assert result.sparsity == "adequate"
    assert result.confidence == 85


def test_no_market_prices():
    assert analyze_market_pricing(None, 20000) is None
    assert analyze_market_pricing(MarketData(), 20000) is None


def test_sparse_sample():
    result = analyze_market_pricing(_listings(19000, 21000), 20000)
    assert result.sparsity == "sparse"
    assert result.confidence == 40
    assert any("Limited comparable listings (2 found)" in note for note in result.limitations)


# ── Seller Analysis ─────────────────────────────────────────────────


def test_price_volatility():
    history = [
        PricePoint(price=20000, observed_on=AS_OF - timedelta(days=60)),
        PricePoint(price=19000, observed_on=AS_OF - timedelta(days=40)),
        PricePoint(price=17500, observed_on=AS_OF - timedelta(days=20)),
        PricePoint(price=18000, observed_on=AS_OF - timedelta(days=10)),
    ]
    result = calculate_price_volatility(history, AS_OF)
    assert result.detected is True
    assert result.price_changes == 3
    assert result.significant_drops == 1
    assert result.oscillations == 1
    assert result.price_increases == 1
    assert result.level == "medium"


def test_price_volatility_ignores_old_points():
    history = [
        PricePoint(price=25000, observed_on=AS_OF - timedelta(days=200)),
        PricePoint(price=20000, observed_on=AS_OF - timedelta(days=150)),
        PricePoint(price=19900, observed_on=AS_OF - timedelta(days=5)),
    ]
    result = calculate_price_volatility(history, AS_OF)
    assert result.detected is False
    assert result.price_changes == 0


def test_unstable_pricing_is_high_volatility():
    prices = [20000, 18500, 19500, 18000, 19000]
    history = [PricePoint(price=p, observed_on=AS_OF - timedelta(days=30 - i * 5)) for i, p in enumerate(prices)]
    result = calculate_price_volatility(history, AS_OF)
    assert result.level == "high"
    assert result.oscillations == 3


def test_seller_credibility():
    signals = SellerSignals(
        listing=ListingBehavior(
            relisting=RelistingDetection(detected=True, times_seen=2),
            longevity=ListingLongevity(days_listed=61, is_stale=True, selling_without_correction=True),
        ),
        pricing=PricingBehavior(
            low_price_long_listing=LowPriceLongListing(is_suspicious=True, below_market=True, repeated_listing_periods=2)
        ),
        profile=SellerProfile(seller_type="private-party", dealer_revealed=True),
    )
    result = calculate_seller_credibility(signals)
    assert result.credibility_score == 18
    assert len(result.insights) == 5


def test_clean_seller_credibility():
    result = calculate_seller_credibility(SellerSignals(profile=SellerProfile(negotiated_similar_listings=True)))
    assert result.credibility_score == 75
    assert result.insights == ("Seller has successfully sold similar vehicles before",)
