from datetime import date

import pytest

from verdict.data_models import (
    FLAG_CATEGORIES,
    DetailedHistory,
    DisasterEvent,
    DisasterRisk,
    EnvironmentalRisk,
    ListingBehavior,
    ListingLongevity,
    LowPriceLongListing,
    OdometerReading,
    PricingBehavior,
    Recall,
    RelistingDetection,
    SellerProfile,
    SellerSignals,
    TooGoodForTooLong,
    UnusuallyLowPrice,
    VehicleHistory,
)
from verdict.red_flags import FlagInputs, PricingContext, generate_red_flags, overpriced_severity

CURRENT_YEAR = 2026


def _ctx(pct=0, diff=0.0, has_vin=True, year=None, mileage=None):
    return PricingContext(
        price_difference=diff,
        price_difference_percent=pct,
        has_vin=has_vin,
        year=year,
        mileage=mileage,
        current_year=CURRENT_YEAR,
    )


def _ids(flags):
    return [f.id for f in flags]


def _by_id(flags, flag_id):
    return next(f for f in flags if f.id == flag_id)


def _rollback_history():
    return VehicleHistory(
        detailed=DetailedHistory(
            mileage_snapshots=(
                OdometerReading(reading=55000, date=date(2024, 3, 1)),
                OdometerReading(reading=60000, date=date(2023, 1, 10)),
            )
        )
    )


# ── Pricing ─────────────────────────────────────────────────────────


def test_private_sale_is_always_present():
    flags = generate_red_flags(_ctx(), FlagInputs())
    assert _ids(flags) == ["private-sale"]
    assert flags[0].severity == "low"


@pytest.mark.parametrize(
    "pct, severity",
    [(16, "medium"), (20, "medium"), (21, "high"), (50, "high")],
)
def test_overpriced_banding(pct, severity):
    flags = generate_red_flags(_ctx(pct=pct, diff=pct * 200.0), FlagInputs())
    assert _by_id(flags, "overpriced").severity == severity


def test_overpriced_banding_is_monotonic():
    rank = {"medium": 0, "high": 1}
    severities = [rank[overpriced_severity(p)] for p in range(16, 101)]
    assert severities == sorted(severities)


def test_fifteen_percent_over_is_not_overpriced():
    assert "overpriced" not in _ids(generate_red_flags(_ctx(pct=15), FlagInputs()))


@pytest.mark.parametrize("pct, severity", [(-21, "medium"), (-35, "medium"), (-36, "high")])
def test_underpriced_banding(pct, severity):
    flags = generate_red_flags(_ctx(pct=pct), FlagInputs())
    assert _by_id(flags, "underpriced").severity == severity


def test_pricing_risk_flags_map_from_analyzer_outputs():
    low = UnusuallyLowPrice(
        below_market_percent=-32.0, market_median=20000, asking_price=13600, confidence=85, threshold_used=-15.0
    )
    long_listed = TooGoodForTooLong(days_listed=40, threshold_days=21, confidence=70)
    seller = SellerSignals(pricing=PricingBehavior(unusually_low_price=low, too_good_for_too_long=long_listed))
    flags = generate_red_flags(_ctx(pct=-32), FlagInputs(seller_signals=seller), tier="free")
    assert _by_id(flags, "unusually-low-price").severity == "high"
    assert _by_id(flags, "too-good-for-too-long").severity == "medium"


# ── History ─────────────────────────────────────────────────────────


def test_title_brands_and_theft_are_critical():
    history = VehicleHistory(title_brands=("Salvage",), theft_records=True)
    flags = generate_red_flags(_ctx(), FlagInputs(history=history))
    assert _by_id(flags, "title-brands").severity == "critical"
    assert _by_id(flags, "theft-record").severity == "critical"


def test_odometer_rollback_paid_tier():
    flags = generate_red_flags(_ctx(), FlagInputs(history=_rollback_history()), tier="paid")
    rollback = _by_id(flags, "odometer-rollback")
    assert rollback.severity == "critical"
    assert "60,000" in rollback.expanded_details and "55,000" in rollback.expanded_details


def test_odometer_rollback_hidden_on_free_tier():
    flags = generate_red_flags(_ctx(), FlagInputs(history=_rollback_history()), tier="free")
    assert "odometer-rollback" not in _ids(flags)


def test_increasing_odometer_is_clean():
    history = VehicleHistory(
        detailed=DetailedHistory(
            mileage_snapshots=(
                OdometerReading(reading=30000, date=date(2021, 1, 1)),
                OdometerReading(reading=45000, date=date(2023, 1, 1)),
            ),
            accident_indicators=True,
        )
    )
    flags = generate_red_flags(_ctx(), FlagInputs(history=history), tier="paid")
    assert "odometer-rollback" not in _ids(flags)
    assert _by_id(flags, "accident-history").severity == "high"


# ── Environment ─────────────────────────────────────────────────────


def _env_risk(recency="recent", types=("Flood",), flood_zone="unknown"):
    event = DisasterEvent(disaster_type=types[0], declaration_date=date(2025, 9, 1), days_ago=273)
    return EnvironmentalRisk(
        disaster_presence=True,
        disaster_types=types,
        recency=recency,
        flood_zone_risk=flood_zone,
        confidence=80,
        recent_disasters=(event,) if recency == "recent" else (),
        historical_disasters=() if recency == "recent" else (event,),
    )


def test_recent_flood_is_high_environmental_risk():
    flags = generate_red_flags(_ctx(), FlagInputs(environmental_risk=_env_risk()))
    assert _by_id(flags, "environmental-risk").severity == "high"


def test_recent_non_flood_is_medium():
    flags = generate_red_flags(_ctx(), FlagInputs(environmental_risk=_env_risk(types=("Fire",))))
    assert _by_id(flags, "environmental-risk").severity == "medium"


def test_historical_non_flood_is_not_flagged():
    risk = _env_risk(recency="historical", types=("Severe Storm",))
    assert "environmental-risk" not in _ids(generate_red_flags(_ctx(), FlagInputs(environmental_risk=risk)))


def test_disaster_risk_only_without_environmental_risk():
    disaster = DisasterRisk(risk_level="high", risk_score=8, factors=("2 hurricane event(s) in area",))
    alone = generate_red_flags(_ctx(), FlagInputs(disaster_risk=disaster))
    assert _by_id(alone, "disaster-risk").severity == "high"

    both = generate_red_flags(_ctx(), FlagInputs(environmental_risk=_env_risk(), disaster_risk=disaster))
    assert "environmental-risk" in _ids(both)
    assert "disaster-risk" not in _ids(both)


def test_low_disaster_risk_is_not_flagged():
    disaster = DisasterRisk(risk_level="low", risk_score=2)
    assert "disaster-risk" not in _ids(generate_red_flags(_ctx(), FlagInputs(disaster_risk=disaster)))


# ── Seller behaviour ────────────────────────────────────────────────


def _busy_seller():
    return SellerSignals(
        listing=ListingBehavior(
            relisting=RelistingDetection(detected=True, times_seen=3),
            longevity=ListingLongevity(days_listed=50, is_stale=True),
        ),
        pricing=PricingBehavior(
            low_price_long_listing=LowPriceLongListing(is_suspicious=True, below_market=True, repeated_listing_periods=3)
        ),
        profile=SellerProfile(seller_type="private-party", dealer_revealed=True),
    )


def test_seller_flags_paid_tier():
    flags = generate_red_flags(_ctx(), FlagInputs(seller_signals=_busy_seller()), tier="paid")
    assert _by_id(flags, "relisting-detected").severity == "high"
    assert _by_id(flags, "stale-listing").severity == "medium"
    assert _by_id(flags, "too-good-too-long").severity == "critical"
    assert _by_id(flags, "hidden-dealer").severity == "high"


def test_seller_flags_not_on_free_tier():
    flags = generate_red_flags(_ctx(), FlagInputs(seller_signals=_busy_seller()), tier="free")
    assert not {"relisting-detected", "stale-listing", "too-good-too-long", "hidden-dealer"} & set(_ids(flags))


# ── Data gaps, age and mileage ──────────────────────────────────────


def test_missing_vin_is_high():
    flags = generate_red_flags(_ctx(has_vin=False), FlagInputs())
    assert _by_id(flags, "no-vin").severity == "high"


def test_old_high_mileage_vehicle():
    flags = generate_red_flags(_ctx(year=2010, mileage=400_000), FlagInputs())
    assert _by_id(flags, "high-age").severity == "low"
    assert _by_id(flags, "high-mileage").severity == "high"


def test_moderately_high_mileage():
    # 4 years old, 48k expected, 80k is between 1.5x and 2x
    flags = generate_red_flags(_ctx(year=2022, mileage=80_000), FlagInputs())
    assert _by_id(flags, "high-mileage").severity == "medium"


def test_suspicious_low_mileage():
    flags = generate_red_flags(_ctx(year=2016, mileage=20_000), FlagInputs())
    assert _by_id(flags, "suspicious-low-mileage").severity == "medium"


def test_missing_year_skips_age_and_mileage_checks():
    flags = generate_red_flags(_ctx(year=None, mileage=400_000), FlagInputs())
    assert not {"high-age", "high-mileage", "suspicious-low-mileage"} & set(_ids(flags))


def test_open_recalls():
    recalls = (Recall(campaign_number="24V001", component="AIR BAGS", summary="Inflator may rupture"),)
    flags = generate_red_flags(_ctx(), FlagInputs(recalls=recalls))
    recall_flag = _by_id(flags, "open-recalls")
    assert recall_flag.severity == "high"
    assert recall_flag.title == "1 Open Recall Found"


# ── Tier detail and ordering ────────────────────────────────────────


def test_free_tier_flags_carry_no_detail():
    history = VehicleHistory(title_brands=("Rebuilt",))
    flags = generate_red_flags(_ctx(pct=30, has_vin=False), FlagInputs(history=history), tier="free")
    for flag in flags:
        assert flag.expanded_details is None
        assert flag.methodology is None
        assert flag.data_source is None


def test_paid_tier_flags_carry_detail():
    flags = generate_red_flags(_ctx(pct=30, diff=6000.0), FlagInputs(), tier="paid")
    overpriced = _by_id(flags, "overpriced")
    assert overpriced.expanded_details
    assert overpriced.methodology
    assert overpriced.data_source == "Market listings data"
    assert "$6,000" in overpriced.description


def test_flags_sorted_by_severity():
    history = VehicleHistory(title_brands=("Salvage",))
    flags = generate_red_flags(_ctx(pct=18, has_vin=False, year=2010), FlagInputs(history=history))
    rank = {"critical": 0, "high": 1, "medium": 2, "low": 3}
    ranks = [rank[f.severity] for f in flags]
    assert ranks == sorted(ranks)
    assert flags[0].id == "title-brands"


# ── Categories ──────────────────────────────────────────────────────


def test_every_flag_uses_a_known_category():
    history = VehicleHistory(title_brands=("Salvage",), theft_records=True)
    recalls = (Recall(campaign_number="24V001", component="AIR BAGS", summary="Inflator may rupture"),)
    inputs = FlagInputs(
        history=history, environmental_risk=_env_risk(), seller_signals=_busy_seller(), recalls=recalls
    )
    flags = generate_red_flags(_ctx(pct=30, has_vin=False, year=2010, mileage=400_000), inputs, tier="paid")
    assert {f.category for f in flags} <= FLAG_CATEGORIES
    categories = {f.id: f.category for f in flags}
    assert categories["title-brands"] == "title"
    assert categories["theft-record"] == "history"
    assert categories["no-vin"] == "data-gap"
    assert categories["high-age"] == "ownership"
    assert categories["high-mileage"] == "ownership"
    assert categories["private-sale"] == "ownership"
    assert categories["open-recalls"] == "history"
    assert categories["environmental-risk"] == "disaster"
    assert categories["relisting-detected"] == "listing"
    assert categories["hidden-dealer"] == "seller"


def test_low_mileage_is_a_history_flag():
    flags = generate_red_flags(_ctx(year=2016, mileage=20_000), FlagInputs())
    assert _by_id(flags, "suspicious-low-mileage").category == "history"
