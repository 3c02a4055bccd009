from datetime import date

import pytest

from verdict.data_models import DisasterData, DisasterDeclaration, StormEvent, Wildfire
from verdict.disaster_risk import analyze_disaster_risk, environmental_risk, has_flood_risk, years_before
from verdict.location import extract_county, extract_state
from verdict.verdict_assembly import environmental_level
from verdict.vin import InvalidVinError, normalize_vin, validate_vin, year_from_vin

AS_OF = date(2026, 6, 1)


def _decl(kind, day, area=None):
    return DisasterDeclaration(disaster_type=kind, declaration_date=day, designated_area=area)


# ── Environmental Risk ──────────────────────────────────────────────


def test_recent_and_historical_declarations():
    data = DisasterData(
        declarations=(
            _decl("Hurricane", date(2025, 9, 1), "Hillsborough (County)"),
            _decl("Severe Storm", date(2021, 4, 2), "Pinellas (County)"),
        ),
        state="FL",
        county="Hillsborough County",
    )
    risk = environmental_risk(data, AS_OF)
    assert risk.disaster_presence is True
    assert risk.recency == "recent"
    assert risk.disaster_types == ("Hurricane", "Severe Storm")
    assert len(risk.recent_disasters) == 1
    assert len(risk.historical_disasters) == 1
    assert risk.recent_disasters[0].days_ago == (AS_OF - date(2025, 9, 1)).days
    assert risk.confidence == 80
    assert has_flood_risk(risk)
    assert environmental_level(risk) == "high"


def test_historical_only():
    data = DisasterData(declarations=(_decl("Fire", date(2020, 8, 1)),), state="CA")
    risk = environmental_risk(data, AS_OF)
    assert risk.recency == "historical"
    assert not has_flood_risk(risk)
    assert environmental_level(risk) == "medium"


def test_no_declarations():
    risk = environmental_risk(DisasterData(state="AZ", flood_zone_risk="low"), AS_OF)
    assert risk.disaster_presence is False
    assert risk.recency == "none"
    assert risk.confidence == 50
    assert environmental_level(risk) == "low"


def test_high_flood_zone_alone_is_high():
    risk = environmental_risk(DisasterData(flood_zone_risk="high"), AS_OF)
    assert has_flood_risk(risk)
    assert environmental_level(risk) == "high"


# ── Disaster Risk ───────────────────────────────────────────────────


def test_recent_floods_are_high_risk():
    data = DisasterData(declarations=(_decl("Flood", date(2025, 1, 1)), _decl("Flood", date(2024, 6, 1))))
    result = analyze_disaster_risk(data, AS_OF)
    assert result.risk_score == 7
    assert result.risk_level == "high"
    assert any("water damage" in f for f in result.factors)


def test_storms_and_wildfires():
    data = DisasterData(
        storm_events=(StormEvent(event_type="Hurricane (Typhoon)", event_date=date(2024, 9, 26)),),
        wildfires=(Wildfire(name="Creek Fire", start_date=date(2025, 7, 4), acres=1200.0),),
    )
    result = analyze_disaster_risk(data, AS_OF)
    assert result.risk_score == 4
    assert result.risk_level == "medium"


def test_old_declarations_do_not_count():
    data = DisasterData(declarations=(_decl("Flood", date(2019, 1, 1)),))
    result = analyze_disaster_risk(data, AS_OF)
    assert result.risk_score == 0
    assert result.risk_level == "low"


def test_years_before_leap_day():
    assert years_before(date(2024, 2, 29), 3) == date(2021, 2, 28)
    assert years_before(date(2026, 6, 1), 3) == date(2023, 6, 1)


# ── Location ────────────────────────────────────────────────────────


@pytest.mark.parametrize(
    "location, state",
    [
        ("Tampa, FL 33601", "FL"),
        ("Gary, IN", "IN"),
        ("Charleston, West Virginia", "WV"),
        ("Richmond, Virginia", "VA"),
        ("somewhere nice", None),
        (None, None),
    ],
)
def test_extract_state(location, state):
    assert extract_state(location) == state


def test_extract_county():
    assert extract_county("Houston, Harris County, TX") == "Harris County"
    assert extract_county("Houston, TX") is None


# ── VIN ─────────────────────────────────────────────────────────────


def test_validate_vin_normalizes():
    assert validate_vin(" 1hgcm82633a123456 ") == "1HGCM82633A123456"
    assert normalize_vin("abc") == "ABC"


def test_short_vin_is_rejected():
    with pytest.raises(InvalidVinError) as exc_info:
        validate_vin("1HGCM82633A12345")
    assert "17" in exc_info.value.reason
    assert exc_info.value.vin == "1HGCM82633A12345"


@pytest.mark.parametrize("vin", ["1HGCM82633A12345I", "1HGCM82633O123456", "1HGCM8263QA123456"])
def test_forbidden_letters_are_rejected(vin):
    with pytest.raises(InvalidVinError):
        validate_vin(vin)


def test_year_from_vin_picks_latest_cycle():
    assert year_from_vin("1FTFW1ET5DFC10312", 2026) == 2013
    assert year_from_vin("1HGCM82633A123456", 2026) == 2003
    assert year_from_vin("1HGCM82633A123456", 2008) == 2003
    assert year_from_vin("1HGCM8263A3123456", 2026) == 2010
    assert year_from_vin("1HGCM8263A3123456", 2008) == 1980
    assert year_from_vin("5YJ3E1EA0RF000001", 2026) == 2024
    assert year_from_vin("short", 2026) is None
