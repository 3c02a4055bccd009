from __future__ import annotations

from datetime import date

from verdict.banding import band
from verdict.data_models import (
    DisasterData,
    DisasterEvent,
    DisasterRisk,
    EnvironmentalRisk,
)

RECENT_YEARS = 3
_FLOOD_KEYWORDS = ("flood", "hurricane")


def years_before(day: date, years: int) -> date:
    try:
        return day.replace(year=day.year - years)
    except ValueError:
        # Feb 29 on a non-leap target year
        return day.replace(year=day.year - years, day=28)


def environmental_risk(data: DisasterData, as_of: date) -> EnvironmentalRisk:
    """Summarise FEMA declarations for the listing's area into recent vs historical exposure."""
    cutoff = years_before(as_of, RECENT_YEARS)
    recent: list[DisasterEvent] = []
    historical: list[DisasterEvent] = []
    types: list[str] = []
    counties: list[str] = []

    for decl in data.declarations:
        if decl.disaster_type not in types:
            types.append(decl.disaster_type)
        if decl.designated_area and decl.designated_area not in counties:
            counties.append(decl.designated_area)
        event = DisasterEvent(
            disaster_type=decl.disaster_type,
            declaration_date=decl.declaration_date,
            days_ago=(as_of - decl.declaration_date).days,
        )
        if decl.declaration_date >= cutoff:
            recent.append(event)
        else:
            historical.append(event)

    if recent:
        recency = "recent"
    elif historical:
        recency = "historical"
    else:
        recency = "none"

    confidence = 0
    if data.state:
        confidence += 30
    if data.county:
        confidence += 20
    if data.declarations:
        confidence += 30
    if data.flood_zone_risk != "unknown":
        confidence += 20

    return EnvironmentalRisk(
        disaster_presence=bool(data.declarations),
        disaster_types=tuple(types),
        recency=recency,
        flood_zone_risk=data.flood_zone_risk,
        confidence=min(100, confidence),
        affected_counties=tuple(counties),
        recent_disasters=tuple(recent),
        historical_disasters=tuple(historical),
    )


def has_flood_risk(risk: EnvironmentalRisk) -> bool:
    if risk.flood_zone_risk == "high":
        return True
    return any(keyword in t.lower() for t in risk.disaster_types for keyword in _FLOOD_KEYWORDS)


def analyze_disaster_risk(data: DisasterData, as_of: date) -> DisasterRisk:
    """Score storm, wildfire and recent declaration exposure.

    Declarations older than the recency window do not count; historical
    presence alone is not a risk signal.
    """
    cutoff = years_before(as_of, RECENT_YEARS)
    score = 0
    factors: list[str] = []

    recent = [d for d in data.declarations if d.declaration_date >= cutoff]
    if recent:
        score += len(recent) * 2
        factors.append(f"{len(recent)} FEMA disaster declaration(s) in the past {RECENT_YEARS} years")
        if any("flood" in d.disaster_type.lower() for d in recent):
            score += 3
            factors.append("Flooding history detected - inspect for water damage")

    hurricanes = [e for e in data.storm_events if "hurricane" in e.event_type.lower()]
    if hurricanes:
        score += 2
        factors.append(f"{len(hurricanes)} hurricane event(s) in area")

    if data.wildfires:
        score += 2
        factors.append(f"{len(data.wildfires)} wildfire(s) in region")

    level = band(score, ((7, "high"), (4, "medium")), "low")
    return DisasterRisk(risk_level=level, risk_score=score, factors=tuple(factors))
