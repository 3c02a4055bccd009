from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from verdict.banding import band
from verdict.config import SEVERITY_RANK, VehicleAgeConfig
from verdict.data_models import (
    DisasterData,
    DisasterRisk,
    EnvironmentalRisk,
    Recall,
    RedFlag,
    SellerSignals,
    Severity,
    Tier,
    VehicleHistory,
)
from verdict.disaster_risk import has_flood_risk

_PAID_ONLY_FIELDS = ("expanded_details", "methodology", "data_source")


@dataclass(frozen=True)
class PricingContext:
    price_difference: float
    price_difference_percent: int
    has_vin: bool
    year: int | None
    mileage: int | None
    current_year: int


@dataclass(frozen=True)
class FlagInputs:
    history: VehicleHistory | None = None
    environmental_risk: EnvironmentalRisk | None = None
    disaster_risk: DisasterRisk | None = None
    disaster_data: DisasterData | None = None
    seller_signals: SellerSignals | None = None
    recalls: tuple[Recall, ...] = field(default_factory=tuple)


def _flag(tier: Tier, **kwargs: object) -> RedFlag:
    if tier != "paid":
        for name in _PAID_ONLY_FIELDS:
            kwargs.pop(name, None)
    return RedFlag(**kwargs)  # type: ignore[arg-type]


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


# ── Pricing ─────────────────────────────────────────────────────────

def overpriced_severity(price_diff_percent: float) -> Severity:
    return band(price_diff_percent, ((20, "high"),), "medium", strict=True)


def _price_flags(ctx: PricingContext, inputs: FlagInputs, tier: Tier) -> list[RedFlag]:
    pct = ctx.price_difference_percent
    if pct > 15:
        return [
            _flag(
                tier,
                id="overpriced",
                title="Overpriced" if tier == "free" else f"Overpriced by {pct}%",
                description=(
                    "This vehicle appears to be listed above market value."
                    if tier == "free"
                    else "This vehicle is listed significantly above market value. The asking price is "
                    f"${abs(ctx.price_difference):,.0f} more than comparable vehicles."
                ),
                severity=overpriced_severity(pct),
                category="pricing",
                expanded_details="Similar vehicles in comparable condition typically sell for noticeably less "
                "than this asking price.",
                methodology="Compared against average retail prices from multiple market data sources.",
                data_source="Market listings data",
            )
        ]
    if pct < -20:
        return [
            _flag(
                tier,
                id="underpriced",
                title="Below Market Price" if tier == "free" else f"Priced {abs(pct)}% Below Market",
                description=(
                    "This price seems lower than expected."
                    if tier == "free"
                    else "This price seems suspiciously low. While it could be a great deal, significant "
                    "underpricing often indicates hidden problems."
                ),
                severity="high" if pct < -35 else "medium",
                category="pricing",
                expanded_details="Vehicles priced this far below market often have undisclosed issues like "
                "salvage titles, flood damage, or major mechanical problems.",
                methodology="Compared against average retail prices from multiple market data sources.",
                data_source="Market listings data",
            )
        ]
    return []


def _pricing_risk_flags(ctx: PricingContext, inputs: FlagInputs, tier: Tier) -> list[RedFlag]:
    if inputs.seller_signals is None:
        return []
    pricing = inputs.seller_signals.pricing
    flags: list[RedFlag] = []

    low = pricing.unusually_low_price
    if low is not None:
        below = abs(low.below_market_percent)
        anchor_name = "median" if low.used_market_median else "estimated value"
        flags.append(
            _flag(
                tier,
                id="unusually-low-price",
                title=f"Unusually Low Price ({below:.1f}% below market)",
                description="This vehicle's asking price is meaningfully below expected valuation anchors or "
                "market medians for similar vehicles. This pricing anomaly warrants extra scrutiny but does "
                "not imply a defect.",
                severity=band(below, ((30, "high"), (20, "medium")), "low"),
                category="pricing",
                expanded_details=f"The asking price of ${low.asking_price:,.0f} is {below:.1f}% below the market "
                f"{anchor_name} of ${low.market_median:,.0f}. This is a probabilistic pricing signal, not proof "
                f"of seller intent or vehicle damage. Confidence: {low.confidence}%.",
                methodology=f"Compared asking price against the market anchor. Threshold: "
                f"{low.threshold_used:g}% below market.",
                data_source="Market listings data",
            )
        )

    long_listed = pricing.too_good_for_too_long
    if long_listed is not None:
        days_over = long_listed.days_listed - long_listed.threshold_days
        flags.append(
            _flag(
                tier,
                id="too-good-for-too-long",
                title=f"Too Good for Too Long ({long_listed.days_listed} days listed)",
                description=f"This unusually low-priced vehicle has remained listed for {long_listed.days_listed} "
                f"days, beyond the {long_listed.threshold_days}-day threshold for its class. This may indicate "
                "market rejection.",
                severity=band(days_over, ((30, "high"), (14, "medium")), "low"),
                category="pricing",
                expanded_details=f"Listed {days_over} days beyond the threshold. This is a probabilistic pricing "
                f"signal, not proof of seller intent or vehicle damage. Confidence: {long_listed.confidence}%.",
                methodology="Listing duration compared against class-specific thresholds. Only evaluated when an "
                "unusually low price is also detected.",
                data_source="Listing history and market analysis",
            )
        )
    return flags


# ── History ─────────────────────────────────────────────────────────

def _history_flags(ctx: PricingContext, inputs: FlagInputs, tier: Tier) -> list[RedFlag]:
    history = inputs.history
    if history is None:
        return []
    flags: list[RedFlag] = []
    if history.title_brands:
        flags.append(
            _flag(
                tier,
                id="title-brands",
                title="Title Brands Detected",
                description=(
                    "Vehicle has title brands on record."
                    if tier == "free"
                    else f"This vehicle has the following title brands: {', '.join(history.title_brands)}. "
                    "This significantly impacts value and insurability."
                ),
                severity="critical",
                category="title",
                expanded_details="Title brands indicate the vehicle has been damaged, salvaged, or otherwise "
                "compromised. Insurance may be difficult to obtain and resale value is permanently affected.",
                data_source="Title registry",
            )
        )
    if history.theft_records:
        flags.append(
            _flag(
                tier,
                id="theft-record",
                title="Theft Record Found",
                description="This vehicle has been reported stolen in the past.",
                severity="critical",
                category="history",
                expanded_details="Even if recovered, vehicles with theft history may have hidden damage or "
                "tampering. Verify the vehicle was properly recovered and cleared by law enforcement.",
                data_source="Title registry",
            )
        )

    detailed = history.detailed
    if tier != "paid" or detailed is None:
        return flags

    if detailed.accident_indicators:
        flags.append(
            _flag(
                tier,
                id="accident-history",
                title="Accident History Detected",
                description="Vehicle history shows accident indicators.",
                severity="high",
                category="history",
                expanded_details="History records show at least one accident. Request body shop records and "
                "have a mechanic inspect for frame damage.",
                data_source="Vehicle history report",
            )
        )

    snapshots = sorted(detailed.mileage_snapshots, key=lambda s: s.date)
    for prev, cur in zip(snapshots, snapshots[1:]):
        if cur.reading < prev.reading:
            flags.append(
                _flag(
                    tier,
                    id="odometer-rollback",
                    title="Possible Odometer Rollback",
                    description="Mileage records show inconsistencies that may indicate odometer tampering.",
                    severity="critical",
                    category="history",
                    expanded_details=f"Recorded mileage decreased from {prev.reading:,} to {cur.reading:,}.",
                    data_source="Vehicle history report",
                )
            )
            break
    return flags


# ── Environment ─────────────────────────────────────────────────────

def _environment_flags(ctx: PricingContext, inputs: FlagInputs, tier: Tier) -> list[RedFlag]:
    flags: list[RedFlag] = []
    risk = inputs.environmental_risk
    if risk is not None and risk.disaster_presence:
        recent = risk.recency == "recent"
        flood = has_flood_risk(risk)
        if recent or flood:
            count = len(risk.recent_disasters) + len(risk.historical_disasters)
            flags.append(
                _flag(
                    tier,
                    id="environmental-risk",
                    title="Potential Environmental Exposure",
                    description="Vehicle appears to be located in an area with "
                    f"{'recent' if recent else 'historical'} disaster history.",
                    severity="high" if recent and flood else "medium",
                    category="disaster",
                    expanded_details=f"The area has {_plural(count, 'disaster declaration')} on record. "
                    + ("Area has high flood risk or flood-related disaster history. " if flood else "")
                    + "This is a probabilistic signal based on location data, not proof of actual damage.",
                    data_source="FEMA disaster declarations",
                )
            )

    disaster = inputs.disaster_risk
    if not flags and disaster is not None and disaster.risk_level != "low":
        flags.append(
            _flag(
                tier,
                id="disaster-risk",
                title=(
                    "Disaster Area History"
                    if tier == "free"
                    else f"{'High' if disaster.risk_level == 'high' else 'Moderate'} Disaster Risk Detected"
                ),
                description=(
                    "Vehicle may be from an area with disaster history."
                    if tier == "free"
                    else (disaster.factors[0] if disaster.factors else "Area has natural disaster history.")
                ),
                severity="high" if disaster.risk_level == "high" else "medium",
                category="disaster",
                expanded_details=" ".join(disaster.factors),
                data_source="FEMA, NOAA, USGS",
            )
        )
    return flags


# ── Seller behaviour ────────────────────────────────────────────────

def _seller_flags(ctx: PricingContext, inputs: FlagInputs, tier: Tier) -> list[RedFlag]:
    signals = inputs.seller_signals
    if tier != "paid" or signals is None:
        return []
    flags: list[RedFlag] = []

    relisting = signals.listing.relisting
    if relisting is not None and relisting.detected:
        flags.append(
            _flag(
                tier,
                id="relisting-detected",
                title="Relisting Pattern Detected",
                description=f"This vehicle has been listed {_plural(relisting.times_seen, 'time')} in recent months.",
                severity="high" if relisting.times_seen > 2 else "medium",
                category="listing",
                expanded_details="Frequent relisting often indicates issues discovered during buyer inspections.",
                data_source="Listing behavior analysis",
            )
        )

    longevity = signals.listing.longevity
    if longevity is not None and longevity.is_stale:
        flags.append(
            _flag(
                tier,
                id="stale-listing",
                title="Listing Longevity Concern",
                description=f"Vehicle has been listed for {longevity.days_listed} days without selling.",
                severity="medium",
                category="listing",
                expanded_details=(
                    "Extended listing period suggests the vehicle is overpriced or has issues that deter buyers."
                    if longevity.days_listed > 45
                    else "Above-average listing time. The seller may be motivated to negotiate."
                ),
                data_source="Listing behavior analysis",
            )
        )

    volatility = signals.pricing.volatility
    if volatility is not None and volatility.detected:
        parts = [_plural(volatility.price_changes, "price change")]
        if volatility.significant_drops:
            parts.append(f"{_plural(volatility.significant_drops, 'significant drop')} (5%+)")
        if volatility.oscillations:
            parts.append(_plural(volatility.oscillations, "oscillation"))
        flags.append(
            _flag(
                tier,
                id="price-volatility",
                title="Price Volatility Detected",
                description=f"{', '.join(parts)} within {volatility.time_window_days} days.",
                severity=volatility.level,
                category="listing",
                expanded_details="Repeated price drops or oscillations suggest the seller may be adjusting price "
                "in response to buyer concerns. This is a behavioral signal, not proof of a problem.",
                data_source="Price behavior analysis",
            )
        )

    legacy = signals.pricing.low_price_long_listing
    if legacy is not None and legacy.is_suspicious:
        flags.append(
            _flag(
                tier,
                id="too-good-too-long",
                title="Suspiciously Low Price + Long Listing",
                description="Vehicle is priced well below market but has not sold quickly.",
                severity="critical",
                category="seller",
                expanded_details="A legitimately good deal at this price would sell within days. There are "
                "likely serious undisclosed issues.",
                data_source="Pricing behavior analysis",
            )
        )

    if signals.profile.dealer_revealed:
        flags.append(
            _flag(
                tier,
                id="hidden-dealer",
                title="Dealer Posing as Private Seller",
                description="Evidence suggests this is a dealer listing disguised as a private sale.",
                severity="high",
                category="seller",
                expanded_details="Dealers posing as private sellers avoid dealer regulations. You have fewer "
                "legal protections in this transaction.",
                data_source="Seller profile analysis",
            )
        )
    return flags


# ── Data gaps, age and mileage ──────────────────────────────────────

def _data_gap_flags(ctx: PricingContext, inputs: FlagInputs, tier: Tier) -> list[RedFlag]:
    if ctx.has_vin:
        return []
    return [
        _flag(
            tier,
            id="no-vin",
            title="VIN Not Verified",
            description=(
                "Without a VIN, we cannot verify vehicle history."
                if tier == "free"
                else "Without a VIN, we cannot verify vehicle history, recalls, or title status."
            ),
            severity="high",
            category="data-gap",
            expanded_details="The VIN is needed for title records, recall information and theft checks. "
            "Always obtain the VIN before proceeding.",
        )
    ]


def _age_mileage_flags(ctx: PricingContext, inputs: FlagInputs, tier: Tier) -> list[RedFlag]:
    if ctx.year is None:
        return []
    cfg = VehicleAgeConfig()
    age = ctx.current_year - ctx.year
    flags: list[RedFlag] = []
    if age > cfg.high_age_years:
        flags.append(
            _flag(
                tier,
                id="high-age",
                title=f"Vehicle Over {cfg.high_age_years} Years Old",
                description=f"At {age} years old, this vehicle may require more maintenance.",
                severity="low",
                category="ownership",
                expanded_details="Older vehicles often have worn seals and aging electrical systems. Request "
                "maintenance records to verify proper care.",
            )
        )

    mileage = ctx.mileage
    if not mileage:
        return flags
    expected = max(age, 1) * cfg.expected_miles_per_year
    if mileage > expected * cfg.high_mileage_ratio:
        over = round((mileage / expected - 1) * 100)
        flags.append(
            _flag(
                tier,
                id="high-mileage",
                title="Higher Than Average Mileage",
                description=(
                    f"This vehicle has {mileage:,} miles."
                    if tier == "free"
                    else f"This vehicle has {mileage:,} miles, which is {over}% higher than average for its age."
                ),
                severity="high" if mileage > expected * cfg.very_high_mileage_ratio else "medium",
                category="ownership",
                expanded_details="High mileage vehicles may have more wear on critical components. Confirm "
                "timing belt or chain service and check for oil leaks.",
            )
        )
    elif mileage < expected * cfg.low_mileage_ratio and age > cfg.low_mileage_min_age:
        flags.append(
            _flag(
                tier,
                id="suspicious-low-mileage",
                title="Unusually Low Mileage",
                description=f"Only {mileage:,} miles on a {age}-year-old vehicle.",
                severity="medium",
                category="history",
                expanded_details="Could indicate odometer tampering or extended storage. Verify the reading "
                "matches service records.",
            )
        )
    return flags


def _baseline_flags(ctx: PricingContext, inputs: FlagInputs, tier: Tier) -> list[RedFlag]:
    flags = [
        _flag(
            tier,
            id="private-sale",
            title="Private Party Sale",
            description="Private sales offer no warranty protection.",
            severity="low",
            category="ownership",
            expanded_details="Private party transactions typically carry no warranty. Consider a pre-purchase "
            "inspection from an independent mechanic.",
        )
    ]
    if inputs.recalls:
        count = len(inputs.recalls)
        flags.append(
            _flag(
                tier,
                id="open-recalls",
                title=f"{_plural(count, 'Open Recall')} Found",
                description=f"This vehicle has {_plural(count, 'open safety recall')} that need to be addressed.",
                severity="high",
                category="history",
                expanded_details="Manufacturers fix recalls at no cost. Verify with the seller that these have "
                "been addressed.",
                data_source="NHTSA recalls database",
            )
        )
    return flags


_RULES: tuple[Callable[[PricingContext, FlagInputs, Tier], list[RedFlag]], ...] = (
    _price_flags,
    _pricing_risk_flags,
    _history_flags,
    _environment_flags,
    _seller_flags,
    _data_gap_flags,
    _age_mileage_flags,
    _baseline_flags,
)


def sort_by_severity(flags: list[RedFlag]) -> tuple[RedFlag, ...]:
    return tuple(sorted(flags, key=lambda f: SEVERITY_RANK[f.severity]))


def generate_red_flags(ctx: PricingContext, inputs: FlagInputs, tier: Tier = "free") -> tuple[RedFlag, ...]:
    flags: list[RedFlag] = []
    for rule in _RULES:
        flags.extend(rule(ctx, inputs, tier))
    return sort_by_severity(flags)
