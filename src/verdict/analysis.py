from __future__ import annotations

import dataclasses
import logging
from datetime import date
from typing import NamedTuple

from verdict.data_models import (
    AnalysisRequest,
    DataQualityAssessment,
    DecodedVin,
    EnvironmentalRisk,
    MarketData,
    MarketPricingAnalysis,
    PremiumSignals,
    PricingBehavior,
    Recall,
    SellerSignals,
    VehicleHistory,
    VehicleInfo,
    VerdictResult,
    VerdictType,
)
from verdict.data_quality import assess_data_quality
from verdict.disaster_risk import analyze_disaster_risk, environmental_risk
from verdict.maintenance_risk import assess_maintenance_risk, estimate_maintenance_class
from verdict.market_pricing import analyze_market_pricing
from verdict.outcome import Ok, SignalBundle, value_of, was_attempted
from verdict.pricing_risk import analyze_too_good_for_too_long, analyze_unusually_low_price
from verdict.questions import paid_questions
from verdict.red_flags import FlagInputs, PricingContext, generate_red_flags
from verdict.seller_analysis import calculate_seller_credibility
from verdict.tailored_questions import generate_tailored_questions
from verdict.tier_projection import (
    COMPETITIVE_PRICING_KNOWN,
    FULL_HISTORY_KNOWN,
    INSPECTION_UNKNOWN,
    SERVICE_RECORDS_UNKNOWN,
    project,
)
from verdict.valuation import (
    classify_vehicle,
    comparable_listings,
    estimate_value,
    history_summary,
    market_median,
    price_difference,
)
from verdict.verdict_assembly import assemble_verdict, environmental_level
from verdict.vin import year_from_vin

logger = logging.getLogger(__name__)

_UNAVAILABLE_LABELS = {
    "history": "Vehicle history records (source unavailable)",
    "market": "Market pricing comparables (source unavailable)",
    "disaster": "Regional disaster history (source unavailable)",
    "recalls": "Open recall status (source unavailable)",
    "seller": "Seller behavior history (source unavailable)",
}


class VehicleIdentity(NamedTuple):
    year: int | None
    make: str | None
    model: str | None
    trim: str | None


def resolve_identity(
    request: AnalysisRequest,
    decoded: DecodedVin | None = None,
    history: VehicleHistory | None = None,
    current_year: int | None = None,
) -> VehicleIdentity:
    """Merge what the buyer typed with what the VIN and history report say.

    Buyer-supplied values win; decoded VIN data fills the gaps, then the
    history report, then the VIN's model-year character.
    """
    year = request.year or (decoded.model_year if decoded else None) or (history.year if history else None)
    if not year and request.vin and current_year:
        year = year_from_vin(request.vin, current_year)
    make = request.make or (decoded.make if decoded else None) or (history.make if history else None)
    model = request.model or (decoded.model if decoded else None) or (history.model if history else None)
    trim = request.trim or (decoded.trim if decoded else None)
    return VehicleIdentity(year or None, make or None, model or None, trim or None)


def _merge_pricing_risk(
    seller: SellerSignals | None,
    asking_price: float,
    estimated_value: float,
    median: float | None,
    make: str | None,
) -> SellerSignals | None:
    low_price = analyze_unusually_low_price(asking_price, estimated_value, median)
    days_listed = 0
    if seller is not None and seller.listing.longevity is not None:
        days_listed = seller.listing.longevity.days_listed
    too_long = analyze_too_good_for_too_long(
        days_listed, low_price is not None, classify_vehicle(make, estimated_value)
    )
    if low_price is None and too_long is None:
        return seller

    base = seller or SellerSignals()
    pricing = dataclasses.replace(base.pricing, unusually_low_price=low_price, too_good_for_too_long=too_long)
    return dataclasses.replace(base, pricing=pricing)


def known_and_unknown(
    vehicle: VehicleInfo,
    bundle: SignalBundle,
) -> tuple[tuple[str, ...], tuple[str, ...]]:
    """Full source lists; the free view is abbreviated by tier projection."""
    known: list[str] = []
    unknown: list[str] = []
    history = value_of(bundle.history)
    market = value_of(bundle.market)
    recalls = value_of(bundle.recalls)

    if vehicle.vin:
        known.append("VIN verified")
        if history is not None:
            known.append("Title record check completed")
            if history.detailed is not None:
                known.append(FULL_HISTORY_KNOWN)
    else:
        unknown.append("VIN not provided")

    if vehicle.year:
        known.append(f"Year: {vehicle.year}")
    if vehicle.make:
        known.append(f"Make: {vehicle.make}")
    if vehicle.model:
        known.append(f"Model: {vehicle.model}")
    if vehicle.mileage:
        known.append(f"Mileage: {vehicle.mileage:,}")

    if market is not None:
        if market.listing_average or market.raw_listings:
            known.append("Active market listings")
        if market.competitive_price or market.sales_stats is not None:
            known.append(COMPETITIVE_PRICING_KNOWN)

    if isinstance(bundle.disaster, Ok):
        known.append("FEMA disaster history checked")

    if recalls:
        known.append(f"{len(recalls)} open recall{'' if len(recalls) == 1 else 's'} found (NHTSA)")
    elif recalls is not None:
        known.append("NHTSA recall check completed (no open recalls)")

    for name, label in _UNAVAILABLE_LABELS.items():
        outcome = getattr(bundle, name)
        if was_attempted(outcome) and not isinstance(outcome, Ok):
            unknown.append(label)

    if history is None or history.detailed is None:
        unknown.append(SERVICE_RECORDS_UNKNOWN)
    unknown.append(INSPECTION_UNKNOWN)
    if not vehicle.vin:
        unknown.append("Theft records")
    return tuple(known), tuple(unknown)


# ── Summary ─────────────────────────────────────────────────────────

def _price_lead(verdict: VerdictType, price_diff_percent: int, summary: str) -> str:
    if verdict == "deal" and price_diff_percent < 0:
        return (
            f"This appears to be a solid deal. The asking price is {abs(price_diff_percent)}% below market value. "
            f"{summary}"
        )
    if verdict == "deal" and 0 < price_diff_percent < 15:
        return f"This vehicle is priced reasonably. {summary}"
    if verdict == "caution" and price_diff_percent > 15:
        return f"Priced {price_diff_percent}% above market. {summary}"
    return summary


def _market_lead(verdict: VerdictType, analysis: MarketPricingAnalysis, summary: str) -> str | None:
    if verdict == "deal" and analysis.position == "below" and analysis.median_difference_percent <= -10:
        return (
            "This appears to be a solid deal. Market pricing analysis shows the asking price is significantly "
            f"below comparable listings ({analysis.percentile_rank}th percentile). {summary}"
        )
    if verdict == "deal" and analysis.position in ("below", "at"):
        return (
            "This vehicle is priced reasonably. Market pricing analysis indicates the asking price is at or "
            f"below the median of comparable listings. {summary}"
        )
    if verdict == "caution" and analysis.position == "above" and analysis.median_difference_percent >= 10:
        return (
            "Market pricing analysis shows the asking price is significantly above comparable listings "
            f"({analysis.percentile_rank}th percentile). {summary}"
        )
    return None


def build_summary(
    verdict: VerdictType,
    explanation: str,
    price_diff_percent: int,
    tier: str,
    premium: PremiumSignals | None = None,
    env_risk: EnvironmentalRisk | None = None,
    data_quality: DataQualityAssessment | None = None,
) -> str:
    if tier != "paid":
        return _price_lead(verdict, price_diff_percent, explanation)

    summary = None
    if premium is not None and premium.market_pricing is not None:
        summary = _market_lead(verdict, premium.market_pricing, explanation)
    if summary is None:
        summary = _price_lead(verdict, price_diff_percent, explanation)

    maintenance = premium.maintenance if premium is not None else None
    if maintenance is not None and maintenance.overall_risk == "elevated" and "maintenance" not in summary:
        summary += " Maintenance risk assessment indicates elevated forward-looking maintenance concerns."
    if environmental_level(env_risk) == "high" and "nvironmental" not in summary and "water damage" not in summary:
        summary += " Environmental risk assessment indicates high exposure to disaster events."
    if data_quality is not None and data_quality.overall_confidence == "low":
        summary += " Note: Limited data quality may affect confidence in this assessment."
    return summary


# ── Pipeline ────────────────────────────────────────────────────────

def build_report(
    request: AnalysisRequest,
    bundle: SignalBundle,
    decoded: DecodedVin | None = None,
    as_of: date | None = None,
) -> VerdictResult:
    """Run the verdict pipeline over already-collected collaborator outcomes.

    Sequential and side-effect free apart from logging. ``as_of`` pins the
    calendar for age, recency and listing-window calculations.
    """
    as_of = as_of or date.today()
    tier = request.tier
    history: VehicleHistory | None = value_of(bundle.history)
    market: MarketData | None = value_of(bundle.market)
    disaster = value_of(bundle.disaster)
    recalls: tuple[Recall, ...] = tuple(value_of(bundle.recalls) or ())

    identity = resolve_identity(request, decoded, history, as_of.year)
    estimated = estimate_value(
        request.asking_price, market, identity.make, identity.model, identity.year, request.mileage, as_of.year
    )
    diff, diff_pct = price_difference(request.asking_price, estimated)
    vehicle = VehicleInfo(
        year=identity.year,
        make=identity.make,
        model=identity.model,
        asking_price=request.asking_price,
        estimated_value=estimated,
        price_difference=round(diff, 2),
        price_difference_percent=diff_pct,
        vin=request.vin,
        trim=identity.trim,
        mileage=request.mileage,
    )

    seller = _merge_pricing_risk(
        value_of(bundle.seller), request.asking_price, estimated, market_median(market), identity.make
    )

    env_risk = environmental_risk(disaster, as_of) if disaster is not None else None
    disaster_risk = analyze_disaster_risk(disaster, as_of) if disaster is not None else None

    red_flags = generate_red_flags(
        PricingContext(
            price_difference=vehicle.price_difference,
            price_difference_percent=diff_pct,
            has_vin=bool(request.vin),
            year=identity.year,
            mileage=request.mileage,
            current_year=as_of.year,
        ),
        FlagInputs(
            history=history,
            environmental_risk=env_risk,
            disaster_risk=disaster_risk,
            disaster_data=disaster,
            seller_signals=seller,
            recalls=recalls,
        ),
        tier,
    )
    questions = paid_questions(red_flags, vehicle.price_difference)
    known, unknown = known_and_unknown(vehicle, bundle)

    premium = None
    if tier == "paid":
        ownership = history.detailed.ownership_changes if history and history.detailed else None
        premium = PremiumSignals(
            maintenance=assess_maintenance_risk(
                identity.year,
                request.mileage,
                ownership,
                estimate_maintenance_class(identity.make, identity.model),
                as_of,
            ),
            market_pricing=analyze_market_pricing(market, request.asking_price, request.location),
        )

    data_quality = assess_data_quality(request, vehicle, bundle, env_risk, tier)
    reasoning = assemble_verdict(red_flags, data_quality, diff_pct, premium, env_risk)
    summary = build_summary(reasoning.verdict, reasoning.explanation, diff_pct, tier, premium, env_risk, data_quality)

    result = VerdictResult(
        tier=tier,
        verdict=reasoning.verdict,
        confidence_score=reasoning.confidence,
        summary=summary,
        red_flags=red_flags,
        questions_to_ask=questions,
        known_data=known,
        unknown_data=unknown,
        vehicle_info=vehicle,
        data_quality=data_quality,
        reasoning=reasoning,
        history=history,
        market_data=market,
        disaster_data=disaster,
        environmental_risk=env_risk,
        seller_signals=seller,
        recalls=recalls,
    )

    if tier == "paid":
        result = dataclasses.replace(
            result,
            market_pricing_analysis=premium.market_pricing if premium else None,
            maintenance_risk_assessment=premium.maintenance if premium else None,
            carfax_summary=history_summary(history) if history is not None else None,
            comparable_listings=comparable_listings(market, request.asking_price) if market is not None else (),
            seller_analysis=calculate_seller_credibility(seller) if isinstance(bundle.seller, Ok) else None,
        )
        result = dataclasses.replace(result, tailored_questions=generate_tailored_questions(result, as_of))

    logger.info(
        "Verdict %s for %s %s %s (confidence=%s, flags=%s, data_quality=%s)",
        result.verdict,
        identity.year,
        identity.make,
        identity.model,
        result.confidence_score,
        len(red_flags),
        data_quality.overall_confidence,
    )
    return project(result, tier)
