from __future__ import annotations

from typing import Sequence

from verdict.banding import band
from verdict.data_models import (
    AnalysisRequest,
    ConfidenceLevel,
    DataQualityAssessment,
    DataQualityFactor,
    EnvironmentalRisk,
    SellerSignals,
    Tier,
    VehicleInfo,
)
from verdict.outcome import Ok, SignalBundle, Skipped, value_of

IMPACT_WEIGHTS = {"high": 3, "medium": 2, "low": 1}
STATUS_SCORES = {"complete": 100, "partial": 50, "unavailable": 25, "missing": 0}
MISSING_HIGH_IMPACT_CAP = 70

_RECOMMENDATIONS = {
    "vin-missing": "Provide the VIN to access vehicle history, title records, and recall information.",
    "vin-incomplete": "Ensure all vehicle details (year, make, model) are provided for accurate analysis.",
    "market-missing": "Market pricing data is unavailable. Consider verifying the asking price against "
    "similar listings manually.",
    "market-no-sources": "Market pricing data is unavailable. Consider verifying the asking price against "
    "similar listings manually.",
    "location-missing": "Provide the vehicle location to assess environmental risks (flood zones, disaster history).",
    "mileage-missing": "Provide the vehicle mileage for more accurate value estimation.",
    "seller-signals-premium": "Upgrade to premium to access seller behavior analysis (relisting detection, "
    "price volatility).",
}


def _vin_factor(request: AnalysisRequest, vehicle: VehicleInfo, bundle: SignalBundle) -> DataQualityFactor:
    if not request.vin:
        return DataQualityFactor(
            "vin-missing", "VIN Information", "missing", "high",
            "No VIN provided. Vehicle history, title records, and theft data cannot be verified.",
        )
    if not (vehicle.year and vehicle.make and vehicle.model):
        return DataQualityFactor(
            "vin-incomplete", "VIN Information", "partial", "high",
            "VIN provided but some vehicle details (year, make, or model) are missing. This limits recall "
            "and market data lookups.",
        )
    if not isinstance(bundle.history, Ok):
        return DataQualityFactor(
            "vin-no-history", "VIN History Data", "unavailable", "medium",
            "VIN provided but no vehicle history data was found. Title brands, theft records, and odometer "
            "readings are unavailable.",
        )
    return DataQualityFactor(
        "vin-complete", "VIN Information", "complete", "high",
        "VIN and vehicle details are available. Vehicle history data was successfully retrieved.",
    )


def _market_factor(bundle: SignalBundle, estimated_value: float) -> DataQualityFactor:
    if isinstance(bundle.market, Skipped):
        return DataQualityFactor(
            "market-missing", "Market Comparables", "missing", "high",
            "No market pricing data available. Price analysis is based on estimates only.",
        )
    market = value_of(bundle.market)
    sources = market.source_count if market is not None else 0
    if sources == 0:
        return DataQualityFactor(
            "market-no-sources", "Market Comparables", "unavailable", "high",
            "Market data sources are unavailable or found no listings. Price comparison may be unreliable.",
        )
    if sources == 1:
        return DataQualityFactor(
            "market-limited", "Market Comparables", "partial", "medium",
            "Only 1 market data source available. More sources would improve price accuracy.",
        )
    if not estimated_value:
        return DataQualityFactor(
            "market-no-estimate", "Market Value Estimate", "partial", "medium",
            "Market data available but unable to calculate reliable value estimate.",
        )
    return DataQualityFactor(
        "market-complete", "Market Comparables", "complete", "high",
        f"{sources} market data sources available. Price analysis is based on multiple sources.",
    )


def _available_seller_signal_types(signals: SellerSignals) -> int:
    listing = signals.listing.relisting is not None or signals.listing.longevity is not None
    pricing = signals.pricing.volatility is not None or signals.pricing.low_price_long_listing is not None
    profile = signals.profile.seller_type is not None
    return sum((listing, pricing, profile))


def _seller_factor(bundle: SignalBundle, tier: Tier) -> DataQualityFactor:
    if tier == "free":
        return DataQualityFactor(
            "seller-signals-premium", "Seller Behavior History", "unavailable", "medium",
            "Seller behavior analysis requires premium tier.",
        )
    if isinstance(bundle.seller, Skipped):
        return DataQualityFactor(
            "seller-signals-missing", "Seller Behavior History", "missing", "medium",
            "No seller behavior data available. Cannot assess relisting patterns, price changes, or seller "
            "credibility.",
        )
    signals = value_of(bundle.seller)
    available = _available_seller_signal_types(signals) if signals is not None else 0
    if available == 0:
        return DataQualityFactor(
            "seller-signals-none", "Seller Behavior History", "unavailable", "medium",
            "Seller behavior data unavailable. This may be a new listing or one on an untracked platform.",
        )
    if available < 3:
        return DataQualityFactor(
            "seller-signals-partial", "Seller Behavior History", "partial", "medium",
            f"Limited seller behavior data ({available} of 3 signal types available).",
        )
    return DataQualityFactor(
        "seller-signals-complete", "Seller Behavior History", "complete", "medium",
        "Relisting patterns, price changes, and seller profile have been analyzed.",
    )


def _location_factor(
    request: AnalysisRequest, bundle: SignalBundle, environmental_risk: EnvironmentalRisk | None
) -> DataQualityFactor:
    if not request.location:
        return DataQualityFactor(
            "location-missing", "Location Information", "missing", "medium",
            "No location provided. Environmental risk assessment cannot be performed.",
        )
    if environmental_risk is None and not isinstance(bundle.disaster, Ok):
        return DataQualityFactor(
            "location-no-data", "Location Data", "unavailable", "low",
            "Location provided but no environmental or disaster data found.",
        )
    if environmental_risk is not None and environmental_risk.confidence < 50:
        return DataQualityFactor(
            "location-low-confidence", "Location Data", "partial", "low",
            "Location data available but confidence is low. Environmental risk assessment may be incomplete.",
        )
    return DataQualityFactor(
        "location-complete", "Location Information", "complete", "low",
        "Location provided and environmental risk data retrieved.",
    )


def _external_factor(bundle: SignalBundle) -> DataQualityFactor:
    has_recalls = isinstance(bundle.recalls, Ok)
    has_history = isinstance(bundle.history, Ok)
    if has_recalls and has_history:
        return DataQualityFactor(
            "external-sources-complete", "External Data Sources", "complete", "medium",
            "Recalls and vehicle history have been checked.",
        )
    if has_recalls or has_history:
        which = "recalls" if has_recalls else "vehicle history"
        return DataQualityFactor(
            "external-sources-partial", "External Data Sources", "partial", "medium",
            f"Only {which} data available. Some external sources are unavailable.",
        )
    return DataQualityFactor(
        "external-sources-none", "External Data Sources", "unavailable", "medium",
        "Unable to access external data sources (recalls, vehicle history). Some risk factors may be undetected.",
    )


def _mileage_factor(request: AnalysisRequest, bundle: SignalBundle) -> DataQualityFactor:
    if not request.mileage:
        return DataQualityFactor(
            "mileage-missing", "Mileage Information", "missing", "low",
            "No mileage provided. Value estimates and wear assessment may be less accurate.",
        )
    history = value_of(bundle.history)
    if history is None or not history.odometer:
        return DataQualityFactor(
            "mileage-no-history", "Mileage Information", "partial", "low",
            "Mileage provided but no historical odometer records available for verification.",
        )
    return DataQualityFactor(
        "mileage-complete", "Mileage Information", "complete", "low",
        "Mileage provided and historical odometer records available for verification.",
    )


def score_factors(factors: Sequence[DataQualityFactor]) -> tuple[ConfidenceLevel, int]:
    total_weight = sum(IMPACT_WEIGHTS[f.impact] for f in factors)
    if total_weight == 0:
        return "low", 0
    weighted = sum(STATUS_SCORES[f.status] * IMPACT_WEIGHTS[f.impact] for f in factors)
    score = int(round(weighted / total_weight))
    level: ConfidenceLevel = band(score, ((75, "high"), (50, "medium")), "low")

    # a high-impact input that is entirely absent rules out high confidence
    if any(f.impact == "high" and f.status == "missing" for f in factors):
        score = min(score, MISSING_HIGH_IMPACT_CAP)
        if level == "high":
            level = "medium"
    return level, score


def _summary(level: ConfidenceLevel, factors: Sequence[DataQualityFactor]) -> str:
    high_gaps = [f for f in factors if f.impact == "high" and f.status != "complete"]
    missing_critical = [f for f in factors if f.impact == "high" and f.status == "missing"]
    if level == "high":
        if not high_gaps:
            return "We have comprehensive data for this vehicle. Our analysis is based on multiple reliable sources."
        return "We have good data coverage for this vehicle, though some information is incomplete."
    if level == "medium":
        if missing_critical:
            return "Some critical information is missing, which limits the accuracy of our analysis."
        return "We have partial data for this vehicle. Some important information is unavailable or incomplete."
    if missing_critical:
        return (
            "Significant data gaps limit our ability to provide a reliable analysis. Our assessment should be "
            "treated with caution."
        )
    return "Limited data is available for this vehicle. Our analysis may not capture all relevant risk factors."


def assess_data_quality(
    request: AnalysisRequest,
    vehicle: VehicleInfo,
    bundle: SignalBundle,
    environmental_risk: EnvironmentalRisk | None,
    tier: Tier,
) -> DataQualityAssessment:
    factors = (
        _vin_factor(request, vehicle, bundle),
        _market_factor(bundle, vehicle.estimated_value),
        _seller_factor(bundle, tier),
        _location_factor(request, bundle, environmental_risk),
        _external_factor(bundle),
        _mileage_factor(request, bundle),
    )
    level, score = score_factors(factors)
    recommendations = []
    for factor in factors:
        text = _RECOMMENDATIONS.get(factor.id)
        if text and text not in recommendations:
            recommendations.append(text)
    return DataQualityAssessment(
        overall_confidence=level,
        confidence_score=score,
        factors=factors,
        summary=_summary(level, factors),
        recommendations=tuple(recommendations),
    )
