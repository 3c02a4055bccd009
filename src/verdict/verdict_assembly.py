from __future__ import annotations

import logging
from typing import Sequence

from verdict.config import ScoringConfig
from verdict.data_models import (
    ContributingFactors,
    DataQualityAssessment,
    DataQualityImpact,
    EnvironmentalRisk,
    MarketPosition,
    MarketPricingAnalysis,
    PremiumSignals,
    RedFlag,
    RiskLevel,
    VerdictReasoning,
    VerdictType,
)
from verdict.disaster_risk import has_flood_risk

logger = logging.getLogger(__name__)

_STRUCTURAL_IDS = frozenset(
    {"title-brands", "theft-record", "odometer-rollback", "accident-history", "environmental-risk", "disaster-risk"}
)
_MARKET_IDS = frozenset({"overpriced", "underpriced", "unusually-low-price", "too-good-for-too-long"})
_SELLER_IDS = frozenset({"relisting-detected", "price-volatility", "stale-listing"})
_STRONG_HIGH_IDS = frozenset({"title-brands", "theft-record", "odometer-rollback", "accident-history"})
_PRICING_RISK_IDS = frozenset({"unusually-low-price", "too-good-for-too-long"})


# ── Scoring ─────────────────────────────────────────────────────────

def price_adjustment(price_diff_percent: float) -> int:
    if price_diff_percent > 25:
        return -15
    if price_diff_percent > 15:
        return -8
    if price_diff_percent < -25:
        return -10
    if -15 < price_diff_percent < 0:
        return 5
    return 0


def score_flags(flags: Sequence[RedFlag], price_diff_percent: float, config: ScoringConfig | None = None) -> int:
    cfg = config or ScoringConfig()
    score = cfg.base_score
    for flag in flags:
        score -= cfg.severity_penalties.get(flag.severity, 0)
    return score + price_adjustment(price_diff_percent)


def verdict_for_score(score: int, config: ScoringConfig | None = None) -> VerdictType:
    cfg = config or ScoringConfig()
    if score >= cfg.deal_floor:
        return "deal"
    if score >= cfg.caution_floor:
        return "caution"
    return "disaster"


def only_probabilistic(flags: Sequence[RedFlag], config: ScoringConfig | None = None) -> bool:
    """True when every non-informational flag is a location or pricing-behaviour signal."""
    cfg = config or ScoringConfig()
    return all(f.id in cfg.probabilistic_flags for f in flags if f.id not in cfg.informational_flags)


def verdict_confidence(
    flags: Sequence[RedFlag],
    data_quality: DataQualityAssessment | None,
    config: ScoringConfig | None = None,
) -> int:
    cfg = config or ScoringConfig()
    ids = {f.id for f in flags}
    confidence = cfg.base_confidence
    if "no-vin" in ids:
        confidence -= cfg.missing_vin_penalty
    elif data_quality is not None and _title_unresolved(data_quality):
        confidence -= cfg.unresolved_title_penalty
    if "environmental-risk" in ids:
        confidence -= cfg.environmental_penalty
    if ids & _PRICING_RISK_IDS:
        confidence -= cfg.pricing_risk_penalty
    return max(cfg.min_confidence, min(cfg.max_confidence, confidence))


def _title_unresolved(data_quality: DataQualityAssessment) -> bool:
    vin = next((f for f in data_quality.factors if f.id.startswith("vin-")), None)
    return vin is not None and vin.id != "vin-missing" and vin.status != "complete"


# ── Categorisation ──────────────────────────────────────────────────

def categorize_flags(flags: Sequence[RedFlag]) -> tuple[list[RedFlag], list[RedFlag], list[RedFlag]]:
    structural: list[RedFlag] = []
    market: list[RedFlag] = []
    seller: list[RedFlag] = []
    for flag in flags:
        serious = flag.severity in ("high", "critical")
        if flag.id in _STRUCTURAL_IDS or flag.category == "title" or (flag.category == "disaster" and serious):
            structural.append(flag)
        elif flag.id in _MARKET_IDS or flag.category == "pricing":
            market.append(flag)
        elif flag.id in _SELLER_IDS or flag.category in ("listing", "seller"):
            seller.append(flag)
        elif serious:
            structural.append(flag)
        else:
            market.append(flag)
    return structural, market, seller


def _meaningful(flags: Sequence[RedFlag]) -> list[RedFlag]:
    return [f for f in flags if f.severity != "low"]


def market_position(analysis: MarketPricingAnalysis | None) -> MarketPosition | None:
    if analysis is None:
        return None
    if analysis.percentile_rank >= 75 and analysis.negotiation_leverage == "limited":
        return "unfavorable"
    if analysis.percentile_rank <= 25 and analysis.negotiation_leverage == "strong":
        return "favorable"
    if analysis.position == "above" and analysis.median_difference_percent > 10:
        return "unfavorable"
    if analysis.position == "below" and analysis.median_difference_percent < -10:
        return "favorable"
    return "neutral"


def environmental_level(risk: EnvironmentalRisk | None) -> RiskLevel | None:
    if risk is None:
        return None
    if risk.flood_zone_risk == "high" or (risk.disaster_presence and risk.recency == "recent"):
        return "high"
    if risk.flood_zone_risk == "moderate" or has_flood_risk(risk) or (
        risk.disaster_presence and risk.recency == "historical"
    ):
        return "medium"
    return "low"


def _titles(flags: Sequence[RedFlag]) -> str:
    return ", ".join(f.title for f in flags)


# ── Explanation ─────────────────────────────────────────────────────

def _explain(
    verdict: VerdictType,
    capped: bool,
    structural: list[RedFlag],
    market: list[RedFlag],
    seller: list[RedFlag],
    factors: ContributingFactors,
    premium_downgrade: list[str],
) -> str:
    strong = [f for f in structural if f.severity == "critical" or (f.severity == "high" and f.id in _STRONG_HIGH_IDS)]
    meaningful = _meaningful(structural) + _meaningful(market) + _meaningful(seller)
    maintenance = factors.maintenance_risk
    position = factors.market_position

    if verdict == "deal":
        if meaningful:
            text = (
                f"Minor risk signals detected ({_titles(meaningful)}), but overall this listing scores well. "
                "Standard due diligence recommended."
            )
        else:
            text = (
                "No meaningful risk signals detected. This appears to be a reasonable deal with standard due "
                "diligence recommended."
            )
        if maintenance == "medium":
            text += " Note: Maintenance risk assessment indicates moderate forward-looking maintenance concerns."
        if position == "favorable":
            text += " Market pricing analysis suggests favorable negotiation position."
        return text

    if verdict == "disaster":
        extra: list[str] = []
        if _meaningful(market):
            extra.append("market risk signals")
        if _meaningful(seller):
            extra.append("seller behavior concerns")
        if maintenance == "elevated":
            extra.append("elevated maintenance risk")
        if position == "unfavorable":
            extra.append("unfavorable market pricing")
        serious = strong or [f for f in meaningful if f.severity in ("high", "critical")]
        if extra:
            return (
                f"Strong structural risk ({_titles(serious)}) combined with {', '.join(extra)}. "
                "This combination indicates significant concerns."
            )
        return f"Serious risk signals detected ({_titles(serious)}). This listing should be avoided."

    if capped:
        return (
            "Environmental exposure and pricing anomalies detected, but these are probabilistic signals and not "
            "proof of damage or seller intent. Inspect carefully and verify vehicle condition."
        )
    if premium_downgrade and not meaningful:
        reasons = " and ".join(premium_downgrade)
        return f"No red flag signals detected, but {reasons}. Factor this into your decision."
    if len(structural) == 1 and structural[0].id == "environmental-risk" and not _meaningful(market + seller):
        text = (
            "Environmental exposure detected, but this is a probabilistic signal and not proof of damage. "
            "Inspect carefully for water damage or corrosion."
        )
        if maintenance == "elevated":
            text += " Combined with elevated maintenance risk, this suggests increased inspection priority."
        return text
    if any(f.id in _PRICING_RISK_IDS for f in market) and not strong:
        return (
            "Unusually low pricing detected without structural risk confirmation. This pricing anomaly warrants "
            "extra scrutiny but does not imply a defect. Inspect carefully and verify vehicle condition."
        )
    if strong:
        return (
            f"Strong structural risk detected ({_titles(strong)}). Proceed with extreme caution and thorough "
            "inspection."
        )
    if len(meaningful) >= 2:
        categories = []
        if _meaningful(structural):
            categories.append("structural")
        if _meaningful(market):
            categories.append("market")
        if _meaningful(seller):
            categories.append("seller behavior")
        if maintenance == "elevated":
            categories.append("maintenance")
        if position == "unfavorable":
            categories.append("pricing")
        return (
            f"Multiple risk signals detected across {', '.join(categories)} categories. While no single signal "
            "is critical, the combination warrants careful investigation."
        )
    if len(meaningful) == 1:
        return f"One moderate risk signal detected: {meaningful[0].title}. Investigate this concern before proceeding."
    return "Risk signals detected that warrant investigation. Review all concerns carefully before making a decision."


# ── Assembly ────────────────────────────────────────────────────────

def assemble_verdict(
    red_flags: Sequence[RedFlag],
    data_quality: DataQualityAssessment | None,
    price_diff_percent: float,
    premium: PremiumSignals | None = None,
    environmental_risk: EnvironmentalRisk | None = None,
    config: ScoringConfig | None = None,
) -> VerdictReasoning:
    cfg = config or ScoringConfig()
    score = score_flags(red_flags, price_diff_percent, cfg)
    verdict = verdict_for_score(score, cfg)

    capped = verdict == "disaster" and only_probabilistic(red_flags, cfg)
    if capped:
        verdict = "caution"

    factors = ContributingFactors(
        maintenance_risk=premium.maintenance.overall_risk if premium and premium.maintenance else None,
        market_position=market_position(premium.market_pricing) if premium else None,
        environmental_risk=environmental_level(environmental_risk),
    )

    # premium signals can only pull a deal down to caution
    premium_downgrade: list[str] = []
    if factors.maintenance_risk == "elevated":
        premium_downgrade.append("maintenance risk assessment indicates elevated forward-looking maintenance concerns")
    if factors.market_position == "unfavorable":
        premium_downgrade.append("the asking price is positioned unfavorably against comparable listings")
    if verdict == "deal" and premium_downgrade:
        verdict = "caution"

    quality_impact: DataQualityImpact = "none"
    if data_quality is not None and data_quality.overall_confidence != "high":
        quality_impact = "softening"
        if data_quality.overall_confidence == "low" and verdict == "deal" and cfg.low_quality_blocks_deal:
            verdict = "caution"
            quality_impact = "preventing-deal"

    structural, market, seller = categorize_flags(red_flags)
    explanation = _explain(verdict, capped, structural, market, seller, factors, premium_downgrade)
    if quality_impact == "preventing-deal":
        explanation = (
            "No significant risk signals outweigh the price, but limited data quality prevents a confident "
            "Deal assessment. Proceed with standard due diligence."
        )

    confidence = verdict_confidence(red_flags, data_quality, cfg)
    logger.debug("Verdict %s score=%s confidence=%s capped=%s", verdict, score, confidence, capped)
    return VerdictReasoning(
        verdict=verdict,
        confidence=confidence,
        score=score,
        explanation=explanation,
        structural_risks=tuple(f.id for f in structural),
        market_risks=tuple(f.id for f in market),
        seller_behavior_risks=tuple(f.id for f in seller),
        data_quality_impact=quality_impact,
        contributing_factors=factors,
    )
