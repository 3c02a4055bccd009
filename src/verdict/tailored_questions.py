from __future__ import annotations

from datetime import date

from verdict.data_models import TailoredQuestion, TailoredQuestions, VerdictResult
from verdict.questions import TITLE_QUESTION

_PRIORITIES = ("critical", "high", "medium", "low")
_SUMMARY_CATEGORIES = ("title-history", "pricing", "maintenance", "environmental", "seller")
_TITLE_ISSUE_IDS = ("title-brands", "theft-record")


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


def _title_questions(result: VerdictResult, ids: set[str]) -> list[TailoredQuestion]:
    out = []
    if ids.intersection(_TITLE_ISSUE_IDS):
        out.append(TailoredQuestion(
            "Can I see the title? What specific brands does it have, and when were they applied?",
            "title-history", "critical",
            "The report indicates title issues that could significantly impact vehicle value and insurability.",
        ))
    else:
        out.append(TailoredQuestion(
            TITLE_QUESTION, "title-history", "high", "Verifying title status is essential before purchase.",
        ))

    detailed = result.history.detailed if result.history is not None else None
    if "accident-history" in ids or (detailed is not None and detailed.accident_indicators):
        out.append(TailoredQuestion(
            "Has this vehicle been in any accidents? Can you provide details about what happened and what "
            "repairs were made?",
            "title-history", "critical",
            "The vehicle history suggests accident indicators that may affect structural integrity and value.",
        ))
    if detailed is not None and detailed.ownership_changes and detailed.ownership_changes > 2:
        owners = detailed.ownership_changes
        out.append(TailoredQuestion(
            f"This vehicle has had {owners} previous owners. Why has this vehicle changed hands so frequently?",
            "title-history", "high",
            "Multiple ownership changes may indicate underlying issues or maintenance concerns.",
        ))
    return out


def _pricing_questions(result: VerdictResult, ids: set[str]) -> list[TailoredQuestion]:
    out = []
    pct = result.vehicle_info.price_difference_percent
    if pct > 10:
        out.append(TailoredQuestion(
            f"I've researched similar vehicles and found comparable listings priced {abs(pct)}% lower than "
            "your asking price. What factors justify this price difference?",
            "pricing", "high",
            f"Market analysis shows the asking price is {abs(pct)}% above typical market value for similar "
            "vehicles.",
        ))
    if "underpriced" in ids:
        out.append(TailoredQuestion(
            "This price seems significantly lower than market value. Is there anything wrong with the vehicle "
            "I should know about? Any mechanical issues, damage, or other concerns?",
            "pricing", "critical",
            "Unusually low pricing may indicate hidden problems or urgent seller motivation.",
        ))
    analysis = result.market_pricing_analysis
    if analysis is not None and analysis.negotiation_leverage == "strong":
        direction = "lower" if analysis.position == "above" else "higher"
        out.append(TailoredQuestion(
            f"Based on market data, similar vehicles are priced {abs(analysis.median_difference_percent):.0f}% "
            f"{direction}. Are you open to negotiation?",
            "pricing", "high",
            "Market pricing analysis indicates strong negotiation leverage.",
        ))
    return out


def _maintenance_questions(result: VerdictResult, ids: set[str]) -> list[TailoredQuestion]:
    out = []
    assessment = result.maintenance_risk_assessment
    mileage = result.vehicle_info.mileage
    if assessment is not None:
        if assessment.overall_risk == "elevated":
            out.append(TailoredQuestion(
                "This vehicle is at an age/mileage where major maintenance items are typically due. What major "
                "maintenance has been performed recently (timing belt/chain, transmission service, suspension "
                "work)?",
                "maintenance", "high", assessment.summary,
            ))
        urgent = [item for item in assessment.inspection_focus if item.priority == "high"]
        if urgent:
            out.append(TailoredQuestion(
                f"Can you provide service records for {urgent[0].area}?",
                "maintenance", "high", urgent[0].reason,
            ))
        if mileage and mileage >= 100_000:
            out.append(TailoredQuestion(
                "Has the timing belt/chain been replaced? This is a critical maintenance item that can cause "
                "catastrophic engine failure if it breaks.",
                "maintenance", "critical",
                "Vehicles over 100,000 miles typically require timing belt/chain replacement.",
            ))
    if "high-mileage" in ids:
        out.append(TailoredQuestion(
            "Given the high mileage, what major components have been replaced or rebuilt? (engine, "
            "transmission, suspension, etc.)",
            "maintenance", "high", "High-mileage vehicles often require major component replacement.",
        ))
    if "high-age" in ids:
        out.append(TailoredQuestion(
            "Do you have complete maintenance records? For a vehicle of this age, maintenance history is crucial.",
            "maintenance", "high", "Older vehicles require careful maintenance to remain reliable.",
        ))
    return out


def _condition_questions(result: VerdictResult) -> list[TailoredQuestion]:
    out = [TailoredQuestion(
        "Are there any current mechanical issues, warning lights on the dashboard, or unusual sounds or "
        "behaviors?",
        "condition", "high", "Understanding current condition helps assess immediate repair needs.",
    )]
    if result.recalls:
        recalls = _plural(len(result.recalls), "open recall")
        out.append(TailoredQuestion(
            f"This vehicle has {recalls}. Have these been addressed? Can you provide documentation?",
            "condition", "high",
            "Open recalls represent safety issues that should be resolved before purchase.",
        ))
    out.append(TailoredQuestion(
        "Can I have the vehicle inspected by my own mechanic before purchasing?",
        "condition", "critical", "Professional inspection is essential to identify hidden issues.",
    ))
    return out


def _environmental_questions(result: VerdictResult) -> list[TailoredQuestion]:
    out = []
    risk = result.environmental_risk
    if risk is None:
        return out
    if risk.disaster_presence and risk.recent_disasters:
        types = ", ".join(dict.fromkeys(d.disaster_type for d in risk.recent_disasters))
        out.append(TailoredQuestion(
            f"This area has experienced {types} in recent years. Has this vehicle been exposed to flooding, "
            "water damage, or other weather-related issues?",
            "environmental", "high",
            f"Recent disaster history in the area ({types}) increases risk of weather-related damage.",
        ))
    if risk.flood_zone_risk in ("high", "moderate"):
        out.append(TailoredQuestion(
            "Has this vehicle ever been exposed to flooding or water damage? Have you noticed any water stains, "
            "musty odors, or electrical issues?",
            "environmental", "critical",
            f"The vehicle is in a {risk.flood_zone_risk} flood risk zone.",
        ))
    return out


def _seller_questions(result: VerdictResult) -> list[TailoredQuestion]:
    out = []
    signals = result.seller_signals
    if signals is not None and signals.pricing.unusually_low_price is not None:
        out.append(TailoredQuestion(
            "Why is this vehicle priced so far below market value? Are you motivated to sell quickly?",
            "seller", "high", "Unusually low pricing may indicate seller motivation or hidden issues.",
        ))
    longevity = signals.listing.longevity if signals is not None else None
    if longevity is not None and longevity.days_listed > 60:
        out.append(TailoredQuestion(
            f"This listing has been active for {longevity.days_listed} days. Has anyone else looked at or made "
            "offers on this vehicle? If so, why didn't those sales go through?",
            "seller", "medium",
            "Extended listing duration may indicate issues that prevented previous sales.",
        ))
    out.append(TailoredQuestion(
        "Why are you selling this vehicle?",
        "seller", "medium", "Understanding seller motivation can provide negotiation context.",
    ))
    return out


def _general_questions(result: VerdictResult, as_of: date) -> list[TailoredQuestion]:
    out = []
    info = result.vehicle_info
    if info.mileage and info.mileage < 50_000 and info.year and as_of.year - info.year > 5:
        out.append(TailoredQuestion(
            "Why does this vehicle have such low mileage for its age? Has it been in storage or used very "
            "infrequently?",
            "general", "medium",
            "Low mileage on an older vehicle may indicate storage or infrequent use, which can have its own issues.",
        ))
    if result.data_quality.overall_confidence == "low":
        out.append(TailoredQuestion(
            "I notice there's limited vehicle history data available. Can you provide additional documentation "
            "(service records, previous inspection reports, etc.)?",
            "general", "medium", "Limited data quality makes additional documentation especially important.",
        ))
    return out


def _summary(questions: list[TailoredQuestion]) -> str:
    critical = sum(1 for q in questions if q.priority == "critical")
    high = sum(1 for q in questions if q.priority == "high")
    parts = [
        f"Based on this vehicle's analysis, {len(questions)} tailored questions have been generated to help "
        "you gather critical information before purchase."
    ]
    if critical:
        parts.append(f"{_plural(critical, 'critical question')} cover title issues, accidents, or major concerns.")
    if high:
        parts.append(
            f"{_plural(high, 'high-priority question')} focus on pricing, maintenance, and condition verification."
        )
    counts = []
    for category in _SUMMARY_CATEGORIES:
        n = sum(1 for q in questions if q.category == category)
        if n:
            counts.append(f"{category.replace('-', ' ')} ({n})")
    if counts:
        parts.append(f"Questions are organized across {', '.join(counts)}.")
    parts.append(
        "These questions are specifically tailored to the findings in this report and should help you make an "
        "informed purchasing decision."
    )
    return " ".join(parts)


def generate_tailored_questions(result: VerdictResult, as_of: date) -> TailoredQuestions:
    """Seller questions driven by every finding in a complete paid-tier report."""
    ids = {f.id for f in result.red_flags}
    questions = (
        _title_questions(result, ids)
        + _pricing_questions(result, ids)
        + _maintenance_questions(result, ids)
        + _condition_questions(result)
        + _environmental_questions(result)
        + _seller_questions(result)
        + _general_questions(result, as_of)
    )
    ordered = sorted(questions, key=lambda q: _PRIORITIES.index(q.priority))
    categories = tuple(dict.fromkeys(q.category for q in ordered))
    return TailoredQuestions(questions=tuple(ordered), categories=categories, summary=_summary(ordered))
