from __future__ import annotations

import dataclasses

from verdict.data_models import RedFlag, Tier, VerdictResult
from verdict.questions import free_questions

FULL_HISTORY_KNOWN = "Full vehicle history report"
COMPETITIVE_PRICING_KNOWN = "Competitive pricing and sales statistics"
SERVICE_RECORDS_UNKNOWN = "Some service records may be incomplete"
INSPECTION_UNKNOWN = "Physical inspection results"

PREMIUM_KNOWN = frozenset({FULL_HISTORY_KNOWN, COMPETITIVE_PRICING_KNOWN})
FREE_UNKNOWN = ("Detailed accident history", "Complete service records", "Seller credibility analysis")


def redact_flag(flag: RedFlag) -> RedFlag:
    if flag.expanded_details is None and flag.methodology is None and flag.data_source is None:
        return flag
    return dataclasses.replace(flag, expanded_details=None, methodology=None, data_source=None)


def _free_unknown(unknown: tuple[str, ...]) -> tuple[str, ...]:
    kept = [u for u in unknown if u != SERVICE_RECORDS_UNKNOWN and u not in FREE_UNKNOWN]
    at = kept.index(INSPECTION_UNKNOWN) if INSPECTION_UNKNOWN in kept else len(kept)
    return tuple(kept[:at]) + FREE_UNKNOWN + tuple(kept[at:])


def project(result: VerdictResult, tier: Tier) -> VerdictResult:
    """Return the view of a complete result that the given tier is entitled to.

    The paid view is the result itself. The free view keeps the verdict, the
    flags and the recalls but drops flag detail, premium sub-objects and all
    but two seller questions.
    """
    if tier == "paid":
        return result

    history = result.history
    if history is not None and history.detailed is not None:
        history = dataclasses.replace(history, detailed=None)

    return dataclasses.replace(
        result,
        tier="free",
        red_flags=tuple(redact_flag(f) for f in result.red_flags),
        questions_to_ask=free_questions(result.red_flags, result.vehicle_info.price_difference),
        known_data=tuple(k for k in result.known_data if k not in PREMIUM_KNOWN),
        unknown_data=_free_unknown(result.unknown_data),
        history=history,
        market_pricing_analysis=None,
        maintenance_risk_assessment=None,
        seller_analysis=None,
        tailored_questions=None,
        carfax_summary=None,
        comparable_listings=(),
    )
