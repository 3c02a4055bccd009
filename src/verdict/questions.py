from __future__ import annotations

from typing import Iterable

from verdict.data_models import RedFlag

TITLE_QUESTION = "Can I see the title? Is it clean, or does it have any brands (salvage, rebuilt, lemon)?"
WHY_SELLING = "Why are you selling the vehicle?"
ACCIDENT_QUESTION = "Has this vehicle ever been in an accident or had any insurance claims?"
UNDERPRICED_QUESTION = (
    "This price seems lower than market value. Is there anything wrong with the vehicle I should know about?"
)
FLOOD_QUESTION = "Has this vehicle ever been exposed to flooding or water damage?"


def _price_question(price_difference: float) -> str:
    return f"I've seen similar vehicles listed for ${abs(price_difference):,.0f} less. What justifies your price?"


def free_questions(flags: Iterable[RedFlag], price_difference: float) -> tuple[str, ...]:
    """The title question plus the single most pressing follow-up."""
    ids = {f.id for f in flags}
    if ids & {"title-brands", "theft-record"}:
        follow_up = ACCIDENT_QUESTION
    elif "overpriced" in ids or price_difference > 0:
        follow_up = _price_question(price_difference)
    elif "underpriced" in ids:
        follow_up = UNDERPRICED_QUESTION
    elif "environmental-risk" in ids:
        follow_up = FLOOD_QUESTION
    else:
        follow_up = WHY_SELLING
    return (TITLE_QUESTION, follow_up)


def paid_questions(flags: Iterable[RedFlag], price_difference: float) -> tuple[str, ...]:
    ids = {f.id for f in flags}
    questions = [TITLE_QUESTION, WHY_SELLING]

    if "overpriced" in ids or price_difference > 0:
        questions.append(_price_question(price_difference))
    if "underpriced" in ids:
        questions.append(UNDERPRICED_QUESTION)
    if "high-mileage" in ids:
        questions.append("Has the timing belt/chain been replaced? When was the last major service?")
    if "suspicious-low-mileage" in ids:
        questions.append("Why does this vehicle have such low mileage? Has it been in storage?")
    if "high-age" in ids:
        questions.append("Do you have maintenance records? Has the vehicle had any major repairs?")
    if "relisting-detected" in ids:
        questions.append(
            "Has anyone else looked at or made offers on this vehicle? If so, why didn't those sales go through?"
        )
    if "environmental-risk" in ids or "disaster-risk" in ids:
        questions.append(FLOOD_QUESTION)
    if "no-vin" in ids:
        questions.append(ACCIDENT_QUESTION)

    questions.append("Are there any current mechanical issues or warning lights on the dashboard?")
    questions.append("Can I have the vehicle inspected by my mechanic before purchasing?")
    return tuple(questions)
