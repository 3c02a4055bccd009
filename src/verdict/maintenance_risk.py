from __future__ import annotations

import logging
from datetime import date
from typing import Literal

from verdict.data_models import InspectionItem, MaintenanceRiskAssessment, MaintenanceRiskFactor

logger = logging.getLogger(__name__)

MaintenanceClass = Literal["economy", "mid-range", "luxury", "sports", "truck", "unknown"]

_PRIORITY_ORDER = {"high": 0, "medium": 1, "low": 2}

_LUXURY_BRANDS = (
    "mercedes-benz", "mercedes", "bmw", "audi", "lexus", "acura", "infiniti", "cadillac",
    "lincoln", "porsche", "jaguar", "land rover", "tesla", "genesis",
)
_SPORTS_KEYWORDS = (
    "corvette", "mustang", "camaro", "challenger", "charger", "gtr", "gt", "m3", "m4", "amg", "srt", "type r",
)
_TRUCK_KEYWORDS = (
    "f-150", "f-250", "f-350", "silverado", "sierra", "ram", "tundra", "titan", "tacoma", "ranger",
    "colorado", "canyon",
)
_ECONOMY_BRANDS = ("kia", "hyundai", "nissan", "mitsubishi", "suzuki")

_STANDARD_CHECKLIST = (
    "Review maintenance records for completeness and consistency",
    "Have a pre-purchase inspection performed by an independent mechanic",
    "Test drive the vehicle in various conditions (city, highway, parking)",
    "Check for any warning lights on the dashboard",
    "Verify tire condition and age (check DOT date codes)",
)

_SUMMARIES = {
    "elevated": (
        "This vehicle is entering a phase where maintenance needs and costs typically increase. Several "
        "components may be approaching replacement age, and proactive inspection is recommended."
    ),
    "medium": (
        "This vehicle is at a stage where some maintenance items may be due. Regular inspection and "
        "preventive maintenance can help avoid larger issues."
    ),
    "low": (
        "This vehicle appears to be in a relatively low-maintenance phase of its lifecycle. Standard "
        "preventive maintenance should be sufficient."
    ),
}


def _words(text: str) -> set[str]:
    return set(text.replace("/", " ").split())


def estimate_maintenance_class(make: str | None, model: str | None = None) -> MaintenanceClass:
    """Rough service-cost class from make and model names."""
    if not make:
        return "unknown"
    make_l = make.lower()
    model_l = (model or "").lower()
    if any(brand in make_l for brand in _LUXURY_BRANDS):
        return "luxury"
    model_words = _words(model_l)
    if any(k in model_words or (" " in k and k in model_l) for k in _SPORTS_KEYWORDS):
        return "sports"
    if any(k in model_words for k in _TRUCK_KEYWORDS):
        return "truck"
    if any(brand in make_l for brand in _ECONOMY_BRANDS):
        return "economy"
    return "mid-range"


def _age_factors(age: int, factors: list[MaintenanceRiskFactor], focus: list[InspectionItem]) -> None:
    if age >= 15:
        factors.append(MaintenanceRiskFactor(
            "age", "high",
            "Vehicles over 15 years old typically require more frequent maintenance as components reach "
            "end-of-life. Rubber seals, hoses, and electrical systems are particularly vulnerable.",
        ))
        focus.append(InspectionItem(
            "Rubber Components & Seals",
            "Age-related deterioration: check for dry rot, cracks, or leaks in hoses, belts and door seals",
            "high",
        ))
        focus.append(InspectionItem(
            "Electrical System",
            "Wiring and connectors degrade with age: test lights, power windows, locks and charging system",
            "high",
        ))
    elif age >= 10:
        factors.append(MaintenanceRiskFactor(
            "age", "medium",
            "Vehicles in the 10-15 year range often need replacement of original wear components like "
            "suspension, brakes, and drivetrain parts.",
        ))


def _mileage_factors(
    mileage: int,
    factors: list[MaintenanceRiskFactor],
    focus: list[InspectionItem],
    checklist: list[str],
) -> None:
    if mileage >= 150_000:
        factors.append(MaintenanceRiskFactor(
            "mileage", "high",
            "Vehicles with 150,000+ miles are approaching or past typical service life for transmissions, "
            "timing chains/belts, and engine internals.",
        ))
        focus.append(InspectionItem(
            "Transmission", "High mileage increases failure risk: check for slipping or rough shifting", "high",
        ))
        focus.append(InspectionItem(
            "Engine Compression & Timing",
            "Wear on internal components: consider a compression test and listen for unusual noises",
            "high",
        ))
        checklist.append("Verify transmission service history and test drive thoroughly")
        checklist.append("Ask about timing belt/chain replacement (critical maintenance item)")
    elif mileage >= 100_000:
        factors.append(MaintenanceRiskFactor(
            "mileage", "medium",
            "Vehicles with 100,000+ miles typically require major scheduled maintenance including timing "
            "belt/chain, water pump, and suspension component replacement.",
        ))
        focus.append(InspectionItem(
            "Timing Belt/Chain",
            "Critical maintenance milestone: failure can cause catastrophic engine damage",
            "high",
        ))
        focus.append(InspectionItem(
            "Suspension & Steering",
            "Wear components at replacement age: check shocks, ball joints and tie rods",
            "medium",
        ))
        checklist.append("Confirm timing belt/chain replacement has been performed")
        checklist.append("Inspect suspension for wear and test ride quality")
    elif mileage >= 60_000:
        factors.append(MaintenanceRiskFactor(
            "mileage", "low",
            "Vehicles in the 60,000-100,000 mile range typically need routine maintenance and may require "
            "first-time replacement of original components.",
        ))
        focus.append(InspectionItem(
            "Brake System", "Typical replacement interval: check pad thickness and rotor condition", "medium",
        ))


def _usage_factors(annual: int | None, factors: list[MaintenanceRiskFactor], focus: list[InspectionItem]) -> None:
    if not annual:
        return
    if annual >= 20_000:
        factors.append(MaintenanceRiskFactor(
            "usage", "medium",
            f"Average annual mileage of {annual:,} miles indicates heavy use, which accelerates wear on "
            "engine, transmission, and suspension.",
        ))
        focus.append(InspectionItem(
            "Engine & Transmission", "Heavy use accelerates wear", "high",
        ))
    elif annual <= 8_000:
        factors.append(MaintenanceRiskFactor(
            "usage", "low",
            f"Average annual mileage of {annual:,} miles suggests light use, which may reduce wear but can "
            "also indicate short-trip driving that is hard on engines.",
        ))
        focus.append(InspectionItem(
            "Battery & Charging System", "Short trips can strain the electrical system", "medium",
        ))


def assess_maintenance_risk(
    year: int | None,
    mileage: int | None,
    ownership_changes: int | None,
    vehicle_class: MaintenanceClass | None,
    as_of: date,
) -> MaintenanceRiskAssessment | None:
    current_year = as_of.year
    if not year or year < 1980 or year > current_year + 1:
        logger.warning("Maintenance risk skipped, invalid model year: %s", year)
        return None

    age = max(0, current_year - year)
    has_mileage = mileage is not None and mileage > 0
    annual = int(round(mileage / age)) if has_mileage and age > 0 else None

    factors: list[MaintenanceRiskFactor] = []
    focus: list[InspectionItem] = []
    checklist: list[str] = []

    _age_factors(age, factors, focus)
    if has_mileage:
        _mileage_factors(mileage, factors, focus, checklist)
        _usage_factors(annual, factors, focus)

    owners = ownership_changes or 0
    if owners >= 4:
        factors.append(MaintenanceRiskFactor(
            "ownership", "medium",
            f"Vehicle has had {owners} or more owners, which may indicate maintenance inconsistency or "
            "underlying issues that prompted frequent sales.",
        ))
        checklist.append("Request complete maintenance records from all owners if possible")
        checklist.append("Be extra thorough in inspection due to potential maintenance gaps")
    elif owners >= 2 and age >= 10:
        factors.append(MaintenanceRiskFactor(
            "ownership", "low",
            "Multiple owners on an older vehicle is common, but verify maintenance continuity between owners.",
        ))

    if vehicle_class in ("luxury", "sports"):
        factors.append(MaintenanceRiskFactor(
            "vehicle-class", "medium",
            "Luxury and sports vehicles typically have higher maintenance costs and may require specialized "
            "service.",
        ))
        checklist.append("Budget for higher maintenance costs typical of premium vehicles")
        checklist.append("Verify access to qualified service facilities familiar with this make/model")
    elif vehicle_class == "truck" and has_mileage and mileage >= 100_000:
        focus.append(InspectionItem(
            "4WD/Transfer Case", "High-mileage trucks often have 4WD system wear", "medium",
        ))

    if age >= 5 or (has_mileage and mileage >= 50_000):
        focus.append(InspectionItem(
            "Cooling System", "Age and mileage increase failure risk: check coolant and hoses", "medium",
        ))
        focus.append(InspectionItem(
            "Fluid Levels & Quality", "Fluid condition is an indicator of maintenance history", "medium",
        ))

    checklist.extend(_STANDARD_CHECKLIST)

    high = sum(1 for f in factors if f.level == "high")
    medium = sum(1 for f in factors if f.level == "medium")
    if high >= 2 or (high >= 1 and medium >= 2) or age >= 15:
        overall = "elevated"
    elif high >= 1 or medium >= 2 or age >= 10 or (has_mileage and mileage >= 100_000):
        overall = "medium"
    else:
        overall = "low"

    return MaintenanceRiskAssessment(
        overall_risk=overall,
        risk_factors=tuple(factors),
        inspection_focus=tuple(sorted(focus, key=lambda item: _PRIORITY_ORDER[item.priority])),
        checklist=tuple(dict.fromkeys(checklist)),
        vehicle_age=age,
        annual_mileage=annual,
        summary=_SUMMARIES[overall],
    )
