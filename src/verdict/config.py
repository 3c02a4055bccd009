from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict


@dataclass(frozen=True)
class PricingRiskThresholds:
    low_price_threshold: float = -15.0
    high_confidence_threshold: float = -25.0
    base_confidence: int = 50
    high_confidence: int = 85
    median_bonus: int = 10
    max_confidence: int = 95
    days_by_class: Dict[str, int] = field(
        default_factory=lambda: {
            "common": 21,
            "luxury": 30,
            "exotic": 45,
        }
    )


@dataclass(frozen=True)
class ScoringConfig:
    base_score: int = 100
    severity_penalties: Dict[str, int] = field(
        default_factory=lambda: {
            "critical": 40,
            "high": 20,
            "medium": 8,
            "low": 0,
        }
    )
    deal_floor: int = 70
    caution_floor: int = 45
    base_confidence: int = 75
    min_confidence: int = 40
    max_confidence: int = 95
    missing_vin_penalty: int = 20
    unresolved_title_penalty: int = 10
    environmental_penalty: int = 5
    pricing_risk_penalty: int = 3
    # flag ids that on their own may never produce a disaster verdict
    probabilistic_flags: tuple[str, ...] = (
        "environmental-risk",
        "unusually-low-price",
        "too-good-for-too-long",
    )
    informational_flags: tuple[str, ...] = ("private-sale",)
    low_quality_blocks_deal: bool = False


@dataclass(frozen=True)
class VehicleAgeConfig:
    expected_miles_per_year: int = 12_000
    high_age_years: int = 10
    high_mileage_ratio: float = 1.5
    very_high_mileage_ratio: float = 2.0
    low_mileage_ratio: float = 0.4
    low_mileage_min_age: int = 3
    exotic_value_floor: float = 100_000.0


LUXURY_MAKES: tuple[str, ...] = (
    "BMW",
    "Mercedes-Benz",
    "Audi",
    "Lexus",
    "Porsche",
    "Tesla",
    "Jaguar",
    "Land Rover",
    "Bentley",
    "Rolls-Royce",
    "Maserati",
    "Ferrari",
    "Lamborghini",
)

SEVERITY_RANK: Dict[str, int] = {"critical": 0, "high": 1, "medium": 2, "low": 3}
