from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Literal


Tier = Literal["free", "paid"]
VerdictType = Literal["deal", "caution", "disaster"]
Severity = Literal["low", "medium", "high", "critical"]
FlagCategory = Literal["pricing", "history", "title", "data-gap", "listing", "ownership", "disaster", "seller"]
FactorStatus = Literal["complete", "partial", "unavailable", "missing"]
Impact = Literal["high", "medium", "low"]
ConfidenceLevel = Literal["high", "medium", "low"]
VehicleClass = Literal["common", "luxury", "exotic"]
RiskLevel = Literal["low", "medium", "high"]
Recency = Literal["recent", "historical", "none"]
FloodZoneRisk = Literal["high", "moderate", "low", "unknown"]
DataQualityImpact = Literal["none", "softening", "preventing-deal"]
MarketPosition = Literal["favorable", "neutral", "unfavorable"]

FLAG_CATEGORIES: frozenset[str] = frozenset(
    {"pricing", "history", "title", "data-gap", "listing", "ownership", "disaster", "seller"}
)

FLAG_IDS: frozenset[str] = frozenset(
    {
        "overpriced",
        "underpriced",
        "unusually-low-price",
        "too-good-for-too-long",
        "title-brands",
        "theft-record",
        "accident-history",
        "odometer-rollback",
        "environmental-risk",
        "disaster-risk",
        "relisting-detected",
        "stale-listing",
        "price-volatility",
        "too-good-too-long",
        "hidden-dealer",
        "no-vin",
        "high-age",
        "high-mileage",
        "suspicious-low-mileage",
        "private-sale",
        "open-recalls",
    }
)


# ── Request / Vehicle ───────────────────────────────────────────────

@dataclass(frozen=True)
class AnalysisRequest:
    asking_price: float
    vin: str | None = None
    year: int | None = None
    make: str | None = None
    model: str | None = None
    trim: str | None = None
    mileage: int | None = None
    location: str | None = None
    tier: Tier = "free"

    def __post_init__(self) -> None:
        if self.asking_price <= 0:
            raise ValueError("asking_price must be positive")


@dataclass(frozen=True)
class DecodedVin:
    vin: str
    model_year: int = 0
    make: str = ""
    model: str = ""
    trim: str = ""
    engine: str = ""
    decode_source: str = "fallback"


@dataclass(frozen=True)
class VehicleInfo:
    year: int | None
    make: str | None
    model: str | None
    asking_price: float
    estimated_value: float
    price_difference: float
    price_difference_percent: int
    vin: str | None = None
    trim: str | None = None
    mileage: int | None = None


@dataclass(frozen=True)
class RedFlag:
    id: str
    title: str
    description: str
    severity: Severity
    category: FlagCategory
    expanded_details: str | None = None
    methodology: str | None = None
    data_source: str | None = None

    def __post_init__(self) -> None:
        if self.id not in FLAG_IDS:
            raise ValueError(f"unknown red flag id: {self.id}")
        if self.category not in FLAG_CATEGORIES:
            raise ValueError(f"unknown red flag category: {self.category}")


# ── Vehicle history ─────────────────────────────────────────────────

@dataclass(frozen=True)
class OdometerReading:
    reading: int
    date: date


@dataclass(frozen=True)
class DetailedHistory:
    """Full history report, only fetched for the paid tier."""

    accident_indicators: bool = False
    service_history: tuple[str, ...] = ()
    ownership_changes: int | None = None
    mileage_snapshots: tuple[OdometerReading, ...] = ()


@dataclass(frozen=True)
class VehicleHistory:
    title_brands: tuple[str, ...] = ()
    salvage_record: bool = False
    theft_records: bool = False
    state_title: str | None = None
    odometer: tuple[OdometerReading, ...] = ()
    year: int | None = None
    make: str | None = None
    model: str | None = None
    detailed: DetailedHistory | None = None


# ── Market data ─────────────────────────────────────────────────────

@dataclass(frozen=True)
class RawListing:
    price: float
    mileage: int | None = None
    city: str | None = None
    state: str | None = None
    dealer_name: str | None = None
    seller_type: Literal["dealer", "private-party"] | None = None
    days_on_market: int | None = None
    source: str | None = None


@dataclass(frozen=True)
class SalesStats:
    sales_count: int
    average_price: float | None = None
    median_price: float | None = None
    price_min: float | None = None
    price_max: float | None = None


@dataclass(frozen=True)
class MarketData:
    listing_average: float | None = None
    listing_price_min: float | None = None
    listing_price_max: float | None = None
    raw_listings: tuple[RawListing, ...] = ()
    competitive_price: float | None = None
    sales_stats: SalesStats | None = None

    @property
    def source_count(self) -> int:
        count = 1 if self.listing_average or self.raw_listings else 0
        if self.competitive_price or self.sales_stats is not None:
            count += 1
        return count


# ── Disaster / environment ──────────────────────────────────────────

@dataclass(frozen=True)
class DisasterDeclaration:
    disaster_type: str
    declaration_date: date
    designated_area: str | None = None


@dataclass(frozen=True)
class StormEvent:
    event_type: str
    event_date: date
    location: str | None = None


@dataclass(frozen=True)
class Wildfire:
    name: str
    start_date: date
    acres: float | None = None


@dataclass(frozen=True)
class DisasterData:
    declarations: tuple[DisasterDeclaration, ...] = ()
    storm_events: tuple[StormEvent, ...] = ()
    wildfires: tuple[Wildfire, ...] = ()
    flood_zone_risk: FloodZoneRisk = "unknown"
    state: str | None = None
    county: str | None = None


@dataclass(frozen=True)
class DisasterEvent:
    disaster_type: str
    declaration_date: date
    days_ago: int


@dataclass(frozen=True)
class EnvironmentalRisk:
    disaster_presence: bool
    disaster_types: tuple[str, ...]
    recency: Recency
    flood_zone_risk: FloodZoneRisk
    confidence: int
    affected_counties: tuple[str, ...] = ()
    recent_disasters: tuple[DisasterEvent, ...] = ()
    historical_disasters: tuple[DisasterEvent, ...] = ()


@dataclass(frozen=True)
class DisasterRisk:
    risk_level: RiskLevel
    risk_score: int
    factors: tuple[str, ...] = ()


# ── Recalls ─────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Recall:
    campaign_number: str
    component: str
    summary: str
    consequence: str = ""
    remedy: str = ""
    report_received_date: date | None = None


# ── Seller signals ──────────────────────────────────────────────────

@dataclass(frozen=True)
class RelistingDetection:
    detected: bool
    times_seen: int = 0


@dataclass(frozen=True)
class ListingLongevity:
    days_listed: int
    is_stale: bool = False
    selling_without_correction: bool = False


@dataclass(frozen=True)
class ListingBehavior:
    relisting: RelistingDetection | None = None
    longevity: ListingLongevity | None = None


@dataclass(frozen=True)
class PricePoint:
    price: float
    observed_on: date


@dataclass(frozen=True)
class PriceVolatility:
    detected: bool
    level: RiskLevel
    price_changes: int
    significant_drops: int
    oscillations: int
    time_window_days: int
    price_increases: int = 0


@dataclass(frozen=True)
class UnusuallyLowPrice:
    below_market_percent: float
    market_median: float
    asking_price: float
    confidence: int
    threshold_used: float
    used_market_median: bool = False


@dataclass(frozen=True)
class TooGoodForTooLong:
    days_listed: int
    threshold_days: int
    confidence: int
    requires_low_price: bool = True


@dataclass(frozen=True)
class LowPriceLongListing:
    """Seller-service verdict on a cheap listing that keeps resurfacing."""

    is_suspicious: bool
    below_market: bool = False
    repeated_listing_periods: int = 0


@dataclass(frozen=True)
class PricingBehavior:
    volatility: PriceVolatility | None = None
    unusually_low_price: UnusuallyLowPrice | None = None
    too_good_for_too_long: TooGoodForTooLong | None = None
    low_price_long_listing: LowPriceLongListing | None = None

    def __post_init__(self) -> None:
        if self.too_good_for_too_long is not None and self.unusually_low_price is None:
            raise ValueError("too-good-for-too-long requires an unusually-low-price signal")


@dataclass(frozen=True)
class SellerProfile:
    seller_type: str | None = None
    dealer_revealed: bool = False
    negotiated_similar_listings: bool = False


@dataclass(frozen=True)
class SellerSignals:
    listing: ListingBehavior = field(default_factory=ListingBehavior)
    pricing: PricingBehavior = field(default_factory=PricingBehavior)
    profile: SellerProfile = field(default_factory=SellerProfile)


# ── Data quality ────────────────────────────────────────────────────

@dataclass(frozen=True)
class DataQualityFactor:
    id: str
    name: str
    status: FactorStatus
    impact: Impact
    explanation: str


@dataclass(frozen=True)
class DataQualityAssessment:
    overall_confidence: ConfidenceLevel
    confidence_score: int
    factors: tuple[DataQualityFactor, ...]
    summary: str
    recommendations: tuple[str, ...] = ()


# ── Premium assessments ─────────────────────────────────────────────

@dataclass(frozen=True)
class MaintenanceRiskFactor:
    category: Literal["age", "mileage", "usage", "ownership", "vehicle-class"]
    level: RiskLevel
    description: str


@dataclass(frozen=True)
class InspectionItem:
    area: str
    reason: str
    priority: RiskLevel


@dataclass(frozen=True)
class MaintenanceRiskAssessment:
    overall_risk: Literal["low", "medium", "elevated"]
    risk_factors: tuple[MaintenanceRiskFactor, ...]
    inspection_focus: tuple[InspectionItem, ...]
    checklist: tuple[str, ...]
    vehicle_age: int
    annual_mileage: int | None
    summary: str


@dataclass(frozen=True)
class MarketPricingAnalysis:
    asking_price: float
    market_median: float
    price_min: float
    price_max: float
    percentile_25: float
    percentile_75: float
    percentile_rank: int
    position: Literal["below", "at", "above"]
    median_difference_percent: float
    negotiation_leverage: Literal["strong", "moderate", "limited"]
    sample_size: int
    sparsity: Literal["adequate", "moderate", "sparse"]
    regional_variance: bool
    confidence: int
    limitations: tuple[str, ...] = ()
    state: str | None = None


@dataclass(frozen=True)
class PremiumSignals:
    maintenance: MaintenanceRiskAssessment | None = None
    market_pricing: MarketPricingAnalysis | None = None


@dataclass(frozen=True)
class TailoredQuestion:
    question: str
    category: str
    priority: Severity
    reason: str


@dataclass(frozen=True)
class TailoredQuestions:
    questions: tuple[TailoredQuestion, ...]
    categories: tuple[str, ...]
    summary: str


@dataclass(frozen=True)
class SellerAnalysis:
    credibility_score: int
    insights: tuple[str, ...]


@dataclass(frozen=True)
class ComparableListing:
    price: float
    mileage: int | None
    location: str | None
    days_on_market: int | None
    source: str | None
    price_difference: float


# ── Verdict ─────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ContributingFactors:
    maintenance_risk: Literal["low", "medium", "elevated"] | None = None
    market_position: MarketPosition | None = None
    environmental_risk: RiskLevel | None = None


@dataclass(frozen=True)
class VerdictReasoning:
    verdict: VerdictType
    confidence: int
    score: int
    explanation: str
    structural_risks: tuple[str, ...]
    market_risks: tuple[str, ...]
    seller_behavior_risks: tuple[str, ...]
    data_quality_impact: DataQualityImpact
    contributing_factors: ContributingFactors


@dataclass(frozen=True)
class VerdictResult:
    tier: Tier
    verdict: VerdictType
    confidence_score: int
    summary: str
    red_flags: tuple[RedFlag, ...]
    questions_to_ask: tuple[str, ...]
    known_data: tuple[str, ...]
    unknown_data: tuple[str, ...]
    vehicle_info: VehicleInfo
    data_quality: DataQualityAssessment
    reasoning: VerdictReasoning
    history: VehicleHistory | None = None
    market_data: MarketData | None = None
    disaster_data: DisasterData | None = None
    environmental_risk: EnvironmentalRisk | None = None
    seller_signals: SellerSignals | None = None
    recalls: tuple[Recall, ...] = ()
    market_pricing_analysis: MarketPricingAnalysis | None = None
    maintenance_risk_assessment: MaintenanceRiskAssessment | None = None
    seller_analysis: SellerAnalysis | None = None
    tailored_questions: TailoredQuestions | None = None
    carfax_summary: str | None = None
    comparable_listings: tuple[ComparableListing, ...] = ()
