from __future__ import annotations

import statistics

from verdict.config import LUXURY_MAKES, VehicleAgeConfig
from verdict.data_models import (
    ComparableListing,
    MarketData,
    VehicleClass,
    VehicleHistory,
)


_BASE_VALUES: dict[str, dict[str, float]] = {
    "Honda": {"Civic": 18000, "Accord": 22000, "CR-V": 25000, "Pilot": 32000},
    "Toyota": {"Camry": 21000, "Corolla": 17000, "RAV4": 28000, "Highlander": 35000},
    "Ford": {"F-150": 35000, "Mustang": 28000, "Escape": 22000, "Explorer": 32000},
    "Chevrolet": {"Silverado": 33000, "Camaro": 30000, "Equinox": 24000, "Corvette": 55000},
    "BMW": {"3 Series": 32000, "5 Series": 40000, "X3": 38000, "X5": 48000},
    "Mercedes-Benz": {"C-Class": 35000, "E-Class": 45000, "GLC": 42000, "GLE": 52000},
    "Tesla": {"Model 3": 38000, "Model Y": 45000, "Model S": 70000, "Model X": 80000},
    "Dodge": {"Challenger": 30000, "Charger": 28000, "Durango": 35000, "Ram 1500": 38000},
    "Volkswagen": {"Jetta": 18000, "Passat": 22000, "Tiguan": 25000, "Atlas": 32000},
}
_DEFAULT_BASE_VALUE = 20000.0
_MAX_DEPRECIATION_YEARS = 10
_MILEAGE_BAND = 20000
_NO_MARKET_DISCOUNT = 0.95


def depreciated_value(base_value: float, year: int, current_year: int, mileage: int | None = None) -> float:
    age = current_year - year
    value = base_value
    if age >= 1:
        value *= 0.85
    for _ in range(1, min(age, _MAX_DEPRECIATION_YEARS)):
        value *= 0.90

    if mileage:
        expected = age * VehicleAgeConfig.expected_miles_per_year
        excess = mileage - expected
        if excess > _MILEAGE_BAND:
            value *= 0.90
        elif excess < -_MILEAGE_BAND:
            value *= 1.05
    return float(round(value))


def table_estimate(make: str, model: str, year: int, current_year: int, mileage: int | None = None) -> float:
    models = _BASE_VALUES.get(make)
    if not models:
        return depreciated_value(_DEFAULT_BASE_VALUE, year, current_year, mileage)
    base = models.get(model)
    if base is None:
        base = sum(models.values()) / len(models)
    return depreciated_value(base, year, current_year, mileage)


def weighted_market_value(market: MarketData) -> float:
    """Blend the listings average with the other sources, 50/50 when both exist."""
    others = [v for v in (market.competitive_price,) if v]
    if market.sales_stats is not None and market.sales_stats.median_price:
        others.append(market.sales_stats.median_price)

    if market.listing_average and others:
        return float(round(market.listing_average * 0.5 + statistics.fmean(others) * 0.5))
    values = ([market.listing_average] if market.listing_average else []) + others
    if not values:
        return 0.0
    return float(round(statistics.fmean(values)))


def market_median(market: MarketData | None) -> float | None:
    if market is None:
        return None
    values = [v for v in (market.listing_average, market.competitive_price) if v]
    if not values:
        return None
    return float(statistics.median(values))


def estimate_value(
    asking_price: float,
    market: MarketData | None,
    make: str | None,
    model: str | None,
    year: int | None,
    mileage: int | None,
    current_year: int,
) -> float:
    if market is not None:
        value = weighted_market_value(market)
        if value > 0:
            return value
    if make and model and year:
        return table_estimate(make, model, year, current_year, mileage)
    return asking_price * _NO_MARKET_DISCOUNT


def price_difference(asking_price: float, estimated_value: float) -> tuple[float, int]:
    diff = asking_price - estimated_value
    if estimated_value <= 0:
        return diff, 0
    return diff, int(round(diff / estimated_value * 100))


def classify_vehicle(make: str | None, estimated_value: float) -> VehicleClass:
    if estimated_value > VehicleAgeConfig.exotic_value_floor:
        return "exotic"
    if make and make in LUXURY_MAKES:
        return "luxury"
    return "common"


def comparable_listings(market: MarketData, asking_price: float, limit: int = 5) -> tuple[ComparableListing, ...]:
    """Nearest-priced real listings, cheapest first."""
    nearest = sorted(market.raw_listings, key=lambda listing: abs(listing.price - asking_price))[:limit]
    out = []
    for listing in sorted(nearest, key=lambda listing: listing.price):
        location = ", ".join(part for part in (listing.city, listing.state) if part) or None
        out.append(
            ComparableListing(
                price=listing.price,
                mileage=listing.mileage,
                location=location,
                days_on_market=listing.days_on_market,
                source=listing.source,
                price_difference=round(listing.price - asking_price, 2),
            )
        )
    return tuple(out)


def history_summary(history: VehicleHistory) -> str:
    parts: list[str] = []
    detailed = history.detailed
    if detailed is not None:
        parts.append("Accident history detected" if detailed.accident_indicators else "No major accidents reported")
        if detailed.ownership_changes is not None:
            owners = detailed.ownership_changes
            parts.append(f"{owners} previous owner{'' if owners == 1 else 's'}")
        if detailed.service_history:
            parts.append("Regular maintenance records available")

    if history.title_brands:
        parts.append(f"Title brands: {', '.join(history.title_brands)}")
    else:
        parts.append("Clean title history")
    if history.theft_records:
        parts.append("Theft record found")
    return ". ".join(parts) + "."
