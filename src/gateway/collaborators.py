from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Any

import httpx

from verdict.data_models import (
    DetailedHistory,
    DisasterData,
    DisasterDeclaration,
    ListingBehavior,
    ListingLongevity,
    LowPriceLongListing,
    MarketData,
    OdometerReading,
    PricePoint,
    PricingBehavior,
    RawListing,
    Recall,
    RelistingDetection,
    SalesStats,
    SellerProfile,
    SellerSignals,
    Tier,
    VehicleHistory,
)
from verdict.location import extract_county, extract_state
from verdict.seller_analysis import calculate_price_volatility
from verdict.vin import InvalidVinError

logger = logging.getLogger(__name__)

DISASTER_LOOKBACK_YEARS = 5
RELISTING_WINDOW_DAYS = 90
STALE_LISTING_DAYS = 45
LOW_PRICE_RATIO = 0.85


def _safe_float(v: Any) -> float | None:
    if v is None:
        return None
    try:
        return float(v)
    except (ValueError, TypeError):
        return None


def _safe_int(v: Any) -> int | None:
    f = _safe_float(v)
    return None if f is None else int(f)


def _parse_date(v: Any) -> date | None:
    if not v:
        return None
    if isinstance(v, date):
        return v
    text = str(v).strip()
    for candidate in (text, text[:10]):
        try:
            return datetime.fromisoformat(candidate.replace("Z", "+00:00")).date()
        except ValueError:
            continue
    try:
        return datetime.strptime(text, "%d/%m/%Y").date()
    except ValueError:
        return None


def _bearer(api_key: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {api_key}", "Accept": "application/json"}


# ── Vehicle history ─────────────────────────────────────────────────

def map_history(data: dict[str, Any], tier: Tier = "free") -> VehicleHistory:
    title = data.get("title") or {}
    history = data.get("history") or {}
    vehicle = data.get("vehicle") or {}

    brands = title.get("brands")
    if not isinstance(brands, list):
        brands = [title["brand"]] if title.get("brand") else []

    odometer = []
    for row in history.get("odometer") or []:
        reading = _safe_int(row.get("reading") or row.get("mileage"))
        on = _parse_date(row.get("date"))
        if reading and on:
            odometer.append(OdometerReading(reading=reading, date=on))

    detailed = None
    report = data.get("report")
    if tier == "paid" and isinstance(report, dict):
        snapshots = []
        for row in report.get("mileageSnapshots") or []:
            reading = _safe_int(row.get("mileage") or row.get("reading"))
            on = _parse_date(row.get("date"))
            if reading is not None and on:
                snapshots.append(OdometerReading(reading=reading, date=on))
        detailed = DetailedHistory(
            accident_indicators=bool(report.get("accidentIndicators")),
            service_history=tuple(str(s) for s in report.get("serviceHistory") or ()),
            ownership_changes=_safe_int(report.get("ownershipChanges")),
            mileage_snapshots=tuple(snapshots),
        )

    return VehicleHistory(
        title_brands=tuple(str(b) for b in brands if b),
        salvage_record=bool(history.get("salvage") or history.get("totalLoss")),
        theft_records=bool(history.get("theft")),
        state_title=title.get("state") or title.get("status"),
        odometer=tuple(odometer),
        year=_safe_int(data.get("year") or vehicle.get("year")),
        make=data.get("make") or vehicle.get("make"),
        model=data.get("model") or vehicle.get("model"),
        detailed=detailed,
    )


class VehicleHistoryClient:
    """Title, theft and odometer records by VIN (Auto.dev).

    A 400 means the provider rejected the VIN itself and is raised as
    InvalidVinError. Every other failure is logged and yields None.
    """

    def __init__(self, api_key: str, base_url: str, timeout: float = 15.0) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._enabled = bool(api_key)

    async def fetch(self, vin: str, tier: Tier = "free") -> VehicleHistory | None:
        if not self._enabled:
            return None
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.get(f"{self.base_url}/vin/{vin}", headers=_bearer(self.api_key))
            if resp.status_code == 400:
                detail = _error_text(resp) or "provider rejected the VIN"
                raise InvalidVinError(vin, detail)
            if resp.status_code in (401, 403, 404, 429):
                logger.warning("History lookup returned %s", resp.status_code, extra={"collaborator": "history"})
                return None
            resp.raise_for_status()
            return map_history(resp.json(), tier)
        except InvalidVinError:
            raise
        except Exception as exc:
            logger.warning("History lookup failed: %s", exc, extra={"collaborator": "history"})
            return None


def _error_text(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text.strip()
    if isinstance(body, dict):
        return str(body.get("error") or body.get("message") or "")
    return ""


# ── Market listings ─────────────────────────────────────────────────

def map_listings(rows: list[dict[str, Any]]) -> tuple[RawListing, ...]:
    out = []
    for row in rows:
        retail = row.get("retailListing") or {}
        price = _safe_float(retail.get("price") or row.get("price"))
        if not price or price <= 0:
            continue
        dealer = retail.get("dealer") or row.get("dealer")
        seller_type = row.get("sellerType") or ("dealer" if dealer else None)
        out.append(RawListing(
            price=price,
            mileage=_safe_int(retail.get("miles") or row.get("mileage")),
            city=retail.get("city") or row.get("city"),
            state=retail.get("state") or row.get("state"),
            dealer_name=dealer,
            seller_type=seller_type if seller_type in ("dealer", "private-party") else None,
            days_on_market=_safe_int(row.get("daysOnMarket") or retail.get("dom")),
            source="auto.dev",
        ))
    return tuple(out)


def map_sales_stats(data: dict[str, Any]) -> SalesStats | None:
    stats = data.get("price_stats") or {}
    count = _safe_int(data.get("count") or data.get("num_found")) or 0
    if not stats or count == 0:
        return None
    return SalesStats(
        sales_count=count,
        average_price=_safe_float(stats.get("mean")),
        median_price=_safe_float(stats.get("median")),
        price_min=_safe_float(stats.get("min")),
        price_max=_safe_float(stats.get("max")),
    )


class MarketDataClient:
    """Active listings for the year/make/model, plus sold-vehicle statistics for paid reports."""

    def __init__(
        self,
        api_key: str,
        base_url: str,
        sales_api_key: str = "",
        sales_base_url: str = "",
        timeout: float = 15.0,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.sales_api_key = sales_api_key
        self.sales_base_url = sales_base_url.rstrip("/")
        self.timeout = timeout

    async def _listings(self, client: httpx.AsyncClient, params: dict[str, Any]) -> tuple[RawListing, ...]:
        if not self.api_key:
            return ()
        try:
            resp = await client.get(f"{self.base_url}/listings", params=params, headers=_bearer(self.api_key))
            resp.raise_for_status()
            data = resp.json()
            rows = data.get("listings") or data.get("results") or data.get("data") or []
            return map_listings(rows if isinstance(rows, list) else [])
        except Exception as exc:
            logger.warning("Listings lookup failed: %s", exc, extra={"collaborator": "market"})
            return ()

    async def _sales(
        self, client: httpx.AsyncClient, year: int, make: str, model: str, mileage: int | None
    ) -> tuple[SalesStats | None, float | None]:
        if not self.sales_api_key or not self.sales_base_url:
            return None, None
        base_params: dict[str, Any] = {"api_key": self.sales_api_key, "year": year, "make": make, "model": model}
        stats = competitive = None
        try:
            resp = await client.get(f"{self.sales_base_url}/sales/car", params=base_params)
            resp.raise_for_status()
            stats = map_sales_stats(resp.json())
        except Exception as exc:
            logger.warning("Sales stats lookup failed: %s", exc, extra={"collaborator": "market"})
        try:
            params = dict(base_params, miles=mileage) if mileage else base_params
            resp = await client.get(f"{self.sales_base_url}/predict/car/price", params=params)
            resp.raise_for_status()
            competitive = _safe_float(resp.json().get("marketcheck_price"))
        except Exception as exc:
            logger.warning("Price prediction failed: %s", exc, extra={"collaborator": "market"})
        return stats, competitive

    async def fetch(
        self,
        year: int,
        make: str,
        model: str,
        mileage: int | None = None,
        tier: Tier = "free",
        trim: str | None = None,
    ) -> MarketData | None:
        params: dict[str, Any] = {"vehicle.year": year, "vehicle.make": make, "vehicle.model": model}
        if trim:
            params["vehicle.trim"] = trim
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            listings = await self._listings(client, params)
            stats, competitive = (None, None)
            if tier == "paid":
                stats, competitive = await self._sales(client, year, make, model, mileage)

        if not listings and stats is None and competitive is None:
            return None
        prices = [l.price for l in listings]
        return MarketData(
            listing_average=float(round(sum(prices) / len(prices))) if prices else None,
            listing_price_min=min(prices) if prices else None,
            listing_price_max=max(prices) if prices else None,
            raw_listings=listings if tier == "paid" else (),
            competitive_price=competitive,
            sales_stats=stats,
        )


# ── Disasters ───────────────────────────────────────────────────────

def map_declarations(rows: list[dict[str, Any]], county: str | None = None) -> tuple[DisasterDeclaration, ...]:
    out = []
    for row in rows:
        declared = _parse_date(row.get("declarationDate"))
        if declared is None:
            continue
        out.append(DisasterDeclaration(
            disaster_type=row.get("incidentType") or "Unknown",
            declaration_date=declared,
            designated_area=row.get("designatedArea"),
        ))
    if county:
        needle = county.lower().replace(" county", "")
        local = [d for d in out if d.designated_area and needle in d.designated_area.lower()]
        if local:
            return tuple(local)
    return tuple(out)


class DisasterClient:
    """FEMA disaster declarations for the listing's state, narrowed to its county when named."""

    def __init__(self, base_url: str, timeout: float = 10.0, lookback_years: int = DISASTER_LOOKBACK_YEARS) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.lookback_years = lookback_years

    async def fetch(self, location: str, as_of: date) -> DisasterData | None:
        state = extract_state(location)
        if state is None:
            logger.warning("No state found in location %r", location, extra={"collaborator": "disaster"})
            return None
        county = extract_county(location)
        start = as_of - timedelta(days=365 * self.lookback_years)
        params = {
            "$filter": f"state eq '{state}' and declarationDate ge '{start.isoformat()}' "
            f"and declarationDate le '{as_of.isoformat()}'",
            "$orderby": "declarationDate desc",
            "$top": 100,
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.get(
                    f"{self.base_url}/DisasterDeclarationsSummaries",
                    params=params,
                    headers={"Accept": "application/json"},
                )
                resp.raise_for_status()
            rows = resp.json().get("DisasterDeclarationsSummaries") or []
        except Exception as exc:
            logger.warning("FEMA lookup failed: %s", exc, extra={"collaborator": "disaster"})
            return None
        return DisasterData(declarations=map_declarations(rows, county), state=state, county=county)


# ── Recalls ─────────────────────────────────────────────────────────

def map_recalls(rows: list[dict[str, Any]]) -> tuple[Recall, ...]:
    return tuple(
        Recall(
            campaign_number=row.get("NHTSACampaignNumber") or "N/A",
            component=row.get("Component") or "Unknown Component",
            summary=row.get("Summary") or "No summary available",
            consequence=row.get("Consequence") or row.get("Notes") or "",
            remedy=row.get("Remedy") or "Contact manufacturer for remedy information",
            report_received_date=_parse_date(row.get("ReportReceivedDate")),
        )
        for row in rows
    )


class RecallsClient:
    """NHTSA recalls by make, model and model year. A 404 means no recalls on file."""

    def __init__(self, base_url: str, timeout: float = 10.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def fetch(self, make: str, model: str, year: int) -> tuple[Recall, ...] | None:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.get(
                    f"{self.base_url}/recalls/recallsByVehicle",
                    params={"make": make, "model": model, "modelYear": year},
                )
            if resp.status_code == 404:
                return ()
            resp.raise_for_status()
            data = resp.json()
        except Exception as exc:
            logger.warning("Recall lookup failed: %s", exc, extra={"collaborator": "recalls"})
            return None
        if data.get("Count") is None:
            logger.warning("Unexpected recall payload", extra={"collaborator": "recalls"})
            return None
        return map_recalls(data.get("results") or data.get("Results") or [])


# ── Seller signals ──────────────────────────────────────────────────

def map_seller_signals(payload: dict[str, Any], asking_price: float, as_of: date) -> SellerSignals:
    """Derive listing, pricing and profile signals from a listing-by-VIN record."""
    data = payload.get("data") or payload
    retail = data.get("retailListing") or {}

    listed_on = [_parse_date(data.get("createdAt"))]
    listed_on += [_parse_date(d) for d in data.get("previousListings") or []]
    window = [d for d in listed_on if d and 0 <= (as_of - d).days <= RELISTING_WINDOW_DAYS]

    history = []
    for row in data.get("priceHistory") or []:
        price = _safe_float(row.get("price"))
        on = _parse_date(row.get("date"))
        if price and on:
            history.append(PricePoint(price=price, observed_on=on))
    volatility = calculate_price_volatility(history, as_of) if len(history) >= 2 else None

    longevity = None
    if window:
        days = (as_of - max(window)).days
        stale = days > STALE_LISTING_DAYS
        longevity = ListingLongevity(
            days_listed=days,
            is_stale=stale,
            selling_without_correction=stale and (volatility is None or volatility.price_changes == 0),
        )
    relisting = RelistingDetection(detected=True, times_seen=len(window)) if len(window) >= 2 else None

    low_price_long = None
    market_price = _safe_float(retail.get("marketPrice") or data.get("marketPrice"))
    if market_price and longevity is not None:
        below = asking_price < market_price * LOW_PRICE_RATIO
        low_price_long = LowPriceLongListing(
            is_suspicious=below and longevity.is_stale and len(window) >= 2,
            below_market=below,
            repeated_listing_periods=len(window),
        )

    dealer = retail.get("dealer") or data.get("dealer")
    claimed = data.get("sellerType")
    profile = SellerProfile(
        seller_type=claimed or ("dealer" if dealer else None),
        dealer_revealed=claimed == "private-party" and bool(dealer),
        negotiated_similar_listings=bool(data.get("soldSimilar")),
    )
    return SellerSignals(
        listing=ListingBehavior(relisting=relisting, longevity=longevity),
        pricing=PricingBehavior(volatility=volatility, low_price_long_listing=low_price_long),
        profile=profile,
    )


class SellerSignalsClient:
    """Listing history for a VIN, turned into relisting, volatility and seller profile signals."""

    def __init__(self, api_key: str, base_url: str, timeout: float = 10.0) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._enabled = bool(api_key and base_url)

    async def fetch(self, vin: str, asking_price: float, as_of: date) -> SellerSignals | None:
        if not self._enabled:
            return None
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.get(f"{self.base_url}/listings/{vin}", headers=_bearer(self.api_key))
            if resp.status_code in (401, 403, 404, 429):
                logger.warning("Listing lookup returned %s", resp.status_code, extra={"collaborator": "seller"})
                return None
            resp.raise_for_status()
            payload = resp.json()
        except Exception as exc:
            logger.warning("Listing lookup failed: %s", exc, extra={"collaborator": "seller"})
            return None
        return map_seller_signals(payload, asking_price, as_of)
