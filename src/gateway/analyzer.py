from __future__ import annotations

import asyncio
import dataclasses
import logging
import time
from dataclasses import dataclass
from datetime import date
from typing import Any, Awaitable, Callable, Protocol

from gateway.cache import RedisCache
from gateway.collaborators import (
    DisasterClient,
    MarketDataClient,
    RecallsClient,
    SellerSignalsClient,
    VehicleHistoryClient,
)
from gateway.logging_config import bind_analysis
from gateway.settings import ServiceSettings
from gateway.vin import VinDecoder
from verdict.analysis import VehicleIdentity, build_report, resolve_identity
from verdict.data_models import (
    AnalysisRequest,
    DecodedVin,
    DisasterData,
    MarketData,
    Recall,
    SellerSignals,
    Tier,
    VehicleHistory,
    VerdictResult,
)
from verdict.outcome import Absent, Failed, Ok, Outcome, SignalBundle, Skipped
from verdict.vin import InvalidVinError, validate_vin

logger = logging.getLogger(__name__)


class SignalProvider(Protocol):
    async def decode_vin(self, vin: str) -> DecodedVin | None: ...

    async def vehicle_history(self, vin: str, tier: Tier) -> VehicleHistory | None: ...

    async def market_data(
        self, year: int, make: str, model: str, mileage: int | None, tier: Tier, trim: str | None
    ) -> MarketData | None: ...

    async def disaster_data(self, location: str, as_of: date) -> DisasterData | None: ...

    async def recalls(self, make: str, model: str, year: int) -> tuple[Recall, ...] | None: ...

    async def seller_signals(self, vin: str, asking_price: float, as_of: date) -> SellerSignals | None: ...


class HttpSignalProvider:
    """Production provider: NHTSA, FEMA and the listing/history APIs over httpx."""

    def __init__(self, settings: ServiceSettings, cache: RedisCache) -> None:
        self.vin_decoder = VinDecoder(
            cache=cache,
            base_url=settings.nhtsa_base_url,
            ttl_seconds=settings.vin_cache_ttl_seconds,
            timeout=settings.vin_decode_timeout_seconds,
        )
        self.history = VehicleHistoryClient(
            api_key=settings.history_api_key,
            base_url=settings.history_base_url,
            timeout=settings.history_timeout_seconds,
        )
        self.market = MarketDataClient(
            api_key=settings.market_api_key,
            base_url=settings.market_base_url,
            sales_api_key=settings.sales_api_key,
            sales_base_url=settings.sales_base_url,
            timeout=settings.market_timeout_seconds,
        )
        self.disasters = DisasterClient(base_url=settings.fema_base_url, timeout=settings.disaster_timeout_seconds)
        self.recall_client = RecallsClient(base_url=settings.recalls_base_url, timeout=settings.recalls_timeout_seconds)
        self.seller = SellerSignalsClient(
            api_key=settings.seller_api_key or settings.market_api_key,
            base_url=settings.seller_base_url or settings.market_base_url,
            timeout=settings.seller_timeout_seconds,
        )

    async def decode_vin(self, vin: str) -> DecodedVin | None:
        return await self.vin_decoder.decode(vin)

    async def vehicle_history(self, vin: str, tier: Tier) -> VehicleHistory | None:
        return await self.history.fetch(vin, tier)

    async def market_data(
        self, year: int, make: str, model: str, mileage: int | None, tier: Tier, trim: str | None
    ) -> MarketData | None:
        return await self.market.fetch(year, make, model, mileage, tier, trim)

    async def disaster_data(self, location: str, as_of: date) -> DisasterData | None:
        return await self.disasters.fetch(location, as_of)

    async def recalls(self, make: str, model: str, year: int) -> tuple[Recall, ...] | None:
        return await self.recall_client.fetch(make, model, year)

    async def seller_signals(self, vin: str, asking_price: float, as_of: date) -> SellerSignals | None:
        return await self.seller.fetch(vin, asking_price, as_of)


@dataclass(frozen=True)
class CollaboratorTimeouts:
    history: float = 15.0
    market: float = 15.0
    disaster: float = 10.0
    recalls: float = 10.0
    seller: float = 10.0

    @classmethod
    def from_settings(cls, settings: ServiceSettings) -> "CollaboratorTimeouts":
        return cls(
            history=settings.history_timeout_seconds,
            market=settings.market_timeout_seconds,
            disaster=settings.disaster_timeout_seconds,
            recalls=settings.recalls_timeout_seconds,
            seller=settings.seller_timeout_seconds,
        )


class VehicleAnalyzer:
    """Collects every signal for a listing concurrently and hands them to the verdict pipeline."""

    def __init__(
        self,
        provider: SignalProvider,
        timeouts: CollaboratorTimeouts | None = None,
        clock: Callable[[], date] = date.today,
    ) -> None:
        self.provider = provider
        self.timeouts = timeouts or CollaboratorTimeouts()
        self.clock = clock

    async def _call(self, name: str, timeout: float, factory: Callable[[], Awaitable[Any]]) -> Outcome[Any]:
        t0 = time.monotonic()
        try:
            value = await asyncio.wait_for(factory(), timeout=timeout)
        except InvalidVinError:
            raise
        except asyncio.TimeoutError:
            logger.warning("%s timed out after %.1fs", name, timeout, extra={"collaborator": name})
            return Failed(f"timed out after {timeout:g}s")
        except Exception as exc:
            logger.warning("%s failed: %s", name, exc, extra={"collaborator": name})
            return Failed(str(exc) or type(exc).__name__)
        logger.debug("%s finished in %.3fs", name, time.monotonic() - t0, extra={"collaborator": name})
        if value is None:
            return Absent()
        return Ok(value)

    async def _skipped(self, reason: str) -> Outcome[Any]:
        return Skipped(reason)

    async def collect(
        self, request: AnalysisRequest, identity: VehicleIdentity, as_of: date
    ) -> SignalBundle:
        vin, tier = request.vin, request.tier
        year, make, model = identity.year, identity.make, identity.model
        has_vehicle = bool(year and make and model)
        p, t = self.provider, self.timeouts

        history = (
            self._call("history", t.history, lambda: p.vehicle_history(vin, tier))
            if vin else self._skipped("no VIN supplied")
        )
        market = (
            self._call("market", t.market, lambda: p.market_data(year, make, model, request.mileage, tier, identity.trim))
            if has_vehicle else self._skipped("year, make or model unknown")
        )
        disaster = (
            self._call("disaster", t.disaster, lambda: p.disaster_data(request.location, as_of))
            if request.location else self._skipped("no location supplied")
        )
        recalls = (
            self._call("recalls", t.recalls, lambda: p.recalls(make, model, year))
            if has_vehicle else self._skipped("year, make or model unknown")
        )
        seller = (
            self._call("seller", t.seller, lambda: p.seller_signals(vin, request.asking_price, as_of))
            if vin else self._skipped("no VIN supplied")
        )

        results = await asyncio.gather(history, market, disaster, recalls, seller, return_exceptions=True)
        for outcome in results:
            if isinstance(outcome, BaseException):
                raise outcome
        bundle = SignalBundle(*results)
        if bundle.failures():
            logger.info("Continuing with failed collaborators: %s", sorted(bundle.failures()))
        return bundle

    async def analyze(self, request: AnalysisRequest) -> VerdictResult:
        as_of = self.clock()
        decoded = None
        if request.vin:
            request = dataclasses.replace(request, vin=validate_vin(request.vin))
            bind_analysis(request.vin, request.tier)
            try:
                decoded = await self.provider.decode_vin(request.vin)
            except Exception as exc:
                logger.warning("VIN decode failed: %s", exc, extra={"collaborator": "vin_decode"})
        else:
            bind_analysis(None, request.tier)

        identity = resolve_identity(request, decoded, None, as_of.year)
        bundle = await self.collect(request, identity, as_of)
        return build_report(request, bundle, decoded, as_of)
