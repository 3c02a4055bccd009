import asyncio
from datetime import date

import pytest

from gateway.analyzer import CollaboratorTimeouts, VehicleAnalyzer
from verdict.analysis import VehicleIdentity
from verdict.data_models import AnalysisRequest, DecodedVin, MarketData, VehicleHistory
from verdict.outcome import Absent, Failed, Ok, Skipped
from verdict.vin import InvalidVinError

VIN = "1HGCM82633A123456"
TODAY = date(2026, 6, 1)
FAST = CollaboratorTimeouts(history=0.05, market=0.05, disaster=0.05, recalls=0.05, seller=0.05)


class FakeProvider:
    """In-memory signal provider; each method can be swapped per test."""

    def __init__(self, **overrides):
        self.calls = []
        self.overrides = overrides

    async def _answer(self, name, default, *args):
        self.calls.append((name, args))
        behaviour = self.overrides.get(name, default)
        if isinstance(behaviour, BaseException):
            raise behaviour
        if behaviour == "slow":
            await asyncio.sleep(1)
            return None
        return behaviour

    async def decode_vin(self, vin):
        return await self._answer("decode_vin", DecodedVin(vin=vin, model_year=2022, make="HONDA", model="Civic"), vin)

    async def vehicle_history(self, vin, tier):
        return await self._answer("vehicle_history", VehicleHistory(), vin, tier)

    async def market_data(self, year, make, model, mileage, tier, trim):
        return await self._answer(
            "market_data", MarketData(listing_average=20000.0), year, make, model, mileage, tier, trim
        )

    async def disaster_data(self, location, as_of):
        return await self._answer("disaster_data", None, location, as_of)

    async def recalls(self, make, model, year):
        return await self._answer("recalls", (), make, model, year)

    async def seller_signals(self, vin, asking_price, as_of):
        return await self._answer("seller_signals", None, vin, asking_price, as_of)


def _analyzer(provider):
    return VehicleAnalyzer(provider, timeouts=FAST, clock=lambda: TODAY)


def _request(**overrides):
    fields = dict(asking_price=20000, vin=VIN, year=2022, make="Honda", model="Civic", mileage=30000)
    fields.update(overrides)
    return AnalysisRequest(**fields)


IDENTITY = VehicleIdentity(2020, "Honda", "Civic", None)


def _called(provider):
    return [name for name, _ in provider.calls]


# ── Collection ──────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_collect_maps_results_to_outcomes():
    provider = FakeProvider()
    bundle = await _analyzer(provider).collect(_request(location="Tampa, FL"), IDENTITY, TODAY)
    assert bundle.history == Ok(VehicleHistory())
    assert bundle.market == Ok(MarketData(listing_average=20000.0))
    assert isinstance(bundle.disaster, Absent)
    assert bundle.recalls == Ok(())
    assert isinstance(bundle.seller, Absent)
    assert bundle.failures() == {}


@pytest.mark.asyncio
async def test_collect_skips_collaborators_without_inputs():
    provider = FakeProvider()
    request = AnalysisRequest(asking_price=15000)
    bundle = await _analyzer(provider).collect(request, VehicleIdentity(None, None, None, None), TODAY)
    assert bundle.history == Skipped("no VIN supplied")
    assert bundle.seller == Skipped("no VIN supplied")
    assert bundle.market == Skipped("year, make or model unknown")
    assert bundle.recalls == Skipped("year, make or model unknown")
    assert bundle.disaster == Skipped("no location supplied")
    assert provider.calls == []


@pytest.mark.asyncio
async def test_collect_passes_resolved_identity():
    provider = FakeProvider()
    await _analyzer(provider).collect(_request(tier="paid"), VehicleIdentity(2020, "Honda", "Civic", "EX"), TODAY)
    args = dict(provider.calls)
    assert args["market_data"] == (2020, "Honda", "Civic", 30000, "paid", "EX")
    assert args["recalls"] == ("Honda", "Civic", 2020)
    assert args["seller_signals"] == (VIN, 20000, TODAY)


@pytest.mark.asyncio
async def test_slow_collaborator_times_out():
    provider = FakeProvider(market_data="slow")
    bundle = await _analyzer(provider).collect(_request(), IDENTITY, TODAY)
    assert bundle.market == Failed("timed out after 0.05s")
    assert bundle.history == Ok(VehicleHistory())
    assert bundle.failures() == {"market": "timed out after 0.05s"}


@pytest.mark.asyncio
async def test_raising_collaborator_is_failed_not_fatal():
    provider = FakeProvider(recalls=RuntimeError("recalls service down"), seller_signals=KeyError())
    bundle = await _analyzer(provider).collect(_request(), IDENTITY, TODAY)
    assert bundle.recalls == Failed("recalls service down")
    assert isinstance(bundle.seller, Failed)
    assert bundle.market == Ok(MarketData(listing_average=20000.0))


@pytest.mark.asyncio
async def test_invalid_vin_from_history_propagates():
    provider = FakeProvider(vehicle_history=InvalidVinError(VIN, "provider rejected the VIN"))
    with pytest.raises(InvalidVinError):
        await _analyzer(provider).collect(_request(), IDENTITY, TODAY)


# ── Analysis ────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_analyze_clean_listing():
    provider = FakeProvider()
    result = await _analyzer(provider).analyze(_request(vin=VIN.lower()))
    assert result.verdict == "deal"
    assert result.vehicle_info.vin == VIN
    assert provider.calls[0] == ("decode_vin", (VIN,))
    assert set(_called(provider)) == {
        "decode_vin", "vehicle_history", "market_data", "recalls", "seller_signals",
    }


@pytest.mark.asyncio
async def test_malformed_vin_is_rejected_before_any_call():
    provider = FakeProvider()
    with pytest.raises(InvalidVinError):
        await _analyzer(provider).analyze(_request(vin="NOT-A-VIN"))
    assert provider.calls == []


@pytest.mark.asyncio
async def test_decode_failure_is_tolerated():
    provider = FakeProvider(decode_vin=RuntimeError("vPIC down"))
    result = await _analyzer(provider).analyze(_request())
    assert result.vehicle_info.make == "Honda"
    assert result.verdict == "deal"


@pytest.mark.asyncio
async def test_decoded_vin_fills_missing_identity():
    provider = FakeProvider()
    await _analyzer(provider).analyze(AnalysisRequest(asking_price=20000, vin=VIN))
    args = dict(provider.calls)
    assert args["market_data"][:3] == (2022, "HONDA", "Civic")


@pytest.mark.asyncio
async def test_analysis_without_vin_still_reports():
    provider = FakeProvider()
    result = await _analyzer(provider).analyze(_request(vin=None))
    assert "no-vin" in [f.id for f in result.red_flags]
    assert "decode_vin" not in _called(provider)
    assert "vehicle_history" not in _called(provider)


@pytest.mark.asyncio
async def test_failed_market_still_produces_verdict():
    provider = FakeProvider(market_data=RuntimeError("listings unavailable"))
    result = await _analyzer(provider).analyze(_request())
    assert result.verdict in ("deal", "caution", "disaster")
    assert "Market pricing comparables (source unavailable)" in result.unknown_data
