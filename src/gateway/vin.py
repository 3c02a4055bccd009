from __future__ import annotations

import dataclasses
import logging
from datetime import date

import httpx

from gateway.cache import RedisCache
from verdict.data_models import DecodedVin
from verdict.vin import year_from_vin

logger = logging.getLogger(__name__)


class VinDecoder:
    """NHTSA vPIC decode with a model-year-only fallback, cached per VIN."""

    def __init__(self, cache: RedisCache, base_url: str, ttl_seconds: int, timeout: float = 2.0) -> None:
        self.cache = cache
        self.base_url = base_url.rstrip("/")
        self.ttl_seconds = ttl_seconds
        self.timeout = timeout

    def _fallback_decode(self, vin: str) -> DecodedVin:
        return DecodedVin(vin=vin, model_year=year_from_vin(vin, date.today().year) or 0)

    async def decode(self, vin: str) -> DecodedVin:
        cache_key = f"vin_decode:{vin}"
        cached = await self.cache.get_json(cache_key)
        if cached is not None:
            return DecodedVin(**cached)

        try:
            url = f"{self.base_url}/DecodeVinValues/{vin}"
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.get(url, params={"format": "json"})
                resp.raise_for_status()
            payload = resp.json()
            row = (payload.get("Results") or [{}])[0]
            decoded = DecodedVin(
                vin=vin,
                model_year=int(row.get("ModelYear") or 0),
                make=row.get("Make") or "",
                model=row.get("Model") or "",
                trim=row.get("Trim") or "",
                engine=row.get("EngineModel") or "",
                decode_source="nhtsa",
            )
        except Exception as exc:
            logger.warning("VIN decode failed, using model-year fallback: %s", exc)
            # a fallback is not cached so the next request retries NHTSA
            return self._fallback_decode(vin)

        await self.cache.set_json(cache_key, dataclasses.asdict(decoded), ttl_seconds=self.ttl_seconds)
        return decoded
