from __future__ import annotations

import dataclasses
import logging
import time
import uuid
from contextlib import asynccontextmanager
from typing import Any, Literal

from fastapi import FastAPI, HTTPException, Request, Response, status
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from gateway.analyzer import CollaboratorTimeouts, HttpSignalProvider, SignalProvider, VehicleAnalyzer
from gateway.cache import RedisCache
from gateway.logging_config import configure_logging, correlation_id
from gateway.settings import ServiceSettings
from verdict.data_models import AnalysisRequest, VerdictResult
from verdict.vin import InvalidVinError

logger = logging.getLogger(__name__)


# ── Request / Response Models ───────────────────────────────────────

class AnalyzeRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    asking_price: float = Field(gt=0)
    vin: str | None = Field(default=None, max_length=32)
    year: int | None = Field(default=None, ge=1900, le=2100)
    make: str | None = None
    model: str | None = None
    trim: str | None = None
    mileage: int | None = Field(default=None, ge=0)
    location: str | None = None
    tier: Literal["free", "paid"] = "free"

    def to_domain(self) -> AnalysisRequest:
        return AnalysisRequest(**self.model_dump())


class HealthResponse(BaseModel):
    status: str


class ReadinessResponse(BaseModel):
    status: str
    checks: dict[str, bool]


def _camelize(value: Any) -> Any:
    if isinstance(value, dict):
        return {to_camel(k): _camelize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_camelize(v) for v in value]
    return value


def serialize_result(result: VerdictResult) -> dict[str, Any]:
    """camelCase JSON body for a verdict, dates as ISO strings."""
    return jsonable_encoder(_camelize(dataclasses.asdict(result)))


# ── App Factory ─────────────────────────────────────────────────────

def create_app(provider: SignalProvider | None = None) -> FastAPI:
    settings = ServiceSettings()
    configure_logging(level=settings.log_level, fmt=settings.log_format)

    cache = RedisCache(redis_url=settings.redis_url)
    analyzer = VehicleAnalyzer(
        provider=provider or HttpSignalProvider(settings, cache),
        timeouts=CollaboratorTimeouts.from_settings(settings),
    )

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        await cache.connect()
        try:
            yield
        finally:
            await cache.close()

    app = FastAPI(title="Listing Verdict API", version="0.1.0", lifespan=lifespan)

    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next: Any) -> Response:
        cid = request.headers.get("X-Correlation-ID") or uuid.uuid4().hex[:12]
        correlation_id.set(cid)
        response = await call_next(request)
        response.headers["X-Correlation-ID"] = cid
        return response

    # ── Analysis ────────────────────────────────────────────────────

    @app.post("/analyze")
    async def analyze(payload: AnalyzeRequest) -> dict[str, Any]:
        t0 = time.monotonic()
        try:
            result = await analyzer.analyze(payload.to_domain())
        except InvalidVinError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid VIN: {exc.reason}")
        logger.info("Analysis completed in %.0fms", (time.monotonic() - t0) * 1000)
        return serialize_result(result)

    # ── Health ──────────────────────────────────────────────────────

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.get("/ready", response_model=ReadinessResponse)
    async def ready() -> ReadinessResponse:
        # the in-memory fallback still serves requests
        checks = {"redis": await cache.ping()}
        return ReadinessResponse(status="ready" if all(checks.values()) else "degraded", checks=checks)

    return app


app = create_app()
