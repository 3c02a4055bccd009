from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Any

import redis.asyncio as redis

logger = logging.getLogger(__name__)

_PING_TIMEOUT = 0.75


class RedisCache:
    """JSON cache over Redis, degrading to a per-process TTL dict when Redis is unreachable."""

    def __init__(self, redis_url: str, namespace: str = "verdict") -> None:
        self.redis_url = redis_url
        self.namespace = namespace
        self._client: Any = None
        self._mem: dict[str, str] = {}
        self._expiry: dict[str, float] = {}

    def _build_key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    @property
    def backend(self) -> str:
        return "redis" if self._client is not None else "memory"

    async def connect(self) -> None:
        self._client = redis.from_url(self.redis_url, decode_responses=True)
        try:
            await asyncio.wait_for(self._client.ping(), timeout=_PING_TIMEOUT)
        except Exception as exc:
            logger.warning("Redis unavailable at %s, using in-memory cache: %s", self.redis_url, exc)
            self._client = None

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def ping(self) -> bool:
        if self._client is None:
            return False
        try:
            return bool(await asyncio.wait_for(self._client.ping(), timeout=_PING_TIMEOUT))
        except Exception:
            return False

    async def get_json(self, key: str) -> Any | None:
        full_key = self._build_key(key)
        if self._client is not None:
            try:
                raw = await self._client.get(full_key)
                return None if raw is None else json.loads(raw)
            except Exception as exc:
                logger.warning("Cache read failed for %s: %s", full_key, exc)
                return None
        if full_key in self._expiry and time.monotonic() > self._expiry[full_key]:
            self._mem.pop(full_key, None)
            self._expiry.pop(full_key, None)
            return None
        raw = self._mem.get(full_key)
        return None if raw is None else json.loads(raw)

    async def set_json(self, key: str, value: Any, ttl_seconds: int) -> None:
        full_key = self._build_key(key)
        payload = json.dumps(value, default=str)
        if self._client is not None:
            try:
                await self._client.set(full_key, payload, ex=ttl_seconds)
                return
            except Exception as exc:
                logger.warning("Cache write failed for %s, keeping value in memory: %s", full_key, exc)
        self._mem[full_key] = payload
        self._expiry[full_key] = time.monotonic() + ttl_seconds
