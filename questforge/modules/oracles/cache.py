"""
Short-lived Redis cache for oracle answers.

Requirement evaluation is read-only, so repeating a status check within the
TTL can reuse the previous answer of a slow oracle. The cache is optional:
when RedisService is disabled every lookup is a miss, and Redis failures are
logged and treated as misses.
"""

from __future__ import annotations

from typing import Any, Optional

from redis.exceptions import RedisError

from questforge.core.config.config import Config
from questforge.core.database.circuit_breaker import CircuitBreakerOpenError
from questforge.core.logging.logger import get_logger
from questforge.core.redis.service import RedisService

logger = get_logger(__name__)

_MISS = object()


class OracleCache:
    KEY_PREFIX = "questforge:oracle"

    def __init__(
        self,
        redis: type[RedisService] = RedisService,
        ttl_seconds: Optional[int] = None,
    ) -> None:
        self._redis = redis
        self._ttl = ttl_seconds or Config.ORACLE_CACHE_TTL_SECONDS

    @property
    def enabled(self) -> bool:
        return self._redis.is_enabled()

    def _key(self, oracle: str, key: str) -> str:
        return f"{self.KEY_PREFIX}:{oracle}:{key}"

    async def get(self, oracle: str, key: str) -> Any:
        """Cached value, or the ``MISS`` sentinel."""
        if not self.enabled:
            return _MISS
        try:
            envelope = await self._redis.get_json(self._key(oracle, key))
        except (RedisError, CircuitBreakerOpenError) as exc:
            logger.warning(
                "Oracle cache read failed; treating as miss",
                extra={"oracle": oracle, "error": str(exc)},
            )
            return _MISS
        if envelope is None:
            return _MISS
        return envelope.get("value")

    async def set(self, oracle: str, key: str, value: Any) -> None:
        if not self.enabled:
            return
        try:
            await self._redis.set_json(
                self._key(oracle, key), {"value": value}, ttl_seconds=self._ttl
            )
        except (RedisError, CircuitBreakerOpenError) as exc:
            logger.warning(
                "Oracle cache write failed",
                extra={"oracle": oracle, "error": str(exc)},
            )

    @staticmethod
    def is_miss(value: Any) -> bool:
        return value is _MISS
