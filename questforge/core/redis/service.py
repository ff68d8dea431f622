"""
Redis Service - async Redis client for the oracle answer cache.

Purpose
-------
Singleton, classmethod-based wrapper around ``redis.asyncio`` used by
``OracleCache`` to remember oracle answers for a short TTL. Redis is
optional: with an empty ``REDIS_URL`` the service stays disabled and the
cache is bypassed.

Responsibilities
----------------
- Initialize and verify (PING) one client from Config.REDIS_URL
- Observable GET/SET/DELETE plus JSON helpers
- Fail fast through a circuit breaker while Redis is unreachable

Non-Responsibilities
--------------------
- Claim mutual exclusion (that is the database ledger's job)
"""

from __future__ import annotations

import asyncio
import json
import time
from typing import Any, Optional

from redis.asyncio.client import Redis as AsyncRedis  # type: ignore[misc]
from redis.exceptions import RedisError

from questforge.core.config.config import Config
from questforge.core.database.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerOpenError,
)
from questforge.core.logging.logger import get_logger

logger = get_logger(__name__)


class RedisService:
    """Async Redis infrastructure service."""

    _client: Optional[AsyncRedis] = None
    _breaker: Optional[CircuitBreaker] = None
    _init_lock: asyncio.Lock = asyncio.Lock()
    _is_healthy: bool = False

    # ═══════════════════════════════════════════════════════════════════════
    # LIFECYCLE MANAGEMENT
    # ═══════════════════════════════════════════════════════════════════════

    @classmethod
    async def initialize(cls, url: Optional[str] = None) -> None:
        """
        Initialize the singleton Redis client.

        Idempotent. Does nothing when no URL is configured.

        Raises
        ------
        RuntimeError
            If Redis is configured but unreachable.
        """
        if cls._client is not None:
            logger.debug("RedisService already initialized, skipping")
            return

        url = url or Config.REDIS_URL
        if not url:
            logger.info("REDIS_URL not set; RedisService disabled")
            return

        async with cls._init_lock:
            if cls._client is not None:
                return

            start_time = time.monotonic()
            client: AsyncRedis = AsyncRedis.from_url(
                url,
                socket_timeout=Config.REDIS_SOCKET_TIMEOUT,
                encoding="utf-8",
                decode_responses=True,
                retry_on_timeout=False,
            )

            try:
                await client.ping()  # type: ignore[misc]
            except RedisError as exc:
                await client.aclose()
                logger.critical(
                    "Failed to initialize RedisService",
                    extra={
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                        "url_scheme": url.split("://")[0] if "://" in url else "unknown",
                    },
                    exc_info=True,
                )
                raise RuntimeError(f"Failed to initialize RedisService: {exc}") from exc

            cls._client = client
            cls._breaker = CircuitBreaker(name="redis")
            cls._is_healthy = True

            logger.info(
                "RedisService initialized successfully",
                extra={
                    "url_scheme": url.split("://")[0] if "://" in url else "unknown",
                    "socket_timeout_seconds": Config.REDIS_SOCKET_TIMEOUT,
                    "initialization_time_ms": round(
                        (time.monotonic() - start_time) * 1000, 2
                    ),
                },
            )

    @classmethod
    async def shutdown(cls) -> None:
        """Close the client. Safe to call even if not initialized."""
        client = cls._client
        cls._client = None
        cls._breaker = None
        cls._is_healthy = False

        if client is not None:
            await client.aclose()
            logger.info("RedisService shutdown complete")

    @classmethod
    def is_enabled(cls) -> bool:
        return cls._client is not None

    @classmethod
    def is_healthy(cls) -> bool:
        """Return cached health status without performing I/O."""
        return cls._is_healthy

    @classmethod
    async def health_check(cls) -> bool:
        """PING Redis. Never raises."""
        if cls._client is None:
            return False

        try:
            cls._is_healthy = bool(await cls._client.ping())  # type: ignore[misc]
        except RedisError as exc:
            cls._is_healthy = False
            logger.error(
                "Redis health check failed",
                extra={"error": str(exc), "error_type": type(exc).__name__},
            )
        return cls._is_healthy

    @classmethod
    def client(cls) -> AsyncRedis:
        if cls._client is None:
            raise RuntimeError("RedisService is not initialized")
        return cls._client

    # ═══════════════════════════════════════════════════════════════════════
    # KEY/VALUE OPERATIONS
    # ═══════════════════════════════════════════════════════════════════════

    @classmethod
    async def _guarded(cls, operation_name: str, key: str, call: Any) -> Any:
        breaker = cls._breaker
        if breaker is None:
            raise RuntimeError("RedisService is not initialized")
        if not await breaker.allow_request():
            raise CircuitBreakerOpenError(f"Redis circuit is open ({operation_name})")

        start_time = time.monotonic()
        try:
            result = await call()
        except RedisError as exc:
            await breaker.record_failure()
            logger.error(
                f"Redis {operation_name} operation failed",
                extra={
                    "key": key,
                    "latency_ms": round((time.monotonic() - start_time) * 1000, 2),
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
            )
            raise

        await breaker.record_success()
        logger.debug(
            f"Redis {operation_name} operation",
            extra={
                "key": key,
                "latency_ms": round((time.monotonic() - start_time) * 1000, 2),
            },
        )
        return result

    @classmethod
    async def get(cls, key: str) -> Optional[str]:
        return await cls._guarded("GET", key, lambda: cls.client().get(key))

    @classmethod
    async def set(cls, key: str, value: Any, ttl_seconds: Optional[int] = None) -> bool:
        if ttl_seconds is None:
            ttl_seconds = Config.ORACLE_CACHE_TTL_SECONDS
        result = await cls._guarded(
            "SET", key, lambda: cls.client().set(key, value, ex=ttl_seconds)
        )
        return bool(result)

    @classmethod
    async def delete(cls, key: str) -> int:
        return int(await cls._guarded("DELETE", key, lambda: cls.client().delete(key)))

    @classmethod
    async def get_json(cls, key: str) -> Optional[Any]:
        raw = await cls.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    @classmethod
    async def set_json(
        cls, key: str, value: Any, ttl_seconds: Optional[int] = None
    ) -> bool:
        return await cls.set(key, json.dumps(value), ttl_seconds=ttl_seconds)
