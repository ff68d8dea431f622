"""
OracleGuard - fail-safe wrapper around external oracle calls.

Purpose
-------
Requirement evaluation must never fail because an oracle is slow or down.
Every oracle call goes through ``OracleGuard.call`` which:

- rejects immediately while that oracle's circuit breaker is open
- bounds the call with ``asyncio.wait_for`` (Config.ORACLE_TIMEOUT_SECONDS)
- converts any adapter failure into ``OracleUnavailableError``
- optionally serves and stores answers through ``OracleCache``

``OracleGuard.check`` is the boolean form used by requirement handlers: an
``OracleUnavailableError`` is logged and answered with False.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

from questforge.core.config.config import Config
from questforge.core.database.circuit_breaker import CircuitBreaker
from questforge.core.logging.logger import get_logger
from questforge.modules.oracles.cache import OracleCache
from questforge.modules.shared.exceptions import OracleUnavailableError

logger = get_logger(__name__)

T = TypeVar("T")


class OracleGuard:
    """
    One guard is shared by all requirement handlers of an evaluator; each
    oracle name gets its own circuit breaker.
    """

    def __init__(
        self,
        timeout_seconds: Optional[float] = None,
        cache: Optional[OracleCache] = None,
    ) -> None:
        self._timeout = timeout_seconds or Config.ORACLE_TIMEOUT_SECONDS
        self._cache = cache
        self._breakers: Dict[str, CircuitBreaker] = {}

    @property
    def timeout_seconds(self) -> float:
        return self._timeout

    def breaker(self, oracle: str) -> CircuitBreaker:
        if oracle not in self._breakers:
            self._breakers[oracle] = CircuitBreaker(name=f"oracle:{oracle}")
        return self._breakers[oracle]

    async def call(
        self,
        oracle: str,
        factory: Callable[[], Awaitable[T]],
        *,
        cache_key: Optional[str] = None,
    ) -> T:
        """
        Run one oracle call.

        Raises
        ------
        OracleUnavailableError
            Circuit open, timeout, or any adapter exception.
        """
        if cache_key is not None and self._cache is not None:
            cached = await self._cache.get(oracle, cache_key)
            if not OracleCache.is_miss(cached):
                logger.debug(
                    "Oracle answer served from cache",
                    extra={"oracle": oracle, "cache_key": cache_key},
                )
                return cached

        breaker = self.breaker(oracle)
        if not await breaker.allow_request():
            raise OracleUnavailableError(oracle, "circuit open")

        try:
            result = await asyncio.wait_for(factory(), timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            await breaker.record_failure()
            raise OracleUnavailableError(
                oracle, f"timed out after {self._timeout}s"
            ) from exc
        except OracleUnavailableError:
            await breaker.record_failure()
            raise
        except Exception as exc:
            # Adapters are third-party code; any failure is an outage here
            await breaker.record_failure()
            raise OracleUnavailableError(
                oracle, f"{type(exc).__name__}: {exc}"
            ) from exc

        await breaker.record_success()

        if cache_key is not None and self._cache is not None:
            await self._cache.set(oracle, cache_key, result)

        return result

    async def check(
        self,
        oracle: str,
        factory: Callable[[], Awaitable[Any]],
        *,
        cache_key: Optional[str] = None,
    ) -> bool:
        """``call`` coerced to bool, with outages answered as False."""
        try:
            return bool(await self.call(oracle, factory, cache_key=cache_key))
        except OracleUnavailableError as exc:
            logger.warning(
                "Oracle unavailable; requirement treated as unsatisfied",
                extra={
                    "oracle": exc.oracle,
                    "reason": exc.reason,
                    "error_code": exc.error_code,
                },
            )
            return False

    def get_breaker_states(self) -> Dict[str, str]:
        return {name: b.state.value for name, b in self._breakers.items()}
