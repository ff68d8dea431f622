"""
Redis infrastructure: optional async client backing the oracle answer cache.
"""

from __future__ import annotations

from questforge.core.redis.service import RedisService

__all__ = ["RedisService"]
