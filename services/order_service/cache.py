from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Protocol

import structlog
from redis import asyncio as aioredis
from redis.exceptions import RedisError

from shared.observability import order_sequence_cache_errors_total
from .errors import CacheUnavailable

if TYPE_CHECKING:
    from .sequence import ScopeKey

logger = structlog.get_logger(__name__)

# Both scripts run atomically inside Redis. INCR never creates a missing key on
# its own, so a counter that expired or was flushed cannot restart at 1 while
# the record store already holds higher numbers for that scope.
INCR_EXISTING_SCRIPT = """
if redis.call("EXISTS", KEYS[1]) == 0 then
    return false
end
local value = redis.call("INCR", KEYS[1])
if tonumber(ARGV[1]) > 0 then
    redis.call("EXPIRE", KEYS[1], ARGV[1])
end
return value
"""

INCR_FROM_SCRIPT = """
redis.call("SET", KEYS[1], ARGV[1], "NX")
local value = redis.call("INCR", KEYS[1])
if tonumber(ARGV[2]) > 0 then
    redis.call("EXPIRE", KEYS[1], ARGV[2])
end
return value
"""


class SequenceCache(Protocol):
    async def get(self, scope: ScopeKey) -> Optional[int]: ...

    async def set(self, scope: ScopeKey, value: int) -> None: ...


class AtomicSequenceCache(SequenceCache, Protocol):
    async def incr_existing(self, scope: ScopeKey) -> Optional[int]: ...

    async def incr_from(self, scope: ScopeKey, floor: int) -> int: ...


class RedisSequenceCache:
    """
    Last-issued running number per scope, stored as a string integer under
    ``order:{customer_id}:{ddmmyy}``.

    Every RedisError becomes CacheUnavailable. Nothing here retries; the
    sequence generator decides what a failure means.
    """

    def __init__(self, client: aioredis.Redis, ttl_seconds: int | None = None):
        self.client = client
        self.ttl_seconds = ttl_seconds or None

    def _failed(self, scope: ScopeKey, operation: str, e: Exception) -> CacheUnavailable:
        order_sequence_cache_errors_total.labels(operation=operation).inc()
        return CacheUnavailable(scope, operation, e)

    async def get(self, scope: ScopeKey) -> Optional[int]:
        try:
            raw = await self.client.get(scope.cache_key)
        except RedisError as e:
            raise self._failed(scope, "get", e) from e
        if raw is None:
            return None
        try:
            return int(raw)
        except ValueError as e:
            # A value we cannot parse is no better than a missing one
            logger.warning("sequence_cache_corrupt_value", key=scope.cache_key, value=raw)
            raise self._failed(scope, "get", e) from e

    async def set(self, scope: ScopeKey, value: int) -> None:
        try:
            await self.client.set(scope.cache_key, str(value), ex=self.ttl_seconds)
        except RedisError as e:
            raise self._failed(scope, "set", e) from e

    async def incr_existing(self, scope: ScopeKey) -> Optional[int]:
        """INCR only if the counter exists. None means it must be seeded first."""
        try:
            value = await self.client.eval(
                INCR_EXISTING_SCRIPT, 1, scope.cache_key, self.ttl_seconds or 0
            )
        except RedisError as e:
            raise self._failed(scope, "incr", e) from e
        return None if value is None else int(value)

    async def incr_from(self, scope: ScopeKey, floor: int) -> int:
        """Seeds a missing counter with ``floor``, then INCR, in one step."""
        try:
            value = await self.client.eval(
                INCR_FROM_SCRIPT, 1, scope.cache_key, floor, self.ttl_seconds or 0
            )
        except RedisError as e:
            raise self._failed(scope, "seed", e) from e
        return int(value)
