"""
Running-number generation per (customer, calendar day) scope.

The cache holds the last number issued for a scope. When it has nothing
(first order of the day, or Redis was flushed) the number is rebuilt by
scanning the record store for that scope's order numbers.

The plain read-increment-write against the cache is not atomic: two tasks
that both read before either writes get the same number. ``mode`` picks how
that window is closed:

- ``locked``: the whole read-increment-write runs under an asyncio.Lock per
  scope. Safe for any number of tasks in one process.
- ``atomic``: every number comes from INCR inside a Redis script that never
  creates a missing counter; a missing one is seeded from the scan (SET NX)
  in the same script. Safe across processes sharing the same Redis, and a
  counter that expires between calls cannot restart at 1.
- ``unsafe``: no serialization. Reproduces the race; only for comparison.
"""
from __future__ import annotations

import asyncio
import re
import weakref
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Optional
from zoneinfo import ZoneInfo

import structlog

from shared.observability import order_sequence_fallback_scans_total
from .cache import SequenceCache
from .errors import CacheUnavailable, RecordStoreError, ScanFailed
from .repository import RecordStore

logger = structlog.get_logger(__name__)

SEQUENCE_MODES = ("locked", "atomic", "unsafe")
RUNNING_NUMBER_DIGITS = 5


@dataclass(frozen=True)
class ScopeKey:
    customer_id: int
    day: date

    @classmethod
    def for_instant(cls, customer_id: int, instant: datetime, tz: ZoneInfo) -> "ScopeKey":
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=tz)
        return cls(customer_id, instant.astimezone(tz).date())

    @property
    def date_part(self) -> str:
        return self.day.strftime("%d%m%y")

    @property
    def cache_key(self) -> str:
        return f"order:{self.customer_id}:{self.date_part}"

    @property
    def prefix(self) -> str:
        return f"ORDER-{self.customer_id}-{self.date_part}-"

    @property
    def pattern(self) -> re.Pattern:
        return re.compile(rf"^{re.escape(self.prefix)}(\d{{{RUNNING_NUMBER_DIGITS}}})$")

    def order_number(self, running_number: int) -> str:
        return f"{self.prefix}{running_number:0{RUNNING_NUMBER_DIGITS}d}"

    def __str__(self) -> str:
        return self.cache_key


class FallbackScanner:
    """Finds the highest running number already stored for a scope."""

    def __init__(self, store: RecordStore):
        self.store = store

    async def scan(self, scope: ScopeKey) -> int:
        try:
            keys = await self.store.list_keys(scope.prefix)
        except RecordStoreError as e:
            # Lenient on purpose: an unreadable store counts as "no orders yet today"
            failure = ScanFailed(scope, e)
            logger.warning(
                "fallback_scan_failed",
                scope=str(scope),
                error=str(failure),
                assumed_last_number=0,
            )
            order_sequence_fallback_scans_total.labels(outcome="error").inc()
            return 0

        pattern = scope.pattern
        highest = 0
        for key in keys:
            match = pattern.match(key)
            if match:
                highest = max(highest, int(match.group(1)))

        order_sequence_fallback_scans_total.labels(outcome="found" if highest else "empty").inc()
        logger.info("fallback_scan_completed", scope=str(scope), matched_keys=len(keys), last_number=highest)
        return highest


class SequenceGenerator:
    def __init__(
        self,
        cache: SequenceCache,
        scanner: FallbackScanner,
        timezone: str = "Asia/Jakarta",
        mode: str = "locked",
        clock: Optional[Callable[[], datetime]] = None,
    ):
        if mode not in SEQUENCE_MODES:
            raise ValueError(f"Unknown sequence mode {mode!r}, expected one of {SEQUENCE_MODES}")
        self.cache = cache
        self.scanner = scanner
        self.tz = ZoneInfo(timezone)
        self.mode = mode
        self.clock = clock or (lambda: datetime.now(self.tz))
        self._locks: "weakref.WeakValueDictionary[ScopeKey, asyncio.Lock]" = weakref.WeakValueDictionary()

    def scope_for(self, customer_id: int) -> ScopeKey:
        return ScopeKey.for_instant(customer_id, self.clock(), self.tz)

    def _lock_for(self, scope: ScopeKey) -> asyncio.Lock:
        lock = self._locks.get(scope)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[scope] = lock
        return lock

    async def next(self, customer_id: int) -> str:
        """Issues the next order number for this customer's scope today."""
        scope = self.scope_for(customer_id)

        if self.mode == "atomic":
            value = await self._next_atomic(scope)
        elif self.mode == "locked":
            lock = self._lock_for(scope)
            async with lock:
                value = await self._next_read_write(scope)
        else:
            value = await self._next_read_write(scope)

        order_number = scope.order_number(value)
        logger.info("order_number_issued", scope=str(scope), running_number=value, order_number=order_number)
        return order_number

    async def _last_issued(self, scope: ScopeKey) -> int:
        try:
            value = await self.cache.get(scope)
        except CacheUnavailable as e:
            logger.warning("sequence_cache_unavailable", scope=str(scope), operation="get", error=str(e.cause))
            value = None

        if value is None:
            value = await self.scanner.scan(scope)
        return value

    async def _next_read_write(self, scope: ScopeKey) -> int:
        value = await self._last_issued(scope) + 1
        try:
            await self.cache.set(scope, value)
        except CacheUnavailable as e:
            # The number is still good: once its record is stored, the next scan sees it
            logger.warning(
                "sequence_cache_write_failed",
                scope=str(scope),
                running_number=value,
                error=str(e.cause),
            )
        return value

    async def _next_atomic(self, scope: ScopeKey) -> int:
        try:
            value = await self.cache.incr_existing(scope)
            if value is None:
                floor = await self.scanner.scan(scope)
                value = await self.cache.incr_from(scope, floor)
                logger.info("sequence_cache_seeded", scope=str(scope), floor=floor, running_number=value)
            return value
        except CacheUnavailable as e:
            logger.warning(
                "sequence_cache_unavailable",
                scope=str(scope),
                operation=e.operation,
                error=str(e.cause),
                fallback="locked",
            )
        async with self._lock_for(scope):
            return await self._next_read_write(scope)
