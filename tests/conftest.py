import asyncio
from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from services.order_service.errors import CacheUnavailable, RecordExists, RecordStoreError
from services.order_service.sequence import FallbackScanner, SequenceGenerator

JAKARTA = ZoneInfo("Asia/Jakarta")
FIXED_NOW = datetime(2026, 10, 18, 10, 30, tzinfo=JAKARTA)
DATE_PART = "181026"


class InMemorySequenceCache:
    """Dict-backed sequence cache. ``latency`` suspends the caller on every call."""

    def __init__(self, latency: float = 0.0):
        self.values = {}
        self.latency = latency
        self.fail_get = False
        self.fail_set = False
        self.expire_before_incr = False
        self.fail_incr = False
        self.set_calls = 0

    async def _pause(self):
        await asyncio.sleep(self.latency)

    async def get(self, scope):
        await self._pause()
        if self.fail_get:
            raise CacheUnavailable(scope, "get", ConnectionError("redis down"))
        return self.values.get(scope.cache_key)

    async def set(self, scope, value):
        await self._pause()
        self.set_calls += 1
        if self.fail_set:
            raise CacheUnavailable(scope, "set", ConnectionError("redis down"))
        self.values[scope.cache_key] = value

    async def incr_existing(self, scope):
        await self._pause()
        if self.fail_incr:
            raise CacheUnavailable(scope, "incr", ConnectionError("redis down"))
        if self.expire_before_incr:
            # The key lapses between calls, as a TTL expiry or FLUSHDB would do
            self.values.pop(scope.cache_key, None)
        if scope.cache_key not in self.values:
            return None
        self.values[scope.cache_key] += 1
        return self.values[scope.cache_key]

    async def incr_from(self, scope, floor):
        await self._pause()
        self.values.setdefault(scope.cache_key, floor)
        self.values[scope.cache_key] += 1
        return self.values[scope.cache_key]


class InMemoryRecordStore:
    """Write-once dict store. ``fail_puts`` makes the next N writes fail."""

    def __init__(self, keys=()):
        self.records = {key: {} for key in keys}
        self.fail_puts = 0
        self.fail_list = False
        self.put_calls = 0

    async def put(self, record):
        self.put_calls += 1
        if self.fail_puts:
            self.fail_puts -= 1
            raise RecordStoreError("disk full")
        if record.order_number in self.records:
            raise RecordExists(record.order_number)
        self.records[record.order_number] = record.to_document()

    async def list_keys(self, prefix):
        if self.fail_list:
            raise RecordStoreError("directory unreadable")
        return [key for key in self.records if key.startswith(prefix)]


def order_number(running_number, customer_id=1):
    return f"ORDER-{customer_id}-{DATE_PART}-{running_number:05d}"


@pytest.fixture
def cache():
    return InMemorySequenceCache()


@pytest.fixture
def store():
    return InMemoryRecordStore()


@pytest.fixture
def make_generator():
    def _make(cache, store, mode="locked", now=FIXED_NOW):
        return SequenceGenerator(
            cache,
            FallbackScanner(store),
            timezone="Asia/Jakarta",
            mode=mode,
            clock=lambda: now,
        )
    return _make


@pytest.fixture
def generator(make_generator, cache, store):
    return make_generator(cache, store)
