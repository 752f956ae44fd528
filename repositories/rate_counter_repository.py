"""
Rate counter persistence with compare-and-set.

Both stores expose the same two calls:

- load(phone)                     — current counter, version 0 when absent
- save(counter, expected_version) — write only if the stored version still
                                    equals *expected_version*; False otherwise

The RateLimiter retries on False, which makes its read-check-increment atomic
across any number of handler processes.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol

import redis.asyncio as aioredis
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.errors import DuplicateKeyError, PyMongoError
from redis.exceptions import RedisError

from errors import PersistenceError
from schemas.models.rate_counter import RateCounter
from shared.datetime_utils import from_timestamp
from shared.logging import get_logger, mask_phone

log = get_logger(__name__)

RATE_COUNTER_COLLECTION = "rate-counters"

# Counters idle this long are garbage-collected
RATE_COUNTER_IDLE_SECONDS = 7 * 86400


class RateCounterRepository(Protocol):
    async def load(self, phone: str) -> RateCounter: ...

    async def save(self, counter: RateCounter, expected_version: int) -> bool: ...


def _store_error(backend: str, operation: str, phone: str, e: Exception) -> PersistenceError:
    log.error(
        "rate_counter_store_error",
        backend=backend,
        operation=operation,
        phone=mask_phone(phone),
        error=str(e),
        error_type=type(e).__name__,
    )
    return PersistenceError("Rate limit store unavailable")


class MongoRateCounterRepository:
    def __init__(self, collection: AsyncCollection) -> None:
        self._col = collection

    async def ensure_indexes(self) -> None:
        await self._col.create_index(
            "updated_at", expireAfterSeconds=RATE_COUNTER_IDLE_SECONDS
        )

    async def load(self, phone: str) -> RateCounter:
        try:
            doc = await self._col.find_one({"_id": phone})
        except PyMongoError as e:
            raise _store_error("mongodb", "load", phone, e) from e
        if doc is None:
            return RateCounter(_id=phone)
        return RateCounter.from_mongo(doc)

    async def save(self, counter: RateCounter, expected_version: int) -> bool:
        doc = counter.to_mongo()
        try:
            if expected_version == 0:
                await self._col.insert_one(doc)
                return True
            fields = {k: v for k, v in doc.items() if k != "_id"}
            result = await self._col.update_one(
                {"_id": counter.id, "version": expected_version}, {"$set": fields}
            )
        except DuplicateKeyError:
            # Another request created the counter first
            return False
        except PyMongoError as e:
            raise _store_error("mongodb", "save", counter.id or "", e) from e
        return result.matched_count == 1


# KEYS[1] counter hash
# ARGV: expected version, hourly count, hourly start, daily count, daily start,
#       new version, updated_at, ttl seconds
_COMPARE_AND_SET_LUA = """
local current = redis.call('HGET', KEYS[1], 'version')
if (current or '0') ~= ARGV[1] then
    return 0
end
redis.call('HSET', KEYS[1],
    'hourly_count', ARGV[2],
    'hourly_window_start', ARGV[3],
    'daily_count', ARGV[4],
    'daily_window_start', ARGV[5],
    'version', ARGV[6],
    'updated_at', ARGV[7])
redis.call('EXPIRE', KEYS[1], ARGV[8])
return 1
"""


def _epoch(value: Optional[datetime]) -> str:
    return "" if value is None else repr(value.timestamp())


def _parse_epoch(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return from_timestamp(float(value))


class RedisRateCounterRepository:
    def __init__(self, redis_client: aioredis.Redis, ttl_seconds: int = 86400) -> None:
        self._redis = redis_client
        self.ttl_seconds = ttl_seconds
        self._compare_and_set = redis_client.register_script(_COMPARE_AND_SET_LUA)

    def _key(self, phone: str) -> str:
        return f"otp_rate:{phone}"

    async def load(self, phone: str) -> RateCounter:
        try:
            raw = await self._redis.hgetall(self._key(phone))
        except RedisError as e:
            raise _store_error("redis", "load", phone, e) from e
        if not raw:
            return RateCounter(_id=phone)
        return RateCounter(
            _id=phone,
            hourly_count=int(raw.get("hourly_count") or 0),
            hourly_window_start=_parse_epoch(raw.get("hourly_window_start")),
            daily_count=int(raw.get("daily_count") or 0),
            daily_window_start=_parse_epoch(raw.get("daily_window_start")),
            version=int(raw.get("version") or 0),
            updated_at=_parse_epoch(raw.get("updated_at")),
        )

    async def save(self, counter: RateCounter, expected_version: int) -> bool:
        phone = counter.id or ""
        try:
            result = await self._compare_and_set(
                keys=[self._key(phone)],
                args=[
                    str(expected_version),
                    str(counter.hourly_count),
                    _epoch(counter.hourly_window_start),
                    str(counter.daily_count),
                    _epoch(counter.daily_window_start),
                    str(counter.version),
                    _epoch(counter.updated_at),
                    str(self.ttl_seconds),
                ],
            )
        except RedisError as e:
            raise _store_error("redis", "save", phone, e) from e
        return int(result) == 1
