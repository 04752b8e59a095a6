"""
Redis caching service for the "events with free places on a day" listing.

CACHING STRATEGY
================

What we cache:
  - Available-event listings per day (JSON-serialized)
  - Cache key pattern: "events:available:date={YYYY-MM-DD}"

Why:
  - Front desks poll the day's availability far more often than bookings happen
  - Each listing is an aggregate over bookings (SUM per event), not a row read

Invalidation strategy:
  - Any booking write (create, update, status change, delete): occupancy changed
  - Any event write (create, bulk create, delete): the set of events changed
  - TTL-based expiry as safety net (REDIS_CACHE_TTL)

  All keys share the "events:available:" prefix so we can SCAN and delete them.

Why NOT cache availability of a single event or anything the admission
engine reads:
  - Admission needs real-time occupancy (stale data = overbooking)

Redis is advisory: when it is disabled or failing we log and fall through
to the database.
"""

import json
from datetime import date
from typing import Optional

import redis.asyncio as redis
from booking_engine.core.config import get_settings
from booking_engine.core.logging import get_logger
from booking_engine.core.metrics import record_cache_operation

logger = get_logger(__name__)
settings = get_settings()

AVAILABLE_EVENTS_PREFIX = "events:available:"

_redis_client: Optional[redis.Redis] = None


async def get_redis() -> Optional[redis.Redis]:
    """Get or create Redis connection. Returns None if Redis is disabled."""
    global _redis_client

    if not settings.REDIS_ENABLED:
        return None

    if _redis_client is None:
        try:
            _redis_client = redis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
            )
            await _redis_client.ping()
            logger.info("redis_connected", url=settings.REDIS_URL)
        except Exception as e:
            logger.error("redis_connection_failed", error=str(e))
            _redis_client = None
            return None

    return _redis_client


async def close_redis() -> None:
    """Close Redis connection on shutdown."""
    global _redis_client
    if _redis_client:
        await _redis_client.close()
        _redis_client = None


def _make_available_key(on_date: date) -> str:
    return f"{AVAILABLE_EVENTS_PREFIX}date={on_date.isoformat()}"


async def get_cached_available_events(on_date: date) -> Optional[dict]:
    client = await get_redis()
    if not client:
        return None

    key = _make_available_key(on_date)
    try:
        data = await client.get(key)
        record_cache_operation("get", hit=bool(data))
        if data:
            logger.debug("cache_hit", key=key)
            return json.loads(data)
        logger.debug("cache_miss", key=key)
    except Exception as e:
        logger.error("cache_get_error", key=key, error=str(e))

    return None


async def set_cached_available_events(on_date: date, data: dict) -> None:
    client = await get_redis()
    if not client:
        return

    key = _make_available_key(on_date)
    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(data, default=str))
        logger.debug("cache_set", key=key, ttl=settings.REDIS_CACHE_TTL)
    except Exception as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_event_cache() -> None:
    """Drop every cached availability listing."""
    client = await get_redis()
    if not client:
        return

    try:
        deleted = 0
        async for key in client.scan_iter(match=f"{AVAILABLE_EVENTS_PREFIX}*", count=100):
            await client.delete(key)
            deleted += 1
        logger.info("cache_invalidated", keys_deleted=deleted)
    except Exception as e:
        logger.error("cache_invalidation_error", error=str(e))


async def get_cache_stats() -> dict:
    """Get Redis cache statistics for monitoring."""
    client = await get_redis()
    if not client:
        return {"status": "disabled"}

    try:
        info = await client.info("stats")
        hits = info.get("keyspace_hits", 0)
        misses = info.get("keyspace_misses", 0)
        return {
            "status": "connected",
            "hits": hits,
            "misses": misses,
            "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
        }
    except Exception as e:
        return {"status": "error", "error": str(e)}
