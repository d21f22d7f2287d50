"""
Redis cache for the booking calendar's disabled-date sets.

CACHING STRATEGY
================

What we cache:
  - The disabled-date list per adventure and guest
  - Key pattern: "calendar:disabled:{adventure_id}:{user_id or 'anon'}"

Why:
  - The calendar loads on every adventure page view
  - The set only changes when an operator blocks a date or a booking is
    written, and booking writes invalidate it explicitly

Invalidation strategy:
  - On booking create / confirm / cancel: delete every key for that
    adventure ("calendar:disabled:{adventure_id}:*") via SCAN
  - TTL-based expiry as safety net for operator edits made elsewhere

Redis is advisory. When it is disabled or unreachable every helper returns
as if the cache were empty and the calendar is computed from the database.
"""

import json
from datetime import date
from typing import Optional

import redis.asyncio as redis

from adventure_booking.core.config import get_settings
from adventure_booking.core.logging import get_logger
from adventure_booking.core.metrics import record_cache_operation

logger = get_logger(__name__)
settings = get_settings()

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
        await _redis_client.aclose()
        _redis_client = None


def _make_calendar_key(adventure_id: int, user_id: Optional[str]) -> str:
    return f"calendar:disabled:{adventure_id}:{user_id or 'anon'}"


async def get_cached_disabled_dates(adventure_id: int, user_id: Optional[str]) -> Optional[list[date]]:
    client = await get_redis()
    if not client:
        return None

    key = _make_calendar_key(adventure_id, user_id)
    try:
        data = await client.get(key)
        if data:
            record_cache_operation("get", "hit")
            return [date.fromisoformat(value) for value in json.loads(data)]
        record_cache_operation("get", "miss")
    except Exception as e:
        record_cache_operation("get", "error")
        logger.error("cache_get_error", key=key, error=str(e))

    return None


async def set_cached_disabled_dates(adventure_id: int, user_id: Optional[str], dates: list[date]) -> None:
    client = await get_redis()
    if not client:
        return

    key = _make_calendar_key(adventure_id, user_id)
    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps([d.isoformat() for d in dates]))
        record_cache_operation("set", "ok")
        logger.debug("cache_set", key=key, ttl=settings.REDIS_CACHE_TTL)
    except Exception as e:
        record_cache_operation("set", "error")
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_calendar_cache(adventure_id: int) -> None:
    """Drop every cached calendar for one adventure, whichever guest it was built for."""
    client = await get_redis()
    if not client:
        return

    try:
        deleted = 0
        async for key in client.scan_iter(match=f"calendar:disabled:{adventure_id}:*", count=100):
            await client.delete(key)
            deleted += 1
        record_cache_operation("invalidate", "ok")
        logger.info("cache_invalidated", adventure_id=adventure_id, keys_deleted=deleted)
    except Exception as e:
        record_cache_operation("invalidate", "error")
        logger.error("cache_invalidation_error", adventure_id=adventure_id, error=str(e))


async def get_cache_stats() -> dict:
    """Get Redis cache statistics for the health endpoint."""
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
