from __future__ import annotations

import logging

from redis.asyncio import Redis
from redis.exceptions import RedisError

from dashucl.core.config import get_settings

logger = logging.getLogger(__name__)

_redis_client: Redis | None = None


async def get_redis() -> Redis:
    global _redis_client
    if _redis_client is None:
        settings = get_settings()
        _redis_client = Redis.from_url(settings.redis_url, encoding="utf-8", decode_responses=True)
    return _redis_client


async def ping_redis(redis: Redis) -> bool:
    try:
        return bool(await redis.ping())
    except RedisError as exc:
        logger.warning("Redis ping failed", extra={"error": str(exc)})
        return False


async def close_redis() -> None:
    global _redis_client
    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None
