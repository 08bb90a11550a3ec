"""Shared Redis connection for the durable logo cache."""

from loguru import logger
from redis.asyncio import Redis

from config.settings import settings

_redis_client: Redis | None = None


async def get_redis() -> Redis | None:
    """Shared client, or None when logo persistence is disabled."""
    global _redis_client
    if not settings.enable_logo_persistence:
        return None
    if _redis_client is None:
        _redis_client = Redis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_connect_timeout=settings.request_timeout_sec,
            socket_timeout=settings.request_timeout_sec,
        )
    return _redis_client


async def ping_redis(client: Redis | None) -> bool:
    """True when ``client`` answers PING; connection errors count as down."""
    if client is None:
        return False
    try:
        return bool(await client.ping())
    except Exception as e:
        logger.debug(f"[REDIS] Ping failed: {e}")
        return False


async def close_redis() -> None:
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None
