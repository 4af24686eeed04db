"""Shared Redis connection, used for the per-ticket update locks."""
from redis.asyncio import ConnectionPool, Redis
from app.core.config import settings

redis_pool = ConnectionPool.from_url(settings.REDIS_URL, decode_responses=True)
redis_client = Redis(connection_pool=redis_pool)


async def close_redis() -> None:
    await redis_client.aclose()
    await redis_pool.disconnect()
