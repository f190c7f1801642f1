"""Shared Redis connection for realtime market events.

Only the pub/sub fan-out in ``notifier.py`` talks to Redis; balances,
positions and pools live in PostgreSQL. Nothing connects while
REALTIME_ENABLED is off.
"""

import redis.asyncio as aioredis

from config.settings import settings

_publisher: aioredis.Redis | None = None


async def get_redis() -> aioredis.Redis:
    global _publisher  # noqa: PLW0603
    if _publisher is None:
        _publisher = aioredis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            health_check_interval=30,
        )
    return _publisher


async def ping_redis() -> None:
    """Fail startup early when realtime is on but Redis is unreachable."""
    if settings.REALTIME_ENABLED:
        await (await get_redis()).ping()


async def close_redis() -> None:
    global _publisher  # noqa: PLW0603
    if _publisher is not None:
        publisher, _publisher = _publisher, None
        await publisher.aclose()
