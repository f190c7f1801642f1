"""Fire-and-forget realtime notifications over Redis pub/sub.

Connected clients subscribe to ``<prefix>:<market_id>``. Publishing happens
on a background task after the business transaction has committed; a slow
or unavailable Redis never blocks nor fails a trade or a settlement.
"""

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from config.settings import settings
from src.pm_common.datetime_utils import utc_now
from src.pm_common.enums import MarketEvent
from src.pm_common.redis_client import get_redis

logger = logging.getLogger(__name__)


class MarketEventNotifier:
    def __init__(
        self,
        redis_factory: Callable[[], Awaitable[aioredis.Redis]] = get_redis,
        channel_prefix: str | None = None,
        enabled: bool | None = None,
    ) -> None:
        self._redis_factory = redis_factory
        self._prefix = channel_prefix or settings.REALTIME_CHANNEL_PREFIX
        self._enabled = settings.REALTIME_ENABLED if enabled is None else enabled
        # strong refs so pending publishes are not garbage collected
        self._pending: set[asyncio.Task[None]] = set()

    def channel(self, market_id: str) -> str:
        return f"{self._prefix}:{market_id}"

    def publish(
        self, market_id: str, event: MarketEvent, payload: dict[str, Any]
    ) -> asyncio.Task[None] | None:
        """Schedule a publish and return immediately. Returns the task (or None if disabled)."""
        if not self._enabled:
            return None
        message = json.dumps(
            {
                "event": event.value,
                "market_id": market_id,
                "at": utc_now().isoformat(),
                "data": payload,
            },
            default=str,
        )
        task = asyncio.create_task(self._send(self.channel(market_id), message))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _send(self, channel: str, message: str) -> None:
        try:
            client = await self._redis_factory()
            await client.publish(channel, message)
        except (RedisError, OSError) as exc:
            logger.warning("Realtime publish to %s failed: %s", channel, exc)


_notifier: MarketEventNotifier | None = None


def get_notifier() -> MarketEventNotifier:
    global _notifier  # noqa: PLW0603
    if _notifier is None:
        _notifier = MarketEventNotifier()
    return _notifier
