from unittest.mock import AsyncMock, patch

import pytest

from config.settings import settings
from src.pm_common import redis_client


@pytest.fixture
def fake_redis(monkeypatch):
    monkeypatch.setattr(redis_client, "_publisher", None)
    client = AsyncMock()
    with patch.object(redis_client.aioredis, "from_url", return_value=client) as from_url:
        yield client, from_url


class TestRedisClient:
    async def test_connection_is_shared(self, fake_redis) -> None:
        client, from_url = fake_redis
        assert await redis_client.get_redis() is client
        assert await redis_client.get_redis() is client
        from_url.assert_called_once()
        assert from_url.call_args.args[0] == settings.REDIS_URL

    async def test_close_releases_and_allows_reconnect(self, fake_redis) -> None:
        client, from_url = fake_redis
        await redis_client.get_redis()
        await redis_client.close_redis()
        client.aclose.assert_awaited_once()
        await redis_client.get_redis()
        assert from_url.call_count == 2

    async def test_ping_only_when_realtime_enabled(self, fake_redis, monkeypatch) -> None:
        client, from_url = fake_redis
        monkeypatch.setattr(settings, "REALTIME_ENABLED", False)
        await redis_client.ping_redis()
        from_url.assert_not_called()

        monkeypatch.setattr(settings, "REALTIME_ENABLED", True)
        await redis_client.ping_redis()
        client.ping.assert_awaited_once()
