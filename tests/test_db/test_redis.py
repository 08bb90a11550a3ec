"""Tests for the shared Redis helpers."""

from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from config.settings import Settings
from src.db import redis as redis_db


@pytest.mark.asyncio
async def test_disabled_persistence_returns_none(monkeypatch):
    monkeypatch.setattr(redis_db, "settings", Settings(enable_logo_persistence=False))
    monkeypatch.setattr(redis_db, "_redis_client", None)

    assert await redis_db.get_redis() is None


@pytest.mark.asyncio
async def test_client_is_shared_until_closed(monkeypatch):
    monkeypatch.setattr(
        redis_db,
        "settings",
        Settings(enable_logo_persistence=True, redis_url="redis://localhost:6390/2"),
    )
    monkeypatch.setattr(redis_db, "_redis_client", None)

    first = await redis_db.get_redis()
    assert first is not None
    assert await redis_db.get_redis() is first
    assert first.connection_pool.connection_kwargs["db"] == 2

    await redis_db.close_redis()
    assert redis_db._redis_client is None


@pytest.mark.asyncio
async def test_ping():
    assert await redis_db.ping_redis(None) is False

    healthy = AsyncMock()
    healthy.ping = AsyncMock(return_value=True)
    assert await redis_db.ping_redis(healthy) is True

    down = AsyncMock()
    down.ping = AsyncMock(side_effect=RedisConnectionError("refused"))
    assert await redis_db.ping_redis(down) is False
