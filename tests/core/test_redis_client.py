"""
Tests for the Redis client module.

Basic operations just wrap redis.asyncio, so these tests focus on the
fail-soft behavior callers rely on.
"""
from unittest.mock import AsyncMock, patch

from redis.exceptions import RedisError

from core.redis import RedisClient, get_redis_client, set_redis_client


class TestRedisClientDisabled:
    """Tests for disabled Redis client."""

    async def test__disabled_client__returns_false_on_ping(self) -> None:
        """Disabled client returns False on ping."""
        client = RedisClient("redis://localhost:6379", enabled=False)
        await client.connect()

        assert client.is_connected is False
        assert await client.ping() is False

        await client.close()

    async def test__disabled_client__returns_none_on_get(self) -> None:
        """Disabled client returns None on get."""
        client = RedisClient("redis://localhost:6379", enabled=False)
        await client.connect()

        assert await client.get("any:key") is None

    async def test__disabled_client__returns_false_on_writes(self) -> None:
        """Disabled client reports every write as not stored."""
        client = RedisClient("redis://localhost:6379", enabled=False)
        await client.connect()

        assert await client.set("k", "v") is False
        assert await client.setex("k", 60, "v") is False
        assert await client.delete("k") is False
        assert await client.flushdb() is False


class TestRedisClientErrors:
    """Tests for graceful fallback when Redis commands fail."""

    def _client_with_failing_redis(self) -> RedisClient:
        client = RedisClient("redis://localhost:6379")
        failing = AsyncMock()
        failing.get.side_effect = RedisError("boom")
        failing.set.side_effect = RedisError("boom")
        failing.setex.side_effect = RedisError("boom")
        failing.delete.side_effect = RedisError("boom")
        failing.ping.side_effect = RedisError("boom")
        client._client = failing
        return client

    async def test__get__returns_none_on_error(self) -> None:
        """GET errors read as a miss."""
        client = self._client_with_failing_redis()

        assert await client.get("k") is None

    async def test__set__returns_false_on_error(self) -> None:
        """SET errors report the write as not stored."""
        client = self._client_with_failing_redis()

        assert await client.set("k", "v") is False
        assert await client.setex("k", 60, "v") is False

    async def test__delete__returns_false_on_error(self) -> None:
        """DELETE errors report failure without raising."""
        client = self._client_with_failing_redis()

        assert await client.delete("k") is False

    async def test__ping__returns_false_on_error(self) -> None:
        """PING errors report Redis as unavailable."""
        client = self._client_with_failing_redis()

        assert await client.ping() is False

    async def test__connect__failure_leaves_client_disconnected(self) -> None:
        """A failed connection leaves the client in fallback mode."""
        client = RedisClient("redis://localhost:6379")
        with patch("core.redis.Redis") as redis_cls:
            redis_cls.return_value.ping = AsyncMock(side_effect=RedisError("refused"))
            await client.connect()

        assert client.is_connected is False
        assert await client.get("k") is None


class TestRedisClientSuccess:
    """Tests for delegation to the underlying client."""

    async def test__set__without_expiry_uses_plain_set(self) -> None:
        """set() stores without a TTL."""
        client = RedisClient("redis://localhost:6379")
        client._client = AsyncMock()

        assert await client.set("k", "v") is True
        client._client.set.assert_awaited_once_with("k", "v")

    async def test__setex__passes_expiry(self) -> None:
        """setex() forwards the expiry in seconds."""
        client = RedisClient("redis://localhost:6379")
        client._client = AsyncMock()

        assert await client.setex("k", 120, "v") is True
        client._client.setex.assert_awaited_once_with("k", 120, "v")


class TestGlobalRedisClient:
    """Tests for the global client accessor."""

    def test__set_redis_client__round_trips(self) -> None:
        """The global client can be set and cleared."""
        client = RedisClient("redis://localhost:6379", enabled=False)
        set_redis_client(client)
        try:
            assert get_redis_client() is client
        finally:
            set_redis_client(None)
        assert get_redis_client() is None
