# tests/infra/test_redis_client.py
"""
Тесты для клиента Redis.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.infra.redis_client import RedisClient, escape_glob


async def _aiter(items):
    for item in items:
        yield item


class TestEscapeGlob:
    """Тесты экранирования шаблона SCAN."""

    def test_plain(self) -> None:
        assert escape_glob("rec/alice/") == "rec/alice/"

    def test_special_chars(self) -> None:
        assert escape_glob("a*b?[c]") == "a\\*b\\?\\[c\\]"


class TestRedisClient:
    """Тесты для RedisClient."""

    @pytest.fixture
    def redis_client(self) -> RedisClient:
        """Создаёт экземпляр RedisClient для тестов."""
        # Сбрасываем синглтон для каждого теста
        RedisClient._instance = None
        RedisClient._client = None
        return RedisClient()

    def test_singleton(self) -> None:
        """Проверяет паттерн Singleton."""
        RedisClient._instance = None

        client1 = RedisClient()
        client2 = RedisClient()

        assert client1 is client2

    def test_client_not_initialized(self, redis_client: RedisClient) -> None:
        """Проверяет ошибку при обращении к неинициализированному клиенту."""
        with pytest.raises(RuntimeError, match="Redis клиент не инициализирован"):
            _ = redis_client.client

    def test_make_key_without_namespace(self, redis_client: RedisClient) -> None:
        """Без namespace ключ не меняется."""
        assert redis_client._make_key("last:alice") == "last:alice"

    def test_make_key_with_namespace(self, redis_client: RedisClient) -> None:
        redis_client._namespace = "ot"
        assert redis_client._make_key("last:alice") == "ot:last:alice"
        assert redis_client._strip_key("ot:last:alice") == "last:alice"

    @pytest.mark.asyncio
    async def test_connect(self, redis_client: RedisClient) -> None:
        """Проверяет подключение к Redis."""
        mock_redis = AsyncMock()
        mock_redis.ping = AsyncMock(return_value=True)

        with patch("redis.asyncio.from_url", return_value=mock_redis) as mock_from_url:
            await redis_client.connect(
                url="redis://localhost:6379/0",
                max_connections=10,
                namespace="",
            )

        assert redis_client._client is mock_redis
        mock_redis.ping.assert_called_once()
        mock_from_url.assert_called_once_with(
            "redis://localhost:6379/0", max_connections=10, decode_responses=True
        )

    @pytest.mark.asyncio
    async def test_connect_already_connected(self, redis_client: RedisClient) -> None:
        """Проверяет, что повторное подключение пропускается."""
        redis_client._client = AsyncMock()

        with patch("redis.asyncio.from_url") as mock_from_url:
            await redis_client.connect(url="redis://localhost:6379/0", namespace="")

        mock_from_url.assert_not_called()

    @pytest.mark.asyncio
    async def test_disconnect(self, redis_client: RedisClient) -> None:
        """Проверяет отключение от Redis."""
        mock_redis = AsyncMock()
        redis_client._client = mock_redis

        await redis_client.disconnect()

        mock_redis.aclose.assert_called_once()
        assert redis_client._client is None

    @pytest.mark.asyncio
    async def test_get(self, redis_client: RedisClient) -> None:
        mock_redis = AsyncMock()
        mock_redis.get.return_value = "[]"
        redis_client._client = mock_redis

        assert await redis_client.get("last:all") == "[]"
        mock_redis.get.assert_called_once_with("last:all")

    @pytest.mark.asyncio
    async def test_set(self, redis_client: RedisClient) -> None:
        mock_redis = AsyncMock()
        mock_redis.set.return_value = True
        redis_client._client = mock_redis

        assert await redis_client.set("key", "value") is True
        mock_redis.set.assert_called_once_with("key", "value", ex=None)

    @pytest.mark.asyncio
    async def test_get_json(self, redis_client: RedisClient) -> None:
        mock_redis = AsyncMock()
        mock_redis.get.return_value = '[{"lat":1.0}]'
        redis_client._client = mock_redis

        assert await redis_client.get_json("last:alice") == [{"lat": 1.0}]

    @pytest.mark.asyncio
    async def test_get_json_missing(self, redis_client: RedisClient) -> None:
        mock_redis = AsyncMock()
        mock_redis.get.return_value = None
        redis_client._client = mock_redis

        assert await redis_client.get_json("last:alice") is None

    @pytest.mark.asyncio
    async def test_get_json_invalid(self, redis_client: RedisClient) -> None:
        """Повреждённое значение читается как отсутствующее."""
        mock_redis = AsyncMock()
        mock_redis.get.return_value = "invalid json"
        redis_client._client = mock_redis

        assert await redis_client.get_json("last:alice") is None

    @pytest.mark.asyncio
    async def test_set_json_compact(self, redis_client: RedisClient) -> None:
        mock_redis = AsyncMock()
        mock_redis.set.return_value = True
        redis_client._client = mock_redis

        await redis_client.set_json("last:alice", [{"lat": 1.0, "desc": "Дом"}])

        mock_redis.set.assert_called_once_with(
            "last:alice", '[{"lat":1.0,"desc":"Дом"}]', ex=None
        )

    @pytest.mark.asyncio
    async def test_scan_keys(self, redis_client: RedisClient) -> None:
        """Ключи возвращаются без namespace, отсортированными и без дублей."""
        redis_client._namespace = "ot"
        mock_redis = MagicMock()
        mock_redis.scan_iter = MagicMock(
            return_value=_aiter(["ot:rec/b/x/2024-01.rec", "ot:rec/a/x/2024-01.rec", "ot:rec/a/x/2024-01.rec"])
        )
        redis_client._client = mock_redis

        keys = await redis_client.scan_keys("rec/")

        assert keys == ["rec/a/x/2024-01.rec", "rec/b/x/2024-01.rec"]
        mock_redis.scan_iter.assert_called_once_with(match="ot:rec/*", count=500)

    @pytest.mark.asyncio
    async def test_health_check(self, redis_client: RedisClient) -> None:
        mock_redis = AsyncMock()
        mock_redis.ping.return_value = True
        redis_client._client = mock_redis

        assert await redis_client.health_check() is True

    @pytest.mark.asyncio
    async def test_health_check_not_connected(self, redis_client: RedisClient) -> None:
        assert await redis_client.health_check() is False
