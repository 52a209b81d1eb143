# src/infra/redis_client.py
"""
Клиент Redis.

Хранит проекции последних локаций (last:*) и, при STORAGE_BACKEND=redis,
объекты журналов (rec/...). Значения строковые, JSON сериализуется компактно.
"""

from __future__ import annotations

import json
from typing import Any

import redis.asyncio as redis

from src.common.logger import log_error, log_info, log_warning
from src.common.constants import TypeMsg


# Спецсимволы glob-шаблона SCAN MATCH
_GLOB_SPECIAL = frozenset("*?[]\\")


def escape_glob(value: str) -> str:
    """Экранирует спецсимволы, чтобы префикс совпадал буквально."""
    return "".join("\\" + ch if ch in _GLOB_SPECIAL else ch for ch in value)


class RedisClient:
    """
    Асинхронный клиент Redis (Singleton на процесс).

    Если задан namespace, он добавляется ко всем ключам как '<namespace>:'
    и снимается с ключей, возвращаемых SCAN.
    """

    _instance: RedisClient | None = None
    _client: redis.Redis | None = None

    def __new__(cls) -> RedisClient:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self) -> None:
        if hasattr(self, "_initialized"):
            return
        self._initialized = True
        self._client = None
        self._namespace = ""

    @property
    def client(self) -> redis.Redis:
        if self._client is None:
            raise RuntimeError("Redis клиент не инициализирован. Вызовите connect() сначала.")
        return self._client

    def _make_key(self, key: str) -> str:
        return f"{self._namespace}:{key}" if self._namespace else key

    def _strip_key(self, key: str) -> str:
        marker = f"{self._namespace}:"
        if self._namespace and key.startswith(marker):
            return key[len(marker):]
        return key

    async def connect(
        self,
        url: str | None = None,
        max_connections: int = 50,
        namespace: str | None = None,
    ) -> None:
        """
        Открывает пул соединений и проверяет его PING.

        Args:
            url: URL Redis (None: из конфига)
            max_connections: Размер пула
            namespace: Префикс ключей (None: из конфига)
        """
        if self._client is not None:
            return

        if url is None or namespace is None:
            from src.config import settings
            if url is None:
                url = settings.redis.url
                max_connections = settings.redis.REDIS_MAX_CONNECTIONS
            if namespace is None:
                namespace = settings.redis.REDIS_NAMESPACE

        self._namespace = namespace
        await log_info("Подключение к Redis...", type_msg=TypeMsg.INFO)

        client = redis.from_url(url, max_connections=max_connections, decode_responses=True)
        await client.ping()
        self._client = client

        await log_info("Подключение к Redis установлено", type_msg=TypeMsg.INFO)

    async def disconnect(self) -> None:
        if self._client is None:
            return
        await self._client.aclose()
        self._client = None
        await log_info("Соединение с Redis закрыто", type_msg=TypeMsg.INFO)

    # =========================================================================
    # СТРОКИ
    # =========================================================================

    async def get(self, key: str) -> str | None:
        return await self.client.get(self._make_key(key))

    async def set(self, key: str, value: str, ttl: int | None = None) -> bool:
        """Записывает значение целиком (ttl в секундах, None: без срока)."""
        return await self.client.set(self._make_key(key), value, ex=ttl)

    # =========================================================================
    # JSON
    # =========================================================================

    async def get_json(self, key: str) -> Any | None:
        """
        Читает JSON значение.

        Returns:
            Разобранное значение; None, если ключа нет или JSON повреждён
        """
        raw = await self.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            await log_warning(f"Повреждённое JSON значение по ключу {key}")
            return None

    async def set_json(self, key: str, data: Any, ttl: int | None = None) -> bool:
        payload = json.dumps(data, ensure_ascii=False, separators=(",", ":"))
        return await self.set(key, payload, ttl=ttl)

    # =========================================================================
    # SCAN
    # =========================================================================

    async def scan_keys(self, prefix: str, count: int = 500) -> list[str]:
        """
        Ключи, начинающиеся с prefix (namespace снят).

        SCAN может вернуть ключ повторно, поэтому результат дедуплицируется.

        Returns:
            Отсортированный список ключей
        """
        pattern = escape_glob(self._make_key(prefix)) + "*"
        found = {
            self._strip_key(key)
            async for key in self.client.scan_iter(match=pattern, count=count)
        }
        return sorted(found)

    async def health_check(self) -> bool:
        """PING; False при любой ошибке соединения."""
        try:
            return await self.client.ping()
        except Exception as e:
            await log_error(f"Health check Redis failed: {e}")
            return False


def get_redis() -> RedisClient:
    return RedisClient()


async def init_redis() -> RedisClient:
    """Подключает глобальный клиент по настройкам и возвращает его."""
    from src.config import settings

    redis_client = get_redis()
    await redis_client.connect(
        url=settings.redis.url,
        max_connections=settings.redis.REDIS_MAX_CONNECTIONS,
        namespace=settings.redis.REDIS_NAMESPACE,
    )
    await log_info(
        f"Redis подключён: {settings.redis.REDIS_HOST}:{settings.redis.REDIS_PORT}/{settings.redis.REDIS_DB}",
        type_msg=TypeMsg.INFO,
    )
    return redis_client


async def close_redis() -> None:
    await get_redis().disconnect()
    await log_info("Redis отключён", type_msg=TypeMsg.INFO)
