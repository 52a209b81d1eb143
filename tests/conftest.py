# tests/conftest.py
"""
Общие фикстуры и настройки для тестов.
"""

from __future__ import annotations

import asyncio
import json
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

# Устанавливаем переменные окружения перед импортом модулей
os.environ["BASIC_AUTH_USER"] = "recorder"
os.environ["BASIC_AUTH_PASS"] = "s3cret"
os.environ.setdefault("REDIS_PASSWORD", "")
os.environ.setdefault("STORAGE_BACKEND", "filesystem")


# =============================================================================
# ФЕЙКИ ХРАНИЛИЩ
# =============================================================================

class FakeRedisClient:
    """
    In-memory замена RedisClient с тем же интерфейсом.

    failing: имена методов, которые поднимают ConnectionError.
    """

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.failing: set[str] = set()
        self.healthy = True

    def _check(self, method: str) -> None:
        if method in self.failing:
            raise RedisConnectionError(f"{method} недоступен")

    async def get(self, key: str) -> str | None:
        self._check("get")
        return self.data.get(key)

    async def set(self, key: str, value: str, ttl: int | None = None) -> bool:
        self._check("set")
        self.data[key] = value
        return True

    async def get_json(self, key: str) -> Any | None:
        raw = await self.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            return None

    async def set_json(self, key: str, data: Any, ttl: int | None = None) -> bool:
        return await self.set(key, json.dumps(data, ensure_ascii=False, separators=(",", ":")))

    async def scan_keys(self, prefix: str, count: int = 500) -> list[str]:
        self._check("scan_keys")
        return sorted(key for key in self.data if key.startswith(prefix))

    async def health_check(self) -> bool:
        return self.healthy

    def load(self, key: str) -> Any:
        """Прочитать сохранённое JSON значение напрямую."""
        return json.loads(self.data[key])


class FakeObjectStorage:
    """
    In-memory объектное хранилище.

    Если задан read_barrier, get() ждёт его после чтения:
    так моделируются конкурентные чтение-изменение-запись.
    """

    def __init__(self) -> None:
        self.objects: dict[str, str] = {}
        self.fail_get = False
        self.fail_put = False
        self.puts = 0
        self.read_barrier: asyncio.Barrier | None = None

    async def get(self, key: str) -> str | None:
        from src.common.exceptions import StorageFailure

        if self.fail_get:
            raise StorageFailure(f"get {key}")
        content = self.objects.get(key)
        if self.read_barrier is not None:
            await self.read_barrier.wait()
        return content

    async def put(self, key: str, content: str) -> None:
        from src.common.exceptions import StorageFailure

        if self.fail_put:
            raise StorageFailure(f"put {key}")
        self.puts += 1
        self.objects[key] = content

    async def list(self, prefix: str) -> list[str]:
        return sorted(key for key in self.objects if key.startswith(prefix))


# =============================================================================
# ФИКСТУРЫ
# =============================================================================

@pytest.fixture
def fake_redis() -> FakeRedisClient:
    return FakeRedisClient()


@pytest.fixture
def fake_storage() -> FakeObjectStorage:
    return FakeObjectStorage()


@pytest.fixture
def log_store(fake_storage: FakeObjectStorage):
    from src.core.locations import LogStore

    return LogStore(fake_storage)


@pytest.fixture
def latest_cache(fake_redis: FakeRedisClient):
    from src.core.locations import LatestLocationCache

    return LatestLocationCache(fake_redis)


@pytest.fixture
def fixed_now() -> datetime:
    """Время приёма для сообщений без tst."""
    return datetime(2024, 2, 29, 23, 59, 59, 500000, tzinfo=timezone.utc)


@pytest.fixture
def coordinator(latest_cache, log_store, fixed_now: datetime):
    from src.core.locations import IngestCoordinator

    return IngestCoordinator(latest_cache, log_store, clock=lambda: fixed_now)


@pytest.fixture
def location_payload() -> dict[str, Any]:
    """Сообщение _type=location от alice/phone (ноябрь 2023)."""
    return {
        "_type": "location",
        "lat": 1.0,
        "lon": 2.0,
        "topic": "owntracks/alice/phone",
        "tst": 1700000000,
    }


@pytest.fixture
def mock_config() -> dict[str, Any]:
    """Мок конфигурации для тестов."""
    return {
        "_comment_system": "Системные настройки",
        "PROJECT_NAME": "owntracks_recorder_test",
        "VERSION": "1.0.0-test",
        "DEBUG": True,
        "LOG_LEVEL": "DEBUG",
        "ENVIRONMENT": "test",
        "RECORDER_HOST": "127.0.0.1",
        "RECORDER_PORT": 9083,
        "LOG_TO_FILE": False,
        "LOG_FILE_PATH": "logs/test.log",
        "LOG_FORMAT": "json",
        "REDIS_HOST": "redis.local",
        "REDIS_PORT": 6380,
        "REDIS_DB": 2,
        "REDIS_PASSWORD": "",
        "REDIS_NAMESPACE": "",
        "REDIS_MAX_CONNECTIONS": 10,
        "STORAGE_BACKEND": "redis",
        "STORAGE_ROOT": "/tmp/recorder",
        "RECORD_PREFIX": "rec",
        "RECORD_EXTENSION": ".rec",
        "BASIC_AUTH_USER": "",
        "BASIC_AUTH_PASS": "",
        "AUTH_REALM": "Test Area",
        "CORS_ORIGINS": ["http://localhost:3000"],
        "CORS_ALLOW_CREDENTIALS": False,
    }


@pytest.fixture
def temp_config_file(tmp_path: Path, mock_config: dict[str, Any]) -> Path:
    """Создаёт временный файл конфигурации."""
    config_file = tmp_path / "config.json"
    config_file.write_text(json.dumps(mock_config, ensure_ascii=False, indent=2))
    return config_file
