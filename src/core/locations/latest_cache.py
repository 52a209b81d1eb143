# src/core/locations/latest_cache.py
"""
Проекции последних локаций в Redis.

Три уровня обновляются тремя независимыми циклами чтение-фильтр-запись,
без транзакции между уровнями:
- last:<user>:<device>: перезаписывается списком из одного события
- last:<user>: вытесняется прежняя запись того же устройства
- last:all: вытесняется прежняя запись той же пары (user, device)
"""

from __future__ import annotations

import json
from typing import Any, Callable, Iterable

from redis.exceptions import RedisError

from src.common.constants import TypeMsg
from src.common.exceptions import NotFound, StorageFailure
from src.common.logger import log_error, log_info
from src.core.locations.models import DeviceLatest, GlobalLatest, LatestKey, UserLatest
from src.core.locations.topic import topic_to_device_id, topic_to_user_device
from src.infra.redis_client import RedisClient


EntryMatcher = Callable[[Any], bool]


# =============================================================================
# ЧИСТЫЕ ПРЕОБРАЗОВАНИЯ
# =============================================================================

def _entry_topic(entry: Any) -> Any:
    if not isinstance(entry, dict):
        return None
    return entry.get("topic")


def same_device(device: str) -> EntryMatcher:
    """Совпадение по устройству из topic записи."""
    def matches(entry: Any) -> bool:
        return topic_to_device_id(_entry_topic(entry)) == device
    return matches


def same_user_device(user: str, device: str) -> EntryMatcher:
    """Совпадение по паре (user, device) из topic записи."""
    def matches(entry: Any) -> bool:
        return topic_to_user_device(_entry_topic(entry)) == (user, device)
    return matches


def evict_then_append(
    entries: Iterable[Any],
    event: dict[str, Any],
    matches: EntryMatcher,
) -> list[Any]:
    """
    Убирает прежние записи того же устройства и добавляет новое событие в конец.

    Записи без корректного topic никогда не совпадают и остаются на месте.
    """
    kept = [entry for entry in entries if not matches(entry)]
    kept.append(event)
    return kept


def project_fields(entries: Iterable[Any], fields: list[str] | None) -> list[Any]:
    """
    Оставляет в каждом событии только перечисленные поля.

    Пустой или отсутствующий список полей возвращает события как есть.
    """
    entries = list(entries)
    if not fields:
        return entries
    return [
        {field: entry[field] for field in fields if field in entry}
        if isinstance(entry, dict) else entry
        for entry in entries
    ]


# =============================================================================
# КЭШ
# =============================================================================

class LatestLocationCache:
    """Трёхуровневая проекция последних локаций."""

    def __init__(self, redis: RedisClient) -> None:
        self._redis = redis

    async def _read_tier(self, key: LatestKey) -> list[Any]:
        """Текущая коллекция уровня; пустая, если ключа нет или значение не список."""
        data = await self._redis.get_json(key.storage_key)
        if not isinstance(data, list):
            return []
        return data

    async def _write_tier(self, key: LatestKey, entries: list[Any]) -> None:
        await self._redis.set_json(key.storage_key, entries)

    async def record(self, user: str, device: str, event: dict[str, Any]) -> None:
        """
        Обновляет три уровня проекции.

        Args:
            user: Пользователь из topic
            device: Устройство из topic
            event: Исходное сообщение

        Raises:
            StorageFailure: Сбой Redis на любом из уровней
        """
        try:
            # 1. Устройство
            await self._write_tier(DeviceLatest(user=user, device=device), [event])

            # 2. Пользователь
            user_key = UserLatest(user=user)
            entries = await self._read_tier(user_key)
            await self._write_tier(user_key, evict_then_append(entries, event, same_device(device)))

            # 3. Все пользователи
            global_key = GlobalLatest()
            entries = await self._read_tier(global_key)
            await self._write_tier(
                global_key,
                evict_then_append(entries, event, same_user_device(user, device)),
            )
        except RedisError as e:
            await log_error(f"Ошибка обновления последних локаций {user}/{device}: {e}")
            raise StorageFailure(f"Не удалось обновить last:* для {user}/{device}") from e

        await log_info(f"Последние локации обновлены: {user}/{device}", type_msg=TypeMsg.DEBUG)

    async def fetch(self, key: LatestKey) -> list[Any]:
        """
        Коллекция событий по ключу.

        Raises:
            NotFound: Ключ ни разу не записывался
            StorageFailure: Сбой Redis или повреждённое значение
        """
        try:
            raw = await self._redis.get(key.storage_key)
        except RedisError as e:
            await log_error(f"Ошибка чтения {key.storage_key}: {e}")
            raise StorageFailure(f"Не удалось прочитать {key.storage_key}") from e

        if raw is None:
            raise NotFound(f"Нет данных по ключу {key.storage_key}")

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            await log_error(f"Повреждённое значение {key.storage_key}: {e}")
            raise StorageFailure(f"Повреждённое значение {key.storage_key}") from e

        if not isinstance(data, list):
            raise StorageFailure(f"Значение {key.storage_key} не является списком")
        return data
