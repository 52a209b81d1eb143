# src/infra/object_storage.py
"""
Объектное хранилище журналов.

Объекты адресуются иерархическими ключами вида rec/<user>/<device>/<YYYY-MM>.rec.
Любой сбой бэкенда поднимается как StorageFailure.

Бэкенды:
- FileSystemObjectStorage: один файл на ключ внутри корневой директории
- RedisObjectStorage: одно строковое значение на ключ
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from redis.exceptions import RedisError

from src.common.exceptions import StorageFailure
from src.common.logger import log_error, log_info
from src.common.constants import TypeMsg, RECORD_KEY_SEPARATOR

if TYPE_CHECKING:
    from src.config.loader import Settings
    from src.infra.redis_client import RedisClient


class ObjectStorage(Protocol):
    """Контракт объектного хранилища."""

    async def get(self, key: str) -> str | None:
        """Содержимое объекта или None, если его нет."""
        ...

    async def put(self, key: str, content: str) -> None:
        """Записывает объект целиком."""
        ...

    async def list(self, prefix: str) -> list[str]:
        """Все ключи с заданным префиксом."""
        ...


def validate_key(key: str) -> list[str]:
    """
    Разбивает ключ на сегменты и проверяет их.

    Raises:
        StorageFailure: Пустой сегмент, '.' или '..'
    """
    parts = key.split(RECORD_KEY_SEPARATOR)
    for part in parts:
        if part in ("", ".", "..") or "\\" in part or "\x00" in part:
            raise StorageFailure(f"Недопустимый ключ объекта: {key!r}")
    return parts


# =============================================================================
# ФАЙЛОВАЯ СИСТЕМА
# =============================================================================

class FileSystemObjectStorage:
    """
    Хранилище объектов в файловой системе.

    Блокирующий ввод-вывод выполняется в пуле потоков (asyncio.to_thread).
    """

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def _path(self, key: str) -> Path:
        return self._root.joinpath(*validate_key(key))

    def _read(self, path: Path) -> str | None:
        if not path.is_file():
            return None
        return path.read_text(encoding="utf-8")

    def _write(self, path: Path, content: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")

    def _scan(self, prefix: str) -> list[str]:
        if not self._root.is_dir():
            return []
        keys = []
        for path in self._root.rglob("*"):
            if not path.is_file():
                continue
            key = path.relative_to(self._root).as_posix()
            if key.startswith(prefix):
                keys.append(key)
        return sorted(keys)

    async def get(self, key: str) -> str | None:
        path = self._path(key)
        try:
            return await asyncio.to_thread(self._read, path)
        except (OSError, UnicodeDecodeError) as e:
            await log_error(f"Ошибка чтения объекта {key}: {e}")
            raise StorageFailure(f"Не удалось прочитать {key}") from e

    async def put(self, key: str, content: str) -> None:
        path = self._path(key)
        try:
            await asyncio.to_thread(self._write, path, content)
        except OSError as e:
            await log_error(f"Ошибка записи объекта {key}: {e}")
            raise StorageFailure(f"Не удалось записать {key}") from e

    async def list(self, prefix: str) -> list[str]:
        try:
            return await asyncio.to_thread(self._scan, prefix)
        except OSError as e:
            await log_error(f"Ошибка перечисления объектов {prefix}: {e}")
            raise StorageFailure(f"Не удалось перечислить {prefix}") from e


# =============================================================================
# REDIS
# =============================================================================

class RedisObjectStorage:
    """Хранилище объектов в Redis: ключ объекта = ключ Redis (без проверки сегментов)."""

    def __init__(self, redis: "RedisClient") -> None:
        self._redis = redis

    async def get(self, key: str) -> str | None:
        try:
            return await self._redis.get(key)
        except RedisError as e:
            await log_error(f"Ошибка чтения объекта {key} из Redis: {e}")
            raise StorageFailure(f"Не удалось прочитать {key}") from e

    async def put(self, key: str, content: str) -> None:
        try:
            await self._redis.set(key, content)
        except RedisError as e:
            await log_error(f"Ошибка записи объекта {key} в Redis: {e}")
            raise StorageFailure(f"Не удалось записать {key}") from e

    async def list(self, prefix: str) -> list[str]:
        try:
            return await self._redis.scan_keys(prefix)
        except RedisError as e:
            await log_error(f"Ошибка перечисления объектов {prefix} в Redis: {e}")
            raise StorageFailure(f"Не удалось перечислить {prefix}") from e


async def create_object_storage(
    settings: "Settings",
    redis: "RedisClient | None" = None,
) -> ObjectStorage:
    """
    Создаёт хранилище журналов по настройкам.

    Args:
        settings: Настройки приложения
        redis: Подключённый клиент (нужен для бэкенда redis)
    """
    backend = settings.storage.STORAGE_BACKEND
    if backend == "redis":
        if redis is None:
            raise RuntimeError("Для STORAGE_BACKEND=redis нужен подключённый RedisClient")
        await log_info("Журналы хранятся в Redis", type_msg=TypeMsg.INFO)
        return RedisObjectStorage(redis)

    root = Path(settings.storage.STORAGE_ROOT)
    await log_info(f"Журналы хранятся в {root.resolve()}", type_msg=TypeMsg.INFO)
    return FileSystemObjectStorage(root)
