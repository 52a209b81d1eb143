# src/core/locations/log_store.py
"""
Журнал локаций: помесячные шарды на устройство.

Дозапись выполняется как чтение-изменение-запись всего объекта без блокировок.
Две одновременные дозаписи в один шард могут потерять одну из строк
(последняя запись объекта выигрывает).
"""

from __future__ import annotations

from src.common.constants import RECORD_KEY_SEPARATOR, TypeMsg
from src.common.exceptions import NotFound
from src.common.logger import log_info, log_warning
from src.core.locations.models import LogPartitionKey, LogRecord
from src.infra.object_storage import ObjectStorage


def _distinct(values: list[str]) -> list[str]:
    """Уникальные непустые значения в порядке появления."""
    return [value for value in dict.fromkeys(values) if value]


class LogStore:
    """Append-only журнал поверх объектного хранилища."""

    def __init__(
        self,
        storage: ObjectStorage,
        prefix: str = "rec",
        extension: str = ".rec",
    ) -> None:
        """
        Args:
            storage: Объектное хранилище
            prefix: Корневой сегмент ключей журналов
            extension: Расширение файлов шардов
        """
        self._storage = storage
        self._prefix = prefix
        self._extension = extension

    def storage_key(self, key: LogPartitionKey) -> str:
        return key.to_storage_key(self._prefix, self._extension)

    def _prefix_for(self, *segments: str) -> str:
        return RECORD_KEY_SEPARATOR.join((self._prefix, *segments, ""))

    async def append(self, key: LogPartitionKey, record: LogRecord) -> None:
        """
        Дописывает строку в шард.

        Raises:
            StorageFailure: Сбой чтения или записи
        """
        storage_key = self.storage_key(key)

        content = await self._storage.get(storage_key) or ""
        content += record.format_line()
        await self._storage.put(storage_key, content)

        await log_info(f"Запись добавлена в {storage_key}", type_msg=TypeMsg.DEBUG)

    async def read(self, key: LogPartitionKey) -> list[LogRecord]:
        """
        Читает шард целиком.

        Raises:
            NotFound: Шарда нет
            StorageFailure: Сбой чтения
        """
        storage_key = self.storage_key(key)
        content = await self._storage.get(storage_key)
        if content is None:
            raise NotFound(f"Журнал {storage_key} не найден")

        records = []
        for line in content.splitlines():
            if not line.strip():
                continue
            try:
                records.append(LogRecord.parse_line(line))
            except ValueError:
                # Чужие строки в шарде пропускаем, остальное отдаём
                await log_warning(f"Пропущена некорректная строка в {storage_key}")
        return records

    async def list(self, prefix: str) -> list[str]:
        """Ключи шардов под префиксом хранилища."""
        return await self._storage.list(prefix)

    async def list_users(self) -> list[str]:
        """Пользователи, для которых есть хотя бы один шард."""
        keys = await self.list(self._prefix_for())
        return _distinct([self._segment(key, 1) for key in keys])

    async def list_devices(self, user: str) -> list[str]:
        """Устройства пользователя."""
        keys = await self.list(self._prefix_for(user))
        return _distinct([self._segment(key, 2) for key in keys])

    async def list_partitions(self, user: str, device: str) -> list[str]:
        """Имена файлов шардов устройства (YYYY-MM.rec)."""
        keys = await self.list(self._prefix_for(user, device))
        names = [key.split(RECORD_KEY_SEPARATOR)[-1] for key in keys]
        return _distinct([name for name in names if name.endswith(self._extension)])

    @staticmethod
    def _segment(key: str, index: int) -> str:
        parts = key.split(RECORD_KEY_SEPARATOR)
        return parts[index] if len(parts) > index else ""

