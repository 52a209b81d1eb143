# src/core/locations/models.py
"""
Модели данных локаций.

LocationEvent хранит обязательные поля отдельно, а исходное сообщение
целиком в payload: неизвестные поля провайдера проходят через журнал
и кэш без изменений.
"""

from __future__ import annotations

import json
import re
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.common.constants import (
    LATEST_GLOBAL_SUFFIX,
    LATEST_KEY_PREFIX,
    LATEST_KEY_SEPARATOR,
    RECORD_KEY_SEPARATOR,
    RECORD_LINE_SEPARATOR,
)


_YEAR_MONTH_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


def to_canonical_json(data: Any) -> str:
    """Компактный JSON: порядок ключей сохраняется, не-ASCII как есть."""
    return json.dumps(data, ensure_ascii=False, separators=(",", ":"))


def format_iso_timestamp(moment: datetime) -> str:
    """ISO 8601 в UTC с миллисекундами и суффиксом Z."""
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class LocationEvent(BaseModel):
    """Провалидированное сообщение _type=location."""

    model_config = ConfigDict(frozen=True)

    user: str = Field(..., description="Пользователь из topic")
    device: str = Field(..., description="Устройство из topic")
    latitude: Any = Field(..., description="Широта (lat) как в сообщении")
    longitude: Any = Field(..., description="Долгота (lon) как в сообщении")
    topic: str = Field(..., description="owntracks/<user>/<device>")
    timestamp: float | None = Field(None, description="tst, Unix-секунды")
    recorded_at: datetime = Field(..., description="Эффективное время события (UTC)")
    payload: dict[str, Any] = Field(..., description="Исходное сообщение без изменений")

    @property
    def year_month(self) -> str:
        """Месяц партиции журнала, YYYY-MM (UTC)."""
        moment = self.recorded_at.astimezone(timezone.utc)
        # strftime("%Y") не дополняет годы меньше 1000 нулями
        return f"{moment.year:04d}-{moment.month:02d}"

    @property
    def iso_timestamp(self) -> str:
        return format_iso_timestamp(self.recorded_at)

    def to_json(self) -> str:
        """Каноничный JSON исходного сообщения."""
        return to_canonical_json(self.payload)

    def as_entry(self) -> dict[str, Any]:
        """Копия сообщения для проекций последних локаций."""
        return json.loads(self.to_json())


class LogPartitionKey(BaseModel):
    """Шард журнала: один месяц одного устройства."""

    model_config = ConfigDict(frozen=True)

    user: str
    device: str
    year_month: str

    @field_validator("year_month")
    @classmethod
    def check_year_month(cls, v: str) -> str:
        if not _YEAR_MONTH_RE.match(v):
            raise ValueError("year_month должен быть в формате YYYY-MM")
        return v

    @classmethod
    def for_event(cls, event: LocationEvent) -> "LogPartitionKey":
        return cls(user=event.user, device=event.device, year_month=event.year_month)

    def to_storage_key(self, prefix: str = "rec", extension: str = ".rec") -> str:
        """rec/<user>/<device>/<YYYY-MM>.rec"""
        return RECORD_KEY_SEPARATOR.join(
            (prefix, self.user, self.device, f"{self.year_month}{extension}")
        )


class LogRecord(BaseModel):
    """Строка журнала: '<ISO8601> * <JSON>'."""

    model_config = ConfigDict(frozen=True)

    timestamp: str
    raw_json: str

    @classmethod
    def for_event(cls, event: LocationEvent) -> "LogRecord":
        return cls(timestamp=event.iso_timestamp, raw_json=event.to_json())

    @classmethod
    def parse_line(cls, line: str) -> "LogRecord":
        """
        Разбирает строку журнала.

        Raises:
            ValueError: Строка не содержит разделителя ' * '
        """
        timestamp, sep, raw_json = line.rstrip("\n").partition(RECORD_LINE_SEPARATOR)
        if not sep:
            raise ValueError(f"Некорректная строка журнала: {line[:80]!r}")
        # JSONDecodeError наследует ValueError
        json.loads(raw_json)
        return cls(timestamp=timestamp, raw_json=raw_json)

    def format_line(self) -> str:
        return f"{self.timestamp}{RECORD_LINE_SEPARATOR}{self.raw_json}\n"

    @property
    def event(self) -> Any:
        return json.loads(self.raw_json)


# =============================================================================
# КЛЮЧИ ПРОЕКЦИЙ ПОСЛЕДНИХ ЛОКАЦИЙ
# =============================================================================

class LatestKey(BaseModel):
    """Базовый ключ проекции последних локаций."""

    model_config = ConfigDict(frozen=True)

    @property
    def storage_key(self) -> str:
        raise NotImplementedError


class DeviceLatest(LatestKey):
    """last:<user>:<device>: ровно одно событие."""

    user: str
    device: str

    @property
    def storage_key(self) -> str:
        return LATEST_KEY_SEPARATOR.join((LATEST_KEY_PREFIX, self.user, self.device))


class UserLatest(LatestKey):
    """last:<user>: по одному событию на устройство пользователя."""

    user: str

    @property
    def storage_key(self) -> str:
        return LATEST_KEY_SEPARATOR.join((LATEST_KEY_PREFIX, self.user))


class GlobalLatest(LatestKey):
    """last:all: по одному событию на пару (user, device)."""

    @property
    def storage_key(self) -> str:
        return LATEST_KEY_SEPARATOR.join((LATEST_KEY_PREFIX, LATEST_GLOBAL_SUFFIX))


def latest_key_for(user: str | None = None, device: str | None = None) -> LatestKey:
    """
    Выбор проекции по параметрам запроса.

    user+device → устройство, только user → пользователь, иначе глобальная.
    """
    if user and device:
        return DeviceLatest(user=user, device=device)
    if user:
        return UserLatest(user=user)
    return GlobalLatest()
