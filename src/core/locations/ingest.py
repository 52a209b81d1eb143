# src/core/locations/ingest.py
"""
Координатор приёма локаций.

Жизненный цикл запроса:
RECEIVED → VALIDATED → CACHE_UPDATED → APPENDED → ACKNOWLEDGED

Кэш обновляется до дозаписи журнала. Сбой кэша прерывает запрос без дозаписи;
сбой дозаписи оставляет кэш обновлённым (отката нет).
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict

from src.common.constants import MessageType, TypeMsg
from src.common.exceptions import InvalidPayload, MissingTopic, RecorderError
from src.common.logger import log_error, log_info, log_warning
from src.core.locations.latest_cache import LatestLocationCache
from src.core.locations.log_store import LogStore
from src.core.locations.models import LocationEvent, LogPartitionKey, LogRecord
from src.core.locations.topic import parse_owntracks_topic


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class IngestState(str, Enum):
    """Состояния обработки входящего сообщения."""
    RECEIVED = "received"
    VALIDATED = "validated"
    CACHE_UPDATED = "cache_updated"
    APPENDED = "appended"
    ACKNOWLEDGED = "acknowledged"
    # Сообщение другого типа: подтверждено без побочных эффектов
    IGNORED = "ignored"


class IngestOutcome(BaseModel):
    """Результат успешной обработки."""

    model_config = ConfigDict(frozen=True)

    state: IngestState
    event: LocationEvent | None = None
    partition_key: LogPartitionKey | None = None

    @property
    def response(self) -> list[Any]:
        """Тело ответа по протоколу OwnTracks."""
        return []


def _tst_seconds(tst: Any) -> float | None:
    """tst как Unix-секунды (числовые строки допускаются); None, если не задан."""
    if not tst:
        return None
    try:
        return float(tst)
    except (TypeError, ValueError, OverflowError) as e:
        raise InvalidPayload() from e


def _effective_time(seconds: float | None, received_at: datetime) -> datetime:
    """Время из tst, если задан, иначе время приёма."""
    if seconds is None:
        return received_at
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as e:
        raise InvalidPayload() from e


def validate_payload(payload: Any, received_at: datetime) -> LocationEvent | None:
    """
    Проверяет входящее сообщение. Первая неудачная проверка побеждает.

    Args:
        payload: Разобранное JSON-тело
        received_at: Время приёма (UTC)

    Returns:
        LocationEvent или None для сообщений другого типа

    Raises:
        InvalidPayload: Тело не объект, нет lat/lon (0 считается отсутствием)
            или tst не приводится к дате
        MissingTopic: Нет topic
        InvalidTopicFormat: topic не owntracks/<user>/<device>
    """
    if not isinstance(payload, dict):
        raise InvalidPayload()

    if payload.get("_type") != MessageType.LOCATION.value:
        return None

    lat = payload.get("lat")
    lon = payload.get("lon")
    if not lat or not lon:
        raise InvalidPayload()

    topic = payload.get("topic")
    if not topic:
        raise MissingTopic()

    user, device = parse_owntracks_topic(topic)
    seconds = _tst_seconds(payload.get("tst"))

    return LocationEvent(
        user=user,
        device=device,
        latitude=lat,
        longitude=lon,
        topic=topic,
        timestamp=seconds,
        recorded_at=_effective_time(seconds, received_at),
        payload=payload,
    )


class IngestCoordinator:
    """Проверяет сообщение и выполняет две записи: кэш, затем журнал."""

    def __init__(
        self,
        cache: LatestLocationCache,
        log_store: LogStore,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """
        Args:
            cache: Проекции последних локаций
            log_store: Журнал
            clock: Источник текущего времени (UTC)
        """
        self._cache = cache
        self._log_store = log_store
        self._clock = clock

    async def ingest(self, payload: Any) -> IngestOutcome:
        """
        Обрабатывает одно сообщение.

        Returns:
            IngestOutcome в состоянии ACKNOWLEDGED или IGNORED

        Raises:
            ValidationFailure: До любых побочных эффектов
            StorageFailure: На шаге кэша или журнала, без отката
        """
        state = IngestState.RECEIVED
        try:
            event = validate_payload(payload, self._clock())
        except RecorderError as e:
            await log_warning(f"Сообщение отклонено ({state.value}): {e.detail}")
            raise

        if event is None:
            await log_info(
                f"Сообщение типа {payload.get('_type')!r} пропущено",
                type_msg=TypeMsg.DEBUG,
            )
            return IngestOutcome(state=IngestState.IGNORED)

        state = IngestState.VALIDATED
        partition_key = LogPartitionKey.for_event(event)

        try:
            await self._cache.record(event.user, event.device, event.as_entry())
            state = IngestState.CACHE_UPDATED

            await self._log_store.append(partition_key, LogRecord.for_event(event))
            state = IngestState.APPENDED
        except RecorderError as e:
            await log_error(
                f"Сбой обработки {event.user}/{event.device} после {state.value}: {e.detail}"
            )
            raise

        await log_info(
            f"Локация {event.user}/{event.device} сохранена в {self._log_store.storage_key(partition_key)}",
            type_msg=TypeMsg.INFO,
        )
        return IngestOutcome(
            state=IngestState.ACKNOWLEDGED,
            event=event,
            partition_key=partition_key,
        )
