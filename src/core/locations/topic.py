# src/core/locations/topic.py
"""
Разбор OwnTracks topic: owntracks/<user>/<device>.

Функции чистые: идентичность устройства в проекциях последних локаций
берётся только из topic самого сохранённого события.
"""

from __future__ import annotations

from typing import Any

from src.common.constants import TOPIC_ROOT, TOPIC_SEGMENTS, TOPIC_SEPARATOR
from src.common.exceptions import InvalidTopicFormat


# Сегменты topic становятся сегментами ключей хранилища
_RESERVED_SEGMENTS = frozenset({".", ".."})
_FORBIDDEN_CHARS = ("\\", "\x00")


def split_topic(topic: Any) -> list[str] | None:
    """Сегменты topic или None, если это не строка из трёх сегментов."""
    if not isinstance(topic, str):
        return None
    parts = topic.split(TOPIC_SEPARATOR)
    if len(parts) != TOPIC_SEGMENTS:
        return None
    return parts


def topic_to_device_id(topic: Any) -> str | None:
    """Идентификатор устройства из topic (None для некорректного topic)."""
    parts = split_topic(topic)
    if parts is None:
        return None
    return parts[2]


def topic_to_user_device(topic: Any) -> tuple[str, str] | None:
    """Пара (user, device) из topic (None для некорректного topic)."""
    parts = split_topic(topic)
    if parts is None:
        return None
    return parts[1], parts[2]


def _is_safe_segment(segment: str) -> bool:
    if not segment or segment in _RESERVED_SEGMENTS:
        return False
    return not any(ch in segment for ch in _FORBIDDEN_CHARS)


def parse_owntracks_topic(topic: Any) -> tuple[str, str]:
    """
    Строгий разбор topic входящего сообщения.

    Args:
        topic: Значение поля topic

    Returns:
        (user, device)

    Raises:
        InvalidTopicFormat: Не три сегмента, первый не owntracks,
            пустой сегмент, "." или ".." либо недопустимый символ
    """
    parts = split_topic(topic)
    if parts is None or parts[0] != TOPIC_ROOT:
        raise InvalidTopicFormat()

    _, user, device = parts
    for segment in (user, device):
        if not _is_safe_segment(segment):
            raise InvalidTopicFormat()
    return user, device
