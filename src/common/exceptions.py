# src/common/exceptions.py
"""
Иерархия исключений рекордера.

Ошибки валидации возникают до любых побочных эффектов,
ошибки хранилищ возникают на шагах обновления кэша или дозаписи журнала.
"""

from __future__ import annotations


class RecorderError(Exception):
    """Базовое исключение рекордера."""

    status_code: int = 500
    message: str = "Internal server error"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.message
        super().__init__(self.detail)


class ValidationFailure(RecorderError):
    """Входящее сообщение не прошло валидацию (400)."""

    status_code = 400
    message = "Invalid payload"


class InvalidPayload(ValidationFailure):
    """Нет обязательных полей lat/lon или тело не является объектом."""

    message = "Invalid location payload"


class MissingTopic(ValidationFailure):
    """В сообщении нет topic."""

    message = "Missing topic"


class InvalidTopicFormat(ValidationFailure):
    """topic не соответствует owntracks/<user>/<device>."""

    message = "Invalid topic format. Expected: owntracks/<username>/<devicename>"


class StorageFailure(RecorderError):
    """Любой сбой чтения/записи в хранилище (500)."""

    status_code = 500
    message = "Internal server error"


class NotFound(RecorderError):
    """Ключ ни разу не записывался (только для чтения)."""

    status_code = 404
    message = "No location data found"
