# src/services/recorder/dependencies.py
"""
Dependency Injection для сервиса рекордера.
"""

from __future__ import annotations

import secrets
from typing import TYPE_CHECKING

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

if TYPE_CHECKING:
    from src.config import AuthSettings
    from src.core.locations import IngestCoordinator, LatestLocationCache, LogStore
    from src.infra.redis_client import RedisClient


# Синглтоны
_redis: "RedisClient | None" = None
_log_store: "LogStore | None" = None
_cache: "LatestLocationCache | None" = None
_coordinator: "IngestCoordinator | None" = None


class _BasicScheme(HTTPBasic):
    """HTTPBasic, который не отвечает сам на испорченный заголовок Authorization."""

    async def __call__(self, request: Request) -> HTTPBasicCredentials | None:
        try:
            return await super().__call__(request)
        except HTTPException:
            # Ответ 401 с realm из настроек формирует require_basic_auth
            return None


_basic = _BasicScheme(auto_error=False)


def init_dependencies(
    redis: "RedisClient | None",
    log_store: "LogStore",
    cache: "LatestLocationCache",
    coordinator: "IngestCoordinator",
) -> None:
    """Инициализировать зависимости при старте приложения."""
    global _redis, _log_store, _cache, _coordinator
    _redis = redis
    _log_store = log_store
    _cache = cache
    _coordinator = coordinator


def reset_dependencies() -> None:
    """Сбросить зависимости (при остановке приложения)."""
    global _redis, _log_store, _cache, _coordinator
    _redis = None
    _log_store = None
    _cache = None
    _coordinator = None


def get_redis() -> "RedisClient | None":
    """Клиент Redis (None, если не инициализирован)."""
    return _redis


def get_log_store() -> "LogStore":
    """Получить журнал."""
    if _log_store is None:
        raise RuntimeError("LogStore не инициализирован. Вызовите init_dependencies()")
    return _log_store


def get_latest_cache() -> "LatestLocationCache":
    """Получить кэш последних локаций."""
    if _cache is None:
        raise RuntimeError("LatestLocationCache не инициализирован. Вызовите init_dependencies()")
    return _cache


def get_coordinator() -> "IngestCoordinator":
    """Получить координатор приёма."""
    if _coordinator is None:
        raise RuntimeError("IngestCoordinator не инициализирован. Вызовите init_dependencies()")
    return _coordinator


def credentials_match(auth: "AuthSettings", credentials: HTTPBasicCredentials | None) -> bool:
    """Сравнение в постоянное время; пустые настройки не пропускают никого."""
    if credentials is None or not auth.BASIC_AUTH_USER or not auth.BASIC_AUTH_PASS:
        return False
    user_ok = secrets.compare_digest(
        credentials.username.encode("utf-8"), auth.BASIC_AUTH_USER.encode("utf-8")
    )
    pass_ok = secrets.compare_digest(
        credentials.password.encode("utf-8"), auth.BASIC_AUTH_PASS.encode("utf-8")
    )
    return user_ok and pass_ok


def require_basic_auth(
    credentials: HTTPBasicCredentials | None = Depends(_basic),
) -> str:
    """
    Проверка HTTP Basic.

    Если учётные данные в конфигурации не заданы, доступ закрыт.

    Returns:
        Имя пользователя
    """
    from src.config import settings

    if not credentials_match(settings.auth, credentials):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": f'Basic realm="{settings.auth.AUTH_REALM}"'},
        )
    return credentials.username
