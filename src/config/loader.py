# src/config/loader.py
"""
Загрузчик конфигурации проекта.
Единственный источник истины: config/config.json.
Секретные данные переопределяются из переменных окружения.
"""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Callable

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings


# =============================================================================
# ОПРЕДЕЛЕНИЕ ПУТЕЙ
# =============================================================================

def get_project_root() -> Path:
    """Возвращает корневую директорию проекта."""
    return Path(__file__).parent.parent.parent


def get_config_path() -> Path:
    """Возвращает путь к файлу конфигурации."""
    return get_project_root() / "config" / "config.json"


def load_config_json() -> dict[str, Any]:
    """Загружает config.json и возвращает словарь."""
    config_path = get_config_path()
    if not config_path.exists():
        raise FileNotFoundError(f"Файл конфигурации не найден: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        return json.load(f)


# =============================================================================
# PYDANTIC МОДЕЛИ КОНФИГУРАЦИИ
# =============================================================================

class SystemSettings(BaseModel):
    """Системные настройки."""
    PROJECT_NAME: str = "owntracks_recorder"
    VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"


class DeploymentSettings(BaseModel):
    """Настройки развертывания сервиса."""
    RECORDER_HOST: str = "0.0.0.0"
    RECORDER_PORT: int = 8083


class LoggingSettings(BaseModel):
    """Настройки логирования."""
    LOG_LEVEL: str = "INFO"
    LOG_TO_FILE: bool = False
    LOG_FILE_PATH: str = "logs/app.log"
    LOG_FORMAT: str = "colored"
    LOG_MAX_BYTES: int = 10485760
    LOG_BACKUP_COUNT: int = 5


class RedisSettings(BaseModel):
    """Настройки Redis (хранилище последних локаций)."""
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: str = ""
    # Пустой namespace: ключи пишутся ровно как last:<user>:<device>
    REDIS_NAMESPACE: str = ""
    REDIS_MAX_CONNECTIONS: int = 50

    @field_validator("REDIS_PASSWORD", mode="before")
    @classmethod
    def get_from_env(cls, v: str) -> str:
        """Получает пароль из переменных окружения."""
        if not v:
            return os.getenv("REDIS_PASSWORD", "")
        return v

    @property
    def url(self) -> str:
        """Возвращает URL для подключения к Redis."""
        auth = f":{self.REDIS_PASSWORD}@" if self.REDIS_PASSWORD else ""
        return f"redis://{auth}{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"


class StorageSettings(BaseModel):
    """Настройки объектного хранилища журналов."""
    STORAGE_BACKEND: str = "filesystem"
    STORAGE_ROOT: str = "data"
    RECORD_PREFIX: str = "rec"
    RECORD_EXTENSION: str = ".rec"

    @field_validator("STORAGE_BACKEND")
    @classmethod
    def check_backend(cls, v: str) -> str:
        """Проверяет, что бэкенд поддерживается."""
        v = v.lower()
        if v not in ("filesystem", "redis"):
            raise ValueError(f"Неизвестный STORAGE_BACKEND: {v}")
        return v


class AuthSettings(BaseModel):
    """Настройки HTTP Basic аутентификации."""
    BASIC_AUTH_USER: str = ""
    BASIC_AUTH_PASS: str = ""
    AUTH_REALM: str = "Secure Area"

    @field_validator("BASIC_AUTH_USER", "BASIC_AUTH_PASS", mode="before")
    @classmethod
    def get_from_env(cls, v: str, info) -> str:
        """Получает учётные данные из переменных окружения, если не заданы."""
        if not v:
            return os.getenv(info.field_name, "")
        return v


class CorsSettings(BaseModel):
    """Настройки CORS."""
    CORS_ORIGINS: list[str] = Field(default_factory=lambda: ["http://localhost:5173"])
    CORS_ALLOW_CREDENTIALS: bool = True


# =============================================================================
# ГЛАВНЫЙ КЛАСС НАСТРОЕК
# =============================================================================

class Settings(BaseSettings):
    """
    Главный класс настроек приложения.
    Агрегирует все секции конфигурации.
    """
    system: SystemSettings = Field(default_factory=SystemSettings)
    deployment: DeploymentSettings = Field(default_factory=DeploymentSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    cors: CorsSettings = Field(default_factory=CorsSettings)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @classmethod
    def from_config_json(cls) -> "Settings":
        """
        Собирает настройки из config.json.

        Хосты, порты, бэкенд хранилища и секреты переопределяются
        одноимёнными переменными окружения.
        """
        data = {k: v for k, v in load_config_json().items() if not k.startswith("_comment_")}

        def env(key: str, default: Any, cast: Callable[[Any], Any] = str) -> Any:
            value = os.getenv(key)
            if value is None:
                return data.get(key, default)
            return cast(value)

        return cls(
            system=SystemSettings(
                PROJECT_NAME=data.get("PROJECT_NAME", "owntracks_recorder"),
                VERSION=data.get("VERSION", "1.0.0"),
                DEBUG=data.get("DEBUG", False),
                LOG_LEVEL=data.get("LOG_LEVEL", "INFO"),
                ENVIRONMENT=env("ENVIRONMENT", "development"),
            ),
            deployment=DeploymentSettings(
                RECORDER_HOST=env("RECORDER_HOST", "0.0.0.0"),
                RECORDER_PORT=env("RECORDER_PORT", 8083, int),
            ),
            logging=LoggingSettings(
                **{k: data[k] for k in LoggingSettings.model_fields if k in data}
            ),
            redis=RedisSettings(
                REDIS_HOST=env("REDIS_HOST", "localhost"),
                REDIS_PORT=env("REDIS_PORT", 6379, int),
                REDIS_DB=data.get("REDIS_DB", 0),
                REDIS_PASSWORD=env("REDIS_PASSWORD", ""),
                REDIS_NAMESPACE=data.get("REDIS_NAMESPACE", ""),
                REDIS_MAX_CONNECTIONS=data.get("REDIS_MAX_CONNECTIONS", 50),
            ),
            storage=StorageSettings(
                STORAGE_BACKEND=env("STORAGE_BACKEND", "filesystem"),
                STORAGE_ROOT=env("STORAGE_ROOT", "data"),
                RECORD_PREFIX=data.get("RECORD_PREFIX", "rec"),
                RECORD_EXTENSION=data.get("RECORD_EXTENSION", ".rec"),
            ),
            auth=AuthSettings(
                BASIC_AUTH_USER=env("BASIC_AUTH_USER", ""),
                BASIC_AUTH_PASS=env("BASIC_AUTH_PASS", ""),
                AUTH_REALM=data.get("AUTH_REALM", "Secure Area"),
            ),
            cors=CorsSettings(
                CORS_ORIGINS=data.get("CORS_ORIGINS", ["http://localhost:5173"]),
                CORS_ALLOW_CREDENTIALS=data.get("CORS_ALLOW_CREDENTIALS", True),
            ),
        )


@lru_cache()
def get_settings() -> Settings:
    """Настройки процесса (кэшируются). Перед сборкой подгружается .env из корня проекта."""
    from dotenv import load_dotenv

    env_path = get_project_root() / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    return Settings.from_config_json()


settings = get_settings()
