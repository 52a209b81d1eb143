# src/common/logger.py
"""
Логирование рекордера.

Консоль: цветной текст (разработка) или JSON (продакшн).
Файлы (LOG_TO_FILE): общий лог и отдельный error.log, ротация по размеру.
Асинхронные обёртки log_* добавляют место вызова в extra_data.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from src.common.constants import TypeMsg


DEFAULT_LOGGER_NAME = "owntracks_recorder"

_LEVELS: dict[TypeMsg, int] = {
    TypeMsg.DEBUG: logging.DEBUG,
    TypeMsg.INFO: logging.INFO,
    TypeMsg.WARNING: logging.WARNING,
    TypeMsg.ERROR: logging.ERROR,
    TypeMsg.CRITICAL: logging.CRITICAL,
}

# Сторонние логгеры, которые шумят на INFO
_NOISY_LOGGERS = ("redis", "httpx", "uvicorn.access")

_loggers: dict[str, logging.Logger] = {}
_file_handlers: list[logging.Handler] = []
_LOGGING_INITIALIZED: bool = False


@dataclass(frozen=True)
class LogConfig:
    """Снимок настроек логирования."""
    level: str = "DEBUG"
    fmt: str = "colored"
    to_file: bool = False
    file_path: str = "logs/app.log"
    max_bytes: int = 10485760
    backup_count: int = 5


def _pick(value: Any, expected: type, default: Any) -> Any:
    # В тестах settings бывает MagicMock
    return value if isinstance(value, expected) else default


def _load_config() -> LogConfig:
    """Читает секцию logging; без конфигурации возвращает значения по умолчанию."""
    try:
        from src.config import settings
        section = settings.logging
    except Exception:
        return LogConfig()

    return LogConfig(
        level=_pick(section.LOG_LEVEL, str, "DEBUG"),
        fmt=_pick(section.LOG_FORMAT, str, "colored"),
        to_file=section.LOG_TO_FILE is True,
        file_path=_pick(section.LOG_FILE_PATH, str, "logs/app.log"),
        max_bytes=_pick(section.LOG_MAX_BYTES, int, 10485760),
        backup_count=_pick(section.LOG_BACKUP_COUNT, int, 5),
    )


# =============================================================================
# ФОРМАТТЕРЫ
# =============================================================================

def _utc_iso(created: float) -> str:
    moment = datetime.fromtimestamp(created, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class JsonFormatter(logging.Formatter):
    """Одна JSON-строка на запись."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": _utc_iso(record.created),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        extra_data = getattr(record, "extra_data", None)
        if extra_data:
            entry["extra"] = extra_data
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class ColoredFormatter(logging.Formatter):
    """Цветной вывод для консоли."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"
    GRAY = "\033[90m"

    def _origin(self, record: logging.LogRecord) -> str:
        extra_data = getattr(record, "extra_data", None) or {}
        function = extra_data.get("caller_function")
        if not function:
            return ""
        where = (
            f"{extra_data.get('caller_module')}.{function}() "
            f"{extra_data.get('caller_file')}:{extra_data.get('caller_line')}"
        )
        return f" {self.GRAY}[{where}]{self.RESET}"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.GRAY)
        stamp = datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S")
        line = f"{stamp} {color}[{record.levelname}]{self.RESET}{self._origin(record)} {record.getMessage()}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def _make_formatter(fmt: str) -> logging.Formatter:
    return JsonFormatter() if fmt == "json" else ColoredFormatter()


# =============================================================================
# ФАЙЛЫ
# =============================================================================

class SizeRotatingFileHandler(RotatingFileHandler):
    """
    Файл <name>.log в директории log_dir.

    При достижении max_bytes текущий файл переименовывается
    в <name>_<YYYYmmdd-HHMMSS>.log и открывается новый.
    Хранится не больше backup_count архивов (0: без ограничения).
    """

    def __init__(
        self,
        log_dir: str,
        max_bytes: int,
        logger_name: str = "app",
        backup_count: int = 0,
        encoding: str = "utf-8",
    ):
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.logger_name = logger_name
        self.archive_limit = backup_count
        super().__init__(
            filename=str(self.log_dir / f"{logger_name}.log"),
            maxBytes=max_bytes,
            backupCount=0,
            encoding=encoding,
        )

    def shouldRollover(self, record: logging.LogRecord) -> bool:
        if self.maxBytes <= 0:
            return False
        if self.stream is None:
            self.stream = self._open()
        return self.stream.seek(0, os.SEEK_END) >= self.maxBytes

    def doRollover(self) -> None:
        if self.stream:
            self.stream.close()
            self.stream = None

        stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
        archive = self.log_dir / f"{self.logger_name}_{stamp}.log"
        try:
            os.replace(self.baseFilename, archive)
        except FileNotFoundError:
            pass
        self._prune_archives()

        self.stream = self._open()

    def _prune_archives(self) -> None:
        if self.archive_limit <= 0:
            return
        # Имя архива содержит время, сортировка по имени хронологическая
        archives = sorted(self.log_dir.glob(f"{self.logger_name}_[0-9]*-[0-9]*.log"))
        for stale in archives[:-self.archive_limit]:
            stale.unlink(missing_ok=True)


def _ensure_file_handlers(config: LogConfig) -> list[logging.Handler]:
    """Общий и error-хендлеры создаются один раз на процесс."""
    if _file_handlers:
        return _file_handlers

    log_path = Path(config.file_path)
    name = log_path.stem
    # SERVICE_NAME различает файлы нескольких инстансов
    service_name = os.getenv("SERVICE_NAME")
    if service_name:
        name = f"{name}_{service_name}"

    main_handler = SizeRotatingFileHandler(str(log_path.parent), config.max_bytes, name, config.backup_count)
    error_handler = SizeRotatingFileHandler(str(log_path.parent), config.max_bytes, "error", config.backup_count)
    error_handler.setLevel(logging.ERROR)

    for handler in (main_handler, error_handler):
        handler.setFormatter(_make_formatter(config.fmt))
        _file_handlers.append(handler)
    return _file_handlers


# =============================================================================
# ЛОГГЕРЫ
# =============================================================================

def get_logger(name: str = DEFAULT_LOGGER_NAME) -> logging.Logger:
    """
    Настроенный логгер (кэшируется по имени).

    Args:
        name: Имя логгера
    """
    cached = _loggers.get(name)
    if cached is not None:
        return cached

    config = _load_config()
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, config.level.upper(), logging.DEBUG))

    if not logger.handlers:
        console = logging.StreamHandler(sys.stdout)
        console.setFormatter(_make_formatter(config.fmt))
        logger.addHandler(console)

        if config.to_file:
            for handler in _ensure_file_handlers(config):
                logger.addHandler(handler)

        logger.propagate = False

    _loggers[name] = logger
    return logger


def setup_logging() -> None:
    """Настраивает логирование при старте. Повторные вызовы игнорируются."""
    global _LOGGING_INITIALIZED
    if _LOGGING_INITIALIZED:
        return
    _LOGGING_INITIALIZED = True

    get_logger(DEFAULT_LOGGER_NAME)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def _get_caller_info(depth: int = 2) -> dict[str, Any]:
    """
    Место вызова log_*.

    depth=2: пропускаются сама функция и обёртка log_*.
    """
    try:
        frame = sys._getframe(depth)
    except ValueError:
        return {}

    code = frame.f_code
    return {
        "caller_function": code.co_name,
        "caller_module": frame.f_globals.get("__name__", "unknown"),
        "caller_file": os.path.basename(code.co_filename),
        "caller_line": frame.f_lineno,
    }


def _emit(
    level: int,
    message: str,
    logger_name: str,
    extra: dict[str, Any] | None,
    exc_info: bool = False,
) -> None:
    # [0] _get_caller_info, [1] _emit, [2] log_info, [3] вызывающий код
    caller = _get_caller_info(depth=3)
    get_logger(logger_name).log(
        level,
        message,
        extra={"extra_data": {**caller, **(extra or {})}},
        exc_info=exc_info,
    )


async def log_info(
    message: str,
    *,
    type_msg: TypeMsg = TypeMsg.INFO,
    logger_name: str = DEFAULT_LOGGER_NAME,
    extra: dict[str, Any] | None = None,
) -> None:
    """
    Записывает сообщение с уровнем type_msg.

    Args:
        message: Текст
        type_msg: Уровень
        logger_name: Имя логгера
        extra: Дополнительные поля записи
    """
    _emit(_LEVELS.get(type_msg, logging.INFO), message, logger_name, extra)


async def log_debug(
    message: str,
    logger_name: str = DEFAULT_LOGGER_NAME,
    extra: dict[str, Any] | None = None,
) -> None:
    _emit(logging.DEBUG, message, logger_name, extra)


async def log_warning(
    message: str,
    logger_name: str = DEFAULT_LOGGER_NAME,
    extra: dict[str, Any] | None = None,
) -> None:
    _emit(logging.WARNING, message, logger_name, extra)


async def log_error(
    message: str,
    logger_name: str = DEFAULT_LOGGER_NAME,
    extra: dict[str, Any] | None = None,
    exc_info: bool = False,
) -> None:
    """Ошибка; exc_info=True добавляет трейсбек текущего исключения."""
    _emit(logging.ERROR, message, logger_name, extra, exc_info=exc_info)
