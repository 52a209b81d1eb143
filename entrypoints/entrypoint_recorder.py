#!/usr/bin/env python3
"""
Entrypoint для рекордера локаций OwnTracks.

Запуск:
    python entrypoints/entrypoint_recorder.py

Порт по умолчанию: 8083
"""

import sys
from pathlib import Path

# Добавляем корневую директорию проекта в путь
project_root = Path(__file__).parent.parent.resolve()
sys.path.insert(0, str(project_root))

import uvicorn

from src.config import settings


def main() -> None:
    """Запустить рекордер."""
    uvicorn.run(
        "src.services.recorder.app:app",
        host=settings.deployment.RECORDER_HOST,
        port=settings.deployment.RECORDER_PORT,
        reload=settings.system.DEBUG,
        log_level=settings.system.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
