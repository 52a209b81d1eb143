# src/config/__init__.py
"""
Настройки рекордера.

Единый экземпляр settings строится из config/config.json
с переопределениями из окружения.
"""

from src.config.loader import (
    AuthSettings,
    Settings,
    get_settings,
    settings,
)

__all__ = ["AuthSettings", "Settings", "get_settings", "settings"]
