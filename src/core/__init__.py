"""
Доменный слой (Core Domain).
Логика приёма и хранения локаций, независимая от HTTP.
"""

from src.core.locations import (
    IngestCoordinator,
    LatestLocationCache,
    LocationEvent,
    LogStore,
)

__all__ = [
    "IngestCoordinator",
    "LatestLocationCache",
    "LocationEvent",
    "LogStore",
]
