# src/core/locations/__init__.py
"""
Домен локаций.
Журнал по устройствам, проекции последних локаций и координатор приёма.
"""

from src.core.locations.models import (
    LocationEvent,
    LogPartitionKey,
    LogRecord,
    LatestKey,
    DeviceLatest,
    UserLatest,
    GlobalLatest,
    latest_key_for,
)
from src.core.locations.log_store import LogStore
from src.core.locations.latest_cache import LatestLocationCache, project_fields
from src.core.locations.ingest import IngestCoordinator, IngestOutcome, IngestState

__all__ = [
    "LocationEvent",
    "LogPartitionKey",
    "LogRecord",
    "LatestKey",
    "DeviceLatest",
    "UserLatest",
    "GlobalLatest",
    "latest_key_for",
    "LogStore",
    "LatestLocationCache",
    "project_fields",
    "IngestCoordinator",
    "IngestOutcome",
    "IngestState",
]
