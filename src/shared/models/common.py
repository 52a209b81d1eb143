# src/shared/models/common.py
"""
Общие модели ответов HTTP API.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Ответ с ошибкой в формате рекордера."""

    error: str


class ResultsResponse(BaseModel):
    """Список значений в обёртке {"results": [...]}."""

    results: list = Field(default_factory=list)


class HealthStatus(BaseModel):
    """Статус здоровья сервиса."""

    service: str
    status: str = "healthy"  # healthy, degraded
    version: str | None = None
    dependencies: dict[str, str] = Field(default_factory=dict)
    # dependencies: {"redis": "healthy", "storage": "filesystem"}
