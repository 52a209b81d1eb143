# src/services/recorder/routes.py
"""
HTTP маршруты рекордера (совместимы с OwnTracks HTTP mode).

- POST /: приём сообщения OwnTracks
- GET  /api/0/list: пользователи / устройства / шарды
- GET  /api/0/last: последние локации
- GET  /api/0/locations: содержимое шарда
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from src.common.exceptions import InvalidPayload
from src.core.locations import (
    IngestCoordinator,
    LatestLocationCache,
    LogPartitionKey,
    LogStore,
    latest_key_for,
    project_fields,
)
from src.services.recorder.dependencies import (
    get_coordinator,
    get_latest_cache,
    get_log_store,
    require_basic_auth,
)
from src.shared.models import ErrorResponse, ResultsResponse


router = APIRouter(dependencies=[Depends(require_basic_auth)])


def parse_fields(fields: str | None) -> list[str] | None:
    """'lat,lon, tst' → ['lat', 'lon', 'tst']."""
    if not fields:
        return None
    parsed = [field.strip() for field in fields.split(",")]
    return [field for field in parsed if field] or None


@router.post(
    "/",
    tags=["Ingest"],
    summary="Принять сообщение OwnTracks",
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def ingest_location(
    request: Request,
    coordinator: IngestCoordinator = Depends(get_coordinator),
) -> list[Any]:
    """
    Принять сообщение.

    Сообщения других типов подтверждаются пустым массивом без записи.
    """
    try:
        payload = await request.json()
    except ValueError as e:
        raise InvalidPayload() from e
    outcome = await coordinator.ingest(payload)
    return outcome.response


@router.get(
    "/api/0/list",
    tags=["Read"],
    summary="Пользователи, устройства или шарды",
)
async def list_records(
    user: str | None = Query(default=None),
    device: str | None = Query(default=None),
    log_store: LogStore = Depends(get_log_store),
) -> Any:
    """
    user+device: имена файлов шардов; только user: устройства;
    без параметров: пользователи.
    """
    if user and device:
        return await log_store.list_partitions(user, device)

    if user:
        return ResultsResponse(results=await log_store.list_devices(user))

    return ResultsResponse(results=await log_store.list_users())


@router.get(
    "/api/0/last",
    tags=["Read"],
    summary="Последние локации",
    responses={404: {"model": ErrorResponse}},
)
async def last_locations(
    user: str | None = Query(default=None),
    device: str | None = Query(default=None),
    fields: str | None = Query(default=None),
    cache: LatestLocationCache = Depends(get_latest_cache),
) -> list[Any]:
    """Последние локации устройства, пользователя или всех пользователей."""
    entries = await cache.fetch(latest_key_for(user, device))
    return project_fields(entries, parse_fields(fields))


@router.get(
    "/api/0/locations",
    tags=["Read"],
    summary="Содержимое шарда журнала",
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def shard_locations(
    user: str = Query(...),
    device: str = Query(...),
    month: str = Query(..., description="YYYY-MM"),
    log_store: LogStore = Depends(get_log_store),
) -> Any:
    """Все события шарда rec/<user>/<device>/<month>.rec в порядке дозаписи."""
    try:
        key = LogPartitionKey(user=user, device=device, year_month=month)
    except ValidationError:
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid month format. Expected: YYYY-MM"},
        )

    records = await log_store.read(key)
    return ResultsResponse(results=[record.event for record in records])
