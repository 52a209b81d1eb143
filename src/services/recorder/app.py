# src/services/recorder/app.py
"""
FastAPI приложение рекордера локаций OwnTracks.

Endpoints:
- POST /                 - принять сообщение OwnTracks (HTTP mode)
- GET  /api/0/list       - пользователи / устройства / шарды журнала
- GET  /api/0/last       - последние локации
- GET  /api/0/locations  - содержимое шарда
- GET  /health           - статус сервиса (без аутентификации)
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.common.constants import TypeMsg
from src.common.exceptions import RecorderError, StorageFailure
from src.common.logger import log_error, log_info, log_warning, setup_logging
from src.config import settings
from src.services.recorder import dependencies
from src.services.recorder.routes import router
from src.shared.models import HealthStatus


SERVICE_NAME = "owntracks_recorder"


# === LIFESPAN ===

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Жизненный цикл приложения."""
    from src.core.locations import IngestCoordinator, LatestLocationCache, LogStore
    from src.infra.object_storage import create_object_storage
    from src.infra.redis_client import close_redis, init_redis

    setup_logging()
    await log_info("Запуск рекордера...", type_msg=TypeMsg.INFO)

    if not (settings.auth.BASIC_AUTH_USER and settings.auth.BASIC_AUTH_PASS):
        await log_warning("BASIC_AUTH_USER/BASIC_AUTH_PASS не заданы: все запросы будут отклонены")

    redis = await init_redis()
    storage = await create_object_storage(settings, redis)

    log_store = LogStore(
        storage,
        prefix=settings.storage.RECORD_PREFIX,
        extension=settings.storage.RECORD_EXTENSION,
    )
    cache = LatestLocationCache(redis)
    dependencies.init_dependencies(
        redis=redis,
        log_store=log_store,
        cache=cache,
        coordinator=IngestCoordinator(cache, log_store),
    )

    yield

    await log_info("Остановка рекордера...", type_msg=TypeMsg.INFO)
    dependencies.reset_dependencies()
    await close_redis()


# === APP ===

app = FastAPI(
    title="OwnTracks Recorder",
    description="Приём локаций OwnTracks: помесячный журнал по устройствам и последние локации.",
    version=settings.system.VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors.CORS_ORIGINS,
    allow_credentials=settings.cors.CORS_ALLOW_CREDENTIALS,
    allow_methods=["*"],
    allow_headers=["Content-Type", "Authorization"],
)


# === ERRORS ===

@app.exception_handler(RecorderError)
async def recorder_error_handler(request: Request, exc: RecorderError) -> JSONResponse:
    """Ошибки домена → {"error": ...} с соответствующим статусом."""
    if isinstance(exc, StorageFailure):
        await log_error(
            f"{request.method} {request.url.path}: {exc.detail}",
            exc_info=True,
        )
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


# === HEALTH CHECK ===

@app.get("/health", response_model=HealthStatus, tags=["Health"])
async def health_check() -> HealthStatus:
    """Проверка здоровья сервиса."""
    redis = dependencies.get_redis()
    redis_status = "unknown"
    if redis is not None:
        redis_status = "healthy" if await redis.health_check() else "unhealthy"

    return HealthStatus(
        service=SERVICE_NAME,
        status="healthy" if redis_status != "unhealthy" else "degraded",
        version=settings.system.VERSION,
        dependencies={
            "redis": redis_status,
            "storage": settings.storage.STORAGE_BACKEND,
        },
    )


app.include_router(router)


# === STARTUP ===

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.deployment.RECORDER_HOST, port=settings.deployment.RECORDER_PORT)
