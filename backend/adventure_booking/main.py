"""
Adventure Booking API

Serves the booking widget of an adventure-tour marketplace: per-date
availability, live quotes, promo checks, the calendar's disabled dates and
the booking lifecycle (hold, confirm, payment failure, cancel).
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from adventure_booking.api.middleware import RequestLoggingMiddleware
from adventure_booking.api.router import api_router
from adventure_booking.core.config import get_settings
from adventure_booking.core.logging import get_logger, setup_logging
from adventure_booking.core.metrics import metrics_endpoint, record_db_operation
from adventure_booking.db.session import dispose_engine, ping_database
from adventure_booking.services.cache_service import close_redis, get_cache_stats, get_redis

settings = get_settings()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
    )

    if await get_redis():
        logger.info("redis_ready")
    else:
        # Calendar reads fall through to the database
        logger.warning("redis_unavailable", message="Running without calendar cache")

    yield

    await close_redis()
    await dispose_engine()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Availability, pricing and booking core for adventure tours",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "X-Session-Id"],
)
app.add_middleware(RequestLoggingMiddleware)
app.include_router(api_router)


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Write paths surface database failures; nothing is retried here."""
    logger.error("database_error", path=request.url.path, error=str(exc))
    record_db_operation("error")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Database temporarily unavailable"},
    )


@app.get("/health", tags=["Health"])
async def health_check():
    database_ok = await ping_database()
    return JSONResponse(
        status_code=status.HTTP_200_OK if database_ok else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "healthy" if database_ok else "degraded",
            "version": settings.APP_VERSION,
            "environment": settings.ENVIRONMENT,
            "database": "ok" if database_ok else "error",
            "cache": await get_cache_stats(),
        },
    )


@app.get("/metrics", tags=["Health"], include_in_schema=False)
async def metrics():
    return metrics_endpoint()


@app.get("/", tags=["Root"])
async def root():
    return {"service": settings.APP_NAME, "version": settings.APP_VERSION, "docs": "/docs"}
