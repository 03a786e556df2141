"""
nest-heating API - Main Entry Point

FastAPI application wiring the schedule store, the Nest thermostat client,
the Home Assistant context oracles and the heating scheduler together.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from apscheduler.schedulers.asyncio import AsyncIOScheduler  # type: ignore[import-untyped]
from apscheduler.triggers.interval import IntervalTrigger  # type: ignore[import-untyped]
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from nest_heating.api.dependencies import Services, set_services
from nest_heating.api.routes import api_router
from nest_heating.config import Settings, get_settings
from nest_heating.core.decision_engine import DecisionEngine
from nest_heating.core.dispatcher import CommandDispatcher
from nest_heating.core.ingestion import TelemetryIngestor
from nest_heating.core.scheduler import HeatingScheduler
from nest_heating.errors import (
    ConfigError,
    DeviceError,
    HeatingError,
    StoreError,
    ValidationError,
)
from nest_heating.integrations.context_oracles import HAContextOracles
from nest_heating.integrations.ha_client import HAClient, HAClientError
from nest_heating.integrations.nest_client import NestClient
from nest_heating.integrations.weather_service import WeatherService
from nest_heating.models.database import close_db, get_session_maker, init_db
from nest_heating.models.stores import SqlReadingStore, SqlScheduleStore

# Configure logging
settings_instance = get_settings()
logging.basicConfig(
    level=logging.DEBUG if settings_instance.debug else settings_instance.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

_VERSION = "1.0.0"
POLL_JOB_ID = "poll_thermostats"


# ============================================================================
# Application State
# ============================================================================


class AppState:
    """Centralized application state container."""

    def __init__(self) -> None:
        self.scheduler: AsyncIOScheduler | None = None
        self.nest: NestClient | None = None
        self.ha: HAClient | None = None
        self.services: Services | None = None
        self.startup_time: datetime | None = None
        self.is_healthy: bool = False


app_state = AppState()


# ============================================================================
# Wiring
# ============================================================================


def init_scheduler(settings: Settings) -> AsyncIOScheduler:
    """Create the APScheduler instance that runs heating jobs and polling."""
    return AsyncIOScheduler(
        timezone=settings.time_zone,
        job_defaults={
            "coalesce": True,
            "max_instances": 1,
            "misfire_grace_time": 60,
        },
    )


async def _connect_home_assistant(settings: Settings) -> HAClient | None:
    if not settings.home_assistant_token:
        logger.warning("Home Assistant token not configured, context oracles report unknown")
        return None
    client = HAClient(
        str(settings.home_assistant_url),
        settings.home_assistant_token,
        timeout=settings.request_timeout,
    )
    try:
        await client.connect()
    except HAClientError as exc:
        logger.warning("Home Assistant unavailable at startup (will retry on use): %s", exc)
    return client


def build_services(
    settings: Settings,
    aps_scheduler: AsyncIOScheduler,
    nest: NestClient,
    ha: HAClient | None,
) -> Services:
    session_maker = get_session_maker()
    schedule_store = SqlScheduleStore(session_maker)
    reading_store = SqlReadingStore(session_maker)

    weather = None
    if ha is not None and settings.weather_entity:
        weather = WeatherService(ha, weather_entity=settings.weather_entity)
    oracles = HAContextOracles(
        settings, ha_client=ha, weather=weather, reading_store=reading_store
    )

    dispatcher = CommandDispatcher(nest)
    engine = DecisionEngine(
        store=schedule_store,
        oracles=oracles,
        adapter=nest,
        dispatcher=dispatcher,
        settings=settings,
    )
    heating_scheduler = HeatingScheduler(
        aps_scheduler,
        store=schedule_store,
        oracles=oracles,
        engine=engine,
        settings=settings,
    )
    ingestor = TelemetryIngestor(
        adapter=nest,
        readings=reading_store,
        engine=engine,
        scheduler=heating_scheduler,
    )
    return Services(
        schedule_store=schedule_store,
        reading_store=reading_store,
        dispatcher=dispatcher,
        scheduler=heating_scheduler,
        ingestor=ingestor,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Application lifespan manager for startup and shutdown.
    """
    settings = settings_instance
    logger.info("Starting nest-heating API...")

    try:
        masked = settings.database_url
        if settings.db_password:
            masked = masked.replace(settings.db_password, "***")
        logger.info("Connecting to database: %s", masked)
        await init_db()

        app_state.nest = NestClient(
            str(settings.nest_api_url),
            project_id=settings.nest_project_id,
            token=settings.nest_access_token,
            timeout=settings.request_timeout,
        )
        app_state.ha = await _connect_home_assistant(settings)

        app_state.scheduler = init_scheduler(settings)
        services = build_services(settings, app_state.scheduler, app_state.nest, app_state.ha)
        app_state.services = services
        set_services(services)

        await services.scheduler.rebuild()

        if settings.mock:
            logger.info("Mock mode, thermostat polling disabled")
        else:
            app_state.scheduler.add_job(
                services.ingestor.poll_once,
                IntervalTrigger(minutes=settings.poll_interval_minutes),
                id=POLL_JOB_ID,
                name="Poll Thermostats",
                next_run_time=datetime.now(UTC),
                replace_existing=True,
            )

        logger.info("Starting background scheduler...")
        app_state.scheduler.start()

        app_state.startup_time = datetime.now(UTC)
        app_state.is_healthy = True
        logger.info("nest-heating API startup complete")

    except Exception as e:
        logger.error("Startup failed: %s", e)
        app_state.is_healthy = False
        raise

    yield

    logger.info("Shutting down nest-heating API...")
    app_state.is_healthy = False

    if app_state.scheduler and app_state.scheduler.running:
        logger.info("Stopping background scheduler...")
        app_state.scheduler.shutdown(wait=False)

    set_services(None)
    app_state.services = None

    if app_state.ha:
        await app_state.ha.disconnect()
        app_state.ha = None
    if app_state.nest:
        await app_state.nest.disconnect()
        app_state.nest = None

    logger.info("Closing database connections...")
    await close_db()

    logger.info("nest-heating API shutdown complete")


# ============================================================================
# FastAPI Application
# ============================================================================

settings = settings_instance

app = FastAPI(
    title="nest-heating API",
    description="Schedule-driven and reactive control of a Nest thermostat.",
    version=_VERSION,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url=None,
)

app.include_router(api_router)


# ============================================================================
# Health Check Endpoints
# ============================================================================


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, object]:
    """Health check with scheduler status."""
    scheduler = app_state.scheduler
    running = bool(scheduler and scheduler.running)
    services = app_state.services
    uptime = None
    if app_state.startup_time:
        uptime = (datetime.now(UTC) - app_state.startup_time).total_seconds()

    return {
        "status": "healthy" if app_state.is_healthy and running else "degraded",
        "timestamp": datetime.now(UTC).isoformat(),
        "version": _VERSION,
        "uptime_seconds": uptime,
        "scheduler_running": running,
        "registered_jobs": len(services.scheduler.jobs) if services else 0,
    }


# ============================================================================
# Exception Handlers
# ============================================================================

_STATUS_BY_ERROR: tuple[tuple[type[HeatingError], int], ...] = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (ConfigError, status.HTTP_500_INTERNAL_SERVER_ERROR),
    (StoreError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (DeviceError, status.HTTP_502_BAD_GATEWAY),
)


def status_for(exc: HeatingError) -> int:
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@app.exception_handler(HeatingError)
async def heating_exception_handler(request: Request, exc: HeatingError) -> JSONResponse:
    """Translate domain errors into JSON error responses."""
    code = status_for(exc)
    logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=code,
        content={"error": {"code": code, "type": type(exc).__name__, "message": str(exc)}},
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.error("Unhandled exception: %s", exc, exc_info=True)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": {
                "code": 500,
                "message": "An internal error occurred" if not settings.debug else str(exc),
            },
        },
    )


# ============================================================================
# CLI Entry Point
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "nest_heating.api.main:app",
        host=settings.host,
        port=settings.port,
        loop="asyncio",
        reload=settings.debug,
        log_level="debug" if settings.debug else "info",
        access_log=True,
    )
