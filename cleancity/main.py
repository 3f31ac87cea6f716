"""CleanCity FastAPI application entry point.

Creates the FastAPI app, configures middleware, includes routers, and
wires the complaint services (actor directory, activity log, complaint
repository, photo storage, lifecycle engine, dashboard stats) onto
``app.state`` for the lifetime of the process.
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from config.settings import settings
from cleancity.api.errors import register_error_handlers
from cleancity.api.router import api_router
from cleancity.middleware.request_context import REQUEST_ID_HEADER, RequestContextMiddleware

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

APP_VERSION = "0.1.0"


# ---------------------------------------------------------------------------
# Structured logging configuration
# ---------------------------------------------------------------------------


def _configure_logging() -> None:
    """Set up structlog with JSON or console rendering based on settings."""
    processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if settings.log_format == "json":
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            settings.log_level,
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# Application lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage startup and shutdown of the complaint services.

    On startup:
      1. Create the actor directory
      2. Create the activity log and the complaint repository over it
      3. Create local photo storage under ``settings.upload_dir``
      4. Create the lifecycle engine and the dashboard aggregator
      5. Optionally seed demo data
      6. Store everything on ``app.state``
    """
    _configure_logging()
    logger.info("app.startup", env=settings.env, upload_dir=settings.upload_dir)

    app.state.start_time = time.time()

    # -- 1. Actors -----------------------------------------------------------
    from cleancity.services.directory import ActorDirectory

    directory = ActorDirectory()
    app.state.directory = directory

    # -- 2. Complaints and their activity trail ------------------------------
    from cleancity.services.audit import AuditLog
    from cleancity.services.repository import InMemoryComplaintRepository

    repository = InMemoryComplaintRepository(AuditLog())
    app.state.repository = repository
    logger.info("app.repository_initialised")

    # -- 3. Photo storage ----------------------------------------------------
    from cleancity.services.storage import LocalFileStorage

    storage = LocalFileStorage(settings.upload_dir, max_bytes=settings.max_upload_bytes)
    app.state.storage = storage
    logger.info("app.storage_initialised", root=str(storage.root))

    # -- 4. Engine and dashboard ---------------------------------------------
    from cleancity.services.lifecycle import ComplaintLifecycleEngine
    from cleancity.services.stats import StatsAggregator

    engine = ComplaintLifecycleEngine(
        directory,
        repository,
        storage,
        max_upload_bytes=settings.max_upload_bytes,
    )
    app.state.engine = engine
    app.state.stats = StatsAggregator(directory, repository)
    logger.info("app.engine_initialised")

    # -- 5. Demo data --------------------------------------------------------
    if settings.seed_demo_data and not settings.is_production:
        from cleancity.data.seed import seed_demo_data

        users = await seed_demo_data(directory, engine)
        logger.info("app.demo_data_seeded", users=len(users))

    logger.info("app.startup_complete")

    yield

    logger.info("app.shutdown_complete")


# ---------------------------------------------------------------------------
# FastAPI application
# ---------------------------------------------------------------------------

app = FastAPI(
    title="CleanCity API",
    description=(
        "CleanCity -- municipal cleanliness complaints. Citizens report "
        "problems, agents dispatch workers, workers resolve them, and agents "
        "verify the result."
    ),
    version=APP_VERSION,
    lifespan=lifespan,
    default_response_class=ORJSONResponse,
    docs_url="/docs" if not settings.is_production else None,
    redoc_url="/redoc" if not settings.is_production else None,
)

# -- CORS middleware --------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Accept", "X-Actor-Id", REQUEST_ID_HEADER],
    expose_headers=[REQUEST_ID_HEADER],
)

# -- Custom middleware ------------------------------------------------------
app.add_middleware(RequestContextMiddleware)

# -- Error handling and routers ---------------------------------------------
register_error_handlers(app)
app.include_router(api_router)


@app.get("/api", response_class=ORJSONResponse)
async def api_info() -> dict:
    """API information endpoint."""
    return {
        "name": "CleanCity API",
        "version": APP_VERSION,
        "docs": "/docs",
        "health": "/api/v1/health",
        "endpoints": {
            "users": "/api/v1/users",
            "complaints": "/api/v1/complaints",
            "dashboard": "/api/v1/dashboard/stats",
            "health": "/api/v1/health",
        },
    }
