"""FastAPI application factory.

Creates the FastAPI app with lifespan management, exception handlers,
and OpenAPI metadata.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger

from sports_sync.core.background import task_runner
from sports_sync.core.config import get_settings
from sports_sync.core.database import dispose_engine, get_session_factory, init_engine
from sports_sync.core.logging import setup_logging
from sports_sync.lib.provider import ProviderError
from sports_sync.services.job_service import ensure_jobs
from sports_sync.services.job_status_service import JobNotFoundError

# Grace period for in-flight seeding jobs on shutdown
_SHUTDOWN_TIMEOUT_SECONDS = 30.0


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Manage application lifecycle: init engine and job rows on startup, dispose on shutdown."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_dir)
    init_engine(settings.database_url, echo=False, schema=settings.database_schema)

    async with get_session_factory()() as session:
        created = await ensure_jobs(session)
    if created:
        logger.info("Registered {} job definition(s)", created)

    yield

    await task_runner.wait_all(timeout=_SHUTDOWN_TIMEOUT_SECONDS)
    await dispose_engine()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="Sports Sync API",
        description="Sports reference-data seeding, job tracking and provider reconciliation",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Register exception handlers
    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"detail": str(exc)},
        )

    @app.exception_handler(JobNotFoundError)
    async def job_not_found_handler(request: Request, exc: JobNotFoundError) -> JSONResponse:
        return JSONResponse(
            status_code=404,
            content={"detail": "Job not found", "code": "job_not_found"},
        )

    @app.exception_handler(ProviderError)
    async def provider_error_handler(request: Request, exc: ProviderError) -> JSONResponse:
        logger.warning("Provider request failed: {}", exc)
        return JSONResponse(
            status_code=502,
            content={"detail": str(exc), "code": "provider_error"},
        )

    # Register middleware and routers
    from sports_sync.api.router import create_router, setup_middleware

    setup_middleware(app, settings)
    app.include_router(create_router(settings))

    return app
