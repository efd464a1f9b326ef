"""Root API router with /api/v1 prefix and middleware registration."""

from fastapi import APIRouter, FastAPI

from sports_sync.api.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware, setup_cors
from sports_sync.core.config import Settings


def create_router(settings: Settings) -> APIRouter:
    """Create the root API router with all sub-routers included.

    Args:
        settings: Application settings.

    Returns:
        Configured API router.
    """
    from sports_sync.api.v1.jobs import router as jobs_router
    from sports_sync.api.v1.sync import router as sync_router
    from sports_sync.api.v1.sync_center import router as sync_center_router

    root_router = APIRouter(prefix=settings.api_v1_prefix)
    root_router.include_router(sync_router)
    root_router.include_router(sync_center_router)
    root_router.include_router(jobs_router)

    return root_router


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register all middleware on the FastAPI app.

    Args:
        app: The FastAPI application.
        settings: Application settings.
    """
    setup_cors(app, settings)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
