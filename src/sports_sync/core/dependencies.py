"""FastAPI dependency injection for database sessions and the data provider."""

from collections.abc import AsyncGenerator, Callable
from typing import Annotated

from fastapi import Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from sports_sync.core.config import Settings, get_settings
from sports_sync.core.database import get_session_factory
from sports_sync.lib.provider import BaseSportsProvider, get_provider as make_provider


async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """Yield an async database session with per-request lifecycle."""
    factory = get_session_factory()
    async with factory() as session:
        yield session


def build_provider(settings: Settings) -> BaseSportsProvider:
    """Create the configured sports-data provider.

    Raises:
        ValueError: If no provider API token is configured.
    """
    if not settings.provider_api_token:
        msg = "PROVIDER_API_TOKEN is not configured"
        raise ValueError(msg)
    return make_provider(
        "sportmonks",
        api_token=settings.provider_api_token,
        base_url=settings.provider_base_url,
        timeout=settings.provider_timeout,
        per_page=settings.provider_per_page,
    )


async def get_provider(
    settings: Annotated[Settings, Depends(get_settings)],
) -> AsyncGenerator[BaseSportsProvider]:
    """Yield a provider for the request and close it afterward."""
    try:
        provider = build_provider(settings)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    try:
        yield provider
    finally:
        await provider.close()


ProviderFactory = Callable[[], BaseSportsProvider]


def get_provider_factory(
    settings: Annotated[Settings, Depends(get_settings)],
) -> ProviderFactory:
    """Return a factory for providers owned by background tasks.

    Background jobs outlive the request, so they build and close their own
    provider instead of borrowing the request-scoped one.
    """
    if not settings.provider_api_token:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="PROVIDER_API_TOKEN is not configured",
        )
    return lambda: build_provider(settings)
