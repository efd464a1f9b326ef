"""Sync center API endpoints.

Read-only views of one entity kind in the store, at the provider, and
reconciled side by side. Provider failures surface as 502.
"""

from dataclasses import asdict
from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from sports_sync.core.dependencies import get_async_session, get_provider
from sports_sync.lib.provider import BaseSportsProvider
from sports_sync.models.enums import EntityKind
from sports_sync.schemas.sync_center import (
    DiffSummaryResponse,
    ReconciliationResponse,
    SnapshotResponse,
    UnifiedEntityResponse,
)
from sports_sync.services import sync_center_service
from sports_sync.services.sync_center_service import ProviderQuery

router = APIRouter(prefix="/sync-center", tags=["sync-center"])


def provider_query(
    season_id: str | None = None,
    season_ids: Annotated[list[str] | None, Query()] = None,
    date_from: date | None = None,
    date_to: date | None = None,
) -> ProviderQuery:
    """Collect the provider scoping query parameters."""
    return ProviderQuery(season_id=season_id, season_ids=season_ids, date_from=date_from, date_to=date_to)


@router.get("/db/{entity}", response_model=SnapshotResponse)
async def get_db_snapshot(
    entity: EntityKind,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    limit: Annotated[int | None, Query(ge=1, le=10000)] = None,
) -> SnapshotResponse:
    """Stored records of one entity kind."""
    records = await sync_center_service.get_db_snapshot(session, entity, limit=limit)
    return SnapshotResponse(entity=entity, count=len(records), items=records)


@router.get("/provider/{entity}", response_model=SnapshotResponse)
async def get_provider_snapshot(
    entity: EntityKind,
    provider: Annotated[BaseSportsProvider, Depends(get_provider)],
    query: Annotated[ProviderQuery, Depends(provider_query)],
) -> SnapshotResponse:
    """Provider records of one entity kind."""
    records = await sync_center_service.get_provider_snapshot(provider, entity, query)
    return SnapshotResponse(entity=entity, count=len(records), items=records)


@router.get("/diff/{entity}", response_model=ReconciliationResponse)
async def get_diff(
    entity: EntityKind,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    provider: Annotated[BaseSportsProvider, Depends(get_provider)],
    query: Annotated[ProviderQuery, Depends(provider_query)],
) -> ReconciliationResponse:
    """Store and provider records of one entity kind, reconciled by external id."""
    report = await sync_center_service.inspect(session, provider, entity, query)
    return ReconciliationResponse(
        entity=report.kind,
        summary=DiffSummaryResponse(**asdict(report.summary)),
        items=[
            UnifiedEntityResponse(
                external_id=e.external_id,
                source=e.source,
                status=e.status,
                mismatched_fields=list(e.mismatched_fields),
                db=dict(e.db) if e.db is not None else None,
                provider=dict(e.provider) if e.provider is not None else None,
            )
            for e in report.entities
        ],
    )
