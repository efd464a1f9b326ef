"""Sync center: side-by-side views of the store and the provider.

Read-only. Snapshots are plain dicts keyed by ``external_id`` so the
reconciler can compare them without knowing about ORM rows or DTOs.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, date, datetime, time
from typing import Any

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from sports_sync.lib.provider import BaseSportsProvider
from sports_sync.lib.reconciler import DiffSummary, UnifiedEntity, get_comparator, reconcile, summarize
from sports_sync.models.enums import EntityKind
from sports_sync.services import entity_store
from sports_sync.services.entity_store import EntityDTO


@dataclass
class ProviderQuery:
    """Selects which provider records a snapshot covers.

    Countries, leagues and bookmakers ignore it. Seasons need
    ``season_ids``; teams need ``season_id``; fixtures take ``season_id`` or
    a date range; odds need a date range.
    """

    season_id: str | None = None
    season_ids: list[str] | None = None
    date_from: date | None = None
    date_to: date | None = None


@dataclass
class ReconciliationReport:
    kind: EntityKind
    entities: list[UnifiedEntity]
    summary: DiffSummary


def _require_range(query: ProviderQuery, kind: EntityKind) -> tuple[date, date]:
    if query.date_from is None or query.date_to is None:
        msg = f"{kind} snapshots need date_from and date_to"
        raise ValueError(msg)
    if query.date_from > query.date_to:
        msg = "date_from must not be after date_to"
        raise ValueError(msg)
    return query.date_from, query.date_to


async def get_db_snapshot(session: AsyncSession, kind: EntityKind, *, limit: int | None = None) -> list[dict[str, Any]]:
    """Stored rows of a kind as plain dicts."""
    return await entity_store.list_records(session, kind, limit=limit)


async def fetch_provider_entities(
    provider: BaseSportsProvider,
    kind: EntityKind,
    query: ProviderQuery | None = None,
) -> Sequence[EntityDTO]:
    """Fetch provider DTOs of a kind, scoped by the query.

    Raises:
        ValueError: If the query lacks what the kind needs.
        ProviderError: If the provider request fails.
    """
    query = query or ProviderQuery()
    match kind:
        case EntityKind.COUNTRY:
            dtos = await provider.fetch_countries()
        case EntityKind.LEAGUE:
            dtos = await provider.fetch_leagues()
        case EntityKind.BOOKMAKER:
            dtos = await provider.fetch_bookmakers()
        case EntityKind.SEASON:
            if not query.season_ids:
                msg = "season snapshots need season_ids"
                raise ValueError(msg)
            dtos = await provider.fetch_seasons_by_ids(query.season_ids)
        case EntityKind.TEAM:
            if not query.season_id:
                msg = "team snapshots need season_id"
                raise ValueError(msg)
            dtos = await provider.fetch_teams_by_season(query.season_id)
        case EntityKind.FIXTURE:
            if query.season_id:
                dtos = await provider.fetch_fixtures_by_season(query.season_id)
            else:
                dtos = await provider.fetch_fixtures_between(*_require_range(query, kind))
        case EntityKind.ODDS:
            dtos = await provider.fetch_odds_between(*_require_range(query, kind))
        case _:
            msg = f"Unsupported entity kind: {kind}"
            raise ValueError(msg)
    return dtos


async def get_provider_snapshot(
    provider: BaseSportsProvider,
    kind: EntityKind,
    query: ProviderQuery | None = None,
) -> list[dict[str, Any]]:
    """Provider records of a kind as plain dicts.

    Raises:
        ValueError: If the query lacks what the kind needs.
        ProviderError: If the provider request fails.
    """
    dtos = await fetch_provider_entities(provider, kind, query)
    return [entity_store.dto_record(dto) for dto in dtos]


async def inspect(
    session: AsyncSession,
    provider: BaseSportsProvider,
    kind: EntityKind,
    query: ProviderQuery | None = None,
) -> ReconciliationReport:
    """Reconcile the store against the provider for one entity kind.

    Store rows are narrowed to the external ids the provider snapshot is
    about when the snapshot is scoped (season, date range), so a scoped view
    does not flag the rest of the table as extra.
    """
    provider_records = await get_provider_snapshot(provider, kind, query)
    db_records = await get_db_snapshot(session, kind)
    if query is not None and _is_scoped(kind, query):
        db_records = _scope_db_records(kind, db_records, provider_records, query)

    entities = reconcile(db_records, provider_records, get_comparator(kind))
    summary = summarize(entities)
    logger.info(
        "Reconciled {}: {} ok, {} missing, {} extra, {} mismatch",
        kind,
        summary.ok,
        summary.missing,
        summary.extra,
        summary.mismatch,
    )
    return ReconciliationReport(kind=kind, entities=entities, summary=summary)


def _is_scoped(kind: EntityKind, query: ProviderQuery) -> bool:
    return kind in (EntityKind.SEASON, EntityKind.TEAM, EntityKind.FIXTURE, EntityKind.ODDS) and bool(
        query.season_id or query.season_ids or query.date_from or query.date_to
    )


def _scope_db_records(
    kind: EntityKind,
    db_records: list[dict[str, Any]],
    provider_records: list[dict[str, Any]],
    query: ProviderQuery,
) -> list[dict[str, Any]]:
    if kind is EntityKind.SEASON and query.season_ids:
        wanted = {str(s).strip() for s in query.season_ids}
        return [r for r in db_records if r["external_id"] in wanted]
    if kind in (EntityKind.FIXTURE, EntityKind.ODDS) and query.date_from and query.date_to and not query.season_id:
        ts_key = "start_ts" if kind is EntityKind.FIXTURE else "starting_at_ts"
        start = _epoch(query.date_from)
        end = _epoch(query.date_to) + 86400
        return [r for r in db_records if r.get(ts_key) is not None and start <= r[ts_key] < end]
    # Team and season-scoped fixture views: compare only what the provider returned
    provider_ids = {r["external_id"] for r in provider_records}
    return [r for r in db_records if r["external_id"] in provider_ids]


def _epoch(day: date) -> int:
    return int(datetime.combine(day, time.min, tzinfo=UTC).timestamp())
