"""Record store: upsert-by-external-id for every synchronized entity kind.

Provider DTOs are validated, mapped to column values and written with a
select-then-insert/update against the ORM. Foreign keys are resolved by
external id: optional ones become NULL when the referenced row is missing,
required ones (season league, fixture teams, odds fixture) raise
``ValueError``. Nothing here commits; callers own the transaction.
"""

import uuid
from collections.abc import Awaitable, Callable
from dataclasses import asdict, dataclass, field
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sports_sync.lib.provider import (
    BookmakerDTO,
    CountryDTO,
    ExternalId,
    FixtureDTO,
    LeagueDTO,
    OddsDTO,
    SeasonDTO,
    TeamDTO,
)
from sports_sync.models import Base, Bookmaker, Country, Fixture, League, Odds, Season, Team
from sports_sync.models.base import as_utc
from sports_sync.models.enums import EntityKind, ItemAction

EntityDTO = CountryDTO | LeagueDTO | TeamDTO | SeasonDTO | FixtureDTO | BookmakerDTO | OddsDTO

ENTITY_MODELS: dict[EntityKind, type[Base]] = {
    EntityKind.COUNTRY: Country,
    EntityKind.LEAGUE: League,
    EntityKind.TEAM: Team,
    EntityKind.SEASON: Season,
    EntityKind.FIXTURE: Fixture,
    EntityKind.BOOKMAKER: Bookmaker,
    EntityKind.ODDS: Odds,
}


@dataclass
class UpsertResult:
    """What an upsert did (or, in a dry run, would do)."""

    action: ItemAction
    entity_id: uuid.UUID | None = None
    changes: dict[str, str] = field(default_factory=dict)


def external_key(value: ExternalId | None) -> str:
    """Normalize an external id to its stored string form.

    Raises:
        ValueError: If the id is missing or blank.
    """
    key = "" if value is None else str(value).strip()
    if not key:
        msg = "external_id is required"
        raise ValueError(msg)
    return key


async def resolve_id(session: AsyncSession, kind: EntityKind, external_id: ExternalId | None) -> uuid.UUID | None:
    """Primary key of the row with the given external id, or None."""
    if external_id is None or not str(external_id).strip():
        return None
    model = ENTITY_MODELS[kind]
    result = await session.execute(select(model.id).where(model.external_id == str(external_id).strip()))
    return result.scalar_one_or_none()


async def get_by_external_id(session: AsyncSession, kind: EntityKind, external_id: ExternalId) -> Any | None:
    """Load the ORM row with the given external id, or None."""
    model = ENTITY_MODELS[kind]
    result = await session.execute(select(model).where(model.external_id == external_key(external_id)))
    return result.scalar_one_or_none()


async def _required_fk(session: AsyncSession, kind: EntityKind, external_id: ExternalId | None, label: str) -> uuid.UUID:
    ref = await resolve_id(session, kind, external_id)
    if ref is None:
        msg = f"{label} {external_id!r} not found in store"
        raise ValueError(msg)
    return ref


def _require_text(value: str | None, label: str) -> str:
    text = (value or "").strip()
    if not text:
        msg = f"{label} is required"
        raise ValueError(msg)
    return text


async def _country_values(session: AsyncSession, dto: CountryDTO) -> dict[str, Any]:
    return {
        "name": _require_text(dto.name, "name"),
        "iso2": dto.iso2,
        "iso3": dto.iso3,
        "image_path": dto.image_path,
    }


async def _league_values(session: AsyncSession, dto: LeagueDTO) -> dict[str, Any]:
    return {
        "name": _require_text(dto.name, "name"),
        "type": dto.type,
        "sub_type": dto.sub_type,
        "short_code": dto.short_code,
        "image_path": dto.image_path,
        "country_id": await resolve_id(session, EntityKind.COUNTRY, dto.country_external_id),
    }


async def _team_values(session: AsyncSession, dto: TeamDTO) -> dict[str, Any]:
    return {
        "name": _require_text(dto.name, "name"),
        "short_code": dto.short_code,
        "image_path": dto.image_path,
        "founded": dto.founded,
        "type": dto.type,
        "country_id": await resolve_id(session, EntityKind.COUNTRY, dto.country_external_id),
    }


async def _season_values(session: AsyncSession, dto: SeasonDTO) -> dict[str, Any]:
    return {
        "name": _require_text(dto.name, "name"),
        "start_date": dto.start_date,
        "end_date": dto.end_date,
        "is_current": dto.is_current,
        "is_finished": dto.is_finished,
        "league_id": await _required_fk(session, EntityKind.LEAGUE, dto.league_external_id, "League"),
    }


async def _fixture_values(session: AsyncSession, dto: FixtureDTO) -> dict[str, Any]:
    return {
        "name": _require_text(dto.name, "name"),
        "start_iso": _require_text(dto.start_iso, "start_iso"),
        "start_ts": dto.start_ts,
        "state": _require_text(dto.state, "state"),
        "result": dto.result,
        "live_minute": dto.live_minute,
        "home_score_90": dto.home_score_90,
        "away_score_90": dto.away_score_90,
        "stage": dto.stage,
        "round": dto.round,
        "leg": dto.leg,
        "has_odds": dto.has_odds,
        "league_id": await resolve_id(session, EntityKind.LEAGUE, dto.league_external_id),
        "season_id": await resolve_id(session, EntityKind.SEASON, dto.season_external_id),
        "home_team_id": await _required_fk(session, EntityKind.TEAM, dto.home_team_external_id, "Home team"),
        "away_team_id": await _required_fk(session, EntityKind.TEAM, dto.away_team_external_id, "Away team"),
    }


async def _bookmaker_values(session: AsyncSession, dto: BookmakerDTO) -> dict[str, Any]:
    return {"name": _require_text(dto.name, "name")}


async def _odds_values(session: AsyncSession, dto: OddsDTO) -> dict[str, Any]:
    return {
        "fixture_id": await _required_fk(session, EntityKind.FIXTURE, dto.fixture_external_id, "Fixture"),
        "bookmaker_id": await resolve_id(session, EntityKind.BOOKMAKER, dto.bookmaker_external_id),
        "market_external_id": external_key(dto.market_external_id),
        "market_name": dto.market_name,
        "label": _require_text(dto.label, "label"),
        "value": _require_text(dto.value, "value"),
        "probability": dto.probability,
        "handicap": dto.handicap,
        "total": dto.total,
        "winning": dto.winning,
        "starting_at_ts": dto.starting_at_ts,
        "sort_order": dto.sort_order,
    }


_VALUE_BUILDERS: dict[EntityKind, Callable[[AsyncSession, Any], Awaitable[dict[str, Any]]]] = {
    EntityKind.COUNTRY: _country_values,
    EntityKind.LEAGUE: _league_values,
    EntityKind.TEAM: _team_values,
    EntityKind.SEASON: _season_values,
    EntityKind.FIXTURE: _fixture_values,
    EntityKind.BOOKMAKER: _bookmaker_values,
    EntityKind.ODDS: _odds_values,
}


def compute_changes(existing: Any, values: dict[str, Any]) -> dict[str, str]:
    """Changed columns as ``{"field": "old → new"}``."""
    changes = {}
    for name, new in values.items():
        old = getattr(existing, name)
        if old != new:
            changes[name] = f"{old} → {new}"
    return changes


async def upsert_entity(
    session: AsyncSession,
    kind: EntityKind,
    dto: EntityDTO,
    *,
    dry_run: bool = False,
) -> UpsertResult:
    """Insert or update one entity keyed by its external id.

    Args:
        session: Database session; the caller commits.
        kind: Entity kind of ``dto``.
        dto: Provider record.
        dry_run: Validate and classify without writing.

    Returns:
        The action taken (``inserted`` / ``updated``) and the changed fields.

    Raises:
        ValueError: On a missing required field or unresolvable required reference.
    """
    key = external_key(dto.external_id)
    values = await _VALUE_BUILDERS[kind](session, dto)
    existing = await get_by_external_id(session, kind, key)

    if existing is not None:
        changes = compute_changes(existing, values)
        if not dry_run:
            for name, value in values.items():
                setattr(existing, name, value)
            await session.flush()
        return UpsertResult(action=ItemAction.UPDATED, entity_id=existing.id, changes=changes)

    if dry_run:
        return UpsertResult(action=ItemAction.INSERTED)

    entity = ENTITY_MODELS[kind](external_id=key, **values)
    session.add(entity)
    await session.flush()
    return UpsertResult(action=ItemAction.INSERTED, entity_id=entity.id)


def dto_record(dto: EntityDTO) -> dict[str, Any]:
    """Provider DTO as a plain dict with a string external id."""
    record = asdict(dto)
    record["external_id"] = str(dto.external_id)
    return record


_SNAPSHOT_COLUMNS: dict[EntityKind, tuple[str, ...]] = {
    EntityKind.COUNTRY: ("name", "iso2", "iso3", "image_path"),
    EntityKind.LEAGUE: ("name", "type", "sub_type", "short_code", "image_path"),
    EntityKind.TEAM: ("name", "short_code", "image_path", "founded", "type"),
    EntityKind.SEASON: ("name", "start_date", "end_date", "is_current", "is_finished"),
    EntityKind.FIXTURE: ("name", "start_iso", "start_ts", "state", "result", "stage", "round", "has_odds"),
    EntityKind.BOOKMAKER: ("name",),
    EntityKind.ODDS: (
        "market_external_id",
        "market_name",
        "label",
        "value",
        "probability",
        "handicap",
        "total",
        "winning",
        "starting_at_ts",
        "sort_order",
    ),
}


def row_record(kind: EntityKind, row: Any) -> dict[str, Any]:
    """Stored row as a plain dict of its comparable columns."""
    record = {"id": str(row.id), "external_id": row.external_id}
    for name in _SNAPSHOT_COLUMNS[kind]:
        record[name] = getattr(row, name)
    record["updated_at"] = as_utc(row.updated_at)
    return record


async def list_records(session: AsyncSession, kind: EntityKind, *, limit: int | None = None) -> list[dict[str, Any]]:
    """Every stored row of a kind as plain dicts, ordered by external id."""
    model = ENTITY_MODELS[kind]
    query = select(model).order_by(model.external_id)
    if limit is not None:
        query = query.limit(limit)
    result = await session.execute(query)
    return [row_record(kind, row) for row in result.scalars().all()]
