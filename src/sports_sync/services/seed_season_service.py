"""Composite seeding: a season with its teams and fixtures, alone or in bulk.

One season is seeded into a single SeedBatch in three steps (season,
teams, fixtures), each reported with its own counters in a
``SeedSeasonResult``. The composite succeeds when the season step does;
team and fixture failures are reported without failing it.
"""

import time
import traceback
import uuid
from dataclasses import dataclass, field

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sports_sync.lib.provider import BaseSportsProvider, ProviderError
from sports_sync.models import League
from sports_sync.models.enums import EntityKind, ItemAction, RunStatus, RunTrigger
from sports_sync.schemas.batch_meta import (
    BulkSeasonEntry,
    BulkSeedSeasonsResult,
    SeasonStepResult,
    SeedSeasonResult,
    StepResult,
)
from sports_sync.services import entity_store
from sports_sync.services.seed_service import (
    BatchOutcome,
    add_items_total,
    finish_seed_batch,
    mark_batch_running,
    process_items,
    record_item,
    start_seed_batch,
    truncate_error,
    update_batch_meta,
)

SEED_SEASON_BATCH = "seed-season"
BULK_SEED_SEASONS_BATCH = "bulk-seed-seasons"


@dataclass
class SeedSeasonParams:
    season_external_id: int | str
    include_teams: bool = True
    include_fixtures: bool = True
    future_only: bool = False
    dry_run: bool = False
    trigger: RunTrigger = RunTrigger.API
    triggered_by: str | None = None


@dataclass
class BulkSeedSeasonsParams:
    season_external_ids: list[int | str] = field(default_factory=list)
    include_teams: bool = True
    include_fixtures: bool = True
    future_only: bool = True
    dry_run: bool = False
    trigger: RunTrigger = RunTrigger.API
    triggered_by: str | None = None


def _fetch_failed(batch_id: uuid.UUID, step: str, exc: Exception) -> StepResult:
    """Log a failed sub-step fetch and report it on the step instead of failing the season."""
    if isinstance(exc, ProviderError):
        logger.error("Batch {}: fetching {} failed: {}", batch_id, step, exc)
        message = str(exc)
    else:
        logger.opt(exception=exc).error("Batch {}: fetching {} failed unexpectedly", batch_id, step)
        message = f"Unexpected error fetching {step}: {exc!r}"
    return StepResult(error=truncate_error(message))


async def _ensure_league(
    session: AsyncSession,
    provider: BaseSportsProvider,
    league_external_id: int | str,
    batch_id: uuid.UUID,
    *,
    dry_run: bool,
) -> tuple[bool, bool]:
    """Create a missing league (and its country) from the provider.

    Returns:
        ``(league_created, country_created)``.

    Raises:
        ValueError: If the provider does not know the league.
    """
    if await entity_store.resolve_id(session, EntityKind.LEAGUE, league_external_id) is not None:
        return False, False

    logger.info("League {} not in store, fetching from provider", league_external_id)
    league = await provider.fetch_league_by_id(league_external_id)
    if league is None:
        msg = f"League {league_external_id} not found in provider"
        raise ValueError(msg)

    country_created = False
    if (
        league.country_external_id is not None
        and await entity_store.resolve_id(session, EntityKind.COUNTRY, league.country_external_id) is None
    ):
        country = await provider.fetch_country_by_id(league.country_external_id)
        if country is not None:
            outcome = await process_items(session, EntityKind.COUNTRY, [country], batch_id, dry_run=dry_run)
            country_created = _created(outcome, dry_run=dry_run)
            logger.info("Country {} auto-created", country.name)

    outcome = await process_items(session, EntityKind.LEAGUE, [league], batch_id, dry_run=dry_run)
    return _created(outcome, dry_run=dry_run), country_created


def _created(outcome: BatchOutcome, *, dry_run: bool) -> bool:
    # Dry runs record planned inserts as skipped
    return outcome.inserted > 0 or (dry_run and outcome.ok > 0)


async def _league_name(session: AsyncSession, league_id: uuid.UUID) -> str | None:
    result = await session.execute(select(League.name).where(League.id == league_id))
    return result.scalar_one_or_none()


async def _seed_season_step(
    session: AsyncSession,
    provider: BaseSportsProvider,
    params: SeedSeasonParams,
    batch_id: uuid.UUID,
) -> tuple[SeasonStepResult, bool]:
    """Resolve the season, store first and provider otherwise.

    Returns:
        The step result and whether the season now exists in the store.
    """
    key = entity_store.external_key(params.season_external_id)
    existing = await entity_store.get_by_external_id(session, EntityKind.SEASON, key)
    if existing is not None:
        step = SeasonStepResult(
            external_id=key,
            name=existing.name,
            league=await _league_name(session, existing.league_id),
            ok=1,
            total=1,
            skipped=1,
        )
        await add_items_total(session, batch_id, 1)
        await record_item(session, batch_id, EntityKind.SEASON, key, ItemAction.SKIPPED, meta={"reason": "exists"})
        await session.commit()
        return step, True

    season = await provider.fetch_season_by_id(key)
    if season is None:
        msg = (
            f"Season {key} not found in provider. It may be finished; "
            "providers often exclude finished seasons."
        )
        raise ValueError(msg)

    league_created, country_created = await _ensure_league(
        session, provider, season.league_external_id, batch_id, dry_run=params.dry_run
    )
    if params.dry_run and league_created:
        # The league is only planned, so the season cannot resolve it yet
        await add_items_total(session, batch_id, 1)
        await record_item(
            session,
            batch_id,
            EntityKind.SEASON,
            key,
            ItemAction.SKIPPED,
            meta={"planned_action": str(ItemAction.INSERTED)},
        )
        await session.commit()
        step = SeasonStepResult(
            external_id=key,
            name=season.name,
            league=season.league_name,
            created=True,
            league_created=True,
            country_created=country_created,
            ok=1,
            total=1,
            skipped=1,
        )
        return step, False

    outcome = await process_items(session, EntityKind.SEASON, [season], batch_id, dry_run=params.dry_run)
    step = SeasonStepResult(
        external_id=key,
        name=season.name,
        league=season.league_name,
        created=_created(outcome, dry_run=params.dry_run),
        league_created=league_created,
        country_created=country_created,
        **outcome.as_step().model_dump(exclude={"error"}),
    )
    stored = outcome.ok > 0 and not params.dry_run
    return step, stored


async def process_seed_season(
    session: AsyncSession,
    provider: BaseSportsProvider,
    params: SeedSeasonParams,
    *,
    batch_id: uuid.UUID,
) -> SeedSeasonResult:
    """Seed one season, optionally with its teams and fixtures, and finalize the batch.

    Fixtures are only seeded when the season exists in the store; with
    ``future_only`` fixtures that already started are dropped. Errors are
    persisted on the batch and reported in the returned result's ``error``
    rather than raised.

    Args:
        session: Database session.
        provider: Sports-data provider.
        params: What to seed.
        batch_id: Batch that receives every item.

    Returns:
        The result written to the batch meta; ``error`` is None on success.
    """
    await mark_batch_running(session, batch_id)
    result = SeedSeasonResult(dry_run=params.dry_run)

    try:
        result.season, season_stored = await _seed_season_step(session, provider, params, batch_id)
        if result.season.ok == 0:
            msg = f"Season {result.season.external_id} could not be stored"
            raise ValueError(msg)

        if params.include_teams:
            try:
                teams = await provider.fetch_teams_by_season(params.season_external_id)
            except Exception as exc:
                result.teams = _fetch_failed(batch_id, "teams", exc)
            else:
                outcome = await process_items(session, EntityKind.TEAM, teams, batch_id, dry_run=params.dry_run)
                result.teams = outcome.as_step()

        if params.include_fixtures and season_stored:
            try:
                fixtures = await provider.fetch_fixtures_by_season(params.season_external_id)
            except Exception as exc:
                result.fixtures = _fetch_failed(batch_id, "fixtures", exc)
            else:
                if params.future_only:
                    now = int(time.time())
                    fixtures = [fx for fx in fixtures if fx.start_ts >= now]
                outcome = await process_items(session, EntityKind.FIXTURE, fixtures, batch_id, dry_run=params.dry_run)
                result.fixtures = outcome.as_step()
    except Exception as exc:
        await session.rollback()
        logger.exception("Seed season {} failed (batch {})", params.season_external_id, batch_id)
        result.error = truncate_error(str(exc))
        await finish_seed_batch(
            session,
            batch_id,
            RunStatus.FAILED,
            error_message=str(exc),
            error_stack=traceback.format_exc(),
            meta=result.model_dump(mode="json"),
        )
        return result

    await finish_seed_batch(session, batch_id, RunStatus.SUCCESS, meta=result.model_dump(mode="json"))
    return result


async def process_bulk_seed_seasons(
    session: AsyncSession,
    provider: BaseSportsProvider,
    params: BulkSeedSeasonsParams,
    *,
    batch_id: uuid.UUID,
) -> BulkSeedSeasonsResult:
    """Seed several seasons in sequence under one parent batch.

    Each season runs in its own ``seed-season`` batch; the parent batch gets
    one BatchItem per season and its meta is rewritten after every step so
    pollers can follow per-season progress. The parent fails only when every
    season failed, or when the loop itself breaks; the latter is persisted on
    the parent batch rather than raised.
    """
    await mark_batch_running(session, batch_id)
    keys = [entity_store.external_key(season_id) for season_id in params.season_external_ids]
    result = BulkSeedSeasonsResult(
        total_seasons=len(keys),
        seasons=[BulkSeasonEntry(season_external_id=key) for key in keys],
    )

    try:
        await _run_bulk_seasons(session, provider, params, result, batch_id=batch_id)
    except Exception as exc:
        await session.rollback()
        logger.exception("Bulk seed failed (batch {})", batch_id)
        for entry in result.seasons:
            if entry.status == "processing":
                entry.status = "failed"
                entry.error = truncate_error(str(exc))
        await finish_seed_batch(
            session,
            batch_id,
            RunStatus.FAILED,
            error_message=str(exc),
            error_stack=traceback.format_exc(),
            meta=result.model_dump(mode="json"),
        )
        return result

    status = RunStatus.FAILED if keys and result.failed_seasons == len(keys) else RunStatus.SUCCESS
    await finish_seed_batch(
        session,
        batch_id,
        status,
        items_total=len(keys),
        items_success=result.completed_seasons,
        items_failed=result.failed_seasons,
        error_message="All seasons failed" if status is RunStatus.FAILED else None,
        meta=result.model_dump(mode="json"),
    )
    return result


async def _run_bulk_seasons(
    session: AsyncSession,
    provider: BaseSportsProvider,
    params: BulkSeedSeasonsParams,
    result: BulkSeedSeasonsResult,
    *,
    batch_id: uuid.UUID,
) -> None:
    await add_items_total(session, batch_id, result.total_seasons)
    await update_batch_meta(session, batch_id, result.model_dump(mode="json"))

    for entry in result.seasons:
        entry.status = "processing"
        await update_batch_meta(session, batch_id, result.model_dump(mode="json"))

        child = await start_seed_batch(
            session,
            SEED_SEASON_BATCH,
            meta={"parent_batch_id": str(batch_id)},
            trigger=params.trigger,
            triggered_by=params.triggered_by,
            dry_run=params.dry_run,
        )
        entry.batch_id = str(child.id)
        season_result = await process_seed_season(
            session,
            provider,
            SeedSeasonParams(
                season_external_id=entry.season_external_id,
                include_teams=params.include_teams,
                include_fixtures=params.include_fixtures,
                future_only=params.future_only,
                dry_run=params.dry_run,
                trigger=params.trigger,
                triggered_by=params.triggered_by,
            ),
            batch_id=child.id,
        )
        entry.result = season_result

        if season_result.error is None:
            entry.status = "done"
            result.completed_seasons += 1
            if params.dry_run:
                action = ItemAction.SKIPPED
            elif season_result.season is not None and season_result.season.created:
                action = ItemAction.INSERTED
            else:
                action = ItemAction.UPDATED
            await record_item(
                session,
                batch_id,
                EntityKind.SEASON,
                entry.season_external_id,
                action,
                meta={"batch_id": entry.batch_id},
            )
        else:
            entry.status = "failed"
            entry.error = season_result.error
            result.failed_seasons += 1
            await record_item(
                session,
                batch_id,
                EntityKind.SEASON,
                entry.season_external_id,
                ItemAction.FAILED,
                error_message=season_result.error,
                meta={"batch_id": entry.batch_id},
            )
        await session.commit()
        await update_batch_meta(session, batch_id, result.model_dump(mode="json"))
