"""Seed CLI commands: pull provider data straight into the local database."""

import asyncio
from datetime import date, datetime

import typer

from sports_sync.models.enums import EntityKind
from sports_sync.schemas.batch_meta import StepResult

seed_app = typer.Typer()


def _echo_step(label: str, step: StepResult | None) -> None:
    if step is None:
        typer.echo(f"  {label:<10} not run")
        return
    line = (
        f"  {label:<10} ok={step.ok} fail={step.fail} total={step.total} "
        f"(inserted={step.inserted} updated={step.updated} skipped={step.skipped})"
    )
    if step.error:
        line += f" error: {step.error}"
    typer.echo(line)


@seed_app.command("season")
def seed_season(
    season_id: int = typer.Argument(..., help="Provider id of the season"),
    teams: bool = typer.Option(True, "--teams/--no-teams", help="Also seed the season's teams"),
    fixtures: bool = typer.Option(True, "--fixtures/--no-fixtures", help="Also seed the season's fixtures"),
    future_only: bool = typer.Option(False, "--future-only", help="Skip fixtures that already started"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Validate and report without writing"),
) -> None:
    """Seed one season with its teams and fixtures."""
    ok = asyncio.run(_seed_season(season_id, teams, fixtures, future_only, dry_run))
    if not ok:
        raise typer.Exit(code=1)


async def _seed_season(season_id: int, teams: bool, fixtures: bool, future_only: bool, dry_run: bool) -> bool:
    """Async implementation of a season seed."""
    from sports_sync.core.config import get_settings
    from sports_sync.core.database import dispose_engine, get_session_factory, init_engine
    from sports_sync.core.dependencies import build_provider
    from sports_sync.models.enums import RunTrigger
    from sports_sync.services.seed_season_service import SEED_SEASON_BATCH, SeedSeasonParams, process_seed_season
    from sports_sync.services.seed_service import start_seed_batch

    settings = get_settings()
    init_engine(settings.database_url, schema=settings.database_schema)
    provider = build_provider(settings)

    try:
        factory = get_session_factory()
        async with factory() as session:
            batch = await start_seed_batch(session, SEED_SEASON_BATCH, trigger=RunTrigger.MANUAL, dry_run=dry_run)
            typer.echo(f"Seed batch created: {batch.id}")
            result = await process_seed_season(
                session,
                provider,
                SeedSeasonParams(
                    season_external_id=season_id,
                    include_teams=teams,
                    include_fixtures=fixtures,
                    future_only=future_only,
                    dry_run=dry_run,
                    trigger=RunTrigger.MANUAL,
                ),
                batch_id=batch.id,
            )

        typer.echo(f"\nSeason {season_id} {'failed' if result.error else 'seeded'}{' (dry run)' if dry_run else ''}:")
        _echo_step("season", result.season)
        _echo_step("teams", result.teams)
        _echo_step("fixtures", result.fixtures)
        if result.error:
            typer.echo(f"  Error: {result.error}", err=True)
        return result.error is None
    finally:
        await provider.close()
        await dispose_engine()


@seed_app.command("seasons")
def seed_seasons(
    season_ids: list[int] = typer.Argument(..., help="Provider ids of the seasons"),
    teams: bool = typer.Option(True, "--teams/--no-teams", help="Also seed each season's teams"),
    fixtures: bool = typer.Option(True, "--fixtures/--no-fixtures", help="Also seed each season's fixtures"),
    future_only: bool = typer.Option(True, "--future-only/--all-fixtures", help="Skip fixtures that already started"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Validate and report without writing"),
) -> None:
    """Seed several seasons in one bulk batch."""
    ok = asyncio.run(_seed_seasons(season_ids, teams, fixtures, future_only, dry_run))
    if not ok:
        raise typer.Exit(code=1)


async def _seed_seasons(
    season_ids: list[int], teams: bool, fixtures: bool, future_only: bool, dry_run: bool
) -> bool:
    """Async implementation of a bulk season seed."""
    from sports_sync.core.config import get_settings
    from sports_sync.core.database import dispose_engine, get_session_factory, init_engine
    from sports_sync.core.dependencies import build_provider
    from sports_sync.models.enums import RunTrigger
    from sports_sync.services.seed_season_service import (
        BULK_SEED_SEASONS_BATCH,
        BulkSeedSeasonsParams,
        process_bulk_seed_seasons,
    )
    from sports_sync.services.seed_service import start_seed_batch

    settings = get_settings()
    init_engine(settings.database_url, schema=settings.database_schema)
    provider = build_provider(settings)

    try:
        factory = get_session_factory()
        async with factory() as session:
            batch = await start_seed_batch(
                session, BULK_SEED_SEASONS_BATCH, trigger=RunTrigger.MANUAL, dry_run=dry_run
            )
            typer.echo(f"Bulk seed batch created: {batch.id}")
            result = await process_bulk_seed_seasons(
                session,
                provider,
                BulkSeedSeasonsParams(
                    season_external_ids=list(season_ids),
                    include_teams=teams,
                    include_fixtures=fixtures,
                    future_only=future_only,
                    dry_run=dry_run,
                    trigger=RunTrigger.MANUAL,
                ),
                batch_id=batch.id,
            )

        typer.echo(f"\n{result.completed_seasons}/{result.total_seasons} seasons seeded, {result.failed_seasons} failed")
        for entry in result.seasons:
            suffix = f": {entry.error}" if entry.error else ""
            typer.echo(f"  {entry.season_external_id:<10} {entry.status}{suffix}")
        return not (result.total_seasons and result.failed_seasons == result.total_seasons)
    finally:
        await provider.close()
        await dispose_engine()


@seed_app.command("entities")
def seed_entities(
    kind: EntityKind = typer.Argument(..., help="Entity kind to seed"),
    season_id: str | None = typer.Option(None, "--season", help="Season id (teams, fixtures)"),
    season_ids: list[str] | None = typer.Option(None, "--season-ids", help="Season ids (seasons)"),  # noqa: B008
    date_from: datetime | None = typer.Option(None, "--from", formats=["%Y-%m-%d"], help="Start date (fixtures, odds)"),  # noqa: B008
    date_to: datetime | None = typer.Option(None, "--to", formats=["%Y-%m-%d"], help="End date (fixtures, odds)"),  # noqa: B008
    dry_run: bool = typer.Option(False, "--dry-run", help="Validate and report without writing"),
) -> None:
    """Fetch one entity kind from the provider and upsert it as a batch."""
    ok = asyncio.run(
        _seed_entities(
            kind,
            season_id,
            season_ids,
            date_from.date() if date_from else None,
            date_to.date() if date_to else None,
            dry_run,
        )
    )
    if not ok:
        raise typer.Exit(code=1)


async def _seed_entities(
    kind: EntityKind,
    season_id: str | None,
    season_ids: list[str] | None,
    date_from: date | None,
    date_to: date | None,
    dry_run: bool,
) -> bool:
    """Async implementation of an entity batch seed."""
    from sports_sync.core.config import get_settings
    from sports_sync.core.database import dispose_engine, get_session_factory, init_engine
    from sports_sync.core.dependencies import build_provider
    from sports_sync.models.enums import RunStatus
    from sports_sync.services.seed_service import BatchFetchError, fetch_and_run_batch
    from sports_sync.services.sync_center_service import ProviderQuery, fetch_provider_entities

    settings = get_settings()
    init_engine(settings.database_url, schema=settings.database_schema)
    provider = build_provider(settings)
    query = ProviderQuery(season_id=season_id, season_ids=season_ids or None, date_from=date_from, date_to=date_to)

    try:
        factory = get_session_factory()
        async with factory() as session:
            try:
                outcome = await fetch_and_run_batch(
                    session,
                    kind,
                    lambda: fetch_provider_entities(provider, kind, query),
                    dry_run=dry_run,
                )
            except BatchFetchError as exc:
                typer.echo(f"Fetching {kind} failed (batch {exc.batch_id}): {exc}", err=True)
                return False

        typer.echo(f"Batch {outcome.batch_id}: {outcome.status}")
        typer.echo(f"  Total:     {outcome.total}")
        typer.echo(f"  Succeeded: {outcome.ok}")
        typer.echo(f"  Failed:    {outcome.fail}")
        typer.echo(f"  Inserted:  {outcome.inserted}")
        typer.echo(f"  Updated:   {outcome.updated}")
        typer.echo(f"  Skipped:   {outcome.skipped}")
        return outcome.status is not RunStatus.FAILED
    finally:
        await provider.close()
        await dispose_engine()
