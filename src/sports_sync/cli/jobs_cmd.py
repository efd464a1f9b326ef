"""Job CLI commands: list definitions, run them, inspect history."""

import asyncio

import typer

jobs_app = typer.Typer()


@jobs_app.command("list")
def list_jobs() -> None:
    """List job definitions with their latest run."""
    asyncio.run(_list_jobs())


async def _list_jobs() -> None:
    from sports_sync.core.config import get_settings
    from sports_sync.core.database import dispose_engine, get_session_factory, init_engine
    from sports_sync.services import job_service

    settings = get_settings()
    init_engine(settings.database_url, schema=settings.database_schema)

    try:
        factory = get_session_factory()
        async with factory() as session:
            await job_service.ensure_jobs(session)
            rows = await job_service.list_jobs(session)

        for job, run in rows:
            state = "enabled" if job.enabled else "disabled"
            last = f"{run.status} at {run.started_at:%Y-%m-%d %H:%M}" if run else "never run"
            typer.echo(f"{job.key:<26} {state:<9} {job.schedule_cron or '-':<14} {last}")
    finally:
        await dispose_engine()


@jobs_app.command("run")
def run_job(
    key: str = typer.Argument(..., help="Job key (e.g. sync-countries)"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Validate and report without writing"),
) -> None:
    """Run a job now and wait for it to finish."""
    ok = asyncio.run(_run_job(key, dry_run))
    if not ok:
        raise typer.Exit(code=1)


async def _run_job(key: str, dry_run: bool) -> bool:
    from sports_sync.core.config import get_settings
    from sports_sync.core.database import dispose_engine, get_session_factory, init_engine
    from sports_sync.core.dependencies import build_provider
    from sports_sync.models.enums import RunStatus, RunTrigger
    from sports_sync.services import job_service

    settings = get_settings()
    init_engine(settings.database_url, schema=settings.database_schema)
    provider = build_provider(settings)

    try:
        factory = get_session_factory()
        async with factory() as session:
            await job_service.ensure_jobs(session)
            run = await job_service.run_job(session, provider, key, trigger=RunTrigger.MANUAL, dry_run=dry_run)

        typer.echo(f"Run {run.id} ({key}): {run.status}")
        if run.rows_affected is not None:
            typer.echo(f"  Rows affected: {run.rows_affected}")
        if run.duration_ms is not None:
            typer.echo(f"  Duration:      {run.duration_ms}ms")
        if run.error_message:
            typer.echo(f"  Error:         {run.error_message}", err=True)
        return run.status != RunStatus.FAILED
    finally:
        await provider.close()
        await dispose_engine()


@jobs_app.command("runs")
def list_runs(
    key: str = typer.Argument(..., help="Job key"),
    limit: int = typer.Option(20, "--limit", help="Number of runs to show"),
) -> None:
    """Show the most recent runs of a job."""
    asyncio.run(_list_runs(key, limit))


async def _list_runs(key: str, limit: int) -> None:
    from sports_sync.core.config import get_settings
    from sports_sync.core.database import dispose_engine, get_session_factory, init_engine
    from sports_sync.services import job_service

    settings = get_settings()
    init_engine(settings.database_url, schema=settings.database_schema)

    try:
        factory = get_session_factory()
        async with factory() as session:
            runs, total = await job_service.list_job_runs(session, key, page=1, page_size=limit)

        typer.echo(f"{total} run(s) of {key}")
        for run in runs:
            duration = f"{run.duration_ms}ms" if run.duration_ms is not None else "-"
            typer.echo(f"  {run.started_at:%Y-%m-%d %H:%M:%S}  {run.status:<8} {run.trigger:<9} {duration}")
    finally:
        await dispose_engine()


@jobs_app.command("enable")
def enable_job(key: str = typer.Argument(..., help="Job key")) -> None:
    """Enable a job."""
    asyncio.run(_set_enabled(key, True))


@jobs_app.command("disable")
def disable_job(key: str = typer.Argument(..., help="Job key")) -> None:
    """Disable a job; runs requested while disabled are recorded as skipped."""
    asyncio.run(_set_enabled(key, False))


async def _set_enabled(key: str, enabled: bool) -> None:
    from sports_sync.core.config import get_settings
    from sports_sync.core.database import dispose_engine, get_session_factory, init_engine
    from sports_sync.services import job_service

    settings = get_settings()
    init_engine(settings.database_url, schema=settings.database_schema)

    try:
        factory = get_session_factory()
        async with factory() as session:
            job = await job_service.update_job(session, key, enabled=enabled)
        if job is None:
            typer.echo(f"Unknown job: {key}", err=True)
            raise typer.Exit(code=1)
        typer.echo(f"{key} {'enabled' if enabled else 'disabled'}")
    finally:
        await dispose_engine()
