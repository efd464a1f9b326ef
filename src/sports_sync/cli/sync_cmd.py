"""Remote sync CLI commands: start seeding jobs on a running API and poll them."""

import asyncio
import json
from collections.abc import Callable

import typer

from sports_sync.lib.poller import PollingController, PollState, PollStatus, SyncApiClient, SyncApiError

sync_app = typer.Typer()


def _progress_printer() -> Callable[[PollState], None]:
    last: dict[str, object] = {}

    def _print(state: PollState) -> None:
        key = (state.status, state.progress)
        if last.get("key") == key:
            return
        last["key"] = key
        if state.status is PollStatus.PROCESSING:
            typer.echo(f"  {state.progress:>3}% ({state.success} ok, {state.failed} failed of {state.total})")
        elif state.status is PollStatus.STARTING:
            typer.echo("Starting job...")

    return _print


def _report(state: PollState) -> bool:
    if state.status is PollStatus.COMPLETED:
        typer.echo(f"Job {state.job_id} completed")
        for item in state.items:
            suffix = f": {item.error}" if item.error else ""
            typer.echo(f"  {item.key:<10} {item.status}{suffix}")
        if state.result is not None:
            typer.echo(json.dumps(state.result, indent=2))
        return True
    typer.echo(f"Job {state.job_id or '-'} failed ({state.failure_reason}): {state.error}", err=True)
    for item in state.items:
        if item.error:
            typer.echo(f"  {item.key:<10} {item.status}: {item.error}", err=True)
    return False


def _controller(client: SyncApiClient) -> PollingController:
    from sports_sync.core.config import get_settings

    settings = get_settings()
    return PollingController(
        client.get_job_status,
        interval=settings.poll_interval_seconds,
        max_attempts=settings.poll_max_attempts,
        max_consecutive_errors=settings.poll_max_consecutive_errors,
        on_change=_progress_printer(),
    )


def _api_url(api_url: str | None) -> str:
    from sports_sync.core.config import get_settings

    return api_url or get_settings().api_base_url


@sync_app.command("seed-season")
def seed_season(
    season_id: int = typer.Argument(..., help="Provider id of the season"),
    teams: bool = typer.Option(True, "--teams/--no-teams", help="Also seed the season's teams"),
    fixtures: bool = typer.Option(True, "--fixtures/--no-fixtures", help="Also seed the season's fixtures"),
    future_only: bool = typer.Option(False, "--future-only", help="Skip fixtures that already started"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Validate and report without writing"),
    wait: bool = typer.Option(True, "--wait/--no-wait", help="Poll the job until it finishes"),
    api_url: str | None = typer.Option(None, "--api-url", help="API base URL (default: API_BASE_URL)"),
) -> None:
    """Start a season seed on the API server and follow its progress."""
    ok = asyncio.run(_seed_season(season_id, teams, fixtures, future_only, dry_run, wait, _api_url(api_url)))
    if not ok:
        raise typer.Exit(code=1)


async def _seed_season(
    season_id: int,
    teams: bool,
    fixtures: bool,
    future_only: bool,
    dry_run: bool,
    wait: bool,
    api_url: str,
) -> bool:
    async with SyncApiClient(api_url) as client:

        async def _start() -> str:
            return await client.seed_season(
                season_id,
                include_teams=teams,
                include_fixtures=fixtures,
                future_only=future_only,
                dry_run=dry_run,
            )

        if not wait:
            try:
                job_id = await _start()
            except SyncApiError as exc:
                typer.echo(f"Failed to start job: {exc}", err=True)
                return False
            typer.echo(f"Job started: {job_id}")
            return True

        async with _controller(client) as controller:
            await controller.start(_start)
            final = await controller.wait()
        return _report(final)


@sync_app.command("batch-seed")
def batch_seed(
    season_ids: list[int] = typer.Argument(..., help="Provider ids of the seasons"),
    teams: bool = typer.Option(True, "--teams/--no-teams", help="Also seed each season's teams"),
    fixtures: bool = typer.Option(True, "--fixtures/--no-fixtures", help="Also seed each season's fixtures"),
    future_only: bool = typer.Option(True, "--future-only/--all-fixtures", help="Skip fixtures that already started"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Validate and report without writing"),
    api_url: str | None = typer.Option(None, "--api-url", help="API base URL (default: API_BASE_URL)"),
) -> None:
    """Start a bulk season seed on the API server and follow per-season progress."""
    ok = asyncio.run(_batch_seed(season_ids, teams, fixtures, future_only, dry_run, _api_url(api_url)))
    if not ok:
        raise typer.Exit(code=1)


async def _batch_seed(
    season_ids: list[int],
    teams: bool,
    fixtures: bool,
    future_only: bool,
    dry_run: bool,
    api_url: str,
) -> bool:
    async with SyncApiClient(api_url) as client:

        async def _start() -> str:
            return await client.batch_seed_seasons(
                season_ids,
                include_teams=teams,
                include_fixtures=fixtures,
                future_only=future_only,
                dry_run=dry_run,
            )

        async with _controller(client) as controller:
            await controller.start(_start, items=season_ids)
            final = await controller.wait()
        return _report(final)


@sync_app.command("status")
def job_status(
    job_id: str = typer.Argument(..., help="Job id returned when the job was started"),
    api_url: str | None = typer.Option(None, "--api-url", help="API base URL (default: API_BASE_URL)"),
) -> None:
    """Show the current status of a job once."""
    ok = asyncio.run(_job_status(job_id, _api_url(api_url)))
    if not ok:
        raise typer.Exit(code=1)


async def _job_status(job_id: str, api_url: str) -> bool:
    async with SyncApiClient(api_url) as client:
        try:
            snapshot = await client.get_job_status(job_id)
        except SyncApiError as exc:
            typer.echo(f"Error: {exc}", err=True)
            return False

    progress = f"{snapshot.progress}%" if snapshot.progress is not None else "-"
    typer.echo(f"Job {job_id}: {snapshot.state} ({progress})")
    typer.echo(f"  Total:     {snapshot.total}")
    typer.echo(f"  Succeeded: {snapshot.success}")
    typer.echo(f"  Failed:    {snapshot.failed}")
    for item in snapshot.items:
        suffix = f": {item.error}" if item.error else ""
        typer.echo(f"  {item.key:<10} {item.status}{suffix}")
    if snapshot.error:
        typer.echo(f"  Error: {snapshot.error}", err=True)
    return snapshot.state != "failed"
