"""Typer CLI root application with serve command."""

import typer

from sports_sync.core.config import get_settings
from sports_sync.core.logging import setup_logging

app = typer.Typer(name="sports-sync", help="Sports reference-data sync CLI")


@app.callback()
def _main_callback() -> None:
    """Initialize logging for all CLI commands."""
    settings = get_settings()
    setup_logging(settings.log_level, log_dir=settings.log_dir)


@app.command()
def serve(
    reload: bool = typer.Option(False, "--reload", help="Enable auto-reload for development"),
    host: str = typer.Option("0.0.0.0", "--host", help="Bind host"),  # noqa: S104
    port: int = typer.Option(8000, "--port", help="Bind port"),
) -> None:
    """Start the API server."""
    import uvicorn

    uvicorn.run(
        "sports_sync.main:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
    )


def _register_subcommands() -> None:
    """Register all CLI subcommand groups."""
    from sports_sync.cli.db_cmd import db_app
    from sports_sync.cli.jobs_cmd import jobs_app
    from sports_sync.cli.seed_cmd import seed_app
    from sports_sync.cli.sync_cmd import sync_app

    app.add_typer(db_app, name="db", help="Database migration commands")
    app.add_typer(seed_app, name="seed", help="Seed entities from the provider into the local database")
    app.add_typer(jobs_app, name="jobs", help="Job definitions and runs")
    app.add_typer(sync_app, name="sync", help="Drive seeding jobs on a running API server")


_register_subcommands()
