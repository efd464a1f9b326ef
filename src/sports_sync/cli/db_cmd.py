"""Database migration CLI commands using Alembic programmatically."""

import asyncio

import typer
from loguru import logger

db_app = typer.Typer()


@db_app.command()
def upgrade(
    revision: str = typer.Argument("head", help="Target revision"),
) -> None:
    """Run database migrations up to the target revision."""
    from alembic import command
    from alembic.config import Config

    config = Config("alembic.ini")
    logger.info(f"Upgrading database to {revision}")
    command.upgrade(config, revision)
    logger.info("Database upgrade complete")


@db_app.command()
def downgrade(
    revision: str = typer.Argument("-1", help="Target revision"),
) -> None:
    """Rollback database migration to the target revision."""
    from alembic import command
    from alembic.config import Config

    config = Config("alembic.ini")
    logger.info(f"Downgrading database to {revision}")
    command.downgrade(config, revision)
    logger.info("Database downgrade complete")


@db_app.command()
def current() -> None:
    """Show the current database migration revision."""
    from alembic import command
    from alembic.config import Config

    config = Config("alembic.ini")
    command.current(config, verbose=True)


@db_app.command("init")
def init_db() -> None:
    """Create all tables directly and register job definitions (local SQLite setups)."""
    asyncio.run(_init_db())


async def _init_db() -> None:
    from sports_sync.core.config import get_settings
    from sports_sync.core.database import create_all_tables, dispose_engine, get_session_factory, init_engine
    from sports_sync.services.job_service import ensure_jobs

    settings = get_settings()
    init_engine(settings.database_url, schema=settings.database_schema)
    try:
        await create_all_tables()
        async with get_session_factory()() as session:
            created = await ensure_jobs(session)
        typer.echo(f"Tables created; {created} job definition(s) registered")
    finally:
        await dispose_engine()
