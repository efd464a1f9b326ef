"""Async engine and session factory shared by the API, CLI and background jobs.

PostgreSQL (asyncpg) is the production target. SQLite (aiosqlite) backs
local runs and tests; file databases get a busy timeout because a seeding
job writes while status polls read.
"""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

_SQLITE_BUSY_TIMEOUT_SECONDS = 30

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    """Return the current async engine.

    Raises:
        RuntimeError: If the engine has not been initialized.
    """
    if _engine is None:
        msg = "Database engine not initialized. Call init_engine() first."
        raise RuntimeError(msg)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the session factory background jobs open their own sessions from.

    Raises:
        RuntimeError: If the engine has not been initialized.
    """
    if _session_factory is None:
        msg = "Session factory not initialized. Call init_engine() first."
        raise RuntimeError(msg)
    return _session_factory


def _engine_options(database_url: str, schema: str | None, options: dict[str, Any]) -> dict[str, Any]:
    connect_args = dict(options.pop("connect_args", None) or {})
    if database_url.startswith("sqlite"):
        # Schemas do not exist on SQLite; the pool is left to SQLAlchemy's default
        connect_args.setdefault("timeout", _SQLITE_BUSY_TIMEOUT_SECONDS)
    else:
        if schema is not None:
            connect_args["server_settings"] = {"search_path": f"{schema},public"}
        if options.get("poolclass") is not StaticPool:
            options.setdefault("pool_size", 10)
            options.setdefault("max_overflow", 5)
            options.setdefault("pool_pre_ping", True)
    options["connect_args"] = connect_args
    return options


def init_engine(database_url: str, *, schema: str | None = None, **kwargs: Any) -> AsyncEngine:
    """Create and store the async engine and session factory.

    Args:
        database_url: ``postgresql+asyncpg://`` or ``sqlite+aiosqlite://`` URL.
        schema: PostgreSQL schema searched before ``public`` (ignored on SQLite).
        **kwargs: Additional arguments passed to create_async_engine.

    Returns:
        The created async engine.
    """
    global _engine, _session_factory  # noqa: PLW0603
    _engine = create_async_engine(database_url, **_engine_options(database_url, schema, kwargs))
    _session_factory = async_sessionmaker(_engine, expire_on_commit=False)
    return _engine


async def create_all_tables() -> None:
    """Create every mapped table on the current engine (local SQLite setups)."""
    from sports_sync.models import Base

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    """Dispose of the engine; a later ``init_engine`` starts fresh."""
    global _engine, _session_factory  # noqa: PLW0603
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None
