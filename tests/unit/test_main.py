"""Tests for the FastAPI application factory module."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from sports_sync.core.config import Settings
from sports_sync.lib.provider import ProviderError
from sports_sync.main import create_app
from sports_sync.services.job_status_service import JobNotFoundError


class TestCreateApp:
    """Tests for create_app."""

    @pytest.fixture
    def app(self) -> FastAPI:
        with patch("sports_sync.main.get_settings") as mock_settings:
            mock_settings.return_value = Settings(database_url="sqlite+aiosqlite:///:memory:")
            return create_app()

    def test_app_is_created(self, app: FastAPI) -> None:
        assert app.title == "Sports Sync API"

    def test_app_has_openapi_schema(self, app: FastAPI) -> None:
        client = TestClient(app, raise_server_exceptions=False)
        response = client.get("/openapi.json")
        assert response.status_code == 200
        paths = response.json()["paths"]
        assert "/api/v1/sync/seed-season" in paths
        assert "/api/v1/sync/jobs/{job_id}/status" in paths
        assert "/api/v1/sync-center/diff/{entity}" in paths
        assert "/api/v1/jobs/{key}/run" in paths

    @pytest.mark.parametrize(
        ("exc", "status_code", "body"),
        [
            (ValueError("bad input"), 400, {"detail": "bad input"}),
            (JobNotFoundError("abc"), 404, {"detail": "Job not found", "code": "job_not_found"}),
            (
                ProviderError("sportmonks", "HTTP 500: Internal Server Error", status_code=500),
                502,
                {"detail": "sportmonks: HTTP 500: Internal Server Error", "code": "provider_error"},
            ),
        ],
    )
    def test_exception_handlers(self, app: FastAPI, exc: Exception, status_code: int, body: dict) -> None:
        @app.get("/boom")
        async def boom() -> None:
            raise exc

        client = TestClient(app, raise_server_exceptions=False)
        response = client.get("/boom")

        assert response.status_code == status_code
        assert response.json() == body


class TestAppLifespan:
    """Tests for lifespan management."""

    async def test_lifespan_init_and_dispose(self) -> None:
        """Lifespan initializes the engine and jobs, then drains tasks and disposes."""
        from sports_sync.main import lifespan

        session = AsyncMock()
        factory = MagicMock()
        factory.return_value.__aenter__ = AsyncMock(return_value=session)
        factory.return_value.__aexit__ = AsyncMock(return_value=None)

        with (
            patch("sports_sync.main.get_settings") as mock_get_settings,
            patch("sports_sync.main.setup_logging") as mock_setup_logging,
            patch("sports_sync.main.init_engine") as mock_init_engine,
            patch("sports_sync.main.get_session_factory", return_value=factory),
            patch("sports_sync.main.ensure_jobs", new_callable=AsyncMock, return_value=5) as mock_ensure_jobs,
            patch("sports_sync.main.task_runner") as mock_runner,
            patch("sports_sync.main.dispose_engine", new_callable=AsyncMock) as mock_dispose,
        ):
            mock_get_settings.return_value = Settings(
                database_url="sqlite+aiosqlite:///:memory:",
                log_level="DEBUG",
            )
            mock_runner.wait_all = AsyncMock()

            async with lifespan(MagicMock()):
                mock_setup_logging.assert_called_once_with("DEBUG", None)
                mock_init_engine.assert_called_once_with("sqlite+aiosqlite:///:memory:", echo=False, schema=None)
                mock_ensure_jobs.assert_awaited_once_with(session)
                mock_dispose.assert_not_awaited()

            mock_runner.wait_all.assert_awaited_once_with(timeout=30.0)
            mock_dispose.assert_awaited_once()
