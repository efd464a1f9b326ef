"""Tests for the API middleware."""

from fastapi import FastAPI
from fastapi.testclient import TestClient
from loguru import logger

from sports_sync.api.router import setup_middleware
from sports_sync.core.config import Settings


def _app(cors_origins: str = "") -> FastAPI:
    app = FastAPI()
    setup_middleware(app, Settings(database_url="sqlite://", cors_origins=cors_origins))

    @app.get("/ping")
    async def ping() -> dict:
        return {"ok": True}

    return app


class TestSecurityHeaders:
    """Tests for SecurityHeadersMiddleware."""

    def test_headers_are_added(self) -> None:
        response = TestClient(_app()).get("/ping")

        assert response.status_code == 200
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"
        assert "max-age" in response.headers["Strict-Transport-Security"]


class TestCors:
    """Tests for CORS configuration."""

    def test_configured_origin_is_allowed(self) -> None:
        client = TestClient(_app("https://app.example.test"))

        response = client.get("/ping", headers={"Origin": "https://app.example.test"})

        assert response.headers["access-control-allow-origin"] == "https://app.example.test"

    def test_no_origins_by_default(self) -> None:
        client = TestClient(_app())

        response = client.get("/ping", headers={"Origin": "https://evil.example.test"})

        assert "access-control-allow-origin" not in response.headers


class TestRequestLogging:
    """Tests for RequestLoggingMiddleware."""

    def test_status_polls_log_at_trace(self) -> None:
        app = _app()

        @app.get("/jobs/{job_id}/status")
        async def job_status(job_id: str) -> dict:
            return {"state": "active"}

        records: list[tuple[str, str]] = []
        sink_id = logger.add(
            lambda message: records.append((message.record["level"].name, message.record["message"])),
            level="TRACE",
        )
        try:
            client = TestClient(app)
            client.get("/ping")
            client.get("/jobs/abc/status")
        finally:
            logger.remove(sink_id)

        assert records[0][0] == "DEBUG"
        assert records[0][1].startswith("GET /ping -> 200")
        assert records[1][0] == "TRACE"
        assert records[1][1].startswith("GET /jobs/abc/status -> 200")
