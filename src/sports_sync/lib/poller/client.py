"""HTTP client for the sports-sync job endpoints."""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from sports_sync.lib.poller.state import ItemProgress, StatusSnapshot


class SyncApiError(Exception):
    """Raised when the sync API cannot be reached or answers with an error.

    Args:
        message: Human-readable error description.
        status_code: Optional HTTP status code.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class JobNotFoundError(SyncApiError):
    """The server does not know the requested job id."""


class SyncApiClient:
    """Starts seeding jobs and reads their status over HTTP.

    Args:
        base_url: API root including the version prefix
            (e.g. ``http://localhost:8000/api/v1``).
        timeout: Request timeout in seconds.
        transport: Optional httpx transport, used by tests.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(base_url=base_url.rstrip("/"), timeout=timeout, transport=transport)

    async def seed_season(
        self,
        season_external_id: int,
        *,
        include_teams: bool = True,
        include_fixtures: bool = True,
        future_only: bool = False,
        dry_run: bool = False,
    ) -> str:
        """Start a season seed and return its job id."""
        body = {
            "season_external_id": season_external_id,
            "include_teams": include_teams,
            "include_fixtures": include_fixtures,
            "future_only": future_only,
            "dry_run": dry_run,
        }
        data = await self._request("POST", "/sync/seed-season", json=body)
        return str(data["job_id"])

    async def batch_seed_seasons(
        self,
        season_external_ids: list[int],
        *,
        include_teams: bool = True,
        include_fixtures: bool = True,
        future_only: bool = True,
        dry_run: bool = False,
    ) -> str:
        """Start a bulk season seed and return its job id."""
        body = {
            "season_external_ids": season_external_ids,
            "include_teams": include_teams,
            "include_fixtures": include_fixtures,
            "future_only": future_only,
            "dry_run": dry_run,
        }
        data = await self._request("POST", "/sync/batch-seed-seasons", json=body)
        return str(data["job_id"])

    async def get_job_status(self, job_id: str) -> StatusSnapshot:
        """Read a job's status.

        Raises:
            JobNotFoundError: If the server does not know the job.
            SyncApiError: On any other transport or HTTP failure.
        """
        data = await self._request("GET", f"/sync/jobs/{job_id}/status")
        return StatusSnapshot(
            state=data["state"],
            progress=data.get("progress"),
            total=data.get("total") or 0,
            success=data.get("success") or 0,
            failed=data.get("failed") or 0,
            result=data.get("result"),
            error=data.get("error"),
            items=tuple(
                ItemProgress(key=str(item["key"]), status=item["status"], error=item.get("error"))
                for item in data.get("items") or []
            ),
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> SyncApiClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.RequestError as exc:
            logger.debug("Sync API request {} {} failed: {}", method, path, exc)
            raise SyncApiError(f"Request failed: {exc}") from exc

        if response.status_code == 404:
            raise JobNotFoundError(_detail(response) or "Job not found", status_code=404)
        if response.is_error:
            raise SyncApiError(
                f"HTTP {response.status_code}: {_detail(response) or response.reason_phrase}",
                status_code=response.status_code,
            )
        try:
            result: dict[str, Any] = response.json()
        except ValueError as exc:
            raise SyncApiError(f"Invalid JSON response for {path}") from exc
        return result


def _detail(response: httpx.Response) -> str | None:
    try:
        body = response.json()
    except ValueError:
        return None
    detail = body.get("detail") if isinstance(body, dict) else None
    return detail if isinstance(detail, str) else None
