"""Polling state machine.

``PollState`` is immutable; every transition is a pure function returning a
new state. ``completed`` and ``failed`` are terminal: any transition other
than :func:`reset` applied to a terminal state returns it unchanged, so a
late response can never resurrect a finished poll.

    idle -> starting -> processing -> completed | failed
    any  -> idle (reset)
"""

import enum
from collections.abc import Iterable
from dataclasses import dataclass, replace
from typing import Any


class PollStatus(enum.StrEnum):
    """Caller-facing polling status."""

    IDLE = "idle"
    STARTING = "starting"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (PollStatus.COMPLETED, PollStatus.FAILED)


class FailureReason(enum.StrEnum):
    """Why a poll ended in ``failed``."""

    JOB_FAILED = "job_failed"
    TIMEOUT = "timeout"
    TRANSPORT = "transport"
    START_FAILED = "start_failed"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class ItemProgress:
    """Progress of one input item (e.g. one season of a bulk seed)."""

    key: str
    status: str = "pending"
    error: str | None = None


@dataclass(frozen=True)
class StatusSnapshot:
    """One job status response, as returned by the status endpoint."""

    state: str
    progress: int | None = None
    total: int = 0
    success: int = 0
    failed: int = 0
    result: dict[str, Any] | None = None
    error: str | None = None
    items: tuple[ItemProgress, ...] = ()


@dataclass(frozen=True)
class PollState:
    status: PollStatus = PollStatus.IDLE
    job_id: str | None = None
    total: int = 0
    items: tuple[ItemProgress, ...] = ()
    success: int = 0
    failed: int = 0
    progress: int = 0
    result: dict[str, Any] | None = None
    error: str | None = None
    failure_reason: FailureReason | None = None
    attempts: int = 0
    consecutive_errors: int = 0

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal


def begin(items: Iterable[str | int]) -> PollState:
    """Seed a new poll with every input item pending."""
    seeded = tuple(ItemProgress(key=str(item)) for item in items)
    return PollState(status=PollStatus.STARTING, total=len(seeded), items=seeded)


def job_started(state: PollState, job_id: str) -> PollState:
    if state.status is not PollStatus.STARTING:
        return state
    return replace(state, status=PollStatus.PROCESSING, job_id=job_id)


def start_failed(state: PollState, message: str) -> PollState:
    if state.is_terminal:
        return state
    return replace(
        state,
        status=PollStatus.FAILED,
        error=message or "Failed to start job",
        failure_reason=FailureReason.START_FAILED,
    )


def tick(state: PollState, max_attempts: int) -> PollState:
    """Count one poll attempt; past ``max_attempts`` the poll times out."""
    if state.is_terminal:
        return state
    attempts = state.attempts + 1
    if attempts > max_attempts:
        return replace(
            state,
            attempts=attempts,
            status=PollStatus.FAILED,
            error="Polling timeout",
            failure_reason=FailureReason.TIMEOUT,
        )
    return replace(state, attempts=attempts)


def _merge_items(current: tuple[ItemProgress, ...], updates: tuple[ItemProgress, ...]) -> tuple[ItemProgress, ...]:
    if not updates:
        return current
    by_key = {item.key: item for item in updates}
    merged = [by_key.pop(item.key, item) for item in current]
    merged.extend(by_key.values())
    return tuple(merged)


def apply_status(state: PollState, snapshot: StatusSnapshot) -> PollState:
    """Merge a status response; ``completed``/``failed`` end the poll."""
    if state.is_terminal or state.status is PollStatus.IDLE:
        return state

    merged = replace(
        state,
        consecutive_errors=0,
        total=snapshot.total or state.total,
        success=snapshot.success,
        failed=snapshot.failed,
        progress=snapshot.progress if snapshot.progress is not None else state.progress,
        items=_merge_items(state.items, snapshot.items),
    )

    if snapshot.state == "completed":
        return replace(merged, status=PollStatus.COMPLETED, progress=100, result=snapshot.result, error=None)
    if snapshot.state == "failed":
        return replace(
            merged,
            status=PollStatus.FAILED,
            error=snapshot.error or "Job failed",
            failure_reason=FailureReason.JOB_FAILED,
        )
    return merged


def job_not_found(state: PollState, message: str) -> PollState:
    """The server no longer knows the job; retrying cannot help."""
    if state.is_terminal:
        return state
    return replace(
        state,
        status=PollStatus.FAILED,
        error=message or "Job not found",
        failure_reason=FailureReason.NOT_FOUND,
    )


def transport_error(state: PollState, message: str, max_consecutive_errors: int) -> PollState:
    """Record a failed status request; past the cap the poll gives up."""
    if state.is_terminal:
        return state
    errors = state.consecutive_errors + 1
    if errors > max_consecutive_errors:
        return replace(
            state,
            consecutive_errors=errors,
            status=PollStatus.FAILED,
            error=f"Lost contact with the server: {message}",
            failure_reason=FailureReason.TRANSPORT,
        )
    return replace(state, consecutive_errors=errors)


def reset() -> PollState:
    return PollState()
