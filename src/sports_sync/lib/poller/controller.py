"""Bounded, cancellable polling loop over a job status endpoint.

The controller owns exactly one asyncio task. Status requests are awaited
one at a time, so a new tick is never issued while the previous one is
unresolved. The task is released on completion, failure, reset and close.
"""

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from typing import Any

from loguru import logger

from sports_sync.lib.poller import state as transitions
from sports_sync.lib.poller.client import JobNotFoundError
from sports_sync.lib.poller.state import PollState, StatusSnapshot

StartCall = Callable[[], Awaitable[str]]
FetchStatus = Callable[[str], Awaitable[StatusSnapshot]]
OnChange = Callable[[PollState], Any]


class PollingController:
    """Turn an asynchronous server-side job into an awaitable result.

    Args:
        fetch_status: Coroutine function returning the job's current status.
        interval: Seconds between polls; the first poll is immediate.
        max_attempts: Polls allowed before giving up with a timeout.
        max_consecutive_errors: Consecutive failed requests tolerated.
        on_change: Optional callback invoked with every new state.
    """

    def __init__(
        self,
        fetch_status: FetchStatus,
        *,
        interval: float = 2.0,
        max_attempts: int = 150,
        max_consecutive_errors: int = 5,
        on_change: OnChange | None = None,
    ) -> None:
        self._fetch_status = fetch_status
        self._interval = interval
        self._max_attempts = max_attempts
        self._max_consecutive_errors = max_consecutive_errors
        self._on_change = on_change
        self._state = transitions.reset()
        self._task: asyncio.Task[None] | None = None
        # Bumped on every start/reset; responses from an older run are dropped
        self._generation = 0

    @property
    def state(self) -> PollState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self, start_call: StartCall, items: Iterable[str | int] = ()) -> PollState:
        """Start a job and begin polling it.

        Args:
            start_call: Coroutine function that starts the job and returns its id.
            items: Input items, shown as pending until the server reports on them.

        Returns:
            The state right after the start request resolved.
        """
        self.reset()
        generation = self._generation
        self._set(transitions.begin(items))

        try:
            job_id = await start_call()
        except Exception as exc:
            if generation == self._generation:
                logger.warning("Failed to start job: {}", exc)
                self._set(transitions.start_failed(self._state, str(exc)))
            return self._state

        if generation != self._generation:
            return self._state
        self._set(transitions.job_started(self._state, job_id))
        self._task = asyncio.create_task(self._poll(job_id, generation), name=f"poll:{job_id}")
        return self._state

    async def wait(self) -> PollState:
        """Wait until polling stops and return the final state."""
        task = self._task
        if task is not None:
            await asyncio.wait({task})
        return self._state

    def reset(self) -> None:
        """Cancel any pending poll and return to ``idle``."""
        self._generation += 1
        self._cancel()
        self._set(transitions.reset())

    async def aclose(self) -> None:
        """Stop polling without touching the state."""
        self._generation += 1
        task = self._cancel()
        if task is not None:
            await asyncio.wait({task})

    async def __aenter__(self) -> "PollingController":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    def _cancel(self) -> asyncio.Task[None] | None:
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
        return task

    def _set(self, new_state: PollState) -> None:
        if new_state is self._state:
            return
        self._state = new_state
        if self._on_change is not None:
            self._on_change(new_state)

    async def _poll(self, job_id: str, generation: int) -> None:
        loop = asyncio.get_running_loop()
        while generation == self._generation:
            started = loop.time()
            self._set(transitions.tick(self._state, self._max_attempts))
            if self._state.is_terminal:
                break

            try:
                snapshot = await self._fetch_status(job_id)
            except JobNotFoundError as exc:
                if generation != self._generation:
                    break
                self._set(transitions.job_not_found(self._state, str(exc)))
            except Exception as exc:
                if generation != self._generation:
                    break
                logger.debug("Status request for job {} failed: {}", job_id, exc)
                self._set(transitions.transport_error(self._state, str(exc), self._max_consecutive_errors))
            else:
                if generation != self._generation:
                    break
                self._set(transitions.apply_status(self._state, snapshot))

            if self._state.is_terminal:
                break
            await asyncio.sleep(max(0.0, self._interval - (loop.time() - started)))

        if self._state.is_terminal:
            logger.info(
                "Stopped polling job {}: {} ({})",
                job_id,
                self._state.status,
                self._state.failure_reason or "ok",
            )
