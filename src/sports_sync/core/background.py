"""Background task runner abstraction.

Provides a protocol for submitting seeding work to run after the HTTP
response is sent, with an in-process asyncio implementation. Job state is
persisted on SeedBatch/JobRun rows; the runner only keeps tasks alive and
reports crashes.
"""

import asyncio
import enum
from collections import OrderedDict
from collections.abc import Coroutine
from typing import Any, Protocol

from loguru import logger


class TaskState(enum.StrEnum):
    """In-process state of a submitted task."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class BackgroundTaskRunner(Protocol):
    """Protocol for background task execution."""

    def submit_task(self, task_id: str, coro: Coroutine[Any, Any, Any]) -> str:
        """Submit an async task for background execution.

        Args:
            task_id: Identifier of the persisted job the task works on.
            coro: The coroutine to execute.

        Returns:
            The task id, for tracking.
        """
        ...

    def get_state(self, task_id: str) -> TaskState:
        """Get the in-process state of a submitted task."""
        ...


class InProcessTaskRunner:
    """In-process background task runner using asyncio.

    Tasks run in the same process as the API server using
    asyncio.create_task(). A single job always runs to completion on the
    worker that accepted it. Only the most recent ``max_finished`` final
    states are remembered; older ones are evicted since the persisted
    batch remains the source of truth.

    Args:
        max_finished: Number of completed or failed task states to keep.
    """

    def __init__(self, max_finished: int = 1000) -> None:
        self._max_finished = max(0, max_finished)
        self._states: dict[str, TaskState] = {}
        self._finished: OrderedDict[str, TaskState] = OrderedDict()
        self._tasks: dict[str, asyncio.Task[Any]] = {}

    def submit_task(self, task_id: str, coro: Coroutine[Any, Any, Any]) -> str:
        """Submit an async task for background execution.

        Args:
            task_id: Identifier of the persisted job the task works on.
            coro: The coroutine to execute.

        Returns:
            The task id.
        """
        self._finished.pop(task_id, None)
        self._states[task_id] = TaskState.PENDING

        async def _run() -> None:
            self._states[task_id] = TaskState.RUNNING
            try:
                with logger.contextualize(job_id=task_id):
                    await coro
                self._finish(task_id, TaskState.COMPLETED)
            except Exception:
                self._finish(task_id, TaskState.FAILED)
                logger.exception("Background task {} crashed", task_id)
            finally:
                self._tasks.pop(task_id, None)

        self._tasks[task_id] = asyncio.create_task(_run(), name=f"sports-sync:{task_id}")
        return task_id

    def _finish(self, task_id: str, final_state: TaskState) -> None:
        self._states.pop(task_id, None)
        self._finished[task_id] = final_state
        while len(self._finished) > self._max_finished:
            self._finished.popitem(last=False)

    def get_state(self, task_id: str) -> TaskState:
        """Get the in-process state of a submitted task.

        Raises:
            KeyError: If the task id is not known to this runner, or its
                final state has been evicted.
        """
        if task_id in self._states:
            return self._states[task_id]
        return self._finished[task_id]

    @property
    def active_count(self) -> int:
        """Number of tasks still running."""
        return len(self._tasks)

    async def wait_all(self, timeout: float | None = None) -> None:
        """Wait for every in-flight task to finish.

        Args:
            timeout: Optional upper bound in seconds; tasks still running
                afterward are left alone.
        """
        tasks = list(self._tasks.values())
        if not tasks:
            return
        done, pending = await asyncio.wait(tasks, timeout=timeout)
        if pending:
            logger.warning("{} background task(s) still running after {}s", len(pending), timeout)


# Singleton instance for the application
task_runner = InProcessTaskRunner()
