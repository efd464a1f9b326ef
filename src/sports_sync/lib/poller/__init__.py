"""Poller library public API.

Client-side polling of asynchronous sync jobs: an immutable state machine,
the asyncio controller that drives it, and the HTTP client it polls.
"""

from sports_sync.lib.poller.client import JobNotFoundError, SyncApiClient, SyncApiError
from sports_sync.lib.poller.controller import PollingController
from sports_sync.lib.poller.state import FailureReason, ItemProgress, PollState, PollStatus, StatusSnapshot

__all__ = [
    "FailureReason",
    "ItemProgress",
    "JobNotFoundError",
    "PollState",
    "PollStatus",
    "PollingController",
    "StatusSnapshot",
    "SyncApiClient",
    "SyncApiError",
]
