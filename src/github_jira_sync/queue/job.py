"""Jobs and job options for the worker queues."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import IntEnum
from typing import Any


class JobState(IntEnum):
    """State of a queued job."""

    DELAYED = 1
    WAITING = 2
    ACTIVE = 3
    COMPLETED = 4
    FAILED = 5


@dataclass(frozen=True)
class JobOptions:
    """Scheduling options for one job.

    ``attempts`` is the total number of times the queue will run the job
    before marking it failed.
    """

    delay_ms: int = 0
    attempts: int = 1
    remove_on_complete: bool = True
    remove_on_fail: bool = False

    def removal_policy(self, *, delay_ms: int = 0, attempts: int = 1) -> JobOptions:
        """New options keeping only this job's removal policy."""
        return replace(self, delay_ms=delay_ms, attempts=attempts)


@dataclass
class FailureContext:
    """Tags and extra data collected while a job runs.

    Attached to the error report if the job fails.
    """

    tags: dict[str, str] = field(default_factory=dict)
    extras: dict[str, Any] = field(default_factory=dict)
    user: dict[str, Any] = field(default_factory=dict)

    def set_tag(self, key: str, value: str) -> None:
        self.tags[key] = value

    def set_extra(self, key: str, value: Any) -> None:
        self.extras[key] = value

    def set_user(self, **user: Any) -> None:
        self.user.update(user)


@dataclass(order=True)
class Job:
    """A unit of scheduled work.

    Ordering is by (ready_at, sequence) for heapq.
    """

    ready_at: float = field(compare=True)
    sequence: int = field(compare=True)

    id: str = field(compare=False)
    queue_name: str = field(compare=False)
    data: dict[str, Any] = field(compare=False)
    opts: JobOptions = field(default_factory=JobOptions, compare=False)
    attempts_made: int = field(default=0, compare=False)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC), compare=False)
    state: JobState = field(default=JobState.WAITING, compare=False)
    finished_at: datetime | None = field(default=None, compare=False)
    failed_reason: str | None = field(default=None, compare=False)
    context: FailureContext = field(default_factory=FailureContext, compare=False)
