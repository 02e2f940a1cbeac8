"""In-process job queues for the sync worker.

This module provides:
- JobQueue: Delayed jobs with per-queue concurrency and retries
- JobScheduler: The enqueue interface the sync engine depends on
- Job middleware for error reporting and duration tracking
"""

from .job import FailureContext, Job, JobOptions, JobState
from .middleware import common_middleware, report_job_errors, track_job
from .queue import JobHandler, JobQueue, JobScheduler

__all__ = [
    # Jobs
    "FailureContext",
    "Job",
    "JobOptions",
    "JobState",
    # Queue
    "JobHandler",
    "JobQueue",
    "JobScheduler",
    # Middleware
    "common_middleware",
    "report_job_errors",
    "track_job",
]
