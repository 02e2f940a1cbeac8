"""Middleware wrapped around queue job handlers.

- ``report_job_errors``: logs a failed job with its context, then re-raises
- ``track_job``: lifecycle logging and the ``job_duration`` histogram
"""

from __future__ import annotations

import functools
import time

from github_jira_sync.logging import LogContext, get_logger
from github_jira_sync.metrics import SyncMetrics

from .job import Job
from .queue import JobHandler

logger = get_logger(__name__)


def report_job_errors(handler: JobHandler) -> JobHandler:
    """Report job failures with the job's collected failure context.

    The error is re-raised so the queue applies its retry policy.
    """

    @functools.wraps(handler)
    async def wrapper(job: Job) -> None:
        try:
            await handler(job)
        except Exception:
            logger.bind(
                job={
                    "id": job.id,
                    "attemptsMade": job.attempts_made,
                    "timestamp": job.timestamp.isoformat(),
                    "data": job.data,
                },
                queue=job.queue_name,
                tags=job.context.tags,
                extras=job.context.extras,
                user=job.context.user,
            ).exception("Error processing job id={} on queue name={}", job.id, job.queue_name)
            raise

    return wrapper


def track_job(handler: JobHandler, metrics: SyncMetrics) -> JobHandler:
    """Log job start/finish and record its duration.

    Log records emitted while the job runs carry its queue and job id.
    """

    @functools.wraps(handler)
    async def wrapper(job: Job) -> None:
        logger.info("Job started name={} id={}", job.queue_name, job.id)
        started = time.monotonic()
        status = "failed"
        try:
            with LogContext(queue=job.queue_name, job_id=job.id):
                await handler(job)
            status = "completed"
            logger.info("Job completed name={} id={}", job.queue_name, job.id)
        finally:
            metrics.observe_job(job.queue_name, status, (time.monotonic() - started) * 1000)

    return wrapper


def common_middleware(handler: JobHandler, metrics: SyncMetrics) -> JobHandler:
    """Wrap a handler with error reporting and job tracking."""
    return report_job_errors(track_job(handler, metrics))
