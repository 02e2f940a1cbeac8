"""Classification of errors raised while executing a sync task.

Decides whether a failed execution is rescheduled after a delay, treated
as a finished task (repository gone), or marks the installation FAILED.
"""

from __future__ import annotations

from dataclasses import dataclass

import httpx

from github_jira_sync.config import SyncConfig
from github_jira_sync.github import (
    GitHubAbuseDetectionError,
    GitHubClientError,
    GitHubNotFoundError,
    GitHubRateLimitError,
    GitHubTimeoutError,
)

TIMEOUT_MARKERS = ("ETIMEDOUT",)
ABUSE_MARKERS = ("abuse detection mechanism", "secondary rate limit")


@dataclass(frozen=True)
class RetryAfter:
    """Reschedule the job after ``delay_ms``."""

    delay_ms: int
    reason: str


@dataclass(frozen=True)
class RepositoryNotFound:
    """The repository was deleted upstream; the task is done."""


@dataclass(frozen=True)
class Fatal:
    """Mark the installation FAILED and re-raise."""


FailureDecision = RetryAfter | RepositoryNotFound | Fatal


def is_rate_limited(error: BaseException) -> bool:
    """True for a primary rate limit: typed as such or with no requests remaining.

    GitHub sends ``x-ratelimit-reset`` on every response, so the reset header
    alone does not mean the request was rate limited.
    """
    if isinstance(error, GitHubRateLimitError):
        return True
    return (
        isinstance(error, GitHubClientError)
        and error.headers.get("x-ratelimit-remaining") == "0"
    )


def rate_limit_delay_ms(error: BaseException, now_ms: int) -> int | None:
    """Milliseconds until the rate limit resets, or None.

    None when the error is not a rate limit, carries no ``x-ratelimit-reset``
    header, or the reset time is not in the future.
    """
    if not isinstance(error, GitHubClientError) or not is_rate_limited(error):
        return None
    reset = error.headers.get("x-ratelimit-reset")
    if reset is None:
        return None
    try:
        reset_ms = int(reset) * 1000
    except ValueError:
        return None
    if reset_ms <= now_ms:
        return None
    return reset_ms - now_ms


def is_timeout(error: BaseException) -> bool:
    """True for network timeouts from either HTTP client."""
    if isinstance(error, GitHubTimeoutError | httpx.TimeoutException | TimeoutError):
        return True
    return any(marker in str(error) for marker in TIMEOUT_MARKERS)


def is_abuse_detection(error: BaseException) -> bool:
    """True when GitHub's secondary rate limit / abuse detection tripped."""
    if isinstance(error, GitHubAbuseDetectionError):
        return True
    message = str(error).lower()
    return any(marker in message for marker in ABUSE_MARKERS)


def is_not_found(error: BaseException) -> bool:
    """True for a 404 or a GraphQL ``NOT_FOUND`` error."""
    if isinstance(error, GitHubNotFoundError):
        return True
    return isinstance(error, GitHubClientError) and "NOT_FOUND" in error.error_types


def classify_failure(error: BaseException, now_ms: int, config: SyncConfig) -> FailureDecision:
    """Decide how the engine handles a failed task execution.

    Checked in order: rate limit, timeout, abuse detection, not found.
    """
    delay = rate_limit_delay_ms(error, now_ms)
    if delay is not None:
        return RetryAfter(delay_ms=delay, reason="rate limit")
    if is_timeout(error):
        return RetryAfter(delay_ms=config.timeout_retry_delay_ms, reason="timeout")
    if is_abuse_detection(error):
        return RetryAfter(delay_ms=config.abuse_retry_delay_ms, reason="abuse detection")
    if is_not_found(error):
        return RepositoryNotFound()
    return Fatal()
