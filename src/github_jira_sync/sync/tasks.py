"""Task catalog: the handler for each task type."""

from __future__ import annotations

from collections.abc import Awaitable, Callable

from github_jira_sync.github import GitHubClient
from github_jira_sync.schemas import RepositorySummary, TaskType

from .results import TaskResult
from .transforms import fetch_branches, fetch_commits, fetch_pull_requests

PageFetcher = Callable[[GitHubClient, RepositorySummary, str | None, int], Awaitable[TaskResult]]

TASK_HANDLERS: dict[TaskType, PageFetcher] = {
    TaskType.PULL: fetch_pull_requests,
    TaskType.BRANCH: fetch_branches,
    TaskType.COMMIT: fetch_commits,
}

_missing = set(TaskType) - set(TASK_HANDLERS)
if _missing:
    raise RuntimeError(f"No task handler registered for {sorted(_missing)}")
