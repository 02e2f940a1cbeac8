"""Immutable snapshots of an installation's sync progress.

The engine reads one ``InstallationSnapshot`` at the start of each step,
derives new snapshots with the ``with_*`` helpers and hands the final one
to the progress store in a single write.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import Any

from pydantic import Field

from .base import FrozenSchema
from .enums import SyncStatus, TaskStatus, TaskType

_UNSET: Any = object()


class RepositorySummary(FrozenSchema):
    """Repository metadata stored alongside its progress.

    ``updated_at`` is only used to order repositories for syncing.
    """

    id: int = Field(description="GitHub repository database id")
    name: str = Field(description="Repository name")
    full_name: str = Field(description="owner/name")
    owner: str = Field(description="Owner login")
    html_url: str = Field(default="", description="Repository web URL")
    updated_at: datetime | None = Field(default=None, description="Last activity")


class TaskProgress(FrozenSchema):
    """Status and continuation cursor of one task on one repository."""

    status: TaskStatus = TaskStatus.PENDING
    cursor: str | None = None

    @property
    def is_complete(self) -> bool:
        return self.status == TaskStatus.COMPLETE


def _pending_tasks() -> dict[TaskType, TaskProgress]:
    return {task: TaskProgress() for task in TaskType}


class RepoProgress(FrozenSchema):
    """Per-repository progress across every task type."""

    repository: RepositorySummary | None = None
    tasks: dict[TaskType, TaskProgress] = Field(default_factory=_pending_tasks)

    def task(self, task_type: TaskType) -> TaskProgress:
        """Progress for a task type (PENDING with no cursor if never recorded)."""
        return self.tasks.get(task_type, TaskProgress())

    @property
    def is_synced(self) -> bool:
        """True when every task type is COMPLETE."""
        return all(self.task(task_type).is_complete for task_type in TaskType)

    def pending_tasks(self) -> list[TaskType]:
        """Task types not yet COMPLETE, in declaration order."""
        return [t for t in TaskType if not self.task(t).is_complete]

    def with_task(
        self,
        task_type: TaskType,
        *,
        status: TaskStatus | None = None,
        cursor: str | None = _UNSET,
    ) -> RepoProgress:
        current = self.task(task_type)
        updated = current.model_copy(
            update={
                "status": current.status if status is None else status,
                "cursor": current.cursor if cursor is _UNSET else cursor,
            }
        )
        return self.model_copy(update={"tasks": {**self.tasks, task_type: updated}})

    def with_repository(self, repository: RepositorySummary) -> RepoProgress:
        return self.model_copy(update={"repository": repository})


def _updated_at_key(item: tuple[str, RepoProgress]) -> tuple[int, float, tuple[int, int | str]]:
    repository_id, progress = item
    updated_at = progress.repository.updated_at if progress.repository else None
    # Most recently updated first; repositories without a timestamp go last
    if updated_at is None:
        recency: tuple[int, float] = (1, 0.0)
    else:
        recency = (0, -updated_at.timestamp())
    id_key: tuple[int, int | str] = (
        (0, int(repository_id)) if repository_id.isdigit() else (1, repository_id)
    )
    return (*recency, id_key)


class RepoSyncState(FrozenSchema):
    """All repositories of an installation and the synced-repository count."""

    repos: dict[str, RepoProgress] = Field(default_factory=dict)
    number_of_synced_repos: int = Field(default=0, alias="numberOfSyncedRepos")

    def sorted_repos(self) -> list[tuple[str, RepoProgress]]:
        """Repositories ordered by descending ``updated_at``, ties by id."""
        return sorted(self.repos.items(), key=_updated_at_key)

    def count_synced(self) -> int:
        return sum(1 for progress in self.repos.values() if progress.is_synced)


class InstallationSnapshot(FrozenSchema):
    """Point-in-time view of one installation's persisted sync state."""

    id: int | None = Field(default=None, description="Store primary key")
    github_installation_id: int
    jira_host: str
    sync_status: SyncStatus = SyncStatus.PENDING
    sync_warning: str | None = None
    repo_sync_state: RepoSyncState = Field(default_factory=RepoSyncState)
    updated_at: datetime | None = None

    @property
    def repos(self) -> dict[str, RepoProgress]:
        return self.repo_sync_state.repos

    def repo(self, repository_id: str) -> RepoProgress:
        return self.repos.get(repository_id, RepoProgress())

    # -------------------------------------------------------------------------
    # Derivations
    # -------------------------------------------------------------------------
    def with_sync_status(self, status: SyncStatus) -> InstallationSnapshot:
        return self.model_copy(update={"sync_status": status})

    def with_sync_warning(self, warning: str | None) -> InstallationSnapshot:
        return self.model_copy(update={"sync_warning": warning})

    def with_synced_count(self, count: int) -> InstallationSnapshot:
        state = self.repo_sync_state.model_copy(update={"number_of_synced_repos": count})
        return self.model_copy(update={"repo_sync_state": state})

    def with_repo(self, repository_id: str, progress: RepoProgress) -> InstallationSnapshot:
        state = self.repo_sync_state.model_copy(
            update={"repos": {**self.repos, repository_id: progress}}
        )
        return self.model_copy(update={"repo_sync_state": state})

    def with_task_progress(
        self,
        repository_id: str,
        task_type: TaskType,
        *,
        status: TaskStatus | None = None,
        cursor: str | None = _UNSET,
    ) -> InstallationSnapshot:
        progress = self.repo(repository_id).with_task(task_type, status=status, cursor=cursor)
        return self.with_repo(repository_id, progress)

    def with_repository_summary(
        self, repository_id: str, summary: RepositorySummary
    ) -> InstallationSnapshot:
        return self.with_repo(repository_id, self.repo(repository_id).with_repository(summary))

    def with_discovered_repositories(
        self, repositories: Iterable[RepositorySummary]
    ) -> InstallationSnapshot:
        """Add newly discovered repositories with every task PENDING.

        Known repositories keep their progress; only their summary is refreshed.
        Repositories are never removed.
        """
        repos = dict(self.repos)
        for summary in repositories:
            key = str(summary.id)
            existing = repos.get(key)
            repos[key] = (
                existing.with_repository(summary)
                if existing is not None
                else RepoProgress(repository=summary)
            )
        state = self.repo_sync_state.model_copy(update={"repos": repos})
        return self.model_copy(update={"repo_sync_state": state})

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------
    def repo_sync_state_json(self) -> dict[str, Any]:
        """JSON document persisted in the ``repo_sync_state`` column."""
        return self.repo_sync_state.model_dump(mode="json", by_alias=True)
