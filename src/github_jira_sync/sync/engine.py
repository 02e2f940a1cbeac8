"""Installation Sync Engine - one bounded unit of backfill work per job.

Each installation job:
1. Loads the installation's progress snapshot; a FAILED installation is
   left alone
2. Selects the next outstanding task (repository + task type + cursor)
3. Fetches one page with page-size fallback and submits it to Jira
4. Records the new cursor/status and reschedules itself, or declares
   the installation COMPLETE

Errors raised while fetching are classified: rate limits, timeouts and
abuse detection reschedule the job after a delay; a deleted repository
finishes the task; anything else marks the installation FAILED and is
re-raised for the job middleware to report.

Known race: ``update_job_status`` reloads the installation without
comparing it to the snapshot the job started from, so two jobs for the
same installation running at once are last-writer-wins per save.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from github_jira_sync.config import SyncConfig, get_settings
from github_jira_sync.github import GitHubClient
from github_jira_sync.jira import ISSUE_KEY_LIMIT_WARNING, JiraClient, JiraClientError
from github_jira_sync.logging import bind_installation, bind_task
from github_jira_sync.metrics import SyncMetrics
from github_jira_sync.queue import Job, JobScheduler
from github_jira_sync.schemas import (
    InstallationJobData,
    InstallationSnapshot,
    RepositorySummary,
    SyncStatus,
    TaskStatus,
    TaskType,
)

from .failures import Fatal, RepositoryNotFound, RetryAfter, classify_failure
from .fetcher import fetch_with_fallback
from .progress_store import ProgressStore
from .results import Edge, TaskResult
from .tasks import TASK_HANDLERS, PageFetcher

GitHubFactory = Callable[[int], GitHubClient]
JiraFactory = Callable[[str, int], JiraClient]


@dataclass(frozen=True)
class NextTask:
    """The task the engine works on next."""

    repository_id: str
    task: TaskType
    cursor: str | None
    repository: RepositorySummary | None


@dataclass(frozen=True)
class TaskSelection:
    """Result of task selection: the next task (if any) and the synced count."""

    next_task: NextTask | None
    synced_count: int


def select_next_task(snapshot: InstallationSnapshot) -> TaskSelection:
    """Find the first unfinished task.

    Repositories are visited most recently updated first (ties by id); within
    a repository, task types are visited in declaration order.
    """
    state = snapshot.repo_sync_state
    synced_count = state.count_synced()
    for repository_id, progress in state.sorted_repos():
        pending = progress.pending_tasks()
        if pending:
            task = pending[0]
            return TaskSelection(
                next_task=NextTask(
                    repository_id=repository_id,
                    task=task,
                    cursor=progress.task(task).cursor,
                    repository=progress.repository,
                ),
                synced_count=synced_count,
            )
    return TaskSelection(next_task=None, synced_count=synced_count)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class InstallationSyncEngine:
    """Processes installation sync jobs.

    Usage:
        engine = InstallationSyncEngine(
            store=ProgressStore(),
            installation_queue=queues.installation,
            metrics=SyncMetrics(),
        )
        queues.installation.process(engine.process_installation_job)
    """

    def __init__(
        self,
        store: ProgressStore,
        installation_queue: JobScheduler,
        *,
        metrics: SyncMetrics | None = None,
        github_factory: GitHubFactory | None = None,
        jira_factory: JiraFactory | None = None,
        config: SyncConfig | None = None,
        handlers: Mapping[TaskType, PageFetcher] = TASK_HANDLERS,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Initialize the engine.

        Args:
            store: Progress store for installation state
            installation_queue: Queue that receives rescheduled installation jobs
            metrics: Metric sink (a private registry is created if omitted)
            github_factory: Builds a GitHub client for an installation id
            jira_factory: Builds a Jira client for (jira_host, installation_id)
            config: Delays, retry budget and page sizes. Defaults to settings.sync.
            handlers: Page fetcher per task type
            clock: Returns the current UTC time
        """
        self._store = store
        self._installation_queue = installation_queue
        self._metrics = metrics or SyncMetrics()
        self._github_factory = github_factory or (
            lambda installation_id: GitHubClient(installation_id=installation_id)
        )
        self._jira_factory = jira_factory or JiraClient
        self._config = config or get_settings().sync
        self._handlers = handlers
        self._clock = clock

    def _now_ms(self) -> int:
        return int(self._clock().timestamp() * 1000)

    # -------------------------------------------------------------------------
    # Job entry point
    # -------------------------------------------------------------------------
    async def process_installation_job(self, job: Job) -> None:
        """Run one step of an installation's sync.

        Raises:
            Exception: Only for unclassified failures, after the installation
                has been marked FAILED
        """
        data = InstallationJobData.model_validate(job.data)
        log = bind_installation(data.jira_host, data.installation_id)
        job.context.set_user(jira_host=data.jira_host, installation_id=data.installation_id)
        job.context.set_tag("jiraHost", data.jira_host)
        job.context.set_tag("installationId", str(data.installation_id))

        snapshot = await self._store.load(data.jira_host, data.installation_id)
        if snapshot is None:
            log.info("Installation not found, nothing to sync")
            return
        # FAILED is terminal until a new sync request resets it to PENDING
        if snapshot.sync_status == SyncStatus.FAILED:
            log.info("Installation sync has FAILED, not retrying")
            return

        selection = select_next_task(snapshot)
        snapshot = snapshot.with_synced_count(selection.synced_count)
        next_task = selection.next_task
        if next_task is None:
            log.info("No outstanding tasks, installation is fully synced")
            await self._store.save(snapshot.with_sync_status(SyncStatus.COMPLETE))
            return

        snapshot = snapshot.with_sync_status(SyncStatus.ACTIVE)
        await self._store.save(snapshot)

        job.context.set_extra(
            "task",
            {
                "repositoryId": next_task.repository_id,
                "task": str(next_task.task),
                "cursor": next_task.cursor,
            },
        )
        task_log = bind_task(
            data.jira_host, data.installation_id, next_task.repository_id, next_task.task
        )
        task_log.debug("Starting task at cursor {}", next_task.cursor)

        try:
            async with self._github_factory(data.installation_id) as github:
                repository = await self._ensure_repository(github, snapshot, next_task)
                result = await self.execute_task(
                    github, next_task.task, repository, next_task.cursor
                )
        except Exception as e:
            if await self._recover(job, data, next_task, e):
                return
            task_log.error("Task failed, marking installation FAILED: {}", e)
            await self._mark_failed(data)
            raise

        truncated = False
        if result.payload is not None:
            try:
                truncated = await self._submit(data, result.payload)
            except JiraClientError as e:
                job.context.set_extra("diagnostics", e.diagnostics())
                task_log.error("Jira rejected the repository update: {}", e)
                await self._mark_failed(data)
                raise

        await self.update_job_status(
            job,
            result.edges,
            next_task.task,
            next_task.repository_id,
            sync_warning=ISSUE_KEY_LIMIT_WARNING if truncated else None,
        )

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------
    async def execute_task(
        self,
        github: GitHubClient,
        task: TaskType,
        repository: RepositorySummary,
        cursor: str | None,
    ) -> TaskResult:
        """Fetch one page of ``task`` with the page-size fallback."""
        handler = self._handlers[task]
        return await fetch_with_fallback(
            lambda page_size: handler(github, repository, cursor, page_size),
            self._config.page_sizes,
        )

    async def _ensure_repository(
        self,
        github: GitHubClient,
        snapshot: InstallationSnapshot,
        next_task: NextTask,
    ) -> RepositorySummary:
        """Repository summary for the task, fetched and stored if missing."""
        if next_task.repository is not None:
            return next_task.repository
        repository = await github.get_repository_by_id(next_task.repository_id)
        await self._store.save(
            snapshot.with_repository_summary(next_task.repository_id, repository)
        )
        return repository

    async def _submit(self, data: InstallationJobData, payload: dict[str, Any]) -> bool:
        async with self._jira_factory(data.jira_host, data.installation_id) as jira:
            return await jira.submit_repository_update(payload, prevent_transitions=True)

    # -------------------------------------------------------------------------
    # Progress update and rescheduling
    # -------------------------------------------------------------------------
    async def update_job_status(
        self,
        job: Job,
        edges: Sequence[Edge],
        task: TaskType,
        repository_id: str,
        *,
        sync_warning: str | None = None,
    ) -> None:
        """Record a fetch result and decide what happens next.

        Reloads the installation first, since the fetch may have taken long
        enough for the stored state to have moved on.
        """
        data = InstallationJobData.model_validate(job.data)
        log = bind_installation(data.jira_host, data.installation_id)

        snapshot = await self._store.load(data.jira_host, data.installation_id)
        if snapshot is None:
            log.info("Installation was deleted during the sync, stopping")
            return

        if sync_warning:
            snapshot = snapshot.with_sync_warning(sync_warning)

        if edges:
            snapshot = snapshot.with_task_progress(
                repository_id, task, status=TaskStatus.PENDING, cursor=edges[-1].cursor
            )
            await self._store.save(snapshot)
            await self._reschedule(
                job,
                data,
                delay_ms=self._config.inter_job_delay_ms,
                attempts=self._config.job_attempts,
            )
            return

        snapshot = snapshot.with_task_progress(repository_id, task, status=TaskStatus.COMPLETE)
        log.info("Task {} complete for repository {}", task, repository_id)

        selection = select_next_task(snapshot)
        snapshot = snapshot.with_synced_count(selection.synced_count)
        if selection.next_task is not None:
            snapshot = snapshot.with_sync_status(SyncStatus.ACTIVE)
            await self._store.save(snapshot)
            await self._reschedule(job, data, delay_ms=0, attempts=self._config.job_attempts)
            return

        snapshot = snapshot.with_sync_status(SyncStatus.COMPLETE)
        await self._store.save(snapshot)
        log.info("Installation sync complete ({} repositories)", selection.synced_count)
        await self._notify_migration_complete(data)
        if data.start_time is not None:
            duration_ms = (self._clock() - data.start_time).total_seconds() * 1000
            self._metrics.observe_full_sync(duration_ms)

    async def _reschedule(
        self,
        job: Job,
        data: InstallationJobData,
        *,
        delay_ms: int,
        attempts: int = 1,
    ) -> None:
        await self._installation_queue.enqueue(
            data.model_dump(mode="json"),
            job.opts.removal_policy(delay_ms=delay_ms, attempts=attempts),
        )

    async def _notify_migration_complete(self, data: InstallationJobData) -> None:
        log = bind_installation(data.jira_host, data.installation_id)
        try:
            async with self._jira_factory(data.jira_host, data.installation_id) as jira:
                await jira.notify_migration_complete()
        except Exception as e:
            log.warning("Failed to notify Jira that the migration is complete: {}", e)

    # -------------------------------------------------------------------------
    # Failures
    # -------------------------------------------------------------------------
    async def _recover(
        self,
        job: Job,
        data: InstallationJobData,
        next_task: NextTask,
        error: Exception,
    ) -> bool:
        """Handle a recoverable execution failure.

        Returns:
            True if the failure was handled; False if it is fatal
        """
        log = bind_task(
            data.jira_host, data.installation_id, next_task.repository_id, next_task.task
        )
        decision = classify_failure(error, self._now_ms(), self._config)

        if isinstance(decision, RetryAfter):
            log.warning(
                "Rescheduling after {} in {}ms: {}", decision.reason, decision.delay_ms, error
            )
            await self._reschedule(job, data, delay_ms=decision.delay_ms)
            return True
        if isinstance(decision, RepositoryNotFound):
            log.info("Repository not found, marking task {} complete", next_task.task)
            await self.update_job_status(job, [], next_task.task, next_task.repository_id)
            return True
        assert isinstance(decision, Fatal)
        return False

    async def _mark_failed(self, data: InstallationJobData) -> None:
        snapshot = await self._store.load(data.jira_host, data.installation_id)
        if snapshot is None:
            return
        await self._store.save(snapshot.with_sync_status(SyncStatus.FAILED))
