"""Repository discovery for an installation.

A discovery job lists every repository the GitHub installation can access,
adds the new ones to the installation's progress with all tasks PENDING,
and starts the installation sync.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime

from github_jira_sync.github import GitHubClient
from github_jira_sync.logging import bind_installation
from github_jira_sync.queue import Job, JobOptions, JobScheduler
from github_jira_sync.schemas import InstallationJobData, InstallationSnapshot, SyncStatus

from .progress_store import ProgressStore

GitHubFactory = Callable[[int], GitHubClient]


def _utcnow() -> datetime:
    return datetime.now(UTC)


async def request_sync(
    store: ProgressStore,
    discovery_queue: JobScheduler,
    jira_host: str,
    installation_id: int,
) -> InstallationSnapshot:
    """Create the installation if needed and queue its discovery job."""
    snapshot = await store.create(jira_host, installation_id)
    await discovery_queue.enqueue(
        InstallationJobData(installation_id=installation_id, jira_host=jira_host).model_dump(
            mode="json"
        ),
        JobOptions(),
    )
    bind_installation(jira_host, installation_id).info("Discovery requested")
    return snapshot


class DiscoveryService:
    """Processes discovery jobs.

    Usage:
        discovery = DiscoveryService(ProgressStore(), queues.installation)
        queues.discovery.process(discovery.process_discovery_job)
    """

    def __init__(
        self,
        store: ProgressStore,
        installation_queue: JobScheduler,
        *,
        github_factory: GitHubFactory | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._installation_queue = installation_queue
        self._github_factory = github_factory or (
            lambda installation_id: GitHubClient(installation_id=installation_id)
        )
        self._clock = clock

    async def process_discovery_job(self, job: Job) -> None:
        data = InstallationJobData.model_validate(job.data)
        log = bind_installation(data.jira_host, data.installation_id)
        job.context.set_tag("jiraHost", data.jira_host)
        job.context.set_tag("installationId", str(data.installation_id))

        snapshot = await self._store.load(data.jira_host, data.installation_id)
        if snapshot is None:
            log.info("Installation not found, skipping discovery")
            return

        async with self._github_factory(data.installation_id) as github:
            repositories = await github.list_installation_repositories()

        known = len(snapshot.repos)
        snapshot = snapshot.with_discovered_repositories(repositories).with_sync_status(
            SyncStatus.PENDING
        )
        if not await self._store.save(snapshot):
            return
        log.info(
            "Discovered {} repositories ({} new)",
            len(repositories),
            len(snapshot.repos) - known,
        )

        await self._installation_queue.enqueue(
            InstallationJobData(
                installation_id=data.installation_id,
                jira_host=data.jira_host,
                start_time=self._clock(),
            ).model_dump(mode="json"),
            job.opts.removal_policy(),
        )
