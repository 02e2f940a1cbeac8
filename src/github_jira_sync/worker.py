"""Sync worker: the discovery and installation queues with their handlers.

Queues are created here and handed to the engine and discovery service,
so nothing in the sync package depends on process-wide queue objects.
"""

from __future__ import annotations

import asyncio

from github_jira_sync.config import QueueConfig, SyncConfig, get_settings
from github_jira_sync.logging import get_logger
from github_jira_sync.metrics import SyncMetrics
from github_jira_sync.queue import JobQueue, common_middleware
from github_jira_sync.sync import (
    DiscoveryService,
    InstallationSyncEngine,
    ProgressStore,
    request_sync,
)
from github_jira_sync.sync.discovery import GitHubFactory
from github_jira_sync.sync.engine import JiraFactory

logger = get_logger(__name__)


class Worker:
    """Owns the worker queues and wires them to their job handlers.

    Usage:
        worker = Worker()
        await worker.start()
        await worker.request_sync("https://acme.atlassian.net", 1234)
        await worker.drain()
        await worker.stop()
    """

    def __init__(
        self,
        *,
        store: ProgressStore | None = None,
        metrics: SyncMetrics | None = None,
        queue_config: QueueConfig | None = None,
        sync_config: SyncConfig | None = None,
        github_factory: GitHubFactory | None = None,
        jira_factory: JiraFactory | None = None,
    ) -> None:
        settings = get_settings()
        queue_config = queue_config or settings.queues
        self.store = store or ProgressStore()
        self.metrics = metrics or SyncMetrics()

        self.discovery = JobQueue(
            "discovery",
            concurrency=queue_config.discovery_concurrency,
            max_backoff_seconds=queue_config.max_backoff_seconds,
        )
        self.installation = JobQueue(
            "installation",
            concurrency=queue_config.installation_concurrency,
            max_backoff_seconds=queue_config.max_backoff_seconds,
        )

        self.engine = InstallationSyncEngine(
            self.store,
            self.installation,
            metrics=self.metrics,
            github_factory=github_factory,
            jira_factory=jira_factory,
            config=sync_config or settings.sync,
        )
        self.discovery_service = DiscoveryService(
            self.store, self.installation, github_factory=github_factory
        )

        self.discovery.process(
            common_middleware(self.discovery_service.process_discovery_job, self.metrics)
        )
        self.installation.process(
            common_middleware(self.engine.process_installation_job, self.metrics)
        )

    @property
    def queues(self) -> list[JobQueue]:
        return [self.discovery, self.installation]

    async def start(self) -> None:
        for queue in self.queues:
            await queue.start()
        logger.info("Worker started")

    async def stop(self, wait: bool = True) -> None:
        for queue in self.queues:
            await queue.shutdown(wait=wait)
        logger.info("Worker stopped")

    async def request_sync(self, jira_host: str, installation_id: int) -> None:
        await request_sync(self.store, self.discovery, jira_host, installation_id)

    async def drain(self, timeout: float | None = None) -> None:
        """Wait until no queue has queued or running jobs."""

        async def _wait() -> None:
            while not all(queue.is_idle for queue in self.queues):
                await asyncio.sleep(0.05)

        await asyncio.wait_for(_wait(), timeout)

    async def run_forever(self) -> None:
        """Start the queues and block until cancelled."""
        await self.start()
        try:
            await asyncio.Event().wait()
        finally:
            await self.stop()
