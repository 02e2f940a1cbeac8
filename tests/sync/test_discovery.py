"""Tests for repository discovery."""

from github_jira_sync.queue import JobOptions
from github_jira_sync.schemas import SyncStatus, TaskType
from github_jira_sync.sync import DiscoveryService, request_sync
from tests.conftest import INSTALLATION_ID, JAN_12, JIRA_HOST, NOW
from tests.factories import (
    RecordingScheduler,
    make_job,
    make_snapshot,
    make_summary,
    seed_installation,
)


class TestDiscoveryService:
    """Tests for discovery jobs."""

    def _service(self, store, scheduler, github_client) -> DiscoveryService:
        return DiscoveryService(
            store,
            scheduler,
            github_factory=lambda _installation_id: github_client,
            clock=lambda: NOW,
        )

    async def test_adds_repositories_and_starts_sync(self, store, github_client):
        """New repositories are added PENDING and an installation job is queued."""
        await seed_installation(
            store,
            make_snapshot(
                make_summary(1),
                sync_status=SyncStatus.COMPLETE,
                complete={1: list(TaskType)},
            ),
        )
        github_client.list_installation_repositories.return_value = [
            make_summary(1, updated_at=JAN_12),
            make_summary(2),
        ]
        scheduler = RecordingScheduler()

        await self._service(store, scheduler, github_client).process_discovery_job(
            make_job(queue_name="discovery", opts=JobOptions(remove_on_fail=True))
        )

        snapshot = await store.load(JIRA_HOST, INSTALLATION_ID)
        assert snapshot.sync_status == SyncStatus.PENDING
        assert set(snapshot.repos) == {"1", "2"}
        assert snapshot.repo("1").is_synced
        assert snapshot.repo("1").repository.updated_at == JAN_12
        assert snapshot.repo("2").pending_tasks() == list(TaskType)

        (job,) = scheduler.jobs
        assert job.data["installation_id"] == INSTALLATION_ID
        assert job.data["start_time"].startswith("2026-01-15T12:00:00")
        assert job.opts.delay_ms == 0
        assert job.opts.remove_on_fail is True

    async def test_missing_installation(self, store, github_client):
        scheduler = RecordingScheduler()

        await self._service(store, scheduler, github_client).process_discovery_job(
            make_job(queue_name="discovery")
        )

        github_client.list_installation_repositories.assert_not_called()
        assert scheduler.jobs == []


class TestRequestSync:
    async def test_creates_installation_and_queues_discovery(self, store):
        scheduler = RecordingScheduler()

        snapshot = await request_sync(store, scheduler, JIRA_HOST, INSTALLATION_ID)

        assert snapshot.sync_status == SyncStatus.PENDING
        assert await store.load(JIRA_HOST, INSTALLATION_ID) is not None
        assert scheduler.last.data == {
            "installation_id": INSTALLATION_ID,
            "jira_host": JIRA_HOST,
            "start_time": None,
        }
