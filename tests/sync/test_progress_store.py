"""Tests for ProgressStore."""

from github_jira_sync.db.repositories import SubscriptionRepository
from github_jira_sync.schemas import SyncStatus, TaskStatus, TaskType
from tests.conftest import INSTALLATION_ID, JIRA_HOST
from tests.factories import make_snapshot, make_summary, seed_installation


class TestProgressStore:
    """Tests for loading and saving installation snapshots."""

    async def test_load_missing_returns_none(self, store):
        """An unknown installation is not an error."""
        assert await store.load(JIRA_HOST, INSTALLATION_ID) is None

    async def test_create_is_idempotent(self, store, db_session):
        """create() returns the existing subscription on the second call."""
        first = await store.create(JIRA_HOST, INSTALLATION_ID)
        second = await store.create(JIRA_HOST, INSTALLATION_ID)

        assert first.id == second.id
        assert first.sync_status == SyncStatus.PENDING
        assert first.repos == {}
        assert await SubscriptionRepository(db_session).count() == 1

    async def test_save_and_load(self, store):
        """A saved snapshot loads back unchanged."""
        await store.create(JIRA_HOST, INSTALLATION_ID)
        snapshot = (
            make_snapshot(make_summary(1), make_summary(2))
            .with_task_progress("1", TaskType.PULL, status=TaskStatus.COMPLETE, cursor="p9")
            .with_sync_status(SyncStatus.ACTIVE)
            .with_sync_warning("truncated")
            .with_synced_count(0)
        )

        assert await store.save(snapshot)
        loaded = await store.load(JIRA_HOST, INSTALLATION_ID)

        assert loaded is not None
        assert loaded.sync_status == SyncStatus.ACTIVE
        assert loaded.sync_warning == "truncated"
        assert loaded.repo_sync_state == snapshot.repo_sync_state

    async def test_save_after_delete(self, store, session_factory):
        """Saving a deleted installation writes nothing and reports False."""
        snapshot = await seed_installation(store)
        async with session_factory() as session, session.begin():
            repo = SubscriptionRepository(session)
            await repo.delete(await repo.get_by_id(snapshot.id))

        assert await store.save(snapshot.with_sync_status(SyncStatus.ACTIVE)) is False
        assert await store.load(JIRA_HOST, INSTALLATION_ID) is None

    async def test_last_writer_wins(self, store):
        """Two snapshots from the same load: the later save is what persists."""
        base = await seed_installation(store, make_snapshot(make_summary(1)))

        await store.save(base.with_task_progress("1", TaskType.PULL, cursor="first"))
        await store.save(base.with_task_progress("1", TaskType.PULL, cursor="second"))

        loaded = await store.load(JIRA_HOST, INSTALLATION_ID)
        assert loaded.repo("1").task(TaskType.PULL).cursor == "second"

    async def test_list_installations(self, store):
        await seed_installation(store, make_snapshot(sync_status=SyncStatus.FAILED))
        await store.create(JIRA_HOST, INSTALLATION_ID + 1)

        everything = await store.list_installations()
        failed = await store.list_installations(SyncStatus.FAILED)

        assert len(everything) == 2
        assert [s.github_installation_id for s in failed] == [INSTALLATION_ID]
