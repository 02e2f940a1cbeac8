"""Tests for the immutable progress snapshots."""

import pytest
from pydantic import ValidationError

from github_jira_sync.schemas import (
    InstallationSnapshot,
    RepoProgress,
    RepoSyncState,
    SyncStatus,
    TaskStatus,
    TaskType,
)
from tests.conftest import INSTALLATION_ID, JAN_10, JAN_12, JIRA_HOST
from tests.factories import make_snapshot, make_summary


class TestRepoProgress:
    """Tests for per-repository progress."""

    def test_new_progress_all_pending(self):
        """Every task type starts PENDING with no cursor."""
        progress = RepoProgress()

        assert progress.pending_tasks() == [TaskType.PULL, TaskType.BRANCH, TaskType.COMMIT]
        assert not progress.is_synced
        assert progress.task(TaskType.BRANCH).cursor is None

    def test_missing_task_reads_as_pending(self):
        """A task absent from the stored map is PENDING."""
        progress = RepoProgress(tasks={})

        assert progress.task(TaskType.COMMIT).status == TaskStatus.PENDING

    def test_with_task_returns_new_object(self):
        """with_task leaves the original untouched."""
        progress = RepoProgress()

        updated = progress.with_task(TaskType.PULL, status=TaskStatus.COMPLETE, cursor="c1")

        assert updated.task(TaskType.PULL).is_complete
        assert updated.task(TaskType.PULL).cursor == "c1"
        assert not progress.task(TaskType.PULL).is_complete

    def test_with_task_keeps_cursor_when_not_given(self):
        """Updating only the status keeps the cursor."""
        progress = RepoProgress().with_task(TaskType.PULL, cursor="c9")

        updated = progress.with_task(TaskType.PULL, status=TaskStatus.COMPLETE)

        assert updated.task(TaskType.PULL).cursor == "c9"

    def test_frozen(self):
        """Progress objects cannot be mutated in place."""
        progress = RepoProgress()

        with pytest.raises(ValidationError):
            progress.repository = make_summary(1)

    def test_synced_when_all_complete(self):
        progress = RepoProgress()
        for task in TaskType:
            progress = progress.with_task(task, status=TaskStatus.COMPLETE)

        assert progress.is_synced
        assert progress.pending_tasks() == []


class TestRepoSyncState:
    """Tests for repository ordering and counts."""

    def test_sorted_by_recency(self):
        snapshot = make_snapshot(
            make_summary(1, updated_at=JAN_10),
            make_summary(2, updated_at=JAN_12),
            make_summary(3),
        )

        order = [repo_id for repo_id, _ in snapshot.repo_sync_state.sorted_repos()]

        assert order == ["2", "1", "3"]

    def test_json_uses_camel_case_count(self):
        """The synced count is stored as numberOfSyncedRepos."""
        state = RepoSyncState(number_of_synced_repos=3)

        assert state.model_dump(mode="json", by_alias=True)["numberOfSyncedRepos"] == 3
        assert RepoSyncState.model_validate({"numberOfSyncedRepos": 4}).number_of_synced_repos == 4


class TestInstallationSnapshot:
    """Tests for snapshot derivations."""

    def test_with_task_progress(self):
        snapshot = make_snapshot(make_summary(1))

        updated = snapshot.with_task_progress(
            "1", TaskType.BRANCH, status=TaskStatus.PENDING, cursor="b5"
        )

        assert updated.repo("1").task(TaskType.BRANCH).cursor == "b5"
        assert snapshot.repo("1").task(TaskType.BRANCH).cursor is None

    def test_discovery_adds_without_removing(self):
        """Known repositories keep their progress; new ones start PENDING."""
        snapshot = make_snapshot(make_summary(1), complete={1: [TaskType.PULL]})

        updated = snapshot.with_discovered_repositories(
            [make_summary(1, updated_at=JAN_12), make_summary(2)]
        )

        assert set(updated.repos) == {"1", "2"}
        assert updated.repo("1").task(TaskType.PULL).is_complete
        assert updated.repo("1").repository.updated_at == JAN_12
        assert updated.repo("2").pending_tasks() == list(TaskType)

    def test_discovery_never_drops_repositories(self):
        snapshot = make_snapshot(make_summary(1), make_summary(2))

        updated = snapshot.with_discovered_repositories([make_summary(2)])

        assert set(updated.repos) == {"1", "2"}

    def test_json_round_trip(self):
        """The persisted document validates back into the same state."""
        snapshot = make_snapshot(
            make_summary(1, updated_at=JAN_10),
            complete={1: [TaskType.PULL]},
            cursors={(1, TaskType.BRANCH): "b1"},
        ).with_synced_count(0)

        document = snapshot.repo_sync_state_json()

        assert document["repos"]["1"]["tasks"]["pull"]["status"] == "complete"
        assert RepoSyncState.model_validate(document) == snapshot.repo_sync_state

    def test_status_helpers(self):
        snapshot = InstallationSnapshot(
            github_installation_id=INSTALLATION_ID, jira_host=JIRA_HOST
        )

        assert snapshot.sync_status == SyncStatus.PENDING
        assert snapshot.with_sync_status(SyncStatus.FAILED).sync_status == SyncStatus.FAILED
        assert snapshot.with_sync_warning("careful").sync_warning == "careful"
