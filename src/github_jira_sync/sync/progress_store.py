"""Progress Store - durable per-installation sync state.

Loads and saves whole ``InstallationSnapshot`` objects. Each call runs in
its own short transaction; there is no locking across jobs, so concurrent
saves for the same installation are last-writer-wins.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from github_jira_sync.db.engine import get_session_factory
from github_jira_sync.db.models import Subscription
from github_jira_sync.db.repositories import SubscriptionRepository
from github_jira_sync.logging import get_logger
from github_jira_sync.schemas import InstallationSnapshot, RepoSyncState, SyncStatus

logger = get_logger(__name__)


def snapshot_from_model(subscription: Subscription) -> InstallationSnapshot:
    """Build an immutable snapshot from a Subscription row."""
    return InstallationSnapshot(
        id=subscription.id,
        github_installation_id=subscription.github_installation_id,
        jira_host=subscription.jira_host,
        sync_status=subscription.sync_status,
        sync_warning=subscription.sync_warning,
        repo_sync_state=RepoSyncState.model_validate(subscription.repo_sync_state or {}),
        updated_at=subscription.updated_at,
    )


class ProgressStore:
    """Loads and saves installation sync state.

    Usage:
        store = ProgressStore()
        snapshot = await store.load("https://acme.atlassian.net", 1234)
        if snapshot is not None:
            await store.save(snapshot.with_sync_status(SyncStatus.ACTIVE))
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            session_factory: Session factory to use. Defaults to the
                             application-wide factory from settings.
        """
        self._session_factory = session_factory

    def _factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            self._session_factory = get_session_factory()
        return self._session_factory

    async def load(self, jira_host: str, installation_id: int) -> InstallationSnapshot | None:
        """Load the current snapshot, or None if the installation does not exist."""
        async with self._factory()() as session:
            repo = SubscriptionRepository(session)
            subscription = await repo.get_single_installation(jira_host, installation_id)
            if subscription is None:
                return None
            return snapshot_from_model(subscription)

    async def save(self, snapshot: InstallationSnapshot) -> bool:
        """Persist a snapshot.

        Returns:
            False if the installation was deleted in the meantime (nothing written)
        """
        async with self._factory()() as session, session.begin():
            repo = SubscriptionRepository(session)
            subscription = await repo.get_single_installation(
                snapshot.jira_host, snapshot.github_installation_id
            )
            if subscription is None:
                logger.info(
                    "Installation {} on {} no longer exists, skipping save",
                    snapshot.github_installation_id,
                    snapshot.jira_host,
                )
                return False
            await repo.write_state(
                subscription,
                sync_status=snapshot.sync_status,
                sync_warning=snapshot.sync_warning,
                repo_sync_state=snapshot.repo_sync_state_json(),
            )
        return True

    async def create(self, jira_host: str, installation_id: int) -> InstallationSnapshot:
        """Get or create the subscription for an installation."""
        async with self._factory()() as session, session.begin():
            repo = SubscriptionRepository(session)
            subscription, created = await repo.get_or_create(jira_host, installation_id)
            if created:
                logger.info(
                    "Created subscription for installation {} on {}", installation_id, jira_host
                )
            # Timestamps are SQL defaults and expire on flush
            await session.refresh(subscription)
            return snapshot_from_model(subscription)

    async def list_installations(
        self, status: SyncStatus | None = None
    ) -> list[InstallationSnapshot]:
        """Snapshots of every installation, optionally filtered by sync status."""
        async with self._factory()() as session:
            repo = SubscriptionRepository(session)
            subscriptions = (
                await repo.get_by_status(status) if status is not None else await repo.get_all()
            )
            return [snapshot_from_model(subscription) for subscription in subscriptions]
