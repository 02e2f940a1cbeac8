"""Repository for Subscription model CRUD operations."""

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from github_jira_sync.db.models import Subscription
from github_jira_sync.schemas.enums import SyncStatus

from .base import BaseRepository


class SubscriptionRepository(BaseRepository[Subscription]):
    """Repository for installation subscriptions and their sync state."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Subscription)

    async def get_single_installation(
        self,
        jira_host: str,
        installation_id: int,
    ) -> Subscription | None:
        """Get the subscription linking a Jira site to a GitHub installation.

        Args:
            jira_host: Jira site base URL
            installation_id: GitHub App installation id

        Returns:
            Subscription or None if the tenant has not linked (or unlinked) it
        """
        stmt = select(Subscription).where(
            Subscription.jira_host == jira_host,
            Subscription.github_installation_id == installation_id,
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_status(self, status: SyncStatus) -> list[Subscription]:
        """All subscriptions currently in the given sync status."""
        stmt = (
            select(Subscription)
            .where(Subscription.sync_status == status)
            .order_by(Subscription.id)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def get_or_create(
        self,
        jira_host: str,
        installation_id: int,
    ) -> tuple[Subscription, bool]:
        """Get an existing subscription or create an empty PENDING one.

        Returns:
            Tuple of (subscription, created)
        """
        existing = await self.get_single_installation(jira_host, installation_id)
        if existing is not None:
            return existing, False

        subscription = Subscription(
            jira_host=jira_host,
            github_installation_id=installation_id,
            sync_status=SyncStatus.PENDING,
            repo_sync_state={},
        )
        self.add(subscription)
        await self.flush()
        return subscription, True

    async def write_state(
        self,
        subscription: Subscription,
        *,
        sync_status: SyncStatus,
        sync_warning: str | None,
        repo_sync_state: dict[str, Any],
    ) -> Subscription:
        """Overwrite the persisted sync state of a subscription.

        The JSON column is replaced wholesale so SQLAlchemy sees the change.
        """
        subscription.sync_status = sync_status
        subscription.sync_warning = sync_warning
        subscription.repo_sync_state = repo_sync_state
        await self.flush()
        return subscription
