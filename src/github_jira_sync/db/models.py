"""SQLAlchemy ORM models for GitHub Jira Sync."""

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, String, Text, UniqueConstraint, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import JSON

from github_jira_sync.schemas.enums import SyncStatus


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


# ------------------------------------------------------------------------------
# Subscription model
# ------------------------------------------------------------------------------
class Subscription(Base):
    """A tenant's link between a GitHub App installation and a Jira site.

    Holds the durable sync progress for every repository of the installation.
    """

    __tablename__ = "subscriptions"

    id: Mapped[int] = mapped_column(primary_key=True)
    github_installation_id: Mapped[int] = mapped_column()
    jira_host: Mapped[str] = mapped_column(String(255))

    sync_status: Mapped[SyncStatus] = mapped_column(default=SyncStatus.PENDING, index=True)
    sync_warning: Mapped[str | None] = mapped_column(Text, nullable=True)

    # {"repos": {repository_id: {...}}, "numberOfSyncedRepos": n}
    repo_sync_state: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        UniqueConstraint("jira_host", "github_installation_id", name="uq_host_installation"),
    )

    def __repr__(self) -> str:
        return (
            f"<Subscription(id={self.id}, installation={self.github_installation_id}, "
            f"jira_host='{self.jira_host}', status={self.sync_status.value})>"
        )
