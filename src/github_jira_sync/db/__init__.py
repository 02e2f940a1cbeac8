"""Database module for GitHub Jira Sync."""

from github_jira_sync.db.engine import (
    build_engine,
    create_tables,
    dispose_engine,
    get_engine,
    get_session_factory,
)
from github_jira_sync.db.models import Base, Subscription
from github_jira_sync.db.repositories import BaseRepository, SubscriptionRepository

__all__ = [
    # Models
    "Base",
    "Subscription",
    # Engine
    "build_engine",
    "create_tables",
    "dispose_engine",
    "get_engine",
    "get_session_factory",
    # Repositories
    "BaseRepository",
    "SubscriptionRepository",
]
