"""Pydantic schemas for GitHub Jira Sync.

This module provides the progress snapshots and job payloads.
"""

from .base import FrozenSchema
from .enums import SyncStatus, TaskStatus, TaskType
from .jobs import InstallationJobData
from .progress import (
    InstallationSnapshot,
    RepoProgress,
    RepositorySummary,
    RepoSyncState,
    TaskProgress,
)

__all__ = [
    # Base
    "FrozenSchema",
    # Enums
    "SyncStatus",
    "TaskStatus",
    "TaskType",
    # Jobs
    "InstallationJobData",
    # Progress
    "InstallationSnapshot",
    "RepoProgress",
    "RepoSyncState",
    "RepositorySummary",
    "TaskProgress",
]
