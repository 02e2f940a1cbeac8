"""Enums shared by the progress schemas, the store and the engine."""

from enum import StrEnum


class SyncStatus(StrEnum):
    """Overall sync status of an installation as seen by the tenant."""

    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    COMPLETE = "COMPLETE"
    FAILED = "FAILED"


class TaskStatus(StrEnum):
    """Status of one task type on one repository."""

    PENDING = "pending"
    COMPLETE = "complete"


class TaskType(StrEnum):
    """Categories of repository data synced independently.

    Declaration order is the order tasks are worked on within a repository.
    """

    PULL = "pull"
    BRANCH = "branch"
    COMMIT = "commit"
