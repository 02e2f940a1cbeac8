"""Installation sync.

This module provides:
- InstallationSyncEngine: One step of an installation's backfill per job
- DiscoveryService: Finds an installation's repositories and starts the sync
- ProgressStore: Durable per-installation progress
- Task catalog, page-size fallback and failure classification
"""

from .discovery import DiscoveryService, request_sync
from .engine import InstallationSyncEngine, NextTask, TaskSelection, select_next_task
from .exceptions import PageSizeFallbackExhaustedError, SyncError
from .failures import (
    Fatal,
    FailureDecision,
    RepositoryNotFound,
    RetryAfter,
    classify_failure,
)
from .fetcher import fetch_with_fallback, is_capacity_exceeded
from .issue_keys import extract_issue_keys
from .progress_store import ProgressStore, snapshot_from_model
from .results import Edge, TaskResult
from .tasks import TASK_HANDLERS, PageFetcher

__all__ = [
    # Engine
    "InstallationSyncEngine",
    "NextTask",
    "TaskSelection",
    "select_next_task",
    # Discovery
    "DiscoveryService",
    "request_sync",
    # Store
    "ProgressStore",
    "snapshot_from_model",
    # Tasks
    "TASK_HANDLERS",
    "Edge",
    "PageFetcher",
    "TaskResult",
    "extract_issue_keys",
    "fetch_with_fallback",
    "is_capacity_exceeded",
    # Failures
    "FailureDecision",
    "Fatal",
    "RepositoryNotFound",
    "RetryAfter",
    "classify_failure",
    # Exceptions
    "PageSizeFallbackExhaustedError",
    "SyncError",
]
