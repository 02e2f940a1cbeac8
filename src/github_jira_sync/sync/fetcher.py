"""Page fetcher adapter with degrading page-size fallback.

GitHub rejects GraphQL queries whose estimated node count is too large
(``MAX_NODE_LIMIT_EXCEEDED``). The fetch is retried with smaller pages
until one fits; any other error stops the fallback immediately.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence

from github_jira_sync.github import GitHubClientError
from github_jira_sync.logging import get_logger

from .exceptions import PageSizeFallbackExhaustedError
from .results import TaskResult

logger = get_logger(__name__)

CAPACITY_ERROR_TYPES = frozenset({"MAX_NODE_LIMIT_EXCEEDED"})


def is_capacity_exceeded(error: BaseException) -> bool:
    """True if every GraphQL error on ``error`` is a node-limit error."""
    if not isinstance(error, GitHubClientError) or not error.errors:
        return False
    return all(error_type in CAPACITY_ERROR_TYPES for error_type in error.error_types)


async def fetch_with_fallback(
    fetch: Callable[[int], Awaitable[TaskResult]],
    page_sizes: Sequence[int],
) -> TaskResult:
    """Call ``fetch(page_size)`` for each size in order until one succeeds.

    Args:
        fetch: Fetches one page at the given size
        page_sizes: Sizes to try, largest first

    Returns:
        The first successful result

    Raises:
        PageSizeFallbackExhaustedError: If every size exceeded the node limit
        Exception: Any non capacity-exceeded error from ``fetch``, unchanged
    """
    for page_size in page_sizes:
        try:
            return await fetch(page_size)
        except GitHubClientError as e:
            if not is_capacity_exceeded(e):
                raise
            logger.info("Node limit exceeded at page size {}, trying a smaller page", page_size)
    raise PageSizeFallbackExhaustedError(list(page_sizes))
