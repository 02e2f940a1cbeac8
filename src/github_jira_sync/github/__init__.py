"""GitHub API client module.

This module provides:
- GitHubClient: Async GitHub client (GraphQL pages, installation repositories)
- Typed exceptions used to classify sync failures
- GraphQL queries for the task fetchers
"""

from .client import GitHubClient, repository_summary_from_api
from .exceptions import (
    GitHubAbuseDetectionError,
    GitHubAuthenticationError,
    GitHubClientError,
    GitHubGraphQLError,
    GitHubNotFoundError,
    GitHubRateLimitError,
    GitHubRetryableError,
    GitHubTimeoutError,
    GraphQLErrorDetail,
)

__all__ = [
    # Client
    "GitHubClient",
    "repository_summary_from_api",
    # Exceptions
    "GitHubAbuseDetectionError",
    "GitHubAuthenticationError",
    "GitHubClientError",
    "GitHubGraphQLError",
    "GitHubNotFoundError",
    "GitHubRateLimitError",
    "GitHubRetryableError",
    "GitHubTimeoutError",
    "GraphQLErrorDetail",
]
