"""GitHub client exceptions."""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class GraphQLErrorDetail:
    """One entry of a GraphQL ``errors`` array."""

    message: str
    type: str | None = None


class GitHubClientError(Exception):
    """Base exception for GitHub client errors.

    Carries the GraphQL error entries and the response headers (when the
    failing response had any) so callers can classify the failure.
    """

    def __init__(
        self,
        message: str,
        *,
        errors: Sequence[GraphQLErrorDetail] = (),
        headers: Mapping[str, str] | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.errors = list(errors)
        self.headers = {k.lower(): v for k, v in (headers or {}).items()}
        self.status_code = status_code

    @property
    def error_types(self) -> list[str | None]:
        return [error.type for error in self.errors]


class GitHubAuthenticationError(GitHubClientError):
    """Raised when authentication fails (401)."""

    pass


class GitHubNotFoundError(GitHubClientError):
    """Raised when a resource is not found (404 or GraphQL NOT_FOUND)."""

    pass


class GitHubGraphQLError(GitHubClientError):
    """Raised when a GraphQL response contains errors."""

    pass


class GitHubRetryableError(GitHubClientError):
    """Base class for errors that should be retried after a delay."""

    pass


class GitHubRateLimitError(GitHubRetryableError):
    """Raised when the primary rate limit is exhausted."""

    def __init__(
        self,
        message: str,
        reset_at: datetime | None = None,
        *,
        errors: Sequence[GraphQLErrorDetail] = (),
        headers: Mapping[str, str] | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, errors=errors, headers=headers, status_code=status_code)
        self.reset_at = reset_at


class GitHubAbuseDetectionError(GitHubRetryableError):
    """Raised when a secondary rate limit / abuse detection mechanism triggers."""

    pass


class GitHubTimeoutError(GitHubRetryableError):
    """Raised when the request to GitHub timed out."""

    pass
