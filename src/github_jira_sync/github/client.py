"""Async GitHub API client wrapper using githubkit.

This module provides the GraphQL and REST calls the sync engine needs,
converting githubkit failures into the typed exceptions in
``github_jira_sync.github.exceptions``.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from githubkit import AppInstallationAuthStrategy, GitHub
from githubkit.exception import RequestFailed, RequestTimeout

from github_jira_sync.config import get_settings
from github_jira_sync.logging import get_logger
from github_jira_sync.schemas import RepositorySummary

from .exceptions import (
    GitHubAbuseDetectionError,
    GitHubAuthenticationError,
    GitHubClientError,
    GitHubGraphQLError,
    GitHubNotFoundError,
    GitHubRateLimitError,
    GitHubTimeoutError,
    GraphQLErrorDetail,
)

logger = get_logger(__name__)

ABUSE_DETECTION_MESSAGES = (
    "abuse detection mechanism",
    "secondary rate limit",
)


def _parse_datetime(value: Any) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def repository_summary_from_api(data: dict[str, Any]) -> RepositorySummary:
    """Build a RepositorySummary from a REST repository object."""
    owner = data.get("owner") or {}
    return RepositorySummary(
        id=data["id"],
        name=data["name"],
        full_name=data["full_name"],
        owner=owner.get("login", data["full_name"].split("/", 1)[0]),
        html_url=data.get("html_url") or "",
        updated_at=_parse_datetime(data.get("updated_at")),
    )


class GitHubClient:
    """Async GitHub API client scoped to one installation.

    Usage:
        async with GitHubClient(installation_id=1234) as client:
            data = await client.graphql(BRANCHES_QUERY, {...})

    Authentication uses the GitHub App credentials from settings when they
    are configured, otherwise the plain token.
    """

    def __init__(
        self,
        token: str | None = None,
        *,
        installation_id: int | None = None,
    ) -> None:
        """Initialize the GitHub client.

        Args:
            token: GitHub token. If not provided, uses GITHUB_TOKEN from settings.
            installation_id: Installation to authenticate as (GitHub App mode).

        Raises:
            GitHubAuthenticationError: If no credentials are available.
        """
        settings = get_settings()
        self._token = token or settings.github_token
        self._installation_id = installation_id
        self._app_id = settings.github_app_id
        self._private_key = settings.github_private_key
        if not self._token and not (installation_id and self._app_id and self._private_key):
            raise GitHubAuthenticationError(
                "GitHub credentials required. Set GITHUB_TOKEN or GITHUB_APP_ID "
                "and GITHUB_PRIVATE_KEY."
            )
        self._client: GitHub[Any] | None = None

    @property
    def _github(self) -> GitHub[Any]:
        """Get or create the githubkit client instance.

        githubkit's own retry is disabled; the sync engine reschedules instead.
        """
        if self._client is None:
            auth: Any
            if self._installation_id and self._app_id and self._private_key:
                auth = AppInstallationAuthStrategy(
                    self._app_id, self._private_key, self._installation_id
                )
            else:
                auth = self._token
            self._client = GitHub(auth, auto_retry=False)
        return self._client

    async def close(self) -> None:
        """Drop the underlying client."""
        if self._client is not None:
            self._client = None

    async def __aenter__(self) -> GitHubClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        await self.close()

    # -------------------------------------------------------------------------
    # GraphQL
    # -------------------------------------------------------------------------
    async def graphql(self, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        """Run a GraphQL query and return its ``data`` object.

        Raises:
            GitHubGraphQLError: If the response carries ``errors``
            GitHubRateLimitError: If the errors report RATE_LIMITED
            GitHubClientError: For HTTP level failures
        """
        try:
            resp = await self._github.arequest(
                "POST",
                "/graphql",
                json={"query": query, "variables": variables},
            )
        except RequestFailed as e:
            raise self._handle_error(e) from e
        except RequestTimeout as e:
            raise GitHubTimeoutError(f"GitHub request timed out: {e}") from e

        body: dict[str, Any] = resp.json()
        headers = {k.lower(): v for k, v in resp.headers.items()}
        errors = [
            GraphQLErrorDetail(message=err.get("message", ""), type=err.get("type"))
            for err in body.get("errors") or []
        ]
        if errors:
            message = "; ".join(err.message for err in errors)
            if any(err.type == "RATE_LIMITED" for err in errors):
                raise GitHubRateLimitError(
                    f"GitHub GraphQL rate limit exceeded: {message}",
                    reset_at=self._reset_at(headers),
                    errors=errors,
                    headers=headers,
                )
            raise GitHubGraphQLError(
                f"GitHub GraphQL error: {message}",
                errors=errors,
                headers=headers,
                status_code=resp.status_code,
            )
        return body.get("data") or {}

    # -------------------------------------------------------------------------
    # Repositories
    # -------------------------------------------------------------------------
    async def get_repository_by_id(self, repository_id: int | str) -> RepositorySummary:
        """Get a repository summary by its numeric id.

        Raises:
            GitHubNotFoundError: If the repository doesn't exist
        """
        try:
            resp = await self._github.arequest("GET", f"/repositories/{repository_id}")
        except RequestFailed as e:
            raise self._handle_error(e) from e
        except RequestTimeout as e:
            raise GitHubTimeoutError(f"GitHub request timed out: {e}") from e
        return repository_summary_from_api(resp.json())

    async def list_installation_repositories(
        self, *, per_page: int = 100
    ) -> list[RepositorySummary]:
        """List every repository the installation can access."""
        repositories: list[RepositorySummary] = []
        page = 1
        try:
            while True:
                resp = await self._github.arequest(
                    "GET",
                    "/installation/repositories",
                    params={"per_page": per_page, "page": page},
                )
                batch = resp.json().get("repositories") or []
                repositories.extend(repository_summary_from_api(repo) for repo in batch)
                if len(batch) < per_page:
                    break
                page += 1
        except RequestFailed as e:
            raise self._handle_error(e) from e
        except RequestTimeout as e:
            raise GitHubTimeoutError(f"GitHub request timed out: {e}") from e
        logger.debug("Installation can access {} repositories", len(repositories))
        return repositories

    # -------------------------------------------------------------------------
    # Error Handling
    # -------------------------------------------------------------------------
    @staticmethod
    def _reset_at(headers: dict[str, str]) -> datetime | None:
        reset = headers.get("x-ratelimit-reset")
        if not reset:
            return None
        try:
            return datetime.fromtimestamp(int(reset), tz=UTC)
        except ValueError:
            return None

    def _handle_error(self, error: RequestFailed) -> GitHubClientError:
        """Convert githubkit exceptions to our custom exceptions."""
        status = error.response.status_code
        headers = {k.lower(): v for k, v in error.response.headers.items()}
        text = f"{error} {getattr(error.response, 'text', '')}"

        if status == 401:
            return GitHubAuthenticationError(
                "Invalid GitHub credentials", headers=headers, status_code=status
            )
        if status in (403, 429):
            if headers.get("x-ratelimit-remaining") == "0":
                return GitHubRateLimitError(
                    "GitHub rate limit exceeded",
                    reset_at=self._reset_at(headers),
                    headers=headers,
                    status_code=status,
                )
            if any(msg in text.lower() for msg in ABUSE_DETECTION_MESSAGES):
                return GitHubAbuseDetectionError(
                    "You have triggered an abuse detection mechanism",
                    headers=headers,
                    status_code=status,
                )
            return GitHubClientError(
                f"Access forbidden: {error}", headers=headers, status_code=status
            )
        if status == 404:
            return GitHubNotFoundError(str(error), headers=headers, status_code=status)
        return GitHubClientError(
            f"GitHub API error ({status}): {error}", headers=headers, status_code=status
        )
