"""Async client for the Jira development information API using httpx.

Submits repository payloads (pull requests, branches, commits) to the
``/rest/devinfo/0.10/bulk`` endpoint and notifies Jira when an
installation's backfill has finished.
"""

from __future__ import annotations

import copy
from typing import Any

import httpx

from github_jira_sync.config import JiraConfig, get_settings
from github_jira_sync.logging import get_logger

from .exceptions import JiraClientError

logger = get_logger(__name__)

BULK_PATH = "/rest/devinfo/0.10/bulk"
MIGRATION_COMPLETE_PATH = "/rest/devinfo/0.10/github/migrationComplete"

ISSUE_KEY_LIMIT_WARNING = "Exceeded issue key reference limit. Some issues may not be linked."


def _dedup(keys: list[str]) -> list[str]:
    return list(dict.fromkeys(keys))


def _map_issue_keys(repository: dict[str, Any], func: Any) -> None:
    """Apply ``func`` to the issue keys of every branch and commit in place."""
    for commit in repository.get("commits") or []:
        commit["issueKeys"] = func(commit.get("issueKeys") or [])
    for branch in repository.get("branches") or []:
        branch["issueKeys"] = func(branch.get("issueKeys") or [])
        last_commit = branch.get("lastCommit")
        if last_commit:
            last_commit["issueKeys"] = func(last_commit.get("issueKeys") or [])


def _within_issue_key_limit(resources: list[dict[str, Any]] | None, limit: int) -> bool:
    if not resources:
        return True
    return max(len(r.get("issueKeys") or []) for r in resources) <= limit


def _dedup_commits(commits: list[dict[str, Any]] | None) -> list[dict[str, Any]]:
    seen: set[str] = set()
    unique: list[dict[str, Any]] = []
    for commit in commits or []:
        if commit["id"] in seen:
            continue
        seen.add(commit["id"])
        unique.append(commit)
    return unique


class JiraClient:
    """Jira development information client for one installation.

    Usage:
        async with JiraClient("https://acme.atlassian.net", 1234) as jira:
            await jira.submit_repository_update(payload, prevent_transitions=True)
    """

    def __init__(
        self,
        jira_host: str,
        installation_id: int,
        *,
        token: str | None = None,
        config: JiraConfig | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            jira_host: Jira site base URL
            installation_id: GitHub installation id sent as an entity property
            token: API token. If not provided, uses JIRA_API_TOKEN from settings.
            config: Jira limits. Defaults to settings.jira.
            http_client: Pre-built httpx client (tests inject a mock transport)
        """
        settings = get_settings()
        self._jira_host = jira_host.rstrip("/")
        self._installation_id = installation_id
        self._config = config or settings.jira
        self._is_production = settings.is_production
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(
            base_url=self._jira_host,
            headers={"Authorization": f"Bearer {token or settings.jira_api_token}"},
            timeout=self._config.request_timeout_seconds,
        )

    async def close(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def __aenter__(self) -> JiraClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        await self.close()

    # -------------------------------------------------------------------------
    # Development information
    # -------------------------------------------------------------------------
    async def submit_repository_update(
        self,
        payload: dict[str, Any],
        *,
        prevent_transitions: bool = False,
    ) -> bool:
        """Send a repository payload to Jira.

        Issue keys are deduplicated and, where a branch or commit references
        more keys than Jira accepts, truncated. Commits are deduplicated by id
        and sent in batches of ``commit_batch_size``.

        Args:
            payload: Jira repository object (``id``, ``name``, ``commits``, ...)
            prevent_transitions: Ask Jira not to run workflow transitions

        Returns:
            True if issue keys had to be truncated

        Raises:
            JiraClientError: If any request fails
        """
        data = copy.deepcopy(payload)
        _map_issue_keys(data, _dedup)

        limit = self._config.issue_key_limit
        truncated = not (
            _within_issue_key_limit(data.get("commits"), limit)
            and _within_issue_key_limit(data.get("branches"), limit)
        )
        if truncated:
            _map_issue_keys(data, lambda keys: keys[:limit])
            logger.warning(
                "Truncated issue keys to {} for repository {}", limit, data.get("id")
            )

        commits = _dedup_commits(data.get("commits"))
        size = self._config.commit_batch_size
        # At least one request even when there are no commits
        chunks = [commits[i : i + size] for i in range(0, len(commits), size)] or [[]]

        for chunk in chunks:
            if chunk:
                data["commits"] = chunk
            await self._post(
                BULK_PATH,
                {
                    "preventTransitions": prevent_transitions,
                    "repositories": [data],
                    "properties": {"installationId": self._installation_id},
                },
            )
        return truncated

    async def notify_migration_complete(self) -> None:
        """Tell Jira the initial backfill for this installation is finished.

        Only production Jira sites understand this event.
        """
        if not self._is_production:
            logger.debug("Skipping migrationComplete outside production")
            return
        # Jira rejects an empty body on this endpoint
        await self._post(MIGRATION_COMPLETE_PATH, {})

    # -------------------------------------------------------------------------
    # HTTP
    # -------------------------------------------------------------------------
    async def _post(self, path: str, body: dict[str, Any]) -> httpx.Response:
        try:
            response = await self._http.post(path, json=body)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise JiraClientError(
                f"Jira API error ({e.response.status_code}) on POST {path}",
                status_code=e.response.status_code,
                status_text=e.response.reason_phrase,
                body=e.response.text,
                method=e.request.method,
                url=str(e.request.url),
            ) from e
        except httpx.RequestError as e:
            raise JiraClientError(
                f"Jira request failed on POST {path}: {e}",
                method="POST",
                url=f"{self._jira_host}{path}",
            ) from e
        return response
