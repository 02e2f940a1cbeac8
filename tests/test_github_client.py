"""Tests for GitHubClient."""

from datetime import UTC

import pytest
from githubkit.exception import RequestFailed

from github_jira_sync.github import (
    GitHubAbuseDetectionError,
    GitHubAuthenticationError,
    GitHubClient,
    GitHubClientError,
    GitHubGraphQLError,
    GitHubNotFoundError,
    GitHubRateLimitError,
    repository_summary_from_api,
)
from github_jira_sync.config import SyncConfig
from github_jira_sync.github.queries import BRANCHES_QUERY
from github_jira_sync.sync import Fatal, RepositoryNotFound, RetryAfter, classify_failure
from tests.conftest import NOW_MS
from tests.factories import github_headers, make_github_client, make_github_response


def rest_repository(id: int, name: str, updated_at: str | None = "2026-01-14T10:00:00Z"):
    return {
        "id": id,
        "name": name,
        "full_name": f"acme/{name}",
        "owner": {"login": "acme"},
        "html_url": f"https://github.com/acme/{name}",
        "updated_at": updated_at,
    }


class TestCredentials:
    def test_requires_credentials(self, monkeypatch):
        monkeypatch.setenv("GITHUB_TOKEN", "")

        with pytest.raises(GitHubAuthenticationError):
            GitHubClient()

    def test_token_from_settings(self, monkeypatch):
        monkeypatch.setenv("GITHUB_TOKEN", "env-token")

        assert GitHubClient()._token == "env-token"


class TestGraphQL:
    """Tests for GitHubClient.graphql."""

    async def test_returns_data(self):
        data = {"repository": {"refs": {"edges": []}}}
        client, internal = make_github_client(return_value=make_github_response({"data": data}))

        result = await client.graphql(BRANCHES_QUERY, {"owner": "acme", "repo": "w"})

        assert result == data
        internal.arequest.assert_awaited_once_with(
            "POST",
            "/graphql",
            json={"query": BRANCHES_QUERY, "variables": {"owner": "acme", "repo": "w"}},
        )

    async def test_errors_raise_with_types(self):
        body = {
            "data": {"repository": None},
            "errors": [{"type": "NOT_FOUND", "message": "Could not resolve to a Repository"}],
        }
        client, _ = make_github_client(
            return_value=make_github_response(body, headers={"X-RateLimit-Remaining": "4999"})
        )

        with pytest.raises(GitHubGraphQLError) as exc_info:
            await client.graphql(BRANCHES_QUERY, {})

        assert exc_info.value.error_types == ["NOT_FOUND"]
        assert exc_info.value.headers["x-ratelimit-remaining"] == "4999"

    async def test_rate_limited_error(self):
        body = {"errors": [{"type": "RATE_LIMITED", "message": "API rate limit exceeded"}]}
        client, _ = make_github_client(
            return_value=make_github_response(body, headers={"x-ratelimit-reset": "1767225600"})
        )

        with pytest.raises(GitHubRateLimitError) as exc_info:
            await client.graphql(BRANCHES_QUERY, {})

        assert exc_info.value.reset_at.tzinfo == UTC
        assert exc_info.value.headers["x-ratelimit-reset"] == "1767225600"

    async def test_http_failure_mapped(self):
        error = RequestFailed(make_github_response(status_code=502))
        client, _ = make_github_client(side_effect=error)

        with pytest.raises(GitHubClientError) as exc_info:
            await client.graphql(BRANCHES_QUERY, {})

        assert exc_info.value.status_code == 502


class TestRepositories:
    """Tests for repository lookups."""

    async def test_get_repository_by_id(self):
        client, internal = make_github_client(return_value=make_github_response(rest_repository(42, "widgets")))

        summary = await client.get_repository_by_id("42")

        internal.arequest.assert_awaited_once_with("GET", "/repositories/42")
        assert summary.id == 42
        assert summary.owner == "acme"
        assert summary.full_name == "acme/widgets"
        assert summary.updated_at.year == 2026

    async def test_get_repository_not_found(self):
        client, _ = make_github_client(side_effect=RequestFailed(make_github_response(status_code=404)))

        with pytest.raises(GitHubNotFoundError):
            await client.get_repository_by_id(42)

    async def test_list_installation_repositories_pages(self):
        first = {"repositories": [rest_repository(i, f"r{i}") for i in range(2)]}
        second = {"repositories": [rest_repository(2, "r2")]}
        client, internal = make_github_client(
            side_effect=[make_github_response(first), make_github_response(second)]
        )

        repositories = await client.list_installation_repositories(per_page=2)

        assert [r.id for r in repositories] == [0, 1, 2]
        pages = [call.kwargs["params"]["page"] for call in internal.arequest.await_args_list]
        assert pages == [1, 2]

    def test_summary_without_timestamp(self):
        summary = repository_summary_from_api(rest_repository(1, "x", updated_at=None))

        assert summary.updated_at is None


class TestErrorHandling:
    """Tests for _handle_error."""

    def test_401(self):
        client = GitHubClient(token="t")

        result = client._handle_error(RequestFailed(make_github_response(status_code=401)))

        assert isinstance(result, GitHubAuthenticationError)

    def test_403_rate_limit_keeps_headers(self):
        client = GitHubClient(token="t")
        headers = {"x-ratelimit-remaining": "0", "x-ratelimit-reset": "1767225600"}

        result = client._handle_error(
            RequestFailed(make_github_response(status_code=403, headers=headers))
        )

        assert isinstance(result, GitHubRateLimitError)
        assert result.headers["x-ratelimit-reset"] == "1767225600"

    def test_403_abuse_detection(self):
        client = GitHubClient(token="t")
        response = make_github_response(
            status_code=403,
            headers={"x-ratelimit-remaining": "12"},
            text="You have triggered an abuse detection mechanism. Please wait.",
        )

        result = client._handle_error(RequestFailed(response))

        assert isinstance(result, GitHubAbuseDetectionError)

    def test_404(self):
        client = GitHubClient(token="t")

        result = client._handle_error(RequestFailed(make_github_response(status_code=404)))

        assert isinstance(result, GitHubNotFoundError)

    def test_500(self):
        client = GitHubClient(token="t")

        result = client._handle_error(RequestFailed(make_github_response(status_code=500)))

        assert type(result) is GitHubClientError
        assert "500" in str(result)


class TestFailureClassification:
    """Errors raised from realistic GitHub responses, fed to classify_failure.

    GitHub sends ``X-RateLimit-Reset`` (always in the future) on every
    authenticated response, so only an exhausted quota may count as a rate limit.
    """

    async def classify(self, **responses):
        client, _ = make_github_client(**responses)
        with pytest.raises(GitHubClientError) as exc_info:
            await client.graphql(BRANCHES_QUERY, {})
        return classify_failure(exc_info.value, NOW_MS, SyncConfig())

    async def test_graphql_not_found(self):
        body = {
            "data": {"repository": None},
            "errors": [{"type": "NOT_FOUND", "message": "Could not resolve to a Repository"}],
        }
        response = make_github_response(body, headers=github_headers())

        assert await self.classify(return_value=response) == RepositoryNotFound()

    async def test_http_404(self):
        response = make_github_response(status_code=404, headers=github_headers())

        decision = await self.classify(side_effect=RequestFailed(response))

        assert decision == RepositoryNotFound()

    async def test_bad_credentials_fatal(self):
        response = make_github_response(status_code=401, headers=github_headers())

        assert await self.classify(side_effect=RequestFailed(response)) == Fatal()

    async def test_server_error_fatal(self):
        response = make_github_response(status_code=500, headers=github_headers())

        assert await self.classify(side_effect=RequestFailed(response)) == Fatal()

    async def test_other_graphql_error_fatal(self):
        body = {"errors": [{"type": "INTERNAL", "message": "Something went wrong"}]}
        response = make_github_response(body, headers=github_headers())

        assert await self.classify(return_value=response) == Fatal()

    async def test_exhausted_quota_waits_for_reset(self):
        headers = github_headers(remaining=0, reset_in_seconds=1800)
        response = make_github_response(status_code=403, headers=headers)

        decision = await self.classify(side_effect=RequestFailed(response))

        assert decision == RetryAfter(delay_ms=1_800_000, reason="rate limit")

    async def test_graphql_rate_limited_waits_for_reset(self):
        body = {"errors": [{"type": "RATE_LIMITED", "message": "API rate limit exceeded"}]}
        response = make_github_response(
            body, headers=github_headers(remaining=0, reset_in_seconds=600)
        )

        decision = await self.classify(return_value=response)

        assert decision == RetryAfter(delay_ms=600_000, reason="rate limit")
