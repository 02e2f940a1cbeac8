"""Task fetchers: one GraphQL page turned into a Jira repository update.

Each fetcher has the signature
``fetch(github, repository, cursor, page_size) -> TaskResult``. Pages are
walked forward with the connection's ``after`` cursor, so resuming from
the last edge never repeats or skips an item.
"""

from __future__ import annotations

import time
from typing import Any

from github_jira_sync.github import GitHubClient
from github_jira_sync.github.queries import BRANCHES_QUERY, COMMITS_QUERY, PULL_REQUESTS_QUERY
from github_jira_sync.schemas import RepositorySummary

from .issue_keys import extract_issue_keys
from .results import Edge, TaskResult

PR_STATUS = {"OPEN": "OPEN", "MERGED": "MERGED", "CLOSED": "DECLINED"}


def _variables(
    repository: RepositorySummary, cursor: str | None, page_size: int
) -> dict[str, Any]:
    return {
        "owner": repository.owner,
        "repo": repository.name,
        "per_page": page_size,
        "cursor": cursor,
    }


def _dig(data: dict[str, Any] | None, *path: str) -> Any:
    for key in path:
        if data is None:
            return None
        data = data.get(key)
    return data


def _edges(raw: list[dict[str, Any]] | None) -> list[Edge]:
    return [Edge(cursor=edge["cursor"]) for edge in raw or []]


def _update_sequence_id() -> int:
    return int(time.time() * 1000)


def _repository_payload(repository: RepositorySummary, **entities: Any) -> dict[str, Any]:
    return {
        "id": str(repository.id),
        "name": repository.full_name,
        "url": repository.html_url,
        "updateSequenceId": _update_sequence_id(),
        **entities,
    }


def transform_commit(node: dict[str, Any], issue_keys: list[str] | None = None) -> dict[str, Any]:
    """Jira commit object for a GraphQL Commit node."""
    author = node.get("author") or {}
    oid = node["oid"]
    return {
        "id": oid,
        "hash": oid,
        "displayId": oid[:6],
        "message": node.get("message") or "",
        "url": node.get("url"),
        "authorTimestamp": node.get("authoredDate"),
        "fileCount": node.get("changedFilesIfAvailable") or 0,
        "author": {
            "name": author.get("name"),
            "email": author.get("email"),
            "avatar": author.get("avatarUrl"),
        },
        "issueKeys": (
            issue_keys if issue_keys is not None else extract_issue_keys(node.get("message"))
        ),
        "updateSequenceId": _update_sequence_id(),
    }


# -----------------------------------------------------------------------------
# Pull requests
# -----------------------------------------------------------------------------
async def fetch_pull_requests(
    github: GitHubClient,
    repository: RepositorySummary,
    cursor: str | None,
    page_size: int,
) -> TaskResult:
    data = await github.graphql(PULL_REQUESTS_QUERY, _variables(repository, cursor, page_size))
    raw_edges = _dig(data, "repository", "pullRequests", "edges")

    pull_requests = []
    for edge in raw_edges or []:
        node = edge["node"]
        issue_keys = extract_issue_keys(node.get("title"), node.get("headRefName"))
        if not issue_keys:
            continue
        author = node.get("author") or {}
        pull_requests.append(
            {
                "id": str(node["number"]),
                "displayId": f"#{node['number']}",
                "title": node.get("title") or "",
                "status": PR_STATUS.get(node.get("state") or "", "UNKNOWN"),
                "url": node.get("url"),
                "sourceBranch": node.get("headRefName"),
                "destinationBranch": node.get("baseRefName"),
                "commentCount": _dig(node, "comments", "totalCount") or 0,
                "lastUpdate": node.get("updatedAt"),
                "author": {
                    "name": author.get("login"),
                    "avatar": author.get("avatarUrl"),
                    "url": author.get("url"),
                },
                "issueKeys": issue_keys,
                "updateSequenceId": _update_sequence_id(),
            }
        )

    payload = (
        _repository_payload(repository, pullRequests=pull_requests) if pull_requests else None
    )
    return TaskResult(edges=_edges(raw_edges), payload=payload)


# -----------------------------------------------------------------------------
# Branches
# -----------------------------------------------------------------------------
async def fetch_branches(
    github: GitHubClient,
    repository: RepositorySummary,
    cursor: str | None,
    page_size: int,
) -> TaskResult:
    data = await github.graphql(BRANCHES_QUERY, _variables(repository, cursor, page_size))
    raw_edges = _dig(data, "repository", "refs", "edges")

    branches = []
    for edge in raw_edges or []:
        node = edge["node"]
        target = node.get("target") or {}
        issue_keys = extract_issue_keys(node["name"], target.get("message"))
        if not issue_keys:
            continue
        branch: dict[str, Any] = {
            "id": node["name"],
            "name": node["name"],
            "url": f"{repository.html_url}/tree/{node['name']}",
            "createPullRequestUrl": f"{repository.html_url}/pull/new/{node['name']}",
            "issueKeys": issue_keys,
            "updateSequenceId": _update_sequence_id(),
        }
        if target.get("oid"):
            branch["lastCommit"] = transform_commit(
                target, extract_issue_keys(target.get("message"))
            )
        branches.append(branch)

    payload = _repository_payload(repository, branches=branches) if branches else None
    return TaskResult(edges=_edges(raw_edges), payload=payload)


# -----------------------------------------------------------------------------
# Commits
# -----------------------------------------------------------------------------
async def fetch_commits(
    github: GitHubClient,
    repository: RepositorySummary,
    cursor: str | None,
    page_size: int,
) -> TaskResult:
    data = await github.graphql(COMMITS_QUERY, _variables(repository, cursor, page_size))
    # Empty repositories have no default branch
    raw_edges = _dig(data, "repository", "defaultBranchRef", "target", "history", "edges")

    commits = [
        commit
        for commit in (transform_commit(edge["node"]) for edge in raw_edges or [])
        if commit["issueKeys"]
    ]

    payload = _repository_payload(repository, commits=commits) if commits else None
    return TaskResult(edges=_edges(raw_edges), payload=payload)
