"""Jira development information client."""

from .client import ISSUE_KEY_LIMIT_WARNING, JiraClient
from .exceptions import JiraClientError

__all__ = [
    "ISSUE_KEY_LIMIT_WARNING",
    "JiraClient",
    "JiraClientError",
]
