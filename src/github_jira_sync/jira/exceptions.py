"""Jira client exceptions."""

from typing import Any


class JiraClientError(Exception):
    """Raised when a request to Jira fails.

    Carries the request and response details so failures can be reported
    with enough context to reproduce them.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        status_text: str | None = None,
        body: str | None = None,
        method: str | None = None,
        url: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.status_text = status_text
        self.body = body
        self.method = method
        self.url = url

    def diagnostics(self) -> dict[str, Any]:
        """Request/response details for error reports."""
        details: dict[str, Any] = {
            "Request": {"method": self.method, "url": self.url},
        }
        if self.status_code is not None:
            details["Response"] = {
                "status": self.status_code,
                "statusText": self.status_text,
                "body": self.body,
            }
        return details
