"""Payloads carried by queued jobs."""

from datetime import datetime

from pydantic import BaseModel, Field


class InstallationJobData(BaseModel):
    """Data carried by discovery and installation sync jobs."""

    installation_id: int = Field(description="GitHub App installation id")
    jira_host: str = Field(description="Jira site base URL")
    start_time: datetime | None = Field(
        default=None,
        description="When discovery queued the first sync job (for full sync timing)",
    )
