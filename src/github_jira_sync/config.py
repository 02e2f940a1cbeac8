"""Configuration settings for GitHub Jira Sync."""

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SyncConfig(BaseModel):
    """Configuration for the installation sync engine.

    Controls the delays used when rescheduling installation jobs and the
    page sizes tried when fetching from GitHub.
    """

    inter_job_delay_ms: int = Field(
        default=1000,
        ge=0,
        description="Delay before the next page of the same task is fetched",
    )
    timeout_retry_delay_ms: int = Field(
        default=5000,
        ge=0,
        description="Delay before retrying a job that hit a network timeout",
    )
    abuse_retry_delay_ms: int = Field(
        default=60000,
        ge=0,
        description="Delay before retrying a job that tripped abuse detection",
    )
    job_attempts: int = Field(
        default=3,
        ge=1,
        description="Retry budget for 'more work remains' reschedules",
    )
    page_sizes: list[int] = Field(
        default_factory=lambda: [20, 10, 5, 1],
        min_length=1,
        description="Page sizes tried in order when a fetch exceeds provider limits",
    )

    @field_validator("page_sizes")
    @classmethod
    def _page_sizes_positive(cls, value: list[int]) -> list[int]:
        if any(size < 1 for size in value):
            raise ValueError("page sizes must be positive")
        return value


class QueueConfig(BaseModel):
    """Concurrency limits for the worker queues.

    Each queue runs independently of the others.
    """

    discovery_concurrency: int = Field(default=5, ge=1, le=100)
    installation_concurrency: int = Field(default=1, ge=1, le=100)

    max_backoff_seconds: float = Field(
        default=60.0,
        ge=0.0,
        description="Upper bound for the backoff between queue-level retries",
    )


class JiraConfig(BaseModel):
    """Configuration for the Jira development information client."""

    issue_key_limit: int = Field(
        default=100,
        ge=1,
        description="Maximum issue keys Jira accepts per branch or commit",
    )
    commit_batch_size: int = Field(
        default=400,
        ge=1,
        description="Commits sent per bulk request",
    )
    request_timeout_seconds: float = Field(default=30.0, gt=0)


class LoggingConfig(BaseModel):
    """Configuration for logging behavior.

    Controls file logging, rotation, and output format.
    """

    log_file: str | None = Field(
        default=None,
        description="Optional path for file logging (enables rotation)",
    )
    rotation: str = Field(
        default="10 MB",
        description="When to rotate log file (e.g., '10 MB', '1 day')",
    )
    retention: str = Field(
        default="7 days",
        description="How long to keep rotated logs",
    )
    serialize: bool = Field(
        default=False,
        description="If True, output JSON format to file",
    )


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    # --------------------------------------------------------------------------
    # Database
    # --------------------------------------------------------------------------
    database_url: str = Field(
        default="sqlite+aiosqlite:///./github_jira_sync.db",
        description="Async database connection string",
    )

    # --------------------------------------------------------------------------
    # GitHub API
    # --------------------------------------------------------------------------
    github_token: str = Field(
        default="",
        description="GitHub token (used when no app credentials are configured)",
    )
    github_app_id: int | None = Field(
        default=None,
        description="GitHub App id for installation authentication",
    )
    github_private_key: str = Field(
        default="",
        description="GitHub App private key (PEM)",
    )

    # --------------------------------------------------------------------------
    # Jira API
    # --------------------------------------------------------------------------
    jira_api_token: str = Field(
        default="",
        description="Bearer token for the Jira development information API",
    )

    # --------------------------------------------------------------------------
    # Application
    # --------------------------------------------------------------------------
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    # --------------------------------------------------------------------------
    # Sync, Queues, Jira
    # --------------------------------------------------------------------------
    sync: SyncConfig = Field(
        default_factory=SyncConfig,
        description="Installation sync engine configuration",
    )
    queues: QueueConfig = Field(
        default_factory=QueueConfig,
        description="Worker queue concurrency",
    )
    jira: JiraConfig = Field(
        default_factory=JiraConfig,
        description="Jira client configuration",
    )

    # --------------------------------------------------------------------------
    # Logging Configuration
    # --------------------------------------------------------------------------
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging configuration (file output, rotation)",
    )

    @property
    def is_production(self) -> bool:
        """Whether the app runs against production Jira."""
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
