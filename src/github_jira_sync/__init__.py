"""Sync GitHub repository history into Jira development information."""

__version__ = "0.1.0"
