"""Sync engine exceptions."""


class SyncError(Exception):
    """Base exception for installation sync errors."""

    pass


class PageSizeFallbackExhaustedError(SyncError):
    """Raised when every page size exceeded the provider's node limit."""

    def __init__(self, page_sizes: list[int]) -> None:
        super().__init__(
            f"Fetch exceeded the node limit at every page size {page_sizes}"
        )
        self.page_sizes = page_sizes
