"""Result objects returned by the task fetchers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Edge:
    """One fetched item's continuation token."""

    cursor: str


@dataclass(frozen=True)
class TaskResult:
    """Outcome of fetching one page for one task.

    An empty ``edges`` list means the task has no more pages.
    """

    edges: list[Edge] = field(default_factory=list)
    """Continuation tokens of the fetched items, in fetch order."""

    payload: dict[str, Any] | None = None
    """Jira repository update, or None if nothing on the page links to an issue."""

    @property
    def last_cursor(self) -> str | None:
        return self.edges[-1].cursor if self.edges else None
