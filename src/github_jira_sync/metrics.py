"""Prometheus metrics for the sync worker.

Metrics live in a private registry so tests and multiple workers in one
process do not collide with the global default registry.
"""

from __future__ import annotations

from prometheus_client import CollectorRegistry, Histogram, generate_latest

# Milliseconds: from a single fast job up to multi-hour backfills
_JOB_BUCKETS_MS = (50, 100, 250, 500, 1_000, 2_500, 5_000, 10_000, 30_000, 60_000, 300_000)
_FULL_SYNC_BUCKETS_MS = (
    60_000,
    300_000,
    900_000,
    1_800_000,
    3_600_000,
    10_800_000,
    43_200_000,
    86_400_000,
)


class SyncMetrics:
    """Histograms emitted by the queues and the sync engine."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry or CollectorRegistry()

        self.job_duration = Histogram(
            "job_duration",
            "Job processing time in milliseconds",
            ["queue", "status"],
            buckets=_JOB_BUCKETS_MS,
            registry=self.registry,
        )
        self.full_sync = Histogram(
            "full_sync",
            "Milliseconds from discovery to a completely synced installation",
            buckets=_FULL_SYNC_BUCKETS_MS,
            registry=self.registry,
        )

    def observe_job(self, queue: str, status: str, duration_ms: float) -> None:
        self.job_duration.labels(queue=queue, status=status).observe(duration_ms)

    def observe_full_sync(self, duration_ms: float) -> None:
        self.full_sync.observe(duration_ms)

    def sample(self, name: str, labels: dict[str, str] | None = None) -> float | None:
        """Current value of a sample (e.g. ``full_sync_count``)."""
        return self.registry.get_sample_value(name, labels or {})

    def render(self) -> bytes:
        """Prometheus text exposition of every metric."""
        return generate_latest(self.registry)
