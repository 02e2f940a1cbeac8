"""Tests for job middleware."""

import pytest
from loguru import logger

from github_jira_sync.metrics import SyncMetrics
from github_jira_sync.queue import common_middleware, report_job_errors, track_job
from tests.factories import make_job


@pytest.fixture
def log_records():
    records: list = []
    handler_id = logger.add(records.append, level="DEBUG", format="{message}")
    yield records
    logger.remove(handler_id)


class TestReportJobErrors:
    """Tests for report_job_errors."""

    async def test_reraises_with_context_logged(self, log_records):
        async def handler(job):
            job.context.set_tag("installationId", "1234")
            job.context.set_extra("diagnostics", {"Response": {"status": 500}})
            raise RuntimeError("broken")

        job = make_job()

        with pytest.raises(RuntimeError):
            await report_job_errors(handler)(job)

        (record,) = [r.record for r in log_records if r.record["level"].name == "ERROR"]
        assert "job-1" in record["message"]
        assert record["extra"]["tags"] == {"installationId": "1234"}
        assert record["extra"]["extras"]["diagnostics"]["Response"]["status"] == 500
        assert record["extra"]["job"]["attemptsMade"] == 0

    async def test_success_passes_through(self, log_records):
        async def handler(job):
            return None

        await report_job_errors(handler)(make_job())

        assert not [r for r in log_records if r.record["level"].name == "ERROR"]


class TestTrackJob:
    """Tests for track_job."""

    async def test_records_completed_duration(self):
        metrics = SyncMetrics()

        async def handler(job):
            return None

        await track_job(handler, metrics)(make_job())

        labels = {"queue": "installation", "status": "completed"}
        assert metrics.sample("job_duration_count", labels) == 1.0

    async def test_records_failed_duration(self):
        metrics = SyncMetrics()

        async def handler(job):
            raise ValueError("x")

        with pytest.raises(ValueError):
            await common_middleware(handler, metrics)(make_job())

        labels = {"queue": "installation", "status": "failed"}
        assert metrics.sample("job_duration_count", labels) == 1.0
        assert b"job_duration" in metrics.render()

    async def test_job_context_bound_while_running(self, log_records):
        async def handler(job):
            logger.info("inside handler")

        await track_job(handler, SyncMetrics())(make_job())

        (record,) = [r.record for r in log_records if r.record["message"] == "inside handler"]
        assert record["extra"]["queue"] == "installation"
        assert record["extra"]["job_id"] == "job-1"
