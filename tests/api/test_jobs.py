"""Tests for job tracking and the jobs endpoints."""

import asyncio

import pytest
from fastapi.testclient import TestClient

from transit_backup.api.app import create_app
from transit_backup.api.config import Settings
from transit_backup.api.jobs import JobManager
from transit_backup.api.models import JobStatus
from tests.utils import FakeRedis

PREFIX = "/api/v1"


@pytest.fixture
def job_manager():
    return JobManager()


@pytest.fixture
def client(backup_manager, job_manager):
    app = create_app(Settings(operator_tokens=[], enable_retention_sweeper=False))
    app.state.backup_manager = backup_manager
    app.state.job_manager = job_manager
    return TestClient(app)


@pytest.mark.asyncio
async def test_job_lifecycle():
    manager = JobManager()
    job = await manager.create_job("backup", metadata={"collections": ["ADMIN"]})

    assert job.status == JobStatus.PENDING
    await manager.update_job_progress(job.job_id, current=40, total=100, percentage=40.0, phase="backup")
    await manager.update_job_status(job.job_id, JobStatus.COMPLETED, result={"backup_id": "backup_1"})

    stored = await manager.get_job(job.job_id)
    assert stored.status == JobStatus.COMPLETED
    assert stored.completed_at is not None
    assert stored.progress.percentage == 40.0
    assert stored.metadata == {"collections": ["ADMIN"], "backup_id": "backup_1"}


@pytest.mark.asyncio
async def test_unknown_job_updates_are_ignored():
    manager = JobManager()
    assert await manager.get_job("missing") is None
    assert await manager.update_job_status("missing", JobStatus.FAILED) is False
    assert await manager.update_job_progress("missing", 0, 0, 0.0, "backup") is False


@pytest.mark.asyncio
async def test_cancel_only_cancellable_jobs():
    manager = JobManager()
    backup = await manager.create_job("backup")
    restore = await manager.create_job("restore", cancellable=True)

    assert manager.request_cancel(backup.job_id) is False
    assert manager.request_cancel(restore.job_id) is True
    assert manager.cancel_event(restore.job_id).is_set()

    await manager.update_job_status(restore.job_id, JobStatus.CANCELLED)
    assert manager.cancel_event(restore.job_id) is None


@pytest.mark.asyncio
async def test_jobs_in_redis():
    redis_client = FakeRedis()
    manager = JobManager(redis_client)
    first = await manager.create_job("backup")
    await asyncio.sleep(0.001)
    second = await manager.create_job("restore")
    await manager.update_job_status(first.job_id, JobStatus.FAILED, error="bucket unreachable")

    assert f"job:{first.job_id}" in redis_client.data
    failed = await manager.list_jobs(status=JobStatus.FAILED)
    assert [j.job_id for j in failed] == [first.job_id]
    assert failed[0].error == "bucket unreachable"
    assert [j.job_id for j in await manager.list_jobs()] == [second.job_id, first.job_id]


@pytest.mark.asyncio
async def test_list_jobs_skips_unreadable_payloads():
    manager = JobManager()
    job = await manager.create_job("backup")
    manager._jobs["broken"] = "{not json"

    assert [j.job_id for j in await manager.list_jobs()] == [job.job_id]


def test_get_and_list_jobs(client, job_manager):
    job = asyncio.run(job_manager.create_job("backup"))

    assert client.get(f"{PREFIX}/jobs/{job.job_id}").json()["status"] == "pending"
    assert client.get(f"{PREFIX}/jobs/missing").status_code == 404
    listed = client.get(f"{PREFIX}/jobs", params={"status": "pending"}).json()
    assert [j["job_id"] for j in listed] == [job.job_id]


def test_cancel_running_restore(client, job_manager):
    job = asyncio.run(job_manager.create_job("restore", cancellable=True))
    asyncio.run(job_manager.update_job_status(job.job_id, JobStatus.PROCESSING))

    response = client.post(f"{PREFIX}/jobs/{job.job_id}/cancel")

    assert response.status_code == 200
    assert job_manager.cancel_event(job.job_id).is_set()


def test_cancel_rejected(client, job_manager):
    backup = asyncio.run(job_manager.create_job("backup"))
    finished = asyncio.run(job_manager.create_job("restore", cancellable=True))
    asyncio.run(job_manager.update_job_status(finished.job_id, JobStatus.COMPLETED))

    assert client.post(f"{PREFIX}/jobs/missing/cancel").status_code == 404
    assert client.post(f"{PREFIX}/jobs/{backup.job_id}/cancel").status_code == 409
    assert client.post(f"{PREFIX}/jobs/{finished.job_id}/cancel").status_code == 409
