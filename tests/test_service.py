from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from visual_worker.http_server import create_app
from visual_worker.models import JobStatus
from visual_worker.service import WorkerService

from conftest import fake_fetch, make_decoder


@pytest.fixture
def service(config, job_store, blob_store, oracle):
    sleeps = []
    svc = WorkerService(config, job_store=job_store, blob_store=blob_store, oracle=oracle, sleep=sleeps.append)
    svc.sleeps = sleeps
    svc.initialize()
    svc.orchestrator.processor.decoder = make_decoder(4)
    svc.orchestrator.processor.fetch_video = fake_fetch
    return svc


def test_run_once_without_work(service):
    assert service.run_once() is False


def test_run_once_processes_exactly_one_job(service, job_store):
    job_store.add_job("j1", "sim")
    job_store.add_job("j2", "sim", minutes=1)
    job_store.add_media("sim")

    assert service.run_once() is True
    assert job_store.jobs["j1"].status == JobStatus.COMPLETE
    assert job_store.jobs["j2"].status == JobStatus.PENDING


def test_loop_sleeps_fixed_interval_between_empty_polls(service):
    polls = iter([False, False, False])

    def fake_run_once():
        try:
            return next(polls)
        except StopIteration:
            service.running = False
            return True

    with patch.object(service, "run_once", side_effect=fake_run_once):
        service.start()

    assert service.sleeps == [3.0, 3.0, 3.0]


def test_loop_survives_unexpected_errors(service):
    calls = []

    def flaky():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("db went away")
        service.running = False
        return True

    with patch.object(service, "run_once", side_effect=flaky):
        service.start()

    assert len(calls) == 2
    assert service.sleeps == [3.0]


def test_health_endpoints(service, job_store):
    job_store.add_job("j1", "sim")
    client = TestClient(create_app(service))

    assert client.get("/healthz").json() == {"ok": True, "status": "healthy"}

    peek = client.get("/jobs/peek").json()
    assert peek["pending_jobs"] == 1
    assert peek["jobs"][0]["id"] == "j1"
    assert peek["jobs"][0]["status"] == "pending"

    stats = client.get("/stats").json()
    assert stats["config"]["max_frames_per_video"] == 5
    assert stats["orchestrator"]["jobs_processed"] == 0


def test_healthz_reports_store_failure(service, job_store):
    with patch.object(job_store, "ping", side_effect=ConnectionError("refused")):
        response = TestClient(create_app(service)).get("/healthz")
    assert response.status_code == 503
