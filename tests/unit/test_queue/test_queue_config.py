"""Unit tests for queue configuration and the worker entrypoint."""

from unittest.mock import MagicMock, patch

import pytest

from ct_assistant.errors import InvalidJobError
from ct_assistant.models.jobs import PullRequestJob
from ct_assistant.queue import config as queue_config


@pytest.fixture
def job():
    return PullRequestJob(installation_id=1, owner="acme", repo="algo", pull_number=3)


def test_job_id_is_deterministic(job):
    payload = job.model_dump(mode="json", by_alias=True)
    reordered = dict(reversed(list(payload.items())))
    assert queue_config._job_id(payload) == queue_config._job_id(reordered)
    assert queue_config._job_id(payload).startswith("pull_request-")
    assert ":" not in queue_config._job_id(payload)


def test_enqueue_job_uses_retry_and_timeout(job):
    queue = MagicMock()
    queue.name = "jobs:default"
    with patch.object(queue_config, "_fetch_existing_job", return_value=None):
        queue_config.enqueue_job(job, queue=queue)

    args, kwargs = queue.enqueue.call_args
    assert args[0] is queue_config.run_job
    assert args[1]["pullNumber"] == 3
    assert kwargs["retry"] is queue_config.RETRY_STRATEGY
    assert kwargs["job_timeout"] == queue_config.JOB_TIMEOUT_SECONDS


@pytest.mark.parametrize("status", ["queued", "deferred", "scheduled"])
def test_enqueue_job_skips_pending_duplicate(job, status):
    existing = MagicMock()
    existing.get_status.return_value = status
    queue = MagicMock()
    with patch.object(queue_config, "_fetch_existing_job", return_value=existing):
        assert queue_config.enqueue_job(job, queue=queue) is existing
    queue.enqueue.assert_not_called()


@pytest.mark.parametrize("status", ["finished", "failed", "started"])
def test_enqueue_job_requeues_duplicate_that_is_not_pending(job, status):
    existing = MagicMock()
    existing.get_status.return_value = status
    queue = MagicMock()
    with patch.object(queue_config, "_fetch_existing_job", return_value=existing):
        queue_config.enqueue_job(job, queue=queue)
    queue.enqueue.assert_called_once()


def test_synchronize_while_previous_run_is_started_is_enqueued():
    job = PullRequestJob(
        installation_id=1, owner="acme", repo="algo", pull_number=3, action="synchronize"
    )
    running = MagicMock()
    running.get_status.return_value = "started"
    queue = MagicMock()
    queue.name = "jobs:default"
    with patch.object(queue_config, "_fetch_existing_job", return_value=running):
        result = queue_config.enqueue_job(job, queue=queue)

    assert queue.enqueue.call_count == 1
    assert result is queue.enqueue.return_value


def test_run_job_dispatches_to_handler(job):
    handle_job = MagicMock()
    with patch("ct_assistant.handlers.job_handler.handle_job", new=handle_job):
        with patch.object(queue_config.asyncio, "run") as run:
            queue_config.run_job(job.model_dump(mode="json", by_alias=True))

    handle_job.assert_called_once_with(job)
    run.assert_called_once_with(handle_job.return_value)


def test_run_job_rejects_invalid_payload():
    with pytest.raises(InvalidJobError):
        queue_config.run_job({"type": "unknown"})


def test_worker_health_check():
    import worker

    with patch.object(worker, "redis_conn") as conn:
        conn.ping.return_value = True
        assert worker.health_check() is True
        conn.ping.side_effect = ConnectionError("down")
        assert worker.health_check() is False


def test_unique_worker_name(monkeypatch):
    import worker

    monkeypatch.setenv("WORKER_REPLICA_ID", "7")
    assert worker.get_unique_worker_name().endswith("-7")
    monkeypatch.delenv("WORKER_REPLICA_ID")
    monkeypatch.setenv("HOSTNAME", "box")
    assert "-box-" in worker.get_unique_worker_name()


def test_start_worker_exits_when_redis_is_unreachable():
    import worker

    with patch.object(worker, "setup_observability"), patch.object(
        type(worker.settings), "require_github_app_credentials"
    ), patch.object(worker, "health_check", return_value=False), patch.object(
        worker, "Worker"
    ) as worker_cls:
        with pytest.raises(SystemExit):
            worker.start_worker(run=False)

    worker_cls.assert_not_called()


def test_start_worker_builds_worker_without_running():
    import worker

    with patch.object(worker, "setup_observability"), patch.object(
        type(worker.settings), "require_github_app_credentials"
    ), patch.object(worker, "health_check", return_value=True), patch.object(
        worker, "Worker"
    ) as worker_cls:
        created = worker.start_worker(run=False)

    assert created is worker_cls.return_value
    assert worker_cls.call_args.kwargs["queues"] == queue_config.get_all_queues()
    created.work.assert_not_called()
