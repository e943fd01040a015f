"""Redis-backed queue configuration for worker jobs."""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
from typing import Any

from redis import Redis
from rq import Queue, Retry
from rq.exceptions import NoSuchJobError
from rq.job import Job

from ct_assistant.config.settings import settings
from ct_assistant.models.jobs import PullRequestJob, PushJob, parse_job

logger = logging.getLogger(__name__)

QUEUE_NAME = "jobs:default"
JOB_TIMEOUT_SECONDS = settings.worker_job_timeout
# RQ's Retry.max is the number of retries in addition to the first attempt.
MAX_ATTEMPTS = 3
RETRY_STRATEGY = Retry(max=MAX_ATTEMPTS - 1, interval=[30, 90, 180])
# Running jobs are not deduplicated: they may have read an older head
PENDING_STATUSES = {"queued", "deferred", "scheduled"}

if settings.redis_url:
    redis_connection = Redis.from_url(settings.redis_url, socket_timeout=5)
else:
    redis_connection = Redis(
        host=settings.redis_host,
        port=settings.redis_port,
        password=settings.redis_password,
        socket_timeout=5,
    )
redis_conn = redis_connection  # alias for worker script imports

job_queue = Queue(QUEUE_NAME, connection=redis_connection)


def get_all_queues() -> list[Queue]:
    return [job_queue]


def _job_id(payload: dict[str, Any]) -> str:
    """Deterministic id so the same delivery is only queued once."""
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    digest = hashlib.sha256(canonical.encode("utf-8")).hexdigest()
    return f"{payload.get('type', 'job')}-{digest[:32]}"


def _fetch_existing_job(job_id: str) -> Job | None:
    try:
        return Job.fetch(job_id, connection=redis_connection)
    except NoSuchJobError:
        return None


def run_job(payload: dict[str, Any]) -> None:
    """RQ job entrypoint that executes the async job handler."""
    job = parse_job(payload)
    logger.info(f"Starting {job.type} job for {job.repo_full_name}")
    # Deferred import keeps queue config lightweight for non-worker processes
    from ct_assistant.handlers.job_handler import handle_job

    asyncio.run(handle_job(job))


def enqueue_job(job: PushJob | PullRequestJob, queue: Queue | None = None) -> Job:
    """Enqueue a worker job with deduplication, retries and timeout.

    Jobs still waiting to run under the same id are returned as-is.
    """
    queue = queue or job_queue
    payload = job.model_dump(mode="json", by_alias=True)
    job_id = _job_id(payload)

    existing_job = _fetch_existing_job(job_id)
    if existing_job:
        status = existing_job.get_status(refresh=True)
        if status in PENDING_STATUSES:
            logger.info(f"Skipping duplicate {job.type} job {job_id} (status={status})")
            return existing_job

    logger.info(f"Enqueuing {job.type} job {job_id} for {job.repo_full_name} on '{queue.name}'")
    return queue.enqueue(
        run_job,
        payload,
        job_id=job_id,
        retry=RETRY_STRATEGY,
        job_timeout=JOB_TIMEOUT_SECONDS,
    )
