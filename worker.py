"""RQ worker entrypoint for processing ct-assistant jobs."""

from __future__ import annotations

import logging
import os
import sys
import uuid

from rq import Worker

from ct_assistant.config.settings import settings
from ct_assistant.queue.config import get_all_queues, redis_conn
from ct_assistant.utils.logging import setup_observability

logger = logging.getLogger(__name__)


def health_check() -> bool:
    """Return True if Redis is reachable."""
    try:
        return bool(redis_conn.ping())
    except Exception:
        logger.exception("Worker health check failed (Redis unreachable)")
        return False


def get_unique_worker_name() -> str:
    # Registrations of dead replicas expire after worker_ttl
    replica_id = os.getenv("WORKER_REPLICA_ID")
    if replica_id:
        return f"{settings.worker_name}-{replica_id}"
    return f"{settings.worker_name}-{os.getenv('HOSTNAME', 'local')}-{uuid.uuid4().hex[:8]}"


def start_worker(run: bool = True) -> Worker:
    """Create and optionally start the RQ worker.

    Jobs are processed one at a time; scale by running more workers.
    Missing GitHub App credentials or an unreachable Redis stop startup.
    """
    setup_observability()
    settings.require_github_app_credentials()
    if not health_check():
        sys.exit(1)

    worker = Worker(
        queues=get_all_queues(),
        connection=redis_conn,
        name=get_unique_worker_name(),
        worker_ttl=settings.worker_job_timeout + 60,
    )
    logger.info(f"Starting worker '{worker.name}' for queues: {', '.join(worker.queue_names())}")

    if run:
        worker.work(
            with_scheduler=settings.worker_with_scheduler,
            logging_level=getattr(logging, settings.log_level),
        )
    return worker


if __name__ == "__main__":
    start_worker(run=True)
