"""Queue package for background job processing."""

from .config import enqueue_job, get_all_queues, job_queue, redis_connection, run_job

__all__ = [
    "enqueue_job",
    "get_all_queues",
    "job_queue",
    "redis_connection",
    "run_job",
]
