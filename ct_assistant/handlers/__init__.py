"""Job handlers executed by queue workers."""

from .job_handler import handle_job, handle_pull_request_job, handle_push_job

__all__ = ["handle_job", "handle_pull_request_job", "handle_push_job"]
