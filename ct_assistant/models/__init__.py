"""Data models for the review assistant."""

from .changes import ChangedFile, CommitPlan, PlannedFile
from .jobs import PullRequestJob, PushJob, WorkerJob, parse_job
from .review import (
    UNAVAILABLE_ANSWER_CODE,
    ResolvedComment,
    ReviewRequest,
    ReviewResult,
    Suggestion,
)

__all__ = [
    "UNAVAILABLE_ANSWER_CODE",
    "ChangedFile",
    "CommitPlan",
    "PlannedFile",
    "PullRequestJob",
    "PushJob",
    "ResolvedComment",
    "ReviewRequest",
    "ReviewResult",
    "Suggestion",
    "WorkerJob",
    "parse_job",
]
