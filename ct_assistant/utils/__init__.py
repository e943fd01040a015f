"""Utility functions and helpers."""

from .diff_index import DiffLineIndex, index_patch
from .filters import is_generated_problem_file, is_reviewable_source
from .logging import setup_observability
from .markers import CommentMarker

__all__ = [
    "CommentMarker",
    "DiffLineIndex",
    "index_patch",
    "is_generated_problem_file",
    "is_reviewable_source",
    "setup_observability",
]
