"""File filtering utilities for choosing which changed files to review."""

import re
from pathlib import PurePosixPath
from re import Pattern

# Solution files written by the problem sync, e.g. "백준/1000.A+B/A+B.java"
GENERATED_PROBLEM_FILE: Pattern[str] = re.compile(
    r"^(백준|프로그래머스)/[^/]+/[^/]+\.(java|py|cpp)$"
)

REVIEWABLE_EXTENSIONS = {
    ".java",
    ".kt",
    ".py",
    ".cpp",
    ".c",
    ".js",
    ".ts",
    ".go",
    ".rs",
}


def is_generated_problem_file(file_path: str) -> bool:
    """Check if a path is a solution file generated by the problem sync."""
    return bool(GENERATED_PROBLEM_FILE.match(file_path))


def is_reviewable_source(file_path: str) -> bool:
    """Check if a file has a source extension the reviewer understands.

    Args:
        file_path: Repo-relative path of the file

    Returns:
        True if the file has a reviewable source extension
    """
    return PurePosixPath(file_path).suffix.lower() in REVIEWABLE_EXTENSIONS


def prioritize_files(file_paths: list[str], max_files: int = 8) -> list[str]:
    """Select reviewable source files, preferring hand-written over generated ones.

    Generated problem files are only used when no other source file changed.
    """
    sources = [path for path in file_paths if is_reviewable_source(path)]
    handwritten = [path for path in sources if not is_generated_problem_file(path)]
    chosen = handwritten or sources
    return chosen[:max_files]
