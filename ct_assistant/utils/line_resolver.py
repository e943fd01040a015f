"""Placement of AI suggestions onto commentable diff lines.

Models often get paths slightly wrong (``Main.java`` instead of
``src/Main.java``) or reference line numbers from content they saw before
truncation. Resolution tolerates both, but drops a suggestion rather than
pinning it to a misleading line.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from ct_assistant.models.changes import ChangedFile
from ct_assistant.models.review import ResolvedComment, Suggestion

logger = logging.getLogger(__name__)

DEFAULT_MAX_LINE_DISTANCE = 20


def normalize_path(path: str) -> str:
    """Normalize a repo path for matching: slashes, no leading ``./`` or ``/``."""
    normalized = path.strip().replace("\\", "/")
    if normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized.lstrip("/")


@dataclass(frozen=True)
class _FileEntry:
    path: str
    normalized_path: str
    basename: str
    right_lines: Sequence[int]


class LineResolver:
    """Resolve suggestions against the changed files of one review.

    Resolution is a pure function of the constructor inputs and the
    suggestion; the resolver holds no other state.
    """

    def __init__(
        self,
        changed_files: Sequence[ChangedFile],
        max_distance: int = DEFAULT_MAX_LINE_DISTANCE,
    ) -> None:
        self.max_distance = max_distance
        self._entries = [
            _FileEntry(
                path=changed.path,
                normalized_path=normalize_path(changed.path),
                basename=normalize_path(changed.path).rsplit("/", 1)[-1],
                right_lines=changed.right_lines,
            )
            for changed in changed_files
        ]

    def resolve_path(self, requested_path: str) -> str | None:
        """Map a suggested path to an actual changed file path.

        Tries, in order: exact match, unique path-suffix match, unique basename
        match, and finally the only changed file when exactly one exists.
        """
        requested = normalize_path(requested_path)
        if not requested:
            return None

        for entry in self._entries:
            if entry.normalized_path == requested:
                return entry.path

        suffix_matches = [
            entry
            for entry in self._entries
            if entry.normalized_path.endswith(f"/{requested}")
            or requested.endswith(f"/{entry.normalized_path}")
        ]
        if len(suffix_matches) == 1:
            return suffix_matches[0].path

        basename = requested.rsplit("/", 1)[-1]
        basename_matches = [entry for entry in self._entries if entry.basename == basename]
        if len(basename_matches) == 1:
            return basename_matches[0].path

        if len(self._entries) == 1:
            return self._entries[0].path

        return None

    def resolve_line(self, target_line: int, right_lines: Sequence[int]) -> int | None:
        """Snap ``target_line`` to the nearest commentable line.

        Ties prefer the smaller line number. Returns None when nothing lies
        within ``max_distance``.
        """
        if target_line <= 0 or not right_lines:
            return None
        if target_line in right_lines:
            return target_line

        best_line = min(right_lines, key=lambda line: (abs(line - target_line), line))
        if abs(best_line - target_line) > self.max_distance:
            return None
        return best_line

    def resolve(self, suggestion: Suggestion) -> ResolvedComment | None:
        """Resolve one suggestion, or return None when it cannot be placed."""
        body = suggestion.body.strip()
        if not body:
            return None

        path = self.resolve_path(suggestion.path)
        if path is None:
            logger.debug(f"Dropping suggestion for unmapped path '{suggestion.path}'")
            return None

        right_lines = next(entry.right_lines for entry in self._entries if entry.path == path)
        line = self.resolve_line(suggestion.line, right_lines)
        if line is None:
            logger.debug(
                f"Dropping suggestion for {path}:{suggestion.line} - no commentable line nearby"
            )
            return None

        return ResolvedComment(path=path, line=line, body=body)
