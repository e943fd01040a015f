"""Posting AI suggestions as one idempotent inline review."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Literal

from github.PullRequest import PullRequest

from ct_assistant.models.changes import ChangedFile
from ct_assistant.models.review import ResolvedComment, Suggestion
from ct_assistant.services.comment_ledger import CommentLedger
from ct_assistant.utils.line_resolver import DEFAULT_MAX_LINE_DISTANCE, LineResolver
from ct_assistant.utils.markers import CommentMarker

logger = logging.getLogger(__name__)

INLINE_SUMMARY = (
    "Inline comments added. See the AI review comment for the overall "
    "assessment and the reference solution."
)
FILE_LEVEL_HEADER = "Suggestions could not be matched to diff lines, so they are grouped by file."


@dataclass
class InlineReviewOutcome:
    posted: bool
    reason: Literal["posted", "no_valid_comments", "already_posted"]
    comments: list[ResolvedComment] = field(default_factory=list)
    fallback_required: bool = False


def resolve_suggestions(
    suggestions: Sequence[Suggestion],
    resolver: LineResolver,
    max_comments: int,
) -> list[ResolvedComment]:
    """Resolve suggestions, keep the first per (path, line) and cap the count."""
    resolved: dict[tuple[str, int], ResolvedComment] = {}
    for suggestion in suggestions:
        comment = resolver.resolve(suggestion)
        if comment is None:
            continue
        resolved.setdefault((comment.path, comment.line), comment)
    return list(resolved.values())[:max_comments]


def build_file_level_comment(suggestions: Sequence[Suggestion], per_file: int = 5) -> str:
    """Group unresolved suggestions by file for the file-review comment."""
    grouped: dict[str, list[Suggestion]] = {}
    for suggestion in suggestions:
        grouped.setdefault(suggestion.path, []).append(suggestion)

    lines = [FILE_LEVEL_HEADER]
    for path, items in grouped.items():
        lines.append(f"\n### {path}")
        for item in items[:per_file]:
            lines.append(f"- (suggested line {item.line}) {item.body}")
    return "\n".join(lines)


class InlineReviewPoster:
    """Place suggestions on the diff and post them once per head commit."""

    def __init__(
        self,
        ledger: CommentLedger,
        max_comments: int = 8,
        max_line_distance: int = DEFAULT_MAX_LINE_DISTANCE,
    ) -> None:
        self.ledger = ledger
        self.max_comments = max_comments
        self.max_line_distance = max_line_distance

    async def post(
        self,
        pr: PullRequest,
        head_sha: str,
        suggestions: Sequence[Suggestion],
        changed_files: Sequence[ChangedFile],
        summary_body: str = INLINE_SUMMARY,
    ) -> InlineReviewOutcome:
        resolver = LineResolver(changed_files, max_distance=self.max_line_distance)
        comments = resolve_suggestions(suggestions, resolver, self.max_comments)

        if not comments:
            logger.info(
                f"None of {len(suggestions)} suggestions resolved to a diff line on PR #{pr.number}"
            )
            return InlineReviewOutcome(
                posted=False,
                reason="no_valid_comments",
                fallback_required=bool(suggestions),
            )

        if await self.ledger.has_posted_review(pr, CommentMarker.INLINE_REVIEW, head_sha):
            logger.info(f"Inline review already posted for {head_sha[:7]}; skipping")
            return InlineReviewOutcome(posted=False, reason="already_posted", comments=comments)

        await self.ledger.post_review(
            pr,
            CommentMarker.INLINE_REVIEW,
            summary_body,
            comments,
            head_sha,
            max_comments=self.max_comments,
        )
        return InlineReviewOutcome(posted=True, reason="posted", comments=comments)
