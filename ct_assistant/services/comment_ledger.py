"""Idempotent management of bot-authored pull request comments and reviews.

Every managed comment carries a ``CommentMarker`` as its first line. The
marker plus bot authorship is the only identity used to find a previous
comment, so repeated webhook deliveries update rather than duplicate:

- at most one bot issue comment per (pull request, marker)
- at most one bot review per (pull request, head sha, inline-review marker)

Listing is read-only and is not retried here; a failed call propagates so
the queue can redeliver the job.
"""

import logging
from collections.abc import Sequence
from typing import Any

from github.IssueComment import IssueComment
from github.PullRequest import PullRequest
from github.PullRequestReview import PullRequestReview

from ct_assistant.models.review import ResolvedComment
from ct_assistant.utils.markers import CommentMarker

logger = logging.getLogger(__name__)

DEFAULT_MAX_REVIEW_COMMENTS = 8


class CommentLedger:
    """Marker-keyed create/update/delete of bot comments on one pull request."""

    def __init__(self, bot_login: str | None = None) -> None:
        self.bot_login = bot_login

    def _is_bot(self, user: Any) -> bool:
        if user is None:
            return False
        if self.bot_login is not None:
            return getattr(user, "login", None) == self.bot_login
        return getattr(user, "type", None) == "Bot"

    def _find_comments(self, pr: PullRequest, marker: CommentMarker) -> list[IssueComment]:
        return [
            comment
            for comment in pr.get_issue_comments()
            if self._is_bot(comment.user) and marker.leads(comment.body)
        ]

    async def upsert_issue_comment(
        self, pr: PullRequest, marker: CommentMarker, body: str
    ) -> IssueComment:
        """Create or update the single bot comment tagged with ``marker``.

        Extra copies left behind by an earlier race are deleted so exactly one
        remains.
        """
        final_body = marker.tag(body)
        existing = self._find_comments(pr, marker)

        if not existing:
            comment = pr.create_issue_comment(final_body)
            logger.info(f"Created {marker.name} comment on PR #{pr.number}")
            return comment

        comment, *duplicates = existing
        for duplicate in duplicates:
            duplicate.delete()
            logger.warning(f"Deleted duplicate {marker.name} comment {duplicate.id}")

        if comment.body == final_body:
            logger.debug(f"{marker.name} comment on PR #{pr.number} already up to date")
            return comment

        comment.edit(final_body)
        logger.info(f"Updated {marker.name} comment {comment.id} on PR #{pr.number}")
        return comment

    async def delete_if_present(self, pr: PullRequest, marker: CommentMarker) -> bool:
        """Delete the bot comment tagged with ``marker``; no-op when absent."""
        existing = self._find_comments(pr, marker)
        for comment in existing:
            comment.delete()
            logger.info(f"Deleted {marker.name} comment {comment.id} on PR #{pr.number}")
        return bool(existing)

    async def has_posted_review(
        self, pr: PullRequest, marker: CommentMarker, head_sha: str
    ) -> bool:
        """True iff a bot review tagged with ``marker`` exists at ``head_sha``.

        Scoping by head sha lets every new push be reviewed again even though
        the marker repeats.
        """
        return any(
            self._is_bot(review.user)
            and review.commit_id == head_sha
            and marker.is_in(review.body)
            for review in pr.get_reviews()
        )

    async def post_review(
        self,
        pr: PullRequest,
        marker: CommentMarker,
        summary_body: str,
        comments: Sequence[ResolvedComment],
        head_sha: str,
        max_comments: int = DEFAULT_MAX_REVIEW_COMMENTS,
    ) -> PullRequestReview:
        """Create one COMMENT review at ``head_sha`` with up to ``max_comments`` lines.

        Must only be called after ``has_posted_review`` returned False.
        """
        commit = pr.base.repo.get_commit(head_sha)
        review = pr.create_review(
            commit=commit,
            body=marker.tag(summary_body),
            event="COMMENT",
            comments=[comment.to_review_comment() for comment in comments[:max_comments]],
        )
        logger.info(
            f"Posted {marker.name} review on PR #{pr.number} at {head_sha[:7]} "
            f"with {min(len(comments), max_comments)} comments"
        )
        return review
