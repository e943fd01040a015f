"""Atomic multi-file commits to a branch through the Git data API."""

import logging
from dataclasses import dataclass
from typing import Literal

from github import GithubException, InputGitTreeElement, UnknownObjectException
from github.Repository import Repository

from ct_assistant.errors import ConcurrentModificationError
from ct_assistant.models.changes import CommitPlan

logger = logging.getLogger(__name__)

BLOB_MODE = "100644"
# Statuses GitHub answers with when a non-forced update is not a fast-forward
REF_CONFLICT_STATUSES = {409, 422}


def normalize_trailing_newline(content: str) -> str:
    """Terminate ``content`` with exactly one trailing newline."""
    return content.rstrip("\r\n") + "\n"


@dataclass(frozen=True)
class CommitResult:
    status: Literal["noop", "committed"]
    commit_sha: str | None = None

    @property
    def committed(self) -> bool:
        return self.status == "committed"


class BranchCommitter:
    """Apply a CommitPlan to a branch as a single commit.

    The commit overlays the planned files onto the tip tree; paths outside
    the plan are untouched. The branch ref is moved with a non-forced update
    so a concurrent push makes the update fail instead of being overwritten.
    """

    def __init__(self, repo: Repository) -> None:
        self.repo = repo

    def _read_text(self, path: str, ref: str) -> str | None:
        try:
            content = self.repo.get_contents(path, ref=ref)
        except UnknownObjectException:
            return None
        if isinstance(content, list) or content.type != "file":
            return None
        return content.decoded_content.decode("utf-8")

    def is_noop(self, plan: CommitPlan, ref: str) -> bool:
        """True when every planned file already has the planned content at ``ref``."""
        return all(
            self._read_text(planned.path, ref) == normalize_trailing_newline(planned.content)
            for planned in plan.files
        )

    async def apply(self, plan: CommitPlan) -> CommitResult:
        """Commit ``plan`` on top of the current branch tip.

        Returns a ``noop`` result without any write when nothing would change.

        Raises:
            ConcurrentModificationError: If the branch moved before the ref update
            GithubException: For any other API failure
        """
        if not plan.files:
            return CommitResult(status="noop")

        git_ref = self.repo.get_git_ref(f"heads/{plan.branch}")
        tip_sha = git_ref.object.sha

        if self.is_noop(plan, tip_sha):
            logger.info(f"Planned files already match {plan.branch}@{tip_sha[:7]}; skipping commit")
            return CommitResult(status="noop")

        tip_commit = self.repo.get_git_commit(tip_sha)
        tree = self.repo.create_git_tree(
            [
                InputGitTreeElement(
                    path=planned.path,
                    mode=BLOB_MODE,
                    type="blob",
                    content=normalize_trailing_newline(planned.content),
                )
                for planned in plan.files
            ],
            base_tree=tip_commit.tree,
        )
        commit = self.repo.create_git_commit(plan.message, tree, [tip_commit])

        try:
            git_ref.edit(commit.sha, force=False)
        except GithubException as e:
            if e.status in REF_CONFLICT_STATUSES:
                raise ConcurrentModificationError(plan.branch, tip_sha) from e
            raise

        logger.info(
            f"Committed {len(plan.files)} files to {plan.branch}: "
            f"{tip_sha[:7]}..{commit.sha[:7]}"
        )
        return CommitResult(status="committed", commit_sha=commit.sha)
