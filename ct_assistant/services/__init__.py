"""Services for GitHub interactions."""

from ct_assistant.services.branch_committer import BranchCommitter, CommitResult
from ct_assistant.services.comment_ledger import CommentLedger
from ct_assistant.services.github_auth import GitHubAppAuth, get_github_app_auth

__all__ = [
    "BranchCommitter",
    "CommentLedger",
    "CommitResult",
    "GitHubAppAuth",
    "get_github_app_auth",
]
