"""Loading of a pull request's changed source files for review."""

import logging
from collections.abc import Iterable

from github import UnknownObjectException
from github.PullRequest import PullRequest
from github.Repository import Repository

from ct_assistant.models.changes import ChangedFile
from ct_assistant.utils.filters import is_generated_problem_file, prioritize_files

logger = logging.getLogger(__name__)


def get_text_file_content(repo: Repository, path: str, ref: str) -> str | None:
    """Return the UTF-8 text of ``path`` at ``ref``; None if missing or not a file."""
    try:
        content = repo.get_contents(path, ref=ref)
    except UnknownObjectException:
        return None
    if isinstance(content, list) or content.type != "file" or not content.content:
        return None
    return content.decoded_content.decode("utf-8", errors="replace")


async def load_changed_files(
    repo: Repository,
    pr: PullRequest,
    max_files: int = 8,
    max_chars_per_file: int = 3500,
) -> list[ChangedFile]:
    """Load the reviewable changed files of ``pr`` with their patches and content.

    Removed files are skipped. Hand-written sources are preferred over files
    generated by the problem sync. Content is truncated to
    ``max_chars_per_file``; patches are kept whole so line indexes stay exact.
    """
    patches = {
        file.filename: file.patch or ""
        for file in pr.get_files()
        if file.status != "removed"
    }
    chosen = prioritize_files(list(patches), max_files=max_files)

    results: list[ChangedFile] = []
    for path in chosen:
        raw = get_text_file_content(repo, path, pr.head.ref)
        if not raw:
            logger.warning(f"Skipping {path}: no text content at {pr.head.ref}")
            continue
        results.append(
            ChangedFile(path=path, patch=patches[path], content=raw[:max_chars_per_file])
        )

    logger.info(f"Loaded {len(results)} changed files for PR #{pr.number}")
    return results


async def load_primary_code(
    repo: Repository, pr: PullRequest, extensions: Iterable[str]
) -> str | None:
    """Return the content of the PR's main solution file, if any.

    Hand-written files win over previously generated problem files.
    """
    suffixes = tuple(extensions)
    candidates = [
        file.filename
        for file in pr.get_files()
        if file.status != "removed" and file.filename.endswith(suffixes)
    ]
    preferred = [path for path in candidates if not is_generated_problem_file(path)]
    chosen = preferred or candidates
    if not chosen:
        return None
    return get_text_file_content(repo, chosen[0], pr.head.ref)
