"""Worker job handlers for push and pull_request jobs.

Each job runs as one sequential task: load the pull request, sync the
problem documents into its branch, generate the AI review and place it.
Redelivery of the same job is safe because the commit step skips no-op
commits, comments are upserted by marker and the inline review is scoped
to the head commit.
"""

import logging

from github.PullRequest import PullRequest
from github.Repository import Repository

from ct_assistant.agents.review_pipeline import ReviewGenerationPipeline
from ct_assistant.config.settings import Settings, settings
from ct_assistant.errors import ConcurrentModificationError
from ct_assistant.models.jobs import PullRequestJob, PushJob
from ct_assistant.models.review import ReviewRequest
from ct_assistant.services.branch_committer import BranchCommitter
from ct_assistant.services.changed_files import load_changed_files, load_primary_code
from ct_assistant.services.comment_ledger import CommentLedger
from ct_assistant.services.github_auth import GitHubAppAuth, get_github_app_auth
from ct_assistant.services.inline_review import InlineReviewPoster, build_file_level_comment
from ct_assistant.services.problem_sync import (
    LanguageProfile,
    ProblemDocumentSource,
    build_sync_plan,
    resolve_language_profile,
)
from ct_assistant.utils.markers import CommentMarker
from ct_assistant.utils.pr_template import (
    REQUIRED_TEMPLATE_GUIDE,
    ProblemMetadata,
    parse_pr_body,
)
from ct_assistant.utils.rate_limiter import with_exponential_backoff

logger = logging.getLogger(__name__)

MISSING_REPO_NOTICE = "Repository information for this pull request is unavailable."
FORK_NOTICE = "Pull requests from forks are not supported yet."


# === MAIN HANDLER ===


async def handle_job(
    job: PushJob | PullRequestJob,
    github_auth: GitHubAppAuth | None = None,
    pipeline: ReviewGenerationPipeline | None = None,
    document_source: ProblemDocumentSource | None = None,
    config: Settings | None = None,
) -> None:
    """
    Process one worker job (executed by queue workers).

    === DEPENDENCIES ===
    - GitHub App auth service (installation tokens, cached per installation)
    - Review generation pipeline (AI completions)
    - Problem document source (optional; problem sync is skipped without one)

    === BEHAVIOR ===

    Preconditions:
        - GitHub App credentials are configured; otherwise ConfigurationError
          is raised before any API call and the queue retry policy applies

    Edge Cases:
        - Branch moved during problem sync: retried, then propagated for redelivery
        - AI review unavailable: a notice replaces the review comment
        - Any other failure while reviewing: reported in the review comment
    """
    config = config or settings
    config.require_github_app_credentials()

    github_auth = github_auth or get_github_app_auth()
    pipeline = pipeline or ReviewGenerationPipeline.from_settings(config)

    job_key = f"{job.repo_full_name} ({job.type})"
    logger.info(f"Starting job for {job_key}")

    github_client = await github_auth.get_github_client(job.installation_id)
    repo = github_client.get_repo(job.repo_full_name)
    ledger = CommentLedger()

    if isinstance(job, PushJob):
        await handle_push_job(job, repo, ledger)
    else:
        await handle_pull_request_job(job, repo, ledger, pipeline, document_source, config)

    logger.info(f"Finished job for {job_key}")


async def handle_push_job(job: PushJob, repo: Repository, ledger: CommentLedger) -> None:
    """Remind open PRs of the pushed branch to fill in the PR template."""
    if job.sent_by_bot:
        logger.debug(f"Ignoring bot push to {job.branch}")
        return

    for pr in repo.get_pulls(state="open", head=f"{job.owner}:{job.branch}"):
        if parse_pr_body(pr.body).has_required_fields:
            continue
        await ledger.upsert_issue_comment(pr, CommentMarker.TEMPLATE_CHECK, REQUIRED_TEMPLATE_GUIDE)


async def handle_pull_request_job(
    job: PullRequestJob,
    repo: Repository,
    ledger: CommentLedger,
    pipeline: ReviewGenerationPipeline,
    document_source: ProblemDocumentSource | None,
    config: Settings,
) -> None:
    """Template check, problem sync and AI review for one pull request."""
    if job.sent_by_bot and job.action != "opened":
        logger.info(f"Ignoring '{job.action}' from a bot on PR #{job.pull_number}")
        return

    pr = repo.get_pull(job.pull_number)

    if pr.head.repo is None or pr.base.repo is None:
        await ledger.upsert_issue_comment(pr, CommentMarker.AI_REVIEW, MISSING_REPO_NOTICE)
        return
    if pr.head.repo.full_name != pr.base.repo.full_name:
        await ledger.upsert_issue_comment(pr, CommentMarker.AI_REVIEW, FORK_NOTICE)
        return

    metadata = parse_pr_body(pr.body)
    if not metadata.has_required_fields:
        await ledger.upsert_issue_comment(pr, CommentMarker.TEMPLATE_CHECK, REQUIRED_TEMPLATE_GUIDE)
        return
    await ledger.delete_if_present(pr, CommentMarker.TEMPLATE_CHECK)

    language = resolve_language_profile(metadata.language)
    try:
        problem_markdown = await _sync_problem_assets(
            repo, pr, metadata, language, document_source, config
        )
        await _review_pull_request(
            repo, pr, metadata, language, problem_markdown, ledger, pipeline, config
        )
    except ConcurrentModificationError:
        raise
    except Exception as e:
        logger.exception(f"Review failed for PR #{pr.number}")
        await ledger.upsert_issue_comment(
            pr, CommentMarker.AI_REVIEW, f"An error occurred while processing this PR: {e}"
        )


# === HELPER FUNCTIONS ===


async def _sync_problem_assets(
    repo: Repository,
    pr: PullRequest,
    metadata: ProblemMetadata,
    language: LanguageProfile,
    document_source: ProblemDocumentSource | None,
    config: Settings,
) -> str:
    """Commit the problem README and solution file to the PR branch.

    Returns the problem Markdown used as review context.
    """
    if document_source is None:
        logger.info("No problem document source configured; skipping problem sync")
        url = metadata.problem_url or "no URL"
        return f"{metadata.site} problem {metadata.problem_number} ({url})"

    document = await document_source.fetch(metadata)
    source_code = (
        await load_primary_code(repo, pr, [language.extension]) or language.fallback_template
    )
    plan = build_sync_plan(pr.head.ref, metadata, document, source_code, language)

    result = await with_exponential_backoff(
        BranchCommitter(repo).apply,
        plan,
        retry_on=(ConcurrentModificationError,),
        max_retries=config.commit_max_attempts,
    )
    logger.info(f"Problem sync for PR #{pr.number}: {result.status}")
    return document.markdown


async def _review_pull_request(
    repo: Repository,
    pr: PullRequest,
    metadata: ProblemMetadata,
    language: LanguageProfile,
    problem_markdown: str,
    ledger: CommentLedger,
    pipeline: ReviewGenerationPipeline,
    config: Settings,
) -> None:
    # The sync may have moved the head; review what is there now
    head_sha = repo.get_pull(pr.number).head.sha

    changed_files = await load_changed_files(
        repo,
        pr,
        max_files=config.max_review_files,
        max_chars_per_file=config.max_chars_per_file,
    )
    review = await pipeline.generate(
        ReviewRequest(
            problem_markdown=problem_markdown,
            pr_body=pr.body or "",
            language=language.name,
            review_targets=changed_files,
            ask_request=metadata.ask,
        )
    )

    if review is None:
        await ledger.upsert_issue_comment(
            pr, CommentMarker.AI_REVIEW, _unavailable_notice(config)
        )
        return

    await ledger.upsert_issue_comment(
        pr, CommentMarker.AI_REVIEW, review.format_summary_markdown(language.code_fence)
    )

    poster = InlineReviewPoster(
        ledger,
        max_comments=config.max_inline_comments,
        max_line_distance=config.line_distance_threshold,
    )
    outcome = await poster.post(pr, head_sha, review.inline_suggestions, changed_files)
    if outcome.fallback_required:
        await ledger.upsert_issue_comment(
            pr,
            CommentMarker.FILE_REVIEW,
            build_file_level_comment(
                review.inline_suggestions, per_file=config.max_fallback_suggestions_per_file
            ),
        )

    logger.info(
        f"Review completed for PR #{pr.number}: inline review {outcome.reason}, "
        f"{len(outcome.comments)} line comments"
    )


def _unavailable_notice(config: Settings) -> str:
    api_key_state = "set" if config.ai_api_key else "missing"
    return (
        "The AI review could not be generated. "
        f"(provider={config.ai_provider}, model={config.ai_model}, "
        f"timeoutMs={int(config.ai_timeout_seconds * 1000)}, apiKey={api_key_state})\n"
        "Check the worker logs for the provider failure."
    )
