"""Unit tests for job orchestration."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from ct_assistant.config.settings import Settings
from ct_assistant.errors import ConcurrentModificationError, ConfigurationError
from ct_assistant.handlers.job_handler import FORK_NOTICE, handle_job
from ct_assistant.models.changes import ChangedFile
from ct_assistant.models.jobs import PullRequestJob, PushJob
from ct_assistant.models.review import ReviewResult, Suggestion
from ct_assistant.services.branch_committer import CommitResult
from ct_assistant.services.problem_sync import ProblemDocument
from ct_assistant.utils.markers import CommentMarker

TEMPLATE_BODY = """
- Site: BOJ
- Problem Number: 1000
- Language: Java
- ASK: faster input
"""
CHANGED = [ChangedFile(path="src/Main.java", patch="@@ -1 +1,2 @@\n a\n+b", content="a\nb")]
HANDLER = "ct_assistant.handlers.job_handler"


def _bodies(pr, marker):
    return [c.body for c in pr.comments if marker.leads(c.body)]


@pytest.fixture
def pr(fake_pr):
    fake_pr.body = TEMPLATE_BODY
    fake_pr.head.repo = SimpleNamespace(full_name="acme/algo")
    fake_pr.base.repo.full_name = "acme/algo"
    return fake_pr


@pytest.fixture
def repo(pr):
    repo = MagicMock()
    repo.get_pull.return_value = pr
    return repo


@pytest.fixture
def github_auth(repo):
    client = MagicMock()
    client.get_repo.return_value = repo
    auth = MagicMock()
    auth.get_github_client = AsyncMock(return_value=client)
    return auth


@pytest.fixture
def pipeline():
    pipeline = MagicMock()
    pipeline.generate = AsyncMock(
        return_value=ReviewResult(
            summary_markdown="## Summary",
            time_complexity="O(N)",
            space_complexity="O(1)",
            answer_code="class Main {}",
            inline_suggestions=[Suggestion(path="Main.java", line=2, body="use BufferedReader")],
        )
    )
    return pipeline


@pytest.fixture
def pr_job():
    return PullRequestJob(installation_id=1, owner="acme", repo="algo", pull_number=1)


@pytest.fixture(autouse=True)
def changed_files():
    with patch(f"{HANDLER}.load_changed_files", new=AsyncMock(return_value=CHANGED)) as mock:
        yield mock


@pytest.mark.asyncio
async def test_missing_credentials_fail_before_api_calls(pr_job, github_auth, pipeline):
    with pytest.raises(ConfigurationError):
        await handle_job(
            pr_job, github_auth, pipeline, config=Settings(_env_file=None, github_app_id="")
        )
    github_auth.get_github_client.assert_not_called()


@pytest.mark.asyncio
async def test_full_review_flow(pr_job, pr, github_auth, pipeline, app_settings):
    await handle_job(pr_job, github_auth, pipeline, config=app_settings)

    request = pipeline.generate.await_args.args[0]
    assert request.language == "Java"
    assert request.ask_request == "faster input"
    assert request.review_targets == CHANGED

    [summary] = _bodies(pr, CommentMarker.AI_REVIEW)
    assert "```java\nclass Main {}\n```" in summary
    assert len(pr.reviews) == 1
    assert pr.reviews[0].comments[0]["path"] == "src/Main.java"
    assert _bodies(pr, CommentMarker.FILE_REVIEW) == []


@pytest.mark.asyncio
async def test_redelivery_does_not_duplicate(pr_job, pr, github_auth, pipeline, app_settings):
    await handle_job(pr_job, github_auth, pipeline, config=app_settings)
    await handle_job(pr_job, github_auth, pipeline, config=app_settings)

    assert len(_bodies(pr, CommentMarker.AI_REVIEW)) == 1
    assert len(pr.reviews) == 1


@pytest.mark.asyncio
async def test_missing_template_fields(pr_job, pr, github_auth, pipeline, app_settings):
    pr.body = "- Site: BOJ"
    await handle_job(pr_job, github_auth, pipeline, config=app_settings)

    assert len(_bodies(pr, CommentMarker.TEMPLATE_CHECK)) == 1
    pipeline.generate.assert_not_called()


@pytest.mark.asyncio
async def test_template_check_removed_once_fixed(pr_job, pr, github_auth, pipeline, app_settings):
    pr.body = "- Site: BOJ"
    await handle_job(pr_job, github_auth, pipeline, config=app_settings)
    pr.body = TEMPLATE_BODY
    await handle_job(pr_job, github_auth, pipeline, config=app_settings)

    assert _bodies(pr, CommentMarker.TEMPLATE_CHECK) == []


@pytest.mark.asyncio
async def test_bot_synchronize_is_ignored(pr, repo, github_auth, pipeline, app_settings):
    job = PullRequestJob(
        installation_id=1, owner="acme", repo="algo", pull_number=1,
        action="synchronize", sender_type="Bot",
    )
    await handle_job(job, github_auth, pipeline, config=app_settings)
    repo.get_pull.assert_not_called()


@pytest.mark.asyncio
async def test_fork_pull_request(pr_job, pr, github_auth, pipeline, app_settings):
    pr.head.repo = SimpleNamespace(full_name="someone/algo")
    await handle_job(pr_job, github_auth, pipeline, config=app_settings)

    assert _bodies(pr, CommentMarker.AI_REVIEW) == [CommentMarker.AI_REVIEW.tag(FORK_NOTICE)]
    pipeline.generate.assert_not_called()


@pytest.mark.asyncio
async def test_unavailable_review_notice(pr_job, pr, github_auth, pipeline, app_settings):
    pipeline.generate.return_value = None
    await handle_job(pr_job, github_auth, pipeline, config=app_settings)

    [notice] = _bodies(pr, CommentMarker.AI_REVIEW)
    assert "provider=gemini" in notice
    assert "apiKey=set" in notice
    assert pr.reviews == []


@pytest.mark.asyncio
async def test_unplaceable_suggestions_fall_back_to_file_comment(
    pr_job, pr, github_auth, pipeline, app_settings
):
    pipeline.generate.return_value = pipeline.generate.return_value.model_copy(
        update={"inline_suggestions": [Suggestion(path="Main.java", line=400, body="far")]}
    )
    await handle_job(pr_job, github_auth, pipeline, config=app_settings)

    [grouped] = _bodies(pr, CommentMarker.FILE_REVIEW)
    assert "(suggested line 400) far" in grouped
    assert pr.reviews == []


@pytest.mark.asyncio
async def test_unexpected_error_is_reported(pr_job, pr, github_auth, pipeline, app_settings):
    pipeline.generate.side_effect = RuntimeError("provider exploded")
    await handle_job(pr_job, github_auth, pipeline, config=app_settings)

    [report] = _bodies(pr, CommentMarker.AI_REVIEW)
    assert "provider exploded" in report


@pytest.mark.asyncio
async def test_problem_sync_commits_plan(pr_job, pr, github_auth, pipeline, app_settings):
    source = MagicMock()
    source.fetch = AsyncMock(return_value=ProblemDocument(title="A+B", markdown="# A+B"))
    committer = MagicMock()
    committer.apply = AsyncMock(return_value=CommitResult(status="committed", commit_sha="c1"))

    with (
        patch(f"{HANDLER}.BranchCommitter", return_value=committer),
        patch(f"{HANDLER}.load_primary_code", new=AsyncMock(return_value="class Main {}")),
    ):
        await handle_job(pr_job, github_auth, pipeline, source, config=app_settings)

    plan = committer.apply.await_args.args[0]
    assert plan.branch == "feature"
    assert plan.paths == ["백준/1000.A+B/README.md", "백준/1000.A+B/A+B.java"]
    assert pipeline.generate.await_args.args[0].problem_markdown == "# A+B"


@pytest.mark.asyncio
async def test_branch_conflict_is_retried_then_raised(
    pr_job, pr, github_auth, pipeline, app_settings
):
    source = MagicMock()
    source.fetch = AsyncMock(return_value=ProblemDocument(title="A+B", markdown="# A+B"))
    committer = MagicMock()
    committer.apply = AsyncMock(side_effect=ConcurrentModificationError("feature", "abc123"))

    with (
        patch(f"{HANDLER}.BranchCommitter", return_value=committer),
        patch(f"{HANDLER}.load_primary_code", new=AsyncMock(return_value=None)),
        patch("ct_assistant.utils.rate_limiter.asyncio.sleep", new=AsyncMock()),
    ):
        with pytest.raises(ConcurrentModificationError):
            await handle_job(pr_job, github_auth, pipeline, source, config=app_settings)

    assert committer.apply.await_count == app_settings.commit_max_attempts
    pipeline.generate.assert_not_called()


@pytest.mark.asyncio
async def test_push_job_flags_incomplete_pull_requests(
    make_pr, repo, github_auth, pipeline, app_settings
):
    complete = make_pr(number=1, body=TEMPLATE_BODY)
    incomplete = make_pr(number=2, body="- Site: BOJ")
    repo.get_pulls.return_value = [complete, incomplete]

    job = PushJob(installation_id=1, owner="acme", repo="algo", branch="feature")
    await handle_job(job, github_auth, pipeline, config=app_settings)

    repo.get_pulls.assert_called_once_with(state="open", head="acme:feature")
    assert _bodies(complete, CommentMarker.TEMPLATE_CHECK) == []
    assert len(_bodies(incomplete, CommentMarker.TEMPLATE_CHECK)) == 1
    pipeline.generate.assert_not_called()


@pytest.mark.asyncio
async def test_bot_push_is_ignored(repo, github_auth, pipeline, app_settings):
    job = PushJob(installation_id=1, owner="acme", repo="algo", branch="x", sender_type="Bot")
    await handle_job(job, github_auth, pipeline, config=app_settings)
    repo.get_pulls.assert_not_called()
