"""Prompts for the coding-test review pipeline."""

from ct_assistant.models.changes import ChangedFile
from ct_assistant.models.review import UNAVAILABLE_ANSWER_CODE, UNKNOWN_COMPLEXITY, ReviewRequest

TRUNCATION_NOTICE = "\n...(truncated)"

RESPONSE_SCHEMA = """{
  "summary_markdown": "## Overall\\n...\\n## Better Approach\\n...\\n## Code-Level Improvements\\n...\\n## Easily Missed Test Cases\\n...",
  "time_complexity": "O(...)",
  "space_complexity": "O(...)",
  "answer_code": "reference solution source code",
  "inline_suggestions": [
    {"path": "src/Main.java", "line": 23, "body": "improvement comment"}
  ]
}"""

REVIEW_PROMPT = """
Role: Reviewer of coding-test (algorithm problem) solutions.
Output exactly ONE JSON object. No Markdown, no prose, no code fences.

Tasks:
1) Analyse the current solution and propose a better approach where one exists.
2) Write a reference solution in {language}.
3) Inline suggestions may ONLY use line numbers listed under "Commentable lines".

Response JSON schema:
{schema}

Constraints:
- At most 6 inline_suggestions.
- summary_markdown must cover the current complexity, an alternative approach and why it is better.
- answer_code must be runnable as-is.
{ask_section}
Commentable lines:
{target_guide}

Problem document:
{problem_markdown}

PR body:
{pr_body}

Changed code:
{changed_code}
"""

REPAIR_PROMPT = """
The text below was supposed to be ONE JSON object matching this schema but could not be parsed:
{schema}

Rebuild it as a valid JSON object, preserving its meaning. Output only the JSON object.
For any field that cannot be recovered use these placeholders:
- time_complexity / space_complexity: "{unknown_complexity}"
- answer_code: "{unavailable_code}"
- inline_suggestions: []

Malformed output:
{raw}
"""

ANSWER_CODE_PROMPT = """
Write only the reference solution for the problem below in {language}.
Output exactly ONE JSON object of the form {{"answer_code": "<source code>"}}. No prose, no code fences.

Problem document:
{problem_markdown}

Current solution:
{changed_code}
"""


def truncate(text: str, budget: int | None) -> str:
    """Cut ``text`` to ``budget`` characters, marking the cut."""
    if budget is None or len(text) <= budget:
        return text
    return text[:budget] + TRUNCATION_NOTICE


def build_target_guide(targets: list[ChangedFile]) -> str:
    if not targets:
        return "No files are available for line comments."
    return "\n".join(
        f"{target.path} -> [{','.join(str(line) for line in target.right_lines) or 'none'}]"
        for target in targets
    )


def build_changed_code_prompt(files: list[ChangedFile]) -> str:
    if not files:
        return "The changed code could not be loaded."
    return "\n\n---\n\n".join(
        f"FILE: {file.path}\n"
        f"ADDED_LINES: {','.join(str(line) for line in file.added_lines) or 'none'}\n"
        f"PATCH:\n{file.patch}\n\nCODE:\n{file.content}"
        for file in files
    )


def build_review_prompt(request: ReviewRequest, budget: int | None = None) -> str:
    """Build the review prompt; with ``budget`` every free-text field is truncated."""
    ask_section = ""
    if request.ask_request:
        ask_section = f"\nThe author asked for feedback on: {truncate(request.ask_request, budget)}\n"

    return REVIEW_PROMPT.format(
        language=request.language,
        schema=RESPONSE_SCHEMA,
        ask_section=ask_section,
        target_guide=build_target_guide(request.review_targets),
        problem_markdown=truncate(request.problem_markdown, budget),
        pr_body=truncate(request.pr_body, budget),
        changed_code=truncate(build_changed_code_prompt(request.review_targets), budget),
    )


def build_prompt_variants(request: ReviewRequest, compact_budget: int) -> list[str]:
    """Return the full prompt and, when it differs, the compact prompt."""
    full = build_review_prompt(request)
    compact = build_review_prompt(request, budget=compact_budget)
    return [full] if compact == full else [full, compact]


def build_repair_prompt(raw: str, budget: int = 12000) -> str:
    return REPAIR_PROMPT.format(
        schema=RESPONSE_SCHEMA,
        unknown_complexity=UNKNOWN_COMPLEXITY,
        unavailable_code=UNAVAILABLE_ANSWER_CODE,
        raw=truncate(raw, budget),
    )


def build_answer_code_prompt(request: ReviewRequest, budget: int) -> str:
    return ANSWER_CODE_PROMPT.format(
        language=request.language,
        problem_markdown=truncate(request.problem_markdown, budget),
        changed_code=truncate(build_changed_code_prompt(request.review_targets), budget),
    )
