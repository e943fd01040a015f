"""Planning of the problem documentation synced into a PR branch.

Fetching the problem page and rendering its Markdown live behind the
``ProblemDocumentSource`` protocol; this module only decides which files
land where.
"""

import re
from dataclasses import dataclass
from typing import Protocol

from ct_assistant.models.changes import CommitPlan
from ct_assistant.utils.pr_template import ProblemMetadata

SITE_ROOT_FOLDERS = {
    "BOJ": "백준",
    "PROGRAMMERS": "프로그래머스",
}
DEFAULT_TITLE = "problem"


@dataclass(frozen=True)
class ProblemDocument:
    title: str
    markdown: str


class ProblemDocumentSource(Protocol):
    """Fetches a problem and renders its README."""

    async def fetch(self, metadata: ProblemMetadata) -> ProblemDocument: ...


@dataclass(frozen=True)
class LanguageProfile:
    name: str
    code_fence: str
    extension: str
    fallback_template: str


JAVA = LanguageProfile(
    name="Java",
    code_fence="java",
    extension=".java",
    fallback_template=(
        "class Main {\n"
        "    public static void main(String[] args) throws Exception {\n"
        "    }\n"
        "}\n"
    ),
)
PYTHON = LanguageProfile(
    name="Python",
    code_fence="python",
    extension=".py",
    fallback_template=(
        "import sys\n\n\n"
        "def solve() -> None:\n"
        "    pass\n\n\n"
        'if __name__ == "__main__":\n'
        "    solve()\n"
    ),
)
CPP = LanguageProfile(
    name="C++",
    code_fence="cpp",
    extension=".cpp",
    fallback_template=(
        "#include <bits/stdc++.h>\n"
        "using namespace std;\n\n"
        "int main() {\n"
        "    ios::sync_with_stdio(false);\n"
        "    cin.tie(nullptr);\n"
        "    return 0;\n"
        "}\n"
    ),
)


def resolve_language_profile(raw_language: str | None) -> LanguageProfile:
    """Map the PR's free-text language to a profile; Java is the default."""
    raw = (raw_language or "").strip().lower()
    if "python" in raw:
        return PYTHON
    if re.search(r"c\+\+|cpp|g\+\+|clang\+\+", raw):
        return CPP
    return JAVA


def sanitize_problem_title(raw: str) -> str:
    """Make a problem title safe to use as a path segment."""
    cleaned = re.sub(r'[\\/:*?"<>|]', " ", raw)
    return re.sub(r"\s+", " ", cleaned).strip()[:80]


def build_sync_plan(
    branch: str,
    metadata: ProblemMetadata,
    document: ProblemDocument,
    source_code: str,
    language: LanguageProfile,
) -> CommitPlan:
    """Plan ``<site root>/<number>.<title>/README.md`` plus the solution file."""
    title = sanitize_problem_title(document.title) or DEFAULT_TITLE
    folder_name = f"{metadata.problem_number}.{title}"
    folder = f"{SITE_ROOT_FOLDERS.get(metadata.site or '', 'misc')}/{folder_name}"

    plan = CommitPlan(branch=branch, message=f"docs: sync problem assets for {folder_name}")
    plan.add(f"{folder}/README.md", document.markdown)
    plan.add(f"{folder}/{title}{language.extension}", source_code)
    return plan
