"""Extraction of problem metadata from the PR body template.

The template is a list of ``Label: value`` lines, e.g.::

    - Site: BOJ
    - Problem Number: 10546
    - Language: Java
"""

import re
from typing import Literal
from urllib.parse import urlsplit

from pydantic import BaseModel

SupportedSite = Literal["BOJ", "PROGRAMMERS"]

REQUIRED_TEMPLATE_GUIDE = """
Please fill in the following fields in the PR body.

- Site: BOJ | PROGRAMMERS
- Problem Number: e.g. 10546
- URL: https://www.acmicpc.net/problem/{number} or https://school.programmers.co.kr/learn/courses/30/lessons/{number}
- Language: Java | Python | C++
- ASK: the part you want feedback on, e.g. focus on time complexity
"""

SITE_ALIASES: dict[str, SupportedSite] = {
    "백준": "BOJ",
    "BOJ": "BOJ",
    "BAEKJOON": "BOJ",
    "프로그래머스": "PROGRAMMERS",
    "PROGRAMMERS": "PROGRAMMERS",
    "PGM": "PROGRAMMERS",
    "PROG": "PROGRAMMERS",
}
SITE_URL_PATTERNS: dict[SupportedSite, tuple[str, str]] = {
    "BOJ": (r"(^|\.)acmicpc\.net$", r"/problem/\d+"),
    "PROGRAMMERS": (r"(^|\.)programmers\.co\.kr$", r"/lessons/\d+"),
}


class ProblemMetadata(BaseModel):
    site: SupportedSite | None = None
    problem_number: str | None = None
    problem_url: str | None = None
    language: str | None = None
    ask: str | None = None
    runtime: str | None = None
    memory: str | None = None
    submitted_at: str | None = None

    @property
    def has_required_fields(self) -> bool:
        return bool(self.site and self.problem_number and self.language)


def _field_pattern(label: str) -> re.Pattern[str]:
    return re.compile(rf"^\s*-?\s*{re.escape(label)}\s*:\s*(.+)$", re.IGNORECASE | re.MULTILINE)


def extract_field(body: str, *labels: str) -> str | None:
    """Return the first non-empty value for any of ``labels``."""
    for label in labels:
        match = _field_pattern(label).search(body)
        if match and match.group(1).strip():
            return match.group(1).strip()
    return None


def extract_all_fields(body: str, *labels: str) -> list[str]:
    return [
        match.group(1).strip()
        for label in labels
        for match in _field_pattern(label).finditer(body)
        if match.group(1).strip()
    ]


def parse_site(raw: str) -> SupportedSite | None:
    value = raw.strip()
    return SITE_ALIASES.get(value) or SITE_ALIASES.get(value.upper())


def select_problem_url(candidates: list[str], site: SupportedSite | None) -> str | None:
    """Pick the candidate URL that points at the site's problem page, else the first URL."""
    urls = [url for url in candidates if urlsplit(url).scheme in ("http", "https")]
    if not urls:
        return None
    if site is not None:
        host_pattern, path_pattern = SITE_URL_PATTERNS[site]
        for url in urls:
            parts = urlsplit(url)
            if re.search(host_pattern, parts.hostname or "", re.IGNORECASE) and re.search(
                path_pattern, parts.path
            ):
                return url
    return urls[0]


def parse_pr_body(body: str | None) -> ProblemMetadata:
    if not body:
        return ProblemMetadata()

    site_raw = extract_field(body, "Site", "사이트")
    site = parse_site(site_raw) if site_raw else None
    return ProblemMetadata(
        site=site,
        problem_number=extract_field(body, "Problem Number", "문제 번호", "문제번호"),
        problem_url=select_problem_url(
            extract_all_fields(body, "URL", "Problem URL", "문제 링크", "문제 URL"), site
        ),
        language=extract_field(body, "Language", "언어"),
        ask=extract_field(body, "피드백 요청할 부분", "ASK"),
        runtime=extract_field(body, "Runtime"),
        memory=extract_field(body, "Memory"),
        submitted_at=extract_field(body, "Submitted At"),
    )
