"""Unit tests for loading changed files."""

from types import SimpleNamespace

import pytest

from ct_assistant.services.changed_files import load_changed_files, load_primary_code


def _pr(files):
    return SimpleNamespace(
        number=7,
        head=SimpleNamespace(ref="base", sha="abc123"),
        get_files=lambda: [
            SimpleNamespace(filename=name, patch=patch, status=status)
            for name, patch, status in files
        ],
    )


@pytest.mark.asyncio
async def test_load_changed_files_prefers_handwritten_and_truncates(fake_repo):
    fake_repo.snapshots["base"] = {
        "src/Main.java": "x" * 50,
        "백준/1000.A+B/A+B.java": "generated",
    }
    pr = _pr(
        [
            ("src/Main.java", "@@ -0,0 +1 @@\n+x", "added"),
            ("백준/1000.A+B/A+B.java", "@@ -0,0 +1 @@\n+g", "added"),
            ("README.md", "@@ -0,0 +1 @@\n+r", "added"),
            ("Old.java", None, "removed"),
        ]
    )

    files = await load_changed_files(fake_repo, pr, max_chars_per_file=10)

    assert [f.path for f in files] == ["src/Main.java"]
    assert files[0].content == "x" * 10
    assert files[0].added_lines == [1]


@pytest.mark.asyncio
async def test_load_changed_files_skips_missing_content(fake_repo):
    pr = _pr([("src/Gone.java", "@@ -0,0 +1 @@\n+x", "modified")])
    assert await load_changed_files(fake_repo, pr) == []


@pytest.mark.asyncio
async def test_load_primary_code(fake_repo):
    fake_repo.snapshots["base"] = {"src/Main.java": "class Main {}"}
    pr = _pr([("src/Main.java", "", "added"), ("notes.md", "", "added")])

    assert await load_primary_code(fake_repo, pr, [".java"]) == "class Main {}"
    assert await load_primary_code(fake_repo, pr, [".py"]) is None
