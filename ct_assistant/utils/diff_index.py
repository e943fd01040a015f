"""Line indexes over unified-diff patches.

GitHub only accepts review comments on lines that exist on the right side of
the diff. Each changed file's patch is scanned once into two sorted sets of
new-side line numbers:

- ``added_lines``: lines introduced by ``+``
- ``right_lines``: ``+`` lines and context lines, i.e. everything a review
  comment with ``side="RIGHT"`` may target
"""

import re
from dataclasses import dataclass, field

HUNK_HEADER_PATTERN = re.compile(r"^@@ -\d+(?:,\d+)? \+(\d+)(?:,\d+)? @@")


@dataclass(frozen=True)
class DiffLineIndex:
    """New-side line numbers addressable in a single file's patch."""

    added_lines: list[int] = field(default_factory=list)
    right_lines: list[int] = field(default_factory=list)

    def __contains__(self, line: object) -> bool:
        return line in self.right_lines


def index_patch(patch: str | None) -> DiffLineIndex:
    """Scan a unified-diff patch into added and right-side line sets.

    Lines outside any hunk, including ``---``/``+++`` file headers, are ignored. A missing, headerless or malformed
    patch yields empty sets rather than an error.
    """
    if not patch:
        return DiffLineIndex()

    added: set[int] = set()
    right: set[int] = set()
    new_line = 0
    in_hunk = False

    # Only "\n" ends a patch line; content may contain other Unicode separators
    for line in patch.split("\n"):
        line = line.removesuffix("\r")
        if line.startswith("diff --git"):
            in_hunk = False
            continue
        if line.startswith("@@"):
            match = HUNK_HEADER_PATTERN.match(line)
            if match is None:
                in_hunk = False
                continue
            new_line = int(match.group(1)) - 1
            in_hunk = True
            continue

        if not in_hunk:
            continue

        # File headers only precede the first hunk; in a hunk "+++" is content
        if line.startswith("+"):
            new_line += 1
            added.add(new_line)
            right.add(new_line)
        elif line.startswith(" "):
            new_line += 1
            right.add(new_line)
        # "-" lines and "\ No newline at end of file" do not advance the new side

    return DiffLineIndex(added_lines=sorted(added), right_lines=sorted(right))
