"""Request-scoped values describing a pull request's changes and planned commits."""

from dataclasses import dataclass, field

from ct_assistant.utils.diff_index import DiffLineIndex, index_patch


@dataclass
class ChangedFile:
    """A changed file loaded for review.

    Line sets are derived from ``patch`` once, when the value is built.
    """

    path: str
    patch: str = ""
    content: str = ""
    line_index: DiffLineIndex = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.line_index = index_patch(self.patch)

    @property
    def added_lines(self) -> list[int]:
        return self.line_index.added_lines

    @property
    def right_lines(self) -> list[int]:
        return self.line_index.right_lines


@dataclass(frozen=True)
class PlannedFile:
    """One file of a commit plan."""

    path: str
    content: str


@dataclass
class CommitPlan:
    """Files to write to a branch in a single commit."""

    branch: str
    message: str
    files: list[PlannedFile] = field(default_factory=list)

    def add(self, path: str, content: str) -> None:
        self.files.append(PlannedFile(path=path, content=content))

    @property
    def paths(self) -> list[str]:
        return [planned.path for planned in self.files]
