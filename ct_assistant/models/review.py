"""Review models produced by the review pipeline and consumed by the posters."""

from dataclasses import dataclass
from dataclasses import field as dc_field

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ct_assistant.models.changes import ChangedFile

# Placeholder the model is told to emit when it cannot produce solution code.
UNAVAILABLE_ANSWER_CODE = "// answer code unavailable"
UNKNOWN_COMPLEXITY = "O(unknown)"


class Suggestion(BaseModel):
    """An AI-proposed inline comment.

    ``line`` is the model's best guess and may not be commentable as-is.
    """

    model_config = ConfigDict(frozen=True)

    path: str
    line: int = Field(gt=0)
    body: str


class ResolvedComment(BaseModel):
    """A suggestion placed on a line the review API accepts for the head commit."""

    model_config = ConfigDict(frozen=True)

    path: str
    line: int = Field(gt=0)
    body: str

    def to_review_comment(self) -> dict[str, object]:
        """Shape expected by the create-review endpoint."""
        return {"path": self.path, "line": self.line, "side": "RIGHT", "body": self.body}


class ReviewResult(BaseModel):
    """Validated review returned by the review pipeline."""

    summary_markdown: str
    time_complexity: str = UNKNOWN_COMPLEXITY
    space_complexity: str = UNKNOWN_COMPLEXITY
    answer_code: str = UNAVAILABLE_ANSWER_CODE
    inline_suggestions: list[Suggestion] = Field(default_factory=list)

    @field_validator("summary_markdown", "time_complexity", "space_complexity", "answer_code")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return v.strip()

    @property
    def has_answer_code(self) -> bool:
        return bool(self.answer_code) and self.answer_code != UNAVAILABLE_ANSWER_CODE

    def format_summary_markdown(self, code_fence: str = "") -> str:
        """Format the summary comment posted under the ai-review marker.

        Args:
            code_fence: Language tag for the answer code block

        Returns:
            Markdown with the summary, complexity and the reference solution
        """
        lines = [self.summary_markdown, ""]
        lines.append("## Complexity\n")
        lines.append(f"- **Time:** {self.time_complexity}")
        lines.append(f"- **Space:** {self.space_complexity}\n")

        lines.append("## Reference Solution\n")
        if self.has_answer_code:
            lines.append(f"```{code_fence}\n{self.answer_code}\n```")
        else:
            lines.append("_The reference solution could not be generated._")

        return "\n".join(lines)


@dataclass
class ReviewRequest:
    """Inputs the review pipeline builds its prompts from."""

    problem_markdown: str
    pr_body: str
    language: str
    review_targets: list[ChangedFile] = dc_field(default_factory=list)
    ask_request: str | None = None
