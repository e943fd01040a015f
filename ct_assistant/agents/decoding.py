"""Schema-validated decoding of raw model output into a ReviewResult.

Models wrap JSON in code fences or add prose around it, so the outermost
``{...}`` span is extracted before validation. Decoding returns a tagged
outcome instead of raising, so the pipeline can decide whether to repair.
"""

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, StrictStr, ValidationError, field_validator

from ct_assistant.models.review import (
    UNAVAILABLE_ANSWER_CODE,
    UNKNOWN_COMPLEXITY,
    ReviewResult,
    Suggestion,
)


@dataclass(frozen=True)
class Decoded:
    result: ReviewResult


@dataclass(frozen=True)
class DecodeError:
    reason: str


DecodeOutcome = Decoded | DecodeError


class ReviewPayload(BaseModel):
    """Wire schema of the review response."""

    model_config = ConfigDict(extra="ignore")

    summary_markdown: StrictStr
    time_complexity: StrictStr
    space_complexity: StrictStr
    answer_code: StrictStr
    inline_suggestions: list[Any]

    @field_validator("summary_markdown")
    @classmethod
    def validate_summary_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("summary_markdown cannot be empty")
        return v


class AnswerCodePayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    answer_code: StrictStr


def extract_json_object(raw: str) -> str | None:
    """Return the outermost ``{...}`` span of ``raw``, or None."""
    start = raw.find("{")
    end = raw.rfind("}")
    if start == -1 or end <= start:
        return None
    return raw[start : end + 1]


def _coerce_line(value: Any) -> int | None:
    """Return ``value`` as a positive integer line number, or None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        line = value
    elif isinstance(value, float) and value.is_integer():
        line = int(value)
    elif isinstance(value, str) and value.strip().isdigit():
        line = int(value.strip())
    else:
        return None
    return line if line > 0 else None


def normalize_suggestions(items: list[Any]) -> list[Suggestion]:
    """Keep well-formed suggestions; silently drop entries missing path, body or line."""
    suggestions: list[Suggestion] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        path = item.get("path")
        body = item.get("body")
        line = _coerce_line(item.get("line"))
        if not isinstance(path, str) or not path.strip():
            continue
        if not isinstance(body, str) or not body.strip():
            continue
        if line is None:
            continue
        suggestions.append(Suggestion(path=path.strip(), line=line, body=body.strip()))
    return suggestions


def decode_review(raw: str) -> DecodeOutcome:
    """Decode raw model text into a ReviewResult."""
    span = extract_json_object(raw or "")
    if span is None:
        return DecodeError("no JSON object found")

    try:
        payload = ReviewPayload.model_validate_json(span)
    except ValidationError as e:
        return DecodeError(f"schema validation failed: {e.error_count()} errors")

    answer_code = payload.answer_code.strip() or UNAVAILABLE_ANSWER_CODE
    return Decoded(
        ReviewResult(
            summary_markdown=payload.summary_markdown,
            time_complexity=payload.time_complexity.strip() or UNKNOWN_COMPLEXITY,
            space_complexity=payload.space_complexity.strip() or UNKNOWN_COMPLEXITY,
            answer_code=answer_code,
            inline_suggestions=normalize_suggestions(payload.inline_suggestions),
        )
    )


def decode_answer_code(raw: str) -> str | None:
    """Decode the answer-code-only response; None when unusable."""
    span = extract_json_object(raw or "")
    if span is None:
        return None
    try:
        payload = AnswerCodePayload.model_validate_json(span)
    except ValidationError:
        return None
    code = payload.answer_code.strip()
    if not code or code == UNAVAILABLE_ANSWER_CODE:
        return None
    return code
