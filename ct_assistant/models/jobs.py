"""Job payloads delivered by the webhook relay through the queue."""

import json
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from ct_assistant.errors import InvalidJobError


class _BaseJob(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True, extra="ignore"
    )

    v: Literal[1] = 1
    installation_id: int = Field(gt=0)
    owner: str
    repo: str
    sender_type: str | None = None

    @field_validator("owner", "repo")
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("owner and repo cannot be empty")
        return v.strip()

    @property
    def repo_full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    @property
    def sent_by_bot(self) -> bool:
        return self.sender_type == "Bot"


class PushJob(_BaseJob):
    """A branch received a push; template checks are refreshed for its open PRs."""

    type: Literal["push"] = "push"
    branch: str = Field(min_length=1)


class PullRequestJob(_BaseJob):
    """A pull request was opened, edited or synchronized."""

    type: Literal["pull_request"] = "pull_request"
    pull_number: int = Field(gt=0)
    action: Literal["opened", "edited", "synchronize"] = "opened"


WorkerJob = Annotated[PushJob | PullRequestJob, Field(discriminator="type")]

_job_adapter: TypeAdapter[PushJob | PullRequestJob] = TypeAdapter(WorkerJob)


def parse_job(payload: str | bytes | dict[str, Any]) -> PushJob | PullRequestJob:
    """Validate a queued payload (JSON text or dict) into a job.

    Raises:
        InvalidJobError: If the payload is not valid JSON or fails validation
    """
    try:
        data = json.loads(payload) if isinstance(payload, (str, bytes)) else payload
        return _job_adapter.validate_python(data)
    except (json.JSONDecodeError, ValidationError) as e:
        raise InvalidJobError(f"Invalid worker job payload: {e}") from e
