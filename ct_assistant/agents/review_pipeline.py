"""Review generation with a layered resilience policy.

Every completion attempt ends in one of three outcomes::

    Requesting(model, prompt) -> Ok(raw) | RateLimited | Failed

and a pure transition table decides what happens next. Around that loop:

1. The primary model is tried with the full prompt, then the compact prompt.
   Rate limiting aborts the phase at once; it is global, not prompt-specific.
2. If the primary model only failed in transport, the fallback model (when
   configured and distinct) runs the same loop, a bounded number of times.
3. Output that does not decode gets one repair request to the same model.
4. A result without answer code gets one narrow answer-code request.

Nothing here raises for provider trouble: the pipeline returns None and the
caller reports "AI review unavailable".
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum

from ct_assistant.agents.completion import CompletionClient, CompletionFn
from ct_assistant.agents.decoding import DecodeError, decode_answer_code, decode_review
from ct_assistant.config.settings import Settings, settings
from ct_assistant.errors import CompletionRateLimited, CompletionTransportError
from ct_assistant.models.review import ReviewRequest, ReviewResult
from ct_assistant.prompts.review_prompt import (
    build_answer_code_prompt,
    build_prompt_variants,
    build_repair_prompt,
)
from ct_assistant.utils.rate_limiter import backoff_delay

logger = logging.getLogger(__name__)


class Outcome(str, Enum):
    OK = "ok"
    RATE_LIMITED = "rate_limited"
    FAILED = "failed"


class Step(str, Enum):
    ACCEPT = "accept"
    NEXT_PROMPT = "next_prompt"
    ABORT = "abort"
    EXHAUSTED = "exhausted"


# (outcome, another prompt variant remains) -> next step
TRANSITIONS: dict[tuple[Outcome, bool], Step] = {
    (Outcome.OK, True): Step.ACCEPT,
    (Outcome.OK, False): Step.ACCEPT,
    (Outcome.RATE_LIMITED, True): Step.ABORT,
    (Outcome.RATE_LIMITED, False): Step.ABORT,
    (Outcome.FAILED, True): Step.NEXT_PROMPT,
    (Outcome.FAILED, False): Step.EXHAUSTED,
}


def transition(outcome: Outcome, has_next_prompt: bool) -> Step:
    return TRANSITIONS[(outcome, has_next_prompt)]


@dataclass(frozen=True)
class Attempt:
    outcome: Outcome
    raw: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class PhaseResult:
    """How one model fared across the prompt variants."""

    model: str
    outcome: Outcome
    raw: str | None = None

    @property
    def transport_failed(self) -> bool:
        return self.outcome is Outcome.FAILED


class ReviewGenerationPipeline:
    """Obtain a validated ReviewResult from the completion provider."""

    def __init__(
        self,
        complete: CompletionFn,
        primary_model: str,
        fallback_model: str | None = None,
        fallback_max_retries: int = 2,
        compact_budget: int = 2500,
        retry_initial_delay: float = 1.0,
        retry_max_delay: float = 30.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.complete = complete
        self.primary_model = primary_model
        self.fallback_model = fallback_model
        self.fallback_max_retries = fallback_max_retries
        self.compact_budget = compact_budget
        self.retry_initial_delay = retry_initial_delay
        self.retry_max_delay = retry_max_delay
        self._sleep = sleep

    @classmethod
    def from_settings(
        cls, config: Settings | None = None, complete: CompletionFn | None = None
    ) -> "ReviewGenerationPipeline":
        config = config or settings
        return cls(
            complete=complete or CompletionClient(config),
            primary_model=config.ai_model,
            fallback_model=config.ai_fallback_model,
            fallback_max_retries=config.ai_fallback_max_retries,
            compact_budget=config.prompt_compact_budget,
            retry_initial_delay=config.ai_retry_initial_delay,
        )

    async def _attempt(self, model: str, prompt: str) -> Attempt:
        try:
            raw = await self.complete(model, prompt)
        except CompletionRateLimited as e:
            return Attempt(Outcome.RATE_LIMITED, error=str(e))
        except CompletionTransportError as e:
            return Attempt(Outcome.FAILED, error=str(e))
        return Attempt(Outcome.OK, raw=raw)

    async def _run_phase(self, model: str, prompts: list[str]) -> PhaseResult:
        """Try each prompt variant against ``model`` until the table says stop."""
        for index, prompt in enumerate(prompts):
            attempt = await self._attempt(model, prompt)
            step = transition(attempt.outcome, has_next_prompt=index + 1 < len(prompts))

            if step is Step.ACCEPT:
                return PhaseResult(model=model, outcome=Outcome.OK, raw=attempt.raw)
            if step is Step.ABORT:
                logger.warning(f"{model} is rate limited; abandoning this model: {attempt.error}")
                return PhaseResult(model=model, outcome=Outcome.RATE_LIMITED)
            if step is Step.NEXT_PROMPT:
                logger.warning(
                    f"{model} failed on prompt variant {index + 1}/{len(prompts)}: "
                    f"{attempt.error}; trying the next variant"
                )
                continue
            logger.warning(f"{model} failed on every prompt variant: {attempt.error}")

        return PhaseResult(model=model, outcome=Outcome.FAILED)

    async def _run_fallback(self, prompts: list[str]) -> PhaseResult:
        model = self.fallback_model
        assert model is not None
        phase = PhaseResult(model=model, outcome=Outcome.FAILED)
        for attempt in range(self.fallback_max_retries):
            if attempt > 0:
                await self._sleep(
                    backoff_delay(attempt - 1, self.retry_initial_delay, self.retry_max_delay)
                )
            logger.info(
                f"Trying fallback model {model} "
                f"(attempt {attempt + 1}/{self.fallback_max_retries})"
            )
            phase = await self._run_phase(model, prompts)
            if not phase.transport_failed:
                break
        return phase

    async def _decode_or_repair(self, model: str, raw: str) -> ReviewResult | None:
        decoded = decode_review(raw)
        if not isinstance(decoded, DecodeError):
            return decoded.result

        logger.warning(
            f"{model} output did not decode ({decoded.reason}); requesting a repair. "
            f"Preview: {raw[:300]!r}"
        )
        attempt = await self._attempt(model, build_repair_prompt(raw))
        if attempt.outcome is not Outcome.OK or attempt.raw is None:
            logger.warning(f"Repair request to {model} failed: {attempt.outcome.value}")
            return None

        repaired = decode_review(attempt.raw)
        if isinstance(repaired, DecodeError):
            logger.warning(f"Repaired output from {model} still invalid: {repaired.reason}")
            return None
        return repaired.result

    async def _recover_answer_code(
        self, model: str, request: ReviewRequest, result: ReviewResult
    ) -> ReviewResult:
        logger.info(f"Answer code missing; asking {model} for it separately")
        attempt = await self._attempt(
            model, build_answer_code_prompt(request, self.compact_budget)
        )
        if attempt.outcome is not Outcome.OK or attempt.raw is None:
            return result

        code = decode_answer_code(attempt.raw)
        if code is None:
            logger.warning(f"{model} did not return usable answer code")
            return result
        return result.model_copy(update={"answer_code": code})

    async def generate(self, request: ReviewRequest) -> ReviewResult | None:
        """Run the full policy; None means the AI review is unavailable."""
        prompts = build_prompt_variants(request, self.compact_budget)

        phase = await self._run_phase(self.primary_model, prompts)
        if (
            phase.transport_failed
            and self.fallback_model
            and self.fallback_model != self.primary_model
        ):
            phase = await self._run_fallback(prompts)

        if phase.outcome is not Outcome.OK or phase.raw is None:
            logger.error(f"No review generated (last model {phase.model}: {phase.outcome.value})")
            return None

        result = await self._decode_or_repair(phase.model, phase.raw)
        if result is None:
            return None

        if not result.has_answer_code:
            result = await self._recover_answer_code(phase.model, request, result)

        logger.info(
            f"Generated review with {phase.model}: "
            f"{len(result.inline_suggestions)} inline suggestions"
        )
        return result
