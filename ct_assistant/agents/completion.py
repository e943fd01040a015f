"""Single-attempt text completions through Pydantic AI."""

import asyncio
import logging
import os
from typing import Protocol

from pydantic_ai import Agent
from pydantic_ai.exceptions import ModelHTTPError

from ct_assistant.config.settings import Settings, settings
from ct_assistant.errors import CompletionRateLimited, CompletionTransportError

logger = logging.getLogger(__name__)

# Pydantic AI model prefixes per configured provider
PROVIDER_PREFIXES = {
    "openai": "openai",
    "gemini": "google-gla",
}
API_KEY_ENV_VARS = {
    "openai": "OPENAI_API_KEY",
    "gemini": "GEMINI_API_KEY",
}


class CompletionFn(Protocol):
    """One completion attempt: returns raw text or raises a completion error."""

    async def __call__(self, model: str, prompt: str) -> str: ...


def _looks_rate_limited(error: Exception) -> bool:
    error_str = str(error).lower()
    return "429" in error_str or "rate limit" in error_str or "resource_exhausted" in error_str


class CompletionClient:
    """Run one prompt against one model with a hard timeout.

    Errors are normalized to ``CompletionRateLimited`` (HTTP 429) and
    ``CompletionTransportError`` (everything else, including timeouts).
    """

    def __init__(self, config: Settings | None = None) -> None:
        self.config = config or settings
        self.provider = self.config.ai_provider
        self.timeout = self.config.ai_timeout_seconds
        self._agents: dict[str, Agent[None, str]] = {}

        # Pydantic AI providers read their API key from the environment
        api_key = self.config.ai_api_key
        if api_key:
            os.environ[API_KEY_ENV_VARS[self.provider]] = api_key

    def _agent(self, model: str) -> Agent[None, str]:
        if model not in self._agents:
            model_id = model if ":" in model else f"{PROVIDER_PREFIXES[self.provider]}:{model}"
            self._agents[model] = Agent(model_id, output_type=str)
        return self._agents[model]

    async def __call__(self, model: str, prompt: str) -> str:
        try:
            result = await asyncio.wait_for(self._agent(model).run(prompt), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise CompletionTransportError(f"{model} timed out after {self.timeout:.1f}s") from e
        except ModelHTTPError as e:
            if e.status_code == 429:
                raise CompletionRateLimited(f"{model} is rate limited") from e
            raise CompletionTransportError(f"{model} returned HTTP {e.status_code}") from e
        except Exception as e:
            if _looks_rate_limited(e):
                raise CompletionRateLimited(f"{model} is rate limited: {e}") from e
            raise CompletionTransportError(f"{model} request failed: {type(e).__name__}: {e}") from e

        text = (result.output or "").strip()
        if not text:
            raise CompletionTransportError(f"{model} returned an empty response")
        return text
