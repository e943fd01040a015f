"""Application settings using Pydantic Settings for environment variable management."""

import base64
from typing import Literal
from urllib.parse import urlsplit, urlunsplit

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ct_assistant.errors import ConfigurationError


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env.local",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
        populate_by_name=True,
    )

    # GitHub App Configuration
    # Support both GITHUB_APP_* (local) and APP_* / PRIVATE_KEY (deployed) names
    github_app_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("APP_ID", "GITHUB_APP_ID"),
        description="GitHub App ID",
    )
    github_app_private_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("PRIVATE_KEY", "GITHUB_APP_PRIVATE_KEY"),
        description="GitHub App private key content",
    )
    github_app_private_key_base64: str | None = Field(
        default=None,
        validation_alias=AliasChoices("PRIVATE_KEY_BASE64"),
        description="Base64 encoded GitHub App private key",
    )
    github_app_private_key_path: str | None = Field(
        default=None,
        validation_alias=AliasChoices("PRIVATE_KEY_PATH", "GITHUB_APP_PRIVATE_KEY_PATH"),
        description="Path to GitHub App private key .pem file",
    )
    github_host: str | None = Field(
        default=None,
        validation_alias=AliasChoices("GITHUB_HOST"),
        description="GitHub Enterprise host (api.github.com when unset)",
    )
    github_timeout: float = Field(
        default=30.0, description="Timeout in seconds for GitHub REST calls"
    )

    # AI Provider Configuration
    ai_provider: Literal["gemini", "openai"] = Field(
        default="gemini", description="Completion provider to use"
    )
    openai_api_key: str | None = Field(default=None, description="OpenAI API key")
    openai_model: str = Field(default="gpt-4.1-mini", description="OpenAI model")
    openai_timeout_ms: int = Field(
        default=15000, description="OpenAI request timeout in milliseconds"
    )
    gemini_api_key: str | None = Field(default=None, description="Gemini API key")
    gemini_model: str = Field(default="gemini-2.0-flash", description="Gemini model")
    gemini_timeout_ms: int = Field(
        default=15000, description="Gemini request timeout in milliseconds"
    )
    ai_fallback_model: str | None = Field(
        default=None,
        description="Model retried when the primary model only hit transport failures",
    )
    ai_fallback_max_retries: int = Field(
        default=2, description="Maximum attempts against the fallback model"
    )
    ai_retry_initial_delay: float = Field(
        default=1.0, description="Initial backoff delay between fallback attempts"
    )
    prompt_compact_budget: int = Field(
        default=2500,
        description="Character budget per prompt field in the compact prompt",
    )

    # Review placement
    line_distance_threshold: int = Field(
        default=20,
        description="Maximum distance when snapping a suggestion to a commentable line",
    )
    max_inline_comments: int = Field(
        default=8, description="Maximum line comments in one inline review"
    )
    max_fallback_suggestions_per_file: int = Field(
        default=5, description="Suggestions listed per file in the grouped fallback"
    )
    max_review_files: int = Field(
        default=8, description="Maximum changed files sent for review"
    )
    max_chars_per_file: int = Field(
        default=3500, description="Maximum characters of file content per review file"
    )
    commit_max_attempts: int = Field(
        default=3, description="Attempts at committing synced files when the branch moves"
    )

    # Redis / worker
    redis_url: str | None = Field(default=None, description="Redis connection URL")
    redis_host: str = Field(default="localhost", description="Redis host")
    redis_port: int = Field(default=6379, description="Redis port")
    redis_password: str | None = Field(default=None, description="Redis password")
    worker_name: str = Field(default="ct-assistant-worker", description="Worker name")
    worker_job_timeout: int = Field(default=600, description="Job timeout in seconds")
    worker_with_scheduler: bool = Field(
        default=True, description="Run the RQ scheduler inside the worker"
    )

    # Observability
    logfire_token: str | None = Field(
        default=None, description="Pydantic Logfire token for observability"
    )

    # Application Settings
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Application environment"
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def ai_model(self) -> str:
        """Primary model name for the selected provider."""
        return self.gemini_model if self.ai_provider == "gemini" else self.openai_model

    @property
    def ai_api_key(self) -> str | None:
        key = self.gemini_api_key if self.ai_provider == "gemini" else self.openai_api_key
        if key and key.strip():
            return key.strip()
        return None

    @property
    def ai_timeout_seconds(self) -> float:
        timeout_ms = (
            self.gemini_timeout_ms if self.ai_provider == "gemini" else self.openai_timeout_ms
        )
        return timeout_ms / 1000

    @property
    def github_api_base_url(self) -> str | None:
        """Resolve GITHUB_HOST to a REST base URL, None for github.com."""
        host = (self.github_host or "").strip()
        if not host:
            return None
        if host.startswith(("http://", "https://")):
            parts = urlsplit(host)
            path = parts.path if parts.path not in ("", "/") else "/api/v3"
            return urlunsplit((parts.scheme, parts.netloc, path, "", "")).rstrip("/")
        return f"https://{host}/api/v3"

    def resolve_private_key(self) -> str | None:
        """Return the PEM private key from content, base64 content or None."""
        if self.github_app_private_key:
            return self.github_app_private_key
        if self.github_app_private_key_base64:
            return base64.b64decode(self.github_app_private_key_base64).decode("utf-8")
        return None

    def require_github_app_credentials(self) -> None:
        """Raise ConfigurationError when the App cannot authenticate."""
        missing = []
        if not self.github_app_id:
            missing.append("APP_ID")
        if not (
            self.github_app_private_key
            or self.github_app_private_key_base64
            or self.github_app_private_key_path
        ):
            missing.append("PRIVATE_KEY or PRIVATE_KEY_BASE64")
        if missing:
            raise ConfigurationError(
                "Missing required environment variables: " + ", ".join(missing)
            )


# Global settings instance
settings = Settings()
