"""GitHub App authentication service."""

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path

import httpx
import jwt
from github import Auth, Github

from ct_assistant.config.settings import Settings, settings

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"


@dataclass
class CachedToken:
    token: str
    expires_at: datetime


class GitHubAppAuth:
    """Mint and cache installation access tokens for a GitHub App.

    Tokens are cached per installation id and refreshed shortly before they
    expire. Losing the cache only costs a re-authentication round trip.
    """

    def __init__(
        self,
        config: Settings | None = None,
        refresh_buffer: timedelta = timedelta(minutes=5),
    ) -> None:
        """Initialize GitHub App authentication.

        Raises:
            ConfigurationError: If the App id or private key is not configured
        """
        self.config = config or settings
        self.config.require_github_app_credentials()
        self.app_id = self.config.github_app_id
        self.private_key = self._load_private_key()
        self.api_url = self.config.github_api_base_url or GITHUB_API_URL
        self.refresh_buffer = refresh_buffer

        self._tokens: dict[int, CachedToken] = {}
        self._locks: dict[int, asyncio.Lock] = {}

    def _load_private_key(self) -> str:
        """Load the GitHub App private key.

        Raises:
            ValueError: If the key file is missing or the key looks truncated
        """
        key = self.config.resolve_private_key()
        if key is None and self.config.github_app_private_key_path:
            key_path = Path(self.config.github_app_private_key_path)
            if not key_path.exists():
                raise ValueError(f"Private key file not found: {key_path}")
            key = key_path.read_text()

        key = (key or "").strip()
        if not (key.startswith("-----BEGIN") and key.endswith("-----")):
            raise ValueError(
                "GitHub App private key appears incomplete. "
                "Ensure it includes the full key content with BEGIN/END markers."
            )
        return key

    def generate_jwt(self) -> str:
        """Generate a JWT for authenticating as the App itself.

        It's valid for 10 minutes (GitHub's maximum).
        """
        # 60 second clock drift protection
        now = int(time.time()) - 60
        payload = {
            "iat": now,
            "exp": now + (10 * 60),
            "iss": self.app_id,
        }
        return jwt.encode(payload, self.private_key, algorithm="RS256")

    def _is_token_valid(self, cached: CachedToken | None) -> bool:
        if cached is None:
            return False
        return datetime.now(timezone.utc) < cached.expires_at - self.refresh_buffer

    async def get_installation_access_token(
        self, installation_id: int, force_refresh: bool = False
    ) -> str:
        """Get an installation access token, minting a new one when needed.

        Args:
            installation_id: The App installation to act as
            force_refresh: Ignore any cached token

        Raises:
            httpx.HTTPError: If the token request fails
        """
        lock = self._locks.setdefault(installation_id, asyncio.Lock())
        async with lock:
            cached = self._tokens.get(installation_id)
            if not force_refresh and self._is_token_valid(cached):
                return cached.token  # type: ignore[union-attr]

            logger.info(f"Requesting installation token for installation {installation_id}")
            headers = {
                "Accept": "application/vnd.github+json",
                "Authorization": f"Bearer {self.generate_jwt()}",
                "X-GitHub-Api-Version": "2022-11-28",
            }
            url = f"{self.api_url}/app/installations/{installation_id}/access_tokens"

            async with httpx.AsyncClient(timeout=self.config.github_timeout) as client:
                response = await client.post(url, headers=headers)
                response.raise_for_status()
                data = response.json()

            cached = CachedToken(
                token=data["token"],
                expires_at=datetime.fromisoformat(data["expires_at"].replace("Z", "+00:00")),
            )
            self._tokens[installation_id] = cached
            return cached.token

    def invalidate(self, installation_id: int) -> None:
        self._tokens.pop(installation_id, None)

    async def get_github_client(self, installation_id: int) -> Github:
        """Return a PyGithub client authenticated as the installation."""
        token = await self.get_installation_access_token(installation_id)
        kwargs: dict[str, object] = {
            "auth": Auth.Token(token),
            "per_page": 100,
            "timeout": int(self.config.github_timeout),
        }
        if self.config.github_api_base_url:
            kwargs["base_url"] = self.config.github_api_base_url
        return Github(**kwargs)  # type: ignore[arg-type]


_github_app_auth: GitHubAppAuth | None = None


def get_github_app_auth() -> GitHubAppAuth:
    """Return the process-wide GitHubAppAuth, creating it on first use."""
    global _github_app_auth
    if _github_app_auth is None:
        _github_app_auth = GitHubAppAuth()
    return _github_app_auth
