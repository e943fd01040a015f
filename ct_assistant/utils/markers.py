"""Hidden HTML markers identifying comments managed by the bot.

A marker is embedded as the first line of a managed comment body and is the
sole identity key for idempotent upserts. Example body::

    <!-- ct-assistant:ai-review -->
    ## Summary
    ...
"""

from enum import Enum


class CommentMarker(str, Enum):
    """Fixed marker tokens, one per kind of managed comment."""

    TEMPLATE_CHECK = "<!-- ct-assistant:template-check -->"
    AI_REVIEW = "<!-- ct-assistant:ai-review -->"
    INLINE_REVIEW = "<!-- ct-assistant:inline-review -->"
    FILE_REVIEW = "<!-- ct-assistant:file-review -->"

    def tag(self, body: str) -> str:
        """Return ``body`` with this marker as its first line."""
        return f"{self.value}\n{body}"

    def leads(self, body: str | None) -> bool:
        """True when ``body`` starts with this marker."""
        return (body or "").lstrip().startswith(self.value)

    def is_in(self, body: str | None) -> bool:
        return self.value in (body or "")
