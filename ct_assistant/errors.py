"""Domain exceptions raised across the worker."""


class ConfigurationError(RuntimeError):
    """Required credentials or configuration are missing."""


class InvalidJobError(ValueError):
    """A queued job payload could not be validated."""


class ConcurrentModificationError(RuntimeError):
    """A non-forced branch update was rejected because the branch moved.

    Callers may retry the whole commit against the new tip.
    """

    def __init__(self, branch: str, expected_parent: str) -> None:
        super().__init__(
            f"Branch '{branch}' moved away from {expected_parent[:7]} during commit"
        )
        self.branch = branch
        self.expected_parent = expected_parent


class CompletionRateLimited(RuntimeError):
    """The completion provider answered with a rate-limit status."""


class CompletionTransportError(RuntimeError):
    """The completion call timed out or failed in transport."""
