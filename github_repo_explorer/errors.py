"""Error taxonomy for explorer operations."""


class ExplorerError(Exception):
    """Base class for every error raised by the explorer."""


class RateLimitedError(ExplorerError):
    """The remote quota is exhausted until ``reset_at`` (unix timestamp)."""

    def __init__(self, reset_at: float | None, message: str = "Rate limit exceeded"):
        self.reset_at = reset_at
        super().__init__(message)


class TransientError(ExplorerError):
    """A transport-level failure (connection reset, timeout) worth retrying."""


class StatusError(ExplorerError):
    """The remote answered with a status that is neither success nor not-found."""

    def __init__(self, status: int, message: str | None = None):
        self.status = status
        super().__init__(f"status code is: {status}" + (f" ({message})" if message else ""))


class NotFoundError(ExplorerError):
    """The requested resource does not exist (404)."""


class ClientMisuseError(ExplorerError, ValueError):
    """A required parameter is missing or empty."""


class ConfigurationError(ClientMisuseError):
    """The explorer cannot be constructed with the current settings."""


class RetriesExhaustedError(ExplorerError):
    """Every attempt failed; ``errors`` holds one entry per counted attempt."""

    def __init__(self, errors: list[Exception]):
        self.errors = list(errors)
        lines = [f"  {i + 1}. {e}" for i, e in enumerate(self.errors)]
        super().__init__(f"{len(self.errors)} attempts failed:\n" + "\n".join(lines))
