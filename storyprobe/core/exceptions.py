"""Custom exceptions for storyprobe."""


class StoryProbeError(Exception):
    """Base exception for storyprobe errors."""

    pass


class ConfigurationError(StoryProbeError):
    """Raised when the agent is configured inconsistently."""

    pass


class ExtractionError(StoryProbeError):
    """Raised when the source surface cannot be extracted."""

    def __init__(self, message: str, path: str | None = None) -> None:
        """Initialize error.

        Args:
            message: Error message
            path: Source path being analyzed
        """
        self.path = path
        super().__init__(f"analyze {path}: {message}" if path else message)


class StoryGenerationError(StoryProbeError):
    """Raised when user stories cannot be generated from the source model."""

    def __init__(self, message: str, attempts: int = 0) -> None:
        """Initialize error.

        Args:
            message: Error message
            attempts: Completion calls made before giving up
        """
        self.attempts = attempts
        super().__init__(message)


class LLMError(StoryProbeError):
    """Base exception for completion backend errors."""

    def __init__(self, message: str, provider: str = "unknown") -> None:
        """Initialize error.

        Args:
            message: Error message
            provider: Provider name
        """
        self.provider = provider
        super().__init__(f"[{provider}] {message}")


class APIKeyError(LLMError):
    """Raised when API key is invalid or missing."""

    pass


class RateLimitError(LLMError):
    """Raised when rate limit is exceeded."""

    def __init__(
        self,
        message: str,
        provider: str = "unknown",
        retry_after: int | None = None,
    ) -> None:
        """Initialize error.

        Args:
            message: Error message
            provider: Provider name
            retry_after: Seconds to wait before retrying
        """
        self.retry_after = retry_after
        super().__init__(message, provider=provider)


class TimeoutError(LLMError):
    """Raised when request times out."""

    pass
