"""Abstract completion client interface."""

from abc import ABC, abstractmethod

from storyprobe.core.models import LLMConfig, Message, Response, ToolDefinition


class CompletionClient(ABC):
    """Abstract base class for completion backends.

    Implementations translate the provider-neutral conversation into their
    wire protocol. An assistant message carrying tool calls and no content
    must be sent as a tool-invocation turn, and each tool message must reach
    the provider correlated to its call id.
    """

    def __init__(self, config: LLMConfig) -> None:
        """Initialize client with configuration.

        Args:
            config: LLM configuration
        """
        self.config = config
        self._request_count: int = 0
        self._total_tokens: int = 0

    @abstractmethod
    async def complete(
        self,
        messages: list[Message],
        tools: list[ToolDefinition] | None = None,
    ) -> Response:
        """Send the conversation and return the model's next turn.

        Args:
            messages: Conversation so far
            tools: Tools the model may call; empty for pure text generation

        Returns:
            Response with text content and/or tool calls

        Raises:
            LLMError: If the request fails
        """
        pass

    async def close(self) -> None:
        """Release transport resources."""
        return None

    def get_request_count(self) -> int:
        """Get total number of requests made.

        Returns:
            Request count
        """
        return self._request_count

    def get_total_tokens(self) -> int:
        """Get total tokens reported by the provider."""
        return self._total_tokens

    def reset_metrics(self) -> None:
        """Reset request and token metrics."""
        self._request_count = 0
        self._total_tokens = 0

    def _track_request(self, tokens: int = 0) -> None:
        self._request_count += 1
        self._total_tokens += tokens
