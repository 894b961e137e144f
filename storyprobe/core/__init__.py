"""Core abstractions and models."""

from storyprobe.core.client import CompletionClient
from storyprobe.core.exceptions import (
    APIKeyError,
    ConfigurationError,
    ExtractionError,
    LLMError,
    RateLimitError,
    StoryGenerationError,
    StoryProbeError,
    TimeoutError,
)
from storyprobe.core.models import (
    LLMConfig,
    Message,
    MessageRole,
    Report,
    Response,
    StepResult,
    StoryStatus,
    ToolCall,
    ToolDefinition,
    UserStory,
)

__all__ = [
    # Client
    "CompletionClient",
    # Exceptions
    "StoryProbeError",
    "ConfigurationError",
    "ExtractionError",
    "StoryGenerationError",
    "LLMError",
    "APIKeyError",
    "RateLimitError",
    "TimeoutError",
    # Models
    "LLMConfig",
    "Message",
    "MessageRole",
    "Report",
    "Response",
    "StepResult",
    "StoryStatus",
    "ToolCall",
    "ToolDefinition",
    "UserStory",
]
