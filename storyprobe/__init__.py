"""storyprobe - LLM-driven integration testing for backend services."""

from storyprobe.agents import (
    Agent,
    AgentConfig,
    ConsoleObserver,
    ConversationRunner,
    LoggingObserver,
    NoopObserver,
    Observer,
    StoryGenerator,
    ToolExecutor,
)
from storyprobe.backends import (
    HTTPClient,
    MessageBusBackend,
    SQLAlchemyBackend,
    SQLBackend,
)
from storyprobe.core import (
    APIKeyError,
    CompletionClient,
    ConfigurationError,
    ExtractionError,
    LLMConfig,
    LLMError,
    Message,
    MessageRole,
    RateLimitError,
    Report,
    Response,
    StepResult,
    StoryGenerationError,
    StoryProbeError,
    StoryStatus,
    TimeoutError,
    ToolCall,
    ToolDefinition,
    UserStory,
)
from storyprobe.providers import OpenAICompletionClient
from storyprobe.reporting import ReportGenerator
from storyprobe.source import SourceExtractor, SourceModel

__version__ = "0.1.0"

__all__ = [
    # Version
    "__version__",
    # Orchestration
    "Agent",
    "AgentConfig",
    "ConversationRunner",
    "StoryGenerator",
    "ToolExecutor",
    # Observers
    "Observer",
    "NoopObserver",
    "ConsoleObserver",
    "LoggingObserver",
    # Core
    "CompletionClient",
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
    # Exceptions
    "StoryProbeError",
    "ConfigurationError",
    "ExtractionError",
    "StoryGenerationError",
    "LLMError",
    "APIKeyError",
    "RateLimitError",
    "TimeoutError",
    # Backends
    "HTTPClient",
    "SQLBackend",
    "SQLAlchemyBackend",
    "MessageBusBackend",
    # Providers
    "OpenAICompletionClient",
    # Source
    "SourceExtractor",
    "SourceModel",
    # Reporting
    "ReportGenerator",
]
