"""Core data models for story execution."""

from datetime import UTC, datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator


class MessageRole(str, Enum):
    """Message role in conversation."""

    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class StoryStatus(str, Enum):
    """Lifecycle status of a user story."""

    PENDING = "pending"
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"

    @property
    def is_terminal(self) -> bool:
        return self is not StoryStatus.PENDING


class ToolDefinition(BaseModel):
    """A tool offered to the completion backend."""

    name: str
    description: str
    input_schema: dict[str, Any]

    @property
    def required(self) -> list[str]:
        return list(self.input_schema.get("required", []))


class ToolCall(BaseModel):
    """Tool invocation requested by the model."""

    id: str
    name: str
    input: str = "{}"  # raw JSON text as issued by the model


class Message(BaseModel):
    """Single message in a story conversation."""

    role: MessageRole
    content: str = ""
    tool_calls: list[ToolCall] = Field(default_factory=list)
    tool_call_id: str | None = None


class Response(BaseModel):
    """Result of one completion call.

    ``done`` defaults to "no tool calls were requested". Adapters may set it
    to False for a turn that carries neither tool calls nor usable text.
    """

    content: str = ""
    tool_calls: list[ToolCall] = Field(default_factory=list)
    done: bool | None = None

    @model_validator(mode="after")
    def _derive_done(self) -> "Response":
        if self.done is None:
            self.done = not self.tool_calls
        return self


class StepResult(BaseModel):
    """One executed tool call."""

    tool: str
    input: str
    output: str


class UserStory(BaseModel):
    """Integration-test scenario drafted by the model."""

    title: str
    description: str = ""
    steps: list[str] = Field(default_factory=list)
    step_results: list[StepResult] = Field(default_factory=list)
    status: StoryStatus = StoryStatus.PENDING
    error: str = ""
    duration_ms: int = 0


class Report(BaseModel):
    """Aggregated outcome of a run."""

    project_summary: str = ""
    user_stories: list[UserStory] = Field(default_factory=list)
    total_steps: int = 0
    passed: int = 0
    failed: int = 0
    skipped: int = 0
    duration_ms: int = 0
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def build(
        cls,
        stories: list[UserStory],
        total_steps: int,
        duration_ms: int,
        project_summary: str = "",
    ) -> "Report":
        """Count statuses and freeze the result."""
        counts = {status: 0 for status in StoryStatus}
        for story in stories:
            counts[story.status] += 1

        return cls(
            project_summary=project_summary,
            user_stories=stories,
            total_steps=total_steps,
            passed=counts[StoryStatus.PASSED],
            failed=counts[StoryStatus.FAILED],
            skipped=counts[StoryStatus.SKIPPED],
            duration_ms=duration_ms,
        )

    @property
    def total(self) -> int:
        return len(self.user_stories)

    @property
    def success(self) -> bool:
        """True when no story failed."""
        return self.failed == 0


class LLMConfig(BaseModel):
    """Configuration for a completion client."""

    api_key: str
    base_url: str | None = None
    default_model: str
    temperature: float = 0.0
    max_tokens: int = 4096
    timeout: int = 120
    max_retries: int = 3

    provider: Literal["openai", "openrouter", "zai", "ollama"] = "openai"
    metadata: dict[str, Any] = Field(default_factory=dict)
