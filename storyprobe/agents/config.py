"""Agent configuration."""

from dataclasses import dataclass, field
from pathlib import Path

from storyprobe.agents.callbacks import NoopObserver, Observer
from storyprobe.backends.bus import DEFAULT_READ_TIMEOUT, MessageBusBackend
from storyprobe.backends.sql import SQLBackend
from storyprobe.core.client import CompletionClient
from storyprobe.core.exceptions import ConfigurationError

DEFAULT_MAX_STEPS_TOTAL = 200
DEFAULT_MAX_STEPS_PER_STORY = 20


@dataclass
class AgentConfig:
    """Every option the agent recognizes, with its default.

    Attributes:
        llm: Completion backend used for planning and execution
        source_path: Root of the service source code analyzed by ``plan``
        sql: SQL backend; enables the ``sql_*`` tools
        bus: Message-bus backend; enables the ``kafka_*`` tools
        service_url: Base URL of the running service
        max_steps_total: Step budget shared by every story of a run
        max_steps_per_story: Step budget of a single story
        observer: Progress hooks
        http_timeout: Per-request timeout of the HTTP tool, in seconds
        bus_read_timeout: Upper bound of one topic snapshot read, in seconds
    """

    llm: CompletionClient
    source_path: str | Path | None = None
    sql: SQLBackend | None = None
    bus: MessageBusBackend | None = None
    service_url: str = ""
    max_steps_total: int = DEFAULT_MAX_STEPS_TOTAL
    max_steps_per_story: int = DEFAULT_MAX_STEPS_PER_STORY
    observer: Observer = field(default_factory=NoopObserver)
    http_timeout: float = 30.0
    bus_read_timeout: float = DEFAULT_READ_TIMEOUT

    def __post_init__(self):
        if self.llm is None:
            raise ConfigurationError("llm client is required")
        if self.max_steps_total < 0:
            raise ConfigurationError("max_steps_total must be >= 0")
        if self.max_steps_per_story < 1:
            raise ConfigurationError("max_steps_per_story must be >= 1")
        if self.observer is None:
            self.observer = NoopObserver()
