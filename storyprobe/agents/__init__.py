"""Agent orchestration: tool execution, story generation and story runs."""

from storyprobe.agents.agent import TOTAL_BUDGET_EXHAUSTED, Agent
from storyprobe.agents.callbacks import ConsoleObserver, LoggingObserver, NoopObserver, Observer
from storyprobe.agents.config import AgentConfig
from storyprobe.agents.executor import ToolExecutor
from storyprobe.agents.generator import (
    StoryGenerator,
    StoryParseError,
    build_planning_prompt,
    extract_json_array,
    parse_stories,
)
from storyprobe.agents.runner import (
    BUDGET_EXHAUSTED,
    ConversationRunner,
    RunConfig,
    StoryRun,
    build_run_prompt,
    parse_verdict,
)
from storyprobe.agents.story_loader import load_stories, save_stories
from storyprobe.agents.tools import ToolMetadata, ToolParameter, available_tools

__all__ = [
    # Orchestration
    "Agent",
    "AgentConfig",
    "ConversationRunner",
    "RunConfig",
    "StoryRun",
    "StoryGenerator",
    "ToolExecutor",
    # Observers
    "Observer",
    "NoopObserver",
    "ConsoleObserver",
    "LoggingObserver",
    # Tools
    "ToolMetadata",
    "ToolParameter",
    "available_tools",
    # Parsing
    "StoryParseError",
    "build_planning_prompt",
    "build_run_prompt",
    "extract_json_array",
    "parse_stories",
    "parse_verdict",
    # Story files
    "load_stories",
    "save_stories",
    # Reasons
    "BUDGET_EXHAUSTED",
    "TOTAL_BUDGET_EXHAUSTED",
]
