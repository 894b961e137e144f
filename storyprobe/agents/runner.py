"""Conversation runner: drives one user story through a tool-calling loop.

Each turn sends the whole conversation to the completion backend. The reply
is one of:

- a final text verdict (``Response.done``), classified by :func:`parse_verdict`
- one or more tool calls, executed in order and appended as tool messages
- neither (a guard turn), which only consumes one step

The loop stops without a verdict once the step counter reaches
``min(max_steps_per_story, steps_remaining)``.
"""

import logging
import re
import time
from dataclasses import dataclass

from storyprobe.agents.callbacks import NoopObserver, Observer
from storyprobe.agents.executor import ToolExecutor
from storyprobe.core.client import CompletionClient
from storyprobe.core.models import (
    Message,
    MessageRole,
    StepResult,
    StoryStatus,
    ToolDefinition,
    UserStory,
)

logger = logging.getLogger(__name__)

FAILED_MARKER = re.compile(r"FAILED:", re.IGNORECASE)
PASSED_MARKER = re.compile(r"PASSED", re.IGNORECASE)
BUDGET_EXHAUSTED = "maxStepsPerStory reached"

RUN_RULES = """
Rules:
- Start with sql_exec TRUNCATE to ensure clean state (if SQL tools are available)
- Execute each step using tools
- Verify HTTP response status after each request
- If any step fails, stop and report failure with clear reason
- When all steps complete, respond with exactly:
  PASSED
  or
  FAILED: <reason>
"""


@dataclass
class RunConfig:
    """Step limits for a single story."""

    max_steps_per_story: int
    steps_remaining: int

    @property
    def effective_max(self) -> int:
        return min(self.max_steps_per_story, self.steps_remaining)


@dataclass
class StoryRun:
    """Finished story together with the steps it consumed."""

    story: UserStory
    steps: int


def parse_verdict(content: str) -> tuple[StoryStatus, str]:
    """Classify the model's final text.

    ``FAILED:`` wins over ``PASSED`` wherever both appear; the reason is the
    rest of the line after the marker. Text with neither marker is a failure
    whose reason is the whole reply.
    """
    failed = FAILED_MARKER.search(content)
    if failed:
        rest = content[failed.end() :]
        return StoryStatus.FAILED, rest.split("\n", 1)[0].strip()

    if PASSED_MARKER.search(content):
        return StoryStatus.PASSED, ""

    return StoryStatus.FAILED, content.strip()


def build_run_prompt(story: UserStory, service_url: str = "") -> str:
    lines = ["You are an integration test executor for a backend service."]
    if service_url:
        lines.append(f"Service URL: {service_url}")
    lines.extend(
        [
            "",
            "Execute this user story using the available tools:",
            "",
            f"Title: {story.title}",
            f"Description: {story.description}",
        ]
    )

    if story.steps:
        lines.extend(["", "Expected steps:"])
        lines.extend(f"{i}. {step}" for i, step in enumerate(story.steps, start=1))

    return "\n".join(lines) + "\n" + RUN_RULES


class ConversationRunner:
    """Runs user stories against the completion backend and the tool executor."""

    def __init__(
        self,
        client: CompletionClient,
        executor: ToolExecutor,
        tools: list[ToolDefinition],
        observer: Observer | None = None,
    ) -> None:
        self.client = client
        self.executor = executor
        self.tools = tools
        self.observer = observer or NoopObserver()

    async def run_story(
        self,
        story: UserStory,
        config: RunConfig,
        index: int = 0,
        total: int = 1,
    ) -> StoryRun:
        """Execute ``story`` and return a finished copy with its step usage."""
        story = story.model_copy(
            update={"step_results": [], "status": StoryStatus.PENDING, "error": ""}, deep=True
        )
        effective_max = config.effective_max

        self.observer.on_story_start(index, total, story)
        logger.info(f"Running story [{index + 1}/{total}]: {story.title} (max {effective_max} steps)")

        messages = [
            Message(
                role=MessageRole.USER,
                content=build_run_prompt(story, self.executor.service_url),
            )
        ]
        start_time = time.monotonic()
        steps = 0
        step_results: list[StepResult] = []
        verdict: tuple[StoryStatus, str] | None = None

        while steps < effective_max:
            try:
                response = await self.client.complete(list(messages), self.tools)
            except Exception as e:
                logger.error(f"LLM call failed for story {story.title!r}: {e}")
                verdict = (StoryStatus.FAILED, f"llm error: {e}")
                break

            if response.done:
                verdict = parse_verdict(response.content)
                break

            if not response.tool_calls:
                # Guard: neither a verdict nor tool calls
                logger.warning(f"Empty turn in story {story.title!r}, consuming one step")
                steps += 1
                continue

            messages.append(Message(role=MessageRole.ASSISTANT, tool_calls=response.tool_calls))

            for call in response.tool_calls:
                tool_name, tool_input, tool_output = await self.executor.execute(call)
                result = StepResult(tool=tool_name, input=tool_input, output=tool_output)
                step_results.append(result)
                self.observer.on_step(index, total, result)
                messages.append(
                    Message(role=MessageRole.TOOL, tool_call_id=call.id, content=tool_output)
                )

            steps += len(response.tool_calls)

        if verdict is None:
            logger.warning(f"Story {story.title!r} exhausted its budget of {effective_max} steps")
            verdict = (StoryStatus.FAILED, BUDGET_EXHAUSTED)

        story.status, story.error = verdict
        story.step_results = step_results
        story.duration_ms = int((time.monotonic() - start_time) * 1000)

        self.observer.on_story_done(index, total, story)
        logger.info(f"Story {story.title!r} {story.status.value} after {steps} steps")
        return StoryRun(story=story, steps=steps)
