import logging
import sys
from typing import Protocol, TextIO

from storyprobe.core.models import StepResult, StoryStatus, UserStory

logger = logging.getLogger(__name__)


def truncate(text: str, limit: int) -> str:
    if limit <= 3 or len(text) <= limit:
        return text
    return text[: limit - 3] + "..."


class Observer(Protocol):
    """Protocol for story execution progress hooks.

    Hooks are called synchronously and in order: ``on_story_start`` before a
    story begins, ``on_step`` after each tool call, ``on_story_done`` after
    the story has been classified.
    """

    def on_story_start(self, index: int, total: int, story: UserStory) -> None: ...
    def on_step(self, index: int, total: int, result: StepResult) -> None: ...
    def on_story_done(self, index: int, total: int, story: UserStory) -> None: ...


class NoopObserver:
    """Observer used when none is configured."""

    def on_story_start(self, index: int, total: int, story: UserStory) -> None:
        pass

    def on_step(self, index: int, total: int, result: StepResult) -> None:
        pass

    def on_story_done(self, index: int, total: int, story: UserStory) -> None:
        pass


class ConsoleObserver:
    """Prints live progress lines.

    Example output::

        [1/4] Create user happy path
              → sql_exec         {"query":"TRUNCATE users"}               → {"rows_affected":0}
              → http_request     {"method":"POST","path":"/users"}         → {"status":201,...}
              ✓ passed  (2 steps, 1200ms)
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        self.stream = stream or sys.stdout

    def _write(self, line: str) -> None:
        self.stream.write(line + "\n")
        self.stream.flush()

    def on_story_start(self, index: int, total: int, story: UserStory) -> None:
        self._write(f"\n[{index + 1}/{total}] {story.title}")

    def on_step(self, index: int, total: int, result: StepResult) -> None:
        step_in = truncate(result.input, 42)
        step_out = truncate(result.output, 32)
        self._write(f"      → {result.tool:<16} {step_in:<42} → {step_out}")

    def on_story_done(self, index: int, total: int, story: UserStory) -> None:
        steps = len(story.step_results)
        if story.status == StoryStatus.PASSED:
            self._write(f"      ✓ passed  ({steps} steps, {story.duration_ms}ms)")
        elif story.status == StoryStatus.FAILED:
            self._write(f"      ✗ FAILED: {story.error}")
        elif story.status == StoryStatus.SKIPPED:
            self._write(f"      — skipped ({story.error})")


class LoggingObserver:
    """Reports progress through the logging module."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        self.log = log or logger

    def on_story_start(self, index: int, total: int, story: UserStory) -> None:
        self.log.info(f"[{index + 1}/{total}] {story.title}")

    def on_step(self, index: int, total: int, result: StepResult) -> None:
        self.log.info(f"[{index + 1}/{total}]   {result.tool} {truncate(result.input, 80)}")

    def on_story_done(self, index: int, total: int, story: UserStory) -> None:
        status = story.status.value
        if story.error:
            self.log.info(f"[{index + 1}/{total}] {status}: {story.error}")
        else:
            self.log.info(f"[{index + 1}/{total}] {status} ({len(story.step_results)} steps)")
