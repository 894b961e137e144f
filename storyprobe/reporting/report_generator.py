"""
Report Generator for story runs.

Renders a :class:`Report` as a fixed-width text summary or as JSON.
"""

import logging
from pathlib import Path

from storyprobe.agents.callbacks import truncate
from storyprobe.core.models import Report, StoryStatus

logger = logging.getLogger(__name__)

LINE_WIDTH = 64


def format_duration(duration_ms: int) -> str:
    if duration_ms < 1000:
        return f"{duration_ms}ms"
    return f"{duration_ms / 1000:.1f}s"


class ReportGenerator:
    """
    Generates run reports in text and JSON formats.

    The text report has:
    - Header with duration, story and step counts
    - One PASS/FAIL/SKIP line per story
    - Reason and executed steps for each failed story
    - Totals footer
    """

    def __init__(self, report: Report):
        self.report = report

    def generate_text(self) -> str:
        r = self.report
        rule = "━" * LINE_WIDTH

        title = " Integration Test Report"
        meta = f"{format_duration(r.duration_ms)} · {r.total} stories · {r.total_steps} steps"
        lines = [rule, f"{title:<{LINE_WIDTH - len(meta)}}{meta}", rule]

        for story in r.user_stories:
            steps = len(story.step_results)
            right = f"{steps} steps  {format_duration(story.duration_ms)}"
            width = LINE_WIDTH - 8 - len(right)

            if story.status == StoryStatus.PASSED:
                lines.append(f"  PASS  {truncate(story.title, width):<{width}}  {right}")
            elif story.status == StoryStatus.FAILED:
                lines.append(f"  FAIL  {truncate(story.title, width):<{width}}  {right}")
                if story.error:
                    lines.append(f"        Reason: {story.error}")
                if story.step_results:
                    lines.append("        Steps executed:")
                    for i, step in enumerate(story.step_results, start=1):
                        step_in = truncate(step.input, 28)
                        step_out = truncate(step.output, 22)
                        lines.append(f"          [{i}] {step.tool:<18} {step_in:<28} → {step_out}")
            elif story.status == StoryStatus.SKIPPED:
                width = LINE_WIDTH - 10
                lines.append(f"  SKIP  {truncate(story.title, width):<{width}}  {story.error}")
            else:
                lines.append(f"  ????  {story.title}")

        lines.append(rule)
        lines.append(
            f"  {r.passed} passed   {r.failed} failed   {r.skipped} skipped   │   "
            f"{r.total_steps} steps   │   {format_duration(r.duration_ms)}"
        )
        lines.append(rule)
        return "\n".join(lines) + "\n"

    def generate_json(self) -> str:
        return self.report.model_dump_json(indent=2)

    def write(self, output_path: Path) -> None:
        """Write the report; ``.json`` paths get JSON, anything else text."""
        if output_path.suffix == ".json":
            content = self.generate_json()
        else:
            content = self.generate_text()

        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(content, encoding="utf-8")
        logger.info(f"📄 Report saved: {output_path}")
