"""Report rendering."""

from storyprobe.reporting.report_generator import ReportGenerator, format_duration

__all__ = ["ReportGenerator", "format_duration"]
