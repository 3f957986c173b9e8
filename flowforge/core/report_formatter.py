"""
Report Formatter
================
Plain-text rendering of pipeline results for the terminal.

DETERMINISM CONTRACT:
  - This module NEVER calls the GitLab API.
  - This module NEVER reads the clock or environment variables.
  - Given the same results, it ALWAYS returns the exact same string.

The formatting helpers here are shared with the HTML report writer.
"""
import sys
from datetime import datetime, timedelta
from typing import Mapping, Optional, Sequence, TextIO

from flowforge.models.pipeline_run import PipelineRunResult

TIME_FORMAT = "%Y-%m-%d %H:%M:%S"
BANNER = "=" * 55
REPORT_TITLE = "Pipeline Summary Report"


# ---------------------------------------------------------------------------
# Formatting Helpers
# ---------------------------------------------------------------------------
def format_datetime(value: Optional[datetime]) -> str:
    if value is None:
        return "N/A"
    return value.strftime(TIME_FORMAT)


def format_duration(duration: timedelta) -> str:
    """
    Human-readable duration, largest unit first:
        "1 hours, 2 minutes, 3 seconds" / "2 minutes, 3 seconds" / "3 seconds"
    """
    total_seconds = int(duration.total_seconds())
    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)

    if hours > 0:
        return f"{hours} hours, {minutes} minutes, {seconds} seconds"
    if minutes > 0:
        return f"{minutes} minutes, {seconds} seconds"
    return f"{seconds} seconds"


def format_variables(variables: Optional[Mapping[str, str]]) -> str:
    if not variables:
        return "None"
    return ", ".join(f"{key}={value}" for key, value in variables.items())


# ---------------------------------------------------------------------------
# CLI Report
# ---------------------------------------------------------------------------
def format_result_block(result: PipelineRunResult) -> str:
    lines = [
        f"App Name: {result.app_name}",
        f"- Pipeline ID: {result.pipeline_id}",
        f"- Start Time: {format_datetime(result.started_at)}",
        f"- End Time: {format_datetime(result.finished_at)}",
        f"- Status: {result.status.label}",
        f"- Injected Variables: {format_variables(result.injected_variables)}",
        f"- Build Time: {format_duration(result.build_time)}",
    ]
    return "\n".join(lines) + "\n"


def render_cli_report(results: Sequence[PipelineRunResult]) -> str:
    parts = [
        "\n\n" + BANNER + "\n",
        REPORT_TITLE.center(len(BANNER)).rstrip() + "\n",
        BANNER + "\n\n",
    ]
    for result in results:
        parts.append(format_result_block(result) + "\n")
    parts.append(BANNER + "\n")
    return "".join(parts)


def print_cli_report(results: Sequence[PipelineRunResult], stream: Optional[TextIO] = None) -> None:
    (stream or sys.stdout).write(render_cli_report(results))
