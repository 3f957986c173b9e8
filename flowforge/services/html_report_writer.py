"""
HTML Report Writer
==================
Renders pipeline results as a static HTML page: one card per pipeline plus
a Chart.js bar chart of build times, coloured by status.

render() is deterministic (no clock, no randomness): the same results give
a byte-identical document. write_report() is the only part touching disk.
"""
import html
import json
import logging
import os
from typing import List, Optional, Sequence

from flowforge.core.config import HTML_REPORT_FILE
from flowforge.core.report_formatter import format_datetime, format_duration
from flowforge.models.pipeline_run import PipelineRunResult
from flowforge.models.run_status import RunStatus, StatusKind

logger = logging.getLogger(__name__)

CHART_JS_CDN = "https://cdn.jsdelivr.net/npm/chart.js"
REPORT_TITLE = "Flow Forge Execution Report"

STATUS_COLORS = {
    StatusKind.SUCCESS: "#27ae60",
    StatusKind.FAILED: "#e74c3c",
    StatusKind.RUNNING: "#f39c12",
}
OTHER_COLOR = "#7f8c8d"

STATUS_CLASSES = {
    StatusKind.SUCCESS: "status-success",
    StatusKind.FAILED: "status-failed",
    StatusKind.RUNNING: "status-pending",
}
OTHER_CLASS = "status-other"

STYLE = """\
        body { font-family: Arial, sans-serif; margin: 20px; line-height: 1.6; }
        h1 { color: #2e86de; text-align: center; margin-bottom: 30px; }
        .report-container { max-width: 900px; margin: 0 auto; }
        .pipeline-card { background-color: #f5f6fa; border-radius: 8px; padding: 20px; margin-bottom: 20px; box-shadow: 0 2px 5px rgba(0,0,0,0.1); }
        .pipeline-header { display: flex; justify-content: space-between; margin-bottom: 15px; }
        .pipeline-title { font-size: 1.4em; font-weight: bold; color: #2d3436; margin: 0; }
        .pipeline-id { color: #636e72; font-size: 1em; }
        .pipeline-detail { display: flex; margin-bottom: 8px; }
        .detail-label { font-weight: bold; min-width: 140px; color: #636e72; }
        .detail-value { flex-grow: 1; }
        .status-success { color: #27ae60; font-weight: bold; }
        .status-failed { color: #e74c3c; font-weight: bold; }
        .status-pending { color: #f39c12; font-weight: bold; }
        .status-other { color: #7f8c8d; font-weight: bold; }
        .variables-container { background-color: #ecf0f1; border-radius: 4px; padding: 10px; margin-top: 10px; }
        .variable-item { margin-bottom: 5px; }
        .build-time { font-weight: bold; margin-top: 15px; text-align: right; color: #2c3e50; }
        .timestamp { color: #7f8c8d; font-size: 0.9em; }
        .chart-container { margin-top: 40px; text-align: center; }
"""

CHART_SCRIPT = """\
                const ctx = document.getElementById('pipelineChart').getContext('2d');
                const pipelineLabels = {labels};
                const buildTimes = {build_times};
                const statusColors = {colors};
                const pipelineStatuses = {statuses};
                const pipelineChart = new Chart(ctx, {{
                    type: 'bar',
                    data: {{
                        labels: pipelineLabels,
                        datasets: [{{
                            label: 'Build Time (seconds)',
                            data: buildTimes,
                            backgroundColor: statusColors,
                            borderColor: statusColors,
                            borderWidth: 1
                        }}]
                    }},
                    options: {{
                        responsive: true,
                        scales: {{
                            y: {{ beginAtZero: true, title: {{ display: true, text: 'Build Time (seconds)' }} }},
                            x: {{ title: {{ display: true, text: 'Pipelines' }} }}
                        }},
                        plugins: {{
                            title: {{ display: true, text: 'Pipeline Build Times' }},
                            tooltip: {{
                                callbacks: {{
                                    afterLabel: function(context) {{
                                        return 'Status: ' + pipelineStatuses[context.dataIndex];
                                    }}
                                }}
                            }}
                        }}
                    }}
                }});
"""


def status_color(status: RunStatus) -> str:
    return STATUS_COLORS.get(status.kind, OTHER_COLOR)


def status_class(status: RunStatus) -> str:
    return STATUS_CLASSES.get(status.kind, OTHER_CLASS)


def _js_array(values: list) -> str:
    # "</" would close the inline <script> element early
    return json.dumps(values).replace("</", "<\\/")


class HtmlReportWriter:
    """
    Builds the HTML report and writes it next to the working directory.
    """

    def __init__(self, log: Optional[logging.Logger] = None) -> None:
        self.log = log or logger

    def _render_card(self, result: PipelineRunResult) -> str:
        esc = html.escape
        if result.status.kind is StatusKind.UNKNOWN:
            self.log.warning(
                "Pipeline %d for app '%s' has unrecognised status '%s'",
                result.pipeline_id, result.app_name, result.status.raw,
            )

        lines: List[str] = [
            '        <div class="pipeline-card">',
            '            <div class="pipeline-header">',
            f'                <h2 class="pipeline-title">{esc(result.app_name)}</h2>',
            f'                <span class="pipeline-id">Pipeline ID: {result.pipeline_id}</span>',
            "            </div>",
            '            <div class="pipeline-detail">',
            '                <div class="detail-label">Status:</div>',
            f'                <div class="detail-value {status_class(result.status)}">{esc(result.status.label)}</div>',
            "            </div>",
            '            <div class="pipeline-detail">',
            '                <div class="detail-label">Start Time:</div>',
            f'                <div class="detail-value timestamp">{format_datetime(result.started_at)}</div>',
            "            </div>",
            '            <div class="pipeline-detail">',
            '                <div class="detail-label">End Time:</div>',
            f'                <div class="detail-value timestamp">{format_datetime(result.finished_at)}</div>',
            "            </div>",
            '            <div class="pipeline-detail">',
            '                <div class="detail-label">Injected Variables:</div>',
            '                <div class="detail-value">',
            '                    <div class="variables-container">',
        ]
        for key, value in result.injected_variables.items():
            lines.append(f'                        <div class="variable-item">{esc(key)} = {esc(value)}</div>')
        if not result.injected_variables:
            lines.append('                        <div class="variable-item">None</div>')
        lines += [
            "                    </div>",
            "                </div>",
            "            </div>",
            f'            <div class="build-time">Build Time: {format_duration(result.build_time)}</div>',
            "        </div>",
        ]
        return "\n".join(lines) + "\n"

    def _render_chart(self, results: Sequence[PipelineRunResult]) -> str:
        script = CHART_SCRIPT.format(
            labels=_js_array([r.app_name for r in results]),
            build_times=_js_array([r.build_seconds for r in results]),
            colors=_js_array([status_color(r.status) for r in results]),
            statuses=_js_array([r.status.label for r in results]),
        )
        return (
            '        <div class="chart-container">\n'
            "            <h2>Pipeline Status Summary</h2>\n"
            f'            <script src="{CHART_JS_CDN}"></script>\n'
            '            <canvas id="pipelineChart" width="400" height="200"></canvas>\n'
            "            <script>\n"
            f"{script}"
            "            </script>\n"
            "        </div>\n"
        )

    def render(self, results: Sequence[PipelineRunResult]) -> str:
        """Return the full HTML document for results."""
        parts = [
            "<!DOCTYPE html>\n",
            '<html lang="en">\n',
            "<head>\n",
            '    <meta charset="UTF-8">\n',
            '    <meta name="viewport" content="width=device-width, initial-scale=1.0">\n',
            f"    <title>{REPORT_TITLE}</title>\n",
            "    <style>\n",
            STYLE,
            "    </style>\n",
            "</head>\n",
            "<body>\n",
            '    <div class="report-container">\n',
            f"        <h1>{REPORT_TITLE}</h1>\n",
        ]
        parts.extend(self._render_card(result) for result in results)
        parts.append(self._render_chart(results))
        parts.append("    </div>\n</body>\n</html>\n")
        return "".join(parts)

    def write_report(
        self,
        results: Sequence[PipelineRunResult],
        output_path: str = HTML_REPORT_FILE,
    ) -> bool:
        """
        Render and write the report. Returns False (and logs) on I/O failure.
        """
        self.log.info("Generating HTML pipeline execution report...")
        document = self.render(results)
        abs_output = os.path.abspath(output_path)
        try:
            with open(abs_output, "w", encoding="utf-8") as f:
                f.write(document)
        except OSError as e:
            self.log.error("Error generating HTML report: %s", e, exc_info=True)
            return False

        self.log.info("HTML report generated successfully: %s", abs_output)
        return True
