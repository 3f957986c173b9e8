"""
Flow Forge
==========
Triggers the GitLab pipelines listed in a CSV file one after another,
waits for each to finish, and reports the results on stdout and as HTML.

Usage:
    python main.py [pipelines.csv]
"""
import argparse
import asyncio
import logging
import signal
import sys
from typing import List, Optional, Sequence

from flowforge.core.config import HTML_REPORT_FILE, LOG_DIR, LOG_LEVEL, PIPELINE_CSV_PATH
from flowforge.core.report_formatter import print_cli_report
from flowforge.executor.sequential_executor import SequentialExecutor
from flowforge.gitlab.client import GitLabPipelineClient
from flowforge.models.pipeline_request import PipelineRequest
from flowforge.models.pipeline_run import PipelineRunResult
from flowforge.parser.config_reader import ConfigFileError, load_pipeline_requests
from flowforge.services.html_report_writer import HtmlReportWriter
from flowforge.utils.logging_config import setup_logging


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="flowforge",
        description="Run GitLab pipelines sequentially from a CSV file and report the results.",
    )
    parser.add_argument(
        "csv_path",
        nargs="?",
        default=PIPELINE_CSV_PATH,
        help=f"CSV file with pipeline configurations (default: {PIPELINE_CSV_PATH})",
    )
    return parser.parse_args(argv)


def _install_interrupt_handlers(cancel_event: asyncio.Event, log: logging.Logger) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, cancel_event.set)
        except (NotImplementedError, RuntimeError, ValueError):
            # Windows event loops have no signal handler support
            log.debug("Signal handler for %s not supported on this platform", sig)


async def run_pipelines(
    requests: List[PipelineRequest],
    log: logging.Logger,
) -> tuple[List[PipelineRunResult], SequentialExecutor]:
    cancel_event = asyncio.Event()
    _install_interrupt_handlers(cancel_event, log)

    def client_factory(request: PipelineRequest) -> GitLabPipelineClient:
        log.info("Initializing GitLab API client for project ID: %s", request.project_id)
        return GitLabPipelineClient(request.access_token, cancel_event=cancel_event, log=log)

    executor = SequentialExecutor(client_factory, log=log, cancel_event=cancel_event)
    results = await executor.run(requests)
    return results, executor


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    log = setup_logging(level=getattr(logging, LOG_LEVEL, logging.INFO), log_dir=LOG_DIR)
    log.info("Starting GitLab Pipeline Executor")

    try:
        requests = load_pipeline_requests(args.csv_path, log=log)
    except ConfigFileError as e:
        log.error("Error reading CSV file: %s", e)
        return 1

    if not requests:
        log.warning("No valid pipeline configurations found in the CSV file")
        return 1

    results, executor = asyncio.run(run_pipelines(requests, log))

    log.info("Generating pipeline execution report...")
    print_cli_report(results)
    HtmlReportWriter(log=log).write_report(results, HTML_REPORT_FILE)

    if executor.halt_reason:
        log.warning("Sequential execution stopped early: %s", executor.halt_reason)
        log.info("GitLab Pipeline Executor completed (%d/%d pipelines run)", len(results), len(requests))
        return 1

    log.info("GitLab Pipeline Executor completed")
    return 0


def cli() -> None:
    sys.exit(main())


if __name__ == "__main__":
    cli()
