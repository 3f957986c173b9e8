"""
Sequential Executor
===================
Runs one GitLab pipeline per PipelineRequest, strictly in order, and never
starts the next pipeline before the current one is finished.

Per-request states:
    PENDING → TRIGGERED → POLLING → TERMINAL

Fail-fast:
    - TERMINAL success           → continue with the next request
    - TERMINAL anything else     → stop, result is kept
    - PipelineClientError        → stop, no result for that request
No retries, no rollback. The results gathered up to the stop are returned.
A set cancel_event stops the run before the next pipeline is triggered.
"""
import asyncio
import logging
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence

from flowforge.gitlab.client import GitLabPipelineClient, PipelineClientError
from flowforge.models.pipeline_request import PipelineRequest
from flowforge.models.pipeline_run import PipelineRunResult
from flowforge.models.run_status import RunStatus

logger = logging.getLogger(__name__)

ClientFactory = Callable[[PipelineRequest], GitLabPipelineClient]


class RunState(str, Enum):
    PENDING = "pending"
    TRIGGERED = "triggered"
    POLLING = "polling"
    TERMINAL = "terminal"


def _local_now() -> datetime:
    return datetime.now().astimezone()


class SequentialExecutor:
    """
    Drives the GitLab client for each request and collects PipelineRunResults.
    """

    def __init__(
        self,
        client_factory: ClientFactory,
        log: Optional[logging.Logger] = None,
        clock: Callable[[], datetime] = _local_now,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> None:
        self.client_factory = client_factory
        self.log = log or logger
        self.clock = clock
        self.cancel_event = cancel_event
        self.halt_reason: Optional[str] = None
        self.timeline: List[Dict[str, Any]] = []

    def _add_timeline_event(
        self,
        app_name: str,
        state: RunState,
        status: Optional[RunStatus] = None,
    ) -> None:
        self.timeline.append({
            "app_name": app_name,
            "state": state.value,
            "status": status.label if status is not None else "",
            "timestamp": self.clock().isoformat(),
        })

    async def execute(self, request: PipelineRequest) -> PipelineRunResult:
        """Trigger one pipeline and wait for its terminal status."""
        client = self.client_factory(request)
        variables = request.variables

        started_at = self.clock()
        self._add_timeline_event(request.app_name, RunState.TRIGGERED)
        self.log.info(
            "Triggering pipeline for app '%s' on branch '%s'", request.app_name, request.branch
        )
        pipeline_id = await client.trigger(request.project_id, request.branch, variables)

        self._add_timeline_event(request.app_name, RunState.POLLING)
        status = await client.poll(request.project_id, pipeline_id)
        finished_at = self.clock()
        self._add_timeline_event(request.app_name, RunState.TERMINAL, status)

        self.log.info("Pipeline for app '%s' completed with status: %s", request.app_name, status)
        return PipelineRunResult(
            app_name=request.app_name,
            pipeline_id=pipeline_id,
            status=status,
            started_at=started_at,
            finished_at=finished_at,
            injected_variables=variables,
        )

    async def run(self, requests: Sequence[PipelineRequest]) -> List[PipelineRunResult]:
        """Execute requests in order, stopping at the first non-success outcome."""
        results: List[PipelineRunResult] = []
        self.halt_reason = None
        self.timeline = []

        for request in requests:
            if self.cancel_event is not None and self.cancel_event.is_set():
                self.log.warning("Run interrupted, not triggering pipeline for app '%s'", request.app_name)
                self.halt_reason = f"{request.app_name}: interrupted before trigger"
                break

            self._add_timeline_event(request.app_name, RunState.PENDING)
            self.log.info("Processing pipeline for app: %s", request.app_name)
            try:
                result = await self.execute(request)
            except PipelineClientError as exc:
                self.log.error("Error executing pipeline for app '%s': %s", request.app_name, exc)
                self.halt_reason = f"{request.app_name}: {exc}"
                break

            results.append(result)
            if not result.status.is_success:
                self.log.warning(
                    "Pipeline for app '%s' did not succeed (status: %s). Stopping sequential execution.",
                    request.app_name, result.status,
                )
                self.halt_reason = f"{request.app_name}: pipeline finished with status {result.status}"
                break

        return results

    def get_timeline(self) -> List[Dict[str, Any]]:
        """Return the recorded state transitions."""
        return self.timeline
