"""
GitLab Pipeline Client
======================
Triggers a pipeline through the GitLab REST API and polls it until it
reaches a terminal status (success, failed, canceled, skipped).

Polling:
    wait poll_interval → GET pipeline → repeat until terminal.
    The wait is cancellable through cancel_event; a set event aborts the
    poll with PipelineClientError. max_wait (seconds, 0 = unbounded) caps
    the total time spent on one pipeline.

Errors are never retried: any transport failure, non-2xx response or
unexpected payload surfaces as PipelineClientError.
"""
import asyncio
import logging
import time
from typing import Any, Dict, Mapping, Optional
from urllib.parse import quote

import httpx

from flowforge.core.config import (
    GITLAB_URL,
    HTTP_TIMEOUT_SECONDS,
    PIPELINE_POLL_TIMEOUT,
    POLLING_INTERVAL_SECONDS,
)
from flowforge.models.run_status import RunStatus, StatusKind

logger = logging.getLogger(__name__)


class PipelineClientError(Exception):
    """Triggering or polling a pipeline failed."""


class PipelineTimeoutError(PipelineClientError):
    """The pipeline did not reach a terminal status within max_wait."""


class GitLabPipelineClient:
    """
    Thin async client for the two pipeline endpoints this tool needs.
    One instance per access token.
    """

    def __init__(
        self,
        access_token: str,
        base_url: str = GITLAB_URL,
        poll_interval: float = POLLING_INTERVAL_SECONDS,
        max_wait: float = PIPELINE_POLL_TIMEOUT,
        http_timeout: float = HTTP_TIMEOUT_SECONDS,
        cancel_event: Optional[asyncio.Event] = None,
        log: Optional[logging.Logger] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.poll_interval = poll_interval
        self.max_wait = max_wait
        self.http_timeout = http_timeout
        self.cancel_event = cancel_event
        self.log = log or logger
        self.headers = {
            "Accept": "application/json",
            "User-Agent": "Flow-Forge",
            "PRIVATE-TOKEN": access_token,
        }

    def _project_url(self, project_id: str) -> str:
        return f"{self.base_url}/api/v4/projects/{quote(str(project_id), safe='')}"

    async def _send(self, method: str, url: str, **kwargs: Any) -> Dict[str, Any]:
        try:
            async with httpx.AsyncClient(headers=self.headers, timeout=self.http_timeout) as client:
                if method == "post":
                    response = await client.post(url, **kwargs)
                else:
                    response = await client.get(url, **kwargs)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as http_err:
            status_code = http_err.response.status_code
            raise PipelineClientError(f"GitLab API returned HTTP {status_code} for {url}") from http_err
        except httpx.HTTPError as exc:
            raise PipelineClientError(f"GitLab API request failed: {exc}") from exc
        except ValueError as exc:
            raise PipelineClientError(f"GitLab API returned invalid JSON for {url}") from exc

        if not isinstance(data, dict):
            raise PipelineClientError(f"Unexpected GitLab API payload for {url}")
        return data

    async def trigger(self, project_id: str, branch: str, variables: Mapping[str, str]) -> int:
        """Create a pipeline on branch and return its id."""
        payload = {
            "ref": branch,
            "variables": [{"key": key, "value": value} for key, value in variables.items()],
        }
        data = await self._send("post", f"{self._project_url(project_id)}/pipeline", json=payload)

        pipeline_id = data.get("id")
        if not isinstance(pipeline_id, int) or isinstance(pipeline_id, bool):
            raise PipelineClientError(f"GitLab API response has no pipeline id: {data!r}")
        self.log.info("Pipeline triggered successfully. Pipeline ID: %d", pipeline_id)
        return pipeline_id

    async def get_status(self, project_id: str, pipeline_id: int) -> RunStatus:
        data = await self._send("get", f"{self._project_url(project_id)}/pipelines/{pipeline_id}")
        return RunStatus.from_raw(str(data.get("status") or ""))

    async def _wait(self) -> None:
        if self.cancel_event is None:
            await asyncio.sleep(self.poll_interval)
            return
        try:
            await asyncio.wait_for(self.cancel_event.wait(), timeout=self.poll_interval)
        except asyncio.TimeoutError:
            return
        self.log.error("Polling interrupted")
        raise PipelineClientError("Polling was interrupted")

    async def poll(self, project_id: str, pipeline_id: int) -> RunStatus:
        """Block until the pipeline reaches a terminal status and return it."""
        self.log.info("Starting to poll pipeline status for pipeline ID: %d", pipeline_id)
        start_time = time.monotonic()

        while True:
            await self._wait()
            status = await self.get_status(project_id, pipeline_id)
            self.log.info("Current status of pipeline %d: %s", pipeline_id, status)

            if status.kind is StatusKind.UNKNOWN:
                self.log.warning(
                    "Pipeline %d reported unrecognised status '%s', still waiting",
                    pipeline_id, status.raw,
                )
            if status.is_terminal:
                self.log.info("Pipeline %d has reached terminal status: %s", pipeline_id, status)
                return status

            if self.max_wait and (time.monotonic() - start_time) >= self.max_wait:
                raise PipelineTimeoutError(
                    f"Pipeline {pipeline_id} still {status} after {self.max_wait:.0f}s"
                )
