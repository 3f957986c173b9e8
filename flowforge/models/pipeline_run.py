"""
Pipeline Run Model
Pydantic model for the outcome of one triggered GitLab pipeline.
"""
from datetime import datetime, timedelta
from typing import Dict, Optional
from pydantic import BaseModel, ConfigDict

from .run_status import RunStatus


class PipelineRunResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    app_name: str
    pipeline_id: int
    status: RunStatus
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    injected_variables: Dict[str, str] = {}

    @property
    def build_time(self) -> timedelta:
        if self.started_at is not None and self.finished_at is not None:
            return self.finished_at - self.started_at
        return timedelta(0)

    @property
    def build_seconds(self) -> int:
        return int(self.build_time.total_seconds())
