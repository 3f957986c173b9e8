"""
Run Status Model
================
Closed set of pipeline outcomes reported by GitLab.

Kinds:
    SUCCESS / FAILED / CANCELED / SKIPPED — terminal, no further change
    RUNNING  — any known in-progress value (created, pending, running, ...)
    UNKNOWN  — a value this tool does not recognise; the raw string is kept
"""
from enum import Enum
from pydantic import BaseModel, ConfigDict


class StatusKind(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    CANCELED = "canceled"
    SKIPPED = "skipped"
    RUNNING = "running"
    UNKNOWN = "unknown"


TERMINAL_KINDS = frozenset({
    StatusKind.SUCCESS,
    StatusKind.FAILED,
    StatusKind.CANCELED,
    StatusKind.SKIPPED,
})

# GitLab pipeline states that can still change
IN_PROGRESS_VALUES = frozenset({
    "created",
    "waiting_for_resource",
    "preparing",
    "pending",
    "running",
    "scheduled",
    "manual",
})


class RunStatus(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: StatusKind
    raw: str = ""

    @classmethod
    def from_raw(cls, raw: str) -> "RunStatus":
        value = (raw or "").strip().lower()
        if value in IN_PROGRESS_VALUES:
            return cls(kind=StatusKind.RUNNING, raw=value)
        try:
            kind = StatusKind(value)
        except ValueError:
            return cls(kind=StatusKind.UNKNOWN, raw=value)
        if kind not in TERMINAL_KINDS:
            # "unknown" sent by the server itself
            return cls(kind=StatusKind.UNKNOWN, raw=value)
        return cls(kind=kind, raw=value)

    @property
    def is_terminal(self) -> bool:
        return self.kind in TERMINAL_KINDS

    @property
    def is_success(self) -> bool:
        return self.kind is StatusKind.SUCCESS

    @property
    def label(self) -> str:
        """Upper-case display label, e.g. SUCCESS or UNKNOWN (weird_state)."""
        if self.kind is StatusKind.UNKNOWN and self.raw and self.raw != StatusKind.UNKNOWN.value:
            return f"UNKNOWN ({self.raw})"
        if self.kind is StatusKind.RUNNING and self.raw:
            return self.raw.upper()
        return self.kind.value.upper()

    def __str__(self) -> str:
        return self.label
