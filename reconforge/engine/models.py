"""
Data model shared by the recon pipeline and the job coordinator.

Jobs, stage specs and outcomes, the final PipelineResult, and the lifecycle
events a pipeline sends back to its coordinator.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Tuple, Union

from reconforge.base.exceptions import InvalidTransitionError


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def minutes(seconds: float) -> float:
    return round(seconds / 60.0, 2)


class JobStatus(str, Enum):
    QUEUED = "queued"
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (JobStatus.DONE, JobStatus.FAILED)


# queued -> running -> {done, failed}; nothing leaves a terminal state
_ALLOWED_TRANSITIONS: Dict[JobStatus, Tuple[JobStatus, ...]] = {
    JobStatus.QUEUED: (JobStatus.RUNNING,),
    JobStatus.RUNNING: (JobStatus.DONE, JobStatus.FAILED),
    JobStatus.DONE: (),
    JobStatus.FAILED: (),
}


class StageOutcome(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED_NONFATAL = "failed-nonfatal"
    TIMED_OUT = "timed-out"


class StageKind(str, Enum):
    TOOL = "tool"
    BUILTIN = "builtin"


@dataclass(frozen=True)
class StageSpec:
    """
    One step of the recon pipeline.

    ``args`` may contain the placeholders {hostname}, {output} and {input};
    they are substituted per argument, never joined into a shell string.
    """
    name: str
    kind: StageKind
    binary: Optional[str] = None
    args: Tuple[str, ...] = ()
    timeout: float = 0.0
    output: Optional[str] = None
    input: Optional[str] = None
    label: str = ""
    estimate_minutes: float = 0.0

    def command(self, hostname: str, workdir: Path) -> List[str]:
        values = {
            "hostname": hostname,
            "output": str(workdir / self.output) if self.output else "",
            "input": str(workdir / self.input) if self.input else "",
        }
        return [arg.format(**values) for arg in self.args]


@dataclass(frozen=True)
class StageRecord:
    name: str
    outcome: StageOutcome
    elapsed: float
    detail: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "outcome": self.outcome.value,
            "duration_minutes": minutes(self.elapsed),
            "elapsed_seconds": round(self.elapsed, 3),
            "detail": self.detail,
        }


@dataclass(frozen=True)
class PipelineResult:
    job_id: str
    hostname: str
    stages: Tuple[StageRecord, ...]
    started_at: str
    finished_at: str
    records: Tuple[Dict[str, Any], ...] = ()
    targets: Tuple[str, ...] = ()

    def stage(self, name: str) -> Optional[StageRecord]:
        for record in self.stages:
            if record.name == name:
                return record
        return None

    def to_meta(self) -> Dict[str, Any]:
        """The metadata document persisted as meta.json."""
        return {
            "jobId": self.job_id,
            "hostname": self.hostname,
            "startedAt": self.started_at,
            "finishedAt": self.finished_at,
            "tasks": [stage.to_dict() for stage in self.stages],
        }

    def to_dict(self) -> Dict[str, Any]:
        data = self.to_meta()
        data["targets"] = list(self.targets)
        data["recordCount"] = len(self.records)
        data["parseErrors"] = sum(1 for r in self.records if r.get("_parseError"))
        return data


# ---------------------------------------------------------------------------
# Lifecycle events (pipeline -> coordinator)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class LogEvent:
    message: str
    kind: Literal["log"] = "log"


@dataclass(frozen=True)
class DoneEvent:
    result: PipelineResult
    kind: Literal["done"] = "done"


@dataclass(frozen=True)
class ErrorEvent:
    detail: str
    kind: Literal["error"] = "error"


PipelineEvent = Union[LogEvent, DoneEvent, ErrorEvent]


# ---------------------------------------------------------------------------
# Jobs
# ---------------------------------------------------------------------------

@dataclass
class Job:
    id: str
    hostname: str
    workdir: Path
    status: JobStatus = JobStatus.QUEUED
    context: Optional[asyncio.Task] = None
    result: Optional[PipelineResult] = None
    error: Optional[str] = None
    history: List[JobStatus] = field(default_factory=lambda: [JobStatus.QUEUED])
    created_at: str = field(default_factory=utc_now_iso)

    def transition(self, new_status: JobStatus) -> None:
        if new_status not in _ALLOWED_TRANSITIONS[self.status]:
            raise InvalidTransitionError(self.id, self.status.value, new_status.value)
        self.status = new_status
        self.history.append(new_status)
        if new_status.terminal:
            self.context = None

    def snapshot(self) -> Dict[str, Any]:
        return {
            "jobId": self.id,
            "hostname": self.hostname,
            "status": self.status.value,
            "error": self.error,
            "result": self.result.to_dict() if self.result else None,
        }
