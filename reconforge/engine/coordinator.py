"""
reconforge/engine/coordinator.py
Owns the job table and the isolated execution context of every scan job.

Each job runs its PipelineRunner inside its own asyncio.Task (the "context").
The context only ever pushes events into a per-job asyncio.Queue; a relay task
drains that queue and applies the events to the job table. The context never
waits on the coordinator, and an exception inside it cannot reach the table
except as a `failed` status.

Job table discipline: a single dict guarded by one asyncio.Lock. Every read
and write of a job entry happens while holding the lock.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
import secrets
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from reconforge.base.config import ReconConfig, get_config
from reconforge.base.exceptions import InvalidTransitionError
from reconforge.engine.models import (
    DoneEvent,
    ErrorEvent,
    Job,
    JobStatus,
    LogEvent,
    PipelineEvent,
)
from reconforge.engine.pipeline import PipelineRunner
from reconforge.engine.stages import META_JSON, RESULTS_TXT
from reconforge.errors import ErrorCode, ReconError
from reconforge.toolkit.normalizer import validate_hostname
from reconforge.utils.async_helpers import cancel_and_wait, create_safe_task

logger = logging.getLogger(__name__)

JOB_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


@dataclass(frozen=True)
class _ContextExit:
    """Posted by the context's done-callback; always the last message on a channel."""
    reason: str


ChannelMessage = Union[PipelineEvent, _ContextExit]
RunnerFactory = Callable[[], PipelineRunner]


class JobCoordinator:
    def __init__(self, config: Optional[ReconConfig] = None, runner_factory: Optional[RunnerFactory] = None):
        self.config = config or get_config()
        self._runner_factory = runner_factory or (lambda: PipelineRunner(config=self.config))
        self._jobs: Dict[str, Job] = {}
        self._relays: Dict[str, asyncio.Task] = {}
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    async def submit(self, hostname: str) -> str:
        """Validate, register and start a scan job; returns without waiting for it."""
        if not validate_hostname(hostname):
            logger.warning(f"Scan rejected: invalid hostname {hostname!r}")
            raise ReconError(
                ErrorCode.SCAN_TARGET_INVALID,
                "invalid hostname",
                details={"hostname": hostname},
            )
        hostname = hostname.lower()

        async with self._lock:
            job_id = self._allocate_id()
            job = Job(id=job_id, hostname=hostname, workdir=self.config.storage.job_dir(job_id))
            self._jobs[job_id] = job

            channel: asyncio.Queue = asyncio.Queue()
            context = create_safe_task(self._run_context(job, channel), name=f"scan-{job_id}")
            context.add_done_callback(lambda t: channel.put_nowait(_ContextExit(self._exit_reason(t))))
            job.context = context
            job.transition(JobStatus.RUNNING)
            self._relays[job_id] = create_safe_task(self._relay(job_id, channel), name=f"relay-{job_id}")

        logger.info(f"[JOB {job_id}] scan started for {hostname}")
        return job_id

    async def status(self, job_id: str) -> Dict[str, Any]:
        """
        Current state of a job.

        Jobs no longer in memory (e.g. after a restart) are answered from their
        persisted meta.json, reported as done.
        """
        async with self._lock:
            job = self._jobs.get(job_id)
            if job is not None:
                return job.snapshot()

        meta = self._read_meta(job_id)
        if meta is None:
            raise ReconError(ErrorCode.JOB_NOT_FOUND, "job not found", details={"job_id": job_id})
        return {
            "jobId": job_id,
            "hostname": meta.get("hostname"),
            "status": JobStatus.DONE.value,
            "error": None,
            "result": meta,
        }

    async def cancel(self, job_id: str) -> bool:
        """
        Stop a job (best effort), forget it, and delete its artifacts.

        Raises ReconError(ARTIFACT_REMOVE_FAILED) if the job directory could
        not be removed.
        """
        async with self._lock:
            job = self._jobs.pop(job_id, None)
            relay = self._relays.pop(job_id, None)

        if relay is not None:
            relay.cancel()
        if job is not None and job.context is not None:
            logger.info(f"[JOB {job_id}] terminating running scan")
            await cancel_and_wait(job.context)

        workdir = self._job_dir(job_id)
        if workdir is not None:
            try:
                await asyncio.to_thread(shutil.rmtree, workdir)
            except FileNotFoundError:
                pass
            except OSError as exc:
                logger.error(f"[JOB {job_id}] failed to delete {workdir}: {exc}")
                raise ReconError(
                    ErrorCode.ARTIFACT_REMOVE_FAILED,
                    "failed to delete",
                    details={"job_id": job_id},
                ) from exc
        return True

    def results_path(self, job_id: str) -> Path:
        """Location of the human-readable results for download."""
        workdir = self._job_dir(job_id)
        path = workdir / RESULTS_TXT if workdir is not None else None
        if path is None or not path.is_file():
            raise ReconError(ErrorCode.RESULTS_NOT_FOUND, "results not found", details={"job_id": job_id})
        return path

    async def list_jobs(self) -> List[Dict[str, Any]]:
        async with self._lock:
            return [job.snapshot() for job in self._jobs.values()]

    async def wait(self, job_id: str, timeout: Optional[float] = None) -> Dict[str, Any]:
        """Block until the job reaches a terminal state (used by the CLI and tests)."""
        async with self._lock:
            relay = self._relays.get(job_id)
        if relay is not None:
            await asyncio.wait_for(asyncio.shield(relay), timeout=timeout)
        return await self.status(job_id)

    async def shutdown(self) -> None:
        """Cancel every running context; called when the server stops."""
        async with self._lock:
            contexts = [job.context for job in self._jobs.values() if job.context is not None]
            relays = list(self._relays.values())
        for task in contexts + relays:
            await cancel_and_wait(task)

    # ------------------------------------------------------------------
    # Context and relay
    # ------------------------------------------------------------------
    async def _run_context(self, job: Job, channel: asyncio.Queue) -> None:
        runner = self._runner_factory()
        async for event in runner.run(job.id, job.hostname, job.workdir):
            channel.put_nowait(event)

    async def _relay(self, job_id: str, channel: asyncio.Queue) -> None:
        while True:
            message: ChannelMessage = await channel.get()
            if await self._apply(job_id, message):
                break
        async with self._lock:
            if self._relays.get(job_id) is asyncio.current_task():
                del self._relays[job_id]

    async def _apply(self, job_id: str, message: ChannelMessage) -> bool:
        """Apply one channel message to the table. Returns True when the relay should stop."""
        if isinstance(message, LogEvent):
            logger.info(f"[JOB {job_id}] {message.message}")
            return False

        async with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                # Cancelled: the entry is gone and nothing more is applied
                return True

            if isinstance(message, DoneEvent):
                job.result = message.result
                self._transition(job, JobStatus.DONE)
                logger.info(f"[JOB {job_id}] done; meta saved.")
                return True

            if isinstance(message, ErrorEvent):
                job.error = message.detail
                self._transition(job, JobStatus.FAILED)
                logger.error(f"[JOB {job_id}] pipeline error: {message.detail}")
                return True

            if not job.status.terminal:
                job.error = f"unexpected termination: {message.reason}"
                self._transition(job, JobStatus.FAILED)
                logger.error(f"[JOB {job_id}] context exited without reporting: {message.reason}")
            return True

    @staticmethod
    def _transition(job: Job, status: JobStatus) -> None:
        try:
            job.transition(status)
        except InvalidTransitionError as exc:
            logger.warning(f"Ignoring lifecycle message: {exc}")

    @staticmethod
    def _exit_reason(task: asyncio.Task) -> str:
        if task.cancelled():
            return "context cancelled"
        exc = task.exception()
        if exc is not None:
            return f"{type(exc).__name__}: {exc}"
        return "context exited without done or error"

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _allocate_id(self) -> str:
        while True:
            job_id = secrets.token_hex(6)
            if job_id not in self._jobs and not self.config.storage.job_dir(job_id).exists():
                return job_id

    def _job_dir(self, job_id: str) -> Optional[Path]:
        if not JOB_ID_PATTERN.match(job_id or ""):
            return None
        return self.config.storage.job_dir(job_id)

    def _read_meta(self, job_id: str) -> Optional[Dict[str, Any]]:
        workdir = self._job_dir(job_id)
        if workdir is None:
            return None
        try:
            return json.loads((workdir / META_JSON).read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return None
