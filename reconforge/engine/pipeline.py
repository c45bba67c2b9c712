"""
reconforge/engine/pipeline.py
Runs the recon pipeline for one job and streams lifecycle events.

PipelineRunner.run() is an async generator: it yields LogEvents while the
stages execute, then exactly one DoneEvent (with the PipelineResult) or one
ErrorEvent, and stops.

Failure policy:
- Tool stages (missing binary, non-zero exit, timeout) are NON-fatal: the
  failure is logged, recorded on the stage, and the stage's output is treated
  as absent by the stages that follow.
- Working-directory creation failures and uncaught exceptions are fatal to
  the job and end the stream with an ErrorEvent.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence, Set, Tuple

from reconforge.base.config import ReconConfig, get_config
from reconforge.base.exceptions import ToolInvocationError, ToolTimeoutError
from reconforge.engine.invoker import StageInvoker
from reconforge.engine.models import (
    DoneEvent,
    ErrorEvent,
    LogEvent,
    PipelineEvent,
    PipelineResult,
    StageKind,
    StageOutcome,
    StageRecord,
    StageSpec,
    utc_now_iso,
)
from reconforge.engine.stages import (
    DISCOVERY_STAGES,
    META_JSON,
    RESULTS_JSON,
    RESULTS_TXT,
    build_stages,
)
from reconforge.toolkit.httpx_parser import parse_jsonl, render_text
from reconforge.toolkit.merge import read_entries, write_entries

logger = logging.getLogger(__name__)


@dataclass
class _RunState:
    """Mutable bookkeeping for a single run; never shared between runs."""
    job_id: str
    hostname: str
    workdir: Path
    started_at: str
    stages: List[StageRecord] = field(default_factory=list)
    succeeded: Set[str] = field(default_factory=set)
    targets: List[str] = field(default_factory=list)
    records: List[Dict[str, Any]] = field(default_factory=list)
    notes: List[str] = field(default_factory=list)

    def note(self, message: str) -> None:
        self.notes.append(message)

    def drain(self) -> List[str]:
        pending, self.notes = self.notes, []
        return pending


class PipelineRunner:
    """Executes the ordered stage list inside one job's working directory."""

    def __init__(
        self,
        stages: Optional[Sequence[StageSpec]] = None,
        invoker: Optional[StageInvoker] = None,
        config: Optional[ReconConfig] = None,
    ):
        cfg = config or get_config()
        self.stages: Tuple[StageSpec, ...] = tuple(stages) if stages is not None else build_stages(cfg.tools)
        self.invoker = invoker or StageInvoker()

    async def run(self, job_id: str, hostname: str, workdir: Path) -> AsyncIterator[PipelineEvent]:
        workdir = Path(workdir)
        try:
            workdir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            yield ErrorEvent(f"cannot create working directory {workdir}: {exc}")
            return

        state = _RunState(job_id=job_id, hostname=hostname, workdir=workdir, started_at=utc_now_iso())
        yield LogEvent(f"Starting scan for: {hostname}")

        try:
            result: Optional[PipelineResult] = None
            for spec in self.stages:
                yield LogEvent(
                    f"[TASK] About to run {spec.label or spec.name}. "
                    f"Estimated time: ~{spec.estimate_minutes} minutes"
                )
                if spec.name == "save_results":
                    result = self._save_results(spec, state)
                else:
                    record = await self._run_stage(spec, state)
                    state.stages.append(record)
                for message in state.drain():
                    yield LogEvent(message)

            if result is None:
                # No persistence stage configured; still hand back a result
                result = self._build_result(state)
        except Exception as exc:
            logger.exception(f"[JOB {job_id}] pipeline crashed")
            yield ErrorEvent(str(exc) or type(exc).__name__)
            return

        yield DoneEvent(result)

    # ------------------------------------------------------------------
    # Stage dispatch
    # ------------------------------------------------------------------
    async def _run_stage(self, spec: StageSpec, state: _RunState) -> StageRecord:
        if spec.kind == StageKind.TOOL:
            return await self._run_tool(spec, state)
        if spec.name == "merge":
            return self._merge(spec, state)
        if spec.name == "parse_httpx":
            return self._parse(spec, state)
        raise ValueError(f"unknown builtin stage: {spec.name}")

    async def _run_tool(self, spec: StageSpec, state: _RunState) -> StageRecord:
        started = time.monotonic()
        args = spec.command(state.hostname, state.workdir)
        output = state.workdir / spec.output if spec.output else None
        try:
            invocation = await self.invoker.invoke(spec.binary or spec.name, args, spec.timeout)
        except ToolInvocationError as exc:
            outcome = StageOutcome.TIMED_OUT if isinstance(exc, ToolTimeoutError) else StageOutcome.FAILED_NONFATAL
            state.note(f"[TASK] {spec.name} failed or not present: {exc}")
            if output is not None and spec.name not in DISCOVERY_STAGES:
                # Downstream parsing expects the file; an empty one means "no output"
                self._write_empty(output, state)
            return StageRecord(spec.name, outcome, time.monotonic() - started, str(exc))

        if output is not None and not output.exists():
            # Some tool versions ignore -o and print to stdout instead
            try:
                output.write_text(invocation.stdout, encoding="utf-8")
            except OSError as exc:
                state.note(f"[TASK] {spec.name}: could not save output: {exc}")
        state.succeeded.add(spec.name)
        return StageRecord(spec.name, StageOutcome.SUCCEEDED, time.monotonic() - started)

    def _merge(self, spec: StageSpec, state: _RunState) -> StageRecord:
        started = time.monotonic()
        sources = [
            state.workdir / s.output
            for s in self.stages
            if s.name in DISCOVERY_STAGES and s.name in state.succeeded and s.output
        ]
        present = [path for path in sources if path.exists()]
        if not present:
            state.note("[TASK] merge: no discovery output available; writing empty list")
        state.targets = read_entries(present)
        destination = state.workdir / spec.output
        try:
            write_entries(state.targets, destination)
        except OSError as exc:
            logger.error(f"[JOB {state.job_id}] failed to write {destination.name}: {exc}")
            state.note(f"[TASK] merge: failed to write {destination.name}: {exc}")
            return StageRecord(spec.name, StageOutcome.FAILED_NONFATAL, time.monotonic() - started, str(exc))
        state.note(f"[TASK] merge: {len(state.targets)} unique hosts from {len(present)} list(s)")
        state.succeeded.add(spec.name)
        return StageRecord(spec.name, StageOutcome.SUCCEEDED, time.monotonic() - started)

    def _parse(self, spec: StageSpec, state: _RunState) -> StageRecord:
        started = time.monotonic()
        source = state.workdir / spec.input
        try:
            raw = source.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            state.records = []
            state.note(f"[TASK] parse_httpx: cannot read {source.name}: {exc}")
            return StageRecord(spec.name, StageOutcome.FAILED_NONFATAL, time.monotonic() - started, str(exc))

        state.records = parse_jsonl(raw)
        errors = sum(1 for r in state.records if r.get("_parseError"))
        state.note(f"[TASK] parse_httpx: {len(state.records)} record(s), {errors} parse error(s)")
        state.succeeded.add(spec.name)
        return StageRecord(spec.name, StageOutcome.SUCCEEDED, time.monotonic() - started)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------
    def _save_results(self, spec: StageSpec, state: _RunState) -> PipelineResult:
        """
        Write results.json, results.txt and meta.json from the same in-memory
        records. A failed artifact is logged; the others are still attempted.
        """
        started = time.monotonic()
        failures: List[str] = []

        if not self._write_artifact(state, RESULTS_JSON, json.dumps(state.records, indent=2)):
            failures.append(RESULTS_JSON)
        if not self._write_artifact(state, RESULTS_TXT, render_text(state.records)):
            failures.append(RESULTS_TXT)

        record = self._save_record(spec, started, failures)
        state.stages.append(record)
        result = self._build_result(state)

        if not self._write_artifact(state, META_JSON, json.dumps(result.to_meta(), indent=2)):
            failures.append(META_JSON)
            stages = result.stages[:-1] + (self._save_record(spec, started, failures),)
            result = replace(result, stages=stages)
            state.stages[-1] = stages[-1]

        return result

    @staticmethod
    def _save_record(spec: StageSpec, started: float, failures: List[str]) -> StageRecord:
        if failures:
            return StageRecord(
                spec.name,
                StageOutcome.FAILED_NONFATAL,
                time.monotonic() - started,
                "failed to write: " + ", ".join(failures),
            )
        return StageRecord(spec.name, StageOutcome.SUCCEEDED, time.monotonic() - started)

    @staticmethod
    def _write_artifact(state: _RunState, name: str, content: str) -> bool:
        path = state.workdir / name
        try:
            path.write_text(content, encoding="utf-8")
            return True
        except OSError as exc:
            logger.error(f"[JOB {state.job_id}] failed to write {name}: {exc}")
            state.note(f"[TASK] save_results: failed to write {name}: {exc}")
            return False

    @staticmethod
    def _write_empty(path: Path, state: _RunState) -> None:
        try:
            path.write_text("", encoding="utf-8")
        except OSError as exc:
            state.note(f"[TASK] could not reset {path.name}: {exc}")

    @staticmethod
    def _build_result(state: _RunState) -> PipelineResult:
        return PipelineResult(
            job_id=state.job_id,
            hostname=state.hostname,
            stages=tuple(state.stages),
            started_at=state.started_at,
            finished_at=utc_now_iso(),
            records=tuple(state.records),
            targets=tuple(state.targets),
        )
