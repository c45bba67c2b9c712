"""
Unit tests for JobCoordinator: job lifecycle, isolation of failing contexts,
cancellation and the meta.json status fallback.
"""
import asyncio
import json
from unittest.mock import patch

import pytest

from reconforge.engine.coordinator import JobCoordinator
from reconforge.engine.models import DoneEvent, ErrorEvent, JobStatus, LogEvent, PipelineResult
from reconforge.errors import ErrorCode, ReconError


def _result(job_id, hostname):
    return PipelineResult(
        job_id=job_id,
        hostname=hostname,
        stages=(),
        started_at="2024-01-01T00:00:00+00:00",
        finished_at="2024-01-01T00:00:01+00:00",
    )


class ScriptedRunner:
    """Yields a fixed event script; `gate` (if set) is awaited before the last event."""

    def __init__(self, script, gate=None, crash=None):
        self.script = script
        self.gate = gate
        self.crash = crash

    async def run(self, job_id, hostname, workdir):
        for index, make_event in enumerate(self.script):
            if self.gate is not None and index == len(self.script) - 1:
                await self.gate.wait()
            yield make_event(job_id, hostname)
        if self.crash is not None:
            raise self.crash


def _log(job_id, hostname):
    return LogEvent(f"Starting scan for: {hostname}")


def _done(job_id, hostname):
    return DoneEvent(_result(job_id, hostname))


def _error(job_id, hostname):
    return ErrorEvent("cannot create working directory")


def _coordinator(config, **runner_kwargs):
    return JobCoordinator(config=config, runner_factory=lambda: ScriptedRunner(**runner_kwargs))


@pytest.mark.asyncio
async def test_successful_job_reaches_done(recon_config):
    coordinator = _coordinator(recon_config, script=[_log, _done])

    job_id = await coordinator.submit("Example.test")
    status = await coordinator.wait(job_id, timeout=5)

    assert status["status"] == "done"
    assert status["hostname"] == "example.test"
    assert status["result"]["jobId"] == job_id
    assert coordinator._jobs[job_id].history == [JobStatus.QUEUED, JobStatus.RUNNING, JobStatus.DONE]


@pytest.mark.asyncio
async def test_status_is_running_until_terminal_event(recon_config):
    gate = asyncio.Event()
    coordinator = _coordinator(recon_config, script=[_log, _done], gate=gate)

    job_id = await coordinator.submit("example.test")
    await asyncio.sleep(0.05)
    assert (await coordinator.status(job_id))["status"] == "running"

    gate.set()
    status = await coordinator.wait(job_id, timeout=5)
    assert status["status"] == "done"


@pytest.mark.asyncio
async def test_error_event_fails_job(recon_config):
    coordinator = _coordinator(recon_config, script=[_log, _error])

    job_id = await coordinator.submit("example.test")
    status = await coordinator.wait(job_id, timeout=5)

    assert status["status"] == "failed"
    assert status["error"] == "cannot create working directory"
    assert coordinator._jobs[job_id].history == [JobStatus.QUEUED, JobStatus.RUNNING, JobStatus.FAILED]


@pytest.mark.asyncio
async def test_crashing_context_fails_only_its_job(recon_config):
    crashing = JobCoordinator(
        config=recon_config,
        runner_factory=lambda: ScriptedRunner(script=[_log], crash=RuntimeError("worker died")),
    )

    job_id = await crashing.submit("example.test")
    status = await crashing.wait(job_id, timeout=5)

    assert status["status"] == "failed"
    assert status["error"].startswith("unexpected termination")
    assert "worker died" in status["error"]

    # The coordinator keeps serving after a context crash
    other = await crashing.submit("other.example.test")
    assert (await crashing.status(other))["status"] in ("running", "failed")


@pytest.mark.asyncio
async def test_context_exiting_silently_fails_job(recon_config):
    coordinator = _coordinator(recon_config, script=[_log])

    job_id = await coordinator.submit("example.test")
    status = await coordinator.wait(job_id, timeout=5)

    assert status["status"] == "failed"
    assert status["error"].startswith("unexpected termination")


@pytest.mark.asyncio
async def test_events_after_terminal_state_are_ignored(recon_config):
    coordinator = _coordinator(recon_config, script=[_done, _error])

    job_id = await coordinator.submit("example.test")
    await coordinator.wait(job_id, timeout=5)
    await asyncio.sleep(0.05)

    status = await coordinator.status(job_id)
    assert status["status"] == "done"
    assert status["error"] is None


@pytest.mark.asyncio
async def test_invalid_hostname_creates_no_job(recon_config):
    coordinator = _coordinator(recon_config, script=[_done])

    with pytest.raises(ReconError) as excinfo:
        await coordinator.submit("not a host")

    assert excinfo.value.code == ErrorCode.SCAN_TARGET_INVALID
    assert excinfo.value.http_status == 400
    assert await coordinator.list_jobs() == []
    assert list(recon_config.storage.scans_path.iterdir()) == []


@pytest.mark.asyncio
async def test_job_ids_are_unique(recon_config):
    coordinator = _coordinator(recon_config, script=[_done])

    ids = await asyncio.gather(*(coordinator.submit("example.test") for _ in range(20)))

    assert len(set(ids)) == 20
    await coordinator.shutdown()


@pytest.mark.asyncio
async def test_cancel_running_job(recon_config):
    gate = asyncio.Event()
    coordinator = _coordinator(recon_config, script=[_log, _done], gate=gate)

    job_id = await coordinator.submit("example.test")
    context = coordinator._jobs[job_id].context
    workdir = recon_config.storage.job_dir(job_id)
    workdir.mkdir(parents=True)
    (workdir / "subfinder.txt").write_text("a.example.test\n")

    assert await coordinator.cancel(job_id) is True

    assert context.cancelled()
    assert not workdir.exists()
    gate.set()
    await asyncio.sleep(0.05)
    with pytest.raises(ReconError) as excinfo:
        await coordinator.status(job_id)
    assert excinfo.value.code == ErrorCode.JOB_NOT_FOUND


@pytest.mark.asyncio
async def test_cancel_unknown_job_is_idempotent(recon_config):
    coordinator = _coordinator(recon_config, script=[_done])

    assert await coordinator.cancel("deadbeef0000") is True


@pytest.mark.asyncio
async def test_cancel_reports_removal_failure(recon_config):
    coordinator = _coordinator(recon_config, script=[_done])
    recon_config.storage.job_dir("abc123").mkdir(parents=True)

    with patch("reconforge.engine.coordinator.shutil.rmtree", side_effect=PermissionError("denied")):
        with pytest.raises(ReconError) as excinfo:
            await coordinator.cancel("abc123")

    assert excinfo.value.code == ErrorCode.ARTIFACT_REMOVE_FAILED
    assert excinfo.value.http_status == 500


@pytest.mark.asyncio
async def test_status_falls_back_to_meta(recon_config):
    coordinator = _coordinator(recon_config, script=[_done])
    workdir = recon_config.storage.job_dir("abc123")
    workdir.mkdir(parents=True)
    (workdir / "meta.json").write_text(json.dumps({"jobId": "abc123", "hostname": "example.test", "tasks": []}))

    status = await coordinator.status("abc123")

    assert status["status"] == "done"
    assert status["hostname"] == "example.test"
    assert status["result"]["tasks"] == []


@pytest.mark.asyncio
@pytest.mark.parametrize("job_id", ["nope", "../../etc", ""])
async def test_status_unknown_job(recon_config, job_id):
    coordinator = _coordinator(recon_config, script=[_done])

    with pytest.raises(ReconError) as excinfo:
        await coordinator.status(job_id)

    assert excinfo.value.http_status == 404


def test_results_path(recon_config):
    coordinator = _coordinator(recon_config, script=[_done])
    workdir = recon_config.storage.job_dir("abc123")
    workdir.mkdir(parents=True)

    with pytest.raises(ReconError) as excinfo:
        coordinator.results_path("abc123")
    assert excinfo.value.code == ErrorCode.RESULTS_NOT_FOUND

    (workdir / "results.txt").write_text("url: https://a.example.test\n")
    assert coordinator.results_path("abc123") == workdir / "results.txt"


@pytest.mark.asyncio
async def test_shutdown_cancels_running_contexts(recon_config):
    gate = asyncio.Event()
    coordinator = _coordinator(recon_config, script=[_log, _done], gate=gate)

    job_id = await coordinator.submit("example.test")
    context = coordinator._jobs[job_id].context

    await coordinator.shutdown()

    assert context.done()
