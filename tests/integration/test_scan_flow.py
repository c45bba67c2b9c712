"""
End-to-end job flow through the real PipelineRunner and StageInvoker, with
tool binaries that are not installed.
"""
import json

import pytest

from reconforge.engine.coordinator import JobCoordinator


@pytest.mark.asyncio
async def test_scan_completes_without_discovery_tools(recon_config):
    coordinator = JobCoordinator(config=recon_config)

    job_id = await coordinator.submit("example.test")
    status = await coordinator.wait(job_id, timeout=30)

    assert status["status"] == "done"
    tasks = {t["name"]: t for t in status["result"]["tasks"]}
    assert tasks["subfinder"]["outcome"] == "failed-nonfatal"
    assert tasks["amass"]["outcome"] == "failed-nonfatal"
    assert tasks["httpx"]["outcome"] == "failed-nonfatal"
    assert status["result"]["targets"] == []
    assert status["result"]["recordCount"] == 0

    workdir = recon_config.storage.job_dir(job_id)
    assert workdir.name == f"scan-{job_id}"
    assert (workdir / "all.txt").read_text() == ""
    assert json.loads((workdir / "results.json").read_text()) == []
    meta = json.loads((workdir / "meta.json").read_text())
    assert meta["jobId"] == job_id
    assert meta["hostname"] == "example.test"

    # Once the job is forgotten, the persisted metadata still answers status
    coordinator._jobs.clear()
    fallback = await coordinator.status(job_id)
    assert fallback["status"] == "done"
    assert fallback["result"]["jobId"] == job_id
